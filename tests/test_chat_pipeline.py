from __future__ import annotations

import pytest

from agent.graph import ChatPipeline
from agent.nodes import ChatNodes
from services.transcripts import decode_content
from conftest import next_weekday


@pytest.fixture
def pipeline_for(messages_repo, appointments_repo, patients_repo, fanout, normalizer_for):
    def _make(reply) -> ChatPipeline:
        nodes = ChatNodes(
            messages=messages_repo,
            appointments=appointments_repo,
            patients=patients_repo,
            normalizer=normalizer_for(reply),
            fanout=fanout,
        )
        return ChatPipeline(nodes)

    return _make


async def test_upcoming_appointments_reply_embeds_snapshots(
    pipeline_for, make_appointment, messages_repo, listeners, patient_id
):
    patient_socket, admin_socket = listeners
    later = await make_appointment("Crown Fitting", next_weekday(1, weeks=1))
    sooner = await make_appointment("Teeth Cleaning", next_weekday(4))
    await make_appointment("Old Filling", next_weekday(3), is_cancelled=True)

    incoming = await messages_repo.create(patient_id, "patient", "show my appointments")
    pipeline = pipeline_for({"action": "view_upcoming_appointments", "data": {}, "response": "Here they are."})
    reply = await pipeline.respond(incoming)

    content = decode_content(reply.content)
    assert reply.sender.value == "assistant"
    assert content.action == "view_upcoming_appointments"
    assert content.title == "Upcoming appointments"
    assert [item["id"] for item in content.data] == [str(sooner.id), str(later.id)]

    assert patient_socket.events("message:new")[0]["data"]["message"]["id"] == str(reply.id)
    assert admin_socket.events("message:new")
    [action_frame] = patient_socket.events("ai:action")
    assert action_frame["data"]["action"] == "view_upcoming_appointments"
    assert action_frame["data"]["response"] == "Here they are."
    assert admin_socket.events("ai:action") == []


async def test_next_appointment_is_a_single_snapshot(pipeline_for, make_appointment, messages_repo, patient_id):
    first = await make_appointment("Teeth Cleaning", next_weekday(4))
    await make_appointment("Crown Fitting", next_weekday(1, weeks=2))
    incoming = await messages_repo.create(patient_id, "patient", "when is my next visit?")

    reply = await pipeline_for({"action": "view_next_appointment", "response": "Soon!"}).respond(incoming)

    content = decode_content(reply.content)
    assert content.data["id"] == str(first.id)
    assert content.title == "Next appointment"


async def test_cancel_offers_the_next_appointment(pipeline_for, make_appointment, messages_repo, patient_id):
    first = await make_appointment("Teeth Cleaning", next_weekday(4))
    await make_appointment("Crown Fitting", next_weekday(1, weeks=2))
    incoming = await messages_repo.create(patient_id, "patient", "I want to cancel")

    reply = await pipeline_for({"action": "cancel_appointment", "response": "Which one?"}).respond(incoming)

    content = decode_content(reply.content)
    assert [item["id"] for item in content.data] == [str(first.id)]
    assert content.title == "Select appointment to cancel"


async def test_no_appointments_uses_empty_state_title(pipeline_for, messages_repo, patient_id):
    incoming = await messages_repo.create(patient_id, "patient", "cancel my appointment")

    reply = await pipeline_for({"action": "cancel_appointment", "response": "Which one?"}).respond(incoming)

    content = decode_content(reply.content)
    assert content.data == []
    assert content.title == "You don't have any appointments to cancel."


async def test_other_actions_carry_the_model_data(pipeline_for, messages_repo, patient_id):
    incoming = await messages_repo.create(patient_id, "patient", "what is a crown?")
    reply = await pipeline_for(
        {"action": "view_procedure_details", "data": {"procedure": "crown"}, "response": "A crown is..."}
    ).respond(incoming)

    content = decode_content(reply.content)
    assert content.action == "view_procedure_details"
    assert content.data == {"procedure": "crown"}


async def test_history_excludes_the_incoming_message(
    messages_repo, appointments_repo, patients_repo, fanout, patient_id
):
    from conftest import StubClassifier
    from agent.normalizer import IntentNormalizer

    classifier = StubClassifier({"action": "general_response", "response": "Hi again"})
    nodes = ChatNodes(
        messages=messages_repo,
        appointments=appointments_repo,
        patients=patients_repo,
        normalizer=IntentNormalizer(classifier),
        fanout=fanout,
    )
    await messages_repo.create(patient_id, "patient", "hello")
    await messages_repo.create(patient_id, "doctor", "Hello, how can we help?")
    incoming = await messages_repo.create(patient_id, "patient", "me again")

    await ChatPipeline(nodes).respond(incoming)

    sent = classifier.requests[0].messages
    assert [m["content"] for m in sent[1:]] == ["hello", "Hello, how can we help?", "me again"]


async def test_unavailable_model_still_answers(pipeline_for, messages_repo, patient_id):
    incoming = await messages_repo.create(patient_id, "patient", "hello?")
    reply = await pipeline_for(None).respond(incoming)
    content = decode_content(reply.content)
    assert content.action == "general_response"
