from __future__ import annotations

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from services.realtime import ADMIN_ROOM, patient_room
from conftest import RecordingSocket


@pytest.fixture
def ws_client(app):
    return TestClient(app)


def test_join_answers_ready_with_rooms(ws_client):
    patient_id = str(ObjectId())
    with ws_client.websocket_connect("/api/v1/ws") as ws:
        ws.send_json({"event": "join", "data": {"patientId": patient_id, "isAdmin": True}})
        frame = ws.receive_json()
    assert frame == {"event": "ready", "data": {"rooms": [patient_room(patient_id)]}}


def test_admin_and_doctor_join(ws_client):
    with ws_client.websocket_connect("/api/v1/ws") as ws:
        ws.send_json({"event": "join", "data": {"doctorId": "d1", "isAdmin": True}})
        frame = ws.receive_json()
    assert frame["data"]["rooms"] == [ADMIN_ROOM, "doctor:d1"]


def test_patient_message_is_acked_and_answered(app, ws_client, classifier):
    classifier.reply = {"action": "view_upcoming_appointments", "data": {}, "response": "Here you go."}
    patient_id = str(ObjectId())
    admin_socket = RecordingSocket()
    app.state.hub.join(admin_socket, ADMIN_ROOM)

    with ws_client.websocket_connect("/api/v1/ws") as ws:
        ws.send_json({"event": "join", "data": {"patientId": patient_id}})
        assert ws.receive_json()["event"] == "ready"

        ws.send_json(
            {"event": "message:send", "data": {"patientId": patient_id, "sender": "patient", "content": "my visits?"}}
        )
        ack = ws.receive_json()
        echoed = ws.receive_json()
        reply = ws.receive_json()
        action = ws.receive_json()

    assert ack["event"] == "ack" and ack["data"]["message"]["content"] == "my visits?"
    assert echoed["event"] == "message:new" and echoed["data"]["message"]["sender"] == "patient"
    assert reply["event"] == "message:new" and reply["data"]["message"]["sender"] == "assistant"
    assert action == {
        "event": "ai:action",
        "data": {
            "action": "view_upcoming_appointments",
            "data": {},
            "response": "Here you go.",
            "messageId": reply["data"]["message"]["id"],
        },
    }
    assert [f["data"]["message"]["sender"] for f in admin_socket.events("message:new")] == ["patient", "assistant"]


def test_doctor_message_is_not_answered_by_the_assistant(app, ws_client, classifier):
    patient_id = str(ObjectId())
    patient_socket = RecordingSocket()
    app.state.hub.join(patient_socket, patient_room(patient_id))

    with ws_client.websocket_connect("/api/v1/ws") as ws:
        ws.send_json({"event": "join", "data": {"isAdmin": True}})
        ws.receive_json()
        ws.send_json(
            {"event": "message:send", "data": {"patientId": patient_id, "sender": "doctor", "content": "Results are in"}}
        )
        ack = ws.receive_json()

    assert ack["event"] == "ack"
    assert [f["event"] for f in patient_socket.frames] == ["message:new"]
    assert classifier.requests == []


def test_invalid_frames_get_an_error(ws_client):
    with ws_client.websocket_connect("/api/v1/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["event"] == "error"
        ws.send_json({"event": "message:send", "data": {"patientId": "nope", "sender": "patient", "content": "hi"}})
        assert ws.receive_json()["event"] == "error"
        ws.send_json({"event": "dance", "data": {}})
        assert ws.receive_json() == {"event": "error", "data": {"error": "Unknown event"}}


def test_disconnect_leaves_all_rooms(app, ws_client):
    patient_id = str(ObjectId())
    with ws_client.websocket_connect("/api/v1/ws") as ws:
        ws.send_json({"event": "join", "data": {"patientId": patient_id}})
        ws.receive_json()
        assert len(app.state.hub.members(patient_room(patient_id))) == 1
    assert app.state.hub.members(patient_room(patient_id)) == set()
