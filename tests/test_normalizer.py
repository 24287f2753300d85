from __future__ import annotations

import pytest

from agent.catalog import ClinicAction, default_response
from agent.context import PatientContext
from agent.normalizer import SERVICE_UNAVAILABLE, IntentNormalizer, OpenAIActionClassifier
from core.errors import ExternalServiceError
from models.patient import Patient


async def test_known_action_passes_through(normalizer_for):
    normalizer = normalizer_for(
        {"action": "view_unpaid_invoices", "data": {"count": 2}, "response": "Here are your unpaid invoices."}
    )
    result = await normalizer.normalize("what do I owe?")
    assert result.action is ClinicAction.VIEW_UNPAID_INVOICES
    assert result.data == {"count": 2}
    assert result.response == "Here are your unpaid invoices."
    assert result.raw_response is not None


async def test_unknown_action_is_coerced_to_general_response(normalizer_for):
    normalizer = normalizer_for({"action": "order_pizza", "data": {}, "response": "Sure!"})
    result = await normalizer.normalize("order me a pizza")
    assert result.action is ClinicAction.GENERAL_RESPONSE
    assert result.response == "Sure!"


async def test_unparseable_reply_keeps_raw_text(normalizer_for):
    normalizer = normalizer_for("I think you want your invoices")
    result = await normalizer.normalize("invoices?")
    assert result.action is ClinicAction.GENERAL_RESPONSE
    assert result.data == {"message": "I think you want your invoices"}
    assert result.response == default_response(ClinicAction.GENERAL_RESPONSE)


async def test_blank_response_falls_back_to_default_sentence(normalizer_for):
    normalizer = normalizer_for({"action": "view_price_list", "data": None, "response": "  "})
    result = await normalizer.normalize("prices")
    assert result.action is ClinicAction.VIEW_PRICE_LIST
    assert result.response == default_response(ClinicAction.VIEW_PRICE_LIST)
    assert result.data == {}


@pytest.mark.parametrize("error", [ExternalServiceError("timeout"), RuntimeError("boom")])
async def test_classifier_failure_degrades_to_general_response(normalizer_for, error):
    result = await normalizer_for(error=error).normalize("hello")
    assert result.action is ClinicAction.GENERAL_RESPONSE
    assert result.data == {"error": SERVICE_UNAVAILABLE}
    assert result.response == default_response(ClinicAction.GENERAL_RESPONSE)


async def test_empty_reply_degrades_to_general_response(normalizer_for):
    result = await normalizer_for("   ").normalize("hello")
    assert result.data == {"error": SERVICE_UNAVAILABLE}


async def test_empty_message_is_rejected(normalizer_for):
    with pytest.raises(ValueError):
        await normalizer_for({"action": "general_response"}).normalize("   ")


def test_request_carries_prompt_context_and_history():
    normalizer = IntentNormalizer(classifier=None)  # type: ignore[arg-type]
    context = PatientContext(patient=Patient(name="Ada Lovelace"))
    request = normalizer.build_request(
        "when is my next visit?",
        context,
        [
            {"sender": "patient", "content": "hi"},
            {"role": "assistant", "content": "Hello!"},
            {"sender": "doctor", "message": "See you soon"},
            {"role": "user", "content": ""},
        ],
        base_prompt="You are the clinic's assistant.",
    )
    roles = [m["role"] for m in request.messages]
    assert roles == ["system", "user", "assistant", "assistant", "user"]
    assert request.messages[0]["content"].startswith("You are the clinic's assistant.")
    assert "Ada Lovelace" in request.messages[0]["content"]
    assert request.messages[-1]["content"] == "when is my next visit?"


async def test_openai_classifier_without_key_degrades(normalizer_for):
    normalizer = IntentNormalizer(OpenAIActionClassifier(api_key=""))
    result = await normalizer.normalize("hello")
    assert result.data == {"error": SERVICE_UNAVAILABLE}
