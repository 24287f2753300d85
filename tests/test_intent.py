from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from bson import ObjectId

import agent.intent
from agent.intent import (
    UNCLASSIFIED,
    AppointmentIntentExtractor,
    DetectedIntent,
    IntentType,
    keyword_intent,
    match_appointment,
)
from core.config import settings
from models.appointment import Appointment
from models.base import clinic_timezone
from conftest import next_weekday

PATIENT = str(ObjectId())


def _appointment(title: str, when: datetime, **extra) -> Appointment:
    return Appointment(_id=ObjectId(), patient_id=PATIENT, title=title, scheduled_at=when, **extra)


class FakeLLM:
    def __init__(self, content: str) -> None:
        self.content = content
        self.prompts = []

    async def ainvoke(self, prompt):
        self.prompts.append(prompt)
        return SimpleNamespace(content=self.content)


def test_low_confidence_always_requires_confirmation():
    intent = DetectedIntent.model_validate(
        {"type": "cancel_appointment", "confidence": 0.4, "requiresConfirmation": False}
    )
    assert intent.requires_confirmation is True


def test_confident_intent_keeps_model_decision():
    intent = DetectedIntent.model_validate(
        {"type": "cancel_appointment", "confidence": 0.95, "requiresConfirmation": False}
    )
    assert intent.requires_confirmation is False


def test_unknown_type_and_out_of_range_confidence_are_sanitized():
    intent = DetectedIntent.model_validate({"type": "teleport", "confidence": 7, "appointmentId": "  "})
    assert intent.type is None
    assert intent.confidence == 1.0
    assert intent.appointment_id is None


def test_wire_shape_uses_camel_case_keys():
    wire = UNCLASSIFIED.to_wire()
    assert wire == {
        "type": None,
        "appointmentId": None,
        "appointmentTitle": None,
        "newDateTime": None,
        "confidence": 0.0,
        "requiresConfirmation": True,
    }


def test_fuzzy_match_uses_synonyms():
    hygiene = _appointment("Hygiene Visit", next_weekday(2))
    crown = _appointment("Crown Fitting", next_weekday(3))
    assert match_appointment("can I cancel my cleaning?", [crown, hygiene]) is hygiene


def test_weekday_breaks_ties_between_similar_titles():
    thursday = _appointment("Teeth Cleaning", next_weekday(3))
    friday = _appointment("Cleaning Follow-up", next_weekday(4))
    assert match_appointment("please cancel my cleaning on Friday", [thursday, friday]) is friday


def test_weekday_tie_break_reads_the_clinic_calendar(monkeypatch):
    monkeypatch.setattr(settings, "clinic_timezone", "America/Los_Angeles")
    # Friday evening in Los Angeles, already Saturday in UTC
    friday_local = _appointment("Teeth Cleaning", datetime(2026, 3, 7, 2, 0, tzinfo=timezone.utc))
    thursday_local = _appointment("Cleaning Check", datetime(2026, 3, 6, 2, 0, tzinfo=timezone.utc))
    assert match_appointment("please cancel my cleaning on Friday", [thursday_local, friday_local]) is friday_local


def test_unknown_clinic_timezone_falls_back_to_utc(monkeypatch):
    monkeypatch.setattr(settings, "clinic_timezone", "Mars/Olympus")
    assert clinic_timezone().key == "UTC"


def test_cancelled_appointments_are_never_matched():
    cancelled = _appointment("Teeth Cleaning", next_weekday(4), is_cancelled=True)
    assert match_appointment("cancel my cleaning", [cancelled]) is None


def test_keyword_cancel_with_match_is_confident():
    cleaning = _appointment("Teeth Cleaning", next_weekday(4))
    intent = keyword_intent("please cancel my cleaning on Friday", [cleaning])
    assert intent.type is IntentType.CANCEL_APPOINTMENT
    assert intent.appointment_id == str(cleaning.id)
    assert intent.confidence >= 0.7
    assert intent.requires_confirmation is True


def test_keyword_reschedule_extracts_date():
    now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)  # a Monday
    filling = _appointment("Filling", now + timedelta(days=3))
    intent = keyword_intent("reschedule my filling to tomorrow at 3pm", [filling], now=now)
    assert intent.type is IntentType.RESCHEDULE_APPOINTMENT
    assert intent.appointment_id == str(filling.id)
    assert intent.new_date_time == datetime(2026, 3, 3, 15, 0, tzinfo=timezone.utc).isoformat()


def test_impossible_clock_time_keeps_default_slot(monkeypatch):
    monkeypatch.setattr(settings, "suggested_slot_hour", 10)
    now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    cleaning = _appointment("Teeth Cleaning", now + timedelta(days=3))
    for message in ("reschedule my cleaning to tomorrow at 10:75 am", "reschedule my cleaning to tomorrow at 27 pm"):
        intent = keyword_intent(message, [cleaning], now=now)
        assert intent.type is IntentType.RESCHEDULE_APPOINTMENT
        assert intent.appointment_id == str(cleaning.id)
        assert intent.new_date_time == datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc).isoformat()


def test_keyword_without_match_needs_confirmation():
    intent = keyword_intent("cancel it", [])
    assert intent.type is IntentType.CANCEL_APPOINTMENT
    assert intent.appointment_id is None
    assert intent.confidence < 0.7
    assert intent.requires_confirmation is True


def test_small_talk_is_unclassified():
    intent = keyword_intent("thanks, have a nice day", [])
    assert intent.type is None
    assert intent.confidence == 0.0


async def test_extractor_reconciles_model_title_to_real_appointment():
    cleaning = _appointment("Teeth Cleaning", next_weekday(4))
    llm = FakeLLM(
        '```json\n{"type": "cancel_appointment", "appointmentId": "not-an-id", '
        '"appointmentTitle": "cleaning", "confidence": 0.9, "requiresConfirmation": true}\n```'
    )
    extractor = AppointmentIntentExtractor(api_key="", llm=llm)
    intent = await extractor.extract("please cancel my cleaning", [cleaning])
    assert intent.appointment_id == str(cleaning.id)
    assert intent.appointment_title == "Teeth Cleaning"
    assert "Teeth Cleaning" in llm.prompts[0]


async def test_extractor_failure_returns_unclassified():
    extractor = AppointmentIntentExtractor(api_key="", llm=FakeLLM("not json at all"))
    intent = await extractor.extract("cancel my cleaning", [])
    assert intent.type is None
    assert intent.requires_confirmation is True


async def test_extractor_without_key_uses_keyword_fallback():
    cleaning = _appointment("Teeth Cleaning", next_weekday(4))
    extractor = AppointmentIntentExtractor(api_key="")
    assert extractor.uses_llm is False
    intent = await extractor.extract("cancel my cleaning", [cleaning])
    assert intent.type is IntentType.CANCEL_APPOINTMENT


async def test_keyword_fallback_error_returns_unclassified(monkeypatch):
    def _broken(message, appointments, **kwargs):
        raise ValueError("bad clock time")

    monkeypatch.setattr(agent.intent, "keyword_intent", _broken)
    extractor = AppointmentIntentExtractor(api_key="")
    intent = await extractor.extract("reschedule my cleaning", [])
    assert intent.type is None
    assert intent.confidence == 0.0
    assert intent.requires_confirmation is True
