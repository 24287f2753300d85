"""Structured appointment-intent extraction for the assistant's action flow."""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.config import settings
from models.appointment import Appointment
from models.base import clinic_timezone
from .prompts import INTENT_EXTRACTION_PROMPT

logger = logging.getLogger(__name__)

# Below this confidence the client must ask the patient to confirm
CONFIDENCE_THRESHOLD = 0.7


class IntentType(str, Enum):
    RESCHEDULE_APPOINTMENT = "reschedule_appointment"
    CANCEL_APPOINTMENT = "cancel_appointment"
    CREATE_APPOINTMENT = "create_appointment"
    GENERAL_QUESTION = "general_question"


class DetectedIntent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Optional[IntentType] = None
    appointment_id: Optional[str] = Field(default=None, alias="appointmentId")
    appointment_title: Optional[str] = Field(default=None, alias="appointmentTitle")
    new_date_time: Optional[str] = Field(default=None, alias="newDateTime")
    confidence: float = 0.0
    requires_confirmation: bool = Field(default=True, alias="requiresConfirmation")

    @field_validator("type", mode="before")
    @classmethod
    def _unknown_type_is_null(cls, value: Any) -> Any:
        if isinstance(value, IntentType):
            return value
        try:
            return IntentType(value)
        except ValueError:
            return None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return min(max(number, 0.0), 1.0)

    @field_validator("appointment_id", "appointment_title", "new_date_time", mode="before")
    @classmethod
    def _blank_is_null(cls, value: Any) -> Any:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @model_validator(mode="after")
    def _gate_low_confidence(self) -> "DetectedIntent":
        if self.confidence < CONFIDENCE_THRESHOLD:
            self.requires_confirmation = True
        return self

    def to_wire(self) -> dict:
        data = self.model_dump(by_alias=True, mode="json")
        return data


UNCLASSIFIED = DetectedIntent(type=None, confidence=0.0, requiresConfirmation=True)


# ---------------- Fuzzy appointment matching ----------------

_STOPWORDS = {
    "the", "and", "for", "with", "my", "your", "please", "appointment", "appointments",
    "visit", "cancel", "reschedule", "move", "change", "book", "want", "would", "like",
    "can", "you", "this", "that", "next", "on", "at", "to", "of", "a", "an", "i",
}

# Patients rarely use the clinic's exact procedure names
_SYNONYMS = {
    "cleaning": {"hygiene", "prophylaxis", "scaling", "polish", "чистка"},
    "checkup": {"check", "exam", "examination", "review", "осмотр"},
    "filling": {"cavity", "restoration", "пломба"},
    "whitening": {"bleaching", "отбеливание"},
    "extraction": {"removal", "wisdom", "удаление"},
    "canal": {"root", "endodontic"},
    "crown": {"cap"},
    "consultation": {"consult", "консультация"},
}

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _stem(token: str) -> str:
    if len(token) > 4 and token.endswith("s"):
        return token[:-1]
    return token


def keywords(text: str) -> set[str]:
    tokens = {_stem(t) for t in re.findall(r"[\w-]+", (text or "").lower())}
    tokens = {t.replace("-", "") for t in tokens}
    return {t for t in tokens if len(t) >= 3 and t not in _STOPWORDS}


def _expand(tokens: Iterable[str]) -> set[str]:
    expanded = set(tokens)
    for canonical, variants in _SYNONYMS.items():
        group = variants | {canonical}
        if expanded & group:
            expanded |= group
    return expanded


def _contains(a: str, b: str) -> bool:
    if len(a) < 4 or len(b) < 4:
        return a == b
    return a in b or b in a


def _mentioned_weekday(text: str) -> Optional[int]:
    lower = (text or "").lower()
    for idx, name in enumerate(_WEEKDAYS):
        if name in lower:
            return idx
    return None


def match_appointment(message: str, appointments: Sequence[Appointment]) -> Optional[Appointment]:
    """Best appointment for the message by keyword containment against titles.

    A weekday named in the message breaks ties between equally good matches.
    """
    message_tokens = _expand(keywords(message))
    if not message_tokens:
        return None
    weekday = _mentioned_weekday(message)

    best: Optional[Appointment] = None
    best_score = 0.0
    for appt in appointments:
        if appt.is_cancelled:
            continue
        title_tokens = keywords(appt.title)
        score = float(sum(1 for t in title_tokens if any(_contains(t, m) for m in message_tokens)))
        if score == 0:
            continue
        if weekday is not None and appt.scheduled_at.astimezone(clinic_timezone()).weekday() == weekday:
            score += 0.5
        if score > best_score:
            best, best_score = appt, score
    return best


# ---------------- Keyword fallback ----------------

_CANCEL_WORDS = ("cancel", "call off", "отмен")
_RESCHEDULE_WORDS = ("reschedule", "postpone", "move my", "change the date", "change date", "перенес", "изменить дату")
_CREATE_WORDS = ("book", "schedule", "make an appointment", "записат")


def _next_weekday(now: datetime, weekday: int, hour: int) -> datetime:
    days_ahead = (weekday - now.weekday()) % 7 or 7
    target = now + timedelta(days=days_ahead)
    return target.replace(hour=hour, minute=0, second=0, microsecond=0)


def _extract_datetime(message: str, now: datetime) -> Optional[str]:
    lower = message.lower()
    iso = re.search(r"\d{4}-\d{2}-\d{2}(?:[t ]\d{2}:\d{2})?", lower)
    hour_match = re.search(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b", lower)
    hour = settings.suggested_slot_hour
    minute = 0
    if hour_match:
        clock_hour = int(hour_match.group(1))
        clock_minute = int(hour_match.group(2) or 0)
        # An impossible clock time is ignored and the default slot kept
        if clock_hour <= 12 and clock_minute <= 59:
            hour = clock_hour % 12 + (12 if hour_match.group(3) == "pm" else 0)
            minute = clock_minute
    if iso:
        try:
            parsed = datetime.fromisoformat(iso.group(0).replace(" ", "T").upper())
        except ValueError:
            return None
        if len(iso.group(0)) == 10:
            parsed = parsed.replace(hour=hour, minute=minute)
        return parsed.replace(tzinfo=parsed.tzinfo or timezone.utc).isoformat()
    if "tomorrow" in lower:
        target = (now + timedelta(days=1)).replace(hour=hour, minute=minute, second=0, microsecond=0)
        return target.isoformat()
    weekday = _mentioned_weekday(lower)
    if weekday is not None:
        return _next_weekday(now, weekday, hour).replace(minute=minute).isoformat()
    return None


def keyword_intent(message: str, appointments: Sequence[Appointment], *, now: Optional[datetime] = None) -> DetectedIntent:
    now = now or datetime.now(timezone.utc)
    lower = (message or "").lower()
    if any(w in lower for w in _CANCEL_WORDS):
        intent_type = IntentType.CANCEL_APPOINTMENT
    elif any(w in lower for w in _RESCHEDULE_WORDS):
        intent_type = IntentType.RESCHEDULE_APPOINTMENT
    elif any(w in lower for w in _CREATE_WORDS):
        intent_type = IntentType.CREATE_APPOINTMENT
    else:
        return UNCLASSIFIED.model_copy()

    if intent_type == IntentType.CREATE_APPOINTMENT:
        return DetectedIntent(
            type=intent_type,
            newDateTime=_extract_datetime(message, now),
            confidence=0.75,
            requiresConfirmation=True,
        )

    matched = match_appointment(message, appointments)
    new_dt = _extract_datetime(message, now) if intent_type == IntentType.RESCHEDULE_APPOINTMENT else None
    return DetectedIntent(
        type=intent_type,
        appointmentId=str(matched.id) if matched else None,
        appointmentTitle=matched.title if matched else None,
        newDateTime=new_dt,
        confidence=0.8 if matched else 0.5,
        requiresConfirmation=True,
    )


# ---------------- Extractor ----------------


def _appointments_for_prompt(appointments: Sequence[Appointment]) -> List[dict]:
    listed = []
    for idx, appt in enumerate(appointments[:10]):
        listed.append(
            {
                "index": idx + 1,
                "id": str(appt.id),
                "title": appt.title,
                "datetime": appt.scheduled_at.isoformat(),
                "location": appt.location or "N/A",
                "cancelled": appt.is_cancelled,
            }
        )
    return listed


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    return text


class AppointmentIntentExtractor:
    def __init__(self, *, api_key: Optional[str] = None, llm: Any = None) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self._llm = llm

    @property
    def uses_llm(self) -> bool:
        return self._llm is not None or bool(self.api_key)

    def _get_llm(self) -> Any:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=settings.openai_model,
                temperature=settings.ai_temperature,
                api_key=self.api_key,
                model_kwargs={"response_format": {"type": "json_object"}},
            )
        return self._llm

    async def extract(
        self,
        message: str,
        appointments: Sequence[Appointment],
        patient_context: str = "",
    ) -> DetectedIntent:
        if not self.uses_llm:
            try:
                intent = keyword_intent(message, appointments)
            except Exception:
                logger.exception("intent.keyword_fallback_failed")
                return UNCLASSIFIED.model_copy()
            logger.info("intent.keyword_fallback", extra={"type": intent.type.value if intent.type else None})
            return intent

        prompt = INTENT_EXTRACTION_PROMPT.format(
            now_iso=datetime.now(timezone.utc).isoformat(),
            appointments_json=json.dumps(_appointments_for_prompt(appointments), indent=2),
            patient_context=patient_context or "No additional context",
            message=message,
        )
        try:
            resp = await self._get_llm().ainvoke(prompt)
            text = _strip_code_fence(str(resp.content or ""))
            if not text:
                return UNCLASSIFIED.model_copy()
            payload = json.loads(text)
            if not isinstance(payload, dict):
                return UNCLASSIFIED.model_copy()
            intent = DetectedIntent.model_validate(payload)
        except Exception:
            logger.exception("intent.extraction_failed")
            return UNCLASSIFIED.model_copy()

        return self._reconcile(intent, message, appointments)

    @staticmethod
    def _reconcile(intent: DetectedIntent, message: str, appointments: Sequence[Appointment]) -> DetectedIntent:
        """Pin the model's appointment reference to a real appointment of this patient."""
        if intent.type not in (IntentType.RESCHEDULE_APPOINTMENT, IntentType.CANCEL_APPOINTMENT):
            return intent
        by_id = {str(a.id): a for a in appointments}
        matched = by_id.get(intent.appointment_id or "")
        if matched is None:
            hint = " ".join(filter(None, [intent.appointment_title, message]))
            matched = match_appointment(hint, appointments)
        update = {
            "appointment_id": str(matched.id) if matched else None,
            "appointment_title": matched.title if matched else intent.appointment_title,
        }
        # Re-validate so the confidence gate still applies
        return DetectedIntent.model_validate({**intent.model_dump(), **update})
