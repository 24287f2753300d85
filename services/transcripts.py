"""Keeps persisted assistant messages consistent with cancelled appointments.

Assistant replies store a serialized ``{action, title, data}`` payload whose
``data`` embeds appointment snapshots. When an appointment is cancelled, the
snapshots that still show it are rewritten in place.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from agent.catalog import APPOINTMENT_SNAPSHOT_ACTIONS, ClinicAction, empty_state_title
from models.appointment import Appointment
from models.base import as_utc, clinic_timezone
from models.message import STAFF_SENDERS, Message
from repositories.messages import MessageRepository
from .fanout import EventFanout

logger = logging.getLogger(__name__)

CANCELLED_FALLBACK_TITLE = "Cancelled appointment"
_TRACKED_ACTIONS = frozenset(a.value for a in APPOINTMENT_SNAPSHOT_ACTIONS)


class PlainText(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class StructuredAction(BaseModel):
    # Unknown keys survive a rewrite untouched
    model_config = ConfigDict(extra="allow")

    kind: Literal["structured"] = "structured"
    action: Optional[str] = None
    title: Optional[str] = None
    data: Union[Dict[str, Any], List[Any], None] = None

    def referenced_ids(self) -> List[str]:
        if isinstance(self.data, list):
            return [str(item["id"]) for item in self.data if isinstance(item, dict) and item.get("id")]
        if isinstance(self.data, dict) and self.data.get("id"):
            return [str(self.data["id"])]
        return []

    def encode(self) -> str:
        return encode_content(self.model_dump(exclude={"kind"}))


MessageContent = Union[PlainText, StructuredAction]


def encode_content(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def decode_content(content: str) -> MessageContent:
    try:
        parsed = json.loads(content)
    except (TypeError, ValueError):
        return PlainText(text=content or "")
    if not isinstance(parsed, dict):
        return PlainText(text=content)
    try:
        return StructuredAction.model_validate({k: v for k, v in parsed.items() if k != "kind"})
    except ValidationError:
        return PlainText(text=content)


def format_date(value: Any) -> Optional[str]:
    dt = as_utc(value)
    if dt is None:
        return None
    return dt.astimezone(clinic_timezone()).strftime("%m/%d/%Y")


def cancellation_title(appointment: Optional[Appointment], snapshot: Optional[Dict[str, Any]] = None) -> str:
    snapshot = snapshot or {}
    title = (appointment.title if appointment else None) or snapshot.get("title")
    when = appointment.scheduled_at if appointment else snapshot.get("datetime")
    date_str = format_date(when)
    if not title:
        return CANCELLED_FALLBACK_TITLE
    if date_str:
        return f"Appointment for {title} on {date_str} was cancelled."
    return f"Appointment for {title} was cancelled."


def rewrite_for_cancellation(
    content: MessageContent,
    cancelled_id: str,
    appointment: Optional[Appointment] = None,
) -> Optional[StructuredAction]:
    """Return the rewritten payload, or None when the message is unaffected."""
    if not isinstance(content, StructuredAction):
        return None
    if not content.action or content.data is None:
        return None
    if content.action not in _TRACKED_ACTIONS:
        return None

    referenced = content.referenced_ids()
    if cancelled_id not in referenced:
        return None

    if set(referenced) == {cancelled_id}:
        snapshot = content.data if isinstance(content.data, dict) else next(
            (item for item in content.data if isinstance(item, dict) and str(item.get("id")) == cancelled_id),
            None,
        )
        return content.model_copy(update={"data": None, "title": cancellation_title(appointment, snapshot)})

    remaining = [
        item for item in content.data if not (isinstance(item, dict) and str(item.get("id")) == cancelled_id)
    ]
    title = content.title
    if not remaining:
        title = empty_state_title(ClinicAction(content.action)) or title
    return content.model_copy(update={"data": remaining, "title": title})


@dataclass
class TranscriptUpdateResult:
    scanned: int = 0
    rewritten: int = 0


class TranscriptConsistencyUpdater:
    def __init__(self, messages: MessageRepository, fanout: EventFanout) -> None:
        self.messages = messages
        self.fanout = fanout

    async def apply_cancellation(self, appointment: Appointment) -> TranscriptUpdateResult:
        cancelled_id = str(appointment.id)
        patient_id = str(appointment.patient_id)
        result = TranscriptUpdateResult()

        history: List[Message] = await self.messages.list_for_patient(patient_id, senders=STAFF_SENDERS)
        for message in history:
            result.scanned += 1
            rewritten = rewrite_for_cancellation(decode_content(message.content), cancelled_id, appointment)
            if rewritten is None:
                continue
            new_content = rewritten.encode()
            if new_content == message.content:
                continue
            updated = await self.messages.replace_content(str(message.id), new_content)
            if updated is None:
                continue
            result.rewritten += 1
            logger.info(
                "transcripts.message_rewritten",
                extra={"message_id": str(message.id), "appointment_id": cancelled_id, "patient_id": patient_id},
            )
            await self.fanout.message_updated(updated)
        return result
