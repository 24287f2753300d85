from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from .base import MongoModel, PyObjectId, as_utc


class Sender(str, Enum):
    patient = "patient"
    doctor = "doctor"
    assistant = "assistant"


# Senders whose messages may embed structured snapshots
STAFF_SENDERS = (Sender.doctor.value, Sender.assistant.value)


class Message(MongoModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    patient_id: PyObjectId
    sender: Sender
    content: str
    manual: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _normalize_datetime(cls, value: Any) -> Any:
        return as_utc(value) or value

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "patientId": str(self.patient_id),
            "sender": self.sender.value,
            "content": self.content,
            "manual": self.manual,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
