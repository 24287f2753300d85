from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from .base import MongoModel, PyObjectId, as_utc


class Appointment(MongoModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    patient_id: PyObjectId
    title: str
    scheduled_at: datetime
    location: Optional[str] = None
    type: Optional[str] = None
    is_cancelled: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("scheduled_at", "created_at", "updated_at", mode="before")
    @classmethod
    def _normalize_datetime(cls, value: Any) -> Any:
        return as_utc(value) or value

    def snapshot(self) -> Dict[str, Any]:
        """Full wire snapshot, as embedded in events and structured messages."""
        return {
            "id": str(self.id),
            "patientId": str(self.patient_id),
            "title": self.title,
            "datetime": self.scheduled_at.isoformat(),
            "location": self.location,
            "type": self.type,
            "isCancelled": self.is_cancelled,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
