from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from models.appointment import Appointment
from .base import BaseRepository, utcnow

COLLECTION = "appointments"


class AppointmentRepository(BaseRepository):
    async def get(self, appointment_id: str) -> Optional[Appointment]:
        oid = self._ensure_object_id(appointment_id)
        if oid is None:
            return None
        doc = await self.find_one(COLLECTION, {"_id": oid})
        return Appointment(**doc) if doc else None

    async def list_for_patient(
        self,
        patient_id: str,
        *,
        upcoming_only: bool = False,
        include_cancelled: bool = True,
        limit: Optional[int] = None,
    ) -> List[Appointment]:
        oid = self._ensure_object_id(patient_id)
        if oid is None:
            return []
        query: dict = {"patient_id": oid}
        if not include_cancelled:
            query["is_cancelled"] = {"$ne": True}
        docs = await self.find_many(COLLECTION, query, sort=[("scheduled_at", 1)])
        appointments = [Appointment(**d) for d in docs]
        # Filter in Python to be robust against naive/aware datetime storage
        if upcoming_only:
            now = utcnow()
            appointments = [a for a in appointments if a.scheduled_at >= now]
        return appointments[:limit] if limit else appointments

    async def insert(self, appointment: Appointment) -> Appointment:
        doc = appointment.model_dump(by_alias=True)
        inserted_id = await self.insert_one(COLLECTION, doc)
        return await self.get(str(inserted_id))  # type: ignore[return-value]

    async def set_scheduled_at(self, appointment_id: str, scheduled_at: datetime) -> Optional[Appointment]:
        oid = self._ensure_object_id(appointment_id)
        # Last write wins; reschedule never touches a cancelled row
        await self.update_one(
            COLLECTION,
            {"_id": oid, "is_cancelled": {"$ne": True}},
            {"$set": {"scheduled_at": scheduled_at}},
        )
        return await self.get(appointment_id)

    async def mark_cancelled(self, appointment_id: str) -> Optional[Appointment]:
        oid = self._ensure_object_id(appointment_id)
        await self.update_one(COLLECTION, {"_id": oid}, {"$set": {"is_cancelled": True}})
        return await self.get(appointment_id)
