from __future__ import annotations

from typing import List, Optional

from models.patient import Invoice, Patient, TreatmentPlan
from .base import BaseRepository


class PatientContextRepository(BaseRepository):
    """Read-only access to the collections owned by the clinic's CRUD services."""

    async def get_patient(self, patient_id: str) -> Optional[Patient]:
        oid = self._ensure_object_id(patient_id)
        if oid is None:
            return None
        doc = await self.find_one("patients", {"_id": oid})
        return Patient(**doc) if doc else None

    async def treatment_plans(self, patient_id: str, *, limit: int = 5) -> List[TreatmentPlan]:
        oid = self._ensure_object_id(patient_id)
        docs = await self.find_many("treatment_plans", {"patient_id": oid}, limit=limit)
        return [TreatmentPlan(**d) for d in docs]

    async def invoices(self, patient_id: str, *, limit: int = 10) -> List[Invoice]:
        oid = self._ensure_object_id(patient_id)
        docs = await self.find_many("invoices", {"patient_id": oid}, sort=[("issued_at", -1)], limit=limit)
        return [Invoice(**d) for d in docs]

    async def assistant_prompt(self) -> str:
        doc = await self.find_one("ai_settings", {})
        return (doc or {}).get("prompt") or ""
