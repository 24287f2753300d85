from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from models.appointment import Appointment
from models.patient import Invoice, Patient, TreatmentPlan
from repositories.appointments import AppointmentRepository
from repositories.patients import PatientContextRepository


class PatientContext(BaseModel):
    patient: Optional[Patient] = None
    appointments: List[Appointment] = Field(default_factory=list)
    treatment_plans: List[TreatmentPlan] = Field(default_factory=list)
    invoices: List[Invoice] = Field(default_factory=list)

    def to_prompt(self) -> str:
        if self.patient is None:
            return ""
        p = self.patient
        lines = [
            "PATIENT CONTEXT:",
            f"- Name: {p.name}",
            f"- Email: {p.email or 'N/A'}",
            f"- Phone: {p.phone or 'N/A'}",
            f"- Assigned dentist: {p.doctor.name if p.doctor else 'N/A'}",
            "",
            "Upcoming Appointments:",
        ]
        if self.appointments:
            lines += [f"- {a.title} on {a.scheduled_at.isoformat()}" for a in self.appointments]
        else:
            lines.append("No upcoming appointments")
        lines += ["", "Treatment Plans:"]
        if self.treatment_plans:
            lines += [f"- {t.title}: {t.status}" for t in self.treatment_plans]
        else:
            lines.append("No treatment plans")
        unpaid = [i for i in self.invoices if i.status != "paid"]
        lines += ["", f"Invoices: {len(self.invoices)} total, {len(unpaid)} unpaid"]
        return "\n".join(lines)


async def load_patient_context(
    patients: PatientContextRepository,
    appointments: AppointmentRepository,
    patient_id: str,
) -> PatientContext:
    patient = await patients.get_patient(patient_id)
    if patient is None:
        return PatientContext()
    return PatientContext(
        patient=patient,
        appointments=await appointments.list_for_patient(
            patient_id, upcoming_only=True, include_cancelled=False, limit=10
        ),
        treatment_plans=await patients.treatment_plans(patient_id),
        invoices=await patients.invoices(patient_id),
    )
