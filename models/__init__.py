from .appointment import Appointment
from .message import Message, Sender
from .patient import Doctor, Invoice, Patient, Procedure, TreatmentPlan

__all__ = [
    "Appointment",
    "Message",
    "Sender",
    "Doctor",
    "Invoice",
    "Patient",
    "Procedure",
    "TreatmentPlan",
]
