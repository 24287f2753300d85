from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import MongoModel, PyObjectId


class Doctor(MongoModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class Patient(MongoModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    doctor: Optional[Doctor] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Procedure(MongoModel):
    name: str
    status: str = "pending"
    price: Optional[float] = None
    scheduled_date: Optional[datetime] = None


class TreatmentPlan(MongoModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    patient_id: PyObjectId
    title: str
    status: str = "active"
    procedures: List[Procedure] = Field(default_factory=list)


class Invoice(MongoModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    patient_id: PyObjectId
    number: Optional[str] = None
    amount: float = 0.0
    status: str = "unpaid"
    issued_at: Optional[datetime] = None
