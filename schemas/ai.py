from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatActionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: Optional[str] = Field(default=None, alias="patientId")
    message: Optional[str] = None
    conversation_history: List[Dict[str, Any]] = Field(default_factory=list, alias="conversationHistory")


class ChatActionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str
    data: Any = None
    response: str
    raw_response: Optional[str] = Field(default=None, alias="rawResponse")


class IntentPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    patient_context: Optional[str] = Field(default=None, alias="patientContext")


class ExecuteActionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[str] = None
    appointment_id: Optional[str] = Field(default=None, alias="appointmentId")
    new_date_time: Optional[str] = Field(default=None, alias="newDateTime")
    confirmed: bool = False


class StaffReschedulePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_date_time: Optional[str] = Field(default=None, alias="newDateTime")
    confirmed: bool = False


class StaffCancelPayload(BaseModel):
    confirmed: bool = False
