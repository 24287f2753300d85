from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

from models.appointment import Appointment
from models.message import Message
from .realtime import ADMIN_ROOM, RoomHub, Subscriber, patient_room

logger = logging.getLogger(__name__)


class EventName(str, Enum):
    APPOINTMENT_NEW = "appointment:new"
    APPOINTMENT_UPDATE = "appointment:update"
    APPOINTMENT_CANCELLED = "appointment:cancelled"
    INVOICE_CREATED = "invoice:created"
    INVOICE_PAID = "invoice:paid"
    PROCEDURE_COMPLETED = "procedure:completed"
    MESSAGE_NEW = "message:new"
    MESSAGE_UPDATE = "message:update"
    BRANDING_UPDATED = "branding:updated"
    AI_ACTION = "ai:action"


class Originator(str, Enum):
    patient = "patient"
    doctor = "doctor"


class EventFanout:
    """Publishes full-snapshot events to a patient's room and the shared admin room.

    Never raises: fan-out runs after the mutation committed, so failures are
    logged and the caller carries on.
    """

    def __init__(self, hub: RoomHub) -> None:
        self.hub = hub

    async def publish(
        self,
        event: EventName,
        payload: Dict[str, Any],
        *,
        patient_id: str,
        by: Optional[Originator] = None,
        exclude_admin: Optional[Subscriber] = None,
    ) -> int:
        body = dict(payload)
        if by is not None:
            body["by"] = Originator(by).value
        delivered = 0
        try:
            delivered += await self.hub.emit(patient_room(patient_id), event.value, body)
            delivered += await self.hub.emit(ADMIN_ROOM, event.value, body, exclude=exclude_admin)
        except Exception:
            logger.exception("fanout.publish_failed", extra={"event_name": event.value, "patient_id": patient_id})
            return delivered
        logger.info(
            "fanout.published",
            extra={"event_name": event.value, "patient_id": patient_id, "delivered": delivered},
        )
        return delivered

    async def appointment_created(self, appointment: Appointment, by: Originator) -> int:
        return await self.publish(
            EventName.APPOINTMENT_NEW,
            {"appointment": appointment.snapshot()},
            patient_id=str(appointment.patient_id),
            by=by,
        )

    async def appointment_updated(self, appointment: Appointment, by: Originator) -> int:
        return await self.publish(
            EventName.APPOINTMENT_UPDATE,
            {"appointment": appointment.snapshot()},
            patient_id=str(appointment.patient_id),
            by=by,
        )

    async def appointment_cancelled(self, appointment: Appointment, by: Originator) -> int:
        return await self.publish(
            EventName.APPOINTMENT_CANCELLED,
            {
                "appointment": appointment.snapshot(),
                "appointmentId": str(appointment.id),
                "patientId": str(appointment.patient_id),
            },
            patient_id=str(appointment.patient_id),
            by=by,
        )

    async def message_created(self, message: Message, *, exclude_admin: Optional[Subscriber] = None) -> int:
        return await self.publish(
            EventName.MESSAGE_NEW,
            {"message": message.snapshot()},
            patient_id=str(message.patient_id),
            exclude_admin=exclude_admin,
        )

    async def message_updated(self, message: Message) -> int:
        return await self.publish(
            EventName.MESSAGE_UPDATE,
            {"message": message.snapshot()},
            patient_id=str(message.patient_id),
        )

    async def invoice_created(self, invoice: Dict[str, Any], *, patient_id: str, by: Originator = Originator.doctor) -> int:
        return await self.publish(EventName.INVOICE_CREATED, {"invoice": invoice}, patient_id=patient_id, by=by)

    async def invoice_paid(self, invoice: Dict[str, Any], *, patient_id: str, by: Originator = Originator.patient) -> int:
        return await self.publish(EventName.INVOICE_PAID, {"invoice": invoice}, patient_id=patient_id, by=by)

    async def procedure_completed(self, procedure: Dict[str, Any], *, patient_id: str) -> int:
        return await self.publish(
            EventName.PROCEDURE_COMPLETED, {"procedure": procedure}, patient_id=patient_id, by=Originator.doctor
        )

    async def branding_updated(self, branding: Dict[str, Any]) -> int:
        try:
            return await self.hub.broadcast(EventName.BRANDING_UPDATED.value, {"branding": branding})
        except Exception:
            logger.exception("fanout.publish_failed", extra={"event_name": EventName.BRANDING_UPDATED.value})
            return 0

    async def ai_action(self, patient_id: str, payload: Dict[str, Any]) -> int:
        # Only the patient's own client renders the action UI
        try:
            return await self.hub.emit(patient_room(patient_id), EventName.AI_ACTION.value, payload)
        except Exception:
            logger.exception("fanout.publish_failed", extra={"event_name": EventName.AI_ACTION.value})
            return 0
