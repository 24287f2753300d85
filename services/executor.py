from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from agent.catalog import STATE_CHANGING, ClinicAction, is_known
from core.config import settings
from core.errors import (
    InvalidParameterError,
    MissingParameterError,
    NotFoundError,
    OwnershipError,
    UnknownActionError,
)
from models.appointment import Appointment
from models.base import clinic_timezone
from repositories.appointments import AppointmentRepository
from .fanout import EventFanout, Originator
from .transcripts import TranscriptConsistencyUpdater

logger = logging.getLogger(__name__)

DATE_IN_PAST = "date_in_past"


class ActionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    appointment: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    suggested_date: Optional[str] = Field(default=None, alias="suggestedDate")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def parse_instant(value: Any) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidParameterError("newDateTime must be an ISO-8601 datetime")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def next_available_slot(now: datetime) -> datetime:
    """Next calendar day in the clinic's timezone at the default slot hour."""
    local_now = now.astimezone(clinic_timezone())
    next_day = (local_now + timedelta(days=1)).date()
    suggested = datetime(
        next_day.year, next_day.month, next_day.day, settings.suggested_slot_hour, tzinfo=clinic_timezone()
    )
    return suggested.astimezone(timezone.utc)


def _describe_instant(value: datetime) -> tuple[str, str]:
    local = value.astimezone(clinic_timezone())
    return local.strftime("%m/%d/%Y"), local.strftime("%H:%M")


class MutationExecutor:
    """Applies reschedule/cancel under ownership, confirmation and temporal guards.

    The mutation commits first; the transcript rewrite and fan-out that follow
    are best-effort and never undo it.
    """

    def __init__(
        self,
        appointments: AppointmentRepository,
        transcripts: TranscriptConsistencyUpdater,
        fanout: EventFanout,
        *,
        clock=None,
    ) -> None:
        self.appointments = appointments
        self.transcripts = transcripts
        self.fanout = fanout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def execute(
        self,
        *,
        action: Optional[str],
        appointment_id: Optional[str],
        actor_id: str,
        new_date_time: Optional[str] = None,
        confirmed: bool = False,
        by: Originator = Originator.patient,
    ) -> ActionResult:
        if not action or not appointment_id:
            raise MissingParameterError("Action and appointmentId are required")

        appointment = await self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment not found")
        # Staff act on behalf of the clinic; patients only on their own appointments
        if by == Originator.patient and str(appointment.patient_id) != str(actor_id):
            logger.warning(
                "executor.ownership_mismatch",
                extra={"appointment_id": appointment_id, "actor_id": actor_id},
            )
            raise OwnershipError()

        if not is_known(action) or ClinicAction(action) not in STATE_CHANGING:
            logger.info("executor.unknown_action", extra={"action": action, "known": is_known(action)})
            raise UnknownActionError()

        if action == ClinicAction.RESCHEDULE_APPOINTMENT.value:
            return await self.reschedule(appointment, new_date_time, confirmed=confirmed, by=by)
        return await self.cancel(appointment, confirmed=confirmed, by=by)

    async def reschedule(
        self,
        appointment: Appointment,
        new_date_time: Optional[str],
        *,
        confirmed: bool,
        by: Originator,
    ) -> ActionResult:
        if not new_date_time or not confirmed:
            raise MissingParameterError("newDateTime and confirmed are required for reschedule")
        if appointment.is_cancelled:
            raise InvalidParameterError("Cancelled appointments cannot be rescheduled")

        new_instant = parse_instant(new_date_time)
        now = self._clock()
        if new_instant < now:
            suggested = next_available_slot(now)
            logger.info(
                "executor.date_in_past",
                extra={"appointment_id": str(appointment.id), "requested": new_instant.isoformat()},
            )
            return ActionResult(
                success=False,
                error=DATE_IN_PAST,
                message="The requested date is in the past. I can suggest the next available date.",
                suggestedDate=suggested.isoformat(),
            )

        updated = await self.appointments.set_scheduled_at(str(appointment.id), new_instant)
        if updated is None:
            raise NotFoundError("Appointment not found")
        if updated.is_cancelled:
            # Cancelled concurrently between the read and the write
            raise InvalidParameterError("Cancelled appointments cannot be rescheduled")
        logger.info(
            "executor.reschedule_committed",
            extra={"appointment_id": str(updated.id), "by": by.value, "scheduled_at": new_instant.isoformat()},
        )

        await self.fanout.appointment_updated(updated, by)

        date_str, time_str = _describe_instant(updated.scheduled_at)
        return ActionResult(
            success=True,
            appointment=updated.snapshot(),
            message=f'Appointment "{updated.title}" has been rescheduled to {date_str} at {time_str}',
        )

    async def cancel(self, appointment: Appointment, *, confirmed: bool, by: Originator) -> ActionResult:
        if not confirmed:
            raise MissingParameterError("confirmed is required for cancel")

        message = f'Appointment "{appointment.title}" has been cancelled.'
        if appointment.is_cancelled:
            # Monotonic: nothing left to write or announce
            return ActionResult(success=True, appointment=appointment.snapshot(), message=message)

        updated = await self.appointments.mark_cancelled(str(appointment.id))
        if updated is None:
            raise NotFoundError("Appointment not found")
        logger.info("executor.cancel_committed", extra={"appointment_id": str(updated.id), "by": by.value})

        try:
            outcome = await self.transcripts.apply_cancellation(updated)
            logger.info(
                "executor.transcripts_updated",
                extra={"appointment_id": str(updated.id), "scanned": outcome.scanned, "rewritten": outcome.rewritten},
            )
        except Exception:
            logger.exception("executor.transcript_update_failed", extra={"appointment_id": str(updated.id)})

        await self.fanout.appointment_cancelled(updated, by)
        return ActionResult(success=True, appointment=updated.snapshot(), message=message)
