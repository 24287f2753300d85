from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from agent.catalog import ClinicAction
from api.deps import get_executor
from schemas.ai import StaffCancelPayload, StaffReschedulePayload
from schemas.auth import Principal
from services.executor import MutationExecutor
from services.fanout import Originator
from services.security import get_current_staff


router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("/{appointment_id}/reschedule")
async def staff_reschedule(
    appointment_id: str,
    payload: StaffReschedulePayload,
    staff: Principal = Depends(get_current_staff),
    executor: MutationExecutor = Depends(get_executor),
) -> Dict[str, Any]:
    result = await executor.execute(
        action=ClinicAction.RESCHEDULE_APPOINTMENT.value,
        appointment_id=appointment_id,
        actor_id=staff.user_id,
        new_date_time=payload.new_date_time,
        confirmed=payload.confirmed,
        by=Originator.doctor,
    )
    return result.to_wire()


@router.post("/{appointment_id}/cancel")
async def staff_cancel(
    appointment_id: str,
    payload: StaffCancelPayload,
    staff: Principal = Depends(get_current_staff),
    executor: MutationExecutor = Depends(get_executor),
) -> Dict[str, Any]:
    result = await executor.execute(
        action=ClinicAction.CANCEL_APPOINTMENT.value,
        appointment_id=appointment_id,
        actor_id=staff.user_id,
        confirmed=payload.confirmed,
        by=Originator.doctor,
    )
    return result.to_wire()
