from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from api.deps import get_message_repository
from core.errors import OwnershipError
from repositories.messages import MessageRepository
from schemas.auth import Principal
from services.security import get_current_principal


router = APIRouter(prefix="/patients", tags=["messages"])


@router.get("/{patient_id}/messages")
async def list_messages(
    patient_id: str,
    limit: int = Query(200, ge=1, le=1000),
    principal: Principal = Depends(get_current_principal),
    messages: MessageRepository = Depends(get_message_repository),
) -> Dict[str, Any]:
    if not principal.is_staff and principal.user_id != patient_id:
        raise OwnershipError("Patients may only read their own messages")
    items = await messages.list_for_patient(patient_id, limit=limit)
    return {"messages": [m.snapshot() for m in items]}
