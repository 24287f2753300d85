from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from agent.context import load_patient_context
from agent.intent import AppointmentIntentExtractor
from agent.catalog import ClinicAction
from agent.normalizer import IntentNormalizer
from api.deps import (
    get_appointment_repository,
    get_executor,
    get_intent_extractor,
    get_normalizer,
    get_patient_repository,
)
from core.errors import ClinicError, MissingParameterError
from repositories.appointments import AppointmentRepository
from repositories.patients import PatientContextRepository
from schemas.ai import ChatActionPayload, ChatActionResponse, ExecuteActionPayload, IntentPayload
from schemas.auth import Principal
from services.executor import MutationExecutor
from services.fanout import Originator
from services.security import get_current_patient


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/chat-action", response_model=ChatActionResponse)
async def chat_action(
    payload: ChatActionPayload,
    normalizer: IntentNormalizer = Depends(get_normalizer),
    patients: PatientContextRepository = Depends(get_patient_repository),
    appointments: AppointmentRepository = Depends(get_appointment_repository),
):
    if not payload.patient_id or not payload.message or not payload.message.strip():
        raise MissingParameterError("patientId and message are required")

    try:
        context = await load_patient_context(patients, appointments, payload.patient_id)
        base_prompt = await patients.assistant_prompt()
        normalized = await normalizer.normalize(
            payload.message, context, payload.conversation_history, base_prompt
        )
    except ClinicError:
        raise
    except Exception:
        logger.exception("ai.chat_action_failed", extra={"patient_id": payload.patient_id})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Failed to process chat action",
                "action": ClinicAction.GENERAL_RESPONSE.value,
                "data": {"error": "AI service unavailable"},
            },
        )

    logger.info("ai.chat_action", extra={"patient_id": payload.patient_id, "action": normalized.action.value})
    return ChatActionResponse(
        action=normalized.action.value,
        data=normalized.data,
        response=normalized.response,
        raw_response=normalized.raw_response,
    )


@router.post("/actions")
async def detect_actions(
    payload: IntentPayload,
    principal: Principal = Depends(get_current_patient),
    extractor: AppointmentIntentExtractor = Depends(get_intent_extractor),
    appointments: AppointmentRepository = Depends(get_appointment_repository),
) -> Dict[str, Any]:
    if not payload.message or not payload.message.strip():
        raise MissingParameterError("Message is required")

    upcoming = await appointments.list_for_patient(principal.user_id, upcoming_only=True, include_cancelled=False)
    intent = await extractor.extract(payload.message, upcoming, payload.patient_context or "")
    logger.info(
        "ai.intent_detected",
        extra={
            "patient_id": principal.user_id,
            "intent_type": intent.type.value if intent.type else None,
            "confidence": intent.confidence,
        },
    )
    return {"intent": intent.to_wire()}


@router.post("/execute-action")
async def execute_action(
    payload: ExecuteActionPayload,
    principal: Principal = Depends(get_current_patient),
    executor: MutationExecutor = Depends(get_executor),
) -> Dict[str, Any]:
    result = await executor.execute(
        action=payload.action,
        appointment_id=payload.appointment_id,
        actor_id=principal.user_id,
        new_date_time=payload.new_date_time,
        confirmed=payload.confirmed,
        by=Originator.patient,
    )
    return result.to_wire()
