from __future__ import annotations

import logging
from typing import Any, Dict

from core.config import settings
from models.message import Sender
from repositories.appointments import AppointmentRepository
from repositories.messages import MessageRepository
from repositories.patients import PatientContextRepository
from services.fanout import EventFanout
from services.transcripts import encode_content
from .catalog import ClinicAction, action_title, empty_state_title
from .context import load_patient_context
from .normalizer import IntentNormalizer
from .state import ChatState

logger = logging.getLogger(__name__)

_APPOINTMENT_ACTIONS = {
    ClinicAction.VIEW_NEXT_APPOINTMENT,
    ClinicAction.VIEW_UPCOMING_APPOINTMENTS,
    ClinicAction.RESCHEDULE_APPOINTMENT,
    ClinicAction.CANCEL_APPOINTMENT,
}


class ChatNodes:
    def __init__(
        self,
        *,
        messages: MessageRepository,
        appointments: AppointmentRepository,
        patients: PatientContextRepository,
        normalizer: IntentNormalizer,
        fanout: EventFanout,
    ) -> None:
        self.messages = messages
        self.appointments = appointments
        self.patients = patients
        self.normalizer = normalizer
        self.fanout = fanout

    async def load_context(self, state: ChatState) -> Dict[str, Any]:
        patient_id = state["patient_id"]
        incoming_id = state["incoming"].id
        recent = await self.messages.recent_history(patient_id, settings.chat_history_limit + 1)
        history = [
            {"role": "user" if m.sender == Sender.patient else "assistant", "content": m.content}
            for m in recent
            if m.id != incoming_id
        ][-settings.chat_history_limit:]
        context = await load_patient_context(self.patients, self.appointments, patient_id)
        base_prompt = await self.patients.assistant_prompt()
        logger.info(
            "agent.node.load_context",
            extra={"patient_id": patient_id, "history_turns": len(history), "patient_found": context.patient is not None},
        )
        return {"history": history, "patient_context": context, "base_prompt": base_prompt}

    async def normalize(self, state: ChatState) -> Dict[str, Any]:
        normalized = await self.normalizer.normalize(
            state["incoming"].content,
            state.get("patient_context"),
            state.get("history") or [],
            state.get("base_prompt") or "",
        )
        logger.info("agent.node.normalize", extra={"patient_id": state["patient_id"], "action": normalized.action.value})
        return {"normalized": normalized}

    async def resolve_action_data(self, state: ChatState) -> Dict[str, Any]:
        action = state["normalized"].action
        if action not in _APPOINTMENT_ACTIONS:
            return {"title": action_title(action), "data": state["normalized"].data or None}

        upcoming = await self.appointments.list_for_patient(
            state["patient_id"], upcoming_only=True, include_cancelled=False, limit=10
        )
        snapshots = [a.snapshot() for a in upcoming]
        if action == ClinicAction.VIEW_NEXT_APPOINTMENT:
            data: Any = snapshots[0] if snapshots else None
        elif action == ClinicAction.CANCEL_APPOINTMENT:
            data = snapshots[:1]
        else:
            data = snapshots

        title = action_title(action)
        if not data:
            title = empty_state_title(action) or title
        return {"title": title, "data": data}

    async def persist_reply(self, state: ChatState) -> Dict[str, Any]:
        content = encode_content(
            {"action": state["normalized"].action.value, "title": state.get("title"), "data": state.get("data")}
        )
        reply = await self.messages.create(state["patient_id"], Sender.assistant, content)
        logger.info("agent.node.persist_reply", extra={"patient_id": state["patient_id"], "message_id": str(reply.id)})
        return {"reply": reply}

    async def publish_reply(self, state: ChatState) -> Dict[str, Any]:
        reply = state["reply"]
        normalized = state["normalized"]
        await self.fanout.message_created(reply)
        await self.fanout.ai_action(
            state["patient_id"],
            {
                "action": normalized.action.value,
                "data": normalized.data,
                "response": normalized.response,
                "messageId": str(reply.id),
            },
        )
        return {}
