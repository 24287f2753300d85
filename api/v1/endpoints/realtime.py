from __future__ import annotations

import json
import logging
from typing import Any, Dict

from bson import ObjectId
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from agent.graph import ChatPipeline
from api.deps import get_chat_pipeline, get_fanout, get_hub, get_message_repository
from models.message import Sender
from repositories.messages import MessageRepository
from services.fanout import EventFanout
from services.realtime import ADMIN_ROOM, RoomHub, doctor_room, patient_room


logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])

_CLIENT_SENDERS = {Sender.patient.value, Sender.doctor.value}


async def _send_error(hub: RoomHub, websocket: WebSocket, error: str) -> None:
    await hub.send(websocket, "error", {"error": error})


async def _handle_join(hub: RoomHub, websocket: WebSocket, data: Dict[str, Any]) -> None:
    patient_id = data.get("patientId")
    doctor_id = data.get("doctorId")
    if patient_id:
        hub.join(websocket, patient_room(str(patient_id)))
        # A patient socket never listens on the shared staff room
        hub.leave(websocket, ADMIN_ROOM)
    if doctor_id:
        hub.join(websocket, doctor_room(str(doctor_id)))
    if data.get("isAdmin") and not patient_id:
        hub.join(websocket, ADMIN_ROOM)
    rooms = sorted(hub.rooms_of(websocket))
    logger.info("realtime.joined", extra={"rooms": rooms})
    await hub.send(websocket, "ready", {"rooms": rooms})


async def _handle_message_send(
    hub: RoomHub,
    websocket: WebSocket,
    data: Dict[str, Any],
    messages: MessageRepository,
    fanout: EventFanout,
    pipeline: ChatPipeline,
) -> None:
    patient_id = data.get("patientId")
    sender = data.get("sender")
    content = data.get("content")
    if not ObjectId.is_valid(str(patient_id or "")) or sender not in _CLIENT_SENDERS or not isinstance(content, str) or not content.strip():
        await _send_error(hub, websocket, "patientId, sender and content are required")
        return

    message = await messages.create(str(patient_id), sender, content)
    await hub.send(websocket, "ack", {"ok": True, "message": message.snapshot()})
    await fanout.message_created(message, exclude_admin=websocket)

    if sender == Sender.patient.value:
        await pipeline.respond(message)


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    hub: RoomHub = Depends(get_hub),
    messages: MessageRepository = Depends(get_message_repository),
    fanout: EventFanout = Depends(get_fanout),
    pipeline: ChatPipeline = Depends(get_chat_pipeline),
) -> None:
    await websocket.accept()
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                await _send_error(hub, websocket, "Invalid frame")
                continue
            if not isinstance(frame, dict):
                await _send_error(hub, websocket, "Invalid frame")
                continue

            event = frame.get("event")
            data = frame.get("data") if isinstance(frame.get("data"), dict) else {}
            if event == "join":
                await _handle_join(hub, websocket, data)
            elif event == "message:send":
                await _handle_message_send(hub, websocket, data, messages, fanout, pipeline)
            else:
                await _send_error(hub, websocket, "Unknown event")
    except WebSocketDisconnect:
        logger.info("realtime.disconnected")
    finally:
        hub.disconnect(websocket)
