from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, Optional, Protocol, Set

logger = logging.getLogger(__name__)

ADMIN_ROOM = "admin"


def patient_room(patient_id: str) -> str:
    return f"patient:{patient_id}"


def doctor_room(doctor_id: str) -> str:
    return f"doctor:{doctor_id}"


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class RoomHub:
    """Room-scoped publish/subscribe over live websocket connections.

    Delivery is best-effort: a socket that fails to receive is dropped and the
    remaining subscribers still get the frame.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, Set[Subscriber]] = defaultdict(set)

    def join(self, subscriber: Subscriber, room: str) -> None:
        self._rooms[room].add(subscriber)

    def leave(self, subscriber: Subscriber, room: str) -> None:
        members = self._rooms.get(room)
        if not members:
            return
        members.discard(subscriber)
        if not members:
            self._rooms.pop(room, None)

    def disconnect(self, subscriber: Subscriber) -> None:
        for room in list(self._rooms):
            self.leave(subscriber, room)

    def members(self, room: str) -> Set[Subscriber]:
        return set(self._rooms.get(room, ()))

    def rooms_of(self, subscriber: Subscriber) -> Set[str]:
        return {room for room, members in self._rooms.items() if subscriber in members}

    async def send(self, subscriber: Subscriber, event: str, data: Any) -> bool:
        try:
            await subscriber.send_json({"event": event, "data": data})
            return True
        except Exception:
            logger.warning("realtime.send_failed", extra={"event_name": event}, exc_info=True)
            self.disconnect(subscriber)
            return False

    async def emit(self, room: str, event: str, data: Any, *, exclude: Optional[Subscriber] = None) -> int:
        delivered = 0
        for subscriber in self.members(room):
            if subscriber is exclude:
                continue
            if await self.send(subscriber, event, data):
                delivered += 1
        return delivered

    async def broadcast(self, event: str, data: Any) -> int:
        everyone: Set[Subscriber] = set()
        for members in self._rooms.values():
            everyone |= members
        delivered = 0
        for subscriber in everyone:
            if await self.send(subscriber, event, data):
                delivered += 1
        return delivered
