from __future__ import annotations

from typing import List, Optional, Sequence

from models.message import Message, Sender
from .base import BaseRepository

COLLECTION = "messages"


class MessageRepository(BaseRepository):
    async def get(self, message_id: str) -> Optional[Message]:
        oid = self._ensure_object_id(message_id)
        if oid is None:
            return None
        doc = await self.find_one(COLLECTION, {"_id": oid})
        return Message(**doc) if doc else None

    async def create(self, patient_id: str, sender: Sender | str, content: str, *, manual: bool = False) -> Message:
        doc = {
            "patient_id": self._ensure_object_id(patient_id),
            "sender": Sender(sender).value,
            "content": content,
            "manual": manual,
        }
        inserted_id = await self.insert_one(COLLECTION, doc)
        return await self.get(str(inserted_id))  # type: ignore[return-value]

    async def list_for_patient(
        self,
        patient_id: str,
        *,
        senders: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        newest_first: bool = False,
    ) -> List[Message]:
        oid = self._ensure_object_id(patient_id)
        if oid is None:
            return []
        query: dict = {"patient_id": oid}
        if senders:
            query["sender"] = {"$in": list(senders)}
        direction = -1 if newest_first else 1
        docs = await self.find_many(COLLECTION, query, sort=[("created_at", direction), ("_id", direction)], limit=limit)
        return [Message(**d) for d in docs]

    async def recent_history(self, patient_id: str, limit: int) -> List[Message]:
        """Last `limit` messages in chronological order."""
        latest = await self.list_for_patient(patient_id, limit=limit, newest_first=True)
        return list(reversed(latest))

    async def replace_content(self, message_id: str, content: str) -> Optional[Message]:
        oid = self._ensure_object_id(message_id)
        await self.update_one(COLLECTION, {"_id": oid}, {"$set": {"content": content}})
        return await self.get(message_id)
