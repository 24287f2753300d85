from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from agent.intent import AppointmentIntentExtractor
from agent.normalizer import ChatActionRequest, IntentNormalizer
from api import deps
from models.appointment import Appointment
from models.message import Message, Sender
from repositories.appointments import AppointmentRepository
from repositories.messages import MessageRepository
from repositories.patients import PatientContextRepository
from services.executor import MutationExecutor
from services.fanout import EventFanout
from services.realtime import ADMIN_ROOM, RoomHub, patient_room
from services.security import create_access_token
from services.transcripts import TranscriptConsistencyUpdater, encode_content


class RecordingSocket:
    """Stands in for a websocket joined to the hub; keeps every frame it receives."""

    def __init__(self, *, fail: bool = False) -> None:
        self.frames: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)

    def events(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        return [f for f in self.frames if name is None or f["event"] == name]


class StubClassifier:
    """Deterministic stand-in for the language model."""

    def __init__(self, reply: Any = None, *, error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.requests: List[ChatActionRequest] = []

    async def classify(self, request: ChatActionRequest) -> str:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.reply, (dict, list)):
            return json.dumps(self.reply)
        return self.reply


def next_weekday(weekday: int, *, hour: int = 10, weeks: int = 0) -> datetime:
    now = datetime.now(timezone.utc)
    days_ahead = (weekday - now.weekday()) % 7 or 7
    target = now + timedelta(days=days_ahead + 7 * weeks)
    return target.replace(hour=hour, minute=0, second=0, microsecond=0)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["clinic-test"]


@pytest.fixture
def appointments_repo(db) -> AppointmentRepository:
    return AppointmentRepository(db)


@pytest.fixture
def messages_repo(db) -> MessageRepository:
    return MessageRepository(db)


@pytest.fixture
def patients_repo(db) -> PatientContextRepository:
    return PatientContextRepository(db)


@pytest.fixture
def hub() -> RoomHub:
    return RoomHub()


@pytest.fixture
def fanout(hub) -> EventFanout:
    return EventFanout(hub)


@pytest.fixture
def executor(appointments_repo, messages_repo, fanout) -> MutationExecutor:
    return MutationExecutor(appointments_repo, TranscriptConsistencyUpdater(messages_repo, fanout), fanout)


@pytest.fixture
def patient_id() -> str:
    return str(ObjectId())


@pytest.fixture
def listeners(hub, patient_id):
    """A socket in the patient's room and one in the admin room."""
    patient_socket, admin_socket = RecordingSocket(), RecordingSocket()
    hub.join(patient_socket, patient_room(patient_id))
    hub.join(admin_socket, ADMIN_ROOM)
    return patient_socket, admin_socket


@pytest.fixture
def make_appointment(appointments_repo, patient_id):
    async def _make(title: str, when: datetime, *, owner: Optional[str] = None, **extra: Any) -> Appointment:
        return await appointments_repo.insert(
            Appointment(patient_id=owner or patient_id, title=title, scheduled_at=when, **extra)
        )

    return _make


@pytest.fixture
def make_staff_message(messages_repo, patient_id):
    async def _make(action: str, data: Any, *, title: Optional[str] = None, sender: str = "assistant") -> Message:
        content = encode_content({"action": action, "title": title, "data": data})
        return await messages_repo.create(patient_id, Sender(sender), content)

    return _make


@pytest.fixture
def classifier() -> StubClassifier:
    return StubClassifier({"action": "general_response", "data": {}, "response": "Hello!"})


@pytest.fixture
def app(db, classifier):
    from main import create_app

    application = create_app()
    application.dependency_overrides[deps.get_db] = lambda: db
    application.dependency_overrides[deps.get_action_classifier] = lambda: classifier
    application.dependency_overrides[deps.get_intent_extractor] = lambda: AppointmentIntentExtractor(api_key="")
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[..., Dict[str, str]]:
    def _make(user_id: str, role: str = "patient") -> Dict[str, str]:
        token = create_access_token({"sub": user_id, "role": role})
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def normalizer_for() -> Callable[..., IntentNormalizer]:
    def _make(reply: Any = None, *, error: Optional[Exception] = None) -> IntentNormalizer:
        return IntentNormalizer(StubClassifier(reply, error=error))

    return _make
