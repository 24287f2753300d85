from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from fastapi.requests import HTTPConnection
from motor.motor_asyncio import AsyncIOMotorDatabase

from agent.graph import ChatPipeline
from agent.intent import AppointmentIntentExtractor
from agent.nodes import ChatNodes
from agent.normalizer import ActionClassifier, IntentNormalizer, OpenAIActionClassifier
from db.database import get_database
from repositories.appointments import AppointmentRepository
from repositories.messages import MessageRepository
from repositories.patients import PatientContextRepository
from services.executor import MutationExecutor
from services.fanout import EventFanout
from services.realtime import RoomHub
from services.transcripts import TranscriptConsistencyUpdater


async def get_db() -> AsyncIOMotorDatabase:
    return await get_database()


def get_appointment_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> AppointmentRepository:
    return AppointmentRepository(db)


def get_message_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> MessageRepository:
    return MessageRepository(db)


def get_patient_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> PatientContextRepository:
    return PatientContextRepository(db)


def get_hub(connection: HTTPConnection) -> RoomHub:
    return connection.app.state.hub


def get_fanout(hub: RoomHub = Depends(get_hub)) -> EventFanout:
    return EventFanout(hub)


@lru_cache(maxsize=1)
def get_action_classifier() -> ActionClassifier:
    return OpenAIActionClassifier()


def get_normalizer(classifier: ActionClassifier = Depends(get_action_classifier)) -> IntentNormalizer:
    return IntentNormalizer(classifier)


@lru_cache(maxsize=1)
def get_intent_extractor() -> AppointmentIntentExtractor:
    return AppointmentIntentExtractor()


def get_transcript_updater(
    messages: MessageRepository = Depends(get_message_repository),
    fanout: EventFanout = Depends(get_fanout),
) -> TranscriptConsistencyUpdater:
    return TranscriptConsistencyUpdater(messages, fanout)


def get_executor(
    appointments: AppointmentRepository = Depends(get_appointment_repository),
    transcripts: TranscriptConsistencyUpdater = Depends(get_transcript_updater),
    fanout: EventFanout = Depends(get_fanout),
) -> MutationExecutor:
    return MutationExecutor(appointments, transcripts, fanout)


def get_chat_pipeline(
    messages: MessageRepository = Depends(get_message_repository),
    appointments: AppointmentRepository = Depends(get_appointment_repository),
    patients: PatientContextRepository = Depends(get_patient_repository),
    normalizer: IntentNormalizer = Depends(get_normalizer),
    fanout: EventFanout = Depends(get_fanout),
) -> ChatPipeline:
    nodes = ChatNodes(
        messages=messages,
        appointments=appointments,
        patients=patients,
        normalizer=normalizer,
        fanout=fanout,
    )
    return ChatPipeline(nodes)
