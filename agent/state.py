from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

from models.message import Message
from .context import PatientContext
from .normalizer import NormalizedAction


class ChatState(TypedDict, total=False):
    patient_id: str
    incoming: Message

    # Context
    history: List[Dict[str, str]]
    patient_context: PatientContext
    base_prompt: str

    # Classification
    normalized: NormalizedAction

    # Structured reply
    title: Optional[str]
    data: Any
    reply: Message
