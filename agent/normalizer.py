"""Turns free text into exactly one catalog action.

The language model sits behind ``ActionClassifier`` so the normalizer can be
driven by a deterministic stub. Whatever the classifier does, ``normalize``
returns a well-formed ``NormalizedAction``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field

from core.config import settings
from core.errors import ExternalServiceError
from .catalog import ClinicAction, coerce, default_response, is_known
from .context import PatientContext
from .prompts import ACTION_EXAMPLES, CHAT_ACTION_PROMPT

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE = "service unavailable"


class ChatActionRequest(BaseModel):
    messages: List[Dict[str, str]]


class NormalizedAction(BaseModel):
    action: ClinicAction
    data: Any = Field(default_factory=dict)
    response: str
    raw_response: Optional[str] = None


class ActionClassifier(Protocol):
    async def classify(self, request: ChatActionRequest) -> str:
        """Return the raw model reply; raise ExternalServiceError when none is available."""
        ...


class OpenAIActionClassifier:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.openai_model
        self.temperature = settings.ai_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.ai_max_tokens
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ExternalServiceError("OPENAI_API_KEY is not configured")
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def classify(self, request: ChatActionRequest) -> str:
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=request.messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise ExternalServiceError(str(exc)) from exc
        content = resp.choices[0].message.content if resp.choices else None
        if not content or not content.strip():
            raise ExternalServiceError("empty reply")
        return content.strip()


def build_system_prompt(patient_context: PatientContext | str | None, base_prompt: str = "") -> str:
    examples = "\n".join(f"- {name}: {hint}" for name, hint in ACTION_EXAMPLES.items())
    prompt = CHAT_ACTION_PROMPT.format(action_examples=examples)
    if base_prompt:
        prompt = f"{base_prompt.strip()}\n\n{prompt}"
    if isinstance(patient_context, PatientContext):
        context_text = patient_context.to_prompt()
    else:
        context_text = patient_context or ""
    return f"{prompt}\n\n{context_text}" if context_text else prompt


def history_to_messages(history: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = []
    for turn in history or []:
        if not isinstance(turn, dict):
            continue
        role = turn.get("role") or ("user" if turn.get("sender") == "patient" else "assistant")
        if role not in {"user", "assistant"}:
            role = "assistant"
        content = turn.get("content") or turn.get("message")
        if isinstance(content, str) and content.strip():
            messages.append({"role": role, "content": content})
    return messages


class IntentNormalizer:
    def __init__(self, classifier: ActionClassifier) -> None:
        self.classifier = classifier

    def build_request(
        self,
        message: str,
        patient_context: PatientContext | str | None = None,
        history: Optional[List[Dict[str, Any]]] = None,
        base_prompt: str = "",
    ) -> ChatActionRequest:
        messages = [{"role": "system", "content": build_system_prompt(patient_context, base_prompt)}]
        messages += history_to_messages(history or [])
        messages.append({"role": "user", "content": message})
        return ChatActionRequest(messages=messages)

    async def normalize(
        self,
        message: str,
        patient_context: PatientContext | str | None = None,
        history: Optional[List[Dict[str, Any]]] = None,
        base_prompt: str = "",
    ) -> NormalizedAction:
        if not message or not message.strip():
            raise ValueError("message must be non-empty")

        request = self.build_request(message, patient_context, history, base_prompt)
        try:
            raw = await self.classifier.classify(request)
        except ExternalServiceError as exc:
            logger.warning("normalizer.service_unavailable", extra={"reason": exc.message})
            return self._unavailable()
        except Exception:
            logger.exception("normalizer.classifier_error")
            return self._unavailable()
        if not raw or not raw.strip():
            return self._unavailable()

        return self.parse(raw)

    @staticmethod
    def parse(raw: str) -> NormalizedAction:
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if not isinstance(parsed, dict):
            logger.warning("normalizer.unparseable_reply", extra={"raw_length": len(raw)})
            action = ClinicAction.GENERAL_RESPONSE
            return NormalizedAction(
                action=action,
                data={"message": raw},
                response=default_response(action),
                raw_response=raw,
            )

        proposed = parsed.get("action")
        action = coerce(proposed)
        if not is_known(proposed):
            logger.info("normalizer.action_coerced", extra={"proposed": str(proposed)})

        response = parsed.get("response")
        if not isinstance(response, str) or not response.strip():
            response = default_response(action)

        data = parsed.get("data")
        return NormalizedAction(
            action=action,
            data=data if data is not None else {},
            response=response.strip(),
            raw_response=raw,
        )

    @staticmethod
    def _unavailable() -> NormalizedAction:
        action = ClinicAction.GENERAL_RESPONSE
        return NormalizedAction(
            action=action,
            data={"error": SERVICE_UNAVAILABLE},
            response=default_response(action),
        )
