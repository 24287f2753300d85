from __future__ import annotations

import logging
from typing import Optional

from langgraph.graph import StateGraph, END

from models.message import Message
from .nodes import ChatNodes
from .state import ChatState

logger = logging.getLogger(__name__)


def build_graph(nodes: ChatNodes):
    graph = StateGraph(ChatState)
    graph.add_node("load_context", nodes.load_context)
    graph.add_node("normalize", nodes.normalize)  # classify into a catalog action
    graph.add_node("resolve_action_data", nodes.resolve_action_data)  # title + embedded snapshots
    graph.add_node("persist_reply", nodes.persist_reply)
    graph.add_node("publish_reply", nodes.publish_reply)
    graph.set_entry_point("load_context")

    graph.add_edge("load_context", "normalize")
    graph.add_edge("normalize", "resolve_action_data")
    graph.add_edge("resolve_action_data", "persist_reply")
    graph.add_edge("persist_reply", "publish_reply")
    graph.add_edge("publish_reply", END)
    return graph.compile()


class ChatPipeline:
    """Answers a persisted patient message with a structured assistant message."""

    def __init__(self, nodes: ChatNodes) -> None:
        self.app = build_graph(nodes)

    async def respond(self, incoming: Message) -> Optional[Message]:
        initial_state: ChatState = {"patient_id": str(incoming.patient_id), "incoming": incoming}
        try:
            result = await self.app.ainvoke(initial_state)
        except Exception:
            # The patient's own message is already stored and delivered
            logger.exception("agent.chat_pipeline_failed", extra={"patient_id": str(incoming.patient_id)})
            return None
        return result.get("reply")
