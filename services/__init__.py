from __future__ import annotations

# Re-export key service classes for convenient imports
from .executor import MutationExecutor
from .fanout import EventFanout
from .realtime import RoomHub
from .transcripts import TranscriptConsistencyUpdater

__all__ = ["EventFanout", "MutationExecutor", "RoomHub", "TranscriptConsistencyUpdater"]
