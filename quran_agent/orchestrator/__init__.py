"""Agent loop, its events and cancellation."""

from quran_agent.orchestrator.cancellation import CancellationToken
from quran_agent.orchestrator.core import Orchestrator
from quran_agent.orchestrator.events import (
    AgentEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    ToolCallEvent,
)

__all__ = [
    "AgentEvent",
    "CancellationToken",
    "ChunkEvent",
    "DoneEvent",
    "ErrorEvent",
    "Orchestrator",
    "ToolCallEvent",
]
