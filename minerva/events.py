"""Event envelope published on the event bus and recorded as telemetry."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .game import GameSnapshot, Move, utc_now
from .telemetry import EngineMetrics, LatencySample


class EventKind(Enum):
    LIFECYCLE = "lifecycle"
    BOARD_UPDATE = "board_update"
    ENGINE_DECISION = "engine_decision"
    TELEMETRY = "telemetry"
    NETWORK = "network"
    OPS = "ops"
    UNKNOWN = "unknown"


class LifecyclePhase(Enum):
    BOOT = "boot"
    READY = "ready"
    MATCH_START = "match_start"
    MATCH_END = "match_end"
    SHUTDOWN = "shutdown"


@dataclass
class LifecycleEvent:
    phase: LifecyclePhase
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"phase": self.phase.value, "details": self.details}


@dataclass
class BoardEvent:
    snapshot: GameSnapshot

    def to_dict(self) -> Dict[str, Any]:
        return {"snapshot": self.snapshot.to_dict()}


@dataclass
class EngineEvent:
    metrics: EngineMetrics
    best_line: List[Move] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics": self.metrics.to_dict(),
            "best_line": [m.to_dict() for m in self.best_line],
        }


@dataclass
class TelemetryEvent:
    latency: Optional[LatencySample] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latency": self.latency.to_dict() if self.latency else None,
            "notes": self.notes,
        }


@dataclass
class NetworkEvent:
    topic: str
    payload: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"topic": self.topic, "payload": self.payload}


@dataclass
class OpsEvent:
    message: str
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "tags": list(self.tags)}


@dataclass
class UnknownEvent:
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value}


EventPayload = Union[
    LifecycleEvent, BoardEvent, EngineEvent, TelemetryEvent, NetworkEvent, OpsEvent, UnknownEvent
]

PAYLOAD_KINDS = {
    LifecycleEvent: EventKind.LIFECYCLE,
    BoardEvent: EventKind.BOARD_UPDATE,
    EngineEvent: EventKind.ENGINE_DECISION,
    TelemetryEvent: EventKind.TELEMETRY,
    NetworkEvent: EventKind.NETWORK,
    OpsEvent: EventKind.OPS,
    UnknownEvent: EventKind.UNKNOWN,
}


@dataclass(frozen=True)
class SystemEvent:
    """Immutable event envelope for logging, networking and replay."""

    kind: EventKind
    payload: EventPayload
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def new(cls, payload: EventPayload) -> "SystemEvent":
        """Wrap a payload, deriving the kind from its type."""
        return cls(kind=PAYLOAD_KINDS[type(payload)], payload=payload)

    @classmethod
    def lifecycle(cls, phase: LifecyclePhase, details: Optional[str] = None) -> "SystemEvent":
        return cls.new(LifecycleEvent(phase, details))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload.to_dict(),
        }


def summarize_event(event: SystemEvent) -> str:
    """Short status line describing the event."""
    payload = event.payload
    if isinstance(payload, LifecycleEvent):
        return f"lifecycle: {payload.phase.value}"
    if isinstance(payload, EngineEvent):
        return f"engine depth {payload.metrics.depth} / {len(payload.best_line)} candidates"
    if isinstance(payload, BoardEvent):
        return "board state updated"
    if isinstance(payload, TelemetryEvent):
        return "latency/telemetry sample"
    if isinstance(payload, NetworkEvent):
        return "network event"
    if isinstance(payload, OpsEvent):
        return "ops notice"
    return "unknown event"


def format_event(event: SystemEvent) -> str:
    """Timestamped one-line log entry for the event."""
    timestamp = event.timestamp.strftime("%H:%M:%S")
    payload = event.payload
    if isinstance(payload, LifecycleEvent):
        return f"[{timestamp}] Lifecycle::{payload.phase.name} {payload.details or ''}".rstrip()
    if isinstance(payload, EngineEvent):
        return (
            f"[{timestamp}] Engine depth={payload.metrics.depth} "
            f"nodes={payload.metrics.nodes} best_line={len(payload.best_line)}"
        )
    if isinstance(payload, BoardEvent):
        return f"[{timestamp}] Board snapshot at ply {payload.snapshot.ply}"
    if isinstance(payload, TelemetryEvent):
        return f"[{timestamp}] Telemetry {payload.notes or ''}".rstrip()
    if isinstance(payload, NetworkEvent):
        return f"[{timestamp}] Network topic={payload.topic} payload={payload.payload}"
    if isinstance(payload, OpsEvent):
        return f"[{timestamp}] Ops {payload.message} [{', '.join(payload.tags)}]"
    return f"[{timestamp}] Unknown payload {payload.value}"
