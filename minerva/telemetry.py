"""Latency and engine metrics collected during a match."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from .game import utc_now


@dataclass
class LatencySample:
    observation_ms: int = 0  # capture + recognition
    decision_ms: int = 0
    injection_ms: int = 0
    total_ms: int = 0
    captured_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "observation_ms": self.observation_ms,
            "decision_ms": self.decision_ms,
            "injection_ms": self.injection_ms,
            "total_ms": self.total_ms,
            "captured_at": self.captured_at.isoformat(),
        }


@dataclass
class EngineMetrics:
    nodes: int = 0
    depth: int = 0
    nps: int = 0
    hashfull: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": self.nodes,
            "depth": self.depth,
            "nps": self.nps,
            "hashfull": self.hashfull,
        }


@dataclass
class MatchTelemetry:
    latency_samples: List[LatencySample] = field(default_factory=list)
    engine_history: List[EngineMetrics] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latency_samples": [s.to_dict() for s in self.latency_samples],
            "engine_history": [m.to_dict() for m in self.engine_history],
            "notes": list(self.notes),
        }
