"""Operational helpers: logging setup and the telemetry sink."""

import asyncio
import logging
import os
from typing import List, Optional

from .config import OpsConfig
from .errors import OpsError
from .events import SystemEvent
from .telemetry import MatchTelemetry


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def init_logging(config: Optional[OpsConfig] = None) -> None:
    """Configure root logging from the ops config (INFO for unknown levels)."""
    level_name = (config.log_level if config else "info").upper()
    level = getattr(logging, level_name, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def ensure_telemetry_dir(path: str) -> str:
    """Create the telemetry directory if needed and return its absolute path."""
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise OpsError(f"failed to create telemetry dir: {e}") from e
    resolved = os.path.abspath(path)
    logger.info("Telemetry directory ready at %s", resolved)
    return resolved


class TelemetryStore:
    """In-memory record of published events and finished matches."""

    def __init__(self):
        self._events: List[SystemEvent] = []
        self._matches: List[MatchTelemetry] = []
        self._lock = asyncio.Lock()

    async def record_event(self, event: SystemEvent) -> None:
        async with self._lock:
            self._events.append(event)

    async def record_match(self, telemetry: MatchTelemetry) -> None:
        async with self._lock:
            self._matches.append(telemetry)

    async def snapshot_events(self, limit: Optional[int] = None) -> List[SystemEvent]:
        """Copy of recorded events, the most recent ``limit`` when given."""
        async with self._lock:
            if limit is None:
                return list(self._events)
            return list(self._events[-limit:]) if limit > 0 else []

    async def snapshot_matches(self) -> List[MatchTelemetry]:
        async with self._lock:
            return list(self._matches)
