"""Device input/output abstraction layer."""

import asyncio
import copy
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .board import Square
from .config import EmulatorConfig
from .errors import ControllerError
from .telemetry import LatencySample
from .ui import (
    FORMATION_CONFIRM,
    FormationPreset,
    Point,
    StartFlowStep,
    formation_point,
    square_to_point,
    start_flow_point,
)
from .vision import ImageFrame


logger = logging.getLogger(__name__)

# Pause after every injected action so the client registers them in order
ACTION_SETTLE_SECONDS = 0.010


@dataclass(frozen=True)
class Tap:
    x: int
    y: int


@dataclass(frozen=True)
class Swipe:
    start: Tuple[int, int]
    end: Tuple[int, int]
    duration_ms: int


@dataclass(frozen=True)
class KeyEvent:
    code: int


InputAction = Union[Tap, Swipe, KeyEvent]


@dataclass
class ControllerMetrics:
    """Aggregated controller performance counters."""

    last_latency: Optional[LatencySample] = None
    successful_inputs: int = 0
    failed_inputs: int = 0


def ensure_actions_present(actions: Sequence[InputAction]) -> None:
    if not actions:
        raise ControllerError("no input actions specified")


def point_to_action(point: Point) -> Tap:
    return Tap(point.x, point.y)


def start_flow_action(step: StartFlowStep) -> Tap:
    return point_to_action(start_flow_point(step))


def formation_action(preset: FormationPreset) -> Tap:
    return point_to_action(formation_point(preset))


def formation_confirm_action() -> Tap:
    return point_to_action(FORMATION_CONFIRM)


def describe_action(action: InputAction) -> str:
    if isinstance(action, Tap):
        return f"tap {action.x} {action.y}"
    if isinstance(action, Swipe):
        return f"swipe {action.start}->{action.end} duration {action.duration_ms}ms"
    return f"key event {action.code}"


class DeviceController(ABC):
    """Connects to the device, captures frames and injects input."""

    def __init__(self):
        self._metrics = ControllerMetrics()
        self._metrics_lock = threading.Lock()

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def capture_frame(self) -> ImageFrame:
        ...

    @abstractmethod
    async def inject_actions(self, actions: Sequence[InputAction]) -> None:
        """Inject actions sequentially, pausing after each one.

        Raises:
            ControllerError: if actions is empty or an action fails
        """

    async def tap_point(self, point: Point) -> None:
        await self.inject_actions([point_to_action(point)])

    async def tap_square(self, square: Square) -> None:
        point = square_to_point(square)
        if point is None:
            raise ControllerError(
                f"square out of bounds: file={square.file}, rank={square.rank}"
            )
        logger.debug(
            "Tap on square (%d, %d) -> (%d, %d)", square.file, square.rank, point.x, point.y
        )
        await self.tap_point(point)

    def metrics(self) -> ControllerMetrics:
        """Copy of the counters; never the live object."""
        with self._metrics_lock:
            return copy.deepcopy(self._metrics)

    def _record_success(self, start: float) -> None:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        with self._metrics_lock:
            self._metrics.last_latency = LatencySample(
                injection_ms=elapsed_ms,
                total_ms=elapsed_ms,
            )
            self._metrics.successful_inputs += 1

    def _record_failure(self) -> None:
        with self._metrics_lock:
            self._metrics.failed_inputs += 1


class MockController(DeviceController):
    """In-process controller used for integration runs and tests."""

    def __init__(self, config: Optional[EmulatorConfig] = None, fail_after: Optional[int] = None):
        """
        Args:
            config: Emulator settings; fixed_resolution sizes the captured frames
            fail_after: Reject every action once this many have been injected
        """
        super().__init__()
        self.config = config or EmulatorConfig()
        self.fail_after = fail_after
        self.connected = False
        self.history: List[InputAction] = []

    async def connect(self) -> None:
        logger.info("Connecting to mock emulator at %s", self.config.serial)
        await asyncio.sleep(0.05)
        self.connected = True

    async def capture_frame(self) -> ImageFrame:
        logger.debug("Capturing frame using mock controller")
        await asyncio.sleep(0.025)
        if self.config.fixed_resolution is None:
            return ImageFrame.empty()
        width, height = self.config.fixed_resolution
        return ImageFrame.blank(width, height)

    async def inject_actions(self, actions: Sequence[InputAction]) -> None:
        ensure_actions_present(actions)
        start = time.perf_counter()
        for action in actions:
            if self.fail_after is not None and len(self.history) >= self.fail_after:
                self._record_failure()
                raise ControllerError(f"mock device rejected {describe_action(action)}")
            logger.info("Mock %s", describe_action(action))
            self.history.append(action)
            await asyncio.sleep(ACTION_SETTLE_SECONDS)
        self._record_success(start)
