"""High-level orchestrator coordinating controller, vision and engine."""

import asyncio
import logging
import time
from enum import Enum
from typing import List, Optional

from .board import BoardDiff, BoardState
from .config import OpsConfig, OrchestratorConfig
from .controller import (
    DeviceController,
    formation_action,
    formation_confirm_action,
    start_flow_action,
)
from .engine import GameEngine
from .errors import BoardError, OrchestratorError
from .events import EngineEvent, LifecyclePhase, SystemEvent
from .game import EngineDecision, GameSnapshot, Move, TurnContext
from .network import RealtimeServer
from .ops import TelemetryStore, ensure_telemetry_dir
from .telemetry import EngineMetrics, LatencySample, MatchTelemetry
from .ui import FormationPreset, StartFlowStep
from .vision import BoardRecognizer, ImageFrame, RecognitionHints


logger = logging.getLogger(__name__)

# Pause after each gesture group of the start sequence
GESTURE_SETTLE_SECONDS = 0.150
# Pause between the origin tap and the destination tap of a move
MOVE_TAP_GAP_SECONDS = 0.030


class MatchState(Enum):
    CREATED = "created"
    BOOTING = "booting"
    READY = "ready"
    PLAYING = "playing"
    MATCH_ENDED = "match_ended"
    FAILED = "failed"
    SHUT_DOWN = "shut_down"


def _ms_since(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _describe(piece) -> str:
    return str(piece) if piece is not None else "None"


class Orchestrator:
    """Drives boot, the per-turn capture/recognize/decide/act cycle and event publication.

    The retained snapshot is owned by the orchestrator; the recognizer and
    engine only ever receive copies of it.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        controller: DeviceController,
        recognizer: BoardRecognizer,
        engine: GameEngine,
        network: RealtimeServer,
        telemetry: TelemetryStore,
    ):
        self.config = config
        self.controller = controller
        self.recognizer = recognizer
        self.engine = engine
        self.network = network
        self.telemetry = telemetry
        self.state = MatchState.CREATED
        self.last_snapshot: Optional[GameSnapshot] = None
        self.turns_played = 0
        self.match_telemetry = MatchTelemetry()
        self._stop_requested = asyncio.Event()

    async def boot(self, ops: Optional[OpsConfig] = None) -> None:
        """Connect, enter the match through the start flow and warm the engine.

        Raises:
            MinervaError: from whichever collaborator failed; the boot is not retried
        """
        if self.state != MatchState.CREATED:
            raise OrchestratorError(f"cannot boot from state {self.state.value}")
        self.state = MatchState.BOOTING
        try:
            if ops is not None:
                ensure_telemetry_dir(ops.telemetry_dir)

            await self.controller.connect()
            await self.perform_start_sequence(self.config.formation)
            await self.engine.warm_up()
            await self.network.run()

            await self.publish(
                SystemEvent.lifecycle(LifecyclePhase.BOOT, "orchestrator boot complete")
            )
        except Exception:
            self.state = MatchState.FAILED
            raise
        self.state = MatchState.READY
        logger.info("Boot complete, formation %s", self.config.formation.value)

    async def perform_start_sequence(self, formation: FormationPreset) -> None:
        """Tap through the start confirmation, then choose and confirm the formation."""
        await self.controller.inject_actions(
            [
                start_flow_action(StartFlowStep.APPLY),
                start_flow_action(StartFlowStep.CONFIRM_YES),
                start_flow_action(StartFlowStep.CONFIRM_OK),
            ]
        )
        await asyncio.sleep(GESTURE_SETTLE_SECONDS)

        await self.controller.inject_actions(
            [formation_action(formation), formation_confirm_action()]
        )
        await asyncio.sleep(GESTURE_SETTLE_SECONDS)

    async def play_turn(self) -> EngineDecision:
        """Run one capture → recognize → decide → act cycle."""
        turn_start = time.perf_counter()

        frame = await self.controller.capture_frame()
        snapshot = await self.recognize_board(frame)
        observation_ms = _ms_since(turn_start)

        if self.last_snapshot is not None:
            diffs = self.last_snapshot.board.differences(snapshot.board)
            if diffs:
                self.log_differences("opponent", diffs)

        self.last_snapshot = snapshot
        side = snapshot.board.side_to_move

        decision_start = time.perf_counter()
        decision = await self.engine.evaluate_position(
            TurnContext(snapshot=snapshot.copy(), side=side)
        )
        decision_ms = _ms_since(decision_start)

        injection_ms = 0
        if decision.best_move is not None:
            injection_start = time.perf_counter()
            await self.apply_move(decision.best_move)
            injection_ms = _ms_since(injection_start)
            if decision.best_move.is_hold():
                # Nothing moved; the retained snapshot keeps its ply and side
                logger.info("Engine held at %s", decision.best_move.from_square.to_notation())
            else:
                try:
                    self.last_snapshot.apply_move(side, decision.best_move)
                except BoardError as e:
                    logger.warning("Failed to update internal snapshot: %s", e)
        else:
            logger.warning("Engine returned no move; skipping controller action")

        metrics = EngineMetrics(nodes=decision.searched_nodes, depth=decision.depth)
        self.match_telemetry.engine_history.append(metrics)
        self.match_telemetry.latency_samples.append(
            LatencySample(
                observation_ms=observation_ms,
                decision_ms=decision_ms,
                injection_ms=injection_ms,
                total_ms=_ms_since(turn_start),
            )
        )

        await self.publish(
            SystemEvent.new(
                EngineEvent(
                    metrics=metrics,
                    best_line=[c.move for c in decision.candidates],
                )
            )
        )
        self.turns_played += 1
        return decision

    async def recognize_board(self, frame: ImageFrame) -> GameSnapshot:
        previous = self.last_snapshot.copy() if self.last_snapshot is not None else None
        return await self.recognizer.recognize(frame, RecognitionHints(previous_snapshot=previous))

    async def apply_move(self, move: Move) -> None:
        """Execute a move on the device as two sequential taps."""
        await self.controller.tap_square(move.from_square)
        await asyncio.sleep(MOVE_TAP_GAP_SECONDS)
        await self.controller.tap_square(move.to_square)

    def log_differences(self, source: str, diffs: List[BoardDiff]) -> None:
        for diff in diffs:
            logger.info(
                "%s change: square (%d, %d) %s -> %s",
                source,
                diff.square.file,
                diff.square.rank,
                _describe(diff.before),
                _describe(diff.after),
            )
        inferred = BoardState.infer_move_from_diffs(diffs)
        if inferred is not None:
            logger.info(
                "%s move inferred: %s %s -> %s%s",
                source,
                inferred.piece,
                inferred.from_square.to_notation(),
                inferred.to_square.to_notation(),
                f" capturing {inferred.captured}" if inferred.captured else "",
            )

    async def publish(self, event: SystemEvent) -> None:
        """Fan out to the event bus, then record; only the record step may fail the call."""
        try:
            await self.network.publish(event)
        except Exception as e:
            logger.debug("Event bus rejected %s event: %s", event.kind.value, e)
        await self.telemetry.record_event(event)

    def request_stop(self) -> None:
        """Ask run() to stop after the turn in progress."""
        logger.info("Stop requested")
        self._stop_requested.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    async def run(self) -> None:
        """Play exactly ``max_retries`` turns, one after another.

        Any controller, recognizer, engine or telemetry failure aborts the run.
        """
        if self.state != MatchState.READY:
            raise OrchestratorError(f"cannot run from state {self.state.value}; boot first")

        self.state = MatchState.PLAYING
        try:
            await self.publish(
                SystemEvent.lifecycle(LifecyclePhase.MATCH_START, "match started")
            )

            details = "match completed"
            for turn in range(self.config.max_retries):
                if self.stop_requested:
                    details = f"match stopped after {turn} turns"
                    break
                logger.info("Executing turn %d", turn)
                await self.play_turn()

            await self.publish(SystemEvent.lifecycle(LifecyclePhase.MATCH_END, details))
            await self.telemetry.record_match(self.match_telemetry)
        except Exception:
            self.state = MatchState.FAILED
            raise
        self.state = MatchState.MATCH_ENDED

    async def shutdown(self) -> None:
        if self.state == MatchState.SHUT_DOWN:
            return
        await self.publish(SystemEvent.lifecycle(LifecyclePhase.SHUTDOWN, "orchestrator shutdown"))
        self.state = MatchState.SHUT_DOWN
