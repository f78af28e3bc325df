"""Integration tests for the orchestrator driving the mock collaborators."""

import logging
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from minerva import (
    BoardState, ControllerError, EngineDecision, EventKind, FormationPreset, GameEngine,
    LifecyclePhase, LocalServer, MatchState, MockController, MockRecognizer, Move,
    NetworkError, OpsConfig, OpsError, Orchestrator, OrchestratorConfig,
    OrchestratorError, Piece, PieceKind, RuleBasedEngine, Side, Square, Tap,
    TelemetryStore, VisionError,
)
from minerva.vision import BoardRecognizer


class FailingRecognizer(BoardRecognizer):
    async def align_board(self, frame):
        raise VisionError("board not found")

    async def recognize(self, frame, hints):
        raise VisionError("board not found")


class OpponentRecognizer(MockRecognizer):
    """Plays a fixed HAN soldier push whenever it is HAN's turn."""

    async def recognize(self, frame, hints):
        snapshot = await super().recognize(frame, hints)
        if snapshot.board.side_to_move == Side.HAN:
            snapshot.apply_move(Side.HAN, Move(Square(0, 6), Square(0, 5)))
        return snapshot


class StuckRecognizer(MockRecognizer):
    """Starts from a lone CHO elephant that has nowhere to go."""

    async def align_board(self, frame):
        return BoardState.from_setup({"e2": "cE", "e10": "hK"})


class NoMoveEngine(GameEngine):
    async def warm_up(self):
        pass

    async def evaluate_position(self, ctx):
        return EngineDecision(best_move=None)


class StaleMoveEngine(GameEngine):
    """Always proposes a move from an empty square."""

    async def warm_up(self):
        pass

    async def evaluate_position(self, ctx):
        return EngineDecision(best_move=Move(Square(4, 4), Square(4, 5)))


class FailingTelemetry(TelemetryStore):
    async def record_event(self, event):
        raise OpsError("disk full")


class FailingNetwork(LocalServer):
    async def publish(self, event):
        raise NetworkError("bus down")


def build_orchestrator(
    max_retries=3,
    controller=None,
    recognizer=None,
    engine=None,
    network=None,
    telemetry=None,
    formation=FormationPreset.MASANG_SANG_MA,
):
    return Orchestrator(
        OrchestratorConfig(max_retries=max_retries, formation=formation),
        controller or MockController(),
        recognizer or MockRecognizer(),
        engine or RuleBasedEngine(),
        network or LocalServer(),
        telemetry or TelemetryStore(),
    )


def lifecycle_phases(events):
    return [e.payload.phase for e in events if e.kind == EventKind.LIFECYCLE]


class TestBoot:
    """Test the boot sequence."""

    @pytest.mark.asyncio
    async def test_start_gesture_order(self):
        controller = MockController()
        orchestrator = build_orchestrator(
            controller=controller, formation=FormationPreset.SANG_MA_MA_SANG
        )

        await orchestrator.boot()

        assert controller.connected
        assert controller.history == [
            Tap(550, 1180),
            Tap(280, 710),
            Tap(360, 750),
            Tap(450, 620),
            Tap(450, 680),
        ]
        assert orchestrator.state == MatchState.READY
        assert orchestrator.engine.warmed_up
        assert orchestrator.network.running

    @pytest.mark.asyncio
    async def test_boot_publishes_boot_event(self):
        telemetry = TelemetryStore()
        orchestrator = build_orchestrator(telemetry=telemetry)

        await orchestrator.boot()

        events = await telemetry.snapshot_events()
        assert lifecycle_phases(events) == [LifecyclePhase.BOOT]

    @pytest.mark.asyncio
    async def test_boot_creates_telemetry_dir(self, tmp_path):
        target = tmp_path / "telemetry"
        orchestrator = build_orchestrator()

        await orchestrator.boot(OpsConfig(telemetry_dir=str(target)))

        assert target.is_dir()

    @pytest.mark.asyncio
    async def test_controller_failure_fails_boot(self):
        telemetry = TelemetryStore()
        orchestrator = build_orchestrator(
            controller=MockController(fail_after=0), telemetry=telemetry
        )

        with pytest.raises(ControllerError):
            await orchestrator.boot()

        assert orchestrator.state == MatchState.FAILED
        assert await telemetry.snapshot_events() == []

    @pytest.mark.asyncio
    async def test_telemetry_failure_fails_boot(self):
        orchestrator = build_orchestrator(telemetry=FailingTelemetry())

        with pytest.raises(OpsError):
            await orchestrator.boot()

        assert orchestrator.state == MatchState.FAILED

    @pytest.mark.asyncio
    async def test_boot_twice(self):
        orchestrator = build_orchestrator()
        await orchestrator.boot()

        with pytest.raises(OrchestratorError):
            await orchestrator.boot()


class TestRun:
    """Test full runs."""

    @pytest.mark.asyncio
    async def test_event_order(self):
        telemetry = TelemetryStore()
        orchestrator = build_orchestrator(max_retries=3, telemetry=telemetry)

        await orchestrator.boot()
        await orchestrator.run()

        events = await telemetry.snapshot_events()
        kinds = [e.kind for e in events]
        assert kinds == [
            EventKind.LIFECYCLE,
            EventKind.LIFECYCLE,
            EventKind.ENGINE_DECISION,
            EventKind.ENGINE_DECISION,
            EventKind.ENGINE_DECISION,
            EventKind.LIFECYCLE,
        ]
        assert lifecycle_phases(events) == [
            LifecyclePhase.BOOT, LifecyclePhase.MATCH_START, LifecyclePhase.MATCH_END,
        ]
        assert events[-1].payload.details == "match completed"
        assert orchestrator.state == MatchState.MATCH_ENDED
        assert orchestrator.turns_played == 3

    @pytest.mark.asyncio
    async def test_subscriber_sees_same_order(self):
        network = LocalServer()
        subscription = network.subscribe()
        orchestrator = build_orchestrator(max_retries=2, network=network)

        await orchestrator.boot()
        await orchestrator.run()
        await orchestrator.shutdown()

        received = []
        while subscription.pending():
            received.append(subscription.get_nowait())

        assert [e.kind for e in received].count(EventKind.ENGINE_DECISION) == 2
        assert lifecycle_phases(received) == [
            LifecyclePhase.BOOT, LifecyclePhase.MATCH_START,
            LifecyclePhase.MATCH_END, LifecyclePhase.SHUTDOWN,
        ]

    @pytest.mark.asyncio
    async def test_first_turn_plays_best_capture(self):
        controller = MockController()
        orchestrator = build_orchestrator(max_retries=1, controller=controller)

        await orchestrator.boot()
        await orchestrator.run()

        # b3 cannon takes the b10 horse
        assert controller.history[5:] == [Tap(125, 740), Tap(125, 240)]
        snapshot = orchestrator.last_snapshot
        assert snapshot.ply == 1
        assert snapshot.board.side_to_move == Side.HAN
        assert snapshot.last_move.to_square == Square(1, 9)

    @pytest.mark.asyncio
    async def test_two_taps_per_turn(self):
        controller = MockController()
        orchestrator = build_orchestrator(max_retries=3, controller=controller)

        await orchestrator.boot()
        await orchestrator.run()

        assert len(controller.history) == 5 + 2 * 3
        assert orchestrator.last_snapshot.ply == 3

    @pytest.mark.asyncio
    async def test_match_telemetry_recorded(self):
        telemetry = TelemetryStore()
        orchestrator = build_orchestrator(max_retries=2, telemetry=telemetry)

        await orchestrator.boot()
        await orchestrator.run()

        matches = await telemetry.snapshot_matches()
        assert len(matches) == 1
        assert len(matches[0].latency_samples) == 2
        assert len(matches[0].engine_history) == 2
        assert matches[0].engine_history[0].depth == 1

    @pytest.mark.asyncio
    async def test_opponent_move_is_logged(self, caplog):
        caplog.set_level(logging.INFO, logger="minerva.orchestrator")
        orchestrator = build_orchestrator(max_retries=2, recognizer=OpponentRecognizer())

        await orchestrator.boot()
        await orchestrator.run()

        assert "opponent move inferred: HAN_SOLDIER a7 -> a6" in caplog.text
        # After the opponent's reply CHO moved again
        assert orchestrator.last_snapshot.board.side_to_move == Side.HAN

    @pytest.mark.asyncio
    async def test_run_requires_boot(self):
        orchestrator = build_orchestrator()

        with pytest.raises(OrchestratorError):
            await orchestrator.run()

    @pytest.mark.asyncio
    async def test_stop_before_first_turn(self):
        telemetry = TelemetryStore()
        controller = MockController()
        orchestrator = build_orchestrator(
            max_retries=3, controller=controller, telemetry=telemetry
        )

        await orchestrator.boot()
        orchestrator.request_stop()
        await orchestrator.run()

        events = await telemetry.snapshot_events()
        assert [e.kind for e in events].count(EventKind.ENGINE_DECISION) == 0
        assert events[-1].payload.details == "match stopped after 0 turns"
        assert len(controller.history) == 5
        assert orchestrator.state == MatchState.MATCH_ENDED

    @pytest.mark.asyncio
    async def test_shutdown_publishes_once(self):
        telemetry = TelemetryStore()
        orchestrator = build_orchestrator(telemetry=telemetry)
        await orchestrator.boot()

        await orchestrator.shutdown()
        await orchestrator.shutdown()

        events = await telemetry.snapshot_events()
        assert lifecycle_phases(events).count(LifecyclePhase.SHUTDOWN) == 1
        assert orchestrator.state == MatchState.SHUT_DOWN


class TestFailurePropagation:
    """Test how collaborator failures affect a run."""

    @pytest.mark.asyncio
    async def test_controller_failure_aborts_run(self):
        telemetry = TelemetryStore()
        orchestrator = build_orchestrator(
            controller=MockController(fail_after=5), telemetry=telemetry
        )
        await orchestrator.boot()

        with pytest.raises(ControllerError):
            await orchestrator.run()

        events = await telemetry.snapshot_events()
        assert lifecycle_phases(events) == [LifecyclePhase.BOOT, LifecyclePhase.MATCH_START]
        assert EventKind.ENGINE_DECISION not in [e.kind for e in events]
        assert orchestrator.state == MatchState.FAILED

    @pytest.mark.asyncio
    async def test_recognizer_failure_aborts_run(self):
        controller = MockController()
        orchestrator = build_orchestrator(controller=controller, recognizer=FailingRecognizer())
        await orchestrator.boot()

        with pytest.raises(VisionError):
            await orchestrator.run()

        assert len(controller.history) == 5
        assert orchestrator.state == MatchState.FAILED

    @pytest.mark.asyncio
    async def test_no_move_means_no_taps(self):
        telemetry = TelemetryStore()
        controller = MockController()
        orchestrator = build_orchestrator(
            max_retries=3, controller=controller, engine=NoMoveEngine(), telemetry=telemetry
        )

        await orchestrator.boot()
        await orchestrator.run()

        assert len(controller.history) == 5
        events = await telemetry.snapshot_events()
        assert [e.kind for e in events].count(EventKind.ENGINE_DECISION) == 3

    @pytest.mark.asyncio
    async def test_snapshot_update_failure_is_not_fatal(self):
        controller = MockController()
        orchestrator = build_orchestrator(
            max_retries=2, controller=controller, engine=StaleMoveEngine()
        )

        await orchestrator.boot()
        await orchestrator.run()

        assert len(controller.history) == 5 + 2 * 2
        assert orchestrator.last_snapshot.ply == 0
        assert orchestrator.state == MatchState.MATCH_ENDED

    @pytest.mark.asyncio
    async def test_hold_move_keeps_snapshot_intact(self):
        """Test a hold is tapped but never applied to the retained snapshot."""
        controller = MockController()
        orchestrator = build_orchestrator(
            max_retries=2, controller=controller, recognizer=StuckRecognizer()
        )

        await orchestrator.boot()
        await orchestrator.run()

        board = orchestrator.last_snapshot.board
        assert board.piece_at(Square(4, 1)) == Piece(Side.CHO, PieceKind.ELEPHANT)
        assert board.count_pieces() == 2
        assert board.side_to_move == Side.CHO
        assert orchestrator.last_snapshot.ply == 0
        assert controller.history[5:] == [Tap(360, 800)] * 4
        assert orchestrator.state == MatchState.MATCH_ENDED

    @pytest.mark.asyncio
    async def test_network_failure_is_swallowed(self):
        telemetry = TelemetryStore()
        orchestrator = build_orchestrator(
            max_retries=2, network=FailingNetwork(), telemetry=telemetry
        )

        await orchestrator.boot()
        await orchestrator.run()

        events = await telemetry.snapshot_events()
        assert len(events) == 5
        assert orchestrator.state == MatchState.MATCH_ENDED

    @pytest.mark.asyncio
    async def test_telemetry_failure_aborts_run(self):
        class FailOnEngineEvents(TelemetryStore):
            async def record_event(self, event):
                if event.kind == EventKind.ENGINE_DECISION:
                    raise OpsError("disk full")
                await super().record_event(event)

        orchestrator = build_orchestrator(telemetry=FailOnEngineEvents())
        await orchestrator.boot()

        with pytest.raises(OpsError):
            await orchestrator.run()

        assert orchestrator.turns_played == 0
        assert orchestrator.state == MatchState.FAILED
