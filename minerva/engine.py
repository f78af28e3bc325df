"""Decision engines consumed by the orchestrator."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from .board import Square
from .game import EngineDecision, Move, MoveCandidate, TurnContext
from .movegen import MoveGenerator


logger = logging.getLogger(__name__)


class GameEngine(ABC):
    """Anything that can turn a snapshot into a decision."""

    @abstractmethod
    async def warm_up(self) -> None:
        """Startup hook, awaited once during boot."""

    @abstractmethod
    async def evaluate_position(self, ctx: TurnContext) -> EngineDecision:
        """Propose a move for ctx.side."""


def hold_move(square: Square) -> Move:
    """Pseudo-move signalling that the engine found nothing to play."""
    return Move(square, square, confidence=0.0)


class RuleBasedEngine(GameEngine):
    """One-ply greedy engine: best capture first, quiet moves otherwise."""

    def __init__(self, generator: Optional[MoveGenerator] = None):
        self.generator = generator or MoveGenerator()
        self.warmed_up = False
        self.nodes_searched = 0

    async def warm_up(self) -> None:
        logger.info("Rule-based engine warm-up")
        self.warmed_up = True

    async def evaluate_position(self, ctx: TurnContext) -> EngineDecision:
        start = time.perf_counter()
        board = ctx.snapshot.board

        candidates = self.generator.generate(board, ctx.side)
        self.nodes_searched = len(candidates)
        # Stable sort keeps enumeration order among equal scores
        candidates.sort(key=lambda c: c.score, reverse=True)

        if candidates:
            best_move = candidates[0].move
            depth = 1
        else:
            first_owned = next(board.iter_pieces(ctx.side), None)
            if first_owned is None:
                logger.info("No %s pieces on the board, nothing to evaluate", ctx.side.value)
                best_move = None
            else:
                best_move = hold_move(first_owned[0])
                candidates = [MoveCandidate(move=best_move, score=0.0, depth=0)]
                logger.info("No candidate moves for %s, holding", ctx.side.value)
            depth = 0

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "Evaluated ply %d for %s: %d candidates, best %s",
            ctx.snapshot.ply,
            ctx.side.value,
            len(candidates),
            best_move,
        )
        return EngineDecision(
            best_move=best_move,
            candidates=candidates,
            searched_nodes=self.nodes_searched,
            depth=depth,
            duration_ms=duration_ms,
        )


class NullEngine(GameEngine):
    """Placeholder engine that replays the snapshot's last move."""

    async def warm_up(self) -> None:
        logger.info("Null engine warm-up")
        await asyncio.sleep(0.015)

    async def evaluate_position(self, ctx: TurnContext) -> EngineDecision:
        logger.info("Null engine evaluating ply %d for %s", ctx.snapshot.ply, ctx.side.value)
        await asyncio.sleep(0.025)
        last_move = ctx.snapshot.last_move
        candidate_move = last_move if last_move is not None else hold_move(Square(0, 0))
        return EngineDecision(
            best_move=last_move,
            candidates=[MoveCandidate(move=candidate_move, score=0.0, depth=0)],
            searched_nodes=0,
            depth=0,
            duration_ms=25,
        )
