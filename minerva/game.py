"""Per-turn game state exchanged between the recognizer, engine and orchestrator."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .board import BoardState, Piece, Side, Square


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Move:
    """A move between two squares."""

    from_square: Square
    to_square: Square
    promotion: Optional[str] = None  # Reserved, Janggi has no promotion
    confidence: Optional[float] = None

    def is_hold(self) -> bool:
        """True for the pseudo-move an engine returns when it has nothing to play."""
        return self.from_square == self.to_square

    def to_uci(self) -> str:
        """Convert to UCI-like notation."""
        return self.from_square.to_notation() + self.to_square.to_notation()

    @classmethod
    def from_uci(cls, uci: str) -> "Move":
        """Parse UCI notation such as "a1a2" or "e9e10"."""
        # The destination starts at the second file letter
        split = next((i for i in range(1, len(uci)) if uci[i].isalpha()), None)
        if split is None:
            raise ValueError(f"Invalid UCI move: {uci!r}")
        return cls(Square.from_notation(uci[:split]), Square.from_notation(uci[split:]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_square.to_notation(),
            "to": self.to_square.to_notation(),
            "promotion": self.promotion,
            "confidence": self.confidence,
        }

    def __str__(self) -> str:
        return self.to_uci()


@dataclass
class MoveCandidate:
    """A scored move. The score is a heuristic capture value, not a search value."""

    move: Move
    score: float
    depth: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {"move": self.move.to_dict(), "score": self.score, "depth": self.depth}


class GamePhase(Enum):
    OPENING = "opening"
    MIDGAME = "midgame"
    ENDGAME = "endgame"


@dataclass
class GameClocks:
    cho_ms: int = 0
    han_ms: int = 0


@dataclass
class GameSnapshot:
    """Board plus metadata captured at one point in time."""

    board: BoardState = field(default_factory=BoardState.empty)
    ply: int = 0
    last_move: Optional[Move] = None
    phase: GamePhase = GamePhase.OPENING
    clocks: GameClocks = field(default_factory=GameClocks)
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def initial(cls) -> "GameSnapshot":
        return cls(board=BoardState.initial())

    def copy(self) -> "GameSnapshot":
        """Independent copy; the board is cloned so the two can diverge."""
        return GameSnapshot(
            board=self.board.copy(),
            ply=self.ply,
            last_move=self.last_move,
            phase=self.phase,
            clocks=GameClocks(self.clocks.cho_ms, self.clocks.han_ms),
            created_at=self.created_at,
        )

    def apply_move(self, side: Side, move: Move) -> Optional[Piece]:
        """Apply a move locally and hand the turn to the opponent.

        Raises:
            BoardError: if the origin is empty or the destination is off the board
        """
        captured = self.board.move_piece(move.from_square, move.to_square)
        self.board.side_to_move = side.opponent()
        self.last_move = move
        self.ply += 1
        return captured

    def to_dict(self) -> Dict[str, Any]:
        return {
            "board": self.board.to_dict(),
            "fen": self.board.to_fen(),
            "ply": self.ply,
            "last_move": self.last_move.to_dict() if self.last_move else None,
            "phase": self.phase.value,
            "clocks": {"cho_ms": self.clocks.cho_ms, "han_ms": self.clocks.han_ms},
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class EngineDecision:
    best_move: Optional[Move]
    candidates: List[MoveCandidate] = field(default_factory=list)
    searched_nodes: int = 0
    depth: int = 0
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_move": self.best_move.to_dict() if self.best_move else None,
            "candidates": [c.to_dict() for c in self.candidates],
            "searched_nodes": self.searched_nodes,
            "depth": self.depth,
            "duration_ms": self.duration_ms,
        }


@dataclass
class TurnContext:
    snapshot: GameSnapshot
    side: Side
