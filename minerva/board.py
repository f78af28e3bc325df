"""Janggi board representation and snapshot reconciliation."""

from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple
from dataclasses import dataclass

from .errors import BoardError


FILES = "abcdefghi"


class Side(Enum):
    """Player sides."""

    CHO = "CHO"  # Bottom side (rank 0 back rank), moves first
    HAN = "HAN"  # Top side, moves second

    def opponent(self) -> "Side":
        return Side.HAN if self == Side.CHO else Side.CHO


class PieceKind(Enum):
    """Piece kinds."""

    GENERAL = "GENERAL"
    GUARD = "GUARD"
    ELEPHANT = "ELEPHANT"
    HORSE = "HORSE"
    CHARIOT = "CHARIOT"
    CANNON = "CANNON"
    SOLDIER = "SOLDIER"


# Single-letter codes used by setup dictionaries and FEN-like strings
KIND_CODES = {
    "K": PieceKind.GENERAL,
    "G": PieceKind.GUARD,
    "E": PieceKind.ELEPHANT,
    "H": PieceKind.HORSE,
    "R": PieceKind.CHARIOT,
    "C": PieceKind.CANNON,
    "P": PieceKind.SOLDIER,
}
CODE_FOR_KIND = {kind: code for code, kind in KIND_CODES.items()}
SIDE_CODES = {"c": Side.CHO, "h": Side.HAN}


@dataclass(frozen=True)
class Square:
    """Board coordinate (0-indexed)."""

    file: int  # 0-8 (a-i)
    rank: int  # 0-9 (1-10)

    def offset(self, df: int, dr: int) -> Optional["Square"]:
        """Return the square shifted by (df, dr), or None when it leaves the board."""
        nf = self.file + df
        nr = self.rank + dr
        if 0 <= nf < BoardState.DEFAULT_WIDTH and 0 <= nr < BoardState.DEFAULT_HEIGHT:
            return Square(nf, nr)
        return None

    def to_notation(self) -> str:
        return f"{FILES[self.file]}{self.rank + 1}"

    @classmethod
    def from_notation(cls, text: str) -> "Square":
        """Parse algebraic notation such as "a1" or "e10"."""
        if len(text) < 2 or text[0] not in FILES:
            raise ValueError(f"Invalid square notation: {text!r}")
        return cls(FILES.index(text[0]), int(text[1:]) - 1)

    def __str__(self) -> str:
        return f"({self.file}, {self.rank})"


@dataclass(frozen=True)
class Piece:
    """A piece with its owner."""

    owner: Side
    kind: PieceKind

    def code(self) -> str:
        side_char = "c" if self.owner == Side.CHO else "h"
        return side_char + CODE_FOR_KIND[self.kind]

    def __str__(self) -> str:
        return f"{self.owner.value}_{self.kind.value}"


@dataclass(frozen=True)
class BoardDiff:
    """One square whose occupant differs between two boards."""

    square: Square
    before: Optional[Piece]
    after: Optional[Piece]


class InferredMove(NamedTuple):
    from_square: Square
    to_square: Square
    piece: Piece
    captured: Optional[Piece]


class BoardState:
    """Dense rank-major board."""

    DEFAULT_WIDTH = 9
    DEFAULT_HEIGHT = 10

    BACK_RANK = (
        PieceKind.CHARIOT,
        PieceKind.HORSE,
        PieceKind.ELEPHANT,
        PieceKind.GUARD,
        PieceKind.GENERAL,
        PieceKind.GUARD,
        PieceKind.ELEPHANT,
        PieceKind.HORSE,
        PieceKind.CHARIOT,
    )
    CANNON_FILES = (1, 7)
    SOLDIER_FILES = (0, 2, 4, 6, 8)
    PALACE_FILES = (3, 4, 5)

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        side_to_move: Side = Side.CHO,
        pieces: Optional[List[Optional[Piece]]] = None,
    ):
        if pieces is None:
            pieces = [None] * (width * height)
        if len(pieces) != width * height:
            raise BoardError(
                f"piece array has {len(pieces)} slots, expected {width * height}"
            )
        self.width = width
        self.height = height
        self.side_to_move = side_to_move
        self.pieces: List[Optional[Piece]] = pieces

    @classmethod
    def empty(cls) -> "BoardState":
        return cls()

    @classmethod
    def initial(cls) -> "BoardState":
        """Board with the fixed starting layout, CHO to move."""
        board = cls()
        board._initialize_starting_position()
        return board

    @classmethod
    def from_setup(
        cls, setup: Dict[str, str], side_to_move: Side = Side.CHO
    ) -> "BoardState":
        """Build a board from a mapping of squares to piece codes.

        Args:
            setup: Dictionary mapping squares (e.g. "a1") to piece codes
                (e.g. "cR" for a CHO chariot, "hK" for the HAN general)
            side_to_move: Side whose turn it is

        Raises:
            ValueError: if a square or piece code cannot be parsed
        """
        board = cls(side_to_move=side_to_move)
        for notation, code in setup.items():
            square = Square.from_notation(notation)
            if len(code) != 2 or code[0] not in SIDE_CODES or code[1] not in KIND_CODES:
                raise ValueError(f"Invalid piece code {code!r} at {notation}")
            if not board.set_piece(square, Piece(SIDE_CODES[code[0]], KIND_CODES[code[1]])):
                raise ValueError(f"Square {notation} is outside the board")
        return board

    def _initialize_starting_position(self):
        """Set up the starting position.

        Both back ranks are mirrored, cannons sit two ranks in from the back
        rank and soldiers one rank further.
        """
        top = self.height - 1
        for file, kind in enumerate(self.BACK_RANK):
            self.set_piece(Square(file, 0), Piece(Side.CHO, kind))
            self.set_piece(Square(file, top), Piece(Side.HAN, kind))

        for file in self.CANNON_FILES:
            self.set_piece(Square(file, 2), Piece(Side.CHO, PieceKind.CANNON))
            self.set_piece(Square(file, top - 2), Piece(Side.HAN, PieceKind.CANNON))

        for file in self.SOLDIER_FILES:
            self.set_piece(Square(file, 3), Piece(Side.CHO, PieceKind.SOLDIER))
            self.set_piece(Square(file, top - 3), Piece(Side.HAN, PieceKind.SOLDIER))

    def copy(self) -> "BoardState":
        return BoardState(self.width, self.height, self.side_to_move, list(self.pieces))

    def index(self, square: Square) -> Optional[int]:
        if 0 <= square.file < self.width and 0 <= square.rank < self.height:
            return square.rank * self.width + square.file
        return None

    def contains(self, square: Square) -> bool:
        return self.index(square) is not None

    def piece_at(self, square: Square) -> Optional[Piece]:
        idx = self.index(square)
        if idx is None:
            return None
        return self.pieces[idx]

    def is_empty(self, square: Square) -> bool:
        return self.piece_at(square) is None

    def set_piece(self, square: Square, piece: Optional[Piece]) -> bool:
        """Place (or clear, with None) a piece. Returns False when out of bounds."""
        idx = self.index(square)
        if idx is None:
            return False
        self.pieces[idx] = piece
        return True

    def move_piece(self, from_square: Square, to_square: Square) -> Optional[Piece]:
        """Relocate the piece on from_square, overwriting to_square.

        No legality check is made. Returns the piece that previously occupied
        to_square (the capture, if any).
        """
        moving = self.piece_at(from_square)
        if moving is None:
            raise BoardError(f"no piece at origin {from_square}")
        captured = self.piece_at(to_square)
        if not self.set_piece(to_square, moving):
            raise BoardError(f"destination {to_square} is outside the board")
        self.set_piece(from_square, None)
        return captured

    def iter_pieces(self, side: Optional[Side] = None) -> Iterator[Tuple[Square, Piece]]:
        """Yield (square, piece) pairs in rank-major order."""
        for idx, piece in enumerate(self.pieces):
            if piece is None or (side is not None and piece.owner != side):
                continue
            yield Square(idx % self.width, idx // self.width), piece

    def count_pieces(self, side: Optional[Side] = None) -> int:
        return sum(1 for _ in self.iter_pieces(side))

    def is_in_palace(self, square: Square, side: Side) -> bool:
        """Check if a square is in the palace for the given side."""
        if square.file not in self.PALACE_FILES:
            return False
        if side == Side.CHO:
            return 0 <= square.rank <= 2
        return self.height - 3 <= square.rank <= self.height - 1

    def differences(self, other: "BoardState") -> List[BoardDiff]:
        """Per-square changes from self to other over the overlapping rectangle."""
        diffs = []
        width = min(self.width, other.width)
        height = min(self.height, other.height)
        for rank in range(height):
            for file in range(width):
                square = Square(file, rank)
                before = self.piece_at(square)
                after = other.piece_at(square)
                if before != after:
                    diffs.append(BoardDiff(square, before, after))
        return diffs

    @staticmethod
    def infer_move_from_diffs(diffs: List[BoardDiff]) -> Optional[InferredMove]:
        """Reconstruct a single move from a diff list.

        Best effort: when several squares compete for the origin or
        destination role the last one in scan order wins, so two moves
        between frames produce a partial result.
        """
        from_square = None
        to_square = None
        vacating = None
        arriving = None
        captured = None

        for diff in diffs:
            if diff.before is not None and diff.after is None:
                from_square = diff.square
                vacating = diff.before
            elif diff.before is None and diff.after is not None:
                to_square = diff.square
                arriving = diff.after
                captured = None
            elif diff.before is not None and diff.after is not None and diff.before != diff.after:
                to_square = diff.square
                arriving = diff.after
                captured = diff.before

        moving = arriving if arriving is not None else vacating
        if from_square is None or to_square is None or moving is None:
            return None
        return InferredMove(from_square, to_square, moving, captured)

    def to_fen(self) -> str:
        """Convert board to a FEN-like string, top rank first."""
        fen_parts = []
        for rank in range(self.height - 1, -1, -1):
            rank_str = ""
            empty_count = 0
            for file in range(self.width):
                piece = self.piece_at(Square(file, rank))
                if piece is None:
                    empty_count += 1
                    continue
                if empty_count > 0:
                    rank_str += str(empty_count)
                    empty_count = 0
                rank_str += piece.code()
            if empty_count > 0:
                rank_str += str(empty_count)
            fen_parts.append(rank_str)

        side_char = "c" if self.side_to_move == Side.CHO else "h"
        return "/".join(fen_parts) + f" {side_char}"

    def to_dict(self) -> Dict:
        return {
            "width": self.width,
            "height": self.height,
            "side_to_move": self.side_to_move.value,
            "pieces": {
                square.to_notation(): piece.code() for square, piece in self.iter_pieces()
            },
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoardState):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and self.side_to_move == other.side_to_move
            and self.pieces == other.pieces
        )

    def __repr__(self) -> str:
        return f"BoardState({self.to_fen()!r})"
