"""Rule-based candidate move generation.

Moves are geometric only: board edges, blocking pieces and friendly fire are
respected, but check and the face-to-face generals rule are not.
"""

from typing import List, Optional

from .board import BoardState, Piece, PieceKind, Side, Square
from .game import Move, MoveCandidate


PIECE_VALUES = {
    PieceKind.GENERAL: 1000.0,
    PieceKind.CHARIOT: 13.0,
    PieceKind.CANNON: 9.0,
    PieceKind.HORSE: 7.0,
    PieceKind.ELEPHANT: 5.0,
    PieceKind.GUARD: 3.0,
    PieceKind.SOLDIER: 1.0,
}
QUIET_MOVE_SCORE = 0.1

ORTHOGONAL_DIRECTIONS = [(0, 1), (0, -1), (1, 0), (-1, 0)]
ALL_DIRECTIONS = ORTHOGONAL_DIRECTIONS + [(1, 1), (1, -1), (-1, 1), (-1, -1)]

# (leg step, diagonal step) pairs: one orthogonal step then one diagonal step outward
HORSE_PATTERNS = [
    ((0, 1), (1, 1)),
    ((0, 1), (-1, 1)),
    ((0, -1), (1, -1)),
    ((0, -1), (-1, -1)),
    ((1, 0), (1, 1)),
    ((1, 0), (1, -1)),
    ((-1, 0), (-1, 1)),
    ((-1, 0), (-1, -1)),
]

ELEPHANT_OFFSETS = [(2, 2), (2, -2), (-2, 2), (-2, -2)]


def capture_score(target: Optional[Piece]) -> float:
    """Score of moving onto a square holding target."""
    if target is None:
        return QUIET_MOVE_SCORE
    return PIECE_VALUES[target.kind]


class MoveGenerator:
    """Generates scored candidate moves per piece kind."""

    def generate(self, board: BoardState, side: Side) -> List[MoveCandidate]:
        """Candidates for every piece owned by side, in rank-major square order."""
        candidates = []
        for square, _ in board.iter_pieces(side):
            candidates.extend(self.candidates_for_square(board, square))
        return candidates

    def candidates_for_square(self, board: BoardState, square: Square) -> List[MoveCandidate]:
        """Candidates for the piece on square (empty list for an empty square)."""
        piece = board.piece_at(square)
        if piece is None:
            return []

        if piece.kind == PieceKind.SOLDIER:
            destinations = self._generate_soldier_moves(board, square, piece.owner)
        elif piece.kind == PieceKind.CHARIOT:
            destinations = self._generate_chariot_moves(board, square, piece.owner)
        elif piece.kind == PieceKind.CANNON:
            destinations = self._generate_cannon_moves(board, square, piece.owner)
        elif piece.kind == PieceKind.HORSE:
            destinations = self._generate_horse_moves(board, square, piece.owner)
        elif piece.kind == PieceKind.ELEPHANT:
            destinations = self._generate_elephant_moves(board, square, piece.owner)
        else:
            # General and guard share the one-step palace rule
            destinations = self._generate_palace_step_moves(board, square, piece.owner)

        candidates = []
        for to_square in destinations:
            score = capture_score(board.piece_at(to_square))
            move = Move(square, to_square, confidence=score)
            candidates.append(MoveCandidate(move=move, score=score, depth=1))
        return candidates

    def _is_open_for(self, board: BoardState, square: Square, side: Side) -> bool:
        """Square is empty or holds an enemy piece."""
        target = board.piece_at(square)
        return target is None or target.owner != side

    def _step(self, board: BoardState, square: Square, df: int, dr: int) -> Optional[Square]:
        target = square.offset(df, dr)
        if target is None or not board.contains(target):
            return None
        return target

    def _has_crossed_river(self, board: BoardState, rank: int, side: Side) -> bool:
        if side == Side.CHO:
            return rank >= board.height // 2
        return rank < board.height // 2 - 1

    def _generate_soldier_moves(self, board: BoardState, square: Square, side: Side) -> List[Square]:
        """Forward one rank; sideways once past the river."""
        moves = []
        forward = 1 if side == Side.CHO else -1

        target = self._step(board, square, 0, forward)
        if target is not None and self._is_open_for(board, target, side):
            moves.append(target)

        if self._has_crossed_river(board, square.rank, side):
            for df in [-1, 1]:
                target = self._step(board, square, df, 0)
                if target is not None and self._is_open_for(board, target, side):
                    moves.append(target)

        return moves

    def _generate_chariot_moves(self, board: BoardState, square: Square, side: Side) -> List[Square]:
        """Slide in the four cardinal directions until blocked."""
        moves = []
        for df, dr in ORTHOGONAL_DIRECTIONS:
            current = square
            while True:
                current = self._step(board, current, df, dr)
                if current is None:
                    break
                occupant = board.piece_at(current)
                if occupant is None:
                    moves.append(current)
                    continue
                if occupant.owner != side:
                    moves.append(current)
                break
        return moves

    def _generate_cannon_moves(self, board: BoardState, square: Square, side: Side) -> List[Square]:
        """Slide over exactly one screen piece.

        The screen itself is never a destination. Beyond it, empty squares are
        quiet destinations and the next piece ends the ray, as a capture when
        it belongs to the enemy.
        """
        moves = []
        for df, dr in ORTHOGONAL_DIRECTIONS:
            screen_found = False
            current = square
            while True:
                current = self._step(board, current, df, dr)
                if current is None:
                    break
                occupant = board.piece_at(current)
                if not screen_found:
                    if occupant is not None:
                        screen_found = True
                    continue
                if occupant is None:
                    moves.append(current)
                    continue
                if occupant.owner != side:
                    moves.append(current)
                break
        return moves

    def _generate_horse_moves(self, board: BoardState, square: Square, side: Side) -> List[Square]:
        """One orthogonal step then one diagonal step; a piece on the leg blocks the pattern."""
        moves = []
        for (leg_df, leg_dr), (diag_df, diag_dr) in HORSE_PATTERNS:
            leg = self._step(board, square, leg_df, leg_dr)
            if leg is None or not board.is_empty(leg):
                continue
            target = self._step(board, leg, diag_df, diag_dr)
            if target is not None and self._is_open_for(board, target, side):
                moves.append(target)
        return moves

    def _generate_palace_step_moves(
        self, board: BoardState, square: Square, side: Side
    ) -> List[Square]:
        """One step in any of the eight directions, staying in the own palace."""
        moves = []
        for df, dr in ALL_DIRECTIONS:
            target = self._step(board, square, df, dr)
            if target is None or not board.is_in_palace(target, side):
                continue
            if self._is_open_for(board, target, side):
                moves.append(target)
        return moves

    def _generate_elephant_moves(self, board: BoardState, square: Square, side: Side) -> List[Square]:
        """Fixed two-by-two diagonal jumps, clamped to the own palace.

        Intermediate squares are not checked.
        """
        moves = []
        for df, dr in ELEPHANT_OFFSETS:
            target = self._step(board, square, df, dr)
            if target is None or not board.is_in_palace(target, side):
                continue
            if self._is_open_for(board, target, side):
                moves.append(target)
        return moves
