"""Screen coordinates of the game client's buttons and board intersections."""

from enum import Enum
from typing import NamedTuple, Optional

from .board import Square


class Point(NamedTuple):
    x: int
    y: int


START_APPLY = Point(550, 1180)
START_CONFIRM_YES = Point(280, 710)
START_CONFIRM_OK = Point(360, 750)

FORMATION_MASANG_MASANG = Point(280, 560)
FORMATION_SANG_MASANG_MA = Point(450, 560)
FORMATION_MASANG_SANG_MA = Point(280, 620)
FORMATION_SANG_MA_MA_SANG = Point(450, 620)
FORMATION_CONFIRM = Point(450, 680)

BOARD_FILES = (40, 125, 200, 280, 360, 440, 520, 600, 680)
BOARD_RANKS = (880, 800, 740, 670, 600, 530, 450, 380, 300, 240)


class StartFlowStep(Enum):
    """Buttons pressed, in order, to enter a match."""

    APPLY = "apply"
    CONFIRM_YES = "confirm_yes"
    CONFIRM_OK = "confirm_ok"


class FormationPreset(Enum):
    """Horse/elephant arrangement chosen before play (ma = horse, sang = elephant)."""

    MASANG_MASANG = "마상마상"
    SANG_MASANG_MA = "상마상마"
    MASANG_SANG_MA = "마상상마"
    SANG_MA_MA_SANG = "상마마상"

    @classmethod
    def parse(cls, text: str) -> "FormationPreset":
        """Accept either the Korean name or the enum member name (any case)."""
        for preset in cls:
            if text == preset.value or text.upper() == preset.name:
                return preset
        names = ", ".join(f"{p.name} ({p.value})" for p in cls)
        raise ValueError(f"Unknown formation {text!r}; expected one of {names}")


START_FLOW_POINTS = {
    StartFlowStep.APPLY: START_APPLY,
    StartFlowStep.CONFIRM_YES: START_CONFIRM_YES,
    StartFlowStep.CONFIRM_OK: START_CONFIRM_OK,
}

FORMATION_POINTS = {
    FormationPreset.MASANG_MASANG: FORMATION_MASANG_MASANG,
    FormationPreset.SANG_MASANG_MA: FORMATION_SANG_MASANG_MA,
    FormationPreset.MASANG_SANG_MA: FORMATION_MASANG_SANG_MA,
    FormationPreset.SANG_MA_MA_SANG: FORMATION_SANG_MA_MA_SANG,
}


def start_flow_point(step: StartFlowStep) -> Point:
    return START_FLOW_POINTS[step]


def formation_point(preset: FormationPreset) -> Point:
    return FORMATION_POINTS[preset]


def square_to_point(square: Square) -> Optional[Point]:
    """Screen point of a board intersection, or None for squares off the board."""
    if not (0 <= square.file < len(BOARD_FILES) and 0 <= square.rank < len(BOARD_RANKS)):
        return None
    return Point(BOARD_FILES[square.file], BOARD_RANKS[square.rank])
