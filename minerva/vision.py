"""Board recognition abstractions."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import numpy as np

from .board import BoardState
from .game import GameSnapshot, utc_now


logger = logging.getLogger(__name__)


@dataclass
class ImageFrame:
    """A captured screen as an RGBA array of shape (height, width, 4)."""

    pixels: np.ndarray
    captured_at: datetime = field(default_factory=utc_now)

    @classmethod
    def empty(cls) -> "ImageFrame":
        return cls(np.zeros((0, 0, 4), dtype=np.uint8))

    @classmethod
    def blank(cls, width: int, height: int) -> "ImageFrame":
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def from_rgba(cls, width: int, height: int, data: bytes) -> "ImageFrame":
        """Wrap a raw RGBA buffer.

        Raises:
            ValueError: if the buffer size does not match width * height * 4
        """
        pixels = np.frombuffer(data, dtype=np.uint8)
        if pixels.size != width * height * 4:
            raise ValueError(
                f"RGBA buffer has {pixels.size} bytes, expected {width * height * 4}"
            )
        return cls(pixels.reshape((height, width, 4)))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def nbytes(self) -> int:
        return int(self.pixels.nbytes)


@dataclass
class RecognitionHints:
    """Additional context that can guide recognition."""

    previous_snapshot: Optional[GameSnapshot] = None


class BoardRecognizer(ABC):
    """Turns a frame into a game snapshot."""

    @abstractmethod
    async def align_board(self, frame: ImageFrame) -> BoardState:
        ...

    @abstractmethod
    async def recognize(self, frame: ImageFrame, hints: RecognitionHints) -> GameSnapshot:
        """Raises VisionError when the frame cannot be read."""


class MockRecognizer(BoardRecognizer):
    """Recognizer stand-in that trusts the caller's previous snapshot.

    With no previous snapshot it reports the starting layout, so a match
    driven by it plays forward from the initial position.
    """

    async def align_board(self, frame: ImageFrame) -> BoardState:
        logger.debug(
            "Aligning board for frame %dx%d (%d bytes)", frame.width, frame.height, frame.nbytes
        )
        await asyncio.sleep(0.02)
        return BoardState.initial()

    async def recognize(self, frame: ImageFrame, hints: RecognitionHints) -> GameSnapshot:
        previous = hints.previous_snapshot
        if previous is None:
            return GameSnapshot(board=await self.align_board(frame))

        await asyncio.sleep(0.02)
        snapshot = previous.copy()
        snapshot.created_at = utc_now()
        logger.debug("Returning hinted snapshot at ply %d", snapshot.ply)
        return snapshot
