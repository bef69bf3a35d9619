from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final, Tuple, TypeAlias

Color: TypeAlias = Tuple[int, int, int]


@dataclass(frozen=True)
class PlinkoConfig:
    NUM_BALLS: Final[int] = 538
    MIN_ROWS: Final[int] = 6
    MAX_ROWS: Final[int] = 40
    WIN_THRESHOLD: Final[float] = 270.0
    TOTAL_ELECTORAL_VOTES: Final[int] = 538
    PROGRESS_DIVISIONS: Final[int] = 10

    ROW_HEIGHT_FACTOR: Final[float] = 0.866
    BALL_WIDTH_FACTOR: Final[float] = 0.5
    BIN_HEIGHT_FACTOR: Final[float] = 2.0
    SPAWN_ROWS: Final[float] = 2.0
    REFERENCE_BIN_WIDTH: Final[float] = 10.0

    FRAMES_PER_MOVE: Final[int] = 2
    DROP_INTERVAL: Final[int] = 1
    BALLS_PER_DROP: Final[int] = 4
    HOLD_FRAMES: Final[int] = 20
    FRAME_DURATION_MS: Final[int] = 40

    CANVAS_WIDTH: Final[int] = 600
    CANVAS_HEIGHT: Final[int] = 600
    CANVAS_MARGIN: Final[int] = 20
    PEG_RADIUS: Final[int] = 2
    MIN_BALL_RADIUS: Final[int] = 1
    DIVIDER_WIDTH: Final[int] = 1

    BACKGROUND_COLOR: Final[Color] = (250, 250, 245)
    PEG_COLOR: Final[Color] = (90, 90, 90)
    DIVIDER_COLOR: Final[Color] = (160, 160, 160)
    THRESHOLD_COLOR: Final[Color] = (40, 40, 40)
    BELOW_COLOR: Final[Color] = (220, 60, 60)
    ABOVE_COLOR: Final[Color] = (50, 90, 210)

    DEFAULT_OUTPUT_BASENAME: Final[str] = "presidential_plinko"
    LOG_FORMAT: Final[str] = "%(levelname)s: %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=PlinkoConfig.LOG_FORMAT, force=True)
