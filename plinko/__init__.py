"""Presidential Plinko: an electoral forecast poured through a bean machine."""
from __future__ import annotations

from plinko.animation import FrameSchedule, PlinkoAnimation, frame_at, save_animation
from plinko.board import Board
from plinko.config import PlinkoConfig, setup_logging
from plinko.forecast import (
    BinomialFit,
    ForecastDistribution,
    assign_bins,
    fit_binomial,
    quantile_bins,
    sampled_bins,
)
from plinko.paths import (
    Ball,
    BinStacker,
    Move,
    Path,
    PathConfigurationError,
    build_path,
    construct_paths,
    construct_steps,
    place_balls,
)

__all__ = [
    "Ball",
    "BinStacker",
    "BinomialFit",
    "Board",
    "ForecastDistribution",
    "FrameSchedule",
    "Move",
    "Path",
    "PathConfigurationError",
    "PlinkoAnimation",
    "PlinkoConfig",
    "assign_bins",
    "build_path",
    "construct_paths",
    "construct_steps",
    "fit_binomial",
    "frame_at",
    "place_balls",
    "quantile_bins",
    "sampled_bins",
    "save_animation",
    "setup_logging",
]
