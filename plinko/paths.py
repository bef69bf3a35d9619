from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from functools import cached_property
from random import Random
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from plinko.board import Board, Position
from plinko.config import PlinkoConfig

LEFT: int = -1
START: int = 0
RIGHT: int = 1


class PathConfigurationError(ValueError):
    """A ball cannot reach its target slot from the given number of rows."""


@dataclass(frozen=True)
class Point:
    x: Position
    y: float


@dataclass(frozen=True)
class Move:
    row: int
    step: int
    x: Position
    y: float


@dataclass(frozen=True)
class Ball:
    id: int
    final_bin: int
    final_position: Position
    stack_index: int
    center_bin: float

    @property
    def target_offset(self) -> int:
        # Net pin steps, two half-bin moves per slot of displacement.
        return round(2 * (self.final_bin - self.center_bin))


@dataclass(frozen=True)
class Path:
    ball: Ball
    moves: Tuple[Move, ...]
    rest: Point
    spawn: Optional[Point] = None

    @cached_property
    def trajectory(self) -> Tuple[Point, ...]:
        points = [] if self.spawn is None else [self.spawn]
        points.extend(Point(move.x, move.y) for move in self.moves)
        points.append(self.rest)
        return tuple(points)

    def points(self) -> List[Point]:
        return list(self.trajectory)


def balanced_move_count(pin_rows: int, target_bin: int) -> int:
    if pin_rows <= 0:
        raise PathConfigurationError(f"Pin rows must be positive, got {pin_rows}.")
    if abs(target_bin) > pin_rows:
        raise PathConfigurationError(
            f"Target {target_bin} is out of reach of a {pin_rows}-row board."
        )
    balanced = pin_rows - abs(target_bin)
    if balanced % 2:
        raise PathConfigurationError(
            f"Target {target_bin} leaves {balanced} balanced moves on a "
            f"{pin_rows}-row board; left and right moves cannot cancel out."
        )
    return balanced


def construct_steps(pin_rows: int, target_bin: int, rng: Random) -> List[int]:
    """Return a shuffled left/right step sequence ending ``target_bin`` steps
    from the centre, preceded by the ``START`` marker.

    ``target_bin`` counts signed pin-to-pin steps of half a bin width. The
    fixed moves all point towards the target; the balanced moves come in
    cancelling pairs and only make the fall look random.
    """
    balanced = balanced_move_count(pin_rows, target_bin)
    direction = RIGHT if target_bin > 0 else LEFT
    steps = [direction] * abs(target_bin)
    steps += [LEFT] * (balanced // 2) + [RIGHT] * (balanced // 2)
    rng.shuffle(steps)
    return [START] + steps


class BinStacker:
    """Hands out stacking heights to balls sharing a slot, in arrival order."""

    def __init__(self) -> None:
        self._occupancy: Dict[int, int] = defaultdict(int)

    def place(self, bin_index: int) -> int:
        height = self._occupancy[bin_index]
        self._occupancy[bin_index] = height + 1
        return height

    @property
    def tallest(self) -> int:
        return max(self._occupancy.values(), default=0)


def place_balls(board: Board, final_bins: Iterable[int]) -> List[Ball]:
    stacker = BinStacker()
    balls = []
    for ball_id, final_bin in enumerate(final_bins):
        if not 0 <= final_bin < board.n_bins:
            raise PathConfigurationError(
                f"Ball {ball_id} targets slot {final_bin}; board has {board.n_bins}."
            )
        balls.append(
            Ball(
                id=ball_id,
                final_bin=final_bin,
                final_position=board.bin_position(final_bin),
                stack_index=stacker.place(final_bin),
                center_bin=board.center_bin,
            )
        )
    return balls


def build_path(
    board: Board,
    ball: Ball,
    rng: Random,
    with_spawn: bool = True,
    spawn_height: Optional[float] = None,
) -> Path:
    steps = construct_steps(board.pin_rows, ball.target_offset, rng)
    half_bin = board.bin_width / 2
    lift = board.ball_width / 2

    moves = []
    offset = 0
    for row, step in enumerate(steps):
        offset += step
        moves.append(
            Move(
                row=row,
                step=step,
                x=board.mean_position + offset * half_bin,
                y=board.board_height - row * board.row_height + lift,
            )
        )

    rest = Point(ball.final_position, ball.stack_index * board.ball_width + lift)
    spawn = None
    if with_spawn:
        if spawn_height is None:
            spawn_height = board.board_height + PlinkoConfig.SPAWN_ROWS * board.row_height
        spawn = Point(moves[0].x, spawn_height + lift)
    return Path(ball=ball, moves=tuple(moves), rest=rest, spawn=spawn)


def construct_paths(
    board: Board,
    final_bins: Sequence[int],
    rng: Random,
    with_spawn: bool = True,
) -> List[Path]:
    balls = place_balls(board, final_bins)
    progress_step = max(1, len(balls) // PlinkoConfig.PROGRESS_DIVISIONS)
    paths = []
    for count, ball in enumerate(balls, start=1):
        paths.append(build_path(board, ball, rng, with_spawn=with_spawn))
        if count % progress_step == 0:
            logging.info(f"Constructed {count}/{len(balls)} paths.")
    return paths
