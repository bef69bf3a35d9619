from __future__ import annotations

import datetime
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path as FilePath
from random import Random
from typing import Iterator, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from plinko.board import Board, Position
from plinko.config import Color, PlinkoConfig
from plinko.paths import Path, Point, construct_paths


@dataclass(frozen=True)
class FrameSchedule:
    frames_per_move: int = PlinkoConfig.FRAMES_PER_MOVE
    drop_interval: int = PlinkoConfig.DROP_INTERVAL
    hold_frames: int = PlinkoConfig.HOLD_FRAMES
    balls_per_drop: int = PlinkoConfig.BALLS_PER_DROP

    def __post_init__(self) -> None:
        if self.frames_per_move <= 0:
            raise ValueError("Frames per move must be positive.")
        if self.balls_per_drop <= 0:
            raise ValueError("At least one ball must drop at a time.")
        if self.drop_interval < 0 or self.hold_frames < 0:
            raise ValueError("Drop interval and hold frames cannot be negative.")

    def spawn_tick(self, path: Path) -> int:
        return (path.ball.id // self.balls_per_drop) * self.drop_interval

    def landing_tick(self, path: Path) -> int:
        return self.spawn_tick(path) + (len(path.trajectory) - 1) * self.frames_per_move

    def total_frames(self, paths: Sequence[Path]) -> int:
        last = max((self.landing_tick(p) for p in paths), default=0)
        return last + 1 + self.hold_frames


@dataclass(frozen=True)
class BallMark:
    ball_id: int
    x: Position
    y: float
    above_threshold: bool


@dataclass(frozen=True)
class Frame:
    tick: int
    balls: Tuple[BallMark, ...]


def position_at(path: Path, progress: float) -> Point:
    """Interpolate along a path; ``progress`` counts points travelled."""
    points = path.trajectory
    if progress <= 0:
        return points[0]
    index = math.floor(progress)
    if index >= len(points) - 1:
        return points[-1]
    start, end = points[index], points[index + 1]
    fraction = progress - index
    return Point(
        start.x + (end.x - start.x) * fraction,
        start.y + (end.y - start.y) * fraction,
    )


def frame_at(
    paths: Sequence[Path],
    tick: int,
    schedule: FrameSchedule,
    threshold: float = PlinkoConfig.WIN_THRESHOLD,
) -> Frame:
    marks = []
    for path in paths:
        spawn = schedule.spawn_tick(path)
        if tick < spawn:
            continue
        point = position_at(path, (tick - spawn) / schedule.frames_per_move)
        marks.append(
            BallMark(
                ball_id=path.ball.id,
                x=point.x,
                y=point.y,
                above_threshold=path.ball.final_position >= threshold,
            )
        )
    return Frame(tick=tick, balls=tuple(marks))


def iter_frames(
    paths: Sequence[Path],
    schedule: FrameSchedule,
    threshold: float = PlinkoConfig.WIN_THRESHOLD,
) -> Iterator[Frame]:
    for tick in range(schedule.total_frames(paths)):
        yield frame_at(paths, tick, schedule, threshold)


@dataclass(frozen=True)
class Viewport:
    x_min: Position
    y_min: float
    scale: float
    width: int
    height: int
    margin: int

    @classmethod
    def fit(
        cls,
        board: Board,
        paths: Sequence[Path],
        width: int = PlinkoConfig.CANVAS_WIDTH,
        height: int = PlinkoConfig.CANVAS_HEIGHT,
        margin: int = PlinkoConfig.CANVAS_MARGIN,
    ) -> Viewport:
        if width <= 2 * margin or height <= 2 * margin:
            raise ValueError("Canvas must be larger than twice its margin.")
        top = max(
            [board.board_height + board.ball_width]
            + [point.y + board.ball_width / 2 for p in paths for point in p.points()]
        )
        x_span = max(board.right_edge - board.left_edge, board.ball_width)
        scale = min((width - 2 * margin) / x_span, (height - 2 * margin) / top)
        x_centre = (board.left_edge + board.right_edge) / 2
        x_min = x_centre - (width - 2 * margin) / (2 * scale)
        return cls(x_min=x_min, y_min=0.0, scale=scale, width=width, height=height, margin=margin)

    def to_pixel(self, x: Position, y: float) -> Tuple[float, float]:
        px = self.margin + (x - self.x_min) * self.scale
        py = self.height - self.margin - (y - self.y_min) * self.scale
        return px, py


class PlinkoRenderer:
    def __init__(self, board: Board, viewport: Viewport,
                 threshold: float = PlinkoConfig.WIN_THRESHOLD) -> None:
        self.board = board
        self.viewport = viewport
        self.threshold = threshold
        self.ball_radius = max(
            PlinkoConfig.MIN_BALL_RADIUS, board.ball_width / 2 * viewport.scale
        )
        self._background: Optional[Image.Image] = None

    @property
    def background(self) -> Image.Image:
        if self._background is None:
            self._background = self._draw_board()
        return self._background

    def _draw_board(self) -> Image.Image:
        cfg = PlinkoConfig
        board, view = self.board, self.viewport
        image = Image.new("RGB", (view.width, view.height), cfg.BACKGROUND_COLOR)
        draw = ImageDraw.Draw(image)

        for x in board.divider_positions():
            draw.line(
                (view.to_pixel(x, 0.0), view.to_pixel(x, board.bin_height)),
                fill=cfg.DIVIDER_COLOR,
                width=cfg.DIVIDER_WIDTH,
            )
        draw.line(
            (view.to_pixel(board.left_edge, 0.0), view.to_pixel(board.right_edge, 0.0)),
            fill=cfg.DIVIDER_COLOR,
            width=cfg.DIVIDER_WIDTH,
        )

        r = cfg.PEG_RADIUS
        for row in range(board.pin_rows):
            y = board.pin_height(row)
            for x in board.pin_positions(row):
                px, py = view.to_pixel(x, y)
                draw.ellipse((px - r, py - r, px + r, py + r), fill=cfg.PEG_COLOR)

        if board.left_edge <= self.threshold <= board.right_edge:
            draw.line(
                (view.to_pixel(self.threshold, 0.0),
                 view.to_pixel(self.threshold, board.board_height)),
                fill=cfg.THRESHOLD_COLOR,
                width=cfg.DIVIDER_WIDTH,
            )
        return image

    def _ball_color(self, mark: BallMark) -> Color:
        return PlinkoConfig.ABOVE_COLOR if mark.above_threshold else PlinkoConfig.BELOW_COLOR

    def render(self, frame: Frame) -> Image.Image:
        image = self.background.copy()
        draw = ImageDraw.Draw(image)
        r = self.ball_radius
        for mark in frame.balls:
            px, py = self.viewport.to_pixel(mark.x, mark.y)
            draw.ellipse((px - r, py - r, px + r, py + r), fill=self._ball_color(mark))
        return image


@dataclass
class PlinkoAnimation:
    board: Board
    schedule: FrameSchedule = field(default_factory=FrameSchedule)
    threshold: float = PlinkoConfig.WIN_THRESHOLD
    canvas_width: int = PlinkoConfig.CANVAS_WIDTH
    canvas_height: int = PlinkoConfig.CANVAS_HEIGHT
    paths: Optional[List[Path]] = field(init=False, default=None)
    images: List[Image.Image] = field(init=False, default_factory=list)

    def drop(self, final_bins: Sequence[int], rng: Random, with_spawn: bool = True) -> List[Path]:
        if self.paths is not None:
            logging.warning("Dropping a new set of balls; previous paths cleared.")
        self.images = []
        self.paths = construct_paths(self.board, final_bins, rng, with_spawn=with_spawn)
        return self.paths

    def render(self) -> List[Image.Image]:
        if self.paths is None:
            raise RuntimeError("Balls must be dropped before frames can be rendered.")
        if not self.paths:
            logging.warning("No balls on the board; rendering an empty board.")

        viewport = Viewport.fit(self.board, self.paths, self.canvas_width, self.canvas_height)
        renderer = PlinkoRenderer(self.board, viewport, self.threshold)
        total = self.schedule.total_frames(self.paths)
        progress_step = max(1, total // PlinkoConfig.PROGRESS_DIVISIONS)

        images = []
        for frame in iter_frames(self.paths, self.schedule, self.threshold):
            images.append(renderer.render(frame))
            if len(images) % progress_step == 0:
                logging.info(f"Rendered {len(images)}/{total} frames.")
        self.images = images
        return images

    def save(
        self,
        filename: Optional[str | FilePath] = None,
        duration_ms: int = PlinkoConfig.FRAME_DURATION_MS,
    ) -> FilePath:
        images = self.images or self.render()
        if filename:
            output_path = FilePath(filename).resolve()
        else:
            output_path = generate_unique_filename(
                base_name=PlinkoConfig.DEFAULT_OUTPUT_BASENAME, suffix=".gif"
            )
        return save_animation(images, output_path, duration_ms)

    def save_frames(self, directory: str | FilePath) -> List[FilePath]:
        images = self.images or self.render()
        return save_frames(images, directory)


def save_animation(
    images: Sequence[Image.Image],
    output_path: str | FilePath,
    duration_ms: int = PlinkoConfig.FRAME_DURATION_MS,
) -> FilePath:
    if not images:
        raise ValueError("Cannot save an animation without frames.")
    output_path = FilePath(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        images[0].save(
            output_path,
            format="GIF",
            save_all=True,
            append_images=list(images[1:]),
            duration=duration_ms,
            loop=0,
        )
        logging.info(f"Animation of {len(images)} frames saved: {output_path}")
        return output_path
    except (IOError, OSError, ValueError) as exc:
        logging.error(f"Failed to save animation to {output_path}: {exc}")
        raise


def save_frames(images: Sequence[Image.Image], directory: str | FilePath) -> List[FilePath]:
    directory = FilePath(directory)
    written = []
    try:
        directory.mkdir(parents=True, exist_ok=True)
        for index, image in enumerate(images):
            frame_path = directory / f"frame_{index:05d}.png"
            image.save(frame_path)
            written.append(frame_path)
    except (IOError, OSError) as exc:
        logging.error(f"Failed to write frames to {directory}: {exc}")
        raise
    logging.info(f"Wrote {len(written)} frames to {directory}")
    return written


def generate_unique_filename(base_name: str, suffix: str) -> FilePath:
    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime(
        "%Y%m%d_%H%M%S_%f"
    )
    return FilePath(f"{base_name}_{timestamp}{suffix}").resolve()
