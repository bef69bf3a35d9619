from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, TypeAlias

from plinko.config import PlinkoConfig

if TYPE_CHECKING:
    from plinko.forecast import BinomialFit

Position: TypeAlias = float


@dataclass(frozen=True)
class Board:
    """Pin lattice and slots of a bean machine, in world units.

    Horizontal units are those of the forecast (electoral votes), so a ball's
    x coordinate reads directly as an outcome. Row 0 holds the single apex
    pin; row ``r`` holds ``r + 1`` pins spaced one bin apart, shifted by half
    a bin on alternating rows.
    """

    pin_rows: int
    bin_width: float
    mean_position: Position = 0.0
    row_height: float = 1.0
    ball_width: float = 0.5
    bin_height: float = 2.0

    def __post_init__(self) -> None:
        self._validate_parameters()

    def _validate_parameters(self) -> None:
        if self.pin_rows <= 0:
            raise ValueError(f"Board needs at least one pin row, got {self.pin_rows}.")
        if self.bin_width < 0:
            raise ValueError(f"Bin width cannot be negative, got {self.bin_width}.")
        if self.row_height <= 0 or self.ball_width <= 0:
            raise ValueError("Row height and ball width must be positive.")
        if self.bin_height < 0:
            raise ValueError(f"Bin height cannot be negative, got {self.bin_height}.")

    @classmethod
    def from_fit(cls, fit: BinomialFit, max_stack: int = 0) -> Board:
        cfg = PlinkoConfig
        # A forecast with no spread still needs a drawable pin spacing.
        scale = fit.bin_width if fit.bin_width > 0 else cfg.REFERENCE_BIN_WIDTH
        ball_width = scale * cfg.BALL_WIDTH_FACTOR
        bin_height = max(scale * cfg.BIN_HEIGHT_FACTOR, max_stack * ball_width)
        return cls(
            pin_rows=fit.pin_rows,
            bin_width=fit.bin_width,
            mean_position=fit.mean_position,
            row_height=scale * cfg.ROW_HEIGHT_FACTOR,
            ball_width=ball_width,
            bin_height=bin_height,
        )

    @property
    def n_bins(self) -> int:
        return self.pin_rows + 1

    @property
    def center_bin(self) -> float:
        return self.pin_rows / 2

    @property
    def board_height(self) -> float:
        return self.bin_height + self.pin_rows * self.row_height

    @property
    def left_edge(self) -> Position:
        return self.mean_position - self.n_bins * self.bin_width / 2

    @property
    def right_edge(self) -> Position:
        return self.mean_position + self.n_bins * self.bin_width / 2

    def bin_position(self, index: int) -> Position:
        return (index - self.center_bin) * self.bin_width + self.mean_position

    def bin_index(self, position: Position) -> int:
        if self.bin_width == 0:
            return round(self.center_bin)
        index = round((position - self.mean_position) / self.bin_width + self.center_bin)
        return max(0, min(self.pin_rows, index))

    def pin_positions(self, row: int) -> List[Position]:
        if not 0 <= row < self.pin_rows:
            raise ValueError(f"Row {row} outside board of {self.pin_rows} rows.")
        half = self.bin_width / 2
        return [self.mean_position + j * half for j in range(-row, row + 1, 2)]

    def pin_height(self, row: int) -> float:
        return self.board_height - row * self.row_height

    def divider_positions(self) -> List[Position]:
        return [self.left_edge + i * self.bin_width for i in range(self.n_bins + 1)]
