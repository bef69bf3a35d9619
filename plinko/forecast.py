from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from random import Random
from typing import Final, List, Optional

import numpy as np

from plinko.board import Board
from plinko.config import PlinkoConfig

STRATEGIES: Final[tuple[str, ...]] = ("quantile", "sample")


@dataclass(frozen=True, eq=False)
class ForecastDistribution:
    """Discrete probability mass over electoral-vote outcomes.

    Probabilities are normalised to sum to one and sorted by outcome on
    construction, so callers may pass raw simulation counts.
    """

    values: np.ndarray
    probabilities: np.ndarray
    _cumulative: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=float)
        probabilities = np.asarray(self.probabilities, dtype=float)
        if values.ndim != 1 or values.shape != probabilities.shape:
            raise ValueError("Values and probabilities must be 1-d and equally long.")
        if values.size == 0:
            raise ValueError("Forecast distribution is empty.")
        if not np.all(np.isfinite(values)):
            raise ValueError("Outcome values must be finite.")
        if np.any(probabilities < 0) or not np.all(np.isfinite(probabilities)):
            raise ValueError("Probabilities must be finite and non-negative.")
        total = probabilities.sum()
        if total <= 0:
            raise ValueError("Forecast distribution has no probability mass.")

        order = np.argsort(values, kind="stable")
        values = values[order]
        probabilities = probabilities[order] / total
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "probabilities", probabilities)
        object.__setattr__(self, "_cumulative", np.cumsum(probabilities))

    @classmethod
    def from_mapping(cls, mapping: Mapping[float, float]) -> ForecastDistribution:
        values = [float(v) for v in mapping.keys()]
        probabilities = [float(p) for p in mapping.values()]
        return cls(np.array(values), np.array(probabilities))

    @classmethod
    def from_normal(
        cls,
        mean: float,
        sd: float,
        low: int = 0,
        high: int = PlinkoConfig.TOTAL_ELECTORAL_VOTES,
    ) -> ForecastDistribution:
        if sd <= 0:
            raise ValueError(f"Standard deviation must be positive, got {sd}.")
        if high < low:
            raise ValueError(f"Empty outcome range [{low}, {high}].")
        values = np.arange(low, high + 1, dtype=float)
        density = np.exp(-0.5 * ((values - mean) / sd) ** 2)
        return cls(values, density)

    @property
    def mean(self) -> float:
        return float(np.dot(self.values, self.probabilities))

    @property
    def sd(self) -> float:
        spread = (self.values - self.mean) ** 2
        return math.sqrt(float(np.dot(spread, self.probabilities)))

    def cdf(self, x: float) -> float:
        return float(self.cdf_at(np.array([x]))[0])

    def cdf_at(self, points: np.ndarray) -> np.ndarray:
        indices = np.searchsorted(self.values, points, side="right")
        return np.concatenate(([0.0], self._cumulative))[indices]

    def quantile(self, q: float) -> float:
        if not 0.0 <= q <= 1.0:
            raise ValueError(f"Quantile must be in [0, 1], got {q}.")
        # Rounding in the cumulative sum can leave the last entry just under 1.
        index = int(np.searchsorted(self._cumulative, q - 1e-12, side="left"))
        return float(self.values[min(index, self.values.size - 1)])

    def win_probability(self, threshold: float = PlinkoConfig.WIN_THRESHOLD) -> float:
        return float(self.probabilities[self.values >= threshold].sum())


@dataclass(frozen=True)
class BinomialFit:
    pin_rows: int
    bin_width: float
    mean_position: float
    distance: float

    def pmf(self) -> np.ndarray:
        counts = np.array([math.comb(self.pin_rows, k) for k in range(self.pin_rows + 1)])
        return counts / 2.0**self.pin_rows

    def cdf(self) -> np.ndarray:
        return np.cumsum(self.pmf())

    def bin_edges(self) -> np.ndarray:
        k = np.arange(self.pin_rows + 1)
        return self.mean_position + (k - self.pin_rows / 2 + 0.5) * self.bin_width


def _fit_rows(forecast: ForecastDistribution, pin_rows: int) -> BinomialFit:
    bin_width = 2.0 * forecast.sd / math.sqrt(pin_rows)
    candidate = BinomialFit(pin_rows, bin_width, forecast.mean, distance=0.0)
    gap = np.abs(forecast.cdf_at(candidate.bin_edges()) - candidate.cdf())
    return BinomialFit(pin_rows, bin_width, forecast.mean, float(gap.max()))


def fit_binomial(
    forecast: ForecastDistribution, rows: Optional[Iterable[int]] = None
) -> BinomialFit:
    """Pick the pin-row count whose bean machine best mimics ``forecast``.

    For ``P`` rows the slot spacing is chosen so the machine's variance,
    ``P * bin_width**2 / 4``, equals the forecast's. Candidates are scored by
    the largest gap between the two cumulative distributions at the slot
    edges; ties keep the smaller board.
    """
    candidates = list(rows) if rows is not None else list(
        range(PlinkoConfig.MIN_ROWS, PlinkoConfig.MAX_ROWS + 1)
    )
    if not candidates or any(r <= 0 for r in candidates):
        raise ValueError(f"Row candidates must be positive integers, got {candidates}.")

    ordered = sorted(set(candidates))
    best = _fit_rows(forecast, ordered[0])
    for pin_rows in ordered[1:]:
        fit = _fit_rows(forecast, pin_rows)
        logging.debug(f"{pin_rows} rows: bin width {fit.bin_width:.2f}, distance {fit.distance:.4f}")
        if fit.distance < best.distance:
            best = fit
    logging.info(
        f"Fitted {best.pin_rows} pin rows, bin width {best.bin_width:.2f} "
        f"around {best.mean_position:.1f} (distance {best.distance:.4f})."
    )
    return best


def _check_ball_count(n_balls: int) -> None:
    if n_balls < 0:
        raise ValueError(f"Ball count cannot be negative, got {n_balls}.")
    if n_balls == 0:
        logging.warning("No balls requested; nothing will be dropped.")


def quantile_bins(
    forecast: ForecastDistribution, board: Board, n_balls: int, rng: Random
) -> List[int]:
    _check_ball_count(n_balls)
    levels = (np.arange(n_balls) + 0.5) / max(n_balls, 1)
    bins = [board.bin_index(forecast.quantile(float(q))) for q in levels]
    rng.shuffle(bins)
    return bins


def sampled_bins(board: Board, n_balls: int, rng: Random) -> List[int]:
    _check_ball_count(n_balls)
    return [
        sum(1 for _ in range(board.pin_rows) if rng.random() < 0.5)
        for _ in range(n_balls)
    ]


def assign_bins(
    strategy: str,
    forecast: ForecastDistribution,
    board: Board,
    n_balls: int,
    rng: Random,
) -> List[int]:
    if strategy == "quantile":
        return quantile_bins(forecast, board, n_balls, rng)
    if strategy == "sample":
        return sampled_bins(board, n_balls, rng)
    raise ValueError(f"Unknown strategy {strategy!r}; expected one of {STRATEGIES}.")

