"""
Test suite for forecast handling.

Tests cover:
- Normalisation and summary statistics
- Quantiles and cumulative probabilities
- Choosing a bean machine for a forecast
- Assigning slots to balls
"""

import math
from collections import Counter
from random import Random

import numpy as np
import pytest
from plinko.board import Board
from plinko.forecast import (
    ForecastDistribution,
    assign_bins,
    fit_binomial,
    quantile_bins,
    sampled_bins,
)


def binomial_forecast(pin_rows=10, width=10.0, mean=270.0):
    mapping = {
        mean + (k - pin_rows / 2) * width: math.comb(pin_rows, k)
        for k in range(pin_rows + 1)
    }
    return ForecastDistribution.from_mapping(mapping)


class TestForecastDistribution:
    """Test construction and statistics."""

    def test_normalises_and_sorts(self):
        forecast = ForecastDistribution.from_mapping({270: 3, 268: 1})

        assert list(forecast.values) == [268.0, 270.0]
        assert list(forecast.probabilities) == pytest.approx([0.25, 0.75])
        assert forecast.mean == pytest.approx(269.5)

    def test_accepts_string_keys(self):
        forecast = ForecastDistribution.from_mapping({"300": 0.5, "250": 0.5})

        assert forecast.mean == pytest.approx(275.0)
        assert forecast.sd == pytest.approx(25.0)

    @pytest.mark.parametrize(
        "mapping",
        [
            {},
            {270: -0.1, 280: 1.1},
            {270: 0.0, 280: 0.0},
            {"NaN": 1.0, "270": 1.0},
            {"Infinity": 1.0, "270": 1.0},
        ],
    )
    def test_invalid_mass_raises(self, mapping):
        with pytest.raises(ValueError):
            ForecastDistribution.from_mapping(mapping)

    def test_non_finite_outcome_raises(self):
        with pytest.raises(ValueError, match="Outcome values must be finite"):
            ForecastDistribution.from_mapping({"NaN": 1.0, "270": 1.0})

    def test_mismatched_arrays_raise(self):
        with pytest.raises(ValueError):
            ForecastDistribution(np.array([1.0, 2.0]), np.array([1.0]))

    def test_cdf(self):
        forecast = ForecastDistribution.from_mapping({1: 1, 2: 1, 3: 1})

        assert forecast.cdf(0) == pytest.approx(0.0)
        assert forecast.cdf(2) == pytest.approx(2 / 3)
        assert forecast.cdf(2.5) == pytest.approx(2 / 3)
        assert forecast.cdf(10) == pytest.approx(1.0)

    def test_quantile(self):
        forecast = ForecastDistribution.from_mapping({1: 1, 2: 1, 3: 1})

        assert forecast.quantile(0.2) == 1.0
        assert forecast.quantile(0.5) == 2.0
        assert forecast.quantile(1.0) == 3.0

    def test_quantile_out_of_range(self):
        forecast = ForecastDistribution.from_mapping({1: 1})

        with pytest.raises(ValueError):
            forecast.quantile(1.5)

    def test_win_probability(self):
        forecast = ForecastDistribution.from_mapping({260: 0.4, 270: 0.35, 300: 0.25})

        assert forecast.win_probability(270) == pytest.approx(0.6)

    def test_from_normal(self):
        forecast = ForecastDistribution.from_normal(270.0, 40.0)

        assert forecast.mean == pytest.approx(270.0, abs=0.5)
        assert forecast.sd == pytest.approx(40.0, abs=1.0)
        assert forecast.values[0] == 0.0
        assert forecast.values[-1] == 538.0

    def test_from_normal_rejects_zero_sd(self):
        with pytest.raises(ValueError):
            ForecastDistribution.from_normal(270.0, 0.0)


class TestFitBinomial:
    """Test choosing rows and slot width for a forecast."""

    def test_recovers_binomial_board(self):
        fit = fit_binomial(binomial_forecast(), rows=range(4, 21))

        assert fit.pin_rows == 10
        assert fit.bin_width == pytest.approx(10.0)
        assert fit.mean_position == pytest.approx(270.0)
        assert fit.distance == pytest.approx(0.0, abs=1e-9)

    def test_fixed_row_count(self):
        fit = fit_binomial(ForecastDistribution.from_normal(300.0, 30.0), rows=[8])

        assert fit.pin_rows == 8
        assert fit.bin_width == pytest.approx(2 * 30.0 / math.sqrt(8), rel=0.02)

    def test_default_candidates(self):
        fit = fit_binomial(ForecastDistribution.from_normal(270.0, 40.0))

        assert 6 <= fit.pin_rows <= 40
        assert 0.0 <= fit.distance < 0.1

    def test_rejects_bad_rows(self):
        forecast = binomial_forecast()

        with pytest.raises(ValueError):
            fit_binomial(forecast, rows=[])
        with pytest.raises(ValueError):
            fit_binomial(forecast, rows=[0, 4])

    def test_pmf_sums_to_one(self):
        fit = fit_binomial(binomial_forecast(), rows=[10])

        assert fit.pmf().sum() == pytest.approx(1.0)
        assert fit.cdf()[-1] == pytest.approx(1.0)


class TestAssignBins:
    """Test per-ball slot assignment."""

    @pytest.fixture
    def board(self):
        return Board(pin_rows=10, bin_width=10.0, mean_position=270.0)

    def test_quantile_bins_reproduce_distribution(self, board):
        n_balls = 1024
        bins = quantile_bins(binomial_forecast(), board, n_balls, Random(1))
        counts = Counter(bins)

        assert len(bins) == n_balls
        assert set(counts) <= set(range(board.n_bins))
        for k in range(board.n_bins):
            expected = n_balls * math.comb(10, k) / 2**10
            assert abs(counts[k] - expected) <= 1

    def test_quantile_bins_only_shuffle_with_seed(self, board):
        first = quantile_bins(binomial_forecast(), board, 200, Random(1))
        second = quantile_bins(binomial_forecast(), board, 200, Random(2))

        assert sorted(first) == sorted(second)
        assert first != second

    def test_zero_balls(self, board):
        assert quantile_bins(binomial_forecast(), board, 0, Random(0)) == []
        assert sampled_bins(board, 0, Random(0)) == []

    def test_negative_balls_raise(self, board):
        with pytest.raises(ValueError):
            sampled_bins(board, -1, Random(0))

    def test_sampled_bins_in_range_and_reproducible(self, board):
        bins = sampled_bins(board, 500, Random(3))

        assert len(bins) == 500
        assert all(0 <= b <= board.pin_rows for b in bins)
        assert bins == sampled_bins(board, 500, Random(3))

    def test_assign_bins_dispatch(self, board):
        forecast = binomial_forecast()

        assert assign_bins("quantile", forecast, board, 10, Random(0)) == quantile_bins(
            forecast, board, 10, Random(0)
        )
        assert assign_bins("sample", forecast, board, 10, Random(0)) == sampled_bins(
            board, 10, Random(0)
        )

    def test_unknown_strategy_raises(self, board):
        with pytest.raises(ValueError, match="Unknown strategy"):
            assign_bins("physics", binomial_forecast(), board, 10, Random(0))
