from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from random import Random
from typing import Optional, Sequence

from plinko.animation import FrameSchedule, PlinkoAnimation
from plinko.board import Board
from plinko.config import PlinkoConfig, setup_logging
from plinko.forecast import STRATEGIES, ForecastDistribution, assign_bins, fit_binomial
from plinko.paths import BinStacker


def build_parser() -> argparse.ArgumentParser:
    cfg = PlinkoConfig
    parser = argparse.ArgumentParser(
        prog="presidential-plinko",
        description="Animate an electoral-vote forecast as balls falling through a bean machine.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--forecast", type=Path,
                        help='JSON object mapping electoral votes to probability, e.g. {"270": 0.02}')
    source.add_argument("--mean", type=float, default=None,
                        help="mean of a synthetic normal forecast (default 270)")
    parser.add_argument("--sd", type=float, default=40.0,
                        help="standard deviation of the synthetic forecast")
    parser.add_argument("--balls", type=int, default=cfg.NUM_BALLS)
    parser.add_argument("--rows", type=int, default=None, help="fix the number of pin rows")
    parser.add_argument("--min-rows", type=int, default=cfg.MIN_ROWS)
    parser.add_argument("--max-rows", type=int, default=cfg.MAX_ROWS)
    parser.add_argument("--strategy", choices=STRATEGIES, default="quantile")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--threshold", type=float, default=cfg.WIN_THRESHOLD)
    parser.add_argument("--frames-per-move", type=int, default=cfg.FRAMES_PER_MOVE)
    parser.add_argument("--drop-interval", type=int, default=cfg.DROP_INTERVAL)
    parser.add_argument("--balls-per-drop", type=int, default=cfg.BALLS_PER_DROP)
    parser.add_argument("--duration", type=int, default=cfg.FRAME_DURATION_MS,
                        help="milliseconds per GIF frame")
    parser.add_argument("--output", type=Path, default=None)
    parser.add_argument("--frames-dir", type=Path, default=None,
                        help="also write every frame as PNG into this directory")
    parser.add_argument("--no-spawn", action="store_true",
                        help="start balls on the apex pin instead of above the board")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def load_forecast(args: argparse.Namespace) -> ForecastDistribution:
    if args.forecast is not None:
        try:
            with open(args.forecast, encoding="utf-8") as handle:
                mapping = json.load(handle)
        except (IOError, OSError) as exc:
            logging.error(f"Failed to read forecast {args.forecast}: {exc}")
            raise
        if not isinstance(mapping, dict):
            raise ValueError(f"Forecast {args.forecast} must hold a JSON object.")
        return ForecastDistribution.from_mapping(mapping)
    mean = PlinkoConfig.WIN_THRESHOLD if args.mean is None else args.mean
    return ForecastDistribution.from_normal(mean, args.sd)


def run(args: argparse.Namespace) -> Path:
    rng = Random(args.seed)
    forecast = load_forecast(args)
    logging.info(
        f"Forecast mean {forecast.mean:.1f}, sd {forecast.sd:.1f}, "
        f"P(>= {args.threshold:g}) = {forecast.win_probability(args.threshold):.3f}"
    )

    rows = [args.rows] if args.rows is not None else range(args.min_rows, args.max_rows + 1)
    fit = fit_binomial(forecast, rows)
    layout = Board.from_fit(fit)
    final_bins = assign_bins(args.strategy, forecast, layout, args.balls, rng)
    stacker = BinStacker()
    for final_bin in final_bins:
        stacker.place(final_bin)
    board = Board.from_fit(fit, max_stack=stacker.tallest)

    animation = PlinkoAnimation(
        board=board,
        schedule=FrameSchedule(
            frames_per_move=args.frames_per_move,
            drop_interval=args.drop_interval,
            balls_per_drop=args.balls_per_drop,
        ),
        threshold=args.threshold,
    )
    animation.drop(final_bins, rng, with_spawn=not args.no_spawn)
    animation.render()
    if args.frames_dir is not None:
        animation.save_frames(args.frames_dir)
    return animation.save(args.output, duration_ms=args.duration)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        output = run(args)
        logging.info(f"Process complete. Output: {output}")
        return 0
    except (ValueError, RuntimeError) as exc:
        logging.error(f"Execution failed due to configuration or state: {exc}")
    except (IOError, OSError) as exc:
        logging.error(f"File system error: {exc}")
    except Exception as exc:
        logging.exception(f"An unexpected critical error occurred: {exc}")
    return 1


def entry_point() -> None:
    sys.exit(main())
