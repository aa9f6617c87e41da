import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import numpy as np

from .config import Settings, make_rng, resolve_seed, set_global_seed
from .core import SingularMatrixError
from .data import (increment_scale, load_increments, load_series_csv, scale_increments,
                   sliding_windows, synthetic_load_series)

LOG_DIR = Path("logs")


def _setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure root logger to log to stdout and a log file.

    Args:
        verbose: If ``True`` set console log level to ``DEBUG`` else ``INFO``.
        log_file: Optional path to a log file. If ``None`` a timestamped file is
            created under ``logs/``.
    """
    if log_file is None:
        LOG_DIR.mkdir(exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = LOG_DIR / f"ekfann_{timestamp}.log"

    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handlers = []

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(console_handler)

    # File handler (always DEBUG for maximum detail)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    logging.debug("Logging initialised. Log file: %s", log_file)


def _load_settings(args: argparse.Namespace) -> Settings:
    """Build settings from ``--config`` or ``--preset`` plus command-line overrides."""
    if args.config is not None:
        settings = Settings.from_toml(args.config)
    else:
        settings = Settings.from_preset(args.preset)

    overrides = {}
    if args.days is not None:
        overrides["n_days"] = args.days
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    if args.jacobian_mode is not None:
        overrides["jacobian_mode"] = args.jacobian_mode
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir
    return settings.update(**overrides) if overrides else settings


def horizon_labels(n_outputs: int, samples_per_day: int) -> List[str]:
    """Human readable horizon names, e.g. ``5m`` ... ``1h`` for 5-minute data."""
    step_minutes = 1440 // samples_per_day
    labels = []
    for h in range(1, n_outputs + 1):
        minutes = h * step_minutes
        if minutes % 60 == 0:
            labels.append(f"{minutes // 60}h")
        else:
            labels.append(f"{minutes}m")
    return labels


def horizon_load_errors(errors: np.ndarray, scale: float) -> np.ndarray:
    """Mean absolute load error per horizon from scaled increment errors.

    The load forecast at horizon ``h`` is the current load plus the first
    ``h`` predicted increments, so its error is the running sum of the
    increment errors.
    """
    return np.mean(np.abs(np.cumsum(errors, axis=1)), axis=0) * scale


# -----------------------------------------------------------------------------
# Sub-command implementations
# -----------------------------------------------------------------------------

def _cmd_train(args: argparse.Namespace) -> int:
    """Entry point for the ``train`` sub-command."""
    logger = logging.getLogger(__name__)

    try:
        settings = _load_settings(args)
    except Exception as exc:
        logger.error("Failed to load configuration: %s", exc)
        return 1

    try:
        seed = resolve_seed(settings.random_seed)
    except ValueError as exc:
        logger.error("Invalid seed: %s", exc)
        return 1
    if seed is not None:
        logger.info("Using random seed %d", seed)
        set_global_seed(seed)
    rng = make_rng(seed)

    try:
        if args.csv is not None:
            logger.info("Reading load series from %s", args.csv)
            series = load_series_csv(args.csv, column=args.column)
        else:
            logger.info("Generating %d days of synthetic load (%d samples/day)",
                        settings.n_days, settings.samples_per_day)
            series = synthetic_load_series(settings.n_days, settings.samples_per_day, rng=rng)

        increments = load_increments(series)
        scaled, scaler = scale_increments(increments)
        inputs, targets = sliding_windows(scaled, settings.n_inputs, settings.n_outputs)
    except (OSError, ValueError) as exc:
        logger.error("Could not prepare training data: %s", exc)
        return 1

    if args.max_samples is not None:
        inputs, targets = inputs[:args.max_samples], targets[:args.max_samples]

    online = settings.build_online_training(rng)
    logger.info("Training %r on %d samples", online.trainer.network, inputs.shape[0])

    try:
        online.fit(inputs, targets)
    except SingularMatrixError as exc:
        logger.error("EKF step failed after %d samples: %s", online.n_steps, exc)
        return 2

    last = min(settings.samples_per_day, online.n_steps)
    errors = online.errors()[-last:]
    labels = horizon_labels(settings.n_outputs, settings.samples_per_day)
    mae = horizon_load_errors(errors, increment_scale(scaler))

    print(f"Training complete ({online.n_steps} samples)\n\nMean Error in MW over the last {last} samples:")
    print("\t".join(labels))
    print("\t".join(f"{value:.1f}" for value in mae))

    if args.plot:
        from .viz import TrainingPlotConfig, plot_training_history, plot_horizon_errors, save_figure

        plot_config = TrainingPlotConfig(dpi=settings.figure_dpi)
        out_dir = Path(settings.output_dir)
        history_path = save_figure(plot_training_history(online.history, plot_config),
                                   out_dir / "training_history.png")
        errors_path = save_figure(plot_horizon_errors(mae, labels, plot_config),
                                  out_dir / "horizon_errors.png")
        logger.info("Saved figures: %s, %s", history_path, errors_path)

    return 0


def _cmd_info(args: argparse.Namespace) -> int:
    """Entry point for the ``info`` sub-command."""
    logger = logging.getLogger(__name__)
    from .config.validate import check_environment, print_environment_info

    print_environment_info()
    try:
        check_environment()
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1
    return 0


# -----------------------------------------------------------------------------
# Argument parsing
# -----------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="EKF-trained neural network load forecaster",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging output.",
    )

    sub_parsers = parser.add_subparsers(dest="command", required=True)

    # train -------------------------------------------------------------------
    train_parser = sub_parsers.add_parser("train", help="Train a network online on a load series")
    source = train_parser.add_mutually_exclusive_group()
    source.add_argument("--csv", type=str, default=None,
                        help="CSV file with a load column. Synthetic load is used if omitted.")
    train_parser.add_argument("--column", type=str, default=None,
                              help="Load column in the CSV file (default: last numeric column).")
    settings_source = train_parser.add_mutually_exclusive_group()
    settings_source.add_argument("--config", type=str, default=None,
                                 help="TOML configuration file.")
    settings_source.add_argument("--preset", type=str, default="vstlf_5min",
                                 choices=["vstlf_5min", "vstlf_hourly", "minimal"],
                                 help="Preset configuration.")
    train_parser.add_argument("--days", type=int, default=None,
                              help="Days of synthetic load to generate.")
    train_parser.add_argument("--max-samples", type=int, default=None,
                              help="Stop after this many training samples.")
    train_parser.add_argument("--seed", type=int, default=None, help="Random seed.")
    train_parser.add_argument("--jacobian-mode", choices=["finite_difference", "literal"],
                              default=None, help="Jacobian column formula.")
    train_parser.add_argument("--output-dir", type=str, default=None,
                              help="Directory for figures.")
    train_parser.add_argument("--plot", action="store_true",
                              help="Save training figures to the output directory.")
    train_parser.set_defaults(func=_cmd_train)

    # info --------------------------------------------------------------------
    info_parser = sub_parsers.add_parser("info", help="Show dependency versions and check the environment")
    info_parser.set_defaults(func=_cmd_info)

    return parser


# -----------------------------------------------------------------------------
# Main entry point
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point. Parse ``argv`` and dispatch to sub-command implementation."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging must be set up *after* parsing to respect --verbose flag.
    _setup_logging(verbose=args.verbose)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
