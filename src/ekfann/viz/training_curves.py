"""Training progress and forecast visualization for online EKF training."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import matplotlib.pyplot as plt

from ..core.online import StepStatistics


@dataclass
class TrainingPlotConfig:
    """Configuration for training visualizations."""
    figure_size: Tuple[float, float] = (12, 8)
    dpi: int = 150
    font_size: int = 10
    smoothing_window: int = 50


def moving_average(values: np.ndarray, window: int) -> np.ndarray:
    """Trailing moving average with a window shrunk at the start of the series."""
    values = np.asarray(values, dtype=float)
    if window <= 1 or values.size == 0:
        return values.copy()
    cumsum = np.cumsum(np.insert(values, 0, 0.0))
    counts = np.minimum(np.arange(1, values.size + 1), window)
    return (cumsum[1:] - cumsum[np.arange(1, values.size + 1) - counts]) / counts


def plot_training_history(history: List[StepStatistics],
                          config: Optional[TrainingPlotConfig] = None) -> plt.Figure:
    """Plot per-step RMSE and covariance trace of an online training run."""
    config = config or TrainingPlotConfig()
    if not history:
        raise ValueError("Training history is empty")

    steps = np.array([stats.step for stats in history])
    rmse = np.array([stats.rmse for stats in history])
    trace = np.array([stats.covariance_trace for stats in history])

    fig, (ax_err, ax_cov) = plt.subplots(2, 1, figsize=config.figure_size,
                                         dpi=config.dpi, sharex=True)

    ax_err.plot(steps, rmse, alpha=0.3, linewidth=0.8, label='RMSE per step')
    ax_err.plot(steps, moving_average(rmse, config.smoothing_window),
                linewidth=2, label=f'{config.smoothing_window}-step average')
    ax_err.set_ylabel('Innovation RMSE', fontsize=config.font_size)
    ax_err.legend(fontsize=config.font_size)
    ax_err.grid(True, alpha=0.3)

    ax_cov.semilogy(steps, trace, color='tab:red')
    ax_cov.set_xlabel('Training step', fontsize=config.font_size)
    ax_cov.set_ylabel('trace(P)', fontsize=config.font_size)
    ax_cov.grid(True, alpha=0.3)

    fig.suptitle('Online EKF training', fontsize=config.font_size + 2)
    fig.tight_layout()
    return fig


def plot_forecast(actual: Sequence[float],
                  predicted: Sequence[float],
                  horizon_labels: Optional[Sequence[str]] = None,
                  config: Optional[TrainingPlotConfig] = None) -> plt.Figure:
    """Compare one forecast against the observed values, per horizon."""
    config = config or TrainingPlotConfig()
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    if actual.shape != predicted.shape:
        raise ValueError(f"Shape mismatch: actual {actual.shape} vs predicted {predicted.shape}")

    x = np.arange(actual.shape[0])
    fig, ax = plt.subplots(figsize=config.figure_size, dpi=config.dpi)
    ax.plot(x, actual, 'o-', label='Actual')
    ax.plot(x, predicted, 's--', label='Forecast')
    if horizon_labels is not None:
        ax.set_xticks(x)
        ax.set_xticklabels(horizon_labels, rotation=45)
    ax.set_xlabel('Horizon', fontsize=config.font_size)
    ax.set_ylabel('Load', fontsize=config.font_size)
    ax.legend(fontsize=config.font_size)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_horizon_errors(mae_per_output: Sequence[float],
                        horizon_labels: Optional[Sequence[str]] = None,
                        config: Optional[TrainingPlotConfig] = None) -> plt.Figure:
    """Bar chart of the mean absolute error of each forecast horizon."""
    config = config or TrainingPlotConfig()
    mae = np.asarray(mae_per_output, dtype=float)
    labels = list(horizon_labels) if horizon_labels is not None else [str(i + 1) for i in range(mae.size)]

    fig, ax = plt.subplots(figsize=config.figure_size, dpi=config.dpi)
    ax.bar(labels, mae, color='tab:blue', alpha=0.8)
    ax.set_xlabel('Horizon', fontsize=config.font_size)
    ax.set_ylabel('Mean absolute error', fontsize=config.font_size)
    ax.grid(True, axis='y', alpha=0.3)
    fig.tight_layout()
    return fig


def save_figure(fig: plt.Figure, path: Union[str, Path], dpi: Optional[int] = None) -> Path:
    """Save ``fig`` to ``path`` (creating parent directories) and close it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
    return path
