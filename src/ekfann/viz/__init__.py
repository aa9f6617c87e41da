"""Visualization of online EKF training runs."""

from .training_curves import (
    TrainingPlotConfig,
    moving_average,
    plot_training_history,
    plot_forecast,
    plot_horizon_errors,
    save_figure
)

__all__ = [
    'TrainingPlotConfig',
    'moving_average',
    'plot_training_history',
    'plot_forecast',
    'plot_horizon_errors',
    'save_figure'
]
