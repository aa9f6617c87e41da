"""Load series helpers for online EKF forecasting.

The forecaster works on load *increments* (first differences of the load
signal): the network sees the most recent ``n_inputs`` increments and predicts
the next ``n_outputs`` increments, one per forecast horizon.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.preprocessing import MinMaxScaler


def synthetic_load_series(n_days: int = 14,
                          samples_per_day: int = 288,
                          base_load: float = 1000.0,
                          daily_amplitude: float = 250.0,
                          weekly_amplitude: float = 60.0,
                          noise_std: float = 5.0,
                          rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Generate a synthetic load curve in MW.

    The curve combines a daily double-peak profile, a weekly cycle and white
    noise, which is enough structure for a short-horizon forecaster to learn.

    Parameters
    ----------
    n_days : int
        Number of days to generate
    samples_per_day : int
        Samples per day (288 for 5-minute data)
    base_load : float
        Mean load level
    daily_amplitude : float
        Amplitude of the daily profile
    weekly_amplitude : float
        Amplitude of the weekly cycle
    noise_std : float
        Standard deviation of the additive noise
    rng : Optional[np.random.Generator]
        Random generator for the noise

    Returns
    -------
    np.ndarray, shape (n_days * samples_per_day,)
    """
    if n_days < 1 or samples_per_day < 1:
        raise ValueError("n_days and samples_per_day must be positive")
    if rng is None:
        rng = np.random.default_rng()

    t = np.arange(n_days * samples_per_day) / samples_per_day  # time in days
    daily = (np.sin(2 * np.pi * (t - 0.3))
             + 0.5 * np.sin(4 * np.pi * (t - 0.1)))
    weekly = np.sin(2 * np.pi * t / 7.0)
    noise = rng.normal(0.0, noise_std, size=t.shape)

    return base_load + daily_amplitude * daily + weekly_amplitude * weekly + noise


def load_series_csv(path: Union[str, Path], column: Optional[str] = None) -> np.ndarray:
    """Read a load series from a CSV file.

    Parameters
    ----------
    path : Union[str, Path]
        CSV file with a header row
    column : Optional[str]
        Column holding the load values. Defaults to the last numeric column.

    Returns
    -------
    np.ndarray
        Load values with missing entries linearly interpolated
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Load file not found: {path}")

    frame = pd.read_csv(path)
    if column is None:
        numeric = frame.select_dtypes(include="number")
        if numeric.shape[1] == 0:
            raise ValueError(f"No numeric column in {path}")
        column = numeric.columns[-1]
    elif column not in frame.columns:
        raise ValueError(f"Column '{column}' not in {path}. Available: {list(frame.columns)}")

    series = frame[column].astype(float).interpolate(limit_direction="both")
    return series.to_numpy()


def load_increments(series: np.ndarray) -> np.ndarray:
    """First differences of a load series."""
    series = np.asarray(series, dtype=float)
    if series.ndim != 1 or series.shape[0] < 2:
        raise ValueError("Need a 1-D series with at least two samples")
    return np.diff(series)


def scale_increments(increments: np.ndarray) -> Tuple[np.ndarray, MinMaxScaler]:
    """Scale increments linearly into [-1, 1].

    Keeps network inputs inside the responsive range of the tanh hidden layer.

    Returns
    -------
    scaled : np.ndarray
        Scaled increments, same length as the input
    scaler : sklearn.preprocessing.MinMaxScaler
        Fitted scaler, for ``inverse_transform`` of forecasts
    """
    increments = np.asarray(increments, dtype=float)
    if increments.ndim != 1:
        raise ValueError(f"Expected a 1-D series of increments, got shape {increments.shape}")
    scaler = MinMaxScaler(feature_range=(-1, 1))
    scaled = scaler.fit_transform(increments.reshape(-1, 1))
    return scaled.ravel(), scaler


def increment_scale(scaler: MinMaxScaler) -> float:
    """MW per unit of scaled increment, i.e. half the fitted range."""
    return 1.0 / float(scaler.scale_[0])


def sliding_windows(series: np.ndarray,
                    n_inputs: int,
                    n_outputs: int) -> Tuple[np.ndarray, np.ndarray]:
    """Cut a series into consecutive (history, future) training pairs.

    Sample ``k`` uses ``series[k:k+n_inputs]`` as input and the following
    ``n_outputs`` values as target.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        inputs of shape (n_samples, n_inputs) and targets of shape
        (n_samples, n_outputs)
    """
    series = np.asarray(series, dtype=float)
    if n_inputs < 1 or n_outputs < 1:
        raise ValueError("n_inputs and n_outputs must be positive")
    n_samples = series.shape[0] - n_inputs - n_outputs + 1
    if n_samples < 1:
        raise ValueError(
            f"Series of length {series.shape[0]} is too short for "
            f"{n_inputs} inputs and {n_outputs} outputs"
        )

    inputs = np.stack([series[k:k + n_inputs] for k in range(n_samples)])
    targets = np.stack([series[k + n_inputs:k + n_inputs + n_outputs] for k in range(n_samples)])
    return inputs, targets
