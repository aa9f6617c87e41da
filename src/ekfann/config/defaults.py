"""Default configuration parameters for different forecasting scenarios."""

from dataclasses import dataclass
from typing import List, Tuple


@dataclass
class DefaultConfig:
    """Base configuration structure for an EKF load forecaster."""

    # Network parameters
    layer_sizes: Tuple[int, ...]
    bias_input: float
    weight_change: float
    jacobian_mode: str

    # Filter parameters
    process_noise: float
    measurement_noise: float
    initial_covariance: float
    joseph_form: bool

    # Data parameters
    samples_per_day: int
    n_days: int

    # Visualization parameters
    figure_dpi: int


# 5-minute forecaster: one hour of increments in, one hour of increments out
VSTLF_5MIN_CONFIG = DefaultConfig(
    layer_sizes=(12, 10, 12),
    bias_input=1.0,
    weight_change=1e-7,
    jacobian_mode="finite_difference",

    process_noise=1e-4,
    measurement_noise=1e-2,
    initial_covariance=1.0,
    joseph_form=False,

    samples_per_day=288,
    n_days=14,

    figure_dpi=150
)

# Hourly forecaster: one day of hourly increments in, six hours out
VSTLF_HOURLY_CONFIG = DefaultConfig(
    layer_sizes=(24, 8, 6),
    bias_input=1.0,
    weight_change=1e-7,
    jacobian_mode="finite_difference",

    process_noise=1e-4,
    measurement_noise=1e-2,
    initial_covariance=1.0,
    joseph_form=False,

    samples_per_day=24,
    n_days=60,

    figure_dpi=150
)

# Forecasting scenario configurations
RESEARCH_CONFIGS = {
    "vstlf_5min": VSTLF_5MIN_CONFIG,
    "vstlf_hourly": VSTLF_HOURLY_CONFIG,
    "minimal": DefaultConfig(
        layer_sizes=(4, 3, 2),
        bias_input=1.0,
        weight_change=1e-7,
        jacobian_mode="finite_difference",
        process_noise=1e-3,
        measurement_noise=1e-1,
        initial_covariance=1.0,
        joseph_form=False,
        samples_per_day=48,
        n_days=3,
        figure_dpi=100
    )
}

JACOBIAN_MODES = [
    "finite_difference",  # (perturbed - baseline) / delta
    "literal"             # perturbed / delta
]

# Covariance matrices are N x N in the total weight count
RECOMMENDED_MAX_WEIGHTS = 1000
MAX_WEIGHTS = 5000


def count_weights(layer_sizes: Tuple[int, ...]) -> int:
    """Total weight count of a network with the given topology."""
    return sum(layer_sizes[l] * (layer_sizes[l - 1] + 1) for l in range(1, len(layer_sizes)))


def get_memory_estimate(config: DefaultConfig) -> float:
    """Estimate memory usage in GB of the N x N filter matrices (P, Q and temporaries)."""
    n = count_weights(tuple(config.layer_sizes))
    return 6 * n * n * 8 * 1e-9


def validate_config(config: DefaultConfig) -> List[str]:
    """Validate configuration parameters and return list of warnings."""
    warnings = []

    if len(config.layer_sizes) < 2:
        warnings.append(f"Topology {tuple(config.layer_sizes)} needs at least an input and an output layer")
    elif any(size < 1 for size in config.layer_sizes):
        warnings.append(f"Topology {tuple(config.layer_sizes)} has non-positive layer sizes")
    else:
        n_weights = count_weights(tuple(config.layer_sizes))
        if n_weights > MAX_WEIGHTS:
            warnings.append(f"{n_weights} weights exceed practical limit {MAX_WEIGHTS}")
        elif n_weights > RECOMMENDED_MAX_WEIGHTS:
            warnings.append(f"{n_weights} weights may make each EKF step slow")

    if config.jacobian_mode not in JACOBIAN_MODES:
        warnings.append(f"Jacobian mode '{config.jacobian_mode}' not recognized")

    if config.process_noise < 0:
        warnings.append(f"Process noise {config.process_noise} is negative")

    if config.measurement_noise <= 0:
        warnings.append(f"Measurement noise {config.measurement_noise} may make the innovation covariance singular")

    if config.initial_covariance <= 0:
        warnings.append(f"Initial covariance {config.initial_covariance} must be positive")

    if not 1e-12 <= abs(config.weight_change) <= 1e-3:
        warnings.append(f"Weight change {config.weight_change} is outside the usual range [1e-12, 1e-3]")

    return warnings
