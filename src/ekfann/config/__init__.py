"""Configuration management for EKFANN.

Provides global configuration and random seed management for reproducible training.
"""

from .settings import get_config, set_config, Settings
from .random_state import set_global_seed, get_global_seed, resolve_seed, make_rng
from .defaults import (VSTLF_5MIN_CONFIG, VSTLF_HOURLY_CONFIG, RESEARCH_CONFIGS,
                       JACOBIAN_MODES, DefaultConfig, count_weights, validate_config)

__all__ = [
    'get_config',
    'set_config',
    'set_global_seed',
    'get_global_seed',
    'resolve_seed',
    'make_rng',
    'Settings',
    'VSTLF_5MIN_CONFIG',
    'VSTLF_HOURLY_CONFIG',
    'RESEARCH_CONFIGS',
    'JACOBIAN_MODES',
    'DefaultConfig',
    'count_weights',
    'validate_config'
]
