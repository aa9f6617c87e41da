"""Seeding for reproducible training runs.

Networks built without an explicit generator draw their initial weights from
NumPy's global state; everything else takes a ``numpy.random.Generator`` from
:func:`make_rng`. A run is seeded from ``Settings.random_seed`` or, when that
is unset, from the ``EKFANN_SEED`` environment variable.
"""

import os
from typing import Optional

import numpy as np

SEED_ENV_VAR = 'EKFANN_SEED'

_global_seed: Optional[int] = None


def set_global_seed(seed: int) -> None:
    """Seed NumPy's global state and remember ``seed`` for :func:`make_rng`.

    Parameters
    ----------
    seed : int
        Seed for network initialisation and generators made afterwards
    """
    global _global_seed

    _global_seed = int(seed)
    np.random.seed(_global_seed)


def get_global_seed() -> Optional[int]:
    """The seed last passed to :func:`set_global_seed`, or None."""
    return _global_seed


def environment_seed() -> Optional[int]:
    """Read the seed from ``EKFANN_SEED``.

    Returns
    -------
    Optional[int]
        The seed, or None if the variable is unset or blank

    Raises
    ------
    ValueError
        If the variable holds something other than an integer
    """
    value = os.environ.get(SEED_ENV_VAR, '').strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{SEED_ENV_VAR} must be an integer, got {value!r}") from None


def resolve_seed(seed: Optional[int] = None) -> Optional[int]:
    """Seed for a run: ``seed`` if given, else ``EKFANN_SEED``, else None."""
    if seed is not None:
        return int(seed)
    return environment_seed()


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create an independent NumPy generator.

    Uses ``seed`` if given, otherwise the global seed, otherwise fresh entropy.
    """
    if seed is None:
        seed = _global_seed
    return np.random.default_rng(seed)
