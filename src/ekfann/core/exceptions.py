"""Error taxonomy for the EKF-trained neural network core.

All failures are raised immediately to the caller; nothing at this layer
retries. The classes also derive from the matching built-in exception so that
callers catching ``ValueError``/``IndexError``/``LinAlgError`` keep working.
"""

import numpy as np


class EKFANNError(Exception):
    """Base class for all errors raised by :mod:`ekfann`."""


class DimensionMismatchError(EKFANNError, ValueError):
    """Operands have inconsistent lengths or shapes."""


class SizeMismatchError(DimensionMismatchError):
    """A flat weight vector does not match the network's total weight count."""


class InvalidRangeError(EKFANNError, IndexError):
    """A layer, neuron or element index lies outside the valid range."""


class SingularMatrixError(EKFANNError, np.linalg.LinAlgError):
    """A matrix could not be inverted."""
