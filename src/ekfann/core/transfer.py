"""Scalar transfer (activation) functions for EKF network neurons."""

from enum import Enum
import math


class TransferFunction(Enum):
    """Closed set of neuron activation functions.

    The output layer of an EKF network is always linear (``IDENTITY``) so the
    network can produce unbounded load values; every hidden layer uses
    ``HYPERBOLIC_TANGENT``.
    """

    IDENTITY = "identity"
    HYPERBOLIC_TANGENT = "tanh"

    def compute(self, value: float) -> float:
        """Apply the activation to a weighted sum."""
        if self is TransferFunction.IDENTITY:
            return value
        return math.tanh(value)

    @classmethod
    def for_layer(cls, layer: int, n_layers: int) -> "TransferFunction":
        """Return the activation used by ``layer`` in a network of ``n_layers``."""
        if layer == n_layers - 1:
            return cls.IDENTITY
        return cls.HYPERBOLIC_TANGENT
