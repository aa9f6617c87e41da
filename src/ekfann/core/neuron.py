"""Single neuron of an EKF-trained feed-forward network."""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .exceptions import DimensionMismatchError
from .transfer import TransferFunction


@dataclass(frozen=True)
class NeuronState:
    """Cached evaluation state of a neuron.

    Attributes
    ----------
    weighted_sum : float
        Σ inputs[i] * weights[i] from the most recent evaluation
    output : float
        Transfer function applied to ``weighted_sum``
    """
    weighted_sum: float
    output: float


class Neuron:
    """Neuron holding a weight vector, a transfer function and cached state.

    Neurons of the input layer carry no weights; their cached state is set
    directly from the network input.

    Parameters
    ----------
    weights : Optional[np.ndarray], shape (n_inputs + 1,)
        Incoming weights, the last one being the bias weight. ``None`` for
        input placeholders.
    transfer : TransferFunction
        Activation applied to the weighted sum
    """

    def __init__(self,
                 weights: Optional[np.ndarray] = None,
                 transfer: TransferFunction = TransferFunction.IDENTITY):
        self.weights = None if weights is None else np.array(weights, dtype=float)
        self.transfer = transfer
        self.weighted_sum = 0.0
        self.output = 0.0

    @property
    def n_weights(self) -> int:
        return 0 if self.weights is None else self.weights.shape[0]

    @property
    def is_input(self) -> bool:
        return self.weights is None

    def forward_propagate(self, inputs: np.ndarray) -> float:
        """Evaluate the neuron and cache its weighted sum and output.

        Parameters
        ----------
        inputs : np.ndarray, shape (n_weights,)
            Outputs of the previous layer with the bias input already appended

        Returns
        -------
        float
            The new output value
        """
        if self.weights is None:
            raise DimensionMismatchError("Input neurons have no weights to propagate through")
        inputs = np.asarray(inputs, dtype=float)
        if inputs.shape != self.weights.shape:
            raise DimensionMismatchError(
                f"Neuron expects {self.weights.shape[0]} inputs, got shape {inputs.shape}"
            )

        self.weighted_sum = float(np.dot(inputs, self.weights))
        self.output = self.compute_output(self.weighted_sum)
        return self.output

    def compute_output(self, weighted_sum: float) -> float:
        return self.transfer.compute(weighted_sum)

    def set_input(self, value: float) -> None:
        """Set the cached state of an input placeholder."""
        self.weighted_sum = float(value)
        self.output = float(value)

    def snapshot(self) -> NeuronState:
        return NeuronState(self.weighted_sum, self.output)

    def restore(self, state: NeuronState) -> None:
        self.weighted_sum = state.weighted_sum
        self.output = state.output

    def __repr__(self) -> str:
        return (f"Neuron(n_weights={self.n_weights}, transfer={self.transfer.value}, "
                f"output={self.output:.6g})")
