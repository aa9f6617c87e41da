"""Layered feed-forward network trained by an Extended Kalman Filter.

The network is a stack of fully connected layers. Layer 0 holds input
placeholders; every later layer ``l`` holds ``layer_sizes[l]`` neurons with
``layer_sizes[l-1] + 1`` incoming weights each (the last being the bias
weight, multiplied by a constant bias input).

The flat weight vector used by the filter is ordered layer-major, then
neuron-major, then weight-index-major. ``get_weights``, ``set_weights`` and the
columns of ``jacobian`` all follow this order.

The Jacobian of the outputs with respect to every weight is obtained by
perturbing one weight at a time. Instead of re-evaluating the whole network,
``propagate_weight_change`` updates the single affected weighted sum, pushes
the resulting output change into the next layer in O(width), and only then
runs an ordinary forward pass over the remaining tail of the network.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple
import logging

import numpy as np

from .exceptions import DimensionMismatchError, InvalidRangeError, SizeMismatchError
from .neuron import Neuron
from .transfer import TransferFunction

logger = logging.getLogger(__name__)

DEFAULT_BIAS_INPUT = 1.0
DEFAULT_WEIGHT_CHANGE = 1e-7


class JacobianMode(Enum):
    """How a Jacobian column is derived from a perturbed output.

    ``FINITE_DIFFERENCE`` computes ``(perturbed - baseline) / delta``, a forward
    difference approximation of ∂output/∂weight.

    ``LITERAL`` computes ``perturbed / delta`` without subtracting the baseline
    output. It is not a derivative estimate; use it only to compare against
    forecasters trained with that formula.
    """

    FINITE_DIFFERENCE = "finite_difference"
    LITERAL = "literal"


@contextmanager
def preserved_state(neurons: Sequence[Neuron]) -> Iterator[None]:
    """Save the cached state of ``neurons`` and restore it on exit.

    Restoration happens on every exit path, including exceptions.
    """
    saved = [(neuron, neuron.snapshot()) for neuron in neurons]
    try:
        yield
    finally:
        for neuron, state in saved:
            neuron.restore(state)


class EKFANN:
    """Feed-forward neural network whose weights are estimated by an EKF.

    Parameters
    ----------
    layer_sizes : Sequence[int]
        Number of neurons per layer, input layer first and output layer last.
        At least two layers are required.
    bias_input : float, default=1.0
        Constant input multiplied by each neuron's bias weight
    weight_change : float, default=1e-7
        Perturbation applied to each weight when computing the Jacobian
    jacobian_mode : JacobianMode, default=JacobianMode.FINITE_DIFFERENCE
        How Jacobian columns are derived from perturbed outputs
    rng : Optional[np.random.Generator]
        Generator for the initial weights. Falls back to NumPy's global random
        state, so :func:`ekfann.config.set_global_seed` makes runs reproducible.

    Examples
    --------
    >>> net = EKFANN([2, 3, 1])
    >>> net.n_weights  # 3*(2+1) + 1*(3+1)
    13
    >>> net.execute([0.5, -0.2]).shape
    (1,)
    """

    def __init__(self,
                 layer_sizes: Sequence[int],
                 bias_input: float = DEFAULT_BIAS_INPUT,
                 weight_change: float = DEFAULT_WEIGHT_CHANGE,
                 jacobian_mode: JacobianMode = JacobianMode.FINITE_DIFFERENCE,
                 rng: Optional[np.random.Generator] = None):

        layer_sizes = tuple(int(size) for size in layer_sizes)
        if len(layer_sizes) < 2:
            raise DimensionMismatchError(
                f"A network needs at least an input and an output layer, got {len(layer_sizes)} layer(s)"
            )
        if any(size < 1 for size in layer_sizes):
            raise DimensionMismatchError(f"Layer sizes must be positive, got {layer_sizes}")
        if weight_change == 0.0:
            raise ValueError("weight_change must be non-zero")

        self._layer_sizes = layer_sizes
        self.bias_input = float(bias_input)
        self.weight_change = float(weight_change)
        self.jacobian_mode = JacobianMode(jacobian_mode)

        random = rng.random if rng is not None else np.random.random_sample

        self._layers: List[List[Neuron]] = [
            [Neuron() for _ in range(layer_sizes[0])]
        ]
        for layer in range(1, self.n_layers):
            transfer = TransferFunction.for_layer(layer, self.n_layers)
            n_weights = self.neuron_weight_count(layer)
            self._layers.append([
                Neuron(random(n_weights), transfer)
                for _ in range(layer_sizes[layer])
            ])

    # ------------------------------------------------------------------
    # Shape accessors
    # ------------------------------------------------------------------

    @property
    def layer_sizes(self) -> Tuple[int, ...]:
        return self._layer_sizes

    @property
    def n_layers(self) -> int:
        return len(self._layer_sizes)

    @property
    def n_inputs(self) -> int:
        return self._layer_sizes[0]

    @property
    def n_outputs(self) -> int:
        return self._layer_sizes[-1]

    @property
    def n_weights(self) -> int:
        """Total number of weights N across layers 1..L-1."""
        return sum(self.layer_size(l) * self.neuron_weight_count(l)
                   for l in range(1, self.n_layers))

    def layer_size(self, layer: int) -> int:
        return self._layer_sizes[layer]

    def neuron_weight_count(self, layer: int) -> int:
        """Weights per neuron in ``layer``: previous layer width plus the bias."""
        return self._layer_sizes[layer - 1] + 1

    def neuron(self, layer: int, index: int) -> Neuron:
        self._check_layer(layer, lowest=0)
        if not 0 <= index < self.layer_size(layer):
            raise InvalidRangeError(f"Layer {layer} has no neuron {index}")
        return self._layers[layer][index]

    def _check_layer(self, layer: int, lowest: int = 1) -> None:
        if not lowest <= layer < self.n_layers:
            raise InvalidRangeError(
                f"Layer {layer} is out of range [{lowest}, {self.n_layers}) "
                f"for a network with {self.n_layers} layers"
            )

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def get_weights(self) -> np.ndarray:
        """Flatten all weights into a new vector of length ``n_weights``."""
        return np.concatenate([neuron.weights
                               for layer in self._layers[1:]
                               for neuron in layer])

    def set_weights(self, weights: Sequence[float]) -> None:
        """Copy a flat weight vector into the neurons.

        Raises
        ------
        SizeMismatchError
            If ``len(weights) != n_weights``
        """
        weights = np.asarray(weights, dtype=float)
        if weights.ndim != 1 or weights.shape[0] != self.n_weights:
            raise SizeMismatchError(
                f"Expected {self.n_weights} weights, got shape {weights.shape}"
            )

        index = 0
        for layer in range(1, self.n_layers):
            n = self.neuron_weight_count(layer)
            for neuron in self._layers[layer]:
                neuron.weights[:] = weights[index:index + n]
                index += n

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def set_input(self, inputs: Sequence[float]) -> None:
        inputs = np.asarray(inputs, dtype=float)
        if inputs.shape != (self.n_inputs,):
            raise DimensionMismatchError(
                f"Network expects {self.n_inputs} inputs, got shape {inputs.shape}"
            )
        for neuron, value in zip(self._layers[0], inputs):
            neuron.set_input(value)

    def get_output(self) -> np.ndarray:
        """Cached outputs of the output layer from the latest propagation."""
        return np.array([neuron.output for neuron in self._layers[-1]])

    def layer_input(self, layer: int) -> np.ndarray:
        """Outputs of ``layer - 1`` with the bias input appended."""
        previous = self._layers[layer - 1]
        inputs = np.empty(len(previous) + 1)
        for i, neuron in enumerate(previous):
            inputs[i] = neuron.output
        inputs[-1] = self.bias_input
        return inputs

    def forward_propagate(self, start_layer: int = 1, end_layer: Optional[int] = None) -> None:
        """Evaluate layers ``start_layer`` through ``end_layer`` inclusive.

        Each layer reads the cached outputs of the layer before it, so
        propagating from ``start_layer > 1`` reuses the state computed earlier.
        """
        if end_layer is None:
            end_layer = self.n_layers - 1
        self._check_layer(start_layer)
        if not start_layer <= end_layer < self.n_layers:
            raise InvalidRangeError(
                f"Cannot propagate from layer {start_layer} to layer {end_layer} "
                f"in a network with {self.n_layers} layers"
            )

        for layer in range(start_layer, end_layer + 1):
            inputs = self.layer_input(layer)
            for neuron in self._layers[layer]:
                neuron.forward_propagate(inputs)

    def execute(self, inputs: Sequence[float]) -> np.ndarray:
        """Run the full network on ``inputs`` and return its outputs."""
        self.set_input(inputs)
        self.forward_propagate()
        return self.get_output()

    # ------------------------------------------------------------------
    # Jacobian
    # ------------------------------------------------------------------

    def propagate_weight_change(self,
                                layer: int,
                                from_index: int,
                                to_index: int,
                                delta: float) -> np.ndarray:
        """Output of the network if one weight were changed by ``delta``.

        The weight is the connection from neuron ``from_index`` of layer
        ``layer - 1`` to neuron ``to_index`` of ``layer``; ``from_index`` equal
        to the width of ``layer - 1`` selects the bias weight. The weight
        itself is left untouched and the cached state of every neuron is
        restored before returning, so the network must hold a complete
        forward propagation when this is called.

        Returns
        -------
        np.ndarray, shape (n_outputs,)
            The perturbed network output
        """
        self._check_layer(layer)
        if not 0 <= to_index < self.layer_size(layer):
            raise InvalidRangeError(f"Layer {layer} has no neuron {to_index}")
        n_from = self.layer_size(layer - 1)
        if not 0 <= from_index <= n_from:
            raise InvalidRangeError(
                f"Neuron {to_index} of layer {layer} has no weight {from_index}"
            )

        if from_index == n_from:
            from_input = self.bias_input
        else:
            from_input = self._layers[layer - 1][from_index].output

        to_neuron = self._layers[layer][to_index]
        affected = [to_neuron] + [neuron
                                  for later in self._layers[layer + 1:]
                                  for neuron in later]

        with preserved_state(affected):
            old_output = to_neuron.output
            to_neuron.weighted_sum += delta * from_input
            to_neuron.output = to_neuron.compute_output(to_neuron.weighted_sum)

            # Only one input of the next layer changed
            next_layer = layer + 1
            if next_layer < self.n_layers:
                output_change = to_neuron.output - old_output
                for neuron in self._layers[next_layer]:
                    neuron.weighted_sum += output_change * neuron.weights[to_index]
                    neuron.output = neuron.compute_output(neuron.weighted_sum)

            if next_layer + 1 < self.n_layers:
                self.forward_propagate(next_layer + 1)

            return self.get_output()

    def weight_indices(self) -> Iterator[Tuple[int, int, int]]:
        """Yield ``(layer, from_index, to_index)`` for every weight in flat order."""
        for layer in range(1, self.n_layers):
            for to_index in range(self.layer_size(layer)):
                for from_index in range(self.neuron_weight_count(layer)):
                    yield layer, from_index, to_index

    def jacobian(self, mode: Optional[JacobianMode] = None) -> np.ndarray:
        """Jacobian H of the outputs with respect to the flat weight vector.

        Must follow a full forward propagation (e.g. :meth:`execute`); the
        outputs cached by that propagation are the finite-difference baseline.

        Parameters
        ----------
        mode : Optional[JacobianMode]
            Overrides the network's ``jacobian_mode`` for this call

        Returns
        -------
        np.ndarray, shape (n_outputs, n_weights)
        """
        mode = self.jacobian_mode if mode is None else JacobianMode(mode)
        delta = self.weight_change
        baseline = self.get_output()

        H = np.zeros((self.n_outputs, self.n_weights))
        for column, (layer, from_index, to_index) in enumerate(self.weight_indices()):
            perturbed = self.propagate_weight_change(layer, from_index, to_index, delta)
            if mode is JacobianMode.FINITE_DIFFERENCE:
                H[:, column] = (perturbed - baseline) / delta
            else:
                H[:, column] = perturbed / delta

        logger.debug("Computed %dx%d Jacobian (%s)", H.shape[0], H.shape[1], mode.value)
        return H

    def __repr__(self) -> str:
        return f"EKFANN(layer_sizes={list(self._layer_sizes)}, n_weights={self.n_weights})"
