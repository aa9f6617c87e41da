"""Tests for neurons and transfer functions."""

import math

import pytest
import numpy as np

from ekfann.core import Neuron, NeuronState, TransferFunction, DimensionMismatchError


class TestTransferFunction:
    """Test suite for TransferFunction."""

    def test_identity(self):
        assert TransferFunction.IDENTITY.compute(-3.5) == -3.5
        assert TransferFunction.IDENTITY.compute(0.0) == 0.0

    def test_hyperbolic_tangent(self):
        assert TransferFunction.HYPERBOLIC_TANGENT.compute(0.7) == pytest.approx(math.tanh(0.7))
        assert TransferFunction.HYPERBOLIC_TANGENT.compute(50.0) == pytest.approx(1.0)

    @pytest.mark.parametrize("n_layers", [2, 3, 5])
    def test_layer_policy(self, n_layers):
        for layer in range(1, n_layers - 1):
            assert TransferFunction.for_layer(layer, n_layers) is TransferFunction.HYPERBOLIC_TANGENT
        assert TransferFunction.for_layer(n_layers - 1, n_layers) is TransferFunction.IDENTITY

    def test_lookup_by_value(self):
        assert TransferFunction("tanh") is TransferFunction.HYPERBOLIC_TANGENT


class TestNeuron:
    """Test suite for Neuron."""

    def test_forward_propagate_identity(self):
        neuron = Neuron(np.array([0.5, -1.0, 2.0]), TransferFunction.IDENTITY)
        output = neuron.forward_propagate(np.array([2.0, 1.0, 1.0]))

        assert neuron.weighted_sum == pytest.approx(2.0)
        assert output == pytest.approx(2.0)
        assert neuron.output == output

    def test_forward_propagate_tanh(self):
        neuron = Neuron(np.array([1.0, 1.0]), TransferFunction.HYPERBOLIC_TANGENT)
        neuron.forward_propagate(np.array([0.25, 1.0]))

        assert neuron.weighted_sum == pytest.approx(1.25)
        assert neuron.output == pytest.approx(math.tanh(1.25))

    def test_forward_propagate_accepts_lists(self):
        neuron = Neuron([1.0, 2.0])
        assert neuron.forward_propagate([3.0, 4.0]) == pytest.approx(11.0)

    def test_input_length_mismatch(self):
        neuron = Neuron(np.ones(3))
        with pytest.raises(DimensionMismatchError):
            neuron.forward_propagate(np.ones(2))

    def test_input_placeholder(self):
        neuron = Neuron()
        assert neuron.is_input
        assert neuron.n_weights == 0

        neuron.set_input(0.3)
        assert neuron.weighted_sum == 0.3
        assert neuron.output == 0.3

        with pytest.raises(DimensionMismatchError):
            neuron.forward_propagate(np.ones(1))

    def test_weights_are_copied_on_construction(self):
        weights = np.array([1.0, 2.0])
        neuron = Neuron(weights)
        weights[0] = 9.0

        assert neuron.weights[0] == 1.0

    def test_snapshot_and_restore(self):
        neuron = Neuron(np.array([1.0, 0.0]), TransferFunction.HYPERBOLIC_TANGENT)
        neuron.forward_propagate(np.array([0.5, 1.0]))
        saved = neuron.snapshot()

        neuron.forward_propagate(np.array([3.0, 1.0]))
        assert neuron.snapshot() != saved

        neuron.restore(saved)
        assert neuron.snapshot() == saved
        assert isinstance(saved, NeuronState)
