"""Tests for the EKF network: propagation, weights and Jacobians."""

import math

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_almost_equal, assert_array_equal

from ekfann.core import (
    EKFANN, JacobianMode, TransferFunction, preserved_state,
    DimensionMismatchError, SizeMismatchError, InvalidRangeError
)


def all_states(network):
    return [[network.neuron(l, i).snapshot() for i in range(network.layer_size(l))]
            for l in range(network.n_layers)]


class TestConstruction:
    """Test suite for EKFANN construction."""

    def test_weight_count(self, small_network, deep_network):
        assert small_network.n_weights == 3 * (2 + 1) + 1 * (3 + 1)
        assert deep_network.n_weights == 4 * 4 + 3 * 5 + 2 * 4

    def test_shape_accessors(self, deep_network):
        assert deep_network.layer_sizes == (3, 4, 3, 2)
        assert deep_network.n_layers == 4
        assert deep_network.n_inputs == 3
        assert deep_network.n_outputs == 2
        assert deep_network.neuron_weight_count(2) == 5

    def test_transfer_function_policy(self, deep_network):
        assert deep_network.neuron(1, 0).transfer is TransferFunction.HYPERBOLIC_TANGENT
        assert deep_network.neuron(2, 2).transfer is TransferFunction.HYPERBOLIC_TANGENT
        assert deep_network.neuron(3, 1).transfer is TransferFunction.IDENTITY
        assert deep_network.neuron(0, 0).is_input

    def test_initial_weights_in_unit_interval(self, deep_network):
        weights = deep_network.get_weights()
        assert np.all(weights >= 0.0)
        assert np.all(weights < 1.0)

    def test_neurons_own_their_weights(self, small_network):
        first = small_network.neuron(1, 0)
        second = small_network.neuron(1, 1)
        assert not np.shares_memory(first.weights, second.weights)

        first.weights[0] = 42.0
        assert second.weights[0] != 42.0

    def test_seeded_construction_is_reproducible(self, small_topology):
        a = EKFANN(small_topology, rng=np.random.default_rng(7))
        b = EKFANN(small_topology, rng=np.random.default_rng(7))
        assert_array_equal(a.get_weights(), b.get_weights())

    def test_global_seed_construction_is_reproducible(self, small_topology):
        np.random.seed(3)
        a = EKFANN(small_topology)
        np.random.seed(3)
        b = EKFANN(small_topology)
        assert_array_equal(a.get_weights(), b.get_weights())

    @pytest.mark.parametrize("topology", [(3,), (), (2, 0, 1), (2, -1)])
    def test_invalid_topology(self, topology):
        with pytest.raises(DimensionMismatchError):
            EKFANN(topology)

    def test_zero_weight_change_rejected(self, small_topology):
        with pytest.raises(ValueError):
            EKFANN(small_topology, weight_change=0.0)


class TestWeights:
    """Test suite for flattening and restoring weights."""

    def test_round_trip_preserves_output(self, deep_network):
        inputs = np.array([0.2, -0.4, 0.9])
        before = deep_network.execute(inputs)

        deep_network.set_weights(deep_network.get_weights())

        assert_array_equal(deep_network.execute(inputs), before)

    def test_flatten_order(self, small_network):
        n = small_network.n_weights
        small_network.set_weights(np.arange(n, dtype=float))

        assert_array_equal(small_network.neuron(1, 0).weights, [0.0, 1.0, 2.0])
        assert_array_equal(small_network.neuron(1, 1).weights, [3.0, 4.0, 5.0])
        assert_array_equal(small_network.neuron(1, 2).weights, [6.0, 7.0, 8.0])
        assert_array_equal(small_network.neuron(2, 0).weights, [9.0, 10.0, 11.0, 12.0])
        assert_array_equal(small_network.get_weights(), np.arange(n, dtype=float))

    def test_weight_indices_follow_flatten_order(self, small_network):
        indices = list(small_network.weight_indices())

        assert len(indices) == small_network.n_weights
        assert indices[0] == (1, 0, 0)
        assert indices[2] == (1, 2, 0)   # bias of the first hidden neuron
        assert indices[3] == (1, 0, 1)
        assert indices[-1] == (2, 3, 0)  # bias of the output neuron

    def test_get_weights_returns_copy(self, small_network):
        weights = small_network.get_weights()
        weights[:] = 0.0
        assert np.any(small_network.get_weights() != 0.0)

    @pytest.mark.parametrize("delta", [-1, 1])
    def test_set_weights_size_mismatch(self, small_network, delta):
        with pytest.raises(SizeMismatchError):
            small_network.set_weights(np.zeros(small_network.n_weights + delta))

    def test_size_mismatch_is_a_dimension_mismatch(self, small_network):
        with pytest.raises(DimensionMismatchError):
            small_network.set_weights(np.zeros((small_network.n_weights, 1)))


class TestForwardPropagation:
    """Test suite for evaluation of the network."""

    def test_single_layer_perceptron(self):
        network = EKFANN((2, 1))
        network.set_weights([0.5, -0.25, 0.1])

        output = network.execute([2.0, 4.0])

        # 0.5*2 - 0.25*4 + 0.1*1 with an identity output
        assert output.shape == (1,)
        assert output[0] == pytest.approx(0.1)

    def test_hidden_layer_by_hand(self):
        network = EKFANN((1, 1, 1))
        network.set_weights([2.0, -0.5, 3.0, 0.25])

        output = network.execute([0.75])

        hidden = math.tanh(2.0 * 0.75 - 0.5)
        assert network.neuron(1, 0).weighted_sum == pytest.approx(1.0)
        assert network.neuron(1, 0).output == pytest.approx(hidden)
        assert output[0] == pytest.approx(3.0 * hidden + 0.25)

    def test_custom_bias_input(self):
        network = EKFANN((1, 1), bias_input=-2.0)
        network.set_weights([1.0, 0.5])

        assert network.execute([3.0])[0] == pytest.approx(2.0)

    def test_set_input_mismatch(self, small_network):
        with pytest.raises(DimensionMismatchError):
            small_network.set_input([1.0, 2.0, 3.0])
        with pytest.raises(DimensionMismatchError):
            small_network.execute([1.0])

    @pytest.mark.parametrize("start,end", [(0, 2), (3, 3), (2, 1), (1, 3)])
    def test_invalid_propagation_range(self, small_network, start, end):
        small_network.set_input([0.1, 0.2])
        with pytest.raises(InvalidRangeError):
            small_network.forward_propagate(start, end)

    def test_partial_propagation_reuses_cached_state(self, deep_network):
        inputs = np.array([0.1, 0.5, -0.3])
        deep_network.execute(inputs)

        # Change only the output layer, then re-run just that layer
        weights = deep_network.get_weights()
        weights[-1] += 0.5
        deep_network.set_weights(weights)
        deep_network.forward_propagate(3, 3)
        partial = deep_network.get_output()

        assert_array_almost_equal(partial, deep_network.execute(inputs))

    def test_execute_returns_independent_array(self, small_network):
        output = small_network.execute([0.3, 0.3])
        output[0] = 99.0
        assert small_network.get_output()[0] != 99.0


class TestWeightPerturbation:
    """Test suite for incremental propagation of a weight change."""

    def test_state_restored_after_perturbation(self, deep_network):
        deep_network.execute([0.3, -0.1, 0.8])
        before = all_states(deep_network)

        deep_network.propagate_weight_change(1, 2, 3, 0.05)

        assert all_states(deep_network) == before

    def test_weights_unchanged_by_perturbation(self, deep_network):
        deep_network.execute([0.3, -0.1, 0.8])
        weights = deep_network.get_weights()

        deep_network.propagate_weight_change(2, 1, 0, 0.05)

        assert_array_equal(deep_network.get_weights(), weights)

    @pytest.mark.parametrize("layer,from_index,to_index", [
        (1, 0, 0),   # first hidden layer
        (1, 3, 2),   # bias weight of the first hidden layer
        (2, 2, 1),   # second hidden layer, next layer is the output
        (3, 1, 1),   # output layer
        (3, 3, 0),   # bias weight of the output layer
    ])
    def test_matches_full_reevaluation(self, deep_network, layer, from_index, to_index):
        inputs = np.array([0.3, -0.1, 0.8])
        delta = 1e-3
        deep_network.execute(inputs)

        perturbed = deep_network.propagate_weight_change(layer, from_index, to_index, delta)

        neuron = deep_network.neuron(layer, to_index)
        neuron.weights[from_index] += delta
        expected = deep_network.execute(inputs)
        neuron.weights[from_index] -= delta

        assert_allclose(perturbed, expected, rtol=1e-12, atol=1e-12)

    def test_two_layer_network(self):
        network = EKFANN((2, 1))
        network.set_weights([1.0, 1.0, 0.0])
        network.execute([0.5, 2.0])

        perturbed = network.propagate_weight_change(1, 1, 0, 0.1)

        assert perturbed[0] == pytest.approx(2.5 + 0.1 * 2.0)
        assert network.get_output()[0] == pytest.approx(2.5)

    @pytest.mark.parametrize("layer,from_index,to_index", [
        (0, 0, 0), (4, 0, 0), (1, 5, 0), (1, -1, 0), (1, 0, 4), (2, 0, -1)
    ])
    def test_invalid_indices(self, deep_network, layer, from_index, to_index):
        deep_network.execute([0.3, -0.1, 0.8])
        with pytest.raises(InvalidRangeError):
            deep_network.propagate_weight_change(layer, from_index, to_index, 1e-3)

    def test_preserved_state_restores_on_error(self, small_network):
        small_network.execute([0.4, 0.6])
        before = all_states(small_network)
        neurons = [small_network.neuron(2, 0), small_network.neuron(1, 1)]

        with pytest.raises(RuntimeError):
            with preserved_state(neurons):
                for neuron in neurons:
                    neuron.weighted_sum = 123.0
                    neuron.output = -7.0
                raise RuntimeError("interrupted")

        assert all_states(small_network) == before


class TestJacobian:
    """Test suite for the perturbation-based Jacobian."""

    def test_shape(self, deep_network):
        deep_network.execute([0.3, -0.1, 0.8])
        H = deep_network.jacobian()
        assert H.shape == (deep_network.n_outputs, deep_network.n_weights)

    def test_single_layer_jacobian_is_input(self):
        network = EKFANN((2, 1))
        network.set_weights([0.5, -0.25, 0.1])
        network.execute([2.0, 4.0])

        H = network.jacobian()

        assert_allclose(H, [[2.0, 4.0, 1.0]], rtol=1e-6)

    @pytest.mark.parametrize("topology", [(2, 3, 1), (3, 4, 3, 2), (1, 5, 4)])
    def test_matches_full_reevaluation_finite_differences(self, topology, test_data_generator):
        network = EKFANN(topology, rng=np.random.default_rng(11))
        # Keep hidden neurons away from tanh saturation
        network.set_weights(network.get_weights() - 0.5)
        inputs = np.linspace(-0.5, 0.5, topology[0])

        expected = test_data_generator.full_reevaluation_jacobian(network, inputs, eps=1e-7)
        network.execute(inputs)
        H = network.jacobian()

        assert_allclose(H, expected, rtol=1e-4, atol=1e-5)

    def test_literal_mode_omits_baseline(self, deep_network):
        deep_network.execute([0.3, -0.1, 0.8])
        baseline = deep_network.get_output()
        delta = deep_network.weight_change

        H_fd = deep_network.jacobian(JacobianMode.FINITE_DIFFERENCE)
        H_literal = deep_network.jacobian(JacobianMode.LITERAL)

        # literal columns are perturbed/delta = H_fd + baseline/delta
        assert_allclose(H_literal * delta, H_fd * delta + baseline[:, None], atol=1e-9)
        assert not np.allclose(H_literal, H_fd)

    def test_mode_from_constructor(self, small_topology):
        network = EKFANN(small_topology, jacobian_mode="literal")
        assert network.jacobian_mode is JacobianMode.LITERAL

    def test_jacobian_leaves_state_unchanged(self, deep_network):
        deep_network.execute([0.3, -0.1, 0.8])
        before = all_states(deep_network)

        deep_network.jacobian()

        assert all_states(deep_network) == before
