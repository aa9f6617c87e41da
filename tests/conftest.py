"""
Pytest configuration and shared fixtures for the EKFANN test suite.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path for testing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import matplotlib
matplotlib.use("Agg")

from ekfann.config import set_global_seed
from ekfann.core import EKFANN, EKFTrainer, diagonal_noise


@pytest.fixture(scope="session")
def global_test_seed():
    """Set global random seed for all tests to ensure reproducibility."""
    seed = 42
    set_global_seed(seed)
    np.random.seed(seed)
    return seed


@pytest.fixture
def rng():
    """Independent generator so tests do not depend on execution order."""
    return np.random.default_rng(1234)


@pytest.fixture
def small_topology():
    """Two inputs, one hidden layer of three, one output."""
    return (2, 3, 1)


@pytest.fixture
def deep_topology():
    """Two hidden layers and several outputs."""
    return (3, 4, 3, 2)


@pytest.fixture
def small_network(small_topology, rng):
    return EKFANN(small_topology, rng=rng)


@pytest.fixture
def deep_network(deep_topology, rng):
    return EKFANN(deep_topology, rng=rng)


@pytest.fixture
def small_trainer(small_network):
    """Trainer with modest process and measurement noise."""
    Q = diagonal_noise(small_network.n_weights, 1e-4)
    R = diagonal_noise(small_network.n_outputs, 1e-2)
    return EKFTrainer(small_network, Q, R)


class TestDataGenerator:
    """Helper class for generating test data."""

    @staticmethod
    def full_reevaluation_jacobian(network: EKFANN, inputs: np.ndarray,
                                   eps: float = 1e-6) -> np.ndarray:
        """Forward-difference Jacobian by re-running the whole network per weight."""
        weights = network.get_weights()
        baseline = network.execute(inputs)
        H = np.zeros((network.n_outputs, network.n_weights))
        for j in range(network.n_weights):
            perturbed = weights.copy()
            perturbed[j] += eps
            network.set_weights(perturbed)
            H[:, j] = (network.execute(inputs) - baseline) / eps
        network.set_weights(weights)
        network.execute(inputs)
        return H

    @staticmethod
    def random_spd(n: int, seed: int = 0) -> np.ndarray:
        """Random symmetric positive definite matrix."""
        rng = np.random.default_rng(seed)
        A = rng.standard_normal((n, n))
        return A @ A.T + n * np.eye(n)


@pytest.fixture
def test_data_generator():
    """Test data generator fixture."""
    return TestDataGenerator


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "visual: marks tests that generate visual output"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark slow and integration tests."""
    for item in items:
        if "large" in item.nodeid:
            item.add_marker(pytest.mark.slow)

        if "integration" in item.nodeid or "end_to_end" in item.nodeid:
            item.add_marker(pytest.mark.integration)
