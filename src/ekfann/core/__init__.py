"""Core algorithms for EKF-trained feed-forward networks.

This module contains the fundamental components:
- Dense matrix primitives
- Neurons and transfer functions
- The layered network with perturbation-based Jacobians
- The Extended Kalman Filter training step and online loop
"""

from .exceptions import (
    EKFANNError,
    DimensionMismatchError,
    SizeMismatchError,
    InvalidRangeError,
    SingularMatrixError
)
from .transfer import TransferFunction
from .neuron import Neuron, NeuronState
from .network import EKFANN, JacobianMode, preserved_state
from .trainer import EKFTrainer, EKFStepResult, diagonal_noise, initial_covariance
from .online import OnlineEKFTraining, StepStatistics

__all__ = [
    # Errors
    'EKFANNError',
    'DimensionMismatchError',
    'SizeMismatchError',
    'InvalidRangeError',
    'SingularMatrixError',

    # Network
    'TransferFunction',
    'Neuron',
    'NeuronState',
    'EKFANN',
    'JacobianMode',
    'preserved_state',

    # Training
    'EKFTrainer',
    'EKFStepResult',
    'diagonal_noise',
    'initial_covariance',
    'OnlineEKFTraining',
    'StepStatistics'
]
