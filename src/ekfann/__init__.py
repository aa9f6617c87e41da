"""
EKFANN - Extended Kalman Filter training of small feed-forward networks.

This package provides the networks, Jacobian computation and EKF weight
updates used for very-short-term electrical load forecasting.
"""

__version__ = "0.1.0"

from .core import EKFANN, EKFTrainer, OnlineEKFTraining, JacobianMode
