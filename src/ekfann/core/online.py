"""Sample-by-sample EKF training loop.

:class:`EKFTrainer` performs a single filtering step over caller-owned
buffers. :class:`OnlineEKFTraining` owns those buffers across steps and keeps
a history of per-step statistics, which is what a forecasting loop that
receives one new load observation at a time needs.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Sequence, Any
import logging

import numpy as np

from .exceptions import DimensionMismatchError
from .trainer import EKFTrainer, EKFStepResult, initial_covariance

logger = logging.getLogger(__name__)


@dataclass
class StepStatistics:
    """Summary of one training step.

    Attributes
    ----------
    step : int
        Zero-based index of the sample
    prediction_error : np.ndarray, shape (M,)
        Innovation targets - prediction, per output
    rmse : float
        Root mean squared innovation over the outputs
    covariance_trace : float
        Trace of the weight covariance after the update
    """
    step: int
    prediction_error: np.ndarray
    rmse: float
    covariance_trace: float


class OnlineEKFTraining:
    """Keep the weight estimate and covariance of an EKF trainer across samples.

    Parameters
    ----------
    trainer : EKFTrainer
        Trainer performing each filtering step
    weights : Optional[np.ndarray]
        Initial weights. Defaults to the network's current weights.
    P : Optional[np.ndarray]
        Initial weight covariance. Defaults to ``initial_variance · I``.
    initial_variance : float, default=1.0
        Diagonal of the default initial covariance
    """

    def __init__(self,
                 trainer: EKFTrainer,
                 weights: Optional[np.ndarray] = None,
                 P: Optional[np.ndarray] = None,
                 initial_variance: float = 1.0):
        self.trainer = trainer
        n = trainer.n_weights

        if weights is None:
            weights = trainer.network.get_weights()
        self.weights = np.array(weights, dtype=float)
        if self.weights.shape != (n,):
            raise DimensionMismatchError(f"weights must have shape ({n},), got {self.weights.shape}")

        if P is None:
            P = initial_covariance(n, initial_variance)
        self.P = np.array(P, dtype=float)
        if self.P.shape != (n, n):
            raise DimensionMismatchError(f"P must have shape ({n}, {n}), got {self.P.shape}")

        self.history: List[StepStatistics] = []

    @property
    def n_steps(self) -> int:
        return len(self.history)

    def update(self, inputs: Sequence[float], targets: Sequence[float]) -> EKFStepResult:
        """Train on one sample and record its statistics."""
        result = self.trainer.step(inputs, targets, self.weights, self.P)

        error = result.innovation
        stats = StepStatistics(
            step=self.n_steps,
            prediction_error=error.copy(),
            rmse=float(np.sqrt(np.mean(error ** 2))),
            covariance_trace=float(np.trace(self.P)),
        )
        self.history.append(stats)
        return result

    def fit(self,
            inputs_seq: Iterable[Sequence[float]],
            targets_seq: Iterable[Sequence[float]]) -> List[StepStatistics]:
        """Train on every ``(inputs, targets)`` pair in order.

        Returns
        -------
        List[StepStatistics]
            Statistics of the steps run by this call
        """
        start = self.n_steps
        for inputs, targets in zip(inputs_seq, targets_seq):
            self.update(inputs, targets)

        logger.info("Trained on %d samples (total %d), last RMSE=%.6g",
                    self.n_steps - start, self.n_steps,
                    self.history[-1].rmse if self.history else float("nan"))
        return self.history[start:]

    def predict(self, inputs: Sequence[float]) -> np.ndarray:
        """Evaluate the network with the current weight estimate."""
        network = self.trainer.network
        network.set_weights(self.weights)
        return network.execute(inputs)

    def errors(self) -> np.ndarray:
        """Prediction errors of all recorded steps, shape (n_steps, M)."""
        if not self.history:
            return np.empty((0, self.trainer.n_outputs))
        return np.array([stats.prediction_error for stats in self.history])

    def summary(self, last: Optional[int] = None) -> Dict[str, Any]:
        """Aggregate error statistics over the recorded steps.

        Parameters
        ----------
        last : Optional[int]
            Only summarise the most recent ``last`` steps

        Returns
        -------
        Dict[str, Any]
            ``n_steps``, ``rmse``, ``mae`` and ``mae_per_output`` (mean
            absolute error of each forecast horizon)
        """
        errors = self.errors()
        if last is not None:
            errors = errors[-last:]
        if errors.shape[0] == 0:
            return {"n_steps": 0, "rmse": float("nan"), "mae": float("nan"),
                    "mae_per_output": np.full(self.trainer.n_outputs, np.nan)}

        return {
            "n_steps": int(errors.shape[0]),
            "rmse": float(np.sqrt(np.mean(errors ** 2))),
            "mae": float(np.mean(np.abs(errors))),
            "mae_per_output": np.mean(np.abs(errors), axis=0),
        }

    def history_as_dicts(self) -> List[Dict[str, Any]]:
        return [asdict(stats) for stats in self.history]
