"""Extended Kalman Filter weight update for EKF networks.

The network weights are treated as the state of a random-walk model observed
through the nonlinear network output:

    w_t = w_{t-1} + process noise (Q)
    y_t = f(x_t; w_t) + measurement noise (R)

One call to :meth:`EKFTrainer.step` performs a full predict/update cycle:

    P_pred = P + Q
    z      = f(x; w)
    H      = ∂f/∂w at w
    S      = H · P_pred · Hᵗ + R
    K      = P_pred · Hᵗ · S⁻¹
    w_new  = w + K · (y - z)
    P_new  = sym((I - K·H) · P_pred · (I - K·H)ᵗ)
"""

from dataclasses import dataclass
from typing import Sequence
import logging
import warnings

import numpy as np

from . import matrix
from .exceptions import DimensionMismatchError
from .network import EKFANN

logger = logging.getLogger(__name__)


@dataclass
class EKFStepResult:
    """Quantities computed during one EKF step.

    Attributes
    ----------
    prediction : np.ndarray, shape (M,)
        Network output z before the update
    innovation : np.ndarray, shape (M,)
        targets - z
    jacobian : np.ndarray, shape (M, N)
        Jacobian H at the pre-update weights
    kalman_gain : np.ndarray, shape (N, M)
        Kalman gain K
    """
    prediction: np.ndarray
    innovation: np.ndarray
    jacobian: np.ndarray
    kalman_gain: np.ndarray


def diagonal_noise(n: int, variance: float) -> np.ndarray:
    """Return the n×n diagonal noise covariance ``variance · I``."""
    if variance < 0:
        raise ValueError(f"Noise variance must be non-negative, got {variance}")
    return variance * matrix.identity(n)


def initial_covariance(n: int, variance: float = 1.0) -> np.ndarray:
    """Initial weight covariance ``variance · I`` for a fresh filter."""
    if variance <= 0:
        raise ValueError(f"Initial covariance must be positive, got {variance}")
    return variance * matrix.identity(n)


class EKFTrainer:
    """Train an :class:`EKFANN` one sample at a time with an EKF.

    Parameters
    ----------
    network : EKFANN
        Network whose weights are estimated
    Q : np.ndarray, shape (N, N)
        Process noise covariance, N = ``network.n_weights``
    R : np.ndarray, shape (M, M)
        Measurement noise covariance, M = ``network.n_outputs``
    joseph_form : bool, default=False
        Add ``K·R·Kᵗ`` to the covariance update, giving the full Joseph form.
        Without it the update is ``(I-K·H)·P_pred·(I-K·H)ᵗ``.

    Notes
    -----
    The weight vector and covariance passed to :meth:`step` are owned by the
    caller and overwritten in place. Callers must not run concurrent steps
    over the same buffers or the same network.
    """

    def __init__(self,
                 network: EKFANN,
                 Q: np.ndarray,
                 R: np.ndarray,
                 joseph_form: bool = False):
        self.network = network
        n, m = network.n_weights, network.n_outputs

        Q = np.asarray(Q, dtype=float)
        R = np.asarray(R, dtype=float)
        if Q.shape != (n, n):
            raise DimensionMismatchError(f"Q must be ({n}, {n}), got {Q.shape}")
        if R.shape != (m, m):
            raise DimensionMismatchError(f"R must be ({m}, {m}), got {R.shape}")

        self.Q = Q
        self.R = R
        self.joseph_form = joseph_form

    @property
    def n_weights(self) -> int:
        return self.network.n_weights

    @property
    def n_outputs(self) -> int:
        return self.network.n_outputs

    def _validate_step_arguments(self, inputs: np.ndarray, targets: np.ndarray,
                                 weights: np.ndarray, P: np.ndarray) -> None:
        n, m = self.n_weights, self.n_outputs
        if targets.shape != (m,):
            raise DimensionMismatchError(f"targets must have shape ({m},), got {targets.shape}")
        if (not isinstance(weights, np.ndarray) or weights.shape != (n,)
                or not np.issubdtype(weights.dtype, np.floating)):
            raise DimensionMismatchError(
                f"weights must be a float array of shape ({n},), got {getattr(weights, 'shape', type(weights))}"
            )
        if (not isinstance(P, np.ndarray) or P.shape != (n, n)
                or not np.issubdtype(P.dtype, np.floating)):
            raise DimensionMismatchError(
                f"P must be a float array of shape ({n}, {n}), got {getattr(P, 'shape', type(P))}"
            )
        if inputs.shape != (self.network.n_inputs,):
            raise DimensionMismatchError(
                f"inputs must have shape ({self.network.n_inputs},), got {inputs.shape}"
            )

    def step(self,
             inputs: Sequence[float],
             targets: Sequence[float],
             weights: np.ndarray,
             P: np.ndarray) -> EKFStepResult:
        """Run one EKF predict/update cycle.

        Parameters
        ----------
        inputs : Sequence[float], shape (n_inputs,)
            Network input for this sample
        targets : Sequence[float], shape (M,)
            Observed outputs for this sample
        weights : np.ndarray, shape (N,)
            Current weights, overwritten with the updated weights
        P : np.ndarray, shape (N, N)
            Current weight covariance, overwritten with the updated covariance

        Returns
        -------
        EKFStepResult
            Prediction, innovation, Jacobian and Kalman gain of this step

        Raises
        ------
        DimensionMismatchError
            If any argument has the wrong shape
        SingularMatrixError
            If the innovation covariance S cannot be inverted. ``weights`` and
            ``P`` are left unchanged in that case.
        """
        inputs = np.asarray(inputs, dtype=float)
        targets = np.asarray(targets, dtype=float)
        self._validate_step_arguments(inputs, targets, weights, P)

        n, m = self.n_weights, self.n_outputs

        self.network.set_weights(weights)

        # Prediction
        P_pred = matrix.copy(P)
        matrix.add(P_pred, self.Q)

        z = self.network.execute(inputs)
        H = self.network.jacobian()

        # S = H·P_pred·Hᵗ + R, with P_pred·Hᵗ kept for the gain
        PHt = np.empty((n, m))
        matrix.multiply_transpose_second(P_pred, H, PHt)
        S = np.empty((m, m))
        matrix.multiply(H, PHt, S)
        matrix.add(S, self.R)

        # K = P_pred·Hᵗ·S⁻¹
        S_inv = np.empty((m, m))
        matrix.inverse(S, S_inv)
        K = np.empty((n, m))
        matrix.multiply(PHt, S_inv, K)

        # w_new = w + K·(y - z)
        innovation = targets - z
        w_new = np.empty(n)
        matrix.multiply(K, innovation, w_new)
        matrix.add(w_new, weights)

        # P_new = (I - K·H)·P_pred·(I - K·H)ᵗ
        I_KH = np.empty((n, n))
        matrix.multiply(K, H, I_KH)
        np.negative(I_KH, out=I_KH)
        I_KH[np.diag_indices(n)] += 1.0

        IKH_P = np.empty((n, n))
        matrix.multiply(I_KH, P_pred, IKH_P)
        P_new = np.empty((n, n))
        matrix.multiply_transpose_second(IKH_P, I_KH, P_new)

        if self.joseph_form:
            KR = np.empty((n, m))
            matrix.multiply(K, self.R, KR)
            KRKt = np.empty((n, n))
            matrix.multiply_transpose_second(KR, K, KRKt)
            matrix.add(P_new, KRKt)

        if not np.all(np.isfinite(w_new)) or not np.all(np.isfinite(P_new)):
            warnings.warn("EKF update produced non-finite weights or covariance")

        # Commit
        matrix.symmetrize(P_new, P)
        weights[:] = w_new
        self.network.set_weights(w_new)

        logger.debug("EKF step: |innovation|=%.6g trace(P)=%.6g",
                     float(np.linalg.norm(innovation)), float(np.trace(P)))

        return EKFStepResult(prediction=z, innovation=innovation,
                             jacobian=H, kalman_gain=K)
