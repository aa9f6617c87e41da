"""Dense matrix primitives used by the EKF training step.

All routines operate on explicit ``numpy.ndarray`` operands and validate
conformable shapes before computing anything. There is no implicit
broadcasting: a (3,) vector is never silently treated as a (1, 3) row.

Results are written into caller-supplied ``out`` arrays where the operation
has one, so the EKF step can compose the filter equations the same way they
are written down:

    S = H · P · Hᵗ + R        multiply_transpose_second, multiply, add
    K = P · Hᵗ · S⁻¹          inverse, multiply
"""

import warnings
from typing import Tuple

import numpy as np
from scipy import linalg

from .exceptions import DimensionMismatchError, InvalidRangeError, SingularMatrixError

# Largest 2-norm condition number accepted by inverse
MAX_CONDITION_NUMBER = 1e12


def _require_matrix(A: np.ndarray, name: str) -> None:
    if not isinstance(A, np.ndarray) or A.ndim != 2:
        raise DimensionMismatchError(f"{name} must be a 2-D array, got {getattr(A, 'shape', type(A))}")


def _require_array(A: np.ndarray, name: str) -> None:
    if not isinstance(A, np.ndarray):
        raise DimensionMismatchError(f"{name} must be a numpy array, got {type(A).__name__}")


def _require_shape(out: np.ndarray, shape: Tuple[int, ...], name: str = "out") -> None:
    if not isinstance(out, np.ndarray) or out.shape != shape:
        raise DimensionMismatchError(
            f"{name} must have shape {shape}, got {getattr(out, 'shape', type(out))}"
        )


def n_rows(A: np.ndarray) -> int:
    """Number of rows of matrix ``A``."""
    _require_matrix(A, "A")
    return A.shape[0]


def n_cols(A: np.ndarray) -> int:
    """Number of columns of matrix ``A``."""
    _require_matrix(A, "A")
    return A.shape[1]


def get_value(A: np.ndarray, i: int, j: int) -> float:
    """Return element ``A[i, j]`` with explicit bounds checking."""
    _require_matrix(A, "A")
    if not (0 <= i < A.shape[0] and 0 <= j < A.shape[1]):
        raise InvalidRangeError(f"Element ({i}, {j}) outside matrix of shape {A.shape}")
    return float(A[i, j])


def set_value(A: np.ndarray, i: int, j: int, value: float) -> None:
    """Set element ``A[i, j]`` with explicit bounds checking."""
    _require_matrix(A, "A")
    if not (0 <= i < A.shape[0] and 0 <= j < A.shape[1]):
        raise InvalidRangeError(f"Element ({i}, {j}) outside matrix of shape {A.shape}")
    A[i, j] = value


def identity(n: int) -> np.ndarray:
    """Return the n×n identity matrix."""
    if n < 1:
        raise DimensionMismatchError(f"Identity size must be positive, got {n}")
    return np.eye(n)


def copy(A: np.ndarray) -> np.ndarray:
    """Return an independent copy of ``A``."""
    return np.array(A, dtype=float, copy=True)


def add(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """In-place ``A += B``.

    Parameters
    ----------
    A : np.ndarray
        Accumulator, modified in place
    B : np.ndarray
        Addend, must have exactly the shape of ``A``

    Returns
    -------
    np.ndarray
        ``A`` itself, for chaining
    """
    _require_array(A, "A")
    _require_array(B, "B")
    if A.shape != B.shape:
        raise DimensionMismatchError(f"Cannot add {B.shape} to {A.shape}")
    A += B
    return A


def multiply(A: np.ndarray, B: np.ndarray, out: np.ndarray) -> np.ndarray:
    """Compute ``out = A · B``.

    ``B`` may be a matrix (k, n) giving ``out`` of shape (m, n), or a vector
    (k,) giving ``out`` of shape (m,).
    """
    _require_matrix(A, "A")
    _require_array(B, "B")
    if B.ndim == 1:
        if A.shape[1] != B.shape[0]:
            raise DimensionMismatchError(f"Cannot multiply {A.shape} by vector {B.shape}")
        _require_shape(out, (A.shape[0],))
    elif B.ndim == 2:
        if A.shape[1] != B.shape[0]:
            raise DimensionMismatchError(f"Cannot multiply {A.shape} by {B.shape}")
        _require_shape(out, (A.shape[0], B.shape[1]))
    else:
        raise DimensionMismatchError(f"B must be 1-D or 2-D, got {B.ndim}-D")

    np.matmul(A, B, out=out)
    return out


def multiply_transpose_second(A: np.ndarray, B: np.ndarray, out: np.ndarray) -> np.ndarray:
    """Compute ``out = A · Bᵗ`` without materialising ``Bᵗ``.

    Parameters
    ----------
    A : np.ndarray, shape (m, k)
    B : np.ndarray, shape (n, k)
    out : np.ndarray, shape (m, n)
    """
    _require_matrix(A, "A")
    _require_matrix(B, "B")
    if A.shape[1] != B.shape[1]:
        raise DimensionMismatchError(f"Cannot multiply {A.shape} by transpose of {B.shape}")
    _require_shape(out, (A.shape[0], B.shape[0]))

    # B.T is a strided view, no data is copied
    np.matmul(A, B.T, out=out)
    return out


def inverse(A: np.ndarray, out: np.ndarray) -> np.ndarray:
    """Compute ``out = A⁻¹`` via LU decomposition.

    Raises
    ------
    DimensionMismatchError
        If ``A`` is not square or ``out`` has the wrong shape
    SingularMatrixError
        If ``A`` is singular, ill-conditioned (condition number above
        ``MAX_CONDITION_NUMBER``) or contains non-finite values
    """
    _require_matrix(A, "A")
    if A.shape[0] != A.shape[1]:
        raise DimensionMismatchError(f"Only square matrices can be inverted, got {A.shape}")
    _require_shape(out, A.shape)

    if not np.all(np.isfinite(A)):
        raise SingularMatrixError("Matrix contains non-finite values and cannot be inverted")

    condition = np.linalg.cond(A)
    if not condition <= MAX_CONDITION_NUMBER:
        raise SingularMatrixError(
            f"Matrix of shape {A.shape} is ill-conditioned (condition number {condition:.3g})"
        )

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", linalg.LinAlgWarning)
            A_inv = linalg.inv(A, check_finite=False)
    except linalg.LinAlgWarning as exc:
        raise SingularMatrixError(f"Matrix of shape {A.shape} is ill-conditioned") from exc
    except linalg.LinAlgError as exc:
        raise SingularMatrixError(f"Matrix of shape {A.shape} is singular") from exc

    if not np.all(np.isfinite(A_inv)):
        raise SingularMatrixError(f"Matrix of shape {A.shape} is numerically singular")

    out[...] = A_inv
    return out


def symmetrize(A: np.ndarray, out: np.ndarray) -> np.ndarray:
    """Compute ``out = (A + Aᵗ) / 2``.

    ``out`` may not alias ``A``.
    """
    _require_matrix(A, "A")
    if A.shape[0] != A.shape[1]:
        raise DimensionMismatchError(f"Only square matrices can be symmetrized, got {A.shape}")
    _require_shape(out, A.shape)
    if np.shares_memory(A, out):
        raise ValueError("symmetrize() cannot write into its own input")

    np.add(A, A.T, out=out)
    out *= 0.5
    return out
