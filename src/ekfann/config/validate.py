"""Environment validation for EKFANN dependencies."""

import sys
from packaging import version


def check_environment(min_numpy: str = "1.24", min_scipy: str = "1.10") -> None:
    """Check that environment meets minimum dependency requirements.

    Parameters
    ----------
    min_numpy : str, default="1.24"
        Minimum required NumPy version
    min_scipy : str, default="1.10"
        Minimum required SciPy version

    Raises
    ------
    RuntimeError
        If any dependency requirements are not met
    """
    errors = []

    if sys.version_info < (3, 9):
        errors.append(f"Python 3.9+ required, found {sys.version_info.major}.{sys.version_info.minor}")

    try:
        import numpy as np
        if version.parse(np.__version__) < version.parse(min_numpy):
            errors.append(f"NumPy {min_numpy}+ required, found {np.__version__}")
    except ImportError:
        errors.append("NumPy not installed - required for array operations")

    try:
        import scipy
        if version.parse(scipy.__version__) < version.parse(min_scipy):
            errors.append(f"SciPy {min_scipy}+ required, found {scipy.__version__}")
    except ImportError:
        errors.append("SciPy not installed - required for matrix inversion")

    optional_warnings = []

    try:
        import matplotlib
        if version.parse(matplotlib.__version__) < version.parse("3.5"):
            optional_warnings.append(f"Matplotlib 3.5+ recommended, found {matplotlib.__version__}")
    except ImportError:
        optional_warnings.append("Matplotlib not found - required for training plots")

    try:
        import pandas  # noqa: F401
    except ImportError:
        optional_warnings.append("pandas not found - required for reading load CSV files")

    try:
        import sklearn  # noqa: F401
    except ImportError:
        optional_warnings.append("scikit-learn not found - required for scaling load increments")

    if errors:
        error_msg = "Environment validation failed:\n" + "\n".join(f"  - {err}" for err in errors)

        if optional_warnings:
            error_msg += "\n\nWarnings:\n" + "\n".join(f"  - {warn}" for warn in optional_warnings)

        error_msg += "\n\nTo install required dependencies:\n  pip install numpy scipy scikit-learn matplotlib pandas packaging"

        raise RuntimeError(error_msg)

    if optional_warnings:
        import warnings
        warning_msg = "Environment warnings:\n" + "\n".join(f"  - {warn}" for warn in optional_warnings)
        warnings.warn(warning_msg, UserWarning)


def get_dependency_versions() -> dict:
    """Get versions of all relevant dependencies.

    Returns
    -------
    dict
        Dictionary mapping package names to version strings
    """
    versions = {
        'python': f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    }

    for name in ('numpy', 'scipy', 'sklearn', 'matplotlib', 'pandas', 'packaging', 'tomli_w'):
        try:
            module = __import__(name)
            versions[name] = getattr(module, '__version__', 'unknown')
        except ImportError:
            versions[name] = 'not installed'

    try:
        import tomllib  # noqa: F401
        versions['tomllib'] = 'built-in (3.11+)'
    except ImportError:
        try:
            import tomli
            versions['tomli'] = tomli.__version__
        except ImportError:
            versions['tomli'] = 'not installed'

    return versions


def print_environment_info() -> None:
    """Print comprehensive environment information."""
    versions = get_dependency_versions()

    print("EKFANN - Environment Information")
    print("=" * 50)

    print("\nCore Dependencies:")
    for pkg in ['python', 'numpy', 'scipy']:
        print(f"  {pkg:12}: {versions[pkg]}")

    print("\nData & Visualization:")
    for pkg in ['pandas', 'sklearn', 'matplotlib']:
        print(f"  {pkg:12}: {versions[pkg]}")

    print("\nConfiguration:")
    for pkg in ['packaging', 'tomllib', 'tomli', 'tomli_w']:
        if pkg in versions:
            print(f"  {pkg:12}: {versions[pkg]}")

    print("\nSystem Information:")
    print(f"  Platform     : {sys.platform}")
    print(f"  Architecture : {sys.maxsize > 2**32 and '64-bit' or '32-bit'}")


def validate_numerical_stability() -> None:
    """Check that matrix inversion and symmetric products behave as expected."""
    import numpy as np
    from ..core import matrix, SingularMatrixError

    try:
        A = np.random.randn(20, 20)
        spd = A @ A.T + 20 * np.eye(20)
        inv = np.empty_like(spd)
        matrix.inverse(spd, inv)
        if not np.allclose(spd @ inv, np.eye(20), atol=1e-8):
            raise RuntimeError("Matrix inverse round-trip failed")

        eigenvals = np.linalg.eigvalsh(spd)
        if not np.all(eigenvals > 0):
            raise RuntimeError("Symmetric positive definite test matrix has non-positive eigenvalues")
    except SingularMatrixError as e:
        raise RuntimeError(f"Numerical stability validation failed: {e}") from e
