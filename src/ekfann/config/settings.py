"""Main configuration settings with TOML loading support."""

from dataclasses import dataclass, field, asdict
from typing import Tuple, Optional, Union, TYPE_CHECKING
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ImportError:
    try:
        import tomli as tomllib  # Fallback for older Python
    except ImportError:
        tomllib = None

try:
    import tomli_w
except ImportError:
    tomli_w = None

from .defaults import RESEARCH_CONFIGS, DefaultConfig, validate_config

if TYPE_CHECKING:
    import numpy as np
    from ..core import EKFANN, EKFTrainer, OnlineEKFTraining


@dataclass
class Settings:
    """Main configuration settings for EKF load forecasting.

    Can be loaded from TOML files for user customization while providing
    sensible defaults for different forecasting scenarios.
    """

    # Network parameters
    layer_sizes: Tuple[int, ...] = (12, 10, 12)
    bias_input: float = 1.0
    weight_change: float = 1e-7
    jacobian_mode: str = "finite_difference"

    # Filter parameters
    process_noise: float = 1e-4
    measurement_noise: float = 1e-2
    initial_covariance: float = 1.0
    joseph_form: bool = False

    # Data parameters
    samples_per_day: int = 288
    n_days: int = 14

    # Visualization parameters
    figure_dpi: int = 150
    output_dir: str = "output"

    # Reproducibility
    random_seed: Optional[int] = None

    # Advanced settings
    verbose: bool = False

    def __post_init__(self):
        """Validate settings after initialization."""
        self.layer_sizes = tuple(int(size) for size in self.layer_sizes)

        # Ensure output directory exists
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)

        warnings = validate_config(self._as_default_config())
        if warnings and self.verbose:
            for warning in warnings:
                print(f"Configuration warning: {warning}")

    def _as_default_config(self) -> DefaultConfig:
        return DefaultConfig(
            layer_sizes=self.layer_sizes,
            bias_input=self.bias_input,
            weight_change=self.weight_change,
            jacobian_mode=self.jacobian_mode,
            process_noise=self.process_noise,
            measurement_noise=self.measurement_noise,
            initial_covariance=self.initial_covariance,
            joseph_form=self.joseph_form,
            samples_per_day=self.samples_per_day,
            n_days=self.n_days,
            figure_dpi=self.figure_dpi
        )

    @property
    def n_inputs(self) -> int:
        return self.layer_sizes[0]

    @property
    def n_outputs(self) -> int:
        return self.layer_sizes[-1]

    @classmethod
    def from_preset(cls, preset: str, **overrides) -> 'Settings':
        """Create settings from a preset configuration.

        Parameters
        ----------
        preset : str
            Preset name ('vstlf_5min', 'vstlf_hourly', 'minimal')
        **overrides
            Settings fields that replace the preset values

        Returns
        -------
        Settings
            Settings object with preset values
        """
        if preset not in RESEARCH_CONFIGS:
            raise ValueError(f"Unknown preset '{preset}'. Available: {list(RESEARCH_CONFIGS.keys())}")

        values = asdict(RESEARCH_CONFIGS[preset])
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_toml(cls, toml_path: Union[str, Path]) -> 'Settings':
        """Load settings from TOML file.

        Parameters
        ----------
        toml_path : Union[str, Path]
            Path to TOML configuration file

        Returns
        -------
        Settings
            Settings object with values from TOML file

        Raises
        ------
        ImportError
            If tomllib is not available
        FileNotFoundError
            If TOML file doesn't exist
        """
        if tomllib is None:
            raise ImportError("tomllib not available. Install tomli for Python < 3.11")

        toml_path = Path(toml_path)
        if not toml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {toml_path}")

        with open(toml_path, 'rb') as f:
            config_data = tomllib.load(f)

        settings_data = {}

        # Nested sections
        for section in ('network', 'filter', 'data', 'output', 'advanced'):
            if section in config_data:
                settings_data.update(config_data[section])

        # Also handle flat structure
        for key, value in config_data.items():
            if not isinstance(value, dict):
                settings_data[key] = value

        return cls(**settings_data)

    def to_toml(self, toml_path: Union[str, Path]) -> None:
        """Save settings to TOML file.

        Parameters
        ----------
        toml_path : Union[str, Path]
            Path where to save TOML configuration file

        Raises
        ------
        ImportError
            If tomli_w is not available
        """
        if tomli_w is None:
            raise ImportError("tomli_w not available. Install tomli-w for TOML writing")

        config_data = {
            'network': {
                'layer_sizes': list(self.layer_sizes),
                'bias_input': self.bias_input,
                'weight_change': self.weight_change,
                'jacobian_mode': self.jacobian_mode
            },
            'filter': {
                'process_noise': self.process_noise,
                'measurement_noise': self.measurement_noise,
                'initial_covariance': self.initial_covariance,
                'joseph_form': self.joseph_form
            },
            'data': {
                'samples_per_day': self.samples_per_day,
                'n_days': self.n_days
            },
            'output': {
                'figure_dpi': self.figure_dpi,
                'output_dir': self.output_dir
            },
            'advanced': {
                'verbose': self.verbose
            }
        }
        # TOML has no null value
        if self.random_seed is not None:
            config_data['advanced']['random_seed'] = self.random_seed

        toml_path = Path(toml_path)
        with open(toml_path, 'wb') as f:
            tomli_w.dump(config_data, f)

    def update(self, **kwargs) -> 'Settings':
        """Create new Settings with updated values.

        Parameters
        ----------
        **kwargs
            Settings fields to update

        Returns
        -------
        Settings
            New Settings object with updated values
        """
        current_dict = asdict(self)
        current_dict.update(kwargs)
        return Settings(**current_dict)

    def build_network(self, rng: Optional['np.random.Generator'] = None) -> 'EKFANN':
        """Create a freshly initialised network for these settings."""
        from ..core import EKFANN, JacobianMode

        return EKFANN(self.layer_sizes,
                      bias_input=self.bias_input,
                      weight_change=self.weight_change,
                      jacobian_mode=JacobianMode(self.jacobian_mode),
                      rng=rng)

    def build_trainer(self, network: Optional['EKFANN'] = None) -> 'EKFTrainer':
        """Create an EKF trainer with diagonal Q and R from these settings."""
        from ..core import EKFTrainer, diagonal_noise

        if network is None:
            network = self.build_network()
        Q = diagonal_noise(network.n_weights, self.process_noise)
        R = diagonal_noise(network.n_outputs, self.measurement_noise)
        return EKFTrainer(network, Q, R, joseph_form=self.joseph_form)

    def build_online_training(self, rng: Optional['np.random.Generator'] = None) -> 'OnlineEKFTraining':
        """Create network, trainer and online loop in one go."""
        from ..core import OnlineEKFTraining

        trainer = self.build_trainer(self.build_network(rng))
        return OnlineEKFTraining(trainer, initial_variance=self.initial_covariance)


# Global configuration instance
_GLOBAL_CONFIG: Optional[Settings] = None


def get_config(config_path: Optional[Union[str, Path]] = None,
               preset: Optional[str] = None,
               reload: bool = False) -> Settings:
    """Get global configuration settings.

    Parameters
    ----------
    config_path : Optional[Union[str, Path]]
        Path to TOML configuration file. If None, looks for default locations.
    preset : Optional[str]
        Preset configuration name ('vstlf_5min', 'vstlf_hourly', 'minimal').
        Ignored if config_path is provided.
    reload : bool
        Force reload configuration even if already loaded

    Returns
    -------
    Settings
        Global configuration settings
    """
    global _GLOBAL_CONFIG

    if _GLOBAL_CONFIG is not None and not reload:
        return _GLOBAL_CONFIG

    if config_path is not None:
        _GLOBAL_CONFIG = Settings.from_toml(config_path)
    else:
        default_paths = [
            'config.toml',
            'ekfann.toml',
            Path.home() / '.ekfann.toml',
            Path.cwd() / 'config' / 'config.toml'
        ]

        config_loaded = False
        for path in default_paths:
            if Path(path).exists():
                try:
                    _GLOBAL_CONFIG = Settings.from_toml(path)
                    config_loaded = True
                    break
                except Exception as e:
                    if preset is None:  # Only warn if not using preset fallback
                        print(f"Warning: Could not load config from {path}: {e}")
                    continue

        if not config_loaded:
            _GLOBAL_CONFIG = Settings.from_preset(preset or 'vstlf_5min')

    if _GLOBAL_CONFIG.random_seed is not None:
        from .random_state import set_global_seed
        set_global_seed(_GLOBAL_CONFIG.random_seed)

    return _GLOBAL_CONFIG


def set_config(settings: Settings) -> None:
    """Set global configuration settings.

    Parameters
    ----------
    settings : Settings
        Settings object to use as global configuration
    """
    global _GLOBAL_CONFIG
    _GLOBAL_CONFIG = settings

    if settings.random_seed is not None:
        from .random_state import set_global_seed
        set_global_seed(settings.random_seed)
