"""Configuration classes.

Provides serialization, validation, and type constraints for the options
that drive marker scoring.
"""

import inspect
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from typing_extensions import Self

from .exceptions import InvalidConfigError

__all__ = ["Config", "ScoreMarkersConfig"]

# Allowed basic types for config values
BASIC_TYPES = (int, float, str, bool, type(None))


@dataclass
class Config:
    """Base class for configurations.

    Enforces type constraints and provides serialization capabilities.

    Rules:
    - Non-private attributes (not starting with '_') must be basic types
    - Basic types: int, float, str, bool, None, or nested dict/list of these
    - Provides to_dict(), save(), and load() methods
    """

    def __setattr__(self, name: str, value: Any) -> None:
        """Validate attribute types before setting.

        Private attributes (starting with '_') can be any type.
        Public attributes must be basic types or nested dict/list.
        """
        if not name.startswith("_"):
            self._validate_value(value, name)

        super().__setattr__(name, value)

    @staticmethod
    def _validate_value(value: Any, name: str = "value") -> None:
        """Recursively validate that value is serializable.

        Raises
        ------
        TypeError
            If value contains non-serializable types.
        """
        if isinstance(value, BASIC_TYPES):
            return

        if isinstance(value, list):
            for i, item in enumerate(value):
                Config._validate_value(item, f"{name}[{i}]")
            return

        if isinstance(value, dict):
            for key, val in value.items():
                if not isinstance(key, str):
                    raise TypeError(
                        f"Dict keys must be strings, got {type(key).__name__} for key in {name}"
                    )
                Config._validate_value(val, f"{name}['{key}']")
            return

        raise TypeError(
            f"Attribute '{name}' has invalid type {type(value).__name__}. "
            f"Only basic types (int, float, str, bool, None) and nested "
            f"dict/list are allowed."
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary.

        Only includes public attributes (not starting with '_').
        """
        return {
            key: self._deep_copy(value)
            for key, value in self.__dict__.items()
            if not key.startswith("_") and not callable(value)
        }

    @staticmethod
    def _deep_copy(value: Any) -> Any:
        if isinstance(value, dict):
            return {k: Config._deep_copy(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [Config._deep_copy(item) for item in value]
        return value

    def save(self, path: str | Path, update: bool = True) -> None:
        """Save config to JSON file.

        Parameters
        ----------
        path : str or Path
            Path to save config file.
        update : bool, default=True
            If True and file exists, merge with existing keys.
            If False, overwrite the entire file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.to_dict()

        if update and path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    existing_dict = json.load(f)
                existing_dict.update(config_dict)
                config_dict = existing_dict
            except (json.JSONDecodeError, IOError):
                # Unreadable file: overwrite with the current config
                pass

        with open(path, "w", encoding="utf-8") as f:
            json.dump(config_dict, f, indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any], strict: bool = True) -> Self:
        """Create config from dictionary.

        Inspects the ``__init__`` signature to fill missing keys with defaults.
        Unknown keys are ignored.

        Parameters
        ----------
        config_dict : dict[str, Any]
            Configuration dictionary.
        strict : bool, default=True
            If True, raise error for required parameters missing in config_dict.

        Raises
        ------
        ValueError
            If strict=True and a required parameter (no default) is missing.
        """
        sig = inspect.signature(cls.__init__)

        init_kwargs = {}
        missing_required = []

        for param_name, param in sig.parameters.items():
            if param_name in ("self", "args", "kwargs"):
                continue

            if param_name in config_dict:
                init_kwargs[param_name] = config_dict[param_name]
            elif param.default is not inspect.Parameter.empty:
                init_kwargs[param_name] = param.default
            else:
                missing_required.append(param_name)

        if strict and missing_required:
            raise ValueError(
                f"Missing required parameters for {cls.__name__}: {missing_required}. "
                f"These parameters have no default values in __init__."
            )

        return cls(**init_kwargs)

    @classmethod
    def load(cls, path: str | Path, strict: bool = True) -> Self:
        """Load config from JSON file, filling missing keys with defaults.

        Raises
        ------
        FileNotFoundError
            If config file doesn't exist.
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            config_dict = json.load(f)

        return cls.from_dict(config_dict, strict=strict)

    def update(self, **kwargs) -> None:
        """Update config attributes.

        Examples
        --------
        >>> config.update(num_threads=4, compute_auc=False)
        """
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __repr__(self) -> str:
        config_dict = self.to_dict()
        items = ", ".join(f"{k}={v!r}" for k, v in config_dict.items())
        return f"{self.__class__.__name__}({items})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Config):
            return False
        return self.to_dict() == other.to_dict()


@dataclass(repr=False, eq=False)
class ScoreMarkersConfig(Config):
    """Options for :func:`markerlab.analysis.score_markers`.

    Args:
        lfc_threshold (float, optional):
            Non-negative log-fold change threshold subtracted from the mean
            difference before computing Cohen's d and the AUC. Defaults to 0.
        compute_auc (bool, optional):
            Whether to compute the (more expensive) AUC. Defaults to True.
        compute_median (bool, optional):
            Whether to report the median across pairwise comparisons.
            Defaults to False.
        compute_max (bool, optional):
            Whether to report the maximum across pairwise comparisons.
            Defaults to False.
        num_threads (int, optional):
            Size of the worker pool; 1 runs sequentially. Defaults to 1.
        backend (str, optional):
            Kernel backend, "numba" or "python". Defaults to "numba".
        chunk_size (int, optional):
            Number of features handled per task. Defaults to 1024.
        sd_floor (float, optional):
            Lower bound on the pooled standard deviation used by Cohen's d.
            Defaults to 1e-8.
        show_progress (bool, optional):
            Show a tqdm progress bar over feature chunks. Defaults to False.
    """

    lfc_threshold: float = 0.0
    compute_auc: bool = True
    compute_median: bool = False
    compute_max: bool = False
    num_threads: int = 1
    backend: str = "numba"
    chunk_size: int = 1024
    sd_floor: float = 1e-8
    show_progress: bool = False

    def validate(self) -> Self:
        """Check value ranges, raising :class:`InvalidConfigError`."""
        if not self.lfc_threshold >= 0:
            raise InvalidConfigError(
                f"lfc_threshold must be non-negative, got {self.lfc_threshold}"
            )
        if isinstance(self.num_threads, bool) or not isinstance(self.num_threads, int):
            raise InvalidConfigError(f"num_threads must be an integer, got {self.num_threads!r}")
        if self.num_threads < 1:
            raise InvalidConfigError(f"num_threads must be at least 1, got {self.num_threads}")
        if not isinstance(self.chunk_size, int) or self.chunk_size < 1:
            raise InvalidConfigError(f"chunk_size must be a positive integer, got {self.chunk_size!r}")
        if not self.sd_floor > 0:
            raise InvalidConfigError(f"sd_floor must be positive, got {self.sd_floor}")
        return self
