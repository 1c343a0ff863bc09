import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from densesvd.exceptions import UsageError
from densesvd.utils import path

CONFIG_KEYS = ("profile", "output_path", "log_path", "n_threads", "solver", "progress")


def _integer(name, value):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise UsageError(f"{name} must be an integer, got {value!r}") from None


def _positive(name, value):
    value = _integer(name, value)
    if value <= 0:
        raise UsageError(f"{name} must be positive, got {value}")

    return value


@dataclass(frozen=True)
class ExecutionContext:
    """Everything one run needs; built once, never mutated"""

    csv_path: Path
    rows: int
    cols: int
    k: int
    output_path: Path = path.results
    log_path: Path = path.shared_log
    n_threads: Optional[int] = None
    solver: str = "lobpcg"
    progress: bool = False

    @classmethod
    def from_args(cls, csv_path, rows, cols, k, **options):
        """Validate command-line strings (or values) into a context.

        Options that are None fall back to the field defaults.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise UsageError(f"unknown options: {', '.join(sorted(unknown))}")
        options = {key: val for key, val in options.items() if val is not None}

        if "n_threads" in options:
            options["n_threads"] = _positive("threads", options["n_threads"])
        for key in ("output_path", "log_path"):
            if key in options:
                options[key] = Path(options[key])

        return cls(
            csv_path=Path(csv_path),
            rows=_positive("rows", rows),
            cols=_positive("cols", cols),
            k=_integer("K", k),
            **options,
        )


def load_config(config_path):
    """Read a JSON config file holding any of CONFIG_KEYS"""
    try:
        with open(config_path, "r") as f:
            config = json.load(f)
    except OSError as e:
        raise UsageError(f"cannot read config file '{config_path}': {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise UsageError(f"invalid JSON in config file '{config_path}': {e}") from e

    if not isinstance(config, dict):
        raise UsageError(f"config file '{config_path}' must hold a JSON object")
    unknown = set(config) - set(CONFIG_KEYS)
    if unknown:
        raise UsageError(f"unknown config keys: {', '.join(sorted(unknown))}")

    return config
