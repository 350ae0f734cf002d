"""State vector layouts, initial conditions and output time grids."""

from __future__ import annotations

import math
from numbers import Real
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np

from .errors import ConfigError, InvalidInitialState

FULL_STATE_NAMES: Tuple[str, ...] = ("X", "Y", "US", "UI", "VS", "VI", "S", "I")
SIMPLIFIED_STATE_NAMES: Tuple[str, ...] = ("U", "V", "S", "I")

FULL_INITIAL_STATE: Dict[str, float] = {
    "X": 1.0,
    "Y": 0.0,
    "US": 1.0,
    "UI": 0.0,
    "VS": 0.0,
    "VI": 0.0,
    "S": 5.0,
    "I": 5.0,
}
SIMPLIFIED_INITIAL_STATE: Dict[str, float] = {"U": 1.0, "V": 0.0, "S": 5.0, "I": 5.0}

DEFAULT_T_END = 80.0
DEFAULT_SAMPLE_COUNT = 101


def build_initial_state(mapping: Mapping[str, object], names: Sequence[str]) -> np.ndarray:
    """Return ``mapping`` as a float vector ordered like ``names``."""
    unknown = sorted(set(mapping) - set(names))
    if unknown:
        raise InvalidInitialState(f"Unknown state variable(s): {', '.join(unknown)}")
    missing = [name for name in names if name not in mapping]
    if missing:
        raise InvalidInitialState(f"Missing state variable(s): {', '.join(missing)}")
    values = []
    for name in names:
        raw = mapping[name]
        if isinstance(raw, bool) or not isinstance(raw, Real):
            raise InvalidInitialState(f"State '{name}' must be a real number, got {type(raw).__name__}")
        value = float(raw)
        if not math.isfinite(value):
            raise InvalidInitialState(f"State '{name}' must be finite, got {value}")
        if value < 0.0:
            raise InvalidInitialState(f"State '{name}' must be non-negative, got {value}")
        values.append(value)
    return np.array(values, dtype=float)


def state_mapping(vector: Sequence[float], names: Sequence[str]) -> Dict[str, float]:
    if len(vector) != len(names):
        raise InvalidInitialState(f"Expected {len(names)} state components, got {len(vector)}")
    return {name: float(value) for name, value in zip(names, vector)}


def time_grid(start: float, end: float, count: int) -> np.ndarray:
    """Evenly spaced output times including both end points."""
    if isinstance(count, bool) or int(count) != count or count < 1:
        raise ConfigError(f"Time grid count must be a positive integer, got {count!r}")
    if count == 1 and float(end) != float(start):
        raise ConfigError(f"A single-point time grid needs end == start, got [{start}, {end}]")
    if count > 1 and not float(end) > float(start):
        raise ConfigError(f"Time grid end ({end}) must exceed start ({start})")
    return validate_time_grid(np.linspace(float(start), float(end), int(count)))


def default_time_grid() -> np.ndarray:
    return time_grid(0.0, DEFAULT_T_END, DEFAULT_SAMPLE_COUNT)


def validate_time_grid(times: Sequence[float]) -> np.ndarray:
    """Check that ``times`` is a non-empty, non-negative, strictly increasing 1-D grid."""
    grid = np.array(times, dtype=float, copy=True)
    if grid.ndim != 1 or grid.size == 0:
        raise ConfigError("Time grid must be a non-empty one-dimensional sequence")
    if not np.all(np.isfinite(grid)):
        raise ConfigError("Time grid contains non-finite values")
    if grid[0] < 0.0:
        raise ConfigError(f"Time grid must be non-negative, starts at {grid[0]}")
    if grid.size > 1 and not np.all(np.diff(grid) > 0.0):
        raise ConfigError("Time grid must be strictly increasing")
    return grid


__all__ = [
    "DEFAULT_SAMPLE_COUNT",
    "DEFAULT_T_END",
    "FULL_INITIAL_STATE",
    "FULL_STATE_NAMES",
    "SIMPLIFIED_INITIAL_STATE",
    "SIMPLIFIED_STATE_NAMES",
    "build_initial_state",
    "default_time_grid",
    "state_mapping",
    "time_grid",
    "validate_time_grid",
]
