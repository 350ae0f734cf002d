from __future__ import annotations

import numpy as np
import pytest

from src.fhbvector.errors import ConfigError, InvalidInitialState
from src.fhbvector.states import (
    FULL_INITIAL_STATE,
    FULL_STATE_NAMES,
    SIMPLIFIED_STATE_NAMES,
    build_initial_state,
    default_time_grid,
    state_mapping,
    time_grid,
    validate_time_grid,
)


def test_build_initial_state_orders_components() -> None:
    shuffled = dict(reversed(list(FULL_INITIAL_STATE.items())))
    vector = build_initial_state(shuffled, FULL_STATE_NAMES)
    assert vector.tolist() == [1.0, 0.0, 1.0, 0.0, 0.0, 0.0, 5.0, 5.0]


def test_build_initial_state_rejects_negative_missing_and_unknown() -> None:
    with pytest.raises(InvalidInitialState, match="non-negative"):
        build_initial_state({"U": -0.1, "V": 0.0, "S": 5.0, "I": 5.0}, SIMPLIFIED_STATE_NAMES)
    with pytest.raises(InvalidInitialState, match="Missing"):
        build_initial_state({"U": 1.0, "V": 0.0, "S": 5.0}, SIMPLIFIED_STATE_NAMES)
    with pytest.raises(InvalidInitialState, match="Unknown"):
        build_initial_state({"U": 1.0, "V": 0.0, "S": 5.0, "I": 5.0, "X": 1.0}, SIMPLIFIED_STATE_NAMES)
    with pytest.raises(InvalidInitialState):
        build_initial_state({"U": float("nan"), "V": 0.0, "S": 5.0, "I": 5.0}, SIMPLIFIED_STATE_NAMES)


def test_default_time_grid_has_101_points_on_0_80() -> None:
    grid = default_time_grid()
    assert grid.size == 101
    assert grid[0] == 0.0 and grid[-1] == 80.0
    assert np.allclose(np.diff(grid), 0.8)


def test_time_grid_validation() -> None:
    assert time_grid(2.0, 2.0, 1).tolist() == [2.0]
    with pytest.raises(ConfigError, match="single-point"):
        time_grid(0.0, 80.0, 1)
    with pytest.raises(ConfigError):
        time_grid(0.0, 1.0, 0)
    with pytest.raises(ConfigError):
        time_grid(1.0, 0.0, 5)
    with pytest.raises(ConfigError):
        validate_time_grid([0.0, 1.0, 1.0])
    with pytest.raises(ConfigError):
        validate_time_grid([-1.0, 1.0])
    with pytest.raises(ConfigError):
        validate_time_grid([])


def test_state_mapping_names_components_and_checks_length() -> None:
    assert state_mapping([1.0, 0.0, 5.0, 5.0], SIMPLIFIED_STATE_NAMES) == {"U": 1.0, "V": 0.0, "S": 5.0, "I": 5.0}
    with pytest.raises(InvalidInitialState):
        state_mapping([1.0, 0.0], SIMPLIFIED_STATE_NAMES)
