from __future__ import annotations

import math

import numpy as np
import pytest
from scipy.integrate import solve_ivp

from src.fhbvector.errors import ConfigError, IntegrationFailure, NumericalDivergence
from src.fhbvector.integrator import SolverConfig, integrate


def _decay(_: float, y: np.ndarray, rate: float) -> np.ndarray:
    return -rate * y


def _logistic(_: float, y: np.ndarray, params: dict) -> np.ndarray:
    return params["r"] * y * (1.0 - y / params["K"])


def test_first_sample_is_initial_state_and_grid_is_respected() -> None:
    times = [0.0, 0.3, 1.7, 2.0]
    result = integrate(_decay, [2.0, 4.0], times, 0.5)
    assert result.time.tolist() == times
    assert result.states.shape == (4, 2)
    assert result.states[0].tolist() == [2.0, 4.0]


def test_matches_linear_system_solution() -> None:
    times = np.linspace(0.0, 5.0, 11)
    result = integrate(_decay, [2.0], times, 0.8)
    expected = 2.0 * np.exp(-0.8 * times)
    assert result.states[:, 0] == pytest.approx(expected, rel=1e-4, abs=1e-6)


def test_tighter_tolerance_reduces_error() -> None:
    times = np.linspace(0.0, 10.0, 21)
    params = {"r": 0.9, "K": 10.0}
    exact = 10.0 / (1.0 + 9.0 * np.exp(-0.9 * times))
    loose = integrate(_logistic, [1.0], times, params, SolverConfig(rtol=1e-4, atol=1e-4))
    tight = integrate(_logistic, [1.0], times, params, SolverConfig(rtol=1e-8, atol=1e-8))
    loose_err = np.max(np.abs(loose.states[:, 0] - exact))
    tight_err = np.max(np.abs(tight.states[:, 0] - exact))
    assert loose_err < 5e-2
    assert tight_err < loose_err
    assert tight_err < 1e-4
    assert tight.stats["accepted"] > loose.stats["accepted"]


def test_agrees_with_scipy_reference() -> None:
    times = np.linspace(0.0, 10.0, 6)
    params = {"r": 0.9, "K": 10.0}
    ours = integrate(_logistic, [1.0], times, params)
    reference = solve_ivp(lambda t, y: _logistic(t, y, params), (0.0, 10.0), [1.0], t_eval=times, rtol=1e-10, atol=1e-10)
    assert ours.states[:, 0] == pytest.approx(reference.y[0], rel=1e-4)


def test_scipy_backend_shares_contract() -> None:
    times = np.linspace(0.0, 5.0, 6)
    result = integrate(_decay, [1.0], times, 1.0, SolverConfig(method="RK45", rtol=1e-9, atol=1e-12))
    assert result.states[:, 0] == pytest.approx(np.exp(-times), rel=1e-5)
    assert SolverConfig(method="ode23").method == "BS23"
    assert SolverConfig(method="ode45").backend == "scipy"


def test_repeated_calls_are_identical() -> None:
    times = np.linspace(0.0, 10.0, 21)
    params = {"r": 0.9, "K": 10.0}
    first = integrate(_logistic, [1.0], times, params)
    second = integrate(_logistic, [1.0], times, params)
    assert np.array_equal(first.states, second.states)
    assert first.stats == second.stats


def test_max_step_bounds_internal_steps() -> None:
    times = [0.0, 10.0]
    result = integrate(_decay, [1.0], times, 0.01, SolverConfig(max_step=0.5))
    assert result.stats["accepted"] >= 20


def test_non_finite_derivative_is_fatal() -> None:
    calls = {"n": 0}

    def blow_up(t: float, y: np.ndarray, _: object) -> np.ndarray:
        calls["n"] += 1
        return np.array([math.inf if t > 0.5 else 1.0, 0.0])

    with pytest.raises(NumericalDivergence) as info:
        integrate(blow_up, [0.0, 0.0], [0.0, 1.0], None, SolverConfig(max_step=0.1), state_names=("A", "B"))
    assert info.value.components == ("A",)
    assert info.value.time > 0.5


def test_step_collapse_raises_integration_failure() -> None:
    def stiff_switch(t: float, y: np.ndarray, _: object) -> np.ndarray:
        return np.array([1e12 * math.sin(1e9 * t)])

    solver = SolverConfig(rtol=1e-10, atol=1e-12, min_step=1e-3)
    with pytest.raises(IntegrationFailure) as info:
        integrate(stiff_switch, [0.0], [0.0, 1.0], None, solver)
    assert info.value.step < 1e-3


def test_iteration_budget_raises_integration_failure() -> None:
    with pytest.raises(IntegrationFailure, match="step attempts"):
        integrate(_decay, [1.0], [0.0, 100.0], 1.0, SolverConfig(max_step=0.01, max_iterations=50))


def test_solver_config_validation_and_identity() -> None:
    with pytest.raises(ConfigError):
        SolverConfig(rtol=0.0)
    with pytest.raises(ConfigError):
        SolverConfig(method="Euler")
    with pytest.raises(ConfigError):
        integrate(_decay, [1.0], [0.0, 0.0], 1.0)
    assert SolverConfig().identity() == SolverConfig(method="ode23").identity()
    assert SolverConfig().identity() != SolverConfig(rtol=1e-8).identity()
