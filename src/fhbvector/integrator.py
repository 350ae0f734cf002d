"""Adaptive Bogacki-Shampine integration with dense output on a fixed grid."""

from __future__ import annotations

import hashlib
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence

import numpy as np
from scipy.integrate import solve_ivp

from .errors import ConfigError, IntegrationFailure, NumericalDivergence
from .states import validate_time_grid

logger = logging.getLogger(__name__)

ParamRhs = Callable[[float, np.ndarray, object], np.ndarray]

NATIVE_METHOD = "BS23"
SCIPY_METHODS = ("RK23", "RK45", "DOP853", "LSODA")

# Bogacki-Shampine 3(2) tableau.
_C = np.array([0.0, 1.0 / 2.0, 3.0 / 4.0])
_A21 = 1.0 / 2.0
_A32 = 3.0 / 4.0
_B = np.array([2.0 / 9.0, 1.0 / 3.0, 4.0 / 9.0])
_E = np.array([5.0 / 72.0, -1.0 / 12.0, -1.0 / 9.0, 1.0 / 8.0])

_SAFETY = 0.9
_MIN_FACTOR = 0.2
_MAX_FACTOR = 10.0
_ERROR_EXPONENT = -1.0 / 3.0
_EPS = np.finfo(float).eps


def _map_method(label: str) -> str:
    token = (label or NATIVE_METHOD).strip()
    lower = token.lower()
    if lower in {"bs23", "ode23", "bogacki-shampine"}:
        return NATIVE_METHOD
    if lower == "ode45":
        return "RK45"
    if lower == "ode113":
        return "DOP853"
    return token.upper()


@dataclass(frozen=True)
class SolverConfig:
    """Tolerances and step bounds for one integration."""

    method: str = NATIVE_METHOD
    rtol: float = 1e-6
    atol: float = 1e-6
    max_step: float = math.inf
    min_step: float = 1e-12
    first_step: Optional[float] = None
    max_iterations: int = 100_000

    def __post_init__(self) -> None:
        method = _map_method(self.method)
        if method != NATIVE_METHOD and method not in SCIPY_METHODS:
            raise ConfigError(f"Unsupported integration method '{self.method}'")
        object.__setattr__(self, "method", method)
        if not (self.rtol > 0.0 and self.atol > 0.0):
            raise ConfigError(f"Tolerances must be positive (rtol={self.rtol}, atol={self.atol})")
        if not self.max_step > 0.0:
            raise ConfigError(f"max_step must be positive, got {self.max_step}")
        if not (self.min_step >= 0.0 and self.min_step < self.max_step):
            raise ConfigError(f"min_step must lie in [0, max_step), got {self.min_step}")
        if self.first_step is not None and not self.first_step > 0.0:
            raise ConfigError(f"first_step must be positive when given, got {self.first_step}")
        if int(self.max_iterations) < 1:
            raise ConfigError(f"max_iterations must be at least 1, got {self.max_iterations}")

    @property
    def backend(self) -> str:
        return "native" if self.method == NATIVE_METHOD else "scipy"

    def as_dict(self) -> Dict[str, object]:
        return {
            "method": self.method,
            "rtol": self.rtol,
            "atol": self.atol,
            "max_step": self.max_step,
            "min_step": self.min_step,
            "first_step": self.first_step,
            "max_iterations": self.max_iterations,
        }

    def identity(self) -> str:
        payload = json.dumps(self.as_dict(), sort_keys=True)
        return hashlib.sha256(payload.encode("utf8")).hexdigest()


@dataclass(frozen=True)
class IntegrationResult:
    time: np.ndarray
    states: np.ndarray
    stats: Dict[str, int] = field(default_factory=dict)


class _Evaluator:
    """Counts derivative calls and rejects non-finite rates."""

    def __init__(self, rhs: ParamRhs, params: object, state_names: Sequence[str]):
        self.rhs = rhs
        self.params = params
        self.state_names = tuple(state_names)
        self.nfev = 0

    def __call__(self, t: float, y: np.ndarray) -> np.ndarray:
        self.nfev += 1
        rates = np.asarray(self.rhs(t, y.copy(), self.params), dtype=float)
        if rates.shape != y.shape:
            raise ConfigError(f"Derivative returned shape {rates.shape}, expected {y.shape}")
        finite = np.isfinite(rates)
        if not finite.all():
            bad = np.flatnonzero(~finite)
            names = [self.state_names[i] if i < len(self.state_names) else f"y[{i}]" for i in bad]
            raise NumericalDivergence(float(t), names)
        return rates


def _rms_norm(x: np.ndarray) -> float:
    return float(np.linalg.norm(x) / math.sqrt(x.size))


def _select_initial_step(
    fun: _Evaluator,
    t0: float,
    y0: np.ndarray,
    f0: np.ndarray,
    span: float,
    solver: SolverConfig,
) -> float:
    """Hairer-Norsett-Wanner starting step estimate for a third-order pair."""
    if y0.size == 0:
        return min(span, solver.max_step)
    scale = solver.atol + np.abs(y0) * solver.rtol
    d0 = _rms_norm(y0 / scale)
    d1 = _rms_norm(f0 / scale)
    if d0 < 1e-5 or d1 < 1e-5:
        h0 = 1e-6
    else:
        h0 = 0.01 * d0 / d1
    h0 = min(h0, span)
    y1 = y0 + h0 * f0
    f1 = fun(t0 + h0, y1)
    d2 = _rms_norm((f1 - f0) / scale) / h0
    if d1 <= 1e-15 and d2 <= 1e-15:
        h1 = max(1e-6, h0 * 1e-3)
    else:
        h1 = (0.01 / max(d1, d2)) ** (1.0 / 3.0)
    return min(100.0 * h0, h1, span, solver.max_step)


def _hermite(t0: float, h: float, y0: np.ndarray, f0: np.ndarray, y1: np.ndarray, f1: np.ndarray, t: float) -> np.ndarray:
    theta = (t - t0) / h
    theta2 = theta * theta
    theta3 = theta2 * theta
    h00 = 2.0 * theta3 - 3.0 * theta2 + 1.0
    h10 = theta3 - 2.0 * theta2 + theta
    h01 = -2.0 * theta3 + 3.0 * theta2
    h11 = theta3 - theta2
    return h00 * y0 + h10 * h * f0 + h01 * y1 + h11 * h * f1


def _integrate_native(fun: _Evaluator, y0: np.ndarray, grid: np.ndarray, solver: SolverConfig) -> IntegrationResult:
    samples = np.empty((grid.size, y0.size), dtype=float)
    samples[0] = y0
    t = float(grid[0])
    t_end = float(grid[-1])
    y = y0.copy()
    accepted = 0
    rejected = 0
    if grid.size == 1:
        return IntegrationResult(grid, samples, {"nfev": 0, "accepted": 0, "rejected": 0})

    f = fun(t, y)
    if solver.first_step is not None:
        h = min(solver.first_step, solver.max_step, t_end - t)
    else:
        h = _select_initial_step(fun, t, y, f, t_end - t, solver)
    next_index = 1
    attempts = 0

    while next_index < grid.size:
        min_step = max(solver.min_step, 10.0 * _EPS * abs(t))
        h = min(h, solver.max_step)
        if h < min_step:
            raise IntegrationFailure("Step size fell below the minimum without meeting tolerance", time=t, step=h)
        attempts += 1
        if attempts > solver.max_iterations:
            raise IntegrationFailure(
                f"Exceeded {solver.max_iterations} step attempts", time=t, step=h
            )

        last_step = t + h >= t_end - min_step
        if last_step:
            h = t_end - t
        t_new = t_end if last_step else t + h

        k1 = f
        k2 = fun(t + _C[1] * h, y + h * _A21 * k1)
        k3 = fun(t + _C[2] * h, y + h * _A32 * k2)
        y_new = y + h * (_B[0] * k1 + _B[1] * k2 + _B[2] * k3)
        f_new = fun(t_new, y_new)

        error = h * (_E[0] * k1 + _E[1] * k2 + _E[2] * k3 + _E[3] * f_new)
        scale = solver.atol + np.maximum(np.abs(y), np.abs(y_new)) * solver.rtol
        error_norm = _rms_norm(error / scale)

        if error_norm > 1.0:
            rejected += 1
            factor = max(_MIN_FACTOR, _SAFETY * error_norm ** _ERROR_EXPONENT)
            h *= factor
            continue

        accepted += 1
        while next_index < grid.size and grid[next_index] <= t_new:
            t_out = float(grid[next_index])
            if t_out == t_new:
                samples[next_index] = y_new
            else:
                samples[next_index] = _hermite(t, h, y, f, y_new, f_new, t_out)
            next_index += 1

        if error_norm == 0.0:
            factor = _MAX_FACTOR
        else:
            factor = min(_MAX_FACTOR, _SAFETY * error_norm ** _ERROR_EXPONENT)
        t, y, f = t_new, y_new, f_new
        h *= factor

    stats = {"nfev": fun.nfev, "accepted": accepted, "rejected": rejected}
    logger.debug("bs23 finished t=%.6g accepted=%d rejected=%d nfev=%d", t, accepted, rejected, fun.nfev)
    return IntegrationResult(grid, samples, stats)


def _integrate_scipy(fun: _Evaluator, y0: np.ndarray, grid: np.ndarray, solver: SolverConfig) -> IntegrationResult:
    if grid.size == 1:
        return IntegrationResult(grid, y0[np.newaxis, :].copy(), {"nfev": 0, "accepted": 0, "rejected": 0})
    sol = solve_ivp(
        fun,
        (float(grid[0]), float(grid[-1])),
        y0,
        method=solver.method,
        t_eval=grid,
        rtol=solver.rtol,
        atol=solver.atol,
        max_step=solver.max_step,
        first_step=solver.first_step,
    )
    if not sol.success or sol.y.shape[1] != grid.size:
        last_t = float(sol.t[-1]) if sol.t.size else float(grid[0])
        raise IntegrationFailure(f"solve_ivp ({solver.method}) failed: {sol.message}", time=last_t, step=0.0)
    stats = {"nfev": int(sol.nfev)}
    return IntegrationResult(grid, np.asarray(sol.y.T, dtype=float), stats)


def integrate(
    rhs: ParamRhs,
    y0: Sequence[float],
    times: Sequence[float],
    params: object,
    solver: Optional[SolverConfig] = None,
    *,
    state_names: Sequence[str] = (),
    emit_diagnostics: bool = False,
) -> IntegrationResult:
    """Integrate ``dy/dt = rhs(t, y, params)`` and sample it at ``times``.

    Parameters
    ----------
    rhs:
        Derivative function; it is called with a copy of the state so it can
        never alter the integrator's working vector.
    y0:
        State at ``times[0]``.
    times:
        Strictly increasing, non-negative output times. The adaptive steps are
        independent of this grid; samples are taken from the cubic Hermite
        interpolant of each accepted step.
    solver:
        Tolerances and step bounds; defaults to ``SolverConfig()``.
    """

    config = solver or SolverConfig()
    grid = validate_time_grid(times)
    state0 = np.array(y0, dtype=float, copy=True)
    if state0.ndim != 1:
        raise ConfigError("Initial state must be a one-dimensional vector")
    if emit_diagnostics:
        meta = dict(config.as_dict())
        meta["t0"] = float(grid[0])
        meta["t_end"] = float(grid[-1])
        meta["samples"] = int(grid.size)
        logger.info("solver_config %s", json.dumps(meta, sort_keys=True))

    fun = _Evaluator(rhs, params, state_names)
    if config.backend == "native":
        return _integrate_native(fun, state0, grid, config)
    return _integrate_scipy(fun, state0, grid, config)


__all__ = [
    "IntegrationResult",
    "NATIVE_METHOD",
    "SCIPY_METHODS",
    "SolverConfig",
    "integrate",
]
