"""Scenario registry and runner for chemotype x model comparisons."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .entities import Trajectory
from .errors import ConfigError, FhbError
from .integrator import SolverConfig
from .metrics import DerivedMetrics, ModelComparison, compare_models, compute_derived_metrics
from .models import coerce_params, resolve_model
from .parameters import CHEMOTYPES, FullModelParams, ParameterSet, chemotype_parameters, normalize_chemotype
from .simulation import simulate
from .states import default_time_grid

logger = logging.getLogger(__name__)

MODELS = ("full", "simplified")
EXECUTORS = ("sequential", "thread", "process")


@dataclass(frozen=True)
class ScenarioSpec:
    """One (model, parameter set, initial state, grid) combination."""

    name: str
    model: str
    params: ParameterSet
    initial_state: Mapping[str, float]
    times: Tuple[float, ...]
    chemotype: str = ""
    solver: SolverConfig = field(default_factory=SolverConfig)


@dataclass(frozen=True)
class ScenarioResult:
    """Outcome of one run: a trajectory or the engine error that stopped it."""

    name: str
    model: str
    chemotype: str
    trajectory: Optional[Trajectory] = None
    metrics: Optional[DerivedMetrics] = None
    error: Optional[FhbError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> "ScenarioResult":
        if self.error is not None:
            raise self.error
        return self


def build_scenario(
    chemotype: str,
    model: str,
    *,
    baseline: Optional[FullModelParams] = None,
    initial_state: Optional[Mapping[str, float]] = None,
    times: Optional[Sequence[float]] = None,
    solver: Optional[SolverConfig] = None,
) -> ScenarioSpec:
    definition = resolve_model(model)
    chemotype = normalize_chemotype(chemotype)
    full_params = chemotype_parameters(chemotype) if baseline is None else chemotype_parameters(chemotype, baseline)
    grid = default_time_grid() if times is None else np.asarray(times, dtype=float)
    return ScenarioSpec(
        name=f"{chemotype}-{definition.name}",
        model=definition.name,
        chemotype=chemotype,
        params=coerce_params(definition, full_params),
        initial_state=dict(definition.default_initial_state if initial_state is None else initial_state),
        times=tuple(float(t) for t in grid),
        solver=solver or SolverConfig(),
    )


def default_scenarios(
    chemotypes: Sequence[str] = CHEMOTYPES,
    models: Sequence[str] = MODELS,
    solver: Optional[SolverConfig] = None,
    times: Optional[Sequence[float]] = None,
) -> List[ScenarioSpec]:
    """NIV/DON x full/simplified runs on the published initial conditions."""
    return [build_scenario(chemotype, model, times=times, solver=solver) for model in models for chemotype in chemotypes]


def run_scenario(spec: ScenarioSpec) -> ScenarioResult:
    """Run one scenario; engine errors are captured rather than raised."""
    try:
        trajectory = simulate(
            spec.model,
            spec.params,
            spec.initial_state,
            spec.times,
            solver=spec.solver,
            label=spec.name,
        )
        metrics = compute_derived_metrics(trajectory) if trajectory.model == "full" else None
    except FhbError as exc:
        logger.warning("scenario %s failed: %s: %s", spec.name, type(exc).__name__, exc)
        return ScenarioResult(name=spec.name, model=spec.model, chemotype=spec.chemotype, error=exc)
    return ScenarioResult(
        name=spec.name,
        model=spec.model,
        chemotype=spec.chemotype,
        trajectory=trajectory,
        metrics=metrics,
    )


def _make_executor(kind: str, max_workers: Optional[int]) -> Executor:
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=max_workers)
    return ProcessPoolExecutor(max_workers=max_workers)


def run_scenarios(
    specs: Sequence[ScenarioSpec],
    *,
    executor: str = "sequential",
    max_workers: Optional[int] = None,
) -> List[ScenarioResult]:
    """Run independent scenarios, optionally on a worker pool; results keep input order."""
    if executor not in EXECUTORS:
        raise ConfigError(f"Unknown executor '{executor}' (expected one of {', '.join(EXECUTORS)})")
    names = [spec.name for spec in specs]
    if len(set(names)) != len(names):
        raise ConfigError("Scenario names must be unique")
    if executor == "sequential" or len(specs) <= 1:
        results = [run_scenario(spec) for spec in specs]
    else:
        with _make_executor(executor, max_workers) as pool:
            futures = [pool.submit(run_scenario, spec) for spec in specs]
            results = [future.result() for future in futures]
    failed = [result.name for result in results if not result.ok]
    logger.info("scenarios completed=%d failed=%d%s", len(results), len(failed), f" ({', '.join(failed)})" if failed else "")
    return results


def comparisons(results: Sequence[ScenarioResult]) -> Dict[str, ModelComparison]:
    """Pair successful full and simplified runs of each chemotype."""
    by_key: Dict[Tuple[str, str], ScenarioResult] = {
        (result.chemotype, result.model): result for result in results if result.ok
    }
    paired: Dict[str, ModelComparison] = {}
    for (chemotype, model), full in sorted(by_key.items()):
        if model != "full":
            continue
        simplified = by_key.get((chemotype, "simplified"))
        if simplified is None:
            continue
        paired[chemotype] = compare_models(full.trajectory, simplified.trajectory, label=chemotype)
    return paired


__all__ = [
    "EXECUTORS",
    "MODELS",
    "ScenarioResult",
    "ScenarioSpec",
    "build_scenario",
    "comparisons",
    "default_scenarios",
    "run_scenario",
    "run_scenarios",
]
