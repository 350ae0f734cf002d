"""Single-run driver: model + parameters + initial state + grid -> trajectory."""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence, Union

import numpy as np

from .entities import Trajectory
from .integrator import SolverConfig, integrate
from .models import ModelDefinition, coerce_params, resolve_model
from .parameters import ParameterSet
from .states import build_initial_state, default_time_grid, validate_time_grid

logger = logging.getLogger(__name__)


def simulate(
    model: Union[str, ModelDefinition],
    params: Union[ParameterSet, Mapping[str, object]],
    initial_state: Optional[Mapping[str, object]] = None,
    times: Optional[Sequence[float]] = None,
    *,
    solver: Optional[SolverConfig] = None,
    label: str = "",
    emit_diagnostics: bool = False,
) -> Trajectory:
    """Integrate one model variant and return its trajectory.

    ``initial_state`` defaults to the model's published starting point and
    ``times`` to 101 evenly spaced samples on ``[0, 80]``. A
    :class:`~.parameters.FullModelParams` set may drive the simplified model;
    it is projected onto the simplified subset.
    """

    definition = resolve_model(model)
    parameter_set = coerce_params(definition, params)
    state_map = definition.default_initial_state if initial_state is None else initial_state
    y0 = build_initial_state(state_map, definition.state_names)
    grid = default_time_grid() if times is None else validate_time_grid(times)
    config = solver or SolverConfig()

    result = integrate(
        definition.rhs,
        y0,
        grid,
        parameter_set,
        config,
        state_names=definition.state_names,
        emit_diagnostics=emit_diagnostics,
    )
    provenance = {
        "solver": config.method,
        "backend": config.backend,
        "solver_identity": config.identity(),
    }
    provenance.update({f"stats.{key}": str(value) for key, value in result.stats.items()})
    if emit_diagnostics:
        logger.info(
            "simulate model=%s label=%s samples=%d nfev=%s",
            definition.name,
            label or "-",
            grid.size,
            result.stats.get("nfev"),
        )
    return Trajectory(
        model=definition.name,
        state_names=definition.state_names,
        time=np.asarray(result.time, dtype=float),
        states=result.states,
        label=label,
        provenance=provenance,
    )


__all__ = ["simulate"]
