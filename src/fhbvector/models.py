"""Right-hand sides of the full and simplified aphid/FHB models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Tuple, Type, Union

import numpy as np

from .errors import ConfigError, DivisionUndefined, InvalidParameter
from .parameters import FullModelParams, ParameterSet, SimplifiedModelParams
from .states import (
    FULL_INITIAL_STATE,
    FULL_STATE_NAMES,
    SIMPLIFIED_INITIAL_STATE,
    SIMPLIFIED_STATE_NAMES,
)

RhsFn = Callable[[float, np.ndarray, ParameterSet], np.ndarray]


def _denominators(S: float, I: float, v: float, t: float) -> Tuple[float, float]:
    attractiveness = S + v * I
    if attractiveness == 0.0:
        raise DivisionUndefined("S+v*I", time=t)
    spikes = S + I
    if spikes == 0.0:
        raise DivisionUndefined("S+I", time=t)
    return attractiveness, spikes


def full_model_rhs(t: float, y: np.ndarray, params: FullModelParams) -> np.ndarray:
    """Rates of change of ``(X, Y, US, UI, VS, VI, S, I)``.

    Apterae and alatae share the per-spike carrying capacity ``M``. Departing
    alatae (rate ``1/Gamma``) are pooled per unit area and redistributed over
    spikes: unexposed alatae weighted by ``S + v*I``, exposed alatae by
    ``S + I``.
    """
    X, Y, US, UI, VS, VI, S, I = (float(value) for value in y)
    p = params
    attractiveness, spikes = _denominators(S, I, p.v, t)

    WS = US + VS
    WI = UI + VI
    room_S = 1.0 - (X + WS) / p.M
    room_I = 1.0 - (Y + WI) / p.M
    # Alate formation from apterae crowding on each spike class.
    form_S = p.e * (X + WS) * X / p.M
    form_I = p.e * (Y + WI) * Y / p.M

    rof_u = (S * US + I * UI) / p.Gamma
    rof_v = (S * VS + I * VI) / p.Gamma
    land_u = rof_u / attractiveness
    land_v = rof_v / spikes

    dX = (p.a * WS + (p.bS - p.dS) * X) * room_S - form_S
    dY = (p.a * WI + (p.bI - p.dI) * Y) * room_I - form_I
    dUS = land_u * room_S - US / p.Gamma - p.c * US + p.eta * VS + form_S
    dUI = -p.alpha * UI + p.v * land_u * room_I - UI / p.Gamma - p.c * UI + p.eta * VI
    dVS = land_v * room_S - VS / p.Gamma - (p.c + p.eta) * VS
    # alpha*US (not alpha*UI) feeds VI, kept as published; see DESIGN.md.
    dVI = p.alpha * US + land_v * room_I - VI / p.Gamma - (p.c + p.eta) * VI + form_I

    infection = p.r * I * S / p.K + p.beta * VS * S
    dS = p.mu * (p.K - spikes) - infection
    dI = infection - p.delta * I
    return np.array([dX, dY, dUS, dUI, dVS, dVI, dS, dI], dtype=float)


def simplified_model_rhs(t: float, y: np.ndarray, params: SimplifiedModelParams) -> np.ndarray:
    """Rates of change of ``(U, V, S, I)`` with alatae aggregated per unit area."""
    U, V, S, I = (float(value) for value in y)
    p = params
    attractiveness, spikes = _denominators(S, I, p.v, t)

    exposure = p.alpha * p.v * I * U / attractiveness
    crowding = (U + V) / spikes
    dU = -exposure + p.eta * V - p.c * U + p.e * (p.M * S - crowding * S)
    dV = exposure - p.eta * V - p.c * V + p.e * (p.M * I - crowding * I)

    infection = p.r * I * S / p.K + p.beta * V * S / p.K
    dS = p.mu * (p.K - spikes) - infection
    dI = infection - p.delta * I
    return np.array([dU, dV, dS, dI], dtype=float)


@dataclass(frozen=True)
class ModelDefinition:
    """Bundle of everything needed to integrate one model variant."""

    name: str
    state_names: Tuple[str, ...]
    rhs: RhsFn
    params_type: Type[ParameterSet]
    default_initial_state: Mapping[str, float]

    @property
    def dimension(self) -> int:
        return len(self.state_names)


MODEL_REGISTRY: Dict[str, ModelDefinition] = {
    "full": ModelDefinition(
        name="full",
        state_names=FULL_STATE_NAMES,
        rhs=full_model_rhs,
        params_type=FullModelParams,
        default_initial_state=FULL_INITIAL_STATE,
    ),
    "simplified": ModelDefinition(
        name="simplified",
        state_names=SIMPLIFIED_STATE_NAMES,
        rhs=simplified_model_rhs,
        params_type=SimplifiedModelParams,
        default_initial_state=SIMPLIFIED_INITIAL_STATE,
    ),
}


def resolve_model(model: Union[str, ModelDefinition]) -> ModelDefinition:
    if isinstance(model, ModelDefinition):
        return model
    key = (model or "").strip().lower()
    definition = MODEL_REGISTRY.get(key)
    if definition is None:
        raise ConfigError(f"Unknown model '{model}' (expected one of {', '.join(MODEL_REGISTRY)})")
    return definition


def coerce_params(
    model: Union[str, ModelDefinition],
    params: Union[ParameterSet, Mapping[str, object]],
) -> ParameterSet:
    """Return ``params`` as the parameter type ``model`` expects."""
    definition = resolve_model(model)
    if isinstance(params, definition.params_type):
        return params
    if isinstance(params, FullModelParams) and definition.params_type is SimplifiedModelParams:
        return params.to_simplified()
    if isinstance(params, SimplifiedModelParams):
        raise InvalidParameter(f"Simplified parameters cannot drive the '{definition.name}' model")
    if isinstance(params, Mapping):
        return definition.params_type.from_mapping(params)
    raise InvalidParameter(f"Unsupported parameter container {type(params).__name__}")


__all__ = [
    "MODEL_REGISTRY",
    "ModelDefinition",
    "RhsFn",
    "coerce_params",
    "full_model_rhs",
    "resolve_model",
    "simplified_model_rhs",
]
