"""Public exports for the aphid-vector / Fusarium head blight simulation engine."""

from .entities import SEMANTICS_VERSION, Trajectory
from .errors import (
    ConfigError,
    DivisionUndefined,
    FhbError,
    IntegrationFailure,
    InvalidInitialState,
    InvalidParameter,
    NumericalDivergence,
)
from .integrator import IntegrationResult, SolverConfig, integrate
from .metrics import DerivedMetrics, ModelComparison, compare_models, compute_derived_metrics
from .models import MODEL_REGISTRY, full_model_rhs, simplified_model_rhs
from .parameters import (
    DON_SCALE_FACTORS,
    NIV_BASELINE,
    FullModelParams,
    SimplifiedModelParams,
    chemotype_parameters,
    scale_parameters,
)
from .scenarios import ScenarioResult, ScenarioSpec, default_scenarios, run_scenario, run_scenarios
from .simulation import simulate
from .states import time_grid

__all__ = [
    "SEMANTICS_VERSION",
    "ConfigError",
    "DivisionUndefined",
    "FhbError",
    "IntegrationFailure",
    "InvalidInitialState",
    "InvalidParameter",
    "NumericalDivergence",
    "DON_SCALE_FACTORS",
    "NIV_BASELINE",
    "FullModelParams",
    "SimplifiedModelParams",
    "chemotype_parameters",
    "scale_parameters",
    "MODEL_REGISTRY",
    "full_model_rhs",
    "simplified_model_rhs",
    "IntegrationResult",
    "SolverConfig",
    "integrate",
    "Trajectory",
    "simulate",
    "time_grid",
    "DerivedMetrics",
    "ModelComparison",
    "compare_models",
    "compute_derived_metrics",
    "ScenarioResult",
    "ScenarioSpec",
    "default_scenarios",
    "run_scenario",
    "run_scenarios",
]
