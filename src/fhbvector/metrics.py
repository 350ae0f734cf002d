"""Per-area and per-spike quantities used to compare the two models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from .entities import TIME_COLUMN, Trajectory
from .errors import ConfigError, DivisionUndefined


@dataclass(frozen=True)
class DerivedMetrics:
    """Full-model alatae aggregated per unit area and per spike."""

    time: np.ndarray
    total_u: np.ndarray
    total_v: np.ndarray
    per_spike_u: np.ndarray
    per_spike_v: np.ndarray

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                TIME_COLUMN: self.time,
                "total_u": self.total_u,
                "total_v": self.total_v,
                "per_spike_u": self.per_spike_u,
                "per_spike_v": self.per_spike_v,
            }
        )


def _require_model(trajectory: Trajectory, model: str) -> None:
    if trajectory.model != model:
        raise ConfigError(f"Expected a {model}-model trajectory, got '{trajectory.model}'")


def _spike_total(trajectory: Trajectory) -> np.ndarray:
    spikes = trajectory.column("S") + trajectory.column("I")
    empty = np.flatnonzero(spikes == 0.0)
    if empty.size:
        raise DivisionUndefined("S+I", time=float(trajectory.time[empty[0]]))
    return spikes


def compute_derived_metrics(trajectory: Trajectory) -> DerivedMetrics:
    """``totalU = S*US + I*UI``, ``totalV = S*VS + I*VI`` and their per-spike ratios."""
    _require_model(trajectory, "full")
    S = trajectory.column("S")
    I = trajectory.column("I")
    spikes = _spike_total(trajectory)
    total_u = S * trajectory.column("US") + I * trajectory.column("UI")
    total_v = S * trajectory.column("VS") + I * trajectory.column("VI")
    return DerivedMetrics(
        time=trajectory.time.copy(),
        total_u=total_u,
        total_v=total_v,
        per_spike_u=total_u / spikes,
        per_spike_v=total_v / spikes,
    )


def simplified_per_spike(trajectory: Trajectory) -> Tuple[np.ndarray, np.ndarray]:
    """``U/(S+I)`` and ``V/(S+I)`` for a simplified-model trajectory."""
    _require_model(trajectory, "simplified")
    spikes = _spike_total(trajectory)
    return trajectory.column("U") / spikes, trajectory.column("V") / spikes


def _relative_error(candidate: np.ndarray, reference: np.ndarray) -> np.ndarray:
    scale = np.maximum(np.abs(reference), np.abs(candidate))
    diff = np.abs(candidate - reference)
    return np.divide(diff, scale, out=np.zeros_like(diff), where=scale > 0.0)


@dataclass(frozen=True)
class ModelComparison:
    """Side-by-side full (derived) and simplified alate series."""

    label: str
    frame: pd.DataFrame

    def max_relative_error(self) -> float:
        columns = [name for name in self.frame.columns if name.startswith("rel_err_")]
        return float(self.frame[columns].to_numpy().max()) if columns and len(self.frame) else 0.0


def compare_models(full: Trajectory, simplified: Trajectory, *, label: str = "") -> ModelComparison:
    """Align a full and a simplified trajectory sampled on the same grid.

    Relative errors are symmetric (``|a-b| / max(|a|, |b|)``) so they stay in
    ``[0, 1]`` and are zero where both series vanish.
    """
    _require_model(simplified, "simplified")
    metrics = compute_derived_metrics(full)
    if full.time.shape != simplified.time.shape or not np.allclose(full.time, simplified.time, rtol=0.0, atol=1e-12):
        raise ConfigError("Full and simplified trajectories must share the same time grid")
    simple_u = simplified.column("U")
    simple_v = simplified.column("V")
    simple_u_spike, simple_v_spike = simplified_per_spike(simplified)
    frame = pd.DataFrame(
        {
            TIME_COLUMN: metrics.time,
            "full_total_u": metrics.total_u,
            "simplified_u": simple_u,
            "full_total_v": metrics.total_v,
            "simplified_v": simple_v,
            "full_per_spike_u": metrics.per_spike_u,
            "simplified_per_spike_u": simple_u_spike,
            "full_per_spike_v": metrics.per_spike_v,
            "simplified_per_spike_v": simple_v_spike,
            "rel_err_u": _relative_error(metrics.total_u, simple_u),
            "rel_err_v": _relative_error(metrics.total_v, simple_v),
        }
    )
    return ModelComparison(label=label, frame=frame)


__all__ = [
    "DerivedMetrics",
    "ModelComparison",
    "compare_models",
    "compute_derived_metrics",
    "simplified_per_spike",
]
