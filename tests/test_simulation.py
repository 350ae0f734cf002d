from __future__ import annotations

import numpy as np
import pytest

from src.fhbvector.errors import DivisionUndefined, InvalidInitialState
from src.fhbvector.integrator import SolverConfig
from src.fhbvector.metrics import compare_models, compute_derived_metrics
from src.fhbvector.parameters import NIV_BASELINE, chemotype_parameters
from src.fhbvector.simulation import simulate
from src.fhbvector.states import FULL_INITIAL_STATE, FULL_STATE_NAMES, time_grid

NONNEGATIVE_TOL = 1e-5


def test_full_niv_spikes_approach_but_do_not_exceed_capacity() -> None:
    trajectory = simulate("full", NIV_BASELINE)
    spikes = trajectory.column("S") + trajectory.column("I")
    assert trajectory.time[-1] == 80.0
    assert len(trajectory) == 101
    assert np.all(spikes <= NIV_BASELINE.K + 1e-6)
    assert spikes[-1] > 200.0
    assert np.all(np.diff(spikes[:10]) > 0.0)


@pytest.mark.parametrize("chemotype", ["NIV", "DON"])
@pytest.mark.parametrize("model", ["full", "simplified"])
def test_trajectories_stay_non_negative(chemotype: str, model: str) -> None:
    trajectory = simulate(model, chemotype_parameters(chemotype), times=time_grid(0.0, 80.0, 33))
    assert np.all(trajectory.states >= -NONNEGATIVE_TOL)
    assert np.all(np.isfinite(trajectory.states))


def test_susceptible_spike_aphids_respect_soft_carrying_capacity() -> None:
    trajectory = simulate("full", NIV_BASELINE)
    occupancy_s = trajectory.column("X") + trajectory.column("US") + trajectory.column("VS")
    assert occupancy_s.max() <= NIV_BASELINE.M * 1.05


def test_simulate_is_idempotent() -> None:
    first = simulate("full", NIV_BASELINE)
    second = simulate("full", NIV_BASELINE)
    assert np.array_equal(first.states, second.states)
    assert first.provenance == second.provenance


def test_halving_tolerance_roughly_halves_the_error() -> None:
    reference = simulate("full", NIV_BASELINE, solver=SolverConfig(method="DOP853", rtol=1e-12, atol=1e-12))
    scale = np.abs(reference.states) + 1.0

    def error_at(tol: float) -> float:
        run = simulate("full", NIV_BASELINE, solver=SolverConfig(rtol=tol, atol=tol))
        return float(np.max(np.abs(run.states - reference.states) / scale))

    base_err = error_at(1e-6)
    half_err = error_at(5e-7)
    assert base_err < 1e-3
    assert 0.3 < half_err / base_err < 0.75


def test_full_model_matches_scipy_reference_solution() -> None:
    ours = simulate("full", NIV_BASELINE)
    scipy_run = simulate("full", NIV_BASELINE, solver=SolverConfig(method="RK45", rtol=1e-10, atol=1e-10))
    assert ours.states[-1] == pytest.approx(scipy_run.states[-1], rel=5e-3, abs=1e-3)


def test_literal_scenario_comparison_is_finite() -> None:
    full = simulate("full", NIV_BASELINE)
    simplified = simulate("simplified", NIV_BASELINE)
    comparison = compare_models(full, simplified, label="NIV")
    assert len(comparison.frame) == 101
    assert np.all(np.isfinite(comparison.frame.to_numpy()))
    metrics = compute_derived_metrics(full)
    assert metrics.total_u[0] == pytest.approx(5.0)
    assert metrics.total_v[0] == 0.0


@pytest.mark.parametrize("chemotype", ["NIV", "DON"])
def test_models_agree_late_when_alatae_start_evenly_split(chemotype: str) -> None:
    params = chemotype_parameters(chemotype)
    # U = 1 spread over S + I = 10 spikes.
    split = dict(FULL_INITIAL_STATE, US=0.1, UI=0.1)
    full = simulate("full", params, split)
    simplified = simulate("simplified", params)
    frame = compare_models(full, simplified, label=chemotype).frame
    assert frame["full_total_u"].iloc[0] == pytest.approx(frame["simplified_u"].iloc[0])
    assert frame["rel_err_u"].iloc[50:].max() < 0.6
    assert frame["rel_err_v"].iloc[50:].max() < 0.9


def test_simulate_validates_inputs_and_surfaces_singularities() -> None:
    with pytest.raises(InvalidInitialState):
        simulate("simplified", NIV_BASELINE, {"U": -1.0, "V": 0.0, "S": 5.0, "I": 5.0})
    empty = dict(zip(FULL_STATE_NAMES, [1.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0]))
    with pytest.raises(DivisionUndefined):
        simulate("full", NIV_BASELINE, empty, times=[0.0, 1.0])


def test_trajectory_frame_is_the_output_contract(tmp_path) -> None:
    trajectory = simulate("simplified", NIV_BASELINE, times=[0.0, 1.0, 2.0], label="NIV-simplified")
    frame = trajectory.to_frame()
    assert list(frame.columns) == ["time", "U", "V", "S", "I"]
    assert frame["time"].tolist() == [0.0, 1.0, 2.0]
    assert frame.attrs["model"] == "simplified"
    assert trajectory.final_state() == dict(zip(["U", "V", "S", "I"], trajectory.states[-1].tolist()))
    path = tmp_path / "out" / "niv.csv"
    trajectory.save_csv(path)
    assert path.read_text().splitlines()[0] == "time,U,V,S,I"
    assert (tmp_path / "out" / "niv.csv.header.txt").read_text().split() == ["time", "U", "V", "S", "I"]
