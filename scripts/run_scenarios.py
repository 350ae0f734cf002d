"""Run the NIV/DON full and simplified scenarios from the command line."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable

import pandas as pd

from src.fhbvector.integrator import SolverConfig
from src.fhbvector.parameters import CHEMOTYPES
from src.fhbvector.scenarios import EXECUTORS, MODELS, comparisons, default_scenarios, run_scenarios
from src.fhbvector.states import time_grid


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate aphid vectors and FHB spread on wheat spikes")
    parser.add_argument("--chemotype", choices=CHEMOTYPES, action="append", help="Chemotype(s) to run (default: all)")
    parser.add_argument("--model", choices=MODELS, action="append", help="Model variant(s) to run (default: all)")
    parser.add_argument("--t-end", type=float, default=80.0, help="Final output time (default: 80)")
    parser.add_argument("--samples", type=int, default=101, help="Number of evenly spaced output times (default: 101)")
    parser.add_argument("--rtol", type=float, default=1e-6)
    parser.add_argument("--atol", type=float, default=1e-6)
    parser.add_argument("--method", default="BS23", help="BS23 (native) or a scipy solve_ivp method")
    parser.add_argument("--executor", choices=EXECUTORS, default="sequential")
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Write one CSV per scenario here.  When omitted a summary is printed to stdout",
    )
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    solver = SolverConfig(method=args.method, rtol=args.rtol, atol=args.atol)
    grid = time_grid(0.0, args.t_end, args.samples)
    specs = default_scenarios(args.chemotype or CHEMOTYPES, args.model or MODELS, solver=solver, times=grid)
    results = run_scenarios(specs, executor=args.executor, max_workers=args.workers)

    rows = []
    for result in results:
        if not result.ok:
            rows.append({"scenario": result.name, "status": type(result.error).__name__})
            continue
        final = result.trajectory.final_state()
        rows.append({"scenario": result.name, "status": "ok", **final})
        if args.output_dir:
            result.trajectory.save_csv(args.output_dir / f"{result.name}.csv")
            if result.metrics is not None:
                args.output_dir.mkdir(parents=True, exist_ok=True)
                result.metrics.to_frame().to_csv(args.output_dir / f"{result.name}_derived.csv", index=False)
    if args.output_dir:
        for chemotype, comparison in comparisons(results).items():
            comparison.frame.to_csv(args.output_dir / f"{chemotype}_comparison.csv", index=False)

    pd.set_option("display.max_columns", 20)
    print(pd.DataFrame(rows))
    return 0 if all(result.ok for result in results) else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
