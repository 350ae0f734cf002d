"""Result containers shared across the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

import numpy as np
import pandas as pd

from .errors import ConfigError
from .states import state_mapping

SEMANTICS_VERSION = "1.0"
TIME_COLUMN = "time"


@dataclass(frozen=True)
class Trajectory:
    """State samples of one model run at the requested output times."""

    model: str
    state_names: Tuple[str, ...]
    time: np.ndarray
    states: np.ndarray
    label: str = ""
    provenance: Dict[str, str] = field(default_factory=dict)
    semantics_version: str = SEMANTICS_VERSION

    def __post_init__(self) -> None:
        time = np.array(self.time, dtype=float, copy=True)
        states = np.array(self.states, dtype=float, copy=True)
        if states.shape != (time.size, len(self.state_names)):
            raise ConfigError(
                f"Trajectory states have shape {states.shape}, expected {(time.size, len(self.state_names))}"
            )
        time.setflags(write=False)
        states.setflags(write=False)
        object.__setattr__(self, "time", time)
        object.__setattr__(self, "states", states)

    def __len__(self) -> int:
        return int(self.time.size)

    def column(self, name: str) -> np.ndarray:
        try:
            idx = self.state_names.index(name)
        except ValueError:
            raise KeyError(f"'{name}' is not a state of the {self.model} model") from None
        return self.states[:, idx]

    def final_state(self) -> Dict[str, float]:
        return state_mapping(self.states[-1], self.state_names)

    def column_order(self) -> Tuple[str, ...]:
        return (TIME_COLUMN,) + tuple(self.state_names)

    def to_frame(self) -> pd.DataFrame:
        """One row per output time, one column per state variable."""
        data = {TIME_COLUMN: self.time}
        for idx, name in enumerate(self.state_names):
            data[name] = self.states[:, idx]
        frame = pd.DataFrame(data, columns=list(self.column_order()))
        frame.attrs["model"] = self.model
        frame.attrs["semantics_version"] = self.semantics_version
        if self.label:
            frame.attrs["label"] = self.label
        if self.provenance:
            frame.attrs["provenance"] = dict(self.provenance)
        return frame

    def save_csv(self, path: Path, *, include_header_manifest: bool = True, **to_csv_kwargs) -> None:
        path = Path(path)
        frame = self.to_frame()
        path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(path, index=False, **to_csv_kwargs)
        if include_header_manifest:
            manifest_path = path.with_suffix(path.suffix + ".header.txt")
            manifest_path.write_text("\n".join(self.column_order()), encoding="utf8")


__all__ = ["SEMANTICS_VERSION", "TIME_COLUMN", "Trajectory"]
