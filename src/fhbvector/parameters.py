"""Parameter sets for the full and simplified aphid/FHB models."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields, replace
from numbers import Real
from typing import Dict, Mapping, Tuple, Type, TypeVar, Union

from .errors import InvalidParameter

P = TypeVar("P", bound="_ParameterSet")


def _coerce_positive(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidParameter(f"Parameter '{name}' must be a real number, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidParameter(f"Parameter '{name}' must be finite, got {number}")
    if number <= 0.0:
        raise InvalidParameter(f"Parameter '{name}' must be positive, got {number}")
    return number


@dataclass(frozen=True)
class _ParameterSet:
    """Shared validation for the model parameter dataclasses."""

    def __post_init__(self) -> None:
        for item in fields(self):
            object.__setattr__(self, item.name, _coerce_positive(item.name, getattr(self, item.name)))

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(item.name for item in fields(cls))

    @classmethod
    def from_mapping(cls: Type[P], mapping: Mapping[str, object]) -> P:
        """Build a validated parameter set, rejecting unknown or missing keys."""
        expected = cls.names()
        unknown = sorted(set(mapping) - set(expected))
        if unknown:
            raise InvalidParameter(f"Unknown parameter(s) for {cls.__name__}: {', '.join(unknown)}")
        missing = [name for name in expected if name not in mapping]
        if missing:
            raise InvalidParameter(f"Missing parameter(s) for {cls.__name__}: {', '.join(missing)}")
        return cls(**{name: mapping[name] for name in expected})

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class FullModelParams(_ParameterSet):
    """Rate and scale constants of the full apterae/alatae model.

    ``a``, ``bS`` and ``bI`` are alate-nymph production rates (from alatae and
    from apterae on susceptible/infected spikes), ``dS``/``dI`` apterous
    mortality, ``M`` the aphid carrying capacity per spike, ``e`` the alate
    formation rate, ``v`` the landing bias of unexposed alatae toward infected
    spikes, ``c`` post-settling alate mortality, ``Gamma`` the mean residence
    time on a spike, ``eta`` the chemotype-loss rate, ``alpha`` the exposure
    coefficient, ``mu`` the spike appearance rate, ``K`` the spike carrying
    capacity per area, ``r`` splash infection, ``beta`` alate-borne
    transmission and ``delta`` removal to post-infectious.
    """

    a: float
    bS: float
    bI: float
    dS: float
    dI: float
    M: float
    e: float
    v: float
    c: float
    Gamma: float
    eta: float
    alpha: float
    mu: float
    K: float
    r: float
    beta: float
    delta: float

    def to_simplified(self) -> "SimplifiedModelParams":
        return SimplifiedModelParams.from_mapping(
            {name: getattr(self, name) for name in SimplifiedModelParams.names()}
        )


@dataclass(frozen=True)
class SimplifiedModelParams(_ParameterSet):
    """Subset of :class:`FullModelParams` used by the aggregated alate model."""

    alpha: float
    v: float
    eta: float
    c: float
    e: float
    M: float
    mu: float
    K: float
    r: float
    beta: float
    delta: float


ParameterSet = Union[FullModelParams, SimplifiedModelParams]

NIV_BASELINE = FullModelParams(
    a=0.8,
    bS=0.8,
    bI=1.0,
    dS=0.1,
    dI=0.1,
    M=50.0,
    e=0.2,
    v=1.2,
    c=0.18,
    Gamma=5.0,
    eta=0.2,
    alpha=0.5,
    mu=0.1,
    K=300.0,
    r=0.1,
    beta=0.01,
    delta=0.02,
)

# DON differs from NIV by these multiplicative factors.
DON_SCALE_FACTORS: Dict[str, float] = {
    "r": 1.5,
    "bI": 0.6,
    "dI": 1.2,
    "v": 0.25,
    "alpha": 0.1,
    "beta": 0.5,
}

CHEMOTYPES = ("NIV", "DON")


def scale_parameters(params: P, factors: Mapping[str, float]) -> P:
    """Return a copy of ``params`` with the named fields multiplied by ``factors``."""
    known = set(params.names())
    unknown = sorted(set(factors) - known)
    if unknown:
        raise InvalidParameter(f"Cannot scale unknown parameter(s): {', '.join(unknown)}")
    updates = {name: getattr(params, name) * float(factor) for name, factor in factors.items()}
    return replace(params, **updates)


def normalize_chemotype(chemotype: str) -> str:
    """Canonical upper-case chemotype label; unknown labels are rejected."""
    token = (chemotype or "").strip().upper()
    if token not in CHEMOTYPES:
        raise InvalidParameter(f"Unknown chemotype '{chemotype}' (expected one of {', '.join(CHEMOTYPES)})")
    return token


def chemotype_parameters(chemotype: str, baseline: FullModelParams = NIV_BASELINE) -> FullModelParams:
    """Full-model parameters for the NIV baseline or the DON-scaled variant."""
    if normalize_chemotype(chemotype) == "DON":
        return scale_parameters(baseline, DON_SCALE_FACTORS)
    return baseline


__all__ = [
    "CHEMOTYPES",
    "DON_SCALE_FACTORS",
    "FullModelParams",
    "NIV_BASELINE",
    "ParameterSet",
    "SimplifiedModelParams",
    "chemotype_parameters",
    "normalize_chemotype",
    "scale_parameters",
]
