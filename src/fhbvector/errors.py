"""Domain-specific exceptions for the simulation engine."""

from __future__ import annotations

from typing import Optional, Sequence


class FhbError(RuntimeError):
    """Base class for simulation engine errors."""


class ConfigError(FhbError):
    """Raised when solver, time grid or scenario configuration is invalid."""


class InvalidParameter(FhbError, ValueError):
    """Raised when a parameter set is missing, unknown, or non-positive."""


class InvalidInitialState(FhbError, ValueError):
    """Raised when an initial state component is missing or negative."""


class DivisionUndefined(FhbError, ZeroDivisionError):
    """Raised when a model denominator (S+v*I or S+I) vanishes."""

    def __init__(self, quantity: str, time: Optional[float] = None):
        self.quantity = quantity
        self.time = time
        where = "" if time is None else f" at t={time:.6g}"
        super().__init__(f"{quantity} is zero{where}; model term undefined")

    def __reduce__(self):
        return (type(self), (self.quantity, self.time))


class IntegrationFailure(FhbError):
    """Raised when the adaptive step collapses without meeting tolerance."""

    def __init__(self, message: str, *, time: float, step: float):
        self.time = time
        self.step = step
        self.message = message
        super().__init__(f"{message} (t={time:.6g}, h={step:.3g})")

    def __reduce__(self):
        return (_rebuild_integration_failure, (type(self), self.message, self.time, self.step))


class NumericalDivergence(FhbError):
    """Raised when a derivative evaluation returns a non-finite rate."""

    def __init__(self, time: float, components: Sequence[str] = ()):
        self.time = time
        self.components = tuple(components)
        detail = ", ".join(self.components) if self.components else "unknown components"
        super().__init__(f"non-finite derivative at t={time:.6g}: {detail}")

    def __reduce__(self):
        return (type(self), (self.time, self.components))


def _rebuild_integration_failure(cls, message, time, step):
    return cls(message, time=time, step=step)


__all__ = [
    "FhbError",
    "ConfigError",
    "InvalidParameter",
    "InvalidInitialState",
    "DivisionUndefined",
    "IntegrationFailure",
    "NumericalDivergence",
]
