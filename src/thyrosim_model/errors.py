# errors.py
"""
Exception hierarchy for the Thyrosim model.

Nothing in the derivative model or the integration driver recovers from these;
they propagate to the caller, which decides whether to abort or retry with
different tolerances.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence


class ThyrosimError(Exception):
    """Base class for all errors raised by this package."""


class ParameterError(ThyrosimError, ValueError):
    """A parameter set failed validation at construction."""


class NonFiniteDerivativeError(ThyrosimError, ArithmeticError):
    """A derivative component evaluated to NaN or infinity."""

    def __init__(self, time: float, indices: Sequence[int] = (), detail: str = ""):
        self.time = time
        self.indices = tuple(int(i) for i in indices)
        msg = f"non-finite derivative at t={time!r}"
        if self.indices:
            msg += f" in component(s) {list(self.indices)}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class IntegrationFailure(str, Enum):
    STEP_SIZE_UNDERFLOW = "step_size_underflow"
    NON_FINITE_STATE = "non_finite_state"


class IntegrationError(ThyrosimError, RuntimeError):
    """The integration driver could not complete the requested window."""

    def __init__(self, kind: IntegrationFailure, message: str, time: Optional[float] = None):
        self.kind = kind
        self.time = time
        super().__init__(f"{kind.value}: {message}")


class ConfigFailure(str, Enum):
    MISSING_KEY = "missing_key"
    FILE_NOT_FOUND = "file_not_found"
    INVALID_VALUE = "invalid_value"


class ConfigError(ThyrosimError):
    """A parameter or initial-state file could not be turned into model inputs."""

    def __init__(self, kind: ConfigFailure, message: str):
        self.kind = kind
        super().__init__(f"{kind.value}: {message}")
