# integrator.py
"""
Adaptive integration driver.

Drives scipy's DOP853 (Dormand-Prince 8(5,3), embedded error estimate, dense
output) over a DerivativeModel one accepted step at a time. Samples are taken
from each step's local interpolant rather than by re-integrating.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence

import numpy as np
from scipy.integrate import DOP853

from .errors import IntegrationError, IntegrationFailure, NonFiniteDerivativeError
from .odes import DerivativeModel
from .sampling import Sample, SampleSink, emit_channels
from .state_vector import as_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tolerances:
    min_step: float = 1e-8
    max_step: float = 100.0
    atol: float = 1e-10
    rtol: float = 1e-10
    first_step: Optional[float] = None

    def __post_init__(self) -> None:
        for name in ("min_step", "max_step", "atol", "rtol"):
            value = getattr(self, name)
            if not (value > 0.0):
                raise ValueError(f"{name} must be positive, got {value}")
        if self.min_step > self.max_step:
            raise ValueError(
                f"min_step ({self.min_step}) must not exceed max_step ({self.max_step})"
            )
        if self.first_step is not None and not (self.first_step > 0.0):
            raise ValueError(f"first_step must be positive, got {self.first_step}")


class SamplingMode(str, Enum):
    FINAL_ONLY = "final-only"  # one sample, at t_end
    CONTINUOUS = "continuous"  # one sample per accepted step
    GRID = "grid"  # requested times (t_eval or a fixed grid_step from t_start)


class IntegrationResult(NamedTuple):
    final_state: np.ndarray
    samples: List[Sample]


def integrate(
    model: DerivativeModel,
    t_start: float,
    state0: Sequence[float],
    t_end: float,
    tolerances: Optional[Tolerances] = None,
    mode: SamplingMode | str = SamplingMode.CONTINUOUS,
    sink: Optional[SampleSink] = None,
    grid_step: Optional[float] = None,
    t_eval: Optional[Sequence[float]] = None,
) -> IntegrationResult:
    """
    Integrate ``model`` from (t_start, state0) to t_end.

    Args:
        model: DerivativeModel (anything callable as f(t, q) with a .params)
        t_start: Start time (hours)
        state0: Initial state [N_STATES]
        t_end: End time (hours); may lie before t_start
        tolerances: step-size limits and error tolerances
        mode: SamplingMode
        sink: optional SampleSink receiving the T4/T3/TSH channels of every sample
        grid_step: spacing for SamplingMode.GRID, counted from t_start; t_end
            is always included
        t_eval: explicit times for SamplingMode.GRID (overrides grid_step);
            times outside the window are ignored

    Returns:
        IntegrationResult(final_state, samples)

    Raises:
        IntegrationError: STEP_SIZE_UNDERFLOW if the step size collapses below
            tolerances.min_step, NON_FINITE_STATE if a derivative evaluation
            was not finite.
    """
    tol = tolerances if tolerances is not None else Tolerances()
    mode = SamplingMode(mode)
    needs_step = mode is SamplingMode.GRID and t_eval is None
    if needs_step and not (grid_step is not None and grid_step > 0.0):
        raise ValueError("SamplingMode.GRID needs t_eval or a positive grid_step")

    t_start = float(t_start)
    t_end = float(t_end)
    y0 = as_state(state0)
    params = model.params
    samples: List[Sample] = []

    def emit(t: float, y: np.ndarray) -> None:
        sample = Sample.from_state(t, y, params)
        samples.append(sample)
        if sink is not None:
            emit_channels(sink, sample, params)

    if t_start == t_end:
        emit(t_start, y0)
        return IntegrationResult(y0.copy(), samples)

    direction = 1.0 if t_end > t_start else -1.0
    grid: List[float] = []
    gi = 0
    if mode is SamplingMode.GRID:
        grid = _grid_times(t_start, t_end, grid_step, t_eval)
        while gi < len(grid) and grid[gi] == t_start:
            emit(t_start, y0)
            gi += 1

    try:
        solver = DOP853(
            model,
            t_start,
            y0,
            t_end,
            max_step=tol.max_step,
            rtol=tol.rtol,
            atol=tol.atol,
            first_step=tol.first_step,
        )

        n_steps = 0
        while solver.status == "running":
            message = solver.step()
            if solver.status == "failed":
                raise IntegrationError(
                    IntegrationFailure.STEP_SIZE_UNDERFLOW,
                    f"stepper failed at t={float(solver.t)!r}: {message}",
                    time=float(solver.t),
                )
            n_steps += 1
            finished = solver.status == "finished"

            if mode is SamplingMode.CONTINUOUS:
                emit(solver.t, solver.dense_output()(solver.t))
            elif mode is SamplingMode.FINAL_ONLY:
                if finished:
                    emit(t_end, solver.dense_output()(t_end))
            else:
                interpolant = None
                while gi < len(grid) and direction * (grid[gi] - solver.t) <= 0:
                    if interpolant is None:
                        interpolant = solver.dense_output()
                    emit(grid[gi], interpolant(grid[gi]))
                    gi += 1

            if not finished and solver.h_abs < tol.min_step:
                raise IntegrationError(
                    IntegrationFailure.STEP_SIZE_UNDERFLOW,
                    f"step size {solver.h_abs:.3e} fell below minimum "
                    f"{tol.min_step:.3e} at t={float(solver.t)!r}",
                    time=float(solver.t),
                )
    except NonFiniteDerivativeError as exc:
        raise IntegrationError(
            IntegrationFailure.NON_FINITE_STATE, str(exc), time=exc.time
        ) from exc

    logger.debug(
        "integrated [%g, %g] (%s): %d steps, %d evaluations, %d samples",
        t_start,
        t_end,
        mode.value,
        n_steps,
        solver.nfev,
        len(samples),
    )
    return IntegrationResult(np.array(solver.y, dtype=float), samples)


def _grid_times(
    t_start: float,
    t_end: float,
    grid_step: Optional[float],
    t_eval: Optional[Sequence[float]],
) -> List[float]:
    """Sampling times inside [t_start, t_end], ordered in the integration direction."""
    lo, hi = min(t_start, t_end), max(t_start, t_end)
    reverse = t_end < t_start
    if t_eval is not None:
        times = sorted({float(t) for t in t_eval if lo <= t <= hi}, reverse=reverse)
        return times

    direction = -1.0 if reverse else 1.0
    n = int(np.floor(abs(t_end - t_start) / grid_step + 1e-9))
    times = [t_start + direction * k * grid_step for k in range(n + 1)]
    times = [t for t in times if lo <= t <= hi]
    if times[-1] != t_end:
        times.append(t_end)
    return times
