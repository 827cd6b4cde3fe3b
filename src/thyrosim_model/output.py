# output.py
"""
Line-oriented text output.

Each sample becomes one line of 22 space-separated fields: time, the 19 state
values, FT4 and FT3. Numbers use Python's shortest round-trip ``repr``.
"""

from __future__ import annotations

from typing import Iterable, Sequence, TextIO

from .free_hormones import free_hormones
from .parameters import ParameterSet
from .sampling import Sample
from .state_vector import N_STATES, StateIx

N_FIELDS = 1 + N_STATES + 2


def _fmt(value: float) -> str:
    return repr(float(value))


def format_line(time: float, state: Sequence[float], params: ParameterSet) -> str:
    """Format a raw (time, state) pair, recomputing FT4/FT3 from the state."""
    values = [float(v) for v in state]
    if len(values) != N_STATES:
        raise ValueError(f"state vector must have {N_STATES} entries, got {len(values)}")
    ft4, ft3 = free_hormones(values[StateIx.T4_PLASMA], values[StateIx.T3_PLASMA], params)
    return " ".join(_fmt(v) for v in (time, *values, ft4, ft3)) + "\n"


def format_sample(sample: Sample) -> str:
    fields = [sample.time, *sample.state.tolist(), sample.ft4, sample.ft3]
    return " ".join(_fmt(v) for v in fields) + "\n"


def write_samples(samples: Iterable[Sample], stream: TextIO) -> int:
    """Write one line per sample; returns the number of lines written."""
    n = 0
    for sample in samples:
        stream.write(format_sample(sample))
        n += 1
    return n
