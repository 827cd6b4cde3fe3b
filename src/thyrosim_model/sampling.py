# sampling.py
"""
Samples of a simulation run and the sink interface they are pushed through.

A sink only needs ``add_sample(channel, time, value)``; plotting and any other
rendering live outside the core (see plotting.PlotSink).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
import pandas as pd

from .free_hormones import free_hormones
from .parameters import ParameterSet
from .state_vector import STATE_NAMES, StateIx

# Unit conversions from model amounts (umol) to reported concentrations.
T4_MW_FACTOR = 777.0  # ug/umol
T3_MW_FACTOR = 651.0  # ug/umol
TSH_FACTOR = 5.6  # mU per model TSH unit

# Display scaling of the free hormones to ng/L, as shown against the normal
# ranges. Kept out of free_hormones() so the text output stays unscaled.
FT4_DISPLAY_FACTOR = 0.45
FT3_DISPLAY_FACTOR = 0.5
NG_PER_UG = 1000.0

CHANNELS = ("T4", "T3", "TSH")
FREE_CHANNELS = ("FT4", "FT3")


@dataclass(frozen=True, eq=False)
class Sample:
    time: float
    state: np.ndarray = field(repr=False)
    ft4: float
    ft3: float

    def __post_init__(self) -> None:
        state = np.array(self.state, dtype=float)
        state.setflags(write=False)
        object.__setattr__(self, "state", state)

    @classmethod
    def from_state(cls, time: float, state: Sequence[float], params: ParameterSet) -> "Sample":
        state = np.asarray(state, dtype=float)
        ft4, ft3 = free_hormones(
            float(state[StateIx.T4_PLASMA]), float(state[StateIx.T3_PLASMA]), params
        )
        return cls(float(time), state, ft4, ft3)


@runtime_checkable
class SampleSink(Protocol):
    def add_sample(self, channel: str, time: float, value: float) -> None:
        ...


def channel_values(state: Sequence[float], params: ParameterSet) -> Dict[str, float]:
    """
    Reported plasma concentrations for one state.

    T4 and T3 in ug/L, TSH in mU/L.
    """
    return {
        "T4": float(state[StateIx.T4_PLASMA]) * T4_MW_FACTOR / params.p47,
        "T3": float(state[StateIx.T3_PLASMA]) * T3_MW_FACTOR / params.p47,
        "TSH": float(state[StateIx.TSH_PLASMA]) * TSH_FACTOR / params.p48,
    }


def free_hormone_values(ft4: float, ft3: float, params: ParameterSet) -> Dict[str, float]:
    """
    Free T4 and T3 in ng/L from the model free amounts.

    FT4 = 0.45 * ft4 * 777 / p47 * 1000, FT3 = 0.5 * ft3 * 651 / p47 * 1000.
    """
    return {
        "FT4": FT4_DISPLAY_FACTOR * ft4 * T4_MW_FACTOR / params.p47 * NG_PER_UG,
        "FT3": FT3_DISPLAY_FACTOR * ft3 * T3_MW_FACTOR / params.p47 * NG_PER_UG,
    }


def emit_channels(sink: SampleSink, sample: Sample, params: ParameterSet) -> None:
    for channel, value in channel_values(sample.state, params).items():
        sink.add_sample(channel, sample.time, value)


class RecordingSink:
    """Keeps every (time, value) pair per channel in memory."""

    def __init__(self) -> None:
        self.channels: Dict[str, List[Tuple[float, float]]] = {}

    def add_sample(self, channel: str, time: float, value: float) -> None:
        self.channels.setdefault(channel, []).append((time, value))

    def series(self, channel: str) -> Tuple[np.ndarray, np.ndarray]:
        points = self.channels.get(channel, [])
        if not points:
            return np.empty(0), np.empty(0)
        t, v = zip(*points)
        return np.asarray(t, dtype=float), np.asarray(v, dtype=float)


def samples_to_frame(samples: Iterable[Sample], params: ParameterSet) -> pd.DataFrame:
    """One row per sample: time, the 19 named states, ft4, ft3, T4, T3, TSH, FT4, FT3."""
    rows = []
    for s in samples:
        row = {"time": s.time}
        row.update(zip(STATE_NAMES, s.state.tolist()))
        row["ft4"] = s.ft4
        row["ft3"] = s.ft3
        row.update(channel_values(s.state, params))
        row.update(free_hormone_values(s.ft4, s.ft3, params))
        rows.append(row)
    columns = ["time", *STATE_NAMES, "ft4", "ft3", *CHANNELS, *FREE_CHANNELS]
    return pd.DataFrame(rows, columns=columns)
