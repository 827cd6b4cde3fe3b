# plotting.py

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import matplotlib.pyplot as plt

from .sampling import CHANNELS, FREE_CHANNELS, RecordingSink, channel_values, free_hormone_values
from .simulation import SimulationResult
from .state_vector import StateIx

UNITS = {
    "T4": "μg/L",
    "T3": "μg/L",
    "TSH": "mU/L",
    "FT4": "ng/L",
    "FT3": "ng/L",
}

# Normal ranges (lo, hi) per model flavour, as shown in the Thyrosim UI.
NORMAL_RANGES: Dict[str, Dict[str, Tuple[float, float]]] = {
    "Thyrosim": {
        "FT4": (8.0, 17.0),
        "FT3": (2.22, 3.83),
        "T4": (45.0, 105.0),
        "T3": (0.6, 1.8),
        "TSH": (0.3, 4.0),
    },
    "ThyrosimJr": {
        "FT4": (10.0, 14.0),
        "FT3": (2.32, 7.07),
        "T4": (59.0, 119.0),
        "T3": (1.0, 2.15),
        "TSH": (0.6, 4.0),
    },
}


def within_range(hormone: str, value: float, flavour: str = "Thyrosim") -> bool:
    lo, hi = NORMAL_RANGES[flavour][hormone]
    return lo <= value <= hi


class PlotSink(RecordingSink):
    """
    Sample sink that turns the T4, T3 and TSH channels into line charts.
    """

    def __init__(self, flavour: str = "Thyrosim", time_unit: str = "hours"):
        super().__init__()
        self.flavour = flavour
        self.time_unit = time_unit

    def plot(self, axes: Optional[Sequence[plt.Axes]] = None) -> List[plt.Axes]:
        if axes is None:
            fig, axes = plt.subplots(len(CHANNELS), 1, figsize=(6, 8), sharex=True)
        axes = list(np.atleast_1d(axes))
        for ax, channel in zip(axes, CHANNELS):
            t, v = self.series(channel)
            plot_channel(ax, t, v, channel, flavour=self.flavour, time_unit=self.time_unit)
        return axes


def plot_channel(
    ax: plt.Axes,
    t: np.ndarray,
    values: np.ndarray,
    channel: str,
    flavour: Optional[str] = "Thyrosim",
    time_unit: str = "hours",
    label: Optional[str] = None,
) -> plt.Axes:
    ax.plot(t, values, label=label or channel)
    if flavour is not None and channel in NORMAL_RANGES[flavour]:
        lo, hi = NORMAL_RANGES[flavour][channel]
        ax.axhspan(lo, hi, color="tab:green", alpha=0.1, label="Normal range")
    ax.set_xlabel(f"Time [{time_unit}]")
    ax.set_ylabel(f"{channel} [{UNITS[channel]}]")
    ax.set_title(channel)
    ax.grid(True)
    if label:
        ax.legend()
    return ax


# Hormone trajectories of a scenario run
def plot_hormones(
    result: SimulationResult,
    axes: Optional[Sequence[plt.Axes]] = None,
    flavour: str = "Thyrosim",
    in_days: bool = True,
    label: Optional[str] = None,
) -> List[plt.Axes]:
    if axes is None:
        fig, axes = plt.subplots(len(CHANNELS), 1, figsize=(6, 8), sharex=True)
    axes = list(np.atleast_1d(axes))

    t = result.t / 24.0 if in_days else result.t
    per_channel = {c: [] for c in CHANNELS}
    for q in result.y.T:
        for channel, value in channel_values(q, result.params).items():
            per_channel[channel].append(value)

    for ax, channel in zip(axes, CHANNELS):
        plot_channel(
            ax,
            t,
            np.asarray(per_channel[channel]),
            channel,
            flavour=flavour,
            time_unit="days" if in_days else "hours",
            label=label,
        )
    return axes


# Free hormones
def plot_free_hormones(
    result: SimulationResult,
    axes: Optional[Sequence[plt.Axes]] = None,
    flavour: Optional[str] = "Thyrosim",
    in_days: bool = False,
    label: Optional[str] = None,
) -> List[plt.Axes]:
    if axes is None:
        fig, axes = plt.subplots(len(FREE_CHANNELS), 1, figsize=(6, 5), sharex=True)
    axes = list(np.atleast_1d(axes))

    t = result.t / 24.0 if in_days else result.t
    per_channel = {c: [] for c in FREE_CHANNELS}
    for s in result.samples:
        for channel, value in free_hormone_values(s.ft4, s.ft3, result.params).items():
            per_channel[channel].append(value)

    for ax, channel in zip(axes, FREE_CHANNELS):
        plot_channel(
            ax,
            t,
            np.asarray(per_channel[channel]),
            channel,
            flavour=flavour,
            time_unit="days" if in_days else "hours",
            label=label,
        )
    return axes


# Brain delay chain
def plot_delay_chain(
    result: SimulationResult,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4))

    ax.plot(result.t, result.y[StateIx.TSH_PLASMA], "k", label="TSHp")
    for k, ix in enumerate(range(StateIx.DELAY_1, StateIx.DELAY_6 + 1), start=1):
        ax.plot(result.t, result.y[ix], alpha=0.7, label=f"stage {k}")
    ax.set_xlabel("Time [hours]")
    ax.set_ylabel("Amount")
    ax.set_title("TSH delay chain")
    ax.grid(True)
    ax.legend(fontsize="small")
    return ax
