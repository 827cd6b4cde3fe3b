# state_vector.py
# single source of truth for the order of states in the ODE vector q

from __future__ import annotations

from enum import IntEnum
from typing import Sequence

import numpy as np


class StateIx(IntEnum):
    # T4 pools (umol)
    T4_PLASMA = 0
    T4_FAST = 1
    T4_SLOW = 2

    # T3 pools (umol)
    T3_PLASMA = 3
    T3_FAST = 4
    T3_SLOW = 5

    # TSH and the brain T3 signal
    TSH_PLASMA = 6
    T3_BRAIN = 7
    T3_BRAIN_LAG = 8

    # Oral route: pill dissolves into gut, gut absorbs into plasma
    T4_PILL = 9
    T4_GUT = 10
    T3_PILL = 11
    T3_GUT = 12

    # Six-stage linear chain standing in for the brain transport delay
    DELAY_1 = 13
    DELAY_2 = 14
    DELAY_3 = 15
    DELAY_4 = 16
    DELAY_5 = 17
    DELAY_6 = 18


N_STATES = max(StateIx) + 1  # assumes enum values are 0..N-1

DELAY_CHAIN = (
    StateIx.DELAY_1,
    StateIx.DELAY_2,
    StateIx.DELAY_3,
    StateIx.DELAY_4,
    StateIx.DELAY_5,
    StateIx.DELAY_6,
)

STATE_NAMES = tuple(ix.name.lower() for ix in StateIx)


# Euthyroid steady state of the published model with default parameters.
_EUTHYROID_IC = (
    0.322114215761171,
    0.201296960359917,
    0.638967411907560,
    0.00663104034826483,
    0.0112595761822961,
    0.0652960640300348,
    1.78829584764370,
    7.05727560072869,
    7.05714474742141,
    0.0,
    0.0,
    0.0,
    0.0,
    3.34289716182018,
    3.69277248068433,
    3.87942133769244,
    3.90061903207543,
    3.77875734283571,
    3.55364471589659,
)


def get_initial_state() -> np.ndarray:
    """Euthyroid initial state; empty pill and gut compartments."""
    return np.array(_EUTHYROID_IC, dtype=float)


def zero_state() -> np.ndarray:
    return np.zeros(N_STATES, dtype=float)


def as_state(values: Sequence[float]) -> np.ndarray:
    """
    Copy ``values`` into a fresh float64 state vector.

    Raises ValueError unless there are exactly N_STATES entries. Negative
    entries are allowed; they are just not physically meaningful.
    """
    q = np.array(values, dtype=float)
    if q.ndim != 1 or q.shape[0] != N_STATES:
        raise ValueError(f"state vector must have {N_STATES} entries, got shape {q.shape}")
    return q
