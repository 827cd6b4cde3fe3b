# odes.py
"""
Derivative model of the hypothalamic-pituitary-thyroid axis.

dq/dt = f(t, q, params)

Nineteen states (see state_vector.StateIx): three T4 pools, three T3 pools,
plasma TSH, the brain T3 signal and its lagged copy, pill and gut compartments
for oral T4/T3, and a six-stage delay chain between plasma TSH and brain-driven
secretion. Time is in hours.

Two model variants are carried, because the upstream model exists in two
versions with different parameter indexing and different TSH secretion
feedback:

- ``ModelVariant.HILL_PRODUCT``: TSH secretion multiplies the circadian term by
  ``K^m + T3B_lag^m`` and uses a ``sin(2*pi*t - phi)`` phase.
- ``ModelVariant.HILL_RATIO``: TSH secretion multiplies the circadian term by
  the inhibitory Hill ratio ``K^m / (K^m + T3B_lag^m)`` and uses a 24 h
  ``sin(pi*t/12 - phi)`` phase. This one follows the published parameter
  numbering.

Which of the two is canonical has not been settled upstream, so neither is a
default: callers name the variant they want.

Expressions are kept in the upstream evaluation order. Floating-point rounding
differences compound over long horizons, so do not simplify them.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Callable, Dict, List, Sequence

import numpy as np

from .errors import NonFiniteDerivativeError
from .free_hormones import free_fraction
from .parameters import (
    DEFAULT_FEEDBACK,
    DEFAULT_VOLUMES,
    FeedbackConstants,
    ParameterSet,
    VolumeRatios,
)
from .state_vector import N_STATES


class ModelVariant(str, Enum):
    HILL_PRODUCT = "hill-product"
    HILL_RATIO = "hill-ratio"


def _rhs_hill_product(
    t: float,
    q: List[float],
    p: ParameterSet,
    fb: FeedbackConstants,
    vol: VolumeRatios,
) -> List[float]:
    pv, slow, fast = vol.plasma, vol.slow, vol.fast

    # Volume rescaling
    q1 = q[0] * 1 / pv
    q2 = q[1] * 1 / fast
    q3 = q[2] * 1 / slow
    q4 = q[3] * 1 / pv
    q5 = q[4] * 1 / fast
    q6 = q[5] * 1 / slow
    q7 = q[6] * 1 / pv

    ft4_coeffs, ft3_coeffs = p.free_hormone_coefficients

    # Auxiliary equations
    q1F = free_fraction(q[0], ft4_coeffs) * q[0]  # FT4p
    q4F = free_fraction(q[0], ft3_coeffs) * q[3]  # FT3p
    SR3 = (p.p19 * q[18]) * p.dial3  # brain delay
    SR4 = (p.p1 * q[18]) * p.dial1  # brain delay
    fCIRC = math.pow(q[8], fb.n_hill_circ) / (
        math.pow(q[8], fb.n_hill_circ) + math.pow(fb.K_circ, fb.n_hill_circ)
    )
    SRTSH = (p.p30 + p.p31 * fCIRC * math.sin(2 * math.pi * t - p.p33)) * (
        math.pow(fb.K_SR_tsh, fb.m_hill_tsh) + math.pow(q[8], fb.m_hill_tsh)
    )
    fdegTSH = p.p34 + p.p35 / (p.p36 + q[6])
    fLAG = p.p41 + 2 * math.pow(q[7], 11) / (math.pow(p.p42, 11) + math.pow(q[7], 11))
    f4 = p.p37 * (
        1
        + 5
        * (math.pow(fb.K_f4, fb.l_hill_f4))
        / (math.pow(fb.K_f4, fb.l_hill_f4) + math.pow(q[7], fb.l_hill_f4))
    )
    NL = p.p13 / (p.p14 + q[1])

    d1, d3 = p.dial1, p.dial3

    dq = [0.0] * N_STATES
    dq[0] = (SR4 + p.p2 * q2 + p.p3 * q3 - (p.p4 + p.p5) * q1F) * pv + p.p10 * q[10] + p.inf1
    dq[1] = (p.p5 * q1F - (p.p2 + p.p11 + NL) * q2) * fast
    dq[2] = (p.p4 * q1F - (p.p3 + p.p14 / (p.p15 + q3) + p.p16 / (p.p17 + q3)) * q3) * slow
    dq[3] = (SR3 + p.p19 * q5 + p.p20 * q6 - (p.p21 + p.p22) * q4F) * pv + p.p27 * q[12] + p.inf4
    dq[4] = (p.p22 * q4F + NL * q2 - (p.p19 + p.p28) * q5) * fast
    dq[5] = (p.p21 * q4F + p.p14 * q3 / (p.p15 + q3) + p.p16 * q3 / (p.p17 + q3) - (p.p20) * q6) * slow
    dq[6] = (SRTSH - fdegTSH * q7) * pv
    dq[7] = f4 / p.p37 * q1 + p.p36 / p.p38 * q4 - p.p39 * q[7]
    dq[8] = fLAG * (q[7] - q[8])
    dq[9] = -p.p42 * q[9]
    dq[10] = p.p42 * q[9] - (p.p43 * d1 + p.p10) * q[10]
    dq[11] = -p.p44_dialed * q[11]
    dq[12] = p.p44_dialed * q[11] - (p.p45 * d3 + p.p27) * q[12]

    _delay_chain(q, q7, p.kdelay, dq)
    return dq


def _rhs_hill_ratio(
    t: float,
    q: List[float],
    p: ParameterSet,
    fb: FeedbackConstants,
    vol: VolumeRatios,
) -> List[float]:
    pv, slow, fast = vol.plasma, vol.slow, vol.fast
    rec_pv = 1 / pv
    rec_slow = 1 / slow
    rec_fast = 1 / fast

    # Volume rescaling
    q1 = q[0] * rec_pv
    q2 = q[1] * rec_fast
    q3 = q[2] * rec_slow
    q4 = q[3] * rec_pv
    q5 = q[4] * rec_fast
    q6 = q[5] * rec_slow
    q7 = q[6] * rec_pv

    ft4_coeffs, ft3_coeffs = p.free_hormone_coefficients

    t3b_lag_hill = math.pow(q[8], fb.n_hill_circ)
    k_sr_hill = math.pow(fb.K_SR_tsh, fb.m_hill_tsh)
    t3b_11 = math.pow(q[7], 11)
    k_f4_hill = math.pow(fb.K_f4, fb.l_hill_f4)

    # Auxiliary equations
    q4F = free_fraction(q1, ft3_coeffs) * q4  # FT3p
    q1F = free_fraction(q1, ft4_coeffs) * q1  # FT4p
    SR3 = (p.p19 * q[18]) * p.dial3  # brain delay
    SR4 = (p.p1 * q[18]) * p.dial1  # brain delay
    fCIRC = t3b_lag_hill / ((t3b_lag_hill + math.pow(fb.K_circ, fb.n_hill_circ)))
    SRTSH = (p.p30 + p.p31 * fCIRC * math.sin(math.pi * t / 12 - p.p33)) * (
        k_sr_hill / (k_sr_hill + math.pow(q[8], fb.m_hill_tsh))
    )
    fdegTSH = p.p34 + p.p35 / (p.p36 + q7)
    fLAG = p.p41 + 2 * t3b_11 / (math.pow(p.p42, 11) + t3b_11)
    f4 = p.p37 * (1 + 5 * (k_f4_hill) / (k_f4_hill + math.pow(q[7], fb.l_hill_f4)))
    NL = p.p13 / (p.p14 + q2)

    # The once-derived p44/p46 are scaled by their dial again here, as upstream.
    d2, d4 = p.dial2, p.dial4
    pill_t4 = p.p43 * q[9]
    pill_t3 = p.p45 * q[11]

    dq = [0.0] * N_STATES
    dq[0] = (SR4 + p.p3 * q2 + p.p4 * q3 - (p.p5 + p.p6) * q1F) * pv + p.p11 * q[10] + p.inf1
    dq[1] = (p.p6 * q1F - (p.p3 + p.p12 + NL) * q2) * fast
    dq[2] = (p.p5 * q1F - (p.p4 + p.p15 / (p.p16 + q3) + p.p17 / (p.p18 + q3)) * q3) * slow
    dq[3] = (SR3 + p.p20 * q5 + p.p21 * q6 - (p.p22 + p.p23) * q4F) * pv + p.p28 * q[12] + p.inf4
    dq[4] = (p.p23 * q4F + NL * q2 - (p.p20 + p.p29) * q5) * fast
    dq[5] = (p.p22 * q4F + p.p15 * q3 / (p.p16 + q3) + p.p17 * q3 / (p.p18 + q3) - (p.p21) * q6) * slow
    dq[6] = (SRTSH - fdegTSH * q7) * pv
    dq[7] = f4 / p.p38 * q1 + p.p37 / p.p39 * q4 - p.p40 * q[7]
    dq[8] = fLAG * (q[7] - q[8])
    dq[9] = -pill_t4
    dq[10] = pill_t4 - (p.p44_dialed * d2 + p.p11) * q[10]
    dq[11] = -pill_t3
    dq[12] = pill_t3 - (p.p46_dialed * d4 + p.p28) * q[12]

    _delay_chain(q, q7, p.kdelay, dq)
    return dq


def _delay_chain(q: List[float], tsh: float, kdelay: float, dq: List[float]) -> None:
    """Stage 0 is driven by plasma TSH; each later stage follows the one before."""
    dq[13] = tsh - kdelay * q[13]
    dq[14] = kdelay * (q[13] - q[14])
    dq[15] = kdelay * (q[14] - q[15])
    dq[16] = kdelay * (q[15] - q[16])
    dq[17] = kdelay * (q[16] - q[17])
    dq[18] = kdelay * (q[17] - q[18])


_VARIANTS: Dict[ModelVariant, Callable[..., List[float]]] = {
    ModelVariant.HILL_PRODUCT: _rhs_hill_product,
    ModelVariant.HILL_RATIO: _rhs_hill_ratio,
}


def derivatives(
    t: float,
    q: Sequence[float],
    params: ParameterSet,
    variant: ModelVariant | str,
    feedback: FeedbackConstants = DEFAULT_FEEDBACK,
    volumes: VolumeRatios = DEFAULT_VOLUMES,
) -> np.ndarray:
    """
    Full right-hand side dq/dt = f(t, q, params) for the chosen variant.

    Args:
        t: Time (hours)
        q: State vector [N_STATES]
        params: ParameterSet instance
        variant: ModelVariant (or its string value)
        feedback: Hill constants of the TSH feedback terms
        volumes: Compartment rescaling scalars

    Returns:
        qdot: Derivative vector [N_STATES]

    Raises:
        NonFiniteDerivativeError: if any component is NaN or infinite, or a
            power/division in the kinetics is undefined (for example a
            negative brain T3 signal raised to a fractional Hill exponent).
    """
    rhs = _VARIANTS[ModelVariant(variant)]
    y = np.asarray(q, dtype=float)
    if y.shape != (N_STATES,):
        raise ValueError(f"state vector must have {N_STATES} entries, got shape {y.shape}")

    try:
        dq = rhs(float(t), y.tolist(), params, feedback, volumes)
    except (ValueError, OverflowError, ZeroDivisionError) as exc:
        raise NonFiniteDerivativeError(float(t), detail=str(exc)) from exc

    qdot = np.array(dq, dtype=float)
    bad = np.flatnonzero(~np.isfinite(qdot))
    if bad.size:
        raise NonFiniteDerivativeError(float(t), bad.tolist())
    return qdot


class DerivativeModel:
    """
    A variant of the derivative model bound to one parameter set.

    Instances are callable as ``model(t, q)`` so they can be handed straight
    to a stepper. They hold no mutable state.
    """

    def __init__(
        self,
        params: ParameterSet,
        variant: ModelVariant | str,
        feedback: FeedbackConstants = DEFAULT_FEEDBACK,
        volumes: VolumeRatios = DEFAULT_VOLUMES,
    ):
        self.params = params
        self.variant = ModelVariant(variant)
        self.feedback = feedback
        self.volumes = volumes

    def derivatives(self, t: float, q: Sequence[float]) -> np.ndarray:
        return derivatives(t, q, self.params, self.variant, self.feedback, self.volumes)

    __call__ = derivatives

    def with_params(self, params: ParameterSet) -> "DerivativeModel":
        return DerivativeModel(params, self.variant, self.feedback, self.volumes)

    def __repr__(self) -> str:
        return f"DerivativeModel(variant={self.variant.value!r})"
