# free_hormones.py
"""
Free (unbound) plasma T4 and T3.

The free fractions are cubic polynomials in plasma T4. This is the only place
the polynomial is written down; the derivative model and the output formatter
both call it.
"""

from __future__ import annotations

from typing import Sequence, Tuple

from .parameters import ParameterSet


def free_fraction(t4: float, coeffs: Sequence[float]) -> float:
    """c0 + c1*T4 + c2*T4^2 + c3*T4^3, summed left to right."""
    c0, c1, c2, c3 = coeffs
    return c0 + c1 * t4 + c2 * t4**2 + c3 * t4**3


def free_hormones(t4: float, t3: float, params: ParameterSet) -> Tuple[float, float]:
    """
    Return (FT4, FT3) for plasma T4 ``t4`` and plasma T3 ``t3``.

    Both fractions are keyed on plasma T4.
    """
    ft4_coeffs, ft3_coeffs = params.free_hormone_coefficients
    ft4 = free_fraction(t4, ft4_coeffs) * t4
    ft3 = free_fraction(t4, ft3_coeffs) * t3
    return ft4, ft3
