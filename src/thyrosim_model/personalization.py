# personalization.py
"""
Patient-specific plasma volume, TSH distribution volume and T3 clearance.

Scales the reference values (Vp = 3.2 L, VTSH = 5.2 L, k05 = 0.185 1/h) from
sex, height and weight:

1. ideal body weight from a sex-specific quadratic in height
2. percent deviation of actual weight from ideal
3. blood volume from the allometric law Vb = 1.27 * (100 + dev)^(0.373 - 1) * BW
4. plasma volume Vp = Vb * (1 - hematocrit)
5. Vp_new = 3.2 * Vp / Vpref, with Vpref the mean of the male and female
   plasma volumes at the reference body weights
6. Vtsh_new = 5.2 + (Vp_new - 3.2)
7. k05_new scaled by (BW / BW_ref)^0.75, with a 1.05 multiplier for males

These values are not fed into the derivative model.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass
from enum import Enum
from typing import Iterator

# Reference body weights: BMI * height^2 (21.8 * 1.76^2 and 23 * 1.67^2).
BW_MALE_REF = 67.52768
BW_FEMALE_REF = 64.1447

# Mean of the male (2.86913215497) and female (2.68072175569) reference plasma volumes.
VP_REF = 2.77492695533

VP_BASE = 3.2
VTSH_BASE = 5.2
K05_BASE = 0.185
MALE_CLEARANCE_MULTIPLIER = 1.05

ALLOMETRIC_A = 1.27
ALLOMETRIC_N = 0.373


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"

    @classmethod
    def parse(cls, value: "Sex | str | bool") -> "Sex":
        if isinstance(value, Sex):
            return value
        if isinstance(value, bool):
            # true = male, as in the upstream interface
            return cls.MALE if value else cls.FEMALE
        key = str(value).strip().lower()
        if key in ("m", "male"):
            return cls.MALE
        if key in ("f", "female"):
            return cls.FEMALE
        raise ValueError(f"unknown sex {value!r}; expected 'male' or 'female'")


@dataclass(frozen=True)
class PatientProfile:
    plasma_volume: float  # Vp_new (L)
    tsh_volume: float  # Vtsh_new (L)
    t3_clearance: float  # k05_new (1/h)

    def __iter__(self) -> Iterator[float]:
        return iter(astuple(self))


def ideal_body_weight(sex: Sex, height_m: float) -> float:
    if sex is Sex.MALE:
        return 176.3 - 220.6 * height_m + 93.5 * height_m**2
    return 145.8 - 182.7 * height_m + 79.55 * height_m**2


def hematocrit(sex: Sex) -> float:
    return 0.45 if sex is Sex.MALE else 0.40


def plasma_volume(sex: Sex, height_m: float, weight_kg: float) -> float:
    """Absolute plasma volume (L) before rescaling against VP_REF."""
    ibw = ideal_body_weight(sex, height_m)
    delta_ibw = 100 * (weight_kg - ibw) / ibw
    blood_volume = ALLOMETRIC_A * (100 + delta_ibw) ** (ALLOMETRIC_N - 1) * weight_kg
    return blood_volume * (1 - hematocrit(sex))


def personalize(sex: "Sex | str | bool", height_m: float, weight_kg: float) -> PatientProfile:
    """
    Compute (Vp_new, Vtsh_new, k05_new) for one patient.

    Args:
        sex: Sex.MALE / Sex.FEMALE, or "male"/"female"/"m"/"f"
        height_m: Height (m)
        weight_kg: Body weight (kg)
    """
    sex = Sex.parse(sex)
    if not (height_m > 0.0):
        raise ValueError(f"height_m must be positive, got {height_m}")
    if not (weight_kg > 0.0):
        raise ValueError(f"weight_kg must be positive, got {weight_kg}")

    vp = plasma_volume(sex, height_m, weight_kg)
    vp_new = (VP_BASE * vp) / VP_REF
    vtsh_new = VTSH_BASE + (vp_new - VP_BASE)

    if sex is Sex.MALE:
        k05_new = MALE_CLEARANCE_MULTIPLIER * K05_BASE * (weight_kg / BW_MALE_REF) ** 0.75
    else:
        k05_new = K05_BASE * (weight_kg / BW_FEMALE_REF) ** 0.75

    return PatientProfile(vp_new, vtsh_new, k05_new)
