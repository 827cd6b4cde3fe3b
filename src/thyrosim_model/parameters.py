# parameters.py
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field, fields, replace
from typing import Mapping, Sequence, Tuple

from .errors import ConfigError, ConfigFailure, ParameterError

# Names of the 48 kinetic constants, in positional order.
KINETIC_NAMES: Tuple[str, ...] = tuple(f"p{i}" for i in range(1, 49))


@dataclass(frozen=True)
class ParameterSet:
    """
    Immutable bundle of Thyrosim kinetic constants, dials and infusions.

    Defaults are the published euthyroid values (time in hours, amounts in
    umol, volumes in L). The two dialed excretion rates are derived once at
    construction; raw p44/p46 are kept so that ``dataclasses.replace`` never
    compounds the dial.
    """

    p1: float = 0.00174155  # S4, brain-driven T4 secretion
    p2: float = 8.0  # tau
    p3: float = 0.868  # k12
    p4: float = 0.108  # k13
    p5: float = 584.0  # k31free
    p6: float = 1503.0  # k21free
    p7: float = 0.000289  # A, FT4 polynomial
    p8: float = 0.000214  # B
    p9: float = 0.000128  # C
    p10: float = -8.83e-6  # D
    p11: float = 0.88  # k4absorb
    p12: float = 0.0189  # k02
    p13: float = 0.00998996  # VmaxD1fast
    p14: float = 2.85  # KmD1fast
    p15: float = 6.63e-4  # VmaxD1slow
    p16: float = 95.0  # KmD1slow
    p17: float = 0.00074619  # VmaxD2slow
    p18: float = 0.075  # KmD2slow
    p19: float = 3.3572e-4  # S3, brain-driven T3 secretion
    p20: float = 5.37  # k45
    p21: float = 0.0689  # k46
    p22: float = 127.0  # k64free
    p23: float = 2043.0  # k54free
    p24: float = 0.00395  # a, FT3 polynomial
    p25: float = 0.00185  # b
    p26: float = 0.00061  # c
    p27: float = -0.000505  # d
    p28: float = 0.88  # k3absorb
    p29: float = 0.207  # k05
    p30: float = 1166.0  # Bzero, basal TSH secretion
    p31: float = 581.0  # Azero, circadian amplitude
    p32: float = 2.37  # Amax
    p33: float = -3.71  # phi, circadian phase
    p34: float = 0.53  # kdegTSH-HYPO
    p35: float = 0.226  # VmaxTSH
    p36: float = 23.0  # K50TSH
    p37: float = 0.118  # k3
    p38: float = 0.29  # T4P-EU
    p39: float = 0.006  # T3P-EU
    p40: float = 0.037  # KdegT3B
    p41: float = 0.0034  # KLAG-HYPO
    p42: float = 5.0  # KLAG
    p43: float = 1.3  # k4dissolve
    p44: float = 0.12  # k4excrete
    p45: float = 1.78  # k3dissolve
    p46: float = 0.12  # k3excrete
    p47: float = 3.2  # Vp (L)
    p48: float = 5.2  # VTSH (L)

    kdelay: float = 5.0 / 8.0  # (1/h) delay chain rate

    dial1: float = 1.0  # T4 secretion
    dial2: float = 1.0  # T4 absorption
    dial3: float = 1.0  # T3 secretion
    dial4: float = 1.0  # T3 absorption

    inf1: float = 0.0  # (umol/h) T4 infusion into plasma
    inf4: float = 0.0  # (umol/h) T3 infusion into plasma

    p44_dialed: float = field(init=False, repr=False)
    p46_dialed: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        for f in fields(self):
            if not f.init:
                continue
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ParameterError(f"{f.name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ParameterError(f"{f.name} must be finite, got {value!r}")
            # Normalise ints so arithmetic stays in double precision.
            object.__setattr__(self, f.name, float(value))

        for name in ("dial1", "dial2", "dial3", "dial4"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ParameterError(f"{name} must lie in [0, 1], got {value}")
        if self.kdelay < 0.0:
            raise ParameterError(f"kdelay must be non-negative, got {self.kdelay}")
        if self.p47 <= 0.0 or self.p48 <= 0.0:
            raise ParameterError("distribution volumes p47 and p48 must be positive")

        object.__setattr__(self, "p44_dialed", self.p44 * self.dial2)
        object.__setattr__(self, "p46_dialed", self.p46 * self.dial4)

    @property
    def dials(self) -> Tuple[float, float, float, float]:
        return (self.dial1, self.dial2, self.dial3, self.dial4)

    @property
    def free_hormone_coefficients(
        self,
    ) -> Tuple[Tuple[float, float, float, float], Tuple[float, float, float, float]]:
        """Cubic coefficients of the FT4 and FT3 free fractions."""
        return (
            (self.p7, self.p8, self.p9, self.p10),
            (self.p24, self.p25, self.p26, self.p27),
        )

    def kinetic_values(self) -> Tuple[float, ...]:
        return tuple(getattr(self, name) for name in KINETIC_NAMES)

    def with_dials(
        self,
        dial1: float | None = None,
        dial2: float | None = None,
        dial3: float | None = None,
        dial4: float | None = None,
    ) -> "ParameterSet":
        """Return a copy with the given dials replaced."""
        changes = {
            name: value
            for name, value in (
                ("dial1", dial1),
                ("dial2", dial2),
                ("dial3", dial3),
                ("dial4", dial4),
            )
            if value is not None
        }
        return replace(self, **changes)

    def with_infusion(self, inf1: float = 0.0, inf4: float = 0.0) -> "ParameterSet":
        return replace(self, inf1=inf1, inf4=inf4)

    @classmethod
    def from_mapping(cls, values: Mapping[str, float]) -> "ParameterSet":
        """
        Build a parameter set from a flat mapping.

        ``kdelay`` and ``p1``..``p48`` are required; dials and infusions fall
        back to their defaults.
        """
        required = ("kdelay",) + KINETIC_NAMES
        missing = [name for name in required if name not in values]
        if missing:
            raise ConfigError(
                ConfigFailure.MISSING_KEY,
                f"missing parameter(s): {', '.join(missing)}",
            )
        optional = ("dial1", "dial2", "dial3", "dial4", "inf1", "inf4")
        kwargs = {name: values[name] for name in required}
        kwargs.update({name: values[name] for name in optional if name in values})
        return cls(**kwargs)

    @classmethod
    def from_sequence(
        cls,
        values: Sequence[float],
        dials: Sequence[float] = (1.0, 1.0, 1.0, 1.0),
        inf1: float = 0.0,
        inf4: float = 0.0,
    ) -> "ParameterSet":
        """Build from the positional layout ``kdelay, p1, ..., p48``."""
        if len(values) != 1 + len(KINETIC_NAMES):
            raise ParameterError(
                f"expected {1 + len(KINETIC_NAMES)} values (kdelay, p1..p48), got {len(values)}"
            )
        if len(dials) != 4:
            raise ParameterError(f"expected 4 dial values, got {len(dials)}")
        kwargs = dict(zip(KINETIC_NAMES, values[1:]))
        return cls(
            kdelay=values[0],
            dial1=dials[0],
            dial2=dials[1],
            dial3=dials[2],
            dial4=dials[3],
            inf1=inf1,
            inf4=inf4,
            **kwargs,
        )


@dataclass(frozen=True)
class FeedbackConstants:
    """Fitted Hill constants of the TSH feedback terms (p49..p54 upstream)."""

    K_circ: float = 3.00101  # (umol) circadian half-saturation
    K_SR_tsh: float = 3.0947  # (umol) TSH secretion inhibition constant
    n_hill_circ: float = 5.6747  # circadian Hill exponent
    m_hill_tsh: float = 6.2908  # TSH inhibition Hill exponent
    K_f4: float = 8.4983  # (umol) f4 half-saturation
    l_hill_f4: float = 14.366  # f4 Hill exponent


@dataclass(frozen=True)
class VolumeRatios:
    """
    Per-compartment rescaling scalars applied before the kinetics.

    All 1.0 for now; reserved for volume personalization, which is not
    fed in yet.
    """

    plasma: float = 1.0
    slow: float = 1.0
    fast: float = 1.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not math.isfinite(value) or value <= 0.0:
                raise ParameterError(f"volume ratio {f.name} must be positive, got {value}")


DEFAULT_FEEDBACK = FeedbackConstants()
DEFAULT_VOLUMES = VolumeRatios()


def get_default_parameters() -> ParameterSet:
    """
    Return a ParameterSet with all default (euthyroid) values.
    """
    return ParameterSet()
