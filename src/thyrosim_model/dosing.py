# dosing.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .state_vector import StateIx

# Molecular weights used to turn ug into model umol.
MW_T4_UG_PER_UMOL = 777.0
MW_T3_UG_PER_UMOL = 651.0

HOURS_PER_DAY = 24.0


class Hormone(str, Enum):
    T4 = "T4"
    T3 = "T3"


class Route(str, Enum):
    ORAL = "oral"  # into the pill compartment
    IV = "iv"  # bolus into plasma
    INFUSION = "infusion"  # constant rate into plasma over [time, end)


def ug_to_umol(amount_ug: float, hormone: Hormone) -> float:
    """Convert a dose in ug to umol."""
    mw = MW_T4_UG_PER_UMOL if Hormone(hormone) is Hormone.T4 else MW_T3_UG_PER_UMOL
    return amount_ug / mw


def days_to_hours(days: float) -> float:
    return days * HOURS_PER_DAY


@dataclass(frozen=True)
class DoseEvent:
    time: float  # hours
    hormone: Hormone
    route: Route
    amount: float  # ug; ug/day for infusions
    end: Optional[float] = None  # hours, infusions only

    def __post_init__(self) -> None:
        object.__setattr__(self, "hormone", Hormone(self.hormone))
        object.__setattr__(self, "route", Route(self.route))
        if not math.isfinite(self.time):
            raise ValueError(f"dose time must be finite, got {self.time}")
        if not math.isfinite(self.amount) or self.amount < 0.0:
            raise ValueError(f"dose amount must be a non-negative number, got {self.amount}")
        if self.route is Route.INFUSION:
            if self.end is None or not self.end > self.time:
                raise ValueError("infusion needs an end time after its start time")
        elif self.end is not None:
            raise ValueError(f"{self.route.value} doses do not take an end time")

    @property
    def amount_umol(self) -> float:
        return ug_to_umol(self.amount, self.hormone)

    @property
    def rate_umol_per_hour(self) -> float:
        """Infusion rate in model units (umol/h)."""
        return self.amount_umol / HOURS_PER_DAY

    @property
    def target(self) -> StateIx:
        """State slot a bolus lands in."""
        if self.route is Route.ORAL:
            return StateIx.T4_PILL if self.hormone is Hormone.T4 else StateIx.T3_PILL
        if self.route is Route.IV:
            return StateIx.T4_PLASMA if self.hormone is Hormone.T4 else StateIx.T3_PLASMA
        raise ValueError("infusions act through the infusion rates, not a state slot")

    def is_bolus(self) -> bool:
        return self.route is not Route.INFUSION


@dataclass
class DosingRegimen:
    events: List[DoseEvent] = field(default_factory=list)

    def times(self) -> List[float]:
        return [e.time for e in self.events]

    def boundaries(self) -> List[float]:
        """Every time at which the inputs change: doses and infusion ends."""
        out = []
        for e in self.events:
            out.append(e.time)
            if e.end is not None:
                out.append(e.end)
        return sorted(set(out))

    def boluses_at(self, t: float, tol: float = 1e-9) -> List[DoseEvent]:
        return [e for e in self.events if e.is_bolus() and abs(e.time - t) < tol]

    def infusion_rates(self, t: float) -> tuple[float, float]:
        """(inf1, inf4) in umol/h active on the interval starting at t."""
        inf1 = 0.0
        inf4 = 0.0
        for e in self.events:
            if e.route is Route.INFUSION and e.time <= t < e.end:
                if e.hormone is Hormone.T4:
                    inf1 += e.rate_umol_per_hour
                else:
                    inf4 += e.rate_umol_per_hour
        return inf1, inf4

    def merged(self, other: "DosingRegimen") -> "DosingRegimen":
        return DosingRegimen(sorted(self.events + other.events, key=lambda e: e.time))


# Simple regimens (times in days, as entered in the Thyrosim UI)
def oral_regimen(
    hormone: Hormone | str,
    dose_ug: float,
    start_day: float = 0.0,
    interval_days: float = 1.0,
    end_day: Optional[float] = None,
    single_dose: bool = False,
) -> DosingRegimen:
    """
    Repeated oral doses from start_day every interval_days up to end_day
    (inclusive). ``single_dose`` gives one pill at start_day.
    """
    if single_dose or end_day is None:
        return DosingRegimen(
            [DoseEvent(days_to_hours(start_day), Hormone(hormone), Route.ORAL, dose_ug)]
        )
    if interval_days <= 0.0:
        raise ValueError(f"interval_days must be positive, got {interval_days}")
    if end_day < start_day:
        raise ValueError(f"end_day ({end_day}) is before start_day ({start_day})")

    events = []
    n = int(math.floor((end_day - start_day) / interval_days + 1e-9))
    for i in range(n + 1):
        day = start_day + i * interval_days
        events.append(DoseEvent(days_to_hours(day), Hormone(hormone), Route.ORAL, dose_ug))
    return DosingRegimen(events)


def iv_pulse(hormone: Hormone | str, dose_ug: float, start_day: float = 0.0) -> DosingRegimen:
    """Single IV bolus into plasma."""
    return DosingRegimen(
        [DoseEvent(days_to_hours(start_day), Hormone(hormone), Route.IV, dose_ug)]
    )


def infusion(
    hormone: Hormone | str,
    rate_ug_per_day: float,
    start_day: float,
    end_day: float,
) -> DosingRegimen:
    """Constant infusion into plasma between start_day and end_day."""
    return DosingRegimen(
        [
            DoseEvent(
                days_to_hours(start_day),
                Hormone(hormone),
                Route.INFUSION,
                rate_ug_per_day,
                end=days_to_hours(end_day),
            )
        ]
    )
