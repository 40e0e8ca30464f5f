"""Flight and lesson pricing with normally distributed rates.

Only ``rng.random()`` is drawn so callers can script exact sequences.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


def box_muller(rng) -> float:
    u1 = rng.random() or 1e-12
    u2 = rng.random()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def uniform_int(rng, lo: int, hi: int) -> int:
    return lo + int(rng.random() * (hi - lo + 1))


def sample_normal(rng, mean, std, lo, hi, whole=False, z=None):
    if z is None:
        z = box_muller(rng)
    value = min(hi, max(lo, mean + z * std))
    return round_half_up(value) if whole else value


@dataclass(frozen=True)
class FlightCost:
    total: int
    aircraft: int
    cfi: int
    hobbs: float
    lesson_hours: float
    fuel: int = 0
    aircraft_rate: int = 0
    cfi_rate: int = 0
    is_solo: bool = False

    @property
    def logged_hours(self) -> float:
        return round(self.hobbs, 1)


def _aircraft_rate(rng, mean=165, lo=120, hi=200) -> int:
    return sample_normal(rng, mean, 15, lo, hi, whole=True)


def _cfi_rate(rng, mean=85, std=12, lo=60, hi=110) -> int:
    return sample_normal(rng, mean, std, lo, hi, whole=True)


def dual_lesson_cost(rng, phase=None) -> FlightCost:
    aircraft_rate = _aircraft_rate(rng)
    cfi_rate = _cfi_rate(rng)
    # One draw drives both the hobbs time and the billed lesson length.
    z = box_muller(rng)
    if phase == "Cross-Country":
        hobbs = sample_normal(rng, 2.0, 0.3, 1.5, 2.5, z=z)
        lesson_hours = 3.0
    else:
        hobbs = sample_normal(rng, 1.2, 0.3, 0.7, 1.8, z=z)
        lesson_hours = 2.0
    aircraft = round_half_up(aircraft_rate * hobbs)
    cfi = round_half_up(cfi_rate * lesson_hours)
    return FlightCost(
        total=aircraft + cfi,
        aircraft=aircraft,
        cfi=cfi,
        hobbs=hobbs,
        lesson_hours=lesson_hours,
        aircraft_rate=aircraft_rate,
        cfi_rate=cfi_rate,
    )


def solo_flight_cost(rng) -> FlightCost:
    aircraft_rate = _aircraft_rate(rng)
    hobbs = sample_normal(rng, 1.2, 0.2, 1.0, 1.5)
    aircraft = round_half_up(aircraft_rate * hobbs)
    return FlightCost(
        total=aircraft,
        aircraft=aircraft,
        cfi=0,
        hobbs=hobbs,
        lesson_hours=0.0,
        aircraft_rate=aircraft_rate,
        is_solo=True,
    )


def xc_flight_cost(rng) -> FlightCost:
    aircraft_rate = _aircraft_rate(rng)
    cfi_rate = _cfi_rate(rng, mean=55, std=10, lo=40, hi=75)
    hobbs = sample_normal(rng, 3.5, 0.5, 3.0, 4.0)
    fuel = uniform_int(rng, 15, 25)
    aircraft = round_half_up(aircraft_rate * hobbs)
    cfi = round_half_up(cfi_rate * hobbs)
    return FlightCost(
        total=aircraft + cfi + fuel,
        aircraft=aircraft,
        cfi=cfi,
        hobbs=hobbs,
        lesson_hours=hobbs,
        fuel=fuel,
        aircraft_rate=aircraft_rate,
        cfi_rate=cfi_rate,
    )


def night_flight_cost(rng) -> FlightCost:
    aircraft_rate = _aircraft_rate(rng, mean=170, lo=125, hi=205)
    cfi_rate = _cfi_rate(rng, mean=60, std=10, lo=45, hi=80)
    hobbs = sample_normal(rng, 2.2, 0.3, 2.0, 2.5)
    fuel = uniform_int(rng, 10, 15)
    aircraft = round_half_up(aircraft_rate * hobbs)
    cfi = round_half_up(cfi_rate * hobbs)
    return FlightCost(
        total=aircraft + cfi + fuel,
        aircraft=aircraft,
        cfi=cfi,
        hobbs=hobbs,
        lesson_hours=hobbs,
        fuel=fuel,
        aircraft_rate=aircraft_rate,
        cfi_rate=cfi_rate,
    )


def premium_lesson_cost(rng) -> FlightCost:
    """Backup-aircraft lesson priced at the premium rate."""
    aircraft_rate = _aircraft_rate(rng, mean=235, lo=200, hi=280)
    cfi_rate = _cfi_rate(rng)
    hobbs = sample_normal(rng, 1.2, 0.3, 0.7, 1.8)
    aircraft = round_half_up(aircraft_rate * hobbs)
    cfi = round_half_up(cfi_rate * 2.0)
    return FlightCost(
        total=aircraft + cfi,
        aircraft=aircraft,
        cfi=cfi,
        hobbs=hobbs,
        lesson_hours=2.0,
        aircraft_rate=aircraft_rate,
        cfi_rate=cfi_rate,
    )


def cfi_ground_rate(rng) -> int:
    return sample_normal(rng, 50, 15, 30, 75, whole=True)
