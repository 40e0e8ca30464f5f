"""Day clock, weather cycle, daily drain and curriculum milestones."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from .chains import evict_expired, start_chain
from .endings import settle_ending
from .settings import EngineSettings


WEATHER_CYCLE = ("clear", "clear", "marginal", "clear", "ifr", "clear", "storms")

WEATHER_TYPES: Mapping[str, Mapping[str, Any]] = {
    "clear": {"name": "Clear skies", "flyable": True},
    "marginal": {"name": "Marginal VFR", "flyable": False},
    "ifr": {"name": "IFR conditions", "flyable": False},
    "storms": {"name": "Thunderstorms", "flyable": False},
}

DAILY_DRAIN: Mapping[str, float] = {
    "knowledge": -0.3,
    "morale": -0.5,
    "safety": -0.2,
    "fatigue": 1.5,
}


@dataclass(frozen=True)
class Weather:
    kind: str
    name: str
    flyable: bool


@dataclass
class DayReport:
    state: Any
    ending_reached: bool = False
    ending: Optional[str] = None
    drained: bool = False
    evicted: tuple = ()
    milestones: tuple = ()


def weather_for_day(day: int) -> Weather:
    kind = WEATHER_CYCLE[(max(int(day), 1) - 1) % len(WEATHER_CYCLE)]
    info = WEATHER_TYPES[kind]
    return Weather(kind=kind, name=info["name"], flyable=info["flyable"])


def apply_daily_drain(state) -> bool:
    """Apply the per-day stat drain at most once per day; day 1 is exempt."""
    if state.day <= state.last_drain_day or state.day <= 1:
        return False
    for stat, delta in DAILY_DRAIN.items():
        state.apply_stat_delta(stat, delta)
    state.last_drain_day = state.day
    return True


def update_milestones(state, settings=None) -> List[str]:
    """Latch any newly earned milestones and return their announcements."""
    s = state.stats
    m = state.milestones
    messages: List[str] = []

    if not m["ground_school"] and s["knowledge"] >= 60:
        m["ground_school"] = True
        if state.phase == "Ground School":
            state.phase = "Pre-Solo"
        messages.append("Ground School Complete! Ready for flight training!")

    if not m["written_prep"] and s["knowledge"] >= 40:
        m["written_prep"] = True
        messages.append("Written test prep unlocked. Time to hit the practice exams.")

    if not m["written_passed"] and m["ground_school"] and s["knowledge"] >= 70:
        m["written_passed"] = True
        messages.append("FAA Knowledge Test passed!")

    if not m["pre_solo_written_passed"] and s["flight_hours"] >= 15 and s["knowledge"] >= 50:
        m["pre_solo_written_passed"] = True
        messages.append("Pre-Solo Written Passed! One step closer to solo flight!")

    if (
        not m["solo_endorsement"]
        and m["pre_solo_written_passed"]
        and s["flight_hours"] >= 18
        and s["safety"] >= 85
    ):
        m["solo_endorsement"] = True
        m["first_solo"] = True
        state.phase = "Solo Training"
        state.apply_stat_delta("morale", 30)
        state.apply_stat_delta("flight_hours", 0.5)
        messages.append(
            "FIRST SOLO FLIGHT! Your CFI steps out: 'Three times around the pattern. You've got this!'"
        )

    if s["flight_hours"] >= 25 and state.phase == "Solo Training":
        state.phase = "Cross-Country"
        messages.append("Cross-country phase begins. Time to leave the pattern behind.")

    if s["flight_hours"] >= 40 and state.phase == "Cross-Country":
        state.phase = "Checkride Prep"
        m["cross_country"] = True
        m["checkride_endorsement"] = True
        if "checkride_prep" not in state.active_chains:
            start_chain(state, "checkride_prep")
        messages.append("Checkride endorsement signed. The examiner is a phone call away.")
    elif state.phase == "Checkride Prep" and not m["checkride_passed"]:
        _restart_checkride_prep(state, settings)

    return messages


def _restart_checkride_prep(state, settings) -> None:
    if "checkride_prep" in state.active_chains:
        return
    cooldown = (settings or EngineSettings()).cooldown_days
    last_attempt = state.last_seen_day("checkride_final")
    if last_attempt is not None and state.day - last_attempt < cooldown:
        return
    start_chain(state, "checkride_prep")


def advance_day(ctx, state) -> DayReport:
    """Move the clock forward one day and settle everything tied to it."""
    if state.game_ended:
        return DayReport(state=state, ending_reached=True, ending=state.ending_type)

    state.day += 1
    state.pending_event = None
    drained = apply_daily_drain(state)
    evicted = evict_expired(ctx.catalog, state, ctx.settings)
    milestones = update_milestones(state, ctx.settings)

    ending = settle_ending(state, ctx.settings)

    return DayReport(
        state=state,
        ending_reached=ending is not None,
        ending=ending,
        drained=drained,
        evicted=tuple(evicted),
        milestones=tuple(milestones),
    )
