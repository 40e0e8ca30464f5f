"""Daily player actions: studying, flying, simulator time and rest."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .endings import settle_ending
from .errors import UnknownActionError
from .pricing import (
    FlightCost,
    box_muller,
    cfi_ground_rate,
    dual_lesson_cost,
    night_flight_cost,
    round_half_up,
    solo_flight_cost,
    uniform_int,
    xc_flight_cost,
)
from .state import DAILY_ACTIONS
from .timekeeping import update_milestones, weather_for_day

logger = logging.getLogger(__name__)

STUDY_COST = 30
SIMULATOR_COST = 75
CANCELLATION_FEE = 35
FUEL_SURCHARGE = 1.15
STUDY_TOPICS = ("regulations", "weather", "navigation", "aerodynamics", "weight & balance")
FLIGHT_ACTIONS = ("fly", "fly_dual", "fly_solo", "fly_xc_dual", "fly_night_dual")


@dataclass
class ActionResult:
    action: str
    message: str
    deltas: Dict[str, float] = field(default_factory=dict)
    cost: Optional[FlightCost] = None
    event: Any = None
    ending: Optional[str] = None
    milestones: List[str] = field(default_factory=list)
    performed: bool = True


@dataclass
class ActionChoice:
    action: str
    label: str
    cost: int
    description: str
    enabled: bool = True
    reason: Optional[str] = None
    warning: Optional[str] = None
    quote: Optional[FlightCost] = None


def quote_flight(rng, state, action) -> FlightCost:
    if action == "fly_solo":
        return solo_flight_cost(rng)
    if action == "fly_xc_dual":
        return xc_flight_cost(rng)
    if action == "fly_night_dual":
        return night_flight_cost(rng)
    return dual_lesson_cost(rng, state.phase)


def flight_price(state, quote: FlightCost) -> int:
    if state.decision_flag("fuel_price_increased"):
        return round_half_up(quote.total * FUEL_SURCHARGE)
    return quote.total


def _choice(state, action, label, cost, description, fatigue_limit, fatigue_reason, quote=None):
    choice = ActionChoice(action=action, label=label, cost=cost, description=description, quote=quote)
    if state.stats["money"] < cost:
        choice.enabled = False
        choice.reason = f"Not enough money for {label.lower()}."
    elif fatigue_limit is not None and state.stats["fatigue"] > fatigue_limit:
        choice.enabled = False
        choice.reason = fatigue_reason
    return choice


def available_actions(ctx, state) -> List[ActionChoice]:
    """List today's actions with quoted prices and any disable reason."""
    rng = ctx.rng
    choices = [
        _choice(state, "study", "Study", STUDY_COST, "Online ground school materials", None, None)
    ]
    weather = weather_for_day(state.day)
    lesson = "3hr" if state.phase == "Cross-Country" else "2hr"

    if weather.flyable and state.milestones["first_solo"]:
        quote = quote_flight(rng, state, "fly_dual")
        choices.append(
            _choice(
                state, "fly_dual", "Fly with CFI", flight_price(state, quote),
                f"{lesson} dual instruction", 80, "Too fatigued - CFI won't let you fly", quote,
            )
        )
        quote = quote_flight(rng, state, "fly_solo")
        solo = _choice(
            state, "fly_solo", "Fly Solo", flight_price(state, quote),
            "Solo practice flight", 90, "Too fatigued for solo flight - extremely dangerous!", quote,
        )
        if state.stats["fatigue"] >= 70 or state.stats["safety"] < 70:
            solo.warning = "High risk conditions for solo flight"
        choices.append(solo)
        if state.stats["flight_hours"] >= 15:
            quote = quote_flight(rng, state, "fly_xc_dual")
            choices.append(
                _choice(
                    state, "fly_xc_dual", "XC with CFI", flight_price(state, quote),
                    "3hr cross-country dual", 70, "Too fatigued for long cross-country flight", quote,
                )
            )
        if state.stats["flight_hours"] >= 20:
            quote = quote_flight(rng, state, "fly_night_dual")
            choices.append(
                _choice(
                    state, "fly_night_dual", "Night with CFI", flight_price(state, quote),
                    "2hr night dual", 75, "Too fatigued for night flying", quote,
                )
            )
    elif weather.flyable:
        quote = quote_flight(rng, state, "fly")
        choices.append(
            _choice(
                state, "fly", "Fly", flight_price(state, quote), f"{lesson} lesson with your CFI",
                80, "Too fatigued to fly safely - get some rest first", quote,
            )
        )
    else:
        choices.append(
            _choice(
                state, "simulator", "Simulator", SIMULATOR_COST, f"{weather.name} - practice in the simulator",
                90, "Too tired even for simulator - rest needed",
            )
        )

    choices.append(_choice(state, "rest", "Rest", 0, "Recover and reduce fatigue", None, None))
    return choices


def _apply(state, impacts) -> Dict[str, float]:
    applied = {}
    for stat, delta in impacts.items():
        if not delta:
            continue
        change = state.apply_stat_delta(stat, delta)
        if change is not None:
            applied[stat] = change
    return applied


def _study(ctx, state):
    rng = ctx.rng
    if state.stats["money"] < STUDY_COST:
        return None, "Not enough money for study materials. Consider taking a rest instead."
    z = rng.random() * 2 - 1
    gain = max(3, min(7, round_half_up(5 + z)))
    impacts = {"knowledge": gain, "money": -STUDY_COST, "morale": -2, "fatigue": 4}
    if state.stats["knowledge"] > 75 and rng.random() < 0.10:
        impacts["money"] = 50 - STUDY_COST
        impacts["morale"] = 3
        return impacts, f"You studied hard (+{gain} knowledge) and earned $50 tutoring another student!"
    topic = STUDY_TOPICS[int(rng.random() * len(STUDY_TOPICS))]
    return impacts, f"You studied {topic} using online materials. Knowledge +{gain}."


def _intervention(ctx, state, kind):
    group = ctx.catalog.interventions.get(kind) or ()
    if not group:
        return None
    return group[int(ctx.rng.random() * len(group))]


def _fly(ctx, state, action, quote):
    rng = ctx.rng
    fatigue = state.stats["fatigue"]
    solo = action == "fly_solo"

    if solo and fatigue >= 95:
        state.game_ended = True
        state.ending_type = "exhausted"
        logger.info("Solo flight at fatigue %.1f ended the game", fatigue)
        return ActionResult(action, "You should never have taken off.", ending="exhausted")
    if fatigue >= 80:
        event = _intervention(ctx, state, "solo_fatigue" if solo else "dual_fatigue")
        if event is not None:
            state.pending_event = event
            return ActionResult(action, event.text, event=event)

    quote = quote or quote_flight(rng, state, action)
    price = flight_price(state, quote)
    if state.stats["money"] < price:
        return ActionResult(
            action,
            "Not enough money for a flight lesson. Consider studying or taking a break.",
            performed=False,
        )

    safety = 8
    sloppy = ""
    if 60 <= fatigue < 80:
        safety = 3
        if rng.random() < 0.3:
            safety = -5
            sloppy = " You made some sloppy mistakes due to fatigue."

    hours = quote.logged_hours
    extra_driving = state.decision_flag("extra_driving")
    impacts = {
        "flight_hours": hours,
        "xc_hours": hours if action == "fly_xc_dual" else 0,
        "night_hours": hours if action == "fly_night_dual" else 0,
        "knowledge": uniform_int(rng, 1, 3),
        "safety": safety,
        "morale": 8 if fatigue >= 60 else 15,
        "money": -price,
        "fatigue": 23 if extra_driving else 15,
    }
    note = " (includes fuel surcharge)" if price != quote.total else ""
    if extra_driving:
        note += " Extra fatigue from the 90min round-trip drive."

    if solo:
        impacts["knowledge"] = uniform_int(rng, 1, 2)
        impacts["safety"] = max(3, safety - 2)
        impacts["morale"] = 10 if fatigue >= 60 else 20
        message = f"Great solo flight! You logged {hours} PIC hours.{sloppy} Aircraft rental: ${price}{note}."
    else:
        message = (
            f"Great {quote.lesson_hours:g}-hour lesson! You logged {hours} flight hours.{sloppy} "
            f"Total: ${price}{note} (aircraft ${quote.aircraft}, instructor ${quote.cfi})."
        )
    return ActionResult(action, message, deltas=_apply(state, impacts), cost=quote)


def _simulator(ctx, state):
    if state.stats["money"] < SIMULATOR_COST:
        return None, "Not enough money for simulator time. Consider studying instead."
    impacts = {"knowledge": 10, "safety": 5, "money": -SIMULATOR_COST, "fatigue": 8}
    return impacts, "Good simulator session. Procedures are becoming second nature."


def _rest(ctx, state):
    rng = ctx.rng
    recovery = max(10, min(26, round_half_up(18 + box_muller(rng) * 4)))
    impacts = {"morale": 5 + int(rng.random() * 8), "fatigue": -recovery, "safety": 3}
    if rng.random() < 0.10:
        impacts["money"] = 120
        impacts["fatigue"] = math.floor(-recovery * 0.7)
        return impacts, "You pick up a part-time shift at the FBO. Made money but less rest."
    if recovery >= 14:
        return impacts, "Excellent rest! You feel completely refreshed."
    return impacts, "Good rest. You feel better."


def _ground_lesson(ctx, state):
    rng = ctx.rng
    cost = round_half_up(cfi_ground_rate(rng) * 1.5)
    if state.stats["money"] < cost:
        return None, "You can't cover the instructor's ground rate today."
    impacts = {
        "knowledge": uniform_int(rng, 12, 19),
        "safety": 10,
        "morale": 5,
        "fatigue": -2,
        "money": -cost,
    }
    return impacts, f"Ninety minutes of ground instruction instead of flying. ${cost} well spent."


def _cancel_flight(ctx, state):
    impacts = {"money": -CANCELLATION_FEE, "morale": -5}
    return impacts, f"You cancel the lesson and eat the ${CANCELLATION_FEE} late-cancellation fee."


def _advised_rest(ctx, state):
    impacts = {"fatigue": -uniform_int(ctx.rng, 8, 12), "morale": 3, "safety": 5}
    return impacts, "You take your instructor's advice and go home to sleep it off."


_SIMPLE_ACTIONS = {
    "study": _study,
    "simulator": _simulator,
    "rest": _rest,
    "ground_lesson": _ground_lesson,
    "cancel_flight": _cancel_flight,
    "advised_rest": _advised_rest,
}


def perform_action(ctx, state, action, quote: Optional[FlightCost] = None) -> ActionResult:
    """Run one daily action. Event history is never touched here."""
    if action not in DAILY_ACTIONS:
        raise UnknownActionError(f"Unknown action '{action}'.")
    if state.game_ended:
        return ActionResult(action, "The journey is over.", ending=state.ending_type, performed=False)

    state.last_action = action
    if action in FLIGHT_ACTIONS:
        result = _fly(ctx, state, action, quote)
    else:
        impacts, message = _SIMPLE_ACTIONS[action](ctx, state)
        if impacts is None:
            result = ActionResult(action, message, performed=False)
        else:
            result = ActionResult(action, message, deltas=_apply(state, impacts))

    result.milestones = update_milestones(state, ctx.settings)
    result.ending = settle_ending(state, ctx.settings)
    return result
