"""Game-over evaluation, ending narratives and progress scoring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndingNarrative:
    kind: str
    title: str
    subtitle: str
    dramatic: str
    advice: str


def evaluate_ending(state, settings) -> Optional[str]:
    """Return the first ending whose predicate holds, or None."""
    s = state.stats
    if s["flight_hours"] >= 40 and s["knowledge"] >= 85 and s["safety"] >= 80:
        return "success"
    if s["money"] <= 500:
        return "bankrupt"
    if s["morale"] <= 0:
        return "burnout"
    if s["safety"] <= 30 and s["flight_hours"] > 15:
        return "safety_violation"
    if state.day > settings.max_days:
        return "timeout"
    return None


def settle_ending(state, settings) -> Optional[str]:
    """Mark the game over if the current state has reached an ending.

    Called after every action, event outcome and day advance. A game that has
    already ended keeps its ending.
    """
    if state.game_ended:
        return state.ending_type
    ending = evaluate_ending(state, settings)
    if ending is not None:
        state.game_ended = True
        state.ending_type = ending
        logger.info("Game ended on day %d: %s", state.day, ending)
    return ending


FATIGUE_SCENARIOS: Tuple[Tuple[str, str], ...] = (
    (
        "The NTSB report would later cite \"pilot fatigue\" as a contributing factor. Fighting to "
        "stay alert during the base-to-final turn, your heavy eyelids betrayed you for just a "
        "moment. The stall horn snapped you back, but physics had already taken command. The "
        "aircraft met the runway threshold with its left wingtip first and cartwheeled across the "
        "grass. You walked away unharmed, but the medical suspension letter arrived within days.",
        "The twisted propeller blade sits on your mantle, a $45,000 reminder that in aviation "
        "fatigue isn't just tiredness. It's a killer waiting for its moment.",
    ),
    (
        "Microsleep. Two seconds of unconsciousness on short final, enough time for the crosswind "
        "to push you off centerline and for the wing to drop. The landing gear collapsed as the "
        "Cessna struck the runway edge sideways. Insurance covered the damage, but not the "
        "revocation of your student certificate for reckless operation.",
        "Your unused headset hangs in the closet, forever tuned to 121.5, the emergency frequency "
        "you never thought you'd need.",
    ),
    (
        "You don't remember lining up with the taxiway instead of the runway. Tower's frantic "
        "calls barely registered as you advanced the throttle. The realization hit as you clipped "
        "a runway light on rotation. The bent prop cost $12,000; the permanent mark on your "
        "record cost far more.",
        "The taxi diagram from that day stays folded in your wallet, a map to nowhere you'll "
        "ever fly again.",
    ),
    (
        "The fuel selector was on BOTH. You're certain of it. But exhaustion plays tricks with "
        "memory. After the engine quit at 3,000 feet you realized you'd been feeding from the "
        "empty left tank. The field landing was textbook until the nose gear dug in and the plane "
        "flipped. Certificate suspended indefinitely.",
        "A photo of the inverted Cessna is your wallpaper now, a daily reminder that exhaustion "
        "exhausts more than just the pilot.",
    ),
    (
        "Radio calls became word salad. \"Cessna five... no, four... requesting the... thing.\" "
        "Fatigue had stolen your words in Class C airspace. Tower vectored you down like a child "
        "being led by hand. The cognitive assessment found acute fatigue affecting judgment, and "
        "six months of mandatory rest followed.",
        "Your last radio transcript sits in a drawer, incomprehensible proof that exhaustion "
        "speaks its own dark language.",
    ),
    (
        "You lined up perfectly on final approach to the wrong airport. Tower's urgent calls broke "
        "through the fog at 200 feet. The go-around was ugly and barely controlled. You landed at "
        "the correct field shaking, and the report you filed couldn't undo what everyone saw.",
        "Two sectional charts hang framed on your wall, circles drawn around both airports: the "
        "one you meant to find, and the one that found you.",
    ),
    (
        "The run-up revealed nothing wrong, because exhausted pilots skip things. The engine ran "
        "rough on takeoff and quit at 400 feet. You tried the impossible turn back to the runway. "
        "The stall-spin was survivable but devastating: three fractures and a total loss.",
        "Your cane taps out a rhythm when you walk, the cadence of dreams that will never leave "
        "the ground.",
    ),
    (
        "Density altitude on a hot day requires a sharp mind. Yours was dulled by exhaustion. "
        "Rotation speed came and went as the trees grew larger. You pulled back anyway. The "
        "Cessna mushed into the air, settled onto the overrun, and went through the fence.",
        "A coil of perimeter fence wire sits on your desk, the boundary you crossed when "
        "exhaustion crossed into catastrophe.",
    ),
    (
        "Night landing, fatigue multiplied by darkness. The VASI lights blurred into stars. You "
        "flew a stable approach to a point fifty feet above the runway, then forgot to flare. "
        "Nose gear collapsed, prop strike, firewall buckled. Exhaustion had been flying the plane "
        "for the last ten minutes.",
        "You keep a VASI bulb on your nightstand, red over white, reminding you of the approach "
        "you'll never fly again.",
    ),
)

ENDINGS: Dict[str, Dict[str, str]] = {
    "bankrupt": {
        "title": "Financial Ruin",
        "subtitle": "Empty Pockets, Fuller Dreams",
        "dramatic": (
            "Weather briefings fade from your browser history, replaced by job listings and "
            "budget spreadsheets. Walking past the flight school you hear pattern work overhead, "
            "each touch-and-go a reminder of lessons you can no longer afford."
        ),
        "advice": (
            "Aviation magazines pile up unread. Someday, when the accounts balance again, those "
            "pages will turn."
        ),
    },
    "burnout": {
        "title": "Complete Exhaustion",
        "subtitle": "Dreams Too Heavy to Carry",
        "dramatic": (
            "The sky that once called to you now feels impossibly distant. Your logbook sits "
            "closed on the nightstand, a souvenir from a journey that grew too heavy for weary "
            "shoulders."
        ),
        "advice": (
            "Some dreams are worth returning to when the time is right. The runway awaits your "
            "return when your spirit finds its lift again."
        ),
    },
    "safety_violation": {
        "title": "Grounded",
        "subtitle": "The Examiner Won't Sign",
        "dramatic": (
            "Too many close calls added up. Your CFI sits you down and withholds every "
            "endorsement until the habits change. The chief instructor agrees."
        ),
        "advice": "Safety isn't a stat to grind later. It's the whole job.",
    },
    "timeout": {
        "title": "Out of Time",
        "subtitle": "The Season Ends",
        "dramatic": (
            "Life moved on faster than the training did. The knowledge test results expire and "
            "the schedule fills with everything else."
        ),
        "advice": "Consistency beats intensity. Fly often or the skills fade.",
    },
    "exhausted": {
        "title": "Fatigue-Related Incident",
        "subtitle": "When Exhaustion Takes Control",
        "dramatic": (
            "Fatigue claimed another victim. A moment of inattention, a critical mistake, an "
            "incident that ended everything."
        ),
        "advice": "In aviation, fatigue is the enemy that never sleeps.",
    },
    "success": {
        "title": "Private Pilot Certificate",
        "subtitle": "Dreams Take Flight",
        "dramatic": (
            "The examiner's signature transforms paper into wings. The sky is no longer above "
            "you. It surrounds you and claims you as its own."
        ),
        "advice": "You are now pilot in command of your destiny.",
    },
}

DEFAULT_ENDING = {
    "title": "Journey's End",
    "subtitle": "Chapter Closed",
    "dramatic": "Every flight must eventually land...",
    "advice": "The runway awaits your return.",
}


def ending_narrative(kind, rng=None) -> EndingNarrative:
    info = dict(ENDINGS.get(kind, DEFAULT_ENDING))
    if kind == "exhausted" and rng is not None:
        dramatic, advice = FATIGUE_SCENARIOS[int(rng.random() * len(FATIGUE_SCENARIOS))]
        info["dramatic"] = dramatic
        info["advice"] = advice
    return EndingNarrative(kind=kind or "", **info)


def training_progress(state) -> int:
    s = state.stats
    hours_progress = min(100.0, s["flight_hours"] / 40 * 100)
    milestone_count = sum(1 for reached in state.milestones.values() if reached)
    milestones_progress = min(100.0, milestone_count / 5 * 100)
    total = (
        s["knowledge"] * 0.25
        + s["safety"] * 0.25
        + hours_progress * 0.35
        + milestones_progress * 0.15
    )
    return int(round(total))
