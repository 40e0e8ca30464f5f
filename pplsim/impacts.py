"""Computed impacts and named outcomes referenced by catalog JSON.

Catalog options name these with ``{"type": "<name>"}`` in place of a literal
delta mapping or outcome string.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Tuple

from .pricing import premium_lesson_cost

ImpactDetails = Dict[str, Any]
ComputedImpactFn = Callable[[Any, Any], Tuple[Dict[str, float], ImpactDetails]]
NamedOutcomeFn = Callable[[Any, Mapping[str, Any]], str]


def premium_lesson(state, rng):
    cost = premium_lesson_cost(rng)
    deltas = {
        "money": -cost.total,
        "knowledge": 8,
        "flight_hours": cost.logged_hours,
        "fatigue": 8,
    }
    return deltas, {"cost": cost.total, "hobbs": cost.logged_hours}


def tax_refund(state, rng):
    refund = 1500 + int(rng.random() * 601)
    return {"money": refund, "morale": 18}, {"cost": refund}


COMPUTED_IMPACTS: Dict[str, ComputedImpactFn] = {
    "premium_lesson": premium_lesson,
    "tax_refund": tax_refund,
}


def _premium_lesson_outcome(state, values):
    return (
        f"The G1000 equipped plane is amazing! {values.get('hobbs', 0):.1f} flight hours "
        f"in advanced avionics. Total: ${values.get('cost', 0)}."
    )


def _tax_refund_outcome(state, values):
    return f"Your ${values.get('cost', 0):,} refund lands. That's several more lessons funded."


def _progress_check(state, values):
    hours = state.stats["flight_hours"]
    remaining = max(0.0, 40 - hours)
    if remaining == 0:
        return "Your logbook already shows the 40 hours you need. Time to polish for the checkride."
    return f"{hours:.1f} hours logged, {remaining:.1f} to go. Every hour counts."


NAMED_OUTCOMES: Dict[str, NamedOutcomeFn] = {
    "premium_lesson": _premium_lesson_outcome,
    "tax_refund": _tax_refund_outcome,
    "progress_check": _progress_check,
}
