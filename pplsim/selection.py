"""Eligibility filtering and weighted roulette selection of random events."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .conditions import meets_condition
from .errors import ConditionEvaluationError

logger = logging.getLogger(__name__)


def _condition_holds(event, state) -> bool:
    try:
        return bool(meets_condition(event.condition, state))
    except Exception as exc:  # noqa: BLE001 - catalog conditions may be arbitrary callables
        error = ConditionEvaluationError(event.id, exc)
        logger.warning("%s; treating event as ineligible", error)
        return False


def in_cooldown(event_id, state, cooldown_days) -> bool:
    for entry in state.event_history:
        if entry["event_id"] == event_id and state.day - entry["day"] < cooldown_days:
            return True
    return False


def is_eligible(event, state, settings) -> bool:
    if not _condition_holds(event, state):
        return False
    occurrences = state.occurrences(event.id)
    if event.frequency == "once" and occurrences > 0:
        return False
    if event.frequency == "rare" and occurrences >= event.max_occurrences:
        return False
    if in_cooldown(event.id, state, settings.cooldown_days):
        return False
    if event.chain_link and event.chain_link not in state.active_chains:
        return False
    return True


def eligible(catalog, state, settings) -> List:
    """Return the catalog events that may fire today, in catalog order."""
    return [event for event in catalog.events if is_eligible(event, state, settings)]


def select_weighted(events: Sequence, rng, default_probability: float = 0.1) -> Optional[object]:
    if not events:
        return None
    total = sum(event.weight(default_probability) for event in events)
    r = rng.random() * total
    logger.debug("Weighted draw %.4f of %.4f across %d events", r, total, len(events))
    for event in events:
        r -= event.weight(default_probability)
        if r <= 0:
            return event
    return events[-1]
