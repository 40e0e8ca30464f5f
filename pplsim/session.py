"""Public entry points for driving a training run.

Every call takes an explicit :class:`EngineContext`; nothing in the engine
reads module-level mutable state.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .actions import ActionResult, available_actions, perform_action
from .catalog import Catalog, load_catalog
from .chains import CHAIN_FOLLOWUPS, due_followup
from .resolver import Outcome, resolve_choice
from .selection import eligible, select_weighted
from .settings import EngineSettings
from .state import GameState
from .state import new_game as _new_game
from .timekeeping import DayReport, advance_day

logger = logging.getLogger(__name__)

__all__ = [
    "ActionResult",
    "DayReport",
    "EngineContext",
    "EventSummary",
    "Outcome",
    "advance_day",
    "available_actions",
    "create_context",
    "list_eligible_events",
    "new_game",
    "perform_action",
    "resolve_choice",
    "select_event",
]


@dataclass
class EngineContext:
    catalog: Catalog
    settings: EngineSettings = field(default_factory=EngineSettings)
    rng: Any = field(default_factory=random.Random)
    followups: Dict[str, Any] = field(default_factory=lambda: dict(CHAIN_FOLLOWUPS))


@dataclass(frozen=True)
class EventSummary:
    id: str
    text: str
    options: Tuple[str, ...]


def create_context(catalog=None, settings=None, seed=None) -> EngineContext:
    return EngineContext(
        catalog=catalog if catalog is not None else load_catalog(),
        settings=settings if settings is not None else EngineSettings(),
        rng=random.Random(seed),
    )


def new_game(ctx) -> GameState:
    return _new_game(ctx.rng)


def list_eligible_events(ctx, state) -> List[EventSummary]:
    return [
        EventSummary(event.id, event.text, tuple(option.text for option in event.options))
        for event in eligible(ctx.catalog, state, ctx.settings)
    ]


def select_event(ctx, state):
    """Pick today's event, or None when the caller should offer daily actions."""
    if state.game_ended or state.day == 1:
        return None
    if state.pending_event is not None:
        return state.pending_event
    if state.last_event_day == state.day:
        return None

    event = due_followup(ctx, state)
    if event is None:
        chance = ctx.settings.effective_event_chance
        if ctx.rng.random() < chance:
            event = select_weighted(
                eligible(ctx.catalog, state, ctx.settings), ctx.rng, ctx.settings.default_probability
            )
    if event is None:
        return None

    logger.debug("Day %d event: %s", state.day, event.id)
    state.pending_event = event
    state.last_event_day = state.day
    return event
