"""Apply a chosen event option to the game state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .actions import perform_action
from .catalog import NamedOutcome
from .chains import advance_chain, end_chain, merge_chain_data, start_chain
from .endings import ending_narrative, settle_ending
from .errors import InvalidChoiceIndex, MalformedImpact, UnknownEventError
from .state import is_number

logger = logging.getLogger(__name__)

NEUTRAL_OUTCOME = "Nothing happens."


@dataclass
class Outcome:
    text: str
    deltas: Dict[str, float] = field(default_factory=dict)
    state: Any = None
    ending: Optional[str] = None
    event_id: Optional[str] = None


class _TemplateValues(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def lookup_event(ctx, state, event_id):
    pending = state.pending_event
    if pending is not None and pending.id == event_id:
        return pending
    event = ctx.catalog.get(event_id)
    if event is None:
        raise UnknownEventError(f"Unknown event '{event_id}'.")
    return event


def _resolve_impact(option, state, rng, event_id):
    try:
        return option.impact.resolve(state, rng)
    except Exception as exc:  # noqa: BLE001 - computed impacts are arbitrary callables
        logger.warning("%s", MalformedImpact(f"Impact for event '{event_id}' failed: {exc!r}"))
        return {}, {}


def _apply_deltas(state, deltas, event_id) -> Dict[str, float]:
    applied: Dict[str, float] = {}
    for stat, delta in deltas.items():
        if not is_number(delta):
            logger.warning(
                "%s", MalformedImpact(f"Event '{event_id}' has non-numeric delta {stat}={delta!r}")
            )
            continue
        change = state.apply_stat_delta(stat, delta)
        if change is None:
            continue
        applied[stat] = applied.get(stat, 0) + change
    return applied


def render_outcome(outcome, state, applied, details) -> str:
    if isinstance(outcome, NamedOutcome):
        return outcome(state, details)
    if callable(outcome):
        return str(outcome(state))
    if not outcome:
        return ""
    values = _TemplateValues(state.stats)
    values["day"] = state.day
    values.update({f"{stat}_delta": delta for stat, delta in applied.items()})
    values.update(details)
    try:
        return outcome.format_map(values)
    except (ValueError, IndexError, AttributeError):
        return outcome


def _apply_option(ctx, state, event, choice_index, option) -> Outcome:
    deltas, details = _resolve_impact(option, state, ctx.rng, event.id)
    applied = _apply_deltas(state, deltas, event.id)

    for faction, delta in option.reputation.items():
        if is_number(delta):
            state.apply_reputation_delta(faction, delta)

    chain_id = event.chain_link or option.chain_start
    if option.chain_start:
        start_chain(state, option.chain_start, option.chain_data)
    if option.next_phase and chain_id:
        advance_chain(ctx.catalog, state, chain_id, option.next_phase)
    if option.end_chain and chain_id:
        end_chain(state, chain_id)
    if option.trigger_ending:
        # The game stops here: no history entry and no outcome rendering.
        state.game_ended = True
        state.ending_type = option.trigger_ending
        if option.trigger_ending == "success":
            state.milestones["checkride_passed"] = True
        logger.info("Event '%s' triggered ending '%s'", event.id, option.trigger_ending)
        return Outcome(
            text=ending_narrative(option.trigger_ending).title,
            deltas=applied,
            state=state,
            ending=option.trigger_ending,
            event_id=event.id,
        )

    state.record_event(event.id, choice_index, event.memorable)
    text = render_outcome(option.outcome, state, applied, details)

    if option.chain_data is not None and not option.chain_start:
        if event.chain_link:
            merge_chain_data(state, event.chain_link, option.chain_data)
        else:
            state.decision_history[event.id] = {"day": state.day, "data": dict(option.chain_data)}

    if option.action and not state.game_ended:
        result = perform_action(ctx, state, option.action)
        for stat, delta in result.deltas.items():
            applied[stat] = applied.get(stat, 0) + delta
        text = f"{text} {result.message}".strip() if text else result.message

    return Outcome(
        text=text,
        deltas=applied,
        state=state,
        ending=settle_ending(state, ctx.settings),
        event_id=event.id,
    )


def resolve_choice(ctx, state, event_id, choice_index) -> Outcome:
    """Apply option ``choice_index`` of ``event_id`` and describe what happened.

    The pending event takes precedence over the catalog so dynamically built
    chain follow-ups resolve correctly. Bad indices raise before anything is
    touched; any other failure rolls the state back to how it was.
    """
    event = lookup_event(ctx, state, event_id)
    count = len(event.options)
    if isinstance(choice_index, bool) or not isinstance(choice_index, int) or not 0 <= choice_index < count:
        raise InvalidChoiceIndex(event.id, choice_index, count)
    option = event.options[choice_index]

    snapshot = state.snapshot()
    try:
        outcome = _apply_option(ctx, state, event, choice_index, option)
    except Exception:
        state.restore(snapshot)
        logger.exception("Rolled back resolution of event '%s' option %d", event.id, choice_index)
        return Outcome(text=NEUTRAL_OUTCOME, state=state, event_id=event.id)

    if state.pending_event is not None and state.pending_event.id == event.id:
        state.pending_event = None
    return outcome
