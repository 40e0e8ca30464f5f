"""Multi-step storyline ("decision chain") lifecycle and follow-up dispatch."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


def start_chain(state, chain_id: str, data: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    payload = dict(data or {})
    chain = {"start_day": state.day, "phase": "initial", **payload}
    state.active_chains[chain_id] = chain
    state.decision_history[chain_id] = {"day": state.day, "data": payload}
    logger.info("Chain '%s' started on day %d", chain_id, state.day)
    return chain


def advance_chain(catalog, state, chain_id: str, target: str) -> bool:
    chain = state.active_chains.get(chain_id)
    if chain is None:
        logger.warning("Cannot advance inactive chain '%s' to '%s'", chain_id, target)
        return False
    spec = catalog.chains.get(chain_id)
    current = chain.get("phase", "initial")
    if spec is None or not spec.allows(current, target):
        logger.warning(
            "Ignoring undeclared transition %s -> %s for chain '%s'", current, target, chain_id
        )
        return False
    chain["phase"] = target
    logger.info("Chain '%s' advanced %s -> %s", chain_id, current, target)
    return True


def end_chain(state, chain_id: str) -> bool:
    if state.active_chains.pop(chain_id, None) is None:
        return False
    logger.info("Chain '%s' ended on day %d", chain_id, state.day)
    return True


def merge_chain_data(state, chain_id: str, data: Mapping[str, Any]) -> None:
    chain = state.active_chains.get(chain_id)
    if chain is None:
        return
    chain.update(data)
    decision = state.decision_history.setdefault(chain_id, {"day": state.day, "data": {}})
    decision["data"] = {**decision.get("data", {}), **data}


def evict_expired(catalog, state, settings) -> List[str]:
    """Drop chains older than their max age; decision history is kept."""
    evicted = []
    for chain_id, chain in list(state.active_chains.items()):
        spec = catalog.chains.get(chain_id)
        max_age = spec.max_age if spec is not None and spec.max_age else settings.chain_max_age
        if state.day - int(chain.get("start_day", state.day)) > max_age:
            del state.active_chains[chain_id]
            evicted.append(chain_id)
            logger.info("Chain '%s' evicted after %d days", chain_id, max_age)
    return evicted


def _days_since_start(state, chain) -> int:
    return state.day - int(chain.get("start_day", state.day))


def _offered_recently(state, event_id, cooldown_days) -> bool:
    last_day = state.last_seen_day(event_id)
    return last_day is not None and state.day - last_day < cooldown_days


def _ppl_coin(state, chain, ctx):
    elapsed = _days_since_start(state, chain)
    if elapsed == 5:
        return ctx.catalog.followups.get("ppl_coin_rise")
    if elapsed == 10 and chain.get("phase") == "crash":
        return ctx.catalog.followups.get("ppl_coin_crash")
    return None


def _checkride_prep(state, chain, ctx):
    hours = state.stats["flight_hours"]
    if hours < 38:
        return None
    cooldown = ctx.settings.cooldown_days
    phase = chain.get("phase", "initial")
    if phase == "initial":
        if _offered_recently(state, "checkride_phase1", cooldown):
            return None
        return ctx.catalog.followups.get("checkride_phase1")
    if phase == "checkride" and hours >= 40:
        if _offered_recently(state, "checkride_final", cooldown):
            return None
        template = ctx.catalog.followups.get("checkride_final")
        if template is None:
            return None
        return checkride_attempt(template, state)
    return None


def checkride_attempt(template, state):
    """Specialise the checkride option for the candidate's current readiness."""
    if not (state.stats["knowledge"] >= 80 and state.stats["safety"] >= 75):
        return template
    options = list(template.options)
    options[0] = dataclasses.replace(options[0], trigger_ending="success")
    return dataclasses.replace(template, options=tuple(options))


ChainFollowup = Callable[[Any, Dict[str, Any], Any], Any]

CHAIN_FOLLOWUPS: Dict[str, ChainFollowup] = {
    "ppl_coin": _ppl_coin,
    "checkride_prep": _checkride_prep,
}


def due_followup(ctx, state):
    """Return the first chain consequence due today, in chain start order."""
    for chain_id, chain in state.active_chains.items():
        handler = ctx.followups.get(chain_id)
        if handler is None:
            continue
        event = handler(state, chain, ctx)
        if event is not None:
            return event
    return None
