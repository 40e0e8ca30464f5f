"""Declarative event conditions evaluated against a GameState."""

from __future__ import annotations


def _as_list(value):
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]

def meets_condition(cond, state):
    """Evaluate ``cond`` against ``state``.

    ``cond`` may be empty (always true), a Python callable taking the state,
    a list (all entries must hold) or a mapping with a ``type`` key. Lookups
    are strict: a condition naming a stat the state lacks raises ``KeyError``
    and the caller decides how to treat it.
    """
    if not cond:
        return True
    if callable(cond):
        return bool(cond(state))
    if isinstance(cond, list):
        return all(meets_condition(c, state) for c in cond)
    t = cond.get("type")
    s = state.stats

    if t == "day_after":
        return state.day > int(cond["value"])
    if t == "day_before":
        return state.day < int(cond["value"])
    if t == "stat_above":
        return s[cond["stat"]] > cond["value"]
    if t == "stat_below":
        return s[cond["stat"]] < cond["value"]
    if t == "stat_at_least":
        return s[cond["stat"]] >= cond["value"]
    if t == "milestone":
        return state.milestones[cond["milestone"]] == bool(cond.get("value", True))
    if t == "phase_is":
        return state.phase in _as_list(cond["value"])
    if t == "last_action":
        return state.last_action in _as_list(cond["value"])
    if t == "rep_at_least":
        return state.reputation[cond["faction"]] >= int(cond["value"])
    if t == "chain_active":
        return cond["chain"] in state.active_chains
    if t == "chain_inactive":
        return cond["chain"] not in state.active_chains
    if t == "chain_phase":
        chain = state.active_chains.get(cond["chain"])
        return chain is not None and chain.get("phase") == cond["value"]
    if t == "decision_is":
        decision = state.decision_history.get(cond["key"])
        if decision is None:
            return False
        return decision.get("data", {}).get(cond["field"]) == cond.get("value")
    if t == "days_since_decision":
        decision = state.decision_history.get(cond["key"])
        if decision is None:
            return False
        return state.day - int(decision["day"]) > int(cond["value"])
    if t == "decision_flag":
        return state.decision_flag(cond["flag"]) == bool(cond.get("value", True))
    if t == "event_seen":
        return state.occurrences(cond["event"]) > 0
    if t == "event_not_seen":
        return state.occurrences(cond["event"]) == 0
    if t == "any":
        return any(meets_condition(c, state) for c in cond["conditions"])
    if t == "not":
        return not meets_condition(cond["condition"], state)
    raise ValueError(f"Unsupported condition type {t!r}.")
