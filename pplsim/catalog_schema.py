"""Machine-readable schema specs for the event catalog."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Sequence, Tuple

from .state import FACTIONS, MILESTONES, PHASES, STAT_KEYS, is_number

ConditionValidator = Callable[[Mapping[str, Any], str], List[str]]

FREQUENCIES = ("repeatable", "once", "rare")


def path(*parts: object) -> str:
    path_str = ""
    for part in parts:
        if isinstance(part, int):
            path_str = f"{path_str}[{part}]"
            continue
        if not isinstance(part, str):
            part = str(part)
        if part.isidentifier():
            path_str = f"{path_str}.{part}" if path_str else part
        else:
            path_str = f'{path_str}[{json.dumps(part)}]'
    return path_str


def format_validation_message(path_str: str, context: str, message: str) -> str:
    if context:
        return f"{path_str}: {context}: {message}"
    return f"{path_str}: {message}"


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def str_or_str_list(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, list) and value:
        return all(isinstance(item, str) and item.strip() != "" for item in value)
    return False


def simple_value(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def normalize_events(
    raw_events: Any, ctx: Any | None = None, *, section: str | Tuple[str, ...] = "events"
) -> Tuple[Dict[str, Dict[str, Any]], List[str]]:
    """Index a list of event objects by id, reporting shape and duplicate errors."""
    section_parts = section if isinstance(section, tuple) else (section,)
    events: Dict[str, Dict[str, Any]] = {}
    errors: List[str] = []
    event_ids: List[str] = []

    def add_error(context: str, path_parts: Sequence[object], message: str) -> None:
        path_str = path(*path_parts)
        errors.append(format_validation_message(path_str, context, message))
        if ctx is not None:
            ctx.add(context, path_str, message)

    if not isinstance(raw_events, list):
        add_error("Catalog data", section_parts, "must be a list of event objects.")
        return events, errors

    for idx, entry in enumerate(raw_events, start=1):
        if not isinstance(entry, MutableMapping):
            add_error(f"Event entry {idx}", (*section_parts, idx - 1), "must be an object.")
            continue
        event_id = entry.get("id")
        if not is_non_empty_str(event_id):
            add_error(f"Event entry {idx}", (*section_parts, idx - 1, "id"), "is missing a valid 'id'.")
            continue
        event_ids.append(event_id)
        events.setdefault(event_id, dict(entry))

    duplicates = [event_id for event_id, count in Counter(event_ids).items() if count > 1]
    if duplicates:
        dup_list = ", ".join(sorted(duplicates))
        add_error("Events", section_parts, f"Duplicate event IDs found: {dup_list}.")

    return events, errors


@dataclass(frozen=True)
class ConditionSpec:
    required_fields: Tuple[str, ...]
    optional_fields: Tuple[str, ...]
    field_rules: Mapping[str, str]
    validate: ConditionValidator


def _validate_int_value(condition: Mapping[str, Any], context: str, name: str) -> List[str]:
    value = condition.get("value")
    if not isinstance(value, int) or isinstance(value, bool):
        return [f"{context}: '{name}' requires an integer 'value'."]
    return []


def _validate_stat_threshold(condition: Mapping[str, Any], context: str, name: str) -> List[str]:
    errors: List[str] = []
    stat = condition.get("stat")
    if stat not in STAT_KEYS:
        errors.append(f"{context}: '{name}' requires 'stat' to be one of {', '.join(STAT_KEYS)}.")
    if not is_number(condition.get("value")):
        errors.append(f"{context}: '{name}' requires a numeric 'value'.")
    return errors


def _validate_milestone(condition: Mapping[str, Any], context: str) -> List[str]:
    errors: List[str] = []
    if condition.get("milestone") not in MILESTONES:
        errors.append(f"{context}: 'milestone' names unknown milestone {condition.get('milestone')!r}.")
    value = condition.get("value", True)
    if not isinstance(value, bool):
        errors.append(f"{context}: 'milestone' optional 'value' must be a boolean.")
    return errors


def _validate_phase_is(condition: Mapping[str, Any], context: str) -> List[str]:
    value = condition.get("value")
    if not str_or_str_list(value):
        return [f"{context}: 'phase_is' requires a phase string or list of phase strings."]
    phases = value if isinstance(value, list) else [value]
    unknown = [phase for phase in phases if phase not in PHASES]
    if unknown:
        return [f"{context}: 'phase_is' names unknown phase(s): {', '.join(unknown)}."]
    return []


def _validate_last_action(condition: Mapping[str, Any], context: str) -> List[str]:
    if not str_or_str_list(condition.get("value")):
        return [f"{context}: 'last_action' requires an action string or list of action strings."]
    return []


def _validate_rep_at_least(condition: Mapping[str, Any], context: str) -> List[str]:
    errors: List[str] = []
    if condition.get("faction") not in FACTIONS:
        errors.append(f"{context}: 'rep_at_least' requires 'faction' to be one of {', '.join(FACTIONS)}.")
    errors.extend(_validate_int_value(condition, context, "rep_at_least"))
    return errors


def _validate_chain_ref(condition: Mapping[str, Any], context: str, name: str) -> List[str]:
    if not is_non_empty_str(condition.get("chain")):
        return [f"{context}: '{name}' requires a non-empty string 'chain'."]
    return []


def _validate_chain_phase(condition: Mapping[str, Any], context: str) -> List[str]:
    errors = _validate_chain_ref(condition, context, "chain_phase")
    if not is_non_empty_str(condition.get("value")):
        errors.append(f"{context}: 'chain_phase' requires a non-empty string 'value'.")
    return errors


def _validate_decision_is(condition: Mapping[str, Any], context: str) -> List[str]:
    errors: List[str] = []
    if not is_non_empty_str(condition.get("key")):
        errors.append(f"{context}: 'decision_is' requires a non-empty string 'key'.")
    if not is_non_empty_str(condition.get("field")):
        errors.append(f"{context}: 'decision_is' requires a non-empty string 'field'.")
    if not simple_value(condition.get("value")):
        errors.append(f"{context}: 'decision_is' requires a simple literal 'value'.")
    return errors


def _validate_days_since_decision(condition: Mapping[str, Any], context: str) -> List[str]:
    errors: List[str] = []
    if not is_non_empty_str(condition.get("key")):
        errors.append(f"{context}: 'days_since_decision' requires a non-empty string 'key'.")
    errors.extend(_validate_int_value(condition, context, "days_since_decision"))
    return errors


def _validate_decision_flag(condition: Mapping[str, Any], context: str) -> List[str]:
    errors: List[str] = []
    if not is_non_empty_str(condition.get("flag")):
        errors.append(f"{context}: 'decision_flag' requires a non-empty string 'flag'.")
    if not isinstance(condition.get("value", True), bool):
        errors.append(f"{context}: 'decision_flag' optional 'value' must be a boolean.")
    return errors


def _validate_event_ref(condition: Mapping[str, Any], context: str, name: str) -> List[str]:
    if not is_non_empty_str(condition.get("event")):
        return [f"{context}: '{name}' requires a non-empty string 'event'."]
    return []


def _validate_any(condition: Mapping[str, Any], context: str) -> List[str]:
    nested = condition.get("conditions")
    if not isinstance(nested, list) or not nested:
        return [f"{context}: 'any' requires a non-empty list 'conditions'."]
    return []


def _validate_not(condition: Mapping[str, Any], context: str) -> List[str]:
    if not isinstance(condition.get("condition"), (Mapping, list)):
        return [f"{context}: 'not' requires a nested 'condition'."]
    return []


CONDITION_SPECS: Dict[str, ConditionSpec] = {
    "day_after": ConditionSpec(
        required_fields=("value",),
        optional_fields=(),
        field_rules={"value": "integer day; true when the current day is later"},
        validate=lambda condition, context: _validate_int_value(condition, context, "day_after"),
    ),
    "day_before": ConditionSpec(
        required_fields=("value",),
        optional_fields=(),
        field_rules={"value": "integer day; true when the current day is earlier"},
        validate=lambda condition, context: _validate_int_value(condition, context, "day_before"),
    ),
    "stat_above": ConditionSpec(
        required_fields=("stat", "value"),
        optional_fields=(),
        field_rules={"stat": "stat key", "value": "number, strict greater-than"},
        validate=lambda condition, context: _validate_stat_threshold(condition, context, "stat_above"),
    ),
    "stat_below": ConditionSpec(
        required_fields=("stat", "value"),
        optional_fields=(),
        field_rules={"stat": "stat key", "value": "number, strict less-than"},
        validate=lambda condition, context: _validate_stat_threshold(condition, context, "stat_below"),
    ),
    "stat_at_least": ConditionSpec(
        required_fields=("stat", "value"),
        optional_fields=(),
        field_rules={"stat": "stat key", "value": "number, inclusive lower bound"},
        validate=lambda condition, context: _validate_stat_threshold(
            condition, context, "stat_at_least"
        ),
    ),
    "milestone": ConditionSpec(
        required_fields=("milestone",),
        optional_fields=("value",),
        field_rules={"milestone": "milestone name", "value": "optional boolean, default true"},
        validate=_validate_milestone,
    ),
    "phase_is": ConditionSpec(
        required_fields=("value",),
        optional_fields=(),
        field_rules={"value": "training phase or list of phases"},
        validate=_validate_phase_is,
    ),
    "last_action": ConditionSpec(
        required_fields=("value",),
        optional_fields=(),
        field_rules={"value": "daily action or list of actions"},
        validate=_validate_last_action,
    ),
    "rep_at_least": ConditionSpec(
        required_fields=("faction", "value"),
        optional_fields=(),
        field_rules={"faction": "faction name", "value": "integer reputation threshold"},
        validate=_validate_rep_at_least,
    ),
    "chain_active": ConditionSpec(
        required_fields=("chain",),
        optional_fields=(),
        field_rules={"chain": "chain id"},
        validate=lambda condition, context: _validate_chain_ref(condition, context, "chain_active"),
    ),
    "chain_inactive": ConditionSpec(
        required_fields=("chain",),
        optional_fields=(),
        field_rules={"chain": "chain id"},
        validate=lambda condition, context: _validate_chain_ref(condition, context, "chain_inactive"),
    ),
    "chain_phase": ConditionSpec(
        required_fields=("chain", "value"),
        optional_fields=(),
        field_rules={"chain": "chain id", "value": "phase label"},
        validate=_validate_chain_phase,
    ),
    "decision_is": ConditionSpec(
        required_fields=("key", "field", "value"),
        optional_fields=(),
        field_rules={
            "key": "decision history key",
            "field": "payload field",
            "value": "simple literal (string/number/bool/null)",
        },
        validate=_validate_decision_is,
    ),
    "days_since_decision": ConditionSpec(
        required_fields=("key", "value"),
        optional_fields=(),
        field_rules={"key": "decision history key", "value": "integer day count, strict"},
        validate=_validate_days_since_decision,
    ),
    "decision_flag": ConditionSpec(
        required_fields=("flag",),
        optional_fields=("value",),
        field_rules={"flag": "payload field in any decision", "value": "optional boolean"},
        validate=_validate_decision_flag,
    ),
    "event_seen": ConditionSpec(
        required_fields=("event",),
        optional_fields=(),
        field_rules={"event": "event id"},
        validate=lambda condition, context: _validate_event_ref(condition, context, "event_seen"),
    ),
    "event_not_seen": ConditionSpec(
        required_fields=("event",),
        optional_fields=(),
        field_rules={"event": "event id"},
        validate=lambda condition, context: _validate_event_ref(condition, context, "event_not_seen"),
    ),
    "any": ConditionSpec(
        required_fields=("conditions",),
        optional_fields=(),
        field_rules={"conditions": "non-empty list of conditions, one must hold"},
        validate=_validate_any,
    ),
    "not": ConditionSpec(
        required_fields=("condition",),
        optional_fields=(),
        field_rules={"condition": "condition object or list to negate"},
        validate=_validate_not,
    ),
}
