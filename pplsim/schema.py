"""Catalog validation for the PPL simulator event engine."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Sequence, Set

from .catalog_schema import (
    CONDITION_SPECS,
    FREQUENCIES,
    format_validation_message,
    is_non_empty_str,
    normalize_events,
    path,
    simple_value,
)
from .impacts import COMPUTED_IMPACTS, NAMED_OUTCOMES
from .state import DAILY_ACTIONS, ENDING_KINDS, FACTIONS, STAT_KEYS, is_number

INTERVENTION_KINDS = ("dual_fatigue", "solo_fatigue")


class ValidationContext:
    """Utility container for accumulating validation errors."""

    def __init__(self) -> None:
        self.errors: List[str] = []

    def add(self, context: str, path_str: str, message: str) -> None:
        self.errors.append(format_validation_message(path_str, context, message))

    def extend(self, messages: Iterable[str]) -> None:
        self.errors.extend(messages)

    def extend_with_path(self, messages: Iterable[str], path_str: str) -> None:
        for message in messages:
            self.errors.append(f"{path_str}: {message}")

    def ok(self) -> bool:
        return not self.errors


def require(condition: bool, context: str, path_str: str, message: str, ctx: ValidationContext) -> None:
    if not condition:
        ctx.add(context, path_str, message)


def validate_condition(
    condition: Any, context: str, path_parts: Sequence[object], ctx: ValidationContext
) -> None:
    if condition in (None, {}):
        return
    if isinstance(condition, Sequence) and not isinstance(condition, (str, bytes, Mapping)):
        if not condition:
            ctx.add(context, path(*path_parts), "condition list must not be empty.")
            return
        for idx, sub in enumerate(condition, start=1):
            validate_condition(sub, f"{context} (entry {idx})", (*path_parts, idx - 1), ctx)
        return
    if not isinstance(condition, Mapping):
        ctx.add(context, path(*path_parts), "condition must be an object, a list or null.")
        return

    cond_type = condition.get("type")
    spec = CONDITION_SPECS.get(cond_type)
    if spec is None:
        ctx.add(context, path(*path_parts, "type"), f"unsupported condition type '{cond_type}'.")
        return
    missing = [name for name in spec.required_fields if name not in condition]
    if missing:
        ctx.add(context, path(*path_parts), f"'{cond_type}' is missing {', '.join(missing)}.")
        return
    ctx.extend_with_path(spec.validate(condition, context), path(*path_parts))

    # Recurse into composite conditions so nested mistakes are reported too.
    if cond_type == "any":
        for idx, sub in enumerate(condition["conditions"], start=1):
            validate_condition(
                sub, f"{context} (any {idx})", (*path_parts, "conditions", idx - 1), ctx
            )
    elif cond_type == "not":
        validate_condition(condition["condition"], f"{context} (not)", (*path_parts, "condition"), ctx)


def validate_impact(impact: Any, context: str, path_parts: Sequence[object], ctx: ValidationContext) -> None:
    if impact is None:
        return
    if not isinstance(impact, Mapping):
        ctx.add(context, path(*path_parts), "'impact' must be an object.")
        return
    if "type" in impact:
        if impact["type"] not in COMPUTED_IMPACTS:
            ctx.add(
                context,
                path(*path_parts, "type"),
                f"unknown computed impact '{impact['type']}'.",
            )
        return
    for stat, delta in impact.items():
        if stat not in STAT_KEYS:
            ctx.add(context, path(*path_parts, stat), f"unknown stat '{stat}'.")
        elif not is_number(delta):
            ctx.add(context, path(*path_parts, stat), "stat delta must be a number.")


def _validate_reputation(value: Any, context: str, path_parts: Sequence[object], ctx: ValidationContext) -> None:
    if value is None:
        return
    if not isinstance(value, Mapping):
        ctx.add(context, path(*path_parts), "'reputation' must be an object.")
        return
    for faction, delta in value.items():
        if faction not in FACTIONS:
            ctx.add(context, path(*path_parts, faction), f"unknown faction '{faction}'.")
        elif not isinstance(delta, int) or isinstance(delta, bool):
            ctx.add(context, path(*path_parts, faction), "reputation delta must be an integer.")


def _validate_outcome(value: Any, context: str, path_parts: Sequence[object], ctx: ValidationContext) -> None:
    if value is None or is_non_empty_str(value):
        return
    if isinstance(value, Mapping) and value.get("type") in NAMED_OUTCOMES:
        return
    ctx.add(context, path(*path_parts), "'outcome' must be text or a known named outcome.")


def validate_option(
    option: Any,
    event: Mapping[str, Any],
    index: int,
    chains: Mapping[str, Any],
    path_parts: Sequence[object],
    ctx: ValidationContext,
) -> None:
    context = f"Option {index} in event '{event.get('id')}'"
    if not isinstance(option, Mapping):
        ctx.add(context, path(*path_parts), "must be an object.")
        return

    require(
        is_non_empty_str(option.get("text")),
        context,
        path(*path_parts, "text"),
        "requires non-empty 'text'.",
        ctx,
    )
    validate_impact(option.get("impact"), context, (*path_parts, "impact"), ctx)
    _validate_reputation(option.get("reputation"), context, (*path_parts, "reputation"), ctx)
    _validate_outcome(option.get("outcome"), context, (*path_parts, "outcome"), ctx)

    chain_start = option.get("chain_start")
    if chain_start is not None and chain_start not in chains:
        ctx.add(context, path(*path_parts, "chain_start"), f"starts undeclared chain '{chain_start}'.")

    chain_data = option.get("chain_data")
    if chain_data is not None:
        if not isinstance(chain_data, Mapping):
            ctx.add(context, path(*path_parts, "chain_data"), "'chain_data' must be an object.")
        else:
            for key, value in chain_data.items():
                if key in ("start_day", "phase"):
                    ctx.add(context, path(*path_parts, "chain_data", key), f"'{key}' is reserved.")
                elif not simple_value(value):
                    ctx.add(context, path(*path_parts, "chain_data", key), "must be a simple literal.")

    next_phase = option.get("next_phase")
    if next_phase is not None:
        chain_id = event.get("chain_link") or chain_start
        chain = chains.get(chain_id) if chain_id else None
        if chain is None:
            ctx.add(
                context,
                path(*path_parts, "next_phase"),
                "'next_phase' requires the event to have a 'chain_link'.",
            )
        elif next_phase not in chain.get("phases", {}):
            ctx.add(
                context,
                path(*path_parts, "next_phase"),
                f"unknown phase '{next_phase}' for chain '{chain_id}'.",
            )

    end_chain = option.get("end_chain")
    if end_chain is not None and not isinstance(end_chain, bool):
        ctx.add(context, path(*path_parts, "end_chain"), "'end_chain' must be a boolean.")

    ending = option.get("trigger_ending")
    if ending is not None and ending not in ENDING_KINDS:
        ctx.add(context, path(*path_parts, "trigger_ending"), f"unknown ending '{ending}'.")

    action = option.get("action")
    if action is not None and action not in DAILY_ACTIONS:
        ctx.add(context, path(*path_parts, "action"), f"unknown action '{action}'.")


def validate_event(
    event: Mapping[str, Any],
    chains: Mapping[str, Any],
    path_parts: Sequence[object],
    ctx: ValidationContext,
) -> None:
    event_id = event.get("id")
    context = f"Event '{event_id}'"

    require(is_non_empty_str(event.get("text")), context, path(*path_parts, "text"), "requires non-empty 'text'.", ctx)

    probability = event.get("probability")
    if probability is not None and (not is_number(probability) or not 0 < probability <= 1):
        ctx.add(context, path(*path_parts, "probability"), "'probability' must be in (0, 1].")

    frequency = event.get("frequency", "repeatable")
    if frequency not in FREQUENCIES:
        ctx.add(
            context,
            path(*path_parts, "frequency"),
            f"'frequency' must be one of {', '.join(FREQUENCIES)}.",
        )
    max_occurrences = event.get("max_occurrences")
    if max_occurrences is not None:
        if not isinstance(max_occurrences, int) or isinstance(max_occurrences, bool) or max_occurrences < 1:
            ctx.add(context, path(*path_parts, "max_occurrences"), "must be a positive integer.")
        elif frequency != "rare":
            ctx.add(context, path(*path_parts, "max_occurrences"), "only applies to 'rare' events.")

    chain_link = event.get("chain_link")
    if chain_link is not None and chain_link not in chains:
        ctx.add(context, path(*path_parts, "chain_link"), f"links to undeclared chain '{chain_link}'.")

    if "memorable" in event and not isinstance(event["memorable"], bool):
        ctx.add(context, path(*path_parts, "memorable"), "'memorable' must be a boolean.")
    if "category" in event and not is_non_empty_str(event["category"]):
        ctx.add(context, path(*path_parts, "category"), "'category' must be a non-empty string.")

    validate_condition(event.get("condition"), context, (*path_parts, "condition"), ctx)

    options = event.get("options")
    if not isinstance(options, list) or not options:
        ctx.add(context, path(*path_parts, "options"), "requires a non-empty 'options' list.")
        return
    for index, option in enumerate(options, start=1):
        validate_option(option, event, index, chains, (*path_parts, "options", index - 1), ctx)


def validate_chains(chains: Any, ctx: ValidationContext) -> Mapping[str, Any]:
    if chains is None:
        return {}
    if not isinstance(chains, Mapping):
        ctx.add("Catalog data", path("chains"), "'chains' must be an object keyed by chain id.")
        return {}
    for chain_id, chain in chains.items():
        context = f"Chain '{chain_id}'"
        if not isinstance(chain, Mapping):
            ctx.add(context, path("chains", chain_id), "must be an object.")
            continue
        phases = chain.get("phases")
        if not isinstance(phases, Mapping) or "initial" not in phases:
            ctx.add(context, path("chains", chain_id, "phases"), "requires a 'phases' table with an 'initial' phase.")
            continue
        for phase, targets in phases.items():
            if not isinstance(targets, list):
                ctx.add(context, path("chains", chain_id, "phases", phase), "transitions must be a list.")
                continue
            for target in targets:
                if target not in phases:
                    ctx.add(
                        context,
                        path("chains", chain_id, "phases", phase),
                        f"transition to unknown phase '{target}'.",
                    )
                elif target == "initial":
                    ctx.add(
                        context,
                        path("chains", chain_id, "phases", phase),
                        "transitions may not return to 'initial'.",
                    )
        max_age = chain.get("max_age")
        if max_age is not None and (not isinstance(max_age, int) or isinstance(max_age, bool) or max_age < 1):
            ctx.add(context, path("chains", chain_id, "max_age"), "'max_age' must be a positive integer.")
        if "auto_start" in chain and not isinstance(chain["auto_start"], bool):
            ctx.add(context, path("chains", chain_id, "auto_start"), "'auto_start' must be a boolean.")
    return chains


def validate_catalog(catalog: Mapping[str, Any]) -> List[str]:
    """Validate merged catalog data and return every error found."""
    ctx = ValidationContext()

    require(
        is_non_empty_str(catalog.get("title")),
        "Catalog data",
        path("title"),
        "must include a non-empty 'title'.",
        ctx,
    )
    require(
        "events" in catalog,
        "Catalog data",
        path("events"),
        "must include an 'events' section.",
        ctx,
    )

    chains = validate_chains(catalog.get("chains"), ctx)
    sections = [(("events",), catalog.get("events", []))]

    interventions = catalog.get("interventions", {})
    if not isinstance(interventions, Mapping):
        ctx.add("Catalog data", path("interventions"), "'interventions' must be an object.")
        interventions = {}
    for kind, entries in interventions.items():
        if kind not in INTERVENTION_KINDS:
            ctx.add("Interventions", path("interventions", kind), f"unknown intervention kind '{kind}'.")
            continue
        sections.append((("interventions", kind), entries))

    followups = catalog.get("followups", [])
    sections.append((("followups",), followups))

    seen_ids: Set[str] = set()
    for section, raw_events in sections:
        events, _errors = normalize_events(raw_events, ctx, section=section)
        for event_id, event in events.items():
            if event_id in seen_ids:
                ctx.add("Events", path(*section, event_id), f"duplicate event ID '{event_id}' across sections.")
            seen_ids.add(event_id)
            validate_event(event, chains, (*section, event_id), ctx)

    return ctx.errors
