"""Chain reachability analysis helpers for catalog validation."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set, Tuple

from pplsim.catalog_schema import normalize_events, path

CHAIN_REF_TYPES = {"chain_active", "chain_inactive", "chain_phase"}
DECISION_REF_TYPES = {"decision_is", "days_since_decision"}
EVENT_REF_TYPES = {"event_seen", "event_not_seen"}


def _iter_sections(catalog: Mapping[str, Any]) -> Iterable[Tuple[Tuple[str, ...], Any]]:
    yield ("events",), catalog.get("events", [])
    interventions = catalog.get("interventions")
    if isinstance(interventions, Mapping):
        for kind, entries in interventions.items():
            yield ("interventions", kind), entries
    yield ("followups",), catalog.get("followups", [])


def _iter_events(
    catalog: Mapping[str, Any],
) -> Iterable[Tuple[Tuple[object, ...], Mapping[str, Any]]]:
    for section, raw_events in _iter_sections(catalog):
        events, _ = normalize_events(raw_events, section=section)
        for event_id, event in events.items():
            yield (*section, event_id), event


def _iter_conditions(condition: Any) -> Iterable[Mapping[str, Any]]:
    if isinstance(condition, Sequence) and not isinstance(condition, (str, bytes, Mapping)):
        for entry in condition:
            yield from _iter_conditions(entry)
        return
    if not isinstance(condition, Mapping):
        return
    yield condition
    if condition.get("type") == "any":
        yield from _iter_conditions(condition.get("conditions"))
    elif condition.get("type") == "not":
        yield from _iter_conditions(condition.get("condition"))


def _options(event: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    options = event.get("options")
    if not isinstance(options, list):
        return []
    return [option for option in options if isinstance(option, Mapping)]


def analyze_chains(catalog: Mapping[str, Any]) -> List[str]:
    chains = catalog.get("chains")
    if not isinstance(chains, Mapping):
        chains = {}

    events = list(_iter_events(catalog))
    event_ids = {event_path[-1] for event_path, _ in events}

    started: Set[str] = {chain_id for chain_id, chain in chains.items() if chain.get("auto_start")}
    linked: Dict[str, List[str]] = defaultdict(list)
    phase_targets: Dict[str, Set[str]] = defaultdict(set)
    for event_path, event in events:
        chain_link = event.get("chain_link")
        if isinstance(chain_link, str):
            linked[chain_link].append(path(*event_path))
        for option in _options(event):
            chain_start = option.get("chain_start")
            if isinstance(chain_start, str):
                started.add(chain_start)
            target_chain = chain_link or chain_start
            if isinstance(target_chain, str) and isinstance(option.get("next_phase"), str):
                phase_targets[target_chain].add(option["next_phase"])

    warnings: List[str] = []

    for chain_id, event_paths in sorted(linked.items()):
        if chain_id in started:
            continue
        warnings.append(
            f"{path('chains', chain_id)}: no option starts this chain, so linked events never fire: "
            f"{', '.join(event_paths)}."
        )

    for chain_id in sorted(chains):
        if chain_id not in started and chain_id not in linked:
            warnings.append(f"{path('chains', chain_id)}: declared but never started or linked.")

    def traverse(chain_id: str, phases: Mapping[str, Any]) -> Set[str]:
        visited: Set[str] = set()
        queue: deque[str] = deque(["initial"])
        while queue:
            phase = queue.popleft()
            if phase in visited:
                continue
            visited.add(phase)
            for target in phases.get(phase) or []:
                if target in phase_targets[chain_id]:
                    queue.append(target)
        return visited

    for chain_id, chain in sorted(chains.items()):
        phases = chain.get("phases") if isinstance(chain, Mapping) else None
        if not isinstance(phases, Mapping):
            continue
        reached = traverse(chain_id, phases)
        for phase in phases:
            if phase not in reached:
                warnings.append(
                    f"{path('chains', chain_id, 'phases', phase)}: no option advances the chain into this phase."
                )

    decision_keys = set(chains) | event_ids
    for event_path, event in events:
        for condition in _iter_conditions(event.get("condition")):
            cond_type = condition.get("type")
            cond_path = path(*event_path, "condition")
            if cond_type in CHAIN_REF_TYPES and condition.get("chain") not in chains:
                warnings.append(f"{cond_path}: '{cond_type}' names undeclared chain '{condition.get('chain')}'.")
            elif cond_type in DECISION_REF_TYPES and condition.get("key") not in decision_keys:
                warnings.append(
                    f"{cond_path}: '{cond_type}' key '{condition.get('key')}' is neither a chain nor an event."
                )
            elif cond_type in EVENT_REF_TYPES and condition.get("event") not in event_ids:
                warnings.append(f"{cond_path}: '{cond_type}' names unknown event '{condition.get('event')}'.")

    return warnings
