"""Immutable event catalog assembled from JSON modules."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .catalog_schema import normalize_events
from .impacts import COMPUTED_IMPACTS, NAMED_OUTCOMES
from .schema import validate_catalog

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "catalog" / "catalog.json"


@dataclass(frozen=True)
class StaticImpact:
    deltas: Mapping[str, Any]

    def resolve(self, state, rng) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        return dict(self.deltas), {}


@dataclass(frozen=True)
class ComputedImpact:
    fn: Callable[[Any, Any], Any]
    name: str = ""

    def resolve(self, state, rng) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        result = self.fn(state, rng)
        if isinstance(result, tuple):
            deltas, details = result
            return dict(deltas), dict(details)
        return dict(result), {}


Impact = Union[StaticImpact, ComputedImpact]


@dataclass(frozen=True)
class NamedOutcome:
    name: str

    def __call__(self, state, values):
        return NAMED_OUTCOMES[self.name](state, values)


@dataclass(frozen=True)
class Option:
    text: str
    impact: Impact = field(default_factory=lambda: StaticImpact({}))
    outcome: Any = ""
    reputation: Mapping[str, int] = field(default_factory=dict)
    chain_start: Optional[str] = None
    chain_data: Optional[Mapping[str, Any]] = None
    next_phase: Optional[str] = None
    end_chain: bool = False
    trigger_ending: Optional[str] = None
    action: Optional[str] = None


@dataclass(frozen=True)
class EventDefinition:
    id: str
    text: str
    options: Tuple[Option, ...]
    probability: Optional[float] = None
    condition: Any = None
    frequency: str = "repeatable"
    max_occurrences: int = 1
    chain_link: Optional[str] = None
    memorable: bool = False
    category: str = "general"

    def weight(self, default: float) -> float:
        return self.probability if self.probability is not None else default


@dataclass(frozen=True)
class ChainSpec:
    chain_id: str
    transitions: Mapping[str, Tuple[str, ...]]
    max_age: Optional[int] = None
    auto_start: bool = False

    def allows(self, current: str, target: str) -> bool:
        return target in self.transitions.get(current, ())


@dataclass(frozen=True)
class Catalog:
    title: str
    events: Tuple[EventDefinition, ...]
    chains: Mapping[str, ChainSpec]
    interventions: Mapping[str, Tuple[EventDefinition, ...]] = field(default_factory=dict)
    followups: Mapping[str, EventDefinition] = field(default_factory=dict)

    def get(self, event_id: str) -> Optional[EventDefinition]:
        for event in self.events:
            if event.id == event_id:
                return event
        for group in self.interventions.values():
            for event in group:
                if event.id == event_id:
                    return event
        return self.followups.get(event_id)


def _raise_catalog_validation(errors):
    raise ValueError("Invalid catalog:\n- " + "\n- ".join(errors))


def _build_impact(raw) -> Impact:
    if isinstance(raw, Mapping) and "type" in raw:
        name = raw["type"]
        return ComputedImpact(COMPUTED_IMPACTS[name], name=name)
    return StaticImpact(dict(raw or {}))


def _build_outcome(raw):
    if isinstance(raw, Mapping):
        return NamedOutcome(raw["type"])
    return raw or ""


def build_option(raw: Mapping[str, Any]) -> Option:
    return Option(
        text=raw["text"],
        impact=_build_impact(raw.get("impact")),
        outcome=_build_outcome(raw.get("outcome")),
        reputation=dict(raw.get("reputation") or {}),
        chain_start=raw.get("chain_start"),
        chain_data=dict(raw["chain_data"]) if raw.get("chain_data") is not None else None,
        next_phase=raw.get("next_phase"),
        end_chain=bool(raw.get("end_chain", False)),
        trigger_ending=raw.get("trigger_ending"),
        action=raw.get("action"),
    )


def build_event(raw: Mapping[str, Any], category: str = "general") -> EventDefinition:
    return EventDefinition(
        id=raw["id"],
        text=raw["text"],
        options=tuple(build_option(option) for option in raw["options"]),
        probability=raw.get("probability"),
        condition=raw.get("condition"),
        frequency=raw.get("frequency", "repeatable"),
        max_occurrences=int(raw.get("max_occurrences", 1)),
        chain_link=raw.get("chain_link"),
        memorable=bool(raw.get("memorable", False)),
        category=raw.get("category", category),
    )


def _build_chains(raw_chains: Mapping[str, Any]) -> Dict[str, ChainSpec]:
    chains = {}
    for chain_id, chain in (raw_chains or {}).items():
        chains[chain_id] = ChainSpec(
            chain_id=chain_id,
            transitions={phase: tuple(targets) for phase, targets in chain["phases"].items()},
            max_age=chain.get("max_age"),
            auto_start=bool(chain.get("auto_start", False)),
        )
    return chains


def catalog_from_dict(data: Mapping[str, Any], *, validate: bool = True) -> Catalog:
    """Build a Catalog from already merged data."""
    if validate:
        errors = validate_catalog(data)
        if errors:
            _raise_catalog_validation(errors)
    interventions = {
        kind: tuple(build_event(raw, "intervention") for raw in entries)
        for kind, entries in (data.get("interventions") or {}).items()
    }
    followups = {raw["id"]: build_event(raw, "followup") for raw in data.get("followups") or []}
    return Catalog(
        title=data.get("title", ""),
        events=tuple(build_event(raw) for raw in data.get("events") or []),
        chains=_build_chains(data.get("chains") or {}),
        interventions=interventions,
        followups=followups,
    )


def _merge_catalog_modules(data, catalog_path):
    modules = data.get("modules")
    if not modules:
        return data
    if not isinstance(modules, list):
        _raise_catalog_validation(["'modules' must be a list of module file paths."])

    base_events, event_errors = normalize_events(data.get("events", []))
    if event_errors:
        _raise_catalog_validation(event_errors)
    combined_events: List[Dict[str, Any]] = list(base_events.values())
    known_ids = set(base_events)
    base_dir = Path(catalog_path).resolve().parent

    for module_ref in modules:
        if not isinstance(module_ref, str) or not module_ref.strip():
            _raise_catalog_validation(["module entries must be non-empty strings."])
        module_path = (base_dir / module_ref).resolve()
        with open(module_path, "r", encoding="utf-8") as handle:
            module = json.load(handle)
        if not isinstance(module, dict):
            _raise_catalog_validation([f"{module_path}: module data must be a JSON object."])

        module_events, module_errors = normalize_events(module.get("events"))
        if module_errors:
            _raise_catalog_validation([f"{module_path}: {err}" for err in module_errors])
        overlap = known_ids.intersection(module_events)
        if overlap:
            _raise_catalog_validation(
                [f"{module_path}: event IDs already exist in catalog: {', '.join(sorted(overlap))}."]
            )
        category = module.get("category")
        for event in module_events.values():
            if category and "category" not in event:
                event["category"] = category
            combined_events.append(event)
        known_ids.update(module_events)

    data["events"] = combined_events
    return data


def load_catalog_data(path=DEFAULT_CATALOG_PATH) -> Dict[str, Any]:
    """Read the root catalog file and merge its modules, without validating."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        _raise_catalog_validation(["Catalog data must be a JSON object."])
    return _merge_catalog_modules(data, path)


def load_catalog(path=DEFAULT_CATALOG_PATH) -> Catalog:
    return catalog_from_dict(load_catalog_data(path))
