"""Snapshot migration registry for the PPL simulator."""

from __future__ import annotations

import copy
import re
from typing import Any, Callable, Dict

SNAPSHOT_VERSION = 2


class SaveMigrationError(Exception):
    """Raised when a snapshot cannot be migrated to the latest schema."""


Migration = Callable[[Dict], Dict]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

_LEGACY_MILESTONES = {
    "groundSchool": "ground_school",
    "writtenPrep": "written_prep",
    "writtenPassed": "written_passed",
    "preSoloWrittenPassed": "pre_solo_written_passed",
    "soloEndorsement": "solo_endorsement",
    "firstSolo": "first_solo",
    "crossCountry": "cross_country",
    "checkrideEndorsement": "checkride_endorsement",
    "checkride": "checkride_passed",
}


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _snake_keys(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    return {snake_case(key): item for key, item in value.items()}


def _migrate_v1_to_v2(blob: Dict) -> Dict:
    """Upgrade the camelCase browser snapshot to the snake_case layout."""
    stats = _snake_keys(blob.get("stats"))
    if not isinstance(stats, dict):
        raise SaveMigrationError("Legacy snapshot is missing its stats block.")

    milestones = {}
    for key, reached in (blob.get("milestones") or {}).items():
        milestones[_LEGACY_MILESTONES.get(key, snake_case(key))] = bool(reached)

    history = []
    for entry in blob.get("eventHistory") or []:
        if not isinstance(entry, dict):
            continue
        history.append(
            {
                "event_id": entry.get("eventId"),
                "day": entry.get("day", 0),
                "choice_index": entry.get("choice"),
                "memorable": bool(entry.get("memorable", False)),
            }
        )

    chains = {}
    for chain_id, chain in (blob.get("eventChains") or {}).items():
        if isinstance(chain, dict):
            chains[chain_id] = _snake_keys(chain)

    decisions = blob.get("decisionHistory") or {}
    if decisions and not all(isinstance(item, dict) and "data" in item for item in decisions.values()):
        # Browser saves stored chain data flat on a single object.
        decisions = {"legacy": {"day": 0, "data": _snake_keys(decisions)}}

    return {
        "version": 2,
        "day": blob.get("day", 1),
        "phase": blob.get("phase"),
        "stats": stats,
        "milestones": milestones,
        "reputation": blob.get("reputation") or {},
        "event_history": history,
        "decision_history": decisions,
        "active_chains": chains,
        "last_action": blob.get("lastAction"),
        "last_drain_day": blob.get("lastDrainDay", 0),
        "last_event_day": blob.get("lastEventDay", 0),
        "game_ended": bool(blob.get("gameEnded", False)),
        "ending_type": blob.get("endingType"),
    }


MIGRATIONS: Dict[int, Migration] = {
    1: _migrate_v1_to_v2,
}


def migrate_snapshot(blob: Dict, target_version: int = SNAPSHOT_VERSION) -> Dict:
    if not isinstance(blob, dict):
        raise SaveMigrationError("Snapshot was not an object.")

    # Unversioned snapshots come from the browser build.
    version = blob.get("version", 1)
    if version is None:
        version = 1
    if not isinstance(version, int):
        raise SaveMigrationError("Snapshot version missing or invalid.")
    if version > target_version:
        raise SaveMigrationError(
            f"Snapshot schema {version} is newer than supported {target_version}."
        )

    current = copy.deepcopy(blob)
    while version < target_version:
        migrator = MIGRATIONS.get(version)
        if migrator is None:
            raise SaveMigrationError(f"No migration available for snapshot schema {version}.")
        current = migrator(current)
        version = current.get("version", version + 1)
        if not isinstance(version, int):
            raise SaveMigrationError("Migration produced an invalid schema version.")

    return current
