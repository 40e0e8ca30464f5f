"""Snapshot serialization and end-of-game persistence.

Runs are only written once they end so a reload cannot undo a bad decision.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .save_migrations import SNAPSHOT_VERSION, SaveMigrationError, migrate_snapshot
from .state import GameState

logger = logging.getLogger(__name__)

_SNAPSHOT_FIELDS = (
    "day",
    "phase",
    "stats",
    "milestones",
    "reputation",
    "event_history",
    "decision_history",
    "active_chains",
    "last_action",
    "last_drain_day",
    "last_event_day",
    "game_ended",
    "ending_type",
)


class SaveError(Exception):
    """Base class for save related failures."""


class SaveCorruptError(SaveError):
    """Raised when a save file cannot be parsed or validated."""


def serialize_state(state) -> Dict[str, Any]:
    state.ensure_consistency()
    blob: Dict[str, Any] = {"version": SNAPSHOT_VERSION}
    for name in _SNAPSHOT_FIELDS:
        blob[name] = copy.deepcopy(getattr(state, name))
    return blob


def deserialize_state(blob) -> GameState:
    blob = migrate_snapshot(blob)
    state = GameState(
        day=blob.get("day", 1),
        phase=blob.get("phase"),
        stats=blob.get("stats"),
        milestones=blob.get("milestones"),
        reputation=blob.get("reputation"),
    )
    for name in _SNAPSHOT_FIELDS[5:]:
        if name in blob:
            setattr(state, name, copy.deepcopy(blob[name]))
    state.ensure_consistency()
    return state


def _signature(snapshot: Dict[str, Any]) -> str:
    serialized = json.dumps(snapshot, sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(serialized.encode("utf-8")).hexdigest()


class SaveManager:
    """Record finished runs and read back the most recent one."""

    SCHEMA_VERSION = SNAPSHOT_VERSION
    SAVE_FILENAME = "ended_game.json"
    BACKUP_FILENAME = "ended_game.bak"

    def __init__(self, base_path: Path | str = "saves") -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    @property
    def save_path(self) -> Path:
        return self.base_path / self.SAVE_FILENAME

    @property
    def backup_path(self) -> Path:
        return self.base_path / self.BACKUP_FILENAME

    # ---------- Public API ----------
    def record_ended_game(self, state) -> Path:
        if not state.game_ended:
            raise SaveError("Only finished games are recorded.")
        payload = self._build_payload(state)
        self._write_payload(self.save_path, self.backup_path, payload, make_backup=True)
        logger.info("Recorded ended game (%s) to %s", state.ending_type, self.save_path)
        return self.save_path

    def load_previous(self) -> Optional[GameState]:
        if not self.save_path.exists():
            return None
        try:
            payload = self._read_payload(self.save_path)
        except (SaveCorruptError, SaveMigrationError) as err:
            if not self.backup_path.exists():
                raise
            logger.warning("Previous game unreadable (%s); using backup.", err)
            payload = self._read_payload(self.backup_path)
        return deserialize_state(payload["state"])

    # ---------- Internal helpers ----------
    def _build_payload(self, state) -> Dict:
        snapshot = serialize_state(state)
        metadata = {
            "schema": f"ppl_save_v{self.SCHEMA_VERSION}",
            "version": self.SCHEMA_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "ending_type": state.ending_type,
            "day": state.day,
            "signature": _signature(snapshot),
        }
        return {"version": self.SCHEMA_VERSION, "metadata": metadata, "state": snapshot}

    def _write_payload(
        self,
        save_path: Path,
        backup_path: Path,
        payload: Dict,
        *,
        make_backup: bool,
    ) -> None:
        tmp_path = save_path.with_suffix(save_path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
        if make_backup and save_path.exists():
            backup_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(save_path, backup_path)
        tmp_path.replace(save_path)

    def _read_payload(self, path: Path) -> Dict:
        try:
            with open(path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError as exc:
            raise SaveError("Save file missing.") from exc
        except json.JSONDecodeError as exc:
            raise SaveCorruptError(f"Invalid JSON: {exc}") from exc
        if isinstance(payload, dict) and "state" not in payload:
            # Bare snapshots predate the metadata envelope.
            payload = {"version": self.SCHEMA_VERSION, "metadata": {}, "state": payload}
        self._validate_payload(payload)
        payload["state"] = migrate_snapshot(payload["state"], self.SCHEMA_VERSION)
        return payload

    def _validate_payload(self, payload: Dict) -> None:
        if not isinstance(payload, dict):
            raise SaveCorruptError("Payload was not an object.")
        state = payload.get("state")
        if not isinstance(state, dict):
            raise SaveCorruptError("State block missing.")
        if not isinstance(state.get("stats"), dict):
            raise SaveCorruptError("Missing key: state.stats")
        signature = payload.get("metadata", {}).get("signature")
        if signature and signature != _signature(state):
            raise SaveCorruptError("Snapshot signature mismatch.")
