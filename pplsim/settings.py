"""Engine tuning knobs persisted as JSON."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

_BASE_DIR = Path(__file__).resolve().parent.parent
SETTINGS_PATH = _BASE_DIR / "engine_settings.json"


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


@dataclass
class EngineSettings:
    """Tunable constants for event selection, chains and game length."""

    cooldown_days: int = 5
    event_chance: float = 0.6
    default_probability: float = 0.1
    chain_max_age: int = 60
    max_days: int = 100
    debug_events: bool = False

    def clamp(self) -> "EngineSettings":
        self.cooldown_days = int(_clamp(int(self.cooldown_days), 1, 30))
        self.event_chance = _clamp(float(self.event_chance), 0.0, 1.0)
        self.default_probability = _clamp(float(self.default_probability), 0.01, 1.0)
        self.chain_max_age = int(_clamp(int(self.chain_max_age), 1, 365))
        self.max_days = int(_clamp(int(self.max_days), 10, 1000))
        self.debug_events = bool(self.debug_events)
        return self

    @property
    def effective_event_chance(self) -> float:
        return 1.0 if self.debug_events else self.event_chance

    def copy(self) -> "EngineSettings":
        return EngineSettings.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "EngineSettings":
        if not isinstance(data, dict):
            return cls()

        def _as_float(key: str, default: float) -> float:
            try:
                return float(data.get(key, default))
            except (TypeError, ValueError):
                return default

        def _as_int(key: str, default: int) -> int:
            try:
                return int(data.get(key, default))
            except (TypeError, ValueError):
                return default

        def _as_bool(key: str, default: bool) -> bool:
            value = data.get(key, default)
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in {"true", "1", "yes", "on"}:
                    return True
                if lowered in {"false", "0", "no", "off"}:
                    return False
            return bool(value) if value is not None else default

        settings = cls(
            cooldown_days=_as_int("cooldown_days", 5),
            event_chance=_as_float("event_chance", 0.6),
            default_probability=_as_float("default_probability", 0.1),
            chain_max_age=_as_int("chain_max_age", 60),
            max_days=_as_int("max_days", 100),
            debug_events=_as_bool("debug_events", False),
        )
        return settings.clamp()


def load_settings(path: Path | str = SETTINGS_PATH) -> EngineSettings:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return EngineSettings()
    except (OSError, json.JSONDecodeError, TypeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return EngineSettings()
    return EngineSettings.from_dict(data)


def save_settings(settings: EngineSettings, path: Path | str = SETTINGS_PATH) -> EngineSettings:
    path = Path(path)
    sanitized = settings.copy().clamp()
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=path.parent, prefix=path.name, suffix=".tmp", encoding="utf-8"
        ) as tmp_file:
            json.dump(sanitized.to_dict(), tmp_file, indent=2)
            tmp_file.write("\n")
            tmp_path = Path(tmp_file.name)
        os.replace(str(tmp_path), str(path))
    except OSError as exc:
        logger.error("Failed to save settings to %s: %s", path, exc)
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                pass
    return sanitized
