"""Game state container for the PPL training simulator."""

from __future__ import annotations

import copy
import math
from typing import Any, Dict, List, Optional

PERCENT_STATS = ("morale", "knowledge", "safety", "fatigue")
NON_NEGATIVE_STATS = ("money", "flight_hours", "xc_hours", "night_hours")
STAT_KEYS = PERCENT_STATS + NON_NEGATIVE_STATS

MILESTONES = (
    "ground_school",
    "written_prep",
    "written_passed",
    "pre_solo_written_passed",
    "solo_endorsement",
    "first_solo",
    "cross_country",
    "checkride_endorsement",
    "checkride_passed",
)

FACTIONS = ("cfi", "atc", "fbo", "peers", "safety")

PHASES = (
    "Ground School",
    "Pre-Solo",
    "Solo Training",
    "Cross-Country",
    "Checkride Prep",
)

ENDING_KINDS = (
    "success",
    "bankrupt",
    "burnout",
    "safety_violation",
    "timeout",
    "exhausted",
)

DAILY_ACTIONS = (
    "study",
    "fly",
    "fly_dual",
    "fly_solo",
    "fly_xc_dual",
    "fly_night_dual",
    "simulator",
    "rest",
    "ground_lesson",
    "cancel_flight",
    "advised_rest",
)


def clamp(n, lo, hi): return lo if n < lo else hi if n > hi else n


def clamp_stat(stat: str, value: float) -> float:
    if stat in PERCENT_STATS:
        return clamp(value, 0, 100)
    return max(0, value)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class GameState:
    def __init__(
        self,
        *,
        day=1,
        phase=None,
        stats=None,
        milestones=None,
        reputation=None,
    ):
        self.day = day
        self.phase = phase or PHASES[0]
        self.stats = {key: 0 for key in STAT_KEYS}
        if stats:
            self.stats.update(stats)
        self.milestones = {name: False for name in MILESTONES}
        if milestones:
            self.milestones.update(milestones)
        self.reputation = {faction: 0 for faction in FACTIONS}
        if reputation:
            self.reputation.update(reputation)
        self.event_history: List[Dict[str, Any]] = []
        self.event_occurrences: Dict[str, int] = {}
        self.decision_history: Dict[str, Dict[str, Any]] = {}
        self.active_chains: Dict[str, Dict[str, Any]] = {}
        self.last_action: Optional[str] = None
        self.last_drain_day = 0
        self.last_event_day = 0
        self.game_ended = False
        self.ending_type: Optional[str] = None
        self.pending_event = None
        self.ensure_consistency()

    def summary(self):
        s = self.stats
        return (
            f"Day {self.day} ({self.phase}) | Morale {s['morale']:.0f} | "
            f"Knowledge {s['knowledge']:.0f} | Safety {s['safety']:.0f} | "
            f"Fatigue {s['fatigue']:.0f} | ${s['money']:,.0f} | "
            f"{s['flight_hours']:.1f} hrs"
        )

    def ensure_consistency(self):
        if not isinstance(self.stats, dict):
            self.stats = {}
        for key in STAT_KEYS:
            value = self.stats.get(key, 0)
            if not is_number(value):
                value = 0
            self.stats[key] = clamp_stat(key, value)

        if not isinstance(self.milestones, dict):
            self.milestones = {}
        for name in MILESTONES:
            self.milestones[name] = bool(self.milestones.get(name, False))

        if not isinstance(self.reputation, dict):
            self.reputation = {}
        for faction in FACTIONS:
            value = self.reputation.get(faction, 0)
            self.reputation[faction] = int(value) if is_number(value) else 0

        if self.phase not in PHASES:
            self.phase = PHASES[0]
        try:
            self.day = max(int(self.day), 1)
        except (TypeError, ValueError):
            self.day = 1

        normalized_history = []
        if isinstance(self.event_history, list):
            for entry in self.event_history:
                if not isinstance(entry, dict) or not isinstance(entry.get("event_id"), str):
                    continue
                day = entry.get("day", 0)
                if not is_number(day) or not math.isfinite(day):
                    continue
                normalized_history.append(
                    {
                        "event_id": entry["event_id"],
                        "day": int(day),
                        "choice_index": entry.get("choice_index"),
                        "memorable": bool(entry.get("memorable", False)),
                    }
                )
        self.event_history = normalized_history
        # Occurrence counts are a cache over the history log.
        self.event_occurrences = self.count_occurrences()

        if not isinstance(self.decision_history, dict):
            self.decision_history = {}
        if not isinstance(self.active_chains, dict):
            self.active_chains = {}

    def count_occurrences(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in self.event_history:
            counts[entry["event_id"]] = counts.get(entry["event_id"], 0) + 1
        return counts

    def apply_stat_delta(self, stat, delta):
        """Apply ``delta`` to ``stat`` with clamping and return the real change.

        Unknown stat names return ``None`` and leave the state untouched.
        """
        if stat not in self.stats:
            return None
        before = self.stats[stat]
        self.stats[stat] = clamp_stat(stat, before + delta)
        return self.stats[stat] - before

    def apply_reputation_delta(self, faction, delta):
        if faction not in self.reputation:
            return None
        self.reputation[faction] += int(delta)
        return int(delta)

    def record_event(self, event_id, choice_index, memorable=False):
        self.event_history.append(
            {
                "event_id": event_id,
                "day": self.day,
                "choice_index": choice_index,
                "memorable": bool(memorable),
            }
        )
        self.event_occurrences[event_id] = self.event_occurrences.get(event_id, 0) + 1

    def occurrences(self, event_id) -> int:
        return self.event_occurrences.get(event_id, 0)

    def last_seen_day(self, event_id) -> Optional[int]:
        for entry in reversed(self.event_history):
            if entry["event_id"] == event_id:
                return entry["day"]
        return None

    def decision_flag(self, key) -> bool:
        """True when any recorded decision payload carries a truthy ``key``."""
        for decision in self.decision_history.values():
            data = decision.get("data") if isinstance(decision, dict) else None
            if isinstance(data, dict) and data.get(key):
                return True
        return False

    def snapshot(self) -> Dict[str, Any]:
        blob = {key: value for key, value in vars(self).items() if key != "pending_event"}
        return copy.deepcopy(blob)

    def restore(self, snapshot: Dict[str, Any]) -> None:
        for key, value in copy.deepcopy(snapshot).items():
            setattr(self, key, value)


def new_game(rng) -> GameState:
    """Create a fresh game with the randomized starting stats."""
    return GameState(
        stats={
            "morale": 70 + int(rng.random() * 11),
            "knowledge": 0,
            "safety": 0,
            "money": 17000 + int(rng.random() * 3001),
            "flight_hours": 0.0,
            "xc_hours": 0.0,
            "night_hours": 0.0,
            "fatigue": 5 + int(rng.random() * 11),
        }
    )
