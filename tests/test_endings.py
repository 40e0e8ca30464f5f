import pytest

from pplsim.endings import (
    DEFAULT_ENDING,
    ENDINGS,
    FATIGUE_SCENARIOS,
    ending_narrative,
    evaluate_ending,
    training_progress,
)
from pplsim.settings import EngineSettings
from pplsim.state import GameState, MILESTONES


@pytest.mark.parametrize(
    ("day", "stats", "expected"),
    [
        (30, {"flight_hours": 40, "knowledge": 85, "safety": 80, "money": 100}, "success"),
        (30, {"flight_hours": 41, "knowledge": 90, "safety": 79, "money": 9000, "morale": 50}, None),
        (30, {"money": 500, "morale": 0}, "bankrupt"),
        (30, {"money": 2000, "morale": 0, "safety": 10, "flight_hours": 20}, "burnout"),
        (30, {"money": 2000, "morale": 40, "safety": 30, "flight_hours": 15.5}, "safety_violation"),
        (30, {"money": 2000, "morale": 40, "safety": 30, "flight_hours": 15}, None),
        (101, {"money": 2000, "morale": 40, "safety": 60}, "timeout"),
        (100, {"money": 2000, "morale": 40, "safety": 60}, None),
    ],
)
def test_endings_are_checked_in_precedence_order(day: int, stats: dict, expected) -> None:
    state = GameState(day=day, stats=stats)
    assert evaluate_ending(state, EngineSettings(max_days=100)) == expected


def test_exhausted_ending_draws_a_fatigue_scenario(scripted) -> None:
    narrative = ending_narrative("exhausted", scripted([0.99]))
    assert narrative.title == "Fatigue-Related Incident"
    assert (narrative.dramatic, narrative.advice) == FATIGUE_SCENARIOS[-1]

    plain = ending_narrative("exhausted")
    assert plain.dramatic == ENDINGS["exhausted"]["dramatic"]


def test_unknown_ending_uses_default_narrative() -> None:
    narrative = ending_narrative("abducted")
    assert narrative.kind == "abducted"
    assert narrative.title == DEFAULT_ENDING["title"] == "Journey's End"
    assert ending_narrative(None).kind == ""


def test_training_progress_bounds() -> None:
    assert training_progress(GameState()) == 0

    finished = GameState(
        stats={"knowledge": 100, "safety": 100, "flight_hours": 55},
        milestones={name: True for name in MILESTONES},
    )
    assert training_progress(finished) == 100


def test_training_progress_weights_hours_most() -> None:
    hours_only = GameState(stats={"flight_hours": 40})
    knowledge_only = GameState(stats={"knowledge": 40})
    assert training_progress(hours_only) == 35
    assert training_progress(knowledge_only) == 10
