import json
import subprocess
import sys
from pathlib import Path

import pytest

from pplsim.catalog import ComputedImpact, NamedOutcome, load_catalog
from pplsim.catalog_schema import normalize_events
from pplsim.schema import validate_catalog
from tools.chain_audit import analyze_chains


REPO_ROOT = Path(__file__).resolve().parents[1]


def write_catalog(tmp_path: Path, catalog: dict, modules=None) -> Path:
    for name, module in (modules or {}).items():
        (tmp_path / name).write_text(json.dumps(module))
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog))
    return path


def test_shipped_catalog_loads() -> None:
    catalog = load_catalog()
    ids = [event.id for event in catalog.events]
    assert len(ids) == len(set(ids))
    assert len(ids) > 100
    assert "ppl_coin_intro" in ids
    assert set(catalog.interventions) == {"dual_fatigue", "solo_fatigue"}
    assert {"ppl_coin_rise", "ppl_coin_crash", "checkride_phase1", "checkride_final"} <= set(catalog.followups)
    assert catalog.chains["checkride_prep"].allows("initial", "checkride")
    assert not catalog.chains["ppl_coin"].allows("crash", "initial")


def test_shipped_catalog_wires_computed_impacts_and_module_categories() -> None:
    catalog = load_catalog()
    maintenance = catalog.get("plane_maintenance")
    assert isinstance(maintenance.options[0].impact, ComputedImpact)
    assert isinstance(maintenance.options[0].outcome, NamedOutcome)
    assert catalog.get("ppl_coin_intro").category == "financial"
    assert catalog.get("hearing_concerns").category == "chain"


@pytest.mark.parametrize(
    ("catalog", "match"),
    [
        ({"events": []}, "title"),
        ({"title": "Test", "events": "nope"}, "events"),
        ({"title": "Test", "events": [{"text": "No id"}]}, "missing"),
        ({"title": "Test", "events": [{"id": "a", "text": "A", "options": []}]}, "options"),
        ({"title": "Test", "events": [{"id": "a", "text": "A", "probability": 1.5, "options": [{"text": "x"}]}]}, "probability"),
    ],
)
def test_load_catalog_rejects_invalid_shapes(tmp_path: Path, catalog: dict, match: str) -> None:
    path = write_catalog(tmp_path, catalog)
    with pytest.raises(ValueError, match=match):
        load_catalog(path)


def test_normalize_events_rejects_duplicate_ids() -> None:
    _, errors = normalize_events(
        [
            {"id": "dup", "text": "First"},
            {"id": "dup", "text": "Second"},
        ]
    )
    assert any("Duplicate event IDs" in error for error in errors)


def test_duplicate_ids_across_modules_fail_fast(tmp_path: Path) -> None:
    event = {"id": "shared", "text": "Twice", "options": [{"text": "OK"}]}
    path = write_catalog(
        tmp_path,
        {"title": "Test", "modules": ["one.json", "two.json"], "events": []},
        {"one.json": {"events": [event]}, "two.json": {"events": [event]}},
    )
    with pytest.raises(ValueError, match="already exist"):
        load_catalog(path)


def test_next_phase_must_be_declared() -> None:
    errors = validate_catalog(
        {
            "title": "Test",
            "chains": {"story": {"phases": {"initial": ["middle"], "middle": []}}},
            "events": [
                {
                    "id": "beat",
                    "text": "A beat.",
                    "chain_link": "story",
                    "options": [{"text": "Skip ahead", "next_phase": "finale"}],
                }
            ],
        }
    )
    assert any("unknown phase 'finale'" in error for error in errors)


def test_unknown_chain_link_and_chain_start_are_reported() -> None:
    errors = validate_catalog(
        {
            "title": "Test",
            "events": [
                {
                    "id": "orphan",
                    "text": "Orphan.",
                    "chain_link": "ghost",
                    "options": [{"text": "Begin", "chain_start": "phantom"}],
                }
            ],
        }
    )
    assert any("undeclared chain 'ghost'" in error for error in errors)
    assert any("undeclared chain 'phantom'" in error for error in errors)


def test_chain_phase_tables_cannot_return_to_initial() -> None:
    errors = validate_catalog(
        {
            "title": "Test",
            "chains": {"loop": {"phases": {"initial": ["again"], "again": ["initial"]}}},
            "events": [],
        }
    )
    assert any("may not return to 'initial'" in error for error in errors)


def test_impacts_conditions_and_actions_are_checked() -> None:
    errors = validate_catalog(
        {
            "title": "Test",
            "events": [
                {
                    "id": "bad",
                    "text": "Bad.",
                    "condition": [{"type": "stat_above", "stat": "charisma", "value": 3}, {"type": "weather_is"}],
                    "options": [
                        {"text": "A", "impact": {"morale": "lots"}},
                        {"text": "B", "impact": {"type": "lottery"}},
                        {"text": "C", "action": "skydive", "trigger_ending": "victory"},
                        {"text": "D", "chain_data": {"phase": "late"}},
                    ],
                }
            ],
        }
    )
    joined = "\n".join(errors)
    assert "'stat_above' requires 'stat'" in joined
    assert "unsupported condition type 'weather_is'" in joined
    assert "stat delta must be a number" in joined
    assert "unknown computed impact 'lottery'" in joined
    assert "unknown action 'skydive'" in joined
    assert "unknown ending 'victory'" in joined
    assert "'phase' is reserved" in joined


def test_ids_must_be_unique_across_sections() -> None:
    event = {"id": "twin", "text": "Twin.", "options": [{"text": "OK"}]}
    errors = validate_catalog({"title": "Test", "events": [event], "followups": [event]})
    assert any("duplicate event ID 'twin' across sections" in error for error in errors)


def test_validate_tool_flags_bad_catalog(tmp_path: Path) -> None:
    path = write_catalog(
        tmp_path,
        {
            "title": "Test",
            "events": [{"id": "a", "text": "A", "options": [{"text": "x", "impact": {"morale": "high"}}]}],
        },
    )
    result = subprocess.run(
        [sys.executable, str(REPO_ROOT / "tools" / "validate.py"), str(path)],
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 1
    assert "stat delta must be a number" in result.stdout


def test_validate_tool_accepts_shipped_catalog() -> None:
    result = subprocess.run(
        [sys.executable, str(REPO_ROOT / "tools" / "validate.py")],
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 0, result.stdout
    assert "Validation passed" in result.stdout


def test_chain_audit_reports_unstarted_chains_and_unreached_phases() -> None:
    warnings = analyze_chains(
        {
            "title": "Test",
            "chains": {
                "story": {"phases": {"initial": ["twist"], "twist": []}},
                "forgotten": {"phases": {"initial": []}},
            },
            "events": [
                {"id": "sequel", "text": "Later.", "chain_link": "story", "options": [{"text": "OK"}]},
                {
                    "id": "callback",
                    "text": "Remember?",
                    "condition": {"type": "days_since_decision", "key": "nobody", "value": 3},
                    "options": [{"text": "OK"}],
                },
            ],
        }
    )
    joined = "\n".join(warnings)
    assert "chains.story: no option starts this chain" in joined
    assert "chains.forgotten: declared but never started" in joined
    assert "chains.story.phases.twist" in joined
    assert "key 'nobody' is neither a chain nor an event" in joined
