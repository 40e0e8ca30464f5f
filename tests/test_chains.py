import logging

import pytest

from pplsim.catalog import load_catalog
from pplsim.chains import advance_chain, start_chain
from pplsim.endings import ENDINGS
from pplsim.session import resolve_choice, select_event
from pplsim.timekeeping import advance_day, update_milestones


@pytest.fixture(scope="module")
def catalog():
    return load_catalog()


def next_event(ctx, state, day):
    state.day = day
    state.pending_event = None
    return select_event(ctx, state)


def test_ppl_coin_storyline_rises_then_crashes(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog, event_chance=0.0)
    state = make_state(day=12)
    resolve_choice(ctx, state, "ppl_coin_intro", 0)
    assert state.stats["money"] == 16000
    assert state.active_chains["ppl_coin"]["start_day"] == 12

    assert next_event(ctx, state, 16) is None
    rise = next_event(ctx, state, 17)
    assert rise.id == "ppl_coin_rise"
    resolve_choice(ctx, state, rise.id, 0)
    assert state.active_chains["ppl_coin"]["phase"] == "crash"
    assert state.pending_event is None

    crash = next_event(ctx, state, 22)
    assert crash.id == "ppl_coin_crash"
    resolve_choice(ctx, state, crash.id, 0)
    assert "ppl_coin" not in state.active_chains
    assert state.decision_history["ppl_coin"]["data"]["coins"] == 4000


def test_selling_half_keeps_chain_out_of_crash(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog, event_chance=0.0)
    state = make_state(day=12)
    resolve_choice(ctx, state, "ppl_coin_intro", 0)

    rise = next_event(ctx, state, 17)
    resolve_choice(ctx, state, rise.id, 1)
    assert state.active_chains["ppl_coin"]["coins"] == 2000
    assert state.active_chains["ppl_coin"]["phase"] == "initial"
    assert next_event(ctx, state, 22) is None


def test_due_followup_preempts_random_events(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted([0.0, 0.0]), event_chance=1.0)
    state = make_state(day=17)
    start_chain(state, "ppl_coin", {"coins": 4000})
    state.active_chains["ppl_coin"]["start_day"] = 12
    assert select_event(ctx, state).id == "ppl_coin_rise"


def test_undeclared_transitions_are_ignored(catalog, make_state, caplog) -> None:
    state = make_state(day=20)
    start_chain(state, "ppl_coin")
    assert advance_chain(catalog, state, "ppl_coin", "crash")
    with caplog.at_level(logging.WARNING, logger="pplsim.chains"):
        assert not advance_chain(catalog, state, "ppl_coin", "initial")
        assert not advance_chain(catalog, state, "hangar_rumors", "initial")
    assert state.active_chains["ppl_coin"]["phase"] == "crash"
    assert "Ignoring undeclared transition crash -> initial" in caplog.text
    assert "Cannot advance inactive chain 'hangar_rumors'" in caplog.text


def test_chains_expire_after_their_max_age(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog)
    state = make_state(day=1)
    for chain_id in ("ppl_coin", "social_network", "cheap_headset"):
        start_chain(state, chain_id)

    state.day = 30
    assert advance_day(ctx, state).evicted == ()
    assert advance_day(ctx, state).evicted == ("ppl_coin",)
    assert "ppl_coin" in state.decision_history

    state.day = 61
    assert advance_day(ctx, state).evicted == ("social_network",)
    assert set(state.active_chains) == {"cheap_headset"}


def checkride_candidate(make_state, knowledge, safety):
    state = make_state(day=50, knowledge=knowledge, safety=safety, flight_hours=40.0)
    state.phase = "Cross-Country"
    state.milestones["first_solo"] = True
    return state


def test_checkride_pass_ends_the_game_in_success(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog, event_chance=0.0)
    state = checkride_candidate(make_state, knowledge=62, safety=70)
    update_milestones(state, ctx.settings)
    assert state.phase == "Checkride Prep"
    assert state.active_chains["checkride_prep"]["phase"] == "initial"

    phase1 = next_event(ctx, state, 51)
    assert phase1.id == "checkride_phase1"
    resolve_choice(ctx, state, phase1.id, 0)
    assert state.active_chains["checkride_prep"]["phase"] == "checkride"
    assert state.stats["knowledge"] == 77

    state.stats["knowledge"] = 81
    final = next_event(ctx, state, 52)
    assert final.id == "checkride_final"
    assert final.options[0].trigger_ending == "success"
    outcome = resolve_choice(ctx, state, final.id, 0)

    assert outcome.text == ENDINGS["success"]["title"]
    assert outcome.ending == "success"
    assert outcome.deltas == {"money": -500}
    assert state.occurrences("checkride_final") == 0
    assert state.milestones["checkride_passed"]
    assert "checkride_prep" not in state.active_chains


def test_failed_checkride_restarts_prep_after_cooldown(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog, event_chance=0.0)
    state = checkride_candidate(make_state, knowledge=60, safety=60)
    state.phase = "Checkride Prep"
    start_chain(state, "checkride_prep")
    state.active_chains["checkride_prep"]["phase"] = "checkride"

    final = next_event(ctx, state, 50)
    assert final.id == "checkride_final"
    assert final.options[0].trigger_ending is None
    resolve_choice(ctx, state, final.id, 0)
    assert not state.game_ended
    assert "checkride_prep" not in state.active_chains

    for _ in range(4):
        advance_day(ctx, state)
        assert "checkride_prep" not in state.active_chains
    advance_day(ctx, state)
    assert state.day == 55
    assert state.active_chains["checkride_prep"] == {"start_day": 55, "phase": "initial"}
