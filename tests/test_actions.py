import random

import pytest

from pplsim.actions import (
    CANCELLATION_FEE,
    STUDY_COST,
    available_actions,
    flight_price,
    perform_action,
    quote_flight,
)
from pplsim.catalog import load_catalog
from pplsim.errors import UnknownActionError
from pplsim.pricing import FlightCost, dual_lesson_cost, night_flight_cost, solo_flight_cost, xc_flight_cost


@pytest.fixture(scope="module")
def catalog():
    return load_catalog()


def actions_by_name(choices):
    return {choice.action: choice for choice in choices}


def lesson_quote(total=300, aircraft=200, cfi=100, hobbs=1.24):
    return FlightCost(total=total, aircraft=aircraft, cfi=cfi, hobbs=hobbs, lesson_hours=2.0)


def test_study_costs_money_and_builds_knowledge(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted())
    state = make_state(day=4, morale=75, knowledge=0, safety=0, money=18000, fatigue=10)
    result = perform_action(ctx, state, "study")

    assert result.performed
    assert result.message == "You studied navigation using online materials. Knowledge +5."
    assert state.stats["knowledge"] == 5
    assert state.stats["money"] == 18000 - STUDY_COST
    assert state.stats["fatigue"] == 14
    assert state.stats["morale"] == 73
    assert state.last_action == "study"
    assert state.event_history == []


def test_study_without_money_changes_nothing(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog)
    state = make_state(money=20)
    before = dict(state.stats)
    result = perform_action(ctx, state, "study")
    assert not result.performed
    assert "Not enough money" in result.message
    assert state.stats == before


def test_pre_solo_actions_on_a_clear_day(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog)
    choices = actions_by_name(available_actions(ctx, make_state(day=1)))
    assert list(choices) == ["study", "fly", "rest"]
    fly = choices["fly"]
    assert fly.enabled
    assert fly.cost == fly.quote.total
    assert fly.description == "2hr lesson with your CFI"


def test_bad_weather_offers_the_simulator(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog)
    choices = actions_by_name(available_actions(ctx, make_state(day=3)))
    assert list(choices) == ["study", "simulator", "rest"]
    assert choices["simulator"].description.startswith("Marginal VFR")


def test_post_solo_actions_unlock_with_hours(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog)
    state = make_state(day=8, flight_hours=22.0, fatigue=76, safety=80)
    state.milestones["first_solo"] = True
    choices = actions_by_name(available_actions(ctx, state))

    assert list(choices) == ["study", "fly_dual", "fly_solo", "fly_xc_dual", "fly_night_dual", "rest"]
    assert choices["fly_dual"].enabled
    assert choices["fly_solo"].warning == "High risk conditions for solo flight"
    assert not choices["fly_xc_dual"].enabled
    assert choices["fly_xc_dual"].reason == "Too fatigued for long cross-country flight"
    assert not choices["fly_night_dual"].enabled


def test_fatigue_and_money_disable_actions(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog)
    choices = actions_by_name(available_actions(ctx, make_state(day=1, fatigue=85)))
    assert not choices["fly"].enabled
    assert choices["fly"].reason == "Too fatigued to fly safely - get some rest first"
    assert choices["rest"].enabled

    choices = actions_by_name(available_actions(ctx, make_state(day=1, money=10)))
    assert not choices["study"].enabled
    assert choices["study"].reason == "Not enough money for study."
    assert choices["rest"].enabled


def test_solo_flight_while_exhausted_ends_the_game(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog)
    state = make_state(fatigue=96)
    state.milestones["first_solo"] = True
    result = perform_action(ctx, state, "fly_solo")
    assert result.ending == "exhausted"
    assert state.game_ended
    assert state.ending_type == "exhausted"

    after = perform_action(ctx, state, "rest")
    assert not after.performed


def test_action_that_crosses_every_threshold_wins(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted())
    state = make_state(day=70, knowledge=82, safety=80, flight_hours=40.0)
    result = perform_action(ctx, state, "study")

    assert state.stats["knowledge"] == 87
    assert result.ending == "success"
    assert state.game_ended
    assert state.ending_type == "success"


def test_action_that_drains_the_account_ends_the_game(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted())
    state = make_state(money=520)
    result = perform_action(ctx, state, "study")

    assert result.performed
    assert state.stats["money"] == 520 - STUDY_COST
    assert result.ending == "bankrupt"
    assert state.ending_type == "bankrupt"
    assert not perform_action(ctx, state, "rest").performed


def test_fatigued_dual_lesson_becomes_an_intervention(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted([0.0]))
    state = make_state(fatigue=85)
    before = dict(state.stats)
    result = perform_action(ctx, state, "fly")

    assert result.event.id == "cfi_imsafe_check"
    assert state.pending_event is result.event
    assert state.stats == before
    assert state.event_history == []


def test_fatigued_solo_gets_a_solo_intervention(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted([0.99]))
    state = make_state(fatigue=90)
    state.milestones["first_solo"] = True
    result = perform_action(ctx, state, "fly_solo")
    assert result.event.id in {event.id for event in catalog.interventions["solo_fatigue"]}
    assert not state.game_ended


def test_lesson_with_quote_logs_hours_and_charges(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted())
    state = make_state(flight_hours=5.0, fatigue=10, money=18000, knowledge=30, safety=50, morale=70)
    result = perform_action(ctx, state, "fly", lesson_quote())

    assert result.performed
    assert result.cost == lesson_quote()
    assert state.stats["flight_hours"] == pytest.approx(6.2)
    assert state.stats["money"] == 17700
    assert state.stats["knowledge"] == 32
    assert state.stats["safety"] == 58
    assert state.stats["fatigue"] == 25
    assert state.stats["morale"] == 85
    assert "You logged 1.2 flight hours" in result.message


def test_fuel_surcharge_applies_after_price_spike(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted())
    state = make_state(money=18000)
    state.decision_history["fuel_price_spike"] = {"day": 3, "data": {"fuel_price_increased": True}}
    assert flight_price(state, lesson_quote()) == 345

    result = perform_action(ctx, state, "fly", lesson_quote())
    assert state.stats["money"] == 18000 - 345
    assert "includes fuel surcharge" in result.message


def test_cross_country_logs_xc_hours(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted())
    state = make_state(flight_hours=16.0)
    quote = FlightCost(total=700, aircraft=560, cfi=120, hobbs=3.5, lesson_hours=3.5, fuel=20)
    perform_action(ctx, state, "fly_xc_dual", quote)
    assert state.stats["xc_hours"] == pytest.approx(3.5)
    assert state.stats["night_hours"] == 0


def test_unaffordable_flight_is_refused(catalog, make_state, make_context) -> None:
    ctx = make_context(catalog)
    state = make_state(money=100)
    before = dict(state.stats)
    result = perform_action(ctx, state, "fly", lesson_quote())
    assert not result.performed
    assert state.stats == before


def test_unknown_action_raises(catalog, make_state, make_context) -> None:
    with pytest.raises(UnknownActionError):
        perform_action(make_context(catalog), make_state(), "skydive")


@pytest.mark.parametrize("seed", range(40))
def test_prices_stay_within_their_bounds(seed: int) -> None:
    rng = random.Random(seed)
    dual = dual_lesson_cost(rng)
    assert 120 <= dual.aircraft_rate <= 200
    assert 60 <= dual.cfi_rate <= 110
    assert 0.7 <= dual.hobbs <= 1.8
    assert dual.total == dual.aircraft + dual.cfi

    solo = solo_flight_cost(rng)
    assert solo.cfi == 0
    assert 1.0 <= solo.hobbs <= 1.5

    xc = xc_flight_cost(rng)
    assert 3.0 <= xc.hobbs <= 4.0
    assert 15 <= xc.fuel <= 25

    night = night_flight_cost(rng)
    assert 2.0 <= night.hobbs <= 2.5
    assert 10 <= night.fuel <= 15


def test_cross_country_phase_bills_three_hour_lessons(make_state) -> None:
    state = make_state()
    state.phase = "Cross-Country"
    quote = quote_flight(random.Random(7), state, "fly_dual")
    assert quote.lesson_hours == 3.0
    assert 1.5 <= quote.hobbs <= 2.5


@pytest.mark.parametrize("seed", range(30))
def test_rest_recovers_fatigue(catalog, make_state, make_context, seed: int) -> None:
    ctx = make_context(catalog, rng=random.Random(seed))
    state = make_state(fatigue=50, morale=50, safety=50)
    result = perform_action(ctx, state, "rest")
    assert -26 <= result.deltas["fatigue"] <= -7
    assert 5 <= result.deltas["morale"] <= 12
    assert result.deltas["safety"] == 3


def test_intervention_only_actions(catalog, make_state, make_context, scripted) -> None:
    ctx = make_context(catalog, rng=scripted())
    state = make_state(money=1000, knowledge=30, safety=50)
    result = perform_action(ctx, state, "ground_lesson")
    assert state.stats["money"] == 952
    assert state.stats["knowledge"] == 46
    assert state.stats["safety"] == 60

    result = perform_action(ctx, state, "cancel_flight")
    assert result.deltas == {"money": -CANCELLATION_FEE, "morale": -5}
