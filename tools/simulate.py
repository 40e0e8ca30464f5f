#!/usr/bin/env python3
"""Run seeded playthroughs and report ending distribution and event coverage."""

from __future__ import annotations

import argparse
import logging
import random
import sys
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pplsim.catalog import DEFAULT_CATALOG_PATH, load_catalog
from pplsim.session import (
    advance_day,
    available_actions,
    create_context,
    new_game,
    perform_action,
    resolve_choice,
    select_event,
)
from pplsim.settings import EngineSettings

FLIGHT_PREFERENCE = ("fly_xc_dual", "fly_night_dual", "fly_solo", "fly_dual", "fly")


def pick_action(state, choices, rng: random.Random):
    """A cautious student: rest when tired, fly when possible, otherwise study."""
    enabled = {choice.action: choice for choice in choices if choice.enabled}
    if state.stats["fatigue"] > 60 or state.stats["morale"] < 20:
        return enabled["rest"]
    flights = [enabled[action] for action in FLIGHT_PREFERENCE if action in enabled]
    if flights and state.stats["money"] > 2000:
        return flights[0] if rng.random() < 0.5 else rng.choice(flights)
    if "simulator" in enabled and rng.random() < 0.5:
        return enabled["simulator"]
    if "study" in enabled and state.stats["knowledge"] < 90:
        return enabled["study"]
    return enabled["rest"]


def play(ctx, state, rng: random.Random, max_steps: int) -> Tuple[Optional[str], int]:
    steps = 0
    while not state.game_ended and steps < max_steps:
        steps += 1
        event = select_event(ctx, state)
        if event is not None:
            resolve_choice(ctx, state, event.id, rng.randrange(len(event.options)))
        if state.game_ended:
            break

        choice = pick_action(state, available_actions(ctx, state), rng)
        result = perform_action(ctx, state, choice.action, choice.quote)
        if result.event is not None and not state.game_ended:
            resolve_choice(ctx, state, result.event.id, rng.randrange(len(result.event.options)))
        if state.game_ended:
            break
        advance_day(ctx, state)
    return state.ending_type, steps


def simulate(catalog, settings: EngineSettings, runs: int, seed: int) -> Dict[str, object]:
    endings: Counter[str] = Counter()
    fired: Counter[str] = Counter()
    unfinished: List[int] = []
    days: List[int] = []

    for run in range(runs):
        run_seed = seed + run
        ctx = create_context(catalog, settings.copy(), seed=run_seed)
        state = new_game(ctx)
        ending, _ = play(ctx, state, random.Random(run_seed ^ 0x5EED), settings.max_days + 5)
        if ending is None:
            unfinished.append(run_seed)
            continue
        endings[ending] += 1
        days.append(state.day)
        for entry in state.event_history:
            fired[entry["event_id"]] += 1

    return {"endings": endings, "fired": fired, "unfinished": unfinished, "days": days}


def report(catalog, results: Dict[str, object]) -> int:
    endings: Counter[str] = results["endings"]
    fired: Counter[str] = results["fired"]
    days: List[int] = results["days"]
    total = sum(endings.values())

    print("Ending distribution:")
    for ending, count in endings.most_common():
        print(f"  {ending}: {count} ({count / total:.1%})")
    if days:
        print(f"  average length: {sum(days) / len(days):.1f} days")
    print()

    print("Most frequent events:")
    for event_id, count in fired.most_common(10):
        print(f"  {event_id}: {count}")
    print()

    exit_code = 0
    print("Coverage checks:")
    if results["unfinished"]:
        exit_code = 1
        seeds = ", ".join(str(seed) for seed in results["unfinished"])
        print(f"  [FAIL] Playthroughs without an ending (seeds): {seeds}")
    else:
        print("  [OK] Every playthrough reached an ending.")

    never = [event.id for event in catalog.events if event.id not in fired]
    if never:
        print(f"  [WARN] {len(never)} of {len(catalog.events)} events never fired:")
        for event_id in never:
            print(f"    - {event_id}")
    else:
        print("  [OK] Every catalog event fired at least once.")
    return exit_code


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate seeded PPL training playthroughs.")
    parser.add_argument("catalog", nargs="?", default=str(DEFAULT_CATALOG_PATH), help="Path to the root catalog JSON")
    parser.add_argument("--runs", type=int, default=200, help="Number of playthroughs")
    parser.add_argument("--seed", type=int, default=0, help="Seed of the first playthrough")
    parser.add_argument("--max-days", type=int, default=None, help="Override the day limit")
    parser.add_argument("--verbose", action="store_true", help="Log engine decisions at debug level")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    catalog = load_catalog(Path(args.catalog))
    settings = EngineSettings()
    if args.max_days is not None:
        settings.max_days = args.max_days
        settings.clamp()
    results = simulate(catalog, settings, max(1, args.runs), args.seed)
    raise SystemExit(report(catalog, results))


if __name__ == "__main__":
    main()
