#!/usr/bin/env python3
"""Validate the event catalog for common authoring mistakes."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pplsim.catalog import DEFAULT_CATALOG_PATH, load_catalog_data
from pplsim.schema import validate_catalog
from tools.chain_audit import analyze_chains


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate PPL simulator event catalog content.")
    parser.add_argument(
        "catalog_path",
        nargs="?",
        default=str(DEFAULT_CATALOG_PATH),
        help="Path to the root catalog JSON file.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str]) -> None:
    args = parse_args(argv[1:])
    catalog_path = Path(args.catalog_path).resolve()
    try:
        catalog = load_catalog_data(catalog_path)
    except json.JSONDecodeError as exc:
        print(f"Failed to parse JSON from {catalog_path}: {exc}")
        sys.exit(1)
    except (OSError, ValueError) as exc:
        print(f"Failed to load {catalog_path}:\n{exc}")
        sys.exit(1)

    errors = validate_catalog(catalog)
    if errors:
        print("Validation failed (path: message):")
        for err in errors:
            print(f" - {err}")
        sys.exit(1)

    warnings = analyze_chains(catalog)
    if warnings:
        print("Chain warnings (path: message):")
        for warning in warnings:
            print(f" - {warning}")

    print(f"Validation passed for {catalog_path}.")


if __name__ == "__main__":
    main(sys.argv)
