"""Reconcile the database schema once without starting the HTTP server.

Usage (from repository root):
    python backend/scripts/reconcile_schema.py

Usage (from backend directory):
    python scripts/reconcile_schema.py --schema ../schema.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Make `dbproxy` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from dbproxy.config import get_settings
from dbproxy.main import prepare_database


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Reconcile the live database schema with schema.json.")
    parser.add_argument(
        "--schema",
        type=Path,
        default=None,
        help="Path to the desired schema document (default: SCHEMA_PATH setting).",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Override the number of connection attempts.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")

    settings = get_settings()
    overrides: dict[str, object] = {}
    if args.schema is not None:
        overrides["schema_path"] = args.schema
    if args.max_attempts is not None:
        overrides["connect_max_attempts"] = args.max_attempts
    if overrides:
        settings = settings.model_copy(update=overrides)

    engine, db, _schema, report = prepare_database(settings)
    try:
        if not report.operations:
            print("Schema already up to date.")
        for statement in report.statements:
            print(statement)
    finally:
        db.close()
        engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
