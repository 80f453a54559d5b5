#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path
from uuid import UUID

ROOT_DIR = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT_DIR / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.core.errors import ApiError  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.schemas.progress import MissingLogsResponse  # noqa: E402
from app.services.missing_logs import find_missing_this_week  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="List active interventions with no progress log for the week."
    )
    parser.add_argument("tenant_id", type=UUID, help="Tenant (school) id")
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Check the week containing this date (YYYY-MM-DD); defaults to today",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw JSON payload instead of a table",
    )
    return parser.parse_args()


async def _load(tenant_id: UUID, as_of: date | None) -> MissingLogsResponse:
    try:
        async with SessionLocal() as db:
            return await find_missing_this_week(db, tenant_id, as_of)
    finally:
        await engine.dispose()


def _print_table(report: MissingLogsResponse) -> None:
    print(f"week_of={report.week_of.isoformat()} missing={report.missing_count}")
    for item in report.interventions:
        tier = f"T{item.tier}" if item.tier else "-"
        print(
            f"  {item.last_name}, {item.first_name:<16} {tier:<3} "
            f"{item.intervention_name} (since {item.start_date.isoformat()})"
        )


def main() -> int:
    args = _parse_args()
    try:
        report = asyncio.run(_load(args.tenant_id, args.as_of))
    except ApiError as exc:
        print(f"[FAIL] {exc.error_code.value}: {exc.message}", file=sys.stderr)
        return 1

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        _print_table(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
