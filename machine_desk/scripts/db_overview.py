#!/usr/bin/env python3
"""Database overview and rental consistency checks for Machine Desk."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine


EXPECTED_TABLES = [
    "machines",
    "model",
    "rentals",
    "customers",
    "operators",
]

EXPECTED_COLUMNS: dict[str, list[str]] = {
    "machines": ["machine_id", "serial_number", "model_id", "category", "capacity", "purchase_date", "status"],
    "model": ["model_id", "model_name"],
    "rentals": [
        "rental_id",
        "machine_id",
        "customer_id",
        "operator_id",
        "start_date",
        "expected_return_date",
        "actual_return_date",
        "rental_status",
    ],
    "customers": ["customer_id", "name"],
    "operators": ["operator_id", "name"],
}


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str


def _print_section(title: str) -> None:
    print(f"\n=== {title} ===")


def _get_engine(db_url: str) -> Engine:
    return create_engine(db_url, pool_pre_ping=True, future=True)


def _scalar(engine: Engine, sql: str, params: dict | None = None):
    with engine.connect() as conn:
        return conn.execute(text(sql), params or {}).scalar()


def _rows(engine: Engine, sql: str, params: dict | None = None):
    with engine.connect() as conn:
        return conn.execute(text(sql), params or {}).all()


def _table_names(engine: Engine) -> set[str]:
    return set(inspect(engine).get_table_names())


def _column_names(engine: Engine, table_name: str) -> set[str]:
    return {str(column["name"]) for column in inspect(engine).get_columns(table_name)}


def _count_check(engine: Engine, name: str, sql: str) -> CheckResult:
    count = int(_scalar(engine, sql) or 0)
    return CheckResult(name, count == 0, f"count={count}")


def _run_existence_checks(engine: Engine) -> list[CheckResult]:
    existing = _table_names(engine)
    return [
        CheckResult(f"table:{table}", table in existing, "present" if table in existing else "missing")
        for table in EXPECTED_TABLES
    ]


def _run_column_checks(engine: Engine) -> list[CheckResult]:
    existing = _table_names(engine)
    results: list[CheckResult] = []
    for table, expected in EXPECTED_COLUMNS.items():
        if table not in existing:
            results.append(CheckResult(f"columns:{table}", False, "table missing"))
            continue
        actual = _column_names(engine, table)
        missing = [name for name in expected if name not in actual]
        results.append(
            CheckResult(
                f"columns:{table}",
                not missing,
                "ok" if not missing else f"missing={','.join(missing)}",
            )
        )
    return results


def _run_integrity_checks(engine: Engine) -> list[CheckResult]:
    existing = _table_names(engine)
    if not {"machines", "rentals"} <= existing:
        return [CheckResult("integrity", False, "machines or rentals table missing")]

    return [
        _count_check(
            engine,
            "rentals:multiple_active_per_machine",
            """
            SELECT COUNT(*)
            FROM (
                SELECT machine_id
                FROM rentals
                WHERE rental_status = 'Active'
                GROUP BY machine_id
                HAVING COUNT(*) > 1
            ) d
            """,
        ),
        _count_check(
            engine,
            "machines:active_rental_but_status_not_rented",
            """
            SELECT COUNT(DISTINCT m.machine_id)
            FROM machines m
            JOIN rentals r ON r.machine_id = m.machine_id AND r.rental_status = 'Active'
            WHERE LOWER(TRIM(COALESCE(m.status, ''))) <> 'rented'
            """,
        ),
        _count_check(
            engine,
            "machines:status_rented_without_active_rental",
            """
            SELECT COUNT(*)
            FROM machines m
            WHERE LOWER(TRIM(COALESCE(m.status, ''))) = 'rented'
              AND NOT EXISTS (
                  SELECT 1 FROM rentals r
                  WHERE r.machine_id = m.machine_id AND r.rental_status = 'Active'
              )
            """,
        ),
        _count_check(
            engine,
            "rentals:orphan_machine_id",
            """
            SELECT COUNT(*)
            FROM rentals r
            LEFT JOIN machines m ON m.machine_id = r.machine_id
            WHERE m.machine_id IS NULL
            """,
        ),
        _count_check(
            engine,
            "rentals:unknown_rental_status",
            """
            SELECT COUNT(*)
            FROM rentals
            WHERE rental_status IS NULL OR rental_status NOT IN ('Active', 'Completed')
            """,
        ),
    ]


def _print_results(title: str, rows: Iterable[CheckResult]) -> None:
    _print_section(title)
    for row in rows:
        status = "OK" if row.ok else "FAIL"
        print(f"[{status}] {row.name} :: {row.detail}")


def _print_row_counts(engine: Engine) -> None:
    _print_section("Row Counts")
    existing = _table_names(engine)
    for table in EXPECTED_TABLES:
        if table not in existing:
            print(f"{table}: missing")
            continue
        count = _scalar(engine, f"SELECT COUNT(*) FROM {table}")
        print(f"{table}: {int(count or 0)}")


def _print_status_breakdown(engine: Engine) -> None:
    _print_section("Raw Machine Status Values")
    if "machines" not in _table_names(engine):
        print("machines: missing")
        return
    rows = _rows(
        engine,
        "SELECT COALESCE(status, '<null>'), COUNT(*) FROM machines GROUP BY status ORDER BY COUNT(*) DESC",
    )
    for raw_status, count in rows:
        print(f"  - {raw_status!r}: {count}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Machine Desk DB overview")
    parser.add_argument("--db-url", default=os.environ.get("RENTAL_DB_URL", ""))
    args = parser.parse_args(argv)

    db_url = (args.db_url or "").strip()
    if not db_url:
        print("RENTAL_DB_URL is not set. Provide --db-url or export env first.")
        return 2

    try:
        engine = _get_engine(db_url)
        _scalar(engine, "SELECT 1")
    except Exception as exc:
        print(f"Could not connect to DB: {exc}")
        return 3

    integrity = _run_integrity_checks(engine)
    _print_results("Table Existence", _run_existence_checks(engine))
    _print_results("Column Checks", _run_column_checks(engine))
    _print_results("Integrity Checks", integrity)
    _print_row_counts(engine)
    _print_status_breakdown(engine)
    return 0 if all(result.ok for result in integrity) else 1


if __name__ == "__main__":
    sys.exit(main())
