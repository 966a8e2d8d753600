#!/usr/bin/env python3
"""Bulk import the part catalog from a CSV file.

CSV format:
    sku,name,brand,unit,internal_code

Example:
    BRK-PAD-01,Front brake pad set,Bosch,Set,BP-001
    OIL-FLT-07,Oil filter,Mann,Each,OF-007

Usage:
    python scripts/bulk_import_parts.py --csv scripts/parts.csv
    python scripts/bulk_import_parts.py --csv scripts/parts.csv --dry-run
"""
from __future__ import annotations

import argparse
import csv
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from partsledger.db import SessionLocal, get_engine
from partsledger.logging import configure_logging
from partsledger.models.catalog import Part

logger = logging.getLogger("partsledger.scripts.bulk_import_parts")


def _normalize_whitespace(value: str) -> str:
    return " ".join(value.strip().split())


@dataclass(frozen=True)
class PartRow:
    sku: str
    name: str
    brand: str
    unit: str
    internal_code: str


def load_rows(csv_path: str) -> list[PartRow]:
    """Load rows from CSV, skipping blank names and repeated SKUs."""
    rows: list[PartRow] = []
    seen_skus: set[str] = set()
    with open(csv_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        for raw in reader:
            name = _normalize_whitespace(raw.get("name") or "")
            if not name:
                continue
            sku = _normalize_whitespace(raw.get("sku") or "")
            if sku and sku in seen_skus:
                continue
            if sku:
                seen_skus.add(sku)
            rows.append(
                PartRow(
                    sku=sku,
                    name=name,
                    brand=_normalize_whitespace(raw.get("brand") or ""),
                    unit=_normalize_whitespace(raw.get("unit") or "Each"),
                    internal_code=_normalize_whitespace(raw.get("internal_code") or ""),
                )
            )
    return rows


def import_rows(db: Session, rows: list[PartRow], dry_run: bool = False) -> dict[str, int]:
    """Create parts that are not in the catalog yet. Existing SKUs are skipped."""
    summary = {"created": 0, "skipped_existing": 0, "dry_run": 0}
    for row in rows:
        existing = None
        if row.sku:
            existing = db.query(Part).filter(Part.sku == row.sku).first()
        else:
            existing = db.query(Part).filter(Part.name == row.name).first()
        if existing:
            summary["skipped_existing"] += 1
            continue
        if dry_run:
            logger.info("DRY RUN: would create part name=%s sku=%s", row.name, row.sku or "(none)")
            summary["dry_run"] += 1
            continue
        db.add(
            Part(
                sku=row.sku or None,
                name=row.name,
                brand=row.brand or None,
                unit=row.unit or "Each",
                internal_code=row.internal_code or None,
                is_active=True,
            )
        )
        summary["created"] += 1
    if not dry_run:
        db.commit()
    return summary


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bulk import parts from CSV.")
    parser.add_argument(
        "--csv",
        default="scripts/parts.csv",
        help="Path to CSV with sku,name,brand,unit,internal_code columns.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log actions without writing to the database.",
    )
    return parser.parse_args()


def main() -> int:
    configure_logging()
    args = parse_args()
    rows = load_rows(args.csv)
    if not rows:
        logger.info("No rows found in %s", args.csv)
        return 0

    db = SessionLocal(bind=get_engine())
    try:
        summary = import_rows(db, rows, dry_run=args.dry_run)
    finally:
        db.close()
    logger.info(
        "Import summary created=%d skipped_existing=%d dry_run=%d total=%d",
        summary["created"],
        summary["skipped_existing"],
        summary["dry_run"],
        len(rows),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
