#!/usr/bin/env python3
"""
CSV import script for the St. Paul crime database.

Loads codes.csv, neighborhoods.csv and incidents.csv from a directory into
the configured database. Rows whose key already exists are skipped.
"""

import asyncio
import csv
import os
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import create_async_engine

from app.database import Base
from app.models import Incident, IncidentCode, Neighborhood

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./stpaul_crime.sqlite3")

BATCH_SIZE = 5000
REPORT_INTERVAL = 50000


def log(msg):
    """Print with flush for immediate output."""
    print(msg, flush=True)


def parse_datetime(value: str | None) -> datetime | None:
    """Parse a timestamp from the open data export."""
    if not value:
        return None
    for fmt in [
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "%Y/%m/%d %H:%M",
        "%Y/%m/%d %H:%M:%S",
        "%Y-%m-%d %H:%M",
    ]:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def parse_int(value: str | None) -> int | None:
    """Parse integer from CSV."""
    if not value:
        return None
    try:
        return int(float(value))
    except ValueError:
        return None


def _lower_keys(row: dict) -> dict:
    return {(key or "").strip().lower(): (value or "").strip() for key, value in row.items()}


def transform_code(row: dict) -> dict | None:
    row = _lower_keys(row)
    code = parse_int(row.get("code"))
    incident_type = row.get("incident_type") or row.get("type")
    if code is None or not incident_type:
        return None
    return {"code": code, "incident_type": incident_type}


def transform_neighborhood(row: dict) -> dict | None:
    row = _lower_keys(row)
    number = parse_int(row.get("neighborhood_number") or row.get("id"))
    name = row.get("neighborhood_name") or row.get("name")
    if number is None or not name:
        return None
    return {"neighborhood_number": number, "neighborhood_name": name}


def transform_incident(row: dict) -> dict | None:
    """Transform a CSV row into an incidents insert dict; None when unusable."""
    row = _lower_keys(row)
    case_number = row.get("case_number")
    if not case_number:
        return None

    date_time = parse_datetime(row.get("date_time"))
    if date_time is None and row.get("date"):
        date_time = parse_datetime(f"{row['date']} {row.get('time') or '00:00'}")

    values = {
        "case_number": case_number,
        "date_time": date_time,
        "code": parse_int(row.get("code")),
        "incident": row.get("incident") or None,
        "police_grid": parse_int(row.get("police_grid")),
        "neighborhood_number": parse_int(row.get("neighborhood_number")),
        "block": row.get("block") or None,
    }
    if any(value is None for value in values.values()):
        return None
    return values


async def import_table(conn, csv_path: Path, table, key_column, transform) -> None:
    """Insert rows from one CSV file, skipping keys that already exist."""
    if not csv_path.exists():
        log(f"Skipping {csv_path.name}: file not found")
        return

    log(f"Reading CSV: {csv_path}")
    imported = 0
    skipped = 0
    batch: list[dict] = []

    async def flush(rows: list[dict]) -> int:
        keys = [row[key_column.key] for row in rows]
        existing = await conn.execute(select(key_column).where(key_column.in_(keys)))
        taken = set(existing.scalars().all())
        fresh = {row[key_column.key]: row for row in rows if row[key_column.key] not in taken}
        if fresh:
            await conn.execute(insert(table), list(fresh.values()))
        return len(fresh)

    with open(csv_path, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f)

        for row in reader:
            transformed = transform(row)
            if not transformed:
                skipped += 1
                continue

            batch.append(transformed)
            if len(batch) >= BATCH_SIZE:
                inserted = await flush(batch)
                imported += inserted
                skipped += len(batch) - inserted
                batch = []

                if imported % REPORT_INTERVAL < BATCH_SIZE:
                    log(f"Progress: {imported:,} rows")

        # Final batch
        if batch:
            inserted = await flush(batch)
            imported += inserted
            skipped += len(batch) - inserted

    log(f"  {csv_path.name}: imported {imported:,}, skipped {skipped:,}")


async def import_csv(data_dir: Path):
    """Create tables if needed and import all three CSV files."""
    log("Connecting to database...")
    engine = create_async_engine(DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

        await import_table(
            conn, data_dir / "codes.csv", IncidentCode, IncidentCode.code, transform_code
        )
        await import_table(
            conn,
            data_dir / "neighborhoods.csv",
            Neighborhood,
            Neighborhood.neighborhood_number,
            transform_neighborhood,
        )
        await import_table(
            conn,
            data_dir / "incidents.csv",
            Incident,
            Incident.case_number,
            transform_incident,
        )

    await engine.dispose()
    log("\nImport complete!")


if __name__ == "__main__":
    data_dir = Path(sys.argv[1] if len(sys.argv) > 1 else "./data")

    if not data_dir.is_dir():
        log(f"Error: data directory not found: {data_dir}")
        log("Expected codes.csv, neighborhoods.csv and incidents.csv inside it.")
        sys.exit(1)

    asyncio.run(import_csv(data_dir))
