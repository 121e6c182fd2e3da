#!/usr/bin/env python3
"""
Hospital Wait Board — JSON → PostgreSQL Loader

Loads hospital records from a JSON file (same shape as
sample-data/hospitals.json) into the database.  For each record:
    1. hospitals      — core record
    2. waiting_lists  — the hospital's single entry, with its seed count

Design:
    - Batch commits every 500 records
    - ON CONFLICT (id) DO NOTHING — safe to re-run (idempotent)
    - Records without an owner stay unowned until claimed

Usage:
    python scripts/load_hospitals.py [path/to/hospitals.json]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import psycopg2

from waitboard.algorithms import coordinates_from
from waitboard.api.db import DB_CONFIG, SCHEMA_SQL

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

ROOT = Path(__file__).resolve().parent.parent
DEFAULT_SOURCE = ROOT / "sample-data" / "hospitals.json"
BATCH_SIZE = 500


def load_json_records(path: Path) -> list[dict]:
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise ValueError(f"{path} must contain a JSON list of hospitals")
    return records


def clean_record(record: dict) -> dict | None:
    """Normalise one record; returns None when name or address is missing."""
    name = (record.get("name") or "").strip()
    address = (record.get("address") or "").strip()
    if not name or not address:
        return None
    coords = coordinates_from(record.get("latitude"), record.get("longitude"))
    return {
        "id": record.get("id"),
        "name": name,
        "address": address,
        "postal_code": str(record["postal_code"]).strip() if record.get("postal_code") else None,
        "latitude": coords.latitude if coords else None,
        "longitude": coords.longitude if coords else None,
        "contact_phone": record.get("contact_phone") or None,
        "contact_email": record.get("contact_email") or None,
        "waiting_count": max(0, int(record.get("waiting_count") or 0)),
    }


def load(conn, records: list[dict]) -> dict:
    stats = {"inserted": 0, "skipped_existing": 0, "rejected": 0}

    for batch_start in range(0, len(records), BATCH_SIZE):
        batch = records[batch_start : batch_start + BATCH_SIZE]
        with conn.cursor() as cur:
            for raw in batch:
                rec = clean_record(raw)
                if rec is None:
                    stats["rejected"] += 1
                    logger.warning("Rejected record without name/address: %s", raw.get("id"))
                    continue

                cur.execute(
                    """
                    INSERT INTO hospitals (
                        id, name, address, postal_code, latitude, longitude,
                        contact_phone, contact_email
                    )
                    VALUES (COALESCE(%s::uuid, gen_random_uuid()), %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO NOTHING
                    RETURNING id
                    """,
                    (
                        rec["id"],
                        rec["name"],
                        rec["address"],
                        rec["postal_code"],
                        rec["latitude"],
                        rec["longitude"],
                        rec["contact_phone"],
                        rec["contact_email"],
                    ),
                )
                row = cur.fetchone()
                if row is None:
                    stats["skipped_existing"] += 1
                    continue

                cur.execute(
                    "INSERT INTO waiting_lists (hospital_id, waiting_count, last_updated) VALUES (%s, %s, now())",
                    (row[0], rec["waiting_count"]),
                )
                stats["inserted"] += 1
        conn.commit()
        logger.info(
            "  Committed %d/%d records",
            min(batch_start + BATCH_SIZE, len(records)),
            len(records),
        )

    return stats


def main():
    parser = argparse.ArgumentParser(description="Load hospitals from JSON into PostgreSQL")
    parser.add_argument("source", nargs="?", default=str(DEFAULT_SOURCE), help="JSON file to load")
    args = parser.parse_args()

    logger.info("=" * 60)
    logger.info("Hospital Wait Board — JSON → PostgreSQL Loader")
    logger.info("=" * 60)

    records = load_json_records(Path(args.source))
    if not records:
        logger.error("No records found to load!")
        sys.exit(1)
    logger.info("Loaded %d records from %s", len(records), args.source)

    logger.info(
        "Connecting to %s@%s:%s/%s",
        DB_CONFIG["user"],
        DB_CONFIG["host"],
        DB_CONFIG["port"],
        DB_CONFIG["dbname"],
    )
    conn = psycopg2.connect(**DB_CONFIG)
    conn.autocommit = False

    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL.read_text())
        conn.commit()

        t0 = time.time()
        stats = load(conn, records)
        elapsed = time.time() - t0

        logger.info("=" * 60)
        logger.info("Load complete in %.1f seconds", elapsed)
        for key, val in stats.items():
            logger.info("  %-20s %d", key, val)
        logger.info("=" * 60)

    except Exception:
        conn.rollback()
        logger.exception("Load failed — rolled back")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
