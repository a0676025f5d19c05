# transit_status/services/report.py

# Report job: loads a CSV snapshot, plans buckets and writes the per-line uptime rows to CSV.
# Durations are written in hours and ratios rounded here, at the presentation edge;
# the engine itself never rounds.
# Run: python -m transit_status.services.report --granularity day --count 7

from __future__ import annotations
import argparse
import csv
import logging
import os
from datetime import datetime
from typing import List, Optional

import pandas as pd

from transit_status.config import operating_tz, settings
from transit_status.ingest import Snapshot, load_snapshot
from transit_status.models import DOWNTIME_TYPES
from transit_status.schemas import MetricRow
from transit_status.services.compute import aggregate
from transit_status.utils.buckets import Granularity, plan_buckets

logger = logging.getLogger(__name__)

def _csv_row(row: MetricRow) -> dict:
    out = {
        "bucket": row.label,
        "line_id": row.line_id or "",
        "service_hours": round(row.total_service_seconds / 3600.0, 2),
        "downtime_hours": round(row.total_downtime_seconds / 3600.0, 2),
    }
    for t in DOWNTIME_TYPES:
        out[f"{t.value}_hours"] = round(row.downtime_by_type.get(t, 0.0) / 3600.0, 2)
    out["uptime_ratio"] = round(row.uptime_ratio, 4) if row.uptime_ratio is not None else ""
    out["rank"] = row.rank if row.rank is not None else ""
    out["total_lines"] = row.total_lines if row.total_lines is not None else ""
    return out

def compute_and_write_csv(
    snapshot: Snapshot,
    csv_path: str,
    granularity: Granularity,
    count: int,
    now: datetime,
) -> List[MetricRow]:
    buckets = plan_buckets(granularity, count, now)
    rows = aggregate(snapshot.lines, snapshot.incidents, buckets, snapshot.holidays, now)

    records = [_csv_row(r) for r in rows]
    if records:
        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=list(records[0].keys()))
            w.writeheader()
            w.writerows(records)
    logger.info("wrote %d rows (%d buckets) to %s", len(records), len(buckets), csv_path)
    return rows

def _parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(operating_tz())
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize(operating_tz())
    return ts.to_pydatetime()

def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Write per-line uptime rows for planned buckets to CSV.")
    parser.add_argument("--granularity", choices=[g.value for g in Granularity], default=Granularity.day.value)
    parser.add_argument("--count", type=int, default=7)
    parser.add_argument("--now", help="evaluation instant (ISO 8601); defaults to the current time")
    parser.add_argument("--out", help="output CSV path; defaults to REPORT_DIR/uptime_<granularity>.csv")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not settings.LINES_CSV:
        raise SystemExit("Set LINES_CSV (and optionally HOLIDAYS_CSV, INCIDENTS_CSV) via .env or the environment.")

    snapshot = load_snapshot(settings.LINES_CSV, settings.HOLIDAYS_CSV, settings.INCIDENTS_CSV)
    out = args.out
    if not out:
        os.makedirs(settings.REPORT_DIR, exist_ok=True)
        out = os.path.join(settings.REPORT_DIR, f"uptime_{args.granularity}.csv")
    compute_and_write_csv(snapshot, out, Granularity(args.granularity), args.count, _parse_now(args.now))

if __name__ == "__main__":
    main()
