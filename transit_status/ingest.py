# transit_status/ingest.py

# Snapshot loader: reads lines, public holidays and incidents from CSV files.
# Normalizes column names, operating-hour strings ("24:00" -> 00:00 of the next day),
# timestamps (naive values are read in the operating timezone) and incident line lists.
# Returns immutable records the engine consumes; nothing is written anywhere.
# Prints row counts, like the rest of the command-line tooling.

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional

import pandas as pd

from transit_status.config import operating_tz
from transit_status.models import HolidayCalendar, IncidentDefinition, IncidentType, Line, OperatingHours


# ---------- helpers ----------

LINE_ID_SEP = ";"

@dataclass(frozen=True)
class Snapshot:
    lines: List[Line] = field(default_factory=list)
    holidays: HolidayCalendar = HolidayCalendar()
    incidents: List[IncidentDefinition] = field(default_factory=list)

def _read_csv(path: str) -> pd.DataFrame:
    if not os.path.exists(path):
        raise FileNotFoundError(f"CSV not found: {path}")
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [c.strip().lower() for c in df.columns]
    return df

def _require(df: pd.DataFrame, name: str, *cols: str) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ValueError(f"{name} CSV is missing column(s): {', '.join(missing)}")

def _parse_time(x: str) -> time:
    """'H:M' / 'H:M:S' -> time; '24:00' is midnight at the end of the day."""
    s = str(x).strip()
    if s in ("24:00", "24:00:00"):
        return time(0, 0)
    try:
        return pd.to_datetime(s, format="mixed").time()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"bad operating-hours time: {x!r}") from exc

def _parse_date(x: str) -> date:
    return pd.Timestamp(str(x).strip()).date()

def _parse_instant(x: str) -> Optional[datetime]:
    s = str(x).strip()
    if not s:
        return None
    ts = pd.Timestamp(s)
    if ts.tzinfo is None:
        ts = ts.tz_localize(operating_tz())
    return ts.to_pydatetime()

def _parse_type(x: str) -> IncidentType:
    s = str(x).strip().lower()
    if s == "infrastructure":
        s = "infra"
    try:
        return IncidentType(s)
    except ValueError as exc:
        raise ValueError(f"unknown incident type: {x!r}") from exc


# ---------- loaders ----------

def load_lines(path: str) -> List[Line]:
    df = _read_csv(path)
    if "id" in df.columns and "line_id" not in df.columns:
        df.rename(columns={"id": "line_id"}, inplace=True)
    _require(df, "lines", "line_id", "weekday_start", "weekday_end", "weekend_start", "weekend_end", "started_at")

    lines = [
        Line(
            id=row["line_id"].strip(),
            weekday_hours=OperatingHours(_parse_time(row["weekday_start"]), _parse_time(row["weekday_end"])),
            weekend_hours=OperatingHours(_parse_time(row["weekend_start"]), _parse_time(row["weekend_end"])),
            started_on=_parse_date(row["started_at"]),
        )
        for row in df.to_dict(orient="records")
    ]
    print(f"Loaded lines: {len(lines)}")
    return lines

def load_holidays(path: str) -> HolidayCalendar:
    df = _read_csv(path)
    _require(df, "holidays", "date")
    holidays = HolidayCalendar.of(_parse_date(d) for d in df["date"] if str(d).strip())
    print(f"Loaded public holidays: {len(holidays)}")
    return holidays

def load_incidents(path: str) -> List[IncidentDefinition]:
    df = _read_csv(path)
    if "id" in df.columns and "incident_id" not in df.columns:
        df.rename(columns={"id": "incident_id"}, inplace=True)
    _require(df, "incidents", "incident_id", "type", "start_at")

    incidents: List[IncidentDefinition] = []
    for row in df.to_dict(orient="records"):
        start = _parse_instant(row["start_at"])
        if start is None:
            raise ValueError(f"incident {row['incident_id']!r} has no start_at")
        line_ids = frozenset(p.strip() for p in row.get("line_ids", "").split(LINE_ID_SEP) if p.strip())
        incidents.append(IncidentDefinition(
            id=row["incident_id"].strip(),
            type=_parse_type(row["type"]),
            start=start,
            end=_parse_instant(row.get("end_at", "")),
            # rules are multi-line in RFC 5545; CSV cells use a literal "\n"
            rrule=row.get("rrule", "").replace("\\n", "\n").strip() or None,
            line_ids=line_ids,
            title=row.get("title", "").strip(),
        ))
    print(f"Loaded incidents: {len(incidents)}")
    return incidents


# ---------- public entrypoint ----------

def load_snapshot(lines_csv: str, holidays_csv: str | None = None, incidents_csv: str | None = None) -> Snapshot:
    return Snapshot(
        lines=load_lines(lines_csv),
        holidays=load_holidays(holidays_csv) if holidays_csv else HolidayCalendar(),
        incidents=load_incidents(incidents_csv) if incidents_csv else [],
    )
