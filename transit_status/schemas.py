# transit_status/schemas.py

# Pydantic models for engine output rows.
# Durations are seconds (unrounded), ratios are in [0, 1]; rounding is the presentation layer's job.
from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from transit_status.models import DayType, IncidentType


class LineStatus(str, enum.Enum):
    future_service = "future_service"
    closed_for_day = "closed_for_day"
    ongoing_disruption = "ongoing_disruption"
    ongoing_maintenance = "ongoing_maintenance"
    ongoing_infra = "ongoing_infra"
    normal = "normal"


class MetricRow(BaseModel):
    label: str
    start: datetime
    end: datetime
    line_id: Optional[str] = None
    total_service_seconds: float = 0.0
    total_downtime_seconds: float = 0.0
    downtime_by_type: Dict[IncidentType, float] = Field(default_factory=dict)
    uptime_ratio: Optional[float] = 1.0
    issue_ids: Dict[IncidentType, List[str]] = Field(default_factory=dict)
    rank: Optional[int] = None
    total_lines: Optional[int] = None
    model_config = ConfigDict(frozen=True)


class IssueCountRow(BaseModel):
    label: str
    start: datetime
    end: datetime
    issue_counts: Dict[IncidentType, int]
    total_duration_seconds: Dict[IncidentType, float]
    issue_ids: Dict[IncidentType, List[str]]
    model_config = ConfigDict(frozen=True)


class MergedInterval(BaseModel):
    start: datetime
    end: datetime


class DailyIssueStat(BaseModel):
    day: date
    day_type: DayType
    type: Optional[IncidentType] = None  # None => no incident that day
    total_duration_seconds: float = 0.0
    issue_ids: List[str] = Field(default_factory=list)
    intervals: List[MergedInterval] = Field(default_factory=list)


class LineIssueCount(BaseModel):
    line_id: str
    issue_counts: Dict[IncidentType, int]


class LineSummary(BaseModel):
    line_id: str
    status: LineStatus
    uptime: MetricRow
    daily_issue_stats: List[DailyIssueStat]
    next_maintenance_id: Optional[str] = None
