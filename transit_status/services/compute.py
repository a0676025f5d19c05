# Core computation service: uptime, downtime and issue metrics per line and bucket.
# Resolves each service day's window (local hours -> absolute instants), expands incidents,
# clips them against the windows and folds the clipped segments into MetricRows.
# A window that crosses midnight belongs wholly to the day it starts on, so service seconds
# and the downtime inside that window are attributed to the same bucket.
# Only disruption and maintenance count as downtime; infra is reported in issue counts only.


from __future__ import annotations
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from zoneinfo import ZoneInfo

from transit_status.config import operating_tz, settings
from transit_status.models import (
    DOWNTIME_TYPES,
    HolidayCalendar,
    IncidentDefinition,
    IncidentType,
    Line,
    incidents_for,
)
from transit_status.schemas import (
    DailyIssueStat,
    IssueCountRow,
    LineIssueCount,
    LineStatus,
    LineSummary,
    MergedInterval,
    MetricRow,
)
from transit_status.services.status import classify, next_maintenance
from transit_status.utils.buckets import Bucket, Granularity, plan_comparison_periods, truncate
from transit_status.utils.calendar import service_windows
from transit_status.utils.recurrence import expand_all
from transit_status.utils.windows import (
    ClippedSegment,
    ConcreteInterval,
    Interval,
    clip,
    merge_overlaps,
    service_segments,
)

logger = logging.getLogger(__name__)

DaySegments = Dict[date, List[ClippedSegment]]


def uptime_ratio(service_seconds: float, downtime_seconds: float) -> float:
    """1.0 when there is no service to measure against ("no data", not "fully down")."""
    if service_seconds <= 0:
        return 1.0
    return min(1.0, max(0.0, (service_seconds - downtime_seconds) / service_seconds))


def _local_days(bound, tz: ZoneInfo) -> Tuple[date, date]:
    """First and last local calendar day of a half-open bound."""
    first = bound.start.astimezone(tz).date()
    last = (bound.end.astimezone(tz) - timedelta(microseconds=1)).date()
    return first, last


def _span(bounds: Sequence) -> Interval:
    return Interval(min(b.start for b in bounds), max(b.end for b in bounds))


def _segments_by_service_day(
    line: Line,
    intervals: Iterable[ConcreteInterval],
    span: Interval,
    holidays: HolidayCalendar,
    now: datetime,
    tz: ZoneInfo,
    types: Optional[Sequence[IncidentType]] = None,
) -> DaySegments:
    # widen by a day on each side so overnight tails at the span edges are kept
    widened = Interval(span.start - timedelta(days=1), span.end + timedelta(days=1))
    out: DaySegments = defaultdict(list)
    for iv in intervals:
        if types is not None and iv.incident_type not in types:
            continue
        piece = clip(iv, widened, now)
        if piece is None:
            continue
        for day, seg in service_segments(piece, line, holidays, now, tz=tz):
            out[day].append(seg)
    return out


def _uptime_row(
    line: Line,
    bound,
    segments: DaySegments,
    holidays: HolidayCalendar,
    now: datetime,
    tz: ZoneInfo,
) -> MetricRow:
    first, last = _local_days(bound, tz)
    last = min(last, now.astimezone(tz).date())

    service = 0.0
    downtime: Dict[IncidentType, float] = {t: 0.0 for t in DOWNTIME_TYPES}
    issue_ids: Dict[IncidentType, Set[str]] = {t: set() for t in DOWNTIME_TYPES}
    for window in service_windows(line, first, last, holidays, tz):
        service += window.seconds
        for seg in segments.get(window.day, ()):
            downtime[seg.incident_type] += seg.seconds
            issue_ids[seg.incident_type].add(seg.incident_id)

    total_downtime = sum(downtime.values())
    return MetricRow(
        label=bound.label,
        start=bound.start,
        end=bound.end,
        line_id=line.id,
        total_service_seconds=service,
        total_downtime_seconds=total_downtime,
        downtime_by_type=downtime,
        uptime_ratio=uptime_ratio(service, total_downtime),
        issue_ids={t: sorted(ids) for t, ids in issue_ids.items()},
    )


def uptime_ratios(
    line: Line,
    incidents: Iterable[IncidentDefinition],
    buckets: Sequence[Bucket],
    holidays: HolidayCalendar,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> List[MetricRow]:
    """One uptime row per bucket for a single line."""
    if not buckets:
        return []
    tz = tz or operating_tz()
    intervals = expand_all(incidents_for(line.id, incidents))
    segments = _segments_by_service_day(line, intervals, _span(buckets), holidays, now, tz, DOWNTIME_TYPES)
    return [_uptime_row(line, b, segments, holidays, now, tz) for b in buckets]


def uptime_ratios_cumulative(
    line: Line,
    incidents: Iterable[IncidentDefinition],
    granularity: Granularity,
    count: int,
    holidays: HolidayCalendar,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> List[MetricRow]:
    """[current, prior] rows comparing this period with the one before it."""
    current, prior = plan_comparison_periods(granularity, count, now, tz)
    return uptime_ratios(line, incidents, [current, prior], holidays, now, tz)


def rank_rows(rows: Sequence[MetricRow]) -> List[MetricRow]:
    """
    Standard competition ranking by uptime ratio, descending (1, 1, 3, ...).
    Rows without service time in the period are left unranked.
    """
    ranked = sorted(
        (r for r in rows if r.total_service_seconds > 0),
        key=lambda r: (-r.uptime_ratio, r.line_id or ""),
    )
    ranks: Dict[Optional[str], int] = {}
    previous: Optional[float] = None
    rank = 0
    for position, row in enumerate(ranked, 1):
        if row.uptime_ratio != previous:
            rank = position
            previous = row.uptime_ratio
        ranks[row.line_id] = rank
    return [r.model_copy(update={"rank": ranks.get(r.line_id), "total_lines": len(ranked)}) for r in rows]


def rank_lines(
    lines: Iterable[Line],
    incidents: Sequence[IncidentDefinition],
    bound: Bucket,
    holidays: HolidayCalendar,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> List[MetricRow]:
    rows = [uptime_ratios(line, incidents, [bound], holidays, now, tz)[0] for line in sorted(lines, key=lambda l: l.id)]
    return rank_rows(rows)


def aggregate(
    lines: Iterable[Line],
    incidents: Iterable[IncidentDefinition],
    buckets: Sequence[Bucket],
    holidays: HolidayCalendar,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> List[MetricRow]:
    """
    Uptime rows for every (bucket, line), ordered by bucket then line id, with
    lines ranked against each other inside every bucket.

    With no lines, each bucket still gets one zero-valued, system-wide row.
    """
    incidents = list(incidents)
    ordered = sorted(lines, key=lambda l: l.id)
    if not ordered:
        return [MetricRow(label=b.label, start=b.start, end=b.end) for b in buckets]

    per_line = [uptime_ratios(line, incidents, buckets, holidays, now, tz) for line in ordered]
    out: List[MetricRow] = []
    for i in range(len(buckets)):
        out.extend(rank_rows([rows[i] for rows in per_line]))
    logger.debug("aggregated %d lines x %d buckets", len(ordered), len(buckets))
    return out


def pooled_uptime_ratios(
    lines: Iterable[Line],
    incidents: Iterable[IncidentDefinition],
    buckets: Sequence[Bucket],
    holidays: HolidayCalendar,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> List[MetricRow]:
    """
    One system-wide row per bucket for a group of lines (e.g. an operator's network).

    Service and downtime seconds are summed across the group and the ratio is taken
    once from those totals, so lines with longer service days weigh more. An incident
    affecting several lines of the group counts once per line.
    """
    tz = tz or operating_tz()
    incidents = list(incidents)
    per_line = [uptime_ratios(line, incidents, buckets, holidays, now, tz) for line in sorted(lines, key=lambda l: l.id)]

    out: List[MetricRow] = []
    for i, bucket in enumerate(buckets):
        rows = [line_rows[i] for line_rows in per_line]
        service = sum(r.total_service_seconds for r in rows)
        downtime = {t: sum(r.downtime_by_type.get(t, 0.0) for r in rows) for t in DOWNTIME_TYPES}
        issue_ids = {t: sorted({x for r in rows for x in r.issue_ids.get(t, [])}) for t in DOWNTIME_TYPES}
        total_downtime = sum(downtime.values())
        out.append(MetricRow(
            label=bucket.label,
            start=bucket.start,
            end=bucket.end,
            total_service_seconds=service,
            total_downtime_seconds=total_downtime,
            downtime_by_type=downtime,
            uptime_ratio=uptime_ratio(service, total_downtime),
            issue_ids=issue_ids,
        ))
    return out


def _issue_count_row(bound, intervals: Sequence[ConcreteInterval], now: datetime) -> IssueCountRow:
    durations: Dict[IncidentType, float] = {t: 0.0 for t in IncidentType}
    issue_ids: Dict[IncidentType, Set[str]] = {t: set() for t in IncidentType}
    for iv in intervals:
        seg = clip(iv, bound, now)
        if seg is None:
            continue
        durations[seg.incident_type] += seg.seconds
        issue_ids[seg.incident_type].add(seg.incident_id)
    return IssueCountRow(
        label=bound.label,
        start=bound.start,
        end=bound.end,
        issue_counts={t: len(ids) for t, ids in issue_ids.items()},
        total_duration_seconds=durations,
        issue_ids={t: sorted(ids) for t, ids in issue_ids.items()},
    )


def issue_counts(
    incidents: Iterable[IncidentDefinition],
    buckets: Sequence[Bucket],
    now: datetime,
    line_id: Optional[str] = None,
) -> List[IssueCountRow]:
    """Issue counts and durations per bucket, all types, clipped to the bucket only."""
    if line_id is not None:
        incidents = incidents_for(line_id, incidents)
    intervals = expand_all(incidents)
    return [_issue_count_row(b, intervals, now) for b in buckets]


def issue_counts_cumulative(
    incidents: Iterable[IncidentDefinition],
    granularity: Granularity,
    count: int,
    now: datetime,
    line_id: Optional[str] = None,
    tz: ZoneInfo | None = None,
) -> List[IssueCountRow]:
    current, prior = plan_comparison_periods(granularity, count, now, tz)
    return issue_counts(incidents, [current, prior], now, line_id)


def daily_issue_stats(
    line: Line,
    incidents: Iterable[IncidentDefinition],
    first_day: date,
    last_day: date,
    holidays: HolidayCalendar,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> List[DailyIssueStat]:
    """
    Per service day (newest first) and incident type: time inside the service window,
    the incidents involved and their merged intervals. All types are included.
    Days without incidents get a single row with type None.
    """
    tz = tz or operating_tz()
    last_day = min(last_day, now.astimezone(tz).date())
    windows = list(service_windows(line, first_day, last_day, holidays, tz))
    if not windows:
        return []

    intervals = expand_all(incidents_for(line.id, incidents))
    segments = _segments_by_service_day(line, intervals, _span(windows), holidays, now, tz)

    stats: List[DailyIssueStat] = []
    for window in reversed(windows):
        by_type: Dict[IncidentType, List[ClippedSegment]] = defaultdict(list)
        for seg in segments.get(window.day, ()):
            by_type[seg.incident_type].append(seg)
        if not by_type:
            stats.append(DailyIssueStat(day=window.day, day_type=window.day_type))
            continue
        for incident_type in IncidentType:
            segs = by_type.get(incident_type)
            if not segs:
                continue
            stats.append(DailyIssueStat(
                day=window.day,
                day_type=window.day_type,
                type=incident_type,
                total_duration_seconds=sum(s.seconds for s in segs),
                issue_ids=sorted({s.incident_id for s in segs}),
                intervals=[MergedInterval(start=m.start, end=m.end) for m in merge_overlaps(segs)],
            ))
    return stats


def longest_disruptions(
    incidents: Iterable[IncidentDefinition],
    now: datetime,
    limit: Optional[int] = None,
) -> List[str]:
    """Ids of the disruptions with the largest total duration; open ones run until `now`."""
    limit = settings.LONGEST_DISRUPTIONS_LIMIT if limit is None else limit
    totals: Dict[str, float] = defaultdict(float)
    for iv in expand_all(i for i in incidents if i.type is IncidentType.disruption):
        totals[iv.incident_id] += max(0.0, ((iv.end or now) - iv.start).total_seconds())
    ordered = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return [incident_id for incident_id, _ in ordered[:limit]]


def total_issue_counts_by_line(
    lines: Iterable[Line],
    incidents: Sequence[IncidentDefinition],
) -> List[LineIssueCount]:
    out: List[LineIssueCount] = []
    for line in sorted(lines, key=lambda l: l.id):
        ids: Dict[IncidentType, Set[str]] = {t: set() for t in IncidentType}
        for incident in incidents_for(line.id, incidents):
            ids[incident.type].add(incident.id)
        out.append(LineIssueCount(line_id=line.id, issue_counts={t: len(v) for t, v in ids.items()}))
    return out


def line_summaries(
    lines: Iterable[Line],
    incidents: Sequence[IncidentDefinition],
    holidays: HolidayCalendar,
    now: datetime,
    days: Optional[int] = None,
    tz: ZoneInfo | None = None,
) -> List[LineSummary]:
    """
    Overview per line: current status, uptime over the trailing `days` (ranked
    across lines over the same period), daily issue stats and next maintenance.
    Lines not yet in service sort last.
    """
    tz = tz or operating_tz()
    days = settings.SUMMARY_WINDOW_DAYS if days is None else days
    incidents = list(incidents)
    lines = sorted(lines, key=lambda l: l.id)

    today = truncate(now, Granularity.day, tz)
    period = Bucket(
        start=today - timedelta(days=days),
        end=today + timedelta(days=1),
        label=f"last_{days}_days",
        in_progress=True,
    )
    first_day, last_day = _local_days(period, tz)
    uptime = {row.line_id: row for row in rank_lines(lines, incidents, period, holidays, now, tz)}

    summaries: List[LineSummary] = []
    for line in lines:
        line_incidents = incidents_for(line.id, incidents)
        summaries.append(LineSummary(
            line_id=line.id,
            status=classify(line, now, line_incidents, holidays, tz),
            uptime=uptime[line.id],
            daily_issue_stats=daily_issue_stats(line, line_incidents, first_day, last_day, holidays, now, tz),
            next_maintenance_id=next_maintenance(line_incidents, now),
        ))
    summaries.sort(key=lambda s: (s.status is LineStatus.future_service, s.line_id))
    return summaries
