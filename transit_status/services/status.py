# transit_status/services/status.py

# Discrete operational status of a line at one instant.
# States are checked in strict priority order and the first match wins:
#   future_service -> closed_for_day -> ongoing_disruption -> ongoing_maintenance
#   -> ongoing_infra -> normal
# Also answers "which incidents are active now" and "when is the next maintenance".

from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from transit_status.config import operating_tz
from transit_status.errors import NoServiceWindow
from transit_status.models import HolidayCalendar, IncidentDefinition, IncidentType, Line, incidents_for
from transit_status.schemas import LineStatus
from transit_status.utils.calendar import resolve_window
from transit_status.utils.recurrence import iter_intervals
from transit_status.utils.windows import ConcreteInterval

logger = logging.getLogger(__name__)

_ONGOING_STATUS = (
    (IncidentType.disruption, LineStatus.ongoing_disruption),
    (IncidentType.maintenance, LineStatus.ongoing_maintenance),
    (IncidentType.infra, LineStatus.ongoing_infra),
)

def covers(interval: ConcreteInterval, now: datetime) -> bool:
    return interval.start <= now and (interval.end is None or now < interval.end)

def active_intervals(incidents: Iterable[IncidentDefinition], now: datetime) -> List[ConcreteInterval]:
    return [iv for d in incidents for iv in iter_intervals(d) if covers(iv, now)]

def is_ongoing(definition: IncidentDefinition, now: datetime) -> bool:
    """Open-ended, or some occurrence covers or still lies ahead of `now`."""
    if definition.end is None:
        return True
    return any(covers(iv, now) or iv.start > now for iv in iter_intervals(definition))

def next_maintenance(incidents: Iterable[IncidentDefinition], now: datetime) -> Optional[str]:
    upcoming = [
        (iv.start, iv.incident_id)
        for d in incidents
        if d.type is IncidentType.maintenance
        for iv in iter_intervals(d)
        if iv.start > now
    ]
    return min(upcoming)[1] if upcoming else None

def in_service(line: Line, now: datetime, holidays: HolidayCalendar, tz: ZoneInfo | None = None) -> bool:
    """True if `now` is inside today's window or yesterday's overnight tail."""
    tz = tz or operating_tz()
    today = now.astimezone(tz).date()
    for day in (today - timedelta(days=1), today):
        try:
            window = resolve_window(line, day, holidays, tz)
        except NoServiceWindow:
            continue
        if window.start <= now < window.end:
            return True
    return False

def classify(
    line: Line,
    now: datetime,
    incidents: Iterable[IncidentDefinition],
    holidays: HolidayCalendar,
    tz: ZoneInfo | None = None,
) -> LineStatus:
    tz = tz or operating_tz()
    if line.started_on > now.astimezone(tz).date():
        return LineStatus.future_service
    if not in_service(line, now, holidays, tz):
        return LineStatus.closed_for_day

    active = {iv.incident_type for iv in active_intervals(incidents_for(line.id, incidents), now)}
    for incident_type, status in _ONGOING_STATUS:
        if incident_type in active:
            logger.debug("line %s: %s at %s", line.id, status.value, now)
            return status
    return LineStatus.normal
