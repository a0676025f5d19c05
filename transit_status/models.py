# transit_status/models.py

# Immutable input records for the availability engine.
# Lines carry weekday/weekend operating hours as local wall-clock times plus a service start date.
# Incident definitions carry a type, an absolute start, an optional end (None = ongoing),
# an optional RFC 5545 recurrence rule, and the ids of the lines they affect.
# Records are snapshots loaded once per request by a collaborator (see ingest.py).


from __future__ import annotations
import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import FrozenSet, Iterable, Optional


class IncidentType(str, enum.Enum):
    disruption = "disruption"
    maintenance = "maintenance"
    infra = "infra"


# incident types that count against uptime; infra is reported but never downtime
DOWNTIME_TYPES = (IncidentType.disruption, IncidentType.maintenance)


class DayType(str, enum.Enum):
    weekday = "weekday"
    weekend = "weekend"
    public_holiday = "public_holiday"


@dataclass(frozen=True)
class OperatingHours:
    start: time
    end: time  # end <= start => runs past midnight ("24:00" is written 00:00)

    @property
    def overnight(self) -> bool:
        return self.end <= self.start


@dataclass(frozen=True)
class Line:
    id: str
    weekday_hours: OperatingHours
    weekend_hours: OperatingHours
    started_on: date


@dataclass(frozen=True)
class HolidayCalendar:
    dates: FrozenSet[date] = frozenset()

    @classmethod
    def of(cls, days: Iterable[date]) -> "HolidayCalendar":
        return cls(frozenset(days))

    def __contains__(self, day: object) -> bool:
        return day in self.dates

    def __len__(self) -> int:
        return len(self.dates)


@dataclass(frozen=True)
class IncidentDefinition:
    id: str
    type: IncidentType
    start: datetime
    end: Optional[datetime] = None
    rrule: Optional[str] = None
    line_ids: FrozenSet[str] = field(default_factory=frozenset)
    title: str = ""

    @property
    def ongoing(self) -> bool:
        return self.end is None

    @property
    def template_duration(self) -> Optional[timedelta]:
        """Length of every occurrence of a recurring definition."""
        if self.end is None:
            return None
        return self.end - self.start

    def affects(self, line_id: str) -> bool:
        return line_id in self.line_ids


def incidents_for(line_id: str, incidents: Iterable[IncidentDefinition]) -> list[IncidentDefinition]:
    """Incidents affecting `line_id`; an incident without line ids applies to any line it is evaluated for."""
    return [i for i in incidents if not i.line_ids or i.affects(line_id)]
