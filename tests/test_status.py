# Tests for the line status classifier.
# States are checked in priority order; only incidents affecting the line are considered.


from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from transit_status.models import HolidayCalendar, IncidentDefinition, IncidentType, Line, OperatingHours
from transit_status.schemas import LineStatus
from transit_status.services.status import active_intervals, classify, in_service, is_ongoing, next_maintenance

SGT = ZoneInfo("Asia/Singapore")
NO_HOLIDAYS = HolidayCalendar()

def dt(y, m, d, hh=0, mm=0, tz=SGT):
    return datetime(y, m, d, hh, mm, tzinfo=tz)

def incident(incident_id, kind, start, end=None, lines=("NSL",), rrule=None):
    return IncidentDefinition(incident_id, kind, start, end, rrule=rrule, line_ids=frozenset(lines))

NSL = Line("NSL", OperatingHours(time(5, 30), time(0)), OperatingHours(time(6), time(0)), date(1987, 11, 7))
CCL = Line("CCL", OperatingHours(time(6), time(1)), OperatingHours(time(6), time(1)), date(2009, 5, 28))

def test_open_disruption_since_yesterday():
    incidents = [incident("D1", IncidentType.disruption, dt(2025,1,6,18))]
    assert classify(NSL, dt(2025,1,7,12), incidents, NO_HOLIDAYS, SGT) is LineStatus.ongoing_disruption
    # outside operating hours the line is simply closed
    assert classify(NSL, dt(2025,1,7,3), incidents, NO_HOLIDAYS, SGT) is LineStatus.closed_for_day

def test_line_not_yet_opened():
    tel = Line("TEL", NSL.weekday_hours, NSL.weekend_hours, date(2026, 1, 1))
    incidents = [incident("D1", IncidentType.disruption, dt(2025,1,6,18), lines=("TEL",))]
    assert classify(tel, dt(2025,1,7,12), incidents, NO_HOLIDAYS, SGT) is LineStatus.future_service

def test_priority_order():
    now = dt(2025,1,7,12)
    d = incident("D1", IncidentType.disruption, dt(2025,1,7,11), dt(2025,1,7,13))
    m = incident("M1", IncidentType.maintenance, dt(2025,1,7,11), dt(2025,1,7,13))
    i = incident("I1", IncidentType.infra, dt(2025,1,7,11), None)
    assert classify(NSL, now, [i, m, d], NO_HOLIDAYS, SGT) is LineStatus.ongoing_disruption
    assert classify(NSL, now, [i, m], NO_HOLIDAYS, SGT) is LineStatus.ongoing_maintenance
    assert classify(NSL, now, [i], NO_HOLIDAYS, SGT) is LineStatus.ongoing_infra
    assert classify(NSL, now, [], NO_HOLIDAYS, SGT) is LineStatus.normal

def test_ended_incident_is_not_active():
    d = incident("D1", IncidentType.disruption, dt(2025,1,7,9), dt(2025,1,7,12))
    assert classify(NSL, dt(2025,1,7,12), [d], NO_HOLIDAYS, SGT) is LineStatus.normal

def test_overnight_tail_is_in_service():
    # Tuesday 00:30 is inside Monday's 06:00 -> 01:00 window
    assert in_service(CCL, dt(2025,1,7,0,30), NO_HOLIDAYS, SGT)
    assert not in_service(CCL, dt(2025,1,7,1,30), NO_HOLIDAYS, SGT)
    assert classify(CCL, dt(2025,1,7,0,30), [], NO_HOLIDAYS, SGT) is LineStatus.normal

def test_other_lines_incidents_ignored():
    d = incident("D1", IncidentType.disruption, dt(2025,1,7,11), None, lines=("EWL",))
    assert classify(NSL, dt(2025,1,7,12), [d], NO_HOLIDAYS, SGT) is LineStatus.normal

def test_recurring_maintenance_occurrence():
    m = incident("M1", IncidentType.maintenance, dt(2025,1,6,10), dt(2025,1,6,11), rrule="RRULE:FREQ=DAILY;COUNT=5")
    assert classify(NSL, dt(2025,1,8,10,30), [m], NO_HOLIDAYS, SGT) is LineStatus.ongoing_maintenance
    assert classify(NSL, dt(2025,1,8,12), [m], NO_HOLIDAYS, SGT) is LineStatus.normal
    assert [iv.start for iv in active_intervals([m], dt(2025,1,8,10,30))] == [dt(2025,1,8,10)]

def test_is_ongoing():
    now = dt(2025,1,8,12)
    assert is_ongoing(incident("D1", IncidentType.disruption, dt(2025,1,1)), now)
    assert not is_ongoing(incident("D2", IncidentType.disruption, dt(2025,1,1), dt(2025,1,2)), now)
    recurring = incident("M1", IncidentType.maintenance, dt(2025,1,6,10), dt(2025,1,6,11), rrule="RRULE:FREQ=DAILY;COUNT=5")
    assert is_ongoing(recurring, now)
    assert not is_ongoing(recurring, dt(2025,1,11))

def test_next_maintenance():
    now = dt(2025,1,8,12)
    incidents = [
        incident("M1", IncidentType.maintenance, dt(2025,1,10,1), dt(2025,1,10,3)),
        incident("M2", IncidentType.maintenance, dt(2025,1,6,10), dt(2025,1,6,11), rrule="RRULE:FREQ=DAILY;COUNT=5"),
        incident("D1", IncidentType.disruption, dt(2025,1,9), dt(2025,1,9,1)),
    ]
    assert next_maintenance(incidents, now) == "M2"
    assert next_maintenance(incidents[:1], now) == "M1"
    assert next_maintenance(incidents, dt(2025,1,11)) is None
