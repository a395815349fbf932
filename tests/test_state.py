from datetime import datetime

import pytest

from payaso.domain import (
    AttendanceRecord, AttendanceStatus, EventType, PayasoEvent, Role, RoleCapacity, User, UserStats,
)
from payaso.errors import BackendError, CapacityFullError, InvalidTransition
from payaso.state import (
    DashboardLoader, MarkAttendanceCommand, RefreshSequencer, Roster, ToggleRegistrationCommand,
    WorkingSet,
)

VIEWER = User(id="u3", email="r@payaso.org", full_name="Pepito", role=Role.recruit,
              available_roles=(Role.recruit,))
ADMIN = User(id="u2", email="a@payaso.org", full_name="Ana", role=Role.admin,
             available_roles=(Role.admin,), is_super_admin=True)


class FakeService:
    """Just enough of a data service to drive the commands and the loader."""

    def __init__(self):
        self.fail = False
        self.calls = []
        self.event = PayasoEvent(
            id="e3", type=EventType.visit, title="Visita", date=datetime(2030, 1, 1),
            capacity=RoleCapacity(recruit=3), attendees=RoleCapacity(recruit=1), total_attendees=1,
        )
        self.roster = [AttendanceRecord("u3", "Pepito", "Recluta", "", AttendanceStatus.registered)]

    def _maybe_fail(self):
        if self.fail:
            raise BackendError()

    def get_event(self, event_id, viewer_id=None):
        return self.event

    def list_events(self, viewer_id=None):
        self._maybe_fail()
        return [self.event]

    def register(self, event_id, user_id, role):
        self.calls.append(("register", event_id, user_id))
        self._maybe_fail()

    def unregister(self, event_id, user_id):
        self.calls.append(("unregister", event_id, user_id))
        self._maybe_fail()

    def list_attendees(self, event_id):
        return list(self.roster)

    def mark_attendance(self, event_id, user_id, status):
        self.calls.append(("mark", event_id, user_id, status))
        self._maybe_fail()

    def list_payments(self, user_id=None):
        return []

    def get_user_stats(self, user_id):
        return UserStats()

    def list_users(self):
        return [VIEWER, ADMIN]


def test_sequencer_drops_superseded_results():
    sequencer = RefreshSequencer()
    applied = []
    first = sequencer.issue("u1")
    second = sequencer.issue("u1")

    assert not sequencer.commit("u1", first, lambda: applied.append("first"))
    assert sequencer.commit("u1", second, lambda: applied.append("second"))
    assert applied == ["second"]


def test_sequencer_tracks_viewers_separately():
    sequencer = RefreshSequencer()
    a = sequencer.issue("a")
    sequencer.issue("b")
    assert sequencer.is_current("a", a)
    assert sequencer.issue("a") > a
    assert not sequencer.is_current("a", a)


def test_dashboard_keeps_last_snapshot_on_failure():
    service = FakeService()
    loader = DashboardLoader(service)

    fresh = loader.load(VIEWER)
    assert not fresh.stale
    assert fresh.users == []

    service.fail = True
    stale = loader.load(VIEWER)
    assert stale.stale
    assert stale.events == fresh.events


def test_dashboard_failure_without_snapshot_propagates():
    service = FakeService()
    service.fail = True
    with pytest.raises(BackendError):
        DashboardLoader(service).load(VIEWER)


def test_dashboard_loads_users_for_staff():
    assert len(DashboardLoader(FakeService()).load(ADMIN).users) == 2


def test_toggle_registration_applies_tentative_state():
    service = FakeService()
    working_set = WorkingSet("u3", [service.event])

    event = ToggleRegistrationCommand(service, working_set, "e3", VIEWER).execute()

    assert event.registered
    assert event.attendees.recruit == 2
    assert service.calls == [("register", "e3", "u3")]


def test_toggle_registration_compensates_on_failure():
    service = FakeService()
    service.fail = True
    working_set = WorkingSet("u3", [service.event])

    with pytest.raises(BackendError):
        ToggleRegistrationCommand(service, working_set, "e3", VIEWER, register=True).execute()

    # reloaded from the store
    assert working_set.events["e3"] is service.event
    assert not working_set.events["e3"].registered


def test_toggle_registration_rejects_full_bucket():
    service = FakeService()
    service.event = PayasoEvent(
        id="e3", type=EventType.visit, title="Visita", date=datetime(2030, 1, 1),
        capacity=RoleCapacity(recruit=1), attendees=RoleCapacity(recruit=1),
    )
    with pytest.raises(CapacityFullError):
        ToggleRegistrationCommand(service, WorkingSet("u3", [service.event]), "e3", VIEWER, True).execute()
    assert service.calls == []


def test_register_twice_does_not_write():
    service = FakeService()
    registered = PayasoEvent(
        id="e3", type=EventType.visit, title="Visita", date=datetime(2030, 1, 1),
        capacity=RoleCapacity(recruit=1), attendees=RoleCapacity(recruit=1), total_attendees=1,
        registered=True, current_user_status=AttendanceStatus.registered,
    )
    event = ToggleRegistrationCommand(service, WorkingSet("u3", [registered]), "e3", VIEWER, True).execute()
    assert event.attendees.recruit == 1
    assert service.calls == []


def test_unregister_after_attendance_is_rejected():
    service = FakeService()
    attended = PayasoEvent(
        id="e3", type=EventType.visit, title="Visita", date=datetime(2020, 1, 1),
        registered=True, current_user_status=AttendanceStatus.attended,
    )
    with pytest.raises(InvalidTransition):
        ToggleRegistrationCommand(service, WorkingSet("u3", [attended]), "e3", VIEWER, False).execute()


def test_mark_attendance_updates_roster():
    service = FakeService()
    roster = Roster.load(service, "e3")

    record = MarkAttendanceCommand(service, roster, "u3", "attended").execute()

    assert record.status == AttendanceStatus.attended
    assert service.calls == [("mark", "e3", "u3", AttendanceStatus.attended)]


def test_mark_attendance_restores_roster_on_failure():
    service = FakeService()
    service.fail = True
    roster = Roster.load(service, "e3")

    with pytest.raises(BackendError):
        MarkAttendanceCommand(service, roster, "u3", "absent").execute()
    assert roster.records["u3"].status == AttendanceStatus.registered
