from datetime import datetime

import pytest

from payaso.domain import EventType, PayasoEvent, Role, RoleCapacity
from payaso.domain.capacity import (
    Slot, calendar_link, capacity_for_role, filter_events, is_full, is_visible,
    next_mission, partition_history,
)


def visit(**kwargs):
    defaults = dict(
        id="v1", type=EventType.visit, title="Visita", date=datetime(2024, 6, 1, 9),
        capacity=RoleCapacity(recruit=2, dr_payaso=4, photographer=1, volunteer=1),
        attendees=RoleCapacity(recruit=1, dr_payaso=2, photographer=1, volunteer=0),
    )
    defaults.update(kwargs)
    return PayasoEvent(**defaults)


def training(**kwargs):
    defaults = dict(
        id="t1", type=EventType.training, title="Taller", date=datetime(2024, 6, 1, 18),
        total_capacity=20, total_attendees=7,
    )
    defaults.update(kwargs)
    return PayasoEvent(**defaults)


def test_visit_capacity_is_read_from_the_role_bucket():
    event = visit()
    assert capacity_for_role(event, Role.recruit) == Slot(taken=1, max=2)
    assert capacity_for_role(event, Role.volunteer) == Slot(taken=0, max=1)
    assert capacity_for_role(event, Role.dr_payaso) == Slot(taken=2, max=4)


def test_staff_roles_use_the_volunteer_bucket():
    event = visit()
    for role in (Role.board, Role.treasurer, Role.admin):
        assert capacity_for_role(event, role) == Slot(taken=0, max=1)


def test_training_capacity_ignores_roles():
    event = training()
    assert capacity_for_role(event, Role.recruit) == Slot(7, 20)
    assert capacity_for_role(event, Role.photographer) == Slot(7, 20)


def test_full_bucket_blocks_only_unregistered_viewers():
    event = visit()
    # photographer bucket is 1/1
    assert is_full(event, Role.photographer)
    assert not is_full(visit(registered=True), Role.photographer)
    assert not is_full(event, Role.recruit)


def test_full_training():
    assert is_full(training(total_attendees=20), Role.recruit)
    assert not is_full(training(total_attendees=20, registered=True), Role.recruit)


def test_visibility():
    closed = visit(capacity=RoleCapacity())
    assert is_visible(closed, Role.admin)
    assert is_visible(closed, Role.board)
    assert not is_visible(closed, Role.volunteer)
    assert not is_visible(closed, Role.treasurer)

    recruits_only = visit(capacity=RoleCapacity(recruit=3))
    assert is_visible(recruits_only, Role.recruit)
    assert not is_visible(recruits_only, Role.photographer)

    empty_training = training(total_capacity=0)
    for role in Role:
        assert is_visible(empty_training, role)


def test_visibility_applies_before_category_filter():
    closed = visit(id="closed", capacity=RoleCapacity())
    open_visit = visit(id="open")
    events = [closed, open_visit, training()]

    assert [e.id for e in filter_events(events, Role.volunteer, "visit")] == ["open"]
    assert [e.id for e in filter_events(events, Role.admin, "visit")] == ["closed", "open"]
    assert [e.id for e in filter_events(events, Role.volunteer, "training")] == ["t1"]
    assert len(filter_events(events, Role.volunteer)) == 2


def test_history_partition_orders_each_side():
    now = datetime(2024, 7, 1)
    events = [
        visit(id="a", date=datetime(2024, 1, 1), registered=True),
        visit(id="c", date=datetime(2025, 1, 1), registered=True),
        visit(id="b", date=datetime(2024, 6, 1), registered=True),
        visit(id="x", date=datetime(2024, 12, 1), registered=False),
    ]
    history = partition_history(events, now=now)
    assert [e.id for e in history.upcoming] == ["c"]
    assert [e.id for e in history.past] == ["b", "a"]
    assert next_mission(history).id == "c"


def test_history_event_at_now_is_upcoming():
    now = datetime(2024, 7, 1, 10)
    history = partition_history([visit(date=now, registered=True)], now=now)
    assert len(history.upcoming) == 1
    assert history.past == []


def test_next_mission_empty():
    assert next_mission(partition_history([], now=datetime(2024, 1, 1))) is None


@pytest.mark.parametrize("role, label", [(Role.recruit, "Recluta"), ("dr_payaso", "Dr. Payaso")])
def test_calendar_link(role, label):
    link = calendar_link(visit(location="Hospital"), role)
    assert link.startswith("https://calendar.google.com/calendar/render?")
    assert "20240601T090000%2F20240601T110000" in link
    assert label.replace(" ", "+") in link
