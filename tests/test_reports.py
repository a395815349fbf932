from datetime import datetime

from payaso.domain import EventType, PayasoEvent, Payment, PaymentStatus, Role, User
from payaso.domain.reports import dashboard_stats, monthly_activity, top_locations, weekday_activity


def event(eid, kind, when, location="Hospital"):
    return PayasoEvent(id=eid, type=kind, title=eid, date=when, location=location)


def test_empty_input_returns_zeroed_structures():
    stats = dashboard_stats([], [], [])
    assert stats["total_volunteers"] == 0
    assert stats["active_volunteers"] == 0
    assert [r["value"] for r in stats["role_distribution"]] == [0, 0, 0, 0]
    assert len(stats["monthly_visits"]) == 12
    assert all(m["visits"] == m["trainings"] == m["financial"] == 0 for m in stats["monthly_visits"])
    assert len(stats["weekday_activity"]) == 7
    assert stats["top_locations"] == []


def test_role_distribution_groups_staff():
    users = [
        User(id="1", email="a", full_name="A", role=Role.admin, available_roles=(Role.admin,)),
        User(id="2", email="b", full_name="B", role=Role.treasurer, available_roles=(Role.treasurer,)),
        User(id="3", email="c", full_name="C", role=Role.recruit, available_roles=(Role.recruit,)),
    ]
    values = {r["name"]: r["value"] for r in dashboard_stats(users, [], [])["role_distribution"]}
    assert values == {"Dr. Payaso": 0, "Reclutas": 1, "Fotógrafos": 0, "Staff": 2}


def test_monthly_activity_joins_payments_by_month_prefix():
    events = [
        event("a", EventType.visit, datetime(2024, 3, 4)),
        event("b", EventType.training, datetime(2024, 3, 9)),
    ]
    payments = [
        Payment(id="p1", user_id="u", amount=5000, month="marzo 2024", status=PaymentStatus.paid),
        Payment(id="p2", user_id="u", amount=5000, month="Marzo 2023", status=PaymentStatus.paid),
        Payment(id="p3", user_id="u", amount=5000, month="Marzo 2024",
                status=PaymentStatus.pending_approval),
    ]
    march = monthly_activity(events, payments)[2]
    assert march == {"name": "Mar", "visits": 1, "trainings": 1, "financial": 10000}


def test_weekday_activity_counts_visits_only():
    # 2024-06-02 is a Sunday
    events = [
        event("a", EventType.visit, datetime(2024, 6, 2)),
        event("b", EventType.training, datetime(2024, 6, 2)),
        event("c", EventType.visit, datetime(2024, 6, 3)),
    ]
    days = weekday_activity(events)
    assert days[0] == {"name": "Dom", "count": 1}
    assert days[1]["count"] == 1


def test_top_locations():
    events = [event(str(i), EventType.visit, datetime(2024, 1, 1), loc)
              for i, loc in enumerate(["A", "B", "A", "C", "A", "B"])]
    assert top_locations(events, limit=2) == [{"name": "A", "count": 3}, {"name": "B", "count": 2}]
