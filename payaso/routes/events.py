from flask import Blueprint, current_app, jsonify, request

from payaso.domain import policy
from payaso.domain.capacity import (
    CATEGORIES, calendar_link, capacity_for_role, filter_events, is_full, is_visible,
    next_mission, partition_history,
)
from payaso.errors import NotFoundError
from payaso.realtime import notify_change
from payaso.schemas import load_body
from payaso.schemas.event import (
    AttendanceUpdateSchema, EventCreateSchema, attendance_records_schema, event_schema,
)
from payaso.services import get_service
from payaso.state import MarkAttendanceCommand, Roster, ToggleRegistrationCommand, WorkingSet
from payaso.utils.dates import naive_local
from payaso.utils.decorators import inject_current_user, permission_required

events_bp = Blueprint("events", __name__)


def serialize_event(event, role):
    """Event JSON plus what the viewer's role sees of it."""
    data = event_schema.dump(event)
    slot = capacity_for_role(event, role)
    data["slot"] = {"taken": slot.taken, "max": slot.max}
    data["is_full"] = is_full(event, role)
    data["calendar_url"] = calendar_link(event, role)
    return data


def visible_event(event_id, user):
    event = get_service().get_event(event_id, user.id)
    if not (event.registered or is_visible(event, user.role)):
        raise NotFoundError("Event not found")
    return event


@events_bp.route("", methods=["GET"])
@inject_current_user
def list_events(current_user):
    category = request.args.get("category", "all")
    if category not in CATEGORIES:
        return jsonify({"msg": f"Category must be one of {', '.join(CATEGORIES)}"}), 400

    events = filter_events(get_service().list_events(current_user.id), current_user.role, category)
    return jsonify({
        "events": [serialize_event(e, current_user.role) for e in events],
        "total": len(events)
    }), 200


@events_bp.route("/history", methods=["GET"])
@inject_current_user
def history(current_user):
    """The viewer's upcoming missions and a page of past ones."""
    try:
        limit = int(request.args.get("limit", current_app.config["HISTORY_PAGE_SIZE"]))
    except ValueError:
        return jsonify({"msg": "limit must be a number"}), 400
    if limit < 0:
        return jsonify({"msg": "limit cannot be negative"}), 400

    result = partition_history(get_service().list_events(current_user.id))
    mission = next_mission(result)
    return jsonify({
        "next_mission": serialize_event(mission, current_user.role) if mission else None,
        "upcoming": [serialize_event(e, current_user.role) for e in result.upcoming],
        "past": [serialize_event(e, current_user.role) for e in result.past[:limit]],
        "has_more": len(result.past) > limit
    }), 200


@events_bp.route("/<event_id>", methods=["GET"])
@inject_current_user
def get_event(current_user, event_id):
    event = visible_event(event_id, current_user)
    return jsonify(serialize_event(event, current_user.role)), 200


@events_bp.route("", methods=["POST"])
@permission_required(policy.can_manage)
def create_event(current_user):
    data = load_body(EventCreateSchema())
    data["date"] = naive_local(data["date"])
    data["created_by"] = current_user.id

    event = get_service().create_event(data)
    current_app.logger.info("User %s created %s %s", current_user.id, event.type.value, event.id)
    notify_change("event", "created", event.id)
    return jsonify({"msg": "Event created", "event": serialize_event(event, current_user.role)}), 201


def _change_registration(user, event_id, register):
    service = get_service()
    event = visible_event(event_id, user)
    event_id, before = event.id, event.registered
    working_set = WorkingSet(user.id, [event])

    ToggleRegistrationCommand(service, working_set, event_id, user, register=register).execute()
    event = working_set.refresh_event(service, event_id)
    if event.registered != before:
        notify_change("registration", "created" if register else "deleted", event_id, user_id=user.id)
    return event


@events_bp.route("/<event_id>/registration", methods=["POST"])
@inject_current_user
def register(current_user, event_id):
    event = _change_registration(current_user, event_id, True)
    return jsonify({"msg": "Registered", "event": serialize_event(event, current_user.role)}), 200


@events_bp.route("/<event_id>/registration", methods=["DELETE"])
@inject_current_user
def unregister(current_user, event_id):
    event = _change_registration(current_user, event_id, False)
    return jsonify({"msg": "Registration cancelled", "event": serialize_event(event, current_user.role)}), 200


@events_bp.route("/<event_id>/attendees", methods=["GET"])
@permission_required(policy.can_manage)
def list_attendees(current_user, event_id):
    records = get_service().list_attendees(event_id)
    return jsonify({"attendees": attendance_records_schema.dump(records)}), 200


@events_bp.route("/<event_id>/attendees/<user_id>", methods=["PUT"])
@permission_required(policy.can_manage)
def mark_attendance(current_user, event_id, user_id):
    data = load_body(AttendanceUpdateSchema())
    service = get_service()
    roster = Roster.load(service, event_id)
    if user_id not in roster.records:
        raise NotFoundError("User is not registered for this event")

    MarkAttendanceCommand(service, roster, user_id, data["status"]).execute()
    roster.refresh(service)
    notify_change("attendance", "updated", event_id, user_id=user_id)
    return jsonify({
        "msg": "Attendance updated",
        "attendees": attendance_records_schema.dump(list(roster.records.values()))
    }), 200
