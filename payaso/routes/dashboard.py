from flask import Blueprint, current_app, jsonify

from payaso.domain import Role, policy
from payaso.domain.capacity import filter_events, next_mission, partition_history
from payaso.domain.compliance import is_compliant, month_label
from payaso.domain.reports import dashboard_stats
from payaso.schemas.payment import payments_schema
from payaso.schemas.user import users_schema
from payaso.services import get_service
from payaso.utils.decorators import inject_current_user, permission_required

from .events import serialize_event
from .graduation import progress_payload

dashboard_bp = Blueprint("dashboard", __name__)


def get_loader():
    return current_app.extensions["payaso_dashboard"]


@dashboard_bp.route("/dashboard", methods=["GET"])
@inject_current_user
def dashboard(current_user):
    """Everything the home screen shows, loaded as one batch."""
    snapshot = get_loader().load(current_user)
    role = current_user.role

    visible = filter_events(snapshot.events, role)
    mission = next_mission(partition_history(snapshot.events))
    own_payments = [p for p in snapshot.payments if p.user_id == current_user.id]

    data = {
        "stale": snapshot.stale,
        "loaded_at": snapshot.loaded_at.isoformat(),
        "events": [serialize_event(e, role) for e in visible],
        "next_mission": serialize_event(mission, role) if mission else None,
        "payments": payments_schema.dump(snapshot.payments),
        "current_month": month_label(),
        "is_up_to_date": is_compliant(current_user, own_payments),
        "users": users_schema.dump(snapshot.users),
    }
    if Role.recruit in current_user.available_roles:
        data["graduation"] = progress_payload(snapshot.stats)
    return jsonify(data), 200


@dashboard_bp.route("/stats", methods=["GET"])
@permission_required(policy.can_manage)
def stats(current_user):
    service = get_service()
    result = dashboard_stats(
        service.list_users(),
        service.list_events(),
        service.list_payments(),
        top=current_app.config["TOP_LOCATIONS"],
    )
    return jsonify(result), 200
