from flask import Blueprint, current_app, jsonify, request

from payaso.domain import GraduationStatus, policy
from payaso.domain.graduation import check_can_request, graduation_progress
from payaso.realtime import notify_change
from payaso.schemas.admin import (
    graduation_request_schema, graduation_requests_schema, user_stats_schema,
)
from payaso.services import get_service
from payaso.utils.decorators import inject_current_user, permission_required

graduation_bp = Blueprint("graduation", __name__)


def thresholds():
    return (
        current_app.config["GRADUATION_REQUIRED_HOURS"],
        current_app.config["GRADUATION_REQUIRED_VISITS"],
    )


def progress_payload(stats):
    hours, visits = thresholds()
    progress = graduation_progress(stats, hours, visits)
    return {
        "stats": user_stats_schema.dump(stats),
        "required_hours": hours,
        "required_visits": visits,
        "hours_pct": progress.hours_pct,
        "visits_pct": progress.visits_pct,
        "eligible": progress.eligible,
        "graduation_requested": stats.graduation_requested
    }


@graduation_bp.route("/progress", methods=["GET"])
@inject_current_user
def progress(current_user):
    stats = get_service().get_user_stats(current_user.id)
    return jsonify(progress_payload(stats)), 200


@graduation_bp.route("/requests", methods=["POST"])
@inject_current_user
def request_graduation(current_user):
    service = get_service()
    stats = service.get_user_stats(current_user.id)
    hours, visits = thresholds()
    check_can_request(
        current_user, stats, service.list_graduation_requests(GraduationStatus.pending), hours, visits
    )

    request_record = service.create_graduation_request(current_user.id, stats)
    current_app.logger.info("User %s requested graduation", current_user.id)
    notify_change("graduation", "created", request_record.id)
    return jsonify({
        "msg": "Graduation requested",
        "request": graduation_request_schema.dump(request_record)
    }), 201


@graduation_bp.route("/requests", methods=["GET"])
@permission_required(policy.can_manage)
def list_requests(current_user):
    status = request.args.get("status", GraduationStatus.pending.value)
    if status == "all":
        status = None
    elif status not in [s.value for s in GraduationStatus]:
        return jsonify({"msg": "Unknown status"}), 400

    requests = get_service().list_graduation_requests(status)
    return jsonify({"requests": graduation_requests_schema.dump(requests)}), 200


@graduation_bp.route("/requests/<request_id>/approve", methods=["POST"])
@permission_required(policy.can_manage)
def approve(current_user, request_id):
    record = get_service().approve_graduation(request_id)
    current_app.logger.info("Graduation %s approved by %s", record.id, current_user.id)
    notify_change("graduation", "approved", record.id, user_id=record.user_id)
    return jsonify({"msg": "Graduation approved", "request": graduation_request_schema.dump(record)}), 200


@graduation_bp.route("/requests/<request_id>/reject", methods=["POST"])
@permission_required(policy.can_manage)
def reject(current_user, request_id):
    record = get_service().reject_graduation(request_id)
    current_app.logger.info("Graduation %s rejected by %s", record.id, current_user.id)
    notify_change("graduation", "rejected", record.id, user_id=record.user_id)
    return jsonify({"msg": "Graduation rejected", "request": graduation_request_schema.dump(record)}), 200
