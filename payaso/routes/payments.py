import csv
import io
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request, send_file

from payaso.domain import PaymentStatus, policy
from payaso.domain.compliance import STATUS_FILTERS, month_label, total_paid, treasury_summary, user_dues
from payaso.realtime import notify_change
from payaso.schemas import load_body
from payaso.schemas.payment import (
    PaymentCreateSchema, PaymentStatusSchema, payment_schema, payments_schema, treasury_schema,
)
from payaso.services import get_service
from payaso.utils.decorators import inject_current_user, permission_required

payments_bp = Blueprint("payments", __name__)


@payments_bp.route("/payments", methods=["GET"])
@inject_current_user
def list_payments(current_user):
    """Own payments; treasury users see everyone's (optionally ?user_id=)."""
    user_id = current_user.id
    if policy.can_manage_treasury(current_user):
        user_id = request.args.get("user_id") or None

    payments = get_service().list_payments(user_id)
    return jsonify({
        "payments": payments_schema.dump(payments),
        "total_paid": total_paid(payments)
    }), 200


@payments_bp.route("/payments", methods=["POST"])
@inject_current_user
def create_payment(current_user):
    data = load_body(PaymentCreateSchema())
    target = data.pop("user_id") or current_user.id

    if policy.can_record_payments(current_user):
        data["status"] = PaymentStatus.paid
    else:
        if str(target) != str(current_user.id):
            return jsonify({"msg": "Unauthorized"}), 403
        if not (data.get("reference_id") or "").strip():
            return jsonify({"msg": "Reference number is required"}), 400
        data["status"] = PaymentStatus.pending_approval

    data["user_id"] = target
    payment = get_service().create_payment(data)
    current_app.logger.info("Payment %s (%s) recorded by %s for %s",
                            payment.id, payment.status.value, current_user.id, target)
    notify_change("payment", "created", payment.id)
    return jsonify({"msg": "Payment saved", "payment": payment_schema.dump(payment)}), 201


@payments_bp.route("/payments/<payment_id>", methods=["PATCH"])
@permission_required(policy.can_manage_treasury)
def update_payment(current_user, payment_id):
    data = load_body(PaymentStatusSchema())
    payment = get_service().update_payment_status(payment_id, data["status"])
    current_app.logger.info("Payment %s marked %s by %s", payment.id, payment.status.value, current_user.id)
    notify_change("payment", "updated", payment.id)
    return jsonify({"msg": "Payment updated", "payment": payment_schema.dump(payment)}), 200


@payments_bp.route("/payments/compliance", methods=["GET"])
@inject_current_user
def my_compliance(current_user):
    payments = get_service().list_payments(current_user.id)
    data = user_dues(current_user, payments)
    data["current_month"] = month_label()
    data["monthly_fee"] = current_app.config["MONTHLY_FEE"]
    return jsonify(data), 200


def _summary():
    status = request.args.get("status", "all")
    if status not in STATUS_FILTERS:
        return None, status
    service = get_service()
    return treasury_summary(
        service.list_users(),
        service.list_payments(),
        monthly_fee=current_app.config["MONTHLY_FEE"],
        status_filter=status,
        search=request.args.get("search", ""),
    ), status


@payments_bp.route("/treasury", methods=["GET"])
@permission_required(policy.can_manage_treasury)
def treasury(current_user):
    summary, status = _summary()
    if summary is None:
        return jsonify({"msg": f"status must be one of {', '.join(STATUS_FILTERS)}"}), 400
    return jsonify(treasury_schema.dump(summary)), 200


@payments_bp.route("/treasury/export", methods=["GET"])
@permission_required(policy.can_manage_treasury)
def export_treasury(current_user):
    summary, status = _summary()
    if summary is None:
        return jsonify({"msg": f"status must be one of {', '.join(STATUS_FILTERS)}"}), 400

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["User ID", "Name", "Exempt", "Up to date", "Total paid", "Last payment"])
    for row in summary["users"]:
        writer.writerow([
            row["user_id"],
            row["full_name"],
            "yes" if row["exempt_from_fees"] else "no",
            "yes" if row["is_up_to_date"] else "no",
            row["total_paid"],
            row["last_payment_month"]
        ])

    output.seek(0)

    return send_file(
        io.BytesIO(output.getvalue().encode()),
        mimetype="text/csv",
        as_attachment=True,
        download_name=f"treasury_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    )
