from flask import Blueprint, current_app, jsonify

from payaso.domain import policy
from payaso.realtime import notify_change
from payaso.schemas import load_body
from payaso.schemas.admin import MassMessageSchema, system_message_schema, system_messages_schema
from payaso.services import get_service
from payaso.utils.decorators import inject_current_user, permission_required

messages_bp = Blueprint("messages", __name__)


@messages_bp.route("/mass", methods=["POST"])
@permission_required(policy.can_manage)
def send_mass_message(current_user):
    data = load_body(MassMessageSchema())
    message = get_service().send_mass_message(
        data["target_roles"], data["subject"], data["body"], sent_by=current_user.display_name
    )
    current_app.logger.info("Mass message %s sent by %s", message.id, current_user.id)
    notify_change("message", "created", message.id, target_roles=[r.value for r in message.target_roles])
    return jsonify({"msg": "Message sent", "message": system_message_schema.dump(message)}), 201


@messages_bp.route("/inbox", methods=["GET"])
@inject_current_user
def inbox(current_user):
    messages = get_service().list_inbox(current_user)
    return jsonify({"messages": system_messages_schema.dump(messages)}), 200
