from flask import Blueprint, current_app, jsonify, request

from payaso.realtime import notify_message
from payaso.schemas import load_body
from payaso.schemas.event import ChatMessageInSchema, chat_message_schema, chat_messages_schema
from payaso.services import get_service
from payaso.utils.dates import parse_iso
from payaso.utils.decorators import inject_current_user

from .events import visible_event

chat_bp = Blueprint("chat", __name__)


@chat_bp.route("/<event_id>/messages", methods=["GET"])
@inject_current_user
def get_messages(current_user, event_id):
    """Event chat; clients poll with ``since`` set to the last timestamp they hold."""
    visible_event(event_id, current_user)

    since = request.args.get("since")
    if since:
        try:
            since = parse_iso(since)
        except ValueError:
            return jsonify({"msg": "since must be an ISO timestamp"}), 400
    else:
        since = None

    messages = get_service().list_event_messages(event_id, since=since)
    return jsonify({
        "messages": chat_messages_schema.dump(messages),
        "poll_seconds": current_app.config["CHAT_POLL_SECONDS"]
    }), 200


@chat_bp.route("/<event_id>/messages", methods=["POST"])
@inject_current_user
def send_message(current_user, event_id):
    visible_event(event_id, current_user)
    data = load_body(ChatMessageInSchema())

    message = get_service().send_event_message(event_id, current_user.id, data["text"])
    payload = chat_message_schema.dump(message)
    notify_message(message.event_id, payload)

    return jsonify({"msg": "Message sent successfully", "message": payload}), 201
