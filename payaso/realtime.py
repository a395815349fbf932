"""
realtime.py
Socket.IO notifications sent after every successful write.

Clients refresh their working set on ``data_changed`` and append to the open
chat on ``new_message``.
"""

import logging

from payaso.extensions import socketio

logger = logging.getLogger(__name__)


def notify_change(entity, action, entity_id=None, **extra):
    payload = {"entity": entity, "action": action}
    if entity_id is not None:
        payload["id"] = str(entity_id)
    payload.update(extra)
    socketio.emit("data_changed", payload)
    logger.debug("data_changed %s", payload)


def notify_message(event_id, message):
    """``message`` is the serialized chat message; clients filter by event_id."""
    socketio.emit("new_message", message)
    socketio.emit("data_changed", {"entity": "chat", "action": "created", "id": str(event_id)})
