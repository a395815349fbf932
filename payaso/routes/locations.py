from flask import Blueprint, jsonify, request

from payaso.domain import policy
from payaso.realtime import notify_change
from payaso.schemas import load_body
from payaso.schemas.event import LocationSchema, LocationStatusSchema, location_schema, locations_schema
from payaso.services import get_service
from payaso.utils.decorators import inject_current_user, permission_required

locations_bp = Blueprint("locations", __name__)


@locations_bp.route("", methods=["GET"])
@inject_current_user
def list_locations(current_user):
    # inactive places only show up in the admin catalogue
    include_inactive = (
        request.args.get("include_inactive", "false").lower() == "true"
        and policy.can_manage(current_user)
    )
    locations = get_service().list_locations(include_inactive=include_inactive)
    return jsonify({"locations": locations_schema.dump(locations)}), 200


@locations_bp.route("", methods=["POST"])
@permission_required(policy.can_manage)
def create_location(current_user):
    data = load_body(LocationSchema())
    location = get_service().create_location(data["name"], data["type"], data["address"])
    notify_change("location", "created", location.id)
    return jsonify({"msg": "Location created", "location": location_schema.dump(location)}), 201


@locations_bp.route("/<location_id>", methods=["PATCH"])
@permission_required(policy.can_manage)
def update_location(current_user, location_id):
    data = load_body(LocationSchema(), partial=True)
    location = get_service().update_location(location_id, data)
    notify_change("location", "updated", location.id)
    return jsonify({"msg": "Location updated", "location": location_schema.dump(location)}), 200


@locations_bp.route("/<location_id>/status", methods=["PUT"])
@permission_required(policy.can_manage)
def set_location_status(current_user, location_id):
    data = load_body(LocationStatusSchema())
    location = get_service().set_location_active(location_id, data["active"])
    notify_change("location", "updated", location.id)
    return jsonify({"msg": "Location updated", "location": location_schema.dump(location)}), 200
