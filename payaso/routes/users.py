from flask import Blueprint, current_app, jsonify, request

from payaso.domain import Role, policy
from payaso.realtime import notify_change
from payaso.schemas import load_body
from payaso.schemas.user import (
    ADMIN_ONLY_FIELDS, UserCreateSchema, UserRolesSchema, UserStatusSchema, UserUpdateSchema,
    public_user_schema, user_schema, users_schema,
)
from payaso.services import get_service
from payaso.utils.decorators import inject_current_user, permission_required

user_bp = Blueprint("users", __name__)


@user_bp.route("", methods=["GET"])
@permission_required(policy.can_manage)
def get_users(current_user):
    role = request.args.get("role")
    status = request.args.get("status")
    search = request.args.get("search", "").strip().lower()

    users = get_service().list_users()

    if role and role in [r.value for r in Role]:
        users = [u for u in users if Role(role) in u.available_roles]
    if status in ("active", "inactive"):
        users = [u for u in users if u.status == status]
    if search:
        users = [
            u for u in users
            if search in u.full_name.lower()
            or search in u.email.lower()
            or search in (u.cedula or "")
            or search in (u.artistic_name or "").lower()
        ]

    return jsonify({"users": users_schema.dump(users), "total": len(users)}), 200


@user_bp.route("", methods=["POST"])
@permission_required(policy.can_manage)
def create_user(current_user):
    data = load_body(UserCreateSchema())
    user = get_service().create_user(data)
    current_app.logger.info("User %s created by %s", user.id, current_user.id)
    notify_change("user", "created", user.id)
    return jsonify({"msg": "User created", "user": user_schema.dump(user)}), 201


@user_bp.route("/<user_id>", methods=["GET"])
@inject_current_user
def get_user(current_user, user_id):
    user = get_service().get_user(user_id)
    if policy.can_manage(current_user) or user.id == current_user.id:
        return jsonify(user_schema.dump(user)), 200
    return jsonify(public_user_schema.dump(user)), 200


@user_bp.route("/<user_id>", methods=["PATCH"])
@inject_current_user
def update_user(current_user, user_id):
    is_admin = policy.can_manage(current_user)
    if not (is_admin or str(user_id) == str(current_user.id)):
        return jsonify({"msg": "Unauthorized"}), 403

    data = load_body(UserUpdateSchema(), partial=True)
    if not is_admin and any(field in data for field in ADMIN_ONLY_FIELDS):
        return jsonify({"msg": "Only administrators can change these fields"}), 403
    if data.get("valid_until"):
        data["valid_until"] = data["valid_until"].isoformat()

    user = get_service().update_user_profile(user_id, data)
    notify_change("user", "updated", user.id)
    return jsonify({"msg": "Profile updated", "user": user_schema.dump(user)}), 200


@user_bp.route("/<user_id>/status", methods=["PUT"])
@permission_required(policy.can_manage)
def update_status(current_user, user_id):
    data = load_body(UserStatusSchema())
    if str(user_id) == str(current_user.id) and data["status"] == "inactive":
        return jsonify({"msg": "You cannot deactivate your own account"}), 400

    user = get_service().update_user_status(user_id, data["status"])
    current_app.logger.info("User %s set to %s by %s", user.id, user.status, current_user.id)
    notify_change("user", "updated", user.id)
    return jsonify({"msg": "Status updated", "user": user_schema.dump(user)}), 200


@user_bp.route("/<user_id>/roles", methods=["PUT"])
@permission_required(policy.can_manage)
def update_roles(current_user, user_id):
    data = load_body(UserRolesSchema())
    user = get_service().replace_user_roles(
        user_id,
        data["roles"],
        artistic_name=data["artistic_name"],
        character_photo_url=data["character_photo_url"],
    )
    current_app.logger.info("Roles of user %s replaced by %s", user.id, current_user.id)
    notify_change("user", "updated", user.id)
    return jsonify({"msg": "Roles updated", "user": user_schema.dump(user)}), 200
