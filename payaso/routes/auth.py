from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import (
    create_access_token,
    jwt_required,
    set_access_cookies,
    unset_jwt_cookies
)

from payaso.domain import policy
from payaso.extensions import limiter
from payaso.realtime import notify_change
from payaso.schemas import load_body
from payaso.schemas.user import LoginSchema, PasswordChangeSchema, RoleSwitchSchema, user_schema
from payaso.services import get_service
from payaso.utils.decorators import inject_current_user

auth_bp = Blueprint("auth", __name__)


def _token_for(user):
    return create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role.value}
    )


def _permissions(user):
    return {
        "can_manage": policy.can_manage(user),
        "can_manage_treasury": policy.can_manage_treasury(user),
        "can_record_payments": policy.can_record_payments(user),
        "is_staff": policy.is_staff(user.role),
    }


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(lambda: current_app.config["LOGIN_RATE_LIMIT"])
def login():
    data = load_body(LoginSchema())
    identifier = (data["identifier"] or data["email"] or data["cedula"] or "").strip()
    if not identifier:
        return jsonify({"msg": "Email or cedula and password are required"}), 400

    user = get_service().authenticate(identifier, data["password"])

    if not user.is_active:
        current_app.logger.info("Login refused for inactive user %s", user.id)
        return jsonify({"msg": "Account is inactive"}), 403

    access_token = _token_for(user)
    current_app.logger.info("Login successful for user %s", user.email)

    response = jsonify({
        "msg": "Login successful",
        "access_token": access_token,
        "user": user_schema.dump(user),
        "permissions": _permissions(user)
    })
    set_access_cookies(response, access_token)
    return response, 200


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    response = jsonify({"msg": "Logout successful"})
    unset_jwt_cookies(response)
    return response, 200


@auth_bp.route("/me", methods=["GET"])
@inject_current_user
def me(current_user):
    return jsonify({
        "user": user_schema.dump(current_user),
        "permissions": _permissions(current_user)
    }), 200


@auth_bp.route("/password", methods=["POST"])
@inject_current_user
def change_password(current_user):
    data = load_body(PasswordChangeSchema())
    get_service().change_password(current_user.id, data["password"], data["confirm_password"])
    current_app.logger.info("User %s changed their password", current_user.id)
    return jsonify({"msg": "Password updated"}), 200


@auth_bp.route("/role", methods=["POST"])
@inject_current_user
def switch_role(current_user):
    """Switch the active role; the new token carries the new role claim."""
    data = load_body(RoleSwitchSchema())
    user = get_service().set_active_role(current_user.id, data["role"])
    notify_change("user", "updated", user.id)

    access_token = _token_for(user)
    response = jsonify({
        "msg": "Role switched",
        "access_token": access_token,
        "user": user_schema.dump(user),
        "permissions": _permissions(user)
    })
    set_access_cookies(response, access_token)
    return response, 200
