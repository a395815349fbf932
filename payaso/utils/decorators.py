# payaso/utils/decorators.py
from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, jwt_required

from payaso.errors import NotFoundError
from payaso.services import get_service


def inject_current_user(view_func):
    """
    Load the user behind the JWT and pass it to the view as ``current_user``.
    Requires a valid JWT token.
    """
    @wraps(view_func)
    @jwt_required()
    def wrapper(*args, **kwargs):
        try:
            user = get_service().get_user(get_jwt_identity())
        except NotFoundError:
            return jsonify({"msg": "Unauthorized"}), 401
        if not user.is_active:
            return jsonify({"msg": "Account is inactive"}), 403

        kwargs['current_user'] = user
        return view_func(*args, **kwargs)
    return wrapper


def permission_required(check, message="Unauthorized"):
    """
    Like ``inject_current_user`` but also answers 403 unless ``check(user)``
    is true, e.g. ``@permission_required(policy.can_manage)``.
    """
    def decorator(view_func):
        @wraps(view_func)
        @inject_current_user
        def wrapper(*args, **kwargs):
            if not check(kwargs['current_user']):
                return jsonify({"msg": message}), 403
            return view_func(*args, **kwargs)
        return wrapper
    return decorator
