from functools import wraps
from http import HTTPStatus
import uuid

from flask import jsonify
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity

from tunebox.extensions.extension import db
from tunebox.models.user import User


def load_current_user():
    """Resolve the verified JWT principal to a user row, or None"""
    verify_jwt_in_request()
    user_id = get_jwt_identity()
    return db.session.get(User, uuid.UUID(str(user_id)))


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            current_user = load_current_user()
            if not current_user:
                return jsonify({'message': 'Invalid token: User not found'}), HTTPStatus.UNAUTHORIZED
        except Exception as e:
            return jsonify({'message': f'Invalid token: {str(e)}'}), HTTPStatus.UNAUTHORIZED

        return f(current_user, *args, **kwargs)

    return decorated
