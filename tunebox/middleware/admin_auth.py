from functools import wraps
from http import HTTPStatus

from flask import jsonify

from tunebox.utils.auth import load_current_user


def admin_required(f):
    """
    Middleware that checks if the current user is an admin.
    If not, it returns a 403 Forbidden response.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            current_user = load_current_user()
        except Exception as e:
            return jsonify({'message': f'Authentication error: {str(e)}'}), HTTPStatus.UNAUTHORIZED

        if not current_user:
            return jsonify({'message': 'Invalid token: User not found'}), HTTPStatus.UNAUTHORIZED

        if not current_user.is_admin:
            return jsonify({'message': 'Access denied: Admin role required'}), HTTPStatus.FORBIDDEN

        return f(current_user, *args, **kwargs)

    return decorated
