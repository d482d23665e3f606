from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token

from tunebox.routes.utils import handle_errors
from tunebox.services.user_service import sync_telegram_user
from tunebox.utils.telegram import parse_admin_ids, validate_init_data

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/telegram', methods=['POST'])
@handle_errors
def telegram_login():
    """Exchange signed Telegram Mini App init data for an access token"""
    data = request.get_json(silent=True)
    init_data = data.get('initData') if isinstance(data, dict) else None
    init_data = init_data or request.headers.get('X-Telegram-Init-Data')

    profile = validate_init_data(
        init_data,
        current_app.config['TELEGRAM_BOT_TOKEN'],
        max_age_seconds=current_app.config['TELEGRAM_AUTH_MAX_AGE'],
    )
    user = sync_telegram_user(profile, parse_admin_ids(current_app.config['ADMIN_TELEGRAM_IDS']))

    return jsonify({
        'accessToken': create_access_token(identity=user),
        'user': user.to_dict()
    }), HTTPStatus.OK
