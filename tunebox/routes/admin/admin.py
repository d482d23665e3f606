from datetime import datetime, timezone
from http import HTTPStatus
import logging

from flask import Blueprint, jsonify, request

from tunebox.extensions.extension import db
from tunebox.errors import BadRequest, NotFound
from tunebox.middleware.admin_auth import admin_required
from tunebox.models.payment import Payment, PaymentStatus, PaymentType
from tunebox.models.purchase import Purchase
from tunebox.models.user import User
from tunebox.routes.utils import get_pagination_args, handle_errors
from tunebox.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')

# Request body field -> AppSettings attribute
SETTINGS_FIELDS = {
    'subscriptionPrice': 'subscription_price',
    'dailyPlayLimit': 'daily_play_limit',
    'defaultTrackPrice': 'default_track_price',
    'supportEmail': 'support_email',
    'supportTelegram': 'support_telegram',
}


@admin_bp.route('/settings', methods=['GET'])
@admin_required
@handle_errors
def get_settings(current_user):
    return jsonify({'settings': SettingsStore().get_settings().to_dict()}), HTTPStatus.OK


@admin_bp.route('/settings', methods=['PUT'])
@admin_required
@handle_errors
def update_settings(current_user):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise BadRequest('No input data provided')

    unknown = set(data) - set(SETTINGS_FIELDS)
    if unknown:
        raise BadRequest(f"Unknown settings: {', '.join(sorted(unknown))}")

    settings = SettingsStore().update_settings(
        **{SETTINGS_FIELDS[key]: value for key, value in data.items()}
    )
    logger.info(f"Admin {current_user.id} updated settings")
    return jsonify({'settings': settings.to_dict()}), HTTPStatus.OK


@admin_bp.route('/payments', methods=['GET'])
@admin_required
@handle_errors
def list_payments(current_user):
    """Paginated payments, optionally filtered by type and status"""
    page, per_page = get_pagination_args(request, max_per_page=100)
    query = Payment.query

    payment_type = request.args.get('type')
    if payment_type in PaymentType.__members__:
        query = query.filter(Payment.type == PaymentType[payment_type])
    status = request.args.get('status')
    if status in PaymentStatus.__members__:
        query = query.filter(Payment.status == PaymentStatus[status])

    payments = query.order_by(Payment.created_at.desc()).paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        'payments': [{
            **payment.to_summary(),
            'providerPaymentId': payment.provider_payment_id,
            'user': {
                'id': str(payment.user.id),
                'telegramId': str(payment.user.telegram_id),
                'username': payment.user.username,
            },
        } for payment in payments.items],
        'pagination': {
            'page': page,
            'perPage': per_page,
            'total': payments.total,
            'totalPages': payments.pages,
        }
    }), HTTPStatus.OK


def _parse_timestamp(value):
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise BadRequest('subscriptionUntil must be an ISO 8601 timestamp or null')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@admin_bp.route('/users/<uuid:user_id>/subscription', methods=['PUT'])
@admin_required
@handle_errors
def set_user_subscription(current_user, user_id):
    """Set or clear a user's subscription end; used to revoke refunded access"""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'subscriptionUntil' not in data:
        raise BadRequest('subscriptionUntil is required')

    value = data['subscriptionUntil']
    user.subscription_until = _parse_timestamp(value) if value is not None else None
    db.session.commit()
    logger.info(f"Admin {current_user.id} set subscription of user {user.id} to {user.subscription_until}")
    return jsonify({'user': user.to_dict()}), HTTPStatus.OK


@admin_bp.route('/users/<uuid:user_id>/purchases/<uuid:track_id>', methods=['DELETE'])
@admin_required
@handle_errors
def revoke_purchase(current_user, user_id, track_id):
    """Remove ownership of a track, e.g. after a refund"""
    purchase = Purchase.query.filter_by(user_id=user_id, track_id=track_id).first()
    if purchase is None:
        raise NotFound('Purchase not found')

    db.session.delete(purchase)
    db.session.commit()
    logger.info(f"Admin {current_user.id} revoked track {track_id} from user {user_id}")
    return jsonify({'message': 'Purchase revoked'}), HTTPStatus.OK
