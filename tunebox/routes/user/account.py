from http import HTTPStatus

from flask import Blueprint, jsonify, request

from tunebox.models.payment import Payment
from tunebox.models.play_history import PlayHistory
from tunebox.models.purchase import Purchase
from tunebox.models.subscription import Subscription
from tunebox.routes.utils import get_pagination_args, handle_errors
from tunebox.services.settings_store import SettingsStore
from tunebox.utils.auth import token_required
from tunebox.utils.clock import utcnow

account_bp = Blueprint('account', __name__, url_prefix='/api/user')


@account_bp.route('/profile', methods=['GET'])
@token_required
@handle_errors
def get_profile(current_user):
    return jsonify({'user': current_user.to_dict()}), HTTPStatus.OK


@account_bp.route('/subscription', methods=['GET'])
@token_required
@handle_errors
def get_subscription(current_user):
    """Current subscription state plus the latest paid periods"""
    settings = SettingsStore().get_settings()
    history = Subscription.query.filter_by(
        user_id=current_user.id
    ).order_by(Subscription.created_at.desc()).limit(10).all()

    return jsonify({
        'subscription': {
            'isActive': current_user.has_active_subscription(utcnow()),
            'expiresAt': current_user.subscription_until.isoformat() if current_user.subscription_until else None,
            'price': settings.subscription_price,
            'history': [sub.to_dict() for sub in history],
        }
    }), HTTPStatus.OK


@account_bp.route('/purchases', methods=['GET'])
@token_required
@handle_errors
def get_purchases(current_user):
    """Get all tracks owned by the current user"""
    purchases = Purchase.query.filter_by(
        user_id=current_user.id
    ).order_by(Purchase.created_at.desc()).all()

    return jsonify({
        'purchases': [{
            'id': str(purchase.id),
            'price': purchase.price,
            'purchasedAt': purchase.created_at.isoformat(),
            'track': purchase.track.to_summary(),
        } for purchase in purchases],
        'count': len(purchases)
    }), HTTPStatus.OK


@account_bp.route('/history', methods=['GET'])
@token_required
@handle_errors
def get_history(current_user):
    """Paginated play history, newest first"""
    page, per_page = get_pagination_args(request)
    history = PlayHistory.query.filter_by(
        user_id=current_user.id
    ).order_by(PlayHistory.played_at.desc()).paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        'history': [{
            'id': str(item.id),
            'playedAt': item.played_at.isoformat(),
            'completed': item.completed,
            'track': item.track.to_summary(),
        } for item in history.items],
        'pagination': {
            'page': page,
            'perPage': per_page,
            'total': history.total,
            'totalPages': history.pages,
        }
    }), HTTPStatus.OK


@account_bp.route('/payments', methods=['GET'])
@token_required
@handle_errors
def get_payments(current_user):
    payments = Payment.query.filter_by(
        user_id=current_user.id
    ).order_by(Payment.created_at.desc()).limit(50).all()

    return jsonify({
        'payments': [payment.to_summary() for payment in payments],
        'count': len(payments)
    }), HTTPStatus.OK
