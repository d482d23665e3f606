from http import HTTPStatus

from flask import Blueprint, jsonify, request

from tunebox.errors import BadRequest
from tunebox.routes.utils import handle_errors, parse_uuid, payment_orchestrator
from tunebox.services.payment_orchestrator import PaymentOrchestrator, parse_payment_type
from tunebox.utils.auth import token_required

payments_bp = Blueprint('payments', __name__, url_prefix='/api/payments')


@payments_bp.route('/checkout', methods=['POST'])
@token_required
@handle_errors
def create_checkout(current_user):
    """Open a hosted checkout for a subscription or a single track"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise BadRequest('No input data provided')

    payment_type = parse_payment_type(data.get('type'))
    track_id = data.get('trackId')
    if track_id is not None:
        track_id = parse_uuid(track_id, 'track ID')

    result = payment_orchestrator().create_checkout(
        current_user.id,
        payment_type,
        track_id=track_id,
        enable_auto_renewal=data.get('enableAutoRenewal') is True,
    )
    return jsonify(result.to_dict()), HTTPStatus.OK


@payments_bp.route('/<uuid:payment_id>/status', methods=['GET'])
@token_required
@handle_errors
def payment_status(current_user, payment_id):
    """Status of one of the caller's payments, polled after the redirect"""
    payment = PaymentOrchestrator.get_payment_status(payment_id, current_user.id)
    return jsonify(payment.to_summary()), HTTPStatus.OK
