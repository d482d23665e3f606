from http import HTTPStatus
import logging

from flask import Blueprint, current_app, jsonify, request

from tunebox.errors import MalformedWebhook
from tunebox.services.webhook_reconciler import WebhookReconciler, parse_stripe_event

logger = logging.getLogger(__name__)

webhook_bp = Blueprint('webhooks', __name__, url_prefix='/api/webhooks')


@webhook_bp.route('/stripe', methods=['POST'])
def stripe_webhook():
    """Handle Stripe webhook events.

    Anything that reached us is acknowledged with 200, including payloads we
    cannot parse and events whose processing failed locally: the provider
    retrying the same bytes would not help, and failures are logged instead.
    """
    payload = request.get_data()
    try:
        data = current_app.extensions['payment_gateway'].construct_event(
            payload, request.headers.get('Stripe-Signature')
        )
        event = parse_stripe_event(data)
    except (MalformedWebhook, ValueError, RecursionError) as e:
        logger.warning(f"Discarding webhook payload: {str(e)}")
        return jsonify({'received': True}), HTTPStatus.OK

    WebhookReconciler().handle_notification(event)
    return jsonify({'received': True}), HTTPStatus.OK
