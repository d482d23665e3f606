"""Creates provider-hosted checkout sessions backed by a local payment row."""
from dataclasses import dataclass
import logging
import uuid

from tunebox.extensions.extension import db
from tunebox.errors import AlreadyOwned, BadRequest, Forbidden, InvalidType, NotFound
from tunebox.models.payment import Payment, PaymentStatus, PaymentType
from tunebox.models.purchase import Purchase
from tunebox.models.track import Track

logger = logging.getLogger(__name__)

SUBSCRIPTION_DESCRIPTION = 'Music service subscription (1 month)'


@dataclass
class CheckoutResult:
    payment_id: uuid.UUID
    redirect_url: str
    amount: int
    description: str

    def to_dict(self):
        return {
            'paymentId': str(self.payment_id),
            'redirectUrl': self.redirect_url,
            'amount': self.amount,
            'description': self.description,
        }


def parse_payment_type(value):
    try:
        return PaymentType(value)
    except ValueError:
        raise InvalidType()


class PaymentOrchestrator:

    def __init__(self, settings_provider, gateway, frontend_url):
        self.settings_provider = settings_provider
        self.gateway = gateway
        self.frontend_url = frontend_url.rstrip('/')

    def create_checkout(self, user_id, payment_type, track_id=None, enable_auto_renewal=False):
        """Validate, persist a pending payment, then open a provider session.

        If the provider call fails the payment stays ``pending`` without a
        provider id; it is never rolled back because the provider may have
        created the session anyway.
        """
        if not isinstance(payment_type, PaymentType):
            payment_type = parse_payment_type(payment_type)

        save_payment_method = False
        if payment_type is PaymentType.subscription:
            amount = self.settings_provider.get_settings().subscription_price
            description = SUBSCRIPTION_DESCRIPTION
            save_payment_method = bool(enable_auto_renewal)
            track_id = None
        else:
            if track_id is None:
                raise BadRequest('Track ID required for track purchase')
            track = Track.get_published(track_id)
            if track is None:
                raise NotFound('Track not found')
            owned = Purchase.query.filter_by(user_id=user_id, track_id=track_id).first()
            if owned is not None:
                raise AlreadyOwned()
            amount = track.price
            description = f"Track purchase: {track.artist} - {track.title}"

        payment = Payment(
            user_id=user_id,
            type=payment_type,
            track_id=track_id,
            amount=amount,
            description=description,
            status=PaymentStatus.pending,
            enable_auto_renewal=save_payment_method,
        )
        db.session.add(payment)
        db.session.commit()

        return_url = f"{self.frontend_url}/payment/status?id={payment.id}"
        session = self.gateway.create_checkout_session(
            amount=amount,
            description=description,
            return_url=return_url,
            cancel_url=return_url,
            metadata={
                'payment_id': str(payment.id),
                'user_id': str(user_id),
                'type': payment_type.value,
                'track_id': str(track_id) if track_id else '',
                'enable_auto_renewal': 'true' if save_payment_method else 'false',
            },
            idempotency_key=str(uuid.uuid4()),
            save_payment_method=save_payment_method,
        )

        payment.provider_payment_id = session.provider_id
        payment.provider_data = session.raw
        db.session.commit()
        logger.info(f"Checkout {session.provider_id} opened for payment {payment.id} ({payment_type.value}, {amount})")

        return CheckoutResult(
            payment_id=payment.id,
            redirect_url=session.redirect_url,
            amount=amount,
            description=description,
        )

    @staticmethod
    def get_payment_status(payment_id, requesting_user_id):
        payment = db.session.get(Payment, payment_id)
        if payment is None:
            raise NotFound('Payment not found')
        if payment.user_id != requesting_user_id:
            raise Forbidden()
        return payment
