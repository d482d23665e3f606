"""Applies asynchronous payment notifications to local state.

Deliveries are at-least-once and may arrive out of order, so every status
change is a conditional update guarded by the payment state machine, and a
purchase insert is backed by the (user, track) uniqueness constraint.
"""
from dataclasses import dataclass, field
from datetime import timedelta
import enum
import logging

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from tunebox.extensions.extension import db
from tunebox.errors import MalformedWebhook, NotFound
from tunebox.models.payment import ALLOWED_SOURCES, Payment, PaymentStatus, PaymentType, can_transition
from tunebox.models.purchase import Purchase
from tunebox.models.subscription import Subscription
from tunebox.models.user import User
from tunebox.utils.clock import utcnow

logger = logging.getLogger(__name__)

SUBSCRIPTION_PERIOD = timedelta(days=30)
MAX_EXTEND_ATTEMPTS = 5


class EventKind(enum.Enum):
    succeeded = 'succeeded'
    canceled = 'canceled'
    refund_succeeded = 'refund_succeeded'
    ignored = 'ignored'


class Outcome(enum.Enum):
    applied = 'applied'
    duplicate = 'duplicate'
    rejected = 'rejected'
    ignored = 'ignored'
    unknown_payment = 'unknown_payment'
    failed = 'failed'


STRIPE_EVENT_KINDS = {
    'checkout.session.completed': EventKind.succeeded,
    'checkout.session.async_payment_succeeded': EventKind.succeeded,
    'checkout.session.expired': EventKind.canceled,
    'checkout.session.async_payment_failed': EventKind.canceled,
    'charge.refunded': EventKind.refund_succeeded,
}


@dataclass(frozen=True)
class ProviderEvent:
    kind: EventKind
    event_type: str
    provider_id: str = None
    intent_id: str = None
    payload: dict = field(default_factory=dict)


def parse_stripe_event(payload):
    """Turn a decoded Stripe event into a ``ProviderEvent``.

    Unrecognised event types become ``EventKind.ignored``; a payload that
    does not have the shape of a Stripe event raises ``MalformedWebhook``.
    """
    if not isinstance(payload, dict):
        raise MalformedWebhook()
    event_type = payload.get('type')
    data = payload.get('data')
    obj = data.get('object') if isinstance(data, dict) else None
    if not isinstance(event_type, str) or not isinstance(obj, dict):
        raise MalformedWebhook()

    kind = STRIPE_EVENT_KINDS.get(event_type, EventKind.ignored)

    # Delayed payment methods complete the session before the money arrives;
    # async_payment_succeeded follows in that case.
    if event_type == 'checkout.session.completed' and obj.get('payment_status') != 'paid':
        kind = EventKind.ignored

    if kind is EventKind.refund_succeeded:
        if not obj.get('refunded'):
            kind = EventKind.ignored
        provider_id = obj.get('payment_intent')
        intent_id = provider_id
    else:
        provider_id = obj.get('id')
        intent_id = obj.get('payment_intent')

    if kind is not EventKind.ignored and (not isinstance(provider_id, str) or not provider_id):
        raise MalformedWebhook('Webhook object carries no provider identifier')

    return ProviderEvent(
        kind=kind,
        event_type=event_type,
        provider_id=provider_id,
        intent_id=intent_id if isinstance(intent_id, str) else None,
        payload=obj,
    )


class WebhookReconciler:

    def __init__(self, clock=utcnow):
        self.clock = clock
        self._handlers = {
            EventKind.succeeded: self._handle_succeeded,
            EventKind.canceled: self._handle_canceled,
            EventKind.refund_succeeded: self._handle_refund_succeeded,
        }

    def handle_notification(self, event):
        logger.info(f"Webhook {event.event_type} received for {event.provider_id}")
        handler = self._handlers.get(event.kind)
        if handler is None:
            logger.info(f"Ignoring webhook event {event.event_type}")
            return Outcome.ignored

        payment = self.find_payment(event.provider_id)
        if payment is None:
            logger.warning(f"No payment found for provider id {event.provider_id}")
            return Outcome.unknown_payment

        # From here on the notification counts as received; local failures
        # are logged instead of being reported back to the provider.
        try:
            return handler(payment, event)
        except Exception:
            db.session.rollback()
            logger.exception(f"Failed to apply {event.event_type} to payment {payment.id}")
            return Outcome.failed

    @staticmethod
    def find_payment(provider_id):
        return Payment.query.filter(
            or_(
                Payment.provider_payment_id == provider_id,
                Payment.provider_intent_id == provider_id,
            )
        ).first()

    @staticmethod
    def _current_status(payment_id):
        return db.session.query(Payment.status).filter(Payment.id == payment_id).scalar()

    def _transition(self, payment, target, event, **values):
        """Move ``payment`` to ``target`` only if its stored status allows it"""
        if not can_transition(payment.status, target):
            return False
        values.update(status=target, provider_data=event.payload, updated_at=self.clock())
        result = db.session.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status.in_(ALLOWED_SOURCES[target]))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _handle_succeeded(self, payment, event):
        if payment.status is PaymentStatus.success:
            logger.info(f"Payment {payment.id} already succeeded, skipping duplicate delivery")
            return Outcome.duplicate

        extra = {'provider_intent_id': event.intent_id} if event.intent_id else {}
        if not self._transition(payment, PaymentStatus.success, event, **extra):
            db.session.rollback()
            if self._current_status(payment.id) is PaymentStatus.success:
                logger.info(f"Payment {payment.id} was completed by a concurrent delivery")
                return Outcome.duplicate
            logger.warning(f"Payment {payment.id} cannot succeed from its current status, ignoring")
            return Outcome.rejected

        now = self.clock()
        if payment.type is PaymentType.subscription:
            until = self._grant_subscription(payment, now)
            logger.info(f"Subscription activated for user {payment.user_id} until {until}")
        elif payment.type is PaymentType.track:
            if self._grant_purchase(payment):
                logger.info(f"Track {payment.track_id} purchased by user {payment.user_id}")

        db.session.commit()
        return Outcome.applied

    def _grant_subscription(self, payment, now):
        db.session.add(Subscription(
            user_id=payment.user_id,
            payment_id=payment.id,
            price=payment.amount,
            started_at=now,
            expires_at=now + SUBSCRIPTION_PERIOD,
            auto_renewal=payment.enable_auto_renewal,
        ))
        return self._extend_subscription(payment.user_id, now)

    def _extend_subscription(self, user_id, now):
        # Compare-and-set so concurrent renewals each add a full period
        for _ in range(MAX_EXTEND_ATTEMPTS):
            row = db.session.query(User.subscription_until).filter(User.id == user_id).first()
            if row is None:
                raise NotFound(f"User {user_id} not found")
            current = row.subscription_until
            base = current if current is not None and current > now else now
            new_until = base + SUBSCRIPTION_PERIOD
            unchanged = User.subscription_until.is_(None) if current is None else User.subscription_until == current
            result = db.session.execute(
                update(User)
                .where(User.id == user_id, unchanged)
                .values(subscription_until=new_until, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return new_until
        raise RuntimeError(f"Could not extend subscription of user {user_id}")

    def _grant_purchase(self, payment):
        try:
            with db.session.begin_nested():
                db.session.add(Purchase(
                    user_id=payment.user_id,
                    track_id=payment.track_id,
                    price=payment.amount,
                    payment_id=payment.id,
                ))
        except IntegrityError:
            logger.error(
                f"User {payment.user_id} already owns track {payment.track_id}; "
                f"payment {payment.id} succeeded without a new purchase and needs a manual refund"
            )
            return False
        return True

    def _handle_canceled(self, payment, event):
        if payment.status is PaymentStatus.failed:
            return Outcome.duplicate
        if not self._transition(payment, PaymentStatus.failed, event):
            db.session.rollback()
            if self._current_status(payment.id) is PaymentStatus.failed:
                return Outcome.duplicate
            logger.warning(f"Payment {payment.id} is {payment.status.value}, cannot mark it failed")
            return Outcome.rejected
        db.session.commit()
        return Outcome.applied

    def _handle_refund_succeeded(self, payment, event):
        if payment.status is PaymentStatus.refunded:
            return Outcome.duplicate
        if not self._transition(payment, PaymentStatus.refunded, event):
            db.session.rollback()
            if self._current_status(payment.id) is PaymentStatus.refunded:
                return Outcome.duplicate
            logger.warning(f"Payment {payment.id} is {payment.status.value}, cannot mark it refunded")
            return Outcome.rejected
        db.session.commit()
        # Access is not revoked here; refunds are reviewed by an admin who
        # removes the purchase or shortens the subscription by hand.
        logger.info(f"Payment {payment.id} refunded")
        return Outcome.applied
