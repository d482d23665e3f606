from datetime import timedelta
import logging

from sqlalchemy import update

from tunebox.extensions.extension import db
from tunebox.models.payment import Payment, PaymentStatus
from tunebox.utils.clock import utcnow

logger = logging.getLogger(__name__)


def expire_stale_payments(older_than_hours, now=None):
    """Fail pending payments whose provider session was never recorded.

    Payments that do carry a provider id are left alone: the provider may
    still deliver a notification for them.
    """
    now = now or utcnow()
    cutoff = now - timedelta(hours=older_than_hours)
    result = db.session.execute(
        update(Payment)
        .where(
            Payment.status == PaymentStatus.pending,
            Payment.provider_payment_id.is_(None),
            Payment.created_at < cutoff,
        )
        .values(status=PaymentStatus.failed, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    if result.rowcount:
        logger.info(f"Marked {result.rowcount} orphaned pending payments as failed")
    return result.rowcount
