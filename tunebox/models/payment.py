from tunebox.extensions.extension import db
from tunebox.utils.clock import utcnow
import enum
import uuid


class PaymentType(enum.Enum):
    subscription = 'subscription'
    track = 'track'


class PaymentStatus(enum.Enum):
    pending = 'pending'
    success = 'success'
    failed = 'failed'
    refunded = 'refunded'


# Target status -> statuses it may be reached from
ALLOWED_SOURCES = {
    PaymentStatus.success: (PaymentStatus.pending,),
    PaymentStatus.failed: (PaymentStatus.pending,),
    PaymentStatus.refunded: (PaymentStatus.success,),
}


def can_transition(current, target):
    return current in ALLOWED_SOURCES.get(target, ())


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.Uuid, db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.Enum(PaymentType), nullable=False)
    track_id = db.Column(db.Uuid, db.ForeignKey('tracks.id'), nullable=True)
    amount = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String, nullable=True)
    status = db.Column(db.Enum(PaymentStatus), default=PaymentStatus.pending, nullable=False)
    # Checkout Session id, set once the provider session exists
    provider_payment_id = db.Column(db.String(255), unique=True, nullable=True)
    # PaymentIntent id, learned when the session is paid; refunds reference it
    provider_intent_id = db.Column(db.String(255), unique=True, nullable=True)
    provider_data = db.Column(db.JSON, nullable=True)
    enable_auto_renewal = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship('User', backref=db.backref('payments', lazy=True))
    track = db.relationship('Track', backref=db.backref('payments', lazy=True))

    def to_summary(self):
        return {
            'id': str(self.id),
            'type': self.type.value,
            'amount': self.amount,
            'status': self.status.value,
            'track': self.track.to_summary() if self.track else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Payment {self.id} {self.status.value}>'
