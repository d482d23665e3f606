from tunebox.extensions.extension import db
from tunebox.utils.clock import utcnow
import uuid


class Subscription(db.Model):
    """One paid subscription period; append-only history"""
    __tablename__ = 'subscriptions'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.Uuid, db.ForeignKey('users.id'), nullable=False, index=True)
    payment_id = db.Column(db.Uuid, db.ForeignKey('payments.id'), nullable=True)
    price = db.Column(db.Integer, nullable=False)
    started_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    auto_renewal = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', backref=db.backref('subscriptions', lazy=True))

    def to_dict(self):
        return {
            'id': str(self.id),
            'price': self.price,
            'startedAt': self.started_at.isoformat(),
            'expiresAt': self.expires_at.isoformat(),
            'autoRenewal': self.auto_renewal,
        }
