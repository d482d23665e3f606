from tunebox.extensions.extension import db
from tunebox.utils.clock import utcnow
import uuid


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    telegram_id = db.Column(db.BigInteger, unique=True, nullable=False)
    username = db.Column(db.String(100), nullable=True)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    photo_url = db.Column(db.String, nullable=True)
    language_code = db.Column(db.String(10), nullable=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    # Only source of truth for the subscription entitlement; the
    # subscriptions table is history.
    subscription_until = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def has_active_subscription(self, now):
        return self.subscription_until is not None and self.subscription_until > now

    def to_dict(self):
        return {
            'id': str(self.id),
            'telegramId': str(self.telegram_id),
            'username': self.username,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'photoUrl': self.photo_url,
            'isAdmin': self.is_admin,
            'subscriptionUntil': self.subscription_until.isoformat() if self.subscription_until else None,
        }

    def __repr__(self):
        return f'<User {self.telegram_id}>'
