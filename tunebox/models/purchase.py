from tunebox.extensions.extension import db
from tunebox.utils.clock import utcnow
import uuid


class Purchase(db.Model):
    __tablename__ = 'purchases'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.Uuid, db.ForeignKey('users.id'), nullable=False)
    track_id = db.Column(db.Uuid, db.ForeignKey('tracks.id'), nullable=False)
    price = db.Column(db.Integer, nullable=False)
    payment_id = db.Column(db.Uuid, db.ForeignKey('payments.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', backref=db.backref('purchases', lazy=True))
    track = db.relationship('Track', backref=db.backref('purchases', lazy=True))

    __table_args__ = (
        db.UniqueConstraint('user_id', 'track_id', name='uq_purchase_user_track'),
    )
