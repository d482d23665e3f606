from tunebox.extensions.extension import db
from tunebox.utils.clock import utcnow
import uuid


class DailyPlayLimit(db.Model):
    """Free-tier plays of one track by one user on one reference day.

    No row for today means zero plays; there is no reset job.
    """
    __tablename__ = 'daily_play_limits'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.Uuid, db.ForeignKey('users.id'), nullable=False)
    track_id = db.Column(db.Uuid, db.ForeignKey('tracks.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    play_count = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'track_id', 'date', name='uq_daily_play_limit'),
    )
