from tunebox.extensions.extension import db
import uuid


class PlayHistory(db.Model):
    __tablename__ = 'play_history'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.Uuid, db.ForeignKey('users.id'), nullable=False)
    track_id = db.Column(db.Uuid, db.ForeignKey('tracks.id'), nullable=False)
    played_at = db.Column(db.DateTime, nullable=False)
    completed = db.Column(db.Boolean, default=False, nullable=False)

    track = db.relationship('Track', backref=db.backref('play_history', lazy=True))

    __table_args__ = (
        db.Index('ix_play_history_user_track_played', 'user_id', 'track_id', 'played_at'),
    )
