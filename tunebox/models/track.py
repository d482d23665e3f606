from tunebox.extensions.extension import db
from tunebox.utils.clock import utcnow
import uuid


class Track(db.Model):
    __tablename__ = 'tracks'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    title = db.Column(db.String, nullable=False)
    artist = db.Column(db.String, nullable=False)
    duration = db.Column(db.Integer)
    # Minor currency units
    price = db.Column(db.Integer, nullable=False)
    is_published = db.Column(db.Boolean, default=False, nullable=False)
    play_count = db.Column(db.Integer, default=0, nullable=False)
    file_path = db.Column(db.String, nullable=False)
    cover_path = db.Column(db.String, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @classmethod
    def get_published(cls, track_id):
        return cls.query.filter_by(id=track_id, is_published=True).first()

    def to_summary(self):
        return {
            'id': str(self.id),
            'title': self.title,
            'artist': self.artist,
            'duration': self.duration,
        }

    def __repr__(self):
        return f'<Track {self.artist} - {self.title}>'
