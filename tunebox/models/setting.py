from tunebox.extensions.extension import db
from tunebox.utils.clock import utcnow


class Setting(db.Model):
    """Key/value row of the business settings table"""
    __tablename__ = 'settings'

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
