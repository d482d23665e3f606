import logging
import uuid

from sqlalchemy import update

from tunebox.extensions.extension import db
from tunebox.models.daily_play_limit import DailyPlayLimit
from tunebox.models.play_history import PlayHistory
from tunebox.models.track import Track
from tunebox.utils.clock import reference_date, utcnow

logger = logging.getLogger(__name__)


def _dialect_insert():
    dialect = db.engine.dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"No atomic upsert available for dialect {dialect}")
    return insert


class PlayRecorder:
    """Commits plays that the entitlement engine already granted."""

    def __init__(self, clock=utcnow):
        self.clock = clock

    def record_granted_play(self, user_id, track_id, decision):
        now = self.clock()
        if decision.counts_against_limit:
            self._increment_daily_counter(user_id, track_id, reference_date(now), now)

        entry = PlayHistory(user_id=user_id, track_id=track_id, played_at=now)
        db.session.add(entry)
        db.session.execute(
            update(Track)
            .where(Track.id == track_id)
            .values(play_count=Track.play_count + 1)
        )
        db.session.commit()
        return entry

    def _increment_daily_counter(self, user_id, track_id, day, now):
        # Single statement so concurrent plays can never both start from zero
        insert = _dialect_insert()
        stmt = insert(DailyPlayLimit).values(
            id=uuid.uuid4(),
            user_id=user_id,
            track_id=track_id,
            date=day,
            play_count=1,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=['user_id', 'track_id', 'date'],
            set_={'play_count': DailyPlayLimit.play_count + 1},
        )
        db.session.execute(stmt)

    def record_completion(self, user_id, track_id):
        last_play = PlayHistory.query.filter_by(
            user_id=user_id, track_id=track_id
        ).order_by(PlayHistory.played_at.desc()).first()

        if last_play is None:
            logger.debug(f"Completion for {track_id} by {user_id} without a recorded play")
            return None

        last_play.completed = True
        db.session.commit()
        return last_play
