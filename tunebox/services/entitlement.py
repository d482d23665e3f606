"""Decides whether a user may play a track right now, and why."""
from dataclasses import dataclass
import enum
import logging

from tunebox.extensions.extension import db
from tunebox.models.daily_play_limit import DailyPlayLimit
from tunebox.models.purchase import Purchase
from tunebox.models.user import User
from tunebox.utils.clock import reference_date, utcnow

logger = logging.getLogger(__name__)


class PlayReason(enum.Enum):
    subscription = 'subscription'
    purchased = 'purchased'
    free_limit = 'free_limit'
    limit_exceeded = 'limit_exceeded'


@dataclass(frozen=True)
class PlayDecision:
    can_play: bool
    reason: PlayReason
    remaining_plays: int = None
    subscription_until: object = None

    @property
    def counts_against_limit(self):
        return self.reason is PlayReason.free_limit

    def to_dict(self):
        result = {'canPlay': self.can_play, 'reason': self.reason.value}
        if self.remaining_plays is not None:
            result['remainingPlays'] = self.remaining_plays
        if self.subscription_until is not None:
            result['subscriptionUntil'] = self.subscription_until.isoformat()
        return result


DENIED_UNKNOWN_USER = PlayDecision(can_play=False, reason=PlayReason.limit_exceeded)


class EntitlementEngine:
    """Read-only evaluation of play rights.

    Rules are checked in priority order: active subscription, purchase of
    the track, remaining free plays for the current reference day. The
    caller guarantees the track exists and is published.
    """

    def __init__(self, settings_provider, clock=utcnow):
        self.settings_provider = settings_provider
        self.clock = clock

    def evaluate(self, user_id, track_id):
        now = self.clock()
        user = db.session.get(User, user_id)
        if user is None:
            logger.warning(f"Play check for unknown user {user_id}, denying")
            return DENIED_UNKNOWN_USER

        if user.has_active_subscription(now):
            return PlayDecision(
                can_play=True,
                reason=PlayReason.subscription,
                subscription_until=user.subscription_until,
            )

        owned = db.session.query(Purchase.id).filter_by(user_id=user_id, track_id=track_id).first()
        if owned is not None:
            return PlayDecision(can_play=True, reason=PlayReason.purchased)

        daily_limit = self.settings_provider.get_settings().daily_play_limit
        current_count = self.current_count(user_id, track_id, now)
        remaining = max(0, daily_limit - current_count)
        if remaining > 0:
            return PlayDecision(can_play=True, reason=PlayReason.free_limit, remaining_plays=remaining)

        return PlayDecision(can_play=False, reason=PlayReason.limit_exceeded, remaining_plays=0)

    def current_count(self, user_id, track_id, now=None):
        day = reference_date(now or self.clock())
        count = db.session.query(DailyPlayLimit.play_count).filter_by(
            user_id=user_id, track_id=track_id, date=day
        ).scalar()
        return count or 0
