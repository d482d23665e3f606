from dataclasses import dataclass, fields, replace
import logging

from tunebox.extensions.extension import db
from tunebox.errors import BadRequest
from tunebox.models.setting import Setting

logger = logging.getLogger(__name__)

MAX_PRICE = 100_000_000
MAX_DAILY_PLAY_LIMIT = 100


@dataclass(frozen=True)
class AppSettings:
    """Tunable business parameters; prices are in minor currency units"""
    subscription_price: int = 29900
    daily_play_limit: int = 1
    default_track_price: int = 9900
    support_email: str = 'support@example.com'
    support_telegram: str = '@support'

    def to_dict(self):
        return {
            'subscriptionPrice': self.subscription_price,
            'dailyPlayLimit': self.daily_play_limit,
            'defaultTrackPrice': self.default_track_price,
            'supportEmail': self.support_email,
            'supportTelegram': self.support_telegram,
        }


DEFAULT_SETTINGS = AppSettings()

_FIELD_TYPES = {f.name: f.type for f in fields(AppSettings)}
_INT_RANGES = {
    'subscription_price': (0, MAX_PRICE),
    'daily_play_limit': (0, MAX_DAILY_PLAY_LIMIT),
    'default_track_price': (0, MAX_PRICE),
}


class StaticSettings:
    """Settings provider returning a fixed value"""

    def __init__(self, settings=DEFAULT_SETTINGS, **overrides):
        self.settings = replace(settings, **overrides)

    def get_settings(self):
        return self.settings


class SettingsStore:
    """Settings provider backed by the ``settings`` table"""

    def get_settings(self):
        stored = {row.key: row.value for row in Setting.query.all()}
        values = {}
        for name, field_type in _FIELD_TYPES.items():
            raw = stored.get(name)
            if raw is None:
                continue
            if field_type is int:
                try:
                    values[name] = int(raw)
                except ValueError:
                    logger.warning(f"Ignoring non-integer setting {name}={raw!r}")
            else:
                values[name] = raw
        return replace(DEFAULT_SETTINGS, **values)

    def update_settings(self, **updates):
        unknown = set(updates) - set(_FIELD_TYPES)
        if unknown:
            raise BadRequest(f"Unknown settings: {', '.join(sorted(unknown))}")

        for name, value in updates.items():
            if name in _INT_RANGES:
                low, high = _INT_RANGES[name]
                if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
                    raise BadRequest(f"Invalid value for {name}")
            elif not isinstance(value, str):
                raise BadRequest(f"Invalid value for {name}")

        for name, value in updates.items():
            row = db.session.get(Setting, name)
            if row is None:
                db.session.add(Setting(key=name, value=str(value)))
            else:
                row.value = str(value)
        db.session.commit()
        logger.info(f"Settings updated: {sorted(updates)}")
        return self.get_settings()
