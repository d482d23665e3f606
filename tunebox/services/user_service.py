import logging

from sqlalchemy.exc import IntegrityError

from tunebox.extensions.extension import db
from tunebox.models.user import User

logger = logging.getLogger(__name__)

# Telegram user object key -> User attribute
PROFILE_FIELDS = {
    'username': 'username',
    'first_name': 'first_name',
    'last_name': 'last_name',
    'photo_url': 'photo_url',
    'language_code': 'language_code',
}


def sync_telegram_user(profile, admin_ids=()):
    """Find or create the user for a verified Telegram profile and refresh it.

    ``profile`` is the ``user`` object from validated init data. The admin
    flag follows ``admin_ids`` (Telegram ids as strings) on every login.
    """
    telegram_id = int(profile['id'])
    values = {attr: profile.get(key) for key, attr in PROFILE_FIELDS.items()}
    values['is_admin'] = str(telegram_id) in admin_ids

    user = User.query.filter_by(telegram_id=telegram_id).first()
    if user is None:
        try:
            user = User(telegram_id=telegram_id, **values)
            db.session.add(user)
            db.session.commit()
            logger.info(f"Created user {user.id} for Telegram id {telegram_id}")
            return user
        except IntegrityError:
            # Concurrent first login already inserted the row
            db.session.rollback()
            user = User.query.filter_by(telegram_id=telegram_id).one()

    changed = {attr: value for attr, value in values.items() if getattr(user, attr) != value}
    if changed:
        for attr, value in changed.items():
            setattr(user, attr, value)
        db.session.commit()
        logger.info(f"Updated {sorted(changed)} for user {user.id}")
    return user
