"""Verification of Telegram Mini App ``initData``.

See https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app
"""
import hashlib
import hmac
import json
import logging
import time
from urllib.parse import parse_qsl

from tunebox.errors import Unauthorized

logger = logging.getLogger(__name__)


def _data_check_string(fields):
    return '\n'.join(f"{key}={fields[key]}" for key in sorted(fields))


def sign_init_data(fields, bot_token):
    """Hash Telegram attaches to ``fields`` when signed for ``bot_token``"""
    secret_key = hmac.new(b'WebAppData', bot_token.encode('utf-8'), hashlib.sha256).digest()
    return hmac.new(secret_key, _data_check_string(fields).encode('utf-8'), hashlib.sha256).hexdigest()


def validate_init_data(init_data, bot_token, max_age_seconds=86400, now=None):
    """Check the signature and age of ``init_data`` and return its ``user`` object"""
    if not bot_token:
        logger.error("TELEGRAM_BOT_TOKEN is not set, rejecting login")
        raise Unauthorized('Telegram login is not configured')
    if not isinstance(init_data, str) or not init_data:
        raise Unauthorized('No init data provided')

    fields = dict(parse_qsl(init_data, keep_blank_values=True))
    received_hash = fields.pop('hash', None)
    if not received_hash:
        raise Unauthorized('Invalid init data')

    expected = sign_init_data(fields, bot_token).encode('utf-8')
    if not hmac.compare_digest(expected, received_hash.encode('utf-8')):
        logger.warning("Rejected Telegram init data with a bad hash")
        raise Unauthorized('Invalid init data')

    try:
        auth_date = int(fields.get('auth_date', '0'))
    except ValueError:
        raise Unauthorized('Invalid init data')
    now = now if now is not None else time.time()
    if now - auth_date > max_age_seconds:
        raise Unauthorized('Init data expired')

    try:
        user = json.loads(fields.get('user', ''))
    except ValueError:
        raise Unauthorized('Invalid init data')
    if not isinstance(user, dict) or not isinstance(user.get('id'), int):
        raise Unauthorized('Invalid init data')
    return user


def parse_admin_ids(value):
    return {item.strip() for item in (value or '').split(',') if item.strip()}
