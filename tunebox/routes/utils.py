from functools import wraps
from http import HTTPStatus
import logging
import uuid

from flask import current_app, jsonify

from tunebox.extensions.extension import db
from tunebox.errors import BadRequest, TuneboxError
from tunebox.services.entitlement import EntitlementEngine
from tunebox.services.payment_orchestrator import PaymentOrchestrator
from tunebox.services.play_recorder import PlayRecorder
from tunebox.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)


def handle_errors(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except TuneboxError as e:
            db.session.rollback()
            return jsonify(e.to_dict()), e.status
        except Exception:
            db.session.rollback()
            logger.exception(f"Unhandled error in {f.__name__}")
            return jsonify({'error': 'Internal server error'}), HTTPStatus.INTERNAL_SERVER_ERROR
    return decorated_function


def parse_uuid(value, field_name):
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise BadRequest(f"Invalid {field_name} format")


def get_pagination_args(request, default_per_page=20, max_per_page=50):
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = request.args.get('per_page', default_per_page, type=int)
    return page, min(max(per_page, 1), max_per_page)


def entitlement_engine():
    return EntitlementEngine(SettingsStore())


def play_recorder():
    return PlayRecorder()


def payment_orchestrator():
    return PaymentOrchestrator(
        SettingsStore(),
        current_app.extensions['payment_gateway'],
        current_app.config['FRONTEND_URL'],
    )
