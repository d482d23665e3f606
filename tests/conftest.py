from datetime import datetime, timedelta
import itertools
import json
import uuid

import pytest
from flask_jwt_extended import create_access_token

from tunebox import create_app
from tunebox.extensions.extension import db
from tunebox.models import Payment, PaymentStatus, PaymentType, Purchase, Setting, Track, User
from tunebox.services.stripe_service import CheckoutSession

_telegram_ids = itertools.count(100000)


class FakeGateway:
    """Stands in for StripeService; records every checkout request"""

    def __init__(self):
        self.calls = []
        self.fail_with = None

    def create_checkout_session(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail_with is not None:
            raise self.fail_with
        provider_id = f"cs_test_{uuid.uuid4().hex}"
        return CheckoutSession(
            provider_id=provider_id,
            redirect_url=f"https://checkout.stripe.test/pay/{provider_id}",
            raw={'id': provider_id, 'object': 'checkout.session'},
        )

    def construct_event(self, payload, signature):
        return json.loads(payload)


class FakeStorage:
    def get_stream_url(self, file_path, expires_in):
        return f"https://storage.test/{file_path}?expires={expires_in}"


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def app(tmp_path):
    app = create_app('testing', {
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'tunebox.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
    })
    app.extensions['payment_gateway'] = FakeGateway()
    app.extensions['storage'] = FakeStorage()

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app):
    return app.extensions['payment_gateway']


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 3, 10, 12, 0, 0))


@pytest.fixture
def make_user(app):
    def _make_user(**kwargs):
        kwargs.setdefault('telegram_id', next(_telegram_ids))
        kwargs.setdefault('username', f"listener{kwargs['telegram_id']}")
        user = User(**kwargs)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def make_track(app):
    def _make_track(**kwargs):
        kwargs.setdefault('title', 'Night Drive')
        kwargs.setdefault('artist', 'Neon Coast')
        kwargs.setdefault('price', 9900)
        kwargs.setdefault('is_published', True)
        kwargs.setdefault('file_path', f"tracks/{uuid.uuid4().hex}.mp3")
        track = Track(**kwargs)
        db.session.add(track)
        db.session.commit()
        return track
    return _make_track


@pytest.fixture
def make_payment(app):
    def _make_payment(user, payment_type=PaymentType.track, track=None, **kwargs):
        kwargs.setdefault('amount', track.price if track else 29900)
        kwargs.setdefault('status', PaymentStatus.pending)
        kwargs.setdefault('provider_payment_id', f"cs_test_{uuid.uuid4().hex}")
        payment = Payment(
            user_id=user.id,
            type=payment_type,
            track_id=track.id if track else None,
            **kwargs
        )
        db.session.add(payment)
        db.session.commit()
        return payment
    return _make_payment


@pytest.fixture
def make_purchase(app):
    def _make_purchase(user, track):
        purchase = Purchase(user_id=user.id, track_id=track.id, price=track.price)
        db.session.add(purchase)
        db.session.commit()
        return purchase
    return _make_purchase


@pytest.fixture
def set_setting(app):
    def _set_setting(key, value):
        row = db.session.get(Setting, key)
        if row is None:
            db.session.add(Setting(key=key, value=str(value)))
        else:
            row.value = str(value)
        db.session.commit()
    return _set_setting


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user):
        return {'Authorization': f"Bearer {create_access_token(identity=user)}"}
    return _auth_headers
