import pytest

from tunebox import create_app


def test_production_refuses_to_start_without_webhook_secret(tmp_path):
    with pytest.raises(RuntimeError, match='STRIPE_WEBHOOK_SECRET'):
        create_app('production', {
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'prod.db'}",
            'STRIPE_WEBHOOK_SECRET': None,
        })


def test_staging_refuses_to_start_without_webhook_secret(tmp_path):
    with pytest.raises(RuntimeError):
        create_app('staging', {
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'staging.db'}",
            'STRIPE_WEBHOOK_SECRET': '',
        })


def test_production_starts_with_webhook_secret(tmp_path):
    app = create_app('production', {
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'prod.db'}",
        'STRIPE_WEBHOOK_SECRET': 'whsec_live',
    })

    assert app.config['TESTING'] is False
    assert app.extensions['payment_gateway'].webhook_secret == 'whsec_live'
    assert 'auth' in app.blueprints
