from datetime import timedelta
import logging

import click
from flask import Flask
from flask_cors import CORS

from tunebox.extensions.extension import db, jwt, migrate


def create_app(config_name='default', config_overrides=None):
    from tunebox.config import config_by_name
    from tunebox.services.s3_service import S3Service
    from tunebox.services.stripe_service import StripeService

    # Initialize app
    app = Flask(__name__)
    CORS(app)

    app.config.from_object(config_by_name[config_name])
    if config_overrides:
        app.config.update(config_overrides)
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=app.config['JWT_ACCESS_TOKEN_HOURS'])

    # Webhook signatures are mandatory outside of testing
    if not app.config['TESTING'] and not app.config.get('STRIPE_WEBHOOK_SECRET'):
        raise RuntimeError('STRIPE_WEBHOOK_SECRET must be set outside of testing')

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Initialize extensions with app
    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    # External collaborators, replaceable in tests
    app.extensions['payment_gateway'] = StripeService.from_config(app.config)
    app.extensions['storage'] = S3Service.from_config(app.config)

    # Import JWT utils to register the loaders
    from tunebox.utils import jwt_utils  # noqa: F401

    # Register blueprints
    from tunebox.routes.auth.auth import auth_bp
    from tunebox.routes.tracks.playback import playback_bp
    from tunebox.routes.payments.checkout import payments_bp
    from tunebox.routes.payments.webhooks import webhook_bp
    from tunebox.routes.user.account import account_bp
    from tunebox.routes.admin.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(playback_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(admin_bp)

    @app.route('/')
    def index():
        return "Welcome to the API"

    @app.cli.command('expire-stale-payments')
    @click.option('--hours', type=int, default=None, help='Age after which an orphaned pending payment fails.')
    def expire_stale_payments_command(hours):
        """Mark pending payments that never reached the provider as failed."""
        from tunebox.services.payment_maintenance import expire_stale_payments
        count = expire_stale_payments(hours if hours is not None else app.config['STALE_PAYMENT_HOURS'])
        click.echo(f"Expired {count} stale payments")

    import tunebox.models  # noqa: F401

    # Create database tables
    with app.app_context():
        db.create_all()

    return app
