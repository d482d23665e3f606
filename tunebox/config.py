import os
from dotenv import load_dotenv

load_dotenv()


def _normalize_db_url(db_url, require_ssl=False):
    """Fix Heroku-style postgres:// URLs and optionally force sslmode=require"""
    if not db_url:
        return db_url
    db_url = db_url.replace('postgres://', 'postgresql://')
    if require_ssl and db_url.startswith('postgresql') and 'sslmode=' not in db_url:
        db_url = f"{db_url}{'?' if '?' not in db_url else '&'}sslmode=require"
    return db_url


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-key-for-testing'
    DEBUG = False
    TESTING = False
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.environ.get('DATABASE_URL', ''), require_ssl=True)

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # JWT principal
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
    JWT_PRIVATE_KEY_PATH = os.environ.get('JWT_PRIVATE_KEY_PATH', 'tunebox/ssl/private_key.pem')
    JWT_PUBLIC_KEY_PATH = os.environ.get('JWT_PUBLIC_KEY_PATH', 'tunebox/ssl/public_key.pem')
    JWT_ACCESS_TOKEN_HOURS = int(os.environ.get('JWT_ACCESS_TOKEN_HOURS', 3))

    # Stripe
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET')
    STRIPE_CURRENCY = os.environ.get('STRIPE_CURRENCY', 'rub')
    STRIPE_TIMEOUT_SECONDS = int(os.environ.get('STRIPE_TIMEOUT_SECONDS', 10))
    FRONTEND_URL = os.environ.get('FRONTEND_URL') or 'http://localhost:3000'

    # Object storage for audio files
    AWS_S3_BUCKET = os.environ.get('AWS_S3_BUCKET', 'tunebox-tracks')
    AWS_REGION = os.environ.get('AWS_REGION', 'eu-north-1')
    STREAM_URL_EXPIRES = int(os.environ.get('STREAM_URL_EXPIRES', 3600))

    STALE_PAYMENT_HOURS = int(os.environ.get('STALE_PAYMENT_HOURS', 24))

    # Telegram Mini App login
    TELEGRAM_BOT_TOKEN = os.environ.get('TELEGRAM_BOT_TOKEN')
    TELEGRAM_AUTH_MAX_AGE = int(os.environ.get('TELEGRAM_AUTH_MAX_AGE', 86400))
    ADMIN_TELEGRAM_IDS = os.environ.get('ADMIN_TELEGRAM_IDS', '')


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(
        os.getenv('DEVELOPMENT_DATABASE_URL') or os.getenv('DATABASE_URL')
    ) or 'sqlite:///tunebox.db'


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.getenv('TESTING_DATABASE_URL')) or 'sqlite://'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    JWT_ALGORITHM = 'HS256'
    STRIPE_SECRET_KEY = 'sk_test_dummy'
    STRIPE_WEBHOOK_SECRET = None
    FRONTEND_URL = 'http://frontend.test'
    TELEGRAM_BOT_TOKEN = '123456:test-bot-token'
    ADMIN_TELEGRAM_IDS = '900001'


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(
        os.getenv('PRODUCTION_DATABASE_URL') or os.getenv('DATABASE_URL'), require_ssl=True
    )


class StagingConfig(Config):
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.getenv('DATABASE_URL'), require_ssl=True)


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'staging': StagingConfig,
    'default': DevelopmentConfig
}
