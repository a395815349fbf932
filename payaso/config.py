import os
from datetime import timedelta


class Config:
    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///payaso.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Which data service backs the API: 'sql' or 'memory' (demo data)
    DATA_BACKEND = os.getenv('DATA_BACKEND', 'sql')

    # JWT
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'your-secret-key-change-in-production')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_HEADER_NAME = 'Authorization'
    JWT_HEADER_TYPE = 'Bearer'
    JWT_COOKIE_SECURE = True
    JWT_COOKIE_CSRF_PROTECT = True
    JWT_COOKIE_SAMESITE = 'Lax'
    JWT_ACCESS_COOKIE_NAME = 'access_token_cookie'

    # Login throttling
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    LOGIN_RATE_LIMIT = '10 per 15 minutes'

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')

    # Password Policy
    PASSWORD_MIN_LENGTH = 6
    DEMO_PASSWORD = os.getenv('DEMO_PASSWORD', 'payaso123')

    # Dues
    MONTHLY_FEE = int(os.getenv('MONTHLY_FEE', 5000))

    # Graduation thresholds
    GRADUATION_REQUIRED_HOURS = 20
    GRADUATION_REQUIRED_VISITS = 5
    HOURS_PER_TRAINING = 2

    # Events
    TRAINING_DEFAULT_CAPACITY = 50
    CHAT_POLL_SECONDS = 5
    TOP_LOCATIONS = 5
    HISTORY_PAGE_SIZE = 5

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')


class DevelopmentConfig(Config):
    DEBUG = True
    JWT_COOKIE_SECURE = False  # allow plain HTTP while developing
    JWT_COOKIE_CSRF_PROTECT = False


class ProductionConfig(Config):
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    PREFERRED_URL_SCHEME = 'https'


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    DATA_BACKEND = 'memory'
    JWT_SECRET_KEY = 'testing-secret-key-with-enough-length'
    JWT_COOKIE_SECURE = False
    JWT_COOKIE_CSRF_PROTECT = False
    RATELIMIT_ENABLED = False
    LOG_FILE = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
