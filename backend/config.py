import os


def _database_uri():
    url = os.environ.get('DATABASE_URL') or 'sqlite:///cipher_lab.db'
    # Heroku/Render style URLs need the explicit SQLAlchemy dialect + driver
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql+psycopg://', 1)
    elif url.startswith('postgresql://'):
        url = url.replace('postgresql://', 'postgresql+psycopg://', 1)
    return url


class Config:
    """Base configuration class"""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'cipher-lab-secret-key-change-in-production'
    FLASK_ENV = os.environ.get('FLASK_ENV') or 'development'
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'

    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Storage retry policy (transient database errors only)
    RETRY_ATTEMPTS = 3
    RETRY_DELAY = 0.5
    RETRY_BACKOFF = 1.5

    HISTORY_DEFAULT_LIMIT = 10
    HISTORY_MAX_LIMIT = 100


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    # Pool settings only apply to server databases; SQLite keeps its default pool
    if not Config.SQLALCHEMY_DATABASE_URI.startswith('sqlite'):
        SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_size': 20,
            'max_overflow': 0,
            'pool_timeout': 10,
            'pool_recycle': 1800,
            'pool_pre_ping': True,
        }


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RETRY_DELAY = 0


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
