# -*- coding: utf-8 -*-
"""
Configuration - loads settings from environment variables / .env
"""
import os
from dotenv import load_dotenv

# Load .env if present
load_dotenv()


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', '5001'))
    DEBUG = False
    TESTING = False
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', str(16 * 1024 * 1024)))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'

    # Persistence
    DATA_DIR = os.getenv('DATA_DIR', os.path.join(os.getcwd(), 'data'))
    PROJECTS_DIR = os.getenv('PROJECTS_DIR', os.path.join(DATA_DIR, 'projects'))
    AUTOSAVE_PATH = os.getenv('AUTOSAVE_PATH', os.path.join(DATA_DIR, 'autosave.json'))
    AUTOSAVE_INTERVAL = int(os.getenv('AUTOSAVE_INTERVAL', '5'))  # seconds, used by clients

    # Editor sessions
    SESSION_TTL = int(os.getenv('SESSION_TTL', '3600'))  # seconds idle before a session is dropped
    MAX_SESSIONS = int(os.getenv('MAX_SESSIONS', '500'))

    # Export / sharing
    DEFAULT_DIALECT = os.getenv('DEFAULT_DIALECT', 'postgresql')
    SHARE_BASE_URL = os.getenv('SHARE_BASE_URL', 'http://localhost:5001')

    @classmethod
    def to_flask(cls):
        """Upper-case settings as a dict for app.config.update()"""
        return {key: getattr(cls, key) for key in dir(cls) if key.isupper()}


class DevelopmentConfig(Config):
    """Development"""
    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production"""
    DEBUG = False

    @classmethod
    def validate(cls):
        """Check settings that must not keep their development defaults"""
        required = [
            ('SECRET_KEY', cls.SECRET_KEY, 'dev-secret-key-change-in-production'),
        ]

        missing = []
        for name, value, default in required:
            if not value or value == default:
                missing.append(name)

        if missing:
            raise ValueError(f"Missing required production settings: {', '.join(missing)}")


class TestingConfig(Config):
    """Testing"""
    TESTING = True
    DATA_DIR = os.getenv('TEST_DATA_DIR', os.path.join(os.getcwd(), 'test_data'))
    PROJECTS_DIR = os.path.join(DATA_DIR, 'projects')
    AUTOSAVE_PATH = os.path.join(DATA_DIR, 'autosave.json')


def get_config():
    """Pick the configuration class from FLASK_ENV"""
    env = os.getenv('FLASK_ENV', 'development')

    config_map = {
        'development': DevelopmentConfig,
        'production': ProductionConfig,
        'testing': TestingConfig
    }

    return config_map.get(env, DevelopmentConfig)


config = get_config()
