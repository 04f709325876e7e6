"""
Application configuration
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Project base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from the project directory
load_dotenv(BASE_DIR / '.env')


def _float_env(name, default):
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _int_env(name, default):
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Database with absolute path
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or f"sqlite:///{BASE_DIR}/instance/bazzar.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # CORS / Socket.IO
    ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*")
    SOCKETIO_ASYNC_MODE = os.getenv("SOCKETIO_ASYNC_MODE", "threading")

    # Session tokens
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRATION_DAYS = _int_env("JWT_EXPIRATION_DAYS", 7)

    # OpenAI (voice intake)
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_TRANSCRIPTION_MODEL = os.getenv("OPENAI_TRANSCRIPTION_MODEL", "whisper-1")
    OPENAI_EXTRACTION_MODEL = os.getenv("OPENAI_EXTRACTION_MODEL", "gpt-4")
    VOICE_DEFAULT_LANGUAGE = os.getenv("VOICE_DEFAULT_LANGUAGE", "hi")

    # Pool thresholds applied to auto-created pools
    POOL_MIN_ORDERS = _int_env("POOL_MIN_ORDERS", 5)
    POOL_MIN_VALUE = _float_env("POOL_MIN_VALUE", 1000.0)
    POOL_MAX_WAIT_MINUTES = _int_env("POOL_MAX_WAIT_MINUTES", 120)
    POOL_RADIUS_KM = _float_env("POOL_RADIUS_KM", 2.0)

    # Upload limits (audio clips)
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024  # 25MB
    ALLOWED_AUDIO_EXTENSIONS = {'mp3', 'wav', 'm4a', 'webm', 'ogg', 'flac', 'aac', '3gp', 'amr'}

    # Rate limiting of the REST API (per client address)
    RATELIMIT_ENABLED = True
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "100 per 15 minutes")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SQLALCHEMY_ECHO = False


class TestingConfig(Config):
    """Configuration used by the test suite"""
    TESTING = True
    FLASK_ENV = "testing"
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    OPENAI_API_KEY = None
    RATELIMIT_ENABLED = False
    POOL_MIN_ORDERS = 5
    POOL_MIN_VALUE = 1000.0
    POOL_MAX_WAIT_MINUTES = 120
    POOL_RADIUS_KM = 2.0


# Configuration lookup
config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(name=None):
    """Returns the configuration for the environment"""
    env = name or os.getenv("FLASK_ENV", "development")
    return config_by_name.get(env, DevelopmentConfig)
