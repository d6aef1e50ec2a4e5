"""
Configuration management for the gamification service.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shared secret for /api/admin/gamification (X-Admin-Token header)
    ADMIN_API_TOKEN = os.getenv('ADMIN_API_TOKEN')

    # Reward grant settings (injected into RewardGrantEngine as RewardConfig)
    GAMIFICATION_POINTS_MULTIPLIER = int(os.getenv('GAMIFICATION_POINTS_MULTIPLIER', '1'))
    GAMIFICATION_LEVEL_CAP_ENABLED = _env_bool('GAMIFICATION_LEVEL_CAP_ENABLED', False)
    GAMIFICATION_LEVEL_CAP = int(os.getenv('GAMIFICATION_LEVEL_CAP', '100'))

    # When disabled, summary points are derived from completed task points
    GAMIFICATION_POINTS_ENABLED = _env_bool('GAMIFICATION_POINTS_ENABLED', True)

    # Raw inbound events are written to gamification_events_log before processing
    GAMIFICATION_LOG_EVENTS = _env_bool('GAMIFICATION_LOG_EVENTS', True)


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    ENV_NAME = 'development'
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///gamification_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    ENV_NAME = 'production'
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    @classmethod
    def validate(cls) -> None:
        """
        Validate production settings.

        Raises:
            RuntimeError: If DATABASE_URL is missing or the reward settings are out of range
        """
        if not cls.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError(
                "CRITICAL: DATABASE_URL environment variable is not set!\n"
                "The completion ledger requires a database with unique constraint support."
            )

        if cls.GAMIFICATION_POINTS_MULTIPLIER < 1:
            raise RuntimeError(
                f"GAMIFICATION_POINTS_MULTIPLIER must be >= 1, got {cls.GAMIFICATION_POINTS_MULTIPLIER}"
            )

        if cls.GAMIFICATION_LEVEL_CAP_ENABLED and cls.GAMIFICATION_LEVEL_CAP <= 0:
            raise RuntimeError(
                f"GAMIFICATION_LEVEL_CAP must be positive when the cap is enabled, got {cls.GAMIFICATION_LEVEL_CAP}"
            )


class TestingConfig(BaseConfig):
    """Testing configuration."""
    ENV_NAME = 'testing'
    ADMIN_API_TOKEN = None
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    GAMIFICATION_POINTS_MULTIPLIER = 1
    GAMIFICATION_LEVEL_CAP_ENABLED = False
    GAMIFICATION_POINTS_ENABLED = True
    GAMIFICATION_LOG_EVENTS = True


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Args:
        config_name: The configuration environment name

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate()
