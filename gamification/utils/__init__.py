"""
Utility modules for the gamification service.
"""
from .logging_config import setup_logging, get_logger
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    not_found,
    unprocessable,
    conflict,
    internal_error,
    from_exception,
)
from .exceptions import (
    GamificationError,
    NotFoundError,
    MissionNotFoundError,
    TaskNotFoundError,
    RewardNotFoundError,
    RuleNotFoundError,
    LockerNotFoundError,
    BadgeNotFoundError,
    ValidationError,
    DuplicateError,
    ConfigurationError,
)
