"""
Custom exceptions for gamification business logic.

Raised by the catalog and gamification services and translated to
HTTP responses by the API blueprints.
"""


class GamificationError(Exception):
    """Base exception for all gamification business logic errors."""

    def __init__(self, message: str, code: str = "GAMIFICATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(GamificationError):
    """Resource not found."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class MissionNotFoundError(NotFoundError):
    """Mission not found."""

    def __init__(self, identifier=None):
        super().__init__("Mission", identifier)


class TaskNotFoundError(NotFoundError):
    """Task not found."""

    def __init__(self, identifier=None):
        super().__init__("Task", identifier)


class RewardNotFoundError(NotFoundError):
    """Reward not found."""

    def __init__(self, identifier=None):
        super().__init__("Reward", identifier)


class RuleNotFoundError(NotFoundError):
    """Rule not found."""

    def __init__(self, identifier=None):
        super().__init__("Rule", identifier)


class LockerNotFoundError(NotFoundError):
    """Locker not found."""

    def __init__(self, identifier=None):
        super().__init__("Locker", identifier)


class BadgeNotFoundError(NotFoundError):
    """Badge not found."""

    def __init__(self, identifier=None):
        super().__init__("Badge", identifier)


class ValidationError(GamificationError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class DuplicateError(GamificationError):
    """Resource already exists."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} already exists"
        if identifier:
            message = f"{resource} with {identifier} already exists"
        super().__init__(message, "DUPLICATE_ENTRY")


class ConfigurationError(GamificationError):
    """Application configuration error."""

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")
