"""
Utility modules for Stack Sifter.
"""

from .error_handling import (
    ClassifierError,
    ClassifierResponseParseError,
    ClassifierTransportError,
    ConfigurationError,
    ErrorCategory,
    ErrorSeverity,
    ErrorTracker,
    FeedFetchError,
    MalformedResponseError,
    NotificationError,
    StackSifterError,
    describe_error,
)
from .logging import get_logger, setup_logging

__all__ = [
    "StackSifterError",
    "ConfigurationError",
    "FeedFetchError",
    "ClassifierError",
    "ClassifierTransportError",
    "ClassifierResponseParseError",
    "MalformedResponseError",
    "NotificationError",
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorTracker",
    "describe_error",
    "get_logger",
    "setup_logging",
]
