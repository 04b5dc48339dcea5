"""
Error taxonomy and error tracking for Stack Sifter.

Configuration, feed and classifier errors are fatal for a run; notification
errors are isolated per target and only recorded.
"""

import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .logging import get_logger


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    NETWORK = "network"
    CONFIGURATION = "configuration"
    PARSING = "parsing"
    LLM_EVALUATION = "llm_evaluation"
    MESSAGE_DELIVERY = "message_delivery"
    SYSTEM = "system"


class StackSifterError(Exception):
    """Base class for all errors raised by the sifting pipeline."""

    category = ErrorCategory.SYSTEM
    severity = ErrorSeverity.HIGH

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ConfigurationError(StackSifterError):
    """Invalid or degenerate configuration. Raised before any I/O happens."""

    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.CRITICAL


class FeedFetchError(StackSifterError):
    """A feed could not be retrieved."""

    category = ErrorCategory.NETWORK

    def __init__(self, feed_url: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.feed_url = feed_url


class ClassifierError(StackSifterError):
    """Base class for remote classifier failures."""

    category = ErrorCategory.LLM_EVALUATION
    retryable = False


class ClassifierTransportError(ClassifierError):
    """The classifier service was unreachable or answered with a non-2xx status."""

    category = ErrorCategory.NETWORK
    retryable = True

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.status_code = status_code


class ClassifierResponseParseError(ClassifierError):
    """The classifier response body is not valid JSON."""

    category = ErrorCategory.PARSING


class MalformedResponseError(ClassifierError):
    """The classifier response is JSON but lacks the completion text field."""

    category = ErrorCategory.PARSING


class NotificationError(StackSifterError):
    """Delivery to a single notification target failed."""

    category = ErrorCategory.MESSAGE_DELIVERY
    severity = ErrorSeverity.MEDIUM

    def __init__(self, target: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.target = target


def describe_error(error: BaseException) -> str:
    """Render an error as a single diagnostic line, including its inner cause."""
    message = " ".join(str(error).split()) or type(error).__name__
    cause = error.__cause__ or error.__context__
    if cause is not None and str(cause) and str(cause) not in message:
        message = f"{message} (caused by: {' '.join(str(cause).split())})"
    return message


@dataclass
class ErrorInfo:
    """Information about an error occurrence."""

    timestamp: datetime
    component: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str
    traceback: str
    context: Dict[str, Any]


class ErrorTracker:
    """
    Tracks isolated errors during a run and provides statistics.
    """

    def __init__(self, max_errors: int = 1000):
        """
        Initialize error tracker.

        Args:
            max_errors: Maximum number of errors to keep in memory
        """
        self.max_errors = max_errors
        self.errors: List[ErrorInfo] = []
        self.error_counts: Dict[str, int] = {}
        self.logger = get_logger("error_tracker")

    def record_error(
        self,
        component: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        message: str,
        exception: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorInfo:
        """
        Record an error occurrence.

        Args:
            component: Component where error occurred
            category: Error category
            severity: Error severity
            message: Error message
            exception: Exception object if available
            context: Additional context information

        Returns:
            ErrorInfo object
        """
        error_info = ErrorInfo(
            timestamp=datetime.now(timezone.utc),
            component=component,
            category=category,
            severity=severity,
            message=message,
            exception_type=type(exception).__name__ if exception else "Unknown",
            traceback=(
                "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
                if exception
                else ""
            ),
            context=context or {},
        )

        self.errors.append(error_info)
        if len(self.errors) > self.max_errors:
            self.errors.pop(0)

        error_key = f"{component}.{category.value}.{severity.value}"
        self.error_counts[error_key] = self.error_counts.get(error_key, 0) + 1

        self.logger.error(
            f"Error recorded: {message}",
            extra={
                "error_component": component,
                "category": category.value,
                "severity": severity.value,
                "exception_type": error_info.exception_type,
                "context": context,
            },
        )

        return error_info

    def record_exception(
        self, component: str, exception: BaseException, context: Optional[Dict[str, Any]] = None
    ) -> ErrorInfo:
        """Record an exception using its own category and severity when it has them."""
        return self.record_error(
            component=component,
            category=getattr(exception, "category", ErrorCategory.SYSTEM),
            severity=getattr(exception, "severity", ErrorSeverity.HIGH),
            message=describe_error(exception),
            exception=exception,
            context=context,
        )

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        return {
            "total_errors": len(self.errors),
            "error_counts": self.error_counts.copy(),
            "severity_breakdown": {
                severity.value: len([e for e in self.errors if e.severity == severity])
                for severity in ErrorSeverity
            },
            "category_breakdown": {
                category.value: len([e for e in self.errors if e.category == category])
                for category in ErrorCategory
            },
        }
