"""
Configuration models for the system.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

from ..utils.error_handling import ConfigurationError


class SifterType(Enum):
    """Evaluator used to decide whether a post matches a rule."""

    LLM = "llm"
    ALL = "all"
    # Recognised but not implemented
    REGEX = "regex"
    TAGS = "tags"


class NotificationChannel(Enum):
    """Delivery channel of a notification target."""

    SLACK = "slack"
    EMAIL = "email"
    WEBHOOK = "webhook"


@dataclass(frozen=True)
class NotificationTarget:
    """A single destination for match notifications."""

    slack: Optional[str] = None
    email: Optional[str] = None
    webhook: Optional[str] = None

    @property
    def channel(self) -> Optional[NotificationChannel]:
        """The populated channel, checked in slack, email, webhook order."""
        if self.slack and self.slack.strip():
            return NotificationChannel.SLACK
        if self.email and self.email.strip():
            return NotificationChannel.EMAIL
        if self.webhook and self.webhook.strip():
            return NotificationChannel.WEBHOOK
        return None

    @property
    def value(self) -> Optional[str]:
        channel = self.channel
        if channel is None:
            return None
        return getattr(self, channel.value).strip()

    @property
    def description(self) -> str:
        """Human-readable description, e.g. ``Slack: #auth-team``."""
        channel = self.channel
        if channel is None:
            return "Unknown notification target"
        return f"{channel.value.capitalize()}: {self.value}"

    def validate(self) -> bool:
        """Validate that at least one channel is populated."""
        if self.channel is None:
            raise ConfigurationError(
                "Notification target must define at least one of: slack, email, webhook"
            )

        if self.channel is NotificationChannel.WEBHOOK:
            parsed_url = urlparse(self.value)
            if parsed_url.scheme not in ["http", "https"] or not parsed_url.netloc:
                raise ConfigurationError(f"Invalid webhook URL: {self.value}")

        return True


@dataclass(frozen=True)
class Rule:
    """A natural-language criterion plus the targets notified when it matches."""

    prompt: str
    notify_targets: List[NotificationTarget]
    tags: Optional[List[str]] = None  # parsed but not applied
    sifter_type: str = SifterType.LLM.value

    def __post_init__(self):
        if not isinstance(self.prompt, str) or not self.prompt.strip():
            raise ConfigurationError("Rule prompt cannot be empty")

        if not self.notify_targets:
            raise ConfigurationError("Rule must have at least one notification target")

    def validate(self) -> bool:
        """Validate the rule and each of its notification targets."""
        for index, target in enumerate(self.notify_targets):
            try:
                target.validate()
            except ConfigurationError as e:
                raise ConfigurationError(f"Notification target {index}: {e.message}") from e

        if self.tags is not None:
            if not isinstance(self.tags, list):
                raise ConfigurationError("Rule tags must be a list")

            for tag in self.tags:
                if not isinstance(tag, str) or not tag.strip():
                    raise ConfigurationError("All rule tags must be non-empty strings")

        return True

    def resolve_sifter_type(self) -> SifterType:
        """Resolve the configured sifter name to a SifterType."""
        name = str(self.sifter_type or SifterType.LLM.value).strip().lower()
        try:
            return SifterType(name)
        except ValueError:
            valid = [sifter.value for sifter in SifterType]
            raise ConfigurationError(
                f"Unknown sifter type '{self.sifter_type}'. Must be one of: {valid}"
            ) from None


@dataclass(frozen=True)
class ClassifierSettings:
    """Settings for the remote chat-completion classifier."""

    model: str = "gpt-3.5-turbo"
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    max_tokens: int = 1
    timeout: int = 30
    max_concurrency: Optional[int] = None

    def validate(self) -> bool:
        """Validate classifier settings."""
        if not isinstance(self.model, str) or not self.model.strip():
            raise ConfigurationError("Classifier model cannot be empty")

        parsed_url = urlparse(self.endpoint)
        if parsed_url.scheme not in ["http", "https"] or not parsed_url.netloc:
            raise ConfigurationError(f"Invalid classifier endpoint: {self.endpoint}")

        if not isinstance(self.max_tokens, int) or self.max_tokens <= 0:
            raise ConfigurationError("Classifier max_tokens must be a positive integer")

        if not isinstance(self.timeout, int) or self.timeout <= 0:
            raise ConfigurationError("Classifier timeout must be a positive integer")

        if self.max_concurrency is not None:
            if not isinstance(self.max_concurrency, int) or self.max_concurrency <= 0:
                raise ConfigurationError("Classifier max_concurrency must be a positive integer")

        return True


@dataclass(frozen=True)
class Config:
    """System configuration."""

    feeds: List[str]
    rules: List[Rule]
    poll_interval_minutes: Optional[int] = None  # informational only
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)

    def validate(self) -> bool:
        """Validate system configuration."""
        if not isinstance(self.feeds, list) or not self.feeds:
            raise ConfigurationError("Configuration must contain at least one feed URL.")

        for feed_url in self.feeds:
            if not isinstance(feed_url, str) or not feed_url.strip():
                raise ConfigurationError("All feed URLs must be non-empty strings")

            parsed_url = urlparse(feed_url)
            if parsed_url.scheme not in ["http", "https"] or not parsed_url.netloc:
                raise ConfigurationError(
                    f"Invalid feed URL: {feed_url}. URLs must be valid HTTP or HTTPS addresses."
                )

        if not isinstance(self.rules, list) or not self.rules:
            raise ConfigurationError("Configuration must contain at least one sifting rule.")

        for index, rule in enumerate(self.rules):
            try:
                rule.validate()
            except ConfigurationError as e:
                raise ConfigurationError(f"Rule {index}: {e.message}") from e

        if self.poll_interval_minutes is not None:
            if not isinstance(self.poll_interval_minutes, int) or self.poll_interval_minutes <= 0:
                raise ConfigurationError("Poll interval must be a positive integer")

        self.classifier.validate()

        return True
