"""
Notification components for Stack Sifter.

Each notifier delivers a matched post to one destination. A composite
notifier fans out to all destinations of a rule concurrently and isolates
failures per target.
"""

import asyncio
import json
import logging
import os
import smtplib
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..models.config import NotificationChannel, NotificationTarget, Rule
from ..models.delivery import NotificationResult
from ..models.post import Post
from ..utils.error_handling import ConfigurationError, ErrorTracker, NotificationError
from .transport import HttpTransport

logger = logging.getLogger(__name__)


def _post_summary(post: Post, brief_limit: Optional[int] = None) -> Dict[str, Any]:
    brief = post.brief
    if brief_limit is not None and len(brief) > brief_limit:
        brief = brief[:brief_limit] + "..."
    return {
        "title": post.title,
        "url": post.url,
        "published": post.published.isoformat(),
        "tags": list(post.tags),
        "author": post.author,
        "brief": brief,
    }


class BaseNotifier(ABC):
    """Base class for notifiers with common retry logic."""

    def __init__(self, max_retries: int = 2, retry_delay: float = 1.0):
        """
        Initialize base notifier.

        Args:
            max_retries: Retry attempts after the first failure
            retry_delay: Initial delay between retries in seconds
        """
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @property
    @abstractmethod
    def target(self) -> str:
        """Human-readable description of the destination."""
        pass

    async def notify(self, post: Post, match_reason: str) -> None:
        """
        Deliver a notification, retrying with exponential backoff.

        Raises:
            NotificationError: If every attempt failed
        """
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                await self._send(post, match_reason)
                logger.info(f"Notification sent to {self.target}: {post.title[:50]}")
                return

            except Exception as e:
                last_error = e
                logger.warning(
                    f"Notification attempt {attempt + 1}/{self.max_retries + 1} "
                    f"to {self.target} failed: {e}"
                )

                # Don't sleep after the last attempt
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * (2**attempt))

        raise NotificationError(
            self.target,
            f"Failed to notify {self.target} after {self.max_retries + 1} attempts: {last_error}",
            cause=last_error,
        )

    @abstractmethod
    async def _send(self, post: Post, match_reason: str) -> None:
        """Platform-specific delivery. Raises on failure."""
        pass


class SlackNotifier(BaseNotifier):
    """Slack incoming-webhook notifier."""

    def __init__(
        self,
        channel: str,
        transport: HttpTransport,
        webhook_url: Optional[str] = None,
        max_retries: int = 2,
        retry_delay: float = 1.0,
    ):
        """
        Initialize Slack notifier.

        Args:
            channel: Slack channel name (e.g. "#auth-team") or ID
            transport: Shared HTTP transport
            webhook_url: Incoming webhook URL, defaults to SLACK_WEBHOOK_URL
        """
        super().__init__(max_retries, retry_delay)
        self.channel = channel
        self.transport = transport
        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK_URL")

    @property
    def target(self) -> str:
        return f"Slack: {self.channel}"

    def format_message(self, post: Post, match_reason: str) -> Dict[str, Any]:
        """Format a post as a Slack Block Kit message."""
        return {
            "channel": self.channel,
            "text": f"{post.title} ({match_reason})",
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": post.title[:150]},
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Author:*\n{post.author or 'Unknown'}"},
                        {"type": "mrkdwn", "text": f"*Tags:*\n{', '.join(post.tags) or 'None'}"},
                    ],
                },
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": f"*Match Reason:* {match_reason}\n\n{post.brief[:2000]}",
                    },
                },
                {
                    "type": "actions",
                    "elements": [
                        {
                            "type": "button",
                            "text": {"type": "plain_text", "text": "View post"},
                            "url": post.url,
                        }
                    ],
                },
            ],
        }

    async def _send(self, post: Post, match_reason: str) -> None:
        if not self.webhook_url:
            raise NotificationError(self.target, "No Slack webhook configured")

        response = await self.transport.post_json(
            self.webhook_url, self.format_message(post, match_reason)
        )
        response.raise_for_status()

        # Slack returns "ok" for successful webhook calls
        if response.text.strip() != "ok":
            raise NotificationError(self.target, f"Slack webhook error: {response.text}")


class WebhookNotifier(BaseNotifier):
    """Posts a JSON description of the match to an arbitrary URL."""

    def __init__(
        self,
        url: str,
        transport: HttpTransport,
        max_retries: int = 2,
        retry_delay: float = 1.0,
    ):
        super().__init__(max_retries, retry_delay)
        self.url = url
        self.transport = transport

    @property
    def target(self) -> str:
        return f"Webhook: {self.url}"

    def format_payload(self, post: Post, match_reason: str) -> Dict[str, Any]:
        return {
            "event": "post_matched",
            "match_reason": match_reason,
            "sent_at": datetime.now(timezone.utc).isoformat(),
            "post": _post_summary(post),
        }

    async def _send(self, post: Post, match_reason: str) -> None:
        response = await self.transport.post_json(self.url, self.format_payload(post, match_reason))
        response.raise_for_status()


@dataclass(frozen=True)
class SmtpSettings:
    """SMTP connection settings for email notifications."""

    host: Optional[str] = None
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    sender: str = "stack-sifter@localhost"
    use_tls: bool = True

    @classmethod
    def from_env(cls) -> "SmtpSettings":
        """Read SMTP_HOST, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD and SMTP_SENDER."""
        try:
            port = int(os.getenv("SMTP_PORT", "587"))
        except ValueError:
            raise ConfigurationError("SMTP_PORT must be an integer") from None

        return cls(
            host=os.getenv("SMTP_HOST") or None,
            port=port,
            username=os.getenv("SMTP_USERNAME") or None,
            password=os.getenv("SMTP_PASSWORD") or None,
            sender=os.getenv("SMTP_SENDER", "stack-sifter@localhost"),
        )


class EmailNotifier(BaseNotifier):
    """Sends a plain-text email per match over SMTP."""

    def __init__(
        self,
        address: str,
        smtp: Optional[SmtpSettings] = None,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        timeout: int = 30,
    ):
        super().__init__(max_retries, retry_delay)
        self.address = address
        self.smtp = smtp or SmtpSettings.from_env()
        self.timeout = timeout

    @property
    def target(self) -> str:
        return f"Email: {self.address}"

    def format_message(self, post: Post, match_reason: str) -> MIMEText:
        body = "\n".join(
            [
                f"A new post matched: {match_reason}",
                "",
                post.title,
                post.url,
                f"Author: {post.author or 'Unknown'}",
                f"Tags: {', '.join(post.tags) or 'None'}",
                f"Published: {post.published.isoformat()}",
                "",
                post.brief,
            ]
        )
        message = MIMEText(body, "plain", "utf-8")
        message["Subject"] = f"[stack-sifter] {post.title[:120]}"
        message["From"] = self.smtp.sender
        message["To"] = self.address
        return message

    def _deliver(self, message: MIMEText) -> None:
        with smtplib.SMTP(self.smtp.host, self.smtp.port, timeout=self.timeout) as server:
            if self.smtp.use_tls:
                server.starttls()
            if self.smtp.username:
                server.login(self.smtp.username, self.smtp.password or "")
            server.send_message(message)

    async def _send(self, post: Post, match_reason: str) -> None:
        if not self.smtp.host:
            logger.info(
                f"No SMTP host configured, would email {self.address}: "
                f"{post.title} ({post.url}) reason={match_reason!r}"
            )
            return

        message = self.format_message(post, match_reason)
        await asyncio.get_running_loop().run_in_executor(None, self._deliver, message)


class ConsoleNotifier(BaseNotifier):
    """Writes notifications as JSON to stderr. Stands in for Slack when no webhook is set."""

    def __init__(self, target_description: str = "Console", stream=None):
        super().__init__(max_retries=0)
        self.target_description = target_description
        self.stream = stream

    @property
    def target(self) -> str:
        return self.target_description

    async def _send(self, post: Post, match_reason: str) -> None:
        notification = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "target": self.target_description,
            "match_reason": match_reason,
            "post": _post_summary(post, brief_limit=200),
        }
        stream = self.stream or sys.stderr
        stream.write("=== NOTIFICATION ===\n")
        stream.write(json.dumps(notification, indent=2) + "\n")
        stream.write("===================\n")


class CompositeNotifier:
    """Fans one notification out to several notifiers concurrently."""

    def __init__(
        self,
        notifiers: Sequence[BaseNotifier],
        error_tracker: Optional[ErrorTracker] = None,
    ):
        self.notifiers: List[BaseNotifier] = list(notifiers)
        self.error_tracker = error_tracker

    def add_notifier(self, notifier: BaseNotifier) -> None:
        self.notifiers.append(notifier)

    async def dispatch(self, post: Post, match_reason: str) -> List[NotificationResult]:
        """
        Notify every target and report per-target outcomes.

        Completes once all notifiers have finished or failed. A failing
        notifier never prevents the others from running.
        """
        outcomes = await asyncio.gather(
            *(notifier.notify(post, match_reason) for notifier in self.notifiers),
            return_exceptions=True,
        )

        results = []
        for notifier, outcome in zip(self.notifiers, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome

            if isinstance(outcome, BaseException):
                logger.error(f"Notification to {notifier.target} failed: {outcome}")
                if self.error_tracker is not None:
                    self.error_tracker.record_exception(
                        "notifier",
                        outcome,
                        context={"target": notifier.target, "post_url": post.url},
                    )
                results.append(NotificationResult.failed(notifier.target, outcome))
            else:
                results.append(NotificationResult.delivered(notifier.target))

        return results

    async def notify(self, post: Post, match_reason: str) -> None:
        await self.dispatch(post, match_reason)


class NotifierFactory:
    """Factory for creating notifiers from notification targets."""

    def __init__(
        self,
        transport: HttpTransport,
        slack_webhook_url: Optional[str] = None,
        smtp: Optional[SmtpSettings] = None,
        error_tracker: Optional[ErrorTracker] = None,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        console_stream=None,
    ):
        self.transport = transport
        self.slack_webhook_url = slack_webhook_url
        self.smtp = smtp
        self.error_tracker = error_tracker
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.console_stream = console_stream

    def create(self, target: NotificationTarget) -> BaseNotifier:
        """
        Create the notifier for a single target.

        Raises:
            ConfigurationError: If the target has no populated channel
        """
        channel = target.channel

        if channel is NotificationChannel.SLACK:
            webhook_url = self.slack_webhook_url or os.getenv("SLACK_WEBHOOK_URL")
            if not webhook_url:
                logger.warning(
                    f"SLACK_WEBHOOK_URL is not set, writing Slack notifications for "
                    f"{target.value} to the console"
                )
                return ConsoleNotifier(target.description, stream=self.console_stream)

            return SlackNotifier(
                channel=target.value,
                transport=self.transport,
                webhook_url=webhook_url,
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
            )

        if channel is NotificationChannel.EMAIL:
            return EmailNotifier(
                address=target.value,
                smtp=self.smtp,
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
            )

        if channel is NotificationChannel.WEBHOOK:
            return WebhookNotifier(
                url=target.value,
                transport=self.transport,
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
            )

        raise ConfigurationError(f"Unsupported notification target: {target.description}")

    def create_for_rule(self, rule: Rule) -> CompositeNotifier:
        """Create one composite notifier covering all targets of a rule."""
        return CompositeNotifier(
            [self.create(target) for target in rule.notify_targets],
            error_tracker=self.error_tracker,
        )
