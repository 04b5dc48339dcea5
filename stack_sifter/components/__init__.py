"""
Core components for Stack Sifter.

This module contains the components that fetch feeds, classify posts
against rules and deliver notifications.
"""

from .classifier import AllMatchClassifier, ClassifierFactory, LLMClassifier
from .feed_source import RSSFeedSource
from .notifiers import (
    CompositeNotifier,
    ConsoleNotifier,
    EmailNotifier,
    NotifierFactory,
    SlackNotifier,
    WebhookNotifier,
)
from .transport import HttpTransport

__all__ = [
    "HttpTransport",
    "RSSFeedSource",
    "LLMClassifier",
    "AllMatchClassifier",
    "ClassifierFactory",
    "SlackNotifier",
    "EmailNotifier",
    "WebhookNotifier",
    "ConsoleNotifier",
    "CompositeNotifier",
    "NotifierFactory",
]
