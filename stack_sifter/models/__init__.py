"""
Data models for Stack Sifter.

This module contains the value types handed between the feed source, the
classifiers, the notifiers and the orchestrator.
"""

from .config import (
    ClassifierSettings,
    Config,
    NotificationChannel,
    NotificationTarget,
    Rule,
    SifterType,
)
from .delivery import NotificationResult
from .post import Post
from .result import MatchedPost, ProcessingResult

__all__ = [
    "Post",
    "Rule",
    "SifterType",
    "NotificationChannel",
    "NotificationTarget",
    "ClassifierSettings",
    "Config",
    "MatchedPost",
    "ProcessingResult",
    "NotificationResult",
]
