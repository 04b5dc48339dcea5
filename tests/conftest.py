"""
Pytest configuration and shared fixtures.

This module provides common fixtures and test doubles for all tests
in the Stack Sifter test suite.
"""

import json
from datetime import datetime, timezone
from typing import Callable, Dict, List
from unittest.mock import AsyncMock, Mock

import pytest
import requests

from stack_sifter.models.config import ClassifierSettings, Config, NotificationTarget, Rule
from stack_sifter.models.post import Post


class StubFeedSource:
    """Feed source returning canned posts per URL and recording calls."""

    def __init__(self, posts_by_url: Dict[str, List[Post]]):
        self.posts_by_url = posts_by_url
        self.calls = []

    async def fetch_since(self, url: str, since: datetime) -> List[Post]:
        self.calls.append((url, since))
        return [post for post in self.posts_by_url.get(url, []) if post.published > since]


class StubClassifier:
    """Classifier answering from a predicate over the post."""

    def __init__(self, predicate: Callable[[Post], bool]):
        self.predicate = predicate
        self.calls = []

    async def is_match(self, post: Post) -> bool:
        self.calls.append(post)
        return self.predicate(post)


class StubClassifierFactory:
    """Classifier factory mapping rule prompts to stub classifiers."""

    def __init__(self, classifiers_by_prompt: Dict[str, object]):
        self.classifiers_by_prompt = classifiers_by_prompt
        self.created = []

    def create(self, rule: Rule):
        rule.resolve_sifter_type()
        self.created.append(rule.prompt)
        return self.classifiers_by_prompt[rule.prompt]


class RecordingNotifier:
    """Notifier recording every call, optionally failing."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    async def notify(self, post: Post, match_reason: str) -> None:
        self.calls.append((post, match_reason))
        if self.error is not None:
            raise self.error


class StubNotifierFactory:
    """Notifier factory handing out one RecordingNotifier per rule."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.notifiers: Dict[str, RecordingNotifier] = {}

    def create_for_rule(self, rule: Rule) -> RecordingNotifier:
        notifier = RecordingNotifier(self.error)
        self.notifiers[rule.prompt] = notifier
        return notifier


def make_post(title: str, minute: int = 0, hour: int = 12, tags=None) -> Post:
    """Build a post published on 2025-07-05 at the given time."""
    return Post(
        published=datetime(2025, 7, 5, hour, minute, tzinfo=timezone.utc),
        title=title,
        brief=f"Brief for {title}",
        tags=tags if tags is not None else ["python"],
        author="alice",
        url=f"https://stackoverflow.com/q/{title.lower().replace(' ', '-')}",
    )


def completion_response(content, status_code: int = 200) -> Mock:
    """Build a mock requests.Response carrying a chat completion."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.text = json.dumps({"choices": [{"message": {"role": "assistant", "content": content}}]})
    response.raise_for_status = Mock()
    return response


# Test data fixtures
@pytest.fixture
def since():
    """The cursor used by most tests."""
    return datetime(2025, 7, 5, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_post():
    """Create a sample Post for testing."""
    return Post(
        published=datetime(2025, 7, 5, 12, 34, 56, tzinfo=timezone.utc),
        title="OAuth token refresh fails with 401",
        brief="After upgrading the client library the refresh grant returns 401.",
        tags=["oauth", "authentication"],
        author="alice",
        url="https://stackoverflow.com/q/1",
    )


@pytest.fixture
def slack_target():
    return NotificationTarget(slack="#auth-team")


@pytest.fixture
def sample_rule(slack_target):
    """Create a sample Rule for testing."""
    return Rule(
        prompt="about authentication",
        notify_targets=[slack_target, NotificationTarget(email="security@example.com")],
    )


@pytest.fixture
def sample_config(sample_rule):
    """Create a sample Config for testing."""
    return Config(
        feeds=["https://stackoverflow.com/feeds/tag/oauth"],
        rules=[sample_rule],
        poll_interval_minutes=60,
        classifier=ClassifierSettings(),
    )


@pytest.fixture
def mock_transport():
    """Create a mock HttpTransport."""
    transport = Mock()
    transport.get_text = AsyncMock()
    transport.post_json = AsyncMock()
    return transport


@pytest.fixture
def sample_yaml_config():
    """YAML configuration text covering every section."""
    return """
feeds:
  - https://stackoverflow.com/feeds/tag/oauth
  - https://stackoverflow.com/feeds/tag/performance
poll_interval_minutes: 30
classifier:
  model: gpt-4o-mini
  max_concurrency: 4
rules:
  - prompt: Questions about authentication
    tags: [oauth, jwt]
    notify:
      - slack: "#auth-team"
      - email: security@example.com
  - prompt: Every new post
    sifter_type: all
    notify:
      - webhook: https://example.com/hooks/sifter
"""


@pytest.fixture
def config_file(tmp_path, sample_yaml_config):
    """Write the sample YAML configuration to a temporary file."""
    path = tmp_path / "stack-sifter.yaml"
    path.write_text(sample_yaml_config, encoding="utf-8")
    return path
