"""
Classifiers deciding whether a post matches a sifting rule.

The LLM classifier asks a chat-completion endpoint for a single yes/no token.
Each classifier is bound to one rule's prompt at construction and is reused
across every post of the run.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from ..models.config import ClassifierSettings, Rule, SifterType
from ..models.post import Post
from ..utils.error_handling import (
    ClassifierResponseParseError,
    ClassifierTransportError,
    ConfigurationError,
    MalformedResponseError,
)
from .transport import HttpTransport

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = (
    "You are an AI assistant that answers only with 'yes' or 'no'. "
    "Evaluate whether the post matches this criterion: {criteria} "
    "Answer only 'yes' or 'no'."
)


class BaseClassifier(ABC):
    """Abstract base class for classifiers."""

    @abstractmethod
    async def is_match(self, post: Post) -> bool:
        """Return True if the post matches this classifier's rule."""
        pass


class AllMatchClassifier(BaseClassifier):
    """Matches every post. Useful for smoke-testing a pipeline without remote calls."""

    async def is_match(self, post: Post) -> bool:
        return True


class LLMClassifier(BaseClassifier):
    """Classifier backed by a chat-completion endpoint."""

    def __init__(
        self,
        criteria: str,
        api_key: str,
        transport: HttpTransport,
        settings: Optional[ClassifierSettings] = None,
    ):
        """
        Initialize the classifier.

        Args:
            criteria: Rule prompt the post is evaluated against
            api_key: Bearer token for the completion endpoint
            transport: Shared HTTP transport
            settings: Model, endpoint and request limits
        """
        if not criteria or not criteria.strip():
            raise ConfigurationError("Classifier criteria cannot be empty")
        if not api_key or not api_key.strip():
            raise ConfigurationError("An API key is required for the LLM classifier")

        self.criteria = criteria
        self.api_key = api_key
        self.transport = transport
        self.settings = settings or ClassifierSettings()
        self.system_prompt = SYSTEM_PROMPT_TEMPLATE.format(criteria=criteria)

    def build_request(self, post: Post) -> Dict[str, Any]:
        """Build the chat-completion request body for one post."""
        return {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": f"Title: {post.title}\nBrief: {post.brief}"},
            ],
            "max_tokens": self.settings.max_tokens,
            "temperature": 0.0,
            "n": 1,
            "stop": "\n",
        }

    async def is_match(self, post: Post) -> bool:
        """
        Ask the remote model whether the post matches.

        Raises:
            ClassifierTransportError: Network failure or non-2xx status
            ClassifierResponseParseError: Response body is not JSON
            MalformedResponseError: JSON without choices[0].message.content
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self.transport.post_json(
                self.settings.endpoint,
                self.build_request(post),
                headers=headers,
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise ClassifierTransportError(
                f"Classifier request failed with HTTP {status_code}",
                status_code=status_code,
                cause=e,
            ) from e
        except requests.RequestException as e:
            raise ClassifierTransportError(f"Classifier request failed: {e}", cause=e) from e

        answer = self.parse_answer(response.text)
        is_match = answer is not None and answer.strip().lower().startswith("yes")

        logger.debug(
            f"Classifier answered {answer!r} for '{post.title[:50]}' -> "
            f"{'MATCH' if is_match else 'NO MATCH'}"
        )
        return is_match

    @staticmethod
    def parse_answer(body: str) -> Optional[str]:
        """
        Extract ``choices[0].message.content`` from a response body.

        Returns None when the content field is present but null.
        """
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, TypeError) as e:
            raise ClassifierResponseParseError(
                f"Classifier response is not valid JSON: {e}", cause=e
            ) from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                "Classifier response is missing choices[0].message.content", cause=e
            ) from e

        if content is not None and not isinstance(content, str):
            raise MalformedResponseError(
                f"Classifier completion content must be a string, got {type(content).__name__}"
            )

        return content


class ClassifierFactory:
    """Builds the classifier for a rule, resolving its sifter type once."""

    def __init__(
        self,
        transport: HttpTransport,
        api_key: Optional[str] = None,
        settings: Optional[ClassifierSettings] = None,
    ):
        self.transport = transport
        self.api_key = api_key
        self.settings = settings or ClassifierSettings()

    def create(self, rule: Rule) -> BaseClassifier:
        """
        Create the classifier for a rule.

        Raises:
            ConfigurationError: Unknown or unimplemented sifter type, or a
                missing API key for the LLM classifier
        """
        sifter_type = rule.resolve_sifter_type()

        if sifter_type is SifterType.LLM:
            if not self.api_key:
                raise ConfigurationError(
                    "OPENAI_API_KEY environment variable is required for 'llm' rules"
                )
            return LLMClassifier(rule.prompt, self.api_key, self.transport, self.settings)

        if sifter_type is SifterType.ALL:
            return AllMatchClassifier()

        raise ConfigurationError(f"Sifter type '{sifter_type.value}' is not implemented")
