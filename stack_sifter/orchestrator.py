"""
Sifting orchestrator for Stack Sifter.

This module drives the feed x rule x post cross product for one run:
fetch every feed, evaluate every post against every rule, notify the
rule's targets on a match, and aggregate the run's result.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Iterable, List, NamedTuple, Optional

from .components.classifier import AllMatchClassifier, ClassifierFactory
from .components.feed_source import ensure_utc
from .components.notifiers import NotifierFactory
from .interfaces import IClassifier, IFeedSource, INotifier
from .models.config import Config, NotificationTarget, Rule
from .models.post import Post
from .models.result import MatchedPost, ProcessingResult
from .utils.error_handling import ErrorTracker
from .utils.logging import get_logger

ALL_POSTS_REASON = "All posts"


class RuleEvaluator(NamedTuple):
    """A rule's classifier and notifier, built once and reused for every post."""

    match_reason: str
    notification_targets: List[NotificationTarget]
    classifier: IClassifier
    notifier: Optional[INotifier]


class FeedOutcome(NamedTuple):
    """Posts fetched from one feed and the matches found among them."""

    feed_url: str
    posts: List[Post]
    matches: List[MatchedPost]


async def gather_or_cancel(awaitables: Iterable[Awaitable[Any]]) -> List[Any]:
    """
    Run awaitables concurrently and return their results in order.

    If any of them fails, the others are cancelled before the error is
    re-raised.
    """
    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class SiftingOrchestrator:
    """
    Evaluates posts from several feeds against several rules.

    Classifiers and notifiers are built once per rule before any feed is
    fetched, so a misconfigured rule fails the run without any I/O.
    Feeds, (rule, post) evaluations and notifications run concurrently;
    results are merged afterwards in feed, rule, post order.
    """

    def __init__(
        self,
        feed_source: IFeedSource,
        classifier_factory: ClassifierFactory,
        notifier_factory: NotifierFactory,
        error_tracker: Optional[ErrorTracker] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            feed_source: Retrieves posts for a feed URL
            classifier_factory: Builds the classifier for each rule
            notifier_factory: Builds the composite notifier for each rule
            error_tracker: Records isolated notification failures
        """
        self.feed_source = feed_source
        self.classifier_factory = classifier_factory
        self.notifier_factory = notifier_factory
        self.error_tracker = error_tracker or ErrorTracker()
        self.logger = get_logger("orchestrator")

    def build_evaluator(self, rule: Rule) -> RuleEvaluator:
        """
        Build the classifier and notifiers for one rule.

        Raises:
            ConfigurationError: If the rule's sifter type is unknown
        """
        return RuleEvaluator(
            match_reason=rule.prompt,
            notification_targets=list(rule.notify_targets),
            classifier=self.classifier_factory.create(rule),
            notifier=self.notifier_factory.create_for_rule(rule),
        )

    async def process(self, config: Config, since: datetime) -> ProcessingResult:
        """
        Process every configured feed against every configured rule.

        Args:
            config: Validated configuration
            since: Only posts published after this instant are considered

        Returns:
            ProcessingResult with totals, the newest post timestamp and the
            matches in feed, rule, post order
        """
        evaluators = [self.build_evaluator(rule) for rule in config.rules]

        return await self._run(
            config.feeds,
            evaluators,
            since,
            max_concurrency=config.classifier.max_concurrency,
        )

    async def process_unfiltered(self, feed_urls: List[str], since: datetime) -> ProcessingResult:
        """Report every new post of the given feeds as a match, without notifying anyone."""
        evaluator = RuleEvaluator(
            match_reason=ALL_POSTS_REASON,
            notification_targets=[],
            classifier=AllMatchClassifier(),
            notifier=None,
        )
        return await self._run(feed_urls, [evaluator], since)

    async def _run(
        self,
        feed_urls: List[str],
        evaluators: List[RuleEvaluator],
        since: datetime,
        max_concurrency: Optional[int] = None,
    ) -> ProcessingResult:
        since = ensure_utc(since)
        semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

        self.logger.info(
            "Starting sifting run",
            extra={
                "since": since.isoformat(),
                "feeds": len(feed_urls),
                "rules": len(evaluators),
                "max_concurrency": max_concurrency,
            },
        )

        outcomes: List[FeedOutcome] = await gather_or_cancel(
            self._process_feed(feed_url, since, evaluators, semaphore) for feed_url in feed_urls
        )

        all_posts = [post for outcome in outcomes for post in outcome.posts]
        matches = [match for outcome in outcomes for match in outcome.matches]
        last_created = max((post.published for post in all_posts), default=None)

        self.logger.info(
            "Sifting run completed",
            extra={
                "total_processed": len(all_posts),
                "matches": len(matches),
                "last_created": last_created.isoformat() if last_created else None,
                "errors": self.error_tracker.get_error_stats()["total_errors"],
            },
        )

        return ProcessingResult(
            total_processed=len(all_posts),
            last_created=last_created,
            matches=matches,
        )

    async def _process_feed(
        self,
        feed_url: str,
        since: datetime,
        evaluators: List[RuleEvaluator],
        semaphore: Optional[asyncio.Semaphore],
    ) -> FeedOutcome:
        posts = await self.feed_source.fetch_since(feed_url, since)

        results = await gather_or_cancel(
            self._evaluate(post, evaluator, semaphore)
            for evaluator in evaluators
            for post in posts
        )
        matches = [match for match in results if match is not None]

        self.logger.info(
            "Feed processed",
            extra={"feed_url": feed_url, "posts": len(posts), "matches": len(matches)},
        )
        return FeedOutcome(feed_url=feed_url, posts=posts, matches=matches)

    async def _evaluate(
        self,
        post: Post,
        evaluator: RuleEvaluator,
        semaphore: Optional[asyncio.Semaphore],
    ) -> Optional[MatchedPost]:
        if semaphore is not None:
            async with semaphore:
                is_match = await evaluator.classifier.is_match(post)
        else:
            is_match = await evaluator.classifier.is_match(post)

        if not is_match:
            return None

        match = MatchedPost(
            post=post,
            match_reason=evaluator.match_reason,
            notification_targets=evaluator.notification_targets,
        )
        self.logger.debug(
            "Post matched",
            extra={"title": post.title, "url": post.url, "match_reason": evaluator.match_reason},
        )

        if evaluator.notifier is not None:
            try:
                await evaluator.notifier.notify(post, evaluator.match_reason)
            except Exception as e:
                # A failed notification never retracts the match
                self.error_tracker.record_exception(
                    "orchestrator", e, context={"post_url": post.url}
                )

        return match
