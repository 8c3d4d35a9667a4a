"""Content quality and moderation filter.

Runs after aggregation and before caching, so rejected content never
reaches the cache or the reader. Each article starts at a score of 1.0
and loses points per flag:

- duplicate: near-identical title/description to an approved article
- low_quality / missing_content: length, word count, URL, caps checks
- unreliable_source: the source's trust score is below the threshold
- spam: spam keywords, promotional phrases, punctuation runs

An article is approved when its score stays at or above
MODERATION_APPROVAL_SCORE and it carries no high-severity flag.

Source trust scores follow ReliabilityPolicy: an exponential moving
average of each source's approval history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional
from urllib.parse import urlparse

from bali_report.constants import (
    MODERATION_APPROVAL_SCORE,
    MODERATION_DESCRIPTION_WEIGHT,
    MODERATION_DUPLICATE_THRESHOLD,
    MODERATION_MAX_CAPS_RATIO,
    MODERATION_MAX_TITLE_WORDS,
    MODERATION_MIN_DESCRIPTION_LENGTH,
    MODERATION_MIN_TITLE_LENGTH,
    MODERATION_MIN_TITLE_WORDS,
    MODERATION_TITLE_WEIGHT,
    RELIABILITY_ALPHA,
    RELIABILITY_DEFAULT_SCORE,
    RELIABILITY_MIN_SCORE,
)
from bali_report.news.models import Article, utcnow
from bali_report.news.similarity import jaccard_similarity, normalize_text

logger = logging.getLogger("news_pipeline")


class FlagType(str, Enum):
    """Machine-readable rejection reasons."""

    DUPLICATE = "duplicate"
    LOW_QUALITY = "low_quality"
    SPAM = "spam"
    MISSING_CONTENT = "missing_content"
    UNRELIABLE_SOURCE = "unreliable_source"
    MODERATION_ERROR = "moderation_error"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


SPAM_KEYWORDS = (
    "buy now", "limited time", "act fast", "special offer", "click here",
    "guaranteed", "free money", "make money fast", "work from home",
    "viagra", "casino", "lottery", "winner", "congratulations",
)

PROMO_INDICATORS = (
    "subscribe", "follow us", "like us", "share this", "download now",
)

# Starting trust for outlets not given a score in news_sources.yaml
KNOWN_SOURCE_RELIABILITY: dict[str, float] = {
    "RT News": 0.8,
    "TASS": 0.8,
    "Xinhua": 0.8,
    "BBC Asia": 0.9,
    "Al Jazeera": 0.9,
    "Press TV": 0.7,
    "Global Times": 0.7,
    "Antara News": 0.8,
    "Jakarta Globe": 0.8,
    "Jakarta Post": 0.8,
}

DUPLICATE_PENALTY = 0.8
RELIABILITY_PENALTY = 0.3
SPAM_PENALTY = 0.6


@dataclass
class ModerationFlag:
    """One reason an article lost points."""

    type: FlagType
    severity: Severity
    description: str
    confidence: float

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "confidence": round(self.confidence, 2),
        }


@dataclass
class ModerationResult:
    """Decision for a single article."""

    article: Article
    approved: bool
    score: float
    flags: list[ModerationFlag] = field(default_factory=list)
    processed_at: datetime = field(default_factory=utcnow)

    @property
    def has_high_severity(self) -> bool:
        return any(f.severity == Severity.HIGH for f in self.flags)

    def to_dict(self) -> dict:
        return {
            "articleId": self.article.id,
            "link": self.article.link,
            "approved": self.approved,
            "score": round(self.score, 2),
            "flags": [f.to_dict() for f in self.flags],
            "processedAt": self.processed_at.isoformat(),
        }


@dataclass
class BatchModerationResult:
    """Decisions for a batch, approved articles in input order."""

    approved: list[Article] = field(default_factory=list)
    rejected: list[ModerationResult] = field(default_factory=list)

    @property
    def approved_count(self) -> int:
        return len(self.approved)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


@dataclass
class ReliabilityPolicy:
    """Tunable source-trust policy.

    After each decision about one of its articles a source's score moves
    toward 1.0 (approved) or 0.0 (rejected):

        score = (1 - alpha) * score + alpha * outcome

    Duplicate rejections and moderation errors leave the score unchanged.
    """

    default_score: float = RELIABILITY_DEFAULT_SCORE
    unreliable_below: float = RELIABILITY_MIN_SCORE
    alpha: float = RELIABILITY_ALPHA

    def update(self, score: float, approved: bool) -> float:
        outcome = 1.0 if approved else 0.0
        updated = (1 - self.alpha) * score + self.alpha * outcome
        return min(1.0, max(0.0, updated))


@dataclass
class _Fingerprint:
    link: str
    title: str
    title_words: set[str]
    description_words: set[str]

    @classmethod
    def of(cls, article: Article) -> "_Fingerprint":
        return cls(
            link=article.link,
            title=article.title,
            title_words=normalize_text(article.title),
            description_words=normalize_text(article.description),
        )


class ContentModerator:
    """Scores and filters articles.

    Usage:
        moderator = ContentModerator(reliability_seed=registry.get_reliability_seed())
        batch = moderator.moderate_batch(articles, existing=already_cached)
        publish(batch.approved)
    """

    def __init__(
        self,
        policy: ReliabilityPolicy | None = None,
        reliability_seed: Optional[dict[str, float]] = None,
        duplicate_threshold: float = MODERATION_DUPLICATE_THRESHOLD,
        approval_score: float = MODERATION_APPROVAL_SCORE,
    ):
        self.policy = policy or ReliabilityPolicy()
        self.duplicate_threshold = duplicate_threshold
        self.approval_score = approval_score

        self._reliability: dict[str, float] = dict(KNOWN_SOURCE_RELIABILITY)
        self._reliability.update(reliability_seed or {})

        self._stats: dict[str, int] = {"processed": 0, "approved": 0, "rejected": 0}
        self._flag_counts: dict[str, int] = {}

    # =========================================================================
    # Source reliability
    # =========================================================================

    def get_source_reliability(self, source: str) -> float:
        return self._reliability.get(source, self.policy.default_score)

    def set_source_reliability(self, source: str, score: float) -> None:
        if not 0.0 <= score <= 1.0:
            raise ValueError(f"Reliability must be within [0, 1], got {score}")
        self._reliability[source] = score

    def _record_outcome(self, result: ModerationResult) -> None:
        if any(f.type in (FlagType.DUPLICATE, FlagType.MODERATION_ERROR) for f in result.flags):
            return
        source = result.article.source
        current = self.get_source_reliability(source)
        self._reliability[source] = self.policy.update(current, result.approved)

    # =========================================================================
    # Moderation
    # =========================================================================

    def moderate_article(
        self,
        article: Article,
        existing: Iterable[Article] = (),
    ) -> ModerationResult:
        """Score one article against previously approved ones (no side effects)."""
        fingerprints = [_Fingerprint.of(a) for a in existing]
        return self._score(article, fingerprints)

    def moderate_batch(
        self,
        articles: Iterable[Article],
        existing: Iterable[Article] = (),
    ) -> BatchModerationResult:
        """Moderate a batch; each article is also checked against earlier approvals.

        An exception while scoring one article rejects that article and the
        rest of the batch carries on.
        """
        fingerprints = [_Fingerprint.of(a) for a in existing]
        batch = BatchModerationResult()

        for article in articles:
            try:
                result = self._score(article, fingerprints)
            except Exception as e:
                logger.warning(
                    f"MODERATION_ERROR | {article.source} | {article.link} | "
                    f"{type(e).__name__}: {e}"
                )
                result = ModerationResult(
                    article=article,
                    approved=False,
                    score=0.0,
                    flags=[ModerationFlag(
                        type=FlagType.MODERATION_ERROR,
                        severity=Severity.HIGH,
                        description=f"Moderation failed: {type(e).__name__}",
                        confidence=1.0,
                    )],
                )

            self._stats["processed"] += 1
            for flag in result.flags:
                self._flag_counts[flag.type.value] = self._flag_counts.get(flag.type.value, 0) + 1

            if result.approved:
                self._stats["approved"] += 1
                batch.approved.append(article)
                fingerprints.append(_Fingerprint.of(article))
            else:
                self._stats["rejected"] += 1
                batch.rejected.append(result)

            self._record_outcome(result)

        logger.info(
            f"MODERATION | approved:{batch.approved_count} | rejected:{batch.rejected_count}"
        )
        return batch

    def _score(self, article: Article, fingerprints: list[_Fingerprint]) -> ModerationResult:
        flags: list[ModerationFlag] = []
        score = 1.0

        duplicate = self._check_duplicate(article, fingerprints)
        if duplicate is not None:
            flags.append(duplicate)
            score -= DUPLICATE_PENALTY

        for flag, penalty in self._check_quality(article):
            flags.append(flag)
            score -= penalty

        reliability = self.get_source_reliability(article.source)
        if reliability < self.policy.unreliable_below:
            flags.append(ModerationFlag(
                type=FlagType.UNRELIABLE_SOURCE,
                severity=Severity.MEDIUM,
                description=f'Source "{article.source}" has low reliability score: {reliability:.2f}',
                confidence=0.8,
            ))
            score -= RELIABILITY_PENALTY

        spam = self._check_spam(article)
        if spam is not None:
            flags.append(spam)
            score -= SPAM_PENALTY

        score = max(0.0, score)
        approved = score >= self.approval_score and not any(
            f.severity == Severity.HIGH for f in flags
        )
        return ModerationResult(article=article, approved=approved, score=score, flags=flags)

    def _check_duplicate(
        self,
        article: Article,
        fingerprints: list[_Fingerprint],
    ) -> Optional[ModerationFlag]:
        title_words = normalize_text(article.title)
        description_words = normalize_text(article.description)

        for existing in fingerprints:
            if existing.link == article.link:
                similarity = 1.0
            else:
                similarity = (
                    jaccard_similarity(title_words, existing.title_words) * MODERATION_TITLE_WEIGHT
                    + jaccard_similarity(description_words, existing.description_words)
                    * MODERATION_DESCRIPTION_WEIGHT
                )
            if similarity >= self.duplicate_threshold:
                return ModerationFlag(
                    type=FlagType.DUPLICATE,
                    severity=Severity.HIGH,
                    description=f'Similar to existing article: "{existing.title}"',
                    confidence=similarity,
                )
        return None

    def _check_quality(self, article: Article) -> list[tuple[ModerationFlag, float]]:
        issues: list[tuple[ModerationFlag, float]] = []
        title = article.title.strip()

        if len(title) < MODERATION_MIN_TITLE_LENGTH:
            issues.append((ModerationFlag(
                FlagType.LOW_QUALITY, Severity.HIGH, "Title too short", 0.9), 0.5))

        if len(article.description.strip()) < MODERATION_MIN_DESCRIPTION_LENGTH:
            issues.append((ModerationFlag(
                FlagType.MISSING_CONTENT, Severity.MEDIUM, "Description missing or too short", 0.8), 0.3))

        parsed = urlparse(article.link)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            issues.append((ModerationFlag(
                FlagType.LOW_QUALITY, Severity.HIGH, "Invalid article URL", 0.95), 0.4))

        if article.pub_date > utcnow() + timedelta(days=1):
            issues.append((ModerationFlag(
                FlagType.LOW_QUALITY, Severity.LOW, "Publication date in the future", 0.7), 0.1))

        word_count = len(title.split())
        if word_count > MODERATION_MAX_TITLE_WORDS:
            issues.append((ModerationFlag(
                FlagType.LOW_QUALITY, Severity.LOW, "Title unusually long", 0.6), 0.1))
        elif word_count < MODERATION_MIN_TITLE_WORDS:
            issues.append((ModerationFlag(
                FlagType.LOW_QUALITY, Severity.MEDIUM, "Title has too few words", 0.7), 0.2))

        letters = [c for c in title if c.isalpha()]
        if len(letters) >= 10:
            caps_ratio = sum(1 for c in letters if c.isupper()) / len(letters)
            if caps_ratio > MODERATION_MAX_CAPS_RATIO:
                issues.append((ModerationFlag(
                    FlagType.LOW_QUALITY, Severity.MEDIUM, "Excessive capitalization", 0.8), 0.2))

        return issues

    def _check_spam(self, article: Article) -> Optional[ModerationFlag]:
        text = f"{article.title} {article.description}".lower()

        spam_matches = [k for k in SPAM_KEYWORDS if k in text]
        if len(spam_matches) >= 2:
            return ModerationFlag(
                FlagType.SPAM, Severity.HIGH,
                f"Contains spam keywords: {', '.join(spam_matches)}", 0.9,
            )

        promo_matches = [p for p in PROMO_INDICATORS if p in text]
        if len(promo_matches) >= 3:
            return ModerationFlag(
                FlagType.SPAM, Severity.MEDIUM,
                f"Contains excessive promotional language: {', '.join(promo_matches)}", 0.7,
            )

        if text.count("!") > 5 or text.count("?") > 3:
            return ModerationFlag(
                FlagType.SPAM, Severity.MEDIUM,
                "Excessive punctuation indicating promotional content", 0.6,
            )

        return None

    def get_stats(self) -> dict:
        processed = self._stats["processed"]
        return {
            **self._stats,
            "approval_rate": round(self._stats["approved"] / processed * 100, 1) if processed else 0.0,
            "flags": dict(self._flag_counts),
            "tracked_sources": len(self._reliability),
        }
