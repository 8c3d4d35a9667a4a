"""Tests for the content moderation filter and reliability policy."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest

from bali_report.news.moderation import (
    ContentModerator,
    FlagType,
    ReliabilityPolicy,
    Severity,
)
from bali_report.news.models import utcnow
from bali_report.news.similarity import jaccard_similarity, normalize_text, text_similarity

from conftest import make_article


@pytest.fixture
def moderator():
    return ContentModerator(reliability_seed={"Test Source": 0.9, "Other Source": 0.9})


def flag_types(result) -> set[FlagType]:
    return {f.type for f in result.flags}


# =============================================================================
# Similarity
# =============================================================================

class TestSimilarity:
    """Word-set normalization and Jaccard."""

    def test_normalize_drops_short_words_and_punctuation(self):
        assert normalize_text("Bali's new airport, to open!") == {"bali", "new", "airport", "open"}

    def test_jaccard(self):
        assert jaccard_similarity({"a1", "b2"}, {"a1", "b2"}) == 1.0
        assert jaccard_similarity({"abc"}, {"xyz"}) == 0.0
        assert jaccard_similarity(set(), {"abc"}) == 0.0

    def test_reworded_headline_is_similar(self):
        score = text_similarity(
            "Indonesia raises interest rate to curb inflation",
            "Indonesia raises its interest rate to curb rising inflation",
        )
        assert score == pytest.approx(0.75)


# =============================================================================
# Single article checks
# =============================================================================

class TestModerateArticle:
    """Individual flags."""

    def test_clean_article_approved(self, moderator):
        result = moderator.moderate_article(make_article())
        assert result.approved
        assert result.flags == []
        assert result.score == 1.0

    def test_near_duplicate_rejected(self, moderator):
        existing = make_article(
            "Indonesia raises interest rate to curb inflation",
            link="https://a.example.com/1",
        )
        candidate = make_article(
            "Indonesia raises its interest rate to curb rising inflation",
            link="https://b.example.com/2",
            source="Other Source",
        )

        result = moderator.moderate_article(candidate, existing=[existing])

        assert not result.approved
        assert FlagType.DUPLICATE in flag_types(result)

    def test_same_link_is_duplicate(self, moderator):
        existing = make_article("Completely different headline words", link="https://x.example.com/s")
        candidate = make_article("Another unrelated title for testing", link="https://x.example.com/s")

        result = moderator.moderate_article(candidate, existing=[existing])

        assert FlagType.DUPLICATE in flag_types(result)

    def test_short_title_rejected(self, moderator):
        result = moderator.moderate_article(make_article("Hi"))
        assert not result.approved
        assert result.has_high_severity

    def test_missing_description_flagged_but_approved(self, moderator):
        result = moderator.moderate_article(make_article(description="Too short"))
        assert FlagType.MISSING_CONTENT in flag_types(result)
        assert result.approved
        assert result.score == pytest.approx(0.7)

    def test_invalid_url_rejected(self, moderator):
        result = moderator.moderate_article(make_article(link="ftp://files.example.com/story"))
        assert not result.approved

    def test_future_date_flagged(self, moderator):
        article = make_article(pub_date=utcnow() + timedelta(days=3))
        result = moderator.moderate_article(article)
        assert FlagType.LOW_QUALITY in flag_types(result)
        assert result.approved

    def test_excessive_caps_flagged(self, moderator):
        result = moderator.moderate_article(make_article("SHOCKING NEWS FROM THE ISLAND TODAY"))
        descriptions = [f.description for f in result.flags]
        assert "Excessive capitalization" in descriptions

    def test_spam_keywords_rejected(self, moderator):
        article = make_article("Congratulations winner click here to claim your prize")
        result = moderator.moderate_article(article)
        assert not result.approved
        spam = [f for f in result.flags if f.type == FlagType.SPAM]
        assert spam and spam[0].severity == Severity.HIGH

    def test_unknown_source_is_unreliable(self):
        moderator = ContentModerator()
        result = moderator.moderate_article(make_article(source="Nobody Heard Of It"))
        assert FlagType.UNRELIABLE_SOURCE in flag_types(result)
        # Medium severity only: still approved
        assert result.approved

    def test_moderate_article_has_no_side_effects(self, moderator):
        moderator.moderate_article(make_article())
        assert moderator.get_source_reliability("Test Source") == 0.9
        assert moderator.get_stats()["processed"] == 0


# =============================================================================
# Batches
# =============================================================================

class TestModerateBatch:
    """Batch behavior, dedup within the batch and error isolation."""

    def test_duplicates_within_batch(self, moderator):
        first = make_article("Bali airport expansion approved by government", link="https://a.example.com/1")
        second = make_article("Bali airport expansion approved by the government", link="https://b.example.com/1")

        batch = moderator.moderate_batch([first, second])

        assert batch.approved == [first]
        assert batch.rejected_count == 1

    def test_checked_against_existing(self, moderator):
        existing = [make_article("Bali airport expansion approved by government", link="https://a.example.com/1")]
        candidate = make_article("Bali airport expansion approved by government", link="https://c.example.com/9")

        batch = moderator.moderate_batch([candidate], existing=existing)

        assert batch.approved == []

    def test_exception_rejects_only_that_article(self, moderator):
        good = make_article("Jakarta opens a new rail line", link="https://a.example.com/rail")
        bad = make_article("This article will explode the scorer", link="https://a.example.com/boom")
        original = moderator._check_spam

        def flaky(article):
            if "explode" in article.title:
                raise RuntimeError("scorer crashed")
            return original(article)

        with patch.object(moderator, "_check_spam", side_effect=flaky):
            batch = moderator.moderate_batch([bad, good])

        assert batch.approved == [good]
        assert batch.rejected[0].flags[0].type == FlagType.MODERATION_ERROR
        assert moderator.get_stats()["flags"]["moderation_error"] == 1

    def test_stats(self, moderator):
        moderator.moderate_batch([make_article(), make_article("Hi", link="https://a.example.com/hi")])
        stats = moderator.get_stats()
        assert stats["processed"] == 2
        assert stats["approved"] == 1
        assert stats["rejected"] == 1
        assert stats["approval_rate"] == 50.0


# =============================================================================
# Reliability policy
# =============================================================================

class TestReliability:
    """Exponential moving average of approvals."""

    def test_policy_update(self):
        policy = ReliabilityPolicy(alpha=0.05)
        assert policy.update(0.9, approved=True) == pytest.approx(0.905)
        assert policy.update(0.9, approved=False) == pytest.approx(0.855)

    def test_update_is_clamped(self):
        policy = ReliabilityPolicy(alpha=1.0)
        assert policy.update(0.5, approved=True) == 1.0
        assert policy.update(0.5, approved=False) == 0.0

    def test_approval_raises_score(self, moderator):
        moderator.moderate_batch([make_article()])
        assert moderator.get_source_reliability("Test Source") == pytest.approx(0.905)

    def test_rejection_lowers_score(self, moderator):
        moderator.moderate_batch([make_article("Hi")])
        assert moderator.get_source_reliability("Test Source") == pytest.approx(0.855)

    def test_duplicates_do_not_change_score(self, moderator):
        existing = [make_article("Bali airport expansion approved by government", link="https://a.example.com/1")]
        dup = make_article(
            "Bali airport expansion approved by government",
            link="https://b.example.com/1",
            source="Other Source",
        )

        moderator.moderate_batch([dup], existing=existing)

        assert moderator.get_source_reliability("Other Source") == 0.9

    def test_repeated_rejections_make_source_unreliable(self, moderator):
        moderator.set_source_reliability("Test Source", 0.55)
        for i in range(5):
            moderator.moderate_batch([make_article("Hi", link=f"https://a.example.com/{i}")])

        result = moderator.moderate_article(make_article())
        assert FlagType.UNRELIABLE_SOURCE in flag_types(result)

    def test_seed_overrides_known_table(self):
        moderator = ContentModerator(reliability_seed={"TASS": 0.6})
        assert moderator.get_source_reliability("TASS") == 0.6

    def test_set_reliability_validates(self, moderator):
        with pytest.raises(ValueError):
            moderator.set_source_reliability("Test Source", 1.5)
