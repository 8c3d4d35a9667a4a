"""Similarity functions for near-duplicate article detection.

Uses Jaccard similarity over normalized word sets, so the same wire story
republished with a reworded headline still counts as a duplicate:
- "Indonesia raises interest rate to curb inflation"
- "Indonesia raises its interest rate to curb rising inflation"
"""

from __future__ import annotations

import re


def normalize_text(text: str) -> set[str]:
    """Normalize text for similarity comparison.

    Lowercases, removes punctuation and keeps words longer than two
    characters.

    Args:
        text: Title or description.

    Returns:
        Set of normalized words.
    """
    if not text:
        return set()

    normalized = re.sub(r"[^\w\s]", " ", text.lower())
    return {word for word in normalized.split() if len(word) > 2}


def jaccard_similarity(set_a: set[str], set_b: set[str]) -> float:
    """Calculate Jaccard similarity between two sets.

    Jaccard = |intersection| / |union|

    Returns:
        Similarity score from 0.0 (no overlap) to 1.0 (identical).
    """
    if not set_a or not set_b:
        return 0.0

    union = len(set_a | set_b)
    if union == 0:
        return 0.0

    return len(set_a & set_b) / union


def text_similarity(text_a: str, text_b: str) -> float:
    """Jaccard similarity of two raw strings."""
    return jaccard_similarity(normalize_text(text_a), normalize_text(text_b))
