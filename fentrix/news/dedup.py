"""
Duplicate detection helpers for generated articles.

Two heuristics are used:
- a content fingerprint stored on each row and compared for exact equality
- fuzzy title comparison against the most recent rows
"""

import re
from typing import List

_HEADING_MARKER = re.compile(r"#+\s*\*+")
_SUMMARY_MARKER = re.compile(r"^#+\s*\*+Summary\*+", re.IGNORECASE)
_NON_FINGERPRINT_CHARS = re.compile(r"[^a-z0-9-]")


def clean_title(title: str) -> str:
    """Strip markdown heading/bold markers and a trailing colon."""
    cleaned = _HEADING_MARKER.sub("", title or "")
    cleaned = cleaned.replace("**", "")
    cleaned = re.sub(r":\Z", "", cleaned)
    return cleaned.strip()


def clean_summary(summary: str) -> str:
    cleaned = _SUMMARY_MARKER.sub("", summary or "")
    cleaned = cleaned.replace("**", "")
    cleaned = cleaned.replace("\\n", " ")
    return cleaned.strip()


def _significant_words(text: str, min_length: int) -> List[str]:
    return [word for word in text.split() if len(word) > min_length]


def generate_fingerprint(title: str, summary: str, category: str) -> str:
    """Sorted significant words of title and summary opening, suffixed with the category."""
    title_words = _significant_words(title.lower(), 3)
    summary_words = _significant_words(summary.lower(), 3)[:10]
    words = sorted(title_words + summary_words)
    return "-".join(words) + "-" + (category or "")


def short_fingerprint(title: str, category: str) -> str:
    """Title-prefix fingerprint used for batch (stock sector) articles."""
    raw = f"{title.lower()[:50]}-{category}"
    return _NON_FINGERPRINT_CHARS.sub("-", raw)


def is_title_similar(title1: str, title2: str) -> bool:
    if len(title1) < 10 or len(title2) < 10:
        return title1 == title2

    if title1 in title2 or title2 in title1:
        return True

    words1 = _significant_words(title1, 3)
    words2 = _significant_words(title2, 3)
    if len(words1) < 3 or len(words2) < 3:
        return False

    matching = [word for word in words1 if word in words2]
    return len(matching) / min(len(words1), len(words2)) > 0.7


def has_overlapping_keywords(title1: str, title2: str) -> bool:
    keywords1 = _significant_words(title1, 4)
    keywords2 = _significant_words(title2, 4)
    matches = [word for word in keywords1 if word in keywords2]
    return len(matches) >= 3


def is_word_overlap_duplicate(existing_title: str, new_title: str) -> bool:
    """Looser check used before inserting batch articles."""
    existing = existing_title.lower()
    new = new_title.lower()

    if new in existing or existing in new:
        return True

    words_a = _significant_words(existing, 3)
    words_b = _significant_words(new, 3)
    matching = [word for word in words_a if word in words_b]
    if not matching:
        return False
    return len(matching) / min(len(words_a), len(words_b)) > 0.6
