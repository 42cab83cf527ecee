"""Text helpers: category detection, LLM output parsing and image keyword extraction."""

import random
import re
from typing import List, Optional

DEFAULT_TITLE = "Fentrix.AI News Update"
DEFAULT_SUMMARY = "Latest news update from Fentrix.AI."

CATEGORY_KEYWORDS = {
    "stock": ["stock", "market", "shares", "trading", "nasdaq", "dow"],
    "crypto": ["crypto", "bitcoin", "blockchain", "ethereum", "token"],
    "health": ["health", "medical", "wellness", "disease", "treatment"],
    "finance": ["finance", "economy", "banking", "investment", "money"],
}

STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "is", "are", "was", "were",
    "in", "on", "at", "to", "for", "with", "by", "about", "like",
    "through", "over", "before", "after", "since", "of", "from",
}

IMAGE_CATEGORY_KEYWORDS = {
    "finance": ["business", "finance", "money", "economy", "chart", "growth"],
    "crypto": ["cryptocurrency", "blockchain", "digital", "technology", "bitcoin", "crypto"],
    "health": ["healthcare", "medical", "wellness", "healthy", "medicine", "doctor"],
    "stock": ["stock", "market", "trading", "finance", "business", "chart"],
    "news": ["news", "journalism", "media", "report", "current"],
    "technology": ["tech", "digital", "computer", "innovation", "futuristic"],
}

# Applied in order to keep stock image searches safe
SAFE_REPLACEMENTS = [
    ("trump", "politician"),
    ("biden", "president"),
    ("sex", "health"),
    ("nsfw", "content"),
    ("weapon", "tool"),
    ("gun", "policy"),
]

DESCRIPTIVE_ADJECTIVES = [
    "professional", "modern", "high quality", "detailed", "realistic",
    "clear", "vibrant", "dynamic", "elegant",
]
CONTEXT_TERMS = ["news article", "illustration", "photograph"]


def determine_category(text: str) -> str:
    lowered = (text or "").lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return "custom"


def extract_title_from_content(content: str) -> str:
    match = re.search(r"Title:\s*(.+?)(?:\n|$)", content)
    if match and match.group(1).strip():
        return match.group(1).strip()

    for line in content.split("\n"):
        cleaned = line.strip()
        if 10 < len(cleaned) < 200:
            return cleaned

    return DEFAULT_TITLE


def extract_summary_from_content(content: str) -> str:
    match = re.search(r"Summary:\s*(.+?)(?:\n\n|$)", content, re.DOTALL)
    if match and match.group(1).strip():
        return match.group(1).strip()

    paragraphs = content.split("\n\n")
    if len(paragraphs) > 1:
        return paragraphs[1].strip()

    return DEFAULT_SUMMARY


def clean_image_title(title: str) -> str:
    """Title cleanup applied before searching cover images."""
    cleaned = re.sub(r"#+\s*\*+", "", title or "")
    cleaned = cleaned.replace("**", "")
    cleaned = re.sub(r":\Z", "", cleaned)
    return cleaned.strip()


def split_generated_article(content: str):
    """Split a generated preview into (title, summary, body) on blank lines."""
    parts = content.split("\n\n")
    title = parts[0] if parts else ""
    summary = parts[1] if len(parts) > 1 else ""
    body = "\n\n".join(parts[2:])

    title = title.replace("Title: ", "").strip()
    summary = summary.replace("Summary: ", "").strip()
    return title, summary, body.strip()


def extract_keywords(prompt: str, category: Optional[str] = None, rng: Optional[random.Random] = None) -> List[str]:
    """Turn a headline into an image search keyword list."""
    rng = rng or random

    clean_prompt = re.sub(r"#+\s*\**", "", prompt or "")
    clean_prompt = clean_prompt.replace("**", "")
    clean_prompt = re.sub(r"[\[\]()\"'?!:]", "", clean_prompt)
    clean_prompt = clean_prompt.replace("–", "-").strip()

    words = [
        word for word in clean_prompt.split(" ")
        if len(word) > 2 and word.lower() not in STOP_WORDS
    ]
    keywords = words[:5]

    if category and category in IMAGE_CATEGORY_KEYWORDS:
        category_words = list(IMAGE_CATEGORY_KEYWORDS[category])
        rng.shuffle(category_words)
        keywords.extend(category_words[:3])

    safe_keywords = []
    for keyword in keywords:
        keyword = keyword.lower()
        for term, replacement in SAFE_REPLACEMENTS:
            keyword = keyword.replace(term, replacement)
        safe_keywords.append(keyword)

    adjectives = list(DESCRIPTIVE_ADJECTIVES)
    rng.shuffle(adjectives)
    context = rng.choice(CONTEXT_TERMS)

    # dict keeps first-seen order
    return list(dict.fromkeys(safe_keywords + adjectives[:2] + [context]))
