"""Keyword-based emotion tagging for post content.

A post is tagged `positive` and/or `negative` when its text contains any keyword
of that group. Matching is a case-insensitive substring test.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

POSITIVE = "positive"
NEGATIVE = "negative"

EMOTION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    POSITIVE: (
        "开心",
        "快乐",
        "幸福",
        "满足",
        "成功",
        "进步",
        "希望",
        "爱",
        "happy",
        "joy",
        "grateful",
        "hope",
        "love",
    ),
    NEGATIVE: (
        "难过",
        "悲伤",
        "痛苦",
        "失望",
        "失败",
        "焦虑",
        "压力",
        "孤独",
        "sad",
        "lonely",
        "anxious",
        "stress",
        "disappointed",
    ),
}


def extract_emotion_tags(*texts: Optional[str]) -> List[str]:
    """Return the emotion tags found across `texts`, in a stable order, without duplicates."""
    haystack = " ".join(text for text in texts if text).lower()
    if not haystack:
        return []

    tags: List[str] = []
    for tag, keywords in EMOTION_KEYWORDS.items():
        if any(keyword in haystack for keyword in keywords):
            tags.append(tag)
    return tags


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Strip blanks and duplicates from user-supplied tags, keeping first-seen order."""
    seen = []
    for tag in tags or []:
        cleaned = tag.strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen
