"""
Location extraction from free-form questions.

"What time is Rahukaal in Chennai today?" -> "Chennai". A preposition or
"location" marker followed by one to three words is a candidate; articles are
stripped, temporal words end the candidate, and common words, question words,
calendar terms and deity names are never a place. After a preposition the
place must be capitalized: "good for starting new work" names no place.
"""

from __future__ import annotations

import re
from typing import Optional

_WORD = r"[A-Za-z][A-Za-z.'\-]*"

# (pattern, place must be capitalized)
LOCATION_PATTERNS: tuple[tuple[re.Pattern, bool], ...] = (
    (re.compile(rf"\blocation\b\s*[:\-]?\s*(?=({_WORD}(?:\s+{_WORD}){{0,3}}))", re.IGNORECASE), False),
    (re.compile(rf"\b(?:in|at|for)\s+(?=({_WORD}(?:\s+{_WORD}){{0,3}}))", re.IGNORECASE), True),
)

ARTICLES = frozenset({"the", "a", "an"})

TEMPORAL_WORDS = frozenset({
    "today", "tomorrow", "tonight", "yesterday", "now",
    "this", "next", "last", "coming",
    "week", "month", "year", "day",
    "morning", "evening", "night", "noon", "afternoon",
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
})

QUESTION_WORDS = frozenset({"what", "when", "where", "which", "who", "whom", "why", "how"})

STOPWORDS = frozenset({
    "is", "are", "was", "were", "be", "do", "does", "did", "will", "can", "should",
    "and", "or", "of", "to", "on", "with", "about", "from", "by", "in", "at", "for",
    "i", "me", "my", "we", "us", "our", "you", "your", "it", "its", "they", "them",
    "that", "these", "those", "here", "there", "home", "please",
    "all", "any", "some", "more", "general", "example", "details", "information",
    "family", "kids", "children", "ancestors", "beginners",
    # calendar vocabulary
    "sunrise", "sunset", "puja", "pooja", "prayer", "prayers", "fast", "fasting",
    "festival", "festivals", "diwali", "amavasya", "purnima", "ekadashi", "navratri",
    "holi", "rahu", "rahukaal", "kaal", "muhurat", "muhurtham", "tithi", "nakshatra",
    "panchang", "vrat", "shraddh", "dates", "date", "time", "timing", "timings",
    # deities and observances
    "satyanarayan", "satyanarayana", "ganesh", "ganesha", "lakshmi", "shiva", "shiv",
    "vishnu", "krishna", "rama", "ram", "hanuman", "durga", "saraswati", "kali",
}) | ARTICLES | TEMPORAL_WORDS | QUESTION_WORDS


def _clean_candidate(raw: str, capitalized: bool = False) -> Optional[str]:
    words = [w.strip(".'-") for w in raw.split()]
    words = [w for w in words if w]

    while words and words[0].lower() in ARTICLES:
        words = words[1:]

    if capitalized and words and not words[0][:1].isupper():
        return None

    kept: list[str] = []
    for word in words:
        if word.lower() in STOPWORDS:
            break
        kept.append(word)

    if not kept:
        return None
    return " ".join(kept[:3])


def extract_location_from_question(question: str) -> Optional[str]:
    """Return the place named in `question`, or None."""
    if not question:
        return None

    matches = []
    for pattern, capitalized in LOCATION_PATTERNS:
        matches.extend((match, capitalized) for match in pattern.finditer(question))
    matches.sort(key=lambda item: item[0].start())

    for match, capitalized in matches:
        location = _clean_candidate(match.group(1), capitalized)
        if location:
            return location
    return None
