"""
Answer post-processing and speech text cleaning.

`process_perplexity_response` turns a raw upstream answer into text fit for
both display and speech: reasoning leakage removed, bold markup stripped,
greeting first, verbosity bounded.

`clean_text_for_tts` is the lighter, script-aware pass run right before an
utterance. Native-script text (Hindi, Kannada) is only normalized so the
script survives intact; Latin text goes through a character allow-list and
time-format repair. Applying it twice gives the same result as once.
"""

from __future__ import annotations

import re

from src.askvedic.knowledge import CANONICAL_GREETING
from src.askvedic.language import detect_script_language

CANONICAL_GREETING_PHRASE = "jai shree krishna"

# Upstream model scratch-work that must never reach the user.
REASONING_LEAKAGE_PHRASES: tuple[str, ...] = (
    "let's tackle this",
    "lets tackle this",
    "let me tackle",
    "let me think",
    "let me start by",
    "let me check",
    "the instructions say",
    "according to the instructions",
    "the system prompt",
    "the user is asking",
    "the user wants",
    "the user asked",
    "i need to",
    "okay, so",
    "alright, so",
    "looking at the search results",
    "based on the search results",
    "the search results",
    "please consult",
    "please check",
    "please refer",
    "consult drik panchang",
    "check drik panchang",
    "refer to drik panchang",
    "check kksf",
    "refer to kksf",
    "consult kksf",
    "other sources",
)

_CITATION_RE = re.compile(r"\[\d+(?:\s*,\s*\d+)*\]")
_CITATION_STRIP_RE = re.compile(r"\s*\[\d+(?:\s*,\s*\d+)*\]")

CALENDAR_KEYWORDS: tuple[str, ...] = ("tithi", "nakshatra", "rahu", "muhurat", "panchang")

CALENDAR_FIELD_NAMES: tuple[str, ...] = (
    "tithi",
    "nakshatra",
    "yoga",
    "karana",
    "paksha",
    "sunrise",
    "sunset",
    "moonrise",
    "rahu",
    "yamaganda",
    "gulika",
    "abhijit",
    "muhurat",
    "choghadiya",
    "brahma",
    "amrit",
    "maasa",
)

_AM_PM_RE = re.compile(r"\b\d{1,2}(?::\d{2})?\s*(?:AM|PM|a\.m\.|p\.m\.)", re.IGNORECASE)
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def is_reasoning_leakage(line: str) -> bool:
    lowered = (line or "").lower()
    if _CITATION_RE.search(lowered):
        return True
    return any(phrase in lowered for phrase in REASONING_LEAKAGE_PHRASES)


def is_calendar_content(text: str) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in CALENDAR_KEYWORDS)


def is_calendar_data_line(line: str) -> bool:
    """Lines carrying calendar data are kept whole, never sentence-truncated."""
    if ":" in line:
        return True
    if _AM_PM_RE.search(line):
        return True
    lowered = line.lower()
    return any(name in lowered for name in CALENDAR_FIELD_NAMES)


def strip_citations(line: str) -> str:
    return _CITATION_STRIP_RE.sub("", line).strip()


def strip_bold_markup(line: str) -> str:
    line = line.replace("**", "").replace("__", "")
    line = re.sub(r"^\*\s+", "• ", line)
    return re.sub(r"\*([^*\n]+)\*", r"\1", line)


def truncate_sentences(line: str, max_sentences: int = 2) -> str:
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(line.strip()) if s]
    if len(sentences) <= max_sentences:
        return line.strip()
    return " ".join(sentences[:max_sentences])


def process_perplexity_response(
    raw: str,
    *,
    calendar_max_lines: int = 20,
    general_max_lines: int = 6,
) -> str:
    """Clean a raw knowledge-API answer for display and speech."""
    lines: list[str] = []
    for line in (raw or "").replace("\r\n", "\n").split("\n"):
        line = line.strip()
        # Calendar data keeps its value; only the citation marker goes.
        if _CITATION_RE.search(line) and is_calendar_data_line(line):
            line = strip_citations(line)
        if not line or is_reasoning_leakage(line):
            continue
        line = strip_bold_markup(line).strip()
        if line:
            lines.append(line)

    greeting_index = next(
        (i for i, line in enumerate(lines) if CANONICAL_GREETING_PHRASE in line.lower()),
        None,
    )
    if greeting_index is None:
        lines.insert(0, CANONICAL_GREETING)
    else:
        lines = lines[greeting_index:]

    max_lines = calendar_max_lines if is_calendar_content("\n".join(lines)) else general_max_lines
    lines = lines[:max_lines]

    return "\n".join(
        line if is_calendar_data_line(line) else truncate_sentences(line, 2)
        for line in lines
    )


# ----------------------------------------------------------------------
# Speech cleaning
# ----------------------------------------------------------------------

_EMOJI_RE = re.compile(
    "["
    "\U0001F000-\U0001FAFF"
    "\u2600-\u27BF"
    "\u2B00-\u2BFF"
    "\uFE0F"
    "\u200D"
    "]"
)
_BULLET_RE = re.compile(r"[•●◦▪·]")
_MARKUP_RE = re.compile(r"[*#_~`|]")
_LATIN_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9\s.,:;!?'()\-/&%]")

_TIME_SUFFIX_RE = re.compile(r"(\d{1,2}:\d{2})\s*([AaPp])(?:[Mm]\b|\.\s?[Mm]\.)")
_DUPLICATE_MERIDIEM_RE = re.compile(r"\b(AM|PM)(?:\s+(?:AM|PM)\b)+")
_TIME_RANGE_RE = re.compile(r"(\d{1,2}:\d{2} (?:AM|PM))\s*(?:-|–|—|\bto\b)\s*(\d{1,2}:\d{2})")

_REPEATED_PUNCT_RE = re.compile(r"([.!?।])(?:\s*[.!?।])+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,!?;:।])")


def _join_lines(text: str, terminators: str) -> str:
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    joined: list[str] = []
    for index, line in enumerate(lines):
        if index < len(lines) - 1 and line[-1] not in terminators:
            line += "."
        joined.append(line)
    return " ".join(joined)


def repair_time_formats(text: str) -> str:
    """`6:00am` -> `6:00 AM`, `AM AM` -> `AM`, `6:00 AM-7:00 PM` -> `6:00 AM to 7:00 PM`."""
    text = _TIME_SUFFIX_RE.sub(lambda m: f"{m.group(1)} {m.group(2).upper()}M", text)
    text = _DUPLICATE_MERIDIEM_RE.sub(r"\1", text)
    return _TIME_RANGE_RE.sub(r"\1 to \2", text)


def _finish(text: str) -> str:
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _REPEATED_PUNCT_RE.sub(r"\1", text)
    return re.sub(r"\s+", " ", text).strip()


def _clean_native_script(text: str) -> str:
    text = _EMOJI_RE.sub("", text)
    text = _BULLET_RE.sub(" ", text)
    text = _MARKUP_RE.sub(" ", text)
    text = _join_lines(text, ".!?।:;,")
    return _finish(text)


def _clean_latin_script(text: str) -> str:
    text = _EMOJI_RE.sub("", text)
    text = _BULLET_RE.sub(" ", text)
    text = _join_lines(text, ".!?:;,")
    text = repair_time_formats(text)
    text = _LATIN_DISALLOWED_RE.sub(" ", text)
    text = _finish(text)
    return repair_time_formats(text)


def clean_text_for_tts(text: str) -> str:
    """Prepare text for an utterance, preserving Devanagari/Kannada script."""
    if not text or not text.strip():
        return ""
    if detect_script_language(text):
        return _clean_native_script(text)
    return _clean_latin_script(text)
