"""
Assistant answer section parsing.

Splits an answer into a greeting, the "timing details" and "guidance"
sections, and an overflow bucket of bullets seen before any section began.
Upstream answers do not always follow the requested format, so every shape
is accepted (hyphen bullets, numbered lists, bullet glyphs, single-line
answers, Hindi/Kannada headers) and an answer with none of it is reported
as unstructured for verbatim display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Literal

BULLET = "•"
GREETING_PHRASE = "Jai Shree Krishna"
GUIDANCE_DISPLAY_LIMIT = 8

_TIMING_HEADER_RE = re.compile(r"(TIMING DETAILS\s*:)", re.IGNORECASE)
_GUIDANCE_HEADER_RE = re.compile(r"(GUIDANCE\s*:)", re.IGNORECASE)
# Time ranges ("6:00 AM - 7:30 AM") stay on one line.
_DASH_BULLET_RE = re.compile(r"\s[-–—]\s(?!\d)")
_GLYPH_BULLET_RE = re.compile(r"\s•\s")
_NUMBERED_RE = re.compile(r"\s\d+\.\s")
_BLANK_RUN_RE = re.compile(r"\n{2,}")

_TIMING_EMOJI_RE = re.compile("\U0001F4C5|\U0001F5D3|\U0001F6A9")
_GUIDANCE_EMOJI_RE = re.compile("✨|\U0001F64F")

# Header keywords in the supported languages. Each inner tuple is one header
# phrase; a line is a header when it contains the first word and any of the rest.
TIMING_HEADER_KEYWORDS: tuple[tuple[str, ...], ...] = (
    ("timing details",),
    ("समय", "विवरण"),
    ("ಸಮಯ", "ವಿವರ", "ವಿವರಗಳು"),
)
GUIDANCE_HEADER_KEYWORDS: tuple[str, ...] = ("guidance", "मार्गदर्शन", "ಮಾರ್ಗದರ್ಶನ", "ಉಪದೇಶ")

Section = Literal["none", "timing", "guidance"]


def _matches_keyword_pair(lowered: str, keywords: tuple[str, ...]) -> bool:
    head, *rest = keywords
    if head not in lowered:
        return False
    return not rest or any(word in lowered for word in rest)


def is_timing_header(line: str) -> bool:
    if _TIMING_EMOJI_RE.search(line):
        return True
    lowered = line.lower()
    return any(_matches_keyword_pair(lowered, keywords) for keywords in TIMING_HEADER_KEYWORDS)


def is_guidance_header(line: str) -> bool:
    if _GUIDANCE_EMOJI_RE.search(line):
        return True
    lowered = line.lower()
    return any(keyword in lowered for keyword in GUIDANCE_HEADER_KEYWORDS)


def normalize_answer(content: str) -> list[str]:
    """Put headers and bullets on their own lines; return non-empty stripped lines."""
    text = (content or "").replace("\r\n", "\n")
    text = _TIMING_HEADER_RE.sub(r"\n\1", text)
    text = _GUIDANCE_HEADER_RE.sub(r"\n\1", text)
    text = _DASH_BULLET_RE.sub(f"\n{BULLET} ", text)
    text = _GLYPH_BULLET_RE.sub(f"\n{BULLET} ", text)
    text = _BLANK_RUN_RE.sub("\n", text)
    text = _NUMBERED_RE.sub(f"\n{BULLET} ", text)
    return [line.strip() for line in text.split("\n") if line.strip()]


@dataclass
class ParsedSections:
    greeting: list[str] = field(default_factory=list)
    timing_items: list[str] = field(default_factory=list)
    guidance_items: list[str] = field(default_factory=list)
    general_bullets: list[str] = field(default_factory=list)
    guidance_limit: int = GUIDANCE_DISPLAY_LIMIT

    @property
    def is_structured(self) -> bool:
        return bool(self.timing_items or self.guidance_items or self.general_bullets)

    @property
    def unstructured(self) -> bool:
        """True when the caller should render the raw answer verbatim."""
        return not self.is_structured

    @property
    def hidden_guidance_count(self) -> int:
        return max(0, len(self.guidance_items) - self.guidance_limit)

    def visible_guidance(self, expanded: bool = False) -> list[str]:
        """The first `guidance_limit` items, or all of them when expanded."""
        if expanded or len(self.guidance_items) <= self.guidance_limit:
            return list(self.guidance_items)
        return self.guidance_items[: self.guidance_limit]


def parse_sections(content: str, guidance_limit: int = GUIDANCE_DISPLAY_LIMIT) -> ParsedSections:
    parsed = ParsedSections(guidance_limit=guidance_limit)
    current: Section = "none"

    for line in normalize_answer(content):
        if GREETING_PHRASE in line:
            parsed.greeting.append(line)
            continue

        if is_timing_header(line):
            current = "timing"
            continue
        if is_guidance_header(line):
            current = "guidance"
            continue

        is_bullet = line.startswith(BULLET)
        item = line[len(BULLET):].strip() if is_bullet else line

        if current == "timing":
            parsed.timing_items.append(item)
        elif current == "guidance":
            parsed.guidance_items.append(item)
        elif is_bullet:
            parsed.general_bullets.append(item)
        else:
            parsed.greeting.append(line)

    return parsed
