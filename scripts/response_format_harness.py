"""
Quick answer formatting harness.

Runs a few deterministic assertions over post-processing, section parsing and
speech cleaning for answers in the shapes the upstream model actually returns.

Usage:
  python scripts/response_format_harness.py
"""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.askvedic.location import extract_location_from_question
from src.askvedic.postprocess import clean_text_for_tts, process_perplexity_response
from src.askvedic.sections import parse_sections


def main() -> None:
    # 1) Scratch reasoning never reaches the user; calendar data loses only its citation marker
    raw = "\n".join([
        "Okay, the user wants Rahu Kaal for Chennai.",
        "🪔 Jai Shree Krishna.",
        "📅 TIMING DETAILS:",
        "• Rahu Kaal: 10:30am - 12:00pm [1]",
        "• Sunrise: 6:02 AM",
        "✨ GUIDANCE:",
        "• Avoid starting new work. Chant the Hanuman Chalisa. Stay calm.",
    ])
    answer = process_perplexity_response(raw)
    lines = answer.split("\n")
    assert lines[0] == "🪔 Jai Shree Krishna."
    assert not any("[1]" in line or "Okay" in line for line in lines)
    assert lines[-1] == "• Avoid starting new work. Chant the Hanuman Chalisa."

    # 2) Sections survive post-processing
    sections = parse_sections(answer)
    assert sections.timing_items == ["Rahu Kaal: 10:30am - 12:00pm", "Sunrise: 6:02 AM"]
    assert sections.guidance_items == ["Avoid starting new work. Chant the Hanuman Chalisa."]

    # 3) One-line answers with inline headers and hyphen bullets
    sections = parse_sections(
        "Jai Shree Krishna. TIMING DETAILS: - Tithi: Ekadashi - Paran: 6:15 AM - 8:40 AM "
        "GUIDANCE: - Eat sattvic food - Read the Gita"
    )
    assert sections.timing_items == ["Tithi: Ekadashi", "Paran: 6:15 AM - 8:40 AM"]
    assert sections.guidance_items == ["Eat sattvic food", "Read the Gita"]

    # 4) Plain prose stays unstructured
    assert parse_sections("Diwali is the festival of lights.").unstructured

    # 5) Speech text is clean and stable
    spoken = clean_text_for_tts(answer)
    assert "🪔" not in spoken and "•" not in spoken
    assert clean_text_for_tts(spoken) == spoken

    # 6) Locations come from the question, temporal words never do
    assert extract_location_from_question("Rahu Kaal in Chennai today?") == "Chennai"
    assert extract_location_from_question("What is the tithi for tomorrow?") is None

    print("OK: response format harness passed")


if __name__ == "__main__":
    main()
