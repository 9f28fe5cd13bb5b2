#!/usr/bin/env python3
"""
Smoke Test Script

Validates configuration and connectivity with one live question.

Checks:
1. Required dependencies are importable
2. Environment variables are set (without printing secrets)
3. The knowledge API answers a calendar question
4. The answer survives post-processing and section parsing
"""

import asyncio
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def print_header(text: str) -> None:
    """Print a section header."""
    print(f"\n{'=' * 50}")
    print(f" {text}")
    print('=' * 50)


def print_ok(text: str) -> None:
    print(f"  [OK] {text}")


def print_error(text: str) -> None:
    print(f"  [ERR] {text}")


def print_warn(text: str) -> None:
    print(f"  [WARN] {text}")


def check_dependencies() -> bool:
    """Check that required dependencies are importable."""
    print_header("Checking Dependencies")

    dependencies = [
        ("structlog", "Structlog"),
        ("pydantic", "Pydantic"),
        ("httpx", "HTTPX"),
        ("openai", "OpenAI SDK"),
        ("dotenv", "python-dotenv"),
    ]

    all_ok = True
    for module, name in dependencies:
        try:
            __import__(module)
            print_ok(name)
        except ImportError as e:
            print_error(f"{name}: {e}")
            all_ok = False
    return all_ok


def check_env_vars() -> bool:
    """Check that the variables for the selected knowledge provider are set."""
    print_header("Checking Environment Variables")

    from dotenv import load_dotenv
    load_dotenv()

    provider = os.getenv("KNOWLEDGE_PROVIDER", "perplexity").strip().lower()
    if provider == "supabase":
        required_vars = ["SUPABASE_URL", "SUPABASE_ANON_KEY"]
    else:
        required_vars = ["PERPLEXITY_API_KEY"]

    optional_vars = [
        "LOG_LEVEL",
        "DEFAULT_LANGUAGE",
        "PERPLEXITY_MODEL",
        "GOOGLE_TRANSLATE_API_KEY",
        "SUGGESTIONS_REMOTE_ENABLED",
    ]

    all_ok = True
    print(f"  Knowledge provider: {provider}")
    for var in required_vars:
        value = os.getenv(var)
        if value:
            if var == "SUPABASE_URL":
                print_ok(f"{var}: {value}")
            else:
                masked = value[:4] + "..." + value[-4:] if len(value) > 8 else "****"
                print_ok(f"{var}: {masked}")
        else:
            print_error(f"{var}: NOT SET")
            all_ok = False

    print("\nOptional variables:")
    for var in optional_vars:
        value = os.getenv(var)
        if value and "KEY" in var:
            print_ok(f"{var}: set")
        elif value:
            print_ok(f"{var}: {value}")
        else:
            print_warn(f"{var}: not set (using default)")

    return all_ok


async def check_knowledge(question: str) -> bool:
    """Ask one question end to end, without speech."""
    print_header("Asking the Knowledge API")

    from src.askvedic.config import init_config
    from src.askvedic.log_setup import configure_logging
    from src.askvedic.orchestrator import AssistantQueryOrchestrator
    from src.askvedic.knowledge import create_knowledge_client
    from src.askvedic.language import LanguageState, normalize_language_tag
    from src.askvedic.sections import parse_sections
    from src.askvedic.translation import create_translation_gateway

    try:
        config = init_config()
    except Exception as e:
        print_error(f"Invalid configuration: {e}")
        return False
    configure_logging(config.log_level)

    orchestrator = AssistantQueryOrchestrator(
        knowledge=create_knowledge_client(config),
        translator=create_translation_gateway(config),
        language=LanguageState(
            current=normalize_language_tag(config.default_language),
            pivot=normalize_language_tag(config.pivot_language),
        ),
        config=config,
    )
    try:
        outcome = await orchestrator.ask(question)
    finally:
        await orchestrator.knowledge.close()
        await orchestrator.translator.close()

    if outcome is None:
        print_error("No answer produced")
        return False
    if not outcome.ok:
        print_error(f"Knowledge API failed ({outcome.error_kind.value})")
        print(f"  Fallback shown: {outcome.assistant_message.content}")
        return False

    print(f"  Question: {question}")
    print(f"  Location: {outcome.location or '(none)'}")
    print()
    for line in outcome.assistant_message.content.split("\n"):
        print(f"    {line}")

    sections = parse_sections(outcome.assistant_message.content, config.guidance_display_limit)
    if sections.unstructured:
        print_warn("Answer had no recognizable sections")
    else:
        print_ok(
            f"Sections: {len(sections.timing_items)} timing, "
            f"{len(sections.guidance_items)} guidance"
        )
    return True


async def main() -> int:
    """Run all smoke tests."""
    print("\n" + "=" * 50)
    print(" ASK VOICEVEDIC - SMOKE TEST")
    print("=" * 50)

    question = " ".join(sys.argv[1:]) or "When is the next Amavasya in Bengaluru?"

    results = []
    results.append(("Dependencies", check_dependencies()))
    results.append(("Environment Variables", check_env_vars()))
    if all(passed for _, passed in results):
        results.append(("Knowledge API", await check_knowledge(question)))

    print_header("Summary")

    all_passed = True
    for name, passed in results:
        if passed:
            print_ok(name)
        else:
            print_error(name)
            all_passed = False

    print()
    if all_passed:
        print("[OK] All checks passed!")
        return 0
    print("[ERR] Some checks failed. Please fix the issues above.")
    return 1


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
