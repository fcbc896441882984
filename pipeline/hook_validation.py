"""Structural validation of hook candidates against platform rules.

Pure functions, no I/O. A candidate is valid when ``issues`` is empty.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable

from schemas.hooks import HookCandidate, Platform, ValidationResult


@dataclass(frozen=True)
class PlatformRules:
    min_words: int
    max_words: int
    overlay_max_chars: int | None
    required_signal: str  # "visual" | "overlay" | "proof"
    style: str


PLATFORM_RULES: dict[Platform, PlatformRules] = {
    Platform.TIKTOK: PlatformRules(8, 12, None, "visual", "Dynamic visual cold-open, action-oriented overlay"),
    Platform.INSTAGRAM: PlatformRules(6, 15, 24, "overlay", "Aesthetic visual, save-worthy overlay"),
    Platform.YOUTUBE: PlatformRules(4, 8, None, "proof", "Credible proof visual, number-driven line"),
}

OVERUSED_OPENINGS: tuple[str, ...] = (
    "if you",
    "stop scrolling",
    "did you know",
    "here's",
    "this is",
    "watch this",
)

_PROOF_WORDS_RE = re.compile(r"\b(?:percent|results?|tested|proven|study|data|stats?)\b", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")


def count_words(text: str) -> int:
    """Whitespace-separated tokens of the stripped line (0 for empty)."""
    return len(str(text or "").split())


def rules_for(platform: Platform | str) -> PlatformRules:
    return PLATFORM_RULES[Platform(platform)]


def _normalized_opening(text: str) -> str:
    # Curly apostrophes are common in model output ("Here’s").
    return str(text or "").strip().lower().replace("’", "'")


def has_overused_opening(text: str) -> bool:
    opening = _normalized_opening(text)
    return any(opening.startswith(phrase) for phrase in OVERUSED_OPENINGS)


def has_proof_cue(*texts: str) -> bool:
    for text in texts:
        value = str(text or "")
        if _DIGIT_RE.search(value) or _PROOF_WORDS_RE.search(value):
            return True
    return False


def find_banned_terms(banned_terms: Iterable[str], *texts: str) -> list[str]:
    haystack = " ".join(str(t or "") for t in texts).lower()
    hits: list[str] = []
    for term in banned_terms:
        cleaned = str(term or "").strip()
        if cleaned and cleaned.lower() in haystack and cleaned not in hits:
            hits.append(cleaned)
    return hits


def validate_candidate(
    candidate: HookCandidate,
    platform: Platform | str,
    banned_terms: Iterable[str] = (),
) -> ValidationResult:
    platform = Platform(platform)
    rules = PLATFORM_RULES[platform]
    verbal = str(candidate.verbal_hook or "").strip()
    visual = str(candidate.visual_hook or "").strip()
    overlay = str(candidate.textual_hook or "").strip()
    words = count_words(verbal)
    issues: list[str] = []

    if words < rules.min_words or words > rules.max_words:
        issues.append(f"Word count {words} outside {platform.value} range {rules.min_words}-{rules.max_words}")

    if has_overused_opening(verbal):
        issues.append("Contains overused opening phrase")

    if rules.overlay_max_chars is not None and len(overlay) > rules.overlay_max_chars:
        issues.append(f"{platform.value.capitalize()} overlay text exceeds {rules.overlay_max_chars} characters")

    if rules.required_signal == "visual" and not visual:
        issues.append("Missing visual cold-open")
    elif rules.required_signal == "overlay" and not overlay:
        issues.append("Missing on-screen overlay")
    elif rules.required_signal == "proof" and not has_proof_cue(verbal, overlay, visual):
        issues.append("Missing proof cue (number or stat)")

    for term in find_banned_terms(banned_terms, verbal, overlay):
        issues.append(f"Contains banned term '{term}'")

    return ValidationResult(valid=not issues, issues=issues, word_count=words)
