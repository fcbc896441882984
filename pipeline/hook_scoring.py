"""Deterministic hook scoring and ranking.

composite = baseline + 1.2 * word_count_fit + framework_bonus
            + objective_bonus + jitter, clamped to [0, 5], 1 decimal.

Jitter is cosmetic. It is kept in its own field and is never a tie-breaker:
ranking is a stable sort, so equal composites keep generation order.
"""

from __future__ import annotations

import math
import random
import re

from pipeline.hook_validation import count_words
from schemas.hooks import (
    HookCandidate,
    JudgeScores,
    Objective,
    Platform,
    ScoreBreakdown,
    TopVariant,
    VariantLabel,
)

BASELINE = 2.5
WORD_FIT_WEIGHT = 1.2
JITTER_SPAN = 0.15

# (mean, std-dev) of the gaussian word-count fit per platform.
WORD_COUNT_TARGETS: dict[Platform, tuple[float, float]] = {
    Platform.TIKTOK: (10.0, 2.0),
    Platform.INSTAGRAM: (10.0, 2.5),
    Platform.YOUTUBE: (6.0, 1.5),
}

FRAMEWORK_BONUSES: dict[str, float] = {
    "Open Loop": 0.8,
    "Problem-Promise-Proof": 0.7,
    "4U's": 0.6,
    "AIDA": 0.5,
    "PAS": 0.5,
    "Question": 0.5,
    "Statement": 0.4,
    "Direct": 0.3,
}
DEFAULT_FRAMEWORK_BONUS = 0.4

_FRAMEWORK_ALIASES: dict[str, str] = {
    "openloop": "Open Loop",
    "problempromiseproof": "Problem-Promise-Proof",
    "ppp": "Problem-Promise-Proof",
    "4us": "4U's",
    "4u": "4U's",
    "aida": "AIDA",
    "pas": "PAS",
    "question": "Question",
    "statement": "Statement",
    "direct": "Direct",
}

# (platform, objective) -> (framework that earns the high bonus, high, low)
OBJECTIVE_BONUSES: dict[tuple[Platform, Objective], tuple[str, float, float]] = {
    (Platform.TIKTOK, Objective.WATCH_TIME): ("Open Loop", 0.6, 0.3),
    (Platform.INSTAGRAM, Objective.SAVES): ("Problem-Promise-Proof", 0.5, 0.2),
    (Platform.YOUTUBE, Objective.CTR): ("Question", 0.4, 0.2),
}

VARIANT_LABELS: tuple[VariantLabel, ...] = ("enhanced", "refined", "optimized")


class ScoreJitter:
    """Seedable source of the ±0.15 cosmetic perturbation."""

    def __init__(self, seed: int | None = None, enabled: bool = True, span: float = JITTER_SPAN):
        self._rng = random.Random(seed)
        self.enabled = enabled
        self.span = span

    @classmethod
    def disabled(cls) -> "ScoreJitter":
        return cls(enabled=False)

    def next(self) -> float:
        if not self.enabled:
            return 0.0
        return round(self._rng.uniform(-self.span, self.span), 3)


def normalize_framework(name: str) -> str:
    """Map free-form framework names onto the canonical table keys."""
    key = re.sub(r"[^a-z0-9]", "", str(name or "").lower())
    return _FRAMEWORK_ALIASES.get(key, str(name or "").strip())


def framework_bonus(name: str) -> float:
    return FRAMEWORK_BONUSES.get(normalize_framework(name), DEFAULT_FRAMEWORK_BONUS)


def word_count_fit(word_count: int, platform: Platform | str) -> float:
    mean, sigma = WORD_COUNT_TARGETS[Platform(platform)]
    return math.exp(-((word_count - mean) ** 2) / (2 * sigma**2))


def objective_bonus(framework: str, platform: Platform | str, objective: Objective | str) -> float:
    rule = OBJECTIVE_BONUSES.get((Platform(platform), Objective(objective)))
    if rule is None:
        return 0.0
    target, high, low = rule
    return high if normalize_framework(framework) == target else low


def score_candidate(
    candidate: HookCandidate,
    platform: Platform | str,
    objective: Objective | str,
    jitter: ScoreJitter | None = None,
    judge: JudgeScores | None = None,
) -> ScoreBreakdown:
    platform = Platform(platform)
    objective = Objective(objective)
    jitter = jitter or ScoreJitter.disabled()

    words = count_words(candidate.verbal_hook)
    fit = word_count_fit(words, platform)
    fw = framework_bonus(candidate.framework)
    obj = objective_bonus(candidate.framework, platform, objective)
    noise = jitter.next()
    raw = BASELINE + WORD_FIT_WEIGHT * fit + fw + obj + noise
    composite = round(max(0.0, min(5.0, raw)), 1)

    return ScoreBreakdown(
        word_count_fit=round(fit, 4),
        framework_bonus=fw,
        objective_bonus=obj,
        baseline=BASELINE,
        jitter=noise,
        judge=judge,
        composite=composite,
        explanation=(
            f"fit={fit:.2f} ({words} words) "
            f"framework={normalize_framework(candidate.framework) or 'unknown'}+{fw:.1f} "
            f"objective=+{obj:.1f} jitter={noise:+.2f}"
        ),
    )


def rank_candidates(candidates: list[HookCandidate]) -> list[HookCandidate]:
    """Highest composite first. ``sorted`` is stable, so ties keep input order."""
    return sorted(candidates, key=lambda c: c.composite, reverse=True)


def top_three_variants(ranked: list[HookCandidate]) -> list[TopVariant]:
    return [
        TopVariant(variant_label=label, rank=idx + 1, hook=hook)
        for idx, (label, hook) in enumerate(zip(VARIANT_LABELS, ranked[:3]))
    ]
