"""Hook taxonomy — categories of proven opening formulas.

Each category maps hook ids to a formula, the psychological driver it
leans on, a fill-in template, a risk level and a couple of worked examples.
"""

from __future__ import annotations

import json
from typing import Any

from pipeline.hook_validation import has_overused_opening


HOOK_TAXONOMY: dict[str, dict[str, dict[str, Any]]] = {
    "Question-Based": {
        "QH-01": {
            "formula": "Direct Question",
            "driver": "Curiosity Gap / Engagement",
            "template": "Did you know that {surprising_fact}?",
            "risk": "low",
            "examples": ["Did you know that squats can fix back pain?", "Did you know perfect form takes 30 seconds?"],
        },
        "QH-02": {
            "formula": "Rhetorical Question",
            "driver": "Pain Point / Empathy",
            "template": "Does your {area_of_life} feel {negative_adjective}?",
            "risk": "low",
            "examples": ["Does your squat feel unstable?", "Are your workouts feeling ineffective?"],
        },
        "QH-03": {
            "formula": "Hypothetical 'What If'",
            "driver": "Imagination / Desire",
            "template": "What if {ideal_scenario}?",
            "risk": "medium",
            "examples": ["What if perfect form was actually easier?", "What if one cue fixed everything?"],
        },
        "QH-04": {
            "formula": "High-Stakes Question",
            "driver": "Intrigue / Moral Dilemma",
            "template": "Would you {action_a} for {benefit} but {consequence}?",
            "risk": "medium",
            "examples": ["Would you change your form if it prevented injury?", "Would you slow down to speed up progress?"],
        },
        "QH-05": {
            "formula": "Challenge Question",
            "driver": "Authority / Knowledge Gap",
            "template": "Why do {authority_figures} still {questionable_action}?",
            "risk": "medium",
            "examples": ["Why do trainers still teach this wrong?", "Why does everyone skip this step?"],
        },
    },
    "Statement-Based": {
        "ST-01": {
            "formula": "Direct Promise",
            "driver": "Value / Instant Gratification",
            "template": "In this video, I'm going to show/tell you {specific_value}.",
            "risk": "low",
            "examples": ["I'm going to show you perfect squat form", "I'll teach you the one cue that fixes everything"],
        },
        "ST-02": {
            "formula": "Startling Fact / Statistic",
            "driver": "Surprise / Authority",
            "template": "{percentage}% of people {surprising_behavior}.",
            "risk": "medium",
            "examples": ["90% of people squat with poor form", "Most trainers miss this critical detail"],
        },
        "ST-03": {
            "formula": "Contrarian / Unpopular Opinion",
            "driver": "Social Proof (Negative) / Intrigue",
            "template": "{common_belief} is wrong. Here's why.",
            "risk": "high",
            "examples": ["Deep squats are wrong. Here's why.", "Heavy weight is overrated. Here's why."],
        },
        "ST-04": {
            "formula": "Common Mistake ID",
            "driver": "Pain Point / Superiority",
            "template": "You've been doing {common_activity} wrong your entire life.",
            "risk": "medium",
            "examples": ["You've been squatting wrong your entire life", "Everyone gets this form cue backwards"],
        },
        "ST-05": {
            "formula": "Authority Insight",
            "driver": "Credibility / Exclusivity",
            "template": "{expert_type} taught me this {technique}",
            "risk": "low",
            "examples": ["Olympic coaches taught me this squat cue", "Physical therapists use this form check"],
        },
    },
    "Narrative": {
        "NA-01": {
            "formula": "In Medias Res",
            "driver": "Curiosity Gap / Urgency",
            "template": "Starts mid-action or mid-dialogue at a point of high drama.",
            "risk": "medium",
            "examples": ["The moment my form clicked...", "Right when I thought I knew squats..."],
        },
        "NA-02": {
            "formula": "Cliffhanger / Open Loop",
            "driver": "Curiosity Gap",
            "template": "This {event} ended in the most shocking way. Stay tuned...",
            "risk": "high",
            "examples": ["This form correction changed everything...", "What happened next surprised even me..."],
        },
        "NA-03": {
            "formula": "Personal Confession / Anecdote",
            "driver": "Empathy / Relatability",
            "template": "I used to {old_behavior}, until {catalyst_for_change}.",
            "risk": "low",
            "examples": ["I used to hate squats, until I learned this", "I thought perfect form was impossible, until..."],
        },
        "NA-04": {
            "formula": "Before & After Teaser",
            "driver": "Curiosity Gap / Transformation",
            "template": "This is how I went from {before_state} to {after_state}.",
            "risk": "low",
            "examples": ["From knee pain to pain-free squats", "From sloppy form to perfect technique"],
        },
        "NA-05": {
            "formula": "Timeline Progression",
            "driver": "Journey / Progress",
            "template": "Day {number} of {challenge}",
            "risk": "low",
            "examples": ["Day 7 of fixing my squat form", "30 days of perfect form practice"],
        },
    },
    "Urgency/Exclusivity": {
        "UE-01": {
            "formula": "Direct Callout / Targeting",
            "driver": "Personalization / Relevance",
            "template": "If you're a {target_audience}, you need to hear this.",
            "risk": "medium",
            "examples": ["If you squat, you need to hear this", "If you're serious about form, watch this"],
        },
        "UE-02": {
            "formula": "FOMO / Time Pressure",
            "driver": "Urgency",
            "template": "This is your last chance to {action} before {consequence}.",
            "risk": "high",
            "examples": ["Last chance to fix your form before injury", "Don't wait until it's too late"],
        },
        "UE-03": {
            "formula": "The 'Secret' Reveal",
            "driver": "Curiosity Gap / Exclusivity",
            "template": "No one is telling you the real reason {common_problem_persists}.",
            "risk": "medium",
            "examples": ["No one tells you why squats feel awkward", "The real reason your form breaks down"],
        },
        "UE-04": {
            "formula": "Warning / Preemptive Advice",
            "driver": "Urgency / Pain Avoidance",
            "template": "Watch this before you {common_action}.",
            "risk": "medium",
            "examples": ["Watch this before your next squat session", "See this before you add more weight"],
        },
        "UE-05": {
            "formula": "Insider Access",
            "driver": "Exclusivity / Authority",
            "template": "What {authority_figures} don't want you to know",
            "risk": "high",
            "examples": ["What trainers don't teach about form", "What gyms don't want you to know"],
        },
    },
    "Efficiency": {
        "EF-01": {
            "formula": "Numbered List (Listicle)",
            "driver": "Value / Structure",
            "template": "Here are the Top {number} {items} for {goal}.",
            "risk": "low",
            "examples": ["Top 3 squat cues for perfect form", "5 form checks that prevent injury"],
        },
        "EF-02": {
            "formula": "Quick Solution / 'Hack'",
            "driver": "Value / Instant Gratification",
            "template": "How to {achieve_goal} in {short_timeframe}.",
            "risk": "low",
            "examples": ["Perfect squats in 30 seconds", "Fix your form in one video"],
        },
        "EF-03": {
            "formula": "Shortcut Reveal",
            "driver": "Efficiency / Simplification",
            "template": "Skip {complex_method}, do this instead",
            "risk": "medium",
            "examples": ["Skip complex cues, do this instead", "Skip the textbook, watch this"],
        },
        "EF-04": {
            "formula": "Elimination Strategy",
            "driver": "Focus / Simplification",
            "template": "Stop {wrong_action}, start {right_action}",
            "risk": "low",
            "examples": ["Stop thinking about depth, focus on this", "Stop following trends, master basics"],
        },
    },
}

CATEGORY_NAMES: tuple[str, ...] = tuple(HOOK_TAXONOMY)


def category_entries(category: str) -> list[dict[str, Any]]:
    """Return the category's formulas in catalog order (empty if unknown)."""
    rows = HOOK_TAXONOMY.get(category) or {}
    return [{"id": hook_id, **data} for hook_id, data in rows.items()]


def build_taxonomy_brief(categories: list[str], per_category: int = 2) -> str:
    """Render the first few formulas of each category as prompt-ready JSON.

    Formulas whose template opens with an overused phrase stay in the
    catalog but are left out of the brief, as are cliché examples, so the
    prompt never models a line the validator would reject.
    """
    entries: list[dict[str, Any]] = []
    for category in categories:
        usable = [row for row in category_entries(category) if not has_overused_opening(row["template"])]
        for row in usable[: max(0, per_category)]:
            examples = [e for e in row.get("examples") or [] if not has_overused_opening(e)]
            entries.append(
                {
                    "id": row["id"],
                    "category": category,
                    "formula": row["formula"],
                    "template": row["template"],
                    "examples": examples[:2],
                }
            )
    return json.dumps(entries, indent=2)
