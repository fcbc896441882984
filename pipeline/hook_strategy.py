"""Content-type detection and taxonomy category selection."""

from __future__ import annotations

from schemas.hooks import ContentStrategy, ContentType, Objective

_EDUCATIONAL_KEYWORDS = ("how to", "tutorial", "learn", "guide", "tips", "technique")
_STORYTELLING_KEYWORDS = ("story", "journey", "experience", "transformation", "challenge")

CATEGORY_SELECTION: dict[str, tuple[str, str, str]] = {
    "educational": ("Statement-Based", "Efficiency", "Question-Based"),
    "storytelling": ("Narrative", "Question-Based", "Urgency/Exclusivity"),
    "mixed": ("Statement-Based", "Narrative", "Question-Based"),
}


def _objective_text(objective: Objective | str) -> str:
    if isinstance(objective, Objective):
        return objective.value
    return str(objective or "")


def detect_content_type(topic: str, objective: Objective | str) -> ContentType:
    topic_lower = str(topic or "").lower()
    objective_lower = _objective_text(objective).lower()

    def _matches(keywords: tuple[str, ...]) -> bool:
        return any(k in topic_lower or k in objective_lower for k in keywords)

    educational = _matches(_EDUCATIONAL_KEYWORDS)
    storytelling = _matches(_STORYTELLING_KEYWORDS)
    if educational and not storytelling:
        return "educational"
    if storytelling and not educational:
        return "storytelling"
    return "mixed"


def content_strategy(content_type: ContentType) -> ContentStrategy:
    # Educational content earns trust by stating the value upfront.
    return "value_hit" if content_type == "educational" else "curiosity_gap"


def select_categories(content_type: ContentType, objective: Objective | str) -> list[str]:
    """Return the three taxonomy categories generation is biased toward.

    ``objective`` is accepted for parity with detection; the table is keyed
    on content type only.
    """
    return list(CATEGORY_SELECTION.get(content_type, CATEGORY_SELECTION["mixed"]))
