"""CSV export of a finished generation result."""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path

from schemas.hooks import GenerationResult

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "Hook",
    "Visual",
    "Overlay",
    "Framework",
    "Category",
    "Rationale",
    "Platform Notes",
    "Score",
    "Word Count",
)


def _platform_notes(result: GenerationResult) -> str:
    return f"Optimized for {result.platform.value} {result.objective.value}"


def hooks_to_csv(result: GenerationResult) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    notes = _platform_notes(result)
    for hook in result.hooks:
        writer.writerow(
            [
                hook.verbal_hook,
                hook.visual_hook,
                hook.textual_hook,
                hook.framework,
                hook.hook_category,
                hook.rationale,
                notes,
                f"{hook.composite:.1f}",
                hook.word_count,
            ]
        )
    return buffer.getvalue()


def export_filename(result: GenerationResult, stamp: int) -> str:
    return f"hooks-{result.platform.value}-{stamp}.csv"


def write_hooks_csv(result: GenerationResult, path: str | Path) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(hooks_to_csv(result), encoding="utf-8")
    logger.info("Hook CSV written: path=%s rows=%d", target, len(result.hooks))
    return target
