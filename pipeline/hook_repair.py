"""Single-shot repair of hooks that fail platform validation.

Only the spoken line is rewritten. Each invalid candidate gets at most one
rewrite request; a failed rewrite leaves the candidate exactly as it was.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
import logging
from typing import Any

import config
from pipeline.completion import HookCompletionService
from pipeline.hook_validation import OVERUSED_OPENINGS, count_words, rules_for
from prompts.hook_system import REPAIR_SYSTEM_PROMPT
from schemas.hooks import GenerationRequest, HookCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepairOutcome:
    candidate: HookCandidate
    repaired: bool
    error: str = ""


def build_repair_prompt(candidate: HookCandidate, issues: list[str], request: GenerationRequest) -> str:
    rules = rules_for(request.platform)
    lines = [
        f"Fix this hook for {request.platform.value}:",
        f'Current hook: "{candidate.verbal_hook}"',
        f"Issues: {', '.join(issues)}",
        "",
        "Requirements:",
        f"- {rules.min_words}-{rules.max_words} words",
        f"- Avoid clichéd openings ({', '.join(OVERUSED_OPENINGS)})",
        f"- Keep the same framework ({candidate.framework or 'unspecified'}) and rationale",
        "- Make it engaging and platform-optimized",
    ]
    if request.brand.banned_terms:
        lines.append(f"- Never use: {', '.join(request.brand.banned_terms)}")
    lines += ["", "Return only the improved verbal hook text."]
    return "\n".join(lines)


def repair_candidate(
    candidate: HookCandidate,
    issues: list[str],
    request: GenerationRequest,
    client: HookCompletionService,
    *,
    model: str = config.HOOK_MODEL_REPAIR,
    deadline_seconds: float = config.HOOK_REPAIR_DEADLINE_SECONDS,
) -> RepairOutcome:
    if candidate.repaired:
        return RepairOutcome(candidate=candidate, repaired=False, error="already repaired")

    try:
        outcome = client.rewrite_line(
            system_prompt=REPAIR_SYSTEM_PROMPT,
            user_prompt=build_repair_prompt(candidate, issues, request),
            model=model,
            deadline_seconds=deadline_seconds,
        )
    except Exception as exc:
        logger.exception("Hook repair request crashed: framework=%s", candidate.framework)
        return RepairOutcome(candidate=candidate, repaired=False, error=str(exc))

    if not outcome.ok:
        logger.warning("Hook repair failed: issues=%s error=%s", issues, outcome.error)
        return RepairOutcome(candidate=candidate, repaired=False, error=outcome.error)

    fixed = candidate.model_copy(
        update={
            "verbal_hook": outcome.text,
            "word_count": count_words(outcome.text),
            "repaired": True,
        }
    )
    return RepairOutcome(candidate=fixed, repaired=True)


def repair_invalid_candidates(
    candidates: list[HookCandidate],
    issues_by_index: dict[int, list[str]],
    request: GenerationRequest,
    client: HookCompletionService,
    *,
    model: str = config.HOOK_MODEL_REPAIR,
    deadline_seconds: float = config.HOOK_REPAIR_DEADLINE_SECONDS,
    max_parallel: int = config.HOOK_REPAIR_MAX_PARALLEL,
) -> tuple[list[HookCandidate], int]:
    """Repair the candidates listed in ``issues_by_index``.

    Returns the full list in its original order plus the number of
    successful repairs.
    """
    targets = [idx for idx in sorted(issues_by_index) if 0 <= idx < len(candidates)]
    if not targets:
        return list(candidates), 0

    workers = max(1, min(int(max_parallel), len(targets)))
    logger.info("Hook repair start: targets=%d workers=%d model=%s", len(targets), workers, model)

    updated = list(candidates)
    repaired_count = 0
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hook-repair") as pool:
        future_map: dict[Any, int] = {
            pool.submit(
                repair_candidate,
                candidates[idx],
                issues_by_index[idx],
                request,
                client,
                model=model,
                deadline_seconds=deadline_seconds,
            ): idx
            for idx in targets
        }
        for future in as_completed(future_map):
            idx = future_map[future]
            try:
                result = future.result()
            except Exception:
                logger.exception("Hook repair worker failed: index=%d", idx)
                continue
            updated[idx] = result.candidate
            if result.repaired:
                repaired_count += 1

    logger.info("Hook repair complete: targets=%d repaired=%d", len(targets), repaired_count)
    return updated, repaired_count
