"""Completion client — deadline-bounded hook requests with typed outcomes.

Callers never interpret provider exceptions. Every request resolves to a
value:

  - ``CompletionOutcome``: success(candidates) | malformed | unavailable
  - ``RewriteOutcome``: a single rewritten line, or a failure reason
  - judge scores: a dict keyed by hook index (empty on any failure)

There are no retries in here. The hook pipeline owns retry policy.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
import json
import logging
import re
import time
from typing import Any, Callable, Literal, Protocol

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

import config
from pipeline.llm import LLMError, call_llm
from schemas.hooks import HookCandidate, HookSource, JudgeScores

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["success", "malformed", "unavailable"]


# ---------------------------------------------------------------------------
# Wire models (what the completion service returns)
# ---------------------------------------------------------------------------

class _GeneratedHookModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    verbal_hook: str = Field(validation_alias=AliasChoices("verbalHook", "verbal_hook", "hook", "text"))
    visual_hook: str = Field("", validation_alias=AliasChoices("visualHook", "visual_hook"))
    textual_hook: str = Field("", validation_alias=AliasChoices("textualHook", "textual_hook", "overlay"))
    framework: str = ""
    rationale: str = ""
    hook_category: str = Field("", validation_alias=AliasChoices("hookCategory", "hook_category"))
    psychological_driver: str = Field(
        "", validation_alias=AliasChoices("psychologicalDriver", "psychological_driver")
    )

    @field_validator(
        "verbal_hook",
        "visual_hook",
        "textual_hook",
        "framework",
        "rationale",
        "hook_category",
        "psychological_driver",
        mode="before",
    )
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class _JudgeItemModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int
    tri_modal_synergy: float = Field(0.0, validation_alias=AliasChoices("tri_modal_synergy", "triModalSynergy"))
    psychological_impact: float = Field(0.0, validation_alias=AliasChoices("psychological_impact", "psychologicalImpact"))
    platform_optimization: float = Field(0.0, validation_alias=AliasChoices("platform_optimization", "platformOptimization"))
    freshness: float = Field(0.0, validation_alias=AliasChoices("freshness", "freshnessFactor"))
    specificity: float = Field(0.0, validation_alias=AliasChoices("specificity", "specificityScore"))


class _JudgeBatchModel(BaseModel):
    scores: list[_JudgeItemModel] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Result values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParseResult:
    ok: bool
    hooks: list[_GeneratedHookModel] = field(default_factory=list)
    error: str = ""


@dataclass(frozen=True)
class CompletionOutcome:
    status: OutcomeStatus
    candidates: list[HookCandidate] = field(default_factory=list)
    error: str = ""
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True)
class RewriteOutcome:
    ok: bool
    text: str = ""
    error: str = ""


class HookCompletionService(Protocol):
    """What the hook pipeline needs from an external text-generation service."""

    def generate_hooks(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        deadline_seconds: float,
        source: HookSource,
        min_hooks: int = ...,
    ) -> CompletionOutcome: ...

    def rewrite_line(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        deadline_seconds: float,
    ) -> RewriteOutcome: ...

    def judge_hooks(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        deadline_seconds: float,
    ) -> dict[int, JudgeScores]: ...


# ---------------------------------------------------------------------------
# Loose JSON parsing
# ---------------------------------------------------------------------------

_FENCE_OPEN_RE = re.compile(r"^```\w*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def _strip_markdown_fences(text: str) -> str:
    cleaned = str(text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN_RE.sub("", cleaned)
        cleaned = _FENCE_CLOSE_RE.sub("", cleaned)
    return cleaned.strip()


def _safe_json_loads(raw: str) -> Any:
    """Parse JSON with fallback repair for common LLM quirks.

    Handles: markdown fences, trailing commas, preamble/postamble text.
    Raises json.JSONDecodeError when nothing parses.
    """
    cleaned = _strip_markdown_fences(raw)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    fixed = _TRAILING_COMMA_RE.sub(r"\1", cleaned)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError:
        pass

    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if match:
        try:
            return json.loads(_TRAILING_COMMA_RE.sub(r"\1", match.group(0)))
        except json.JSONDecodeError:
            pass

    return json.loads(cleaned)


def parse_hook_payload(raw: str, min_hooks: int = 8, max_hooks: int = 10) -> ParseResult:
    """Turn raw model text into hook rows. Never raises."""
    if not str(raw or "").strip():
        return ParseResult(ok=False, error="empty response")
    try:
        data = _safe_json_loads(raw)
    except json.JSONDecodeError as exc:
        return ParseResult(ok=False, error=f"invalid JSON: {exc.msg}")

    if isinstance(data, list):
        data = {"hooks": data}
    if not isinstance(data, dict) or not isinstance(data.get("hooks"), list):
        return ParseResult(ok=False, error="missing hooks array")

    # Rows are checked one at a time; a bad row is dropped, not the batch.
    hooks: list[_GeneratedHookModel] = []
    skipped = 0
    for row in data["hooks"]:
        try:
            parsed = _GeneratedHookModel.model_validate(row)
        except ValidationError:
            skipped += 1
            continue
        if str(parsed.verbal_hook).strip():
            hooks.append(parsed)
        else:
            skipped += 1
    if skipped:
        logger.info("Hook payload rows skipped: skipped=%d kept=%d", skipped, len(hooks))
    if len(hooks) < min_hooks:
        return ParseResult(ok=False, hooks=hooks, error=f"too few hooks: {len(hooks)} < {min_hooks}")
    return ParseResult(ok=True, hooks=hooks[:max_hooks])


def clean_rewrite_text(raw: str) -> str:
    """Keep the first real line of a rewrite, minus quotes and labels."""
    for line in _strip_markdown_fences(raw).splitlines():
        text = line.strip()
        if not text:
            continue
        text = re.sub(r"^(?:improved|rewritten|verbal)?\s*(?:hook|line)?\s*:\s*", "", text, flags=re.IGNORECASE)
        text = text.strip().strip('"').strip("“”").strip("'").strip()
        if text:
            return text
    return ""


def _to_candidate(row: _GeneratedHookModel, source: HookSource) -> HookCandidate:
    verbal = str(row.verbal_hook or "").strip()
    return HookCandidate(
        verbal_hook=verbal,
        visual_hook=str(row.visual_hook or "").strip(),
        textual_hook=str(row.textual_hook or "").strip(),
        framework=str(row.framework or "").strip(),
        hook_category=str(row.hook_category or "").strip(),
        rationale=str(row.rationale or "").strip(),
        psychological_driver=str(row.psychological_driver or "").strip() or "Engagement",
        word_count=len(verbal.split()),
        source=source,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class CompletionClient:
    """Default ``HookCompletionService`` backed by ``pipeline.llm.call_llm``.

    Each request runs on a short-lived worker thread and is abandoned once
    its deadline passes; the SDK timeout is set to the same deadline so the
    underlying HTTP request is torn down too.
    """

    def __init__(self, provider: str | None = None, call_fn: Callable[..., str] | None = None):
        self.provider = provider or config.HOOK_PROVIDER
        self._call_fn = call_fn

    def _invoke(self, deadline_seconds: float, **kwargs: Any) -> str:
        fn = self._call_fn or call_llm
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="hook-llm")
        future = pool.submit(fn, provider=self.provider, timeout=deadline_seconds, **kwargs)
        try:
            return future.result(timeout=deadline_seconds)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def generate_hooks(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        deadline_seconds: float,
        source: HookSource,
        min_hooks: int = config.HOOK_MIN_GENERATED,
    ) -> CompletionOutcome:
        started = time.time()
        try:
            raw = self._invoke(
                deadline_seconds,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                json_mode=True,
            )
        except FuturesTimeout:
            logger.warning("Hook generation timed out: model=%s deadline=%.1fs", model, deadline_seconds)
            return CompletionOutcome("unavailable", error="timeout", elapsed_seconds=round(time.time() - started, 3))
        except LLMError as exc:
            return CompletionOutcome("unavailable", error=str(exc), elapsed_seconds=round(time.time() - started, 3))
        except Exception as exc:
            logger.exception("Hook generation call crashed: model=%s", model)
            return CompletionOutcome("unavailable", error=str(exc), elapsed_seconds=round(time.time() - started, 3))

        elapsed = round(time.time() - started, 3)
        parsed = parse_hook_payload(raw, min_hooks=min_hooks, max_hooks=config.HOOK_RESULT_SIZE)
        if not parsed.ok:
            logger.warning("Hook generation response malformed: model=%s error=%s", model, parsed.error)
            logger.debug("Raw response snippet: %s", str(raw or "")[:500])
            return CompletionOutcome("malformed", error=parsed.error, elapsed_seconds=elapsed)
        return CompletionOutcome(
            "success",
            candidates=[_to_candidate(row, source) for row in parsed.hooks],
            elapsed_seconds=elapsed,
        )

    def rewrite_line(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        deadline_seconds: float,
    ) -> RewriteOutcome:
        try:
            raw = self._invoke(
                deadline_seconds,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                model=model,
                temperature=0.4,
                max_tokens=100,
                json_mode=False,
            )
        except FuturesTimeout:
            return RewriteOutcome(ok=False, error="timeout")
        except LLMError as exc:
            return RewriteOutcome(ok=False, error=str(exc))
        except Exception as exc:
            logger.exception("Hook rewrite call crashed: model=%s", model)
            return RewriteOutcome(ok=False, error=str(exc))

        text = clean_rewrite_text(raw)
        if not text:
            return RewriteOutcome(ok=False, error="empty rewrite")
        return RewriteOutcome(ok=True, text=text)

    def judge_hooks(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        deadline_seconds: float,
    ) -> dict[int, JudgeScores]:
        try:
            raw = self._invoke(
                deadline_seconds,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                model=model,
                temperature=0.2,
                max_tokens=1_200,
                json_mode=True,
            )
            batch = _JudgeBatchModel.model_validate(_safe_json_loads(raw))
        except FuturesTimeout:
            logger.warning("Hook judge timed out: model=%s", model)
            return {}
        except (LLMError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Hook judge failed: model=%s error=%s", model, exc)
            return {}
        except Exception:
            logger.exception("Hook judge call crashed: model=%s", model)
            return {}

        out: dict[int, JudgeScores] = {}
        for row in batch.scores:
            out[int(row.index)] = JudgeScores(
                tri_modal_synergy=max(0.0, min(1.0, row.tri_modal_synergy)),
                psychological_impact=max(0.0, min(1.0, row.psychological_impact)),
                platform_optimization=max(0.0, min(1.0, row.platform_optimization)),
                freshness=max(0.0, min(1.0, row.freshness)),
                specificity=max(0.0, min(1.0, row.specificity)),
            )
        return out
