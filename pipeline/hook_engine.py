"""Hook generation engine.

Classify -> Select categories -> Generate -> Validate -> Repair -> Score -> Rank

Generation walks a fallback ladder exactly once, top to bottom:

  PRIMARY     full model, full prompt, up to 2 attempts
  SIMPLIFIED  lighter model, relaxed prompt, 1 attempt
  STATIC      deterministic templates, no external call, cannot fail

Every request gets exactly 10 hooks back. The only exception ``run()`` lets
out is ``InvalidHookRequest``, raised before any external call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import json
import logging
import time
from typing import Any

from pydantic import ValidationError
from tenacity import Retrying, retry_if_result, stop_after_attempt, wait_fixed

import config
from pipeline.completion import CompletionClient, CompletionOutcome, HookCompletionService
from pipeline.hook_repair import repair_invalid_candidates
from pipeline.hook_scoring import ScoreJitter, rank_candidates, score_candidate, top_three_variants, word_count_fit
from pipeline.hook_strategy import content_strategy, detect_content_type, select_categories
from pipeline.hook_taxonomy import build_taxonomy_brief
from pipeline.hook_validation import OVERUSED_OPENINGS, count_words, rules_for, validate_candidate
from prompts.hook_system import GENERATION_SYSTEM_PROMPT, JUDGE_SYSTEM_PROMPT, SIMPLIFIED_SYSTEM_PROMPT
from schemas.hooks import (
    ContentStrategy,
    ContentType,
    GenerationRequest,
    GenerationResult,
    HookCandidate,
    ScoreBreakdown,
    StageEvent,
)

logger = logging.getLogger(__name__)


class InvalidHookRequest(ValueError):
    """The request is missing required fields or names unknown values."""


class PipelineState(str, Enum):
    CLASSIFYING = "classifying"
    SELECTING_CATEGORIES = "selecting_categories"
    GENERATING = "generating"
    VALIDATING = "validating"
    REPAIRING = "repairing"
    SCORING = "scoring"
    RANKING = "ranking"
    DONE = "done"


class Rung(str, Enum):
    PRIMARY = "primary"
    SIMPLIFIED = "simplified"
    STATIC = "static"


@dataclass(frozen=True)
class HookSettings:
    provider: str = "openai"
    primary_model: str = config.OPENAI_FULL
    simplified_model: str = config.OPENAI_MINI
    repair_model: str = config.OPENAI_MINI
    judge_model: str = config.OPENAI_MINI
    primary_deadline_seconds: float = 25.0
    simplified_deadline_seconds: float = 20.0
    repair_deadline_seconds: float = 10.0
    judge_deadline_seconds: float = 15.0
    primary_max_attempts: int = 2
    simplified_max_attempts: int = 1
    retry_wait_seconds: float = 1.0
    min_generated: int = 8
    result_size: int = 10
    repair_max_parallel: int = 4
    judge_enabled: bool = False
    score_jitter: bool = True
    score_seed: int | None = None

    @classmethod
    def from_config(cls) -> "HookSettings":
        return cls(
            provider=config.HOOK_PROVIDER,
            primary_model=config.HOOK_MODEL_PRIMARY,
            simplified_model=config.HOOK_MODEL_SIMPLIFIED,
            repair_model=config.HOOK_MODEL_REPAIR,
            judge_model=config.HOOK_MODEL_JUDGE,
            primary_deadline_seconds=config.HOOK_PRIMARY_DEADLINE_SECONDS,
            simplified_deadline_seconds=config.HOOK_SIMPLIFIED_DEADLINE_SECONDS,
            repair_deadline_seconds=config.HOOK_REPAIR_DEADLINE_SECONDS,
            judge_deadline_seconds=config.HOOK_JUDGE_DEADLINE_SECONDS,
            primary_max_attempts=max(1, config.HOOK_PRIMARY_MAX_ATTEMPTS),
            simplified_max_attempts=max(1, config.HOOK_SIMPLIFIED_MAX_ATTEMPTS),
            retry_wait_seconds=max(0.0, config.HOOK_RETRY_WAIT_SECONDS),
            min_generated=max(1, config.HOOK_MIN_GENERATED),
            result_size=config.HOOK_RESULT_SIZE,
            repair_max_parallel=max(1, config.HOOK_REPAIR_MAX_PARALLEL),
            judge_enabled=config.HOOK_JUDGE_ENABLED,
            score_jitter=config.HOOK_SCORE_JITTER,
            score_seed=config.HOOK_SCORE_SEED,
        )


# ---------------------------------------------------------------------------
# Static templates
# ---------------------------------------------------------------------------

# (verbal, framework, category, pre-assigned composite)
_STATIC_TEMPLATES: list[tuple[str, str, str, float]] = [
    ("What nobody tells you about {topic}", "Open Loop", "Urgency/Exclusivity", 4.2),
    ("Most people get {topic} completely wrong", "Statement", "Statement-Based", 4.1),
    ("Why does everyone struggle with {topic}?", "Question", "Question-Based", 4.0),
    ("3 things I wish I knew about {topic}", "4U's", "Efficiency", 3.9),
    ("The real secret behind {topic}", "Open Loop", "Urgency/Exclusivity", 3.8),
    ("Before you try {topic}, see this first", "Problem-Promise-Proof", "Urgency/Exclusivity", 3.6),
    ("I tested {topic} so you don't have to", "Problem-Promise-Proof", "Narrative", 3.5),
    ("One simple change to {topic} that works", "Direct", "Efficiency", 3.3),
    ("Experts quietly rely on this for {topic}", "Statement", "Statement-Based", 3.1),
    ("The most common {topic} mistake, fixed", "PAS", "Statement-Based", 3.0),
]

_STATIC_VISUAL = "Close-up cold open on the result, then a quick cut to the setup"


def _static_overlay(topic: str, limit: int = 24) -> str:
    text = f"{topic.strip()} in 60s"
    if len(text) <= limit:
        return text
    return "The 60s breakdown"


def build_static_candidates(topic: str, count: int = 10, offset: int = 0) -> list[HookCandidate]:
    """Deterministic topic-aware hooks. Same topic, same output."""
    subject = " ".join(str(topic or "").split()) or "this"
    overlay = _static_overlay(subject)
    out: list[HookCandidate] = []
    for i in range(count):
        verbal_tpl, framework, category, _ = _STATIC_TEMPLATES[(offset + i) % len(_STATIC_TEMPLATES)]
        verbal = verbal_tpl.format(topic=subject)
        out.append(
            HookCandidate(
                verbal_hook=verbal,
                visual_hook=_STATIC_VISUAL,
                textual_hook=overlay,
                framework=framework,
                hook_category=category,
                rationale="Reliable hook pattern for engagement",
                psychological_driver="Value",
                word_count=count_words(verbal),
                source="static",
            )
        )
    return out


def _static_score(candidate: HookCandidate, index: int, request: GenerationRequest) -> ScoreBreakdown:
    preset = _STATIC_TEMPLATES[index % len(_STATIC_TEMPLATES)][3]
    return ScoreBreakdown(
        word_count_fit=round(word_count_fit(count_words(candidate.verbal_hook), request.platform), 4),
        framework_bonus=0.0,
        objective_bonus=0.0,
        baseline=preset,
        jitter=0.0,
        composite=preset,
        explanation="Static fallback hook",
    )


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def build_generation_prompt(
    request: GenerationRequest,
    content_type: ContentType,
    strategy: ContentStrategy,
    categories: list[str],
    *,
    hook_count: int = 10,
) -> str:
    rules = rules_for(request.platform)
    brand = request.brand
    example = {
        "verbalHook": f"Spoken opening line ({rules.min_words}-{rules.max_words} words)",
        "visualHook": "First frame visual suggestion",
        "textualHook": "On-screen text overlay",
        "framework": "Copywriting framework used",
        "rationale": "Why this hook works for the audience",
    }
    lines = [
        "### GENERATION REQUEST ###",
        f'TOPIC: "{request.topic}"',
        f"PLATFORM: {request.platform.value}",
        f"OBJECTIVE: {request.objective.value}",
        f"CONTENT TYPE: {content_type}",
        f"CONTENT STRATEGY: {strategy}",
        f"PLATFORM STYLE: {rules.style}",
        "",
        "### BRAND CONTEXT ###",
        f"Company: {brand.company}",
        f"Role: {brand.role}",
        f"Industry: {brand.industry}",
        f"Audience: {brand.audience}",
        f"Voice: {brand.voice}",
    ]
    if brand.banned_terms:
        lines.append(f"Banned terms (never use): {', '.join(brand.banned_terms)}")
    lines += [
        "",
        "### ALLOWED HOOK CATEGORIES ###",
        "Use only these proven categories and templates:",
        build_taxonomy_brief(categories),
        "",
        "### OUTPUT FORMAT ###",
        f"Return exactly this JSON structure with {hook_count} hooks:",
        json.dumps({"hooks": [example]}, indent=2),
        "",
        f"Generate {hook_count} hooks using diverse frameworks from the allowed categories. "
        f"Avoid clichéd openings like {', '.join(repr(p) for p in OVERUSED_OPENINGS)}.",
    ]
    return "\n".join(lines)


def build_simplified_prompt(request: GenerationRequest, *, hook_count: int = 10) -> str:
    rules = rules_for(request.platform)
    return (
        f'Generate {hook_count} simple hooks for {request.platform.value} about "{request.topic}" '
        f"({rules.min_words}-{rules.max_words} spoken words each).\n"
        "Mix of: Direct value hooks, Question hooks, Transformation hooks, Statement hooks\n\n"
        'JSON format: {"hooks": [{"verbalHook": "text", "visualHook": "visual", '
        '"textualHook": "overlay", "framework": "Direct", "rationale": "why"}]}'
    )


def build_judge_prompt(request: GenerationRequest, hooks: list[HookCandidate]) -> str:
    payload = {
        "platform": request.platform.value,
        "objective": request.objective.value,
        "hooks": [
            {
                "index": idx,
                "verbal": hook.verbal_hook,
                "visual": hook.visual_hook,
                "textual": hook.textual_hook,
                "framework": hook.framework,
            }
            for idx, hook in enumerate(hooks)
        ],
    }
    return f"Evaluate these hooks and return JSON only.\n{json.dumps(payload, ensure_ascii=True, indent=2)}"


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _RungPlan:
    rung: Rung
    model: str
    system_prompt: str
    user_prompt: str
    temperature: float
    max_tokens: int
    deadline_seconds: float
    max_attempts: int


@dataclass
class _RunState:
    request: GenerationRequest
    jitter: ScoreJitter
    started: float = field(default_factory=time.time)
    state: PipelineState = PipelineState.CLASSIFYING
    rung: Rung = Rung.PRIMARY
    content_type: ContentType = "mixed"
    strategy: ContentStrategy = "curiosity_gap"
    categories: list[str] = field(default_factory=list)
    candidates: list[HookCandidate] = field(default_factory=list)
    issues_by_index: dict[int, list[str]] = field(default_factory=dict)
    repaired_count: int = 0
    trace: list[StageEvent] = field(default_factory=list)

    def enter(self, state: PipelineState, detail: str = "") -> None:
        self.state = state
        self.trace.append(StageEvent(state=state.value, rung=self.rung.value, detail=detail))
        logger.debug("Hook pipeline state: state=%s rung=%s %s", state.value, self.rung.value, detail)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def _coerce_request(request: GenerationRequest | dict[str, Any]) -> GenerationRequest:
    if isinstance(request, GenerationRequest):
        return request
    if not isinstance(request, dict):
        raise InvalidHookRequest(f"Unsupported request type: {type(request).__name__}")
    try:
        return GenerationRequest.model_validate(request)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise InvalidHookRequest(f"Invalid hook request: {', '.join(fields) or 'request'}") from exc


class HookPipeline:
    def __init__(
        self,
        client: HookCompletionService | None = None,
        settings: HookSettings | None = None,
        jitter: ScoreJitter | None = None,
    ):
        self.settings = settings or HookSettings.from_config()
        self.client = client or CompletionClient(provider=self.settings.provider)
        self._jitter = jitter

    # -- ladder ---------------------------------------------------------------

    def _ladder(self, run: _RunState) -> list[_RungPlan]:
        s = self.settings
        request = run.request
        return [
            _RungPlan(
                rung=Rung.PRIMARY,
                model=request.model_type or s.primary_model,
                system_prompt=GENERATION_SYSTEM_PROMPT,
                user_prompt=build_generation_prompt(
                    request, run.content_type, run.strategy, run.categories, hook_count=s.result_size
                ),
                temperature=0.8,
                max_tokens=2_500,
                deadline_seconds=s.primary_deadline_seconds,
                max_attempts=s.primary_max_attempts,
            ),
            _RungPlan(
                rung=Rung.SIMPLIFIED,
                model=s.simplified_model,
                system_prompt=SIMPLIFIED_SYSTEM_PROMPT,
                user_prompt=build_simplified_prompt(request, hook_count=s.result_size),
                temperature=0.5,
                max_tokens=1_000,
                deadline_seconds=s.simplified_deadline_seconds,
                max_attempts=s.simplified_max_attempts,
            ),
        ]

    def _attempt_once(self, plan: _RungPlan, run: _RunState) -> CompletionOutcome:
        try:
            return self.client.generate_hooks(
                system_prompt=plan.system_prompt,
                user_prompt=plan.user_prompt,
                model=plan.model,
                temperature=plan.temperature,
                max_tokens=plan.max_tokens,
                deadline_seconds=plan.deadline_seconds,
                source=plan.rung.value,  # type: ignore[arg-type]
                min_hooks=self.settings.min_generated,
            )
        except Exception as exc:
            logger.exception("Hook generation attempt crashed: rung=%s model=%s", plan.rung.value, plan.model)
            return CompletionOutcome("unavailable", error=str(exc))

    def _run_rung(self, plan: _RungPlan, run: _RunState) -> CompletionOutcome:
        def _log_retry(retry_state: Any) -> None:
            outcome = retry_state.outcome.result()
            logger.warning(
                "Hook generation attempt failed, retrying: rung=%s attempt=%d status=%s error=%s",
                plan.rung.value,
                retry_state.attempt_number,
                outcome.status,
                outcome.error,
            )
            run.trace.append(
                StageEvent(
                    state=PipelineState.GENERATING.value,
                    rung=plan.rung.value,
                    detail=f"attempt {retry_state.attempt_number} {outcome.status}: {outcome.error}",
                )
            )

        retryer = Retrying(
            stop=stop_after_attempt(max(1, plan.max_attempts)),
            wait=wait_fixed(self.settings.retry_wait_seconds),
            retry=retry_if_result(lambda outcome: not outcome.ok),
            before_sleep=_log_retry,
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        return retryer(self._attempt_once, plan, run)

    def _generate(self, run: _RunState) -> None:
        for plan in self._ladder(run):
            run.rung = plan.rung
            run.enter(PipelineState.GENERATING, f"model={plan.model}")
            outcome = self._run_rung(plan, run)
            if outcome.ok:
                run.candidates = list(outcome.candidates)[: self.settings.result_size]
                logger.info(
                    "Hook generation succeeded: rung=%s hooks=%d elapsed=%.2fs",
                    plan.rung.value,
                    len(run.candidates),
                    outcome.elapsed_seconds,
                )
                self._pad(run)
                return
            logger.warning(
                "Hook generation rung failed, descending: rung=%s status=%s error=%s",
                plan.rung.value,
                outcome.status,
                outcome.error,
            )
            run.trace.append(
                StageEvent(
                    state=PipelineState.GENERATING.value,
                    rung=plan.rung.value,
                    detail=f"{outcome.status}: {outcome.error}",
                )
            )

        run.rung = Rung.STATIC
        run.enter(PipelineState.GENERATING, "static templates")
        run.candidates = build_static_candidates(run.request.topic, count=self.settings.result_size)

    def _pad(self, run: _RunState) -> None:
        missing = self.settings.result_size - len(run.candidates)
        if missing <= 0:
            return
        logger.info("Hook generation short, padding from templates: have=%d missing=%d", len(run.candidates), missing)
        run.candidates.extend(build_static_candidates(run.request.topic, count=missing))

    # -- stages ---------------------------------------------------------------

    def _validate(self, run: _RunState) -> None:
        run.enter(PipelineState.VALIDATING)
        platform = run.request.platform
        banned = run.request.brand.banned_terms
        checked: list[HookCandidate] = []
        run.issues_by_index = {}
        for idx, candidate in enumerate(run.candidates):
            result = validate_candidate(candidate, platform, banned)
            checked.append(candidate.model_copy(update={"word_count": result.word_count, "validation_issues": result.issues}))
            if not result.valid:
                run.issues_by_index[idx] = result.issues
        run.candidates = checked
        logger.info("Hook validation: total=%d invalid=%d", len(checked), len(run.issues_by_index))

    def _repair(self, run: _RunState) -> None:
        if not run.issues_by_index:
            return
        run.enter(PipelineState.REPAIRING, f"targets={len(run.issues_by_index)}")
        s = self.settings
        run.candidates, run.repaired_count = repair_invalid_candidates(
            run.candidates,
            run.issues_by_index,
            run.request,
            self.client,
            model=s.repair_model,
            deadline_seconds=s.repair_deadline_seconds,
            max_parallel=s.repair_max_parallel,
        )
        # Re-check repaired lines so the reported issues match the final text.
        platform = run.request.platform
        banned = run.request.brand.banned_terms
        for idx in run.issues_by_index:
            candidate = run.candidates[idx]
            if candidate.repaired:
                result = validate_candidate(candidate, platform, banned)
                run.candidates[idx] = candidate.model_copy(update={"validation_issues": result.issues})

    def _score(self, run: _RunState) -> None:
        run.enter(PipelineState.SCORING)
        request = run.request
        scored: list[HookCandidate] = []
        for candidate in run.candidates:
            words = count_words(candidate.verbal_hook)
            breakdown = score_candidate(candidate, request.platform, request.objective, jitter=run.jitter)
            scored.append(candidate.model_copy(update={"word_count": words, "score": breakdown}))
        run.candidates = scored
        if self.settings.judge_enabled:
            self._judge(run)

    def _judge(self, run: _RunState) -> None:
        try:
            judged = self.client.judge_hooks(
                system_prompt=JUDGE_SYSTEM_PROMPT,
                user_prompt=build_judge_prompt(run.request, run.candidates),
                model=self.settings.judge_model,
                deadline_seconds=self.settings.judge_deadline_seconds,
            )
        except Exception:
            logger.exception("Hook judge pass failed")
            return
        for idx, scores in judged.items():
            if 0 <= idx < len(run.candidates) and run.candidates[idx].score is not None:
                candidate = run.candidates[idx]
                score = candidate.score.model_copy(update={"judge": scores})
                run.candidates[idx] = candidate.model_copy(update={"score": score})
        logger.info("Hook judge pass: judged=%d", len(judged))

    def _assign_static_scores(self, run: _RunState) -> None:
        run.candidates = [
            c.model_copy(update={"score": _static_score(c, idx, run.request)})
            for idx, c in enumerate(run.candidates)
        ]

    # -- entry point ------------------------------------------------------------

    def run(self, request: GenerationRequest | dict[str, Any]) -> GenerationResult:
        request = _coerce_request(request)
        check_model_type(request.model_type)
        jitter = self._jitter or ScoreJitter(seed=self.settings.score_seed, enabled=self.settings.score_jitter)
        run = _RunState(request=request, jitter=jitter)
        logger.info(
            "Hook generation start: platform=%s objective=%s topic=%r",
            request.platform.value,
            request.objective.value,
            request.topic[:80],
        )

        run.enter(PipelineState.CLASSIFYING)
        run.content_type = detect_content_type(request.topic, request.objective)
        run.strategy = content_strategy(run.content_type)

        run.enter(PipelineState.SELECTING_CATEGORIES, run.content_type)
        run.categories = select_categories(run.content_type, request.objective)

        self._generate(run)

        if run.rung is Rung.STATIC:
            self._assign_static_scores(run)
        else:
            self._validate(run)
            self._repair(run)
            self._score(run)

        run.enter(PipelineState.RANKING)
        ranked = rank_candidates(run.candidates)
        variants = top_three_variants(ranked)

        run.enter(PipelineState.DONE)
        elapsed = round(time.time() - run.started, 3)
        logger.info(
            "Hook generation complete: rung=%s hooks=%d repaired=%d top=%.1f elapsed=%.2fs",
            run.rung.value,
            len(ranked),
            run.repaired_count,
            ranked[0].composite if ranked else 0.0,
            elapsed,
        )
        return GenerationResult(
            topic=request.topic,
            platform=request.platform,
            objective=request.objective,
            hooks=ranked,
            top_three_variants=variants,
            rung=run.rung.value,
            content_type=run.content_type,
            content_strategy=run.strategy,
            selected_categories=run.categories,
            repaired_count=run.repaired_count,
            trace=run.trace,
            elapsed_seconds=elapsed,
        )


def generate_hooks(
    request: GenerationRequest | dict[str, Any],
    client: HookCompletionService | None = None,
    settings: HookSettings | None = None,
    jitter: ScoreJitter | None = None,
) -> GenerationResult:
    """Run one request through a fresh pipeline."""
    return HookPipeline(client=client, settings=settings, jitter=jitter).run(request)


def check_model_type(model_type: str | None, allowed: tuple[str, ...] = config.ALLOWED_MODEL_TYPES) -> str | None:
    if model_type is None or model_type == "":
        return None
    if model_type not in allowed:
        raise InvalidHookRequest(f"Unsupported model type: {model_type!r} (allowed: {', '.join(allowed)})")
    return model_type
