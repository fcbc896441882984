from __future__ import annotations

import threading
import time
import unittest

from pipeline import hook_engine
from pipeline.completion import CompletionOutcome, RewriteOutcome
from pipeline.hook_engine import HookSettings, InvalidHookRequest, build_static_candidates, generate_hooks
from pipeline.hook_scoring import ScoreJitter
from pipeline.hook_validation import count_words
from schemas.hooks import GenerationRequest, HookCandidate, JudgeScores


TOPIC = "7-day sugar-free experiment"
SETTINGS = HookSettings(retry_wait_seconds=0.0, score_jitter=False)


def _hook(verbal: str, framework: str = "Open Loop", source: str = "primary") -> HookCandidate:
    return HookCandidate(
        verbal_hook=verbal,
        visual_hook="Close-up of an empty sugar jar on a kitchen counter",
        textual_hook="No sugar: day 1",
        framework=framework,
        rationale="Opens a loop the payoff closes",
        word_count=count_words(verbal),
        source=source,
    )


def _valid_hooks(n: int = 10, framework: str = "Open Loop") -> list[HookCandidate]:
    return [_hook(f"Day {i + 1} without sugar and my cravings finally went quiet", framework) for i in range(n)]


def _success(candidates: list[HookCandidate]) -> CompletionOutcome:
    return CompletionOutcome("success", candidates=candidates)


class FakeHookService:
    def __init__(self, outcomes=None, rewrite=None, judge=None):
        self.outcomes = list(outcomes or [])
        self.rewrite = rewrite
        self.judge = judge
        self.generate_calls: list[dict] = []
        self.rewrite_calls: list[dict] = []
        self.judge_calls: list[dict] = []
        self._lock = threading.Lock()

    def generate_hooks(self, **kwargs):
        self.generate_calls.append(kwargs)
        if not self.outcomes:
            return CompletionOutcome("unavailable", error="offline")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def rewrite_line(self, **kwargs):
        with self._lock:
            self.rewrite_calls.append(kwargs)
        if self.rewrite is None:
            return RewriteOutcome(ok=False, error="offline")
        return self.rewrite(kwargs)

    def judge_hooks(self, **kwargs):
        self.judge_calls.append(kwargs)
        return dict(self.judge or {})


def _request(**overrides) -> dict:
    payload = {"topic": TOPIC, "platform": "tiktok", "objective": "watch_time"}
    payload.update(overrides)
    return payload


class FallbackLadderTests(unittest.TestCase):
    def test_total_unavailability_returns_static_hooks(self):
        fake = FakeHookService()
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)

        self.assertEqual(result.rung, "static")
        self.assertEqual(len(result.hooks), 10)
        self.assertEqual([c["model"] for c in fake.generate_calls], ["gpt-4o", "gpt-4o", "gpt-4o-mini"])
        self.assertEqual([c["source"] for c in fake.generate_calls], ["primary", "primary", "simplified"])
        self.assertEqual(fake.rewrite_calls, [])
        self.assertTrue(all(h.source == "static" for h in result.hooks))
        self.assertTrue(all(TOPIC in h.verbal_hook for h in result.hooks))
        composites = [h.composite for h in result.hooks]
        self.assertEqual(composites, sorted(composites, reverse=True))
        self.assertEqual(result.hooks[0].score.explanation, "Static fallback hook")
        self.assertEqual(len(result.top_three_variants), 3)

    def test_static_hooks_are_deterministic(self):
        first = generate_hooks(_request(), client=FakeHookService(), settings=SETTINGS)
        second = generate_hooks(_request(), client=FakeHookService(), settings=SETTINGS)
        self.assertEqual(
            [(h.verbal_hook, h.composite) for h in first.hooks],
            [(h.verbal_hook, h.composite) for h in second.hooks],
        )

    def test_primary_retry_then_success(self):
        fake = FakeHookService(outcomes=[CompletionOutcome("malformed", error="invalid JSON"), _success(_valid_hooks())])
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(result.rung, "primary")
        self.assertEqual(len(fake.generate_calls), 2)

    def test_descends_to_simplified(self):
        fake = FakeHookService(
            outcomes=[
                CompletionOutcome("unavailable", error="timeout"),
                CompletionOutcome("malformed", error="too few hooks: 3 < 8"),
                _success(_valid_hooks()),
            ]
        )
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(result.rung, "simplified")
        self.assertEqual(fake.generate_calls[2]["deadline_seconds"], 20.0)
        self.assertEqual(fake.generate_calls[2]["temperature"], 0.5)
        rungs = [e.rung for e in result.trace if e.state == "generating"]
        self.assertIn("primary", rungs)
        self.assertIn("simplified", rungs)

    def test_client_exception_is_treated_as_unavailable(self):
        fake = FakeHookService(outcomes=[RuntimeError("boom"), RuntimeError("boom"), RuntimeError("boom")])
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(result.rung, "static")
        self.assertEqual(len(fake.generate_calls), 3)

    def test_ladder_never_climbs_back(self):
        fake = FakeHookService(
            outcomes=[
                CompletionOutcome("unavailable"),
                CompletionOutcome("unavailable"),
                CompletionOutcome("unavailable"),
                _success(_valid_hooks()),
            ]
        )
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(result.rung, "static")
        self.assertEqual(len(fake.generate_calls), 3)

    def test_fallback_finishes_quickly_when_provider_is_down(self):
        fake = FakeHookService()
        started = time.monotonic()
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        elapsed = time.monotonic() - started

        self.assertEqual(result.rung, "static")
        self.assertEqual(len(fake.generate_calls), 3)
        self.assertLess(elapsed, 2.0)


class RepairStageTests(unittest.TestCase):
    def test_only_invalid_candidates_are_repaired_once(self):
        hooks = _valid_hooks()
        for idx in (1, 4, 7):
            hooks[idx] = _hook(f"Sugar is sneaky {idx}")
        fixed = "Day 3 without sugar and my cravings finally went quiet"
        fake = FakeHookService(outcomes=[_success(hooks)], rewrite=lambda _: RewriteOutcome(ok=True, text=fixed))

        result = generate_hooks(_request(), client=fake, settings=SETTINGS)

        self.assertEqual(len(fake.rewrite_calls), 3)
        self.assertEqual(result.repaired_count, 3)
        repaired = [h for h in result.hooks if h.repaired]
        self.assertEqual(len(repaired), 3)
        for hook in repaired:
            self.assertEqual(hook.verbal_hook, fixed)
            self.assertEqual(hook.word_count, 10)
            self.assertEqual(hook.validation_issues, [])
        self.assertIn("8-12 words", fake.rewrite_calls[0]["user_prompt"])
        self.assertEqual(fake.rewrite_calls[0]["model"], "gpt-4o-mini")
        self.assertIn("repairing", [e.state for e in result.trace])

    def test_failed_repair_leaves_candidate_unchanged(self):
        hooks = _valid_hooks()
        hooks[0] = _hook("Sugar is sneaky")
        fake = FakeHookService(outcomes=[_success(hooks)])

        result = generate_hooks(_request(), client=fake, settings=SETTINGS)

        self.assertEqual(len(fake.rewrite_calls), 1)
        self.assertEqual(result.repaired_count, 0)
        broken = [h for h in result.hooks if h.verbal_hook == "Sugar is sneaky"]
        self.assertEqual(len(broken), 1)
        self.assertEqual(broken[0].word_count, 3)
        self.assertFalse(broken[0].repaired)
        self.assertIn("Word count 3 outside tiktok range 8-12", broken[0].validation_issues)
        self.assertIsNotNone(broken[0].score)

    def test_crashing_rewrite_is_absorbed(self):
        hooks = _valid_hooks()
        hooks[2] = _hook("Sugar is sneaky")

        def crash(_):
            raise RuntimeError("connection reset")

        fake = FakeHookService(outcomes=[_success(hooks)], rewrite=crash)
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(len(result.hooks), 10)
        self.assertEqual(result.repaired_count, 0)

    def test_valid_batch_makes_no_repair_calls(self):
        fake = FakeHookService(outcomes=[_success(_valid_hooks())])
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(fake.rewrite_calls, [])
        self.assertNotIn("repairing", [e.state for e in result.trace])

    def test_parallel_rewrites_stay_within_pool_size(self):
        hooks = [_hook(f"Sugar is sneaky {i}") for i in range(10)]
        fixed = "Day 3 without sugar and my cravings finally went quiet"
        gauge = {"active": 0, "peak": 0}
        gauge_lock = threading.Lock()

        def slow_rewrite(_):
            with gauge_lock:
                gauge["active"] += 1
                gauge["peak"] = max(gauge["peak"], gauge["active"])
            time.sleep(0.05)
            with gauge_lock:
                gauge["active"] -= 1
            return RewriteOutcome(ok=True, text=fixed)

        fake = FakeHookService(outcomes=[_success(hooks)], rewrite=slow_rewrite)
        settings = HookSettings(retry_wait_seconds=0.0, score_jitter=False, repair_max_parallel=2)
        result = generate_hooks(_request(), client=fake, settings=settings)

        self.assertEqual(len(fake.rewrite_calls), 10)
        self.assertEqual(result.repaired_count, 10)
        self.assertGreaterEqual(gauge["peak"], 1)
        self.assertLessEqual(gauge["peak"], 2)


class ResultShapeTests(unittest.TestCase):
    def test_short_batch_is_padded_to_ten(self):
        fake = FakeHookService(outcomes=[_success(_valid_hooks(8))])
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(result.rung, "primary")
        self.assertEqual(len(result.hooks), 10)
        padded = [h for h in result.hooks if h.source == "static"]
        self.assertEqual(len(padded), 2)
        for hook in padded:
            self.assertNotEqual(hook.score.explanation, "Static fallback hook")

    def test_long_batch_is_trimmed_to_ten(self):
        fake = FakeHookService(outcomes=[_success(_valid_hooks(12))])
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(len(result.hooks), 10)

    def test_ties_keep_generation_order(self):
        hooks = [_hook(f"Day {i} without sugar and my cravings finally stopped", "Statement") for i in range(10)]
        fake = FakeHookService(outcomes=[_success(hooks)])
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        self.assertEqual(len({h.composite for h in result.hooks}), 1)
        self.assertEqual([h.verbal_hook for h in result.hooks], [h.verbal_hook for h in hooks])
        self.assertEqual(
            [v.hook.verbal_hook for v in result.top_three_variants],
            [h.verbal_hook for h in hooks[:3]],
        )

    def test_word_count_matches_verbal_line(self):
        fake = FakeHookService(outcomes=[_success(_valid_hooks())])
        result = generate_hooks(_request(), client=fake, settings=SETTINGS)
        for hook in result.hooks:
            self.assertEqual(hook.word_count, count_words(hook.verbal_hook))

    def test_seeded_jitter_is_reproducible(self):
        runs = []
        for _ in range(2):
            fake = FakeHookService(outcomes=[_success(_valid_hooks(10, "Question"))])
            result = generate_hooks(_request(), client=fake, settings=SETTINGS, jitter=ScoreJitter(seed=11))
            runs.append([(h.verbal_hook, h.composite, h.score.jitter) for h in result.hooks])
        self.assertEqual(runs[0], runs[1])


class EndToEndTests(unittest.TestCase):
    def test_sugar_free_experiment_on_tiktok(self):
        hooks = _valid_hooks(5, "Question") + _valid_hooks(5, "Open Loop")
        fake = FakeHookService(outcomes=[_success(hooks)])

        result = generate_hooks(
            {
                **_request(),
                "brand": {"company": "Sweet Reset", "audience": "busy parents"},
            },
            client=fake,
            settings=SETTINGS,
        )

        self.assertEqual(result.content_type, "mixed")
        self.assertEqual(result.content_strategy, "curiosity_gap")
        self.assertEqual(result.selected_categories, ["Statement-Based", "Narrative", "Question-Based"])
        self.assertEqual(result.rung, "primary")
        self.assertEqual(len(result.hooks), 10)
        self.assertEqual([h.framework for h in result.hooks[:5]], ["Open Loop"] * 5)
        self.assertEqual(result.hooks[0].composite, 5.0)
        self.assertAlmostEqual(result.hooks[5].composite, 4.5)
        self.assertEqual([v.variant_label for v in result.top_three_variants], ["enhanced", "refined", "optimized"])

        call = fake.generate_calls[0]
        self.assertEqual(call["model"], "gpt-4o")
        self.assertEqual(call["deadline_seconds"], 25.0)
        self.assertIn(TOPIC, call["user_prompt"])
        self.assertIn("Sweet Reset", call["user_prompt"])
        self.assertIn("NA-01", call["user_prompt"])
        self.assertIn("8-12 words", call["user_prompt"])

        states = [e.state for e in result.trace]
        expected = ["classifying", "selecting_categories", "generating", "validating", "scoring", "ranking", "done"]
        self.assertEqual([s for s in states if s in expected], expected)

    def test_model_type_override(self):
        fake = FakeHookService(outcomes=[_success(_valid_hooks())])
        generate_hooks(_request(model_type="gpt-4o-mini"), client=fake, settings=SETTINGS)
        self.assertEqual(fake.generate_calls[0]["model"], "gpt-4o-mini")

    def test_judge_scores_are_informational(self):
        judge = {0: JudgeScores(tri_modal_synergy=0.9, psychological_impact=0.8)}
        plain = generate_hooks(_request(), client=FakeHookService(outcomes=[_success(_valid_hooks())]), settings=SETTINGS)
        fake = FakeHookService(outcomes=[_success(_valid_hooks())], judge=judge)
        judged = generate_hooks(
            _request(),
            client=fake,
            settings=HookSettings(retry_wait_seconds=0.0, score_jitter=False, judge_enabled=True),
        )
        self.assertEqual(len(fake.judge_calls), 1)
        self.assertEqual([h.composite for h in plain.hooks], [h.composite for h in judged.hooks])
        with_judge = [h for h in judged.hooks if h.score.judge is not None]
        self.assertEqual(len(with_judge), 1)
        self.assertEqual(with_judge[0].score.judge.tri_modal_synergy, 0.9)

    def test_accepts_request_model(self):
        request = GenerationRequest(topic=TOPIC, platform="youtube", objective="ctr")
        result = hook_engine.HookPipeline(client=FakeHookService(), settings=SETTINGS).run(request)
        self.assertEqual(result.platform.value, "youtube")
        self.assertEqual(len(result.hooks), 10)


class ContractErrorTests(unittest.TestCase):
    def test_rejected_before_any_external_call(self):
        bad_requests = [
            {"platform": "tiktok", "objective": "watch_time"},
            _request(topic="   "),
            _request(platform="myspace"),
            _request(objective="likes"),
            _request(model_type="gpt-5"),
        ]
        for payload in bad_requests:
            fake = FakeHookService()
            with self.assertRaises(InvalidHookRequest):
                generate_hooks(payload, client=fake, settings=SETTINGS)
            self.assertEqual(fake.generate_calls, [], payload)

    def test_invalid_request_is_a_value_error(self):
        self.assertTrue(issubclass(InvalidHookRequest, ValueError))


class StaticTemplateTests(unittest.TestCase):
    def test_templates_are_topic_aware(self):
        hooks = build_static_candidates("meal prep", count=10)
        self.assertEqual(len(hooks), 10)
        self.assertEqual(len({h.verbal_hook for h in hooks}), 10)
        self.assertTrue(all("meal prep" in h.verbal_hook for h in hooks))
        self.assertTrue(all(len(h.textual_hook) <= 24 for h in hooks))


if __name__ == "__main__":
    unittest.main()
