from __future__ import annotations

import unittest

from pipeline.hook_validation import count_words, has_proof_cue, rules_for, validate_candidate
from schemas.hooks import HookCandidate, Platform


def _hook(verbal: str, *, visual: str = "Close-up of an empty sugar jar", overlay: str = "No sugar: day 1") -> HookCandidate:
    return HookCandidate(
        verbal_hook=verbal,
        visual_hook=visual,
        textual_hook=overlay,
        framework="Open Loop",
        word_count=count_words(verbal),
    )


class CountWordsTests(unittest.TestCase):
    def test_counts_whitespace_tokens_of_stripped_line(self):
        self.assertEqual(count_words("  one  two\tthree \n"), 3)
        self.assertEqual(count_words(""), 0)
        self.assertEqual(count_words("   "), 0)
        self.assertEqual(count_words("sugar-free"), 1)


class PlatformWindowTests(unittest.TestCase):
    def test_tiktok_seven_words_is_outside_window(self):
        result = validate_candidate(_hook("Seven days without sugar changed my mornings"), Platform.TIKTOK)
        self.assertFalse(result.valid)
        self.assertEqual(result.word_count, 7)
        self.assertEqual(result.issues, ["Word count 7 outside tiktok range 8-12"])

    def test_tiktok_ten_words_is_valid(self):
        result = validate_candidate(
            _hook("Seven days without sugar changed my morning energy levels completely"),
            Platform.TIKTOK,
        )
        self.assertTrue(result.valid, result.issues)
        self.assertEqual(result.word_count, 10)

    def test_instagram_long_overlay_is_invalid(self):
        result = validate_candidate(
            _hook("My sugar cravings vanished by the fourth day", overlay="THIS IS A REALLY LONG OVERLAY TEXT"),
            Platform.INSTAGRAM,
        )
        self.assertFalse(result.valid)
        self.assertIn("Instagram overlay text exceeds 24 characters", result.issues)

    def test_instagram_overlay_at_cap_is_valid(self):
        overlay = "x" * 24
        result = validate_candidate(_hook("My sugar cravings vanished by the fourth day", overlay=overlay), "instagram")
        self.assertTrue(result.valid, result.issues)

    def test_youtube_six_words_with_number_is_valid(self):
        result = validate_candidate(_hook("I tested 3 sugar-free snack swaps"), Platform.YOUTUBE)
        self.assertTrue(result.valid, result.issues)
        self.assertEqual(result.word_count, 6)

    def test_youtube_long_line_is_outside_window(self):
        result = validate_candidate(_hook("I tested 3 sugar-free snack swaps for a whole week"), Platform.YOUTUBE)
        self.assertIn("Word count 10 outside youtube range 4-8", result.issues)


class RequiredSignalTests(unittest.TestCase):
    def test_tiktok_requires_visual_cold_open(self):
        result = validate_candidate(
            _hook("Seven days without sugar changed my morning energy levels completely", visual=""),
            Platform.TIKTOK,
        )
        self.assertEqual(result.issues, ["Missing visual cold-open"])

    def test_instagram_requires_overlay(self):
        result = validate_candidate(_hook("My sugar cravings vanished by the fourth day", overlay=""), Platform.INSTAGRAM)
        self.assertEqual(result.issues, ["Missing on-screen overlay"])

    def test_youtube_requires_proof_cue(self):
        result = validate_candidate(
            _hook("Why sugar cravings hit at night", visual="Creator at a kitchen table", overlay="Night cravings"),
            Platform.YOUTUBE,
        )
        self.assertEqual(result.issues, ["Missing proof cue (number or stat)"])

    def test_youtube_proof_word_in_overlay_counts(self):
        result = validate_candidate(
            _hook("Why sugar cravings hit at night", visual="Creator at a kitchen table", overlay="Study results inside"),
            Platform.YOUTUBE,
        )
        self.assertTrue(result.valid, result.issues)

    def test_proof_cue_detection(self):
        self.assertTrue(has_proof_cue("Day 7"))
        self.assertTrue(has_proof_cue("", "proven method"))
        self.assertFalse(has_proof_cue("no signal here", ""))


class OpeningAndBannedTermTests(unittest.TestCase):
    def test_overused_opening_is_flagged_case_insensitively(self):
        for line in (
            "Here's why sugar cravings hit so hard at night",
            "HERE’S why sugar cravings hit so hard at night",
            "if you crave sugar at night try this one swap",
            "Stop scrolling if sugar cravings run your entire evening",
        ):
            result = validate_candidate(_hook(line), Platform.TIKTOK)
            self.assertIn("Contains overused opening phrase", result.issues, line)

    def test_phrase_in_middle_is_not_an_opening(self):
        result = validate_candidate(
            _hook("My cravings said this is the end of my diet"),
            Platform.TIKTOK,
        )
        self.assertNotIn("Contains overused opening phrase", result.issues)

    def test_banned_term_is_flagged(self):
        result = validate_candidate(
            _hook("This miracle swap killed my sugar cravings in one week"),
            Platform.TIKTOK,
            banned_terms=["Miracle", ""],
        )
        self.assertEqual(result.issues, ["Contains banned term 'Miracle'"])

    def test_multiple_issues_are_all_reported(self):
        result = validate_candidate(_hook("Did you know this?", visual=""), Platform.TIKTOK)
        self.assertFalse(result.valid)
        self.assertEqual(len(result.issues), 3)


class TotalityTests(unittest.TestCase):
    def test_every_platform_and_length_yields_a_result(self):
        for platform in Platform:
            rules = rules_for(platform)
            for n in range(51):
                with self.subTest(platform=platform.value, words=n):
                    result = validate_candidate(_hook(" ".join(["word"] * n)), platform)
                    self.assertIsInstance(result.valid, bool)
                    self.assertEqual(result.word_count, n)
                    self.assertEqual(result.valid, rules.min_words <= n <= rules.max_words)


if __name__ == "__main__":
    unittest.main()
