from __future__ import annotations

import json
import unittest

from pipeline.hook_strategy import content_strategy, detect_content_type, select_categories
from pipeline.hook_taxonomy import CATEGORY_NAMES, HOOK_TAXONOMY, build_taxonomy_brief, category_entries
from pipeline.hook_validation import has_overused_opening
from schemas.hooks import Objective


class HookTaxonomyTests(unittest.TestCase):
    def test_catalog_has_five_categories(self):
        self.assertEqual(
            set(CATEGORY_NAMES),
            {"Question-Based", "Statement-Based", "Narrative", "Urgency/Exclusivity", "Efficiency"},
        )
        for category, formulas in HOOK_TAXONOMY.items():
            self.assertTrue(formulas, category)
            for row in formulas.values():
                self.assertIn(row["risk"], {"low", "medium", "high"})
                self.assertTrue(row["template"])

    def test_category_entries_keep_catalog_order(self):
        rows = category_entries("Efficiency")
        self.assertEqual([r["id"] for r in rows], ["EF-01", "EF-02", "EF-03", "EF-04"])
        self.assertEqual(category_entries("Unknown"), [])

    def test_brief_takes_two_entries_per_category(self):
        brief = json.loads(build_taxonomy_brief(["Narrative", "Efficiency", "Question-Based"]))
        self.assertEqual(len(brief), 6)
        self.assertEqual([row["id"] for row in brief[:2]], ["NA-01", "NA-02"])
        for row in brief:
            self.assertLessEqual(len(row["examples"]), 2)
            self.assertEqual(set(row), {"id", "category", "formula", "template", "examples"})

    def test_brief_skips_unknown_categories(self):
        brief = json.loads(build_taxonomy_brief(["Nope", "Efficiency"], per_category=1))
        self.assertEqual([row["id"] for row in brief], ["EF-01"])

    def test_brief_leaves_out_cliche_openings(self):
        brief = json.loads(build_taxonomy_brief(list(CATEGORY_NAMES)))
        self.assertEqual(len(brief), 10)
        for row in brief:
            self.assertFalse(has_overused_opening(row["template"]), row["id"])
            for example in row["examples"]:
                self.assertFalse(has_overused_opening(example), example)
        question_ids = [row["id"] for row in brief if row["category"] == "Question-Based"]
        self.assertEqual(question_ids, ["QH-02", "QH-03"])
        self.assertIn("QH-01", HOOK_TAXONOMY["Question-Based"])


class ContentTypeTests(unittest.TestCase):
    def test_educational_keywords(self):
        self.assertEqual(detect_content_type("How to fix your squat", Objective.SAVES), "educational")
        self.assertEqual(detect_content_type("Beginner TIPS for sourdough", "shares"), "educational")

    def test_storytelling_keywords(self):
        self.assertEqual(detect_content_type("My weight loss journey", Objective.WATCH_TIME), "storytelling")

    def test_both_or_neither_is_mixed(self):
        self.assertEqual(detect_content_type("My journey learning guitar", Objective.SHARES), "mixed")
        self.assertEqual(detect_content_type("7-day sugar-free experiment", Objective.WATCH_TIME), "mixed")

    def test_objective_text_is_matched_too(self):
        self.assertEqual(detect_content_type("squats", "tutorial views"), "educational")

    def test_strategy(self):
        self.assertEqual(content_strategy("educational"), "value_hit")
        self.assertEqual(content_strategy("storytelling"), "curiosity_gap")
        self.assertEqual(content_strategy("mixed"), "curiosity_gap")


class CategorySelectionTests(unittest.TestCase):
    def test_lookup_table(self):
        self.assertEqual(
            select_categories("educational", Objective.SAVES),
            ["Statement-Based", "Efficiency", "Question-Based"],
        )
        self.assertEqual(
            select_categories("storytelling", Objective.WATCH_TIME),
            ["Narrative", "Question-Based", "Urgency/Exclusivity"],
        )
        self.assertEqual(
            select_categories("mixed", Objective.CTR),
            ["Statement-Based", "Narrative", "Question-Based"],
        )

    def test_always_three_known_categories(self):
        for content_type in ("educational", "storytelling", "mixed"):
            for objective in Objective:
                picked = select_categories(content_type, objective)
                self.assertEqual(len(picked), 3)
                self.assertTrue(set(picked) <= set(CATEGORY_NAMES))


if __name__ == "__main__":
    unittest.main()
