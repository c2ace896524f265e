from __future__ import annotations

import unittest

from focus_tracker.engines.phase_detector import detect_phase, detect_signal
from focus_tracker.engines.vision_extractor import extract_vision, parse_tile_block

FINAL_OUTPUT = """\
**[חלק 1: נרטיב אישי]**
אני קם בבוקר בבית שלנו ליד הים, הילדים כבר ערים ואני יושב לקפה במרפסת.

**[חלק 2: Vision Board תפעולי]**

**[קריירה]**
- תמונת מצב: עובד מהבית
- פעולה 1: לכתוב שעתיים ביום
- פעולה 2: פגישת לקוח חדש בכל שבוע
- שגרה קבועה: תכנון שבועי ביום ראשון

**[בריאות ואנרגיה]**
- **תמונת מצב:** רץ 10 ק"מ בקלות
- **פעולה 1:** ריצה שלוש פעמים בשבוע
- **שגרה קבועה:** שינה עד 23:00
"""


class PhaseDetectorTests(unittest.TestCase):
    def test_signals(self) -> None:
        self.assertIsNone(detect_signal("ספר לי עוד על הבית"))
        self.assertEqual(detect_signal("זיהיתי כמה תחומים מרכזיים: קריירה"), "clustering")
        self.assertEqual(detect_signal("כל חלום צריך להפוך לפעולה מדידה"), "hardening")
        self.assertEqual(detect_signal(FINAL_OUTPUT), "complete")

    def test_final_output_wins_over_hardening_vocabulary(self) -> None:
        reply = "פעולות מרכזיות לכל תחום:\n**[חלק 1: נרטיב אישי]**\n..."
        self.assertEqual(detect_phase("hardening", reply), "complete")

    def test_phase_never_moves_backwards(self) -> None:
        self.assertEqual(detect_phase("hardening", "זיהיתי כמה תחומים מרכזיים"), "hardening")
        self.assertEqual(detect_phase("clustering", "סתם תשובה"), "clustering")
        self.assertEqual(detect_phase("narrative", "תחומים מרכזיים בחייך"), "clustering")


class VisionExtractorTests(unittest.TestCase):
    def test_extracts_narrative_and_tiles(self) -> None:
        output = extract_vision(FINAL_OUTPUT)
        self.assertTrue(output.narrative.startswith("אני קם בבוקר"))
        self.assertNotIn("חלק 2", output.narrative)
        self.assertNotIn("*", output.narrative)

        self.assertEqual([tile.name for tile in output.tiles], ["קריירה", "בריאות ואנרגיה"])
        career = output.tiles[0]
        self.assertEqual(career.snapshot, "עובד מהבית")
        self.assertEqual(career.actions, ["לכתוב שעתיים ביום", "פגישת לקוח חדש בכל שבוע"])
        self.assertEqual(career.routine, "תכנון שבועי ביום ראשון")

        health = output.tiles[1]
        self.assertEqual(health.snapshot, 'רץ 10 ק"מ בקלות')
        self.assertEqual(health.actions, ["ריצה שלוש פעמים בשבוע"])
        self.assertEqual(health.routine, "שינה עד 23:00")

    def test_numbered_actions_fallback(self) -> None:
        tile = parse_tile_block("משפחה]\n- תמונת מצב: ארוחות משותפות\n1. ארוחת שישי\n2. טיול חודשי\n")
        assert tile is not None
        self.assertEqual(tile.name, "משפחה")
        self.assertEqual(tile.actions, ["ארוחת שישי", "טיול חודשי"])
        self.assertEqual(tile.routine, "")

    def test_heading_style_tiles(self) -> None:
        text = "[חלק 2: Vision Board תפעולי]\n### כסף\n- פעולה 1: חיסכון חודשי\n"
        output = extract_vision(text)
        self.assertEqual(output.narrative, "")
        self.assertEqual([tile.name for tile in output.tiles], ["כסף"])
        self.assertEqual(output.tiles[0].actions, ["חיסכון חודשי"])

    def test_unstructured_text_yields_empty_output(self) -> None:
        output = extract_vision("garbage with no markers")
        self.assertEqual(output.narrative, "")
        self.assertEqual(output.tiles, [])
        self.assertTrue(extract_vision("").is_empty())


if __name__ == "__main__":
    unittest.main()
