from __future__ import annotations

import asyncio
import tempfile
import threading
import unittest
from collections.abc import Sequence
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

from focus_tracker.engines.ai_gateway import AIGatewayError, AIRateLimitError
from focus_tracker.engines.repositories import JsonVisionRepository, StorageError
from focus_tracker.engines.vision_interview import VisionInterview, calculate_progress
from focus_tracker.engines.vision_prompt import (
    ERROR_MESSAGE,
    PERSONALIZATION_PROMPT,
    PERSONALIZATION_RETRY_MESSAGE,
    RATE_LIMIT_MESSAGE,
)
from focus_tracker.engines.vision_structurer import VisionStructuringError
from focus_tracker.models.schemas import VisionMessage, VisionOutput, VisionRecord, VisionTile

FINAL_OUTPUT = """\
**[חלק 1: נרטיב אישי]**
אני עובד מסטודיו קטן ליד הבית ומסיים כל יום בחמש.

**[חלק 2: Vision Board תפעולי]**

**[קריירה]**
- תמונת מצב: עובד מהבית
- פעולה 1: לכתוב שעתיים ביום
- פעולה 2: פגישת לקוח בשבוע
- שגרה קבועה: תכנון שבועי ביום ראשון
"""


class ScriptedGateway:
    """Returns (or raises) the queued outcomes in order and records every call."""

    def __init__(self, *outcomes: object) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[list[VisionMessage], str | None]] = []

    def complete(self, history: Sequence[VisionMessage], system_prompt: str | None = None) -> str:
        self.calls.append((list(history), system_prompt))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return str(outcome)


class BlockingGateway:
    """Holds every call until ``release`` is set."""

    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.calls = 0
        self.entered = threading.Event()
        self.release = threading.Event()

    def complete(self, history: Sequence[VisionMessage], system_prompt: str | None = None) -> str:
        self.calls += 1
        self.entered.set()
        self.release.wait(timeout=5)
        return self.reply


class UnreadableRepository:
    """Stored vision exists but cannot be read; inserts are recorded."""

    def __init__(self) -> None:
        self.inserted: list[VisionRecord] = []

    def latest_for_user(self, user_id: str) -> VisionRecord | None:
        raise StorageError("corrupt record")

    def insert(self, record: VisionRecord) -> str:
        self.inserted.append(record)
        return record.id

    def update(self, vision_id: str, record: VisionRecord) -> None:
        raise StorageError("no such vision")


class FailingRepository:
    def latest_for_user(self, user_id: str) -> VisionRecord | None:
        raise StorageError("disk gone")

    def insert(self, record: VisionRecord) -> str:
        raise StorageError("disk gone")

    def update(self, vision_id: str, record: VisionRecord) -> None:
        raise StorageError("disk gone")


class VisionInterviewTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.repository = JsonVisionRepository(Path(self._tmp.name))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _interview(self, gateway: ScriptedGateway, structurer: object | None = None) -> VisionInterview:
        interview = VisionInterview(
            user_id="user_1",
            gateway=gateway,
            repository=self.repository,
            structurer=structurer,  # type: ignore[arg-type]
        )
        interview.load()
        return interview

    async def _personalized(self, gateway: ScriptedGateway, structurer: object | None = None) -> VisionInterview:
        interview = self._interview(gateway, structurer)
        await interview.send_message("אני יואב, בזכר")
        return interview

    async def test_new_user_is_greeted_with_personalization_prompt(self) -> None:
        interview = self._interview(ScriptedGateway())
        self.assertEqual(interview.phase, "personalization")
        self.assertFalse(interview.has_existing_vision)
        self.assertEqual([m.content for m in interview.messages], [PERSONALIZATION_PROMPT])
        self.assertEqual(interview.progress, 5)

    async def test_personalization_opens_the_interview(self) -> None:
        gateway = ScriptedGateway("יואב, בתרגיל הזה... נתחיל?")
        interview = await self._personalized(gateway)

        self.assertEqual(len(gateway.calls), 1)
        sent_history, system_prompt = gateway.calls[0]
        self.assertEqual([m.content for m in sent_history], ["שמי יואב ואני מעדיף פנייה בזכר"])
        assert system_prompt is not None
        self.assertIn("יואב", system_prompt)
        self.assertIn("masculine", system_prompt)

        self.assertEqual(interview.phase, "narrative")
        self.assertEqual((interview.user_name, interview.user_gender), ("יואב", "male"))
        self.assertEqual([m.role for m in interview.messages], ["assistant", "user", "assistant"])
        self.assertFalse(interview.is_loading)

        record = self.repository.latest_for_user("user_1")
        assert record is not None
        self.assertEqual(record.phase, "narrative")
        self.assertEqual(record.user_name, "יואב")
        self.assertEqual(interview.vision_id, record.id)

    async def test_unparseable_introduction_asks_again_without_gateway(self) -> None:
        gateway = ScriptedGateway()
        interview = self._interview(gateway)
        await interview.send_message("בזכר")

        self.assertEqual(gateway.calls, [])
        self.assertEqual(interview.phase, "personalization")
        retries = [m for m in interview.messages if m.content == PERSONALIZATION_RETRY_MESSAGE]
        self.assertEqual(len(retries), 1)

    async def test_rate_limit_keeps_phase_and_apologises(self) -> None:
        gateway = ScriptedGateway("נתחיל?", AIRateLimitError("429"))
        interview = await self._personalized(gateway)
        await interview.send_message("אני רואה את עצמי גר בחיפה")

        self.assertEqual(interview.phase, "narrative")
        self.assertFalse(interview.is_loading)
        self.assertEqual(interview.messages[-1].content, RATE_LIMIT_MESSAGE)
        self.assertEqual(interview.messages[-2].content, "אני רואה את עצמי גר בחיפה")

        record = self.repository.latest_for_user("user_1")
        assert record is not None
        self.assertEqual(record.conversation_history[-1].content, RATE_LIMIT_MESSAGE)

    async def test_failed_personalization_call_leaves_user_unpersonalized(self) -> None:
        gateway = ScriptedGateway(AIGatewayError("down"))
        interview = await self._personalized(gateway)

        self.assertEqual(interview.phase, "personalization")
        self.assertEqual(interview.user_name, "")
        self.assertIsNone(interview.user_gender)
        self.assertEqual(interview.messages[-1].content, ERROR_MESSAGE)

    async def test_empty_reply_is_treated_as_an_error(self) -> None:
        gateway = ScriptedGateway("נתחיל?", "   ")
        interview = await self._personalized(gateway)
        await interview.send_message("עוד פרטים")
        self.assertEqual(interview.messages[-1].content, ERROR_MESSAGE)

    async def test_blank_messages_are_ignored(self) -> None:
        gateway = ScriptedGateway()
        interview = self._interview(gateway)
        await interview.send_message("   ")
        self.assertEqual(len(interview.messages), 1)
        self.assertEqual(gateway.calls, [])

    async def test_full_interview_reaches_complete_and_extracts_tiles(self) -> None:
        gateway = ScriptedGateway(
            "נתחיל? ספר לי איפה אתה רואה את עצמך",
            "זיהיתי כמה תחומים מרכזיים:\n• קריירה\nזה מדויק?",
            "עכשיו כל חלום הופך לפעולה מדידה. מה הצעד הראשון?",
            FINAL_OUTPUT,
        )
        interview = await self._personalized(gateway)

        await interview.send_message("אני עובד מהבית ומלמד")
        self.assertEqual(interview.phase, "clustering")
        self.assertEqual(interview.progress, 60)

        await interview.send_message("כן, מדויק")
        self.assertEqual(interview.phase, "hardening")

        await interview.send_message("לכתוב שעתיים ביום")
        self.assertEqual(interview.phase, "complete")
        self.assertTrue(interview.is_complete)
        self.assertEqual(interview.progress, 100)
        self.assertIn("סטודיו", interview.narrative)
        self.assertEqual([tile.name for tile in interview.tiles], ["קריירה"])

        # each call after personalization carries the whole visible thread
        history, system_prompt = gateway.calls[-1]
        self.assertEqual(len(history), len(interview.messages) - 1)
        self.assertIsNotNone(system_prompt)

        record = self.repository.latest_for_user("user_1")
        assert record is not None
        self.assertEqual(record.goals, ["קריירה"])
        self.assertTrue(record.is_complete)

    async def test_structurer_result_is_preferred(self) -> None:
        structured = VisionOutput(
            narrative="נרטיב מובנה",
            tiles=[VisionTile(name="בית", actions=["לשפץ"])],
        )
        structurer = SimpleNamespace(structure=AsyncMock(return_value=structured))
        interview = await self._personalized(ScriptedGateway("נתחיל?", FINAL_OUTPUT), structurer)
        await interview.send_message("סיימנו")

        structurer.structure.assert_awaited_once_with(FINAL_OUTPUT.strip())
        self.assertEqual(interview.narrative, "נרטיב מובנה")
        self.assertEqual([tile.name for tile in interview.tiles], ["בית"])

    async def test_structurer_failure_falls_back_to_markers(self) -> None:
        structurer = SimpleNamespace(structure=AsyncMock(side_effect=VisionStructuringError("bad")))
        interview = await self._personalized(ScriptedGateway("נתחיל?", FINAL_OUTPUT), structurer)
        await interview.send_message("סיימנו")

        self.assertEqual(interview.phase, "complete")
        self.assertEqual([tile.name for tile in interview.tiles], ["קריירה"])

    async def test_reload_restores_progress(self) -> None:
        interview = await self._personalized(ScriptedGateway("נתחיל?", "ספר עוד"))
        await interview.send_message("גר ליד הים")

        restored = self._interview(ScriptedGateway())
        self.assertTrue(restored.has_existing_vision)
        self.assertEqual(restored.vision_id, interview.vision_id)
        self.assertEqual(restored.phase, "narrative")
        self.assertEqual(restored.user_name, "יואב")
        self.assertEqual(
            [m.content for m in restored.messages],
            [m.content for m in interview.messages],
        )

    async def test_reload_with_goals_is_complete(self) -> None:
        self.repository.insert(
            VisionRecord(
                user_id="user_1",
                goals=["קריירה"],
                tiles=[VisionTile(name="קריירה")],
                phase="hardening",
                user_name="דנה",
                user_gender="female",
            )
        )
        interview = self._interview(ScriptedGateway())
        self.assertEqual(interview.phase, "complete")
        self.assertEqual(interview.progress, 100)

    async def test_storage_failures_do_not_break_the_conversation(self) -> None:
        interview = VisionInterview("user_1", ScriptedGateway("נתחיל?"), FailingRepository())
        interview.load()
        self.assertEqual(interview.phase, "personalization")

        await interview.send_message("שמי נועה, נקבה")
        self.assertEqual(interview.phase, "narrative")
        self.assertEqual(interview.user_gender, "female")
        self.assertFalse(await interview.save_vision())

    async def test_message_during_inflight_call_is_dropped(self) -> None:
        gateway = BlockingGateway("יואב, נתחיל?")
        interview = self._interview(gateway)  # type: ignore[arg-type]

        first = asyncio.create_task(interview.send_message("אני יואב, בזכר"))
        try:
            self.assertTrue(await asyncio.to_thread(gateway.entered.wait, 5))
            self.assertTrue(interview.is_loading)
            assert interview.pending_message is not None
            self.assertEqual(interview.pending_message.content, "אני יואב, בזכר")
            self.assertEqual(interview.messages[-1], interview.pending_message)

            await interview.send_message("x")
            self.assertTrue(interview.is_loading)
        finally:
            gateway.release.set()
        await first

        self.assertEqual(gateway.calls, 1)
        self.assertFalse(interview.is_loading)
        self.assertIsNone(interview.pending_message)
        self.assertEqual(
            [m.content for m in interview.messages if m.role == "user"],
            ["אני יואב, בזכר"],
        )
        self.assertEqual(interview.messages[-1].content, "יואב, נתחיל?")

    async def test_corrupt_record_of_another_user_does_not_hide_a_vision(self) -> None:
        saved = VisionRecord(
            user_id="user_1",
            goals=["קריירה"],
            tiles=[VisionTile(name="קריירה")],
            phase="complete",
            user_name="דנה",
            user_gender="female",
        )
        self.repository.insert(saved)
        (Path(self._tmp.name) / "future_visions" / "zzz_bob.json").write_text("{broken", encoding="utf-8")

        with self.assertLogs("focus_tracker.engines.repositories", level="WARNING"):
            interview = self._interview(ScriptedGateway())

        self.assertTrue(interview.has_existing_vision)
        self.assertEqual(interview.vision_id, saved.id)
        self.assertEqual(interview.phase, "complete")

    async def test_unreadable_vision_is_not_replaced_by_a_new_record(self) -> None:
        repository = UnreadableRepository()
        interview = VisionInterview("user_1", ScriptedGateway("נתחיל?"), repository)
        interview.load()
        self.assertFalse(interview.has_existing_vision)

        await interview.send_message("שמי נועה, נקבה")
        self.assertEqual(interview.phase, "narrative")
        self.assertFalse(await interview.save_vision())
        self.assertEqual(repository.inserted, [])
        self.assertIsNone(interview.vision_id)

    async def test_anonymous_interview_is_not_persisted(self) -> None:
        interview = VisionInterview(None, ScriptedGateway(), self.repository)
        interview.load()
        self.assertFalse(await interview.save_vision())
        self.assertIsNone(self.repository.latest_for_user(""))


class JsonVisionRepositoryTests(unittest.TestCase):
    def test_scan_skips_unreadable_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            repository = JsonVisionRepository(tmp)
            record = VisionRecord(user_id="alice", goals=["בית"])
            repository.insert(record)
            directory = Path(tmp) / "future_visions"
            (directory / "zzz_bob.json").write_text("{broken", encoding="utf-8")
            (directory / "zzz_carol.json").write_bytes(b"\xff\xfe\x00")

            with self.assertLogs("focus_tracker.engines.repositories", level="WARNING") as logs:
                latest = repository.latest_for_user("alice")

            assert latest is not None
            self.assertEqual(latest.id, record.id)
            self.assertEqual(len(logs.records), 2)
            self.assertIsNone(repository.latest_for_user("bob"))


class ProgressTests(unittest.TestCase):
    def test_progress_per_phase(self) -> None:
        self.assertEqual(calculate_progress("personalization", 9), 5)
        self.assertEqual(calculate_progress("narrative", 2), 20)
        self.assertEqual(calculate_progress("narrative", 40), 50)
        self.assertEqual(calculate_progress("clustering", 0), 60)
        self.assertEqual(calculate_progress("hardening", 0), 80)
        self.assertEqual(calculate_progress("complete", 0), 100)


if __name__ == "__main__":
    unittest.main()
