"""
Vision Interview

Owns one user's interview: conversation, phase, personalization and the
persisted vision record.

Flow:
1. load() -> restore the latest vision or greet with the personalization prompt
2. send_message() while phase == personalization -> parse name/gender, open the interview
3. send_message() afterwards -> full history to the gateway, detect phase, extract on completion
4. save_vision() -> persist without sending anything
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from focus_tracker.models.schemas import (
    Gender,
    InterviewPhase,
    VisionInterviewState,
    VisionMessage,
    VisionOutput,
    VisionRecord,
    VisionTile,
)

from .ai_gateway import AIGatewayError, AIRateLimitError, ChatGateway
from .personalization import parse_personalization
from .phase_detector import detect_phase, detect_signal
from .repositories import StorageError, VisionRepository
from .vision_extractor import extract_vision
from .vision_prompt import (
    ERROR_MESSAGE,
    PERSONALIZATION_PROMPT,
    PERSONALIZATION_RETRY_MESSAGE,
    RATE_LIMIT_MESSAGE,
    build_introduction_turn,
    build_system_prompt,
)
from .vision_structurer import VisionStructurer, VisionStructuringError

logger = logging.getLogger(__name__)


def calculate_progress(phase: InterviewPhase, message_count: int) -> int:
    if phase == "personalization":
        return 5
    if phase == "narrative":
        return min(10 + message_count * 5, 50)
    if phase == "clustering":
        return 60
    if phase == "hardening":
        return 80
    if phase == "complete":
        return 100
    return 0


class VisionInterview:
    def __init__(
        self,
        user_id: str | None,
        gateway: ChatGateway,
        repository: VisionRepository,
        structurer: VisionStructurer | None = None,
    ) -> None:
        self.user_id = user_id
        self.gateway = gateway
        self.repository = repository
        self.structurer = structurer

        self.phase: InterviewPhase = "personalization"
        self.is_loading = False
        self.vision_id: str | None = None
        self.has_existing_vision = False
        self.user_name = ""
        self.user_gender: Gender | None = None
        self.narrative = ""
        self.tiles: list[VisionTile] = []
        # Optimistic user turn, visible while the gateway call is in flight
        self.pending_message: VisionMessage | None = None

        self._history: list[VisionMessage] = []
        self._created_at: datetime | None = None
        # Set when the stored record could not be read; blocks inserting a duplicate
        self._load_failed = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[VisionMessage]:
        if self.pending_message is None:
            return list(self._history)
        return [*self._history, self.pending_message]

    @property
    def is_complete(self) -> bool:
        return self.phase == "complete"

    @property
    def progress(self) -> int:
        return calculate_progress(self.phase, len(self.messages))

    @property
    def system_prompt(self) -> str | None:
        if self.user_name and self.user_gender:
            return build_system_prompt(self.user_name, self.user_gender)
        return None

    def snapshot(self) -> VisionInterviewState:
        return VisionInterviewState(
            user_id=self.user_id,
            vision_id=self.vision_id,
            has_existing_vision=self.has_existing_vision,
            messages=self.messages,
            phase=self.phase,
            progress=self.progress,
            is_loading=self.is_loading,
            is_complete=self.is_complete,
            user_name=self.user_name,
            user_gender=self.user_gender,
            narrative=self.narrative,
            tiles=list(self.tiles),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Restore the user's most recent vision, or start personalization."""
        if not self.user_id:
            return

        self._load_failed = False
        try:
            record = self.repository.latest_for_user(self.user_id)
        except StorageError as exc:
            logger.warning("Could not load vision for %s: %s", self.user_id, exc)
            self._load_failed = True
            record = None

        if record is None:
            self.has_existing_vision = False
            self._start_personalization()
            return

        self.vision_id = record.id
        self.has_existing_vision = True
        self._created_at = record.created_at
        self._history = list(record.conversation_history)
        self.narrative = record.narrative or ""
        self.tiles = list(record.tiles)
        self.user_name = record.user_name or ""
        self.user_gender = record.user_gender

        phase: InterviewPhase = record.phase
        if record.goals:
            phase = "complete"
        elif phase != "personalization" and not (self.user_name and self.user_gender):
            phase = "personalization"
        self.phase = phase

    def _start_personalization(self) -> None:
        self._history = [VisionMessage(role="assistant", content=PERSONALIZATION_PROMPT)]
        self.phase = "personalization"

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def send_message(self, text: str) -> None:
        """
        Process one user turn.

        Blank text, or a call while another is in flight, is ignored. Failures
        become an assistant-voice apology in the thread; progress is persisted
        either way.
        """
        content = text.strip() if isinstance(text, str) else ""
        if not content or self.is_loading:
            return

        user_message = VisionMessage(role="user", content=content)
        self.pending_message = user_message
        self.is_loading = True

        try:
            try:
                if self.phase == "personalization":
                    replies = await self._personalize(user_message)
                else:
                    replies = await self._interview(user_message)
            except AIRateLimitError as exc:
                logger.warning("Vision interview rate limited for %s: %s", self.user_id, exc)
                replies = [VisionMessage(role="assistant", content=RATE_LIMIT_MESSAGE)]
            except AIGatewayError as exc:
                logger.warning("Vision interview gateway error for %s: %s", self.user_id, exc)
                replies = [VisionMessage(role="assistant", content=ERROR_MESSAGE)]
            except Exception:
                logger.exception("Unexpected vision interview error for %s", self.user_id)
                replies = [VisionMessage(role="assistant", content=ERROR_MESSAGE)]

            self.pending_message = None
            self._history.extend([user_message, *replies])
            self._persist()
        finally:
            self.pending_message = None
            self.is_loading = False

    async def _personalize(self, user_message: VisionMessage) -> list[VisionMessage]:
        parsed = parse_personalization(user_message.content)
        if parsed is None:
            return [VisionMessage(role="assistant", content=PERSONALIZATION_RETRY_MESSAGE)]

        # Only the synthetic introduction goes out, not the raw greeting exchange.
        introduction = VisionMessage(
            role="user",
            content=build_introduction_turn(parsed.name, parsed.gender),
        )
        reply = await self._complete(
            [introduction],
            build_system_prompt(parsed.name, parsed.gender),
        )

        self.user_name = parsed.name
        self.user_gender = parsed.gender
        self.phase = "narrative"
        return [VisionMessage(role="assistant", content=reply)]

    async def _interview(self, user_message: VisionMessage) -> list[VisionMessage]:
        history = [*self._history, user_message]
        reply = await self._complete(history, self.system_prompt)

        next_phase = detect_phase(self.phase, reply)
        if next_phase == "complete" and detect_signal(reply) == "complete":
            output = await self._extract_output(reply)
            if output.narrative:
                self.narrative = output.narrative
            if output.tiles:
                self.tiles = output.tiles

        self.phase = next_phase
        return [VisionMessage(role="assistant", content=reply)]

    async def _complete(self, history: list[VisionMessage], system_prompt: str | None) -> str:
        reply = await asyncio.to_thread(self.gateway.complete, history, system_prompt)
        if not reply or not reply.strip():
            raise AIGatewayError("Received empty interview response")
        return reply.strip()

    async def _extract_output(self, reply: str) -> VisionOutput:
        if self.structurer is not None:
            try:
                output = await self.structurer.structure(reply)
            except VisionStructuringError as exc:
                logger.info("Structured vision unavailable, using markers: %s", exc)
            else:
                if not output.is_empty():
                    return output

        output = extract_vision(reply)
        if output.is_empty():
            logger.warning("Vision for %s completed without extractable content", self.user_id)
        return output

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save_vision(self) -> bool:
        """Persist current state without sending a message."""
        return self._persist()

    def _build_record(self) -> VisionRecord:
        now = datetime.now(timezone.utc)
        record = VisionRecord(
            user_id=self.user_id or "",
            conversation_history=list(self._history),
            narrative=self.narrative,
            goals=[tile.name for tile in self.tiles],
            tiles=list(self.tiles),
            phase=self.phase,
            user_name=self.user_name,
            user_gender=self.user_gender,
            is_complete=self.is_complete,
            created_at=self._created_at or now,
            updated_at=now,
        )
        if self.vision_id:
            record = record.model_copy(update={"id": self.vision_id})
        return record

    def _persist(self) -> bool:
        if not self.user_id:
            return False
        if not self.vision_id and self._load_failed:
            logger.warning(
                "Not creating a vision for %s: the stored vision could not be read", self.user_id
            )
            return False

        record = self._build_record()
        try:
            if self.vision_id:
                self.repository.update(self.vision_id, record)
            else:
                self.vision_id = self.repository.insert(record)
                self._created_at = record.created_at
        except StorageError as exc:
            logger.warning("Failed to save vision for %s: %s", self.user_id, exc)
            return False
        return True
