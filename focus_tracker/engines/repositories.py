"""
Repositories

One narrow interface per record type, backed by JSON files under the
configured storage root:

    <storage_root>/<collection>/<record_id>.json

Writes go through a temp file and an atomic rename. Last writer wins.
Scans skip files that cannot be read, so one corrupt record does not hide
the rest of its collection.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generic, Iterator, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from focus_tracker.models.schemas import (
    FeedbackRequest,
    FeedbackResponse,
    FocusPlan,
    VisionRecord,
    WeeklyCheck,
)

RecordT = TypeVar("RecordT", bound=BaseModel)

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a record cannot be read or written."""


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------

class VisionRepository(Protocol):
    def latest_for_user(self, user_id: str) -> VisionRecord | None: ...

    def insert(self, record: VisionRecord) -> str: ...

    def update(self, vision_id: str, record: VisionRecord) -> None: ...


class FocusPlanRepository(Protocol):
    def get_active(self, user_id: str) -> FocusPlan | None: ...

    def upsert(self, plan: FocusPlan) -> FocusPlan: ...


class WeeklyCheckRepository(Protocol):
    def get(self, focus_plan_id: str, week_number: int, year: int) -> WeeklyCheck | None: ...

    def upsert(self, check: WeeklyCheck) -> WeeklyCheck: ...

    def list_for_plan(self, focus_plan_id: str) -> list[WeeklyCheck]: ...


class FeedbackRepository(Protocol):
    def create_request(self, request: FeedbackRequest) -> FeedbackRequest: ...

    def get_request_by_token(self, token: str) -> FeedbackRequest | None: ...

    def insert_response(self, response: FeedbackResponse) -> str: ...

    def list_responses(self, request_id: str) -> list[FeedbackResponse]: ...


# ---------------------------------------------------------------------------
# JSON file collection
# ---------------------------------------------------------------------------

class JsonCollection(Generic[RecordT]):
    def __init__(self, root: str | Path, name: str, model: type[RecordT]) -> None:
        self.directory = Path(root) / name
        self.model = model

    def path_for(self, record_id: str) -> Path:
        if not record_id or "/" in record_id or "\\" in record_id or record_id.startswith("."):
            raise StorageError(f"Invalid record id: {record_id!r}")
        return self.directory / f"{record_id}.json"

    def get(self, record_id: str) -> RecordT | None:
        path = self.path_for(record_id)
        if not path.exists():
            return None
        return self._read(path)

    def put(self, record_id: str, record: RecordT) -> None:
        path = self.path_for(record_id)
        payload = json.dumps(record.model_dump(mode="json"), ensure_ascii=False, indent=2)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

    def all(self) -> Iterator[RecordT]:
        if not self.directory.exists():
            return
        for path in sorted(self.directory.glob("*.json")):
            try:
                record = self._read(path)
            except StorageError as exc:
                logger.warning("Skipping unreadable record: %s", exc)
                continue
            yield record

    def _read(self, path: Path) -> RecordT:
        try:
            raw: Any = json.loads(path.read_text(encoding="utf-8"))
            return self.model.model_validate(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------

class JsonVisionRepository:
    def __init__(self, storage_root: str | Path) -> None:
        self.visions = JsonCollection(storage_root, "future_visions", VisionRecord)

    def latest_for_user(self, user_id: str) -> VisionRecord | None:
        candidates = [record for record in self.visions.all() if record.user_id == user_id]
        if not candidates:
            return None
        return max(candidates, key=lambda record: record.created_at)

    def insert(self, record: VisionRecord) -> str:
        if self.visions.get(record.id) is not None:
            raise StorageError(f"Vision {record.id} already exists")
        self.visions.put(record.id, record)
        return record.id

    def update(self, vision_id: str, record: VisionRecord) -> None:
        existing = self.visions.get(vision_id)
        if existing is None:
            raise StorageError(f"Vision {vision_id} not found")
        # id and creation time are owned by the stored record
        updated = record.model_copy(update={"id": vision_id, "created_at": existing.created_at})
        self.visions.put(vision_id, updated)


class JsonFocusPlanRepository:
    def __init__(self, storage_root: str | Path) -> None:
        self.plans = JsonCollection(storage_root, "focus_plans", FocusPlan)

    def get_active(self, user_id: str) -> FocusPlan | None:
        for plan in self.plans.all():
            if plan.user_id == user_id and plan.status == "active":
                return plan
        return None

    def upsert(self, plan: FocusPlan) -> FocusPlan:
        """One plan per user: an existing plan keeps its id and start date."""
        existing = next((p for p in self.plans.all() if p.user_id == plan.user_id), None)
        if existing is not None:
            plan = plan.model_copy(update={"id": existing.id, "start_date": existing.start_date})
        plan = plan.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        self.plans.put(plan.id, plan)
        return plan


class JsonWeeklyCheckRepository:
    def __init__(self, storage_root: str | Path) -> None:
        self.checks = JsonCollection(storage_root, "weekly_checks", WeeklyCheck)

    @staticmethod
    def record_id(focus_plan_id: str, week_number: int, year: int) -> str:
        return f"{focus_plan_id}_{year}_w{week_number:02d}"

    def get(self, focus_plan_id: str, week_number: int, year: int) -> WeeklyCheck | None:
        return self.checks.get(self.record_id(focus_plan_id, week_number, year))

    def upsert(self, check: WeeklyCheck) -> WeeklyCheck:
        record_id = self.record_id(check.focus_plan_id, check.week_number, check.year)
        existing = self.checks.get(record_id)
        update: dict[str, Any] = {"updated_at": datetime.now(timezone.utc)}
        if existing is not None:
            update["id"] = existing.id
        check = check.model_copy(update=update)
        self.checks.put(record_id, check)
        return check

    def list_for_plan(self, focus_plan_id: str) -> list[WeeklyCheck]:
        checks = [check for check in self.checks.all() if check.focus_plan_id == focus_plan_id]
        return sorted(checks, key=lambda check: (check.year, check.week_number))


class JsonFeedbackRepository:
    def __init__(self, storage_root: str | Path) -> None:
        self.requests = JsonCollection(storage_root, "feedback_requests", FeedbackRequest)
        self.responses = JsonCollection(storage_root, "feedback_responses", FeedbackResponse)

    def create_request(self, request: FeedbackRequest) -> FeedbackRequest:
        if self.get_request_by_token(request.token) is not None:
            raise StorageError("Feedback token collision")
        self.requests.put(request.id, request)
        return request

    def get_request_by_token(self, token: str) -> FeedbackRequest | None:
        for request in self.requests.all():
            if request.token == token:
                return request
        return None

    def insert_response(self, response: FeedbackResponse) -> str:
        self.responses.put(response.id, response)
        return response.id

    def list_responses(self, request_id: str) -> list[FeedbackResponse]:
        responses = [r for r in self.responses.all() if r.request_id == request_id]
        return sorted(responses, key=lambda r: r.created_at)
