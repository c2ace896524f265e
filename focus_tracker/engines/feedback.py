"""
360 feedback via tokenized public links.

A request carries a random token and an expiry; anyone holding the token can
submit one anonymous response until it expires.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from focus_tracker.config.runtime import get_runtime_config
from focus_tracker.models.schemas import FeedbackRequest, FeedbackResponse, SubmitFeedbackRequest

from .repositories import FeedbackRepository

_feedback_runtime = get_runtime_config().feedback

RATING_QUESTIONS: tuple[str, ...] = tuple(_feedback_runtime.questions)


class FeedbackError(ValueError):
    """Base class for feedback link failures."""


class FeedbackNotFoundError(FeedbackError):
    pass


class FeedbackExpiredError(FeedbackError):
    pass


class InvalidFeedbackError(FeedbackError):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_request(
    repository: FeedbackRepository,
    user_id: str,
    manager_name: str,
    now: datetime | None = None,
) -> FeedbackRequest:
    if not manager_name.strip():
        raise InvalidFeedbackError("manager_name is required")
    issued = now or _now()
    request = FeedbackRequest(
        user_id=user_id,
        manager_name=manager_name.strip(),
        expires_at=issued + timedelta(days=_feedback_runtime.expiry_days),
        created_at=issued,
    )
    return repository.create_request(request)


def resolve_request(repository: FeedbackRepository, token: str, now: datetime | None = None) -> FeedbackRequest:
    request = repository.get_request_by_token(token) if token else None
    if request is None:
        raise FeedbackNotFoundError("Feedback link is invalid")
    if request.expires_at < (now or _now()):
        raise FeedbackExpiredError("Feedback link has expired")
    return request


def validate_ratings(ratings: dict[str, int | None]) -> dict[str, int | None]:
    unknown = sorted(set(ratings) - set(RATING_QUESTIONS))
    if unknown:
        raise InvalidFeedbackError(f"Unknown rating questions: {', '.join(unknown)}")
    for question, value in ratings.items():
        if value is not None and not 1 <= value <= 5:
            raise InvalidFeedbackError(f"Rating for '{question}' must be between 1 and 5")
    return {question: ratings.get(question) for question in RATING_QUESTIONS}


def submit_response(
    repository: FeedbackRepository,
    token: str,
    payload: SubmitFeedbackRequest,
    now: datetime | None = None,
) -> FeedbackResponse:
    request = resolve_request(repository, token, now)
    response = FeedbackResponse(
        request_id=request.id,
        ratings=validate_ratings(payload.ratings),
        open_feedback=payload.open_feedback.strip(),
        strengths=payload.strengths.strip(),
        improvements=payload.improvements.strip(),
    )
    repository.insert_response(response)
    return response
