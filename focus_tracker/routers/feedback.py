"""
Feedback Router

Tokenized 360 feedback links. The public endpoints never reveal who asked
beyond the manager name, and responses carry no respondent identity.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from focus_tracker.engines import JsonFeedbackRepository, StorageError
from focus_tracker.engines.feedback import (
    RATING_QUESTIONS,
    FeedbackError,
    FeedbackExpiredError,
    FeedbackNotFoundError,
    InvalidFeedbackError,
    create_request,
    resolve_request,
    submit_response,
)
from focus_tracker.models.schemas import (
    CreateFeedbackRequest,
    FeedbackRequest,
    FeedbackRequestView,
    SubmitFeedbackRequest,
    SubmitFeedbackResponse,
)

from .dependencies import get_feedback_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["feedback"])


_STATUS_FOR_ERROR = {
    FeedbackNotFoundError: status.HTTP_404_NOT_FOUND,
    FeedbackExpiredError: status.HTTP_410_GONE,
    InvalidFeedbackError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _http_error(exc: FeedbackError) -> HTTPException:
    code = _STATUS_FOR_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=str(exc))


@router.post("/requests", response_model=FeedbackRequest, status_code=status.HTTP_201_CREATED)
async def post_feedback_request(
    request: CreateFeedbackRequest,
    repository: JsonFeedbackRepository = Depends(get_feedback_repository),
) -> FeedbackRequest:
    try:
        return create_request(repository, request.user_id, request.manager_name)
    except FeedbackError as exc:
        raise _http_error(exc) from exc
    except StorageError as exc:
        logger.exception("Failed to create feedback request for %s", request.user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@router.get("/{token}", response_model=FeedbackRequestView)
async def get_feedback_request(
    token: str,
    repository: JsonFeedbackRepository = Depends(get_feedback_repository),
) -> FeedbackRequestView:
    try:
        request = resolve_request(repository, token)
    except FeedbackError as exc:
        raise _http_error(exc) from exc
    return FeedbackRequestView(
        manager_name=request.manager_name,
        expires_at=request.expires_at,
        questions=list(RATING_QUESTIONS),
    )


@router.post("/{token}/responses", response_model=SubmitFeedbackResponse, status_code=status.HTTP_201_CREATED)
async def post_feedback_response(
    token: str,
    payload: SubmitFeedbackRequest,
    repository: JsonFeedbackRepository = Depends(get_feedback_repository),
) -> SubmitFeedbackResponse:
    try:
        response = submit_response(repository, token, payload)
    except FeedbackError as exc:
        raise _http_error(exc) from exc
    except StorageError as exc:
        logger.exception("Failed to store feedback response")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return SubmitFeedbackResponse(response_id=response.id)
