"""
Vision Router

Endpoints for the AI vision interview.

Flow:
1. POST /vision/start -> Load the latest vision or greet a new user
2. POST /vision/reply -> User message -> interviewer reply, phase update, auto-save
3. POST /vision/save -> Persist and release the cached interview (called before leaving the flow)
4. GET /vision/{user_id} -> Current interview state
5. POST /vision-interview -> Raw chat-completion gateway ({userId, messages} -> {response})
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from focus_tracker.engines import (
    AIGatewayError,
    AIRateLimitError,
    ChatGateway,
    JsonVisionRepository,
    VisionInterview,
    VisionStructurer,
)
from focus_tracker.models.schemas import (
    GatewayRequest,
    VisionInterviewState,
    VisionMessage,
    VisionReplyRequest,
    VisionSaveResponse,
    VisionStartRequest,
)

from .dependencies import get_chat_gateway, get_vision_repository, get_vision_structurer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["vision"])


# ---------------------------------------------------------------------------
# Interview cache (in-memory, one orchestrator per user)
# ---------------------------------------------------------------------------

# Holds interviews between start and save. Idle entries are reloaded from
# storage on start and dropped on save.
_INTERVIEWS: dict[str, VisionInterview] = {}


def _get_interview(
    user_id: str,
    gateway: ChatGateway,
    repository: JsonVisionRepository,
    structurer: VisionStructurer | None,
    reload: bool = False,
) -> VisionInterview:
    interview = _INTERVIEWS.get(user_id)
    if interview is not None and reload and not interview.is_loading:
        interview = None
    if interview is None:
        interview = VisionInterview(
            user_id=user_id,
            gateway=gateway,
            repository=repository,
            structurer=structurer,
        )
        interview.load()
        _INTERVIEWS[user_id] = interview
    else:
        interview.gateway = gateway
        interview.repository = repository
        interview.structurer = structurer
    return interview


def _release_interview(user_id: str) -> None:
    interview = _INTERVIEWS.get(user_id)
    if interview is not None and not interview.is_loading:
        del _INTERVIEWS[user_id]


def _require_user_id(user_id: str) -> str:
    user_id = user_id.strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="userId is required")
    return user_id


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/vision/start", response_model=VisionInterviewState)
async def start_vision(
    request: VisionStartRequest,
    gateway: ChatGateway = Depends(get_chat_gateway),
    repository: JsonVisionRepository = Depends(get_vision_repository),
    structurer: VisionStructurer | None = Depends(get_vision_structurer),
) -> VisionInterviewState:
    """Restore the user's latest vision, or open with the personalization greeting."""
    user_id = _require_user_id(request.user_id)
    interview = _get_interview(user_id, gateway, repository, structurer, reload=True)
    return interview.snapshot()


@router.post("/vision/reply", response_model=VisionInterviewState)
async def vision_reply(
    request: VisionReplyRequest,
    gateway: ChatGateway = Depends(get_chat_gateway),
    repository: JsonVisionRepository = Depends(get_vision_repository),
    structurer: VisionStructurer | None = Depends(get_vision_structurer),
) -> VisionInterviewState:
    """
    Send one user message.

    Gateway failures come back as an assistant message inside ``messages``,
    never as an HTTP error. A message sent while another is still in flight
    is ignored; the returned state has ``isLoading`` set.
    """
    user_id = _require_user_id(request.user_id)
    interview = _get_interview(user_id, gateway, repository, structurer)
    if interview.is_loading:
        return interview.snapshot()
    await interview.send_message(request.message)
    return interview.snapshot()


@router.post("/vision/save", response_model=VisionSaveResponse)
async def save_vision(
    request: VisionStartRequest,
    gateway: ChatGateway = Depends(get_chat_gateway),
    repository: JsonVisionRepository = Depends(get_vision_repository),
    structurer: VisionStructurer | None = Depends(get_vision_structurer),
) -> VisionSaveResponse:
    user_id = _require_user_id(request.user_id)
    interview = _get_interview(user_id, gateway, repository, structurer)
    saved = await interview.save_vision()
    _release_interview(user_id)
    return VisionSaveResponse(vision_id=interview.vision_id, saved=saved)


@router.get("/vision/{user_id}", response_model=VisionInterviewState)
async def vision_state(
    user_id: str,
    gateway: ChatGateway = Depends(get_chat_gateway),
    repository: JsonVisionRepository = Depends(get_vision_repository),
    structurer: VisionStructurer | None = Depends(get_vision_structurer),
) -> VisionInterviewState:
    interview = _get_interview(_require_user_id(user_id), gateway, repository, structurer)
    return interview.snapshot()


@router.post("/vision-interview")
async def vision_interview_gateway(
    request: GatewayRequest,
    gateway: ChatGateway = Depends(get_chat_gateway),
) -> JSONResponse:
    """
    Chat-completion gateway.

    Body ``{userId, messages}``; ``messages[0]`` may be a system prompt.
    Returns ``{response}``; errors return ``{error}`` with 400, 429 or 500.
    """
    if not request.user_id or not request.messages:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing userId or messages"},
        )

    messages = list(request.messages)
    system_prompt = None
    if messages[0].role == "system":
        system_prompt = messages.pop(0).content
    if any(message.role == "system" for message in messages):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Only the first message may be a system prompt"},
        )

    history = [VisionMessage(role=m.role, content=m.content) for m in messages]  # type: ignore[arg-type]
    try:
        reply = await asyncio.to_thread(gateway.complete, history, system_prompt)
    except AIRateLimitError as exc:
        logger.warning("Gateway rate limited for %s: %s", request.user_id, exc)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": "Rate limit exceeded. Please wait a moment."},
        )
    except AIGatewayError as exc:
        logger.error("Gateway error for %s: %s", request.user_id, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
    except Exception:
        logger.exception("Unexpected gateway failure for %s", request.user_id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    return JSONResponse(content={"response": reply or ""})
