"""
AI Chat API Router

    POST /ai/chat — Reply to a message given the recent conversation.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from chimera_sync.api.deps import get_ai_client
from chimera_sync.core.exceptions import ValidationError
from chimera_sync.schemas.ai import ChatRequest, ChatResponse
from chimera_sync.services.ai import AiProviderClient, ChatTurn

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Chat with the assistant",
    responses={
        400: {"description": "Empty message"},
        503: {"description": "AI service unavailable or not configured"},
    },
)
async def chat(
    request: ChatRequest | None = None,
    client: AiProviderClient = Depends(get_ai_client),
) -> ChatResponse:
    request = request or ChatRequest()
    message = request.message.strip()
    if not message:
        raise ValidationError("Message is required")

    logger.info("AI chat request: %d chars, %d history turns", len(message), len(request.history))
    history = [ChatTurn(role=item.role, text=item.text) for item in request.history]
    reply = await client.chat(message, history)
    return ChatResponse(reply=reply)
