from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from cwc_connect.core.dependencies import get_directory_service
from cwc_connect.services.directory_service import DirectoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chatbot", tags=["chatbot"])


class ChatbotRequest(BaseModel):
    message: str | None = Field(default=None, max_length=2000)


class ChatbotResponse(BaseModel):
    reply: str
    employeeCount: int
    databaseAvailable: bool


@router.post("", response_model=ChatbotResponse)
async def chatbot(
    request: ChatbotRequest | None = None,
    service: DirectoryService = Depends(get_directory_service),  # noqa: B008
):
    if request is None or not request.message or not request.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message is required",
        )

    logger.info("Received query: %s", request.message[:100])

    try:
        answer = await service.answer_query(request.message)
    except Exception as err:
        logger.exception("Chatbot query failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to answer query",
        ) from err

    return ChatbotResponse(
        reply=answer.reply,
        employeeCount=answer.match_count,
        databaseAvailable=answer.store_available,
    )
