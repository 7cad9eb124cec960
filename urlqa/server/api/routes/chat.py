"""Chat API routes"""

from fastapi import APIRouter, Depends, HTTPException

from urlqa.models import ChatMessage
from urlqa.server.api.dependencies import get_conversation_controller
from urlqa.server.schemas import (
    SendMessageRequest,
    SuggestionsResponse,
    SummarizeRequest,
    TranscriptResponse,
)
from urlqa.services.conversation import ConversationController

router = APIRouter()


@router.get("/messages", response_model=TranscriptResponse)
async def list_messages(
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Transcript of the active group"""
    return TranscriptResponse(
        messages=controller.messages,
        is_loading=controller.is_loading,
        is_fetching_suggestions=controller.is_fetching_suggestions,
    )


@router.post("/messages", response_model=ChatMessage)
async def send_message(
    request: SendMessageRequest,
    controller: ConversationController = Depends(get_conversation_controller),
):
    """
    Ask a question about the active group.

    Returns the model answer, or a system error message when the request
    failed or could not be sent (offline, no API key).
    """
    busy = controller.is_loading or controller.is_fetching_suggestions
    message = await controller.submit(request.query)
    if message is None:
        if busy:
            raise HTTPException(status_code=409, detail="A request is already in progress.")
        # Placeholder went away with the old transcript
        raise HTTPException(
            status_code=409,
            detail="The active group changed before the answer arrived.",
        )
    return message


@router.post("/messages/{message_id}/summary", response_model=ChatMessage)
async def summarize_message(
    message_id: str,
    request: SummarizeRequest,
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Summarize URLs retrieved for a message"""
    message = controller.get_message(message_id)
    urls = request.urls if request.urls is not None else message.successful_urls()
    updated = await controller.summarize(message_id, urls)
    return updated or controller.get_message(message_id)


@router.get("/suggestions", response_model=SuggestionsResponse)
async def list_suggestions(
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Starter questions for the active group"""
    return SuggestionsResponse(
        suggestions=controller.suggestions,
        is_fetching=controller.is_fetching_suggestions,
    )
