"""Health check endpoint"""

from fastapi import APIRouter, Depends

from urlqa import __version__
from urlqa.server.api.dependencies import get_conversation_controller
from urlqa.server.schemas import HealthResponse
from urlqa.services.conversation import ConversationController

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    controller: ConversationController = Depends(get_conversation_controller),
):
    """Health check endpoint"""
    return HealthResponse(
        status="ok",
        version=__version__,
        api_key_configured=controller.gemini_client.is_configured,
        online=controller.is_online,
    )
