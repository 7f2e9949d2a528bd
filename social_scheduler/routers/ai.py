import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from social_scheduler.dependencies.auth import get_current_user
from social_scheduler.models.ai import CaptionRequest, CaptionResponse, PlatformInfo
from social_scheduler.services.ai_service import AIServiceError, CaptionService, get_caption_service, list_platforms

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/ai",
    tags=["ai"],
    dependencies=[Depends(get_current_user)]
)


@router.post("/caption", response_model=CaptionResponse)
async def generate_caption(
    request: CaptionRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    caption_service: CaptionService = Depends(get_caption_service)
):
    """
    Generate a caption for a post

    The caption is written for the chosen platform and cut to its
    character limit (or max_length when that is smaller).
    """
    try:
        logger.info(f"User {current_user.get('id')} requesting a caption")
        return await caption_service.generate_caption(request)
    except AIServiceError as e:
        logger.error(f"Caption generation failed: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error in generate_caption endpoint: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate caption: {str(e)}"
        )


@router.get("/platforms", response_model=List[PlatformInfo])
async def get_supported_platforms():
    """Supported platforms and their caption limits"""
    return list_platforms()
