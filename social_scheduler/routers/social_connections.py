import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from social_scheduler.dependencies.auth import get_current_user
from social_scheduler.models.social_connections import (
    AuthorizeResponse,
    LinkResult,
    OAuthCallbackRequest,
    Provider,
    SocialConnectionResponse,
)
from social_scheduler.services import oauth_service
from social_scheduler.services.oauth_service import OAuthError, OAuthService, get_oauth_service
from social_scheduler.utils.database import get_database

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/social-connections",
    tags=["social_connections"],
    dependencies=[Depends(get_current_user)]
)


@router.get("/", response_model=List[SocialConnectionResponse])
async def get_connections(
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    """Linked accounts of the current user (tokens are never returned)"""
    try:
        return oauth_service.list_connections(db, current_user["id"])
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch connections: {str(e)}"
        )


@router.get("/{provider}/authorize", response_model=AuthorizeResponse)
async def authorize(
    provider: Provider,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: OAuthService = Depends(get_oauth_service)
):
    """Start linking: returns the URL the browser should be sent to"""
    try:
        return service.create_authorization(current_user["id"], provider)
    except OAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to start {provider.value} authorization: {str(e)}"
        )


@router.post("/{provider}/callback", response_model=LinkResult)
async def oauth_callback(
    provider: Provider,
    callback: OAuthCallbackRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: OAuthService = Depends(get_oauth_service)
):
    """Finish linking with the code and state the provider redirected back with"""
    try:
        connections = await service.complete(current_user["id"], provider, callback.code, callback.state)
        return {"success": True, "provider": provider, "connections": connections}
    except OAuthError as e:
        logger.error(f"{provider.value} linking failed for user {current_user['id']}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to link {provider.value} account: {str(e)}"
        )


@router.delete("/{connection_id}")
async def delete_connection(
    connection_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_database)
):
    try:
        if not oauth_service.delete_connection(db, current_user["id"], connection_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")
        return {"success": True, "message": "Connection removed"}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to remove connection: {str(e)}"
        )
