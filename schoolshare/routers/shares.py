"""
Admin router for creating and managing share links.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.database import get_db
from schoolshare.dependencies.auth import get_current_active_admin
from schoolshare.schemas.common import ErrorResponse
from schoolshare.schemas.share import (
    AudiencesAdd,
    AudiencesAdded,
    ContentsRefreshed,
    ShareAudienceResponse,
    ShareCreate,
    ShareCreated,
    ShareTokenResponse,
)
from schoolshare.services.share import ShareService

router = APIRouter(
    prefix="/admin",
    tags=["Shares"],
    dependencies=[Depends(get_current_active_admin)],
)


@router.post(
    "/shares",
    response_model=ShareCreated,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or scope anchor not found"},
        503: {"model": ErrorResponse, "description": "Share contents could not be stored"},
    },
    summary="Create a share link",
)
async def create_share(
    data: ShareCreate,
    db: AsyncSession = Depends(get_db),
) -> ShareCreated:
    """
    Create a share link over a folder, a whole event or a list of photos.

    The scope is given either as ``scope_config`` or with the legacy
    ``share_type`` / ``folder_id`` / ``photo_ids`` fields. The photos in
    scope are resolved and stored with the share at creation time.
    """
    return await ShareService(db).create_share(data)


@router.get(
    "/events/{event_id}/shares",
    response_model=List[ShareTokenResponse],
    summary="List the shares of an event",
)
async def list_event_shares(
    event_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[ShareTokenResponse]:
    return await ShareService(db).list_event_shares(event_id)


@router.get(
    "/shares/{share_id}",
    response_model=ShareTokenResponse,
    summary="Get a share",
)
async def get_share(
    share_id: int,
    db: AsyncSession = Depends(get_db),
) -> ShareTokenResponse:
    return await ShareService(db).get_share(share_id)


@router.post(
    "/shares/{share_id}/revoke",
    response_model=ShareTokenResponse,
    summary="Revoke a share",
)
async def revoke_share(
    share_id: int,
    db: AsyncSession = Depends(get_db),
) -> ShareTokenResponse:
    """Deactivate a share permanently. Repeated calls are no-ops."""
    return await ShareService(db).revoke(share_id)


@router.get(
    "/shares/{share_id}/audiences",
    response_model=List[ShareAudienceResponse],
    summary="List share audiences",
)
async def list_audiences(
    share_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[ShareAudienceResponse]:
    return await ShareService(db).list_audiences(share_id)


@router.post(
    "/shares/{share_id}/audiences",
    response_model=AudiencesAdded,
    status_code=status.HTTP_201_CREATED,
    summary="Add share audiences",
)
async def add_audiences(
    share_id: int,
    data: AudiencesAdd,
    db: AsyncSession = Depends(get_db),
) -> AudiencesAdded:
    """Register recipients; ones already registered are skipped."""
    return await ShareService(db).add_audiences(share_id, data.audiences)


@router.post(
    "/shares/{share_id}/refresh",
    response_model=ContentsRefreshed,
    summary="Rebuild share contents",
)
async def refresh_share_contents(
    share_id: int,
    db: AsyncSession = Depends(get_db),
) -> ContentsRefreshed:
    """Re-resolve the share scope against the current photos and store the result."""
    return await ShareService(db).refresh_contents(share_id)
