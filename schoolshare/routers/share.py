"""
Public share router: guardian-facing access to shared photos.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.database import get_db
from schoolshare.middlewares.rate_limit_middleware import SHARE_ACCESS_LIMIT, get_rate_limit_decorator
from schoolshare.schemas.common import ErrorResponse, SuccessResponse
from schoolshare.schemas.photo import PhotoRecord
from schoolshare.schemas.share import ShareAccess, ShareAccessRequest
from schoolshare.services.access import AccessValidator
from schoolshare.utils.client_ip import get_client_ip

router = APIRouter(prefix="/share", tags=["Shared Photos"])

share_rate_limit = get_rate_limit_decorator(SHARE_ACCESS_LIMIT)

ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Password required or incorrect"},
    404: {"model": ErrorResponse, "description": "Unknown token"},
    410: {"model": ErrorResponse, "description": "Share revoked or expired"},
    429: {"model": ErrorResponse, "description": "View limit reached"},
}


@router.get(
    "/{token}",
    response_model=SuccessResponse[ShareAccess],
    responses=ERROR_RESPONSES,
    summary="Open a share link",
)
@share_rate_limit
async def get_shared_photos(
    token: str,
    request: Request,
    x_share_password: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> SuccessResponse[ShareAccess]:
    """
    Open a share link. Every successful call counts as one view.

    - **token**: The share token from the share URL
    - **X-Share-Password**: Required for password-protected shares
    """
    access = await AccessValidator(db).validate_access(
        token,
        password=x_share_password,
        client_ip=get_client_ip(request),
    )
    return SuccessResponse[ShareAccess](data=access)


@router.post(
    "/{token}/access",
    response_model=SuccessResponse[ShareAccess],
    responses=ERROR_RESPONSES,
    summary="Open a share link with a password",
)
@share_rate_limit
async def access_shared_photos(
    token: str,
    body: ShareAccessRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SuccessResponse[ShareAccess]:
    """Same as ``GET /share/{token}`` with the password in the request body."""
    access = await AccessValidator(db).validate_access(
        token,
        password=body.password,
        client_ip=get_client_ip(request),
    )
    return SuccessResponse[ShareAccess](data=access)


@router.get(
    "/{token}/photos/{photo_id}",
    response_model=SuccessResponse[PhotoRecord],
    responses=ERROR_RESPONSES,
    summary="Get one shared photo",
)
@share_rate_limit
async def get_shared_photo(
    token: str,
    photo_id: int,
    request: Request,
    x_share_password: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> SuccessResponse[PhotoRecord]:
    """Return a photo of the share. Does not count a view."""
    photo = await AccessValidator(db).check_photo_access(token, photo_id, password=x_share_password)
    return SuccessResponse[PhotoRecord](data=photo)
