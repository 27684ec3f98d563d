"""
Admin router for tagging photos with subjects.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.database import get_db
from schoolshare.dependencies.auth import get_current_active_admin
from schoolshare.schemas.tagging import (
    BatchAssign,
    BatchRemove,
    BulkAssign,
    TagAssign,
    TaggingOverview,
    TaggingResult,
    TagRemove,
)
from schoolshare.services.tagging import TaggingService

router = APIRouter(
    prefix="/admin/tagging",
    tags=["Tagging"],
    dependencies=[Depends(get_current_active_admin)],
)


@router.post("", response_model=TaggingResult, summary="Tag photos with a subject")
async def assign_tags(
    data: TagAssign,
    db: AsyncSession = Depends(get_db),
) -> TaggingResult:
    return await TaggingService(db).assign(data)


@router.delete("", response_model=TaggingResult, summary="Remove tags from photos")
async def remove_tags(
    data: TagRemove,
    db: AsyncSession = Depends(get_db),
) -> TaggingResult:
    """Without ``subject_id`` every tag of the given photos is removed."""
    return await TaggingService(db).remove(data)


@router.get("", response_model=TaggingOverview, summary="Tagging progress of an event")
async def get_tagging_overview(
    event_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
) -> TaggingOverview:
    return await TaggingService(db).overview(event_id)


@router.post("/batch", response_model=TaggingResult, summary="Apply many tag assignments")
async def batch_assign_tags(
    data: BatchAssign,
    db: AsyncSession = Depends(get_db),
) -> TaggingResult:
    return await TaggingService(db).batch_assign(data)


@router.delete("/batch", response_model=TaggingResult, summary="Remove all tags from photos")
async def batch_remove_tags(
    data: BatchRemove,
    db: AsyncSession = Depends(get_db),
) -> TaggingResult:
    return await TaggingService(db).batch_remove(data)


@router.put("/batch", response_model=TaggingResult, summary="Tag photos matching criteria")
async def bulk_assign_tags(
    data: BulkAssign,
    db: AsyncSession = Depends(get_db),
) -> TaggingResult:
    """
    Tag every photo matching ``filter_criteria`` with one subject.

    - **unassigned_only**: Only photos without any tag
    - **date_range**: Upload time window
    - **filename_pattern**: Substring of the file name
    - **folder_id**: Restrict to one folder
    - **limit**: Maximum number of photos
    """
    return await TaggingService(db).bulk_assign(data)
