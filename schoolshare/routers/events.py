"""
Admin router for events, folders, photos and subjects.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.database import get_db
from schoolshare.dependencies.auth import get_current_active_admin
from schoolshare.schemas.event import (
    EventCreate,
    EventResponse,
    FolderCreate,
    FolderDescendantsResponse,
    FolderResponse,
    SubjectCreate,
    SubjectResponse,
)
from schoolshare.schemas.photo import PhotoCreate, PhotoResponse
from schoolshare.services.events import EventService

router = APIRouter(
    prefix="/admin",
    tags=["Events"],
    dependencies=[Depends(get_current_active_admin)],
)


# ============== Events ==============

@router.post(
    "/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
)
async def create_event(
    data: EventCreate,
    db: AsyncSession = Depends(get_db),
) -> EventResponse:
    return await EventService(db).create_event(data)


@router.get(
    "/events",
    response_model=List[EventResponse],
    summary="List events",
)
async def list_events(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> List[EventResponse]:
    """Most recent events first."""
    return await EventService(db).list_events(skip=skip, limit=limit)


@router.get(
    "/events/{event_id}",
    response_model=EventResponse,
    summary="Get an event with photo and folder counts",
)
async def get_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
) -> EventResponse:
    return await EventService(db).get_event(event_id)


# ============== Folders ==============

@router.post(
    "/events/{event_id}/folders",
    response_model=FolderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a folder",
)
async def create_folder(
    event_id: int,
    data: FolderCreate,
    db: AsyncSession = Depends(get_db),
) -> FolderResponse:
    """
    Create a folder in an event.

    - **parent_id**: Optional parent folder; must belong to the same event
    """
    folder = await EventService(db).create_folder(event_id, data)
    return FolderResponse.model_validate(folder)


@router.get(
    "/events/{event_id}/folders",
    response_model=List[FolderResponse],
    summary="List the folders of an event",
)
async def list_folders(
    event_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[FolderResponse]:
    folders = await EventService(db).list_folders(event_id)
    return [FolderResponse.model_validate(folder) for folder in folders]


@router.get(
    "/folders/{folder_id}/descendants",
    response_model=FolderDescendantsResponse,
    summary="Get a folder subtree",
)
async def get_folder_descendants(
    folder_id: int,
    db: AsyncSession = Depends(get_db),
) -> FolderDescendantsResponse:
    """Ids of the folder and every folder below it, the folder itself first."""
    return await EventService(db).folder_descendants(folder_id)


# ============== Photos ==============

@router.post(
    "/events/{event_id}/photos",
    response_model=PhotoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a photo",
)
async def register_photo(
    event_id: int,
    data: PhotoCreate,
    db: AsyncSession = Depends(get_db),
) -> PhotoResponse:
    """
    Register an already stored photo with an event.

    The file itself lives in object storage; only its metadata is recorded.
    """
    photo = await EventService(db).register_photo(event_id, data)
    return PhotoResponse.model_validate(photo)


@router.get(
    "/events/{event_id}/photos",
    response_model=List[PhotoResponse],
    summary="List the photos of an event",
)
async def list_photos(
    event_id: int,
    folder_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> List[PhotoResponse]:
    photos = await EventService(db).list_photos(event_id, folder_id=folder_id, skip=skip, limit=limit)
    return [PhotoResponse.model_validate(photo) for photo in photos]


# ============== Subjects ==============

@router.post(
    "/events/{event_id}/subjects",
    response_model=SubjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a subject",
)
async def create_subject(
    event_id: int,
    data: SubjectCreate,
    db: AsyncSession = Depends(get_db),
) -> SubjectResponse:
    subject = await EventService(db).create_subject(event_id, data)
    return SubjectResponse.model_validate(subject)


@router.get(
    "/events/{event_id}/subjects",
    response_model=List[SubjectResponse],
    summary="List the subjects of an event",
)
async def list_subjects(
    event_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[SubjectResponse]:
    subjects = await EventService(db).list_subjects(event_id)
    return [SubjectResponse.model_validate(subject) for subject in subjects]
