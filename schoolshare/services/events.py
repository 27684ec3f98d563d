"""
Event, folder, photo record and subject management for admins.
"""
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.exceptions import EntityNotFound, OwnershipError
from schoolshare.models.event import Event, Folder
from schoolshare.models.photo import Photo, Subject
from schoolshare.repositories import (
    EventRepository,
    FolderRepository,
    PhotoRepository,
    SubjectRepository,
)
from schoolshare.schemas.event import (
    EventCreate,
    EventResponse,
    FolderCreate,
    FolderDescendantsResponse,
    SubjectCreate,
)
from schoolshare.schemas.photo import PhotoCreate
from schoolshare.utils.logger import log_info


class EventService:
    """
    Thin CRUD over events and their children.
    Keeps the hierarchy consistent: folders and photos only ever point at
    folders of their own event.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventRepository(db)
        self.folders = FolderRepository(db)
        self.photos = PhotoRepository(db)
        self.subjects = SubjectRepository(db)

    # ============== Events ==============

    async def create_event(self, data: EventCreate) -> EventResponse:
        event = await self.events.create(Event(
            name=data.name,
            school_name=data.school_name,
            event_date=data.event_date,
        ))
        log_info("Event created", event="event", event_id=event.id)
        return EventResponse.model_validate(event)

    async def get_event(self, event_id: int) -> EventResponse:
        event = await self._require_event(event_id)
        response = EventResponse.model_validate(event)
        response.photo_count = await self.events.count_photos(event_id)
        response.folder_count = await self.events.count_folders(event_id)
        return response

    async def list_events(self, skip: int = 0, limit: int = 50) -> List[EventResponse]:
        events = await self.events.list_recent(skip=skip, limit=limit)
        return [EventResponse.model_validate(event) for event in events]

    async def _require_event(self, event_id: int) -> Event:
        event = await self.events.get(event_id)
        if event is None:
            raise EntityNotFound(f"Event {event_id} not found")
        return event

    async def _require_folder_in_event(self, event_id: int, folder_id: int, field: str) -> Folder:
        folder = await self.folders.get(folder_id)
        if folder is None:
            raise EntityNotFound(f"Folder {folder_id} not found")
        if folder.event_id != event_id:
            raise OwnershipError(f"{field} {folder_id} belongs to another event")
        return folder

    # ============== Folders ==============

    async def create_folder(self, event_id: int, data: FolderCreate) -> Folder:
        """
        Create a folder under the event root or under ``parent_id``.

        Raises:
            EntityNotFound: event or parent missing
            OwnershipError: parent belongs to another event
        """
        await self._require_event(event_id)
        if data.parent_id is not None:
            await self._require_folder_in_event(event_id, data.parent_id, "parent_id")
        folder = await self.folders.create(Folder(
            event_id=event_id,
            parent_id=data.parent_id,
            name=data.name,
        ))
        log_info("Folder created", event="event", event_id=event_id, folder_id=folder.id)
        return folder

    async def list_folders(self, event_id: int) -> List[Folder]:
        await self._require_event(event_id)
        return list(await self.folders.list_by_event(event_id))

    async def folder_descendants(self, folder_id: int) -> FolderDescendantsResponse:
        ids = await self.folders.descendant_ids(folder_id)
        if not ids:
            raise EntityNotFound(f"Folder {folder_id} not found")
        return FolderDescendantsResponse(folder_id=folder_id, descendant_ids=ids[1:])

    # ============== Photos ==============

    async def register_photo(self, event_id: int, data: PhotoCreate) -> Photo:
        """Record photo metadata; the file itself lives in object storage."""
        await self._require_event(event_id)
        if data.folder_id is not None:
            await self._require_folder_in_event(event_id, data.folder_id, "folder_id")
        photo = await self.photos.create(Photo(
            event_id=event_id,
            folder_id=data.folder_id,
            filename=data.filename,
            storage_path=data.storage_path,
            file_size=data.file_size,
            width=data.width,
            height=data.height,
            approved=data.approved,
            photo_metadata=dict(data.metadata),
        ))
        log_info("Photo registered", event="event", event_id=event_id, photo_id=photo.id)
        return photo

    async def list_photos(
        self,
        event_id: int,
        folder_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Photo]:
        await self._require_event(event_id)
        return list(await self.photos.list_by_event(event_id, folder_id=folder_id, skip=skip, limit=limit))

    # ============== Subjects ==============

    async def create_subject(self, event_id: int, data: SubjectCreate) -> Subject:
        await self._require_event(event_id)
        subject = await self.subjects.create(Subject(
            event_id=event_id,
            name=data.name,
            subject_type=data.subject_type,
        ))
        log_info("Subject created", event="event", event_id=event_id, subject_id=subject.id)
        return subject

    async def list_subjects(self, event_id: int) -> List[Subject]:
        await self._require_event(event_id)
        return list(await self.subjects.list_by_event(event_id))
