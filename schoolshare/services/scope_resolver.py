"""
Scope resolution: turn a share scope into the concrete photo ids it denotes.
"""
from typing import List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.exceptions import InvalidShareRequest, ScopeNotFound
from schoolshare.models.share import ShareToken
from schoolshare.repositories import EventRepository, FolderRepository, PhotoRepository
from schoolshare.schemas.share import (
    EventScope,
    FolderScope,
    PhotoListScope,
    parse_scope_config,
)
from schoolshare.utils.logger import log_warning

Scope = Union[FolderScope, EventScope, PhotoListScope]


def scope_for_token(share: ShareToken) -> Scope:
    """
    Scope of a stored token.
    Rows without a readable ``scope_config`` fall back to the legacy
    ``share_type`` / ``folder_id`` / ``photo_ids`` columns.
    """
    if share.scope_config:
        try:
            return parse_scope_config(share.scope_config)
        except ValidationError:
            log_warning(
                "Unreadable scope_config, using legacy columns",
                event="share",
                share_id=share.id,
            )

    if share.share_type == "folder":
        if share.folder_id is None:
            raise ScopeNotFound("Shared folder no longer exists", field="folder_id")
        return FolderScope(anchor_id=share.folder_id)
    if share.share_type in ("photos", "selection"):
        if not share.photo_ids:
            raise ScopeNotFound("Shared photo list is empty", field="photo_ids")
        return PhotoListScope(photo_ids=share.photo_ids)
    return EventScope(anchor_id=share.event_id)


class ScopeResolver:
    """
    Resolves folder, event and photo-list scopes to sorted, deduplicated
    photo ids. Reads only; the result depends on stored state alone.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventRepository(db)
        self.folders = FolderRepository(db)
        self.photos = PhotoRepository(db)

    async def descendant_folder_ids(self, folder_id: int) -> List[int]:
        """Anchor folder followed by every folder below it."""
        return await self.folders.descendant_ids(folder_id)

    async def validate_scope(self, event_id: int, scope: Scope) -> None:
        """
        Check that the scope's anchor exists in the event.

        Raises:
            ScopeNotFound: anchor (or a listed photo) missing or in another event
        """
        if isinstance(scope, FolderScope):
            folder = await self.folders.get(scope.anchor_id)
            if folder is None or folder.event_id != event_id:
                raise ScopeNotFound(
                    f"Folder {scope.anchor_id} not found in event {event_id}",
                    field="folder_id",
                )
        elif isinstance(scope, EventScope):
            if scope.anchor_id != event_id or not await self.events.exists(event_id):
                raise ScopeNotFound(
                    f"Event {scope.anchor_id} not found",
                    field="event_id",
                )
        elif isinstance(scope, PhotoListScope):
            found = set(await self.photos.ids_in_event(event_id, scope.photo_ids))
            missing = [pid for pid in scope.photo_ids if pid not in found]
            if missing:
                raise ScopeNotFound(
                    f"Photos not found in event {event_id}: {missing}",
                    field="photo_ids",
                )
        else:
            raise InvalidShareRequest(f"Unsupported scope: {scope!r}")

    async def resolve(self, event_id: int, scope: Scope, validate: bool = True) -> List[int]:
        """
        Resolve a scope to photo ids.

        Args:
            event_id: Event the share belongs to
            scope: Folder, event or photo-list scope
            validate: Check the anchor first (skipped for live fallback on access)

        Returns:
            Sorted, deduplicated photo IDs
        """
        if validate:
            await self.validate_scope(event_id, scope)

        photo_ids: Optional[List[int]] = None
        folder_ids: Optional[List[int]] = None

        if isinstance(scope, FolderScope):
            if scope.include_descendants:
                folder_ids = await self.descendant_folder_ids(scope.anchor_id)
            else:
                folder_ids = [scope.anchor_id]
        elif isinstance(scope, EventScope):
            # every photo of the event, filed or unfiled
            pass
        elif isinstance(scope, PhotoListScope):
            photo_ids = scope.photo_ids
        else:
            raise InvalidShareRequest(f"Unsupported scope: {scope!r}")

        filters = scope.filters
        if filters.folder_ids is not None:
            if folder_ids is None:
                folder_ids = filters.folder_ids
            else:
                allowed = set(filters.folder_ids)
                folder_ids = [fid for fid in folder_ids if fid in allowed]

        return await self.photos.filter_ids(
            event_id,
            photo_ids=photo_ids,
            folder_ids=folder_ids,
            approved_only=filters.approved_only,
            subject_ids=filters.subject_ids,
        )
