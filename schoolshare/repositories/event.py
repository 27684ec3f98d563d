"""
Event and folder repositories.
"""
from typing import List, Optional, Sequence

from sqlalchemy import func, select

from schoolshare.models.event import Event, Folder
from schoolshare.models.photo import Photo
from schoolshare.repositories.base import BaseRepository


class EventRepository(BaseRepository):
    async def get(self, event_id: int) -> Optional[Event]:
        result = await self._execute(select(Event).where(Event.id == event_id))
        return result.scalar_one_or_none()

    async def exists(self, event_id: int) -> bool:
        result = await self._execute(select(Event.id).where(Event.id == event_id))
        return result.scalar_one_or_none() is not None

    async def list_recent(self, skip: int = 0, limit: int = 50) -> Sequence[Event]:
        result = await self._execute(
            select(Event).order_by(Event.created_at.desc(), Event.id.desc()).offset(skip).limit(limit)
        )
        return result.scalars().all()

    async def create(self, event: Event) -> Event:
        return await self._add(event)

    async def count_photos(self, event_id: int) -> int:
        result = await self._execute(
            select(func.count(Photo.id)).where(Photo.event_id == event_id)
        )
        return result.scalar_one()

    async def count_folders(self, event_id: int) -> int:
        result = await self._execute(
            select(func.count(Folder.id)).where(Folder.event_id == event_id)
        )
        return result.scalar_one()


class FolderRepository(BaseRepository):
    async def get(self, folder_id: int) -> Optional[Folder]:
        result = await self._execute(select(Folder).where(Folder.id == folder_id))
        return result.scalar_one_or_none()

    async def list_by_event(self, event_id: int) -> Sequence[Folder]:
        result = await self._execute(
            select(Folder).where(Folder.event_id == event_id).order_by(Folder.id)
        )
        return result.scalars().all()

    async def ids_in_event(self, event_id: int, folder_ids: List[int]) -> List[int]:
        """Subset of ``folder_ids`` that belong to the event."""
        if not folder_ids:
            return []
        result = await self._execute(
            select(Folder.id).where(Folder.event_id == event_id, Folder.id.in_(folder_ids))
        )
        return list(result.scalars().all())

    async def create(self, folder: Folder) -> Folder:
        return await self._add(folder)

    async def descendant_ids(self, folder_id: int) -> List[int]:
        """
        Anchor folder plus every folder reachable through ``parent_id``,
        walked with a recursive CTE. Anchor first, then ascending ids.

        Args:
            folder_id: Anchor folder ID

        Returns:
            Folder IDs of the subtree (empty if the anchor does not exist)
        """
        tree = (
            select(Folder.id)
            .where(Folder.id == folder_id)
            .cte(name="folder_tree", recursive=True)
        )
        tree = tree.union(
            select(Folder.id).where(Folder.parent_id == tree.c.id)
        )
        result = await self._execute(select(tree.c.id))
        ids = set(result.scalars().all())
        if folder_id not in ids:
            return []
        ids.discard(folder_id)
        return [folder_id] + sorted(ids)
