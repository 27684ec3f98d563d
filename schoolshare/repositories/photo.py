"""
Photo and subject repositories.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, select

from schoolshare.models.photo import Photo, PhotoSubject, Subject
from schoolshare.repositories.base import BaseRepository


class PhotoRepository(BaseRepository):
    async def get(self, photo_id: int) -> Optional[Photo]:
        result = await self._execute(select(Photo).where(Photo.id == photo_id))
        return result.scalar_one_or_none()

    async def create(self, photo: Photo) -> Photo:
        return await self._add(photo)

    async def list_by_event(
        self,
        event_id: int,
        folder_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Sequence[Photo]:
        query = select(Photo).where(Photo.event_id == event_id)
        if folder_id is not None:
            query = query.where(Photo.folder_id == folder_id)
        result = await self._execute(query.order_by(Photo.id).offset(skip).limit(limit))
        return result.scalars().all()

    async def ids_in_event(self, event_id: int, photo_ids: Iterable[int]) -> List[int]:
        """Subset of ``photo_ids`` that exist and belong to the event."""
        photo_ids = list(photo_ids)
        if not photo_ids:
            return []
        result = await self._execute(
            select(Photo.id).where(Photo.event_id == event_id, Photo.id.in_(photo_ids))
        )
        return list(result.scalars().all())

    async def filter_ids(
        self,
        event_id: int,
        *,
        photo_ids: Optional[List[int]] = None,
        folder_ids: Optional[List[int]] = None,
        approved_only: bool = False,
        subject_ids: Optional[List[int]] = None,
    ) -> List[int]:
        """
        Photo IDs of the event matching every given predicate, ascending.

        ``None`` means "no restriction"; an empty list matches nothing.
        """
        if photo_ids is not None and not photo_ids:
            return []
        if folder_ids is not None and not folder_ids:
            return []
        if subject_ids is not None and not subject_ids:
            return []

        query = select(Photo.id).where(Photo.event_id == event_id)
        if photo_ids is not None:
            query = query.where(Photo.id.in_(photo_ids))
        if folder_ids is not None:
            query = query.where(Photo.folder_id.in_(folder_ids))
        if approved_only:
            query = query.where(Photo.approved.is_(True))
        if subject_ids is not None:
            tagged = select(PhotoSubject.photo_id).where(PhotoSubject.subject_id.in_(subject_ids))
            query = query.where(Photo.id.in_(tagged))

        result = await self._execute(query.order_by(Photo.id))
        return list(result.scalars().all())

    async def get_many(self, photo_ids: List[int], approved_only: bool = False) -> List[Photo]:
        """Photos by id, in the order of ``photo_ids``; missing ids are skipped."""
        if not photo_ids:
            return []
        query = select(Photo).where(Photo.id.in_(photo_ids))
        if approved_only:
            query = query.where(Photo.approved.is_(True))
        result = await self._execute(query)
        by_id = {photo.id: photo for photo in result.scalars().all()}
        return [by_id[pid] for pid in photo_ids if pid in by_id]

    async def find_for_bulk_tagging(
        self,
        event_id: int,
        *,
        unassigned_only: bool = False,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        filename_pattern: Optional[str] = None,
        folder_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[int]:
        query = select(Photo.id).where(Photo.event_id == event_id)
        if unassigned_only:
            tagged = select(PhotoSubject.photo_id)
            query = query.where(Photo.id.not_in(tagged))
        if created_from is not None:
            query = query.where(Photo.created_at >= created_from)
        if created_to is not None:
            query = query.where(Photo.created_at <= created_to)
        if filename_pattern:
            escaped = (
                filename_pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            )
            query = query.where(Photo.filename.ilike(f"%{escaped}%", escape="\\"))
        if folder_id is not None:
            query = query.where(Photo.folder_id == folder_id)
        result = await self._execute(query.order_by(Photo.id).limit(limit))
        return list(result.scalars().all())

    async def count_in_event(self, event_id: int) -> int:
        result = await self._execute(
            select(func.count(Photo.id)).where(Photo.event_id == event_id)
        )
        return result.scalar_one()

    async def untagged_ids(self, event_id: int) -> List[int]:
        tagged = select(PhotoSubject.photo_id)
        result = await self._execute(
            select(Photo.id)
            .where(Photo.event_id == event_id, Photo.id.not_in(tagged))
            .order_by(Photo.id)
        )
        return list(result.scalars().all())


class SubjectRepository(BaseRepository):
    async def get(self, subject_id: int) -> Optional[Subject]:
        result = await self._execute(select(Subject).where(Subject.id == subject_id))
        return result.scalar_one_or_none()

    async def create(self, subject: Subject) -> Subject:
        return await self._add(subject)

    async def list_by_event(self, event_id: int) -> Sequence[Subject]:
        result = await self._execute(
            select(Subject).where(Subject.event_id == event_id).order_by(Subject.name, Subject.id)
        )
        return result.scalars().all()

    async def ids_in_event(self, event_id: int, subject_ids: Iterable[int]) -> List[int]:
        subject_ids = list(subject_ids)
        if not subject_ids:
            return []
        result = await self._execute(
            select(Subject.id).where(Subject.event_id == event_id, Subject.id.in_(subject_ids))
        )
        return list(result.scalars().all())

    # ---- photo_subjects ----

    async def existing_pairs(self, photo_ids: List[int], subject_ids: List[int]) -> set:
        if not photo_ids or not subject_ids:
            return set()
        result = await self._execute(
            select(PhotoSubject.photo_id, PhotoSubject.subject_id).where(
                PhotoSubject.photo_id.in_(photo_ids),
                PhotoSubject.subject_id.in_(subject_ids),
            )
        )
        return {(row.photo_id, row.subject_id) for row in result.all()}

    async def add_pairs(self, pairs: List[tuple]) -> int:
        for photo_id, subject_id in pairs:
            self.session.add(PhotoSubject(photo_id=photo_id, subject_id=subject_id))
        await self._flush()
        return len(pairs)

    async def remove_pairs(self, photo_ids: List[int], subject_id: Optional[int] = None) -> int:
        if not photo_ids:
            return 0
        stmt = delete(PhotoSubject).where(PhotoSubject.photo_id.in_(photo_ids))
        if subject_id is not None:
            stmt = stmt.where(PhotoSubject.subject_id == subject_id)
        result = await self._execute(stmt)
        return result.rowcount or 0

    async def tagged_photo_count(self, event_id: int) -> int:
        result = await self._execute(
            select(func.count(func.distinct(PhotoSubject.photo_id)))
            .select_from(PhotoSubject)
            .join(Photo, Photo.id == PhotoSubject.photo_id)
            .where(Photo.event_id == event_id)
        )
        return result.scalar_one()

    async def photo_counts(self, event_id: int) -> Dict[int, int]:
        """Tagged photo count per subject of the event."""
        result = await self._execute(
            select(PhotoSubject.subject_id, func.count(PhotoSubject.photo_id))
            .join(Subject, Subject.id == PhotoSubject.subject_id)
            .where(Subject.event_id == event_id)
            .group_by(PhotoSubject.subject_id)
        )
        return {subject_id: count for subject_id, count in result.all()}
