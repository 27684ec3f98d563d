"""
Photo-to-subject tagging: individual, batch and bulk-by-criteria.
"""
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.config import get_settings
from schoolshare.exceptions import EntityNotFound, InvalidRequest, OwnershipError
from schoolshare.repositories import (
    EventRepository,
    FolderRepository,
    PhotoRepository,
    SubjectRepository,
)
from schoolshare.schemas.tagging import (
    BatchAssign,
    BatchRemove,
    BulkAssign,
    SubjectTagCount,
    TagAssign,
    TaggingOverview,
    TaggingResult,
    TaggingStats,
    TagRemove,
)
from schoolshare.utils.logger import log_info
from schoolshare.utils.prometheus_metrics import (
    tagging_operations_total,
    tagging_photos_affected,
)

settings = get_settings()


class TaggingService:
    """
    Every photo and subject in a request must belong to the request's event;
    nothing is written when one does not.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventRepository(db)
        self.folders = FolderRepository(db)
        self.photos = PhotoRepository(db)
        self.subjects = SubjectRepository(db)

    # ============== Validation ==============

    async def _require_event(self, event_id: int) -> None:
        if not await self.events.exists(event_id):
            raise EntityNotFound(f"Event {event_id} not found")

    async def _require_photos(self, event_id: int, photo_ids: List[int]) -> List[int]:
        photo_ids = list(dict.fromkeys(photo_ids))
        found = set(await self.photos.ids_in_event(event_id, photo_ids))
        missing = [pid for pid in photo_ids if pid not in found]
        if missing:
            raise OwnershipError(f"Photos not found in event {event_id}: {missing}")
        return photo_ids

    async def _require_subjects(self, event_id: int, subject_ids: List[int]) -> List[int]:
        subject_ids = list(dict.fromkeys(subject_ids))
        found = set(await self.subjects.ids_in_event(event_id, subject_ids))
        missing = [sid for sid in subject_ids if sid not in found]
        if missing:
            raise OwnershipError(f"Subjects not found in event {event_id}: {missing}")
        return subject_ids

    def _record(self, operation: str, affected: int, **fields) -> None:
        tagging_operations_total.labels(operation=operation, result="success").inc()
        tagging_photos_affected.labels(operation=operation).inc(affected)
        log_info("Photos tagged", event="tagging", operation=operation, affected=affected, **fields)

    async def _insert_new_pairs(self, pairs: List[tuple]) -> int:
        pairs = list(dict.fromkeys(pairs))
        existing = await self.subjects.existing_pairs(
            [photo_id for photo_id, _ in pairs],
            [subject_id for _, subject_id in pairs],
        )
        return await self.subjects.add_pairs([pair for pair in pairs if pair not in existing])

    # ============== Individual ==============

    async def assign(self, data: TagAssign) -> TaggingResult:
        """
        Tag photos with one subject; existing pairs are skipped.

        Raises:
            EntityNotFound: event missing
            OwnershipError: a photo or the subject is not in the event
        """
        await self._require_event(data.event_id)
        await self._require_subjects(data.event_id, [data.subject_id])
        photo_ids = await self._require_photos(data.event_id, data.photo_ids)

        added = await self._insert_new_pairs([(pid, data.subject_id) for pid in photo_ids])
        self._record("assign", added, event_id=data.event_id, subject_id=data.subject_id)
        return TaggingResult(affected=added, message=f"{added} photos tagged")

    async def remove(self, data: TagRemove) -> TaggingResult:
        await self._require_event(data.event_id)
        if data.subject_id is not None:
            await self._require_subjects(data.event_id, [data.subject_id])
        photo_ids = await self._require_photos(data.event_id, data.photo_ids)

        removed = await self.subjects.remove_pairs(photo_ids, subject_id=data.subject_id)
        self._record("unassign", removed, event_id=data.event_id, subject_id=data.subject_id)
        return TaggingResult(affected=removed, message=f"{removed} tags removed")

    async def overview(self, event_id: int) -> TaggingOverview:
        """Tagging progress, per-subject counts and untagged photos of an event."""
        await self._require_event(event_id)
        total = await self.photos.count_in_event(event_id)
        tagged = await self.subjects.tagged_photo_count(event_id)
        counts = await self.subjects.photo_counts(event_id)
        subjects = await self.subjects.list_by_event(event_id)
        untagged_ids = await self.photos.untagged_ids(event_id)

        return TaggingOverview(
            stats=TaggingStats(
                total_photos=total,
                tagged_photos=tagged,
                untagged_photos=total - tagged,
                progress_percentage=round(tagged / total * 100, 2) if total else 0.0,
            ),
            subjects=[
                SubjectTagCount(
                    id=subject.id,
                    name=subject.name,
                    subject_type=subject.subject_type,
                    photo_count=counts.get(subject.id, 0),
                )
                for subject in subjects
            ],
            untagged_photo_ids=untagged_ids,
        )

    # ============== Batch ==============

    async def batch_assign(self, data: BatchAssign) -> TaggingResult:
        """
        Apply many (photo, subject) assignments at once.
        All of them are validated before any is written.
        """
        if len(data.assignments) > settings.tagging_batch_max_assignments:
            raise InvalidRequest(
                f"At most {settings.tagging_batch_max_assignments} assignments per batch"
            )
        await self._require_event(data.event_id)
        await self._require_photos(data.event_id, [a.photo_id for a in data.assignments])
        await self._require_subjects(data.event_id, [a.subject_id for a in data.assignments])

        added = await self._insert_new_pairs([(a.photo_id, a.subject_id) for a in data.assignments])
        self._record("batch_assign", added, event_id=data.event_id)
        return TaggingResult(affected=added, message=f"{added} assignments created")

    async def batch_remove(self, data: BatchRemove) -> TaggingResult:
        if len(data.photo_ids) > settings.tagging_batch_max_assignments:
            raise InvalidRequest(
                f"At most {settings.tagging_batch_max_assignments} photos per batch"
            )
        await self._require_event(data.event_id)
        photo_ids = await self._require_photos(data.event_id, data.photo_ids)

        removed = await self.subjects.remove_pairs(photo_ids)
        self._record("batch_unassign", removed, event_id=data.event_id)
        return TaggingResult(affected=removed, message=f"{removed} tags removed")

    async def bulk_assign(self, data: BulkAssign) -> TaggingResult:
        """Tag every photo matching the filter criteria with one subject."""
        criteria = data.filter_criteria
        if criteria.limit > settings.tagging_bulk_max_photos:
            raise InvalidRequest(f"limit must not exceed {settings.tagging_bulk_max_photos}")
        await self._require_event(data.event_id)
        await self._require_subjects(data.event_id, [data.subject_id])
        if criteria.folder_id is not None:
            if not await self.folders.ids_in_event(data.event_id, [criteria.folder_id]):
                raise OwnershipError(f"Folder {criteria.folder_id} not found in event {data.event_id}")

        photo_ids = await self.photos.find_for_bulk_tagging(
            data.event_id,
            unassigned_only=criteria.unassigned_only,
            created_from=criteria.date_range.start if criteria.date_range else None,
            created_to=criteria.date_range.end if criteria.date_range else None,
            filename_pattern=criteria.filename_pattern,
            folder_id=criteria.folder_id,
            limit=criteria.limit,
        )
        if not photo_ids:
            return TaggingResult(affected=0, message="No photos found matching criteria")

        added = await self._insert_new_pairs([(pid, data.subject_id) for pid in photo_ids])
        self._record("bulk_assign", added, event_id=data.event_id, subject_id=data.subject_id)
        return TaggingResult(affected=added, message=f"{added} photos tagged")
