"""
Photo-to-subject tagging tests.
"""
import pytest

from conftest import count_rows
from schoolshare.exceptions import EntityNotFound, InvalidRequest, OwnershipError
from schoolshare.models import PhotoSubject
from schoolshare.schemas.tagging import (
    BatchAssign,
    BatchRemove,
    BulkAssign,
    FilterCriteria,
    TagAssign,
    TagAssignment,
    TagRemove,
)
from schoolshare.services.tagging import TaggingService


@pytest.fixture
def service(db_session):
    return TaggingService(db_session)


class TestAssign:
    async def test_assign_skips_existing_pairs(self, service, school):
        result = await service.assign(TagAssign(
            event_id=school.spring.id,
            subject_id=school.alice.id,
            photo_ids=[school.p1.id, school.p3.id, school.p4.id],
        ))
        assert result.affected == 2

        again = await service.assign(TagAssign(
            event_id=school.spring.id,
            subject_id=school.alice.id,
            photo_ids=[school.p3.id],
        ))
        assert again.affected == 0

    async def test_photo_of_another_event(self, db_session, service, school):
        with pytest.raises(OwnershipError):
            await service.assign(TagAssign(
                event_id=school.spring.id,
                subject_id=school.bob.id,
                photo_ids=[school.p3.id, school.q1.id],
            ))
        assert await count_rows(db_session, PhotoSubject) == 2

    async def test_subject_of_another_event(self, service, school):
        with pytest.raises(OwnershipError):
            await service.assign(TagAssign(
                event_id=school.spring.id,
                subject_id=school.carol.id,
                photo_ids=[school.p3.id],
            ))

    async def test_unknown_event(self, service, school):
        with pytest.raises(EntityNotFound):
            await service.assign(TagAssign(event_id=999999, subject_id=school.alice.id, photo_ids=[1]))


class TestRemove:
    async def test_remove_one_subject(self, service, school):
        result = await service.remove(TagRemove(
            event_id=school.spring.id,
            subject_id=school.alice.id,
            photo_ids=[school.p1.id],
        ))
        assert result.affected == 1

    async def test_remove_every_subject(self, service, school):
        await service.assign(TagAssign(
            event_id=school.spring.id,
            subject_id=school.bob.id,
            photo_ids=[school.p1.id],
        ))
        result = await service.remove(TagRemove(event_id=school.spring.id, photo_ids=[school.p1.id]))
        assert result.affected == 2


async def test_overview(service, school):
    overview = await service.overview(school.spring.id)

    assert overview.stats.total_photos == 5
    assert overview.stats.tagged_photos == 2
    assert overview.stats.untagged_photos == 3
    assert overview.stats.progress_percentage == 40.0
    assert overview.untagged_photo_ids == [school.p3.id, school.p4.id, school.p5.id]
    counts = {s.name: s.photo_count for s in overview.subjects}
    assert counts == {"Alice": 2, "Bob": 0}


class TestBatch:
    async def test_batch_assign(self, service, school):
        result = await service.batch_assign(BatchAssign(
            event_id=school.spring.id,
            assignments=[
                TagAssignment(photo_id=school.p3.id, subject_id=school.bob.id),
                TagAssignment(photo_id=school.p4.id, subject_id=school.bob.id),
                TagAssignment(photo_id=school.p1.id, subject_id=school.alice.id),
            ],
        ))
        assert result.affected == 2

    async def test_batch_validated_before_writing(self, db_session, service, school):
        with pytest.raises(OwnershipError):
            await service.batch_assign(BatchAssign(
                event_id=school.spring.id,
                assignments=[
                    TagAssignment(photo_id=school.p3.id, subject_id=school.bob.id),
                    TagAssignment(photo_id=school.q1.id, subject_id=school.bob.id),
                ],
            ))
        assert await count_rows(db_session, PhotoSubject) == 2

    async def test_batch_limit(self, service, school):
        assignments = [TagAssignment(photo_id=school.p3.id, subject_id=school.bob.id)] * 101
        with pytest.raises(InvalidRequest):
            await service.batch_assign(BatchAssign(event_id=school.spring.id, assignments=assignments))

    async def test_batch_remove(self, service, school):
        result = await service.batch_remove(BatchRemove(
            event_id=school.spring.id,
            photo_ids=[school.p1.id, school.p2.id, school.p3.id],
        ))
        assert result.affected == 2


class TestBulk:
    async def test_filename_pattern(self, service, school):
        result = await service.bulk_assign(BulkAssign(
            event_id=school.spring.id,
            subject_id=school.bob.id,
            filter_criteria=FilterCriteria(filename_pattern="class_a"),
        ))
        assert result.affected == 2

    async def test_unassigned_only(self, service, school):
        result = await service.bulk_assign(BulkAssign(
            event_id=school.spring.id,
            subject_id=school.bob.id,
            filter_criteria=FilterCriteria(unassigned_only=True),
        ))
        assert result.affected == 3

    async def test_folder_and_limit(self, service, school):
        result = await service.bulk_assign(BulkAssign(
            event_id=school.spring.id,
            subject_id=school.bob.id,
            filter_criteria=FilterCriteria(folder_id=school.f1.id, limit=1),
        ))
        assert result.affected == 1

    async def test_folder_of_another_event(self, service, school):
        with pytest.raises(OwnershipError):
            await service.bulk_assign(BulkAssign(
                event_id=school.spring.id,
                subject_id=school.bob.id,
                filter_criteria=FilterCriteria(folder_id=school.g1.id),
            ))

    async def test_no_match_is_not_an_error(self, service, school):
        result = await service.bulk_assign(BulkAssign(
            event_id=school.spring.id,
            subject_id=school.bob.id,
            filter_criteria=FilterCriteria(filename_pattern="does-not-exist"),
        ))
        assert result.affected == 0
        assert result.message == "No photos found matching criteria"

    async def test_limit_cap(self, service, school):
        with pytest.raises(InvalidRequest):
            await service.bulk_assign(BulkAssign(
                event_id=school.spring.id,
                subject_id=school.bob.id,
                filter_criteria=FilterCriteria(limit=501),
            ))

    @pytest.mark.parametrize("pattern", ["%", "__", "class%b"])
    async def test_wildcards_match_literally(self, service, school, pattern):
        result = await service.bulk_assign(BulkAssign(
            event_id=school.spring.id,
            subject_id=school.bob.id,
            filter_criteria=FilterCriteria(filename_pattern=pattern),
        ))
        assert result.affected == 0
