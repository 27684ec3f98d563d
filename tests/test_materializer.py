"""
Share contents cache tests.
"""
import pytest

from schoolshare.exceptions import MaterializationError
from schoolshare.models import ShareToken
from schoolshare.services.materializer import ContentMaterializer
from schoolshare.utils.security import generate_share_token


@pytest.fixture
async def share(db_session, school):
    token = ShareToken(
        token=generate_share_token(),
        event_id=school.spring.id,
        share_type="event",
        scope_config={"scope": "event", "anchor_id": school.spring.id},
    )
    db_session.add(token)
    await db_session.flush()
    return token


async def test_materialize_deduplicates(db_session, school, share):
    materializer = ContentMaterializer(db_session)
    count = await materializer.materialize(share.id, [school.p2.id, school.p1.id, school.p1.id])
    assert count == 2
    assert await materializer.read(share.id) == [school.p1.id, school.p2.id]


async def test_rebuild_replaces_previous_rows(db_session, school, share):
    materializer = ContentMaterializer(db_session)
    await materializer.materialize(share.id, [school.p1.id, school.p2.id])
    await materializer.materialize(share.id, [school.p3.id])
    assert await materializer.read(share.id) == [school.p3.id]


async def test_chunked_insert(db_session, school, share):
    materializer = ContentMaterializer(db_session, chunk_size=2)
    ids = [school.p1.id, school.p2.id, school.p3.id, school.p4.id, school.p5.id]
    assert await materializer.materialize(share.id, ids) == 5
    assert await materializer.read(share.id) == sorted(ids)


async def test_empty_set_clears_cache(db_session, school, share):
    materializer = ContentMaterializer(db_session)
    await materializer.materialize(share.id, [school.p1.id])
    assert await materializer.materialize(share.id, []) == 0
    assert await materializer.read(share.id) == []


async def test_failure_keeps_previous_rows(db_session, school, share):
    materializer = ContentMaterializer(db_session)
    await materializer.materialize(share.id, [school.p1.id])

    # unknown photo id violates the foreign key
    with pytest.raises(MaterializationError):
        await materializer.materialize(share.id, [school.p2.id, 999999])

    assert await materializer.read(share.id) == [school.p1.id]


async def test_contains(db_session, school, share):
    materializer = ContentMaterializer(db_session)
    await materializer.materialize(share.id, [school.p1.id])
    assert await materializer.contains(share.id, school.p1.id)
    assert not await materializer.contains(share.id, school.p2.id)
