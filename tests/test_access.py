"""
Share access validation: state checks, view limits, passwords and fallback.
"""
from datetime import timedelta

import pytest
from sqlalchemy import select, update

from schoolshare.exceptions import (
    ShareExpired,
    ShareNotFound,
    ShareRevoked,
    ShareUnauthorized,
    ViewLimitExceeded,
)
from schoolshare.models import ShareToken
from schoolshare.repositories import ShareTokenContentsRepository
from schoolshare.schemas.share import ShareCreate
from schoolshare.services.access import AccessValidator
from schoolshare.services.share import ShareService
from schoolshare.utils.time import utcnow


@pytest.fixture
def validator(db_session):
    return AccessValidator(db_session)


@pytest.fixture
def create_share(db_session, school):
    async def _create(**fields):
        fields.setdefault("share_type", "folder")
        fields.setdefault("folder_id", school.f1.id)
        fields.setdefault("include_descendants", True)
        return await ShareService(db_session).create_share(ShareCreate(**fields))
    return _create


async def view_count(db_session, share_id: int) -> int:
    result = await db_session.execute(select(ShareToken.view_count).where(ShareToken.id == share_id))
    return result.scalar_one()


async def test_grants_scope_photos(validator, create_share, school):
    created = await create_share(title="Class A")
    access = await validator.validate_access(created.token)

    assert [p.id for p in access.photos] == [school.p1.id, school.p2.id]
    assert access.photos[0].metadata == {"camera": "X100"}
    assert access.event.name == "Spring Festival"
    assert access.folder.id == school.f1.id
    assert access.share.title == "Class A"
    assert access.share.view_count == 1
    assert access.scope_config.include_descendants is True


async def test_event_share_has_no_folder(validator, create_share, school):
    created = await create_share(share_type="event", folder_id=None, event_id=school.spring.id)
    access = await validator.validate_access(created.token)
    assert access.folder is None
    assert len(access.photos) == 4


async def test_single_view_share(db_session, validator, create_share):
    created = await create_share(max_views=1)

    await validator.validate_access(created.token)
    with pytest.raises(ViewLimitExceeded):
        await validator.validate_access(created.token)

    assert await view_count(db_session, created.share.id) == 1


async def test_view_count_never_exceeds_limit(db_session, validator, create_share):
    created = await create_share(max_views=3)

    granted = 0
    for _ in range(5):
        try:
            await validator.validate_access(created.token)
            granted += 1
        except ViewLimitExceeded:
            pass

    assert granted == 3
    assert await view_count(db_session, created.share.id) == 3


class TestPassword:
    async def test_password_required(self, validator, create_share):
        created = await create_share(password="abc123")
        with pytest.raises(ShareUnauthorized) as exc_info:
            await validator.validate_access(created.token)
        assert exc_info.value.password_required is True
        assert exc_info.value.message == "Password required"

    async def test_wrong_password(self, validator, create_share):
        created = await create_share(password="abc123")
        with pytest.raises(ShareUnauthorized) as exc_info:
            await validator.validate_access(created.token, password="wrong")
        assert exc_info.value.password_required is False
        assert exc_info.value.message == "Incorrect password"

    async def test_correct_password(self, validator, create_share):
        created = await create_share(password="abc123")
        access = await validator.validate_access(created.token, password="abc123")
        assert access.share.view_count == 1

    async def test_failed_attempts_do_not_count_views(self, db_session, validator, create_share):
        created = await create_share(password="abc123", max_views=1)
        for _ in range(3):
            with pytest.raises(ShareUnauthorized):
                await validator.validate_access(created.token, password="nope")
        assert await view_count(db_session, created.share.id) == 0
        await validator.validate_access(created.token, password="abc123")


class TestTokenState:
    async def test_revoked(self, db_session, validator, create_share):
        created = await create_share()
        await ShareService(db_session).revoke(created.share.id)
        with pytest.raises(ShareRevoked):
            await validator.validate_access(created.token)

    async def test_revoked_before_password(self, db_session, validator, create_share):
        created = await create_share(password="abc123")
        await ShareService(db_session).revoke(created.share.id)
        with pytest.raises(ShareRevoked):
            await validator.validate_access(created.token)

    async def test_expired(self, validator, create_share):
        created = await create_share(expires_at=utcnow() - timedelta(minutes=1))
        with pytest.raises(ShareExpired):
            await validator.validate_access(created.token)

    async def test_revoked_before_expired(self, db_session, validator, create_share):
        created = await create_share(expires_at=utcnow() - timedelta(minutes=1))
        await ShareService(db_session).revoke(created.share.id)
        with pytest.raises(ShareRevoked):
            await validator.validate_access(created.token)

    async def test_unknown_token(self, validator, school):
        with pytest.raises(ShareNotFound):
            await validator.validate_access("A" * 43)

    async def test_malformed_token(self, validator, school):
        with pytest.raises(ShareNotFound):
            await validator.validate_access("../etc/passwd")

    async def test_legacy_folder_share_with_deleted_folder(self, db_session, validator, create_share):
        created = await create_share()
        share = await db_session.get(ShareToken, created.share.id)
        share.scope_config = None
        share.folder_id = None
        await db_session.flush()
        with pytest.raises(ShareNotFound):
            await validator.validate_access(created.token)


async def test_empty_contents_resolved_live(db_session, validator, create_share, school):
    created = await create_share()
    contents = ShareTokenContentsRepository(db_session)
    await contents.delete_for_token(created.share.id)

    access = await validator.validate_access(created.token)

    assert [p.id for p in access.photos] == [school.p1.id, school.p2.id]
    assert await contents.count(created.share.id) == 0


class TestPhotoAccess:
    async def test_photo_in_share(self, db_session, validator, create_share, school):
        created = await create_share()
        photo = await validator.check_photo_access(created.token, school.p2.id)
        assert photo.filename == "rehearsal_001.jpg"
        assert await view_count(db_session, created.share.id) == 0

    async def test_photo_outside_share(self, validator, create_share, school):
        created = await create_share()
        with pytest.raises(ShareNotFound):
            await validator.check_photo_access(created.token, school.p3.id)

    async def test_photo_of_another_event(self, validator, create_share, school):
        created = await create_share()
        with pytest.raises(ShareNotFound):
            await validator.check_photo_access(created.token, school.q1.id)

    async def test_photo_requires_password(self, validator, create_share, school):
        created = await create_share(password="abc123")
        with pytest.raises(ShareUnauthorized):
            await validator.check_photo_access(created.token, school.p1.id)
        photo = await validator.check_photo_access(created.token, school.p1.id, password="abc123")
        assert photo.id == school.p1.id


class TestConcurrentVisitors:
    """Another request changes the row after this one has loaded the token."""

    async def _change_behind_session(self, db_session, share_id: int, **values):
        await db_session.execute(
            update(ShareToken)
            .where(ShareToken.id == share_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def test_limit_reached_after_checks(self, db_session, validator, create_share):
        created = await create_share(max_views=1)
        await db_session.get(ShareToken, created.share.id)
        await self._change_behind_session(db_session, created.share.id, view_count=1)

        with pytest.raises(ViewLimitExceeded):
            await validator.validate_access(created.token)
        assert await view_count(db_session, created.share.id) == 1

    async def test_revoked_after_checks(self, db_session, validator, create_share):
        created = await create_share()
        await db_session.get(ShareToken, created.share.id)
        await self._change_behind_session(db_session, created.share.id, is_active=False)

        with pytest.raises(ShareRevoked):
            await validator.validate_access(created.token)
        assert await view_count(db_session, created.share.id) == 0
