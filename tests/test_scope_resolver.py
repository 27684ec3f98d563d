"""
Scope resolution tests: folder subtrees, whole events, photo lists and filters.
"""
import pytest

from schoolshare.exceptions import ScopeNotFound
from schoolshare.models import ShareToken
from schoolshare.schemas.share import (
    EventScope,
    FolderScope,
    PhotoListScope,
    ScopeFilters,
    dump_scope_config,
    parse_scope_config,
)
from schoolshare.services.scope_resolver import ScopeResolver, scope_for_token


@pytest.fixture
def resolver(db_session):
    return ScopeResolver(db_session)


class TestFolderScope:
    async def test_folder_without_descendants(self, resolver, school):
        ids = await resolver.resolve(school.spring.id, FolderScope(anchor_id=school.f1.id))
        assert ids == [school.p1.id]

    async def test_descendants_included_siblings_excluded(self, resolver, school):
        scope = FolderScope(anchor_id=school.f1.id, include_descendants=True)
        ids = await resolver.resolve(school.spring.id, scope)
        assert ids == [school.p1.id, school.p2.id]
        assert school.p3.id not in ids

    async def test_unapproved_photos_included_on_request(self, resolver, school):
        scope = FolderScope(
            anchor_id=school.f1.id,
            filters=ScopeFilters(approved_only=False),
        )
        ids = await resolver.resolve(school.spring.id, scope)
        assert ids == sorted([school.p1.id, school.p5.id])

    async def test_folder_of_another_event(self, resolver, school):
        with pytest.raises(ScopeNotFound) as exc_info:
            await resolver.resolve(school.spring.id, FolderScope(anchor_id=school.g1.id))
        assert exc_info.value.field == "folder_id"

    async def test_missing_folder(self, resolver, school):
        with pytest.raises(ScopeNotFound):
            await resolver.resolve(school.spring.id, FolderScope(anchor_id=999999))

    async def test_descendant_folder_ids(self, resolver, school):
        assert await resolver.descendant_folder_ids(school.f1.id) == [school.f1.id, school.f2.id]
        assert await resolver.descendant_folder_ids(school.f3.id) == [school.f3.id]
        assert await resolver.descendant_folder_ids(999999) == []


class TestEventScope:
    async def test_every_approved_photo_of_the_event(self, resolver, school):
        ids = await resolver.resolve(school.spring.id, EventScope(anchor_id=school.spring.id))
        assert ids == [school.p1.id, school.p2.id, school.p3.id, school.p4.id]

    async def test_include_descendants_is_forced(self):
        assert EventScope(anchor_id=1, include_descendants=False).include_descendants is True

    async def test_anchor_must_match_event(self, resolver, school):
        with pytest.raises(ScopeNotFound) as exc_info:
            await resolver.resolve(school.spring.id, EventScope(anchor_id=school.sports.id))
        assert exc_info.value.field == "event_id"

    async def test_subject_filter(self, resolver, school):
        scope = EventScope(
            anchor_id=school.spring.id,
            filters=ScopeFilters(subject_ids=[school.alice.id]),
        )
        assert await resolver.resolve(school.spring.id, scope) == [school.p1.id, school.p2.id]

    async def test_folder_filter(self, resolver, school):
        scope = EventScope(
            anchor_id=school.spring.id,
            filters=ScopeFilters(folder_ids=[school.f3.id]),
        )
        assert await resolver.resolve(school.spring.id, scope) == [school.p3.id]

    async def test_untagged_subject_matches_nothing(self, resolver, school):
        scope = EventScope(
            anchor_id=school.spring.id,
            filters=ScopeFilters(subject_ids=[school.bob.id]),
        )
        assert await resolver.resolve(school.spring.id, scope) == []


class TestPhotoListScope:
    async def test_sorted_and_deduplicated(self, resolver, school):
        scope = PhotoListScope(photo_ids=[school.p3.id, school.p1.id, school.p1.id])
        assert scope.photo_ids == [school.p3.id, school.p1.id]
        assert await resolver.resolve(school.spring.id, scope) == [school.p1.id, school.p3.id]

    async def test_photo_of_another_event(self, resolver, school):
        scope = PhotoListScope(photo_ids=[school.p1.id, school.q1.id])
        with pytest.raises(ScopeNotFound) as exc_info:
            await resolver.resolve(school.spring.id, scope)
        assert exc_info.value.field == "photo_ids"

    async def test_unapproved_listed_photo_filtered(self, resolver, school):
        scope = PhotoListScope(photo_ids=[school.p5.id, school.p4.id])
        assert await resolver.resolve(school.spring.id, scope) == [school.p4.id]

    async def test_folder_filter_applies_to_list(self, resolver, school):
        scope = PhotoListScope(
            photo_ids=[school.p1.id, school.p3.id],
            filters=ScopeFilters(folder_ids=[school.f1.id]),
        )
        assert await resolver.resolve(school.spring.id, scope) == [school.p1.id]


async def test_resolution_is_repeatable(resolver, school):
    scope = FolderScope(anchor_id=school.f1.id, include_descendants=True)
    first = await resolver.resolve(school.spring.id, scope)
    second = await resolver.resolve(school.spring.id, scope)
    assert first == second


async def test_folder_filter_narrows_subtree(resolver, school):
    scope = FolderScope(
        anchor_id=school.f1.id,
        include_descendants=True,
        filters=ScopeFilters(folder_ids=[school.f2.id, school.f3.id]),
    )
    assert await resolver.resolve(school.spring.id, scope) == [school.p2.id]


class TestStoredScope:
    def test_scope_config_round_trip(self):
        scope = FolderScope(anchor_id=7, include_descendants=True)
        assert parse_scope_config(dump_scope_config(scope)) == scope

    def test_scope_config_column_wins(self):
        share = ShareToken(
            event_id=1,
            share_type="folder",
            folder_id=3,
            scope_config={"scope": "event", "anchor_id": 1},
        )
        assert isinstance(scope_for_token(share), EventScope)

    def test_legacy_folder_columns(self):
        share = ShareToken(event_id=1, share_type="folder", folder_id=3, scope_config=None)
        scope = scope_for_token(share)
        assert isinstance(scope, FolderScope)
        assert scope.anchor_id == 3

    def test_legacy_selection_columns(self):
        share = ShareToken(event_id=1, share_type="selection", photo_ids=[5, 4], scope_config=None)
        scope = scope_for_token(share)
        assert isinstance(scope, PhotoListScope)
        assert scope.photo_ids == [5, 4]

    def test_legacy_folder_deleted(self):
        share = ShareToken(event_id=1, share_type="folder", folder_id=None, scope_config=None)
        with pytest.raises(ScopeNotFound):
            scope_for_token(share)

    def test_unknown_type_falls_back_to_event(self):
        share = ShareToken(event_id=4, share_type="album", scope_config=None)
        scope = scope_for_token(share)
        assert isinstance(scope, EventScope)
        assert scope.anchor_id == 4
