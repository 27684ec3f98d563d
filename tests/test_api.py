"""
HTTP tests through the FastAPI application.
"""
import pytest

from schoolshare.utils.prometheus_metrics import ready


class TestAuth:
    async def test_me(self, client, admin_headers):
        response = await client.get("/auth/me", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "staff@school.example.com"

    async def test_wrong_password(self, client, admin_user):
        response = await client.post(
            "/auth/login",
            json={"email": "staff@school.example.com", "password": "not-the-password"},
        )
        assert response.status_code == 401

    async def test_admin_routes_require_token(self, client):
        response = await client.get("/admin/events")
        assert response.status_code == 401


class TestAdminFlow:
    async def test_event_folder_photo_share(self, client, admin_headers):
        response = await client.post(
            "/admin/events",
            json={"name": "Graduation", "school_name": "Maple Elementary", "event_date": "2026-06-20"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        event_id = response.json()["id"]

        response = await client.post(
            f"/admin/events/{event_id}/folders", json={"name": "Ceremony"}, headers=admin_headers
        )
        assert response.status_code == 201
        parent_id = response.json()["id"]
        response = await client.post(
            f"/admin/events/{event_id}/folders",
            json={"name": "Speeches", "parent_id": parent_id},
            headers=admin_headers,
        )
        child_id = response.json()["id"]

        for folder_id, name in ((parent_id, "ceremony_001.jpg"), (child_id, "speech_001.jpg")):
            response = await client.post(
                f"/admin/events/{event_id}/photos",
                json={"filename": name, "storage_path": f"grad/{name}", "folder_id": folder_id},
                headers=admin_headers,
            )
            assert response.status_code == 201

        response = await client.get(f"/admin/folders/{parent_id}/descendants", headers=admin_headers)
        assert response.json() == {"folder_id": parent_id, "descendant_ids": [child_id]}

        response = await client.get(f"/admin/events/{event_id}", headers=admin_headers)
        assert response.json()["photo_count"] == 2
        assert response.json()["folder_count"] == 2

        response = await client.post(
            "/admin/shares",
            json={
                "scope_config": {"scope": "folder", "anchor_id": parent_id, "include_descendants": True},
                "title": "Graduation ceremony",
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        created = response.json()
        assert created["photo_count"] == 2
        assert created["share"]["event_id"] == event_id

        response = await client.get(f"/share/{created['token']}")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [p["filename"] for p in body["data"]["photos"]] == ["ceremony_001.jpg", "speech_001.jpg"]

        response = await client.get(f"/admin/events/{event_id}/shares", headers=admin_headers)
        assert [s["view_count"] for s in response.json()] == [1]

    async def test_parent_folder_of_another_event(self, client, admin_headers, school):
        response = await client.post(
            f"/admin/events/{school.spring.id}/folders",
            json={"name": "Stray", "parent_id": school.g1.id},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error_kind"] == "ownership_mismatch"

    async def test_unknown_event(self, client, admin_headers):
        response = await client.get("/admin/events/999999", headers=admin_headers)
        assert response.status_code == 404
        assert response.json() == {"success": False, "error_kind": "not_found", "detail": "Event 999999 not found"}


class TestShareEndpoints:
    @pytest.fixture
    async def share(self, client, admin_headers, school):
        async def _create(**fields):
            payload = {"share_type": "folder", "folder_id": school.f1.id, "include_descendants": True}
            payload.update(fields)
            response = await client.post("/admin/shares", json=payload, headers=admin_headers)
            assert response.status_code == 201
            return response.json()
        return _create

    async def test_scope_not_found(self, client, admin_headers, school):
        response = await client.post(
            "/admin/shares",
            json={"event_id": school.spring.id, "share_type": "folder", "folder_id": school.g1.id},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error_kind"] == "scope_not_found"
        assert response.json()["field"] == "folder_id"

        response = await client.get(f"/admin/events/{school.spring.id}/shares", headers=admin_headers)
        assert response.json() == []

    async def test_password_header_and_body(self, client, share):
        created = await share(password="abc123")
        token = created["token"]

        response = await client.get(f"/share/{token}")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error_kind": "unauthorized", "detail": "Password required"}

        response = await client.get(f"/share/{token}", headers={"X-Share-Password": "wrong"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect password"

        response = await client.get(f"/share/{token}", headers={"X-Share-Password": "abc123"})
        assert response.status_code == 200

        response = await client.post(f"/share/{token}/access", json={"password": "abc123"})
        assert response.status_code == 200
        assert response.json()["data"]["share"]["view_count"] == 2

    async def test_view_limit(self, client, share):
        created = await share(max_views=1)
        assert (await client.get(f"/share/{created['token']}")).status_code == 200

        response = await client.get(f"/share/{created['token']}")
        assert response.status_code == 429
        assert response.json()["error_kind"] == "view_limit_exceeded"

    async def test_revoke(self, client, admin_headers, share):
        created = await share()
        response = await client.post(f"/admin/shares/{created['share']['id']}/revoke", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = await client.get(f"/share/{created['token']}")
        assert response.status_code == 410
        assert response.json()["error_kind"] == "revoked"

    async def test_unknown_token(self, client):
        response = await client.get("/share/" + "x" * 43)
        assert response.status_code == 404
        assert response.json()["error_kind"] == "not_found"

    async def test_single_photo(self, client, share, school):
        created = await share()
        response = await client.get(f"/share/{created['token']}/photos/{school.p2.id}")
        assert response.status_code == 200
        assert response.json()["data"]["id"] == school.p2.id

        response = await client.get(f"/share/{created['token']}/photos/{school.p3.id}")
        assert response.status_code == 404

    async def test_audiences_and_refresh(self, client, admin_headers, share, school):
        created = await share(audiences=[{"type": "family", "subject_id": school.alice.id}])
        assert created["audiences_count"] == 1
        share_id = created["share"]["id"]

        response = await client.post(
            f"/admin/shares/{share_id}/audiences",
            json={"audiences": [{"type": "manual", "contact_email": "grandma@example.com"}]},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["count"] == 1

        response = await client.get(f"/admin/shares/{share_id}/audiences", headers=admin_headers)
        assert len(response.json()) == 2

        response = await client.post(f"/admin/shares/{share_id}/refresh", headers=admin_headers)
        assert response.json() == {"share_id": share_id, "photo_count": 2}


class TestTaggingEndpoints:
    async def test_assign_overview_remove(self, client, admin_headers, school):
        response = await client.post(
            "/admin/tagging",
            json={"event_id": school.spring.id, "subject_id": school.bob.id, "photo_ids": [school.p3.id]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["affected"] == 1

        response = await client.get(
            "/admin/tagging", params={"event_id": school.spring.id}, headers=admin_headers
        )
        assert response.json()["stats"]["tagged_photos"] == 3

        response = await client.request(
            "DELETE",
            "/admin/tagging",
            json={"event_id": school.spring.id, "photo_ids": [school.p3.id]},
            headers=admin_headers,
        )
        assert response.json()["affected"] == 1

    async def test_bulk_assign(self, client, admin_headers, school):
        response = await client.put(
            "/admin/tagging/batch",
            json={
                "event_id": school.spring.id,
                "subject_id": school.bob.id,
                "filter_criteria": {"unassigned_only": True, "limit": 2},
            },
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["affected"] == 2

    async def test_batch_ownership_error(self, client, admin_headers, school):
        response = await client.post(
            "/admin/tagging/batch",
            json={
                "event_id": school.spring.id,
                "assignments": [{"photo_id": school.q1.id, "subject_id": school.bob.id}],
            },
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error_kind"] == "ownership_mismatch"


class TestHealth:
    async def test_liveness(self, client):
        ready.set(1)
        response = await client.get("/health/liveness")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_shutting_down(self, client):
        ready.set(0)
        response = await client.get("/health/liveness")
        assert response.status_code == 503

    async def test_root(self, client):
        response = await client.get("/")
        assert response.json()["docs"] == "/docs"
