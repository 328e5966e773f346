"""
Tests for the reviewer API: browsing, pull-next, voting, permissions.
"""
import pytest


@pytest.fixture
def admin(create_user):
    return create_user("admin@test.com", "admin")


class TestPermissions:

    def test_hacker_forbidden(self, client, create_user, auth_headers):
        hacker = create_user("hacker@test.com")
        assert client.get("/api/admin/applications", headers=auth_headers(hacker)).status_code == 403
        assert client.get("/api/admin/reviews/next", headers=auth_headers(hacker)).status_code == 403

    def test_super_admin_allowed(self, client, create_user, auth_headers):
        super_id = create_user("super@test.com", "super_admin")
        assert client.get("/api/admin/applications", headers=auth_headers(super_id)).status_code == 200

    def test_admin_cannot_use_super_admin_routes(self, client, admin, auth_headers):
        response = client.post("/api/superadmin/applications/assign", headers=auth_headers(admin))
        assert response.status_code == 403


class TestApplicationBrowsing:

    def test_list_and_page(self, client, admin, auth_headers, submitted_application):
        for _ in range(3):
            submitted_application()
        headers = auth_headers(admin)

        first = client.get("/api/admin/applications", headers=headers, params={"limit": 2}).json()
        assert len(first["applications"]) == 2
        assert first["has_more"] is True

        second = client.get(
            "/api/admin/applications", headers=headers,
            params={"limit": 2, "cursor": first["next_cursor"]}
        ).json()
        assert len(second["applications"]) == 1
        assert second["has_more"] is False
        assert second["prev_cursor"] is not None

        back = client.get(
            "/api/admin/applications", headers=headers,
            params={"limit": 2, "cursor": second["prev_cursor"], "direction": "backward"}
        ).json()
        assert [a["id"] for a in back["applications"]] == [a["id"] for a in first["applications"]]

    def test_malformed_cursor(self, client, admin, auth_headers):
        response = client.get("/api/admin/applications", headers=auth_headers(admin), params={"cursor": "a"})
        assert response.status_code == 400

    def test_status_filter(self, client, admin, auth_headers, submitted_application, create_user):
        submitted_application()
        draft_owner = create_user("draft@test.com")
        client.get("/api/applications/me", headers=auth_headers(draft_owner))

        data = client.get(
            "/api/admin/applications", headers=auth_headers(admin), params={"status": "draft"}
        ).json()
        assert [a["user_id"] for a in data["applications"]] == [draft_owner]

    def test_stats(self, client, admin, auth_headers, submitted_application):
        submitted_application()
        submitted_application()

        stats = client.get("/api/admin/applications/stats", headers=auth_headers(admin)).json()
        assert stats["total_applications"] == 2
        assert stats["submitted"] == 2
        assert stats["acceptance_rate"] == 0.0

    def test_get_application(self, client, admin, auth_headers, submitted_application):
        app_id, _ = submitted_application()

        response = client.get(f"/api/admin/applications/{app_id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["status"] == "submitted"

        missing = client.get("/api/admin/applications/nope", headers=auth_headers(admin))
        assert missing.status_code == 404


class TestReviewing:

    def test_pull_next_empty_is_404(self, client, admin, auth_headers):
        response = client.get("/api/admin/reviews/next", headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.json()["detail"] == "no applications need review"

    def test_pull_vote_and_complete(self, client, admin, auth_headers, submitted_application):
        app_id, _ = submitted_application()
        headers = auth_headers(admin)

        review = client.get("/api/admin/reviews/next", headers=headers).json()["review"]
        assert review["application_id"] == app_id

        pending = client.get("/api/admin/reviews/pending", headers=headers).json()["reviews"]
        assert [r["id"] for r in pending] == [review["id"]]
        assert pending[0]["email"] == "hacker1@test.com"

        voted = client.put(
            f"/api/admin/reviews/{review['id']}", headers=headers,
            json={"vote": "accept", "notes": "Great projects"}
        )
        assert voted.status_code == 200
        assert voted.json()["review"]["vote"] == "accept"
        assert voted.json()["review"]["reviewed_at"] is not None

        assert client.get("/api/admin/reviews/pending", headers=headers).json()["reviews"] == []
        completed = client.get("/api/admin/reviews/completed", headers=headers).json()["reviews"]
        assert [r["id"] for r in completed] == [review["id"]]

    def test_cannot_vote_on_someone_elses_review(self, client, admin, auth_headers, create_user, submitted_application):
        other = create_user("other@test.com", "admin")
        submitted_application()
        review = client.get("/api/admin/reviews/next", headers=auth_headers(admin)).json()["review"]

        response = client.put(
            f"/api/admin/reviews/{review['id']}", headers=auth_headers(other), json={"vote": "reject"}
        )
        assert response.status_code == 404

    def test_invalid_vote(self, client, admin, auth_headers, submitted_application):
        submitted_application()
        review = client.get("/api/admin/reviews/next", headers=auth_headers(admin)).json()["review"]

        response = client.put(
            f"/api/admin/reviews/{review['id']}", headers=auth_headers(admin), json={"vote": "maybe"}
        )
        assert response.status_code == 422

    def test_application_reviews_and_notes(self, client, admin, auth_headers, create_user, submitted_application):
        other = create_user("other@test.com", "admin")
        app_id, _ = submitted_application()

        for reviewer, notes in ((admin, "Solid"), (other, None)):
            review = client.get("/api/admin/reviews/next", headers=auth_headers(reviewer)).json()["review"]
            client.put(
                f"/api/admin/reviews/{review['id']}", headers=auth_headers(reviewer),
                json={"vote": "accept", "notes": notes}
            )

        reviews = client.get(f"/api/admin/applications/{app_id}/reviews", headers=auth_headers(admin)).json()
        assert len(reviews["reviews"]) == 2

        notes = client.get(f"/api/admin/applications/{app_id}/notes", headers=auth_headers(admin)).json()
        assert notes["notes"] == [
            {"admin_id": admin, "admin_email": "admin@test.com", "notes": "Solid",
             "created_at": notes["notes"][0]["created_at"]}
        ]
        assert "vote" not in notes["notes"][0]

    def test_vote_runs_under_query_deadline(self, client, admin, auth_headers, submitted_application, monkeypatch):
        from app.api.routes import admin_routes

        deadlines = []
        monkeypatch.setattr(admin_routes, "set_statement_timeout", lambda db, ms: deadlines.append(ms))
        submitted_application()
        review = client.get("/api/admin/reviews/next", headers=auth_headers(admin)).json()["review"]
        deadlines.clear()

        client.put(f"/api/admin/reviews/{review['id']}", headers=auth_headers(admin), json={"vote": "accept"})
        assert deadlines == [admin_routes.settings.query_timeout_ms]
