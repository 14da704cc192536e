"""
HTTP tests for the requests API.
"""

from datetime import datetime

import pytest


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _submit(client, account, title="Printer not working", description="Paper jam on floor 3", **extra):
    response = await client.post(
        "/requests",
        json={"title": title, "description": description, **extra},
        headers=account.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _patch(client, account, request_id, **changes):
    return await client.patch(f"/requests/{request_id}", json=changes, headers=account.headers)


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

class TestSubmit:
    async def test_round_trip(self, client, submitter):
        created = await _submit(client, submitter)

        assert created["category"] == "IT and Technical Support"
        assert created["priority"] == "Critical"
        assert created["status"] == "Received"
        assert created["assigned_unit"] == "IT Division"
        assert created["assigned_handler"] == ""
        assert '"Printer not working"' in created["ai_response"]
        assert created["submitter_id"] == str(submitter.user.id)
        assert created["submitter_name"] == "Amina"
        assert created["resolved_at"] is None

        fetched = await client.get(f"/requests/{created['id']}", headers=submitter.headers)
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "Printer not working"
        assert fetched.json()["description"] == "Paper jam on floor 3"

    async def test_manual_overrides_win(self, client, submitter):
        created = await _submit(client, submitter, category="Other", priority="Low")

        assert created["category"] == "Other"
        assert created["priority"] == "Low"
        assert created["assigned_unit"] == "IT Division"
        assert "IT and Technical Support Division" in created["ai_response"]

    async def test_blank_title_rejected(self, client, submitter):
        response = await client.post(
            "/requests", json={"title": "   ", "description": "x"}, headers=submitter.headers
        )
        assert response.status_code == 422

    async def test_unknown_category_rejected(self, client, submitter):
        response = await client.post(
            "/requests",
            json={"title": "Chair", "description": "x", "category": "Catering"},
            headers=submitter.headers,
        )
        assert response.status_code == 422

    async def test_requires_authentication(self, client):
        response = await client.post("/requests", json={"title": "t", "description": "d"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert "correlation_id" in response.json()

    async def test_rejects_unknown_token(self, client):
        response = await client.get("/requests", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    async def test_classify_preview_stores_nothing(self, client, handler):
        response = await client.post(
            "/requests/classify",
            json={"title": "Fire alarm sounding", "description": "Smoke near the stairwell"},
            headers=handler.headers,
        )
        assert response.status_code == 200
        assert response.json()["category"] == "Safety and Fire Protection"
        assert response.json()["priority"] == "Critical"
        assert response.json()["assigned_unit"] == "Safety Division"

        listed = await client.get("/requests", headers=handler.headers)
        assert listed.json() == []


# ---------------------------------------------------------------------------
# Visibility and listing
# ---------------------------------------------------------------------------

class TestListing:
    async def test_submitter_sees_own_requests(self, client, submitter, other_submitter):
        own = await _submit(client, submitter)
        await _submit(client, other_submitter, title="Broken chair", description="In room 4")

        response = await client.get("/requests", headers=submitter.headers)
        assert [row["id"] for row in response.json()] == [own["id"]]

    async def test_handler_sees_everything(self, client, submitter, other_submitter, handler):
        await _submit(client, submitter)
        await _submit(client, other_submitter, title="Broken chair", description="In room 4")

        response = await client.get("/requests", headers=handler.headers)
        assert len(response.json()) == 2

    async def test_other_submitters_request_is_not_found(self, client, submitter, other_submitter):
        theirs = await _submit(client, other_submitter)

        response = await client.get(f"/requests/{theirs['id']}", headers=submitter.headers)
        assert response.status_code == 404

    async def test_filters(self, client, submitter, other_submitter, handler):
        await _submit(client, submitter)
        await _submit(client, other_submitter, title="Vacation request", description="Annual leave in May")

        by_text = await client.get("/requests", params={"q": "PAPER"}, headers=handler.headers)
        assert [row["title"] for row in by_text.json()] == ["Printer not working"]

        by_name = await client.get("/requests", params={"q": "brun"}, headers=handler.headers)
        assert [row["title"] for row in by_name.json()] == ["Vacation request"]

        by_category = await client.get(
            "/requests", params={"category": "HR and Staff Matters"}, headers=handler.headers
        )
        assert [row["title"] for row in by_category.json()] == ["Vacation request"]

        by_priority = await client.get("/requests", params={"priority": "Critical"}, headers=handler.headers)
        assert [row["title"] for row in by_priority.json()] == ["Printer not working"]

        by_status = await client.get("/requests", params={"status": "Resolved"}, headers=handler.headers)
        assert by_status.json() == []

    async def test_search_treats_wildcards_literally(self, client, submitter):
        await _submit(client, submitter)

        response = await client.get("/requests", params={"q": "%"}, headers=submitter.headers)
        assert response.json() == []

    async def test_stats(self, client, submitter, other_submitter, handler):
        first = await _submit(client, submitter)
        await _submit(client, submitter, title="Lunch menu", description="Add vegan options")
        await _submit(client, other_submitter, title="Broken chair", description="In room 4")
        await _patch(client, handler, first["id"], status="Resolved")

        mine = await client.get("/requests/stats", headers=submitter.headers)
        assert mine.json() == {"total": 2, "received": 1, "in_progress": 0, "resolved": 1, "critical": 1}

        everything = await client.get("/requests/stats", headers=handler.headers)
        assert everything.json() == {"total": 3, "received": 2, "in_progress": 0, "resolved": 1, "critical": 2}


# ---------------------------------------------------------------------------
# Triage
# ---------------------------------------------------------------------------

class TestTriage:
    async def test_resolved_at_follows_status(self, client, submitter, handler):
        created = await _submit(client, submitter)

        resolved = await _patch(client, handler, created["id"], status="Resolved")
        assert resolved.status_code == 200
        stamp = resolved.json()["resolved_at"]
        assert stamp is not None

        still_resolved = await _patch(client, handler, created["id"], status="Resolved")
        assert still_resolved.json()["resolved_at"] is not None

        reopened = await _patch(client, handler, created["id"], status="In Progress")
        assert reopened.json()["resolved_at"] is None

        resolved_again = await _patch(client, handler, created["id"], status="Resolved")
        assert resolved_again.json()["resolved_at"] is not None

    async def test_update_refreshes_updated_at(self, client, submitter, handler):
        created = await _submit(client, submitter)

        updated = await _patch(client, handler, created["id"], status="Received")
        assert updated.status_code == 200

        before = datetime.fromisoformat(created["updated_at"])
        after = datetime.fromisoformat(updated.json()["updated_at"])
        assert after > before

    async def test_only_supplied_columns_change(self, client, submitter, handler):
        created = await _submit(client, submitter)

        updated = await _patch(
            client, handler, created["id"],
            assigned_handler="Daniel", deadline="2026-11-02T17:00:00+00:00"
        )
        body = updated.json()
        assert body["assigned_handler"] == "Daniel"
        assert body["deadline"].startswith("2026-11-02T17:00:00")
        assert body["status"] == created["status"]
        assert body["category"] == created["category"]

    async def test_submitter_cannot_triage(self, client, submitter):
        created = await _submit(client, submitter)

        response = await _patch(client, submitter, created["id"], status="Resolved")
        assert response.status_code == 403
        assert response.json()["detail"] == "Operation not permitted"
        assert "details" not in response.json()

        fetched = await client.get(f"/requests/{created['id']}", headers=submitter.headers)
        assert fetched.json()["status"] == "Received"

    async def test_content_fields_are_not_editable(self, client, submitter, handler):
        created = await _submit(client, submitter)

        response = await _patch(client, handler, created["id"], title="Renamed")
        assert response.status_code == 422

    async def test_empty_update_rejected(self, client, submitter, handler):
        created = await _submit(client, submitter)

        response = await _patch(client, handler, created["id"])
        assert response.status_code == 422

    async def test_null_status_rejected(self, client, submitter, handler):
        created = await _submit(client, submitter)

        response = await _patch(client, handler, created["id"], status=None)
        assert response.status_code == 422

    async def test_unknown_request_is_not_found(self, client, handler):
        response = await _patch(
            client, handler, "00000000-0000-4000-8000-000000000000", status="Resolved"
        )
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------

class TestDelete:
    async def test_submitter_cannot_delete(self, client, submitter):
        created = await _submit(client, submitter)

        response = await client.delete(f"/requests/{created['id']}", headers=submitter.headers)
        assert response.status_code == 403

    async def test_handler_deletes_with_comments(self, client, submitter, handler):
        created = await _submit(client, submitter)
        await client.post(
            f"/requests/{created['id']}/comments", json={"comment": "Hello"}, headers=submitter.headers
        )

        response = await client.delete(f"/requests/{created['id']}", headers=handler.headers)
        assert response.status_code == 204

        gone = await client.get(f"/requests/{created['id']}", headers=handler.headers)
        assert gone.status_code == 404
        comments = await client.get(f"/requests/{created['id']}/comments", headers=handler.headers)
        assert comments.status_code == 404


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class TestComments:
    async def test_thread_in_order(self, client, submitter, handler):
        created = await _submit(client, submitter)
        url = f"/requests/{created['id']}/comments"

        first = await client.post(url, json={"comment": "Any news?"}, headers=submitter.headers)
        second = await client.post(url, json={"comment": "Technician booked"}, headers=handler.headers)
        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["user_name"] == "Daniel"

        thread = await client.get(url, headers=submitter.headers)
        assert [c["comment"] for c in thread.json()] == ["Any news?", "Technician booked"]

    async def test_blank_comment_rejected(self, client, submitter):
        created = await _submit(client, submitter)

        response = await client.post(
            f"/requests/{created['id']}/comments", json={"comment": "  "}, headers=submitter.headers
        )
        assert response.status_code == 422

    async def test_other_submitter_cannot_see_or_comment(self, client, submitter, other_submitter):
        created = await _submit(client, submitter)
        url = f"/requests/{created['id']}/comments"

        listed = await client.get(url, headers=other_submitter.headers)
        posted = await client.post(url, json={"comment": "Me too"}, headers=other_submitter.headers)
        assert listed.status_code == 404
        assert posted.status_code == 404


# ---------------------------------------------------------------------------
# Service endpoints
# ---------------------------------------------------------------------------

class TestServiceEndpoints:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "connected"

    async def test_root(self, client):
        response = await client.get("/")
        assert response.json()["service"] == "Request Desk"

    async def test_correlation_id_echoed(self, client):
        response = await client.get("/", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"


@pytest.mark.parametrize("path", ["/requests", "/requests/stats", "/auth/me"])
async def test_authenticated_routes(client, path):
    response = await client.get(path)
    assert response.status_code == 401
