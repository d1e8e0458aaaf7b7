"""Tests for API endpoints."""

from datetime import datetime

import pytest

from tasknest.events import get_broker


async def create_todo(client, headers, **payload):
    response = await client.post("/api/todos", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def create_category(client, headers, name, color="#3B82F6"):
    response = await client.post(
        "/api/categories", json={"name": name, "color": color}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Test health check returns healthy status."""
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data


class TestAuthentication:
    """Tests for caller identification."""

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        """Test that requests without a token are rejected."""
        response = await client.get("/api/todos")
        assert response.status_code == 401
        assert response.json() == {
            "error": "authentication_error",
            "detail": "Not authenticated",
        }
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_bad_token(self, client):
        """Test that a token signed with the wrong key is rejected."""
        response = await client.get(
            "/api/todos", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_events_require_token(self, client):
        """Test that the change feed is not open to anonymous clients."""
        response = await client.get("/api/events")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me_creates_user_once(self, client, token_for):
        """Test first contact creates the user and later calls reuse it."""
        token = token_for("user_carol", email="carol@example.com", name="Carol")
        headers = {"Authorization": f"Bearer {token}"}

        first = await client.post("/api/users/me", headers=headers)
        second = await client.get("/api/users/me", headers=headers)

        assert first.status_code == 200
        assert first.json()["external_id"] == "user_carol"
        assert first.json()["email"] == "carol@example.com"
        assert first.json()["name"] == "Carol"
        assert second.json()["id"] == first.json()["id"]


class TestTodoEndpoints:
    """Tests for todo endpoints."""

    @pytest.mark.asyncio
    async def test_list_todos_empty(self, client, alice_headers):
        """Test listing todos when empty."""
        response = await client.get("/api/todos", headers=alice_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0
        assert data["summary"] == {"total": 0, "completed": 0, "active": 0}

    @pytest.mark.asyncio
    async def test_create_todo(self, client, alice_headers):
        """Test creating a todo."""
        data = await create_todo(
            client, alice_headers, title="  Test todo ", description="Test description"
        )
        assert data["title"] == "Test todo"
        assert data["description"] == "Test description"
        assert data["completed"] is False
        assert data["category_id"] is None
        assert "id" in data

    @pytest.mark.asyncio
    async def test_create_todo_validation(self, client, alice_headers):
        """Test that an over-long title is a 400 naming the field."""
        response = await client.post(
            "/api/todos", json={"title": "x" * 201}, headers=alice_headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["field"] == "title"

    @pytest.mark.asyncio
    async def test_get_todo(self, client, alice_headers):
        """Test getting a single todo."""
        created = await create_todo(client, alice_headers, title="Get me")

        response = await client.get(f"/api/todos/{created['id']}", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Get me"

    @pytest.mark.asyncio
    async def test_get_todo_not_found(self, client, alice_headers):
        """Test getting a non-existent todo."""
        response = await client.get("/api/todos/nonexistent-id", headers=alice_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Todo with id nonexistent-id not found"

    @pytest.mark.asyncio
    async def test_other_users_todo_is_forbidden(self, client, alice_headers, bob_headers):
        """Test that one user cannot see or change another user's todo."""
        created = await create_todo(client, alice_headers, title="Alice only")
        url = f"/api/todos/{created['id']}"

        assert (await client.get(url, headers=bob_headers)).status_code == 403
        assert (
            await client.patch(url, json={"completed": True}, headers=bob_headers)
        ).status_code == 403
        assert (await client.delete(url, headers=bob_headers)).status_code == 403

        listing = await client.get("/api/todos", headers=bob_headers)
        assert listing.json()["items"] == []

    @pytest.mark.asyncio
    async def test_update_todo(self, client, alice_headers):
        """Test updating a todo."""
        created = await create_todo(client, alice_headers, title="Original")

        response = await client.put(
            f"/api/todos/{created['id']}",
            json={"title": "Updated", "completed": True},
            headers=alice_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Updated"
        assert data["completed"] is True

    @pytest.mark.asyncio
    async def test_patch_clears_category(self, client, alice_headers):
        """Test that an explicit null removes the category and omission keeps it."""
        category = await create_category(client, alice_headers, "Work")
        created = await create_todo(
            client, alice_headers, title="Filed", category_id=category["id"]
        )
        url = f"/api/todos/{created['id']}"

        kept = await client.patch(url, json={"title": "Renamed"}, headers=alice_headers)
        assert kept.json()["category_id"] == category["id"]

        cleared = await client.patch(url, json={"category_id": None}, headers=alice_headers)
        assert cleared.json()["category_id"] is None

    @pytest.mark.asyncio
    async def test_delete_todo(self, client, alice_headers):
        """Test deleting a todo."""
        created = await create_todo(client, alice_headers, title="Delete me")

        response = await client.delete(f"/api/todos/{created['id']}", headers=alice_headers)
        assert response.status_code == 204

        response = await client.get(f"/api/todos/{created['id']}", headers=alice_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_view_params(self, client, alice_headers):
        """Test filtering, searching and summary on the list endpoint."""
        first = await create_todo(client, alice_headers, title="Buy milk")
        await create_todo(client, alice_headers, title="Call mom")
        await client.patch(
            f"/api/todos/{first['id']}", json={"completed": True}, headers=alice_headers
        )

        active = await client.get("/api/todos?view=active", headers=alice_headers)
        assert [t["title"] for t in active.json()["items"]] == ["Call mom"]
        assert active.json()["summary"] == {"total": 2, "completed": 1, "active": 1}

        search = await client.get("/api/todos?q=MILK", headers=alice_headers)
        assert [t["title"] for t in search.json()["items"]] == ["Buy milk"]

        by_title = await client.get(
            "/api/todos?sort_by=title&order=asc", headers=alice_headers
        )
        assert [t["title"] for t in by_title.json()["items"]] == ["Buy milk", "Call mom"]

    @pytest.mark.asyncio
    async def test_list_by_category(self, client, alice_headers):
        """Test the by-category listing and the uncategorized filter."""
        category = await create_category(client, alice_headers, "Work")
        await create_todo(client, alice_headers, title="Filed", category_id=category["id"])
        await create_todo(client, alice_headers, title="Loose")

        filed = await client.get(
            f"/api/todos/by-category?category_id={category['id']}", headers=alice_headers
        )
        loose = await client.get("/api/todos/by-category", headers=alice_headers)
        none_view = await client.get("/api/todos?category_id=none", headers=alice_headers)

        assert [t["title"] for t in filed.json()] == ["Filed"]
        assert [t["title"] for t in loose.json()] == ["Loose"]
        assert [t["title"] for t in none_view.json()["items"]] == ["Loose"]

    @pytest.mark.asyncio
    async def test_bulk_complete(self, client, alice_headers):
        """Test completing several todos in one request."""
        ids = [(await create_todo(client, alice_headers, title=f"T{i}"))["id"] for i in range(3)]

        response = await client.post(
            "/api/todos/bulk/complete",
            json={"ids": ids[:2], "completed": True},
            headers=alice_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"updated_count": 2}

        listing = await client.get("/api/todos", headers=alice_headers)
        assert listing.json()["summary"]["completed"] == 2

    @pytest.mark.asyncio
    async def test_bulk_complete_rejects_foreign_ids(self, client, alice_headers, bob_headers):
        """Test that a batch containing someone else's todo changes nothing."""
        mine = await create_todo(client, alice_headers, title="Mine")
        theirs = await create_todo(client, bob_headers, title="Theirs")

        response = await client.post(
            "/api/todos/bulk/complete",
            json={"ids": [mine["id"], theirs["id"]], "completed": True},
            headers=alice_headers,
        )
        assert response.status_code == 403

        mine_now = await client.get(f"/api/todos/{mine['id']}", headers=alice_headers)
        assert mine_now.json()["completed"] is False

    @pytest.mark.asyncio
    async def test_timestamps_are_stable_utc(self, client, alice_headers):
        """Test that a timestamp reads back in the same UTC form it was written."""
        created = await create_todo(client, alice_headers, title="Stamp me")
        url = f"/api/todos/{created['id']}"

        fetched = (await client.get(url, headers=alice_headers)).json()
        patched = (
            await client.patch(url, json={"completed": True}, headers=alice_headers)
        ).json()

        assert fetched["created_at"] == created["created_at"]
        assert fetched["updated_at"] == created["updated_at"]
        assert created["created_at"].endswith("Z")
        assert patched["created_at"] == created["created_at"]
        assert patched["updated_at"].endswith("Z")
        assert datetime.fromisoformat(patched["updated_at"]) > datetime.fromisoformat(
            patched["created_at"]
        )

    @pytest.mark.asyncio
    async def test_bulk_event_lists_each_todo_once(self, client, alice_headers):
        """Test that repeated ids are counted and announced once."""
        first = await create_todo(client, alice_headers, title="One")
        second = await create_todo(client, alice_headers, title="Two")
        me = (await client.get("/api/users/me", headers=alice_headers)).json()

        async with get_broker().subscribe(me["id"]) as queue:
            response = await client.post(
                "/api/todos/bulk/complete",
                json={"ids": [first["id"], second["id"], first["id"]], "completed": True},
                headers=alice_headers,
            )
            event = queue.get_nowait()

        assert response.json() == {"updated_count": 2}
        assert event.resource == "todos"
        assert event.action == "updated"
        assert event.ids == [first["id"], second["id"]]

    @pytest.mark.asyncio
    async def test_bulk_requires_ids(self, client, alice_headers):
        """Test that an empty id list fails request validation."""
        response = await client.post(
            "/api/todos/bulk/delete", json={"ids": []}, headers=alice_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_bulk_delete(self, client, alice_headers):
        """Test deleting several todos in one request."""
        ids = [(await create_todo(client, alice_headers, title=f"T{i}"))["id"] for i in range(3)]

        response = await client.post(
            "/api/todos/bulk/delete", json={"ids": ids[:2]}, headers=alice_headers
        )
        assert response.status_code == 200
        assert response.json() == {"deleted_count": 2}

        listing = await client.get("/api/todos", headers=alice_headers)
        assert [t["id"] for t in listing.json()["items"]] == [ids[2]]

    @pytest.mark.asyncio
    async def test_delete_completed(self, client, alice_headers):
        """Test clearing completed todos."""
        done = await create_todo(client, alice_headers, title="Done")
        await create_todo(client, alice_headers, title="Open")
        await client.patch(
            f"/api/todos/{done['id']}", json={"completed": True}, headers=alice_headers
        )

        response = await client.delete("/api/todos/completed", headers=alice_headers)
        assert response.status_code == 200
        assert response.json() == {"deleted_count": 1}

        listing = await client.get("/api/todos", headers=alice_headers)
        assert [t["title"] for t in listing.json()["items"]] == ["Open"]


class TestCategoryEndpoints:
    """Tests for category endpoints."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, client, alice_headers, bob_headers):
        """Test creating a category and listing is per user."""
        created = await create_category(client, alice_headers, "Work", "#FF0000")
        assert created["name"] == "Work"
        assert created["color"] == "#FF0000"

        mine = await client.get("/api/categories", headers=alice_headers)
        theirs = await client.get("/api/categories", headers=bob_headers)
        assert [c["name"] for c in mine.json()] == ["Work"]
        assert theirs.json() == []

    @pytest.mark.asyncio
    async def test_duplicate_name(self, client, alice_headers, bob_headers):
        """Test duplicate names conflict per user only."""
        await create_category(client, alice_headers, "Work")

        response = await client.post(
            "/api/categories", json={"name": "Work", "color": "#000000"}, headers=alice_headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

        await create_category(client, bob_headers, "Work")

    @pytest.mark.asyncio
    async def test_blank_name(self, client, alice_headers):
        response = await client.post(
            "/api/categories", json={"name": "  ", "color": "#000000"}, headers=alice_headers
        )
        assert response.status_code == 400
        assert response.json()["field"] == "name"

    @pytest.mark.asyncio
    async def test_update_category(self, client, alice_headers):
        created = await create_category(client, alice_headers, "Work")

        response = await client.patch(
            f"/api/categories/{created['id']}",
            json={"color": "#00FF00"},
            headers=alice_headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Work"
        assert response.json()["color"] == "#00FF00"

    @pytest.mark.asyncio
    async def test_delete_in_use(self, client, alice_headers):
        """Test that a referenced category cannot be deleted."""
        category = await create_category(client, alice_headers, "Work")
        await create_todo(client, alice_headers, title="Filed", category_id=category["id"])

        response = await client.delete(
            f"/api/categories/{category['id']}", headers=alice_headers
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Cannot delete category that is being used by todos"

    @pytest.mark.asyncio
    async def test_delete_category(self, client, alice_headers, bob_headers):
        category = await create_category(client, alice_headers, "Spare")

        forbidden = await client.delete(f"/api/categories/{category['id']}", headers=bob_headers)
        assert forbidden.status_code == 403

        response = await client.delete(
            f"/api/categories/{category['id']}", headers=alice_headers
        )
        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_defaults_are_seeded_once(self, client, alice_headers):
        """Test that default categories are only created for an empty list."""
        first = await client.post("/api/categories/defaults", headers=alice_headers)
        second = await client.post("/api/categories/defaults", headers=alice_headers)

        assert len(first.json()["created"]) == 6
        assert second.json()["created"] == []

        listing = await client.get("/api/categories", headers=alice_headers)
        assert len(listing.json()) == 6

    @pytest.mark.asyncio
    async def test_usage(self, client, alice_headers):
        category = await create_category(client, alice_headers, "Work")
        await create_todo(client, alice_headers, title="Filed", category_id=category["id"])
        await create_todo(client, alice_headers, title="Loose")

        response = await client.get("/api/categories/usage", headers=alice_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["uncategorized"] == 1
        assert data["items"][0]["name"] == "Work"
        assert data["items"][0]["total"] == 1
        assert data["items"][0]["completed"] == 0


class TestScenario:
    """End-to-end walk through a user's list."""

    @pytest.mark.asyncio
    async def test_full_flow(self, client, headers_for):
        headers = headers_for("user_dana")

        seeded = await client.post("/api/categories/defaults", headers=headers)
        work = next(c for c in seeded.json()["created"] if c["name"] == "Work")

        report = await create_todo(client, headers, title="Write report", category_id=work["id"])
        await create_todo(client, headers, title="Water plants")

        await client.post(
            "/api/todos/bulk/complete",
            json={"ids": [report["id"]], "completed": True},
            headers=headers,
        )
        blocked = await client.delete(f"/api/categories/{work['id']}", headers=headers)
        assert blocked.status_code == 409

        cleared = await client.delete("/api/todos/completed", headers=headers)
        assert cleared.json() == {"deleted_count": 1}

        removed = await client.delete(f"/api/categories/{work['id']}", headers=headers)
        assert removed.status_code == 204

        listing = await client.get("/api/todos", headers=headers)
        assert listing.json()["summary"] == {"total": 1, "completed": 0, "active": 1}
