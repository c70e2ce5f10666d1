"""
Task list query tests.
Covers visibility scope, every filter, pagination clamping, ordering and
the my-assigned / my-created / overdue convenience views.
"""
from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.db.base import utcnow
from app.models.user import User

pytestmark = pytest.mark.asyncio

TASK_URL = "/api/v1/task"


async def _list(client: AsyncClient, headers: dict, **params) -> dict:
    response = await client.get(TASK_URL, params=params, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def _titles(page: dict) -> list[str]:
    return [item["title"] for item in page["items"]]


class TestScope:
    async def test_user_sees_created_and_assigned_only(
        self,
        client: AsyncClient,
        create_task,
        alice: User,
        alice_headers: dict,
        bob_headers: dict,
        make_user,
        headers_for,
    ) -> None:
        carol = await make_user(name="Carol")
        await create_task(alice_headers, title="Alice own")
        await create_task(bob_headers, title="Bob for Alice", assigned_to_user_id=alice.id)
        await create_task(bob_headers, title="Bob private")
        await create_task(headers_for(carol), title="Carol private")

        page = await _list(client, alice_headers)
        assert sorted(_titles(page)) == ["Alice own", "Bob for Alice"]
        assert page["total"] == 2

    async def test_admin_sees_all(
        self, client: AsyncClient, create_task, alice_headers: dict, bob_headers: dict, admin_headers: dict
    ) -> None:
        await create_task(alice_headers, title="A")
        await create_task(bob_headers, title="B")
        page = await _list(client, admin_headers)
        assert page["total"] == 2

    async def test_created_by_override_applies_regardless_of_role(
        self,
        client: AsyncClient,
        create_task,
        alice: User,
        alice_headers: dict,
        bob: User,
        bob_headers: dict,
        admin_headers: dict,
    ) -> None:
        await create_task(alice_headers, title="A1")
        await create_task(alice_headers, title="A2")
        await create_task(bob_headers, title="B1")

        admin_view = await _list(client, admin_headers, created_by_user_id=alice.id)
        assert sorted(_titles(admin_view)) == ["A1", "A2"]

        bob_view = await _list(client, bob_headers, created_by_user_id=bob.id)
        assert _titles(bob_view) == ["B1"]


class TestFilters:
    async def test_status_and_priority(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        high = await create_task(alice_headers, title="High", priority="High")
        await create_task(alice_headers, title="Low", priority="Low")
        await client.patch(
            f"{TASK_URL}/{high['id']}/status", json={"status": "InProgress"}, headers=alice_headers
        )

        assert _titles(await _list(client, alice_headers, priority="High")) == ["High"]
        assert _titles(await _list(client, alice_headers, status="InProgress")) == ["High"]
        assert _titles(await _list(client, alice_headers, status="1")) == ["High"]
        assert _titles(await _list(client, alice_headers, status="Pending", priority="High")) == []

    async def test_category_is_exact_match(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        await create_task(alice_headers, title="Work", category="Work")
        await create_task(alice_headers, title="Homework", category="Homework")
        assert _titles(await _list(client, alice_headers, category="Work")) == ["Work"]

    async def test_assignee_filter(
        self, client: AsyncClient, create_task, alice_headers: dict, bob: User
    ) -> None:
        await create_task(alice_headers, title="For Bob", assigned_to_user_id=bob.id)
        await create_task(alice_headers, title="Unassigned")
        assert _titles(await _list(client, alice_headers, assigned_to_user_id=bob.id)) == ["For Bob"]

    async def test_search_across_title_description_category(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        await create_task(alice_headers, title="Buy milk")
        await create_task(alice_headers, title="Call mom", description="about the milk order")
        await create_task(alice_headers, title="Fix bike", category="Milkshakes")
        await create_task(alice_headers, title="Unrelated")

        found = await _list(client, alice_headers, search="milk")
        assert sorted(_titles(found)) == ["Buy milk", "Call mom", "Fix bike"]

    async def test_search_treats_wildcards_literally(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        await create_task(alice_headers, title="has_underscore")
        await create_task(alice_headers, title="plain")
        await create_task(alice_headers, title="50% done")
        await create_task(alice_headers, title="50 apples")

        assert _titles(await _list(client, alice_headers, search="_")) == ["has_underscore"]
        assert _titles(await _list(client, alice_headers, search="50%")) == ["50% done"]

    async def test_due_date_range_is_inclusive(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        base = (utcnow() + timedelta(days=10)).replace(microsecond=0)
        await create_task(alice_headers, title="Day 0", due_date=base.isoformat())
        await create_task(alice_headers, title="Day 2", due_date=(base + timedelta(days=2)).isoformat())
        await create_task(alice_headers, title="Day 5", due_date=(base + timedelta(days=5)).isoformat())
        await create_task(alice_headers, title="No due date")

        page = await _list(
            client,
            alice_headers,
            due_date_from=base.isoformat(),
            due_date_to=(base + timedelta(days=2)).isoformat(),
        )
        assert sorted(_titles(page)) == ["Day 0", "Day 2"]

    async def test_inverted_range_returns_nothing(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        due = utcnow() + timedelta(days=1)
        await create_task(alice_headers, due_date=due.isoformat())
        page = await _list(
            client,
            alice_headers,
            due_date_from=(due + timedelta(days=1)).isoformat(),
            due_date_to=(due - timedelta(days=1)).isoformat(),
        )
        assert page["total"] == 0
        assert page["items"] == []

    async def test_overdue_flag(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        yesterday = (utcnow() - timedelta(days=1)).isoformat()
        late = await create_task(alice_headers, title="Late", due_date=yesterday)
        cancelled = await create_task(alice_headers, title="Late but cancelled", due_date=yesterday)
        await create_task(alice_headers, title="Future", due_date=(utcnow() + timedelta(days=1)).isoformat())
        await client.patch(
            f"{TASK_URL}/{cancelled['id']}/status", json={"status": "Cancelled"}, headers=alice_headers
        )

        assert _titles(await _list(client, alice_headers, is_overdue="true")) == ["Late"]

        await client.patch(
            f"{TASK_URL}/{late['id']}/status", json={"status": "Completed"}, headers=alice_headers
        )
        assert _titles(await _list(client, alice_headers, is_overdue="true")) == []


class TestPagination:
    async def test_pages_and_ordering(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        for number in range(5):
            await create_task(alice_headers, title=f"Task {number}")

        first = await _list(client, alice_headers, page=1, size=2)
        assert first["total"] == 5
        assert first["pages"] == 3
        assert first["size"] == 2
        assert _titles(first) == ["Task 4", "Task 3"]

        last = await _list(client, alice_headers, page=3, size=2)
        assert _titles(last) == ["Task 0"]

    async def test_page_beyond_last_is_empty(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        await create_task(alice_headers)
        page = await _list(client, alice_headers, page=9, size=10)
        assert page["items"] == []
        assert page["total"] == 1
        assert page["page"] == 9

    async def test_clamping(self, client: AsyncClient, create_task, alice_headers: dict) -> None:
        await create_task(alice_headers)
        page = await _list(client, alice_headers, page=0, size=0)
        assert page["page"] == 1
        assert page["size"] == 10

        big = await _list(client, alice_headers, page=-4, size=1000)
        assert big["page"] == 1
        assert big["size"] == 100


class TestConvenienceViews:
    async def test_my_assigned(
        self,
        client: AsyncClient,
        create_task,
        alice_headers: dict,
        bob: User,
        bob_headers: dict,
    ) -> None:
        await create_task(alice_headers, title="For Bob", assigned_to_user_id=bob.id)
        await create_task(bob_headers, title="Bob own")

        response = await client.get(f"{TASK_URL}/my-assigned", headers=bob_headers)
        assert response.status_code == 200
        assert _titles(response.json()) == ["For Bob"]

    async def test_my_created_with_status(
        self, client: AsyncClient, create_task, alice_headers: dict, bob: User
    ) -> None:
        done = await create_task(alice_headers, title="Done", assigned_to_user_id=bob.id)
        await create_task(alice_headers, title="Open")
        await client.patch(
            f"{TASK_URL}/{done['id']}/status", json={"status": "Completed"}, headers=alice_headers
        )

        everything = await client.get(f"{TASK_URL}/my-created", headers=alice_headers)
        completed = await client.get(
            f"{TASK_URL}/my-created", params={"status": "Completed"}, headers=alice_headers
        )
        assert sorted(_titles(everything.json())) == ["Done", "Open"]
        assert _titles(completed.json()) == ["Done"]

    async def test_overdue_view(
        self, client: AsyncClient, create_task, alice_headers: dict
    ) -> None:
        await create_task(alice_headers, title="Late", due_date=(utcnow() - timedelta(hours=2)).isoformat())
        await create_task(alice_headers, title="Fine")
        response = await client.get(f"{TASK_URL}/overdue", headers=alice_headers)
        assert response.status_code == 200
        assert _titles(response.json()) == ["Late"]
