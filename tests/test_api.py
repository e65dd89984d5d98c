"""Tests for the process-desk REST API endpoints.

Covers process CRUD, completed-action toggling, deadline alerts and
backup export/import. Uses httpx.AsyncClient with ASGITransport for
async FastAPI testing.
"""

from collections.abc import AsyncGenerator
from datetime import date, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.app import create_app
from db.migrations import init_db


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture()
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "test.db")
    conn = init_db(path)
    conn.close()
    return path


@pytest_asyncio.fixture()
async def client(db_path: str) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(db_path=db_path)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def _body(**overrides) -> dict:
    body = {
        "number": "IP 42/2024",
        "type": "IP",
        "status": "Aguardando Oitiva",
        "due_date": "2030-01-15",
        "forwarding": "Escrivão",
        "pending_actions": ["Intimar vítima", "Requisitar laudo"],
        "summary": "Lesão corporal",
    }
    body.update(overrides)
    return body


async def _create_process(client: AsyncClient, **overrides) -> dict:
    """Helper to create a process and return the response body."""
    resp = await client.post("/processes", json=_body(**overrides))
    assert resp.status_code == 201
    return resp.json()


# ── TestCreateProcess ─────────────────────────────────────


class TestCreateProcess:
    """POST /processes creates a process."""

    @pytest.mark.asyncio
    async def test_returns_201_and_record(self, client: AsyncClient) -> None:
        process = await _create_process(client)
        for key, value in _body().items():
            assert process[key] == value
        assert process["id"]
        assert process["created_at"] == process["updated_at"]

    @pytest.mark.asyncio
    async def test_defaults(self, client: AsyncClient) -> None:
        body = _body()
        del body["summary"]
        del body["pending_actions"]
        resp = await client.post("/processes", json=body)
        assert resp.status_code == 201
        assert resp.json()["pending_actions"] == []
        assert resp.json()["summary"] is None

    @pytest.mark.asyncio
    async def test_missing_required_field_422(self, client: AsyncClient) -> None:
        body = _body()
        del body["number"]
        resp = await client.post("/processes", json=body)
        assert resp.status_code == 422


# ── TestListProcesses ─────────────────────────────────────


class TestListProcesses:
    """GET /processes lists all processes."""

    @pytest.mark.asyncio
    async def test_empty_list(self, client: AsyncClient) -> None:
        resp = await client.get("/processes")
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_lists_newest_first(self, client: AsyncClient) -> None:
        first = await _create_process(client, number="first")
        second = await _create_process(client, number="second")

        resp = await client.get("/processes")
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json()] == [second["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_listed_equals_created(self, client: AsyncClient) -> None:
        created = await _create_process(client)
        resp = await client.get("/processes")
        assert resp.json() == [created]


# ── TestUpdateProcess ─────────────────────────────────────


class TestUpdateProcess:
    """PATCH /processes/{id} updates supplied fields only."""

    @pytest.mark.asyncio
    async def test_partial_update(self, client: AsyncClient) -> None:
        created = await _create_process(client)

        resp = await client.patch(
            f"/processes/{created['id']}",
            json={"status": "Relatado", "pending_actions": ["Arquivar"]},
        )
        assert resp.status_code == 200
        updated = resp.json()
        assert updated["status"] == "Relatado"
        assert updated["pending_actions"] == ["Arquivar"]
        assert updated["number"] == created["number"]
        assert updated["summary"] == created["summary"]
        assert updated["created_at"] == created["created_at"]
        assert updated["updated_at"] >= created["updated_at"]

    @pytest.mark.asyncio
    async def test_empty_body_422(self, client: AsyncClient) -> None:
        created = await _create_process(client)

        resp = await client.patch(f"/processes/{created['id']}", json={})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Nothing to update"

        listed = (await client.get("/processes")).json()
        assert listed == [created]

    @pytest.mark.asyncio
    async def test_null_fields_count_as_absent(self, client: AsyncClient) -> None:
        created = await _create_process(client)
        resp = await client.patch(
            f"/processes/{created['id']}", json={"status": None, "summary": None}
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_nonexistent_404(self, client: AsyncClient) -> None:
        resp = await client.patch("/processes/nonexistent-id", json={"status": "x"})
        assert resp.status_code == 404

        listed = await client.get("/processes")
        assert listed.json() == []


# ── TestDeleteProcess ─────────────────────────────────────


class TestDeleteProcess:
    """DELETE /processes/{id} removes a process."""

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient) -> None:
        created = await _create_process(client)

        resp = await client.delete(f"/processes/{created['id']}")
        assert resp.status_code == 204
        assert (await client.get("/processes")).json() == []

    @pytest.mark.asyncio
    async def test_delete_twice(self, client: AsyncClient) -> None:
        created = await _create_process(client)

        first = await client.delete(f"/processes/{created['id']}")
        second = await client.delete(f"/processes/{created['id']}")
        assert first.status_code == 204
        assert second.status_code == 204

    @pytest.mark.asyncio
    async def test_completed_actions_survive_delete(
        self, client: AsyncClient
    ) -> None:
        created = await _create_process(client)
        await client.post(
            f"/processes/{created['id']}/actions/toggle",
            json={"action_text": "Intimar vítima"},
        )

        await client.delete(f"/processes/{created['id']}")

        resp = await client.get("/completed-actions")
        assert resp.json() == {created["id"]: ["Intimar vítima"]}


# ── TestCompletedActions ──────────────────────────────────


class TestCompletedActions:
    """Toggle and list completion markers."""

    @pytest.mark.asyncio
    async def test_empty_mapping(self, client: AsyncClient) -> None:
        resp = await client.get("/completed-actions")
        assert resp.status_code == 200
        assert resp.json() == {}

    @pytest.mark.asyncio
    async def test_toggle_twice(self, client: AsyncClient) -> None:
        created = await _create_process(client)
        url = f"/processes/{created['id']}/actions/toggle"

        first = await client.post(url, json={"action_text": "Requisitar laudo"})
        assert first.status_code == 200
        assert first.json() == {"completed": True}
        listed = (await client.get("/completed-actions")).json()
        assert listed == {created["id"]: ["Requisitar laudo"]}

        second = await client.post(url, json={"action_text": "Requisitar laudo"})
        assert second.json() == {"completed": False}
        assert (await client.get("/completed-actions")).json() == {}

    @pytest.mark.asyncio
    async def test_toggle_requires_action_text(self, client: AsyncClient) -> None:
        resp = await client.post("/processes/p1/actions/toggle", json={})
        assert resp.status_code == 422


# ── TestAlerts ────────────────────────────────────────────


class TestAlerts:
    """GET /processes/alerts lists processes with pressing due dates."""

    @pytest.mark.asyncio
    async def test_flags_overdue_only(self, client: AsyncClient) -> None:
        overdue = (date.today() - timedelta(days=3)).isoformat()
        far = date.today() + timedelta(days=30)
        while far.weekday() >= 5:
            far += timedelta(days=1)

        late = await _create_process(client, number="late", due_date=overdue)
        await _create_process(client, number="fine", due_date=far.isoformat())
        await _create_process(client, number="free text", due_date="amanhã")

        resp = await client.get("/processes/alerts")
        assert resp.status_code == 200
        alerts = resp.json()
        assert [a["id"] for a in alerts] == [late["id"]]
        assert alerts[0]["due_status"] == "overdue"
        assert alerts[0]["days_until_due"] == -3


# ── TestBackup ────────────────────────────────────────────


class TestBackup:
    """GET /export and POST /import."""

    @pytest.mark.asyncio
    async def test_export_document(self, client: AsyncClient) -> None:
        created = await _create_process(client)
        await client.post(
            f"/processes/{created['id']}/actions/toggle",
            json={"action_text": "Intimar vítima"},
        )

        resp = await client.get("/export")
        assert resp.status_code == 200
        doc = resp.json()
        assert doc["version"] == "1.0"
        assert "exportDate" in doc
        assert doc["data"]["processes"] == [created]
        assert doc["data"]["completedActions"] == {created["id"]: ["Intimar vítima"]}

    @pytest.mark.asyncio
    async def test_import_into_fresh_db(
        self, client: AsyncClient, tmp_path: Path
    ) -> None:
        created = await _create_process(client)
        await client.post(
            f"/processes/{created['id']}/actions/toggle",
            json={"action_text": "Intimar vítima"},
        )
        doc = (await client.get("/export")).json()

        other_path = str(tmp_path / "other.db")
        init_db(other_path).close()
        other = create_app(db_path=other_path)
        async with AsyncClient(
            transport=ASGITransport(app=other), base_url="http://test"
        ) as ac:
            resp = await ac.post("/import", json=doc)
            assert resp.status_code == 200
            assert resp.json() == {"processes": 1, "completed_actions": 1}
            assert (await ac.get("/processes")).json() == [created]
            assert (await ac.get("/completed-actions")).json() == {
                created["id"]: ["Intimar vítima"]
            }

    @pytest.mark.asyncio
    async def test_import_invalid_document_422(self, client: AsyncClient) -> None:
        resp = await client.post("/import", json={"data": {}})
        assert resp.status_code == 422
