"""
Chart exports and humanizer logs: workspace roles and per-user privacy.
"""

from __future__ import annotations

import uuid

import pytest

from researchai.core.security import Principal
from researchai.repositories.artifact_repository import ChartExportRepository, HumanizerLogRepository
from researchai.repositories.workspace_repository import WorkspaceRepository
from researchai.schemas.workspace_artifacts import ChartExportCreate, HumanizerLogCreate
from researchai.services.access_policy import AccessDeniedError, OwnershipMismatchError
from researchai.services.workspace_artifact_service import (
    ChartExportNotFoundError,
    ChartExportService,
    HumanizerLogService,
)
from researchai.services.workspace_service import WorkspaceNotFoundError


@pytest.fixture
def workspaces(db) -> WorkspaceRepository:
    return WorkspaceRepository(db)


@pytest.fixture
def charts(db, workspaces) -> ChartExportService:
    return ChartExportService(repository=ChartExportRepository(db), workspaces=workspaces)


@pytest.fixture
def humanizer(db, workspaces) -> HumanizerLogService:
    return HumanizerLogService(repository=HumanizerLogRepository(db), workspaces=workspaces)


@pytest.fixture
def workspace(workspaces, alice):
    return workspaces.create(name="Literature review", owner_id=alice.user_id)


def _chart(**overrides) -> ChartExportCreate:
    data = {"type": "line", "title": "Citations per year", "params": {"years": [2019, 2020]}}
    data.update(overrides)
    return ChartExportCreate(**data)


class TestWorkspaceRepository:
    def test_creator_becomes_owner(self, workspaces, workspace, alice):
        assert workspaces.get_role(workspace.id, alice.user_id) == "owner"

    def test_non_member_has_no_role(self, workspaces, workspace, bob):
        assert workspaces.get_role(workspace.id, bob.user_id) is None


class TestChartExports:
    def test_owner_can_create_and_list(self, charts, workspace, alice):
        row = charts.create(alice, workspace.id, _chart())
        assert row.user_id == alice.user_id
        assert row.params == {"years": [2019, 2020]}
        assert [r.id for r in charts.list(alice, workspace.id)] == [row.id]

    def test_editor_can_create(self, charts, workspaces, workspace, bob):
        workspaces.add_collaborator(workspace.id, bob.user_id, role="editor")
        assert charts.create(bob, workspace.id, _chart(type="network")).type == "network"

    def test_viewer_can_list_but_not_create(self, charts, workspaces, workspace, alice, bob):
        workspaces.add_collaborator(workspace.id, bob.user_id, role="viewer")
        charts.create(alice, workspace.id, _chart())

        assert len(charts.list(bob, workspace.id)) == 1
        with pytest.raises(AccessDeniedError):
            charts.create(bob, workspace.id, _chart())

    def test_outsider_cannot_list(self, charts, workspace, bob):
        with pytest.raises(AccessDeniedError):
            charts.list(bob, workspace.id)

    def test_cannot_create_on_behalf_of_someone_else(self, charts, workspace, alice, bob):
        with pytest.raises(OwnershipMismatchError):
            charts.create(alice, workspace.id, _chart(user_id=bob.user_id))

    def test_anonymous_cannot_create(self, charts, workspace, anonymous):
        with pytest.raises(AccessDeniedError):
            charts.create(anonymous, workspace.id, _chart())

    def test_unknown_workspace(self, charts, alice):
        with pytest.raises(WorkspaceNotFoundError):
            charts.list(alice, uuid.uuid4())

    def test_only_creator_can_delete(self, charts, workspaces, workspace, alice, bob):
        workspaces.add_collaborator(workspace.id, bob.user_id, role="editor")
        row = charts.create(bob, workspace.id, _chart())

        with pytest.raises(AccessDeniedError):
            charts.delete(alice, row.id)

        charts.delete(bob, row.id)
        assert charts.list(alice, workspace.id) == []

    def test_delete_missing_export(self, charts, alice):
        with pytest.raises(ChartExportNotFoundError):
            charts.delete(alice, uuid.uuid4())


class TestHumanizerLogs:
    def _log(self, **overrides) -> HumanizerLogCreate:
        data = {
            "input_text": "The results was significant.",
            "output_text": "The results were significant.",
            "provider": "Cerebras",
            "input_tokens": 6,
            "output_tokens": 6,
        }
        data.update(overrides)
        return HumanizerLogCreate(**data)

    def test_logs_are_private(self, humanizer, alice, bob):
        humanizer.record(alice, self._log())
        humanizer.record(bob, self._log())

        rows = humanizer.list(alice)
        assert len(rows) == 1
        assert rows[0].user_id == alice.user_id
        assert rows[0].provider == "cerebras"
        assert rows[0].success is True

    def test_failed_request_is_logged(self, humanizer, alice):
        row = humanizer.record(alice, self._log(success=False, output_text="", error_message="rate limited"))
        assert row.success is False
        assert row.error_message == "rate limited"

    def test_anonymous_cannot_log_or_read(self, humanizer, anonymous):
        with pytest.raises(AccessDeniedError):
            humanizer.record(anonymous, self._log())
        with pytest.raises(AccessDeniedError):
            humanizer.list(anonymous)

    def test_cannot_log_for_someone_else(self, humanizer, alice, bob):
        with pytest.raises(OwnershipMismatchError):
            humanizer.record(alice, self._log(user_id=bob.user_id))

    def test_unknown_workspace_is_rejected(self, humanizer, alice):
        with pytest.raises(WorkspaceNotFoundError):
            humanizer.record(alice, self._log(workspace_id=uuid.uuid4()))


class TestRoutes:
    def _setup_workspace(self, engine, owner_id: uuid.UUID) -> uuid.UUID:
        from sqlalchemy.orm import Session

        with Session(engine, expire_on_commit=False) as session:
            return WorkspaceRepository(session).create(name="ws", owner_id=owner_id).id

    def test_chart_export_roundtrip_over_http(self, client, engine, make_token):
        owner = uuid.uuid4()
        workspace_id = self._setup_workspace(engine, owner)
        headers = {"Authorization": f"Bearer {make_token(owner)}"}

        created = client.post(
            f"/workspaces/{workspace_id}/chart-exports",
            json={"type": "bar", "title": "Venues"},
            headers=headers,
        )
        assert created.status_code == 201
        export_id = created.json()["id"]

        listed = client.get(f"/workspaces/{workspace_id}/chart-exports", headers=headers)
        assert [r["id"] for r in listed.json()] == [export_id]

        assert client.delete(f"/chart-exports/{export_id}", headers=headers).status_code == 204
        assert client.delete(f"/chart-exports/{export_id}", headers=headers).status_code == 404

    def test_chart_type_is_validated(self, client, engine, make_token):
        owner = uuid.uuid4()
        workspace_id = self._setup_workspace(engine, owner)
        resp = client.post(
            f"/workspaces/{workspace_id}/chart-exports",
            json={"type": "radar"},
            headers={"Authorization": f"Bearer {make_token(owner)}"},
        )
        assert resp.status_code == 422

    def test_outsider_gets_forbidden(self, client, engine, make_token):
        workspace_id = self._setup_workspace(engine, uuid.uuid4())
        resp = client.get(
            f"/workspaces/{workspace_id}/chart-exports",
            headers={"Authorization": f"Bearer {make_token(uuid.uuid4())}"},
        )
        assert resp.status_code == 403

    def test_humanizer_log_requires_authentication(self, client):
        resp = client.post(
            "/humanizer-logs",
            json={"input_text": "a", "output_text": "b", "provider": "openai"},
        )
        assert resp.status_code == 403

    def test_humanizer_log_over_http(self, client, make_token):
        headers = {"Authorization": f"Bearer {make_token(uuid.uuid4())}"}
        resp = client.post(
            "/humanizer-logs",
            json={"input_text": "a", "output_text": "b", "provider": "huggingface", "model": "t5-base"},
            headers=headers,
        )
        assert resp.status_code == 201
        assert client.get("/humanizer-logs", headers=headers).json()[0]["model"] == "t5-base"


def test_principal_helpers():
    assert Principal.anonymous().is_anonymous
    assert Principal.authenticated(uuid.uuid4()).role == "authenticated"
