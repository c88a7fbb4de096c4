"""
Integration tests for the FastAPI route protection dependencies.

A small app stands in for the host service: a middleware plays the
authentication layer by copying the X-User-Id header onto request.state.
"""

from typing import Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI, Request
from sqlalchemy.exc import OperationalError

from authz.core.database.engine import get_db
from authz.features.audit.models import ACTION_MAX_LENGTH, USER_AGENT_MAX_LENGTH, AuditStatus
from authz.features.audit.service import get_audit_logs
from authz.features.permissions import dependencies
from authz.features.permissions.dependencies import require_access, require_scope
from authz.features.permissions.scopes import Scope
from tests.factories import ADMIN_ID, OWNER_ID, VIEWER_ID


def build_app(db) -> FastAPI:
    app = FastAPI()

    @app.middleware("http")
    async def authenticate(request: Request, call_next):
        user_id = request.headers.get("X-User-Id")
        request.state.user_id = int(user_id) if user_id else None
        return await call_next(request)

    async def override_get_db():
        # Same commit / rollback contract as get_db, on the test session
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    @app.get("/tasks")
    async def list_tasks(user_id: Optional[int] = Depends(require_access(permissions=["read_task"]))):
        return {"user_id": user_id}

    @app.get("/tasks/organization/all")
    async def list_all_tasks(
        user_id: Optional[int] = Depends(require_access(roles=["owner"], permissions=["read_task"]))
    ):
        return {"user_id": user_id}

    @app.get("/audit-log")
    async def audit_log(
        user_id: Optional[int] = Depends(
            require_access(permissions=["view_audit_log"], action="read_audit_log", resource="audit")
        )
    ):
        return {"user_id": user_id}

    @app.get("/reports/{name}")
    async def report(name: str, user_id: Optional[int] = Depends(require_access(permissions=["read_task"]))):
        return {"name": name}

    @app.get("/visible-users")
    async def visible_users(user_ids: set[int] = Depends(require_scope(Scope.SUB, resource="users"))):
        return sorted(user_ids)

    @app.get("/team")
    async def team(user_ids: set[int] = Depends(require_scope(Scope.OWN, action="list_team"))):
        return sorted(user_ids)

    return app


@pytest_asyncio.fixture
async def client(scenario, db):
    transport = httpx.ASGITransport(app=build_app(db))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def _as(user_id: int) -> dict[str, str]:
    return {"X-User-Id": str(user_id)}


class TestRequireAccess:
    """Decisions map onto HTTP status codes and audit entries."""

    @pytest.mark.asyncio
    async def test_allowed(self, client, db):
        response = await client.get("/tasks", headers=_as(VIEWER_ID))
        assert response.status_code == 200
        assert response.json() == {"user_id": VIEWER_ID}

        [entry] = await get_audit_logs(db)
        assert entry.user_id == VIEWER_ID
        assert entry.action == "/tasks"
        assert entry.resource == "api"
        assert entry.status is AuditStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_unauthenticated(self, client, db):
        response = await client.get("/tasks")
        assert response.status_code == 401
        assert response.json() == {"detail": "User not authenticated"}

        [entry] = await get_audit_logs(db)
        assert entry.actor == "anonymous"
        assert entry.status is AuditStatus.DENIED
        assert entry.details["reason"] == "unauthenticated"

    @pytest.mark.asyncio
    async def test_missing_role(self, client, db):
        response = await client.get("/tasks/organization/all", headers=_as(ADMIN_ID))
        assert response.status_code == 403
        assert response.json() == {"detail": "Access denied. Required roles: owner"}

        [entry] = await get_audit_logs(db)
        assert entry.details["reason"] == "missing_required_role"
        assert entry.details["required_roles"] == ["owner"]

    @pytest.mark.asyncio
    async def test_missing_permission(self, client, db):
        response = await client.get("/audit-log", headers=_as(ADMIN_ID))
        assert response.status_code == 403
        assert response.json() == {"detail": "Access denied. Required permissions: view_audit_log"}

        [entry] = await get_audit_logs(db)
        assert entry.action == "read_audit_log"
        assert entry.resource == "audit"
        assert entry.details["missing_permissions"] == ["view_audit_log"]

    @pytest.mark.asyncio
    async def test_owner_passes_everything(self, client, db):
        for path in ("/tasks", "/tasks/organization/all", "/audit-log"):
            response = await client.get(path, headers=_as(OWNER_ID))
            assert response.status_code == 200

        logs = await get_audit_logs(db)
        assert [entry.action for entry in logs] == ["read_audit_log", "/tasks/organization/all", "/tasks"]
        assert all(entry.status is AuditStatus.SUCCESS for entry in logs)


class TestAuditDoesNotAffectDecisions:
    """Recording a decision never changes its outcome."""

    @pytest.mark.asyncio
    async def test_oversized_user_agent(self, client, db):
        user_agent = "Mozilla/5.0 " + "x" * 300
        response = await client.get("/tasks", headers={**_as(VIEWER_ID), "User-Agent": user_agent})
        assert response.status_code == 200

        [entry] = await get_audit_logs(db)
        assert entry.user_agent == user_agent[:USER_AGENT_MAX_LENGTH]

    @pytest.mark.asyncio
    async def test_oversized_user_agent_on_denial(self, client, db):
        response = await client.get("/audit-log", headers={**_as(VIEWER_ID), "User-Agent": "y" * 1000})
        assert response.status_code == 403

        [entry] = await get_audit_logs(db)
        assert entry.status is AuditStatus.DENIED
        assert len(entry.user_agent) == USER_AGENT_MAX_LENGTH

    @pytest.mark.asyncio
    async def test_long_path(self, client, db):
        name = "q" * 150
        response = await client.get(f"/reports/{name}", headers=_as(VIEWER_ID))
        assert response.status_code == 200
        assert response.json() == {"name": name}

        [entry] = await get_audit_logs(db)
        assert entry.action == f"/reports/{name}"[:ACTION_MAX_LENGTH]

    @pytest.mark.asyncio
    async def test_audit_write_failure(self, client, db, monkeypatch):
        async def broken(*args, **kwargs):
            raise OperationalError("INSERT INTO audit_logs", {}, Exception("database is locked"))

        monkeypatch.setattr(dependencies, "create_audit_log", broken)

        assert (await client.get("/tasks", headers=_as(VIEWER_ID))).status_code == 200
        assert (await client.get("/audit-log", headers=_as(VIEWER_ID))).status_code == 403
        assert (await client.get("/tasks")).status_code == 401
        assert (await client.get("/visible-users", headers=_as(ADMIN_ID))).json() == [
            OWNER_ID, ADMIN_ID, VIEWER_ID
        ]
        assert await get_audit_logs(db) == []


class TestRequireScope:
    """Scoped user id sets for list endpoints, each access audited."""

    @pytest.mark.asyncio
    async def test_admin_sees_subtree(self, client, db):
        response = await client.get("/visible-users", headers=_as(ADMIN_ID))
        assert response.status_code == 200
        assert response.json() == [OWNER_ID, ADMIN_ID, VIEWER_ID]

        [entry] = await get_audit_logs(db)
        assert entry.user_id == ADMIN_ID
        assert entry.action == "/visible-users"
        assert entry.resource == "users"
        assert entry.status is AuditStatus.SUCCESS
        assert entry.details == {"scope": "sub", "visible_users": 3}

    @pytest.mark.asyncio
    async def test_viewer_sees_own_organization(self, client, db):
        response = await client.get("/visible-users", headers=_as(VIEWER_ID))
        assert response.json() == [VIEWER_ID]

        [entry] = await get_audit_logs(db)
        assert entry.details == {"scope": "sub", "visible_users": 1}

    @pytest.mark.asyncio
    async def test_custom_action(self, client, db):
        response = await client.get("/team", headers=_as(OWNER_ID))
        assert response.json() == [OWNER_ID, ADMIN_ID]

        [entry] = await get_audit_logs(db)
        assert entry.action == "list_team"
        assert entry.resource == "api"
        assert entry.details == {"scope": "own", "visible_users": 2}

    @pytest.mark.asyncio
    async def test_unauthenticated(self, client, db):
        response = await client.get("/visible-users")
        assert response.status_code == 401

        [entry] = await get_audit_logs(db)
        assert entry.actor == "anonymous"
        assert entry.status is AuditStatus.DENIED
        assert entry.details == {"scope": "sub", "reason": "unauthenticated"}
