"""
Integration tests for the client API.

WHAT: Client CRUD over HTTP, through the full guard.

WHY: These tests ensure:
1. Requests without a valid, resolvable token never reach a handler
2. Tenant fields come from the token, never from the request body
3. Another organization's clients look exactly like missing ones
4. Roles gate destructive operations
5. Cross-tenant administrators read across organizations but cannot write

HOW: Uses pytest-asyncio with AsyncClient for HTTP testing.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.models.user import UserRole
from tests.factories import (
    ClientFactory,
    MembershipFactory,
    OrganizationFactory,
    TokenFactory,
    UserFactory,
    authenticated_member,
)


class TestAuthentication:
    """The guard rejects callers before any handler runs."""

    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/api/clients")

        assert response.status_code == 401
        assert response.json()["error"] == "MissingTokenError"

    @pytest.mark.asyncio
    async def test_token_signed_by_unknown_key(self, client: AsyncClient, other_keys):
        headers = TokenFactory(other_keys).headers("user_x", org_id="org_x")

        response = await client.get("/api/clients", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "InvalidTokenError"

    @pytest.mark.asyncio
    async def test_valid_token_without_local_membership(self, client: AsyncClient, tokens):
        response = await client.get(
            "/api/clients", headers=tokens.headers("user_ghost", org_id="org_ghost")
        )

        assert response.status_code == 401
        assert response.json()["error"] == "PrincipalNotResolvedError"

    @pytest.mark.asyncio
    async def test_token_without_organization(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        org = await OrganizationFactory.create(db_session)
        user = await UserFactory.create(db_session)
        await MembershipFactory.create(db_session, user, org)

        response = await client.get(
            "/api/clients", headers=tokens.headers(user.external_user_id)
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_response_carries_request_id(self, client: AsyncClient):
        response = await client.get("/api/clients")

        assert "X-Request-ID" in response.headers


class TestClientCrud:
    """Create, read, update, delete and restore within one tenant."""

    @pytest.mark.asyncio
    async def test_create_stamps_tenant_from_token(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        org, user, headers = await authenticated_member(db_session, tokens)
        other = await OrganizationFactory.create(db_session, name="Other")

        response = await client.post(
            "/api/clients",
            json={"name": "Acme", "organization_id": str(other.id), "metadata": {"regime": "common"}},
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["organization_id"] == str(org.id)
        assert body["created_by"] == str(user.id)
        assert body["metadata"] == {"regime": "common"}
        assert body["deleted_at"] is None

    @pytest.mark.asyncio
    async def test_create_validation(self, client: AsyncClient, db_session: AsyncSession, tokens):
        _, _, headers = await authenticated_member(db_session, tokens)

        response = await client.post("/api/clients", json={"name": ""}, headers=headers)

        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["field"] == "body.name"

    @pytest.mark.asyncio
    async def test_update_and_get(self, client: AsyncClient, db_session: AsyncSession, tokens):
        org, _, headers = await authenticated_member(db_session, tokens)
        existing = await ClientFactory.create(db_session, org, name="Old")

        response = await client.put(
            f"/api/clients/{existing.id}", json={"name": "New"}, headers=headers
        )
        assert response.status_code == 200

        response = await client.get(f"/api/clients/{existing.id}", headers=headers)
        assert response.json()["name"] == "New"

    @pytest.mark.asyncio
    async def test_null_name_is_invalid(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        org, _, headers = await authenticated_member(db_session, tokens)
        existing = await ClientFactory.create(db_session, org, name="Kept")

        response = await client.put(
            f"/api/clients/{existing.id}", json={"name": None}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "name"}
        response = await client.get(f"/api/clients/{existing.id}", headers=headers)
        assert response.json()["name"] == "Kept"

    @pytest.mark.asyncio
    async def test_delete_and_restore(self, client: AsyncClient, db_session: AsyncSession, tokens):
        org, user, headers = await authenticated_member(db_session, tokens)
        existing = await ClientFactory.create(db_session, org)

        response = await client.delete(f"/api/clients/{existing.id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["deleted_by"] == str(user.id)

        assert (await client.get(f"/api/clients/{existing.id}", headers=headers)).status_code == 404
        assert (await client.get("/api/clients", headers=headers)).json() == []

        listed = await client.get("/api/clients?include_deleted=true", headers=headers)
        assert len(listed.json()) == 1

        response = await client.post(f"/api/clients/{existing.id}/restore", headers=headers)
        assert response.status_code == 200
        assert response.json()["deleted_at"] is None

    @pytest.mark.asyncio
    async def test_paginated_list(self, client: AsyncClient, db_session: AsyncSession, tokens):
        org, _, headers = await authenticated_member(db_session, tokens)
        for name in ("A", "B", "C"):
            await ClientFactory.create(db_session, org, name=name)

        response = await client.get(
            "/api/clients?paginated=true&limit=2&sort_by=name&sort_order=asc", headers=headers
        )

        body = response.json()
        assert [c["name"] for c in body["items"]] == ["A", "B"]
        assert body["total"] == 3
        assert body["pages"] == 2

    @pytest.mark.asyncio
    async def test_unknown_sort_column(self, client: AsyncClient, db_session: AsyncSession, tokens):
        _, _, headers = await authenticated_member(db_session, tokens)

        response = await client.get("/api/clients?sort_by=secret", headers=headers)

        assert response.status_code == 400


class TestTenantIsolation:
    """Another organization's rows are invisible."""

    @pytest.mark.asyncio
    async def test_foreign_client_is_not_found(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        _, _, headers = await authenticated_member(db_session, tokens)
        other = await OrganizationFactory.create(db_session, name="Other")
        foreign = await ClientFactory.create(db_session, other, name="Secret")

        foreign_response = await client.get(f"/api/clients/{foreign.id}", headers=headers)
        missing_response = await client.get(f"/api/clients/{uuid.uuid4()}", headers=headers)

        assert foreign_response.status_code == 404
        assert foreign_response.json()["message"] == missing_response.json()["message"]

    @pytest.mark.asyncio
    async def test_list_excludes_foreign_clients(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        org, _, headers = await authenticated_member(db_session, tokens)
        other = await OrganizationFactory.create(db_session, name="Other")
        await ClientFactory.create(db_session, org, name="Mine")
        await ClientFactory.create(db_session, other, name="Theirs")

        response = await client.get("/api/clients", headers=headers)

        assert [c["name"] for c in response.json()] == ["Mine"]

    @pytest.mark.asyncio
    async def test_foreign_client_cannot_be_deleted(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        _, _, headers = await authenticated_member(db_session, tokens)
        other = await OrganizationFactory.create(db_session, name="Other")
        foreign = await ClientFactory.create(db_session, other)

        response = await client.delete(f"/api/clients/{foreign.id}", headers=headers)

        assert response.status_code == 404


class TestRoles:
    @pytest.mark.asyncio
    async def test_receptionist_cannot_delete(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        org, _, headers = await authenticated_member(db_session, tokens, role=UserRole.RECEPTIONIST)
        existing = await ClientFactory.create(db_session, org)

        assert (await client.get("/api/clients", headers=headers)).status_code == 200
        response = await client.delete(f"/api/clients/{existing.id}", headers=headers)

        assert response.status_code == 403
        assert response.json()["error"] == "InsufficientRoleError"

    @pytest.mark.asyncio
    async def test_patient_role_cannot_list(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        _, _, headers = await authenticated_member(db_session, tokens, role=UserRole.PATIENT)

        response = await client.get("/api/clients", headers=headers)

        assert response.status_code == 403


class TestCrossTenantAdmin:
    """Superadmins without an organization claim."""

    @pytest.mark.asyncio
    async def test_reads_across_organizations(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        admin = await UserFactory.create_superadmin(db_session)
        first = await OrganizationFactory.create(db_session, name="First")
        second = await OrganizationFactory.create(db_session, name="Second")
        await ClientFactory.create(db_session, first)
        await ClientFactory.create(db_session, second)

        response = await client.get(
            "/api/clients", headers=tokens.headers(admin.external_user_id)
        )

        assert response.status_code == 200
        assert len(response.json()) == 2

    @pytest.mark.asyncio
    async def test_cannot_create_without_organization(
        self, client: AsyncClient, db_session: AsyncSession, tokens
    ):
        admin = await UserFactory.create_superadmin(db_session)

        response = await client.post(
            "/api/clients", json={"name": "Nowhere"}, headers=tokens.headers(admin.external_user_id)
        )

        assert response.status_code == 403
        assert response.json()["error"] == "NoOrganizationContextError"
