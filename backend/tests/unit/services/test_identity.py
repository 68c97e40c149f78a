"""
Tests for identity resolution.

WHY: A verified token only proves who the caller is at the identity
provider. These tests ensure a principal is produced only when the local
user, organization and membership all exist and are active.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.auth import VerifiedClaims
from practice_api.models.user import UserRole, UserType
from practice_api.services.identity import IdentityResolver
from tests.factories import MembershipFactory, OrganizationFactory, UserFactory


@pytest.fixture
async def member(db_session: AsyncSession):
    org = await OrganizationFactory.create(db_session, name="Clinic", external_org_id="org_clinic")
    user = await UserFactory.create(
        db_session, email="doc@example.com", external_user_id="user_doc"
    )
    membership = await MembershipFactory.create(
        db_session, user, org, role=UserRole.HEALTH_PROFESSIONAL
    )
    return org, user, membership


class TestResolve:
    """Resolution with an organization claim."""

    @pytest.mark.asyncio
    async def test_active_membership(self, db_session, member):
        org, user, _ = member

        principal = await IdentityResolver(db_session).resolve(
            VerifiedClaims(subject="user_doc", organization_id="org_clinic", first_name="Grace")
        )

        assert principal.internal_user_id == user.id
        assert principal.organization_id == org.id
        assert principal.role == UserRole.HEALTH_PROFESSIONAL
        assert principal.external_subject_id == "user_doc"
        assert principal.first_name == "Grace"
        assert principal.is_active is True

    @pytest.mark.asyncio
    async def test_profile_falls_back_to_stored_user(self, db_session, member):
        principal = await IdentityResolver(db_session).resolve(
            VerifiedClaims(subject="user_doc", organization_id="org_clinic")
        )

        assert principal.email == "doc@example.com"

    @pytest.mark.asyncio
    async def test_token_email_wins(self, db_session, member):
        principal = await IdentityResolver(db_session).resolve(
            VerifiedClaims(
                subject="user_doc", organization_id="org_clinic", email="new@example.com"
            )
        )

        assert principal.email == "new@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "subject, org_claim",
        [("user_unknown", "org_clinic"), ("user_doc", "org_unknown")],
    )
    async def test_unknown_subject_or_organization(self, db_session, member, subject, org_claim):
        principal = await IdentityResolver(db_session).resolve(
            VerifiedClaims(subject=subject, organization_id=org_claim)
        )

        assert principal is None

    @pytest.mark.asyncio
    async def test_inactive_membership(self, db_session, member):
        _, _, membership = member
        membership.is_active = False
        await db_session.commit()

        assert (
            await IdentityResolver(db_session).resolve(
                VerifiedClaims(subject="user_doc", organization_id="org_clinic")
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_inactive_organization(self, db_session, member):
        org, _, _ = member
        org.is_active = False
        await db_session.commit()

        assert (
            await IdentityResolver(db_session).resolve(
                VerifiedClaims(subject="user_doc", organization_id="org_clinic")
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_inactive_user(self, db_session, member):
        _, user, _ = member
        user.is_active = False
        await db_session.commit()

        assert (
            await IdentityResolver(db_session).resolve(
                VerifiedClaims(subject="user_doc", organization_id="org_clinic")
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_membership_in_other_organization_does_not_count(self, db_session, member):
        await OrganizationFactory.create(db_session, name="Other", external_org_id="org_other")

        assert (
            await IdentityResolver(db_session).resolve(
                VerifiedClaims(subject="user_doc", organization_id="org_other")
            )
            is None
        )


class TestResolveWithoutOrganization:
    """Tokens without an organization claim."""

    @pytest.mark.asyncio
    async def test_regular_user(self, db_session, member):
        assert await IdentityResolver(db_session).resolve(VerifiedClaims(subject="user_doc")) is None

    @pytest.mark.asyncio
    async def test_superadmin(self, db_session):
        admin = await UserFactory.create_superadmin(db_session, external_user_id="user_root")

        principal = await IdentityResolver(db_session).resolve(VerifiedClaims(subject="user_root"))

        assert principal.internal_user_id == admin.id
        assert principal.organization_id is None
        assert principal.role == UserRole.ADMIN
        assert principal.user_type == UserType.SUPERADMIN
        assert principal.is_superadmin

    @pytest.mark.asyncio
    async def test_inactive_superadmin(self, db_session):
        await UserFactory.create_superadmin(
            db_session, external_user_id="user_root", is_active=False
        )

        assert await IdentityResolver(db_session).resolve(VerifiedClaims(subject="user_root")) is None


class TestListMemberships:
    @pytest.mark.asyncio
    async def test_active_memberships_by_name(self, db_session, member):
        org, user, _ = member
        second = await OrganizationFactory.create(db_session, name="Annex")
        third = await OrganizationFactory.create(db_session, name="Closed")
        await MembershipFactory.create(db_session, user, second, role=UserRole.ADMIN)
        await MembershipFactory.create(db_session, user, third, is_active=False)

        memberships = await IdentityResolver(db_session).list_memberships(user.id)

        assert [(o.name, m.role) for m, o in memberships] == [
            ("Annex", UserRole.ADMIN),
            ("Clinic", UserRole.HEALTH_PROFESSIONAL),
        ]
