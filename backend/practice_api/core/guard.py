"""
Tenant guard: the two checks every non-public request passes.

WHAT:
1. Authentication: bearer token -> verified claims -> local principal
2. Tenant scoping: principal -> organization the request operates on

WHY: Every piece of tenant data is reached through an organization id. The
guard is the single place that id is derived, from a verified token and the
local membership table, never from request parameters.

HOW: ``TenantGuard`` is framework-free; ``practice_api.core.deps`` wires it
into FastAPI as app-level dependencies. A request moves through
unauthenticated -> authenticated -> scoped, or is rejected with a 401 or 403.
The resulting ``TenantContext`` is immutable and is handed to route handlers
explicitly, so concurrent requests never share identity state.
"""

import logging
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, FrozenSet, Iterable, Mapping, Optional

from practice_api.core.auth import TokenVerifier, extract_bearer_token
from practice_api.core.exceptions import (
    InsufficientRoleError,
    NoOrganizationContextError,
    PrincipalNotResolvedError,
)
from practice_api.models.user import UserRole, UserType


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller for one request.

    Identity ids and role come from local storage; profile fields come from
    the token. ``organization_id`` is None only for cross-tenant
    administrators.
    """

    internal_user_id: uuid.UUID
    external_subject_id: str
    email: Optional[str]
    role: UserRole
    organization_id: Optional[uuid.UUID] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True
    user_type: UserType = UserType.REGULAR
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_superadmin(self) -> bool:
        return self.user_type == UserType.SUPERADMIN

    @property
    def is_admin(self) -> bool:
        return self.is_superadmin or self.role == UserRole.ADMIN


@dataclass(frozen=True)
class TenantContext:
    """
    Result of tenant scoping: who is calling and which organization the
    request reads and writes.

    ``organization_id`` None means an explicit cross-tenant administrator
    context.
    """

    principal: Principal
    organization_id: Optional[uuid.UUID]

    @property
    def is_cross_tenant(self) -> bool:
        return self.organization_id is None

    @property
    def user_id(self) -> uuid.UUID:
        return self.principal.internal_user_id


# ============================================================================
# Roles
# ============================================================================


ROLE_GROUPS = {
    "manager": frozenset({UserRole.ADMIN, UserRole.MEMBER}),
    "healthcare_staff": frozenset(
        {UserRole.ADMIN, UserRole.HEALTH_PROFESSIONAL, UserRole.RECEPTIONIST}
    ),
    "healthcare_admin": frozenset({UserRole.ADMIN, UserRole.HEALTH_PROFESSIONAL}),
}


def expand_roles(*names: Any) -> FrozenSet[UserRole]:
    """
    Expand role names and group names into a set of roles.

    Example:
        >>> sorted(r.value for r in expand_roles("manager", "receptionist"))
        ['admin', 'member', 'receptionist']
    """
    roles = set()
    for name in names:
        if isinstance(name, UserRole):
            roles.add(name)
        elif name in ROLE_GROUPS:
            roles.update(ROLE_GROUPS[name])
        else:
            roles.add(UserRole(name))
    return frozenset(roles)


def check_role(principal: Principal, allowed: FrozenSet[UserRole]) -> None:
    """
    Raise InsufficientRoleError unless the principal holds an allowed role.

    Superadmins pass every role check.
    """
    if principal.is_superadmin or principal.role in allowed:
        return
    logger.info(
        "Role check failed for user %s: role %s not in %s",
        principal.internal_user_id,
        principal.role.value,
        sorted(r.value for r in allowed),
    )
    raise InsufficientRoleError(required=sorted(r.value for r in allowed))


# ============================================================================
# Guard
# ============================================================================


def _normalize_route(method: str, path: str) -> str:
    path = path.rstrip("/") or "/"
    return f"{method.upper()} {path}"


class TenantGuard:
    """
    Authenticates requests and scopes them to an organization.

    Args:
        verifier: Token verifier
        public_routes: "METHOD /path" pairs that skip both checks
    """

    def __init__(self, verifier: TokenVerifier, public_routes: Iterable[str]):
        self.verifier = verifier
        self.public_routes = frozenset(
            _normalize_route(*route.split(" ", 1)) for route in public_routes
        )

    def is_public(self, method: str, path: str) -> bool:
        """True when the route is on the explicit public allow-list."""
        return _normalize_route(method, path) in self.public_routes

    async def authenticate(self, authorization_header: Optional[str], resolver) -> Principal:
        """
        Layer one: verify the bearer token and resolve the local principal.

        Args:
            authorization_header: Raw ``Authorization`` header value
            resolver: Object with ``async resolve(claims) -> Principal | None``

        Returns:
            The resolved principal

        Raises:
            MissingTokenError: No bearer credential
            InvalidTokenError: Token failed verification
            PrincipalNotResolvedError: No active user/membership for the token
            ConfigurationError: Verification key material is missing
        """
        token = extract_bearer_token(authorization_header)
        claims = await self.verifier.verify(token)

        principal = await resolver.resolve(claims)
        if principal is None or not principal.is_active:
            logger.info(
                "No active principal for subject %s in organization %s",
                claims.subject,
                claims.organization_id,
            )
            raise PrincipalNotResolvedError()
        return principal

    def scope(self, principal: Principal) -> TenantContext:
        """
        Layer two: derive the organization the request operates on.

        Administrators may run without an organization (cross-tenant); anyone
        else must have one.

        Raises:
            NoOrganizationContextError: Non-admin principal without organization
        """
        if principal.organization_id is None and not principal.is_admin:
            logger.info(
                "User %s has no organization context", principal.internal_user_id
            )
            raise NoOrganizationContextError()
        return TenantContext(principal=principal, organization_id=principal.organization_id)
