"""
Bearer token verification against the external identity provider.

WHAT: Turns a raw bearer token into ``VerifiedClaims`` or raises one of the
authentication exceptions.

WHY: Tokens are issued by the identity provider (Clerk) and signed with a
key we do not hold privately. Two kinds of key material may be configured:
1. A PEM public key (``CLERK_JWT_KEY``): verification without network access
2. The backend secret key (``CLERK_SECRET_KEY``): used to fetch the
   provider's JWKS, which covers keys the PEM does not (rotation, other
   instances)

HOW: Key material is an ordered list of strategies. Each strategy first
checks whether its key produced the token's signature. A key mismatch is the
only failure that moves on to the next strategy; an expired token, a token
that is not yet valid, a malformed token or a disallowed authorized party
ends verification immediately. When every strategy reports a mismatch the
final error lists each strategy's reason.

Security Notes:
    - Token values and key material are never logged or put into exception
      context
    - Only asymmetric algorithms from ``JWT_ALGORITHMS`` are accepted; the
      ``alg`` header is checked before any key is used
"""

import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx
from jose import JWTError, jwk, jwt
from jose.exceptions import JWKError
from jose.utils import base64url_decode

from practice_api.core.config import Settings
from practice_api.core.exceptions import (
    ConfigurationError,
    InvalidTokenError,
    MissingTokenError,
    TokenExpiredError,
)


logger = logging.getLogger(__name__)


# Claims mapped onto named VerifiedClaims fields; everything else goes to extra
_KNOWN_CLAIMS = frozenset(
    {
        "sub",
        "org_id",
        "organizationId",
        "email",
        "first_name",
        "firstName",
        "last_name",
        "lastName",
        "picture",
        "image_url",
        "azp",
    }
)


@dataclass(frozen=True)
class VerifiedClaims:
    """
    Typed view of a verified token payload.

    The identity fields the rest of the system relies on are named
    attributes. Every other claim is kept, read-only, in ``extra``.
    """

    subject: str
    organization_id: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    authorized_party: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "VerifiedClaims":
        """
        Build claims from a decoded JWT payload.

        Raises:
            InvalidTokenError: If the payload has no ``sub`` claim
        """
        subject = payload.get("sub")
        if not subject:
            raise InvalidTokenError("Token has no subject claim")

        extra = {k: v for k, v in payload.items() if k not in _KNOWN_CLAIMS}
        return cls(
            subject=str(subject),
            organization_id=payload.get("org_id") or payload.get("organizationId"),
            email=payload.get("email"),
            first_name=payload.get("first_name") or payload.get("firstName"),
            last_name=payload.get("last_name") or payload.get("lastName"),
            image_url=payload.get("picture") or payload.get("image_url"),
            authorized_party=payload.get("azp"),
            extra=MappingProxyType(extra),
        )


def extract_bearer_token(authorization_header: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.

    Args:
        authorization_header: Raw header value, or None when absent

    Returns:
        The token string

    Raises:
        MissingTokenError: If the header is absent, empty, or not a Bearer
            credential
    """
    if not authorization_header:
        raise MissingTokenError()

    scheme, _, token = authorization_header.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise MissingTokenError()
    return token


class KeyMismatch(Exception):
    """
    A strategy's key did not produce the token's signature.

    Internal to verification: it advances to the next strategy and never
    reaches a caller.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def _check_signature(raw_token: str, key: Any, algorithm: str) -> None:
    """
    Raise KeyMismatch unless ``key`` verifies the token signature.

    Raises:
        KeyMismatch: Signature does not verify with this key
        InvalidTokenError: Signature segment is not valid base64url
        ConfigurationError: Key material cannot be loaded
    """
    signing_input, _, signature_segment = raw_token.rpartition(".")
    try:
        signature = base64url_decode(signature_segment.encode("utf-8"))
    except (ValueError, TypeError):
        raise InvalidTokenError("Malformed token signature")

    try:
        public_key = jwk.construct(key, algorithm)
    except JWKError as e:
        raise ConfigurationError(
            "Configured verification key could not be loaded",
            error_type=e.__class__.__name__,
        )

    if not public_key.verify(signing_input.encode("utf-8"), signature):
        raise KeyMismatch("signature does not match key")


class PemKeyStrategy:
    """Verify with the configured PEM public key."""

    name = "pem"

    def __init__(self, pem: str):
        # Keys supplied through env files often carry literal "\n" sequences
        self._pem = pem.replace("\\n", "\n").strip()

    async def key_for(self, header: Dict[str, Any]) -> Any:
        return self._pem


class JwksClient:
    """
    Fetches and caches the provider's JSON Web Key Set.

    The set is fetched from ``{api_url}/v1/jwks`` with the backend secret key
    as a bearer credential and reused for ``cache_seconds``.
    """

    def __init__(
        self,
        api_url: str,
        secret_key: str,
        cache_seconds: int = 3600,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = f"{api_url.rstrip('/')}/v1/jwks"
        self._secret_key = secret_key
        self._cache_seconds = cache_seconds
        self._timeout = timeout
        self._transport = transport
        self._keys: Optional[List[Dict[str, Any]]] = None
        self._fetched_at = 0.0

    async def get_keys(self) -> List[Dict[str, Any]]:
        """
        Return the cached key set, fetching it when missing or stale.

        Raises:
            ConfigurationError: If the key set cannot be fetched
        """
        now = time.monotonic()
        if self._keys is not None and now - self._fetched_at < self._cache_seconds:
            return self._keys

        self._keys = await self._fetch()
        self._fetched_at = now
        return self._keys

    async def _fetch(self) -> List[Dict[str, Any]]:
        headers = {"Authorization": f"Bearer {self._secret_key}"}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(self._url, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ConfigurationError(
                "JWKS request was rejected by the identity provider",
                status=e.response.status_code,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise ConfigurationError(
                "JWKS could not be fetched from the identity provider",
                error_type=e.__class__.__name__,
            )

        keys = payload.get("keys") if isinstance(payload, dict) else None
        if not isinstance(keys, list):
            raise ConfigurationError("JWKS response has no key list")

        logger.info("Fetched JWKS with %d key(s)", len(keys))
        return keys


class JwksKeyStrategy:
    """Verify with the JWKS key whose ``kid`` matches the token header."""

    name = "jwks"

    def __init__(self, client: JwksClient):
        self._client = client

    async def key_for(self, header: Dict[str, Any]) -> Any:
        keys = await self._client.get_keys()
        kid = header.get("kid")

        if kid is None:
            if len(keys) == 1:
                return keys[0]
            raise KeyMismatch("token has no kid and JWKS holds several keys")

        for candidate in keys:
            if candidate.get("kid") == kid:
                return candidate
        raise KeyMismatch("no JWKS key matches the token kid")


class TokenVerifier:
    """
    Verifies bearer tokens with an ordered list of key strategies.

    Example:
        >>> verifier = TokenVerifier.from_settings(settings)
        >>> claims = await verifier.verify(raw_token)
        >>> claims.subject
        'user_2abc'
    """

    def __init__(
        self,
        strategies: Sequence[Any],
        authorized_parties: Sequence[str],
        algorithms: Sequence[str] = ("RS256",),
        leeway_seconds: int = 0,
    ):
        self.strategies = list(strategies)
        self.authorized_parties = list(authorized_parties)
        self.algorithms = list(algorithms)
        self.leeway_seconds = leeway_seconds

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "TokenVerifier":
        """
        Build the strategy list from configuration: PEM key first, JWKS second.

        Missing material is not an error here; ``verify`` reports it.
        """
        strategies: List[Any] = []
        if settings.CLERK_JWT_KEY:
            strategies.append(PemKeyStrategy(settings.CLERK_JWT_KEY))
        if settings.CLERK_SECRET_KEY:
            client = JwksClient(
                api_url=settings.CLERK_API_URL,
                secret_key=settings.CLERK_SECRET_KEY,
                cache_seconds=settings.CLERK_JWKS_CACHE_SECONDS,
                timeout=settings.CLERK_HTTP_TIMEOUT_SECONDS,
                transport=transport,
            )
            strategies.append(JwksKeyStrategy(client))

        return cls(
            strategies=strategies,
            authorized_parties=settings.authorized_parties,
            algorithms=settings.JWT_ALGORITHMS,
            leeway_seconds=settings.JWT_LEEWAY_SECONDS,
        )

    async def verify(self, raw_token: str) -> VerifiedClaims:
        """
        Verify a raw token and return its claims.

        Args:
            raw_token: Token string without the "Bearer " prefix

        Returns:
            VerifiedClaims for the token

        Raises:
            ConfigurationError: No key material or no authorized parties are
                configured, or the JWKS cannot be fetched
            TokenExpiredError: Signature is valid but the token has expired
            InvalidTokenError: Any other verification failure
        """
        if not self.strategies:
            raise ConfigurationError(
                "No token verification key is configured (CLERK_JWT_KEY or CLERK_SECRET_KEY)"
            )
        if not self.authorized_parties:
            raise ConfigurationError(
                "No authorized parties are configured "
                "(CLERK_JWT_AZP, FRONTEND_URL or CLERK_PUBLISHABLE_KEY)"
            )

        header = self._read_header(raw_token)
        algorithm = header["alg"]

        reasons: List[str] = []
        for strategy in self.strategies:
            try:
                key = await strategy.key_for(header)
                _check_signature(raw_token, key, algorithm)
            except KeyMismatch as e:
                reasons.append(f"{strategy.name}: {e.reason}")
                logger.debug("Verification strategy %s did not match", strategy.name)
                continue

            payload = self._decode(raw_token, key, algorithm)
            claims = VerifiedClaims.from_payload(payload)
            self._check_authorized_party(claims)
            return claims

        logger.info("Token rejected: no verification strategy matched (%s)", "; ".join(reasons))
        raise InvalidTokenError(
            "Token signature did not match any configured key",
            reasons=reasons,
        )

    def _read_header(self, raw_token: str) -> Dict[str, Any]:
        try:
            header = jwt.get_unverified_header(raw_token)
        except JWTError:
            raise InvalidTokenError("Malformed token")

        algorithm = header.get("alg")
        if algorithm not in self.algorithms:
            raise InvalidTokenError("Token algorithm is not allowed", algorithm=algorithm)
        return header

    def _decode(self, raw_token: str, key: Any, algorithm: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                raw_token,
                key,
                algorithms=[algorithm],
                options={"verify_aud": False, "leeway": self.leeway_seconds},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            raise InvalidTokenError("Token claims are invalid", error=str(e))

    def _check_authorized_party(self, claims: VerifiedClaims) -> None:
        azp = claims.authorized_party
        if azp is not None and azp not in self.authorized_parties:
            logger.info("Token rejected: authorized party %r is not allowed", azp)
            raise InvalidTokenError("Token authorized party is not allowed")
