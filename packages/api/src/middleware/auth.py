# This project was developed with assistance from AI tools.
"""
Bearer-token authentication against the Keycloak realm.

Tokens are RS256 JWTs signed with a key from the realm's JWKS. Keys are
resolved by ``jwt.PyJWKClient``, which caches the key set for
JWKS_CACHE_TTL seconds and refetches it when a token names an unknown
``kid`` (key rotation). The fetch is blocking I/O, so it runs in the
default executor rather than on the event loop.

Set AUTH_DISABLED=true to bypass validation (tests / local dev without Keycloak).
"""

import asyncio
import logging
from functools import lru_cache, partial
from typing import Annotated

import jwt
from db.enums import UserRole
from fastapi import Depends, HTTPException, Request, status

from ..core.auth import build_data_scope
from ..core.config import settings
from ..schemas.auth import DataScope, TokenPayload, UserContext

logger = logging.getLogger(__name__)

# When a token carries several workflow roles, the broadest one wins.
_ROLE_PRECEDENCE = (
    UserRole.ADMIN,
    UserRole.AGENT,
    UserRole.TITLE_OFFICER,
    UserRole.LENDER,
    UserRole.CLIENT,
)

_DISABLED_USER = UserContext(
    user_id="dev-user",
    role=UserRole.ADMIN,
    email="dev@keystone.local",
    name="Dev User",
    data_scope=DataScope(full_pipeline=True, user_id="dev-user"),
)


def _realm_issuer() -> str:
    return f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}"


@lru_cache(maxsize=1)
def _jwks_client(certs_url: str, lifespan: int) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(certs_url, cache_jwk_set=True, lifespan=lifespan, timeout=5)


def get_jwks_client() -> jwt.PyJWKClient:
    """The realm's key client; rebuilt only if the realm settings change."""
    return _jwks_client(
        f"{_realm_issuer()}/protocol/openid-connect/certs", settings.JWKS_CACHE_TTL,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _signing_key(token: str) -> jwt.PyJWK:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(
            None, partial(get_jwks_client().get_signing_key_from_jwt, token)
        )
    except jwt.PyJWKClientConnectionError as exc:
        logger.error("Could not fetch signing keys from %s: %s", _realm_issuer(), exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        ) from exc
    except jwt.PyJWKClientError as exc:
        logger.warning("No signing key for token: %s", exc)
        raise _unauthorized("Invalid token") from exc


async def decode_token(token: str) -> TokenPayload:
    """Verify signature, expiry and issuer; return the claims."""
    try:
        signing_key = await _signing_key(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=_realm_issuer(),
            options={"verify_aud": False, "require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc
    return TokenPayload(**claims)


def _resolve_role(token_payload: TokenPayload) -> UserRole:
    """Map the realm roles on a token to one workflow role.

    Keycloak built-ins (offline_access, uma_authorization, ...) are ignored.
    """
    granted = set(token_payload.realm_access.get("roles", []))
    matches = [role for role in _ROLE_PRECEDENCE if role.value in granted]
    if not matches:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No recognized role assigned",
        )
    if len(matches) > 1:
        logger.info(
            "User %s holds roles %s; acting as %s",
            token_payload.sub, [r.value for r in matches], matches[0].value,
        )
    return matches[0]


def _bearer_token(request: Request) -> str:
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not credentials:
        raise _unauthorized("Missing authentication token")
    return credentials


async def get_current_user(request: Request) -> UserContext:
    """FastAPI dependency: the caller's identity, role and data scope."""
    if settings.AUTH_DISABLED:
        return _DISABLED_USER

    payload = await decode_token(_bearer_token(request))
    role = _resolve_role(payload)
    return UserContext(
        user_id=payload.sub,
        role=role,
        email=payload.email,
        name=payload.name or payload.preferred_username,
        data_scope=build_data_scope(role, payload.sub),
    )


# Type alias for use in route signatures
CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def require_roles(*allowed_roles: UserRole):
    """Dependency factory: restrict a route to specific roles.

    Usage:
        @router.get("/admin-only", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """

    async def _check(user: CurrentUser) -> UserContext:
        if user.role not in allowed_roles:
            logger.warning(
                "RBAC denied: user=%s role=%s attempted route requiring %s",
                user.user_id,
                user.role.value,
                [r.value for r in allowed_roles],
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check
