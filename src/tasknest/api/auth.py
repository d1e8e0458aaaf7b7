"""Authentication for the API.

The identity provider issues signed JWTs; the ``sub`` claim is the stable
subject id, ``email`` and ``name`` are used when the user row is first
created.
"""

from typing import Annotated

import structlog
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.config import get_settings
from tasknest.database import get_db
from tasknest.errors import AuthenticationError
from tasknest.identity import CallerContext, CallerIdentity
from tasknest.services.user_service import UserService

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


def decode_identity_token(token: str) -> CallerIdentity:
    """Validate a provider token and extract the caller identity."""
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.auth_secret,
            algorithms=settings.auth_algorithms,
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={"verify_aud": settings.auth_audience is not None},
        )
    except JWTError as exc:
        logger.info("token_rejected", error=str(exc))
        raise AuthenticationError("Invalid or expired token") from exc

    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")

    return CallerIdentity(
        subject=str(subject),
        email=claims.get("email"),
        name=claims.get("name"),
    )


async def get_caller_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)] = None,
) -> CallerIdentity:
    """Read the bearer token. Raises AuthenticationError if it is missing or invalid."""
    if credentials is None:
        raise AuthenticationError()
    return decode_identity_token(credentials.credentials)


async def get_caller(
    identity: Annotated[CallerIdentity, Depends(get_caller_identity)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CallerContext:
    """Resolve the authenticated caller to its user row, creating it on first contact."""
    return await UserService(db).resolve_context(identity)


# Dependencies for use in routes
CurrentIdentity = Annotated[CallerIdentity, Depends(get_caller_identity)]
CurrentCaller = Annotated[CallerContext, Depends(get_caller)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
