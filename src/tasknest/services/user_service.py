"""Identity resolution: map provider subjects to internal user rows."""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.errors import AuthenticationError, guard
from tasknest.identity import CallerContext, CallerIdentity
from tasknest.models import User

logger = structlog.get_logger()


class UserService:
    """Service for looking up and lazily creating users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, identity: CallerIdentity) -> User | None:
        """Get the user row for a subject without creating it."""
        result = await self.db.execute(
            select(User).where(User.external_id == identity.subject)
        )
        return result.scalar_one_or_none()

    @guard("Failed to resolve user")
    async def resolve(self, identity: CallerIdentity | None) -> User:
        """Get the user row for a subject, creating it on first contact.

        Must run before any other write in the session: losing an insert race
        on the unique external_id rolls the session back and re-reads the
        winning row.
        """
        if identity is None or not identity.subject:
            raise AuthenticationError()

        user = await self.find(identity)
        if user is not None:
            return user

        user = User(
            external_id=identity.subject,
            email=identity.email or "",
            name=identity.name,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.info("user_insert_conflict", subject=identity.subject)
            user = await self.find(identity)
            if user is None:
                raise
            return user

        logger.info("user_created", user_id=user.id, subject=identity.subject)
        return user

    async def resolve_context(self, identity: CallerIdentity | None) -> CallerContext:
        """Resolve a caller to the context the stores operate under."""
        user = await self.resolve(identity)
        return CallerContext(user_id=user.id)
