"""Current-user endpoints."""

from fastapi import APIRouter

from tasknest.api.auth import CurrentIdentity, DbSession
from tasknest.schemas.user import UserResponse
from tasknest.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(identity: CurrentIdentity, db: DbSession):
    """Get the caller's user record, creating it on first contact."""
    user = await UserService(db).resolve(identity)
    return UserResponse.model_validate(user)


@router.post("/me", response_model=UserResponse)
async def ensure_me(identity: CurrentIdentity, db: DbSession):
    """Create the caller's user record if it does not exist yet."""
    user = await UserService(db).resolve(identity)
    return UserResponse.model_validate(user)
