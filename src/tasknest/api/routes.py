"""API router aggregation."""

from fastapi import APIRouter

from tasknest.api.todos import router as todos_router
from tasknest.api.categories import router as categories_router
from tasknest.api.users import router as users_router
from tasknest.api.events import router as events_router

router = APIRouter(prefix="/api")

router.include_router(todos_router)
router.include_router(categories_router)
router.include_router(users_router)
router.include_router(events_router)
