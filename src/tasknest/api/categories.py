"""Category API endpoints."""

from fastapi import APIRouter, Request, status

from tasknest.api.auth import CurrentCaller, DbSession
from tasknest.api.events import commit_and_publish
from tasknest.api.limits import default_rate_limit, limiter
from tasknest.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryUsageResponse,
    DefaultCategoriesResponse,
)
from tasknest.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
async def list_categories(caller: CurrentCaller, db: DbSession):
    """List the caller's categories."""
    service = CategoryService(db, caller)
    categories = await service.get_all()
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(default_rate_limit)
async def create_category(
    request: Request,
    data: CategoryCreate,
    caller: CurrentCaller,
    db: DbSession,
):
    """Create a new category."""
    service = CategoryService(db, caller)
    category = await service.create(name=data.name, color=data.color)
    await commit_and_publish(db, caller, "categories", "created", [category.id])
    return CategoryResponse.model_validate(category)


@router.post("/defaults", response_model=DefaultCategoriesResponse)
@limiter.limit(default_rate_limit)
async def create_default_categories(
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
):
    """Seed the default categories if the caller has none yet."""
    service = CategoryService(db, caller)
    created = await service.seed_defaults()
    if created:
        await commit_and_publish(
            db, caller, "categories", "created", [c.id for c in created]
        )
    return DefaultCategoriesResponse(
        created=[CategoryResponse.model_validate(c) for c in created]
    )


@router.get("/usage", response_model=CategoryUsageResponse)
async def category_usage(caller: CurrentCaller, db: DbSession):
    """Count todos per category."""
    service = CategoryService(db, caller)
    items, uncategorized = await service.usage()
    return CategoryUsageResponse(items=items, uncategorized=uncategorized)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: str, caller: CurrentCaller, db: DbSession):
    """Get a category by ID."""
    service = CategoryService(db, caller)
    category = await service.get_by_id(category_id)
    return CategoryResponse.model_validate(category)


async def _update_category_impl(
    category_id: str,
    data: CategoryUpdate,
    caller: CurrentCaller,
    db: DbSession,
) -> CategoryResponse:
    service = CategoryService(db, caller)
    category = await service.update(category_id, name=data.name, color=data.color)
    await commit_and_publish(db, caller, "categories", "updated", [category.id])
    return CategoryResponse.model_validate(category)


@router.put("/{category_id}", response_model=CategoryResponse)
@limiter.limit(default_rate_limit)
async def update_category(
    request: Request,
    category_id: str,
    data: CategoryUpdate,
    caller: CurrentCaller,
    db: DbSession,
):
    """Update a category."""
    return await _update_category_impl(category_id, data, caller, db)


@router.patch("/{category_id}", response_model=CategoryResponse)
@limiter.limit(default_rate_limit)
async def patch_category(
    request: Request,
    category_id: str,
    data: CategoryUpdate,
    caller: CurrentCaller,
    db: DbSession,
):
    """Partially update a category."""
    return await _update_category_impl(category_id, data, caller, db)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(default_rate_limit)
async def delete_category(
    request: Request,
    category_id: str,
    caller: CurrentCaller,
    db: DbSession,
):
    """Delete a category. Fails with 409 while todos still use it."""
    service = CategoryService(db, caller)
    await service.delete(category_id)
    await commit_and_publish(db, caller, "categories", "deleted", [category_id])
