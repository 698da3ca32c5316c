"""Category API routes."""

from fastapi import APIRouter, Depends, Query

from grocery_admin.api.deps import get_category_service
from grocery_admin.schemas.category import (
    CategoryCreate,
    CategoryListResponse,
    CategoryResponse,
    CategoryRowsResponse,
    CategoryTreeResponse,
    CategoryUpdate,
    ExpansionStateResponse,
    ExpansionToggleRequest,
)
from grocery_admin.services import category_tree
from grocery_admin.services.category_service import CategoryService

router = APIRouter()


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    service: CategoryService = Depends(get_category_service),
):
    """Flat category list with parent/sub counts."""
    return await service.list_categories()


@router.get("/tree", response_model=CategoryTreeResponse)
async def get_category_tree(
    search: str = "",
    kind: str = "all",
    expanded: list[int] = Query([]),
    service: CategoryService = Depends(get_category_service),
):
    """Nested forest filtered by search text and kind."""
    return await service.get_tree(search, kind, frozenset(expanded))


@router.get("/rows", response_model=CategoryRowsResponse)
async def get_category_rows(
    search: str = "",
    kind: str = "all",
    expanded: list[int] = Query([]),
    expand_all: bool = False,
    service: CategoryService = Depends(get_category_service),
):
    """Visible rows of the filtered forest, depth-first."""
    return await service.get_rows(search, kind, frozenset(expanded), expand_all)


@router.post("/expansion/toggle", response_model=ExpansionStateResponse)
async def toggle_expansion(data: ExpansionToggleRequest):
    """Open or close one category; returns the new set of open ids."""
    state = category_tree.toggle(frozenset(data.expanded), data.id)
    return {"expanded": sorted(state)}


@router.get("/parents", response_model=list[CategoryResponse])
async def list_parent_categories(
    service: CategoryService = Depends(get_category_service),
):
    """Top-level (non sub-) categories."""
    return await service.list_parent_categories()


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
):
    return await service.get_category(category_id)


@router.get("/{category_id}/children", response_model=list[CategoryResponse])
async def list_sub_categories(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
):
    """Sub-categories listing this category among their parents."""
    return await service.list_sub_categories(category_id)


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    service: CategoryService = Depends(get_category_service),
):
    return await service.create_category(data)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    service: CategoryService = Depends(get_category_service),
):
    return await service.update_category(category_id, data)


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
):
    """Detach a sub-category from its first parent, or soft-delete it."""
    await service.delete_category(category_id)
