"""Shared API dependencies."""

from fastapi import Depends

from grocery_admin.services.category_service import CategoryService
from grocery_admin.services.marketplace_client import MarketplaceClient


def get_marketplace_client() -> MarketplaceClient:
    return MarketplaceClient()


def get_category_service(
    client: MarketplaceClient = Depends(get_marketplace_client),
) -> CategoryService:
    return CategoryService(client)


__all__ = ["get_marketplace_client", "get_category_service"]
