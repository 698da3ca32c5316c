"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from factories import FakeMarketplaceClient, wire
from grocery_admin.api.deps import get_marketplace_client
from grocery_admin.main import app


@pytest.fixture
def catalog() -> list[dict]:
    """Fruits and Dairy roots; Organic shared by both; Apples under Fruits and Organic."""
    return [
        wire(1, "Fruits", short="Fresh fruit", image="uploads/fruits.png"),
        wire(2, "Dairy", short="Milk and cheese", image="https://cdn.example.com/dairy.png"),
        wire(3, "Organic", sub=True, parents=[1, 2], long="Certified organic produce"),
        wire(4, "Apples", sub=True, parents=[1, 3], short="Crunchy"),
        wire(5, "Cheese", sub=True, parents=[2]),
        wire(6, "Orphan", sub=True),
    ]


@pytest.fixture
def fake_client(catalog) -> FakeMarketplaceClient:
    return FakeMarketplaceClient(catalog)


@pytest.fixture
async def client(fake_client):
    """Async test client for the FastAPI app."""
    app.dependency_overrides[get_marketplace_client] = lambda: fake_client
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
