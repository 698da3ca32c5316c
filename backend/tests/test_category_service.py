"""Tests for CategoryService against an in-memory marketplace."""

import pytest

from factories import FakeMarketplaceClient
from grocery_admin.config import settings
from grocery_admin.core.exceptions import NotFoundError, UpstreamError, ValidationError
from grocery_admin.schemas.category import CategoryCreate, CategoryKind, CategoryUpdate
from grocery_admin.services.category_service import (
    SUB_CATEGORY_NEEDS_PARENT,
    CategoryService,
    resolve_image_url,
)


@pytest.fixture
def service(fake_client):
    return CategoryService(fake_client)


def find(nodes, category_id):
    for node in nodes:
        if node["id"] == category_id:
            return node
        hit = find(node["children"], category_id)
        if hit:
            return hit
    return None


# ── Images ────────────────────────────────────────

@pytest.mark.parametrize("path, expected", [
    (None, "default.png"),
    ("   ", "default.png"),
    ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
    (" http://cdn.example.com/a.png ", "http://cdn.example.com/a.png"),
    ("/uploads/a.png", "https://img.example.com/uploads/a.png"),
    ("uploads/a.png", "https://img.example.com/uploads/a.png"),
])
def test_resolve_image_url(path, expected):
    assert resolve_image_url(path, "https://img.example.com//", "default.png") == expected


# ── Reads ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_load_records_maps_and_resolves_images(service):
    records = await service.load_records()
    assert [r.id for r in records] == [1, 2, 3, 4, 5, 6]
    base = settings.image_base_url.rstrip("/")
    assert records[0].cover_image == f"{base}/uploads/fruits.png"
    assert records[1].cover_image == "https://cdn.example.com/dairy.png"
    assert records[2].cover_image == settings.default_image_url


@pytest.mark.asyncio
async def test_list_categories_includes_stats(service):
    result = await service.list_categories()
    assert len(result["items"]) == 6
    assert result["stats"] == {"total": 6, "parents": 2, "subs": 4}


@pytest.mark.asyncio
async def test_tree_search_and_expansion(service):
    result = await service.get_tree("appl", "all", frozenset({3}))
    assert result["total"] == 6
    assert result["shown"] == 7
    assert result["kind"] is CategoryKind.ALL
    assert [n["id"] for n in result["items"]] == [1, 2]

    fruits = result["items"][0]
    assert fruits["is_open"] is False
    assert [c["id"] for c in fruits["children"]] == [3, 4]
    organic = find(result["items"], 3)
    assert organic["is_open"] is True
    assert [c["id"] for c in organic["children"]] == [4]


@pytest.mark.asyncio
async def test_tree_unknown_kind_means_all(service):
    result = await service.get_tree("", "something-else")
    assert result["kind"] is CategoryKind.ALL
    assert result["shown"] == 9


@pytest.mark.asyncio
async def test_rows_expand_all_matches_shown(service):
    result = await service.get_rows("", "all", expand_all=True)
    assert len(result["rows"]) == result["shown"] == 9
    assert result["rows"][0]["badge"] == "Parent"


@pytest.mark.asyncio
async def test_rows_collapsed(service):
    result = await service.get_rows("", "parent")
    assert [(r["id"], r["has_children"]) for r in result["rows"]] == [(1, False), (2, False)]


@pytest.mark.asyncio
async def test_parent_and_sub_listings(service):
    assert [r.id for r in await service.list_parent_categories()] == [1, 2]
    assert [r.id for r in await service.list_sub_categories(2)] == [3, 5]
    with pytest.raises(NotFoundError):
        await service.list_sub_categories(404)


@pytest.mark.asyncio
async def test_get_category(service):
    record = await service.get_category(5)
    assert record.name == "Cheese"
    with pytest.raises(NotFoundError):
        await service.get_category(404)


# ── Writes ────────────────────────────────────────

def test_payload_for_sub_category_requires_parents():
    with pytest.raises(ValidationError) as exc:
        CategoryService.build_payload(CategoryCreate(name="Berries", is_sub_category=True))
    assert exc.value.status_code == 422
    assert exc.value.detail == SUB_CATEGORY_NEEDS_PARENT


def test_payload_rejects_blank_name():
    with pytest.raises(ValidationError):
        CategoryService.build_payload(CategoryCreate(name="   "))


def test_payload_trims_and_defaults():
    payload = CategoryService.build_payload(CategoryCreate(
        name="  Drinks ",
        short_description=" Cold ",
        is_sub_category=False,
        parent_ids=[1, 2],
    ))
    assert payload == {
        "categoryName": "Drinks",
        "shortDescription": "Cold",
        "longDescription": "",
        "isSubCategory": False,
        "coverImage": settings.default_image_url,
        "parentCategoryIds": [],
    }


def test_update_payload_carries_id():
    payload = CategoryService.build_payload(
        CategoryUpdate(name="Berries", is_sub_category=True, parent_ids=[1], cover_image="b.png"),
        category_id=12,
    )
    assert payload["id"] == 12
    assert payload["parentCategoryIds"] == [1]
    assert payload["coverImage"] == "b.png"


@pytest.mark.asyncio
async def test_create_category(service, fake_client):
    record = await service.create_category(
        CategoryCreate(name="Berries", is_sub_category=True, parent_ids=[1, 3])
    )
    assert record.id == 100
    assert record.parent_ids == [1, 3]
    assert fake_client.writes[0]["categoryName"] == "Berries"
    assert "id" not in fake_client.writes[0]


@pytest.mark.asyncio
async def test_update_category(service, fake_client):
    record = await service.update_category(5, CategoryUpdate(name="Aged cheese", is_sub_category=True, parent_ids=[2]))
    assert record.id == 5
    assert record.name == "Aged cheese"
    assert fake_client.writes[0]["id"] == 5


class SilentWriteClient(FakeMarketplaceClient):
    async def create_update_category(self, payload):
        self.writes.append(payload)
        return None


@pytest.mark.asyncio
async def test_update_without_echo_refetches(catalog):
    service = CategoryService(SilentWriteClient(catalog))
    record = await service.update_category(5, CategoryUpdate(name="Cheese"))
    assert record.id == 5


@pytest.mark.asyncio
async def test_create_without_echo_is_upstream_error(catalog):
    service = CategoryService(SilentWriteClient(catalog))
    with pytest.raises(UpstreamError):
        await service.create_category(CategoryCreate(name="Bread"))


@pytest.mark.asyncio
@pytest.mark.parametrize("category_id, expected", [
    (4, (4, 1)),     # sub-category: detach from first parent
    (1, (1, None)),  # root: soft delete
    (6, (6, None)),  # orphan sub-category: soft delete
])
async def test_delete_category(service, fake_client, category_id, expected):
    await service.delete_category(category_id)
    assert fake_client.deletes == [expected]


@pytest.mark.asyncio
async def test_delete_unknown_category(service, fake_client):
    with pytest.raises(NotFoundError):
        await service.delete_category(404)
    assert fake_client.deletes == []


@pytest.mark.asyncio
async def test_service_does_not_mutate_snapshot(service, fake_client):
    before = [dict(r) for r in fake_client.records]
    await service.get_tree("organic", "sub", frozenset({1, 3}))
    assert fake_client.records == before


@pytest.mark.asyncio
async def test_load_records_skips_malformed_entries(catalog):
    broken = dict(catalog[0])
    del broken["id"]
    flag = dict(catalog[1], id=50, is_sub_category="perhaps")
    service = CategoryService(FakeMarketplaceClient([broken, "junk", flag, *catalog[2:]]))
    records = await service.load_records()
    assert [r.id for r in records] == [3, 4, 5, 6]


@pytest.mark.asyncio
async def test_string_false_flag_keeps_category_top_level(catalog):
    catalog[0]["is_sub_category"] = "false"
    service = CategoryService(FakeMarketplaceClient(catalog))
    records = await service.load_records()
    assert records[0].is_sub_category is False
    assert [r.id for r in await service.list_parent_categories()] == [1, 2]


class BrokenRecordClient(FakeMarketplaceClient):
    async def get_category(self, category_id):
        return {"category_name": "No id"}


@pytest.mark.asyncio
async def test_malformed_single_record_is_upstream_error(catalog):
    service = CategoryService(BrokenRecordClient(catalog))
    with pytest.raises(UpstreamError) as exc:
        await service.get_category(1)
    assert exc.value.status_code == 502
