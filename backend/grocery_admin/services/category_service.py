"""Category management service.

Reads always refetch the full flat list from the marketplace and derive the
tree from that snapshot; nothing is cached or mutated in place.
"""

import structlog

from grocery_admin.config import settings
from grocery_admin.core.exceptions import NotFoundError, UpstreamError, ValidationError
from grocery_admin.schemas.category import (
    CategoryCreate,
    CategoryKind,
    CategoryRecord,
    CategoryUpdate,
    MalformedRecordError,
)
from grocery_admin.services import category_tree
from grocery_admin.services.category_tree import TreeNode, TreeRow
from grocery_admin.services.marketplace_client import MarketplaceClient

logger = structlog.get_logger()

SUB_CATEGORY_NEEDS_PARENT = "Please select at least one parent category for sub-category"


def resolve_image_url(
    path: str | None,
    base_url: str | None = None,
    default: str | None = None,
) -> str:
    """Turn a stored image path into an absolute URL."""
    default = settings.default_image_url if default is None else default
    if not path or not path.strip():
        return default

    path = path.strip()
    if path.startswith(("http://", "https://")):
        return path

    base = (settings.image_base_url if base_url is None else base_url).strip().rstrip("/")
    return f"{base}/{path.lstrip('/')}"


class CategoryService:
    def __init__(self, client: MarketplaceClient):
        self.client = client

    async def load_records(self) -> list[CategoryRecord]:
        """Fetch the flat category list and map it to records."""
        raw = await self.client.list_categories()
        records = []
        for item in raw:
            try:
                records.append(self._map_record(item))
            except ValueError as e:
                logger.warning("category_record_skipped", error=str(e))
        logger.info("categories_loaded", count=len(records))
        return records

    async def list_categories(self) -> dict:
        records = await self.load_records()
        return {
            "items": records,
            "stats": category_tree.category_stats(records),
        }

    async def get_tree(
        self,
        search: str = "",
        kind: CategoryKind | str = CategoryKind.ALL,
        expanded: set[int] | frozenset[int] = frozenset(),
    ) -> dict:
        """Filtered forest, each node tagged with its expansion state."""
        records = await self.load_records()
        kind = CategoryKind.parse(kind)
        filtered = self._filtered_forest(records, search, kind)
        return {
            "search": search or "",
            "kind": kind,
            "total": len(records),
            "shown": category_tree.count_nodes(filtered),
            "items": [self._node_to_dict(node, expanded) for node in filtered],
        }

    async def get_rows(
        self,
        search: str = "",
        kind: CategoryKind | str = CategoryKind.ALL,
        expanded: set[int] | frozenset[int] = frozenset(),
        expand_all: bool = False,
    ) -> dict:
        """Flattened, visible rows of the filtered forest."""
        records = await self.load_records()
        kind = CategoryKind.parse(kind)
        filtered = self._filtered_forest(records, search, kind)
        if expand_all:
            expanded = category_tree.collect_ids(filtered)
        rows = category_tree.walk_rows(filtered, expanded)
        return {
            "search": search or "",
            "kind": kind,
            "total": len(records),
            "shown": category_tree.count_nodes(filtered),
            "rows": [self._row_to_dict(row) for row in rows],
        }

    async def list_parent_categories(self) -> list[CategoryRecord]:
        return category_tree.parent_categories(await self.load_records())

    async def list_sub_categories(self, parent_id: int) -> list[CategoryRecord]:
        records = await self.load_records()
        if not any(r.id == parent_id for r in records):
            raise NotFoundError("Category")
        return category_tree.sub_categories_of(records, parent_id)

    async def get_category(self, category_id: int) -> CategoryRecord:
        data = await self.client.get_category(category_id)
        if not data:
            raise NotFoundError("Category")
        return self._to_record(data)

    async def create_category(self, data: CategoryCreate) -> CategoryRecord:
        payload = self.build_payload(data)
        result = await self.client.create_update_category(payload)
        logger.info("category_created", name=payload["categoryName"])
        return await self._result_record(result)

    async def update_category(self, category_id: int, data: CategoryUpdate) -> CategoryRecord:
        payload = self.build_payload(data, category_id=category_id)
        result = await self.client.create_update_category(payload)
        logger.info("category_updated", category_id=category_id)
        return await self._result_record(result, category_id)

    async def delete_category(self, category_id: int) -> None:
        """Detach a sub-category from its first parent, soft-delete anything else."""
        records = await self.load_records()
        record = next((r for r in records if r.id == category_id), None)
        if record is None:
            raise NotFoundError("Category")

        if record.is_sub_category and record.parent_ids:
            await self.client.soft_delete_or_detach(category_id, record.parent_ids[0])
            logger.info("category_detached", category_id=category_id, parent_id=record.parent_ids[0])
        else:
            await self.client.soft_delete_or_detach(category_id)
            logger.info("category_deleted", category_id=category_id)

    @staticmethod
    def build_payload(data: CategoryCreate, category_id: int | None = None) -> dict:
        """camelCase body for /category/createUpdateCategory."""
        name = data.name.strip()
        if not name:
            raise ValidationError("Category name is required")
        if data.is_sub_category and not data.parent_ids:
            raise ValidationError(SUB_CATEGORY_NEEDS_PARENT)

        payload: dict = {}
        if category_id is not None:
            payload["id"] = category_id
        payload.update({
            "categoryName": name,
            "shortDescription": data.short_description.strip(),
            "longDescription": data.long_description.strip(),
            "isSubCategory": data.is_sub_category,
            "coverImage": data.cover_image.strip() or settings.default_image_url,
            "parentCategoryIds": list(data.parent_ids) if data.is_sub_category else [],
        })
        return payload

    # ── Helpers ───────────────────────────────────

    @classmethod
    def _to_record(cls, item: dict) -> CategoryRecord:
        """Map one record the caller asked for; malformed data is an upstream fault."""
        try:
            return cls._map_record(item)
        except ValueError as e:
            logger.warning("category_record_malformed", error=str(e))
            raise UpstreamError("Marketplace API returned a malformed category")

    @staticmethod
    def _map_record(item: dict) -> CategoryRecord:
        if not isinstance(item, dict):
            raise MalformedRecordError(f"category record is not an object: {item!r}")
        record = CategoryRecord.from_wire(item)
        return record.model_copy(update={"cover_image": resolve_image_url(record.cover_image)})

    @staticmethod
    def _filtered_forest(
        records: list[CategoryRecord], search: str, kind: CategoryKind
    ) -> list[TreeNode]:
        forest = category_tree.build_forest(records)
        return category_tree.filter_forest(forest, search, kind)

    async def _result_record(self, result: dict | None, category_id: int | None = None) -> CategoryRecord:
        # Some deployments answer with an empty data field on success
        if isinstance(result, dict) and "id" in result:
            return self._to_record(result)
        if category_id is not None:
            return await self.get_category(category_id)
        raise UpstreamError("Marketplace API returned no category")

    @classmethod
    def _node_to_dict(cls, node: TreeNode, expanded: set[int] | frozenset[int]) -> dict:
        record = node.record
        return {
            "id": record.id,
            "name": record.name,
            "short_description": record.short_description,
            "is_sub_category": record.is_sub_category,
            "parent_ids": record.parent_ids,
            "cover_image": record.cover_image,
            "is_open": category_tree.is_open(expanded, record.id),
            "children": [cls._node_to_dict(child, expanded) for child in node.children],
        }

    @staticmethod
    def _row_to_dict(row: TreeRow) -> dict:
        record = row.node.record
        return {
            "id": record.id,
            "name": record.name,
            "short_description": record.short_description,
            "is_sub_category": record.is_sub_category,
            "level": row.level,
            "has_children": row.has_children,
            "child_count": row.child_count,
            "is_open": row.is_open,
            "badge": row.badge,
        }
