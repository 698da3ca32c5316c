"""Category schemas.

`CategoryRecord` is the flat, in-memory shape of a category as the hierarchy
engine sees it. The marketplace API speaks snake_case with nested parent
objects; `CategoryRecord.from_wire` does the mapping.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

TRUE_STRINGS = {"true", "1", "yes"}
FALSE_STRINGS = {"false", "0", "no", ""}


class MalformedRecordError(ValueError):
    """A marketplace record that cannot be mapped (no usable id, bad flags)."""


def _as_bool(value: Any, field: str) -> bool:
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise MalformedRecordError(f"{field} is not a boolean: {value!r}")


class CategoryKind(str, Enum):
    """Kind filter applied on top of the free-text search."""
    ALL = "all"
    PARENT = "parent"  # is_sub_category == False
    SUB = "sub"        # is_sub_category == True

    @classmethod
    def parse(cls, value: Any) -> "CategoryKind":
        """Unknown or empty values fall back to ALL."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ALL


class CategoryRecord(BaseModel):
    id: int
    name: str
    short_description: str = ""
    long_description: str = ""
    is_sub_category: bool = False
    parent_ids: list[int] = Field(default_factory=list)
    cover_image: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"frozen": True}

    @property
    def is_root(self) -> bool:
        # is_sub_category wins over a non-empty parent list
        return not self.is_sub_category or not self.parent_ids

    @classmethod
    def from_wire(cls, payload: dict) -> "CategoryRecord":
        """Map a marketplace record; accepts snake_case and camelCase keys.

        Raises `MalformedRecordError` when the id is missing or not an integer,
        or when the sub-category flag is not a recognisable boolean.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                value = payload.get(key)
                if value is not None:
                    return value
            return None

        raw_id = payload.get("id")
        if isinstance(raw_id, str) and raw_id.strip().isdigit():
            raw_id = int(raw_id)
        if not isinstance(raw_id, int) or isinstance(raw_id, bool):
            raise MalformedRecordError(f"category id missing or invalid: {raw_id!r}")

        parents = pick("parent_categories", "parentCategoryIds", "parentCategories")
        parent_ids: list[int] = []
        if isinstance(parents, list):
            for parent in parents:
                pid = parent.get("id") if isinstance(parent, dict) else parent
                if isinstance(pid, int) and not isinstance(pid, bool):
                    parent_ids.append(pid)

        return cls(
            id=raw_id,
            name=pick("category_name", "categoryName") or "",
            short_description=pick("short_description", "shortDescription") or "",
            long_description=pick("long_description", "longDescription") or "",
            is_sub_category=_as_bool(pick("is_sub_category", "isSubCategory"), "is_sub_category"),
            parent_ids=parent_ids,
            cover_image=pick("cover_image", "coverImage") or "",
            created_at=pick("created_at", "createdAt"),
            updated_at=pick("updated_at", "updatedAt"),
        )


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    short_description: str = ""
    long_description: str = ""
    is_sub_category: bool = False
    parent_ids: list[int] = Field(default_factory=list)
    cover_image: str = ""


class CategoryUpdate(CategoryCreate):
    pass


class CategoryResponse(BaseModel):
    id: int
    name: str
    short_description: str
    long_description: str
    is_sub_category: bool
    parent_ids: list[int]
    cover_image: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class CategoryStats(BaseModel):
    total: int
    parents: int
    subs: int


class CategoryListResponse(BaseModel):
    items: list[CategoryResponse]
    stats: CategoryStats


class CategoryNodeResponse(BaseModel):
    id: int
    name: str
    short_description: str
    is_sub_category: bool
    parent_ids: list[int]
    cover_image: str
    is_open: bool = False
    children: list["CategoryNodeResponse"] = Field(default_factory=list)


class CategoryTreeResponse(BaseModel):
    search: str
    kind: CategoryKind
    total: int  # records in the store
    shown: int  # placements in the filtered forest
    items: list[CategoryNodeResponse]


class CategoryRowResponse(BaseModel):
    id: int
    name: str
    short_description: str
    is_sub_category: bool
    level: int
    has_children: bool
    child_count: int
    is_open: bool
    badge: str


class CategoryRowsResponse(BaseModel):
    search: str
    kind: CategoryKind
    total: int
    shown: int
    rows: list[CategoryRowResponse]


class ExpansionToggleRequest(BaseModel):
    expanded: list[int] = Field(default_factory=list)
    id: int


class ExpansionStateResponse(BaseModel):
    expanded: list[int]
