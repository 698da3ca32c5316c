"""Category hierarchy: forest construction, recursive search and expansion state.

Categories arrive as a flat list where each sub-category names zero or more
parents. The same sub-category may sit under several parents at once, so the
result is a DAG rendered as a forest: one placement per (parent, child) pair.

    records ──build_forest──▶ forest ──filter_forest──▶ filtered forest
                                                   │
                           expanded ids ──walk_rows┘──▶ visible rows

Every function here is pure. Parent links come from user-entered data, so a
category can list itself or form a cycle with another one; traversals carry
the set of ids on the current path and stop when a node would re-enter it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Iterable

import structlog

from grocery_admin.schemas.category import CategoryKind, CategoryRecord

logger = structlog.get_logger()

ExpansionState = frozenset[int]


@dataclass(eq=False)
class TreeNode:
    """A placement of a category record in the forest."""
    record: CategoryRecord
    children: list[TreeNode] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.record.id


@dataclass(frozen=True)
class TreeRow:
    """One rendered line of the tree view."""
    node: TreeNode
    level: int
    has_children: bool
    child_count: int
    is_open: bool

    @property
    def badge(self) -> str:
        if not self.node.record.is_sub_category:
            return "Parent"
        return f"Sub-Level {self.level + 1}"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def build_forest(records: Iterable[CategoryRecord]) -> list[TreeNode]:
    """Link flat records into a forest of root nodes.

    A record is a root when it is not a sub-category or has no parents. Any
    other record is appended to the children of each parent it lists, in
    input order of the child records. All placements of a record share one
    node, so every placement exposes the same children.
    """
    records = list(records)
    nodes: dict[int, TreeNode] = {}
    for record in records:
        nodes.setdefault(record.id, TreeNode(record=record))

    forest: list[TreeNode] = []
    for record in records:
        node = nodes[record.id]
        if node.record is not record:
            # duplicate id in the snapshot: first occurrence wins
            continue
        if record.is_root:
            forest.append(node)
            continue

        for parent_id in record.parent_ids:
            if parent_id == record.id:
                continue
            parent = nodes.get(parent_id)
            if parent is None:
                logger.debug("category_parent_missing", category_id=record.id, parent_id=parent_id)
                continue
            parent.children.append(node)

    return forest


# ---------------------------------------------------------------------------
# Search / filter
# ---------------------------------------------------------------------------

def normalize_query(query: object) -> str:
    """Lower-cased search needle, untrimmed; anything that is not a string matches all."""
    if not isinstance(query, str):
        return ""
    return query.lower()


def matches_query(record: CategoryRecord, needle: str) -> bool:
    if not needle:
        return True
    return any(
        needle in text.lower()
        for text in (record.name, record.short_description, record.long_description)
        if text
    )


def matches_kind(record: CategoryRecord, kind: CategoryKind) -> bool:
    if kind is CategoryKind.PARENT:
        return not record.is_sub_category
    if kind is CategoryKind.SUB:
        return record.is_sub_category
    return True


def filter_forest(
    forest: list[TreeNode],
    query: object = "",
    kind: object = CategoryKind.ALL,
) -> list[TreeNode]:
    """Return a new forest holding the nodes that match or lead to a match.

    A node survives when it satisfies both the query and the kind, or when
    any of its children survives. Surviving nodes are fresh wrappers whose
    children are only the surviving children, in their original order.
    """
    return _filter_nodes(forest, normalize_query(query), CategoryKind.parse(kind), frozenset())


def _filter_nodes(
    nodes: list[TreeNode],
    needle: str,
    kind: CategoryKind,
    visiting: frozenset[int],
) -> list[TreeNode]:
    filtered: list[TreeNode] = []
    for node in nodes:
        if node.id in visiting:
            logger.debug("category_cycle_truncated", category_id=node.id)
            continue
        children = _filter_nodes(node.children, needle, kind, visiting | {node.id})
        direct = matches_query(node.record, needle) and matches_kind(node.record, kind)
        if direct or children:
            filtered.append(TreeNode(record=node.record, children=children))
    return filtered


# ---------------------------------------------------------------------------
# Counting / walking
# ---------------------------------------------------------------------------

def count_nodes(forest: list[TreeNode]) -> int:
    """Number of placements in the forest (a shared record counts once per parent)."""
    return _count(forest, frozenset())


def _count(nodes: list[TreeNode], visiting: frozenset[int]) -> int:
    total = 0
    for node in nodes:
        if node.id in visiting:
            continue
        total += 1 + _count(node.children, visiting | {node.id})
    return total


def walk_rows(forest: list[TreeNode], expanded: AbstractSet[int] = frozenset()) -> list[TreeRow]:
    """Depth-first rows as a tree view shows them.

    Children are listed only below nodes whose id is in `expanded`. With
    every id expanded the row count equals `count_nodes(forest)`.
    """
    rows: list[TreeRow] = []
    _walk(forest, expanded, 0, frozenset(), rows)
    return rows


def _walk(
    nodes: list[TreeNode],
    expanded: AbstractSet[int],
    level: int,
    visiting: frozenset[int],
    rows: list[TreeRow],
) -> None:
    for node in nodes:
        if node.id in visiting:
            continue
        path = visiting | {node.id}
        visible = [child for child in node.children if child.id not in path]
        open_ = is_open(expanded, node.id)
        rows.append(TreeRow(
            node=node,
            level=level,
            has_children=bool(visible),
            child_count=len(visible),
            is_open=open_,
        ))
        if open_ and visible:
            _walk(visible, expanded, level + 1, path, rows)


def collect_ids(forest: list[TreeNode]) -> ExpansionState:
    """Ids reachable from the forest, e.g. to expand everything."""
    ids: set[int] = set()
    stack = list(forest)
    while stack:
        node = stack.pop()
        if node.id in ids:
            continue
        ids.add(node.id)
        stack.extend(node.children)
    return frozenset(ids)


# ---------------------------------------------------------------------------
# Expansion state
# ---------------------------------------------------------------------------

def toggle(state: AbstractSet[int], category_id: int) -> ExpansionState:
    """Flip one id; keyed by record id, so every placement opens together."""
    if category_id in state:
        return frozenset(state - {category_id})
    return frozenset(state | {category_id})


def is_open(state: AbstractSet[int], category_id: int) -> bool:
    return category_id in state


# ---------------------------------------------------------------------------
# Flat-store helpers
# ---------------------------------------------------------------------------

def parent_categories(records: Iterable[CategoryRecord]) -> list[CategoryRecord]:
    return [r for r in records if not r.is_sub_category]


def sub_categories_of(records: Iterable[CategoryRecord], parent_id: int) -> list[CategoryRecord]:
    return [r for r in records if r.is_sub_category and parent_id in r.parent_ids]


def category_stats(records: Iterable[CategoryRecord]) -> dict[str, int]:
    """Record counts (not placements) for the dashboard header."""
    total = parents = 0
    for record in records:
        total += 1
        if not record.is_sub_category:
            parents += 1
    return {"total": total, "parents": parents, "subs": total - parents}
