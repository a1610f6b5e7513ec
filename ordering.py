"""Sibling ordering for workstreams, projects and tasks.

Positions live in the ``sort_order`` column and are only used for display.
Siblings are always read back ordered by ``sort_order`` then ``created_at``,
so rows with a missing or duplicated position fall back to creation order.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence, TypeVar

from tracker_store import StoreResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = Mapping[str, Any]


def sibling_key(row: Row) -> tuple:
    position = row.get("sort_order")
    return (position is None, position if position is not None else 0, str(row.get("created_at") or ""))


def sort_siblings(rows: Sequence[Row]) -> List[Row]:
    return sorted(rows, key=sibling_key)


def next_sort_order(siblings: Sequence[Row], floor: int = -1) -> int:
    """Position for a new sibling appended after all existing ones.

    With the default floor the first row of an empty list gets 0; pass
    ``floor=0`` to start at 1. Missing positions count as 0.
    """
    return max([floor] + [row.get("sort_order") or 0 for row in siblings]) + 1


def index_of(siblings: Sequence[Row], entity_id: str) -> int:
    for index, row in enumerate(siblings):
        if row.get("id") == entity_id:
            return index
    return -1


def array_move(items: Sequence[T], old_index: int, new_index: int) -> List[T]:
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


def renumber(rows: Sequence[Row]) -> List[Dict[str, Any]]:
    return [{**row, "sort_order": index} for index, row in enumerate(rows)]


def reindex_after_move(siblings: Sequence[Row], active_id: str, over_id: str) -> List[Dict[str, Any]] | None:
    if active_id == over_id:
        return None
    old_index = index_of(siblings, active_id)
    new_index = index_of(siblings, over_id)
    if old_index < 0 or new_index < 0:
        return None
    return renumber(array_move(siblings, old_index, new_index))


def changed_positions(before: Sequence[Row], after: Sequence[Row]) -> Dict[str, int]:
    previous = {row.get("id"): row.get("sort_order") for row in before}
    return {
        row["id"]: row["sort_order"]
        for row in after
        if previous.get(row["id"], object()) != row["sort_order"]
    }


def find_neighbor(siblings: Sequence[Row], entity_id: str, direction: int) -> Row | None:
    if direction not in (-1, 1):
        raise ValueError(f"direction must be -1 or 1, got {direction!r}")
    index = index_of(siblings, entity_id)
    if index < 0:
        return None
    target = index + direction
    if target < 0 or target >= len(siblings):
        return None
    return siblings[target]


def write_positions(store, table: str, positions: Mapping[str, int]) -> StoreResult:
    if not positions:
        return StoreResult(data=0)
    logger.debug("Writing %d %s positions", len(positions), table)
    return store.update_many(
        table, {row_id: {"sort_order": position} for row_id, position in positions.items()}
    )


def swap_positions(store, table: str, a: Row, b: Row) -> StoreResult:
    """Exchange the positions of two siblings in one batch."""
    return write_positions(
        store,
        table,
        {a["id"]: b.get("sort_order"), b["id"]: a.get("sort_order")},
    )


def reorder(store, table: str, siblings: Sequence[Row], active_id: str, over_id: str) -> StoreResult | None:
    ordered = sort_siblings(siblings)
    moved = reindex_after_move(ordered, active_id, over_id)
    if moved is None:
        return None
    return write_positions(store, table, changed_positions(ordered, moved))


def move(store, table: str, siblings: Sequence[Row], entity_id: str, direction: int) -> StoreResult | None:
    """Move one sibling a step up (-1) or down (+1).

    Normally a pairwise swap that touches only the two rows. When the two
    positions are equal or missing a swap would leave the order unchanged,
    so the whole sibling list is renumbered instead, which can rewrite
    siblings other than the moved pair.

    Returns None without writing when the row is at the list boundary or
    not found.
    """
    ordered = sort_siblings(siblings)
    neighbor = find_neighbor(ordered, entity_id, direction)
    if neighbor is None:
        return None
    current = ordered[index_of(ordered, entity_id)]
    pa, pb = current.get("sort_order"), neighbor.get("sort_order")
    if pa is None or pb is None or pa == pb:
        return reorder(store, table, ordered, entity_id, neighbor["id"])
    return swap_positions(store, table, current, neighbor)
