# src/tasktracker/tasks/ordering.py

"""
Project display order.

The sidebar order is whatever `order_index ASC` yields. A drag-reorder computes
the full new id sequence here and the store writes index = position for every
row. New projects append at the tail. Deletes leave gaps; gaps are harmless
because display order only relies on sorting.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence


def next_order_index(existing: Iterable[int | None]) -> int:
    values = [int(v) for v in existing if v is not None]
    if not values:
        return 0
    return max(values) + 1


def move_id(ordered_ids: Sequence[int], dragged_id: int, target_id: int | None) -> list[int] | None:
    """
    Splice `dragged_id` into the slot currently held by `target_id`.

    Returns the new full sequence, or None when nothing should be written:
    - no drop target (dropped outside the list)
    - dragged or target id not in the list
    - dropped on itself
    """
    if target_id is None or dragged_id == target_id:
        return None

    ids = list(ordered_ids)
    try:
        old_pos = ids.index(dragged_id)
        new_pos = ids.index(target_id)
    except ValueError:
        return None

    ids.pop(old_pos)
    ids.insert(new_pos, dragged_id)
    return ids


def positions(ordered_ids: Sequence[int]) -> list[tuple[int, int]]:
    """(order_index, project_id) pairs for a full renumber."""
    return [(pos, int(pid)) for pos, pid in enumerate(ordered_ids)]
