from typing import Iterable, Sequence, TypeVar

T = TypeVar("T")

# Gap left between consecutive list orders so a new list can be slotted in
# without renumbering the whole board.
ORDER_STEP = 1000


def move_item(seq: Sequence[T], source_index: int, destination_index: int) -> list[T]:
    """Return a copy of ``seq`` with the item at ``source_index`` moved to ``destination_index``.

    Behaves like a remove-then-insert splice: the destination is interpreted
    against the sequence *after* the item has been removed and is clamped
    into range. A source index outside the sequence raises ``IndexError``.
    """
    if not 0 <= source_index < len(seq):
        raise IndexError(f"source index {source_index} out of range for {len(seq)} items")
    out = list(seq)
    item = out.pop(source_index)
    out.insert(max(0, min(destination_index, len(out))), item)
    return out


def renumber(count: int) -> list[int]:
    """Order values for ``count`` items laid out at ``position * ORDER_STEP``."""
    return [position * ORDER_STEP for position in range(count)]


def next_order(orders: Iterable[int]) -> int:
    existing = list(orders)
    if not existing:
        return 0
    return max(existing) + ORDER_STEP
