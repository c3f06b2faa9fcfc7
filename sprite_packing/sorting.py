from __future__ import annotations

import random
from typing import Any, Callable, Iterable

DEFAULT_SORT = "maxside"


def _by_width(block: Any) -> tuple[float, ...]:
    return (block.w, block.h)


def _by_height(block: Any) -> tuple[float, ...]:
    return (block.h, block.w)


def _by_area(block: Any) -> tuple[float, ...]:
    return (block.w * block.h, block.h, block.w)


def _by_max_side(block: Any) -> tuple[float, ...]:
    return (max(block.w, block.h), min(block.w, block.h), block.h, block.w)


# Keys are applied in descending order. `none` and `random` are handled in sort_blocks.
SORTS: dict[str, Callable[[Any], tuple[float, ...]] | None] = {
    "none": None,
    "width": _by_width,
    "height": _by_height,
    "area": _by_area,
    "maxside": _by_max_side,
    "random": None,
}


def sort_blocks(blocks: Iterable[Any], order: str = DEFAULT_SORT, seed: int | None = None) -> list[Any]:
    """Return a new list of ``blocks`` ordered for packing.

    The packers are sensitive to input order and work best with the largest
    blocks first; ``maxside`` usually gives the tightest sheets.
    """
    if order not in SORTS:
        known = ", ".join(SORTS)
        raise ValueError(f"Unknown sort order {order!r}; expected one of: {known}.")

    ordered = list(blocks)
    if order == "random":
        random.Random(seed).shuffle(ordered)
        return ordered

    key = SORTS[order]
    if key is None:
        return ordered
    return sorted(ordered, key=key, reverse=True)
