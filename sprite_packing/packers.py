from __future__ import annotations

import logging
from dataclasses import dataclass, field
from math import isfinite
from numbers import Real
from typing import Any, Sequence

from .tree import Node, find_node, split_node

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Block:
    """A rectangle request; ``fit`` is set by a packer when it is placed."""

    w: float
    h: float
    name: str | None = None
    fit: Node | None = field(default=None, repr=False)


class FixedPacker:
    """Packs blocks into a container of fixed ``width`` x ``height``.

    Each block goes into the first free leaf where it fits; blocks that do
    not fit are left without a ``fit``. Calling :meth:`fit` again keeps
    packing into whatever space is still free.
    """

    def __init__(self, width: float, height: float) -> None:
        _check_dimension(width, "width")
        _check_dimension(height, "height")
        self.root = Node(x=0, y=0, w=width, h=height)

    def fit(self, blocks: Sequence[Any]) -> None:
        _validate_blocks(blocks)
        for block in blocks:
            node = find_node(self.root, block.w, block.h)
            if node is not None:
                block.fit = split_node(node, block.w, block.h)
            else:
                logger.debug("No room for %sx%s block in %sx%s bin", block.w, block.h, self.root.w, self.root.h)


class GrowingPacker:
    """Packs blocks into a container that starts at the first block's size.

    When a block does not fit, the container is extended either right or
    down, whichever keeps it closer to square. It can never grow in both
    directions for one block, so a block that is both wider and taller than
    the current container is rejected. Feeding blocks sorted largest first
    avoids this.
    """

    def __init__(self) -> None:
        self.root: Node | None = None

    def fit(self, blocks: Sequence[Any]) -> None:
        _validate_blocks(blocks)
        # each call is a fresh layout, so drop placements from an earlier one
        for block in blocks:
            if getattr(block, "fit", None) is not None:
                block.fit = None

        if len(blocks) > 0:
            w, h = blocks[0].w, blocks[0].h
        else:
            w, h = 0, 0
        self.root = Node(x=0, y=0, w=w, h=h)
        logger.debug("Seeded growing bin at %sx%s", w, h)

        for block in blocks:
            node = find_node(self.root, block.w, block.h)
            placed = split_node(node, block.w, block.h) if node is not None else self.grow_node(block.w, block.h)
            if placed is not None:
                block.fit = placed

    def grow_node(self, w: float, h: float) -> Node | None:
        can_grow_down = w <= self.root.w
        can_grow_right = h <= self.root.h

        # keep the bin square-ish: widen a tall bin, heighten a wide one
        should_grow_right = can_grow_right and self.root.h >= self.root.w + w
        should_grow_down = can_grow_down and self.root.w >= self.root.h + h

        if should_grow_right:
            return self.grow_right(w, h)
        if should_grow_down:
            return self.grow_down(w, h)
        if can_grow_right:
            return self.grow_right(w, h)
        if can_grow_down:
            return self.grow_down(w, h)

        logger.debug(
            "Cannot grow %sx%s bin for %sx%s block: it is wider and taller than the bin",
            self.root.w,
            self.root.h,
            w,
            h,
        )
        return None

    def grow_right(self, w: float, h: float) -> Node | None:
        old_root = self.root
        self.root = Node(
            x=0,
            y=0,
            w=old_root.w + w,
            h=old_root.h,
            used=True,
            right=Node(x=old_root.w, y=0, w=w, h=old_root.h),
            down=old_root,
        )
        logger.debug("Grew bin right to %sx%s", self.root.w, self.root.h)
        return self._place(w, h)

    def grow_down(self, w: float, h: float) -> Node | None:
        old_root = self.root
        self.root = Node(
            x=0,
            y=0,
            w=old_root.w,
            h=old_root.h + h,
            used=True,
            right=old_root,
            down=Node(x=0, y=old_root.h, w=old_root.w, h=h),
        )
        logger.debug("Grew bin down to %sx%s", self.root.w, self.root.h)
        return self._place(w, h)

    def _place(self, w: float, h: float) -> Node | None:
        node = find_node(self.root, w, h)
        return split_node(node, w, h) if node is not None else None


def _check_dimension(value: Any, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValueError(f"`{label}` must be a number, got {value!r}.")
    if not isfinite(value) or value < 0:
        raise ValueError(f"`{label}` must be finite and non-negative, got {value!r}.")


def _validate_blocks(blocks: Sequence[Any]) -> None:
    for index, block in enumerate(blocks):
        for attribute in ("w", "h"):
            if not hasattr(block, attribute):
                raise ValueError(f"Block {index} has no `{attribute}` attribute.")
            _check_dimension(getattr(block, attribute), f"blocks[{index}].{attribute}")
