"""Binary free-space tree shared by the fixed and growing packers.

A free leaf is an untouched rectangle. Placing a block into a leaf marks it
used and gives it two children: ``right`` (the strip beside the block, only as
tall as the block) and ``down`` (everything below the block, full width).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class Node:
    x: float
    y: float
    w: float
    h: float
    used: bool = False
    right: Node | None = None
    down: Node | None = None

    def fits(self, w: float, h: float) -> bool:
        return w <= self.w and h <= self.h


def find_node(root: Node, w: float, h: float) -> Node | None:
    """Return the first free leaf able to hold a ``w`` x ``h`` block.

    Used nodes are searched right child first, then down child.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        if node.used:
            # pushed in reverse so that `right` is visited first
            stack.append(node.down)
            stack.append(node.right)
        elif node.fits(w, h):
            return node
    return None


def split_node(node: Node, w: float, h: float) -> Node:
    node.used = True
    node.down = Node(x=node.x, y=node.y + h, w=node.w, h=node.h - h)
    node.right = Node(x=node.x + w, y=node.y, w=node.w - w, h=h)
    return node


def iter_nodes(root: Node):
    """Yield every node of the tree in right-before-down order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if node.used:
            stack.append(node.down)
            stack.append(node.right)


def free_leaves(root: Node) -> list[Node]:
    return [node for node in iter_nodes(root) if not node.used]
