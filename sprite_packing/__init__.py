"""Binary-tree rectangle packing for sprite sheets."""

from .packers import Block, FixedPacker, GrowingPacker
from .packing_engine import PackingResult, build_template_workbook, read_excel_input, result_to_workbook, run_packing
from .sorting import DEFAULT_SORT, SORTS, sort_blocks
from .tree import Node, find_node, split_node

__all__ = [
    "Block",
    "DEFAULT_SORT",
    "FixedPacker",
    "GrowingPacker",
    "Node",
    "PackingResult",
    "SORTS",
    "build_template_workbook",
    "find_node",
    "read_excel_input",
    "result_to_workbook",
    "run_packing",
    "sort_blocks",
    "split_node",
]
