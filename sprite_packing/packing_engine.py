from __future__ import annotations

from dataclasses import dataclass
import io
import logging
from typing import Any

import pandas as pd

from .packers import Block, FixedPacker, GrowingPacker
from .sorting import DEFAULT_SORT, sort_blocks
from .tree import Node, free_leaves

logger = logging.getLogger(__name__)


@dataclass
class PackingResult:
    placements: pd.DataFrame
    unpacked: pd.DataFrame
    sheet: dict[str, float]
    metrics: dict[str, Any]


BLOCK_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "block", "block_id", "sprite", "id", "item"),
    "w": ("w", "width"),
    "h": ("h", "height"),
    "quantity": ("quantity", "qty", "count"),
}

PLACEMENT_COLUMNS = ["block_id", "source_block", "x", "y", "w", "h", "area", "order"]
UNPACKED_COLUMNS = ["block_id", "source_block", "w", "h", "area", "reason"]


def run_packing(
    blocks_df: pd.DataFrame,
    width: float | None = None,
    height: float | None = None,
    sort: str = DEFAULT_SORT,
    seed: int | None = None,
) -> PackingResult:
    """Pack the rows of ``blocks_df`` onto a single sheet.

    With both ``width`` and ``height`` the sheet has that fixed size and
    blocks that do not fit are reported in ``unpacked``. Without them the
    sheet starts at the first (sorted) block and grows as needed.
    """
    if (width is None) != (height is None):
        raise ValueError("Give both `width` and `height` for a fixed sheet, or neither for a growing one.")

    prepared = _prepare_blocks(blocks_df)
    blocks = sort_blocks(_expand_blocks(prepared), sort, seed=seed)

    if width is None:
        mode = "growing"
        packer = GrowingPacker()
        packer.fit(blocks)
        sheet = {"width": float(packer.root.w), "height": float(packer.root.h)}
    else:
        mode = "fixed"
        packer = FixedPacker(float(width), float(height))
        packer.fit(blocks)
        sheet = {"width": float(width), "height": float(height)}

    placements: list[dict[str, Any]] = []
    unpacked: list[dict[str, Any]] = []
    for order, block in enumerate(blocks):
        if block.fit is not None:
            placements.append(
                {
                    "block_id": block.name,
                    "source_block": block.source,
                    "x": float(block.fit.x),
                    "y": float(block.fit.y),
                    "w": block.w,
                    "h": block.h,
                    "area": block.w * block.h,
                    "order": order,
                }
            )
        else:
            unpacked.append(
                {
                    "block_id": block.name,
                    "source_block": block.source,
                    "w": block.w,
                    "h": block.h,
                    "area": block.w * block.h,
                    "reason": _unpacked_reason(mode),
                }
            )

    placements_df = pd.DataFrame(placements, columns=PLACEMENT_COLUMNS)
    unpacked_df = pd.DataFrame(unpacked, columns=UNPACKED_COLUMNS)
    metrics = _build_metrics(placements_df, unpacked_df, sheet, free_leaves(packer.root), mode, sort)
    logger.info(
        "Packed %d/%d blocks onto a %gx%g %s sheet (%.1f%% coverage)",
        metrics["packed_blocks"],
        metrics["total_blocks"],
        sheet["width"],
        sheet["height"],
        mode,
        metrics["coverage"] * 100,
    )
    return PackingResult(placements=placements_df, unpacked=unpacked_df, sheet=sheet, metrics=metrics)


def read_excel_input(file_bytes: bytes) -> pd.DataFrame:
    workbook = pd.read_excel(io.BytesIO(file_bytes), sheet_name=None)
    sheet_lookup = {str(sheet_name).strip().lower(): sheet_name for sheet_name in workbook.keys()}
    if "blocks" not in sheet_lookup:
        raise ValueError("Missing required sheet(s): blocks.")
    return workbook[sheet_lookup["blocks"]]


def build_template_workbook() -> bytes:
    blocks_template = pd.DataFrame(
        [
            {"name": "hero", "w": 128, "h": 128, "quantity": 1},
            {"name": "tile", "w": 64, "h": 64, "quantity": 6},
            {"name": "banner", "w": 256, "h": 32, "quantity": 2},
            {"name": "pillar", "w": 32, "h": 160, "quantity": 2},
            {"name": "icon", "w": 24, "h": 24, "quantity": 10},
        ]
    )

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        blocks_template.to_excel(writer, index=False, sheet_name="blocks")
    return buffer.getvalue()


def result_to_workbook(result: PackingResult) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        result.placements.to_excel(writer, index=False, sheet_name="placements")
        result.unpacked.to_excel(writer, index=False, sheet_name="unpacked")
        pd.DataFrame([result.sheet]).to_excel(writer, index=False, sheet_name="sheet")
        pd.DataFrame([result.metrics]).to_excel(writer, index=False, sheet_name="metrics")
    return buffer.getvalue()


@dataclass(eq=False)
class _TableBlock(Block):
    source: str = ""


def _prepare_blocks(blocks_df: pd.DataFrame) -> pd.DataFrame:
    blocks = _rename_columns(blocks_df.copy(), BLOCK_COLUMN_ALIASES)
    _require_columns(blocks, ("w", "h"), entity_name="blocks")

    if "name" not in blocks.columns:
        blocks["name"] = [str(index + 1) for index in range(len(blocks))]
    blocks["name"] = blocks["name"].astype(str).str.strip()
    if (blocks["name"] == "").any():
        raise ValueError("`blocks` sheet has empty block names.")

    for column in ("w", "h"):
        blocks[column] = pd.to_numeric(blocks[column], errors="coerce")
    _ensure_positive(blocks, ("w", "h"), entity_name="blocks")

    if "quantity" in blocks.columns:
        blocks["quantity"] = _parse_quantity(blocks["quantity"], "blocks.quantity")
    else:
        blocks["quantity"] = 1

    return blocks[["name", "w", "h", "quantity"]]


def _expand_blocks(blocks: pd.DataFrame) -> list[_TableBlock]:
    expanded: list[_TableBlock] = []
    seen_ids: set[str] = set()
    for row in blocks.to_dict(orient="records"):
        quantity = int(row["quantity"])
        for index in range(1, quantity + 1):
            block_id = row["name"] if quantity == 1 else f"{row['name']}#{index}"
            if block_id in seen_ids:
                raise ValueError(f"`blocks` has a duplicate block name: {block_id}.")
            seen_ids.add(block_id)
            expanded.append(_TableBlock(w=float(row["w"]), h=float(row["h"]), name=block_id, source=row["name"]))
    if not expanded:
        raise ValueError("`blocks` sheet has no usable rows.")
    return expanded


def _unpacked_reason(mode: str) -> str:
    if mode == "fixed":
        return "No free space left on the sheet."
    return "Block is wider and taller than the sheet at the time it was packed."


def _build_metrics(
    placements: pd.DataFrame,
    unpacked: pd.DataFrame,
    sheet: dict[str, float],
    free_space: list[Node],
    mode: str,
    sort: str,
) -> dict[str, Any]:
    packed_blocks = int(len(placements))
    unpacked_blocks = int(len(unpacked))
    total_blocks = packed_blocks + unpacked_blocks

    sheet_area = sheet["width"] * sheet["height"]
    packed_area = float(placements["area"].sum()) if not placements.empty else 0.0
    # zero-area leaves are split leftovers, not usable space
    free_areas = [node.w * node.h for node in free_space if node.w > 0 and node.h > 0]

    return {
        "total_blocks": total_blocks,
        "packed_blocks": packed_blocks,
        "unpacked_blocks": unpacked_blocks,
        "packing_rate": (packed_blocks / total_blocks) if total_blocks else 0.0,
        "sheet_width": sheet["width"],
        "sheet_height": sheet["height"],
        "sheet_area": sheet_area,
        "packed_area": packed_area,
        "coverage": (packed_area / sheet_area) if sheet_area > 0 else 0.0,
        "free_regions": len(free_areas),
        "largest_free_area": float(max(free_areas, default=0.0)),
        "mode": mode,
        "sort": sort,
    }


def _rename_columns(df: pd.DataFrame, aliases: dict[str, tuple[str, ...]]) -> pd.DataFrame:
    normalized_map = {_normalize_column_name(column): column for column in df.columns}
    rename_map: dict[str, str] = {}
    for canonical_name, options in aliases.items():
        for alias in options:
            normalized_alias = _normalize_column_name(alias)
            if normalized_alias in normalized_map:
                rename_map[normalized_map[normalized_alias]] = canonical_name
                break
    return df.rename(columns=rename_map)


def _normalize_column_name(name: Any) -> str:
    return str(name).strip().lower().replace(" ", "_")


def _require_columns(df: pd.DataFrame, required: tuple[str, ...], entity_name: str) -> None:
    missing = [column for column in required if column not in df.columns]
    if missing:
        missing_names = ", ".join(missing)
        raise ValueError(f"`{entity_name}` is missing required column(s): {missing_names}.")


def _ensure_positive(df: pd.DataFrame, columns: tuple[str, ...], entity_name: str) -> None:
    if df[list(columns)].isna().any().any():
        raise ValueError(f"`{entity_name}` contains non-numeric values in: {', '.join(columns)}.")
    if df[list(columns)].isin([float("inf"), float("-inf")]).any().any():
        raise ValueError(f"`{entity_name}` contains infinite values in: {', '.join(columns)}.")
    invalid_rows = df[(df[list(columns)] <= 0).any(axis=1)]
    if not invalid_rows.empty:
        raise ValueError(f"`{entity_name}` has non-positive values in dimensions: {', '.join(columns)}.")


def _parse_quantity(source: pd.Series, label: str) -> pd.Series:
    raw = pd.to_numeric(source, errors="coerce")
    raw = raw.fillna(1)
    invalid = (raw < 1) | ((raw % 1) != 0)
    if invalid.any():
        raise ValueError(f"`{label}` must be a positive integer.")
    return raw.astype(int)
