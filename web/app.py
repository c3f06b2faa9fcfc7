from __future__ import annotations

import io
import sys
import time
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
from plotly.colors import qualitative
import streamlit as st

# Ensure sibling package imports (e.g. `sprite_packing.*`) work when Streamlit runs from `web/`.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sprite_packing import (
    DEFAULT_SORT,
    SORTS,
    PackingResult,
    build_template_workbook,
    read_excel_input,
    result_to_workbook,
    run_packing,
)


st.set_page_config(page_title="Sprite Sheet Packing", layout="wide")


@st.cache_data(show_spinner=False)
def load_blocks(file_bytes: bytes) -> pd.DataFrame:
    return read_excel_input(file_bytes)


@st.cache_data(show_spinner=False)
def template_bytes() -> bytes:
    return build_template_workbook()


def example_blocks() -> pd.DataFrame:
    return pd.read_excel(io.BytesIO(template_bytes()), sheet_name="blocks")


def build_sheet_outline(width: float, height: float) -> go.Scatter:
    return go.Scatter(
        x=[0, width, width, 0, 0],
        y=[0, 0, height, height, 0],
        mode="lines",
        line={"color": "#111827", "width": 2},
        name="Sheet",
        hoverinfo="skip",
        showlegend=False,
    )


def build_block_trace(x: float, y: float, w: float, h: float, color: str, hover_label: str) -> go.Scatter:
    return go.Scatter(
        x=[x, x + w, x + w, x, x],
        y=[y, y, y + h, y + h, y],
        mode="lines",
        fill="toself",
        fillcolor=color,
        opacity=0.8,
        line={"color": "#1f2937", "width": 1},
        name=hover_label,
        hoveron="fills",
        hovertemplate=f"{hover_label}<extra></extra>",
        showlegend=False,
    )


def build_sheet_figure(result: PackingResult) -> go.Figure:
    width = float(result.sheet["width"])
    height = float(result.sheet["height"])

    fig = go.Figure()
    fig.add_trace(build_sheet_outline(width, height))

    unique_source_blocks = result.placements["source_block"].drop_duplicates().tolist()
    palette = qualitative.Bold + qualitative.Safe + qualitative.Vivid + qualitative.Dark24
    color_map = {block: palette[index % len(palette)] for index, block in enumerate(unique_source_blocks)}

    for placement in result.placements.to_dict(orient="records"):
        hover_label = (
            f"Block: {placement['block_id']}<br>"
            f"Pos: ({placement['x']:g}, {placement['y']:g})<br>"
            f"Size: {placement['w']:g} x {placement['h']:g}"
        )
        fig.add_trace(
            build_block_trace(
                x=float(placement["x"]),
                y=float(placement["y"]),
                w=float(placement["w"]),
                h=float(placement["h"]),
                color=color_map[placement["source_block"]],
                hover_label=hover_label,
            )
        )

    # sheet origin is the top-left corner, as in an image
    fig.update_layout(
        margin={"l": 0, "r": 0, "t": 10, "b": 0},
        xaxis={"range": [0, width], "constrain": "domain", "title": "x"},
        yaxis={"range": [height, 0], "scaleanchor": "x", "scaleratio": 1, "title": "y"},
        plot_bgcolor="#f9fafb",
    )
    return fig


def render_result(result: PackingResult, runtime_seconds: float) -> None:
    st.subheader("Results")
    metric_cols = st.columns(5)
    metric_cols[0].metric("Total Blocks", int(result.metrics["total_blocks"]))
    metric_cols[1].metric("Packed", int(result.metrics["packed_blocks"]))
    metric_cols[2].metric("Sheet", f"{result.sheet['width']:g} x {result.sheet['height']:g}")
    metric_cols[3].metric("Coverage", f"{result.metrics['coverage'] * 100:.1f}%")
    metric_cols[4].metric("Runtime (s)", f"{runtime_seconds:.3f}")

    if not result.placements.empty:
        st.plotly_chart(build_sheet_figure(result), use_container_width=True)
        st.markdown("**Placements**")
        st.dataframe(result.placements, use_container_width=True)
    else:
        st.warning("No blocks could be packed onto the sheet.")

    if not result.unpacked.empty:
        st.markdown("**Unpacked Blocks**")
        st.dataframe(result.unpacked, use_container_width=True)

    st.download_button(
        label="Download Results (Excel)",
        data=result_to_workbook(result),
        file_name="packing_results.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def main() -> None:
    st.title("Sprite Sheet Packing")
    st.write(
        "Upload an `.xlsx` file with a `blocks` sheet (`name`, `w`, `h`, `quantity`) "
        "or edit the example blocks below, then pack them onto a single sheet."
    )

    st.download_button(
        label="Download Input Template",
        data=template_bytes(),
        file_name="packing_input_template.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )

    with st.sidebar:
        st.header("Options")
        mode = st.radio("Sheet size", ["Growing", "Fixed"], index=0)
        width = height = None
        if mode == "Fixed":
            width = st.number_input("Width", min_value=0, value=512, step=16)
            height = st.number_input("Height", min_value=0, value=512, step=16)
        sort_options = list(SORTS)
        sort = st.selectbox("Sort", sort_options, index=sort_options.index(DEFAULT_SORT))
        seed = st.number_input("Random seed", min_value=0, value=0, step=1) if sort == "random" else None

    uploaded_file = st.file_uploader("Upload Excel file", type=["xlsx"])
    if uploaded_file is None:
        blocks_df = st.data_editor(example_blocks(), num_rows="dynamic", use_container_width=True)
    else:
        try:
            blocks_df = load_blocks(uploaded_file.getvalue())
        except ValueError as error:
            st.error(str(error))
            return
        st.markdown("**Blocks Preview**")
        st.dataframe(blocks_df.head(15), use_container_width=True)

    if st.button("Run Packing", type="primary"):
        start_time = time.perf_counter()
        try:
            result = run_packing(blocks_df, width=width, height=height, sort=sort, seed=seed)
        except ValueError as error:
            st.error(str(error))
            return
        runtime_seconds = time.perf_counter() - start_time
        st.session_state["packing_result"] = result
        st.session_state["runtime_seconds"] = runtime_seconds

    cached_result = st.session_state.get("packing_result")
    if cached_result is not None:
        render_result(cached_result, float(st.session_state.get("runtime_seconds", 0.0)))


if __name__ == "__main__":
    main()
