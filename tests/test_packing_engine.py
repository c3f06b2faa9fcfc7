import io
import unittest

import pandas as pd

from sprite_packing.packing_engine import (
    PLACEMENT_COLUMNS,
    UNPACKED_COLUMNS,
    build_template_workbook,
    read_excel_input,
    result_to_workbook,
    run_packing,
)


class RunPackingTester(unittest.TestCase):
    def test_growing_sheet(self):
        blocks = pd.DataFrame([{"name": "a", "w": 100, "h": 100}, {"name": "b", "w": 100, "h": 50}])
        result = run_packing(blocks, sort="none")

        self.assertEqual(list(result.placements.columns), PLACEMENT_COLUMNS)
        self.assertEqual(result.placements["block_id"].tolist(), ["a", "b"])
        self.assertEqual(result.placements[["x", "y"]].values.tolist(), [[0.0, 0.0], [100.0, 0.0]])
        self.assertEqual(result.sheet, {"width": 200.0, "height": 100.0})
        self.assertTrue(result.unpacked.empty)
        self.assertEqual(result.metrics["mode"], "growing")
        self.assertAlmostEqual(result.metrics["coverage"], 0.75)
        self.assertEqual(result.metrics["packing_rate"], 1.0)
        self.assertEqual(result.metrics["free_regions"], 1)
        self.assertEqual(result.metrics["largest_free_area"], 5000.0)

    def test_fixed_sheet_reports_unpacked(self):
        blocks = pd.DataFrame([{"name": "big", "w": 60, "h": 10}, {"name": "small", "w": 10, "h": 10}])
        result = run_packing(blocks, width=50, height=50, sort="none")

        self.assertEqual(result.placements["block_id"].tolist(), ["small"])
        self.assertEqual(list(result.unpacked.columns), UNPACKED_COLUMNS)
        self.assertEqual(result.unpacked["block_id"].tolist(), ["big"])
        self.assertEqual(result.unpacked["reason"].iloc[0], "No free space left on the sheet.")
        self.assertEqual(result.sheet, {"width": 50.0, "height": 50.0})
        self.assertEqual(result.metrics["unpacked_blocks"], 1)
        self.assertEqual(result.metrics["mode"], "fixed")
        self.assertAlmostEqual(result.metrics["coverage"], 100 / 2500)
        self.assertEqual(result.metrics["free_regions"], 2)
        self.assertEqual(result.metrics["largest_free_area"], 2000.0)

    def test_growing_sheet_reports_rejected_block(self):
        blocks = pd.DataFrame([{"name": "seed", "w": 10, "h": 10}, {"name": "huge", "w": 20, "h": 20}])
        result = run_packing(blocks, sort="none")
        self.assertEqual(result.unpacked["block_id"].tolist(), ["huge"])
        self.assertIn("wider and taller", result.unpacked["reason"].iloc[0])

    def test_quantity_expansion_and_aliases(self):
        blocks = pd.DataFrame([{"Sprite": "tile", "Width": 10, "Height": 10, "Qty": 3}])
        result = run_packing(blocks)

        self.assertEqual(result.placements["block_id"].tolist(), ["tile#1", "tile#2", "tile#3"])
        self.assertEqual(set(result.placements["source_block"]), {"tile"})
        self.assertEqual(result.placements["order"].tolist(), [0, 1, 2])

    def test_default_names(self):
        result = run_packing(pd.DataFrame({"w": [5, 5], "h": [5, 5]}), sort="none")
        self.assertEqual(result.placements["block_id"].tolist(), ["1", "2"])

    def test_sorting_is_applied(self):
        blocks = pd.DataFrame([{"name": "small", "w": 10, "h": 10}, {"name": "large", "w": 40, "h": 40}])
        result = run_packing(blocks, sort="maxside")
        self.assertEqual(result.placements["block_id"].tolist(), ["large", "small"])
        self.assertEqual(result.metrics["sort"], "maxside")

    def test_placements_do_not_overlap(self):
        result = run_packing(read_excel_input(build_template_workbook()))
        rows = result.placements.to_dict(orient="records")
        for index, a in enumerate(rows):
            for b in rows[index + 1:]:
                self.assertFalse(
                    a["x"] < b["x"] + b["w"]
                    and b["x"] < a["x"] + a["w"]
                    and a["y"] < b["y"] + b["h"]
                    and b["y"] < a["y"] + a["h"]
                )
            self.assertLessEqual(a["x"] + a["w"], result.sheet["width"])
            self.assertLessEqual(a["y"] + a["h"], result.sheet["height"])

    def test_validation_errors(self):
        cases = [
            pd.DataFrame({"w": [10]}),
            pd.DataFrame({"w": [-1], "h": [10]}),
            pd.DataFrame({"w": ["x"], "h": [10]}),
            pd.DataFrame({"w": [float("inf")], "h": [10]}),
            pd.DataFrame({"w": [10], "h": [10], "quantity": [0]}),
            pd.DataFrame({"w": [10], "h": [10], "quantity": [1.5]}),
            pd.DataFrame({"name": [" "], "w": [10], "h": [10]}),
            pd.DataFrame(columns=["w", "h"]),
        ]
        for blocks in cases:
            with self.assertRaises(ValueError):
                run_packing(blocks)

    def test_duplicate_block_names_are_rejected(self):
        cases = [
            pd.DataFrame({"name": ["a", "a"], "w": [1, 2], "h": [1, 2]}),
            pd.DataFrame({"name": ["a", "a#1"], "w": [1, 2], "h": [1, 2], "quantity": [2, 1]}),
        ]
        for blocks in cases:
            with self.assertRaises(ValueError):
                run_packing(blocks)

    def test_partial_sheet_size_is_rejected(self):
        with self.assertRaises(ValueError):
            run_packing(pd.DataFrame({"w": [1], "h": [1]}), width=10)

    def test_negative_sheet_size_is_rejected(self):
        with self.assertRaises(ValueError):
            run_packing(pd.DataFrame({"w": [1], "h": [1]}), width=-10, height=10)

    def test_unknown_sort_is_rejected(self):
        with self.assertRaises(ValueError):
            run_packing(pd.DataFrame({"w": [1], "h": [1]}), sort="diagonal")

    def test_input_frame_is_not_modified(self):
        blocks = pd.DataFrame({"Width": [3], "Height": [4]})
        run_packing(blocks)
        self.assertEqual(list(blocks.columns), ["Width", "Height"])


class WorkbookTester(unittest.TestCase):
    def test_template_packs_completely(self):
        blocks = read_excel_input(build_template_workbook())
        result = run_packing(blocks)
        self.assertEqual(result.metrics["total_blocks"], int(blocks["quantity"].sum()))
        self.assertEqual(result.metrics["unpacked_blocks"], 0)

    def test_result_workbook_sheets(self):
        result = run_packing(read_excel_input(build_template_workbook()), width=64, height=64)
        workbook = pd.read_excel(io.BytesIO(result_to_workbook(result)), sheet_name=None)

        self.assertEqual(set(workbook), {"placements", "unpacked", "sheet", "metrics"})
        self.assertEqual(len(workbook["placements"]), len(result.placements))
        self.assertEqual(len(workbook["unpacked"]), len(result.unpacked))
        self.assertEqual(workbook["metrics"]["mode"].iloc[0], "fixed")

    def test_missing_blocks_sheet(self):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            pd.DataFrame({"w": [1], "h": [1]}).to_excel(writer, index=False, sheet_name="sprites")
        with self.assertRaises(ValueError):
            read_excel_input(buffer.getvalue())

    def test_blocks_sheet_name_is_case_insensitive(self):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            pd.DataFrame({"w": [1], "h": [2]}).to_excel(writer, index=False, sheet_name="Blocks")
        blocks = read_excel_input(buffer.getvalue())
        self.assertEqual(blocks[["w", "h"]].values.tolist(), [[1, 2]])


if __name__ == '__main__':
    unittest.main()
