import numpy as np
import pandas as pd

from muon_id.muon_constants import BARREL_ETA_MAX, RESULT_TREE
from muon_id.selectors.presets import SelectionType
from muon_id.utils.io_helpers import read_tree_frame

SUMMARY_COLUMNS = ["selection", "passed", "total", "efficiency", "barrel_efficiency", "endcap_efficiency"]


def _efficiency(passed, total):
    return passed / total if total > 0 else float("nan")


def selection_efficiency(results):
    """
    Pass counts per selection column found in `results`, overall and split
    into barrel (|eta| < 1.2) and endcap.
    """
    labels = [s.value for s in SelectionType if s.value in results.columns]
    barrel = np.abs(results["eta"].to_numpy(dtype=float)) < BARREL_ETA_MAX
    n_total = len(results)
    n_barrel = int(barrel.sum())

    rows = []
    for label in labels:
        passed = results[label].to_numpy().astype(bool)
        n_pass = int(passed.sum())
        n_pass_barrel = int(passed[barrel].sum())
        rows.append({
            "selection": label,
            "passed": n_pass,
            "total": n_total,
            "efficiency": _efficiency(n_pass, n_total),
            "barrel_efficiency": _efficiency(n_pass_barrel, n_barrel),
            "endcap_efficiency": _efficiency(n_pass - n_pass_barrel, n_total - n_barrel),
        })
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def dump_selection_summary(results, output_path="selection_summary.tsv"):
    summary = selection_efficiency(results)
    summary.to_csv(output_path, sep="\t", index=False)
    print(f"[INFO] Selection summary dumped to {output_path}")
    return summary


def print_selection_summary(summary):
    print("\n=== Per-Selection Efficiency ===")
    print(f"{'Selection':>34} | {'Passed':>7} | {'Total':>7} | {'Eff%':>7} | {'Barrel%':>8} | {'Endcap%':>8}")
    print("-" * 86)
    for row in summary.itertuples():
        print(f"{row.selection:>34} | {row.passed:7} | {row.total:7} | "
              f"{100 * row.efficiency:6.2f}% | {100 * row.barrel_efficiency:7.2f}% | {100 * row.endcap_efficiency:7.2f}%")


if __name__ == "__main__":
    results_file = "muon_selection.root"

    results = read_tree_frame(results_file, RESULT_TREE)
    print_selection_summary(dump_selection_summary(results))
