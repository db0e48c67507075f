"""
Run muon identification over a file of candidates.
"""

import argparse
import time

import pandas as pd

from muon_id.muon_constants import CANDIDATE_TREE, RESULT_TREE
from muon_id.selectors.compatibility_2d import calo_compatibility
from muon_id.selectors.presets import SelectionType, is_good_muon, selection_type_from_string
from muon_id.selectors.segment_compatibility import segment_compatibility
from muon_id.utils.io_helpers import read_candidates, write_selection_results

DEFAULT_SELECTIONS = tuple(SelectionType)
SCORE_COLUMNS = ["pt", "eta", "caloCompatibility", "segmentCompatibility"]


def evaluate_candidate(candidate, selections=DEFAULT_SELECTIONS):
    row = {
        "pt": candidate.pt,
        "eta": candidate.eta,
        "caloCompatibility": calo_compatibility(candidate),
        "segmentCompatibility": segment_compatibility(candidate),
    }
    for selection in selections:
        row[selection.value] = is_good_muon(candidate, selection)
    return row


def select_muons(candidates, selections=DEFAULT_SELECTIONS):
    """
    One row per candidate: kinematics, both compatibility scores and one
    boolean column per selection, named by its label.
    """
    labels = [selection.value for selection in selections]
    rows = [evaluate_candidate(candidate, selections) for candidate in candidates]
    results = pd.DataFrame(rows, columns=SCORE_COLUMNS + labels)
    # typed even without rows, so an empty input still writes a valid tree
    dtypes = {column: float for column in SCORE_COLUMNS}
    dtypes.update({label: bool for label in labels})
    return results.astype(dtypes)


def run_selection(input_file, output_file, selections=DEFAULT_SELECTIONS, **kwargs):
    """
    Read candidates, evaluate every selection, and write the result tree.
    """
    total_start = time.perf_counter()

    read_start = time.perf_counter()
    candidates = read_candidates(
        input_file,
        tree_name=kwargs.get("tree_name", CANDIDATE_TREE),
        max_candidates=kwargs.get("max_candidates"),
    )
    read_end = time.perf_counter()
    print(f"Read {len(candidates)} candidates from {input_file}")

    select_start = time.perf_counter()
    results = select_muons(candidates, selections)
    select_end = time.perf_counter()

    write_start = time.perf_counter()
    write_selection_results(output_file, results, tree_name=kwargs.get("result_tree", RESULT_TREE))
    write_end = time.perf_counter()

    total_end = time.perf_counter()

    print("\n--- Timing Summary ---")
    print(f"Read time:      {read_end - read_start:.2f} s")
    print(f"Selection time: {select_end - select_start:.2f} s")
    print(f"Write time:     {write_end - write_start:.2f} s")
    print(f"Total runtime:  {total_end - total_start:.2f} s")
    return results


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Evaluate muon identification selections on a candidate tree.")
    parser.add_argument(
        "--input_file", type=str, required=True,
        help="ROOT file with a flat candidate tree"
    )
    parser.add_argument(
        "--output_file", type=str, default="muon_selection.root",
        help="Where to write the selection results (default: muon_selection.root)"
    )
    parser.add_argument(
        "--selections", type=str, nargs="+", default=[s.value for s in DEFAULT_SELECTIONS],
        help="Selection labels to evaluate (default: all)"
    )
    parser.add_argument(
        "--tree_name", type=str, default=CANDIDATE_TREE,
        help=f"Candidate tree name (default: {CANDIDATE_TREE})"
    )
    parser.add_argument(
        "--max_candidates", type=int, default=None,
        help="Only process the first N candidates"
    )

    args = parser.parse_args()

    run_selection(
        input_file=args.input_file,
        output_file=args.output_file,
        selections=[selection_type_from_string(label) for label in args.selections],
        tree_name=args.tree_name,
        max_candidates=args.max_candidates,
    )
