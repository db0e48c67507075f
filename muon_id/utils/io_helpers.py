import numpy as np
import pandas as pd
import uproot

from muon_id.candidate.muon_candidate import MuonCandidate
from muon_id.muon_constants import CANDIDATE_TREE, RESULT_TREE


def read_tree_frame(filename, tree_name):
    """
    Reads every branch of a flat tree into a DataFrame (one row per entry).
    """
    with uproot.open(filename) as f:
        if tree_name not in f.keys(cycle=False):
            raise RuntimeError(f"Could not find '{tree_name}' in {filename}")
        arrays = f[tree_name].arrays(library="np")
    return pd.DataFrame(arrays)


def candidates_from_frame(frame):
    return [MuonCandidate.from_record(row) for row in frame.to_dict("records")]


def read_candidates(filename, tree_name=CANDIDATE_TREE, max_candidates=None):
    frame = read_tree_frame(filename, tree_name)
    if max_candidates is not None:
        frame = frame.iloc[:max_candidates]
    return candidates_from_frame(frame)


def _to_branches(frame):
    # booleans go out as int32, everything else numeric as float64
    branches = {}
    for name in frame.columns:
        values = frame[name].to_numpy()
        if values.dtype == bool:
            branches[name] = values.astype(np.int32)
        elif np.issubdtype(values.dtype, np.number):
            branches[name] = values.astype(np.float64)
        elif values.size and all(isinstance(v, (bool, np.bool_)) for v in values):
            branches[name] = values.astype(np.int32)
        else:
            print(f"[WARNING] Skipping non-numeric column '{name}'")
    return branches


def write_tree_frame(filename, frame, tree_name):
    with uproot.recreate(filename) as f:
        f[tree_name] = _to_branches(frame)


def write_selection_results(output_filename, results, tree_name=RESULT_TREE):
    """
    Writes one entry per candidate with its scores and pass/fail flags.
    """
    write_tree_frame(output_filename, results, tree_name)
    print(f"Wrote selection results to '{output_filename}'")
