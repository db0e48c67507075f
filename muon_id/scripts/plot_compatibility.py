import numpy as np
import matplotlib.pyplot as plt

from muon_id.muon_constants import CALO_COMPATIBILITY_WEIGHT, SEGMENT_COMPATIBILITY_WEIGHT, RESULT_TREE
from muon_id.selectors.presets import SELECTION_PRESETS, SelectionType
from muon_id.utils.io_helpers import read_tree_frame

CUT_LINES = {
    "Loose": SELECTION_PRESETS[SelectionType.TM_2D_COMPATIBILITY_LOOSE].min_compatibility,
    "Tight": SELECTION_PRESETS[SelectionType.TM_2D_COMPATIBILITY_TIGHT].min_compatibility,
}


def plot_compatibility_plane(results, output_path, highlight=SelectionType.TM_2D_COMPATIBILITY_LOOSE):
    """
    Scatter of calo vs segment compatibility with the 2D cut lines.
    Candidates passing `highlight` are drawn in a separate colour.
    """
    calo = results["caloCompatibility"].to_numpy(dtype=float)
    segment = results["segmentCompatibility"].to_numpy(dtype=float)

    fig, ax = plt.subplots(figsize=(7, 6))
    if highlight.value in results.columns:
        passed = results[highlight.value].to_numpy().astype(bool)
        ax.scatter(calo[~passed], segment[~passed], s=8, alpha=0.6, c="grey", label="Fail")
        ax.scatter(calo[passed], segment[passed], s=8, alpha=0.6, c="tab:blue", label=f"Pass {highlight.value}")
    else:
        ax.scatter(calo, segment, s=8, alpha=0.6, c="tab:blue", label="Candidates")

    # cut line: w_c * calo + w_s * segment = k
    x = np.linspace(0.0, 1.0, 200)
    for name, k in CUT_LINES.items():
        ax.plot(x, (k - CALO_COMPATIBILITY_WEIGHT * x) / SEGMENT_COMPATIBILITY_WEIGHT, "--", label=f"{name} ({k})")

    ax.set_xlim(0.0, 1.0)
    ax.set_ylim(0.0, 1.1)
    ax.set_xlabel("Calo compatibility")
    ax.set_ylabel("Segment compatibility")
    ax.set_title("Muon compatibility plane")
    ax.legend()
    ax.grid(True)

    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    print(f"Saved compatibility plane to {output_path}")
    return output_path


if __name__ == "__main__":
    results = read_tree_frame("muon_selection.root", RESULT_TREE)
    plot_compatibility_plane(results, "compatibility_plane.png")
