"""
2D Compatibility Selection
"""

from muon_id.muon_constants import CALO_COMPATIBILITY_WEIGHT, SEGMENT_COMPATIBILITY_WEIGHT
from muon_id.selectors.segment_compatibility import segment_compatibility


def calo_compatibility(candidate):
    return candidate.calo_compatibility


def combined_compatibility(candidate):
    """Linear combination used as the cut variable in the calo/segment plane."""
    return (CALO_COMPATIBILITY_WEIGHT * calo_compatibility(candidate)
            + SEGMENT_COMPATIBILITY_WEIGHT * segment_compatibility(candidate))


def is_good_muon_2d(candidate, min_compatibility):
    """
    Simple straight cut in the calo- vs segment-compatibility plane.
    Args:
        candidate (MuonCandidate)
        min_compatibility (float): strict lower bound on the combined value
    Returns:
        bool
    """
    if not candidate.has_valid_matches():
        return False
    return combined_compatibility(candidate) > min_compatibility
