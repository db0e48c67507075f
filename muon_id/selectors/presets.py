from dataclasses import dataclass
from enum import Enum
from typing import Optional

from muon_id.candidate.muon_candidate import ArbitrationType
from muon_id.muon_constants import BARREL_ETA_MAX, LOW_PT_MAX, PROMPT_TIGHT_MAX_CHI2
from muon_id.selectors.compatibility_2d import is_good_muon_2d
from muon_id.selectors.last_station import StationCuts, is_good_last_station
from muon_id.selectors.one_station import is_good_one_station


class AlgorithmType(Enum):
    TM_LAST_STATION = "TMLastStation"
    TM_2D_COMPATIBILITY = "TM2DCompatibility"
    TM_ONE_STATION = "TMOneStation"


class SelectionType(str, Enum):
    ALL = "All"
    ALL_GLOBAL_MUONS = "AllGlobalMuons"
    ALL_STANDALONE_MUONS = "AllStandAloneMuons"
    ALL_TRACKER_MUONS = "AllTrackerMuons"
    TRACKER_MUON_ARBITRATED = "TrackerMuonArbitrated"
    ALL_ARBITRATED = "AllArbitrated"
    GLOBAL_MUON_PROMPT_TIGHT = "GlobalMuonPromptTight"
    TM_LAST_STATION_LOOSE = "TMLastStationLoose"
    TM_LAST_STATION_TIGHT = "TMLastStationTight"
    TM_2D_COMPATIBILITY_LOOSE = "TM2DCompatibilityLoose"
    TM_2D_COMPATIBILITY_TIGHT = "TM2DCompatibilityTight"
    TM_ONE_STATION_LOOSE = "TMOneStationLoose"
    TM_ONE_STATION_TIGHT = "TMOneStationTight"
    TM_LAST_STATION_OPTIMIZED_LOW_PT_LOOSE = "TMLastStationOptimizedLowPtLoose"
    TM_LAST_STATION_OPTIMIZED_LOW_PT_TIGHT = "TMLastStationOptimizedLowPtTight"


def selection_type_from_string(label):
    """Map a selection label to its SelectionType. Unknown labels raise ValueError."""
    try:
        return SelectionType(label)
    except ValueError:
        raise ValueError(f"{label} is not a recognized SelectionType") from None


@dataclass(frozen=True)
class SelectionPreset:
    """
    Fixed parameterization of one algorithm. When low_pt_preset is set it
    replaces this preset for barrel candidates below LOW_PT_MAX, where the
    muon may not bend far enough to reach the last stations.
    """
    algorithm: AlgorithmType
    cuts: Optional[StationCuts] = None
    min_compatibility: Optional[float] = None
    low_pt_preset: Optional["SelectionPreset"] = None


# ==============================
# Parameter table
# ==============================
# Loose presets leave max_abs_dy/max_abs_pull_y unset: y information is
# never looked at, so a missing y measurement cannot fail them.
_SEGMENT_AND_TRACK = ArbitrationType.SEGMENT_AND_TRACK_ARBITRATION

LAST_STATION_LOOSE = SelectionPreset(
    AlgorithmType.TM_LAST_STATION,
    cuts=StationCuts(2, 3, 3, None, None, -3, -3, _SEGMENT_AND_TRACK),
)
LAST_STATION_TIGHT = SelectionPreset(
    AlgorithmType.TM_LAST_STATION,
    cuts=StationCuts(2, 3, 3, 3, 3, -3, -3, _SEGMENT_AND_TRACK),
)
ONE_STATION_LOOSE = SelectionPreset(
    AlgorithmType.TM_ONE_STATION,
    cuts=StationCuts(1, 3, 3, arbitration=_SEGMENT_AND_TRACK),
)
ONE_STATION_TIGHT = SelectionPreset(
    AlgorithmType.TM_ONE_STATION,
    cuts=StationCuts(1, 3, 3, 3, 3, arbitration=_SEGMENT_AND_TRACK),
)

SELECTION_PRESETS = {
    SelectionType.TM_LAST_STATION_LOOSE: LAST_STATION_LOOSE,
    SelectionType.TM_LAST_STATION_TIGHT: LAST_STATION_TIGHT,
    SelectionType.TM_ONE_STATION_LOOSE: ONE_STATION_LOOSE,
    SelectionType.TM_ONE_STATION_TIGHT: ONE_STATION_TIGHT,
    SelectionType.TM_LAST_STATION_OPTIMIZED_LOW_PT_LOOSE: SelectionPreset(
        AlgorithmType.TM_LAST_STATION, cuts=LAST_STATION_LOOSE.cuts, low_pt_preset=ONE_STATION_LOOSE,
    ),
    SelectionType.TM_LAST_STATION_OPTIMIZED_LOW_PT_TIGHT: SelectionPreset(
        AlgorithmType.TM_LAST_STATION, cuts=LAST_STATION_TIGHT.cuts, low_pt_preset=ONE_STATION_TIGHT,
    ),
    SelectionType.TM_2D_COMPATIBILITY_LOOSE: SelectionPreset(
        AlgorithmType.TM_2D_COMPATIBILITY, min_compatibility=0.7,
    ),
    SelectionType.TM_2D_COMPATIBILITY_TIGHT: SelectionPreset(
        AlgorithmType.TM_2D_COMPATIBILITY, min_compatibility=1.0,
    ),
}


# ==============================
# Membership selections
# ==============================
def _is_tracker_muon_arbitrated(candidate):
    return candidate.is_tracker_muon and candidate.number_of_matches(_SEGMENT_AND_TRACK) > 0


def _is_arbitrated(candidate):
    return not candidate.is_tracker_muon or candidate.number_of_matches(_SEGMENT_AND_TRACK) > 0


def _is_global_muon_prompt_tight(candidate):
    track = candidate.global_track
    return (candidate.is_global_muon and track is not None
            and track.normalized_chi2 < PROMPT_TIGHT_MAX_CHI2
            and track.n_valid_muon_hits > 0)


MEMBERSHIP_SELECTIONS = {
    SelectionType.ALL: lambda candidate: True,
    SelectionType.ALL_GLOBAL_MUONS: lambda candidate: candidate.is_global_muon,
    SelectionType.ALL_TRACKER_MUONS: lambda candidate: candidate.is_tracker_muon,
    SelectionType.ALL_STANDALONE_MUONS: lambda candidate: candidate.is_standalone_muon,
    SelectionType.TRACKER_MUON_ARBITRATED: _is_tracker_muon_arbitrated,
    SelectionType.ALL_ARBITRATED: _is_arbitrated,
    SelectionType.GLOBAL_MUON_PROMPT_TIGHT: _is_global_muon_prompt_tight,
}


# ==============================
# Entry points
# ==============================
def is_good_muon_compatibility(candidate, algorithm, min_compatibility):
    """Threshold form. Only TM2DCompatibility is defined, anything else fails."""
    if not candidate.has_valid_matches():
        return False
    if algorithm is AlgorithmType.TM_2D_COMPATIBILITY:
        return is_good_muon_2d(candidate, min_compatibility)
    return False


def is_good_muon_with_cuts(candidate, algorithm, cuts):
    """Parameterized form for the station based algorithms."""
    if not candidate.has_valid_matches():
        return False
    if algorithm is AlgorithmType.TM_LAST_STATION:
        return is_good_last_station(candidate, cuts)
    if algorithm is AlgorithmType.TM_ONE_STATION:
        return is_good_one_station(candidate, cuts)
    return False


def resolve_preset(candidate, preset):
    if (preset.low_pt_preset is not None
            and candidate.pt < LOW_PT_MAX and abs(candidate.eta) < BARREL_ETA_MAX):
        return preset.low_pt_preset
    return preset


def passes_preset(candidate, preset):
    preset = resolve_preset(candidate, preset)
    if preset.algorithm is AlgorithmType.TM_2D_COMPATIBILITY:
        return is_good_muon_compatibility(candidate, preset.algorithm, preset.min_compatibility)
    return is_good_muon_with_cuts(candidate, preset.algorithm, preset.cuts)


def is_good_muon(candidate, selection):
    """
    Main entry point for named selections.

    Args:
        candidate (MuonCandidate)
        selection (SelectionType or its label)

    Returns:
        bool: False for anything that is not a known selection
    """
    try:
        selection = SelectionType(selection)
    except ValueError:
        return False

    if selection in MEMBERSHIP_SELECTIONS:
        return bool(MEMBERSHIP_SELECTIONS[selection](candidate))
    if selection in SELECTION_PRESETS:
        return passes_preset(candidate, SELECTION_PRESETS[selection])
    return False
