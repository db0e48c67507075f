from dataclasses import dataclass
from enum import Enum
from typing import Optional

from muon_id.candidate.muon_candidate import ArbitrationType, DetectorType, StationSlot
from muon_id.muon_constants import BARREL_ETA_MAX, LOOSE_CUT, NO_MEASUREMENT
from muon_id.selectors.station_mask import required_station_mask


@dataclass(frozen=True)
class StationCuts:
    """
    Parameters shared by the last-station and one-station algorithms.
    A max_abs_dy of None (or >= 999999) disables every y cut.
    """
    min_matches: int
    max_abs_dx: float
    max_abs_pull_x: float
    max_abs_dy: Optional[float] = None
    max_abs_pull_y: Optional[float] = None
    max_chamber_dist: float = LOOSE_CUT
    max_chamber_dist_pull: float = LOOSE_CUT
    arbitration: ArbitrationType = ArbitrationType.SEGMENT_AND_TRACK_ARBITRATION

    @property
    def uses_y(self):
        return self.max_abs_dy is not None and self.max_abs_dy < NO_MEASUREMENT


def _exceeds(value, limit):
    # a missing measurement never exceeds a cut
    return value is not None and limit is not None and abs(value) > limit


def fails_x_cut(record, cuts):
    """Fails only if both the pull and the residual are too large."""
    return _exceeds(record.pull_x, cuts.max_abs_pull_x) and _exceeds(record.dx, cuts.max_abs_dx)


def fails_y_cut(record, cuts):
    return _exceeds(record.pull_y, cuts.max_abs_pull_y) and _exceeds(record.dy, cuts.max_abs_dy)


class LastStationCase(Enum):
    REQUIRED_WITH_SEGMENT = "required station has a segment"
    REQUIRED_WITHOUT_SEGMENT = "required station has no segment"
    SEGMENT_ONLY = "no required station, using last segment"
    EMPTY = "no required station and no segment"


def find_last_station(station_mask, required_mask):
    """
    Pick the slot the quality cuts are applied to.

    - With required stations: the highest required slot, which must hold a segment.
    - Without: the highest slot holding a segment.

    Returns:
        (LastStationCase, StationSlot or None)
    """
    last_required = required_mask.highest()
    if last_required is not None:
        if last_required in station_mask:
            return LastStationCase.REQUIRED_WITH_SEGMENT, last_required
        return LastStationCase.REQUIRED_WITHOUT_SEGMENT, last_required

    last_segment = station_mask.highest()
    if last_segment is not None:
        return LastStationCase.SEGMENT_ONLY, last_segment
    return LastStationCase.EMPTY, None


def _dt_slot_with_y(candidate, station_mask, from_station, arbitration):
    """First DT slot at or below from_station that has a segment with y information."""
    for station in range(from_station, 0, -1):
        slot = StationSlot(station, DetectorType.DT)
        if slot not in station_mask:
            continue
        if candidate.match(slot, arbitration).has_y:
            return slot
    return None


def is_good_last_station(candidate, cuts):
    """
    TMLastStation:
      - at least min_matches segments (clamped to [1, n_required] in the barrel),
      - the last required station must have a segment,
      - x match of that segment within cuts (pull OR residual),
      - tight only: y match within cuts. DT segments lacking y (always the
        case in station 4) hand the y cut down to the next DT segment that
        has it; no such segment means nothing to penalize.
    """
    if not candidate.has_valid_matches():
        return False
    if cuts.min_matches == 0:
        return True

    station_mask = candidate.station_mask(cuts.arbitration)
    required_mask = required_station_mask(
        candidate, cuts.max_chamber_dist, cuts.max_chamber_dist_pull, cuts.arbitration
    )
    n_segs = station_mask.count()
    n_required = required_mask.count()

    min_matches = cuts.min_matches
    if abs(candidate.eta) < BARREL_ETA_MAX:
        min_matches = max(min(min_matches, n_required), 1)
    if n_segs < min_matches:
        return False

    case, slot = find_last_station(station_mask, required_mask)
    if case is LastStationCase.REQUIRED_WITHOUT_SEGMENT:
        return False
    if case is LastStationCase.EMPTY:
        return True

    record = candidate.match(slot, cuts.arbitration)
    if fails_x_cut(record, cuts):
        return False
    if not cuts.uses_y:
        return True

    if not slot.is_dt:
        return not fails_y_cut(record, cuts)

    y_slot = _dt_slot_with_y(candidate, station_mask, slot.station, cuts.arbitration)
    if y_slot is None:
        return True
    return not fails_y_cut(candidate.match(y_slot, cuts.arbitration), cuts)
