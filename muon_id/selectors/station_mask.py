# selectors/station_mask.py
import math

from muon_id.candidate.muon_candidate import ALL_SLOTS, StationMask


def station_pull(record):
    """
    trackDist / trackDistErr for one slot, None if the track never reached it.
    A zero error gives 0 for an exact zero distance and a signed infinity otherwise.
    """
    if record.track_dist is None:
        return None
    if not record.track_dist_err:
        return 0.0 if record.track_dist == 0 else math.copysign(math.inf, record.track_dist)
    return record.track_dist / record.track_dist_err


def is_station_required(record, max_chamber_dist, max_chamber_dist_pull):
    """
    A station is required when the extrapolated track is closer to (or deeper
    inside) the chamber than max_chamber_dist, both in cm and in pull.
    Comparisons are strict.
    """
    pull = station_pull(record)
    if pull is None:
        return False
    return record.track_dist < max_chamber_dist and pull < max_chamber_dist_pull


def required_station_mask(candidate, max_chamber_dist, max_chamber_dist_pull, arbitration):
    """
    Main entry point for the geometric expectation of segments.

    Args:
        candidate (MuonCandidate)
        max_chamber_dist (float): cm, negative values mean inside the chamber
        max_chamber_dist_pull (float)
        arbitration (ArbitrationType): passed through to the match accessor

    Returns:
        StationMask: slots where a segment should have been reconstructed
    """
    return StationMask.from_slots(
        slot for slot in ALL_SLOTS
        if is_station_required(candidate.match(slot, arbitration), max_chamber_dist, max_chamber_dist_pull)
    )
