import math

import numpy as np
from scipy.special import erf

from muon_id.candidate.muon_candidate import ALL_SLOTS, ArbitrationType
from muon_id.muon_constants import (
    N_STATION_SLOTS, STATION_WEIGHTS, NEUTRAL_COMPATIBILITY,
    ATTENUATE_WEIGHT_REGAIN, BOUNDARY_MIN_DIST, BOUNDARY_ERF_SCALE,
    PENALTY_MIN_PULL, PENALTY_MAX_RESIDUAL, PENALTY_SWITCH_PULL, PENALTY_EXPONENT
)


def rank_weight(n_crossed, rank):
    """
    Base weight of the rank-th crossed station (1-based, in slot order)
    when n_crossed stations were crossed. Deeper stations weigh more.
    """
    if n_crossed in STATION_WEIGHTS:
        return STATION_WEIGHTS[n_crossed][rank - 1]
    return 1.0 / n_crossed


def boundary_distance(record):
    """Track distance to the chamber edge, 0 when well inside the chamber."""
    if record.track_dist > BOUNDARY_MIN_DIST:
        return record.track_dist
    return 0.0


def boundary_regain(distance):
    # erf scaled to run 0 -> 1, capped at ATTENUATE_WEIGHT_REGAIN
    return ATTENUATE_WEIGHT_REGAIN * 0.5 * (erf(distance / BOUNDARY_ERF_SCALE) + 1.0)


def _penalty(residual, pull):
    if pull <= PENALTY_MIN_PULL:
        return 1.0
    if residual < PENALTY_MAX_RESIDUAL and pull > PENALTY_SWITCH_PULL:
        return 1.0 / max(residual, 1.0) ** PENALTY_EXPONENT
    return 1.0 / pull ** PENALTY_EXPONENT


def match_quality_attenuation(record, is_dt=True):
    """
    Weight factor (<= 1) for a matched segment with a poor local position match.

    Pulls up to 1 are never penalized. When the residual is under 3 cm but the
    pull is above 3 the residual is used instead, so that very precise segments
    are not punished for a tiny error estimate.

    Both axes (and any CSC match) use the quadrature of residuals and pulls. A DT
    segment with a single axis uses its signed values, so a negative pull is
    never penalized and a negative residual is floored at 1.
    """
    axes = [
        (residual, pull)
        for residual, pull in ((record.dx, record.pull_x), (record.dy, record.pull_y))
        if residual is not None and pull is not None
    ]
    if not axes:
        return 1.0
    if is_dt and len(axes) == 1:
        return _penalty(*axes[0])

    residual = math.hypot(*(r for r, _ in axes))
    pull = math.hypot(*(p for _, p in axes))
    return _penalty(residual, pull)


def station_weights(candidate, arbitration=ArbitrationType.SEGMENT_ARBITRATION,
                    use_weight_regain_at_chamber_boundary=True, use_match_dist_penalty=True):
    """
    Per-slot contribution to the segment compatibility.

    Args:
        candidate (MuonCandidate)
        arbitration (ArbitrationType): which match records to read
        use_weight_regain_at_chamber_boundary (bool): give partial credit to a
            missing segment when the track passes close to a chamber edge
        use_match_dist_penalty (bool): attenuate badly matched segments

    Returns:
        np.ndarray: 8 weights indexed by StationSlot.index, 0 for uncrossed slots
    """
    records = [candidate.match(slot, arbitration) for slot in ALL_SLOTS]
    n_crossed = sum(record.was_crossed for record in records)

    weights = np.zeros(N_STATION_SLOTS, dtype=float)
    rank = 0
    for slot, record in zip(ALL_SLOTS, records):
        if not record.was_crossed:
            continue
        rank += 1
        weight = rank_weight(n_crossed, rank)

        if not record.has_segment:
            distance = boundary_distance(record)
            if use_weight_regain_at_chamber_boundary and distance != 0.0:
                weight *= boundary_regain(distance)
            else:
                weight = 0.0
        elif use_match_dist_penalty:
            weight *= match_quality_attenuation(record, slot.is_dt)

        weights[slot.index] = weight
    return weights


def segment_compatibility(candidate, arbitration=ArbitrationType.SEGMENT_ARBITRATION, **kwargs):
    """
    Muon-likeness of the candidate from its segment matches, roughly in [0, 1].
    Returns 0.5 when the track crossed no station at all.
    """
    weights = station_weights(candidate, arbitration, **kwargs)
    if not any(candidate.match(slot, arbitration).was_crossed for slot in ALL_SLOTS):
        return NEUTRAL_COMPATIBILITY
    return float(weights.sum())
