import math

import numpy as np
import pytest

from muon_id.candidate.muon_candidate import ArbitrationType, DetectorType, MatchRecord, MuonCandidate, StationSlot
from muon_id.selectors.segment_compatibility import (
    match_quality_attenuation, rank_weight, segment_compatibility, station_weights
)


def dt(station):
    return StationSlot(station, DetectorType.DT)


def csc(station):
    return StationSlot(station, DetectorType.CSC)


def good_segment(**kwargs):
    values = dict(track_dist=-20.0, track_dist_err=1.0, segment_x=0.0, dx=0.1, pull_x=0.5)
    values.update(kwargs)
    return MatchRecord(**values)


def candidate_with(records, **kwargs):
    return MuonCandidate(pt=20.0, eta=0.5, matches=records, **kwargs)


def test_no_station_crossed_is_neutral():
    assert segment_compatibility(candidate_with({})) == 0.5
    # a segment without a crossing still counts as nothing crossed
    assert segment_compatibility(candidate_with({dt(1): MatchRecord(segment_x=1.0, dx=0.1, pull_x=0.1)})) == 0.5


def test_two_dt_stations_with_good_segments():
    candidate = candidate_with({dt(1): good_segment(), dt(2): good_segment()})
    weights = station_weights(candidate)
    np.testing.assert_allclose(weights, [0.33, 0.67, 0, 0, 0, 0, 0, 0])
    assert segment_compatibility(candidate) == pytest.approx(1.0)


def test_weights_follow_rank_not_slot():
    candidate = candidate_with({dt(2): good_segment(), dt(4): good_segment(), csc(3): good_segment()})
    np.testing.assert_allclose(station_weights(candidate), [0, 0.23, 0, 0.33, 0, 0, 0.44, 0])
    assert segment_compatibility(candidate) == pytest.approx(1.0)


def test_rank_weights():
    assert rank_weight(1, 1) == 1.0
    assert [rank_weight(4, r) for r in range(1, 5)] == [0.10, 0.20, 0.30, 0.40]
    assert rank_weight(6, 3) == pytest.approx(1 / 6)


def test_more_than_four_stations_uniform():
    records = {StationSlot.from_index(i): good_segment() for i in range(5)}
    weights = station_weights(candidate_with(records))
    np.testing.assert_allclose(weights[:5], [0.2] * 5)
    assert segment_compatibility(candidate_with(records)) == pytest.approx(1.0)


@pytest.mark.parametrize("track_dist", [0.0, -10.0, -25.0])
def test_missing_segment_deep_inside_chamber(track_dist):
    candidate = candidate_with({dt(1): MatchRecord(track_dist=track_dist, track_dist_err=1.0)})
    assert segment_compatibility(candidate) == 0.0


@pytest.mark.parametrize("track_dist", [-5.0, 2.0, 30.0])
def test_missing_segment_near_boundary_regains_weight(track_dist):
    candidate = candidate_with({csc(2): MatchRecord(track_dist=track_dist, track_dist_err=1.0)})
    expected = 0.5 * 0.5 * (math.erf(track_dist / 6.0) + 1.0)
    assert segment_compatibility(candidate) == pytest.approx(expected)
    assert segment_compatibility(candidate) <= 0.5


def test_boundary_regain_can_be_disabled():
    candidate = candidate_with({dt(1): MatchRecord(track_dist=2.0, track_dist_err=1.0)})
    assert segment_compatibility(candidate, use_weight_regain_at_chamber_boundary=False) == 0.0


@pytest.mark.parametrize("record, expected", [
    (good_segment(dx=0.2, pull_x=1.0), 1.0),                          # pull of 1 is not penalized
    (good_segment(dx=5.0, pull_x=16.0), 16.0 ** -0.25),               # large residual, pull form
    (good_segment(dx=2.0, pull_x=4.0), 2.0 ** -0.25),                 # small residual, big pull
    (good_segment(dx=0.5, pull_x=5.0), 1.0),                          # residual floored at 1
    (good_segment(dx=2.0, pull_x=2.0), 2.0 ** -0.25),                 # pull under 3 keeps pull form
    (good_segment(dx=3.0, dy=4.0, pull_x=3.0, pull_y=4.0), 5.0 ** -0.25),
    (good_segment(dx=None, pull_x=None, dy=4.0, pull_y=-16.0), 1.0),      # one DT axis: negative pull not penalized
    (good_segment(dx=None, pull_x=None, dy=4.0, pull_y=16.0), 16.0 ** -0.25),
    (good_segment(dx=-5.0, pull_x=4.0), 1.0),                         # one DT axis: negative residual floored at 1
    (good_segment(dx=None, pull_x=None), 1.0),
])
def test_match_quality_attenuation(record, expected):
    assert match_quality_attenuation(record) == pytest.approx(expected)


def test_badly_matched_segment_attenuates_weight():
    candidate = candidate_with({csc(1): good_segment(dx=5.0, pull_x=16.0, dy=0.0, pull_y=0.0)})
    assert segment_compatibility(candidate) == pytest.approx(0.5)
    assert segment_compatibility(candidate, use_match_dist_penalty=False) == pytest.approx(1.0)


def test_same_score_for_equivalent_arbitrations():
    records = {dt(1): good_segment(), dt(3): MatchRecord(track_dist=-1.0, track_dist_err=1.0)}
    candidate = candidate_with(records, arbitrated_matches={
        ArbitrationType.SEGMENT_AND_TRACK_ARBITRATION: dict(records),
    })
    assert segment_compatibility(candidate, ArbitrationType.SEGMENT_ARBITRATION) == \
        segment_compatibility(candidate, ArbitrationType.SEGMENT_AND_TRACK_ARBITRATION)


def test_segment_compatibility_is_finite_float():
    candidate = candidate_with({
        dt(1): good_segment(dx=40.0, pull_x=200.0),
        dt(2): MatchRecord(track_dist=3.0, track_dist_err=1.0),
        csc(1): good_segment(dx=0.0, pull_x=0.0, dy=0.0, pull_y=0.0),
    })
    value = segment_compatibility(candidate)
    assert isinstance(value, float)
    assert math.isfinite(value)


def test_single_axis_dt_match_uses_signed_values():
    assert segment_compatibility(candidate_with({dt(1): good_segment(dx=-5.0, pull_x=-16.0)})) == 1.0
    assert segment_compatibility(candidate_with({dt(1): good_segment(dx=-5.0, pull_x=4.0)})) == 1.0
    assert segment_compatibility(candidate_with({dt(1): good_segment(dx=5.0, pull_x=16.0)})) == pytest.approx(0.5)


def test_single_axis_csc_match_uses_magnitude():
    record = good_segment(dx=-5.0, pull_x=-16.0)
    assert match_quality_attenuation(record, is_dt=False) == pytest.approx(0.5)
    assert segment_compatibility(candidate_with({csc(1): record})) == pytest.approx(0.5)
