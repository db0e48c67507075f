import numpy as np
import pytest

from muon_id.candidate.muon_candidate import (
    ALL_SLOTS, ArbitrationType, DetectorType, MatchRecord, MuonCandidate, StationMask, StationSlot
)

DT, CSC = DetectorType.DT, DetectorType.CSC


def test_slot_index_layout():
    assert [slot.index for slot in ALL_SLOTS] == list(range(8))
    assert StationSlot(1, DT).index == 0
    assert StationSlot(4, DT).index == 3
    assert StationSlot(1, CSC).index == 4
    assert StationSlot(4, CSC).index == 7
    assert StationSlot.from_index(5) == StationSlot(2, CSC)
    assert StationSlot.from_index(2).label == "DT3"
    assert StationSlot.from_index(6).label == "CSC3"


def test_slot_index_out_of_range():
    with pytest.raises(ValueError):
        StationSlot.from_index(8)
    with pytest.raises(ValueError):
        StationSlot(5, DT).index


def test_station_mask_bits():
    mask = StationMask.from_bits(0b10000101)
    assert mask.slots() == [StationSlot(1, DT), StationSlot(3, DT), StationSlot(4, CSC)]
    assert mask.count() == 3
    assert mask.to_bits() == 0b10000101
    assert mask.highest() == StationSlot(4, CSC)
    assert StationSlot(3, DT) in mask
    assert StationSlot(2, DT) not in mask
    assert 7 in mask
    assert mask == StationMask.from_slots([0, 2, 7])


def test_empty_station_mask():
    mask = StationMask()
    assert not mask
    assert mask.count() == 0
    assert mask.highest() is None
    assert mask.slots() == []
    assert mask.to_bits() == 0


def test_station_mask_is_read_only():
    mask = StationMask.from_bits(1)
    with pytest.raises(ValueError):
        mask.flags[3] = True
    np.testing.assert_array_equal(mask.flags, [True] + [False] * 7)


def test_match_record_sentinels_become_missing():
    record = MatchRecord.from_values(track_dist=999999.0, segment_x=1.5, dy=999998.5, pull_y=float("nan"), dx=-0.2)
    assert record.track_dist is None
    assert record.segment_x == 1.5
    assert record.dy is None
    assert record.pull_y is None
    assert record.dx == -0.2
    assert not record.was_crossed
    assert record.has_segment
    assert record.has_x and not record.has_y


def test_station_mask_derived_from_segments():
    candidate = MuonCandidate(pt=10.0, eta=0.3, matches={
        StationSlot(1, DT): MatchRecord(track_dist=-20.0, segment_x=0.0),
        StationSlot(2, DT): MatchRecord(track_dist=-20.0),
        StationSlot(3, CSC): MatchRecord(track_dist=-5.0, segment_x=1.0),
    })
    assert candidate.station_mask().slots() == [StationSlot(1, DT), StationSlot(3, CSC)]
    assert candidate.number_of_matches(ArbitrationType.SEGMENT_AND_TRACK_ARBITRATION) == 2


def test_supplied_station_mask_and_arbitrated_matches():
    arbitrated = ArbitrationType.SEGMENT_AND_TRACK_ARBITRATION
    candidate = MuonCandidate(
        pt=10.0, eta=0.3,
        matches={StationSlot(1, DT): MatchRecord(track_dist=-20.0, segment_x=0.0)},
        arbitrated_matches={arbitrated: {}},
        station_masks={ArbitrationType.NO_ARBITRATION: StationMask.from_bits(0b11)},
    )
    assert candidate.station_mask(ArbitrationType.NO_ARBITRATION).count() == 2
    assert candidate.station_mask(ArbitrationType.SEGMENT_ARBITRATION).count() == 1
    assert candidate.station_mask(arbitrated).count() == 0
    assert not candidate.match(StationSlot(1, DT), arbitrated).was_crossed
    assert candidate.match((1, DT)).segment_x == 0.0


def test_candidate_from_record():
    row = {
        "pt": 12.5, "eta": -1.4, "matchesValid": 1, "isTrackerMuon": True, "isGlobalMuon": 0,
        "caloCompatibility": 0.8, "stationMask": 16.0,
        "normalizedChi2": 2.5, "nValidMuonHits": 14,
        "trackDist_CSC1": -12.0, "trackDistErr_CSC1": 1.5, "segmentX_CSC1": 3.0,
        "dX_CSC1": 0.4, "pullX_CSC1": 0.9, "dY_CSC1": 999999.0,
        "trackDist_DT2": 999999.0,
    }
    candidate = MuonCandidate.from_record(row)
    assert candidate.pt == 12.5
    assert candidate.eta == -1.4
    assert candidate.has_valid_matches()
    assert candidate.is_tracker_muon and not candidate.is_global_muon
    assert list(candidate.matches) == [StationSlot(1, CSC)]
    record = candidate.match(StationSlot(1, CSC))
    assert record.track_dist == -12.0
    assert record.dy is None
    assert candidate.station_mask(ArbitrationType.SEGMENT_AND_TRACK_ARBITRATION).slots() == [StationSlot(1, CSC)]
    assert candidate.global_track.normalized_chi2 == 2.5
    assert candidate.global_track.n_valid_muon_hits == 14


@pytest.mark.parametrize("n_hits", [float("nan"), 999999.0])
def test_candidate_from_record_without_hit_count(n_hits):
    row = {"pt": 30.0, "eta": 0.3, "isGlobalMuon": True, "normalizedChi2": 1.2, "nValidMuonHits": n_hits}
    candidate = MuonCandidate.from_record(row)
    assert candidate.global_track.normalized_chi2 == 1.2
    assert candidate.global_track.n_valid_muon_hits == 0
    assert MuonCandidate.from_record({"pt": 30.0, "eta": 0.3, "normalizedChi2": 1.2}).global_track.n_valid_muon_hits == 0
