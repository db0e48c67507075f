# candidate/muon_candidate.py

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import NamedTuple, Optional

import numpy as np

from muon_id.muon_constants import N_STATIONS, N_STATION_SLOTS, NO_MEASUREMENT_THRESHOLD


class DetectorType(IntEnum):
    DT = 1
    CSC = 2


class ArbitrationType(Enum):
    NO_ARBITRATION = "NoArbitration"
    SEGMENT_ARBITRATION = "SegmentArbitration"
    SEGMENT_AND_TRACK_ARBITRATION = "SegmentAndTrackArbitration"
    SEGMENT_AND_TRACK_ARBITRATION_CLEANED = "SegmentAndTrackArbitrationCleaned"


class StationSlot(NamedTuple):
    """
    One (station, detector) pair addressed by a flat index:
    slots 0–3 are DT stations 1–4, slots 4–7 are CSC stations 1–4.
    """
    station: int
    detector: DetectorType

    @property
    def index(self):
        if not 1 <= self.station <= N_STATIONS:
            raise ValueError(f"Station {self.station} outside 1–{N_STATIONS}")
        return (self.station - 1) + N_STATIONS * (DetectorType(self.detector) - 1)

    @property
    def label(self):
        return f"{DetectorType(self.detector).name}{self.station}"

    @property
    def is_dt(self):
        return self.detector == DetectorType.DT

    @classmethod
    def from_index(cls, index):
        if not 0 <= index < N_STATION_SLOTS:
            raise ValueError(f"Station slot index {index} outside 0–{N_STATION_SLOTS - 1}")
        return cls(index % N_STATIONS + 1, DetectorType(index // N_STATIONS + 1))


ALL_SLOTS = tuple(StationSlot.from_index(i) for i in range(N_STATION_SLOTS))


def _slot_index(slot):
    if isinstance(slot, tuple):
        return StationSlot(*slot).index
    return StationSlot.from_index(int(slot)).index


class StationMask:
    """
    Fixed set of station slots, stored as a boolean array indexed by
    StationSlot.index. Bit i of the integer form is slot i.
    """

    def __init__(self, flags=None):
        if flags is None:
            flags = np.zeros(N_STATION_SLOTS, dtype=bool)
        flags = np.array(flags, dtype=bool)
        if flags.shape != (N_STATION_SLOTS,):
            raise ValueError(f"StationMask needs {N_STATION_SLOTS} flags, got shape {flags.shape}")
        flags.setflags(write=False)
        self.flags = flags

    @classmethod
    def from_bits(cls, bits):
        bits = int(bits)
        return cls([(bits >> i) & 1 for i in range(N_STATION_SLOTS)])

    @classmethod
    def from_slots(cls, slots):
        flags = np.zeros(N_STATION_SLOTS, dtype=bool)
        for slot in slots:
            flags[_slot_index(slot)] = True
        return cls(flags)

    def to_bits(self):
        return sum(1 << int(i) for i in np.flatnonzero(self.flags))

    def count(self):
        return int(np.count_nonzero(self.flags))

    def slots(self):
        """Slots in the mask, lowest index first."""
        return [StationSlot.from_index(int(i)) for i in np.flatnonzero(self.flags)]

    def highest(self):
        set_idx = np.flatnonzero(self.flags)
        if set_idx.size == 0:
            return None
        return StationSlot.from_index(int(set_idx[-1]))

    def __contains__(self, slot):
        return bool(self.flags[_slot_index(slot)])

    def __bool__(self):
        return bool(self.flags.any())

    def __eq__(self, other):
        if not isinstance(other, StationMask):
            return NotImplemented
        return bool(np.array_equal(self.flags, other.flags))

    def __hash__(self):
        return hash(self.to_bits())

    def __repr__(self):
        return f"StationMask({[slot.label for slot in self.slots()]})"


def _measurement(value):
    """Upstream sentinel (>= 999998) and NaN both mean no measurement."""
    if value is None:
        return None
    value = float(value)
    if math.isnan(value) or value >= NO_MEASUREMENT_THRESHOLD:
        return None
    return value


@dataclass(frozen=True)
class MatchRecord:
    """Track-to-chamber match for one station slot. None means not measured."""
    track_dist: Optional[float] = None
    track_dist_err: Optional[float] = None
    segment_x: Optional[float] = None
    segment_y: Optional[float] = None
    dx: Optional[float] = None
    dy: Optional[float] = None
    pull_x: Optional[float] = None
    pull_y: Optional[float] = None

    @classmethod
    def from_values(cls, **raw):
        return cls(**{name: _measurement(value) for name, value in raw.items()})

    @property
    def was_crossed(self):
        return self.track_dist is not None

    @property
    def has_segment(self):
        return self.segment_x is not None

    @property
    def has_x(self):
        return self.dx is not None

    @property
    def has_y(self):
        return self.dy is not None


EMPTY_MATCH = MatchRecord()

# Flat-tree branch name -> MatchRecord attribute
MATCH_BRANCHES = {
    "trackDist": "track_dist",
    "trackDistErr": "track_dist_err",
    "segmentX": "segment_x",
    "segmentY": "segment_y",
    "dX": "dx",
    "dY": "dy",
    "pullX": "pull_x",
    "pullY": "pull_y",
}


@dataclass(frozen=True)
class GlobalTrackQuality:
    normalized_chi2: float
    n_valid_muon_hits: int


@dataclass(frozen=True)
class MuonCandidate:
    """
    Read-only view of a reconstructed muon candidate.

    `matches` is the per-slot view used when an arbitration type has no
    entry in `arbitrated_matches`. `station_masks` holds externally
    computed segment masks; arbitrations without one fall back to the
    slots whose record carries a segment.
    """
    pt: float
    eta: float
    matches: dict = field(default_factory=dict)
    arbitrated_matches: dict = field(default_factory=dict)
    station_masks: dict = field(default_factory=dict)
    matches_valid: bool = True
    calo_compatibility: float = 0.0
    is_global_muon: bool = False
    is_tracker_muon: bool = False
    is_standalone_muon: bool = False
    global_track: Optional[GlobalTrackQuality] = None

    def has_valid_matches(self):
        return self.matches_valid

    def match(self, slot, arbitration=ArbitrationType.SEGMENT_ARBITRATION):
        records = self.arbitrated_matches.get(arbitration, self.matches)
        return records.get(StationSlot.from_index(_slot_index(slot)), EMPTY_MATCH)

    def station_mask(self, arbitration=ArbitrationType.SEGMENT_ARBITRATION):
        if arbitration in self.station_masks:
            return self.station_masks[arbitration]
        return StationMask.from_slots(
            slot for slot in ALL_SLOTS if self.match(slot, arbitration).has_segment
        )

    def number_of_matches(self, arbitration=ArbitrationType.SEGMENT_ARBITRATION):
        return self.station_mask(arbitration).count()

    @classmethod
    def from_record(cls, row):
        """
        Build a candidate from one flat row (dict or DataFrame record).

        Per-slot branches are named <branch>_<slot label>, e.g. trackDist_DT1
        or pullY_CSC4. An optional integer `stationMask` column is taken as
        the segment-and-track arbitrated mask.
        """
        matches = {}
        for slot in ALL_SLOTS:
            raw = {attr: row.get(f"{branch}_{slot.label}") for branch, attr in MATCH_BRANCHES.items()}
            record = MatchRecord.from_values(**raw)
            if record != EMPTY_MATCH:
                matches[slot] = record

        station_masks = {}
        mask_bits = _measurement(row.get("stationMask"))
        if mask_bits is not None:
            station_masks[ArbitrationType.SEGMENT_AND_TRACK_ARBITRATION] = StationMask.from_bits(mask_bits)

        global_track = None
        chi2 = _measurement(row.get("normalizedChi2"))
        if chi2 is not None:
            n_hits = _measurement(row.get("nValidMuonHits"))
            global_track = GlobalTrackQuality(
                normalized_chi2=chi2,
                n_valid_muon_hits=0 if n_hits is None else int(n_hits),
            )

        return cls(
            pt=float(row["pt"]),
            eta=float(row["eta"]),
            matches=matches,
            station_masks=station_masks,
            matches_valid=bool(row.get("matchesValid", True)),
            calo_compatibility=float(row.get("caloCompatibility", 0.0)),
            is_global_muon=bool(row.get("isGlobalMuon", False)),
            is_tracker_muon=bool(row.get("isTrackerMuon", False)),
            is_standalone_muon=bool(row.get("isStandAloneMuon", False)),
            global_track=global_track,
        )
