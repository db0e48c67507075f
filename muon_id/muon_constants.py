# muon_constants.py

# Upstream "no measurement" value on distance/residual/pull fields
NO_MEASUREMENT = 999999.0
NO_MEASUREMENT_THRESHOLD = 999998.0  # anything at or above this is missing

# Cut value meaning "do not cut on y" in loose selections
LOOSE_CUT = 1e9

# Station layout
N_STATIONS = 4        # stations 1–4 per technology
N_STATION_SLOTS = 8   # slots 0–3 = DT1–DT4, slots 4–7 = CSC1–CSC4

# Segment compatibility weights, keyed by number of stations crossed
STATION_WEIGHTS = {
    1: (1.0,),
    2: (0.33, 0.67),
    3: (0.23, 0.33, 0.44),
    4: (0.10, 0.20, 0.30, 0.40),
}
NEUTRAL_COMPATIBILITY = 0.5  # no station crossed

# Chamber boundary weight regain
ATTENUATE_WEIGHT_REGAIN = 0.5
BOUNDARY_MIN_DIST = -10.0    # cm, deeper inside than this counts as 0
BOUNDARY_ERF_SCALE = 6.0     # cm

# Match quality penalty
PENALTY_MIN_PULL = 1.0
PENALTY_MAX_RESIDUAL = 3.0   # cm
PENALTY_SWITCH_PULL = 3.0
PENALTY_EXPONENT = 0.25

# 2D compatibility plane
CALO_COMPATIBILITY_WEIGHT = 0.8
SEGMENT_COMPATIBILITY_WEIGHT = 1.2

# Kinematic regions
BARREL_ETA_MAX = 1.2
LOW_PT_MAX = 8.0             # GeV

# GlobalMuonPromptTight
PROMPT_TIGHT_MAX_CHI2 = 10.0

# Batch I/O
CANDIDATE_TREE = "muons"
RESULT_TREE = "selection"
