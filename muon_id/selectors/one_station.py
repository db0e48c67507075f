from muon_id.selectors.last_station import fails_x_cut, fails_y_cut


def is_good_one_station(candidate, cuts):
    """
    TMOneStation: accept on the first segment (lowest slot first) whose
    match passes the cuts. Chamber distance cuts are not used.

    In tight mode a DT segment without y information is skipped. If no
    segment passed and no DT segment had y information at all, a DT
    segment with a good x match is enough.

    Args:
        candidate (MuonCandidate)
        cuts (StationCuts)

    Returns:
        bool
    """
    if not candidate.has_valid_matches():
        return False

    station_mask = candidate.station_mask(cuts.arbitration)
    if not station_mask:
        return False

    exists_good_dt_seg_x = False
    exists_dt_seg_y = False

    for slot in station_mask.slots():
        record = candidate.match(slot, cuts.arbitration)
        if fails_x_cut(record, cuts):
            continue
        if slot.is_dt:
            exists_good_dt_seg_x = True

        if cuts.uses_y:
            if slot.is_dt:
                if not record.has_y:
                    continue
                exists_dt_seg_y = True
            if fails_y_cut(record, cuts):
                continue

        return True

    if cuts.uses_y:
        if exists_dt_seg_y:
            return False
        return exists_good_dt_seg_x
    return False
