"""
Conflict registry: the fixed set of track locations shared by two trains
"""
from typing import List, Optional, Dict
from itertools import combinations
import logging

from .errors import NotFoundError
from .schemas import Conflict, SimulationState, Station, Train

logger = logging.getLogger(__name__)


def identify_conflicts(initial_state: SimulationState,
                       declared: Optional[List[Conflict]] = None) -> List[Conflict]:
    """
    Build the conflict registry once from the pristine state.
    Declared conflicts win; otherwise they are derived from path overlap.
    """
    if declared is not None:
        logger.info(f"Using {len(declared)} declared conflicts")
        return list(declared)

    conflicts = derive_conflicts(initial_state)
    logger.info(f"Derived {len(conflicts)} conflicts from schedule overlap")
    return conflicts


def derive_conflicts(state: SimulationState) -> List[Conflict]:
    stations = {s.id: s for s in state.stations}
    conflicts = []

    for train_a, train_b in combinations(state.trains, 2):
        position = _meeting_point(train_a, train_b, stations)
        if position is None:
            continue
        conflicts.append(Conflict(
            id=f"C{len(conflicts) + 1}",
            train_ids=[train_a.id, train_b.id],
            position_km=round(position, 3),
        ))
        logger.debug(f"Conflict between {train_a.id} and {train_b.id} at {position:.1f} km")

    return conflicts


def _destination_km(train: Train, stations: Dict[str, Station]) -> float:
    station_id = train.destination.station_id
    if station_id not in stations:
        raise NotFoundError("station", station_id)
    return stations[station_id].position_km


def _direction(start: float, end: float) -> int:
    if end > start:
        return 1
    if end < start:
        return -1
    return 0


def _meeting_point(train_a: Train, train_b: Train, stations: Dict[str, Station]) -> Optional[float]:
    """Position where the two trains would first share track, if they ever do"""
    pa, pb = train_a.current_position_km, train_b.current_position_km
    da, db = _destination_km(train_a, stations), _destination_km(train_b, stations)
    sa, sb = _direction(pa, da), _direction(pb, db)
    if sa == 0 or sb == 0:
        return None

    low = max(min(pa, da), min(pb, db))
    high = min(max(pa, da), max(pb, db))
    if low > high:
        return None

    va, vb = train_a.speed_kmph, train_b.speed_kmph

    if sa != sb:
        # head-on: b must lie ahead of a in a's direction of travel
        if (pb - pa) * sa < 0:
            return None
        hours = abs(pb - pa) / (va + vb)
        return min(max(pa + sa * va * hours, low), high)

    gap = (pb - pa) * sa
    if gap == 0:
        return pa
    leader_pos, trailer_pos = (pb, pa) if gap > 0 else (pa, pb)
    leader_v, trailer_v = (vb, va) if gap > 0 else (va, vb)
    if trailer_v <= leader_v:
        return None

    hours = abs(gap) / (trailer_v - leader_v)
    position = trailer_pos + sa * trailer_v * hours
    if not low <= position <= high:
        return None
    return position
