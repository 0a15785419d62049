from typing import List, Optional
import logging

from .config import SimulationConfig
from .errors import NotFoundError
from .schemas import Chromosome, Conflict, SimulationState, Station, Train, TrainStatus

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (TrainStatus.ARRIVED, TrainStatus.CONFLICT)


def find_train(state: SimulationState, train_id: str) -> Train:
    train = next((t for t in state.trains if t.id == train_id), None)
    if train is None:
        raise NotFoundError("train", train_id)
    return train


def find_station(state: SimulationState, station_id: str) -> Station:
    station = next((s for s in state.stations if s.id == station_id), None)
    if station is None:
        raise NotFoundError("station", station_id)
    return station


def all_arrived(state: SimulationState) -> bool:
    return all(t.status == TrainStatus.ARRIVED for t in state.trains)


class SimulationEngine:
    """Discrete-time movement and conflict simulator over a shared linear track"""

    def __init__(self, conflicts: List[Conflict], config: SimulationConfig = None):
        self.conflicts = conflicts
        self.config = config or SimulationConfig()

    def step(self, state: SimulationState, plan: Optional[Chromosome] = None):
        """
        Advance state in place by one time quantum.
        With a plan, non-priority trains near a conflict are halted; without one,
        trains closing within the conflict distance are frozen as CONFLICT.
        """
        state.simulation_time_minutes += 1

        for train in state.trains:
            if train.status in TERMINAL_STATUSES:
                continue

            destination = find_station(state, train.destination.station_id)
            if abs(train.current_position_km - destination.position_km) < self.config.arrival_epsilon_km:
                train.status = TrainStatus.ARRIVED
                train.arrival_time_minutes = state.simulation_time_minutes
                logger.debug(f"{train.id} arrived at {destination.id} at minute {state.simulation_time_minutes}")
                continue

            train.status = TrainStatus.RUNNING

            if plan is not None:
                self._apply_plan(state, plan)
            elif self._freeze_conflicts(state) and self.config.freeze_world_on_conflict:
                return

            if train.status == TrainStatus.RUNNING:
                self._move(train, destination)

    def run_until_settled(self, state: SimulationState, plan: Optional[Chromosome] = None,
                          horizon_minutes: Optional[int] = None) -> SimulationState:
        """Step until every train has arrived or the horizon is reached"""
        horizon = horizon_minutes if horizon_minutes is not None else self.config.horizon_minutes
        while state.simulation_time_minutes < horizon:
            self.step(state, plan)
            if all_arrived(state):
                break
        return state

    def is_near_conflict(self, train: Train, conflict: Conflict) -> bool:
        return (abs(train.current_position_km - conflict.position_km) < self.config.near_conflict_km
                and train.status != TrainStatus.ARRIVED)

    def _apply_plan(self, state: SimulationState, plan: Chromosome):
        for conflict in self.conflicts:
            train_a = find_train(state, conflict.train_ids[0])
            train_b = find_train(state, conflict.train_ids[1])
            if not (self.is_near_conflict(train_a, conflict) and self.is_near_conflict(train_b, conflict)):
                continue

            # a conflict without a decision gives priority to neither train
            priority_train_id = plan.decisions.get(conflict.id)
            for candidate in (train_a, train_b):
                if candidate.id != priority_train_id and candidate.status != TrainStatus.CONFLICT:
                    candidate.status = TrainStatus.HALTED

    def _freeze_conflicts(self, state: SimulationState) -> bool:
        """Mark every pair closer than the conflict distance; report whether any was found"""
        found = False
        for conflict in self.conflicts:
            train_a = find_train(state, conflict.train_ids[0])
            train_b = find_train(state, conflict.train_ids[1])
            if TrainStatus.ARRIVED in (train_a.status, train_b.status):
                continue

            if abs(train_a.current_position_km - train_b.current_position_km) < self.config.unguided_conflict_km:
                if train_a.status != TrainStatus.CONFLICT or train_b.status != TrainStatus.CONFLICT:
                    logger.warning(f"Unresolved conflict {conflict.id}: {train_a.id} and {train_b.id} "
                                   f"at minute {state.simulation_time_minutes}")
                train_a.status = TrainStatus.CONFLICT
                train_b.status = TrainStatus.CONFLICT
                found = True
                if self.config.freeze_world_on_conflict:
                    break
        return found

    def _move(self, train: Train, destination: Station):
        distance = train.speed_kmph * self.config.time_step_hours
        if train.current_position_km < destination.position_km:
            train.current_position_km += distance
        else:
            train.current_position_km -= distance
