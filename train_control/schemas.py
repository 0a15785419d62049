from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict
from enum import Enum


class TrainStatus(str, Enum):
    RUNNING = "RUNNING"
    HALTED = "HALTED"
    ARRIVED = "ARRIVED"
    CONFLICT = "CONFLICT"


class WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Station(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    position_km: float


class ScheduleEntry(WireModel):
    station_id: str
    scheduled_arrival: str  # "HH:MM" time of day

    @field_validator("scheduled_arrival")
    @classmethod
    def check_time_of_day(cls, value: str) -> str:
        parts = value.split(":")
        if len(parts) != 2 or not all(p.strip().isdigit() for p in parts):
            raise ValueError(f"scheduled arrival must be HH:MM, got {value!r}")
        return value

    def scheduled_minutes(self) -> int:
        hours, minutes = self.scheduled_arrival.split(":")
        return int(hours) * 60 + int(minutes)


class Train(WireModel):
    id: str
    name: str
    priority: int = 2  # 1=high, 3=low
    speed_kmph: float = Field(gt=0)
    current_position_km: float
    status: TrainStatus = TrainStatus.RUNNING
    schedule: List[ScheduleEntry]
    arrival_time_minutes: Optional[int] = None

    @field_validator("schedule")
    @classmethod
    def check_schedule_not_empty(cls, value: List[ScheduleEntry]) -> List[ScheduleEntry]:
        if not value:
            raise ValueError("train schedule must contain at least the destination entry")
        return value

    @property
    def destination(self) -> ScheduleEntry:
        return self.schedule[-1]


class Conflict(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    train_ids: List[str]
    position_km: float

    @field_validator("train_ids")
    @classmethod
    def check_pairwise(cls, value: List[str]) -> List[str]:
        if len(value) != 2 or value[0] == value[1]:
            raise ValueError(f"a conflict names exactly two distinct trains, got {value}")
        return value

    def other_train(self, train_id: str) -> str:
        first, second = self.train_ids
        return second if train_id == first else first


class SimulationState(WireModel):
    trains: List[Train]
    stations: List[Station]
    simulation_time_minutes: int = 0


class Chromosome(WireModel):
    # conflict id -> id of the train granted priority
    decisions: Dict[str, str] = Field(default_factory=dict)
    fitness: Optional[float] = None


class Scenario(WireModel):
    trains: List[Train]
    stations: List[Station]
    conflicts: Optional[List[Conflict]] = None


class GenerationStats(BaseModel):
    generation: int
    best_fitness: float
    mean_fitness: float
    std_fitness: float


class OptimizeResponse(BaseModel):
    plan: Chromosome
    description: str
    solve_time_seconds: float
    generations: List[GenerationStats] = Field(default_factory=list)
