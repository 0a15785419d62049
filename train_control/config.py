from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os

DEFAULT_SCENARIO_PATH = Path(__file__).parent / "data" / "scenario.json"


@dataclass
class SimulationConfig:
    time_step_hours: float = 1.0 / 60.0
    arrival_epsilon_km: float = 1.0
    near_conflict_km: float = 10.0
    unguided_conflict_km: float = 5.0
    horizon_minutes: int = 240
    # one unresolved conflict stops every train for the tick
    freeze_world_on_conflict: bool = True


@dataclass
class GeneticConfig:
    population_size: int = 50
    num_generations: int = 30
    mutation_rate: float = 0.1
    tournament_size: int = 5
    crossover_rate: float = 0.5
    elite_count: int = 0
    workers: int = 1
    seed: Optional[int] = None
    arrival_reward: float = 1000.0
    missed_arrival_penalty: float = 1000.0

    def __post_init__(self):
        if self.population_size < 1:
            raise ValueError("population_size must be at least 1")
        if self.num_generations < 1:
            raise ValueError("num_generations must be at least 1")
        if self.tournament_size < 1:
            raise ValueError("tournament_size must be at least 1")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ValueError("mutation_rate must be within [0, 1]")
        if not 0.0 <= self.crossover_rate <= 1.0:
            raise ValueError("crossover_rate must be within [0, 1]")
        if not 0 <= self.elite_count <= self.population_size:
            raise ValueError("elite_count must be between 0 and population_size")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    scenario_path: Path = DEFAULT_SCENARIO_PATH
    log_level: str = "INFO"
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    genetic: GeneticConfig = field(default_factory=GeneticConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        seed = os.getenv("GA_SEED")
        return cls(
            scenario_path=Path(os.getenv("SCENARIO_PATH", str(DEFAULT_SCENARIO_PATH))),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            simulation=SimulationConfig(
                freeze_world_on_conflict=_env_flag("FREEZE_WORLD_ON_CONFLICT", True),
            ),
            genetic=GeneticConfig(
                seed=int(seed) if seed else None,
                workers=int(os.getenv("GA_WORKERS", "1")),
                elite_count=int(os.getenv("GA_ELITE_COUNT", "0")),
            ),
        )
