"""
Owner of the live simulation state and the retained priority plan
"""
from collections import Counter
from typing import Dict, List, Optional
from datetime import datetime
import logging
import random
import threading

from .config import GeneticConfig, SimulationConfig
from .conflicts import identify_conflicts
from .formatter import format_plan
from .metrics import record_optimization, record_tick, update_state_metrics
from .optimizer import GeneticOptimizer
from .performance_monitor import PerformanceMonitor
from .scenario import build_initial_state
from .schemas import Chromosome, Conflict, OptimizeResponse, Scenario, SimulationState
from .simulation import SimulationEngine

logger = logging.getLogger(__name__)


class SimulationService:
    """
    All reads and writes of the live state go through one lock. The pristine
    state and the conflict registry are never mutated after construction.
    """

    def __init__(self, scenario: Scenario, simulation_config: SimulationConfig = None,
                 genetic_config: GeneticConfig = None, rng: Optional[random.Random] = None,
                 monitor: Optional[PerformanceMonitor] = None):
        self.simulation_config = simulation_config or SimulationConfig()
        self.genetic_config = genetic_config or GeneticConfig()
        self.rng = rng
        self.monitor = monitor or PerformanceMonitor()

        self._original_state, declared = build_initial_state(scenario)
        self.conflicts: List[Conflict] = identify_conflicts(self._original_state, declared)
        self.engine = SimulationEngine(self.conflicts, self.simulation_config)

        self._lock = threading.Lock()
        self._current_state: SimulationState = self._original_state.model_copy(deep=True)
        self._last_plan: Optional[Chromosome] = None

    def get_state(self) -> SimulationState:
        with self._lock:
            return self._current_state.model_copy(deep=True)

    def get_plan(self) -> Optional[Chromosome]:
        with self._lock:
            return self._last_plan.model_copy(deep=True) if self._last_plan else None

    def tick_normal(self) -> SimulationState:
        return self._tick(use_plan=False)

    def tick_optimized(self) -> SimulationState:
        return self._tick(use_plan=True)

    def reset(self) -> SimulationState:
        """Restore the pristine state; the retained plan is kept"""
        with self._lock:
            self._current_state = self._original_state.model_copy(deep=True)
            snapshot = self._current_state.model_copy(deep=True)
        update_state_metrics(_status_counts(snapshot), snapshot.simulation_time_minutes)
        logger.info("Simulation reset to initial state")
        return snapshot

    def optimize(self) -> str:
        """Search for a priority plan and return its text description"""
        return self.optimize_plan().description

    def optimize_plan(self) -> OptimizeResponse:
        """Search for a priority plan against the pristine state and retain it"""
        metrics = self.monitor.start_optimization(
            num_trains=len(self._original_state.trains),
            num_conflicts=len(self.conflicts),
            population_size=self.genetic_config.population_size,
            generations=self.genetic_config.num_generations,
        )
        start_time = datetime.now()

        optimizer = GeneticOptimizer(
            self._original_state,
            self.conflicts,
            config=self.genetic_config,
            simulation_config=self.simulation_config,
            rng=self.rng,
        )
        plan = optimizer.optimize()

        with self._lock:
            self._last_plan = plan

        duration = (datetime.now() - start_time).total_seconds()
        self.monitor.end_optimization(metrics, plan.fitness)
        record_optimization(duration, plan.fitness)
        return OptimizeResponse(
            plan=plan.model_copy(deep=True),
            description=format_plan(plan),
            solve_time_seconds=duration,
            generations=optimizer.history,
        )

    def _tick(self, use_plan: bool) -> SimulationState:
        with self._lock:
            plan = self._last_plan if use_plan else None
            # step a copy so a failing tick leaves the live state untouched
            working = self._current_state.model_copy(deep=True)
            self.engine.step(working, plan)
            self._current_state = working
            snapshot = working.model_copy(deep=True)

        mode = "optimized" if use_plan else "normal"
        record_tick(mode, _status_counts(snapshot), snapshot.simulation_time_minutes)
        logger.debug(f"{mode} tick -> minute {snapshot.simulation_time_minutes}")
        return snapshot


def _status_counts(state: SimulationState) -> Dict[str, int]:
    return dict(Counter(t.status.value for t in state.trains))
