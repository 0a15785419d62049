from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional
from datetime import datetime
import numpy as np
import logging
import random

from .config import GeneticConfig, SimulationConfig
from .errors import PlanError
from .schemas import Chromosome, Conflict, GenerationStats, SimulationState, TrainStatus
from .simulation import SimulationEngine

logger = logging.getLogger(__name__)


class GeneticOptimizer:
    """
    Genetic search over priority plans. Each candidate is scored by running
    the simulator to completion on a private copy of the pristine state.
    """

    def __init__(self, initial_state: SimulationState, conflicts: List[Conflict],
                 config: GeneticConfig = None, simulation_config: SimulationConfig = None,
                 rng: Optional[random.Random] = None):
        self.initial_state = initial_state
        self.conflicts = conflicts
        self.config = config or GeneticConfig()
        self.engine = SimulationEngine(conflicts, simulation_config)
        self.rng = rng or random.Random(self.config.seed)
        self.history: List[GenerationStats] = []

    def optimize(self) -> Chromosome:
        """Run the configured number of generations and return the best plan of the final population"""
        start_time = datetime.now()
        self.history = []

        if not self.conflicts:
            plan = Chromosome(decisions={})
            self.evaluate(plan)
            logger.info(f"No conflicts to resolve; baseline fitness {plan.fitness:.2f}")
            return plan

        logger.info(f"Starting genetic search: {len(self.conflicts)} conflicts, "
                    f"population {self.config.population_size}, {self.config.num_generations} generations")

        population = self.initial_population()
        for generation in range(self.config.num_generations):
            self.evaluate_population(population)
            self._record_generation(generation, population)
            population = self.next_generation(population)

        self.evaluate_population(population)
        best = self.best_of(population)

        solve_time = (datetime.now() - start_time).total_seconds()
        logger.info(f"Genetic search finished in {solve_time:.2f}s. Best fitness: {best.fitness:.2f}")
        return best

    def initial_population(self) -> List[Chromosome]:
        return [
            Chromosome(decisions={c.id: self.rng.choice(c.train_ids) for c in self.conflicts})
            for _ in range(self.config.population_size)
        ]

    def evaluate(self, chromosome: Chromosome) -> float:
        """Fitness = reward per arrived train minus total delay"""
        self.validate_plan(chromosome)
        state = self.initial_state.model_copy(deep=True)
        self.engine.run_until_settled(state, chromosome)

        arrived = sum(1 for t in state.trains if t.status == TrainStatus.ARRIVED)
        chromosome.fitness = self.config.arrival_reward * arrived - self.total_delay(state)
        return chromosome.fitness

    def evaluate_population(self, population: List[Chromosome]):
        """Score every individual; all results are in before selection starts"""
        if self.config.workers > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
                list(pool.map(self.evaluate, population))
        else:
            for chromosome in population:
                self.evaluate(chromosome)

    def total_delay(self, state: SimulationState) -> float:
        delay = 0.0
        for train in state.trains:
            if train.status == TrainStatus.ARRIVED:
                arrived_at = train.arrival_time_minutes
                if arrived_at is None:
                    arrived_at = state.simulation_time_minutes
                late_by = arrived_at - train.destination.scheduled_minutes()
                delay += max(0, late_by)
            else:
                delay += self.config.missed_arrival_penalty
        return delay

    def next_generation(self, population: List[Chromosome]) -> List[Chromosome]:
        new_population = []
        if self.config.elite_count:
            elites = sorted(population, key=lambda c: c.fitness, reverse=True)[:self.config.elite_count]
            new_population.extend(Chromosome(decisions=dict(e.decisions)) for e in elites)

        while len(new_population) < self.config.population_size:
            parent1 = self.tournament_selection(population)
            parent2 = self.tournament_selection(population)
            child = self.crossover(parent1, parent2)
            self.mutate(child)
            new_population.append(child)
        return new_population

    def tournament_selection(self, population: List[Chromosome]) -> Chromosome:
        if not population:
            raise ValueError("Cannot select from an empty population")
        tournament = [self.rng.choice(population) for _ in range(self.config.tournament_size)]
        return max(tournament, key=lambda c: c.fitness)

    def crossover(self, parent1: Chromosome, parent2: Chromosome) -> Chromosome:
        decisions = {}
        for conflict in self.conflicts:
            donor = parent1 if self.rng.random() < self.config.crossover_rate else parent2
            decisions[conflict.id] = donor.decisions[conflict.id]
        return Chromosome(decisions=decisions)

    def mutate(self, chromosome: Chromosome):
        for conflict in self.conflicts:
            if self.rng.random() < self.config.mutation_rate:
                current = chromosome.decisions[conflict.id]
                chromosome.decisions[conflict.id] = conflict.other_train(current)

    def best_of(self, population: List[Chromosome]) -> Chromosome:
        fitnesses = np.array([c.fitness for c in population], dtype=float)
        return population[int(np.argmax(fitnesses))]

    def validate_plan(self, chromosome: Chromosome):
        for conflict in self.conflicts:
            decision = chromosome.decisions.get(conflict.id)
            if decision is not None and decision not in conflict.train_ids:
                raise PlanError(f"Plan gives priority at {conflict.id} to {decision}, "
                                f"which is not one of {conflict.train_ids}")

    def _record_generation(self, generation: int, population: List[Chromosome]):
        fitnesses = np.array([c.fitness for c in population], dtype=float)
        stats = GenerationStats(
            generation=generation,
            best_fitness=float(fitnesses.max()),
            mean_fitness=float(fitnesses.mean()),
            std_fitness=float(fitnesses.std()),
        )
        self.history.append(stats)
        logger.debug(f"Generation {generation}: best {stats.best_fitness:.2f}, mean {stats.mean_fitness:.2f}")
