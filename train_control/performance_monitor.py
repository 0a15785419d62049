import logging
from typing import Dict, List, Any, Optional
from dataclasses import dataclass
from datetime import datetime
import threading

import psutil

logger = logging.getLogger(__name__)


@dataclass
class OptimizationMetrics:
    """Metrics for one genetic optimizer run"""
    start_time: datetime
    end_time: Optional[datetime] = None
    solve_time_seconds: float = 0.0
    best_fitness: float = 0.0
    num_trains: int = 0
    num_conflicts: int = 0
    population_size: int = 0
    generations: int = 0
    memory_usage_mb: float = 0.0
    cpu_usage_percent: float = 0.0


class PerformanceMonitor:
    """Keep a bounded history of optimizer runs"""

    def __init__(self, max_history: int = 100):
        self.max_history = max_history
        self.metrics_history: List[OptimizationMetrics] = []
        self._lock = threading.Lock()

    def start_optimization(self, num_trains: int, num_conflicts: int,
                           population_size: int, generations: int) -> OptimizationMetrics:
        metrics = OptimizationMetrics(
            start_time=datetime.now(),
            num_trains=num_trains,
            num_conflicts=num_conflicts,
            population_size=population_size,
            generations=generations,
        )
        logger.info(f"Started optimization monitoring: {num_trains} trains, {num_conflicts} conflicts")
        return metrics

    def end_optimization(self, metrics: OptimizationMetrics, best_fitness: float):
        metrics.end_time = datetime.now()
        metrics.solve_time_seconds = (metrics.end_time - metrics.start_time).total_seconds()
        metrics.best_fitness = best_fitness
        metrics.memory_usage_mb = psutil.Process().memory_info().rss / 1024 / 1024
        metrics.cpu_usage_percent = psutil.cpu_percent(interval=None)

        with self._lock:
            self.metrics_history.append(metrics)
            if len(self.metrics_history) > self.max_history:
                self.metrics_history = self.metrics_history[-self.max_history:]

        logger.info(f"Optimization completed in {metrics.solve_time_seconds:.2f}s")

    def get_performance_summary(self) -> Dict[str, Any]:
        with self._lock:
            history = list(self.metrics_history)

        if not history:
            return {"message": "No optimization runs recorded"}

        recent_runs = history[-10:]
        avg_solve_time = sum(m.solve_time_seconds for m in recent_runs) / len(recent_runs)
        avg_fitness = sum(m.best_fitness for m in recent_runs) / len(recent_runs)
        last = history[-1]

        return {
            "total_runs": len(history),
            "recent_runs": len(recent_runs),
            "average_solve_time_seconds": round(avg_solve_time, 2),
            "average_best_fitness": round(avg_fitness, 2),
            "last_run": {
                "timestamp": last.start_time.isoformat(),
                "solve_time": last.solve_time_seconds,
                "best_fitness": last.best_fitness,
                "trains": last.num_trains,
                "conflicts": last.num_conflicts,
                "memory_usage_mb": round(last.memory_usage_mb, 1),
            }
        }
