from prometheus_client import Counter, Histogram, Gauge, generate_latest
from fastapi import Response

from .schemas import TrainStatus

# Metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration')
SIMULATION_TICKS = Counter('simulation_ticks_total', 'Simulation ticks executed', ['mode'])
OPTIMIZATION_RUNS = Counter('optimization_runs_total', 'Genetic optimizer runs')
OPTIMIZATION_DURATION = Histogram('optimization_duration_seconds', 'Genetic optimizer run duration')
BEST_FITNESS = Gauge('optimization_best_fitness', 'Fitness of the retained plan')
TRAINS_BY_STATUS = Gauge('trains_by_status', 'Trains in the live state by status', ['status'])
SIMULATION_TIME = Gauge('simulation_time_minutes', 'Elapsed simulated minutes of the live state')


def record_request_metrics(method: str, endpoint: str, status_code: int, duration: float):
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=str(status_code)).inc()
    REQUEST_DURATION.observe(duration)


def record_tick(mode: str, status_counts: dict, simulation_time: int):
    SIMULATION_TICKS.labels(mode=mode).inc()
    update_state_metrics(status_counts, simulation_time)


def update_state_metrics(status_counts: dict, simulation_time: int):
    # statuses absent from the state drop back to zero
    for status in TrainStatus:
        TRAINS_BY_STATUS.labels(status=status.value).set(status_counts.get(status.value, 0))
    SIMULATION_TIME.set(simulation_time)


def record_optimization(duration: float, best_fitness: float):
    OPTIMIZATION_RUNS.inc()
    OPTIMIZATION_DURATION.observe(duration)
    BEST_FITNESS.set(best_fitness)


def get_metrics():
    """Return Prometheus metrics"""
    return Response(generate_latest(), media_type="text/plain")
