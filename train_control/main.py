from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from typing import List, Optional
import logging

from .config import Settings
from .errors import TrainControlError
from .metrics import get_metrics
from .middleware import LoggingMiddleware
from .scenario import load_scenario
from .schemas import Chromosome, Conflict, OptimizeResponse, SimulationState
from .service import SimulationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/simulation")


def get_service(request: Request) -> SimulationService:
    return request.app.state.service


@router.get("/state", response_model=SimulationState)
def get_state(request: Request):
    return get_service(request).get_state()


@router.post("/tick/normal", response_model=SimulationState)
def tick_normal(request: Request):
    """Advance the live state one minute without a plan"""
    try:
        state = get_service(request).tick_normal()
        request.state.simulation_minute = state.simulation_time_minutes
        return state
    except TrainControlError as e:
        logger.error(f"Normal tick failed: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Tick failed: {str(e)}")


@router.post("/tick/optimized", response_model=SimulationState)
def tick_optimized(request: Request):
    """Advance the live state one minute using the retained plan"""
    try:
        state = get_service(request).tick_optimized()
        request.state.simulation_minute = state.simulation_time_minutes
        return state
    except TrainControlError as e:
        logger.error(f"Optimized tick failed: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Tick failed: {str(e)}")


@router.post("/reset", response_model=SimulationState)
def reset(request: Request):
    state = get_service(request).reset()
    request.state.simulation_minute = state.simulation_time_minutes
    return state


@router.post("/optimize", response_class=PlainTextResponse)
def optimize(request: Request):
    """Run the genetic optimizer and retain the best plan for optimized ticks"""
    try:
        return get_service(request).optimize()
    except TrainControlError as e:
        logger.error(f"Optimization failed: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Optimization failed: {str(e)}")


@router.post("/optimize/plan", response_model=OptimizeResponse)
def optimize_plan(request: Request):
    """Same search as /optimize, returned as the plan with per-generation statistics"""
    try:
        return get_service(request).optimize_plan()
    except TrainControlError as e:
        logger.error(f"Optimization failed: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Optimization failed: {str(e)}")


@router.get("/plan", response_model=Chromosome)
def get_plan(request: Request):
    plan = get_service(request).get_plan()
    if plan is None:
        raise HTTPException(status_code=404, detail="No plan has been computed yet")
    return plan


@router.get("/conflicts", response_model=List[Conflict])
def get_conflicts(request: Request):
    return get_service(request).conflicts


def create_app(settings: Optional[Settings] = None,
               service: Optional[SimulationService] = None) -> FastAPI:
    """Build the API. A broken scenario raises here instead of serving empty state."""
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    if service is None:
        scenario = load_scenario(settings.scenario_path)
        service = SimulationService(
            scenario,
            simulation_config=settings.simulation,
            genetic_config=settings.genetic,
        )

    app = FastAPI(
        title="RailOptima Train Control Engine",
        description="Train movement simulation and genetic conflict-resolution planning",
        version="1.0.0"
    )
    app.state.service = service

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/")
    async def root():
        return {"message": "RailOptima Train Control Engine", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "trains": len(service.get_state().trains),
            "conflicts": len(service.conflicts),
            "plan_ready": service.get_plan() is not None,
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint"""
        return get_metrics()

    @app.get("/performance")
    async def performance():
        return service.monitor.get_performance_summary()

    logger.info(f"Train control engine ready: {len(service.conflicts)} conflicts registered")
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8080)
