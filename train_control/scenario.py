"""
Scenario loading and load-time validation of the pristine initial state
"""
from pathlib import Path
from typing import List, Optional, Tuple, Union
import json
import logging

from pydantic import ValidationError

from .errors import ScenarioError
from .schemas import Conflict, Scenario, SimulationState

logger = logging.getLogger(__name__)


def parse_scenario(data: dict) -> Scenario:
    """Decode and validate a scenario mapping"""
    try:
        scenario = Scenario.model_validate(data)
    except ValidationError as e:
        raise ScenarioError(f"Malformed scenario: {e}") from e

    validate_references(scenario)
    return scenario


def load_scenario(path: Union[str, Path]) -> Scenario:
    path = Path(path)
    if not path.is_file():
        raise ScenarioError(f"Scenario file not found: {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ScenarioError(f"Scenario file {path} is not valid JSON: {e}") from e

    scenario = parse_scenario(data)
    logger.info(f"Loaded scenario from {path}: {len(scenario.trains)} trains, {len(scenario.stations)} stations")
    return scenario


def validate_references(scenario: Scenario):
    """Every id a schedule or conflict mentions must exist in the scenario"""
    train_ids = [t.id for t in scenario.trains]
    station_ids = {s.id for s in scenario.stations}

    if not scenario.trains:
        raise ScenarioError("Scenario contains no trains")
    if len(set(train_ids)) != len(train_ids):
        raise ScenarioError("Scenario contains duplicate train ids")
    if len(station_ids) != len(scenario.stations):
        raise ScenarioError("Scenario contains duplicate station ids")

    for train in scenario.trains:
        for entry in train.schedule:
            if entry.station_id not in station_ids:
                raise ScenarioError(f"Train {train.id} schedule references unknown station {entry.station_id}")

    for conflict in scenario.conflicts or []:
        for train_id in conflict.train_ids:
            if train_id not in train_ids:
                raise ScenarioError(f"Conflict {conflict.id} references unknown train {train_id}")

    if scenario.conflicts:
        conflict_ids = [c.id for c in scenario.conflicts]
        if len(set(conflict_ids)) != len(conflict_ids):
            raise ScenarioError("Scenario contains duplicate conflict ids")


def build_initial_state(scenario: Scenario) -> Tuple[SimulationState, Optional[List[Conflict]]]:
    """Pristine state at time zero plus any conflicts the scenario declares"""
    state = SimulationState(
        trains=[t.model_copy(deep=True) for t in scenario.trains],
        stations=list(scenario.stations),
        simulation_time_minutes=0,
    )
    return state, scenario.conflicts
