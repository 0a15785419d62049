import pytest

from train_control.scenario import parse_scenario


def make_scenario_data(conflicts=None, a_arrival="02:30", b_arrival="02:30"):
    """Train A runs 0 -> 120 km, train B runs 100 -> 0 km, both at 60 km/h"""
    data = {
        "stations": [
            {"id": "WEST", "positionKm": 0.0},
            {"id": "MID", "positionKm": 50.0},
            {"id": "EAST", "positionKm": 120.0},
        ],
        "trains": [
            {
                "id": "A",
                "name": "Express A",
                "priority": 1,
                "speedKmph": 60.0,
                "currentPositionKm": 0.0,
                "status": "RUNNING",
                "schedule": [
                    {"stationId": "MID", "scheduledArrival": "00:50"},
                    {"stationId": "EAST", "scheduledArrival": a_arrival},
                ],
            },
            {
                "id": "B",
                "name": "Goods B",
                "priority": 3,
                "speedKmph": 60.0,
                "currentPositionKm": 100.0,
                "status": "RUNNING",
                "schedule": [
                    {"stationId": "WEST", "scheduledArrival": b_arrival},
                ],
            },
        ],
    }
    if conflicts is not None:
        data["conflicts"] = conflicts
    return data


@pytest.fixture
def conflict_c1():
    return {"id": "C1", "trainIds": ["A", "B"], "positionKm": 50.0}


@pytest.fixture
def two_train_scenario(conflict_c1):
    return parse_scenario(make_scenario_data(conflicts=[conflict_c1]))


@pytest.fixture
def conflict_free_scenario():
    return parse_scenario(make_scenario_data(conflicts=[], a_arrival="03:00", b_arrival="03:00"))
