import pytest

from train_control.config import SimulationConfig
from train_control.errors import NotFoundError
from train_control.scenario import build_initial_state
from train_control.schemas import Chromosome, Conflict, TrainStatus
from train_control.simulation import SimulationEngine, find_station, find_train


@pytest.fixture
def world(two_train_scenario):
    state, conflicts = build_initial_state(two_train_scenario)
    return state, SimulationEngine(conflicts)


def test_time_advances_by_one_per_tick(world):
    state, engine = world
    for expected in range(1, 20):
        engine.step(state)
        assert state.simulation_time_minutes == expected


def test_train_moves_one_km_per_minute_at_60_kmph(world):
    state, engine = world
    engine.step(state)

    assert find_train(state, "A").current_position_km == pytest.approx(1.0)
    assert find_train(state, "B").current_position_km == pytest.approx(99.0)


def test_unguided_ticks_freeze_conflicting_pair(world):
    state, engine = world
    train_a, train_b = find_train(state, "A"), find_train(state, "B")

    for _ in range(100):
        engine.step(state)
        if train_a.status == TrainStatus.CONFLICT:
            break

    assert train_a.status == TrainStatus.CONFLICT
    assert train_b.status == TrainStatus.CONFLICT
    assert abs(train_a.current_position_km - train_b.current_position_km) < 5.0

    frozen = (train_a.current_position_km, train_b.current_position_km)
    for _ in range(10):
        engine.step(state)
    assert (train_a.current_position_km, train_b.current_position_km) == frozen
    assert train_a.status == TrainStatus.CONFLICT


def test_plan_halts_non_priority_train_and_priority_train_arrives(world):
    state, engine = world
    plan = Chromosome(decisions={"C1": "A"})
    train_a, train_b = find_train(state, "A"), find_train(state, "B")
    seen_b_halted = False

    for _ in range(240):
        engine.step(state, plan)
        assert train_a.status != TrainStatus.HALTED
        if train_b.status == TrainStatus.HALTED:
            seen_b_halted = True
        if train_a.status == TrainStatus.ARRIVED:
            break

    assert seen_b_halted
    assert train_a.status == TrainStatus.ARRIVED
    assert train_a.arrival_time_minutes == state.simulation_time_minutes


def test_halted_train_holds_position(world):
    state, engine = world
    plan = Chromosome(decisions={"C1": "A"})
    train_b = find_train(state, "B")

    while train_b.status != TrainStatus.HALTED:
        engine.step(state, plan)
    held_at = train_b.current_position_km
    engine.step(state, plan)

    assert train_b.status == TrainStatus.HALTED
    assert train_b.current_position_km == held_at


def test_arrived_is_never_left(world):
    state, engine = world
    plan = Chromosome(decisions={"C1": "B"})
    arrived_at = {}

    for _ in range(240):
        engine.step(state, plan)
        for train in state.trains:
            if train.id in arrived_at:
                assert train.status == TrainStatus.ARRIVED
                assert train.arrival_time_minutes == arrived_at[train.id]
            elif train.status == TrainStatus.ARRIVED:
                arrived_at[train.id] = train.arrival_time_minutes

    assert set(arrived_at) == {"A", "B"}


def test_nearness_is_evaluated_per_train(world):
    state, engine = world
    conflict = engine.conflicts[0]
    train_a, train_b = find_train(state, "A"), find_train(state, "B")

    train_a.current_position_km = 45.0
    train_b.current_position_km = 55.0
    assert engine.is_near_conflict(train_a, conflict)
    assert engine.is_near_conflict(train_b, conflict)

    train_a.current_position_km = 40.0
    train_b.current_position_km = 60.0
    assert not engine.is_near_conflict(train_a, conflict)
    assert not engine.is_near_conflict(train_b, conflict)

    train_a.current_position_km = 50.0
    train_a.status = TrainStatus.ARRIVED
    assert not engine.is_near_conflict(train_a, conflict)


def test_conflict_without_decision_halts_both(world):
    state, engine = world
    train_a, train_b = find_train(state, "A"), find_train(state, "B")
    train_a.current_position_km = 45.0
    train_b.current_position_km = 55.0

    engine.step(state, Chromosome(decisions={}))

    assert train_a.status == TrainStatus.HALTED
    assert train_b.status == TrainStatus.HALTED
    assert train_a.current_position_km == 45.0


def test_whole_world_freezes_on_unresolved_conflict(two_train_scenario):
    state, conflicts = build_initial_state(two_train_scenario)
    state.trains.append(state.trains[0].model_copy(update={"id": "C", "current_position_km": 10.0}, deep=True))
    engine = SimulationEngine(conflicts)
    find_train(state, "A").current_position_km = 48.0
    find_train(state, "B").current_position_km = 52.0

    engine.step(state)

    assert find_train(state, "C").current_position_km == 10.0


def test_only_pair_freezes_when_world_freeze_disabled(two_train_scenario):
    state, conflicts = build_initial_state(two_train_scenario)
    state.trains.append(state.trains[0].model_copy(update={"id": "C", "current_position_km": 10.0}, deep=True))
    engine = SimulationEngine(conflicts, SimulationConfig(freeze_world_on_conflict=False))
    find_train(state, "A").current_position_km = 48.0
    find_train(state, "B").current_position_km = 52.0

    engine.step(state)

    assert find_train(state, "A").status == TrainStatus.CONFLICT
    assert find_train(state, "B").current_position_km == 52.0
    assert find_train(state, "C").current_position_km == pytest.approx(11.0)


def test_train_may_overshoot_and_arrive_next_tick(world):
    state, engine = world
    train_a = find_train(state, "A")
    train_a.current_position_km = 118.5
    train_a.speed_kmph = 120.0

    engine.step(state, Chromosome(decisions={"C1": "A"}))
    assert train_a.current_position_km == pytest.approx(120.5)
    assert train_a.status == TrainStatus.RUNNING

    engine.step(state, Chromosome(decisions={"C1": "A"}))
    assert train_a.status == TrainStatus.ARRIVED


def test_run_until_settled_stops_at_horizon(world):
    state, engine = world
    engine.run_until_settled(state, None, horizon_minutes=30)
    assert state.simulation_time_minutes == 30


def test_unknown_ids_raise_not_found(world):
    state, _ = world
    with pytest.raises(NotFoundError):
        find_train(state, "ZZZ")
    with pytest.raises(NotFoundError):
        find_station(state, "NOWHERE")

    engine = SimulationEngine([Conflict(id="CX", train_ids=["A", "GHOST"], position_km=10.0)])
    with pytest.raises(NotFoundError):
        engine.step(state)


@pytest.mark.parametrize("priority, b_status, b_position", [
    ("B", TrainStatus.RUNNING, 54.0),
    ("A", TrainStatus.HALTED, 55.0),
])
def test_plan_leaves_conflict_train_frozen(world, priority, b_status, b_position):
    state, engine = world
    train_a, train_b = find_train(state, "A"), find_train(state, "B")
    train_a.current_position_km = 45.0
    train_a.status = TrainStatus.CONFLICT
    train_b.current_position_km = 55.0

    engine.step(state, Chromosome(decisions={"C1": priority}))

    assert train_a.status == TrainStatus.CONFLICT
    assert train_a.current_position_km == 45.0
    assert train_b.status == b_status
    assert train_b.current_position_km == pytest.approx(b_position)
