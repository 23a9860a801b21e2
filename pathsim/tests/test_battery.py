from pathsim.sim.battery import BatteryModel, level_for_distance
from pathsim.sim.entities import RobotAgent, Task


def _agent(**kwargs) -> RobotAgent:
    return RobotAgent(id="robot_1", x=0.0, y=0.0, **kwargs)


def test_level_for_distance_is_linear_and_clamped():
    assert level_for_distance(0.0, 1000.0, 100.0) == 100.0
    assert level_for_distance(250.0, 1000.0, 100.0) == 75.0
    assert level_for_distance(5000.0, 1000.0, 100.0) == 0.0
    assert level_for_distance(-10.0, 1000.0, 100.0) == 100.0


def test_zero_max_distance_holds_battery_at_capacity():
    model = BatteryModel()
    agent = _agent(battery=100.0, max_distance=0.0)
    task = Task(kind="delivery", path=("p1", "d1"), pickup_id="p1", dropoff_id="d1")

    for _ in range(10):
        agent = model.deplete_on_move(agent, 50.0, task)

    assert agent.battery == 100.0
    assert agent.distance_since_charge == 500.0


def test_no_depletion_while_recharging_or_on_recharge_task():
    model = BatteryModel()
    delivery = Task(kind="delivery", path=("p1",))
    recharge = Task(kind="recharge", path=("s1",))

    assert model.deplete_on_move(_agent(recharging=True), 10.0, delivery).battery == 100.0
    assert model.deplete_on_move(_agent(), 10.0, recharge).battery == 100.0
    assert model.deplete_on_move(_agent(), 100.0, delivery).battery == 90.0


def test_low_battery_flag_follows_threshold():
    model = BatteryModel(low_battery_threshold=15.0)
    agent = _agent(distance_since_charge=840.0, battery=16.0)
    agent = model.deplete_on_move(agent, 20.0, Task(kind="transit", path=("n1",)))

    assert agent.low_battery
    assert round(agent.battery, 6) == 14.0


def test_recharge_completes_after_declared_minutes():
    model = BatteryModel()
    task = Task(kind="recharge", path=("s1",), recharge_time=5, battery_remaining=100.0)
    agent = _agent(battery=30.0, distance_since_charge=700.0, speed=0.4)

    agent = model.start_recharge(agent, task, now_s=10.0)
    assert agent.recharging
    assert agent.speed == 0.0
    assert agent.recharge_duration_s == 300.0

    again = model.start_recharge(agent, task, now_s=50.0)
    assert again.recharge_start_s == 10.0

    agent, finished = model.tick(agent, task, now_s=309.5)
    assert not finished
    assert agent.recharging
    assert agent.recharge_remaining_s == 0.5

    agent, finished = model.tick(agent, task, now_s=310.0)
    assert finished
    assert not agent.recharging
    assert agent.battery == 100.0
    assert agent.distance_since_charge == 0.0


def test_recharge_defaults_to_six_minutes_and_capacity():
    model = BatteryModel(default_recharge_minutes=6.0)
    task = Task(kind="recharge_in_place")
    agent = model.start_recharge(_agent(battery=10.0, battery_capacity=80.0), task, now_s=0.0)

    assert agent.recharge_duration_s == 360.0
    agent, finished = model.tick(agent, task, now_s=360.0)
    assert finished
    assert agent.battery == 80.0


def test_baseline_prefers_declared_battery_and_clamps():
    model = BatteryModel()

    battery, distance = model.baseline(Task(kind="delivery", battery_remaining=40.0), 100.0, 1000.0)
    assert battery == 40.0
    assert distance == 600.0

    battery, _ = model.baseline(Task(kind="delivery", battery_remaining=150.0), 100.0, 1000.0)
    assert battery == 100.0

    battery, distance = model.baseline(Task(kind="delivery", total_distance=200.0), 100.0, 1000.0)
    assert battery == 80.0
    assert distance == 200.0

    assert model.baseline(Task(kind="delivery"), 100.0, 1000.0) is None


def test_baseline_ignores_checkpoints_without_range():
    model = BatteryModel()

    assert model.baseline(Task(kind="delivery", battery_remaining=40.0), 100.0, 0.0) == (100.0, 0.0)
    assert model.baseline(Task(kind="delivery", total_distance=200.0), 100.0, 0.0) == (100.0, 0.0)


def test_recharge_without_range_restores_capacity():
    model = BatteryModel()
    task = Task(kind="recharge_in_place", recharge_time=1, battery_remaining=30.0)
    agent = model.start_recharge(_agent(battery=100.0, max_distance=0.0), task, 0.0)

    agent, finished = model.tick(agent, task, 60.0)

    assert finished
    assert agent.battery == 100.0


def test_task_overrides_battery_limits():
    model = BatteryModel(default_capacity=100.0, default_max_distance=1000.0)

    assert model.limits_for(None) == (100.0, 1000.0)
    assert model.limits_for(Task(kind="delivery", battery_capacity=90.0, max_distance=500.0)) == (90.0, 500.0)
