from pathsim.schemas import Environment, SolveResult, SolveTask
from pathsim.sim.nodes import NodeResolver
from pathsim.sim.world import ROBOT_COLORS, build_plan, planned_steps, robot_color, start_position, task_from_schema


def _environment() -> Environment:
    return Environment.model_validate(
        {
            "dimensions": {"width": 10, "height": 10},
            "elements": {
                "shelves": [{"id": "sh1", "position": [3, 3], "size": [1, 2]}],
                "pickups": [{"id": "p1", "position": [2, 3], "shelf_id": "sh1", "side": "left"}],
                "dropoffs": [{"id": "d1", "position": [9, 9]}],
                "robot_stations": [{"id": "s1", "position": [1, 1], "robot_count": 2}],
                "robots": [
                    {"id": "robot_1", "station_id": "s1"},
                    {"id": "robot_2", "station_id": "s1", "position": [5, 0]},
                    {"id": "robot_3", "station_id": "missing"},
                ],
                "navigation_points": [
                    {"id": "n1", "position": [2, 1]},
                    {"id": "p1", "position": [0, 0]},
                ],
            },
        }
    )


def test_solve_result_splits_stats_from_robots():
    result = SolveResult.from_payload(
        {
            "robot_1": [{"task": ["p1", "d1"], "path": ["s1", "p1", "d1"], "unknown_key": 1}],
            "robot_2": {"not": "a list"},
            "robot_3": [["p1", "d1"]],
            "stats": {"completion_time": 42.5, "total_distance": 18.0, "collisions": 0},
        }
    )

    assert list(result.robots) == ["robot_1", "robot_2", "robot_3"]
    assert result.robots["robot_2"] == []
    assert result.robots["robot_3"] == [SolveTask()]
    assert result.stats.completion_time == 42.5
    assert result.stats.collisions == 0


def test_solve_result_without_stats():
    result = SolveResult.from_payload({"robot_1": []})
    assert result.stats is None


def test_task_kinds():
    delivery = task_from_schema(SolveTask(task=["p1", "d1"], path=["s1", "p1", "d1"], battery_remaining=80.0))
    recharge = task_from_schema(SolveTask(task="recharge", path=["d1", "s1"], recharge_time=3))
    in_place = task_from_schema(SolveTask(task="recharge_in_place"))
    transit = task_from_schema(SolveTask(path=["s1", "n1"]))
    empty = task_from_schema(SolveTask(task=["p1", "d1"]))

    assert delivery.kind == "delivery"
    assert (delivery.pickup_id, delivery.dropoff_id) == ("p1", "d1")
    assert delivery.path == ("s1", "p1", "d1")
    assert delivery.battery_remaining == 80.0
    assert recharge.is_recharge and recharge.recharge_time == 3
    assert in_place.is_recharge and in_place.path == ()
    assert not in_place.is_malformed
    assert transit.kind == "transit"
    assert empty.is_malformed


def test_build_plan_preserves_robot_order():
    result = SolveResult.from_payload({"robot_b": [{"path": ["s1"]}], "robot_a": [], "stats": {}})
    plan = build_plan(result)

    assert list(plan) == ["robot_b", "robot_a"]
    assert plan["robot_a"] == ()


def test_start_position_fallbacks():
    env = _environment()

    assert start_position(env, "robot_1") == (1.0, 1.0)
    assert start_position(env, "robot_2") == (5.0, 0.0)
    assert start_position(env, "robot_3") == (0.0, 0.0)
    assert start_position(env, "robot_9") == (0.0, 0.0)


def test_resolver_first_match_wins():
    resolver = NodeResolver.from_environment(_environment())

    node = resolver.resolve("p1")
    assert node.kind == "pickup"
    assert node.position == (2.0, 3.0)
    assert node.requires_full_stop
    assert resolver.resolve("robot_2").kind == "robot"
    assert "robot_1" not in resolver
    assert not resolver.resolve("n1").requires_full_stop
    assert not resolver.resolve("s1").requires_full_stop
    assert resolver.resolve("ghost") is None
    assert len(resolver) == 5


def test_planned_steps_is_manhattan_and_skips_unknown_nodes():
    resolver = NodeResolver.from_environment(_environment())
    plan = build_plan(SolveResult.from_payload({"robot_1": [{"task": ["p1", "d1"], "path": ["s1", "p1", "d1", "ghost"]}]}))

    # s1 (1,1) -> p1 (2,3) -> d1 (9,9)
    assert planned_steps(plan, resolver) == 3.0 + 13.0


def test_colors_cycle():
    assert robot_color(0) == ROBOT_COLORS[0]
    assert robot_color(len(ROBOT_COLORS) + 1) == ROBOT_COLORS[1]


def test_invalid_task_entry_becomes_skippable_task():
    result = SolveResult.from_payload(
        {
            "robot_1": [
                {"task": ["p1", "d1"], "path": ["s1", "p1", "d1"]},
                {"task": 7, "path": None},
                {"task": ["p1", "d1"], "path": "s1"},
            ],
            "stats": {"collisions": "many"},
        }
    )

    tasks = build_plan(result)["robot_1"]
    assert len(tasks) == 3
    assert not tasks[0].is_malformed
    assert tasks[1].is_malformed
    assert tasks[2].is_malformed
    assert result.stats is None
