from models import BayLocation, Heuristic, Item, PathStrategy, PickingAssignment, PickingPlan, Trolley
from routing import (
    ENTRANCE,
    NearestNeighbourRouting,
    SweepRouting,
    distance,
    parse_location,
    path_distance,
    plan_paths,
    unique_locations,
)


def _plan(*trolley_locations):
    plan = PickingPlan(plan_id="P", heuristic=Heuristic.FIRST_FIT, capacity=100)
    for n, locations in enumerate(trolley_locations, start=1):
        t = Trolley(trolley_id=f"T{n}", max_capacity=100)
        for i, (aisle, bay) in enumerate(locations):
            t.add(PickingAssignment(order_id=f"O{i}", line_no=1, item=Item(sku="S"), qty=1,
                                    box_id=f"B{n}-{i}", aisle=aisle, bay=bay, weight=1.0))
        plan.trolleys.append(t)
    return plan


def test_distance_formula():
    assert distance(BayLocation(1, 8), BayLocation(2, 3)) == 14
    assert distance(BayLocation(1, 5), BayLocation(1, 8)) == 3
    assert distance(ENTRANCE, BayLocation(1, 5)) == 8
    assert distance(BayLocation(1, 5), ENTRANCE) == 8
    assert distance(BayLocation(3, 2), BayLocation(3, 2)) == 0


def test_parse_location():
    assert parse_location("2", " 7 ") == BayLocation(2, 7)
    assert parse_location(4, 1) == BayLocation(4, 1)
    for aisle, bay in [(None, "1"), ("", "1"), ("x", "1"), ("0", "1"), ("1", "-3"), ("1", "2.5"), ("N/A", "1")]:
        assert parse_location(aisle, bay) is None


def test_sweep_and_nearest_neighbour_diverge():
    paths = plan_paths(_plan([("1", "10"), ("2", "1")]))
    sweep = paths[PathStrategy.SWEEP]
    nn = paths[PathStrategy.NEAREST_NEIGHBOUR]

    assert sweep.path == [ENTRANCE, BayLocation(1, 10), BayLocation(2, 1)]
    assert sweep.total_distance == 27
    assert nn.path == [ENTRANCE, BayLocation(2, 1), BayLocation(1, 10)]
    assert nn.total_distance == 21


def test_nearest_neighbour_ties_go_to_lowest_location():
    # (1,4) and (2,1) are both 7 away from the entrance
    result = NearestNeighbourRouting().build_path([BayLocation(2, 1), BayLocation(1, 4)])
    assert result.path == [ENTRANCE, BayLocation(1, 4), BayLocation(2, 1)]
    assert result.total_distance == 15


def test_locations_are_unique_across_trolleys():
    plan = _plan([("2", "3"), ("1", "5")], [("2", "3"), ("1", "5"), ("1", "2")])
    assert unique_locations(plan) == [BayLocation(1, 2), BayLocation(1, 5), BayLocation(2, 3)]
    sweep = SweepRouting().build_path(unique_locations(plan))
    assert sweep.path[1:] == [BayLocation(1, 2), BayLocation(1, 5), BayLocation(2, 3)]
    assert sweep.total_distance == 5 + 3 + (5 + 3 + 3)


def test_invalid_locations_are_dropped_from_paths_not_plan():
    plan = _plan([("1", "2"), (None, "4"), ("abc", "1"), ("0", "3"), ("2", "-1"), ("", "")])
    paths = plan_paths(plan)
    for result in paths.values():
        assert result.path == [ENTRANCE, BayLocation(1, 2)]
        assert result.total_distance == 5
    assert len(plan.trolleys[0].assignments) == 6


def test_empty_or_missing_plan_gives_entrance_only():
    for plan in [None, _plan(), _plan([(None, None)])]:
        paths = plan_paths(plan)
        assert set(paths) == {PathStrategy.SWEEP, PathStrategy.NEAREST_NEIGHBOUR}
        for result in paths.values():
            assert result.path == [ENTRANCE]
            assert result.total_distance == 0


def test_path_distance_sums_legs():
    path = [ENTRANCE, BayLocation(1, 3), BayLocation(1, 6), BayLocation(3, 2)]
    assert path_distance(path) == 6 + 3 + (6 + 6 + 2)
    assert path_distance([ENTRANCE]) == 0


def test_path_planning_is_idempotent():
    plan = _plan([("3", "4"), ("1", "9"), ("2", "2"), ("1", "1")], [("4", "7")])
    first = plan_paths(plan)
    second = plan_paths(plan)
    assert first == second
