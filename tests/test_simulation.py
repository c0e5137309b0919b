from datetime import date, datetime, timedelta

from models import (
    AllocationMode,
    BayLocation,
    Box,
    Heuristic,
    Item,
    Order,
    OrderLine,
    PathStrategy,
    PipelineCfg,
    Return,
    Status,
    Wagon,
)
from routing import ENTRANCE
from simulation import FulfillmentEngine
from storage import gen_warehouses

NOW = datetime(2025, 4, 2, 8, 0)
TODAY = NOW.date()


def _items():
    return {
        "APPLE": Item(sku="APPLE", name="Apple", unit_weight=2.0),
        "SOAP": Item(sku="SOAP", name="Soap", unit_weight=5.0),
    }


def _wagons():
    return [
        Wagon("WG1", [
            Box("B1", "APPLE", 10, expiry_date=TODAY + timedelta(days=9), received_at=NOW - timedelta(hours=5)),
            Box("B2", "APPLE", 10, expiry_date=TODAY + timedelta(days=3), received_at=NOW - timedelta(hours=4)),
        ]),
        Wagon("WG2", [Box("B3", "SOAP", 8, received_at=NOW - timedelta(hours=3))]),
    ]


def _orders():
    return [
        Order("O1", priority=2, due_date=TODAY, lines=[OrderLine(1, "SOAP", 6)]),
        Order("O2", priority=1, due_date=TODAY, lines=[OrderLine(1, "APPLE", 12), OrderLine(2, "SOAP", 4)]),
    ]


def _engine(**cfg):
    whs = gen_warehouses(num_warehouses=1, num_aisles=2, bays_per_aisle=2, capacity=1)
    return FulfillmentEngine(whs, items=_items(), cfg=PipelineCfg(**cfg))


def test_full_batch_partial_mode():
    engine = _engine(trolley_capacity=30.0, heuristic=Heuristic.FIRST_FIT_DECREASING, mode=AllocationMode.PARTIAL)
    returns = [Return("R1", "SOAP", 2, "Damaged", NOW - timedelta(hours=1))]
    result = engine.run(_orders(), wagons=_wagons(), returns=returns, now=NOW)

    assert result.unload.boxes_stored == 3
    assert result.unload.fully_unloaded == 2
    assert result.returns.discarded == 1
    assert engine.audit.lines == ["returnId=R1 action=Discarded qty=2"]

    statuses = {(e.order_id, e.line_no): e.status for e in result.allocation.eligibility}
    assert statuses == {("O2", 1): Status.ELIGIBLE, ("O2", 2): Status.ELIGIBLE, ("O1", 1): Status.PARTIAL}
    # soonest expiry first
    assert [(a.box_id, a.qty) for a in result.allocation.allocations[:2]] == [("B2", 10), ("B1", 2)]

    assert sum(t.current_weight for t in result.plan.trolleys) == 12 * 2.0 + 8 * 5.0
    assert result.plan.heuristic == Heuristic.FIRST_FIT_DECREASING
    for strategy in PathStrategy:
        assert result.paths[strategy].path[0] == ENTRANCE
        assert len(result.paths[strategy].path) == 4


def test_strict_mode_leaves_stock_for_later_orders():
    engine = _engine(mode=AllocationMode.STRICT)
    result = engine.run(_orders(), wagons=_wagons(), now=NOW)
    statuses = [e.status for e in result.allocation.eligibility]
    assert statuses == [Status.ELIGIBLE, Status.ELIGIBLE, Status.UNDISPATCHABLE]
    assert engine.inventory.available("SOAP") == 4
    assert result.returns is None


def test_restocked_return_can_be_allocated():
    engine = _engine(mode=AllocationMode.STRICT)
    engine.add_return(Return("R7", "SOAP", 3, "Customer Remorse", NOW - timedelta(hours=2)))
    summary = engine.process_returns(now=NOW)
    assert summary.restocked == 1

    allocation = engine.allocate([Order("O9", 1, TODAY, [OrderLine(1, "SOAP", 3)])])
    assert allocation.allocations[0].box_id == "RET-R7"
    plan = engine.pick(allocation, capacity=100, heuristic="bfd", plan_id="P9")
    assert plan.plan_id == "P9"
    paths = engine.plan_paths(plan)
    assert paths[PathStrategy.SWEEP].path == [ENTRANCE, BayLocation(1, 1)]
    assert paths[PathStrategy.SWEEP].total_distance == 4


def test_no_warehouses_nothing_to_pick():
    engine = FulfillmentEngine([], items=_items())
    result = engine.run(_orders(), wagons=_wagons(), now=NOW)
    assert result.unload.not_unloaded == 2
    assert len(engine.audit.lines) == 3
    assert all(e.status == Status.UNDISPATCHABLE for e in result.allocation.eligibility)
    assert result.plan.trolleys == []
    assert all(r.path == [ENTRANCE] for r in result.paths.values())


def test_empty_batch():
    engine = _engine()
    result = engine.run([], now=NOW)
    assert result.unload is None
    assert result.allocation.eligibility == []
    assert result.plan.total_trolleys == 0
