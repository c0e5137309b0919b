# main.py

import argparse
import os
import random
from datetime import date, datetime, timedelta

import structlog

from audit import FileAuditLog, MemoryAuditLog
from batching import parse_heuristic
from data_io import (
    allocations_to_frame,
    eligibility_to_frame,
    plan_to_frame,
    read_bays,
    read_items,
    read_orders,
    read_returns,
    read_wagons,
)
from kpis import compute_allocation_kpis, compute_path_kpis, compute_plan_kpis
from logging_config import configure_logging
from models import AllocationMode, Box, Item, Order, OrderLine, PipelineCfg, Return, Wagon
from simulation import FulfillmentEngine
from storage import gen_warehouses

logger = structlog.get_logger()


def gen_items(num_skus, rng):
    return {
        f"SKU{i:04d}": Item(sku=f"SKU{i:04d}", name=f"Item {i}", category="General", unit="units",
                            unit_weight=round(rng.uniform(0.2, 5.0), 2))
        for i in range(1, num_skus + 1)
    }


def gen_wagons(num_wagons, boxes_per_wagon, skus, rng, today):
    wagons = []
    box_no = 0
    for w in range(1, num_wagons + 1):
        wagon = Wagon(wagon_id=f"WG{w:03d}")
        for _ in range(boxes_per_wagon):
            box_no += 1
            perishable = rng.random() < 0.4
            wagon.boxes.append(Box(
                box_id=f"B{box_no:05d}",
                sku=rng.choice(skus),
                qty_available=rng.randint(1, 20),
                expiry_date=today + timedelta(days=rng.randint(3, 60)) if perishable else None,
                received_at=datetime.combine(today, datetime.min.time()) - timedelta(hours=rng.randint(0, 500)),
            ))
        wagons.append(wagon)
    return wagons


def gen_orders(num_orders, skus, mean_lines, rng, today):
    orders = []
    for oid in range(1, num_orders + 1):
        lines = max(1, int(rng.expovariate(1.0 / mean_lines)))
        orders.append(Order(
            order_id=f"ORD{oid:05d}",
            priority=rng.randint(1, 5),
            due_date=today + timedelta(days=rng.randint(0, 10)),
            lines=[OrderLine(line_no=n, sku=rng.choice(skus), requested_qty=rng.randint(1, 15))
                   for n in range(1, lines + 1)],
        ))
    return orders


def gen_returns(num_returns, skus, rng, today):
    reasons = ["Customer Remorse", "Cycle Count", "Damaged", "Expired", "Wrong Item"]
    now = datetime.combine(today, datetime.min.time())
    return [
        Return(return_id=f"R{r:04d}", sku=rng.choice(skus), qty=rng.randint(1, 5), reason=rng.choice(reasons),
               timestamp=now - timedelta(hours=rng.randint(1, 48)))
        for r in range(1, num_returns + 1)
    ]


def load_data_dir(data_dir):
    def path(name):
        return os.path.join(data_dir, name)

    items = read_items(path("items.csv"))
    warehouses = read_bays(path("bays.csv"))
    wagons = read_wagons(path("wagons.csv"), items)
    orders = read_orders(path("orders.csv"), path("order_lines.csv"))
    returns = read_returns(path("returns.csv")) if os.path.exists(path("returns.csv")) else []
    return items, warehouses, wagons, orders, returns


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run one warehouse fulfillment batch.")
    parser.add_argument("--data-dir", help="directory with items/bays/wagons/orders/order_lines/returns CSVs; "
                                           "synthetic data is generated when omitted")
    parser.add_argument("--mode", choices=[m.value for m in AllocationMode], default=AllocationMode.PARTIAL.value)
    parser.add_argument("--heuristic", default="ffd", help="ff | ffd | bfd")
    parser.add_argument("--capacity", type=float, default=60.0, help="trolley capacity (kg)")
    parser.add_argument("--audit-log", help="append audit lines to this file")
    parser.add_argument("--out-dir", help="write plan/allocation/eligibility CSVs here")
    parser.add_argument("--plot", action="store_true", help="save a PNG of both picking paths to --out-dir")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level)

    cfg = PipelineCfg(
        trolley_capacity=args.capacity,
        heuristic=parse_heuristic(args.heuristic),
        mode=AllocationMode(args.mode),
    )

    # --- Data ---
    if args.data_dir:
        items, warehouses, wagons, orders, returns = load_data_dir(args.data_dir)
    else:
        rng = random.Random(args.seed)
        today = date.today()
        items = gen_items(40, rng)
        skus = sorted(items)
        warehouses = gen_warehouses(num_warehouses=2, num_aisles=4, bays_per_aisle=8, capacity=2)
        wagons = gen_wagons(6, 25, skus, rng, today)
        orders = gen_orders(30, skus, 3, rng, today)
        returns = gen_returns(10, skus, rng, today)

    audit = FileAuditLog(args.audit_log) if args.audit_log else MemoryAuditLog()

    # --- Batch ---
    engine = FulfillmentEngine(warehouses, items=items, audit=audit, cfg=cfg)
    result = engine.run(orders, wagons=wagons, returns=returns)

    # --- KPIs ---
    if result.unload is not None:
        u = result.unload
        print(f"Wagons: {u.wagons_processed} processed, {u.fully_unloaded} full, "
              f"{u.partially_unloaded} partial, {u.not_unloaded} not unloaded; "
              f"{u.boxes_stored} boxes stored, {len(u.discarded)} discarded")
    if result.returns is not None:
        r = result.returns
        print(f"Returns: {r.processed} processed, {r.restocked} restocked, {r.discarded} discarded")
    for k, v in compute_allocation_kpis(result.allocation).items():
        print(f"{k}: {v:.2f}" if isinstance(v, float) else f"{k}: {v}")

    plan_kpis = compute_plan_kpis(result.plan)
    per_trolley = plan_kpis.pop("Per Trolley")
    for k, v in plan_kpis.items():
        print(f"{k}: {v:.2f}" if isinstance(v, float) else f"{k}: {v}")
    if not per_trolley.empty:
        print(per_trolley.to_string(index=False))
    print(compute_path_kpis(result.paths).to_string(index=False))

    # --- Exports ---
    if args.out_dir:
        os.makedirs(args.out_dir, exist_ok=True)
        plan_to_frame(result.plan).to_csv(os.path.join(args.out_dir, "picking_plan.csv"), index=False)
        allocations_to_frame(result.allocation).to_csv(os.path.join(args.out_dir, "allocations.csv"), index=False)
        eligibility_to_frame(result.allocation).to_csv(os.path.join(args.out_dir, "eligibility.csv"), index=False)
        if args.plot:
            from visualization import plot_picking_paths
            plot_picking_paths(result.paths, os.path.join(args.out_dir, "picking_paths.png"))
        logger.info("main.exported", out_dir=args.out_dir)
    elif args.plot:
        logger.warning("main.plot_needs_out_dir")
    return result


if __name__ == "__main__":
    main()
