from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd
import structlog

from models import AllocationResult, Box, Item, Order, OrderLine, PickingPlan, Return, Wagon, Warehouse
from storage import build_warehouses

logger = structlog.get_logger()

# Expected schemas (comma or semicolon separated, header row required)
# items.csv: sku, name, category, unit, unit_weight
# bays.csv: warehouse_id, aisle, bay, capacity_boxes
# wagons.csv: wagon_id, box_id, sku, qty, expiry_date, received_at
# orders.csv: order_id, due_date, priority
# order_lines.csv: order_id, line_no, sku, requested_qty
# returns.csv: return_id, sku, qty, reason, timestamp, expiry_date

_BLANKS = {"", "null", "none", "n/a", "nan"}


def _frame(src, needed, name) -> pd.DataFrame:
    if isinstance(src, pd.DataFrame):
        df = src.astype(str)
    else:
        df = pd.read_csv(src, sep=None, engine="python", dtype=str, keep_default_na=False,
                         encoding="utf-8-sig")
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = set(needed) - set(df.columns)
    if missing:
        raise ValueError(f"{name} missing columns: {sorted(missing)}")
    return df


def _text(v) -> Optional[str]:
    s = str(v).strip()
    return None if s.lower() in _BLANKS else s


def parse_timestamp(v) -> Optional[datetime]:
    s = _text(v)
    if s is None:
        return None
    ts = pd.to_datetime(s)
    # offsets are folded into naive UTC so mixed rows still sort together
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


def _report_skipped(name, skipped):
    if skipped:
        logger.warning("data_io.rows_skipped", source=name, skipped=skipped)


def read_items(src) -> Dict[str, Item]:
    df = _frame(src, {"sku", "name", "category", "unit", "unit_weight"}, "items")
    items = {}
    skipped = 0
    for row in df.to_dict("records"):
        try:
            sku = _text(row["sku"])
            if sku is None:
                raise ValueError("blank sku")
            items[sku] = Item(sku=sku, name=row["name"].strip(), category=row["category"].strip(),
                              unit=row["unit"].strip(), unit_weight=float(row["unit_weight"]))
        except (TypeError, ValueError):
            skipped += 1
    _report_skipped("items", skipped)
    return items


def read_bays(src) -> List[Warehouse]:
    """Warehouses come back sorted by id and bays by (aisle, bay)."""
    df = _frame(src, {"warehouse_id", "aisle", "bay", "capacity_boxes"}, "bays")
    rows = []
    skipped = 0
    for row in df.to_dict("records"):
        try:
            rows.append((row["warehouse_id"].strip(), int(row["aisle"]), int(row["bay"]),
                         int(row["capacity_boxes"])))
        except (TypeError, ValueError):
            skipped += 1
    _report_skipped("bays", skipped)
    warehouses = sorted(build_warehouses(rows), key=lambda w: w.warehouse_id)
    for wh in warehouses:
        wh.bays.sort(key=lambda b: (b.aisle, b.bay))
    return warehouses


def read_wagons(src, items: Optional[Dict[str, Item]] = None) -> List[Wagon]:
    df = _frame(src, {"wagon_id", "box_id", "sku", "qty", "expiry_date", "received_at"}, "wagons")
    wagons: Dict[str, Wagon] = {}
    skipped = 0
    for row in df.to_dict("records"):
        try:
            sku = row["sku"].strip()
            if items is not None and sku not in items:
                raise ValueError(f"unknown sku {sku}")
            expiry = parse_timestamp(row["expiry_date"])
            qty = int(row["qty"])
            if qty < 0:
                raise ValueError(f"negative qty {qty}")
            received = parse_timestamp(row["received_at"])
            if received is None:
                raise ValueError("missing received_at")
            box = Box(box_id=row["box_id"].strip(), sku=sku, qty_available=qty,
                      expiry_date=expiry.date() if expiry else None, received_at=received)
        except (TypeError, ValueError):
            skipped += 1
            continue
        wagon_id = row["wagon_id"].strip()
        wagons.setdefault(wagon_id, Wagon(wagon_id=wagon_id)).boxes.append(box)
    _report_skipped("wagons", skipped)
    return list(wagons.values())


def read_orders(orders_src, lines_src) -> List[Order]:
    """Orders without any valid line are dropped."""
    odf = _frame(orders_src, {"order_id", "due_date", "priority"}, "orders")
    ldf = _frame(lines_src, {"order_id", "line_no", "sku", "requested_qty"}, "order_lines")
    orders: Dict[str, Order] = {}
    skipped = 0
    for row in odf.to_dict("records"):
        try:
            due = parse_timestamp(row["due_date"])
            if due is None:
                raise ValueError("missing due_date")
            order_id = row["order_id"].strip()
            orders[order_id] = Order(order_id=order_id, priority=int(row["priority"]), due_date=due.date())
        except (TypeError, ValueError):
            skipped += 1
    lines = defaultdict(list)
    for row in ldf.to_dict("records"):
        try:
            order_id = row["order_id"].strip()
            if order_id not in orders:
                raise ValueError(f"line for unknown order {order_id}")
            lines[order_id].append(OrderLine(line_no=int(row["line_no"]), sku=row["sku"].strip(),
                                             requested_qty=int(row["requested_qty"])))
        except (TypeError, ValueError):
            skipped += 1
    _report_skipped("orders", skipped)
    for order_id, order in orders.items():
        order.lines.extend(lines.get(order_id, []))
    return [o for o in orders.values() if o.lines]


def read_returns(src) -> List[Return]:
    df = _frame(src, {"return_id", "sku", "qty", "reason", "timestamp"}, "returns")
    returns = []
    skipped = 0
    for row in df.to_dict("records"):
        try:
            ts = parse_timestamp(row["timestamp"])
            if ts is None:
                raise ValueError("missing timestamp")
            qty = int(row["qty"])
            if qty < 0:
                raise ValueError(f"negative qty {qty}")
            returns.append(Return(
                return_id=row["return_id"].strip(),
                sku=row["sku"].strip(),
                qty=qty,
                reason=row["reason"].strip(),
                timestamp=ts,
                expiry=parse_timestamp(row.get("expiry_date", "")),
            ))
        except (TypeError, ValueError):
            skipped += 1
    _report_skipped("returns", skipped)
    return returns


# -------------------- Exports --------------------
def plan_to_frame(plan: PickingPlan) -> pd.DataFrame:
    records = []
    for t in plan.trolleys:
        for a in t.assignments:
            records.append({
                "plan_id": plan.plan_id,
                "heuristic": plan.heuristic.name,
                "trolley_capacity": plan.capacity,
                "trolley_id": t.trolley_id,
                "trolley_utilization": round(t.utilization, 1),
                "order_id": a.order_id,
                "line_no": a.line_no,
                "sku": a.sku,
                "item_name": a.item.name,
                "qty": a.qty,
                "box_id": a.box_id,
                "aisle": a.aisle,
                "bay": a.bay,
                "weight": round(a.weight, 2),
            })
    columns = ["plan_id", "heuristic", "trolley_capacity", "trolley_id", "trolley_utilization", "order_id",
               "line_no", "sku", "item_name", "qty", "box_id", "aisle", "bay", "weight"]
    return pd.DataFrame(records, columns=columns)


def allocations_to_frame(result: AllocationResult) -> pd.DataFrame:
    columns = ["order_id", "line_no", "sku", "qty", "weight", "box_id", "aisle", "bay"]
    return pd.DataFrame([a.__dict__ for a in result.allocations], columns=columns)


def eligibility_to_frame(result: AllocationResult) -> pd.DataFrame:
    columns = ["order_id", "line_no", "sku", "requested_qty", "allocated_qty", "status"]
    rows = [{**e.__dict__, "status": e.status.value} for e in result.eligibility]
    return pd.DataFrame(rows, columns=columns)


def build_plan_csv(plan: PickingPlan) -> str:
    return plan_to_frame(plan).to_csv(index=False)
