from __future__ import annotations
from typing import Dict, List, Optional

import structlog

from inventory import Inventory
from models import Allocation, AllocationMode, AllocationResult, Eligibility, Item, Order, OrderLine, Status

logger = structlog.get_logger()


def order_sequence(orders: List[Order]) -> List[Order]:
    """Most urgent first: priority, then due date, then id."""
    return sorted(orders, key=lambda o: (o.priority, o.due_date, str(o.order_id)))


def line_status(allocated: int, requested: int) -> Status:
    if allocated <= 0:
        return Status.UNDISPATCHABLE
    if allocated < requested:
        return Status.PARTIAL
    return Status.ELIGIBLE


def allocate_line(order: Order, line: OrderLine, inventory: Inventory, mode: AllocationMode,
                  items: Optional[Dict[str, Item]] = None):
    requested = line.requested_qty
    if requested <= 0:
        return Eligibility(order.order_id, line.line_no, line.sku, requested, 0, Status.UNDISPATCHABLE), []

    boxes = inventory.boxes_for(line.sku)
    available = sum(b.qty_available for b in boxes)
    if mode == AllocationMode.STRICT and available < requested:
        return Eligibility(order.order_id, line.line_no, line.sku, requested, 0, Status.UNDISPATCHABLE), []

    item = (items or {}).get(line.sku)
    unit_weight = item.unit_weight if item is not None else 0.0
    remaining = requested
    allocations = []
    for box in boxes:
        if remaining <= 0:
            break
        take = min(remaining, box.qty_available)
        if take <= 0:
            continue
        allocations.append(Allocation(
            order_id=order.order_id,
            line_no=line.line_no,
            sku=line.sku,
            qty=take,
            weight=take * unit_weight,
            box_id=box.box_id,
            aisle=box.aisle,
            bay=box.bay,
        ))
        inventory.consume(box, take)
        remaining -= take

    allocated = requested - remaining
    return Eligibility(order.order_id, line.line_no, line.sku, requested, allocated,
                       line_status(allocated, requested)), allocations


def allocate_orders(orders: List[Order], inventory: Inventory, mode: AllocationMode = AllocationMode.STRICT,
                    items: Optional[Dict[str, Item]] = None) -> AllocationResult:
    """
    Allocate order lines against the inventory, consuming stock as it goes.

    Earlier orders permanently reduce what later ones can get. In STRICT mode
    a line is all-or-nothing; in PARTIAL mode it takes whatever is there.
    """
    mode = AllocationMode(mode)
    result = AllocationResult()
    for order in order_sequence(orders or []):
        for line in sorted(order.lines, key=lambda l: l.line_no):
            eligibility, allocations = allocate_line(order, line, inventory, mode, items)
            if items is not None and line.sku not in items:
                logger.warning("allocation.unknown_sku", order_id=order.order_id, sku=line.sku)
            result.eligibility.append(eligibility)
            result.allocations.extend(allocations)

    counts = {s.value: sum(1 for e in result.eligibility if e.status == s) for s in Status}
    logger.info("allocation.completed", mode=mode.value, lines=len(result.eligibility),
                allocations=len(result.allocations), **counts)
    return result
