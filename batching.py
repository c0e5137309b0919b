from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional

import structlog

from models import Allocation, Heuristic, Item, PickingAssignment, PickingPlan, Trolley

logger = structlog.get_logger()


class PackingPolicy:
    def pack(self, assignments: List[PickingAssignment], capacity: float) -> List[Trolley]:
        raise NotImplementedError

    @staticmethod
    def open_trolley(trolleys: List[Trolley], capacity: float) -> Trolley:
        trolley = Trolley(trolley_id=f"T{len(trolleys) + 1}", max_capacity=capacity)
        trolleys.append(trolley)
        return trolley

    @staticmethod
    def by_weight_desc(assignments):
        # sorted() is stable, equal weights keep input order
        return sorted(assignments, key=lambda a: a.weight, reverse=True)


class FirstFitPacking(PackingPolicy):
    def pack(self, assignments, capacity):
        trolleys: List[Trolley] = []
        for a in assignments:
            target = next((t for t in trolleys if t.fits(a.weight)), None)
            if target is None:
                # an item heavier than the capacity still gets a trolley of its own
                target = self.open_trolley(trolleys, capacity)
            target.add(a)
        return trolleys


class FirstFitDecreasingPacking(FirstFitPacking):
    def pack(self, assignments, capacity):
        return super().pack(self.by_weight_desc(assignments), capacity)


class BestFitDecreasingPacking(PackingPolicy):
    def pack(self, assignments, capacity):
        trolleys: List[Trolley] = []
        for a in self.by_weight_desc(assignments):
            best = None
            best_left = None
            for t in trolleys:
                left = t.remaining - a.weight
                if left >= 0 and (best_left is None or left < best_left):
                    best, best_left = t, left
            if best is None:
                best = self.open_trolley(trolleys, capacity)
            best.add(a)
        return trolleys


PACKING_POLICIES: Dict[Heuristic, PackingPolicy] = {
    Heuristic.FIRST_FIT: FirstFitPacking(),
    Heuristic.FIRST_FIT_DECREASING: FirstFitDecreasingPacking(),
    Heuristic.BEST_FIT_DECREASING: BestFitDecreasingPacking(),
}


def parse_heuristic(heuristic) -> Heuristic:
    """Accepts a Heuristic, its short key ("ff") or its name ("FIRST_FIT")."""
    if isinstance(heuristic, Heuristic):
        return heuristic
    key = str(heuristic).strip()
    for h in Heuristic:
        if key.lower() == h.value or key.upper() == h.name:
            return h
    raise ValueError(f"unknown packing heuristic: {heuristic!r}")


def get_packing_policy(heuristic) -> PackingPolicy:
    return PACKING_POLICIES[parse_heuristic(heuristic)]


def to_assignments(allocations: List[Allocation], items: Optional[Dict[str, Item]] = None) -> List[PickingAssignment]:
    items = items or {}
    assignments = []
    for alloc in allocations:
        item = items.get(alloc.sku)
        if item is None:
            logger.warning("batching.unknown_item", sku=alloc.sku, order_id=alloc.order_id)
            item = Item(sku=alloc.sku)
        assignments.append(PickingAssignment(
            order_id=alloc.order_id,
            line_no=alloc.line_no,
            item=item,
            qty=alloc.qty,
            box_id=alloc.box_id,
            aisle=alloc.aisle,
            bay=alloc.bay,
            weight=alloc.weight,
        ))
    return assignments


def build_picking_plan(allocations: List[Allocation], capacity: float,
                       heuristic: Heuristic = Heuristic.FIRST_FIT,
                       items: Optional[Dict[str, Item]] = None,
                       plan_id: Optional[str] = None) -> PickingPlan:
    if capacity <= 0:
        raise ValueError(f"trolley capacity must be positive, got {capacity}")
    heuristic = parse_heuristic(heuristic)
    policy = PACKING_POLICIES[heuristic]
    plan = PickingPlan(
        plan_id=plan_id or f"PLAN_{datetime.now():%Y%m%d%H%M%S%f}",
        heuristic=heuristic,
        capacity=capacity,
    )
    assignments = to_assignments(allocations or [], items)
    if not assignments:
        logger.info("batching.empty_plan", plan_id=plan.plan_id)
        return plan
    plan.trolleys = policy.pack(assignments, capacity)
    overloaded = [t.trolley_id for t in plan.trolleys if t.current_weight > t.max_capacity]
    if overloaded:
        logger.warning("batching.over_capacity", plan_id=plan.plan_id, trolleys=overloaded)
    logger.info("batching.plan_built", plan_id=plan.plan_id, heuristic=heuristic.name,
                assignments=len(assignments), trolleys=plan.total_trolleys,
                avg_utilization=round(plan.average_utilization, 1))
    return plan
