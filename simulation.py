from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from allocation import allocate_orders
from audit import MemoryAuditLog
from batching import build_picking_plan
from inventory import Inventory
from models import (
    AllocationMode,
    AllocationResult,
    Box,
    Item,
    Order,
    PathResult,
    PathStrategy,
    PickingPlan,
    PipelineCfg,
    Return,
    Wagon,
    Warehouse,
)
from quarantine import Quarantine, ReturnProcessor, ReturnsSummary
from routing import plan_paths
from storage import CapacityAllocator, PlacementResult, UnloadResult

logger = structlog.get_logger()


@dataclass
class RunResult:
    unload: Optional[UnloadResult]
    returns: Optional[ReturnsSummary]
    allocation: AllocationResult
    plan: PickingPlan
    paths: Dict[PathStrategy, PathResult] = field(default_factory=dict)


class FulfillmentEngine:
    """
    Owns the mutable state of one batch: the inventory, the warehouse bays,
    the quarantine stack and the audit sink. Not safe for concurrent callers.
    """

    def __init__(self, warehouses: List[Warehouse], items: Optional[Dict[str, Item]] = None,
                 audit=None, cfg: Optional[PipelineCfg] = None):
        self.warehouses = list(warehouses or [])
        self.items = items or {}
        self.audit = audit if audit is not None else MemoryAuditLog()
        self.cfg = cfg or PipelineCfg()
        self.inventory = Inventory()
        self.quarantine = Quarantine()
        self.allocator = CapacityAllocator(self.warehouses, self.inventory, self.audit)

    def unload_wagons(self, wagons: List[Wagon]) -> UnloadResult:
        return self.allocator.unload_wagons(wagons)

    def receive(self, boxes: List[Box]) -> PlacementResult:
        return self.allocator.place(boxes)

    def add_return(self, ret: Return) -> None:
        self.quarantine.add(ret)

    def process_returns(self, now=None) -> ReturnsSummary:
        return ReturnProcessor(self.quarantine, self.allocator, self.audit).process(now=now)

    def allocate(self, orders: List[Order], mode: Optional[AllocationMode] = None) -> AllocationResult:
        return allocate_orders(orders, self.inventory, mode or self.cfg.mode, self.items)

    def pick(self, allocation: AllocationResult, capacity: Optional[float] = None, heuristic=None,
             plan_id: Optional[str] = None) -> PickingPlan:
        return build_picking_plan(
            allocation.allocations,
            capacity if capacity is not None else self.cfg.trolley_capacity,
            heuristic or self.cfg.heuristic,
            items=self.items,
            plan_id=plan_id,
        )

    def plan_paths(self, plan: Optional[PickingPlan]) -> Dict[PathStrategy, PathResult]:
        return plan_paths(plan)

    def run(self, orders: List[Order], wagons: Optional[List[Wagon]] = None,
            returns: Optional[List[Return]] = None, now=None) -> RunResult:
        unload = self.unload_wagons(wagons) if wagons else None
        summary = None
        if returns:
            for r in returns:
                self.add_return(r)
            summary = self.process_returns(now=now)
        allocation = self.allocate(orders)
        plan = self.pick(allocation)
        paths = self.plan_paths(plan)
        logger.info("engine.run_completed", orders=len(orders or []), boxes_left=len(self.inventory),
                    trolleys=plan.total_trolleys)
        return RunResult(unload=unload, returns=summary, allocation=allocation, plan=plan, paths=paths)
