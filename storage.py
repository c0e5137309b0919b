from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from audit import format_box_record
from inventory import Inventory, retrieval_key
from models import Bay, Box, DuplicateBoxError, ReturnAction, Wagon, Warehouse

logger = structlog.get_logger()


def gen_warehouses(num_warehouses: int, num_aisles: int, bays_per_aisle: int, capacity: int) -> List[Warehouse]:
    warehouses = []
    for w in range(1, num_warehouses + 1):
        wh = Warehouse(warehouse_id=f"W{w}")
        for aisle in range(1, num_aisles + 1):
            for bay in range(1, bays_per_aisle + 1):
                wh.bays.append(Bay(warehouse_id=wh.warehouse_id, aisle=aisle, bay=bay, capacity_boxes=capacity))
        warehouses.append(wh)
    return warehouses


def build_warehouses(rows: Iterable[Tuple[str, int, int, int]]) -> List[Warehouse]:
    """
    Group (warehouse_id, aisle, bay, capacity) rows into warehouses.
    Warehouses and bays keep the order in which they first appear.
    """
    by_id: Dict[str, Warehouse] = {}
    for warehouse_id, aisle, bay, capacity in rows:
        wh = by_id.get(warehouse_id)
        if wh is None:
            wh = by_id[warehouse_id] = Warehouse(warehouse_id=warehouse_id)
        wh.bays.append(Bay(warehouse_id=warehouse_id, aisle=int(aisle), bay=int(bay), capacity_boxes=int(capacity)))
    return list(by_id.values())


@dataclass
class PlacementResult:
    placed: List[Tuple[Box, Bay]] = field(default_factory=list)
    discarded: List[Box] = field(default_factory=list)


@dataclass
class UnloadResult:
    wagons_processed: int = 0
    fully_unloaded: int = 0
    partially_unloaded: int = 0
    not_unloaded: int = 0
    boxes_stored: int = 0
    discarded: List[Box] = field(default_factory=list)


class CapacityAllocator:
    """Puts boxes away into the first bay with room, walking warehouses and bays in list order."""

    def __init__(self, warehouses: List[Warehouse], inventory: Inventory, audit=None):
        self.warehouses = warehouses if warehouses is not None else []
        self.inventory = inventory
        self.audit = audit

    def check_box(self, box: Box) -> None:
        if box.box_id in self.inventory:
            raise DuplicateBoxError(box.box_id)
        if box.qty_available < 0:
            raise ValueError(f"box {box.box_id} has negative quantity {box.qty_available}")

    def check_batch(self, boxes: List[Box]) -> None:
        counts = Counter(b.box_id for b in boxes)
        for b in boxes:
            if counts[b.box_id] > 1:
                raise DuplicateBoxError(b.box_id)
            self.check_box(b)

    def place_one(self, box: Box) -> Optional[Bay]:
        # checked before any bay is touched, so a rejected box leaves no trace
        self.check_box(box)
        for wh in self.warehouses:
            bay = wh.store_box(box)
            if bay is not None:
                self.inventory.insert_ordered(box)
                logger.debug("storage.placed", box_id=box.box_id, warehouse=wh.warehouse_id,
                             aisle=bay.aisle, bay=bay.bay)
                return bay
        return None

    def place(self, boxes: List[Box]) -> PlacementResult:
        """
        Place a batch in retrieval order (source order is irrelevant).
        The whole batch is rejected before anything moves if a box id repeats
        or a quantity is negative.
        """
        boxes = list(boxes)
        self.check_batch(boxes)
        result = PlacementResult()
        for box in sorted(boxes, key=retrieval_key):
            bay = self.place_one(box)
            if bay is not None:
                result.placed.append((box, bay))
                continue
            result.discarded.append(box)
            logger.info("storage.no_space", box_id=box.box_id, sku=box.sku, qty=box.qty_available)
            if self.audit is not None:
                self.audit.append(format_box_record(box.box_id, ReturnAction.DISCARDED_NO_SPACE.value, box.qty_available))
        return result

    def unload_wagons(self, wagons: List[Wagon]) -> UnloadResult:
        wagons = [w for w in wagons or [] if w is not None]
        if not wagons:
            return UnloadResult()
        placement = self.place([b for w in wagons for b in w.boxes])
        stored = {id(box) for box, _ in placement.placed}

        result = UnloadResult(wagons_processed=len(wagons), boxes_stored=len(stored),
                              discarded=placement.discarded)
        for w in wagons:
            if not w.boxes:
                continue
            n_stored = sum(1 for b in w.boxes if id(b) in stored)
            if n_stored == len(w.boxes):
                result.fully_unloaded += 1
            elif n_stored > 0:
                result.partially_unloaded += 1
                logger.warning("storage.wagon_partially_unloaded", wagon_id=w.wagon_id,
                               stored=n_stored, total=len(w.boxes))
            else:
                result.not_unloaded += 1
                logger.warning("storage.wagon_not_unloaded", wagon_id=w.wagon_id, total=len(w.boxes))
        logger.info("storage.unloaded", wagons=result.wagons_processed, boxes_stored=result.boxes_stored,
                    discarded=len(result.discarded))
        return result
