"""
Ordered stock of boxes.

Perishable boxes (with an expiry date) always come first, earliest expiry
first; non-perishable boxes follow, oldest receipt first. Every retrieval in
the pipeline walks this order.
"""
from __future__ import annotations
from bisect import bisect_right
from datetime import date, datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

import structlog

from models import Box, DuplicateBoxError

logger = structlog.get_logger()


def as_date(d) -> date:
    return as_datetime(d).date() if isinstance(d, datetime) else d


def as_datetime(d) -> datetime:
    """Naive datetime; aware values are converted to UTC first so every key compares."""
    if isinstance(d, datetime):
        if d.tzinfo is not None:
            return d.astimezone(timezone.utc).replace(tzinfo=None)
        return d
    return datetime.combine(d, datetime.min.time())


def retrieval_key(box: Box) -> Tuple[int, date, datetime]:
    received = as_datetime(box.received_at)
    if box.is_perishable:
        return (0, as_date(box.expiry_date), received)
    return (1, date.min, received)


class Inventory:
    def __init__(self, boxes=None):
        self._boxes: List[Box] = []
        self._keys: List[Tuple[int, date, datetime]] = []
        self._by_id: Dict[str, Box] = {}
        for b in boxes or []:
            self.insert_ordered(b)

    def __len__(self):
        return len(self._boxes)

    def __iter__(self) -> Iterator[Box]:
        return iter(list(self._boxes))

    def __contains__(self, box_id) -> bool:
        return box_id in self._by_id

    def insert_ordered(self, box: Box) -> None:
        if box.box_id in self._by_id:
            raise DuplicateBoxError(box.box_id)
        if box.qty_available < 0:
            raise ValueError(f"box {box.box_id} has negative quantity {box.qty_available}")
        key = retrieval_key(box)
        # equal keys keep arrival order
        idx = bisect_right(self._keys, key)
        self._keys.insert(idx, key)
        self._boxes.insert(idx, box)
        self._by_id[box.box_id] = box

    def get_boxes(self) -> List[Box]:
        return list(self._boxes)

    def boxes_for(self, sku: str) -> List[Box]:
        return [b for b in self._boxes if b.sku == sku]

    def available(self, sku: str) -> int:
        return sum(b.qty_available for b in self._boxes if b.sku == sku)

    def find(self, box_id: str) -> Optional[Box]:
        return self._by_id.get(box_id)

    def remove(self, box: Box) -> None:
        for i, b in enumerate(self._boxes):
            if b is box:
                del self._boxes[i]
                del self._keys[i]
                del self._by_id[box.box_id]
                return
        raise KeyError(box.box_id)

    def consume(self, box: Box, qty: int) -> int:
        """Take qty units out of box; a box that reaches zero leaves the inventory."""
        if qty < 0 or qty > box.qty_available:
            raise ValueError(f"cannot take {qty} from box {box.box_id} holding {box.qty_available}")
        box.qty_available -= qty
        if box.qty_available == 0:
            self.remove(box)
            logger.debug("inventory.box_emptied", box_id=box.box_id, sku=box.sku)
        return qty

    def dispatch(self, sku: str, qty: int) -> int:
        """
        Ship up to qty units of sku in retrieval order, skipping boxes that
        were never put away. Returns the quantity actually shipped.
        """
        if not sku or qty <= 0:
            return 0
        remaining = qty
        for b in self.boxes_for(sku):
            if remaining <= 0:
                break
            if b.aisle is None or b.bay is None:
                continue
            remaining -= self.consume(b, min(b.qty_available, remaining))
        shipped = qty - remaining
        logger.info("inventory.dispatched", sku=sku, requested=qty, shipped=shipped)
        return shipped

    def relocate(self, box_id: str, aisle: str, bay: str) -> bool:
        box = self._by_id.get(box_id)
        if box is None or aisle is None or bay is None:
            logger.warning("inventory.relocate_failed", box_id=box_id)
            return False
        # location does not take part in the retrieval key, so order is untouched
        box.aisle = str(aisle)
        box.bay = str(bay)
        logger.info("inventory.relocated", box_id=box_id, aisle=box.aisle, bay=box.bay)
        return True
