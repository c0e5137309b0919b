from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import structlog

from audit import format_return_record
from inventory import as_date, as_datetime
from models import Box, Return, ReturnAction
from storage import CapacityAllocator

logger = structlog.get_logger()

NON_RESTOCKABLE_REASONS = {"damaged", "expired"}


class Quarantine:
    """Returned items waiting for a decision, last in first out."""

    def __init__(self, returns=None):
        self._stack: List[Return] = []
        for r in returns or []:
            self.add(r)

    def add(self, ret: Return) -> None:
        self._stack.append(ret)

    def pop(self) -> Optional[Return]:
        return self._stack.pop() if self._stack else None

    def peek(self) -> Optional[Return]:
        return self._stack[-1] if self._stack else None

    def is_empty(self) -> bool:
        return not self._stack

    def __len__(self):
        return len(self._stack)

    def __iter__(self):
        return iter(list(self._stack))


def is_restockable(ret: Return, now: Optional[datetime] = None) -> bool:
    if (ret.reason or "").strip().lower() in NON_RESTOCKABLE_REASONS:
        return False
    now = as_datetime(now or datetime.now())
    if ret.expiry is not None and as_datetime(ret.expiry) < now:
        return False
    return True


def box_from_return(ret: Return) -> Box:
    return Box(
        box_id=f"RET-{ret.return_id}",
        sku=ret.sku,
        qty_available=ret.qty,
        expiry_date=as_date(ret.expiry) if ret.expiry is not None else None,
        received_at=ret.timestamp,
    )


@dataclass
class ReturnRecord:
    return_id: str
    action: ReturnAction
    qty: int


@dataclass
class ReturnsSummary:
    records: List[ReturnRecord] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.records)

    @property
    def restocked(self) -> int:
        return sum(1 for r in self.records if r.action == ReturnAction.RESTOCKED)

    @property
    def discarded(self) -> int:
        return self.processed - self.restocked


class ReturnProcessor:
    def __init__(self, quarantine: Quarantine, allocator: CapacityAllocator, audit=None):
        self.quarantine = quarantine
        self.allocator = allocator
        self.audit = audit

    def decide(self, ret: Return, now: datetime) -> ReturnAction:
        if not is_restockable(ret, now):
            return ReturnAction.DISCARDED
        box = box_from_return(ret)
        bay = self.allocator.place_one(box)
        if bay is None:
            return ReturnAction.DISCARDED_NO_SPACE
        logger.info("returns.restocked", return_id=ret.return_id, box_id=box.box_id,
                    warehouse=bay.warehouse_id, aisle=bay.aisle, bay=bay.bay)
        return ReturnAction.RESTOCKED

    def check(self, now: datetime) -> None:
        """Reject the drain up front if any restock box would be refused."""
        self.allocator.check_batch([box_from_return(r) for r in self.quarantine if is_restockable(r, now)])

    def process(self, now: Optional[datetime] = None) -> ReturnsSummary:
        """Drain the quarantine; one audit line per return, in pop order."""
        now = now or datetime.now()
        self.check(now)
        summary = ReturnsSummary()
        while not self.quarantine.is_empty():
            ret = self.quarantine.pop()
            action = self.decide(ret, now)
            if action != ReturnAction.RESTOCKED:
                logger.info("returns.discarded", return_id=ret.return_id, reason=ret.reason, action=action.value)
            summary.records.append(ReturnRecord(ret.return_id, action, ret.qty))
            if self.audit is not None:
                self.audit.append(format_return_record(ret.return_id, action.value, ret.qty))
        logger.info("returns.processed", processed=summary.processed, restocked=summary.restocked,
                    discarded=summary.discarded)
        return summary
