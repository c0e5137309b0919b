from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, NamedTuple, Optional


class FulfillmentError(Exception):
    """Base class for errors raised by the fulfillment pipeline."""


class DuplicateBoxError(FulfillmentError, ValueError):
    def __init__(self, box_id: str):
        super().__init__(f"duplicate box id: {box_id}")
        self.box_id = box_id


class Status(Enum):
    ELIGIBLE = "ELIGIBLE"
    PARTIAL = "PARTIAL"
    UNDISPATCHABLE = "UNDISPATCHABLE"


class AllocationMode(Enum):
    STRICT = "strict"
    PARTIAL = "partial"


class Heuristic(Enum):
    FIRST_FIT = "ff"
    FIRST_FIT_DECREASING = "ffd"
    BEST_FIT_DECREASING = "bfd"


class PathStrategy(Enum):
    SWEEP = "Strategy A (Deterministic Sweep)"
    NEAREST_NEIGHBOUR = "Strategy B (Nearest Neighbour)"


class ReturnAction(Enum):
    DISCARDED = "Discarded"
    RESTOCKED = "Restocked"
    DISCARDED_NO_SPACE = "Discarded (No Space)"


# -------------------- Stock --------------------
@dataclass(eq=False)
class Box:
    box_id: str
    sku: str
    qty_available: int
    expiry_date: Optional[date] = None
    received_at: datetime = field(default_factory=datetime.now)
    aisle: Optional[str] = None
    bay: Optional[str] = None

    @property
    def is_perishable(self) -> bool:
        return self.expiry_date is not None


@dataclass(eq=False)
class Bay:
    warehouse_id: str
    aisle: int
    bay: int
    capacity_boxes: int
    boxes: List[Box] = field(default_factory=list)

    def add_box(self, box: Box) -> bool:
        if len(self.boxes) < self.capacity_boxes:
            self.boxes.append(box)
            return True
        return False


@dataclass(eq=False)
class Warehouse:
    warehouse_id: str
    bays: List[Bay] = field(default_factory=list)

    @property
    def capacity(self) -> int:
        return sum(b.capacity_boxes for b in self.bays)

    def store_box(self, box: Box) -> Optional[Bay]:
        """Put the box in the first bay with room and stamp its location."""
        for b in self.bays:
            if b.add_box(box):
                box.aisle = str(b.aisle)
                box.bay = str(b.bay)
                return b
        return None


@dataclass
class Wagon:
    wagon_id: str
    boxes: List[Box] = field(default_factory=list)


@dataclass(frozen=True)
class Item:
    sku: str
    name: str = "Unknown Product"
    category: str = "Unknown Category"
    unit: str = "units"
    unit_weight: float = 0.0


# -------------------- Orders --------------------
@dataclass(frozen=True)
class OrderLine:
    line_no: int
    sku: str
    requested_qty: int


@dataclass
class Order:
    order_id: str
    priority: int
    due_date: date
    lines: List[OrderLine] = field(default_factory=list)


@dataclass(frozen=True)
class Eligibility:
    order_id: str
    line_no: int
    sku: str
    requested_qty: int
    allocated_qty: int
    status: Status


@dataclass(frozen=True)
class Allocation:
    order_id: str
    line_no: int
    sku: str
    qty: int
    weight: float
    box_id: str
    aisle: Optional[str]
    bay: Optional[str]


@dataclass
class AllocationResult:
    eligibility: List[Eligibility] = field(default_factory=list)
    allocations: List[Allocation] = field(default_factory=list)


# -------------------- Picking --------------------
@dataclass(frozen=True)
class PickingAssignment:
    order_id: str
    line_no: int
    item: Item
    qty: int
    box_id: str
    aisle: Optional[str]
    bay: Optional[str]
    weight: float

    @property
    def sku(self) -> str:
        return self.item.sku


@dataclass
class Trolley:
    trolley_id: str
    max_capacity: float
    current_weight: float = 0.0
    assignments: List[PickingAssignment] = field(default_factory=list)

    @property
    def remaining(self) -> float:
        return self.max_capacity - self.current_weight

    @property
    def utilization(self) -> float:
        return (self.current_weight / self.max_capacity) * 100 if self.max_capacity > 0 else 0.0

    def fits(self, weight: float) -> bool:
        return self.current_weight + weight <= self.max_capacity

    def add(self, assignment: PickingAssignment) -> None:
        # no capacity check here; packing policies decide where things go
        self.assignments.append(assignment)
        self.current_weight += assignment.weight


@dataclass
class PickingPlan:
    plan_id: str
    heuristic: Heuristic
    capacity: float
    trolleys: List[Trolley] = field(default_factory=list)

    @property
    def total_trolleys(self) -> int:
        return len(self.trolleys)

    @property
    def total_weight(self) -> float:
        return sum(t.current_weight for t in self.trolleys)

    @property
    def average_utilization(self) -> float:
        if not self.trolleys:
            return 0.0
        return sum(t.utilization for t in self.trolleys) / len(self.trolleys)


class BayLocation(NamedTuple):
    aisle: int
    bay: int

    def __str__(self):
        if self.aisle == 0 and self.bay == 0:
            return "(ENTRANCE)"
        return f"({self.aisle},{self.bay})"


@dataclass(frozen=True)
class PathResult:
    strategy: PathStrategy
    path: List[BayLocation]
    total_distance: float


# -------------------- Returns --------------------
@dataclass(frozen=True)
class Return:
    return_id: str
    sku: str
    qty: int
    reason: str
    timestamp: datetime
    expiry: Optional[datetime] = None


@dataclass
class PipelineCfg:  # Batch run parameters
    trolley_capacity: float = 60.0
    heuristic: Heuristic = Heuristic.FIRST_FIT_DECREASING
    mode: AllocationMode = AllocationMode.PARTIAL
