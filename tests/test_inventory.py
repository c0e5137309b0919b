from datetime import date, datetime, timedelta

import pytest

from inventory import Inventory
from models import Box, DuplicateBoxError

T0 = datetime(2025, 1, 1, 8, 0)
D0 = date(2025, 2, 1)


def _box(box_id, qty=5, expiry_days=None, received_hours=0, sku="SKU1", located=True):
    return Box(
        box_id=box_id,
        sku=sku,
        qty_available=qty,
        expiry_date=D0 + timedelta(days=expiry_days) if expiry_days is not None else None,
        received_at=T0 + timedelta(hours=received_hours),
        aisle="1" if located else None,
        bay="1" if located else None,
    )


def _assert_retrieval_order(boxes):
    perishable = [b for b in boxes if b.expiry_date is not None]
    rest = [b for b in boxes if b.expiry_date is None]
    assert boxes == perishable + rest
    assert [b.expiry_date for b in perishable] == sorted(b.expiry_date for b in perishable)
    assert [b.received_at for b in rest] == sorted(b.received_at for b in rest)


def test_perishable_prefix_then_oldest_first():
    inv = Inventory()
    for b in [
        _box("N-late", received_hours=10),
        _box("P-10", expiry_days=10),
        _box("N-early", received_hours=1),
        _box("P-2", expiry_days=2, received_hours=50),
        _box("P-5", expiry_days=5),
        _box("N-mid", received_hours=5),
    ]:
        inv.insert_ordered(b)
        _assert_retrieval_order(inv.get_boxes())

    assert [b.box_id for b in inv.get_boxes()] == ["P-2", "P-5", "P-10", "N-early", "N-mid", "N-late"]


def test_equal_keys_keep_arrival_order():
    inv = Inventory([_box("A", received_hours=3), _box("B", received_hours=3), _box("C", received_hours=3)])
    assert [b.box_id for b in inv.get_boxes()] == ["A", "B", "C"]


def test_same_expiry_falls_back_to_receipt_time():
    inv = Inventory([_box("late", expiry_days=4, received_hours=9), _box("early", expiry_days=4, received_hours=1)])
    assert [b.box_id for b in inv.get_boxes()] == ["early", "late"]


def test_duplicate_box_id_is_rejected():
    inv = Inventory([_box("B1")])
    with pytest.raises(DuplicateBoxError) as exc:
        inv.insert_ordered(_box("B1", received_hours=4))
    assert exc.value.box_id == "B1"
    assert "B1" in str(exc.value)
    assert len(inv) == 1


def test_get_boxes_is_a_copy():
    inv = Inventory([_box("B1")])
    view = inv.get_boxes()
    view.clear()
    assert len(inv) == 1


def test_consume_removes_empty_boxes_and_keeps_order():
    inv = Inventory([_box("P", qty=3, expiry_days=1), _box("N1", qty=4, received_hours=1), _box("N2", received_hours=2)])
    p = inv.find("P")
    inv.consume(p, 3)
    assert "P" not in inv
    inv.consume(inv.find("N1"), 1)
    assert inv.find("N1").qty_available == 3
    assert [b.box_id for b in inv.get_boxes()] == ["N1", "N2"]
    _assert_retrieval_order(inv.get_boxes())


def test_consume_never_goes_below_zero():
    inv = Inventory([_box("B1", qty=2)])
    with pytest.raises(ValueError):
        inv.consume(inv.find("B1"), 3)
    assert inv.find("B1").qty_available == 2


def test_available_sums_matching_sku():
    inv = Inventory([_box("A", qty=2), _box("B", qty=5, received_hours=1), _box("C", qty=9, sku="OTHER")])
    assert inv.available("SKU1") == 7
    assert inv.available("MISSING") == 0
    assert [b.box_id for b in inv.boxes_for("OTHER")] == ["C"]


def test_dispatch_skips_boxes_without_location():
    inv = Inventory([
        _box("unplaced", qty=5, expiry_days=1, located=False),
        _box("P", qty=4, expiry_days=3),
        _box("N", qty=10, received_hours=1),
    ])
    shipped = inv.dispatch("SKU1", 6)
    assert shipped == 6
    assert inv.find("unplaced").qty_available == 5
    assert "P" not in inv
    assert inv.find("N").qty_available == 8


def test_dispatch_ignores_bad_requests():
    inv = Inventory([_box("B1")])
    assert inv.dispatch("SKU1", 0) == 0
    assert inv.dispatch("", 3) == 0
    assert inv.find("B1").qty_available == 5


def test_relocate_updates_location_only():
    inv = Inventory([_box("P", expiry_days=1), _box("N", received_hours=1)])
    assert inv.relocate("N", 4, 7)
    n = inv.find("N")
    assert (n.aisle, n.bay) == ("4", "7")
    assert [b.box_id for b in inv.get_boxes()] == ["P", "N"]
    assert not inv.relocate("missing", 1, 1)
