# test_split_calc.py
from decimal import Decimal

import pytest

from split_calc import (
    BillState, ReceiptItem, ReceiptSummary, TipType, breakdown, compute_results,
    decrement_split, increment_split, ingest_receipt_summary, reset, set_bill_amount,
    set_tax_amount, set_tip_type, set_tip_value, tip_basis_note, toggle_include_tax,
)
from utils import format_money


MONEY_FIELDS = ("bill_amount", "tax_amount", "tip_value")


def bill(**kw):
    for k in MONEY_FIELDS:
        if k in kw:
            kw[k] = Decimal(str(kw[k]))
    return BillState(**kw)


def test_defaults():
    s = BillState()
    assert s.bill_amount == 0
    assert s.tax_amount == 0
    assert s.tip_type == TipType.PERCENTAGE
    assert s.tip_value == 18
    assert s.split_count == 2
    assert s.include_tax_in_tip is False
    assert s.receipt_items is None


def test_restaurant_scenario():
    s = bill(bill_amount=118, tax_amount=18, tip_value=18, split_count=4)
    r = compute_results(s)
    assert r.tip_base == Decimal("100")
    assert r.tip_amount == Decimal("18")
    assert r.grand_total == Decimal("136")
    assert r.per_person == Decimal("34")


def test_tax_policy_switch():
    s = bill(bill_amount=100, tax_amount=10, tip_value=20)
    r = compute_results(s)
    assert r.tip_base == 90
    assert r.tip_amount == Decimal("18.00")

    r = compute_results(toggle_include_tax(s))
    assert r.tip_base == 100
    assert r.tip_amount == Decimal("20.00")


@pytest.mark.parametrize("include_tax", [False, True])
def test_fixed_tip_ignores_tax_policy(include_tax):
    s = bill(bill_amount=50, tax_amount=5, tip_type=TipType.FIXED, tip_value=7,
             include_tax_in_tip=include_tax)
    r = compute_results(s)
    assert r.tip_amount == 7
    assert r.grand_total == 57


@pytest.mark.parametrize("tip_type,tip_value", [
    (TipType.PERCENTAGE, 18), (TipType.PERCENTAGE, 50), (TipType.FIXED, 0), (TipType.FIXED, 12),
])
def test_zero_bill(tip_type, tip_value):
    # the step-by-step rule would still add a fixed tip here; the zero-bill property wins
    r = compute_results(bill(bill_amount=0, tip_type=tip_type, tip_value=tip_value))
    assert r.tip_amount == 0
    assert r.grand_total == 0
    assert r.per_person == 0


def test_per_person_is_grand_total_over_split():
    for split in (1, 2, 3, 7):
        s = bill(bill_amount=Decimal("87.35"), tax_amount=Decimal("6.10"), tip_value=15, split_count=split)
        r = compute_results(s)
        assert r.per_person == (s.bill_amount + r.tip_amount) / split
        assert r.per_person >= 0


def test_per_person_split_helpers():
    r = compute_results(bill(bill_amount=100, tip_type=TipType.FIXED, tip_value=10, split_count=4))
    assert r.tip_per_person == Decimal("2.5")
    assert r.bill_per_person == 25


def test_zero_split_guard():
    r = compute_results(bill(bill_amount=100, split_count=0))
    assert r.per_person == 0
    assert r.tip_per_person == 0
    assert r.bill_per_person == 0


def test_compute_is_pure():
    s = bill(bill_amount=64, tax_amount=4, tip_value=20, split_count=3)
    assert compute_results(s) == compute_results(s)
    assert s == bill(bill_amount=64, tax_amount=4, tip_value=20, split_count=3)


def test_tax_not_added_twice():
    r = compute_results(bill(bill_amount=110, tax_amount=10, tip_type=TipType.FIXED, tip_value=0))
    assert r.grand_total == 110


def test_decrement_split_floors_at_one():
    s = BillState(split_count=1)
    for _ in range(5):
        s = decrement_split(s)
        assert s.split_count == 1


def test_increment_split_has_no_ceiling():
    s = BillState(split_count=2)
    for _ in range(100):
        s = increment_split(s)
    assert s.split_count == 102


def test_unparseable_bill_resets_to_zero():
    s = set_bill_amount(BillState(), "42.50")
    assert s.bill_amount == Decimal("42.50")
    s = set_bill_amount(s, "abc")
    assert s.bill_amount == 0


@pytest.mark.parametrize("raw,expected", [
    ("", 0), (None, 0), ("12abc", 12), ("$1,234.56", Decimal("1234.56")), (7.5, Decimal("7.5")), ("nan", 0),
])
def test_numeric_updates_parse(raw, expected):
    assert set_tax_amount(BillState(), raw).tax_amount == expected
    assert set_tip_value(BillState(), raw).tip_value == expected


def test_negative_input_is_not_blocked():
    assert set_bill_amount(BillState(), "-5").bill_amount == -5


def test_tax_above_bill_is_kept():
    # tax is not clamped to the bill; the tip base floors at 0 instead
    s = set_tax_amount(bill(bill_amount=20), "30")
    assert s.tax_amount == 30
    r = compute_results(s)
    assert r.tip_base == 0
    assert r.tip_amount == 0
    assert r.grand_total == 20


def test_tip_type_switch_keeps_value():
    s = set_tip_type(BillState(), TipType.FIXED)
    assert s.tip_value == 18
    s = bill(bill_amount=100, tip_value=18)
    assert compute_results(set_tip_type(s, "fixed")).tip_amount == 18
    assert compute_results(set_tip_type(s, "PERCENTAGE")).tip_amount == 18


def test_unknown_tip_type():
    with pytest.raises(ValueError):
        set_tip_type(BillState(), "generous")


def test_reset_restores_defaults():
    s = BillState(bill_amount=Decimal(90), split_count=6,
                  receipt_items=(ReceiptItem("Soup", Decimal(9)),))
    assert s != reset()
    assert reset() == BillState()


def test_ingest_receipt_summary():
    items = (ReceiptItem("Burger", Decimal("14.00")), ReceiptItem("Fries", Decimal("4.50")))
    summary = ReceiptSummary(total=Decimal("20.23"), tax=Decimal("1.73"), subtotal=Decimal("99"),
                             items=items)
    s = ingest_receipt_summary(BillState(split_count=3), summary)
    assert s.bill_amount == Decimal("20.23")
    assert s.tax_amount == Decimal("1.73")
    assert s.receipt_items == items
    assert s.split_count == 3
    # subtotal from the scanner is ignored
    assert compute_results(s).tip_base == Decimal("18.50")


def test_ingest_without_tax_or_items():
    old_items = (ReceiptItem("Tea", Decimal(3)),)
    s = BillState(tax_amount=Decimal(5), receipt_items=old_items)
    s = ingest_receipt_summary(s, ReceiptSummary(total=Decimal(40)))
    assert s.tax_amount == 0
    assert s.receipt_items == old_items


def test_breakdown_slices():
    s = bill(bill_amount=118, tax_amount=18, tip_value=18)
    assert breakdown(s, compute_results(s)) == [
        ("Subtotal", Decimal(100)), ("Tax", Decimal(18)), ("Tip", Decimal("18.00")),
    ]
    empty = BillState()
    assert breakdown(empty, compute_results(empty)) == []


def test_tip_basis_note():
    assert tip_basis_note(BillState()) is None
    s = bill(bill_amount=50, tax_amount=5)
    assert "subtotal" in tip_basis_note(s)
    assert "including tax" in tip_basis_note(toggle_include_tax(s))


def test_state_dict_round_trip():
    s = BillState(bill_amount=Decimal("12.34"), tax_amount=Decimal("1.10"), tip_type=TipType.FIXED,
                  tip_value=Decimal(3), split_count=5, include_tax_in_tip=True,
                  receipt_items=(ReceiptItem("Pho", Decimal("11.24")),))
    assert BillState.from_dict(s.to_dict()) == s
    assert BillState.from_dict(None) == BillState()


@pytest.mark.parametrize("raw", ["1e1000000", "-1e1000000", "1e-1000000"])
def test_out_of_range_amount_becomes_zero(raw):
    s = set_bill_amount(BillState(), raw)
    assert s.bill_amount == 0
    assert compute_results(s).grand_total == 0


def test_huge_amounts_still_compute():
    s = set_tip_value(set_bill_amount(BillState(), "1e30"), "1e30")
    r = compute_results(s)
    assert r.grand_total > s.bill_amount
    formatted = format_money(r.per_person)
    assert formatted.startswith("$5")
    assert formatted.endswith(".00")
