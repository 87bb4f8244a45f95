from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from utils import parse_amount

TIP_PRESETS = (10, 15, 18, 20, 25)
MAX_SLIDER_TIP = 50


class TipType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"

    @classmethod
    def parse(cls, value) -> "TipType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"unknown tip type: {value!r}") from None


@dataclass(frozen=True)
class ReceiptItem:
    name: str
    price: Decimal

    def to_dict(self) -> dict:
        return {"name": self.name, "price": str(self.price)}

    @classmethod
    def from_dict(cls, data: dict) -> "ReceiptItem":
        name = data.get("name")
        return cls(name="" if name is None else str(name).strip(), price=parse_amount(data.get("price")))


@dataclass(frozen=True)
class ReceiptSummary:
    total: Decimal
    tax: Optional[Decimal] = None
    subtotal: Optional[Decimal] = None
    currency: Optional[str] = None
    items: Optional[Tuple[ReceiptItem, ...]] = None


@dataclass(frozen=True)
class BillState:
    bill_amount: Decimal = Decimal(0)
    tax_amount: Decimal = Decimal(0)
    tip_type: TipType = TipType.PERCENTAGE
    tip_value: Decimal = Decimal(18)
    split_count: int = 2
    include_tax_in_tip: bool = False
    # display only, the arithmetic never reads it
    receipt_items: Optional[Tuple[ReceiptItem, ...]] = None

    def to_dict(self) -> dict:
        return {
            "bill_amount": str(self.bill_amount),
            "tax_amount": str(self.tax_amount),
            "tip_type": self.tip_type.value,
            "tip_value": str(self.tip_value),
            "split_count": self.split_count,
            "include_tax_in_tip": self.include_tax_in_tip,
            "receipt_items": None if self.receipt_items is None
            else [it.to_dict() for it in self.receipt_items],
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "BillState":
        if not data:
            return cls()
        items = data.get("receipt_items")
        return cls(
            bill_amount=parse_amount(data.get("bill_amount")),
            tax_amount=parse_amount(data.get("tax_amount")),
            tip_type=TipType.parse(data.get("tip_type", TipType.PERCENTAGE)),
            tip_value=parse_amount(data.get("tip_value", 18)),
            split_count=int(data.get("split_count", 2)),
            include_tax_in_tip=bool(data.get("include_tax_in_tip", False)),
            receipt_items=None if items is None else tuple(ReceiptItem.from_dict(it) for it in items),
        )


@dataclass(frozen=True)
class BillResults:
    tip_base: Decimal
    tip_amount: Decimal
    grand_total: Decimal
    per_person: Decimal
    tip_per_person: Decimal
    bill_per_person: Decimal


def _share(amount: Decimal, split_count: int) -> Decimal:
    return amount / split_count if split_count > 0 else Decimal(0)


def compute_results(state: BillState) -> BillResults:
    """
    Tip, grand total and per-person share for a bill.
    bill_amount already includes tax, so tax is never added on top. When the
    tip excludes tax it is computed on bill - tax (floored at 0).
    """
    tip_base = state.bill_amount
    if not state.include_tax_in_tip and state.tax_amount > 0:
        tip_base = max(Decimal(0), state.bill_amount - state.tax_amount)

    if state.bill_amount == 0:
        # nothing to tip on, fixed tips included
        tip_amount = Decimal(0)
    elif state.tip_type == TipType.PERCENTAGE:
        tip_amount = tip_base * (state.tip_value / 100)
    else:
        tip_amount = state.tip_value

    grand_total = state.bill_amount + tip_amount
    return BillResults(
        tip_base=tip_base,
        tip_amount=tip_amount,
        grand_total=grand_total,
        per_person=_share(grand_total, state.split_count),
        tip_per_person=_share(tip_amount, state.split_count),
        bill_per_person=_share(state.bill_amount, state.split_count),
    )


# --- update operations: (state, ...) -> new state ---

def set_bill_amount(state: BillState, raw) -> BillState:
    return replace(state, bill_amount=parse_amount(raw))


def set_tax_amount(state: BillState, raw) -> BillState:
    # not clamped to [0, bill_amount]; compute_results floors the tip base instead
    return replace(state, tax_amount=parse_amount(raw))


def set_tip_value(state: BillState, raw) -> BillState:
    return replace(state, tip_value=parse_amount(raw))


def set_tip_type(state: BillState, tip_type) -> BillState:
    # tip_value is kept as typed, so 18 (%) becomes 18 ($)
    return replace(state, tip_type=TipType.parse(tip_type))


def increment_split(state: BillState) -> BillState:
    return replace(state, split_count=state.split_count + 1)


def decrement_split(state: BillState) -> BillState:
    return replace(state, split_count=max(1, state.split_count - 1))


def toggle_include_tax(state: BillState) -> BillState:
    return replace(state, include_tax_in_tip=not state.include_tax_in_tip)


def reset() -> BillState:
    return BillState()


def ingest_receipt_summary(state: BillState, summary: ReceiptSummary) -> BillState:
    """
    Overwrite bill and tax with the scanned totals. The scanner's subtotal is
    ignored; compute_results derives its own from bill - tax.
    """
    state = replace(state, bill_amount=summary.total, tax_amount=summary.tax or Decimal(0))
    if summary.items is not None:
        state = replace(state, receipt_items=tuple(summary.items))
    return state


def breakdown(state: BillState, results: BillResults) -> List[Tuple[str, Decimal]]:
    """Chart slices (subtotal, tax, tip); zero slices are left out."""
    slices = [
        ("Subtotal", max(Decimal(0), state.bill_amount - state.tax_amount)),
        ("Tax", state.tax_amount),
        ("Tip", results.tip_amount),
    ]
    return [(label, value) for label, value in slices if value > 0]


def tip_basis_note(state: BillState) -> Optional[str]:
    if state.tax_amount <= 0:
        return None
    if state.include_tax_in_tip:
        return "Tip is calculated on the total (including tax)."
    return "Tip is calculated on the subtotal (excluding tax)."
