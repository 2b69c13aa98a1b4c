import hashlib
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pizzaport.common.utils import digests_match, round_half_up
from pizzaport.orders.constants import DELIVERY_FEE, FREE_DELIVERY_THRESHOLD, TAX_RATE, TERMINAL_STATUSES
from pizzaport.schema.full_schema import OrderStatus


def line_price(line: Dict[str, Any]) -> int:
    """Unit price of one cart entry: (discounted) base + size delta + extras deltas."""
    unit = int(line["unit_price"])
    size = line.get("size") or {}
    size_price = int(size.get("extra_price", 0) or 0)
    extras_price = sum(int(e.get("extra_price", 0) or 0) for e in line.get("extras") or [])
    return unit + size_price + extras_price


def effective_unit_price(base_price: int, discount_price: Optional[int]) -> int:
    if discount_price is not None and discount_price < base_price:
        return int(discount_price)
    return int(base_price)


def price_breakdown(subtotal: int, discount: int = 0) -> Dict[str, int]:
    tax = round_half_up(Decimal(subtotal) * Decimal(TAX_RATE))
    delivery_fee = 0 if subtotal >= FREE_DELIVERY_THRESHOLD else DELIVERY_FEE
    total = max(0, subtotal + tax + delivery_fee - discount)
    return {
        "subtotal": subtotal,
        "tax": tax,
        "delivery_fee": delivery_fee,
        "discount": discount,
        "total": total,
    }


def compute_order_totals(lines: List[Dict[str, Any]], discount: int = 0) -> Dict[str, int]:
    subtotal = sum(line_price(line) for line in lines)
    return price_breakdown(subtotal, discount)


def canonical_cart(lines: List[Dict[str, Any]]) -> str:
    return json.dumps(lines, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_integrity_token(lines: List[Dict[str, Any]], total: int) -> str:
    payload = canonical_cart(lines) + str(int(total))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def integrity_token_matches(supplied: Optional[str], stored: str, lines: List[Dict[str, Any]], total: int) -> bool:
    # the stored row itself must still hash to the stored token
    expected = compute_integrity_token(lines, total)
    return digests_match(stored, supplied) and digests_match(expected, stored)


def group_cart_lines(lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Collapse identical entries into one line with a quantity , keeping first-seen order."""
    grouped: Dict[str, Dict[str, Any]] = {}
    for line in lines:
        key = canonical_cart([line])
        if key in grouped:
            grouped[key]["quantity"] += 1
            continue
        grouped[key] = {**line, "quantity": 1, "line_total": line_price(line)}
    for g in grouped.values():
        g["line_total"] = line_price(g) * g["quantity"]
    return list(grouped.values())


def is_terminal(status: Optional[str]) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: Optional[str], target: str) -> bool:
    """Admin point updates: any known stage may be set (stages can be skipped),
    but nothing leaves completed or canceled."""
    if target not in {s.value for s in OrderStatus}:
        return False
    return not is_terminal(current)
