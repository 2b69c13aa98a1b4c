from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional
from pizzaport.common.utils import as_utc
from pizzaport.orders.repository import fetch_paid_orders_since
from pizzaport.schema.full_schema import Orders

TOP_PRODUCTS_LIMIT = 10


def summarize_orders(orders: List[Orders]) -> Dict[str, Any]:
    """Metrics, revenue per utc day and the most ordered products over paid orders."""
    total_sales = sum(o.total for o in orders)
    total_orders = len(orders)
    total_guests = sum(1 for o in orders if not o.user_id)

    daily: Dict[str, int] = defaultdict(int)
    products: Counter = Counter()
    for o in orders:
        daily[as_utc(o.created_at).date().isoformat()] += o.total
        for line in o.cart or []:
            products[line.get("name")] += 1

    return {
        "metrics": {
            "total_sales": total_sales,
            "total_orders": total_orders,
            "total_guests": total_guests,
            "avg_order_value": round(total_sales / total_orders, 2) if total_orders else 0,
        },
        "daily_revenue": [{"date": d, "revenue": daily[d]} for d in sorted(daily)],
        "top_products": [{"name": name, "quantity": qty} for name, qty in products.most_common(TOP_PRODUCTS_LIMIT)],
    }


async def sales_report(session, since: Optional[datetime]) -> Dict[str, Any]:
    orders = await fetch_paid_orders_since(session, since)
    return summarize_orders(orders)
