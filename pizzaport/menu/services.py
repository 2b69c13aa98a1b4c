from collections import Counter
from typing import Any, Dict, List
from sqlalchemy import select
from pizzaport.menu.repository import fetch_menu_items_by_ids, menu_item_out
from pizzaport.orders.constants import PAID_STATUSES
from pizzaport.schema.full_schema import Orders


async def bestselling_items(session, limit: int) -> List[Dict[str, Any]]:
    """Menu items ranked by how many times they appear in paid orders' carts."""
    res = await session.execute(select(Orders.cart).where(Orders.payment_status.in_(PAID_STATUSES)))
    counts: Counter = Counter()
    for cart in res.scalars().all():
        for line in cart or []:
            pid = line.get("product_id")
            if pid is not None:
                counts[int(pid)] += 1

    ranked = counts.most_common(limit)
    items = await fetch_menu_items_by_ids(session, [pid for pid, _ in ranked])

    out = []
    for pid, sold in ranked:
        item = items.get(pid)
        if item is None:  # deleted from the menu since
            continue
        out.append({**menu_item_out(item), "sold": sold})
    return out
