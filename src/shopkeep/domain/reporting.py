"""
Read-side aggregations over already-fetched sales.

Pure functions: no storage access and no side effects.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from .models import DailyRevenue, ProductSales, RevenueStats, Sale
from .time import day_of


def revenue_stats(sales: Iterable[Sale]) -> RevenueStats:
    totals = [float(s.total) for s in sales]
    total_revenue = sum(totals)
    count = len(totals)
    return RevenueStats(
        total_revenue=total_revenue,
        total_sales=count,
        average_sale=total_revenue / count if count > 0 else 0.0,
    )


def top_products(sales: Iterable[Sale], n: int = 5) -> list[ProductSales]:
    # dicts keep insertion order, and sorted() is stable: first-seen wins a tie
    grouped: dict[int, list] = {}
    for sale in sales:
        for it in sale.items:
            entry = grouped.setdefault(it.product_id, [it.name, 0, 0.0])
            entry[1] += int(it.quantity)
            entry[2] += float(it.total)

    ranked = sorted(grouped.items(), key=lambda kv: kv[1][2], reverse=True)
    return [
        ProductSales(product_id=pid, name=name, quantity=qty, revenue=revenue)
        for pid, (name, qty, revenue) in ranked[: max(int(n), 0)]
    ]


def revenue_by_day(sales: Iterable[Sale]) -> list[DailyRevenue]:
    buckets: dict[str, float] = defaultdict(float)
    for sale in sales:
        buckets[day_of(sale.created_at)] += float(sale.total)
    return [DailyRevenue(date=d, revenue=buckets[d]) for d in sorted(buckets)]
