from datetime import date

import pytest
from openpyxl import load_workbook

from shopkeep.domain import reporting
from shopkeep.domain.errors import ValidationError
from shopkeep.domain.models import Sale, SaleItem
from shopkeep.domain.time import DateRange
from shopkeep.services.reporting_service import ReportingService


@pytest.fixture
def three_days(inventory, sales, clock):
    """Sales totalling 100, 200 and 300 on 1, 2 and 3 March 2025."""
    a = inventory.add_product({"name": "Kettle", "price": 100, "stock": 50})
    b = inventory.add_product({"name": "Toaster", "price": 50, "stock": 50})

    clock.set(2025, 3, 1, 10, 0)
    sales.create_sale([{"product_id": a.id, "quantity": 1}])
    clock.set(2025, 3, 2, 15, 45)
    sales.create_sale([{"product_id": b.id, "quantity": 4}])
    clock.set(2025, 3, 3, 23, 59, 59)
    sales.create_sale([{"product_id": a.id, "quantity": 3}])
    return a, b


def test_reporting_scenario(repo, three_days):
    kettle, toaster = three_days
    svc = ReportingService(repo)
    window = DateRange.of("2025-03-01", "2025-03-03")

    stats = svc.revenue_stats(window)
    assert stats.total_revenue == 600
    assert stats.total_sales == 3
    assert stats.average_sale == 200

    by_day = svc.revenue_by_day(window)
    assert [d.date for d in by_day] == ["2025-03-01", "2025-03-02", "2025-03-03"]
    assert sum(d.revenue for d in by_day) == 600

    top = svc.top_products(window)
    assert top[0].product_id == kettle.id
    assert top[0].quantity == 4
    assert top[0].revenue == 400
    assert top[1].product_id == toaster.id
    assert top[1].revenue == 200


def test_range_bounds_are_whole_days(repo, three_days):
    svc = ReportingService(repo)

    assert svc.revenue_stats(DateRange.of("2025-03-03", "2025-03-03")).total_revenue == 300
    assert svc.revenue_stats(DateRange.of("2025-03-02", "2025-03-02")).total_revenue == 200
    assert svc.revenue_stats(DateRange.of(date(2025, 3, 1), date(2025, 3, 2))).total_sales == 2
    assert svc.revenue_stats(DateRange.of(start="2025-03-02")).total_revenue == 500
    assert svc.revenue_stats().total_revenue == 600


def test_empty_range_has_zero_average(repo, three_days):
    stats = ReportingService(repo).revenue_stats(DateRange.of("2024-01-01", "2024-01-31"))
    assert stats.total_revenue == 0
    assert stats.total_sales == 0
    assert stats.average_sale == 0


def test_date_range_validation():
    with pytest.raises(ValidationError, match="on or before"):
        DateRange.of("2025-03-05", "2025-03-01")
    with pytest.raises(ValidationError, match="Invalid start date"):
        DateRange.of("03/05/2025", None)


def test_date_range_bounds_are_utc_strings():
    window = DateRange.of("2025-03-01", "2025-03-03")
    assert window.start_iso() == "2025-03-01T00:00:00.000+00:00"
    assert window.end_iso() == "2025-03-03T23:59:59.999+00:00"
    assert window.contains("2025-03-03T23:59:59.999+00:00")
    assert not window.contains("2025-03-04T00:00:00.000+00:00")


def _sale(sale_id, created_at, *lines):
    items = tuple(SaleItem(product_id=pid, name=name, price=price, quantity=qty, total=price * qty) for pid, name, price, qty in lines)
    subtotal = sum(it.total for it in items)
    return Sale(
        id=sale_id,
        invoice_number=f"INV-20250301-{sale_id:03d}",
        items=items,
        subtotal=subtotal,
        tax=0,
        discount=0,
        total=subtotal,
        created_at=created_at,
    )


def test_top_products_ties_keep_first_seen_order():
    sales = [
        _sale(1, "2025-03-01T10:00:00.000+00:00", (7, "Seven", 10.0, 2)),
        _sale(2, "2025-03-01T11:00:00.000+00:00", (3, "Three", 20.0, 1), (9, "Nine", 5.0, 1)),
    ]
    ranked = reporting.top_products(sales, n=2)
    assert [p.product_id for p in ranked] == [7, 3]


def test_top_products_sums_across_sales_and_truncates():
    sales = [
        _sale(1, "2025-03-01T10:00:00.000+00:00", (1, "A", 1.0, 1), (2, "B", 2.0, 1)),
        _sale(2, "2025-03-01T11:00:00.000+00:00", (1, "A", 1.0, 5), (3, "C", 4.0, 1)),
    ]
    ranked = reporting.top_products(sales, n=2)
    assert [(p.product_id, p.quantity, p.revenue) for p in ranked] == [(1, 6, 6.0), (3, 1, 4.0)]
    assert reporting.top_products(sales, n=0) == []


def test_revenue_by_day_buckets_in_utc():
    sales = [
        _sale(1, "2025-03-01T23:30:00.000+00:00", (1, "A", 10.0, 1)),
        _sale(2, "2025-03-02T00:15:00.000+00:00", (1, "A", 10.0, 2)),
        _sale(3, "2025-03-01T01:00:00.000+00:00", (1, "A", 10.0, 3)),
    ]
    by_day = reporting.revenue_by_day(sales)
    assert [(d.date, d.revenue) for d in by_day] == [("2025-03-01", 40.0), ("2025-03-02", 20.0)]


def test_dashboard_summary(repo, inventory, three_days):
    inventory.add_product({"name": "Spare", "price": 1, "stock": 2})
    summary = ReportingService(repo, low_stock_threshold=5).dashboard()

    assert summary.total_products == 3
    assert summary.low_stock_items == 1
    assert summary.total_sales == 3
    assert summary.total_revenue == 600


def test_export_report_excel(repo, three_days, tmp_path):
    target = ReportingService(repo).export_report_excel(tmp_path / "report.xlsx", DateRange.of("2025-03-01", "2025-03-03"))

    wb = load_workbook(target)
    assert wb.sheetnames == ["Summary", "Top Products", "Revenue by Day", "Sales Detail"]
    assert wb["Summary"]["B5"].value == 3
    assert wb["Summary"]["B6"].value == 600
    assert wb["Top Products"]["B2"].value == "Kettle"
    assert wb["Revenue by Day"].max_row == 4
    assert wb["Sales Detail"]["A2"].value == "INV-20250303-001"


def test_date_range_takes_utc_day_of_full_timestamps():
    window = DateRange.of("2025-03-01T23:00:00-05:00", "2025-03-02T20:30:00+05:30")
    assert window.start == date(2025, 3, 2)
    assert window.end == date(2025, 3, 2)
    assert DateRange.of("2025-03-01T10:00:00+00:00").start == date(2025, 3, 1)
