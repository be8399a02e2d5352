from __future__ import annotations

from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from shopkeep.domain import reporting
from shopkeep.domain.models import DailyRevenue, DashboardSummary, ProductSales, RevenueStats, Sale
from shopkeep.domain.time import DateRange


def money(cell) -> None:
    cell.number_format = "#,##0.00"


def bold_row(ws, r: int) -> None:
    for c in ws[r]:
        c.font = Font(bold=True)


def set_widths(ws, widths: dict[str, int]) -> None:
    for col, w in widths.items():
        ws.column_dimensions[col].width = w


def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int) -> None:
    ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
    tab = Table(displayName=name, ref=ref)
    tab.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(tab)


class ReportingService:
    def __init__(self, repo, low_stock_threshold: int = 5):
        self.repo = repo
        self.low_stock_threshold = int(low_stock_threshold)

    def _sales(self, date_range: DateRange | None) -> list[Sale]:
        date_range = date_range or DateRange()
        return self.repo.list_sales_between(date_range.start_iso(), date_range.end_iso())

    def revenue_stats(self, date_range: DateRange | None = None) -> RevenueStats:
        return reporting.revenue_stats(self._sales(date_range))

    def top_products(self, date_range: DateRange | None = None, n: int = 5) -> list[ProductSales]:
        return reporting.top_products(self._sales(date_range), n)

    def revenue_by_day(self, date_range: DateRange | None = None) -> list[DailyRevenue]:
        return reporting.revenue_by_day(self._sales(date_range))

    def dashboard(self) -> DashboardSummary:
        count, revenue = self.repo.sales_totals()
        return DashboardSummary(
            total_products=self.repo.count_products(),
            low_stock_items=len(self.repo.list_low_stock(self.low_stock_threshold)),
            total_sales=count,
            total_revenue=revenue,
        )

    def export_report_excel(self, path: str | Path, date_range: DateRange | None = None) -> Path:
        date_range = date_range or DateRange()
        sales_rows = self._sales(date_range)
        stats = reporting.revenue_stats(sales_rows)
        top = reporting.top_products(sales_rows, 20)
        by_day = reporting.revenue_by_day(sales_rows)

        wb = Workbook()

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Summary"
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Window"
        ws["B3"] = date_range.label()

        rows = [
            ("Sales count", int(stats.total_sales), "int"),
            ("Total revenue", float(stats.total_revenue), "money"),
            ("Average sale", float(stats.average_sale), "money"),
        ]
        start_row = 5
        for i, (label, val, kind) in enumerate(rows):
            r = start_row + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if kind == "money":
                money(ws[f"B{r}"])

        set_widths(ws, {"A": 28, "B": 34})

        # -------- 2) Top Products --------
        ws2 = wb.create_sheet("Top Products")
        ws2.append(["Product ID", "Product Name", "Units Sold", "Revenue"])
        bold_row(ws2, 1)
        for out_row, p in enumerate(top, start=2):
            ws2.append([p.product_id, p.name, p.quantity, p.revenue])
            money(ws2[f"D{out_row}"])
        set_widths(ws2, {"A": 12, "B": 34, "C": 12, "D": 16})
        if ws2.max_row >= 2:
            add_table(ws2, "TopProducts", 1, 1, ws2.max_row, 4)

        # -------- 3) Revenue by Day --------
        ws3 = wb.create_sheet("Revenue by Day")
        ws3.append(["Date (UTC)", "Revenue"])
        bold_row(ws3, 1)
        for out_row, d in enumerate(by_day, start=2):
            ws3.append([d.date, d.revenue])
            money(ws3[f"B{out_row}"])
        set_widths(ws3, {"A": 14, "B": 16})
        if ws3.max_row >= 2:
            add_table(ws3, "RevenueByDay", 1, 1, ws3.max_row, 2)

        # -------- 4) Sales Detail --------
        ws4 = wb.create_sheet("Sales Detail")
        ws4.append([
            "Invoice", "Created (UTC)", "Customer", "Payment",
            "Product", "Qty", "Unit Price", "Line Total",
            "Subtotal", "Tax %", "Discount", "Total",
        ])
        bold_row(ws4, 1)

        out_row = 2
        for s in sales_rows:
            for it in s.items:
                ws4.append([
                    s.invoice_number, s.created_at, s.customer_name or "", f"{s.payment_method}/{s.payment_status}",
                    it.name, int(it.quantity), float(it.price), float(it.total),
                    float(s.subtotal), float(s.tax), float(s.discount), float(s.total),
                ])
                for col in ("G", "H", "I", "K", "L"):
                    money(ws4[f"{col}{out_row}"])
                out_row += 1

        ws4.freeze_panes = "A2"
        set_widths(ws4, {
            "A": 18, "B": 30, "C": 22, "D": 14,
            "E": 30, "F": 6, "G": 14, "H": 14,
            "I": 14, "J": 8, "K": 12, "L": 14,
        })
        if ws4.max_row >= 2:
            add_table(ws4, "SalesDetail", 1, 1, ws4.max_row, 12)

        target = Path(path)
        wb.save(target)
        return target
