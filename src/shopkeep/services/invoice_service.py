from __future__ import annotations

from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

from shopkeep.domain.models import Sale
from shopkeep.domain.time import parse_iso
from shopkeep.services.reporting_service import bold_row, money, set_widths

WIDTH = 56


class InvoiceService:
    def __init__(self, shop_name: str = "Shopkeep", currency: str = "Rs."):
        self.shop_name = shop_name
        self.currency = currency

    def _amount(self, value: float) -> str:
        return f"{self.currency} {float(value):,.2f}"

    def _totals(self, sale: Sale) -> list[tuple[str, str]]:
        rows = [("Subtotal:", self._amount(sale.subtotal))]
        if sale.tax > 0:
            rows.append((f"Tax ({sale.tax:g}%):", self._amount(sale.tax_amount)))
        if sale.discount > 0:
            rows.append(("Discount:", "-" + self._amount(sale.discount)))
        rows.append(("Total:", self._amount(sale.total)))
        return rows

    def render_text(self, sale: Sale) -> str:
        created = parse_iso(sale.created_at).strftime("%Y-%m-%d %H:%M UTC")
        out = [
            self.shop_name.center(WIDTH),
            "INVOICE".center(WIDTH),
            "=" * WIDTH,
            f"Invoice: {sale.invoice_number}",
            f"Date:    {created}",
        ]
        if sale.customer_name:
            out.append(f"Customer: {sale.customer_name}")
        if sale.customer_contact:
            out.append(f"Contact:  {sale.customer_contact}")
        out.append("-" * WIDTH)
        out.append(f"{'Item':<24}{'Qty':>6}{'Price':>13}{'Total':>13}")
        for it in sale.items:
            out.append(f"{it.name[:24]:<24}{it.quantity:>6}{it.price:>13,.2f}{it.total:>13,.2f}")
        out.append("-" * WIDTH)
        for label, value in self._totals(sale):
            out.append(f"{label:>36} {value:>19}")
        out.append("-" * WIDTH)
        out.append(f"Payment: {sale.payment_method} ({sale.payment_status})")
        if sale.notes:
            out.append(f"Notes: {sale.notes}")
        return "\n".join(out) + "\n"

    def export_excel(self, sale: Sale, path: str | Path) -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = sale.invoice_number

        ws["A1"] = self.shop_name
        ws["A1"].font = Font(bold=True, size=14)
        ws["A2"] = "Invoice"
        ws["B2"] = sale.invoice_number
        ws["A3"] = "Date (UTC)"
        ws["B3"] = sale.created_at
        ws["A4"] = "Customer"
        ws["B4"] = sale.customer_name or ""

        ws.append([])
        ws.append(["Item", "Qty", "Unit Price", "Line Total"])
        header_row = ws.max_row
        bold_row(ws, header_row)
        for it in sale.items:
            ws.append([it.name, int(it.quantity), float(it.price), float(it.total)])
            money(ws[f"C{ws.max_row}"])
            money(ws[f"D{ws.max_row}"])

        ws.append([])
        ws.append(["Subtotal", None, None, float(sale.subtotal)])
        money(ws[f"D{ws.max_row}"])
        ws.append([f"Tax ({sale.tax:g}%)", None, None, float(sale.tax_amount)])
        money(ws[f"D{ws.max_row}"])
        ws.append(["Discount", None, None, float(sale.discount)])
        money(ws[f"D{ws.max_row}"])
        ws.append(["Total", None, None, float(sale.total)])
        money(ws[f"D{ws.max_row}"])
        bold_row(ws, ws.max_row)
        ws.append(["Payment", f"{sale.payment_method} ({sale.payment_status})"])

        set_widths(ws, {"A": 30, "B": 22, "C": 14, "D": 16})

        target = Path(path)
        wb.save(target)
        return target
