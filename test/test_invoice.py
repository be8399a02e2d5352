from openpyxl import load_workbook

from shopkeep.services.invoice_service import InvoiceService


def _sale(inventory, sales, **kwargs):
    tea = inventory.add_product({"name": "Assam Tea 250g", "price": 120, "stock": 10})
    cups = inventory.add_product({"name": "Paper Cups", "price": 2.5, "stock": 100})
    return sales.create_sale(
        [{"product_id": tea.id, "quantity": 2}, {"product_id": cups.id, "quantity": 10}],
        customer_name="Nisha",
        **kwargs,
    )


def test_text_invoice_lists_lines_and_totals(inventory, sales):
    sale = _sale(inventory, sales, tax=10, discount=4.5, payment_method="card")
    text = InvoiceService(shop_name="Corner Store", currency="Rs.").render_text(sale)

    assert "Corner Store" in text
    assert "Invoice: INV-20250310-001" in text
    assert "Date:    2025-03-10 09:30 UTC" in text
    assert "Customer: Nisha" in text
    assert "Assam Tea 250g" in text
    assert "240.00" in text
    assert "Subtotal:" in text and "Rs. 265.00" in text
    assert "Tax (10%):" in text and "Rs. 26.50" in text
    assert "Discount:" in text and "-Rs. 4.50" in text
    assert "Rs. 287.00" in text
    assert "Payment: card (paid)" in text


def test_text_invoice_hides_zero_tax_and_discount(inventory, sales):
    sale = _sale(inventory, sales)
    text = InvoiceService().render_text(sale)

    assert "Tax" not in text
    assert "Discount" not in text
    assert "Total:" in text


def test_excel_invoice(inventory, sales, tmp_path):
    sale = _sale(inventory, sales, tax=10)
    path = InvoiceService(shop_name="Corner Store").export_excel(sale, tmp_path / "inv.xlsx")

    ws = load_workbook(path).active
    assert ws.title == "INV-20250310-001"
    assert ws["A1"].value == "Corner Store"
    assert ws["B2"].value == "INV-20250310-001"
    values = [row for row in ws.iter_rows(values_only=True)]
    assert ("Assam Tea 250g", 2, 120.0, 240.0) in values
    assert ("Total", None, None, sale.total) in values
