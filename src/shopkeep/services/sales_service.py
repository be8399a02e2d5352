from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional

from shopkeep.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from shopkeep.domain.models import PAYMENT_METHODS, PAYMENT_STATUSES, Product, Sale, SaleItem
from shopkeep.domain.pricing import compute_totals, line_total
from shopkeep.domain.time import DateRange, utc_now
from shopkeep.domain.validation import MAX_INTEGER, non_negative_number, optional_text, positive_quantity, record_id
from shopkeep.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork

log = logging.getLogger("shopkeep.sales")

SORT_FIELDS: dict[str, Callable[[Sale], object]] = {
    "created_at": lambda s: s.created_at,
    "customer_name": lambda s: (s.customer_name or "").lower(),
    "invoice_number": lambda s: s.invoice_number,
    "total": lambda s: s.total,
    "payment_status": lambda s: s.payment_status,
}


def _product_id(item: Mapping) -> int:
    raw = item.get("product_id", item.get("product"))
    if raw is None or isinstance(raw, bool):
        raise ValidationError("Each item needs a product_id.")
    try:
        pid = int(raw)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValidationError(f"Invalid product_id: {raw!r}") from e
    if not 1 <= pid <= MAX_INTEGER:
        raise NotFoundError(f"Product with ID {pid} not found.")
    return pid


def _same_price(hint: object, catalog_price: float) -> bool:
    if isinstance(hint, bool):
        return False
    try:
        return math.isclose(float(hint), float(catalog_price), abs_tol=1e-9)
    except (TypeError, ValueError, OverflowError):
        return False


class SalesService:
    def __init__(
        self,
        repo,
        clock: Callable[[], datetime] = utc_now,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        self.repo = repo
        self.clock = clock
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo, clock))

    def create_sale(
        self,
        items: Iterable[Mapping],
        *,
        customer_name: Optional[str] = None,
        customer_contact: Optional[str] = None,
        tax: float = 0.0,
        discount: float = 0.0,
        payment_method: str = "cash",
        payment_status: str = "paid",
        notes: Optional[str] = None,
    ) -> Sale:
        """
        items: [{product_id, quantity, price?}]

        Name and price are taken from the catalog at the moment of sale; a
        client-supplied price is only compared and logged. The write is
        all-or-nothing: stock is untouched unless the sale is persisted.
        """
        items = list(items)
        if not items:
            raise ValidationError("Cart is empty.")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}.")
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Payment status must be one of: {', '.join(PAYMENT_STATUSES)}.")
        tax = non_negative_number("Tax", tax)
        discount = non_negative_number("Discount", discount)

        # Aggregate qty by product so repeated lines cannot oversell
        qty_by_product: Counter[int] = Counter()
        products: dict[int, Product] = {}
        lines: list[SaleItem] = []
        for it in items:
            product_id = _product_id(it)
            qty = positive_quantity(it.get("quantity", it.get("qty")))

            prod = products.get(product_id) or self.repo.get_product_by_id(product_id)
            if not prod:
                raise NotFoundError(f"Product with ID {product_id} not found.")
            products[product_id] = prod

            qty_by_product[product_id] += qty
            if qty_by_product[product_id] > int(prod.stock):
                raise InsufficientStockError(
                    f"Insufficient stock for product: {prod.name}. Available: {prod.stock}",
                    product_id=prod.id,
                    product_name=prod.name,
                    available=prod.stock,
                    requested=qty_by_product[product_id],
                )

            hint = it.get("price")
            if hint is not None and not _same_price(hint, prod.price):
                log.warning("sale_price_mismatch product_id=%s client=%s catalog=%s", prod.id, hint, prod.price)

            lines.append(
                SaleItem(
                    product_id=prod.id,
                    name=prod.name,
                    price=float(prod.price),
                    quantity=qty,
                    total=line_total(prod.price, qty),
                )
            )

        subtotal, total = compute_totals(lines, tax, discount)
        header = {
            "customer_name": optional_text(customer_name),
            "customer_contact": optional_text(customer_contact),
            "subtotal": subtotal,
            "tax": tax,
            "discount": discount,
            "total": total,
            "payment_method": payment_method,
            "payment_status": payment_status,
            "notes": optional_text(notes),
        }

        with self.uow_factory() as uow:
            sale = uow.create_sale(header, lines)
        log.info(
            "sale_created sale_id=%s invoice=%s items=%s total=%.2f method=%s",
            sale.id,
            sale.invoice_number,
            len(lines),
            sale.total,
            sale.payment_method,
        )
        return sale

    def list_sales(self) -> list[Sale]:
        return self.repo.list_sales()

    def get_sale(self, sale_id: int) -> Sale:
        sale = self.repo.get_sale(record_id(sale_id, "Sale"))
        if not sale:
            raise NotFoundError("Sale not found.")
        return sale

    def get_sale_by_invoice(self, invoice_number: str) -> Sale:
        sale = self.repo.get_sale_by_invoice((invoice_number or "").strip().upper())
        if not sale:
            raise NotFoundError("Sale not found.")
        return sale

    def list_sales_between(self, date_range: DateRange | None = None) -> list[Sale]:
        date_range = date_range or DateRange()
        return self.repo.list_sales_between(date_range.start_iso(), date_range.end_iso())

    def search(
        self,
        term: str = "",
        date_range: DateRange | None = None,
        sort_field: str = "created_at",
        descending: bool = True,
    ) -> list[Sale]:
        key = SORT_FIELDS.get(sort_field)
        if key is None:
            raise ValidationError(f"Cannot sort by {sort_field!r}. Use one of: {', '.join(SORT_FIELDS)}.")

        needle = (term or "").strip().lower()
        rows = [
            s
            for s in self.list_sales_between(date_range)
            if not needle
            or needle in s.invoice_number.lower()
            or needle in (s.customer_name or "").lower()
        ]
        return sorted(rows, key=key, reverse=descending)
