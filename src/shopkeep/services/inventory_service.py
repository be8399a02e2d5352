from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Mapping

from shopkeep.domain.errors import InsufficientStockError, InvalidOperationError, NotFoundError, ValidationError
from shopkeep.domain.models import Product
from shopkeep.domain.time import to_iso, utc_now
from shopkeep.domain.validation import MAX_INTEGER, non_negative_number, optional_text, positive_quantity, record_id, whole_number
from shopkeep.repositories.sqlite_repo import PRODUCT_COLUMNS

log = logging.getLogger(__name__)

STOCK_OPERATIONS = ("add", "subtract")


def clean_product_fields(fields: Mapping[str, object], *, partial: bool) -> dict:
    unknown = set(fields) - set(PRODUCT_COLUMNS)
    if unknown:
        raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")

    if not partial:
        missing = [f for f in ("name", "price") if fields.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    out: dict = {}
    for key, value in fields.items():
        if key == "name":
            name = optional_text(value)
            if not name:
                raise ValidationError("Name is required.")
            out[key] = name
        elif key in ("price", "cost"):
            out[key] = non_negative_number(key.capitalize(), value)
        elif key == "stock":
            out[key] = whole_number("Stock", value)
        else:
            out[key] = optional_text(value)
    return out


class InventoryService:
    def __init__(self, repo, clock: Callable[[], datetime] = utc_now, low_stock_threshold: int = 5):
        self.repo = repo
        self.clock = clock
        self.low_stock_threshold = int(low_stock_threshold)

    def _now(self) -> str:
        return to_iso(self.clock())

    def list_products(self) -> list[Product]:
        return self.repo.list_products()

    def get_product(self, product_id: int) -> Product:
        p = self.repo.get_product_by_id(record_id(product_id, "Product"))
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def get_product_by_sku(self, sku: str) -> Product:
        p = self.repo.get_product_by_sku((sku or "").strip())
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def add_product(self, fields: Mapping[str, object]) -> Product:
        cleaned = clean_product_fields(fields, partial=False)
        pid = self.repo.add_product(
            name=cleaned["name"],
            price=cleaned["price"],
            cost=cleaned.get("cost", 0.0),
            stock=cleaned.get("stock", 0),
            description=cleaned.get("description"),
            category=cleaned.get("category"),
            sku=cleaned.get("sku"),
            now_iso=self._now(),
        )
        log.info("product_created product_id=%s name=%s", pid, cleaned["name"])
        return self.get_product(pid)

    def update_product(self, product_id: int, fields: Mapping[str, object]) -> Product:
        cleaned = clean_product_fields(fields, partial=True)
        if not cleaned:
            return self.get_product(product_id)
        updated = self.repo.update_product(record_id(product_id, "Product"), cleaned, self._now())
        if not updated:
            raise NotFoundError("Product not found.")
        return self.get_product(product_id)

    def delete_product(self, product_id: int) -> None:
        removed = self.repo.delete_product(record_id(product_id, "Product"))
        if not removed:
            raise NotFoundError("Product not found.")
        log.info("product_deleted product_id=%s", product_id)

    def adjust_stock(self, product_id: int, operation: str, quantity: int) -> Product:
        product = self.get_product(product_id)
        if operation not in STOCK_OPERATIONS:
            raise InvalidOperationError(f"Invalid operation: {operation!r}. Use 'add' or 'subtract'.")
        qty = positive_quantity(quantity)

        delta = qty if operation == "add" else -qty
        new_stock = self.repo.adjust_product_stock(product.id, delta, self._now())
        if new_stock is None:
            current = self.repo.get_product_by_id(product.id)
            if current is None:
                raise NotFoundError("Product not found.")
            if delta > 0:
                raise ValidationError(f"Stock cannot exceed {MAX_INTEGER}.")
            raise InsufficientStockError(
                f"Insufficient stock for product: {current.name}. Available: {current.stock}",
                product_id=current.id,
                product_name=current.name,
                available=current.stock,
                requested=qty,
            )
        log.info("stock_adjusted product_id=%s op=%s qty=%s stock_after=%s", product.id, operation, qty, new_stock)
        return self.get_product(product.id)

    def low_stock(self, threshold: int | None = None) -> list[Product]:
        limit = self.low_stock_threshold if threshold is None else int(threshold)
        return self.repo.list_low_stock(limit)
