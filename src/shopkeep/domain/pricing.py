from __future__ import annotations

from typing import Iterable

from .errors import ValidationError
from .models import SaleItem


def line_total(price: float, quantity: int) -> float:
    return float(price) * int(quantity)


def compute_totals(items: Iterable[SaleItem], tax: float, discount: float) -> tuple[float, float]:
    """
    Returns (subtotal, total) where
      subtotal = sum(item.total)
      total    = subtotal + subtotal * tax / 100 - discount
    """
    subtotal = sum(float(it.total) for it in items)
    tax_amount = subtotal * float(tax) / 100
    if discount > subtotal + tax_amount:
        raise ValidationError("Discount cannot exceed the invoice amount.")
    return subtotal, subtotal + tax_amount - float(discount)
