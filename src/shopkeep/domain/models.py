from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

PAYMENT_METHODS = ("cash", "card", "upi", "other")
PAYMENT_STATUSES = ("paid", "pending", "partial")


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: float
    cost: float
    stock: int
    description: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class SaleItem:
    product_id: int
    name: str
    price: float
    quantity: int
    total: float


@dataclass(frozen=True)
class Sale:
    id: int
    invoice_number: str
    items: tuple[SaleItem, ...]
    subtotal: float
    tax: float
    discount: float
    total: float
    payment_method: str = "cash"
    payment_status: str = "paid"
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    notes: Optional[str] = None
    created_at: str = ""

    @property
    def tax_amount(self) -> float:
        return self.subtotal * self.tax / 100


@dataclass(frozen=True)
class RevenueStats:
    total_revenue: float
    total_sales: int
    average_sale: float


@dataclass(frozen=True)
class ProductSales:
    product_id: int
    name: str
    quantity: int
    revenue: float


@dataclass(frozen=True)
class DailyRevenue:
    date: str
    revenue: float


@dataclass(frozen=True)
class DashboardSummary:
    total_products: int
    low_stock_items: int
    total_sales: int
    total_revenue: float
