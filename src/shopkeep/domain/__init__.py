from .models import Product, Sale, SaleItem, RevenueStats, ProductSales, DailyRevenue, DashboardSummary
from .errors import (
    AppError,
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    InvalidOperationError,
    StorageError,
)

__all__ = [
    "Product",
    "Sale",
    "SaleItem",
    "RevenueStats",
    "ProductSales",
    "DailyRevenue",
    "DashboardSummary",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "InvalidOperationError",
    "StorageError",
]
