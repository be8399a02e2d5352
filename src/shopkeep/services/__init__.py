from .inventory_service import InventoryService
from .sales_service import SalesService
from .reporting_service import ReportingService
from .invoice_service import InvoiceService

__all__ = [
    "InventoryService",
    "SalesService",
    "ReportingService",
    "InvoiceService",
]
