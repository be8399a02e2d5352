from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from shopkeep.api_client import ApiClient
from shopkeep.config import AppSettings
from shopkeep.domain.time import utc_now
from shopkeep.repositories.sqlite_repo import SqliteRepository
from shopkeep.services.inventory_service import InventoryService
from shopkeep.services.invoice_service import InvoiceService
from shopkeep.services.reporting_service import ReportingService
from shopkeep.services.sales_service import SalesService


@dataclass(frozen=True)
class AppContainer:
    settings: AppSettings
    repo: SqliteRepository
    inventory: InventoryService
    sales: SalesService
    reporting: ReportingService
    invoices: InvoiceService
    api: Optional[ApiClient]


def build_container(
    db_path: Path | str,
    settings: AppSettings | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> AppContainer:
    settings = settings or AppSettings()
    repo = SqliteRepository(db_path)
    repo.init_db()

    inventory = InventoryService(repo, clock=clock, low_stock_threshold=settings.low_stock_threshold)
    sales = SalesService(repo, clock=clock)
    reporting = ReportingService(repo, low_stock_threshold=settings.low_stock_threshold)
    invoices = InvoiceService(shop_name=settings.shop_name, currency=settings.currency)
    api = ApiClient(settings.api_url, timeout=settings.api_timeout) if settings.api_url else None

    return AppContainer(
        settings=settings,
        repo=repo,
        inventory=inventory,
        sales=sales,
        reporting=reporting,
        invoices=invoices,
        api=api,
    )
