import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


class FixedClock:
    """Clock the tests move by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set(self, *args) -> None:
        self.now = datetime(*args, tzinfo=timezone.utc)

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def repo(tmp_path: Path):
    from shopkeep.repositories.sqlite_repo import SqliteRepository

    r = SqliteRepository(tmp_path / "shop.db")
    r.init_db()
    return r


@pytest.fixture
def inventory(repo, clock):
    from shopkeep.services.inventory_service import InventoryService

    return InventoryService(repo, clock=clock)


@pytest.fixture
def sales(repo, clock):
    from shopkeep.services.sales_service import SalesService

    return SalesService(repo, clock=clock)
