import io
import sqlite3
from pathlib import Path

import pytest

from shopkeep.application.container import build_container
from shopkeep.config import AppSettings
from shopkeep.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    StorageError,
    ValidationError,
    error_from_payload,
)
from shopkeep.main import main
from shopkeep.repositories.sqlite_repo import SqliteRepository


def test_settings_from_env():
    settings = AppSettings.from_env(
        {
            "SHOPKEEP_SHOP_NAME": "Corner Store",
            "SHOPKEEP_CURRENCY": "$",
            "SHOPKEEP_LOW_STOCK_THRESHOLD": "3",
            "SHOPKEEP_API_URL": "http://localhost:5000/api",
        }
    )
    assert settings.shop_name == "Corner Store"
    assert settings.currency == "$"
    assert settings.low_stock_threshold == 3
    assert settings.api_url == "http://localhost:5000/api"
    assert AppSettings.from_env({}) == AppSettings()


def test_settings_reject_bad_numbers():
    with pytest.raises(ValidationError):
        AppSettings.from_env({"SHOPKEEP_LOW_STOCK_THRESHOLD": "many"})
    with pytest.raises(ValidationError):
        AppSettings.from_env({"SHOPKEEP_LOW_STOCK_THRESHOLD": "-1"})


def test_container_wires_services(tmp_path: Path, clock):
    app = build_container(tmp_path / "c.db", AppSettings(low_stock_threshold=2, api_url="http://api"), clock=clock)
    p = app.inventory.add_product({"name": "Pen", "price": 5, "stock": 1})
    sale = app.sales.create_sale([{"product_id": p.id, "quantity": 1}])

    assert app.reporting.dashboard().low_stock_items == 1
    assert app.api is not None and app.api.base_url == "http://api"
    assert sale.invoice_number in app.invoices.render_text(sale)
    assert build_container(tmp_path / "d.db").api is None


def test_error_payload_round_trip():
    err = InsufficientStockError("Insufficient stock for product: Pen", product_id=7)
    assert err.http_status == 400
    payload = err.to_payload()
    assert payload == {"error": "insufficient_stock", "message": "Insufficient stock for product: Pen", "product_id": 7}

    rebuilt = error_from_payload(400, payload)
    assert isinstance(rebuilt, InsufficientStockError)
    assert rebuilt.product_id == 7
    assert isinstance(error_from_payload(404, None), NotFoundError)
    assert isinstance(error_from_payload(503, {}), StorageError)


def test_migrations_are_idempotent(tmp_path: Path):
    repo = SqliteRepository(tmp_path / "m.db")
    repo.init_db()
    repo.init_db()

    conn = sqlite3.connect(repo.db_path)
    versions = [r[0] for r in conn.execute("SELECT version FROM schema_migrations ORDER BY version")]
    conn.close()
    assert versions == [1, 2]


def test_backup_only_taken_when_a_migration_is_pending(tmp_path: Path):
    db = tmp_path / "b.db"
    repo = SqliteRepository(db)
    repo.init_db()
    repo.init_db()
    build_container(db)
    build_container(db)

    assert repo.schema_version() == 2
    assert list(tmp_path.glob("*.bak")) == []

    conn = sqlite3.connect(str(db))
    conn.execute("DELETE FROM schema_migrations WHERE version = 2")
    conn.commit()
    conn.close()

    repo.init_db()
    assert repo.schema_version() == 2
    assert len(list(tmp_path.glob("b.pre_migration_*.bak"))) == 1


def test_migration_failure_restores_db(tmp_path: Path):
    class BrokenMigrationRepo(SqliteRepository):
        def _migration_v2_invoice_counters(self, cur):
            raise RuntimeError("forced migration failure")

    db = tmp_path / "broken.db"
    repo = SqliteRepository(db)
    repo.init_db()

    conn = sqlite3.connect(str(db))
    conn.execute("DELETE FROM schema_migrations WHERE version = 2")
    conn.commit()
    conn.close()

    with pytest.raises(RuntimeError, match="Original database restored"):
        BrokenMigrationRepo(db).run_migrations()

    conn = sqlite3.connect(str(db))
    after = conn.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations").fetchone()[0]
    conn.close()
    assert after == 1


def test_unreachable_database_is_storage_error(tmp_path: Path):
    repo = SqliteRepository(tmp_path / "missing-dir" / "x.db")
    with pytest.raises(StorageError):
        repo.list_products()


def test_cli_report_and_invoice(tmp_path: Path, monkeypatch, clock):
    monkeypatch.setenv("HOME", str(tmp_path))
    db = tmp_path / "cli.db"
    app = build_container(db, clock=clock)
    p = app.inventory.add_product({"name": "Notebook", "price": 30, "stock": 3})
    sale = app.sales.create_sale([{"product_id": p.id, "quantity": 2}])

    out = io.StringIO()
    assert main(["--db", str(db), "report", "--start", "2025-03-10", "--end", "2025-03-10"], out=out) == 0
    report = out.getvalue()
    assert "Sales: 1" in report
    assert "Notebook  x2" in report
    assert "2025-03-10" in report

    out = io.StringIO()
    assert main(["--db", str(db), "invoice", sale.invoice_number], out=out) == 0
    assert "Notebook" in out.getvalue()

    out = io.StringIO()
    assert main(["--db", str(db), "low-stock"], out=out) == 0
    assert "Notebook\t1" in out.getvalue()

    assert main(["--db", str(db), "invoice", "999"], out=io.StringIO()) == 1
