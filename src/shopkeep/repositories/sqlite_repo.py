from __future__ import annotations

import shutil
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional

from shopkeep.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from shopkeep.domain.invoice import format_invoice_number
from shopkeep.domain.models import Product, Sale, SaleItem
from shopkeep.domain.validation import MAX_INTEGER

PRODUCT_COLUMNS = ("name", "description", "price", "cost", "stock", "category", "sku")

_PRODUCT_SELECT = """
    SELECT id, name, price, cost, stock, description, category, sku, created_at, updated_at
    FROM products
"""

_SALE_SELECT = """
    SELECT id, invoice_number, subtotal, tax, discount, total, payment_method, payment_status,
           customer_name, customer_contact, notes, created_at
    FROM sales
"""


def _row_to_product(r) -> Product:
    return Product(
        id=int(r[0]),
        name=str(r[1]),
        price=float(r[2]),
        cost=float(r[3]),
        stock=int(r[4]),
        description=r[5],
        category=r[6],
        sku=r[7],
        created_at=str(r[8]),
        updated_at=str(r[9]),
    )


class SqliteRepository:
    def __init__(self, db_path: Path | str, timeout: float = 10.0):
        self.db_path = str(db_path)
        self.timeout = float(timeout)

    def _conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
            conn.execute("PRAGMA foreign_keys = ON;")
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open database: {exc}") from exc
        return conn

    @contextmanager
    def _session(self, *, write: bool = False) -> Iterator[sqlite3.Cursor]:
        """Cursor on a fresh connection. Writes run inside BEGIN IMMEDIATE and roll back on any error."""
        conn = self._conn()
        cur = conn.cursor()
        try:
            if write:
                cur.execute("BEGIN IMMEDIATE")
            yield cur
            if write:
                conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            if "sku" in str(exc).lower():
                raise ValidationError("SKU already exists.") from exc
            raise ValidationError(f"Constraint violated: {exc}") from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(str(exc)) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        self.run_migrations()

    def _migrations(self) -> list:
        return [
            (1, self._migration_v1_base),
            (2, self._migration_v2_invoice_counters),
        ]

    def schema_version(self) -> int:
        with self._session() as cur:
            cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='schema_migrations'")
            if cur.fetchone() is None:
                return 0
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            return int(cur.fetchone()[0])

    def run_migrations(self) -> None:
        applied = self.schema_version()
        pending = [(v, m) for v, m in self._migrations() if v > applied]
        if not pending:
            return

        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            for version, migration in pending:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL CHECK(length(trim(name)) > 0),
            description TEXT,
            price REAL NOT NULL CHECK(price >= 0),
            cost REAL NOT NULL CHECK(cost >= 0),
            stock INTEGER NOT NULL DEFAULT 0 CHECK(stock >= 0),
            category TEXT,
            sku TEXT UNIQUE,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sales (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_number TEXT NOT NULL UNIQUE,
            customer_name TEXT,
            customer_contact TEXT,
            subtotal REAL NOT NULL CHECK(subtotal >= 0),
            tax REAL NOT NULL DEFAULT 0 CHECK(tax >= 0),
            discount REAL NOT NULL DEFAULT 0 CHECK(discount >= 0),
            total REAL NOT NULL,
            payment_method TEXT NOT NULL DEFAULT 'cash' CHECK(payment_method IN ('cash','card','upi','other')),
            payment_status TEXT NOT NULL DEFAULT 'paid' CHECK(payment_status IN ('paid','pending','partial')),
            notes TEXT,
            created_at TEXT NOT NULL
        )
        """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_created_at ON sales(created_at)")

        # product_id has no foreign key: deleting a product leaves history intact
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sale_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sale_id INTEGER NOT NULL,
            position INTEGER NOT NULL,
            product_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            price REAL NOT NULL CHECK(price >= 0),
            quantity INTEGER NOT NULL CHECK(quantity > 0),
            total REAL NOT NULL,
            FOREIGN KEY(sale_id) REFERENCES sales(id) ON DELETE CASCADE
        )
        """
        )

    def _migration_v2_invoice_counters(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS invoice_counters (
                day TEXT PRIMARY KEY,
                last_seq INTEGER NOT NULL CHECK(last_seq > 0)
            )
            """
        )

    # ---------- Products ----------
    def add_product(
        self,
        name: str,
        price: float,
        cost: float,
        stock: int,
        description: Optional[str],
        category: Optional[str],
        sku: Optional[str],
        now_iso: str,
    ) -> int:
        with self._session(write=True) as cur:
            cur.execute(
                """
                INSERT INTO products (name, description, price, cost, stock, category, sku, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (name, description, float(price), float(cost), int(stock), category, sku, now_iso, now_iso),
            )
            return int(cur.lastrowid)

    def list_products(self) -> list[Product]:
        with self._session() as cur:
            cur.execute(_PRODUCT_SELECT + " ORDER BY created_at DESC, id DESC")
            rows = cur.fetchall()
        return [_row_to_product(r) for r in rows]

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        with self._session() as cur:
            cur.execute(_PRODUCT_SELECT + " WHERE id=?", (int(product_id),))
            r = cur.fetchone()
        return _row_to_product(r) if r else None

    def get_product_by_sku(self, sku: str) -> Optional[Product]:
        with self._session() as cur:
            cur.execute(_PRODUCT_SELECT + " WHERE sku=?", (sku,))
            r = cur.fetchone()
        return _row_to_product(r) if r else None

    def update_product(self, product_id: int, fields: dict, now_iso: str) -> bool:
        unknown = set(fields) - set(PRODUCT_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown product columns: {sorted(unknown)}")
        assignments = [f"{col}=?" for col in fields] + ["updated_at=?"]
        params = list(fields.values()) + [now_iso, int(product_id)]
        with self._session(write=True) as cur:
            cur.execute(f"UPDATE products SET {', '.join(assignments)} WHERE id=?", params)
            return cur.rowcount > 0

    def delete_product(self, product_id: int) -> bool:
        with self._session(write=True) as cur:
            cur.execute("DELETE FROM products WHERE id=?", (int(product_id),))
            return cur.rowcount > 0

    def adjust_product_stock(self, product_id: int, delta: int, now_iso: str) -> Optional[int]:
        """
        Applies delta only if the result stays within 0..MAX_INTEGER.
        Returns the new stock, or None if nothing changed.
        """
        delta = int(delta)
        lowest = max(0, -delta)
        highest = MAX_INTEGER - max(0, delta)
        with self._session(write=True) as cur:
            cur.execute(
                """
                UPDATE products
                SET stock = stock + ?, updated_at = ?
                WHERE id = ? AND stock >= ? AND stock <= ?
                """,
                (delta, now_iso, int(product_id), lowest, highest),
            )
            if cur.rowcount == 0:
                return None
            cur.execute("SELECT stock FROM products WHERE id=?", (int(product_id),))
            return int(cur.fetchone()[0])

    def list_low_stock(self, threshold: int) -> list[Product]:
        with self._session() as cur:
            cur.execute(_PRODUCT_SELECT + " WHERE stock < ? ORDER BY stock ASC, name ASC", (int(threshold),))
            rows = cur.fetchall()
        return [_row_to_product(r) for r in rows]

    def count_products(self) -> int:
        with self._session() as cur:
            cur.execute("SELECT COUNT(*) FROM products")
            return int(cur.fetchone()[0])

    # ---------- Sales ----------
    def create_sale(self, created_at_iso: str, header: dict, items: Iterable[SaleItem]) -> Sale:
        """
        Decrements stock, allocates the invoice number and inserts the sale in one
        transaction. Any failure rolls back all of it.
        """
        items = list(items)
        with self._session(write=True) as cur:
            for it in items:
                cur.execute(
                    """
                    UPDATE products
                    SET stock = stock - ?, updated_at = ?
                    WHERE id = ? AND stock >= ?
                    """,
                    (int(it.quantity), created_at_iso, int(it.product_id), int(it.quantity)),
                )
                if cur.rowcount == 0:
                    cur.execute("SELECT name, stock FROM products WHERE id=?", (int(it.product_id),))
                    row = cur.fetchone()
                    if not row:
                        raise NotFoundError(f"Product {it.product_id} not found.")
                    raise InsufficientStockError(
                        f"Insufficient stock for product: {row[0]}. Available: {row[1]}",
                        product_id=int(it.product_id),
                        product_name=str(row[0]),
                        available=int(row[1]),
                        requested=int(it.quantity),
                    )

            day = created_at_iso[:10]
            cur.execute(
                """
                INSERT INTO invoice_counters (day, last_seq) VALUES (?, 1)
                ON CONFLICT(day) DO UPDATE SET last_seq = last_seq + 1
                """,
                (day,),
            )
            cur.execute("SELECT last_seq FROM invoice_counters WHERE day=?", (day,))
            invoice_number = format_invoice_number(day, int(cur.fetchone()[0]))

            cur.execute(
                """
                INSERT INTO sales (
                    invoice_number, customer_name, customer_contact, subtotal, tax, discount, total,
                    payment_method, payment_status, notes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    invoice_number,
                    header.get("customer_name"),
                    header.get("customer_contact"),
                    float(header["subtotal"]),
                    float(header.get("tax", 0)),
                    float(header.get("discount", 0)),
                    float(header["total"]),
                    header.get("payment_method", "cash"),
                    header.get("payment_status", "paid"),
                    header.get("notes"),
                    created_at_iso,
                ),
            )
            sale_id = int(cur.lastrowid)

            for position, it in enumerate(items):
                cur.execute(
                    """
                    INSERT INTO sale_items (sale_id, position, product_id, name, price, quantity, total)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (sale_id, position, int(it.product_id), it.name, float(it.price), int(it.quantity), float(it.total)),
                )

        return Sale(
            id=sale_id,
            invoice_number=invoice_number,
            items=tuple(items),
            subtotal=float(header["subtotal"]),
            tax=float(header.get("tax", 0)),
            discount=float(header.get("discount", 0)),
            total=float(header["total"]),
            payment_method=header.get("payment_method", "cash"),
            payment_status=header.get("payment_status", "paid"),
            customer_name=header.get("customer_name"),
            customer_contact=header.get("customer_contact"),
            notes=header.get("notes"),
            created_at=created_at_iso,
        )

    def _load_sales(self, cur: sqlite3.Cursor, where: str = "", params: tuple = ()) -> list[Sale]:
        cur.execute(_SALE_SELECT + where + " ORDER BY created_at DESC, id DESC", params)
        headers = cur.fetchall()
        if not headers:
            return []

        cur.execute(
            f"""
            SELECT sale_id, product_id, name, price, quantity, total
            FROM sale_items
            WHERE sale_id IN (SELECT id FROM sales{where})
            ORDER BY sale_id, position
            """,
            params,
        )
        items_by_sale: dict[int, list[SaleItem]] = {}
        for r in cur.fetchall():
            items_by_sale.setdefault(int(r[0]), []).append(
                SaleItem(product_id=int(r[1]), name=str(r[2]), price=float(r[3]), quantity=int(r[4]), total=float(r[5]))
            )

        return [
            Sale(
                id=int(r[0]),
                invoice_number=str(r[1]),
                items=tuple(items_by_sale.get(int(r[0]), ())),
                subtotal=float(r[2]),
                tax=float(r[3]),
                discount=float(r[4]),
                total=float(r[5]),
                payment_method=str(r[6]),
                payment_status=str(r[7]),
                customer_name=r[8],
                customer_contact=r[9],
                notes=r[10],
                created_at=str(r[11]),
            )
            for r in headers
        ]

    def list_sales(self) -> list[Sale]:
        with self._session() as cur:
            return self._load_sales(cur)

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        with self._session() as cur:
            rows = self._load_sales(cur, " WHERE id = ?", (int(sale_id),))
        return rows[0] if rows else None

    def get_sale_by_invoice(self, invoice_number: str) -> Optional[Sale]:
        with self._session() as cur:
            rows = self._load_sales(cur, " WHERE invoice_number = ?", (invoice_number,))
        return rows[0] if rows else None

    def list_sales_between(self, start_iso: Optional[str], end_iso: Optional[str]) -> list[Sale]:
        """Inclusive on both ends. A None bound is open."""
        clauses, params = [], []
        if start_iso is not None:
            clauses.append("created_at >= ?")
            params.append(start_iso)
        if end_iso is not None:
            clauses.append("created_at <= ?")
            params.append(end_iso)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._session() as cur:
            return self._load_sales(cur, where, tuple(params))

    def sales_totals(self) -> tuple[int, float]:
        with self._session() as cur:
            cur.execute("SELECT COUNT(*), COALESCE(SUM(total), 0) FROM sales")
            c, total = cur.fetchone()
        return int(c), float(total)
