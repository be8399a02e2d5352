from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from shopkeep.application.container import AppContainer, build_container
from shopkeep.config import AppSettings, get_app_paths
from shopkeep.domain.errors import AppError
from shopkeep.domain.time import DateRange
from shopkeep.logging_config import setup_logging

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shopkeep", description="Inventory and point-of-sale back office.")
    parser.add_argument("--db", help="Path to the SQLite database (defaults to the per-user data dir).")
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Revenue stats, top products and revenue by day.")
    report.add_argument("--start", help="Start date YYYY-MM-DD (inclusive).")
    report.add_argument("--end", help="End date YYYY-MM-DD (inclusive).")
    report.add_argument("--top", type=int, default=5, help="How many top products to list.")
    report.add_argument("--xlsx", help="Also export the report to this .xlsx file.")

    invoice = sub.add_parser("invoice", help="Print an invoice.")
    invoice.add_argument("ref", help="Sale ID or invoice number (INV-YYYYMMDD-NNN).")
    invoice.add_argument("--xlsx", help="Also export the invoice to this .xlsx file.")

    low = sub.add_parser("low-stock", help="List products below the low-stock threshold.")
    low.add_argument("--threshold", type=int)
    return parser


def _report(app: AppContainer, args, out) -> None:
    date_range = DateRange.of(args.start, args.end)
    stats = app.reporting.revenue_stats(date_range)
    cur = app.settings.currency
    print(f"Window: {date_range.label()}", file=out)
    print(f"Sales: {stats.total_sales}", file=out)
    print(f"Revenue: {cur} {stats.total_revenue:,.2f}", file=out)
    print(f"Average sale: {cur} {stats.average_sale:,.2f}", file=out)

    print("\nTop products:", file=out)
    for i, p in enumerate(app.reporting.top_products(date_range, args.top), start=1):
        print(f"  {i}. {p.name}  x{p.quantity}  {cur} {p.revenue:,.2f}", file=out)

    print("\nRevenue by day (UTC):", file=out)
    for d in app.reporting.revenue_by_day(date_range):
        print(f"  {d.date}  {cur} {d.revenue:,.2f}", file=out)

    if args.xlsx:
        path = app.reporting.export_report_excel(args.xlsx, date_range)
        print(f"\nExported {path}", file=out)


def _invoice(app: AppContainer, args, out) -> None:
    ref = args.ref.strip()
    sale = app.sales.get_sale(int(ref)) if ref.isdigit() else app.sales.get_sale_by_invoice(ref)
    print(app.invoices.render_text(sale), file=out, end="")
    if args.xlsx:
        app.invoices.export_excel(sale, args.xlsx)


def _low_stock(app: AppContainer, args, out) -> None:
    for p in app.inventory.low_stock(args.threshold):
        print(f"{p.id}\t{p.sku or '-'}\t{p.name}\t{p.stock}", file=out)


COMMANDS = {"report": _report, "invoice": _invoice, "low-stock": _low_stock}


def main(argv: Optional[Sequence[str]] = None, out=None) -> int:
    args = _build_parser().parse_args(argv)
    out = out or sys.stdout

    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    try:
        app = build_container(args.db or paths.db_path, AppSettings.from_env())
        COMMANDS[args.command](app, args, out)
    except AppError as e:
        log.warning("command_failed command=%s error=%s", args.command, e.code)
        print(f"error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
