from __future__ import annotations

INVOICE_PREFIX = "INV"


def format_invoice_number(day_iso: str, seq: int) -> str:
    """INV-YYYYMMDD-NNN. The sequence is zero-padded to 3 digits and widens past 999."""
    return f"{INVOICE_PREFIX}-{day_iso[:10].replace('-', '')}-{int(seq):03d}"
