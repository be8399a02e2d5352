from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Protocol

from shopkeep.domain.models import Sale, SaleItem
from shopkeep.domain.time import to_iso, utc_now


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def create_sale(self, header: dict, items: Iterable[SaleItem]) -> Sale: ...


@dataclass
class RepositoryUnitOfWork:
    """Unit of Work adapter for transactional write use-cases.

    The repository runs the whole sale write (stock decrements, invoice counter,
    header and lines) inside one SQLite transaction. This class stamps the
    creation time so services stay persistence-agnostic.
    """

    repo: object
    clock: Callable[[], datetime] = field(default=utc_now)

    def __enter__(self) -> "RepositoryUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def create_sale(self, header: dict, items: Iterable[SaleItem]) -> Sale:
        return self.repo.create_sale(to_iso(self.clock()), header, list(items))
