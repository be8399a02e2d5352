from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base app error."""

    code = "app_error"
    http_status = 500

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.code

    def to_payload(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(AppError):
    code = "validation_error"
    http_status = 400


class NotFoundError(AppError):
    code = "not_found"
    http_status = 404


class InsufficientStockError(AppError):
    code = "insufficient_stock"
    http_status = 400

    def __init__(
        self,
        message: str,
        product_id: Optional[int] = None,
        product_name: Optional[str] = None,
        available: Optional[int] = None,
        requested: Optional[int] = None,
    ):
        super().__init__(message)
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.product_id is not None:
            payload["product_id"] = self.product_id
        return payload


class InvalidOperationError(AppError):
    code = "invalid_operation"
    http_status = 400


class StorageError(AppError):
    code = "storage_error"
    http_status = 500


_BY_CODE = {
    cls.code: cls
    for cls in (ValidationError, NotFoundError, InsufficientStockError, InvalidOperationError, StorageError)
}


def error_from_payload(status: int, payload: Optional[dict]) -> AppError:
    """Rebuild a domain error from an HTTP error response."""
    payload = payload or {}
    message = str(payload.get("message") or f"HTTP {status}")
    cls = _BY_CODE.get(str(payload.get("error", "")))
    if cls is InsufficientStockError:
        return InsufficientStockError(message, product_id=payload.get("product_id"))
    if cls is not None:
        return cls(message)
    if status == 404:
        return NotFoundError(message)
    if 400 <= status < 500:
        return ValidationError(message)
    return StorageError(message)
