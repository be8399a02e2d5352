from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

import requests

from shopkeep.domain.errors import StorageError, error_from_payload

log = logging.getLogger("shopkeep.api")


class ApiClient:
    """
    Client for the shop's HTTP API.

    The session and base URL are passed in explicitly so tests and
    multiple backends can each get their own client.
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            log.warning("api_request_failed method=%s url=%s error=%s", method, url, e)
            raise StorageError(f"API unreachable: {e}") from e

        if r.status_code >= 400:
            try:
                payload = r.json()
            except ValueError:
                payload = None
            err = error_from_payload(r.status_code, payload if isinstance(payload, dict) else None)
            log.warning("api_error method=%s url=%s status=%s error=%s", method, url, r.status_code, err.code)
            raise err

        if not r.content:
            return None
        return r.json()

    # ---------- Products ----------
    def list_products(self) -> list[dict]:
        return self._request("GET", "/products")

    def get_product(self, product_id: int) -> dict:
        return self._request("GET", f"/products/{product_id}")

    def create_product(self, fields: Mapping[str, Any]) -> dict:
        return self._request("POST", "/products", json=dict(fields))

    def update_product(self, product_id: int, fields: Mapping[str, Any]) -> dict:
        return self._request("PATCH", f"/products/{product_id}", json=dict(fields))

    def delete_product(self, product_id: int) -> None:
        self._request("DELETE", f"/products/{product_id}")

    def adjust_stock(self, product_id: int, operation: str, quantity: int) -> dict:
        return self._request(
            "PATCH",
            f"/products/{product_id}/stock",
            json={"operation": operation, "quantity": int(quantity)},
        )

    # ---------- Sales ----------
    def list_sales(self) -> list[dict]:
        return self._request("GET", "/sales")

    def get_sale(self, sale_id: int) -> dict:
        return self._request("GET", f"/sales/{sale_id}")

    def create_sale(self, items: Iterable[Mapping[str, Any]], **sale_fields: Any) -> dict:
        body = {k: v for k, v in sale_fields.items() if v is not None}
        body["items"] = [dict(it) for it in items]
        return self._request("POST", "/sales", json=body)

    def revenue_stats(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> dict:
        params = {}
        if start_date and end_date:
            params = {"startDate": start_date, "endDate": end_date}
        return self._request("GET", "/sales/stats/revenue", params=params or None)
