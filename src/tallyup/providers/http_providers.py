"""HTTP clients for the point-of-sale sales feed and the report renderer.

Both services sit outside this system; every call carries an explicit timeout
and any transport, status or payload problem surfaces as UpstreamProviderError.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from tallyup.core.exceptions import UpstreamProviderError
from tallyup.models.sales import EmployeeSales, ReportAggregates

logger = logging.getLogger(__name__)

_BINARY_TYPES = ("application/pdf", "application/octet-stream")


class _HttpProvider:
    name = "provider"

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 30.0,
                 client: httpx.Client | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = httpx.Timeout(timeout, connect=min(timeout, 10.0))
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                resp = self._client.post(url, json=payload, headers=self._headers(), timeout=self._timeout)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    resp = client.post(url, json=payload, headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamProviderError(
                self.name, f"HTTP {exc.response.status_code} from {url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamProviderError(self.name, f"{type(exc).__name__} calling {url}: {exc}") from exc
        return resp


class HttpSalesDataProvider(_HttpProvider):
    """ISalesDataProvider over ``POST {base_url}/sales``."""

    name = "SalesDataProvider"

    def fetch(self, merchant_id: str, period_start: datetime, period_end: datetime) -> list[EmployeeSales]:
        resp = self._post("/sales", {
            "merchantId": merchant_id,
            "startDate": period_start.isoformat(),
            "endDate": period_end.isoformat(),
        })
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamProviderError(self.name, "response is not JSON") from exc

        rows = data.get("salesData", []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            raise UpstreamProviderError(self.name, "salesData is not a list")
        try:
            sales = [EmployeeSales.model_validate(row) for row in rows]
        except PydanticValidationError as exc:
            raise UpstreamProviderError(self.name, f"malformed sales row: {exc}") from exc
        logger.info("Fetched %d sales rows for merchant %s", len(sales), merchant_id)
        return sales


class HttpReportRenderer(_HttpProvider):
    """IReportRenderer over ``POST {base_url}/reports``.

    A binary response body is the document itself; a JSON body must carry ``url``.
    """

    name = "ReportRenderer"

    def render(self, merchant_id: str, period_description: str, aggregates: ReportAggregates) -> str | bytes:
        resp = self._post("/reports", {
            "merchantId": merchant_id,
            "periodDescription": period_description,
            "aggregates": aggregates.model_dump(mode="json", by_alias=True),
        })
        content_type = resp.headers.get("content-type", "")
        if content_type.startswith(_BINARY_TYPES):
            return resp.content

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamProviderError(self.name, "response is neither a document nor JSON") from exc
        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise UpstreamProviderError(self.name, "response has no report url")
        return str(url)
