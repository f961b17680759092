# storefront/repos/rest_gateway.py
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict

import requests
from requests import RequestException

from storefront.repos.gateway import NETWORK_ERROR, DataGateway, GatewayResult, first_row
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import HTTP_TIMEOUT_SECONDS, SUPABASE_ANON_KEY, SUPABASE_URL

logger = get_logger(__name__)


def _encode(value: Any):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _eq(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"is.{str(value).lower()}"
    return f"eq.{value}"


class RestGateway(DataGateway):
    """
    DataGateway over the hosted PostgREST api.

    Row level security applies with the caller's access token, the anon
    key is used when there is no signed in user.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        access_token: str | None = None,
        timeout: int | None = None,
        http: requests.Session | None = None,
    ):
        self.base_url = (base_url or SUPABASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else SUPABASE_ANON_KEY
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS
        self.http = http or requests.Session()
        self.http.headers.update({
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token or self.api_key}",
            "Content-Type": "application/json",
        })

    @http_retry()
    def _send(self, method: str, path: str, params=None, payload=None, headers=None) -> requests.Response:
        url = f"{self.base_url}/rest/v1/{path}"
        logger.debug(f"RestGateway {method} {url} {params or ''}")
        return self.http.request(
            method,
            url,
            params=params,
            data=json.dumps(payload, default=_encode) if payload is not None else None,
            headers=headers,
            timeout=self.timeout,
        )

    def _call(self, method: str, path: str, params=None, payload=None, prefer: str | None = None, single=False):
        headers = {}
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = self._send(method, path, params=params, payload=payload, headers=headers)
        except RequestException as e:
            logger.error(f"RestGateway {method} {path} failed: {e}")
            return GatewayResult.failure(NETWORK_ERROR, str(e))

        try:
            body = resp.json() if resp.content else None
        except ValueError:
            # proxies answer with html error pages
            logger.error(f"RestGateway {method} {path} returned a non-json {resp.status_code} response")
            return GatewayResult.failure(str(resp.status_code), resp.reason or "Request failed")

        if not resp.ok:
            body = body if isinstance(body, dict) else {}
            return GatewayResult.failure(
                str(body.get("code") or resp.status_code),
                body.get("message") or resp.reason or "Request failed",
            )

        if isinstance(body, list):
            return first_row(body, single)
        return GatewayResult(data=body)

    @staticmethod
    def _params(filters: Dict[str, Any] | None) -> Dict[str, str]:
        return {column: _eq(value) for column, value in (filters or {}).items()}

    def select(self, table, filters=None, order_by=None, limit=None, single=False):
        params = self._params(filters)
        params["select"] = "*"
        if order_by:
            params["order"] = ",".join(f"{col}.{'desc' if desc else 'asc'}" for col, desc in order_by)
        if limit is not None:
            params["limit"] = str(limit)
        return self._call("GET", table, params=params, single=single)

    def insert(self, table, rows, single=False):
        return self._call("POST", table, payload=rows, prefer="return=representation", single=single)

    def update(self, table, values, filters, single=False):
        return self._call(
            "PATCH", table, params=self._params(filters), payload=values,
            prefer="return=representation", single=single,
        )

    def delete(self, table, filters):
        return self._call("DELETE", table, params=self._params(filters), prefer="return=minimal")

    def upsert(self, table, row, on_conflict, single=True):
        return self._call(
            "POST", table,
            params={"on_conflict": ",".join(on_conflict)},
            payload=row,
            prefer="return=representation,resolution=merge-duplicates",
            single=single,
        )

    def rpc(self, fn, params=None):
        return self._call("POST", f"rpc/{fn}", payload=params or {})
