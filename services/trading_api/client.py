# services/trading_api/client.py

"""HTTP client for the remote trading service."""

from typing import Any, Dict, List, Optional

import httpx

from core.config.settings import TradingApiSettings
from core.logging import get_api_logger_safe
from core.utils.exceptions import RemoteCallError, TransportError

logger = get_api_logger_safe(__name__)


class TradingApiClient:
    """Thin async wrapper around the trading service REST endpoints.

    Every endpoint answers ``{success, message, data}``. Anything other
    than ``success: true`` is raised as ``RemoteCallError`` carrying the
    backend message, whatever the HTTP status was.
    """

    def __init__(self, settings: TradingApiSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
                headers={"User-Agent": self.settings.user_agent},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, operation: str,
                       json: Optional[Dict[str, Any]] = None) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.warning("Trading service timed out", operation=operation, path=path)
            raise TransportError(f"Request to trading service timed out ({operation})") from e
        except httpx.HTTPError as e:
            logger.warning("Trading service unreachable", operation=operation, path=path, error=str(e))
            raise TransportError(f"Could not reach trading service: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.warning("Non-JSON response from trading service",
                           operation=operation, status_code=response.status_code)
            raise TransportError(
                f"Unexpected response from trading service (HTTP {response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise TransportError(
                f"Unexpected response from trading service (HTTP {response.status_code})"
            )

        if body.get("success") is not True:
            message = body.get("message") or body.get("error") or \
                f"Trading service rejected {operation} (HTTP {response.status_code})"
            logger.info("Trading service returned non-success",
                        operation=operation, status_code=response.status_code, message=message)
            raise RemoteCallError(message, status_code=response.status_code, api_response=body)

        logger.debug("Trading service call succeeded", operation=operation,
                     status_code=response.status_code)
        return body.get("data"), body.get("message")

    async def get_account(self) -> Optional[Dict[str, Any]]:
        """Currently linked account, or None when the service reports no account."""
        try:
            data, _ = await self._request("GET", "/account", "get_account")
        except RemoteCallError:
            return None
        return data or None

    async def link_account(self, client_id: str, access_token: str) -> Dict[str, Any]:
        data, _ = await self._request(
            "POST", "/link-account", "link_account",
            json={"clientId": client_id, "accessToken": access_token},
        )
        if not isinstance(data, dict):
            raise TransportError("Link succeeded but no account was returned")
        return data

    async def search_symbols(self, query: str, exchange: str, limit: int) -> List[Dict[str, Any]]:
        data, _ = await self._request(
            "POST", "/symbols/search", "search_symbols",
            json={"query": query, "exchange": exchange, "limit": limit},
        )
        return self._list_payload(data, "search_symbols")

    async def get_positions(self) -> List[Dict[str, Any]]:
        data, _ = await self._request("GET", "/positions", "get_positions")
        return self._list_payload(data, "get_positions")

    async def place_order(self, order: Dict[str, Any]) -> Dict[str, Any]:
        data, message = await self._request("POST", "/orders", "place_order", json=order)
        return self._order_payload(data, message, "place_order")

    async def close_position(self, request: Dict[str, Any]) -> Dict[str, Any]:
        data, message = await self._request("POST", "/positions/close", "close_position", json=request)
        return self._order_payload(data, message, "close_position")

    @staticmethod
    def _list_payload(data: Any, operation: str) -> List[Dict[str, Any]]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise TransportError(f"Unexpected {operation} result from trading service: expected a list")
        return list(data)

    @staticmethod
    def _order_payload(data: Any, message: Optional[str], operation: str) -> Dict[str, Any]:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected {operation} result from trading service: {data!r}")
        result = dict(data)
        result.setdefault("message", message)
        return result
