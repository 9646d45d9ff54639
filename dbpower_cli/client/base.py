"""Base HTTP Client for the DBPower API"""

import uuid
from typing import Any

import httpx
from rich.console import Console

from .. import __version__

console = Console()

API_PREFIX = "/v1"


class DBPowerError(Exception):
    """Base exception for DBPower API errors"""

    def __init__(self, message: str, status_code: int | None = None, request_id: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.request_id = request_id


def _error_message(data: Any, fallback: str) -> str:
    if not isinstance(data, dict):
        return fallback
    return str(data.get("error") or fallback)


class APIClient:
    """
    Synchronous client for the DBPower edge API.

    Every call carries its own X-Request-ID so a CLI invocation can be found
    in the server logs.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: int = 30,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": f"dbpower-cli/{__version__}", **(headers or {})},
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.client.close()

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Raise on error responses; unwrap the success envelope when present."""
        request_id = response.headers.get("X-Request-ID")

        try:
            data = response.json()
        except ValueError:
            raise DBPowerError(
                f"Invalid JSON response: {response.status_code}",
                response.status_code,
                request_id,
            ) from None

        if response.status_code == 401:
            message = _error_message(data, "Unauthorized")
            raise DBPowerError(
                f"{message} (check 'dbpower config set api.service_role_key <key>')",
                401,
                request_id,
            )

        if response.status_code >= 400:
            message = _error_message(data, "Unknown error")
            raise DBPowerError(
                f"API Error {response.status_code}: {message}",
                response.status_code,
                request_id,
            )

        if isinstance(data, dict) and "ok" in data:
            if not data["ok"]:
                raise DBPowerError(
                    _error_message(data, "Request failed"),
                    response.status_code,
                    request_id,
                )
            # The deletion pass summary is not wrapped, everything else is
            if "data" in data:
                return data["data"]

        return data

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        headers = {"X-Request-ID": str(uuid.uuid4()), **kwargs.pop("headers", {})}
        try:
            response = self.client.request(
                method, f"{API_PREFIX}{path}", headers=headers, **kwargs
            )
        except httpx.RequestError as e:
            console.print(f"[red]Connection error: {e}[/red]")
            raise DBPowerError(f"Connection failed: {e}") from None
        return self._handle_response(response)

    def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        return self._request("GET", path, params=params, headers=headers or {})

    def post(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        return self._request(
            "POST", path, json=json, params=params, headers=headers or {}
        )
