# app/core/api_client.py
import logging
from functools import lru_cache
from typing import Any

import httpx
from fastapi import Depends, HTTPException, status

from app.core.auth import get_current_shopper
from app.core.config import get_settings
from app.models.user import Shopper

logger = logging.getLogger(__name__)


def unwrap(payload: Any, fallback_message: str = "Upstream request failed") -> Any:
    """
    Unwrap the upstream envelope `{success, message?, data}`.

    Payloads that are not enveloped are returned as-is.

    Raises:
        HTTPException(400): if the envelope reports `success: false`.
    """
    if not isinstance(payload, dict) or "success" not in payload:
        return payload
    if not payload.get("success"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=payload.get("message") or fallback_message,
        )
    return payload.get("data")


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message") or body.get("detail")
    return None


class ApiSession:
    """
    Upstream commerce API bound to one shopper's token.

    Repositories receive an ApiSession per call, the same way SQL
    repositories receive a DB session.

    Error mapping:
      - transport error / timeout / 5xx -> 502
      - 404                             -> 404
      - other 4xx or success=false      -> 400 (upstream message kept)
    """

    def __init__(self, http: httpx.Client, token: str | None = None):
        self.http = http
        self.token = token

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = self.http.request(
                method,
                path,
                json=json,
                params=params,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"Upstream {method} {path} failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Commerce service unavailable",
            )

        if response.status_code == status.HTTP_404_NOT_FOUND:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=_error_message(response) or "Resource not found",
            )

        if response.status_code >= 500:
            logger.error(f"Upstream {method} {path} returned {response.status_code}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Commerce service error",
            )

        if response.status_code >= 400:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=_error_message(response) or "Request rejected",
            )

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError:
            logger.error(f"Upstream {method} {path} returned a non-JSON body")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Commerce service returned an invalid response",
            )

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)


class ApiClient:
    """
    Owns the pooled httpx client for the upstream commerce API.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.http = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    def bind(self, token: str | None) -> ApiSession:
        return ApiSession(self.http, token)

    def close(self) -> None:
        self.http.close()


@lru_cache
def get_api_client() -> ApiClient:
    """
    Shared upstream client (one connection pool per process).
    """
    settings = get_settings()
    return ApiClient(settings.COMMERCE_API_URL, settings.COMMERCE_API_TIMEOUT)


def get_api_session(shopper: Shopper | None = Depends(get_current_shopper)) -> ApiSession:
    """
    FastAPI dependency: upstream API on behalf of the caller
    (anonymous for guests).
    """
    return get_api_client().bind(shopper.token if shopper else None)
