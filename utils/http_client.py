"""
HTTP client utilities with connection pooling.
Provides the shared httpx client and the JSON transport used for AI API calls.
"""
from typing import Optional

import httpx
from config import Config
from utils.exceptions import (
    AuthFailureError,
    NetworkError,
    RateLimitedError,
    UpstreamHTTPError,
    UpstreamTimeoutError,
)
from utils.logger import app_logger


class HTTPClientManager:
    """Manages the shared httpx client with connection pooling."""

    _gateway_client: httpx.AsyncClient | None = None

    @classmethod
    def get_gateway_client(cls) -> httpx.AsyncClient:
        """
        Get or create a shared httpx client for outbound AI API calls.

        Features:
        - Connection pooling (reuses TCP connections)
        - No redirect following; configured endpoints must be exact

        Returns:
            Configured httpx.AsyncClient
        """
        if cls._gateway_client is None:
            limits = httpx.Limits(
                max_connections=Config.AI_MAX_CONNECTIONS,
                max_keepalive_connections=10,
                keepalive_expiry=60.0
            )

            cls._gateway_client = httpx.AsyncClient(
                timeout=Config.AI_TIMEOUT,
                follow_redirects=False,
                limits=limits,
                http2=True
            )

        return cls._gateway_client

    @classmethod
    async def close_all(cls) -> None:
        """
        Close all managed clients and clean up connections.
        """
        if cls._gateway_client is not None:
            await cls._gateway_client.aclose()
            cls._gateway_client = None


def classify_status(status_code: int, detail: str = ""):
    """Map a non-success upstream status to a gateway error."""
    if status_code in (401, 403):
        return AuthFailureError("Invalid API key or authentication failed.")
    if status_code == 429:
        return RateLimitedError("Rate limit exceeded. Please try again later.")
    if status_code == 400:
        return UpstreamHTTPError(status_code, f"Invalid request to AI API{': ' + detail if detail else ''}")
    return UpstreamHTTPError(status_code, f"AI service error: HTTP {status_code}")


async def post_json(
    url: str,
    headers: dict,
    body,
    timeout: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None
) -> str:
    """
    POST a JSON body and return the raw response text.

    Args:
        url: Endpoint URL
        headers: Request headers
        body: JSON-serializable request body
        timeout: Timeout in seconds (defaults to Config.AI_TIMEOUT)
        client: Optional client, defaults to the shared gateway client

    Returns:
        Raw response body

    Raises:
        UpstreamTimeoutError, AuthFailureError, RateLimitedError,
        UpstreamHTTPError, NetworkError
    """
    client = client or HTTPClientManager.get_gateway_client()
    timeout = timeout if timeout is not None else Config.AI_TIMEOUT

    try:
        response = await client.post(url, json=body, headers=headers, timeout=timeout)
    except httpx.TimeoutException as e:
        app_logger.warning(f"AI API timeout after {timeout}s: {url}")
        raise UpstreamTimeoutError("Request timeout. Please try again.") from e
    except httpx.RequestError as e:
        app_logger.error(f"AI API network error: {type(e).__name__}: {e}")
        raise NetworkError(f"Could not reach AI API: {type(e).__name__}") from e

    if not response.is_success:
        detail = response.text[:200] if response.status_code == 400 else ""
        app_logger.warning(f"AI API returned HTTP {response.status_code}: {url}")
        raise classify_status(response.status_code, detail)

    return response.text
