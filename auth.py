"""
Request authentication for the gateway.
Clients prove themselves with a shared X-API-Key; the upstream session layer names the caller in X-User-Id.
"""
import secrets

from fastapi import Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from config import Config
from utils.logger import app_logger


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _error(status_code: int, error: str, detail: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "detail": detail},
        headers=headers,
    )


class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests whose X-API-Key does not match the configured key.
    Documentation routes and the RSA public key stay open.
    """

    EXCLUDED_PATHS = {"/docs", "/openapi.json", "/redoc", "/auth/public-key"}
    API_KEY: str = Config.API_KEY

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        if not self.API_KEY:
            app_logger.error("API_KEY is not configured, refusing all protected requests")
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "server_error",
                "Server misconfiguration: API_KEY not set. Please configure API_KEY in .env file."
            )

        api_key = request.headers.get("X-API-Key")
        if not api_key:
            app_logger.warning(f"Missing API key: {request.method} {request.url.path} from {_client_host(request)}")
            return _error(
                status.HTTP_401_UNAUTHORIZED,
                "unauthorized",
                "Missing API key. Include 'X-API-Key' header in your request.",
                headers={"WWW-Authenticate": "ApiKey"}
            )

        if not secrets.compare_digest(api_key.encode(), self.API_KEY.encode()):
            app_logger.warning(f"Invalid API key: {request.method} {request.url.path} from {_client_host(request)}")
            return _error(status.HTTP_403_FORBIDDEN, "forbidden", "Invalid API key")

        return await call_next(request)


async def get_caller_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, supplied by the upstream session layer in the X-User-Id header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing X-User-Id header"
        )
    return x_user_id.strip()
