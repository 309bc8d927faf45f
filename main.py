"""
AI Config Gateway - FastAPI application for configuration-driven AI calls.
Lets each user plug in any chat-completion style API through a declarative configuration,
with RSA-OAEP protection of the secrets those configurations carry.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth import APIKeyMiddleware
from config import Config
from routes import ai_configs, credentials, generate
from utils.exceptions import GatewayError
from utils.http_client import HTTPClientManager
from utils.logger import app_logger
from utils.rsa_crypto import get_rsa_crypto


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load key material before serving; release pooled connections on shutdown."""
    get_rsa_crypto()
    app_logger.info(f"{Config.APP_TITLE} started, platform model '{Config.PLATFORM_MODEL}'")
    yield
    await HTTPClientManager.close_all()
    app_logger.info(f"{Config.APP_TITLE} stopped")

app = FastAPI(title=Config.APP_TITLE, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _describe_validation_error(error: dict) -> str:
    """One readable sentence for the first failing field."""
    location = [str(part) for part in error.get("loc", []) if part != "body"]
    field = ".".join(location) or "request"
    error_type = error.get("type", "")

    if error_type == "string_too_long":
        max_length = error.get("ctx", {}).get("max_length", "unknown")
        return f"Field '{field}' exceeds maximum length of {max_length} characters"
    if error_type == "missing":
        return f"Field '{field}' is required"
    return f"{field}: {error.get('msg', 'Validation error')}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Shape request validation failures like gateway errors, keeping pydantic's detail."""
    errors = exc.errors()
    app_logger.warning(f"Validation error for {request.method} {request.url.path}: {len(errors)} issue(s)")

    message = _describe_validation_error(errors[0]) if errors else "Validation error"
    detail = [
        {"msg": error.get("msg"), "type": error.get("type"), "loc": list(error.get("loc", []))}
        for error in errors
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "error": "validation_error", "message": message, "detail": detail},
    )


@app.exception_handler(GatewayError)
async def gateway_exception_handler(request: Request, exc: GatewayError):
    """Map gateway errors to their status code and a stable error code."""
    app_logger.warning(f"{request.method} {request.url.path} failed: [{exc.code}] {exc.message}")
    return JSONResponse(
        status_code=exc.http_status,
        content={"success": False, **exc.to_dict()},
    )


app.add_middleware(APIKeyMiddleware)


@app.get("/")
async def root():
    """Health check."""
    return {"message": f"{Config.APP_TITLE} is running"}

app.include_router(ai_configs.router, tags=["ai-configs"])
app.include_router(generate.router, tags=["generate"])
app.include_router(credentials.router, tags=["auth"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
