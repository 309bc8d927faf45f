"""
Route handlers for AI configuration management.
Secrets are accepted on write and never returned.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from auth import get_caller_id
from models.api_models import NULLABLE_FIELDS, AIConfigCreate, AIConfigUpdate, TestConfigRequest
from models.gateway_models import AIConfiguration, SecretPlacement
from services.config_lifecycle import ConfigurationLifecycle, get_lifecycle
from utils.config_store import ConfigStore
from utils.exceptions import GatewayValidationError
from utils.logger import app_logger

router = APIRouter(prefix="/ai-configs")


def _store(lifecycle: ConfigurationLifecycle) -> ConfigStore:
    return lifecycle.store


@router.get("")
async def list_configs(
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """List the caller's configurations, most recently used first."""
    configs = _store(lifecycle).list_for_owner(caller_id)
    return {"success": True, "configs": [config.to_public_dict() for config in configs]}


@router.get("/{config_id}")
async def get_config(
    config_id: int,
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    config = _store(lifecycle).require(config_id, caller_id)
    return {"success": True, "config": config.to_public_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_config(
    request: AIConfigCreate,
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """Create a configuration. It starts untested until a call or test succeeds."""
    fields = {key: value for key, value in request.provided_fields().items() if value is not None}
    fields["secret"] = lifecycle.crypto.prepare_for_storage(request.secret)

    config = AIConfiguration(owner_id=caller_id, **fields)
    config.validate()
    config.reset_availability()

    config = _store(lifecycle).create(config)
    return {"success": True, "config": config.to_public_dict()}


@router.put("/{config_id}")
async def update_config(
    config_id: int,
    request: AIConfigUpdate,
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """Update a configuration. Availability is reset."""
    store = _store(lifecycle)
    config = store.require(config_id, caller_id)

    for key, value in request.provided_fields().items():
        if value is None and key not in NULLABLE_FIELDS:
            raise GatewayValidationError(f"{key} cannot be null")
        if key == "secret":
            value = lifecycle.crypto.prepare_for_storage(value)
        elif key == "secret_placement":
            value = SecretPlacement(value)
        setattr(config, key, value)

    config.validate()

    config = store.update(config)
    return {"success": True, "config": config.to_public_dict()}


@router.delete("/{config_id}")
async def delete_config(
    config_id: int,
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    store = _store(lifecycle)
    store.require(config_id, caller_id)
    store.delete(config_id, caller_id)
    return {"success": True, "message": "Configuration deleted"}


@router.post("/default", status_code=status.HTTP_201_CREATED)
async def create_default_config(
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """Create the platform default configuration for the caller (once)."""
    if _store(lifecycle).find_system_default(caller_id):
        raise GatewayValidationError("Default configuration already exists")

    config = lifecycle.create_system_default(caller_id)
    return {"success": True, "config": config.to_public_dict(), "message": "Default configuration created"}


@router.post("/{config_id}/test")
async def test_config(
    config_id: int,
    request: Optional[TestConfigRequest] = None,
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """Test a stored configuration; the outcome updates its availability."""
    config = _store(lifecycle).require(config_id, caller_id)
    secret_override = request.secret if request else None

    result = await lifecycle.test_configuration(config, secret_override)
    app_logger.info(f"Config {config_id} test: {'success' if result.success else result.error_code}")

    payload = {
        "success": result.success,
        "state": config.state.value,
        "testResult": result.to_dict(),
    }
    if result.success:
        payload["message"] = "Configuration test successful"
        return payload

    payload["message"] = f"Configuration test failed: {result.error or 'Unknown error'}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=payload)
