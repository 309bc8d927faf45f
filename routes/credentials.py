"""
Route handlers for account-level API key settings and the RSA public key.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from auth import get_caller_id
from models.api_models import ApiKeyTest, ApiKeyUpdate
from models.gateway_models import UserCredential
from services.config_lifecycle import ConfigurationLifecycle, get_lifecycle
from utils.exceptions import GatewayValidationError

router = APIRouter(prefix="/auth")


@router.get("/public-key")
async def get_public_key(lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)):
    """RSA public key clients use to encrypt secrets before upload."""
    return {"success": True, "publicKey": lifecycle.crypto.get_public_key()}


@router.put("/api-key")
async def update_api_key(
    request: ApiKeyUpdate,
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """
    Opt in or out of a custom API key.
    Opting in without a key is allowed; generation then fails with credential_missing until one is set.
    """
    if request.use_custom_api_key and request.api_key is not None and not request.api_key.strip():
        raise GatewayValidationError("API key is required")

    credential = UserCredential(owner_id=caller_id, use_custom_secret=request.use_custom_api_key)
    if request.use_custom_api_key and request.api_key:
        credential.secret = lifecycle.crypto.prepare_for_storage(request.api_key)

    lifecycle.store.set_credential(credential)
    return {
        "success": True,
        "message": "API key settings updated",
        "useCustomApiKey": credential.use_custom_secret
    }


@router.post("/test-api-key", dependencies=[Depends(get_caller_id)])
async def test_api_key(
    request: ApiKeyTest,
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """Test a raw API key against the platform provider."""
    secret = request.api_key.strip()
    if lifecycle.crypto.is_encrypted(secret):
        secret = lifecycle.crypto.decrypt_secret(secret)
    result = await lifecycle.test_raw_credential(secret)

    if result.success:
        return {"success": True, "message": "API key validation successful", "testResult": result.to_dict()}

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": f"API key validation failed: {result.error}",
            "testResult": result.to_dict()
        }
    )


@router.get("/api-key-status")
async def get_api_key_status(
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    credential = lifecycle.store.get_credential(caller_id)
    return {
        "success": True,
        "useCustomApiKey": credential.use_custom_secret,
        "hasCustomApiKey": credential.has_custom_secret,
        "platformInfo": lifecycle.platform_info()
    }
