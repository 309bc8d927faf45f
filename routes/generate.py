"""
Route handlers for AI generation through the caller's configuration.
"""
from fastapi import APIRouter, Depends

from auth import get_caller_id
from models.api_models import GenerateRequest, SentenceRequest
from services.config_lifecycle import ConfigurationLifecycle, get_lifecycle
from services.sentence_service import SentenceService

router = APIRouter(prefix="/generate")


@router.post("")
async def generate(
    request: GenerateRequest,
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """Generate a reply for a prompt and optional conversation history."""
    result = await lifecycle.generate(caller_id, request.prompt, request.history, request.secret)
    return {"success": True, **result.to_dict()}


@router.post("/sentence")
async def generate_sentence(
    request: SentenceRequest,
    caller_id: str = Depends(get_caller_id),
    lifecycle: ConfigurationLifecycle = Depends(get_lifecycle)
):
    """Generate a sentence that uses every submitted word."""
    result = await SentenceService.generate_sentence(lifecycle, caller_id, request.words, request.history)
    return {"success": True, "generation": result}
