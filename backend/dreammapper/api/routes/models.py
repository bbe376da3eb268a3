"""
Inference backend connectivity check
"""
from fastapi import APIRouter, Depends

from dreammapper.core.errors import InferenceUnavailable
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.core.ollama_client import OllamaClient, get_ollama_client

router = APIRouter(prefix="/api/models", tags=["models"])
logger = LoggingConfig.get_logger(__name__)


@router.get("")
async def list_models(client: OllamaClient = Depends(get_ollama_client)):
    """
    List models installed on the Ollama backend

    Diagnostic only: always 200, with reachable=false when the backend cannot be reached.
    """
    try:
        models = await client.list_models()
    except InferenceUnavailable as e:
        logger.warning(f"Ollama connectivity check failed: {e.message}")
        return {"reachable": False, "url": client.base_url, "models": [], "detail": e.message}
    return {"reachable": True, "url": client.base_url, "configuredModel": client.model, "models": models}
