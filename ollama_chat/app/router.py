from functools import lru_cache

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import ValidationError

from .ollama_client import OllamaClient, OllamaError
from .schemas import ChatRequest, ChatResponse, ErrorResponse, HealthResponse, ModelInfo, ModelsResponse
from .settings import get_settings

NO_RESPONSE = "No response received from the model"
CHAT_FAILED = "Failed to process your request. Make sure Ollama is running and the model is available."
MESSAGE_REQUIRED = "Message is required"
UPSTREAM_DOWN = "Ollama is not reachable"
MODELS_FAILED = "Failed to fetch models from Ollama"

ERRORS = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}


class BridgeError(Exception):
    """Rendered by the app as ``{"error": message}`` with ``status_code``."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@lru_cache
def get_ollama_client() -> OllamaClient:
    return OllamaClient(get_settings())


router = APIRouter()


@router.post("/chat", response_model=ChatResponse, responses=ERRORS)
async def chat(req: ChatRequest, client: OllamaClient = Depends(get_ollama_client)):
    if not req.message or not req.message.strip():
        raise BridgeError(400, MESSAGE_REQUIRED)

    model = req.model or client.default_model
    logger.info("Using model: {}", model)
    logger.debug("User message: {}", req.message)

    try:
        text = await client.generate(req.message, model=model)
    except OllamaError as e:
        logger.error("Chat API error: {}", e)
        raise BridgeError(500, CHAT_FAILED) from e

    logger.info("Ollama response received")
    return ChatResponse(response=text or NO_RESPONSE)


@router.get("/health", response_model=HealthResponse, responses=ERRORS)
async def health(client: OllamaClient = Depends(get_ollama_client)):
    if not await client.ping():
        raise BridgeError(503, UPSTREAM_DOWN)
    return HealthResponse(status="ok", upstream=client.base_url)


@router.get("/models", response_model=ModelsResponse, responses=ERRORS)
async def models(client: OllamaClient = Depends(get_ollama_client)):
    try:
        raw = await client.list_models()
        listed = [ModelInfo.model_validate(m) for m in raw]
    except (OllamaError, ValidationError) as e:
        logger.error("Failed to load models: {}", e)
        raise BridgeError(500, MODELS_FAILED) from e
    return ModelsResponse(models=listed)
