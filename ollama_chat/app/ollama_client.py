import httpx
from loguru import logger
from typing import Any, Dict, List, Optional

from .settings import Settings, get_settings


class OllamaError(Exception):
    """Ollama could not be reached or answered with a non-success status."""


class OllamaClient:
    """Thin async wrapper over the Ollama HTTP API.

    One instance (and one underlying ``httpx.AsyncClient``) is shared by all
    requests of the bridge. Pass ``transport`` to talk to something other than
    the network, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        cfg = settings or get_settings()
        self.base_url = cfg.ollama.base_url.rstrip("/")
        self.default_model = cfg.ollama.default_model
        self.options = {
            "temperature": cfg.ollama.temperature,
            "top_p": cfg.ollama.top_p,
            "top_k": cfg.ollama.top_k,
        }
        timeout = httpx.Timeout(cfg.timeouts.read, connect=cfg.timeouts.connect)
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            r = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise OllamaError(f"Ollama request failed: {type(e).__name__}: {e}") from e
        if r.is_error:
            logger.error("Ollama API error: {}", r.text)
            raise OllamaError(f"Ollama API error: {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise OllamaError("Ollama returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise OllamaError(f"Ollama returned {type(data).__name__}, expected a JSON object")
        return data

    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        payload = {
            "model": model or self.default_model,
            "prompt": prompt,
            "stream": False,
            "options": self.options,
        }
        data = await self._request("POST", "/api/generate", json=payload)
        # Ollama returns {"model": ..., "response": "...", "done": true, ...}
        text = data.get("response")
        if text is not None and not isinstance(text, str):
            raise OllamaError(f"Ollama response field is {type(text).__name__}, expected a string")
        return text or ""

    async def list_models(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/api/tags")
        models = data.get("models") or []
        if not isinstance(models, list):
            raise OllamaError("Ollama model listing is not a list")
        return models

    async def ping(self) -> bool:
        try:
            await self._request("GET", "/api/version")
        except OllamaError as e:
            logger.warning("Ollama health check failed: {}", e)
            return False
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
