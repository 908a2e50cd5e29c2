from typing import Any, Dict, List, Optional

import httpx

from ..app.settings import Settings, get_settings


class BridgeUnavailable(Exception):
    """The bridge could not be reached, refused the request, or answered garbage."""


class BridgeClient:
    """HTTP client the browser UI uses to reach the chat bridge."""

    def __init__(self, api_base: str, timeout: Optional[httpx.Timeout] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_base = api_base.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            timeout=timeout or httpx.Timeout(130.0, connect=5.0),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "BridgeClient":
        cfg = settings or get_settings()
        # Outlive the bridge's own upstream timeout so the bridge gets to answer first
        read = cfg.timeouts.read + cfg.timeouts.connect + 5.0
        return cls(cfg.ui.api_base, timeout=httpx.Timeout(read, connect=cfg.timeouts.connect))

    async def _call(self, method: str, path: str, **kwargs) -> Any:
        try:
            r = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise BridgeUnavailable(f"{method} {path} failed: {type(e).__name__}: {e}") from e
        if r.is_error:
            raise BridgeUnavailable(f"{method} {path} returned {r.status_code}")
        try:
            return r.json()
        except ValueError as e:
            raise BridgeUnavailable(f"{method} {path} returned a non-JSON body") from e

    async def chat(self, message: str, model: str) -> str:
        data = await self._call("POST", "/chat", json={"message": message, "model": model})
        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise BridgeUnavailable("POST /chat returned no response text")
        return data["response"]

    async def health(self) -> Dict[str, Any]:
        return await self._call("GET", "/health")

    async def models(self) -> List[Dict[str, Any]]:
        data = await self._call("GET", "/models")
        if not isinstance(data, dict) or not isinstance(data.get("models"), list):
            raise BridgeUnavailable("GET /models returned no model list")
        return data["models"]

    async def aclose(self) -> None:
        await self._client.aclose()
