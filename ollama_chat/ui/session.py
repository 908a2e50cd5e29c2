"""
Per-browser-session chat state.

``ChatSession`` owns the ordered message list, the loading flag, the selected
model and the connectivity status. The UI event handlers are its only writer;
it never talks to Ollama directly, only to the bridge.
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional, Tuple

from loguru import logger

from ..app.settings import DEFAULT_MODEL
from .bridge_client import BridgeClient, BridgeUnavailable

FALLBACK_REPLY = "Sorry, I encountered an error. Please make sure Ollama is running locally."
GB = 1024 ** 3

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class Message:
    content: str
    role: Role
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def time_label(self) -> str:
        return self.timestamp.strftime("%H:%M:%S")


@dataclass(frozen=True)
class ModelInfo:
    name: str
    size: int = 0
    modified_at: Optional[str] = None

    @property
    def size_label(self) -> str:
        return f"{self.size / GB:.1f} GB"


class ChatSession:
    def __init__(self, bridge: BridgeClient, default_model: str = DEFAULT_MODEL):
        self.bridge = bridge
        self.default_model = default_model
        self.selected_model = default_model
        self.models: List[ModelInfo] = []
        self.pending_input = ""
        self.loading = False
        self.connected = False
        self._messages: List[Message] = []

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    async def start(self) -> None:
        """Run the startup health and model checks once."""
        await asyncio.gather(self.refresh_connectivity(), self.refresh_models())

    async def submit(self, text: Optional[str] = None) -> Optional[Message]:
        """
        Send ``text`` (or the pending input) to the bridge.

        The user message is appended before the bridge is called; exactly one
        assistant message follows once the call settles, either the model's
        reply or FALLBACK_REPLY. Returns that assistant message, or None when
        the input is blank or another request is still in flight.
        """
        content = (self.pending_input if text is None else text).strip()
        if not content or self.loading:
            return None

        self._messages.append(Message(content=content, role="user"))
        self.loading = True
        self.pending_input = ""

        try:
            reply = await self.bridge.chat(content, self.selected_model)
        except BridgeUnavailable as e:
            logger.warning("Chat request failed: {}", e)
            reply = FALLBACK_REPLY
        finally:
            self.loading = False

        answer = Message(content=reply, role="assistant")
        self._messages.append(answer)
        return answer

    def reset(self) -> None:
        self._messages.clear()

    async def refresh_connectivity(self) -> bool:
        try:
            await self.bridge.health()
            self.connected = True
        except BridgeUnavailable as e:
            logger.info("Bridge health check failed: {}", e)
            self.connected = False
        return self.connected

    async def refresh_models(self) -> List[ModelInfo]:
        try:
            raw = await self.bridge.models()
            models = [
                ModelInfo(name=m["name"], size=int(m.get("size") or 0), modified_at=m.get("modified_at"))
                for m in raw
            ]
        except (BridgeUnavailable, KeyError, TypeError, ValueError) as e:
            logger.error("Failed to load models: {}", e)
            return self.models

        self.models = models
        if self.selected_model not in self.model_names():
            self.selected_model = self.default_model
        return self.models

    def model_names(self) -> List[str]:
        return [m.name for m in self.models] + [self.default_model]

    def select_model(self, name: str) -> bool:
        if name not in self.model_names():
            return False
        self.selected_model = name
        return True

    def model_choices(self) -> List[Tuple[str, str]]:
        """(label, value) pairs for a model picker, default placeholder included."""
        choices = [(f"{m.name} ({m.size_label})", m.name) for m in self.models]
        if self.default_model not in {m.name for m in self.models}:
            choices.append((self.default_model, self.default_model))
        return choices
