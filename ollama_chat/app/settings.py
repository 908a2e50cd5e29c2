import os
from functools import lru_cache
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "configs/config.yaml"
DEFAULT_MODEL = "llama3:latest"

# env var -> (section, field)
ENV_OVERRIDES = {
    "OLLAMA_URL": ("ollama", "base_url"),
    "OLLAMA_MODEL": ("ollama", "default_model"),
    "CHAT_API_BASE": ("ui", "api_base"),
    "LOG_LEVEL": ("logging", "level"),
}


class Timeouts(BaseModel):
    connect: float = 5.0
    read: float = 120.0


class Ollama(BaseModel):
    base_url: str = "http://127.0.0.1:11434"
    default_model: str = DEFAULT_MODEL
    # sampling options sent with every generate call
    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 40


class Server(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000


class UI(BaseModel):
    host: str = "127.0.0.1"
    port: int = 7860
    api_base: str = "http://127.0.0.1:8000"
    cors_origins: List[str] = [
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:7860",
        "http://127.0.0.1:7860",
    ]


class Logging(BaseModel):
    level: str = "INFO"


class Settings(BaseModel):
    server: Server = Field(default_factory=Server)
    ui: UI = Field(default_factory=UI)
    ollama: Ollama = Field(default_factory=Ollama)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    logging: Logging = Field(default_factory=Logging)


def load_settings(path: Optional[str] = None) -> Settings:
    path = path or os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH)
    data = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    settings = Settings(**data)
    for var, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value:
            setattr(getattr(settings, section), field, value)
    return settings


@lru_cache
def get_settings() -> Settings:
    return load_settings()
