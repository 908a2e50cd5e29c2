from pydantic import BaseModel, Field
from typing import List, Optional


class ChatRequest(BaseModel):
    # Optional so a missing message is reported as 400, not a 422 validation error
    message: Optional[str] = None
    model: Optional[str] = None


class ChatResponse(BaseModel):
    response: str = Field(..., description="Model response text")


class ErrorResponse(BaseModel):
    error: str


class ModelInfo(BaseModel):
    name: str
    size: int = 0
    modified_at: Optional[str] = None


class ModelsResponse(BaseModel):
    models: List[ModelInfo] = []


class HealthResponse(BaseModel):
    status: str
    upstream: str
