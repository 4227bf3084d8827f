"""Wire schemas for the LlamaStack upstream and the OpenAI-compatible surface."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


OWNED_BY = "llamastack"


class UpstreamModel(BaseModel):
    """A model as reported by LlamaStack's /v1/models."""

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    provider: Optional[str] = None
    type: Optional[str] = None


class UpstreamModelList(BaseModel):
    """LlamaStack /v1/models response body."""

    models: List[UpstreamModel] = Field(default_factory=list)

    @field_validator("models", mode="before")
    @classmethod
    def _null_models(cls, value):
        return [] if value is None else value


class PublicModel(BaseModel):
    """Model information in OpenAI format."""

    id: str
    object: str = "model"
    created: int
    owned_by: str = OWNED_BY


class ModelsEnvelope(BaseModel):
    """Model list response in OpenAI format."""

    object: str = "list"
    data: List[PublicModel] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    message: str
    type: str
    code: Optional[str] = None


class ErrorEnvelope(BaseModel):
    """OpenAI-style error body."""

    error: ErrorDetail


class HealthSnapshot(BaseModel):
    """Deep health report for /health."""

    status: str
    timestamp: datetime
    services: Dict[str, str] = Field(default_factory=dict)
    version: str
    uptime: str
