"""Response translation between LlamaStack and OpenAI formats."""

import time
from typing import Any, Dict, List, Optional

from .models import (
    OWNED_BY,
    ErrorDetail,
    ErrorEnvelope,
    ModelsEnvelope,
    PublicModel,
    UpstreamModel,
)


def translate_upstream_model(model: UpstreamModel, created: int) -> PublicModel:
    """Convert one LlamaStack model to an OpenAI model record.

    The owner is always the adapter's upstream, never the per-model
    ``provider`` LlamaStack reports.
    """
    return PublicModel(
        id=model.id,
        object="model",
        created=created,
        owned_by=OWNED_BY,
    )


def translate_upstream_models(
    models: List[UpstreamModel],
    created: Optional[int] = None,
) -> List[PublicModel]:
    """Convert LlamaStack models to OpenAI format, preserving order.

    Args:
        models: Models decoded from LlamaStack
        created: Creation timestamp to stamp on every record (default: now)

    Returns:
        One PublicModel per input model
    """
    if created is None:
        created = int(time.time())
    return [translate_upstream_model(model, created) for model in models]


def build_models_envelope(models: List[PublicModel]) -> ModelsEnvelope:
    """Wrap translated models in an OpenAI list object."""
    return ModelsEnvelope(object="list", data=list(models))


def translate_error_response(
    message: str,
    error_type: str = "internal_error",
    code: Optional[str] = None,
) -> Dict[str, Any]:
    """Create an OpenAI-compatible error response body.

    Args:
        message: Human-readable error message
        error_type: Error category label
        code: Optional machine-readable code

    Returns:
        Error response dictionary; ``code`` is omitted when unset
    """
    envelope = ErrorEnvelope(error=ErrorDetail(message=message, type=error_type, code=code))
    return envelope.model_dump(exclude_none=True)
