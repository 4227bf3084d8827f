"""LlamaStack OpenAI Adapter

This package exposes a LlamaStack deployment's models through an
OpenAI-compatible /v1/models endpoint, with health, readiness and
liveness probes for orchestrators.
"""

__version__ = "1.0.0"

from .client import LlamaStackClient
from .config import AdapterConfig, load_config
from .server import create_app

__all__ = [
    "AdapterConfig",
    "LlamaStackClient",
    "create_app",
    "load_config",
]
