"""
Model backends for Compass.
"""
from compass.backends.base import (
    BaseBackend,
    BackendResponse,
    CompletionError,
    SchemaValidationError,
)
from compass.backends.openai_compat import OpenAICompatibleBackend

__all__ = [
    "BaseBackend",
    "BackendResponse",
    "CompletionError",
    "SchemaValidationError",
    "OpenAICompatibleBackend",
]
