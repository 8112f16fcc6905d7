"""
Base backend abstraction.
A backend turns a message list plus a pydantic schema into a validated
instance of that schema, or raises CompletionError.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field

from pydantic import BaseModel

from compass.storage.models import Message

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """The model call failed: network, auth, rate limit, timeout, bad payload."""


class SchemaValidationError(CompletionError):
    """The model replied, but its payload does not match the requested schema."""


@dataclass
class BackendResponse:
    """Standardized raw response from a backend."""
    ok: bool
    status_code: int = 200
    data: dict = field(default_factory=dict)
    backend_name: str = ""
    latency_ms: float = 0.0
    error: str = ""

    @property
    def message(self) -> dict:
        """The first choice's assistant message, or {}."""
        choices = self.data.get("choices", [])
        if choices:
            return choices[0].get("message", {}) or {}
        return {}


class BaseBackend(abc.ABC):
    """
    Abstract base for LLM backends.
    Each backend turns messages plus a schema into a validated reply.
    """

    def __init__(self, name: str, url: str, model: str, timeout: int = 120):
        self.name = name
        self.url = url.rstrip("/")
        self.model = model
        self.timeout = timeout

    @abc.abstractmethod
    async def complete_structured(
        self,
        messages: list[Message],
        name: str,
        schema: type[BaseModel],
    ) -> BaseModel:
        """
        Ask the model to answer in the shape of `schema`.
        Returns a validated instance; raises CompletionError otherwise.
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} url={self.url!r} model={self.model!r}>"
