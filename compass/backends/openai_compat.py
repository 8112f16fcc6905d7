"""
OpenAI-compatible backend with function-calling structured output.

The target schema is offered to the model as the only callable function and
tool_choice forces the call; the function arguments are then validated
against the same pydantic model. Works with OpenAI itself and any endpoint
that implements /chat/completions with tools.
"""

from __future__ import annotations

import json
import logging
import time

import httpx
from pydantic import BaseModel, ValidationError

from compass.backends.base import (
    BaseBackend,
    BackendResponse,
    CompletionError,
    SchemaValidationError,
)
from compass.storage.models import Message

logger = logging.getLogger(__name__)


class OpenAICompatibleBackend(BaseBackend):
    """Backend for OpenAI-compatible chat completion endpoints."""

    def __init__(
        self,
        name: str,
        url: str,
        model: str,
        api_key: str = "",
        timeout: int = 120,
    ):
        super().__init__(name=name, url=url, model=model, timeout=timeout)
        self.api_key = api_key

    @classmethod
    def from_config(cls, cfg: dict) -> OpenAICompatibleBackend:
        b_cfg = cfg["backend"]
        return cls(
            name="openai",
            url=b_cfg["url"],
            model=b_cfg["model"],
            api_key=b_cfg.get("api_key", ""),
            timeout=b_cfg.get("timeout", 120),
        )

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    @staticmethod
    def build_tool(name: str, schema: type[BaseModel]) -> dict:
        """Describe `schema` as a callable function for the model."""
        return {
            "type": "function",
            "function": {
                "name": name,
                "description": (schema.__doc__ or f"Correctly extracted `{name}`").strip(),
                "parameters": schema.model_json_schema(),
            },
        }

    @staticmethod
    def _extract_arguments(message: dict, name: str) -> str | None:
        """Pull the raw JSON arguments of the `name` call out of a reply."""
        for call in message.get("tool_calls") or []:
            fn = call.get("function", {})
            if fn.get("name") == name:
                return fn.get("arguments")
        # Older endpoints still answer with the legacy function_call field
        fn = message.get("function_call") or {}
        if fn.get("name") == name:
            return fn.get("arguments")
        return None

    def _failure(self, t0: float, error: str, status_code: int = 0) -> BackendResponse:
        return BackendResponse(
            ok=False,
            status_code=status_code,
            backend_name=self.name,
            latency_ms=(time.monotonic() - t0) * 1000,
            error=error,
        )

    async def forward(self, body: dict) -> BackendResponse:
        """POST one non-streaming chat completion."""
        if not self.api_key:
            return BackendResponse(
                ok=False, backend_name=self.name,
                error="No API key configured",
            )

        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.url}/chat/completions",
                    json=body,
                    headers=self._headers(),
                )
        except httpx.TimeoutException:
            logger.warning("Backend '%s' timed out after %ss", self.name, self.timeout)
            return self._failure(t0, f"Timeout after {self.timeout}s")
        except httpx.HTTPError as e:
            logger.warning("Backend '%s' failed: %s", self.name, e)
            return self._failure(t0, str(e))

        if resp.status_code >= 400:
            return self._failure(
                t0, f"HTTP {resp.status_code}: {resp.text[:200]}", resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            return self._failure(t0, f"Response is not JSON: {e}", resp.status_code)

        return BackendResponse(
            ok=True,
            status_code=resp.status_code,
            data=data,
            backend_name=self.name,
            latency_ms=(time.monotonic() - t0) * 1000,
        )

    async def complete_structured(
        self,
        messages: list[Message],
        name: str,
        schema: type[BaseModel],
    ) -> BaseModel:
        body = {
            "model": self.model,
            "messages": [m.to_openai_format() for m in messages],
            "tools": [self.build_tool(name, schema)],
            "tool_choice": {"type": "function", "function": {"name": name}},
        }
        result = await self.forward(body)
        if not result.ok:
            raise CompletionError(result.error)

        raw = self._extract_arguments(result.message, name)
        if raw is None:
            raise CompletionError(f"Model did not call '{name}'")

        try:
            payload = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            raise SchemaValidationError(f"'{name}' arguments are not JSON: {e}") from e

        try:
            parsed = schema.model_validate(payload)
        except ValidationError as e:
            raise SchemaValidationError(f"'{name}' payload failed validation: {e}") from e

        logger.info(
            "Backend '%s' returned %s in %.0fms",
            self.name, name, result.latency_ms,
        )
        return parsed
