"""
Data models for session storage.
These define the shape of messages flowing between the coach and the model.
"""

from __future__ import annotations
from dataclasses import dataclass

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class Message:
    """A single message in a coaching session. Immutable once created."""
    role: str       # "system", "user", "assistant"
    content: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown message role: {self.role!r}")

    @classmethod
    def system(cls, content: str) -> Message:
        return cls("system", content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls("user", content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls("assistant", content)

    def to_openai_format(self) -> dict:
        """Export in OpenAI messages array format."""
        return {"role": self.role, "content": self.content}
