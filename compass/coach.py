"""
Coach: the two-phase conversation on top of a structured-output backend.

Phase 1 (ask): the user says where they are ([NOW]) and where they want to
be ([THEN]); the model proposes options as a Project.
Phase 2 (select_option): the user picks an option ([SELECTED_OPTION]); the
model breaks it down into Issues.

Per-session state lives only in the SessionStore. now/then are not stored
as fields: they are recovered from the tagged user message on phase 2.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel

from compass.backends.base import BaseBackend
from compass.schemas import schema_for_phase
from compass.storage.models import Message
from compass.storage.session_store import SessionStore

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a life coach and you can help users with their life problems. "
    "You understand the user's options, research for them, calculate the best "
    "path forward, estimate % based on the end goals, label the % on top of the "
    "options and help them make a decision. \n"
    "User will provide where they are and where they want to be. \n"
    "You will show me the options to choose from. \n"
    "Wait for [SELECTED_OPTION]. Do not proceed until a selected option is provided. \n"
)

SELECTION_ACK = (
    "Create a project name, project description and action items for the "
    "[SELECTED_OPTION]. \n"
)

_NOW_RE = re.compile(r"\[NOW\] (.*)\n")
_THEN_RE = re.compile(r"\[THEN\] (.*)")


class MissingHistoryError(Exception):
    """The session has no recoverable [NOW]/[THEN] message."""


class SessionState(str, Enum):
    NEW = "new"
    AWAITING_SELECTION = "awaiting_selection"
    COMPLETE = "complete"


@dataclass
class PhaseResult:
    data: BaseModel
    id: str

    def to_dict(self) -> dict:
        return {"data": self.data.model_dump(), "id": self.id}


def new_session_id() -> str:
    """Random UUID v4 in canonical textual form."""
    return str(uuid.uuid4())


def format_situation(now: str, then: str) -> str:
    return f"[NOW] {now}\n[THEN] {then}"


def format_selection(selected_option: str) -> str:
    return f"[SELECTED_OPTION] {selected_option}"


def extract_now_then(messages: list[Message]) -> tuple[str, str]:
    """
    Recover now/then from the tagged user message(s). Later matches win.
    Returns empty strings for whatever could not be found.

    A value containing a newline only survives up to the first line break.
    """
    now, then = "", ""
    for msg in messages:
        if msg.role != "user":
            continue
        match_now = _NOW_RE.search(msg.content)
        match_then = _THEN_RE.search(msg.content)
        if match_now:
            now = match_now.group(1)
        if match_then:
            then = match_then.group(1)
    return now, then


def session_state(messages: list[Message]) -> SessionState:
    if not messages:
        return SessionState.NEW
    if any(m.role == "assistant" and m.content == SELECTION_ACK for m in messages):
        return SessionState.COMPLETE
    return SessionState.AWAITING_SELECTION


class Coach:
    """Builds phase prompts, calls the backend, records history."""

    def __init__(self, backend: BaseBackend, store: SessionStore):
        self.backend = backend
        self.store = store

    def build_messages(
        self,
        now: str,
        then: str,
        selected_option: str | None = None,
        prior_messages: list[Message] | None = None,
    ) -> list[Message]:
        """Full context for the next model call: prior history plus this phase."""
        messages = list(prior_messages or [])

        if not messages:
            messages.append(Message.system(SYSTEM_PROMPT))
            messages.append(Message.user(format_situation(now, then)))

        if selected_option:
            messages.append(Message.assistant(SELECTION_ACK))
            messages.append(Message.user(format_selection(selected_option)))

        return messages

    async def run_phase(
        self,
        now: str,
        then: str,
        selected_option: str | None = None,
        prior_messages: list[Message] | None = None,
        session_id: str | None = None,
    ) -> PhaseResult:
        """
        Run one schema-constrained completion for a session.

        History is only written after the backend returns a validated
        payload; any backend failure propagates with the store untouched.
        """
        if not session_id:
            session_id = new_session_id()

        prior = list(prior_messages or [])
        messages = self.build_messages(now, then, selected_option, prior)
        name, schema = schema_for_phase(selected_option)

        logger.debug(
            "Session %s: %s phase, %d messages in context",
            session_id, name, len(messages),
        )
        data = await self.backend.complete_structured(messages, name, schema)

        # Prior messages are already stored, so only the new tail is appended.
        # Re-appending the whole context would duplicate history on phase 2.
        self.store.append(session_id, messages[len(prior):])
        return PhaseResult(data=data, id=session_id)

    async def ask(self, now: str, then: str) -> PhaseResult:
        """Phase 1 on a fresh session."""
        result = await self.run_phase(now, then)
        logger.info("Session %s started", result.id)
        return result

    async def select_option(self, selected_option: str, chat_id: str) -> PhaseResult:
        """
        Phase 2 for an existing session.

        A repeated selection on a completed session runs another round and
        appends it to the same history.
        """
        if not chat_id or chat_id not in self.store:
            raise MissingHistoryError("Missing 'now' or 'then' in chat history.")

        async with self.store.lock(chat_id):
            prior = self.store.read(chat_id)
            now, then = extract_now_then(prior)
            if not now or not then:
                raise MissingHistoryError("Missing 'now' or 'then' in chat history.")

            if session_state(prior) is SessionState.COMPLETE:
                logger.info("Session %s: another selection after completion", chat_id)

            result = await self.run_phase(
                now, then,
                selected_option=selected_option,
                prior_messages=prior,
                session_id=chat_id,
            )
            self.store.append(chat_id, [Message.user(format_selection(selected_option))])

        logger.info("Session %s: option selected", chat_id)
        return result
