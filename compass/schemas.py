"""
Structured shapes for the two conversation phases, plus request bodies.

The phase models double as the function-calling schema sent to the model:
their JSON schema becomes the function's parameters, and the returned
arguments are validated back into the same model.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Phase 1: option proposal
# ---------------------------------------------------------------------------

class Option(BaseModel):
    title: str = Field(description="The title of the action item")
    description: str = Field(description="The description of the action item.")
    percentageOfSuccess: int = Field(description="The percentage of success")
    pros: list[str] = Field(description="The pros of the action item")
    cons: list[str] = Field(description="The cons of the action item")

    @field_validator("percentageOfSuccess", mode="before")
    @classmethod
    def numeric_only(cls, value):
        # 72.0 passes and 72.5 fails in int validation; "72" and true never do
        if isinstance(value, (str, bool)):
            raise ValueError("must be a JSON number")
        return value


class Project(BaseModel):
    """Options the user can pick from, framed as a project."""
    projectName: str = Field(description="The name of the project")
    projectDescription: str = Field(
        description="The description of the project. Be specific."
    )
    options: list[Option] = Field(description="The options to choose from")


# ---------------------------------------------------------------------------
# Phase 2: action-item breakdown
# ---------------------------------------------------------------------------

class Issue(BaseModel):
    task: str = Field(description="The task of the issue")
    description: str = Field(description="The description of the issue.")
    priority: str = Field(description="The priority of the issue")
    deadline: str = Field(description="The deadline of the issue")
    potentialBlockers: list[str] = Field(
        description="The potential blockers of the issue"
    )


class Issues(BaseModel):
    """Action items for the selected option."""
    projectName: str = Field(description="The name of the project")
    projectDescription: str = Field(
        description="The description of the project. Be specific."
    )
    actionItems: list[Issue] = Field(
        description="The action items of the selected option"
    )


def schema_for_phase(selected_option: str | None) -> tuple[str, type[BaseModel]]:
    """Return (function name, model) for the active phase."""
    if selected_option:
        return "Issues", Issues
    return "Project", Project


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class AskRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    now: str = Field(min_length=1)
    then: str = Field(min_length=1)


class SelectOptionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    selectedOption: str = Field(min_length=1)
    # An empty or unknown chatId is a history miss, reported separately
    chatId: str = ""
