"""
Shared fixtures: a scripted backend that records every call.
"""

import pytest

from compass.backends.base import BaseBackend, CompletionError
from compass.schemas import Issue, Issues, Option, Project


def make_project(name="Career switch") -> Project:
    return Project(
        projectName=name,
        projectDescription="Move from accounting into data engineering.",
        options=[
            Option(
                title="Bootcamp",
                description="Twelve-week intensive.",
                percentageOfSuccess=65,
                pros=["fast"],
                cons=["expensive"],
            ),
            Option(
                title="Self-study",
                description="Evenings and weekends.",
                percentageOfSuccess=40,
                pros=[],
                cons=[],
            ),
        ],
    )


def make_issues(name="Career switch") -> Issues:
    return Issues(
        projectName=name,
        projectDescription="Bootcamp route.",
        actionItems=[
            Issue(
                task="Pick a bootcamp",
                description="Compare three programs.",
                priority="high",
                deadline="2 weeks",
                potentialBlockers=["cost"],
            )
        ],
    )


class FakeBackend(BaseBackend):
    """Returns canned payloads per schema name; optionally fails."""

    def __init__(self, fail: Exception | None = None):
        super().__init__(name="fake", url="http://fake", model="fake-model")
        self.api_key = "sk-fake"
        self.fail = fail
        self.calls: list[dict] = []

    async def complete_structured(self, messages, name, schema):
        self.calls.append({"messages": list(messages), "name": name, "schema": schema})
        if self.fail is not None:
            raise self.fail
        return make_issues() if name == "Issues" else make_project()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def failing_backend():
    return FakeBackend(fail=CompletionError("HTTP 500: upstream exploded"))
