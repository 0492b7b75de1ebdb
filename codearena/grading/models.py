"""
Data models for graded practice challenges.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


class NormalizationMode(str, Enum):
    """How values are canonicalized before comparison."""
    NONE = "none"
    SORT = "sort"
    SORT_NESTED = "sort-nested"


class TestCase(BaseModel):
    """One hidden test: positional arguments and the expected return value."""

    __test__ = False  # not a pytest class

    model_config = ConfigDict(frozen=True)

    args: tuple[Any, ...] = Field(default=(), description="Positional arguments")
    expected: Any = Field(default=None, description="Expected return value")


class ChallengeExample(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: str
    output: str


class Challenge(BaseModel):
    """A graded problem. Immutable once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    difficulty: str
    category: str
    interview: bool = False
    tags: tuple[str, ...] = ()
    statement: str
    constraints: tuple[str, ...] = ()
    examples: tuple[ChallengeExample, ...] = ()
    function_name: str = Field(default="solve", alias="functionName")
    tests: tuple[TestCase, ...] = ()
    normalize: NormalizationMode = NormalizationMode.NONE
    starter_code: dict[str, str] = Field(default_factory=dict, alias="starterCode")

    @field_validator("function_name")
    @classmethod
    def validate_function_name(cls, v: str) -> str:
        if not _IDENTIFIER.match(v):
            raise ValueError(f"function name must be an identifier, got {v!r}")
        return v

    @field_validator("normalize", mode="before")
    @classmethod
    def validate_normalize(cls, v: Any) -> Any:
        return v or NormalizationMode.NONE


class ChallengeSummary(BaseModel):
    """Public listing entry."""

    id: str
    title: str
    difficulty: str
    category: str
    interview: bool
    tags: list[str]


class ChallengeDetail(ChallengeSummary):
    """Public detail view; hidden tests are reduced to a count."""

    statement: str
    constraints: list[str]
    examples: list[ChallengeExample]
    starter_code: dict[str, str]
    test_count: int


class Verdict(BaseModel):
    """Structured pass/fail outcome of one grading run."""

    model_config = ConfigDict(populate_by_name=True)

    passed: bool
    passed_count: int = Field(default=0, alias="passedCount", ge=0)
    total: int = Field(default=0, ge=0)
    failed_at: int | None = Field(default=None, alias="failedAt", ge=1)
    expected: Any = None
    actual: Any = None
    error: str | None = None
