"""
Request and response schemas for the HTTP API.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from codearena.grading.models import ChallengeDetail, ChallengeSummary
from codearena.sandbox.models import ExecutionStatus


class LanguageInfo(BaseModel):
    """A runnable language."""

    id: str = Field(description="Language identifier")
    label: str = Field(description="Display label")


# ---------------------------------------------------------------
# Free execution
# ---------------------------------------------------------------


class RunRequest(BaseModel):
    """Request to execute code once."""

    identity: str = Field(default="", description="Caller identity (e.g. email)")
    language: str = Field(default="javascript", description="Language identifier")
    code: str = Field(default="", description="Source code")
    stdin: str = Field(default="", description="Standard input for the program")


class RunResponse(BaseModel):
    """Captured output of one execution."""

    language: str
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    status: ExecutionStatus
    exit_code: int | None = None
    truncated: bool = False
    plot_image: str | None = Field(default=None, description="PNG data URI when a figure was produced")


# ---------------------------------------------------------------
# Practice arena
# ---------------------------------------------------------------


class ChallengeListResponse(BaseModel):
    challenges: list[ChallengeSummary]
    total: int


class ChallengeDetailResponse(BaseModel):
    challenge: ChallengeDetail


class SubmitRequest(BaseModel):
    """Graded submission."""

    identity: str = Field(default="", description="Caller identity (e.g. email)")
    challenge_id: str = Field(default="", description="Challenge id")
    language: str = Field(default="javascript", description="javascript or python")
    code: str = Field(default="", description="Source code")


class PracticeStatsResponse(BaseModel):
    attempts: int
    solved_count: int
    last_attempt_at: datetime | None = None


class SubmitResponse(BaseModel):
    """Verdict of a graded submission."""

    passed: bool
    passed_count: int
    total: int
    failed_at: int | None = None
    expected: Any = None
    actual: Any = None
    error: str = ""
    first_solve: bool = False
    protocol_error: bool = False
    practice_stats: PracticeStatsResponse


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(description="Error message")
    code: str = Field(description="Error code")
    details: dict[str, Any] | None = Field(default=None)
