"""Data models for the code execution sandbox."""

from dataclasses import dataclass
from enum import Enum

TRUNCATION_SUFFIX = "\n...output truncated..."
DEFAULT_CLIP_LIMIT = 8000


def clip_output(text: str | None, limit: int = DEFAULT_CLIP_LIMIT) -> str:
    """Bound ``text`` to ``limit`` characters, appending the truncation suffix."""
    raw = text or ""
    if len(raw) <= limit:
        return raw
    return raw[:limit] + TRUNCATION_SUFFIX


class ExecutionStatus(str, Enum):
    """Outcome category of a code execution."""

    SUCCESS = "success"
    RUNTIME_ERROR = "runtime_error"
    COMPILE_ERROR = "compile_error"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    SECURITY_BLOCKED = "security_blocked"


@dataclass(frozen=True)
class ExecutionRequest:
    """Immutable input to an execution backend."""

    language: str
    source_code: str
    stdin_text: str = ""
    capture_plots: bool = True


@dataclass
class ExecutionResult:
    """Result of a sandbox code execution."""

    status: ExecutionStatus
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    exit_code: int | None = None
    error: str | None = None
    truncated: bool = False
    plot_image: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS


@dataclass(frozen=True)
class ProcessOutcome:
    """What the process runner observed for one child process."""

    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def launch_failed(self) -> bool:
        """True when the binary could not be started at all."""
        return self.exit_code is None and not self.timed_out

    @property
    def status(self) -> ExecutionStatus:
        if self.timed_out:
            return ExecutionStatus.TIMEOUT
        if self.launch_failed:
            return ExecutionStatus.UNAVAILABLE
        if self.exit_code != 0:
            return ExecutionStatus.RUNTIME_ERROR
        return ExecutionStatus.SUCCESS


@dataclass(frozen=True)
class SecurityCheckResult:
    """Result of the static source pre-check."""

    valid: bool
    reason: str | None = None
