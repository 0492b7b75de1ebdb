"""
Sandbox error taxonomy.

Backends raise these while running a phase; ``ExecutionBackend.execute``
converts them into an ``ExecutionResult`` carrying the matching status, so
free execution never raises.  Grading raises ``UnsupportedLanguage`` and
``EvaluatorProtocolError`` and the practice layer turns them into structured
responses.
"""

from __future__ import annotations

from codearena.sandbox.models import ExecutionStatus


class SandboxError(Exception):
    """Base class for sandbox failures."""

    status: ExecutionStatus = ExecutionStatus.RUNTIME_ERROR

    def __init__(self, message: str, *, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.stdout = stdout
        self.stderr = stderr


class SecurityRejected(SandboxError):
    """Source matched a denylisted pattern; nothing was executed."""

    status = ExecutionStatus.SECURITY_BLOCKED


class BinaryUnavailable(SandboxError):
    """A required compiler or interpreter is missing on the host."""

    status = ExecutionStatus.UNAVAILABLE


class CompileFailed(SandboxError):
    """The compiler exited non-zero."""

    status = ExecutionStatus.COMPILE_ERROR


class ExecutionRuntimeError(SandboxError):
    """The program exited non-zero or raised during execution."""

    status = ExecutionStatus.RUNTIME_ERROR


class ExecutionTimeout(SandboxError):
    """The wall-clock budget ran out and the program was killed."""

    status = ExecutionStatus.TIMEOUT


class EvaluatorProtocolError(SandboxError):
    """The grading harness produced no parseable verdict line."""


class UnsupportedLanguage(SandboxError):
    """The language has no backend or no harness template."""

    def __init__(self, language: str, message: str | None = None) -> None:
        super().__init__(message or f"Unsupported language: {language}")
        self.language = language
