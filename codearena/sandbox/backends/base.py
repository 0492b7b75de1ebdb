"""
Execution backend interface.

State machine per invocation::

    prepare (workspace + source) -> run ([compile] -> run -> collect) -> cleanup

``cleanup`` always runs, whichever earlier state failed.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

from structlog import get_logger

from codearena.config import SandboxConfig
from codearena.sandbox.errors import SandboxError
from codearena.sandbox.models import (
    ExecutionRequest,
    ExecutionResult,
    ExecutionStatus,
    ProcessOutcome,
    clip_output,
)
from codearena.sandbox.process import ProcessRunner
from codearena.sandbox.workspace import Workspace

logger = get_logger()


class ExecutionBackend(ABC):
    """Abstract base class for one language family's execution strategy."""

    #: Whether the backend spawns processes inside a workspace.
    uses_workspace: bool = True

    def __init__(self, config: SandboxConfig, runner: ProcessRunner | None = None) -> None:
        self.config = config
        self.runner = runner or ProcessRunner(
            clip_limit=config.output_clip_limit,
            max_capture_bytes=config.max_capture_bytes,
        )

    @property
    @abstractmethod
    def language(self) -> str:
        """Language identifier, e.g. ``"python"``."""

    @property
    @abstractmethod
    def label(self) -> str:
        """Human-readable label shown to users."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def prepare(self, request: ExecutionRequest) -> Workspace | None:
        """Create the workspace for ``request`` (``None`` for in-process backends)."""
        if not self.uses_workspace:
            return None
        return Workspace.create(
            prefix=f"{self.config.workspace_prefix}{self.language}-",
            root=self.config.workspace_root,
        )

    @abstractmethod
    async def run(self, request: ExecutionRequest, workspace: Workspace | None) -> ExecutionResult:
        """Write source, compile if needed, run and collect output."""

    def cleanup(self, workspace: Workspace | None) -> None:
        if workspace is not None:
            workspace.remove()

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Run the full lifecycle and always return a structured result."""
        start = time.monotonic()
        workspace: Workspace | None = None
        try:
            workspace = self.prepare(request)
            result = await self.run(request, workspace)
        except SandboxError as exc:
            result = ExecutionResult(
                status=exc.status,
                stdout=self.clip(exc.stdout),
                stderr=self.clip(exc.stderr or exc.message),
            )
        except Exception as exc:
            logger.error("Backend failure", language=self.language, error=str(exc), exc_info=True)
            result = ExecutionResult(
                status=ExecutionStatus.RUNTIME_ERROR,
                stderr=self.clip(str(exc) or f"{self.label} execution failed"),
            )
        finally:
            self.cleanup(workspace)

        result.duration_ms = int((time.monotonic() - start) * 1000)
        result.truncated = self._was_clipped(result)
        logger.info(
            "Backend finished",
            language=self.language,
            status=result.status.value,
            duration_ms=result.duration_ms,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def clip(self, text: str | None) -> str:
        return clip_output(text, self.config.output_clip_limit)

    def result_from(self, outcome: ProcessOutcome) -> ExecutionResult:
        """Convert a run-phase ``ProcessOutcome`` into an ``ExecutionResult``."""
        return ExecutionResult(
            status=outcome.status,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            exit_code=outcome.exit_code,
        )

    def _was_clipped(self, result: ExecutionResult) -> bool:
        limit = self.config.output_clip_limit
        return len(result.stdout) > limit or len(result.stderr) > limit
