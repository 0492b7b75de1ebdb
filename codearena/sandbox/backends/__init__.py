"""Execution backends, one per language family."""

from __future__ import annotations

from structlog import get_logger

from codearena.config import SandboxConfig
from codearena.sandbox.backends.base import ExecutionBackend
from codearena.sandbox.backends.compiled import CFamilyBackend, CSharpBackend, JavaBackend
from codearena.sandbox.backends.interpreted import GoBackend, PhpBackend, PythonBackend, RubyBackend
from codearena.sandbox.backends.javascript import JavaScriptBackend
from codearena.sandbox.backends.sql import SqlBackend
from codearena.sandbox.process import ProcessRunner

logger = get_logger()


class BackendRegistry:
    """Registry of available execution backends keyed by language id."""

    def __init__(self) -> None:
        self._backends: dict[str, ExecutionBackend] = {}

    def register(self, backend: ExecutionBackend) -> None:
        self._backends[backend.language] = backend
        logger.debug("Backend registered", language=backend.language)

    def get(self, language: str) -> ExecutionBackend | None:
        return self._backends.get(language)

    def __contains__(self, language: object) -> bool:
        return language in self._backends

    def languages(self) -> list[dict[str, str]]:
        """``[{id, label}]`` in registration order."""
        return [{"id": b.language, "label": b.label} for b in self._backends.values()]


def default_registry(config: SandboxConfig, runner: ProcessRunner | None = None) -> BackendRegistry:
    """Register every built-in backend sharing one process runner."""
    runner = runner or ProcessRunner(
        clip_limit=config.output_clip_limit,
        max_capture_bytes=config.max_capture_bytes,
    )
    registry = BackendRegistry()
    for backend in (
        JavaScriptBackend(config, runner),
        PythonBackend(config, runner),
        CFamilyBackend(config, runner),
        CFamilyBackend(config, runner, cpp=True),
        JavaBackend(config, runner),
        GoBackend(config, runner),
        RubyBackend(config, runner),
        PhpBackend(config, runner),
        CSharpBackend(config, runner),
        SqlBackend(config, runner),
    ):
        registry.register(backend)
    return registry


__all__ = ["BackendRegistry", "ExecutionBackend", "default_registry"]
