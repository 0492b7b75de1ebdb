"""
High-level code execution interface.

Orchestrates: security pre-check → language backend → result.
This is the single entry point for free execution requests.
"""

from __future__ import annotations

from structlog import get_logger

from codearena.config import SandboxConfig
from codearena.sandbox.backends import BackendRegistry, default_registry
from codearena.sandbox.errors import UnsupportedLanguage
from codearena.sandbox.models import ExecutionRequest, ExecutionResult, ExecutionStatus
from codearena.sandbox.security import SecurityGate

logger = get_logger()


class CodeExecutor:
    """
    Facade that combines security validation and backend execution.

    Usage::

        executor = CodeExecutor(SandboxConfig())
        result = await executor.execute("python", "print(1 + 1)")
    """

    def __init__(
        self,
        config: SandboxConfig,
        registry: BackendRegistry | None = None,
        security: SecurityGate | None = None,
    ) -> None:
        self._config = config
        self.registry = registry or default_registry(config)
        self.security = security or SecurityGate(
            reject_unknown_languages=config.reject_unknown_languages,
        )

    def supports(self, language: str) -> bool:
        return language in self.registry

    def languages(self) -> list[dict[str, str]]:
        return self.registry.languages()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(self, language: str, code: str, stdin_text: str = "") -> ExecutionResult:
        """
        Validate and execute ``code`` with the backend registered for ``language``.

        Raises:
            UnsupportedLanguage: no backend is registered for ``language``.

        Returns:
            ``ExecutionResult``; a security rejection comes back with
            ``status=SECURITY_BLOCKED`` before any workspace is created.
        """
        backend = self.registry.get(language)
        if backend is None:
            raise UnsupportedLanguage(language)

        # --- security pre-check ----------------------------------------
        check = self.security.validate(language, code)
        if not check.valid:
            return ExecutionResult(
                status=ExecutionStatus.SECURITY_BLOCKED,
                error=check.reason,
            )

        # --- execute ---------------------------------------------------
        request = ExecutionRequest(language=language, source_code=code, stdin_text=stdin_text)
        result = await backend.execute(request)

        logger.info(
            "Code execution finished",
            language=language,
            status=result.status.value,
            exit_code=result.exit_code,
            duration_ms=result.duration_ms,
        )
        return result
