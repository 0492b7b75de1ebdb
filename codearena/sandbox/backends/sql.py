"""SQL backend: one private in-memory SQLite session per request."""

from __future__ import annotations

import sys
from pathlib import Path

from codearena.sandbox.backends import sql_session
from codearena.sandbox.backends.base import ExecutionBackend
from codearena.sandbox.models import ExecutionRequest, ExecutionResult
from codearena.sandbox.workspace import Workspace

_SESSION_SCRIPT = Path(sql_session.__file__)


class SqlBackend(ExecutionBackend):
    """
    Runs ``sql_session.py`` under the current interpreter in a workspace.

    The session script splits statements with completeness detection,
    translates ``SHOW``/``DESCRIBE`` aliases and prints result tables; the
    process runner enforces the session budget.
    """

    @property
    def language(self) -> str:
        return "sql"

    @property
    def label(self) -> str:
        return "SQL (SQLite In-Memory)"

    async def run(self, request: ExecutionRequest, workspace: Workspace | None) -> ExecutionResult:
        assert workspace is not None
        query = workspace.write("query.sql", request.source_code)
        runner = workspace.write("runner.py", _SESSION_SCRIPT.read_text(encoding="utf-8"))
        outcome = await self.runner.run(
            sys.executable,
            ["-I", str(runner), str(query)],
            work_dir=workspace.path,
            timeout=self.config.sql_timeout,
        )
        return self.result_from(outcome)
