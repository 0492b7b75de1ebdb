"""
Direct-interpreter backends: write the source into the workspace and invoke
the interpreter once.  No compile phase.
"""

from __future__ import annotations

import base64
import os
import re
from abc import abstractmethod
from pathlib import Path

from structlog import get_logger

from codearena.sandbox.backends.base import ExecutionBackend
from codearena.sandbox.models import ExecutionRequest, ExecutionResult
from codearena.sandbox.workspace import Workspace

logger = get_logger()

PLOT_SENTINEL = "__CODEARENA_PLOT__:"
PLOT_USAGE = re.compile(r"\bmatplotlib\b|\bpyplot\b|\bplt\.")

_PLOT_SNIPPET = """

# Auto-capture plot output for inline preview.
try:
    import matplotlib.pyplot as __codearena_plt
    if __codearena_plt.get_fignums():
        __codearena_plt.savefig({path!r}, dpi=140, bbox_inches="tight")
        print({sentinel!r} + {path!r})
except Exception:
    pass
"""


class InterpreterBackend(ExecutionBackend):
    """Runs ``<binary> <args> main.<ext>`` inside the workspace."""

    source_name: str = "main"
    extension: str = ""
    interpreter_args: tuple[str, ...] = ()

    @property
    @abstractmethod
    def binary(self) -> str:
        """Interpreter executable."""

    @property
    @abstractmethod
    def timeout(self) -> float:
        """Run budget in seconds."""

    def command_args(self, source: Path) -> list[str]:
        return [*self.interpreter_args, str(source)]

    async def run(self, request: ExecutionRequest, workspace: Workspace | None) -> ExecutionResult:
        assert workspace is not None
        source = workspace.write(f"{self.source_name}.{self.extension}", request.source_code)
        outcome = await self.runner.run(
            self.binary,
            self.command_args(source),
            work_dir=workspace.path,
            stdin_text=request.stdin_text,
            timeout=self.timeout,
        )
        return self.result_from(outcome)


class GoBackend(InterpreterBackend):
    extension = "go"

    @property
    def language(self) -> str:
        return "go"

    @property
    def label(self) -> str:
        return "Go (Run)"

    @property
    def binary(self) -> str:
        return self.config.go_binary

    @property
    def timeout(self) -> float:
        return self.config.go_timeout

    def command_args(self, source: Path) -> list[str]:
        return ["run", str(source)]


class RubyBackend(InterpreterBackend):
    extension = "rb"

    @property
    def language(self) -> str:
        return "ruby"

    @property
    def label(self) -> str:
        return "Ruby (Run)"

    @property
    def binary(self) -> str:
        return self.config.ruby_binary

    @property
    def timeout(self) -> float:
        return self.config.ruby_timeout


class PhpBackend(InterpreterBackend):
    extension = "php"

    @property
    def language(self) -> str:
        return "php"

    @property
    def label(self) -> str:
        return "PHP (Run)"

    @property
    def binary(self) -> str:
        return self.config.php_binary

    @property
    def timeout(self) -> float:
        return self.config.php_timeout


class PythonBackend(InterpreterBackend):
    """
    ``python3 -I script.py`` with best-effort matplotlib capture.

    When the source looks like it plots, a snippet is appended that saves the
    current figure into the workspace and prints a sentinel line with its
    path.  The sentinel is stripped from stdout and the image is returned as
    a ``data:`` URI.
    """

    source_name = "script"
    extension = "py"
    interpreter_args = ("-I",)

    @property
    def language(self) -> str:
        return "python"

    @property
    def label(self) -> str:
        return "Python (Restricted)"

    @property
    def binary(self) -> str:
        return self.config.python_binary

    @property
    def timeout(self) -> float:
        return self.config.python_timeout

    @staticmethod
    def uses_plotting(source_code: str) -> bool:
        return PLOT_USAGE.search(source_code) is not None

    async def run(self, request: ExecutionRequest, workspace: Workspace | None) -> ExecutionResult:
        assert workspace is not None
        capture = request.capture_plots and self.uses_plotting(request.source_code)
        if not capture:
            return await super().run(request, workspace)

        plot_file = workspace.file("plot.png")
        code = request.source_code + _PLOT_SNIPPET.format(path=str(plot_file), sentinel=PLOT_SENTINEL)
        source = workspace.write(f"{self.source_name}.{self.extension}", code)
        outcome = await self.runner.run(
            self.binary,
            self.command_args(source),
            work_dir=workspace.path,
            stdin_text=request.stdin_text,
            timeout=self.timeout,
            env={**os.environ, "MPLBACKEND": "Agg"},
            clip=False,
        )

        stdout, plot_path = self.extract_plot(outcome.stdout)
        result = self.result_from(outcome)
        result.stdout = self.clip(stdout)
        result.stderr = self.clip(outcome.stderr)
        # Only the workspace's own plot file is ever read back.
        if plot_path and Path(plot_path) == plot_file:
            result.plot_image = self._encode_plot(plot_file)
        return result

    @staticmethod
    def extract_plot(stdout: str) -> tuple[str, str]:
        """Split sentinel lines out of ``stdout``; returns (visible text, plot path)."""
        visible: list[str] = []
        plot_path = ""
        for line in stdout.splitlines():
            if line.startswith(PLOT_SENTINEL):
                plot_path = line[len(PLOT_SENTINEL):].strip()
            else:
                visible.append(line)
        return "\n".join(visible).rstrip("\n"), plot_path

    @staticmethod
    def _encode_plot(path: Path) -> str:
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.debug("Plot image unavailable", path=str(path), error=str(exc))
            return ""
        return "data:image/png;base64," + base64.b64encode(data).decode("ascii")
