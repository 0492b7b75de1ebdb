"""
Two-phase compile-then-run backends.

A non-zero compiler exit short-circuits with the compiler's own diagnostics
and the program is never started.  The run phase has its own, shorter budget.
"""

from __future__ import annotations

import re
from abc import abstractmethod
from pathlib import Path

from structlog import get_logger

from codearena.sandbox.backends.base import ExecutionBackend
from codearena.sandbox.errors import BinaryUnavailable, CompileFailed, ExecutionTimeout
from codearena.sandbox.models import ExecutionRequest, ExecutionResult, ProcessOutcome
from codearena.sandbox.workspace import Workspace

logger = get_logger()


class CompiledBackend(ExecutionBackend):
    """Template for ``compile`` then ``run`` inside one workspace."""

    @abstractmethod
    async def compile(self, request: ExecutionRequest, workspace: Workspace) -> list[str]:
        """Compile the source and return the command line that runs it."""

    @property
    @abstractmethod
    def run_timeout(self) -> float:
        """Budget for the run phase in seconds."""

    async def run(self, request: ExecutionRequest, workspace: Workspace | None) -> ExecutionResult:
        assert workspace is not None
        command = await self.compile(request, workspace)
        outcome = await self.runner.run(
            command[0],
            command[1:],
            work_dir=workspace.path,
            stdin_text=request.stdin_text,
            timeout=self.run_timeout,
        )
        return self.result_from(outcome)

    @staticmethod
    def check_compile(compiler: str, outcome: ProcessOutcome) -> None:
        """Raise the matching taxonomy error unless the compiler succeeded."""
        if outcome.exit_code == 0:
            return
        if outcome.timed_out:
            raise ExecutionTimeout(
                f"{compiler} timed out",
                stdout=outcome.stdout,
                stderr=outcome.stderr,
            )
        if outcome.launch_failed:
            raise BinaryUnavailable(f"{compiler} is unavailable", stderr=outcome.stderr)
        raise CompileFailed(
            f"{compiler} exited with {outcome.exit_code}",
            stdout=outcome.stdout,
            stderr=outcome.stderr or f"{compiler} is unavailable or compilation failed.",
        )


class CFamilyBackend(CompiledBackend):
    """C (``gcc -std=c11``) and C++ (``g++ -std=c++17``)."""

    def __init__(self, *args, cpp: bool = False, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.cpp = cpp

    @property
    def language(self) -> str:
        return "cpp" if self.cpp else "c"

    @property
    def label(self) -> str:
        return "C++ (Compile & Run)" if self.cpp else "C (Compile & Run)"

    @property
    def run_timeout(self) -> float:
        return self.config.c_run_timeout

    async def compile(self, request: ExecutionRequest, workspace: Workspace) -> list[str]:
        if self.cpp:
            compiler, source_name, standard = self.config.gxx_binary, "main.cpp", "-std=c++17"
        else:
            compiler, source_name, standard = self.config.gcc_binary, "main.c", "-std=c11"
        source = workspace.write(source_name, request.source_code)
        binary = workspace.file("app.out")

        outcome = await self.runner.run(
            compiler,
            [str(source), "-O0", standard, "-o", str(binary)],
            work_dir=workspace.path,
            timeout=self.config.c_compile_timeout,
        )
        self.check_compile(compiler, outcome)
        return [str(binary)]


_PUBLIC_CLASS = re.compile(r"\bpublic\s+(?:final\s+|abstract\s+)?class\s+([A-Za-z_][A-Za-z0-9_]*)\b")
_ANY_CLASS = re.compile(r"\bclass\s+([A-Za-z_][A-Za-z0-9_]*)\b")
_NAME_HINTS = (
    re.compile(r"should be declared in a file named\s+([A-Za-z_][A-Za-z0-9_]*)\.java", re.IGNORECASE),
    re.compile(r"file named\s+([A-Za-z_][A-Za-z0-9_]*)\.java", re.IGNORECASE),
    re.compile(r"class\s+([A-Za-z_][A-Za-z0-9_]*)\s+is public", re.IGNORECASE),
)
DEFAULT_JAVA_CLASS = "Main"


def resolve_java_class(source_code: str) -> str:
    """Public class name, else the first declared class, else ``Main``."""
    match = _PUBLIC_CLASS.search(source_code) or _ANY_CLASS.search(source_code)
    return match.group(1) if match else DEFAULT_JAVA_CLASS


def java_name_hint(diagnostics: str) -> str | None:
    """Class name javac says the file should be named after, if any."""
    for pattern in _NAME_HINTS:
        match = pattern.search(diagnostics)
        if match:
            return match.group(1)
    return None


class JavaBackend(CompiledBackend):
    """
    ``javac`` then ``java -cp <workspace> <Class>``.

    The source file is named after the resolved entry class.  If javac still
    reports a file/class name mismatch, the file is renamed to the name javac
    asks for and compiled exactly once more.
    """

    @property
    def language(self) -> str:
        return "java"

    @property
    def label(self) -> str:
        return "Java (Compile & Run)"

    @property
    def run_timeout(self) -> float:
        return self.config.java_run_timeout

    async def compile(self, request: ExecutionRequest, workspace: Workspace) -> list[str]:
        class_name = resolve_java_class(request.source_code)
        source = workspace.write(f"{class_name}.java", request.source_code)
        outcome = await self._javac(source, workspace)

        if outcome.exit_code != 0 and not outcome.timed_out:
            hint = java_name_hint(outcome.stderr)
            if hint and hint != class_name:
                logger.info("Retrying javac with renamed source", from_class=class_name, to_class=hint)
                class_name = hint
                source = source.rename(workspace.file(f"{class_name}.java"))
                outcome = await self._javac(source, workspace)

        self.check_compile(self.config.javac_binary, outcome)
        return [self.config.java_binary, "-cp", str(workspace.path), class_name]

    async def _javac(self, source: Path, workspace: Workspace) -> ProcessOutcome:
        return await self.runner.run(
            self.config.javac_binary,
            [str(source)],
            work_dir=workspace.path,
            timeout=self.config.java_compile_timeout,
        )


class CSharpBackend(CompiledBackend):
    """Compiles with the first installed of ``mcs`` / ``csc`` and runs under ``mono``."""

    @property
    def language(self) -> str:
        return "csharp"

    @property
    def label(self) -> str:
        return "C# (Compile & Run)"

    @property
    def run_timeout(self) -> float:
        return self.config.csharp_run_timeout

    async def compile(self, request: ExecutionRequest, workspace: Workspace) -> list[str]:
        source = workspace.write("Program.cs", request.source_code)
        binary = workspace.file("app.exe")

        compiler = ""
        outcome = ProcessOutcome(exit_code=None)
        for compiler in self.config.csharp_compilers:
            flag = "/out:" if compiler.endswith("csc") else "-out:"
            outcome = await self.runner.run(
                compiler,
                [str(source), f"{flag}{binary}"],
                work_dir=workspace.path,
                timeout=self.config.csharp_compile_timeout,
            )
            if not outcome.launch_failed:
                break

        self.check_compile(compiler or "C# compiler", outcome)
        return [self.config.mono_binary, str(binary)]
