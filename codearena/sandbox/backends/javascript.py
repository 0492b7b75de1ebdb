"""
In-process JavaScript backend on an embedded QuickJS context.

Each request gets a fresh context with a CPU time limit and a heap limit.
Only ECMAScript built-ins exist inside it (no module loader, process,
filesystem or network objects), and every way of compiling code from a
string is replaced by a function that throws.

QuickJS refuses calls into Python while a time limit is set, so the
console is buffered inside the JS heap: stdin lines are injected as a
literal before the user script runs, and the captured streams are read
back through a frozen accessor afterwards.  Each buffer keeps at most one
character past the output clip limit.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import quickjs
from structlog import get_logger

from codearena.sandbox.backends.base import ExecutionBackend
from codearena.sandbox.errors import ExecutionRuntimeError, ExecutionTimeout
from codearena.sandbox.models import ExecutionRequest, ExecutionResult, ExecutionStatus
from codearena.sandbox.process import TIMEOUT_NOTICE
from codearena.sandbox.workspace import Workspace

logger = get_logger()

_DRAIN = "__codearena_drain"

_PRELUDE = """
(function (stdinLines, limit) {
  const sinks = { out: { lines: [], size: 0 }, err: { lines: [], size: 0 } };
  const write = (sink, text) => {
    if (sink.size > limit) return;
    const sep = sink.lines.length ? 1 : 0;
    const room = Math.max(limit + 1 - sink.size - sep, 0);
    const piece = text.length > room ? text.slice(0, room) : text;
    sink.lines.push(piece);
    sink.size += sep + piece.length;
  };
  const stringify = (value) => {
    if (typeof value === 'string') return value;
    try {
      const text = JSON.stringify(value);
      return text === undefined ? String(value) : text;
    } catch (e) {
      return String(value);
    }
  };
  const line = (args) => args.map(stringify).join(' ');
  globalThis.console = Object.freeze({
    log: (...args) => { write(sinks.out, line(args)); },
    info: (...args) => { write(sinks.out, line(args)); },
    warn: (...args) => { write(sinks.out, line(args)); },
    error: (...args) => { write(sinks.err, line(args)); },
  });

  let cursor = 0;
  const readLine = () => (cursor < stdinLines.length ? stdinLines[cursor++] : '');
  globalThis.prompt = readLine;
  globalThis.input = readLine;

  Object.defineProperty(globalThis, '%(drain)s', {
    value: () => JSON.stringify({ out: sinks.out.lines.join('\\n'), err: sinks.err.lines.join('\\n') }),
    writable: false,
    enumerable: false,
    configurable: false,
  });

  const refuse = function () {
    throw new EvalError('Code generation from strings disallowed for this context');
  };
  const factories = [
    function () {},
    async function () {},
    function* () {},
    async function* () {},
  ];
  for (const fn of factories) {
    Object.defineProperty(Object.getPrototypeOf(fn), 'constructor', { value: refuse });
  }
  globalThis.Function = refuse;
  globalThis.eval = refuse;
})(%(stdin)s, %(limit)d);
"""


def _display(value: Any) -> str:
    """Console-style rendering of a script's completion value."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, quickjs.Object):
        try:
            return value.json()
        except quickjs.JSException:
            return "[object]"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return json.dumps(value)


class JavaScriptBackend(ExecutionBackend):
    """Restricted in-process evaluation with a ~2s CPU budget."""

    uses_workspace = False

    @property
    def language(self) -> str:
        return "javascript"

    @property
    def label(self) -> str:
        return "JavaScript (Sandbox)"

    async def run(self, request: ExecutionRequest, workspace: Workspace | None) -> ExecutionResult:
        # QuickJS contexts are confined to the thread that created them.
        return await asyncio.to_thread(self._evaluate, request)

    def _prelude(self, stdin_text: str) -> str:
        return _PRELUDE % {
            "drain": _DRAIN,
            "stdin": json.dumps(stdin_text.splitlines()),
            "limit": self.config.output_clip_limit,
        }

    def _evaluate(self, request: ExecutionRequest) -> ExecutionResult:
        context = quickjs.Context()
        context.set_memory_limit(self.config.javascript_memory_limit)
        context.eval(self._prelude(request.stdin_text))
        context.set_time_limit(self.config.javascript_timeout)

        try:
            value = context.eval(request.source_code)
        except quickjs.JSException as exc:
            message = str(exc) or "Execution failed"
            stdout, stderr = self._drain(context)
            if "interrupted" in message:
                logger.info("JavaScript time limit reached", limit=self.config.javascript_timeout)
                raise ExecutionTimeout(
                    message,
                    stdout=stdout,
                    stderr=self._join(stderr, TIMEOUT_NOTICE),
                ) from exc
            raise ExecutionRuntimeError(
                message,
                stdout=stdout,
                stderr=self._join(stderr, message),
            ) from exc

        stdout, stderr = self._drain(context)
        if value is not None:
            stdout = self._join(stdout, _display(value))

        return ExecutionResult(
            status=ExecutionStatus.SUCCESS,
            stdout=self.clip(stdout),
            stderr=self.clip(stderr),
            exit_code=0,
        )

    @staticmethod
    def _join(head: str, tail: str) -> str:
        return f"{head}\n{tail}" if head else tail

    @staticmethod
    def _drain(context: quickjs.Context) -> tuple[str, str]:
        """Read the buffered console streams back out of ``context``."""
        try:
            captured = json.loads(context.eval(f"{_DRAIN}()"))
        except quickjs.JSException as exc:
            # An exhausted heap can leave no room to serialize the buffers.
            logger.warning("JavaScript output unavailable", error=str(exc))
            return "", ""
        return captured["out"], captured["err"]
