"""
Subprocess runner with wall-clock timeouts.

Lifecycle per call:
  1. Spawn the command in its own session (process group)
  2. Write stdin completely, then close it
  3. Drain stdout / stderr incrementally (bounded buffers)
  4. On timeout, SIGKILL the whole group and keep what was captured
  5. Decode and clip both streams
"""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import Mapping
from pathlib import Path

from structlog import get_logger

from codearena.sandbox.models import DEFAULT_CLIP_LIMIT, ProcessOutcome, clip_output

logger = get_logger()

TIMEOUT_NOTICE = "Execution timed out."
_READ_CHUNK = 4096


class _StreamBuffer:
    """Accumulates a child stream up to ``limit`` bytes, discarding the rest."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._chunks: list[bytes] = []
        self._size = 0
        self.dropped = 0

    def feed(self, chunk: bytes) -> None:
        kept = chunk[: max(self._limit - self._size, 0)]
        if kept:
            self._chunks.append(kept)
            self._size += len(kept)
        self.dropped += len(chunk) - len(kept)

    def text(self) -> str:
        return b"".join(self._chunks).decode("utf-8", errors="replace")


class ProcessRunner:
    """
    Spawns one external process per call and reports a ``ProcessOutcome``.

    Usage::

        runner = ProcessRunner(clip_limit=8000)
        outcome = await runner.run("python3", ["-c", "print(1)"], work_dir=tmp, timeout=3.0)
    """

    def __init__(
        self,
        clip_limit: int = DEFAULT_CLIP_LIMIT,
        max_capture_bytes: int = 1024 * 1024,
    ) -> None:
        self.clip_limit = clip_limit
        self.max_capture_bytes = max_capture_bytes

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        command: str,
        args: list[str] | tuple[str, ...] = (),
        *,
        work_dir: str | Path | None = None,
        stdin_text: str = "",
        timeout: float = 3.0,
        env: Mapping[str, str] | None = None,
        clip: bool = True,
    ) -> ProcessOutcome:
        """
        Run ``command`` with ``args`` and wait at most ``timeout`` seconds.

        Args:
            command: Executable name or path.
            args: Arguments passed to the executable.
            work_dir: Working directory for the child.
            stdin_text: Written in full to the child's stdin, which is then closed.
            timeout: Wall-clock budget in seconds.
            env: Full environment for the child (inherits ours when ``None``).
            clip: Clip both streams to ``clip_limit`` characters.

        Returns:
            ``ProcessOutcome``; ``exit_code`` is ``None`` when the child was
            killed on timeout or could not be launched.
        """
        finish = self._clipper(clip)

        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=str(work_dir) if work_dir is not None else None,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(env) if env is not None else None,
                start_new_session=os.name == "posix",
            )
        except FileNotFoundError:
            logger.warning("Executable not found", command=command)
            return ProcessOutcome(
                exit_code=None,
                stderr=finish(f"{command} is not installed or not available in PATH on this server."),
            )
        except OSError as exc:
            logger.warning("Process launch failed", command=command, error=str(exc))
            return ProcessOutcome(exit_code=None, stderr=finish(str(exc) or "Execution failed"))

        stdout = _StreamBuffer(self.max_capture_bytes)
        stderr = _StreamBuffer(self.max_capture_bytes)

        try:
            await asyncio.wait_for(
                self._communicate(proc, stdin_text, stdout, stderr),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            await self._kill(proc)
            logger.info("Process timed out", command=command, timeout=timeout)
            err = stderr.text()
            separator = "\n" if err else ""
            return ProcessOutcome(
                exit_code=None,
                stdout=finish(stdout.text()),
                stderr=finish(f"{err}{separator}{TIMEOUT_NOTICE}"),
                timed_out=True,
            )
        except BaseException:
            await self._kill(proc)
            raise

        if stdout.dropped or stderr.dropped:
            logger.debug(
                "Discarded output beyond capture limit",
                command=command,
                stdout_dropped=stdout.dropped,
                stderr_dropped=stderr.dropped,
            )

        return ProcessOutcome(
            exit_code=proc.returncode,
            stdout=finish(stdout.text()),
            stderr=finish(stderr.text()),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clipper(self, clip: bool):  # noqa: ANN202
        if clip:
            return lambda text: clip_output(text, self.clip_limit)
        return lambda text: text

    async def _communicate(
        self,
        proc: asyncio.subprocess.Process,
        stdin_text: str,
        stdout: _StreamBuffer,
        stderr: _StreamBuffer,
    ) -> None:
        await asyncio.gather(
            self._feed_stdin(proc, stdin_text),
            self._drain(proc.stdout, stdout),
            self._drain(proc.stderr, stderr),
        )
        await proc.wait()

    @staticmethod
    async def _feed_stdin(proc: asyncio.subprocess.Process, stdin_text: str) -> None:
        """Write all of stdin and close it; a child that exits early is fine."""
        assert proc.stdin is not None
        try:
            if stdin_text:
                proc.stdin.write(stdin_text.encode("utf-8"))
                await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            pass
        finally:
            try:
                proc.stdin.close()
            except (BrokenPipeError, ConnectionResetError):
                pass

    @staticmethod
    async def _drain(stream: asyncio.StreamReader | None, buffer: _StreamBuffer) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            buffer.feed(chunk)

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        """Force-kill the child's process group and reap it."""
        if proc.returncode is None:
            try:
                if os.name == "posix":
                    os.killpg(proc.pid, signal.SIGKILL)
                else:
                    proc.kill()
            except ProcessLookupError:
                pass
            except OSError as exc:
                logger.warning("Failed to kill process group", pid=proc.pid, error=str(exc))
                proc.kill()
        try:
            await asyncio.wait_for(proc.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.error("Killed process did not exit", pid=proc.pid)
