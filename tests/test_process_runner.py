from __future__ import annotations

import sys
import time
from pathlib import Path

from codearena.sandbox.models import TRUNCATION_SUFFIX, ExecutionStatus, clip_output
from codearena.sandbox.process import TIMEOUT_NOTICE, ProcessRunner


async def test_captures_stdout_stderr_and_exit_code(tmp_path: Path) -> None:
    runner = ProcessRunner()
    outcome = await runner.run(
        sys.executable,
        ["-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"],
        work_dir=tmp_path,
    )
    assert outcome.stdout.strip() == "out"
    assert outcome.stderr.strip() == "err"
    assert outcome.exit_code == 3
    assert outcome.status == ExecutionStatus.RUNTIME_ERROR


async def test_stdin_is_written_then_closed(tmp_path: Path) -> None:
    runner = ProcessRunner()
    outcome = await runner.run(
        sys.executable,
        ["-c", "import sys; data = sys.stdin.read(); print(data.upper())"],
        work_dir=tmp_path,
        stdin_text="hello\nworld\n",
    )
    assert outcome.exit_code == 0
    assert "HELLO\nWORLD" in outcome.stdout


async def test_timeout_kills_and_keeps_partial_output(tmp_path: Path) -> None:
    runner = ProcessRunner()
    start = time.monotonic()
    outcome = await runner.run(
        sys.executable,
        ["-c", "import time; print('started', flush=True); time.sleep(30)"],
        work_dir=tmp_path,
        timeout=0.5,
    )
    assert time.monotonic() - start < 10
    assert outcome.timed_out is True
    assert outcome.exit_code is None
    assert outcome.status == ExecutionStatus.TIMEOUT
    assert "started" in outcome.stdout
    assert outcome.stderr.endswith(TIMEOUT_NOTICE)


async def test_missing_binary_is_reported_not_raised(tmp_path: Path) -> None:
    runner = ProcessRunner()
    outcome = await runner.run("definitely-not-a-real-binary-xyz", work_dir=tmp_path)
    assert outcome.launch_failed is True
    assert outcome.status == ExecutionStatus.UNAVAILABLE
    assert "definitely-not-a-real-binary-xyz is not installed" in outcome.stderr


async def test_output_is_clipped(tmp_path: Path) -> None:
    runner = ProcessRunner(clip_limit=100)
    outcome = await runner.run(sys.executable, ["-c", "print('x' * 5000)"], work_dir=tmp_path)
    assert outcome.stdout == "x" * 100 + TRUNCATION_SUFFIX


async def test_capture_cap_bounds_memory(tmp_path: Path) -> None:
    runner = ProcessRunner(clip_limit=10_000_000, max_capture_bytes=1000)
    outcome = await runner.run(sys.executable, ["-c", "print('y' * 100000)"], work_dir=tmp_path)
    assert outcome.exit_code == 0
    assert len(outcome.stdout) == 1000


async def test_unclipped_run_returns_full_output(tmp_path: Path) -> None:
    runner = ProcessRunner(clip_limit=10)
    outcome = await runner.run(sys.executable, ["-c", "print('z' * 50)"], work_dir=tmp_path, clip=False)
    assert outcome.stdout.strip() == "z" * 50


def test_clip_output_bounds() -> None:
    assert clip_output("abc", 5) == "abc"
    assert clip_output("abcde", 5) == "abcde"
    assert clip_output("abcdef", 5) == "abcde" + TRUNCATION_SUFFIX
    assert clip_output(None, 5) == ""
    for size in (0, 1, 7999, 8000, 8001, 20000):
        assert len(clip_output("a" * size)) <= 8000 + len(TRUNCATION_SUFFIX)
