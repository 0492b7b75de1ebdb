"""Ephemeral per-execution working directories."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from structlog import get_logger

logger = get_logger()


class Workspace:
    """
    A uniquely named temporary directory owned by exactly one execution.

    Created synchronously before any process is spawned and removed by the
    backend's cleanup step on every exit path.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def create(cls, prefix: str = "codearena-", root: str | Path | None = None) -> "Workspace":
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=str(root) if root else None))
        return cls(path)

    def file(self, name: str) -> Path:
        return self.path / name

    def write(self, name: str, content: str) -> Path:
        """Write a UTF-8 text file inside the workspace and return its path."""
        target = self.path / name
        target.write_text(content, encoding="utf-8")
        return target

    def remove(self) -> None:
        """Delete the directory tree; failures are logged and ignored."""
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Workspace cleanup failed", path=str(self.path), error=str(exc))

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.remove()

    def __repr__(self) -> str:
        return f"Workspace({str(self.path)!r})"
