from __future__ import annotations

import sys
from pathlib import Path

import pytest

from codearena.config import PracticeConfig, SandboxConfig, Settings
from codearena.grading.catalog import ChallengeCatalog, load_catalog
from codearena.sandbox.backends import BackendRegistry, default_registry
from codearena.sandbox.process import ProcessRunner

BLOCKED_IDENTITY = "blocked@example.com"


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def sandbox_config(workspace_root: Path) -> SandboxConfig:
    return SandboxConfig(python_binary=sys.executable, workspace_root=workspace_root)


@pytest.fixture
def runner(sandbox_config: SandboxConfig) -> ProcessRunner:
    return ProcessRunner(
        clip_limit=sandbox_config.output_clip_limit,
        max_capture_bytes=sandbox_config.max_capture_bytes,
    )


@pytest.fixture
def registry(sandbox_config: SandboxConfig) -> BackendRegistry:
    return default_registry(sandbox_config)


@pytest.fixture(scope="session")
def catalog() -> ChallengeCatalog:
    return load_catalog()


@pytest.fixture
def settings(sandbox_config: SandboxConfig) -> Settings:
    return Settings(
        environment="development",
        sandbox=sandbox_config,
        practice=PracticeConfig(blocked_identities=[BLOCKED_IDENTITY]),
    )
