"""
Sandbox service wiring for dependency injection and lifecycle management.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator

from fastapi import FastAPI
from structlog import get_logger

from codearena.config import Settings, get_settings
from codearena.grading.catalog import ChallengeCatalog, load_catalog
from codearena.grading.evaluator import GradingEvaluator
from codearena.sandbox.executor import CodeExecutor
from codearena.services.practice_service import PracticeService, StaticAccessPolicy

logger = get_logger()


@dataclass
class SandboxServices:
    """Everything the API layer needs, built once per application."""

    settings: Settings
    executor: CodeExecutor
    catalog: ChallengeCatalog
    access_policy: StaticAccessPolicy
    practice: PracticeService


# Global services instance
_services: SandboxServices | None = None


def build_services(settings: Settings) -> SandboxServices:
    """Construct the executor, catalog and practice service from ``settings``."""
    executor = CodeExecutor(settings.sandbox)
    catalog = load_catalog(settings.practice.catalog_path)
    access_policy = StaticAccessPolicy(settings.practice.blocked_identities)
    practice = PracticeService(
        catalog=catalog,
        gate=executor.security,
        evaluator=GradingEvaluator(executor.registry),
        access_policy=access_policy,
    )
    return SandboxServices(
        settings=settings,
        executor=executor,
        catalog=catalog,
        access_policy=access_policy,
        practice=practice,
    )


async def get_services() -> SandboxServices:
    """Get the services instance for dependency injection."""
    if _services is None:
        raise RuntimeError("Sandbox services not initialized. Use sandbox_lifespan.")
    return _services


@asynccontextmanager
async def sandbox_lifespan(app: FastAPI, settings: Settings | None = None) -> AsyncGenerator[None, None]:
    """Manage sandbox services lifecycle."""
    global _services

    logger.info("Initializing sandbox services...")
    _services = build_services(settings or get_settings())
    logger.info(
        "Sandbox services started",
        languages=[item["id"] for item in _services.executor.languages()],
        challenges=len(_services.catalog),
    )

    yield

    logger.info("Sandbox services stopped")
    _services = None
