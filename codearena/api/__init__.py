"""API module."""

from .code import router as code_router
from .practice import router as practice_router

__all__ = ["code_router", "practice_router"]
