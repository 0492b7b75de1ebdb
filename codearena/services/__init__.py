"""Services module."""

from .practice_service import AccessDenied, ChallengeNotFound, PracticeService, StaticAccessPolicy
from .sandbox_service import SandboxServices, get_services, sandbox_lifespan

__all__ = [
    "AccessDenied",
    "ChallengeNotFound",
    "PracticeService",
    "SandboxServices",
    "StaticAccessPolicy",
    "get_services",
    "sandbox_lifespan",
]
