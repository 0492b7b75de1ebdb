"""
Free code execution API routes.
"""

from fastapi import APIRouter, Depends, HTTPException
from structlog import get_logger

from codearena.models.schemas import ErrorResponse, LanguageInfo, RunRequest, RunResponse
from codearena.sandbox.errors import UnsupportedLanguage
from codearena.sandbox.models import ExecutionStatus
from codearena.services.sandbox_service import SandboxServices, get_services

logger = get_logger()
router = APIRouter(prefix="/code", tags=["code"])


@router.get(
    "/languages",
    response_model=list[LanguageInfo],
    summary="List runnable languages",
)
async def list_languages(services: SandboxServices = Depends(get_services)) -> list[LanguageInfo]:
    return [LanguageInfo(**item) for item in services.executor.languages()]


@router.post(
    "/run",
    response_model=RunResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or restricted code"},
        403: {"model": ErrorResponse, "description": "Identity blocked"},
    },
    summary="Run code",
    description="Execute a program once with optional stdin and return its captured output.",
)
async def run_code(
    request: RunRequest,
    services: SandboxServices = Depends(get_services),
) -> RunResponse:
    identity = request.identity.strip().lower()
    language = request.language.strip().lower()
    code = request.code

    if not identity:
        raise HTTPException(status_code=400, detail="Login required")
    if services.access_policy.is_blocked(identity):
        raise HTTPException(status_code=403, detail="Your account is blocked.")
    if not services.executor.supports(language):
        raise HTTPException(status_code=400, detail="Unsupported language.")
    if not code.strip():
        raise HTTPException(status_code=400, detail="Code cannot be empty.")
    if len(code) > services.settings.sandbox.max_code_length:
        raise HTTPException(status_code=400, detail="Code length exceeds allowed limit.")

    try:
        result = await services.executor.execute(language, code, request.stdin)
    except UnsupportedLanguage as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc

    if result.status == ExecutionStatus.SECURITY_BLOCKED:
        logger.info("Run rejected by security gate", identity=identity, language=language)
        raise HTTPException(status_code=400, detail=result.error)

    return RunResponse(
        language=language,
        stdout=result.stdout,
        stderr=result.stderr,
        duration_ms=result.duration_ms,
        status=result.status,
        exit_code=result.exit_code,
        truncated=result.truncated,
        plot_image=result.plot_image or None,
    )
