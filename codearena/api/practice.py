"""
Practice arena API routes: challenge browsing and graded submissions.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from structlog import get_logger

from codearena.models.schemas import (
    ChallengeDetailResponse,
    ChallengeListResponse,
    ErrorResponse,
    PracticeStatsResponse,
    SubmitRequest,
    SubmitResponse,
)
from codearena.sandbox.errors import SecurityRejected, UnsupportedLanguage
from codearena.services.practice_service import AccessDenied, ChallengeNotFound
from codearena.services.sandbox_service import SandboxServices, get_services

logger = get_logger()
router = APIRouter(prefix="/practice", tags=["practice"])


@router.get(
    "/challenges",
    response_model=ChallengeListResponse,
    summary="List challenges",
    description="Public challenge summaries, optionally filtered",
)
async def list_challenges(
    difficulty: Annotated[str | None, Query(description="Easy, Medium or Hard")] = None,
    category: Annotated[str | None, Query(description="Category name")] = None,
    search: Annotated[str | None, Query(description="Substring of title, category or tags")] = None,
    interview: Annotated[bool, Query(description="Interview questions only")] = False,
    services: SandboxServices = Depends(get_services),
) -> ChallengeListResponse:
    challenges = services.catalog.list_summaries(
        difficulty=difficulty,
        category=category,
        search=search,
        interview_only=interview,
    )
    return ChallengeListResponse(challenges=challenges, total=len(challenges))


@router.get(
    "/challenges/{challenge_id}",
    response_model=ChallengeDetailResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a challenge",
    description="Statement, examples and starter code. Hidden tests are reported as a count only.",
)
async def get_challenge(
    challenge_id: str,
    services: SandboxServices = Depends(get_services),
) -> ChallengeDetailResponse:
    detail = services.catalog.public_detail(challenge_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Challenge not found.")
    return ChallengeDetailResponse(challenge=detail)


@router.post(
    "/submit",
    response_model=SubmitResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Submit a solution",
)
async def submit_solution(
    request: SubmitRequest,
    services: SandboxServices = Depends(get_services),
) -> SubmitResponse:
    """
    Grade a solution against the challenge's hidden tests.

    The response carries the verdict of the first failing test, or the full
    pass count when every test passes.
    """
    identity = request.identity.strip().lower()
    challenge_id = request.challenge_id.strip()
    language = request.language.strip().lower()

    if not identity:
        raise HTTPException(status_code=400, detail="Login required.")
    if not challenge_id:
        raise HTTPException(status_code=400, detail="Challenge id is required.")
    if not request.code.strip():
        raise HTTPException(status_code=400, detail="Code cannot be empty.")
    if len(request.code) > services.settings.sandbox.max_code_length:
        raise HTTPException(status_code=400, detail="Code length exceeds allowed limit.")

    try:
        outcome = await services.practice.submit(identity, challenge_id, language, request.code)
    except AccessDenied as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ChallengeNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (UnsupportedLanguage, SecurityRejected) as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc

    verdict = outcome.verdict
    stats = outcome.practice_stats
    return SubmitResponse(
        passed=verdict.passed,
        passed_count=verdict.passed_count,
        total=verdict.total,
        failed_at=verdict.failed_at,
        expected=verdict.expected,
        actual=verdict.actual,
        error=verdict.error or "",
        first_solve=outcome.first_solve,
        protocol_error=outcome.protocol_error,
        practice_stats=PracticeStatsResponse(
            attempts=stats.attempts,
            solved_count=stats.solved_count,
            last_attempt_at=stats.last_attempt_at,
        ),
    )
