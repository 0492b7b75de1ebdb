"""
PracticeService: business façade for graded submissions.

Wraps the grading evaluator with the checks that belong outside the sandbox
(access policy, challenge lookup, security gate) and keeps per-identity
practice statistics in memory.

Usage::

    service = PracticeService(catalog, gate, evaluator)
    outcome = await service.submit("ada@example.com", "two-sum", "python", code)
    if outcome.first_solve:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Protocol

from structlog import get_logger

from codearena.grading.catalog import ChallengeCatalog
from codearena.grading.evaluator import GradingEvaluator
from codearena.grading.models import Verdict
from codearena.grading.normalize import normalize_value
from codearena.sandbox.errors import EvaluatorProtocolError, SecurityRejected, UnsupportedLanguage
from codearena.sandbox.security import SecurityGate

logger = get_logger()

INVALID_EVALUATOR_OUTPUT = "Invalid evaluator output."


class AccessDenied(Exception):
    """The identity is not allowed to use the sandbox."""

    def __init__(self, identity: str) -> None:
        super().__init__("Your account is blocked.")
        self.identity = identity


class ChallengeNotFound(Exception):
    def __init__(self, challenge_id: str) -> None:
        super().__init__("Challenge not found.")
        self.challenge_id = challenge_id


# ----------------------------------------------------------------------
# Access policy
# ----------------------------------------------------------------------


class AccessPolicy(Protocol):
    def is_blocked(self, identity: str) -> bool: ...


class StaticAccessPolicy:
    """Blocks a fixed set of identities (case-insensitive)."""

    def __init__(self, blocked: Iterable[str] = ()) -> None:
        self._blocked = frozenset(item.strip().lower() for item in blocked if item.strip())

    def is_blocked(self, identity: str) -> bool:
        return identity.strip().lower() in self._blocked


# ----------------------------------------------------------------------
# Solve ledger
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class ChallengeSolved:
    """Fact published the first time an identity passes a challenge."""

    identity: str
    challenge_id: str
    solved_at: datetime


SolveListener = Callable[[ChallengeSolved], Awaitable[None]]


@dataclass
class PracticeStats:
    attempts: int = 0
    solved_count: int = 0
    last_attempt_at: datetime | None = None


@dataclass
class SubmissionOutcome:
    verdict: Verdict
    first_solve: bool
    protocol_error: bool
    practice_stats: PracticeStats


@dataclass
class _IdentityRecord:
    attempts: int = 0
    solved: set[str] = field(default_factory=set)
    last_attempt_at: datetime | None = None


class SolveLedger:
    """In-memory attempt counters and solved challenge ids per identity."""

    def __init__(self) -> None:
        self._records: dict[str, _IdentityRecord] = {}

    def _record(self, identity: str) -> _IdentityRecord:
        return self._records.setdefault(identity.strip().lower(), _IdentityRecord())

    def record_attempt(self, identity: str, when: datetime) -> None:
        record = self._record(identity)
        record.attempts += 1
        record.last_attempt_at = when

    def mark_solved(self, identity: str, challenge_id: str) -> bool:
        """Record a solve; ``True`` only the first time for this pair."""
        record = self._record(identity)
        if challenge_id in record.solved:
            return False
        record.solved.add(challenge_id)
        return True

    def has_solved(self, identity: str, challenge_id: str) -> bool:
        return challenge_id in self._record(identity).solved

    def stats(self, identity: str) -> PracticeStats:
        record = self._record(identity)
        return PracticeStats(
            attempts=record.attempts,
            solved_count=len(record.solved),
            last_attempt_at=record.last_attempt_at,
        )


# ----------------------------------------------------------------------
# Service
# ----------------------------------------------------------------------


class PracticeService:
    """
    Grades submissions and tracks first-time solves.

    Every submission:
      1. passes the access policy and challenge lookup
      2. passes the security gate for the chosen language
      3. is graded by the evaluator (protocol errors become failed verdicts)
      4. is counted in the ledger; a first solve notifies every listener.
    """

    def __init__(
        self,
        catalog: ChallengeCatalog,
        gate: SecurityGate,
        evaluator: GradingEvaluator,
        access_policy: AccessPolicy | None = None,
        listeners: Iterable[SolveListener] = (),
        ledger: SolveLedger | None = None,
    ) -> None:
        self.catalog = catalog
        self.gate = gate
        self.evaluator = evaluator
        self.access_policy = access_policy or StaticAccessPolicy()
        self.ledger = ledger or SolveLedger()
        self._listeners: list[SolveListener] = list(listeners)

    def add_listener(self, listener: SolveListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def submit(self, identity: str, challenge_id: str, language: str, code: str) -> SubmissionOutcome:
        """
        Grade ``code`` against the hidden tests of ``challenge_id``.

        Raises:
            AccessDenied: the identity is blocked.
            ChallengeNotFound: unknown challenge id.
            UnsupportedLanguage: no harness for ``language``.
            SecurityRejected: the source matched a restricted pattern.
        """
        if self.access_policy.is_blocked(identity):
            raise AccessDenied(identity)

        challenge = self.catalog.get(challenge_id)
        if challenge is None:
            raise ChallengeNotFound(challenge_id)

        if not self.evaluator.supports(language):
            raise UnsupportedLanguage(language, "Practice Arena supports JavaScript and Python only.")

        check = self.gate.validate(language, code)
        if not check.valid:
            raise SecurityRejected(check.reason or "")

        protocol_error = False
        try:
            verdict = await self.evaluator.evaluate(language, code, challenge)
        except EvaluatorProtocolError as exc:
            protocol_error = True
            verdict = Verdict(
                passed=False,
                total=len(challenge.tests),
                error=exc.stderr.strip() or INVALID_EVALUATOR_OUTPUT,
            )

        verdict = verdict.model_copy(
            update={
                "expected": normalize_value(verdict.expected, challenge.normalize),
                "actual": normalize_value(verdict.actual, challenge.normalize),
            }
        )

        now = datetime.now(timezone.utc)
        self.ledger.record_attempt(identity, now)
        first_solve = verdict.passed and self.ledger.mark_solved(identity, challenge.id)
        if first_solve:
            logger.info("Challenge solved", identity=identity, challenge_id=challenge.id)
            await self._notify(ChallengeSolved(identity=identity, challenge_id=challenge.id, solved_at=now))

        return SubmissionOutcome(
            verdict=verdict,
            first_solve=first_solve,
            protocol_error=protocol_error,
            practice_stats=self.ledger.stats(identity),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _notify(self, event: ChallengeSolved) -> None:
        for listener in self._listeners:
            try:
                await listener(event)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Solve listener failed",
                    identity=event.identity,
                    challenge_id=event.challenge_id,
                    error=str(exc),
                )
