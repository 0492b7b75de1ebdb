from __future__ import annotations

import pytest

from codearena.grading.catalog import ChallengeCatalog
from codearena.grading.evaluator import GradingEvaluator
from codearena.grading.models import Verdict
from codearena.sandbox.backends import BackendRegistry
from codearena.sandbox.errors import EvaluatorProtocolError, SecurityRejected, UnsupportedLanguage
from codearena.sandbox.security import SecurityGate
from codearena.services.practice_service import (
    INVALID_EVALUATOR_OUTPUT,
    AccessDenied,
    ChallengeNotFound,
    ChallengeSolved,
    PracticeService,
    SolveLedger,
    StaticAccessPolicy,
)

GOOD_TWO_SUM = """
def solve(nums, target):
    for i in range(len(nums)):
        for j in range(i + 1, len(nums)):
            if nums[i] + nums[j] == target:
                return [i, j]
"""


class _ScriptedEvaluator:
    """Stands in for ``GradingEvaluator`` with a fixed verdict or error."""

    def __init__(self, verdict: Verdict | None = None, error: Exception | None = None) -> None:
        self.verdict = verdict
        self.error = error
        self.calls = 0

    def supports(self, language: str) -> bool:
        return language in ("javascript", "python")

    async def evaluate(self, language, user_source, challenge) -> Verdict:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.verdict


def _service(catalog: ChallengeCatalog, evaluator, **kwargs) -> PracticeService:
    return PracticeService(catalog, SecurityGate(), evaluator, **kwargs)


async def test_first_solve_is_recorded_once_and_published(
    catalog: ChallengeCatalog, registry: BackendRegistry
) -> None:
    events: list[ChallengeSolved] = []

    async def listener(event: ChallengeSolved) -> None:
        events.append(event)

    service = _service(catalog, GradingEvaluator(registry), listeners=[listener])
    first = await service.submit("ada@example.com", "two-sum", "python", GOOD_TWO_SUM)
    second = await service.submit("ada@example.com", "two-sum", "python", GOOD_TWO_SUM)

    assert first.verdict.passed and first.first_solve
    assert second.verdict.passed and not second.first_solve
    assert second.practice_stats.attempts == 2
    assert second.practice_stats.solved_count == 1
    assert [(e.identity, e.challenge_id) for e in events] == [("ada@example.com", "two-sum")]


async def test_failing_listener_does_not_break_submission(catalog: ChallengeCatalog) -> None:
    async def broken(event: ChallengeSolved) -> None:
        raise RuntimeError("listener down")

    evaluator = _ScriptedEvaluator(Verdict(passed=True, passed_count=3, total=3))
    service = _service(catalog, evaluator, listeners=[broken])
    outcome = await service.submit("ada@example.com", "two-sum", "python", "def solve(): pass")
    assert outcome.first_solve is True


async def test_blocked_identity_is_refused(catalog: ChallengeCatalog) -> None:
    evaluator = _ScriptedEvaluator(Verdict(passed=True))
    service = _service(catalog, evaluator, access_policy=StaticAccessPolicy(["Mallory@Example.com"]))
    with pytest.raises(AccessDenied):
        await service.submit("mallory@example.com", "two-sum", "python", "def solve(): pass")
    assert evaluator.calls == 0


async def test_unknown_challenge(catalog: ChallengeCatalog) -> None:
    with pytest.raises(ChallengeNotFound):
        await _service(catalog, _ScriptedEvaluator()).submit("a@b.c", "missing", "python", "x = 1")


async def test_unsupported_language(catalog: ChallengeCatalog) -> None:
    with pytest.raises(UnsupportedLanguage):
        await _service(catalog, _ScriptedEvaluator()).submit("a@b.c", "two-sum", "ruby", "def solve; end")


async def test_security_rejection_happens_before_grading(catalog: ChallengeCatalog) -> None:
    evaluator = _ScriptedEvaluator(Verdict(passed=True))
    with pytest.raises(SecurityRejected):
        await _service(catalog, evaluator).submit("a@b.c", "two-sum", "python", "import os\ndef solve(): pass")
    assert evaluator.calls == 0


async def test_protocol_error_becomes_failed_verdict(catalog: ChallengeCatalog) -> None:
    evaluator = _ScriptedEvaluator(error=EvaluatorProtocolError("no marker", stderr="Traceback: boom\n"))
    outcome = await _service(catalog, evaluator).submit("a@b.c", "two-sum", "python", "def solve(): pass")
    assert outcome.protocol_error is True
    assert outcome.verdict.passed is False
    assert outcome.verdict.total == 3
    assert outcome.verdict.error == "Traceback: boom"
    assert outcome.first_solve is False


async def test_protocol_error_without_stderr_has_generic_message(catalog: ChallengeCatalog) -> None:
    evaluator = _ScriptedEvaluator(error=EvaluatorProtocolError("no marker"))
    outcome = await _service(catalog, evaluator).submit("a@b.c", "two-sum", "python", "def solve(): pass")
    assert outcome.verdict.error == INVALID_EVALUATOR_OUTPUT


async def test_expected_and_actual_are_renormalized(catalog: ChallengeCatalog) -> None:
    verdict = Verdict(passed=False, passed_count=0, total=2, failed_at=1, expected=[2, 1], actual=[3, 1])
    outcome = await _service(catalog, _ScriptedEvaluator(verdict)).submit(
        "a@b.c", "top-k-frequent-elements", "javascript", "function solve() {}"
    )
    assert outcome.verdict.expected == [1, 2]
    assert outcome.verdict.actual == [1, 3]


def test_ledger_is_case_insensitive_per_identity() -> None:
    ledger = SolveLedger()
    assert ledger.mark_solved("Ada@Example.com", "two-sum") is True
    assert ledger.mark_solved("ada@example.com", "two-sum") is False
    assert ledger.has_solved("ADA@example.com", "two-sum")
    assert ledger.stats("someone-else").solved_count == 0
