"""
Grading evaluator: harness → backend → verdict.
"""

from __future__ import annotations

import json

from pydantic import ValidationError
from structlog import get_logger

from codearena.grading.harness import RESULT_MARKER, HarnessGenerator
from codearena.grading.models import Challenge, Verdict
from codearena.sandbox.backends import BackendRegistry
from codearena.sandbox.errors import EvaluatorProtocolError, UnsupportedLanguage
from codearena.sandbox.models import ExecutionRequest, ExecutionResult

logger = get_logger()


def find_result_line(stdout: str) -> str | None:
    """Return the payload of the last marker line in ``stdout``, if any."""
    for line in reversed(stdout.splitlines()):
        if line.startswith(RESULT_MARKER):
            return line[len(RESULT_MARKER):]
    return None


class GradingEvaluator:
    """
    Runs a submission against a challenge's hidden tests.

    Usage::

        evaluator = GradingEvaluator(default_registry(config))
        verdict = await evaluator.evaluate("python", source, challenge)
    """

    def __init__(self, registry: BackendRegistry, harness: HarnessGenerator | None = None) -> None:
        self.registry = registry
        self.harness = harness or HarnessGenerator()

    def supports(self, language: str) -> bool:
        return self.harness.supports(language) and language in self.registry

    async def evaluate(self, language: str, user_source: str, challenge: Challenge) -> Verdict:
        """
        Grade ``user_source`` and return the parsed ``Verdict``.

        Raises:
            UnsupportedLanguage: no harness template or backend for ``language``.
            EvaluatorProtocolError: the run produced no valid result line.
        """
        backend = self.registry.get(language)
        if not self.harness.supports(language) or backend is None:
            raise UnsupportedLanguage(language, "Unsupported language for grading. Use JavaScript or Python.")

        program = self.harness.build(language, challenge, user_source)
        request = ExecutionRequest(language=language, source_code=program, capture_plots=False)
        result = await backend.execute(request)
        verdict = self._parse(result)

        logger.info(
            "Submission graded",
            language=language,
            challenge_id=challenge.id,
            passed=verdict.passed,
            passed_count=verdict.passed_count,
            total=verdict.total,
        )
        return verdict

    def _parse(self, result: ExecutionResult) -> Verdict:
        payload = find_result_line(result.stdout)
        if payload is None:
            raise self._protocol_error("No result line in evaluator output.", result)
        try:
            return Verdict.model_validate(json.loads(payload))
        except json.JSONDecodeError:
            raise self._protocol_error("Could not parse evaluator result.", result) from None
        except ValidationError:
            raise self._protocol_error("Evaluator result has an unexpected shape.", result) from None

    @staticmethod
    def _protocol_error(message: str, result: ExecutionResult) -> EvaluatorProtocolError:
        logger.warning(
            "Evaluator protocol error",
            reason=message,
            status=result.status.value,
            stderr=result.stderr[:500],
        )
        return EvaluatorProtocolError(message, stdout=result.stdout, stderr=result.stderr)
