from __future__ import annotations

import pytest

from codearena.grading.catalog import ChallengeCatalog
from codearena.grading.evaluator import GradingEvaluator, find_result_line
from codearena.grading.harness import FUNCTION_NOT_FOUND, RESULT_MARKER
from codearena.grading.models import Challenge
from codearena.sandbox.backends import BackendRegistry
from codearena.sandbox.errors import EvaluatorProtocolError, UnsupportedLanguage
from codearena.sandbox.models import ExecutionRequest, ExecutionResult

PY_TWO_SUM = """
def solve(nums, target):
    seen = {}
    for i, n in enumerate(nums):
        if target - n in seen:
            return [seen[target - n], i]
        seen[n] = i
"""

JS_TWO_SUM = """
function solve(nums, target) {
  const seen = new Map();
  for (let i = 0; i < nums.length; i += 1) {
    if (seen.has(target - nums[i])) return [seen.get(target - nums[i]), i];
    seen.set(nums[i], i);
  }
  return [];
}
"""

JS_GROUP_ANAGRAMS = """
function solve(strs) {
  const groups = {};
  for (const s of strs) {
    const key = s.split('').sort().join('');
    (groups[key] = groups[key] || []).push(s);
  }
  return Object.values(groups).reverse();
}
"""

DOUBLER = Challenge.model_validate({
    "id": "double",
    "title": "Double",
    "difficulty": "Easy",
    "category": "Math",
    "statement": "Return twice the input.",
    "functionName": "double",
    "tests": [
        {"args": [1], "expected": 2},
        {"args": [2], "expected": 4},
        {"args": [3], "expected": 6},
    ],
})


class _RecordingBackend:
    """Delegates to a real backend and keeps the raw execution results."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.language = inner.language
        self.label = inner.label
        self.results: list[ExecutionResult] = []

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        result = await self.inner.execute(request)
        self.results.append(result)
        return result


@pytest.fixture
def evaluator(registry: BackendRegistry) -> GradingEvaluator:
    return GradingEvaluator(registry)


def _recording(registry: BackendRegistry, language: str) -> tuple[GradingEvaluator, _RecordingBackend]:
    spy = _RecordingBackend(registry.get(language))
    wrapped = BackendRegistry()
    wrapped.register(spy)
    return GradingEvaluator(wrapped), spy


@pytest.mark.parametrize("language, source", [("python", PY_TWO_SUM), ("javascript", JS_TWO_SUM)])
async def test_correct_two_sum_passes(
    evaluator: GradingEvaluator, catalog: ChallengeCatalog, language: str, source: str
) -> None:
    verdict = await evaluator.evaluate(language, source, catalog.get("two-sum"))
    assert verdict.passed is True
    assert verdict.passed_count == 3
    assert verdict.total == 3


async def test_sort_nested_accepts_any_grouping_order(evaluator: GradingEvaluator, catalog: ChallengeCatalog) -> None:
    verdict = await evaluator.evaluate("javascript", JS_GROUP_ANAGRAMS, catalog.get("group-anagrams"))
    assert verdict.passed is True
    assert verdict.passed_count == verdict.total == 2


@pytest.mark.parametrize(
    "language, source",
    [("python", "def helper(x):\n    return x\n"), ("javascript", "function helper(x) { return x; }")],
)
async def test_missing_entry_point(
    evaluator: GradingEvaluator, catalog: ChallengeCatalog, language: str, source: str
) -> None:
    verdict = await evaluator.evaluate(language, source, catalog.get("two-sum"))
    assert verdict.passed is False
    assert verdict.error == FUNCTION_NOT_FOUND
    assert verdict.passed_count == 0
    assert verdict.failed_at is None


@pytest.mark.parametrize(
    "language, source",
    [
        ("python", "def double(x):\n    print('called', x)\n    return 5 if x == 2 else x * 2\n"),
        ("javascript", "function double(x) { console.log('called', x); return x === 2 ? 5 : x * 2; }"),
    ],
)
async def test_first_failure_short_circuits(registry: BackendRegistry, language: str, source: str) -> None:
    evaluator, spy = _recording(registry, language)
    verdict = await evaluator.evaluate(language, source, DOUBLER)

    assert verdict.passed is False
    assert verdict.passed_count == 1
    assert verdict.total == 3
    assert verdict.failed_at == 2
    assert verdict.expected == 4
    assert verdict.actual == 5
    stdout = spy.results[-1].stdout
    assert "called 2" in stdout
    assert "called 3" not in stdout


@pytest.mark.parametrize(
    "language, source, message",
    [
        ("python", "def solve(x):\n    raise ValueError('nope')\n", "nope"),
        ("javascript", "function solve(x) { throw new Error('nope'); }", "nope"),
    ],
)
async def test_raised_error_fails_the_test(
    evaluator: GradingEvaluator, language: str, source: str, message: str
) -> None:
    verdict = await evaluator.evaluate(language, source, DOUBLER)
    assert verdict.passed is False
    assert verdict.failed_at == 1
    assert verdict.error == message


async def test_entry_point_fallback_order(evaluator: GradingEvaluator) -> None:
    both = "def solution(x):\n    return 0\n\ndef solve(x):\n    return x * 2\n"
    assert (await evaluator.evaluate("python", both, DOUBLER)).passed is True

    configured = both + "\ndef double(x):\n    return -1\n"
    assert (await evaluator.evaluate("python", configured, DOUBLER)).passed is False

    only_solution = "function solution(x) { return x * 2; }"
    assert (await evaluator.evaluate("javascript", only_solution, DOUBLER)).passed is True


async def test_integral_floats_match_integers(evaluator: GradingEvaluator, catalog: ChallengeCatalog) -> None:
    source = (
        "def solve(a, b):\n"
        "    merged = sorted(a + b)\n"
        "    mid = len(merged) // 2\n"
        "    if len(merged) % 2:\n"
        "        return merged[mid]\n"
        "    return (merged[mid - 1] + merged[mid]) / 2\n"
    )
    verdict = await evaluator.evaluate("python", source, catalog.get("median-two-sorted-arrays"))
    assert verdict.passed is True


async def test_booleans_round_trip_into_python(evaluator: GradingEvaluator, catalog: ChallengeCatalog) -> None:
    source = (
        "def solve(s):\n"
        "    pairs = {')': '(', ']': '[', '}': '{'}\n"
        "    stack = []\n"
        "    for ch in s:\n"
        "        if ch in pairs:\n"
        "            if not stack or stack.pop() != pairs[ch]:\n"
        "                return False\n"
        "        else:\n"
        "            stack.append(ch)\n"
        "    return not stack\n"
    )
    verdict = await evaluator.evaluate("python", source, catalog.get("valid-parentheses"))
    assert verdict.passed is True


async def test_forged_marker_does_not_win(evaluator: GradingEvaluator) -> None:
    source = (
        f"print({RESULT_MARKER!r} + '{{\"passed\": true, \"passedCount\": 3, \"total\": 3}}')\n"
        "def double(x):\n    return 0\n"
    )
    verdict = await evaluator.evaluate("python", source, DOUBLER)
    assert verdict.passed is False


async def test_no_marker_is_a_protocol_error(evaluator: GradingEvaluator) -> None:
    with pytest.raises(EvaluatorProtocolError) as excinfo:
        await evaluator.evaluate("python", "raise SystemExit(0)\n", DOUBLER)
    assert excinfo.value.stdout == ""


async def test_syntax_error_is_a_protocol_error_with_stderr(evaluator: GradingEvaluator) -> None:
    with pytest.raises(EvaluatorProtocolError) as excinfo:
        await evaluator.evaluate("javascript", "function solve( {", DOUBLER)
    assert "SyntaxError" in excinfo.value.stderr


async def test_unsupported_grading_language(evaluator: GradingEvaluator) -> None:
    assert not evaluator.supports("ruby")
    with pytest.raises(UnsupportedLanguage):
        await evaluator.evaluate("ruby", "def solve; end", DOUBLER)


def test_find_result_line_takes_the_last_marker() -> None:
    stdout = f"{RESULT_MARKER}first\nnoise\n{RESULT_MARKER}second\ntrailing"
    assert find_result_line(stdout) == "second"
    assert find_result_line("nothing here") is None
