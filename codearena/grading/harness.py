"""
Harness generation for graded submissions.

A harness is the user's source followed by a small grading program written
in the same language. It resolves the entry point, runs every hidden test in
order, stops at the first failure and prints exactly one result line::

    __CODEARENA_RESULT__:{"passed": true, "passedCount": 3, "total": 3}

Test data is embedded as a JSON string literal and decoded at run time, so
``true``/``false``/``null`` survive the trip into Python unchanged.
"""

from __future__ import annotations

import json
from string import Template

from codearena.grading.models import Challenge
from codearena.sandbox.errors import UnsupportedLanguage

RESULT_MARKER = "__CODEARENA_RESULT__:"
ENTRY_POINT_FALLBACKS = ("solve", "solution")
FUNCTION_NOT_FOUND = "Function not found. Define solve(...) function."

# ----------------------------------------------------------------------
# JavaScript
# ----------------------------------------------------------------------

_JAVASCRIPT_HARNESS = Template(
    """${user_source}

;(function () {
  var MARKER = ${marker};
  var tests = JSON.parse(${tests});
  var mode = ${mode};

  function canonical(value) {
    if (value === undefined || typeof value === 'function') return 'null';
    if (value === null || typeof value !== 'object') {
      var text = JSON.stringify(value);
      return text === undefined ? 'null' : text;
    }
    if (Array.isArray(value)) return '[' + value.map(canonical).join(',') + ']';
    var parts = [];
    Object.keys(value).sort().forEach(function (key) {
      var item = value[key];
      if (item === undefined || typeof item === 'function') return;
      parts.push(JSON.stringify(key) + ':' + canonical(item));
    });
    return '{' + parts.join(',') + '}';
  }

  function deepEqual(a, b) {
    return canonical(a) === canonical(b);
  }

  function byCanonical(a, b) {
    var x = canonical(a);
    var y = canonical(b);
    return x < y ? -1 : (x > y ? 1 : 0);
  }

  function naturalOrder(a, b) {
    if (typeof a === 'number' && typeof b === 'number') return a - b;
    if (typeof a === 'string' && typeof b === 'string') return a < b ? -1 : (a > b ? 1 : 0);
    return byCanonical(a, b);
  }

  function normalize(value, mode) {
    if (!Array.isArray(value)) return value;
    if (mode === 'sort') return value.slice().sort(naturalOrder);
    if (mode === 'sort-nested') {
      return value.map(function (item) {
        return Array.isArray(item) ? item.slice().sort(naturalOrder) : item;
      }).sort(byCanonical);
    }
    return value;
  }

  function resolveEntryPoint(candidates) {
    for (var i = 0; i < candidates.length; i += 1) {
      if (typeof candidates[i] === 'function') return candidates[i];
    }
    return null;
  }

  function emit(payload) {
    console.log(MARKER + canonical(payload));
  }

  var entry = resolveEntryPoint([${probes}]);
  if (!entry) {
    emit({ passed: false, error: ${not_found} });
    return;
  }

  var passedCount = 0;
  for (var i = 0; i < tests.length; i += 1) {
    var test = tests[i];
    var expected;
    var actual;
    try {
      actual = normalize(entry.apply(null, test.args), mode);
      expected = normalize(test.expected, mode);
      if (!deepEqual(actual, expected)) {
        emit({ passed: false, passedCount: passedCount, total: tests.length, failedAt: i + 1, expected: expected, actual: actual });
        return;
      }
    } catch (e) {
      emit({ passed: false, passedCount: passedCount, total: tests.length, failedAt: i + 1, error: String(e && e.message ? e.message : e) });
      return;
    }
    passedCount += 1;
  }
  emit({ passed: true, passedCount: passedCount, total: tests.length });
})();
"""
)

# ----------------------------------------------------------------------
# Python
# ----------------------------------------------------------------------

_PYTHON_HARNESS = Template(
    '''${user_source}


def _codearena_harness():
    import json
    import math

    marker = ${marker}
    tests = json.loads(${tests})
    mode = ${mode}
    namespace = globals()

    def plain(value):
        if isinstance(value, bool) or value is None:
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            return int(value) if value.is_integer() else value
        if isinstance(value, dict):
            return {str(k): plain(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [plain(item) for item in value]
        return value

    def canonical(value):
        return json.dumps(plain(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def deep_equal(a, b):
        return canonical(a) == canonical(b)

    def sorted_flat(values):
        try:
            return sorted(values)
        except TypeError:
            return sorted(values, key=canonical)

    def normalize(value, mode):
        if not isinstance(value, (list, tuple)):
            return value
        if mode == "sort":
            return sorted_flat(list(value))
        if mode == "sort-nested":
            inner = [sorted_flat(list(item)) if isinstance(item, (list, tuple)) else item for item in value]
            return sorted(inner, key=canonical)
        return value

    def resolve_entry_point(candidates):
        for name in candidates:
            candidate = namespace.get(name)
            if callable(candidate):
                return candidate
        return None

    def emit(payload):
        print(marker + canonical(payload), flush=True)

    entry = resolve_entry_point(${candidates})
    if entry is None:
        emit({"passed": False, "error": ${not_found}})
        return

    total = len(tests)
    passed_count = 0
    for index, test in enumerate(tests):
        try:
            actual = normalize(entry(*test["args"]), mode)
            expected = normalize(test["expected"], mode)
            if not deep_equal(actual, expected):
                emit({
                    "passed": False,
                    "passedCount": passed_count,
                    "total": total,
                    "failedAt": index + 1,
                    "expected": expected,
                    "actual": actual,
                })
                return
        except Exception as exc:
            emit({
                "passed": False,
                "passedCount": passed_count,
                "total": total,
                "failedAt": index + 1,
                "error": str(exc) or type(exc).__name__,
            })
            return
        passed_count += 1

    emit({"passed": True, "passedCount": passed_count, "total": total})


_codearena_harness()
'''
)


def entry_point_candidates(challenge: Challenge) -> list[str]:
    """Configured function name first, then the fallbacks, without duplicates."""
    return list(dict.fromkeys((challenge.function_name, *ENTRY_POINT_FALLBACKS)))


def _test_payload(challenge: Challenge) -> str:
    return json.dumps([{"args": list(test.args), "expected": test.expected} for test in challenge.tests])


class HarnessGenerator:
    """
    Builds a self-grading program for a challenge.

    Usage::

        source = HarnessGenerator().build("python", challenge, user_code)
    """

    languages = ("javascript", "python")

    def supports(self, language: str) -> bool:
        return language in self.languages

    def build(self, language: str, challenge: Challenge, user_source: str) -> str:
        if language == "javascript":
            return self._javascript(challenge, user_source)
        if language == "python":
            return self._python(challenge, user_source)
        raise UnsupportedLanguage(language, "Unsupported language for grading. Use JavaScript or Python.")

    def _javascript(self, challenge: Challenge, user_source: str) -> str:
        # function names are validated identifiers, safe to splice as code
        probes = ", ".join(
            f"(typeof {name} === 'function' ? {name} : null)" for name in entry_point_candidates(challenge)
        )
        return _JAVASCRIPT_HARNESS.substitute(
            user_source=user_source,
            marker=json.dumps(RESULT_MARKER),
            tests=json.dumps(_test_payload(challenge)),
            mode=json.dumps(challenge.normalize.value),
            probes=probes,
            not_found=json.dumps(FUNCTION_NOT_FOUND),
        )

    def _python(self, challenge: Challenge, user_source: str) -> str:
        return _PYTHON_HARNESS.substitute(
            user_source=user_source,
            marker=repr(RESULT_MARKER),
            tests=repr(_test_payload(challenge)),
            mode=repr(challenge.normalize.value),
            candidates=repr(entry_point_candidates(challenge)),
            not_found=repr(FUNCTION_NOT_FOUND),
        )
