"""
Static, language-keyed source filtering for sandbox code execution.

A lightweight first layer in front of the execution backends.  The real
limits come from process timeouts and ephemeral workspaces; this module only:
  1. Rejects source that obviously reaches for process spawning, filesystem
     mutation, string-to-code evaluation, networking or native interop
  2. Logs which pattern fired (the caller only sees a generic reason)
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from structlog import get_logger

from codearena.sandbox.models import SecurityCheckResult

logger = get_logger()

REJECTION_REASON = "Code contains restricted operations for safety."
UNKNOWN_LANGUAGE_REASON = "No safety rules are registered for this language."

_C_FAMILY = (
    r"\bsystem\s*\(",
    r"\bfork\s*\(",
    r"\bexec[a-z]*\s*\(",
    r"\bpopen\s*\(",
    r"\bremove\s*\(",
)

# Ordered per language; the first match wins.
DEFAULT_PATTERNS: dict[str, tuple[str, ...]] = {
    "javascript": (
        r"\brequire\s*\(",
        r"\bprocess\b",
        r"\bFunction\s*\(",
        r"\beval\s*\(",
        r"\bimport\s*\(",
        r"\bglobalThis\b",
        r"\bXMLHttpRequest\b",
        r"\bfetch\s*\(",
    ),
    "python": (
        r"\bimport\s+os\b",
        r"\bimport\s+sys\b",
        r"\bimport\s+subprocess\b",
        r"\bimport\s+socket\b",
        r"\bfrom\s+os\s+import\b",
        r"\bfrom\s+subprocess\s+import\b",
        r"\bopen\s*\(",
        r"\bexec\s*\(",
        r"\beval\s*\(",
        r"\b__import__\s*\(",
    ),
    "c": _C_FAMILY,
    "cpp": _C_FAMILY,
    "java": (
        r"\bRuntime\.getRuntime\(\)\.exec\b",
        r"\bProcessBuilder\b",
        r"\bjava\.io\.File\b",
        r"\bjava\.nio\.file\b",
        r"\bSystem\.setProperty\b",
    ),
    "go": (
        r"\bos/exec\b",
        r"\bexec\.Command\b",
        r"\bos\.Remove\b",
        r"\bos\.RemoveAll\b",
        r"\bos\.OpenFile\b",
    ),
    "ruby": (
        r"""\brequire\s+['"]socket['"]""",
        r"""\brequire\s+['"]open3['"]""",
        r"`[^`]*`",
        r"\bsystem\s*\(",
        r"\bexec\s*\(",
        r"\bIO\.popen\b",
        r"\bFile\.(?:delete|unlink|open)\b",
    ),
    "php": (
        r"\b(shell_exec|exec|system|passthru|proc_open|popen)\s*\(",
        r"\bcurl_init\s*\(",
        r"\bfsockopen\s*\(",
        r"\bfopen\s*\(",
        r"\bunlink\s*\(",
    ),
    "csharp": (
        r"\bSystem\.Diagnostics\.Process\b",
        r"\bProcess\.Start\b",
        r"\bSystem\.IO\.File\b",
        r"\bSystem\.IO\.Directory\b",
        r"\bSystem\.Net\b",
        r"\bDllImport\b",
    ),
    "sql": (
        r"(?i)\bATTACH\s+DATABASE\b",
        r"(?i)\bDETACH\s+DATABASE\b",
        r"(?i)\bLOAD_EXTENSION\b",
        r"(?i)\bPRAGMA\s+.*\bjournal_mode\b",
    ),
}


class SecurityRules:
    """Immutable mapping of language id to ordered compiled denylist patterns."""

    def __init__(self, patterns: Mapping[str, Iterable[str | re.Pattern[str]]]) -> None:
        compiled = {
            language: tuple(re.compile(p) if isinstance(p, str) else p for p in items)
            for language, items in patterns.items()
        }
        self._rules: Mapping[str, tuple[re.Pattern[str], ...]] = MappingProxyType(compiled)

    @classmethod
    def default(cls) -> "SecurityRules":
        return cls(DEFAULT_PATTERNS)

    def for_language(self, language: str) -> tuple[re.Pattern[str], ...] | None:
        return self._rules.get(language)

    @property
    def languages(self) -> frozenset[str]:
        return frozenset(self._rules)


DEFAULT_RULES = SecurityRules.default()


class SecurityGate:
    """
    Text-pattern denylist scan run before any execution.

    Advisory only: it is paired with process timeouts and throw-away
    workspaces, never relied on alone.
    """

    def __init__(
        self,
        rules: SecurityRules | None = None,
        reject_unknown_languages: bool = False,
    ) -> None:
        self.rules = rules or DEFAULT_RULES
        self.reject_unknown_languages = reject_unknown_languages

    def validate(self, language: str, source_code: str) -> SecurityCheckResult:
        """Return the first rejection for ``source_code``, or ``valid=True``."""
        patterns = self.rules.for_language(language)
        if patterns is None:
            if self.reject_unknown_languages:
                logger.warning("Source rejected: no rule set", language=language)
                return SecurityCheckResult(valid=False, reason=UNKNOWN_LANGUAGE_REASON)
            return SecurityCheckResult(valid=True)

        for pattern in patterns:
            if pattern.search(source_code):
                logger.warning(
                    "Source rejected by security gate",
                    language=language,
                    pattern=pattern.pattern,
                )
                return SecurityCheckResult(valid=False, reason=REJECTION_REASON)

        return SecurityCheckResult(valid=True)
