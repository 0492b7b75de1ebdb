"""Graded practice challenges: catalog, harnesses and verdicts."""

from codearena.grading.catalog import ChallengeCatalog, load_catalog
from codearena.grading.evaluator import GradingEvaluator
from codearena.grading.harness import RESULT_MARKER, HarnessGenerator
from codearena.grading.models import Challenge, NormalizationMode, Verdict
from codearena.grading.normalize import canonical_json, deep_equal, normalize_value

__all__ = [
    "Challenge",
    "ChallengeCatalog",
    "GradingEvaluator",
    "HarnessGenerator",
    "NormalizationMode",
    "RESULT_MARKER",
    "Verdict",
    "canonical_json",
    "deep_equal",
    "load_catalog",
    "normalize_value",
]
