from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from codearena.grading.catalog import ChallengeCatalog, load_catalog
from codearena.grading.models import NormalizationMode


def test_bundled_catalog_loads(catalog: ChallengeCatalog) -> None:
    assert len(catalog) == 10
    assert "two-sum" in catalog
    assert catalog.get("group-anagrams").normalize is NormalizationMode.SORT_NESTED
    assert catalog.get("top-k-frequent-elements").normalize is NormalizationMode.SORT
    assert catalog.get("two-sum").normalize is NormalizationMode.NONE


def test_get_strips_whitespace_and_misses_cleanly(catalog: ChallengeCatalog) -> None:
    assert catalog.get("  two-sum ").id == "two-sum"
    assert catalog.get("nope") is None
    assert catalog.public_detail("nope") is None


def test_filters(catalog: ChallengeCatalog) -> None:
    easy = catalog.list_summaries(difficulty="easy")
    assert {item.id for item in easy} == {"two-sum", "valid-parentheses", "binary-search"}

    dp = catalog.list_summaries(category="Dynamic Programming")
    assert [item.id for item in dp] == ["word-break"]

    searched = catalog.list_summaries(search="HASHMAP")
    assert "two-sum" in {item.id for item in searched}
    assert "binary-search" not in {item.id for item in searched}

    assert len(catalog.list_summaries(interview_only=True)) == 10


def test_public_detail_hides_tests(catalog: ChallengeCatalog) -> None:
    detail = catalog.public_detail("two-sum")
    dumped = detail.model_dump()
    assert detail.test_count == 3
    assert "tests" not in dumped
    assert "python" in detail.starter_code
    assert "[2, 7, 11, 15]" not in json.dumps(dumped)


def test_duplicate_ids_are_rejected(tmp_path: Path) -> None:
    item = {"id": "x", "title": "X", "difficulty": "Easy", "category": "C", "statement": "s"}
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([item, item]), encoding="utf-8")
    with pytest.raises(ValueError, match="Duplicate"):
        load_catalog(path)


def test_invalid_entries_fail_validation(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([{"id": "x"}]), encoding="utf-8")
    with pytest.raises(ValidationError):
        load_catalog(path)


def test_challenges_are_immutable(catalog: ChallengeCatalog) -> None:
    with pytest.raises(ValidationError):
        catalog.get("two-sum").title = "changed"
