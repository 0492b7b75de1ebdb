"""
Read-only catalog of graded practice challenges.

Challenges are loaded once from a JSON file (the bundled ``challenges.json``
unless configured otherwise) and validated through pydantic. Hidden tests
never leave the catalog through the public views.
"""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType

from pydantic import TypeAdapter
from structlog import get_logger

from codearena.grading.models import Challenge, ChallengeDetail, ChallengeSummary

logger = get_logger()

BUNDLED_CATALOG = Path(__file__).with_name("challenges.json")

_CHALLENGE_LIST = TypeAdapter(list[Challenge])


class ChallengeCatalog:
    """
    Immutable collection of challenges keyed by id.

    Usage::

        catalog = load_catalog()
        for summary in catalog.list_summaries(difficulty="Easy"):
            print(summary.title)
    """

    def __init__(self, challenges: list[Challenge]) -> None:
        by_id: dict[str, Challenge] = {}
        for challenge in challenges:
            if challenge.id in by_id:
                raise ValueError(f"Duplicate challenge id: {challenge.id}")
            by_id[challenge.id] = challenge
        self._challenges = MappingProxyType(by_id)

    def __len__(self) -> int:
        return len(self._challenges)

    def __contains__(self, challenge_id: object) -> bool:
        return challenge_id in self._challenges

    def get(self, challenge_id: str) -> Challenge | None:
        return self._challenges.get(str(challenge_id or "").strip())

    def list_summaries(
        self,
        difficulty: str | None = None,
        category: str | None = None,
        search: str | None = None,
        interview_only: bool = False,
    ) -> list[ChallengeSummary]:
        """
        Public summaries, in catalog order.

        ``difficulty`` and ``category`` match case-insensitively; ``search``
        is a case-insensitive substring of the title, category and tags
        joined by spaces.
        """
        needle = (search or "").strip().lower()
        summaries: list[ChallengeSummary] = []
        for challenge in self._challenges.values():
            if difficulty and challenge.difficulty.lower() != difficulty.strip().lower():
                continue
            if category and challenge.category.lower() != category.strip().lower():
                continue
            if interview_only and not challenge.interview:
                continue
            if needle:
                haystack = " ".join([challenge.title, challenge.category, *challenge.tags]).lower()
                if needle not in haystack:
                    continue
            summaries.append(_summary(challenge))
        return summaries

    def public_detail(self, challenge_id: str) -> ChallengeDetail | None:
        challenge = self.get(challenge_id)
        if challenge is None:
            return None
        return ChallengeDetail(
            **_summary(challenge).model_dump(),
            statement=challenge.statement,
            constraints=list(challenge.constraints),
            examples=list(challenge.examples),
            starter_code=dict(challenge.starter_code),
            test_count=len(challenge.tests),
        )


def _summary(challenge: Challenge) -> ChallengeSummary:
    return ChallengeSummary(
        id=challenge.id,
        title=challenge.title,
        difficulty=challenge.difficulty,
        category=challenge.category,
        interview=challenge.interview,
        tags=list(challenge.tags),
    )


def load_catalog(path: Path | str | None = None) -> ChallengeCatalog:
    """Load and validate a catalog file; defaults to the bundled challenges."""
    source = Path(path) if path else BUNDLED_CATALOG
    raw = json.loads(source.read_text(encoding="utf-8"))
    catalog = ChallengeCatalog(_CHALLENGE_LIST.validate_python(raw))
    logger.info("Challenge catalog loaded", path=str(source), challenges=len(catalog))
    return catalog
