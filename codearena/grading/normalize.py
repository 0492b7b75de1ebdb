"""
Canonical serialization and order-insensitive normalization of graded values.

The same rules are embedded in the JavaScript and Python harness templates
(see ``codearena.grading.harness``) so a verdict computed inside the sandbox
can be reproduced on the host.
"""

from __future__ import annotations

import json
import math
from typing import Any

from codearena.grading.models import NormalizationMode


def _plain(value: Any) -> Any:
    """Reduce ``value`` to JSON-compatible data with integral floats as ints."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def canonical_json(value: Any) -> str:
    """
    Serialize ``value`` deterministically.

    Object keys are sorted and ``2.0`` serializes as ``2`` so that a Python
    float and a JavaScript number render the same way.
    """
    return json.dumps(_plain(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def deep_equal(a: Any, b: Any) -> bool:
    return canonical_json(a) == canonical_json(b)


def _sorted_flat(values: list) -> list:
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=canonical_json)


def normalize_value(value: Any, mode: NormalizationMode | str | None) -> Any:
    """
    Canonicalize ``value`` according to ``mode``.

    * ``none``: returned unchanged.
    * ``sort``: a sorted copy of a list (natural order when the items are
      mutually comparable, canonical serialization order otherwise).
    * ``sort-nested``: every nested list sorted, then the outer list sorted
      by canonical serialization.

    Non-list values pass through every mode unchanged. Applying the same
    mode twice gives the same result as applying it once.
    """
    mode = NormalizationMode(mode or NormalizationMode.NONE)
    if not isinstance(value, (list, tuple)):
        return value

    if mode is NormalizationMode.SORT:
        return _sorted_flat(list(value))
    if mode is NormalizationMode.SORT_NESTED:
        inner = [_sorted_flat(list(item)) if isinstance(item, (list, tuple)) else item for item in value]
        return sorted(inner, key=canonical_json)
    return value
