from __future__ import annotations

from typing import Iterable, List, Mapping

from life_circle.models import CategoryScore
from life_circle.standards import CATEGORY_DISPLAY_NAMES

__all__ = ["SUGGESTION_THRESHOLD", "WELL_SERVED_SUGGESTION", "generate_suggestions"]

SUGGESTION_THRESHOLD = 60.0

WELL_SERVED_SUGGESTION = (
    "The life circle around this location is well served; keep the current level of service."
)


def generate_suggestions(
    category_scores: Iterable[CategoryScore],
    display_names: Mapping[str, str] = CATEGORY_DISPLAY_NAMES,
) -> List[str]:
    """One remediation hint per category scoring below 60, in input order."""
    suggestions: List[str] = []
    for cs in category_scores:
        if cs.score >= SUGGESTION_THRESHOLD:
            continue
        name = display_names.get(cs.category) or cs.name
        suggestions.append(
            f"[{name}] facility coverage is insufficient (score {cs.score:.1f}); "
            "consider adding supporting facilities."
        )

    if not suggestions:
        suggestions.append(WELL_SERVED_SUGGESTION)
    return suggestions
