from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from life_circle.models import CategoryScore, EvaluationStandard, SubTypeScore
from life_circle.standards import GRADE_DESCRIPTIONS

logger = logging.getLogger(__name__)

__all__ = [
    "GRADE_THRESHOLDS",
    "ScoreSummary",
    "grade_for_score",
    "grade_description",
    "parse_details",
    "required_met",
    "assemble_scores",
]

# Lower bounds, highest first. A score on a boundary belongs to the higher grade.
GRADE_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (90.0, "A"),
    (75.0, "B"),
    (60.0, "C"),
    (45.0, "D"),
)
LOWEST_GRADE = "E"


@dataclass(frozen=True)
class ScoreSummary:
    total_score: float
    grade: str
    category_scores: Tuple[CategoryScore, ...]

    @property
    def summary(self) -> str:
        return grade_description(self.grade)


def grade_for_score(score: float) -> str:
    if score is None or math.isnan(score):
        return LOWEST_GRADE
    for lower_bound, grade in GRADE_THRESHOLDS:
        if score >= lower_bound:
            return grade
    return LOWEST_GRADE


def grade_description(grade: str) -> str:
    return GRADE_DESCRIPTIONS.get((grade or "").strip(), "")


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        if value is None:
            return default
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int = 0) -> int:
    try:
        if value is None:
            return default
        return int(float(value))
    except (TypeError, ValueError):
        return default


def parse_details(payload: Any) -> List[SubTypeScore]:
    """
    Decode the per-subtype detail payload of an aggregation row.

    Accepts JSON text, bytes or an already decoded list. Anything malformed
    yields an empty list.
    """
    if payload is None:
        return []
    data = payload
    if isinstance(data, (bytes, bytearray, memoryview)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Score details payload is not valid UTF-8, ignoring")
            return []
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            logger.warning("Score details payload is not valid JSON, ignoring")
            return []
    if not isinstance(data, list):
        return []

    details: List[SubTypeScore] = []
    for item in data:
        if not isinstance(item, Mapping):
            logger.warning("Score details payload has a non-object entry, ignoring payload")
            return []
        details.append(
            SubTypeScore(
                subtype=str(item.get("sub_type") or ""),
                name=str(item.get("name") or ""),
                count=_as_int(item.get("count")),
                required=_as_int(item.get("required")),
                score=_as_float(item.get("score")),
            )
        )
    return details


def required_met(
    category: str,
    details: Sequence[SubTypeScore],
    standards: Iterable[EvaluationStandard],
) -> bool:
    """True when every required subtype of `category` reaches its 15-minute minimum."""
    counts: Dict[str, int] = {d.subtype: d.count for d in details}
    for standard in standards:
        if standard.category != category or not standard.required:
            continue
        if counts.get(standard.subtype, 0) < max(standard.min_count_15, 1):
            return False
    return True


def assemble_scores(
    rows: Iterable[Mapping[str, Any]],
    standards: Sequence[EvaluationStandard] = (),
) -> ScoreSummary:
    """
    Build the score fields of an evaluation from the aggregation rows.

    Every row repeats the overall total and grade; the last row wins. The
    grade is trimmed, and recomputed from the total when the aggregation
    leaves it empty.
    """
    total_score = 0.0
    grade = ""
    category_scores: List[CategoryScore] = []

    for row in rows:
        total_score = _as_float(row.get("total_score"))
        grade = str(row.get("grade") or "").strip()
        category = str(row.get("category") or "")
        details = parse_details(row.get("details"))
        category_scores.append(
            CategoryScore(
                category=category,
                name=str(row.get("category_name") or ""),
                score=_as_float(row.get("category_score")),
                weight=_as_float(row.get("cat_weight")),
                weighted_score=_as_float(row.get("weighted_score")),
                poi_count=_as_int(row.get("poi_count")),
                has_required=required_met(category, details, standards),
                details=tuple(details),
            )
        )

    if not grade:
        grade = grade_for_score(total_score)
    return ScoreSummary(total_score=total_score, grade=grade, category_scores=tuple(category_scores))
