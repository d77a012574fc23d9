from __future__ import annotations

from life_circle.models import CategoryScore
from life_circle.standards import CATEGORY_DISPLAY_NAMES
from life_circle.suggestions import WELL_SERVED_SUGGESTION, generate_suggestions


def _score(category: str, score: float, name: str = "") -> CategoryScore:
    return CategoryScore(category=category, name=name, score=score, weight=0.1, weighted_score=score * 0.1, poi_count=1)


def test_all_categories_well_served() -> None:
    scores = [_score("medical", 60.0), _score("education", 95.0)]
    assert generate_suggestions(scores) == [WELL_SERVED_SUGGESTION]


def test_one_weak_category() -> None:
    suggestions = generate_suggestions([_score("medical", 80.0), _score("culture", 40.0)])
    assert len(suggestions) == 1
    assert CATEGORY_DISPLAY_NAMES["culture"] in suggestions[0]
    assert "40.0" in suggestions[0]


def test_order_follows_input() -> None:
    suggestions = generate_suggestions([_score("transport", 10.0), _score("medical", 59.9)])
    assert CATEGORY_DISPLAY_NAMES["transport"] in suggestions[0]
    assert "59.9" in suggestions[1]


def test_unknown_category_uses_row_name() -> None:
    suggestions = generate_suggestions([_score("child", 0.0, name="Child Friendly")])
    assert suggestions[0].startswith("[Child Friendly]")


def test_empty_input_falls_back() -> None:
    assert generate_suggestions([]) == [WELL_SERVED_SUGGESTION]
