"""Tests for response schema coercion."""

import pytest

from grindflow.schemas.llm_outputs import (
    FLOW_BOTH_SCHEMA,
    FLOW_UNAVAILABLE_MESSAGES,
    QUIZ_SCHEMA,
    RATING_SCHEMA,
    RatingResponseSchema,
)


@pytest.mark.parametrize(
    "value, expected",
    [(85, 85), (84.6, 85), ("72", 72), ("90%", 90), (150, 100), (-5, 0), ("n/a", 0), (None, 0), (True, 0)],
)
def test_clamp_score(value, expected):
    assert RatingResponseSchema.clamp_score(value) == expected


def test_rating_coerce_limits_lists_and_drops_non_strings():
    result = RATING_SCHEMA.coerce({
        "score": 80,
        "verdict": "  Good ",
        "focus_topics": [f"topic {i}" for i in range(12)],
        "repetitive_topics": "single topic",
        "suggested_plan": ["step", {"nested": True}, None, ""],
    })

    assert result["verdict"] == "Good"
    assert result["rationale"] == ""
    assert len(result["focus_topics"]) == 8
    assert result["repetitive_topics"] == ["single topic"]
    assert result["suggested_plan"] == ["step"]


def test_quiz_coerce_accepts_snake_case_index():
    result = QUIZ_SCHEMA.coerce({"questions": [
        {"question": "Q?", "options": ["a", "b", "c", "d"], "correct_index": 0},
    ]})

    assert result["questions"][0]["correctIndex"] == 0


def test_quiz_coerce_rejects_fractional_index_and_empty_options():
    result = QUIZ_SCHEMA.coerce({"questions": [
        {"question": "Q1", "options": ["a", "b", "c", "d"], "correctIndex": 1.5},
        {"question": "Q2", "options": ["a", "", "c", "d"], "correctIndex": 1},
        "not a question",
    ]})

    assert result == {"questions": []}


def test_flow_placeholder_fills_empty_half():
    result = FLOW_BOTH_SCHEMA.placeholder("")

    assert result == FLOW_UNAVAILABLE_MESSAGES
