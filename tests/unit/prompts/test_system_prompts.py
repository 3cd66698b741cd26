"""Tests for prompt construction."""

import pytest

from grindflow.prompts.system_prompts import (
    BEGIN_TEXT_MARKER,
    END_TEXT_MARKER,
    PromptTask,
    build_prompt,
)


def test_rating_prompt_uses_default_context():
    spec = build_prompt(PromptTask.RATE, "notes.pdf", "Body text")

    assert 'User purpose/context: "General study"' in spec.user_prompt
    assert f"{BEGIN_TEXT_MARKER}\nBody text\n{END_TEXT_MARKER}" in spec.user_prompt
    assert '"score": number' in spec.system_instruction


def test_rating_prompt_includes_context():
    spec = build_prompt(PromptTask.RATE, "notes.pdf", "Body", parameter="  OS midterm  ")

    assert 'User purpose/context: "OS midterm"' in spec.user_prompt


def test_quiz_prompt_question_count_and_keywords():
    spec = build_prompt(PromptTask.QUIZ, "notes.pdf", "Body", parameter="paging", question_count=6)

    assert "exactly 6 concise questions" in spec.system_instruction
    assert 'Focus topic/keywords: "paging"' in spec.user_prompt
    assert spec.user_prompt.endswith("with 6 questions.")


def test_quiz_prompt_default_keywords():
    spec = build_prompt("quiz", "notes.pdf", "Body")

    assert 'Focus topic/keywords: "General"' in spec.user_prompt
    assert spec.task is PromptTask.QUIZ


@pytest.mark.parametrize(
    "task, present, absent",
    [
        (PromptTask.FLOW_DIAGRAM, ['"flowDiagram"'], ['"flowAnalysis"']),
        (PromptTask.FLOW_ANALYSIS, ['"flowAnalysis"'], ['"flowDiagram"']),
        (PromptTask.FLOW_BOTH, ['"flowAnalysis"', '"flowDiagram"'], []),
    ],
)
def test_flow_prompts_ask_for_requested_keys(task, present, absent):
    spec = build_prompt(task, "notes.pdf", "Body")

    for key in present:
        assert key in spec.user_prompt
    for key in absent:
        assert key not in spec.user_prompt


def test_unknown_task():
    with pytest.raises(ValueError):
        build_prompt("summarize", "notes.pdf", "Body")
