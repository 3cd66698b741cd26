import json

import pytest
from unittest.mock import AsyncMock

from sqlalchemy.exc import SQLAlchemyError

from grindflow.core.config import PipelineSettings
from grindflow.core.exceptions import ConfigurationError, ModelOverloadedError, ValidationError
from grindflow.services.document_service import DocumentTextBundle
from grindflow.services.pipeline.quiz_pipeline import QuizPipeline
from grindflow.services.pipeline.rating_pipeline import RatingPipeline
from grindflow.services.pipeline.studyflow_pipeline import StudyFlowPipeline

RATING_JSON = json.dumps({
    "score": 85,
    "verdict": "Solid revision material",
    "rationale": "Covers processes, scheduling and deadlock",
    "focus_topics": ["Deadlock"],
    "repetitive_topics": [],
    "suggested_plan": ["Review scheduling algorithms"],
})

QUIZ_JSON = json.dumps({
    "questions": [
        {
            "question": "Which condition is required for deadlock?",
            "options": ["Preemption", "Circular wait", "Paging", "Caching"],
            "correctIndex": 1,
        }
    ]
})


@pytest.fixture
def metadata_repository():
    return AsyncMock()


@pytest.mark.asyncio
async def test_rating_pipeline_persists_score(document_service, metadata_repository, make_transport, make_invoker, sample_document):
    primary = make_transport("sdk", [RATING_JSON])
    pipeline = RatingPipeline(document_service, make_invoker(primary, make_transport("http")), metadata_repository)

    result = await pipeline.execute(sample_document.id, sample_document.user_id, context="final exam")

    assert result.payload["score"] == 85
    assert result.invocation.provenance == "model-a/sdk"
    metadata_repository.save_rating.assert_awaited_once_with(
        sample_document.id, 85, "Covers processes, scheduling and deadlock"
    )
    assert "final exam" in primary.calls[0][1]


@pytest.mark.asyncio
async def test_rating_pipeline_save_failure_still_returns(document_service, metadata_repository, make_transport, make_invoker, sample_document):
    metadata_repository.save_rating.side_effect = SQLAlchemyError("db down")
    pipeline = RatingPipeline(
        document_service, make_invoker(make_transport("sdk", [RATING_JSON]), make_transport("http")), metadata_repository
    )

    result = await pipeline.execute(sample_document.id, sample_document.user_id)

    assert result.payload["score"] == 85
    metadata_repository.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_rating_pipeline_overload_propagates(document_service, metadata_repository, make_transport, make_invoker, sample_document):
    busy = RuntimeError("503 model is overloaded")
    pipeline = RatingPipeline(
        document_service, make_invoker(make_transport("sdk", [busy]), make_transport("http", [busy])), metadata_repository
    )

    with pytest.raises(ModelOverloadedError):
        await pipeline.execute(sample_document.id, sample_document.user_id)

    metadata_repository.save_rating.assert_not_called()


@pytest.mark.asyncio
async def test_missing_api_key_stops_before_text_fetch(document_service, metadata_repository, make_transport, make_invoker, sample_document):
    invoker = make_invoker(make_transport("sdk", api_key=""), make_transport("http", api_key=""))
    pipeline = RatingPipeline(document_service, invoker, metadata_repository)

    with pytest.raises(ConfigurationError, match="Gemini API key missing on server"):
        await pipeline.execute(sample_document.id, sample_document.user_id)

    document_service.get_owned_document.assert_awaited_once()
    document_service.get_document_text.assert_not_called()


@pytest.mark.asyncio
async def test_quiz_pipeline_focuses_on_keyword_lines(document_service, make_transport, make_invoker, sample_document):
    lines = [f"Mutex lock rule number {i}" for i in range(6)] + [f"Unrelated paging detail {i}" for i in range(20)]
    normalized = "\n".join(lines)
    document_service.get_document_text.return_value = DocumentTextBundle(
        sample_document.id, normalized, normalized, normalized, "cache"
    )
    primary = make_transport("sdk", [QUIZ_JSON])
    pipeline = QuizPipeline(
        document_service, make_invoker(primary, make_transport("http")), pipeline_settings=PipelineSettings(), model="model-a"
    )

    result = await pipeline.execute(sample_document.id, sample_document.user_id, keyword="mutex")

    assert len(result.payload["questions"]) == 1
    prompt = primary.calls[0][1]
    assert "Mutex lock rule number 5" in prompt
    assert "Unrelated paging detail" not in prompt


@pytest.mark.asyncio
async def test_quiz_pipeline_retries_once_on_unusable_response(document_service, make_transport, make_invoker, sample_document):
    primary = make_transport("sdk", ["Here are some thoughts about the notes.", QUIZ_JSON])
    pipeline = QuizPipeline(
        document_service, make_invoker(primary, make_transport("http")), pipeline_settings=PipelineSettings(), model="model-a"
    )

    result = await pipeline.execute(sample_document.id, sample_document.user_id)

    assert len(primary.calls) == 2
    assert result.payload["questions"][0]["correctIndex"] == 1


@pytest.mark.asyncio
async def test_quiz_pipeline_returns_empty_when_model_is_silent(document_service, make_transport, make_invoker, sample_document):
    primary = make_transport("sdk", [""])
    fallback = make_transport("http", [""])
    pipeline = QuizPipeline(
        document_service, make_invoker(primary, fallback), pipeline_settings=PipelineSettings(), model="model-a"
    )

    result = await pipeline.execute(sample_document.id, sample_document.user_id)

    assert result.payload == {"questions": []}
    assert result.invocation.provenance == "none"
    assert len(primary.calls) == 1
    assert len(fallback.calls) == 1


@pytest.mark.asyncio
async def test_quiz_pipeline_caps_question_count(document_service, make_transport, make_invoker, sample_document):
    question = json.loads(QUIZ_JSON)["questions"][0]
    many = json.dumps({"questions": [question] * 12})
    pipeline = QuizPipeline(
        document_service,
        make_invoker(make_transport("sdk", [many]), make_transport("http")),
        pipeline_settings=PipelineSettings(FAST_MODE=True),
        model="model-a",
    )

    result = await pipeline.execute(sample_document.id, sample_document.user_id)

    assert len(result.payload["questions"]) == 6


@pytest.mark.asyncio
async def test_studyflow_rejects_unknown_type(document_service, make_transport, make_invoker, sample_document):
    pipeline = StudyFlowPipeline(document_service, make_invoker(make_transport("sdk"), make_transport("http")))

    with pytest.raises(ValidationError, match="Invalid type"):
        await pipeline.execute(sample_document.id, sample_document.user_id, flow_type="mindmap")

    document_service.get_owned_document.assert_not_called()


@pytest.mark.asyncio
async def test_studyflow_analysis_unescapes_literal_newlines(document_service, make_transport, make_invoker, sample_document):
    response = r'{"flowAnalysis": "1. Processes\\n2. Threads"}'
    pipeline = StudyFlowPipeline(document_service, make_invoker(make_transport("sdk", [response]), make_transport("http")))

    result = await pipeline.execute(sample_document.id, sample_document.user_id, flow_type="analysis")

    assert result.payload == {"flowAnalysis": "1. Processes\n2. Threads"}


@pytest.mark.asyncio
async def test_studyflow_both_returns_both_fields(document_service, make_transport, make_invoker, sample_document):
    response = json.dumps({"flowAnalysis": "Start with processes", "flowDiagram": "[Processes] --> [Threads]"})
    pipeline = StudyFlowPipeline(document_service, make_invoker(make_transport("sdk", [response]), make_transport("http")))

    result = await pipeline.execute(sample_document.id, sample_document.user_id)

    assert set(result.payload) == {"flowAnalysis", "flowDiagram"}
    assert result.payload["flowDiagram"] == "[Processes] --> [Threads]"
