"""Quiz generation endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from grindflow.api.v1.errors import MODEL_USED_HEADER, to_http_exception
from grindflow.core.auth import get_current_user
from grindflow.core.exceptions import AppError
from grindflow.dependencies import get_quiz_pipeline
from grindflow.schemas.api import QuizQuestion, QuizRequest, QuizResponse
from grindflow.schemas.auth import CurrentUser
from grindflow.services.pipeline.quiz_pipeline import QuizPipeline

router = APIRouter()


@router.post(
    "/quiz",
    response_model=QuizResponse,
    summary="Generate a multiple-choice quiz",
    operation_id="generate_quiz",
)
async def generate_quiz(
    body: QuizRequest,
    response: Response,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    pipeline: Annotated[QuizPipeline, Depends(get_quiz_pipeline)],
) -> QuizResponse:
    """Quiz the user on the document, optionally focused on keywords.

    Answers within the quiz deadline; an empty question list means the
    model did not produce a usable quiz in time.
    """
    try:
        result = await pipeline.execute(body.document_id, current_user.id, keyword=body.keyword)
    except AppError as e:
        raise to_http_exception(e) from e

    response.headers[MODEL_USED_HEADER] = result.invocation.provenance
    return QuizResponse(
        id=str(result.document_id),
        questions=[QuizQuestion(**question) for question in result.payload["questions"]],
    )
