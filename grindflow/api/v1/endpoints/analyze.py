"""Document rating endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from grindflow.api.v1.errors import MODEL_USED_HEADER, to_http_exception
from grindflow.core.auth import get_current_user
from grindflow.core.exceptions import AppError
from grindflow.dependencies import get_rating_pipeline
from grindflow.schemas.api import AnalyzeRequest, RatingResponse, RatingResult
from grindflow.schemas.auth import CurrentUser
from grindflow.services.pipeline.rating_pipeline import RatingPipeline
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/analyze",
    response_model=RatingResponse,
    summary="Rate a document for the user's purpose",
    operation_id="analyze_document",
)
async def analyze_document(
    body: AnalyzeRequest,
    response: Response,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    pipeline: Annotated[RatingPipeline, Depends(get_rating_pipeline)],
) -> RatingResponse:
    """Score the document 0-100 with topics to focus on and a study plan."""
    try:
        result = await pipeline.execute(body.document_id, current_user.id, context=body.context)
    except AppError as e:
        raise to_http_exception(e) from e

    response.headers[MODEL_USED_HEADER] = result.invocation.provenance
    return RatingResponse(id=str(result.document_id), result=RatingResult(**result.payload))
