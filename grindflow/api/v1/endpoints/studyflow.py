"""Study-flow endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from grindflow.api.v1.errors import MODEL_USED_HEADER, to_http_exception
from grindflow.core.auth import get_current_user
from grindflow.core.exceptions import AppError
from grindflow.dependencies import get_studyflow_pipeline
from grindflow.schemas.api import StudyFlowRequest, StudyFlowResponse
from grindflow.schemas.auth import CurrentUser
from grindflow.services.pipeline.studyflow_pipeline import StudyFlowPipeline

router = APIRouter()


@router.post(
    "/studyflow",
    response_model=StudyFlowResponse,
    response_model_exclude_none=True,
    summary="Generate a study flow analysis and/or diagram",
    operation_id="generate_studyflow",
)
async def generate_studyflow(
    body: StudyFlowRequest,
    response: Response,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    pipeline: Annotated[StudyFlowPipeline, Depends(get_studyflow_pipeline)],
) -> StudyFlowResponse:
    try:
        result = await pipeline.execute(body.document_id, current_user.id, flow_type=body.flow_type)
    except AppError as e:
        raise to_http_exception(e) from e

    response.headers[MODEL_USED_HEADER] = result.invocation.provenance
    return StudyFlowResponse(id=str(result.document_id), **result.payload)
