"""Extracted text status endpoint."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from grindflow.api.v1.errors import to_http_exception
from grindflow.core.auth import get_current_user
from grindflow.core.exceptions import AppError
from grindflow.dependencies import get_document_service
from grindflow.schemas.api import TextStatusResponse
from grindflow.schemas.auth import CurrentUser
from grindflow.services.document_service import DocumentService

router = APIRouter()


@router.get(
    "/{document_id}",
    response_model=TextStatusResponse,
    summary="Get extracted text status",
    operation_id="get_text_status",
)
async def get_text_status(
    document_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> TextStatusResponse:
    """Whether the document's text is cached, with a short preview."""
    try:
        document = await document_service.get_owned_document(document_id, current_user.id)
        status = await document_service.get_text_status(document)
    except AppError as e:
        raise to_http_exception(e) from e

    return TextStatusResponse(**status)
