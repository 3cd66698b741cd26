"""Document listing and deletion endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from grindflow.api.v1.errors import to_http_exception
from grindflow.core.auth import get_current_user
from grindflow.core.exceptions import AppError
from grindflow.dependencies import get_document_service
from grindflow.schemas.api import DeleteDocumentResponse, RowsResponse
from grindflow.schemas.auth import CurrentUser
from grindflow.services.document_service import DocumentService
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=RowsResponse,
    summary="List documents",
    operation_id="list_documents",
)
async def list_documents(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> RowsResponse:
    """List the current user's documents, newest first."""
    try:
        rows = await document_service.list_documents(current_user.id)
    except AppError as e:
        raise to_http_exception(e) from e
    return RowsResponse(rows=rows)


@router.delete(
    "/{document_id}",
    response_model=DeleteDocumentResponse,
    summary="Delete a document",
    operation_id="delete_document",
)
async def delete_document(
    document_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> DeleteDocumentResponse:
    """Delete the stored PDF and its record."""
    try:
        result = await document_service.delete_document(document_id, current_user.id)
    except AppError as e:
        raise to_http_exception(e) from e

    LOGGER.info(f"User {current_user.id} deleted document {document_id}")
    return DeleteDocumentResponse(**result)
