"""Public library endpoints."""

from typing import Annotated
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from grindflow.api.v1.errors import to_http_exception
from grindflow.core.auth import get_current_user
from grindflow.core.exceptions import AppError
from grindflow.dependencies import get_public_library_service
from grindflow.schemas.api import (
    PublicLibrarySubmitRequest,
    PublicLibrarySubmitResponse,
    RowsResponse,
    ViewUrlResponse,
)
from grindflow.schemas.auth import CurrentUser
from grindflow.services.public_library_service import PublicLibraryService

router = APIRouter()


@router.get(
    "",
    response_model=RowsResponse,
    summary="List shared documents",
    operation_id="list_public_library",
)
async def list_public_library(
    library: Annotated[PublicLibraryService, Depends(get_public_library_service)],
) -> RowsResponse:
    try:
        rows = await library.list_entries()
    except AppError as e:
        raise to_http_exception(e) from e
    return RowsResponse(rows=rows)


@router.post(
    "/submit",
    response_model=PublicLibrarySubmitResponse,
    summary="Share a document",
    operation_id="submit_public_library_entry",
)
async def submit_entry(
    body: PublicLibrarySubmitRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    library: Annotated[PublicLibraryService, Depends(get_public_library_service)],
) -> PublicLibrarySubmitResponse:
    """Share one of the caller's documents with its rating details."""
    if body.document_id is None or not body.subject:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing document_id or subject")

    fields = body.model_dump(exclude={"document_id"})
    try:
        entry_id = await library.submit(current_user.id, body.document_id, fields)
    except AppError as e:
        raise to_http_exception(e) from e
    return PublicLibrarySubmitResponse(success=True, id=entry_id)


@router.get(
    "/view",
    response_model=ViewUrlResponse,
    summary="Get a temporary URL for a shared document",
    operation_id="view_public_library_document",
)
async def view_document(
    library: Annotated[PublicLibraryService, Depends(get_public_library_service)],
    document_id: UUID = Query(..., alias="id"),
) -> ViewUrlResponse:
    try:
        url = await library.get_view_url(document_id)
    except AppError as e:
        raise to_http_exception(e) from e
    return ViewUrlResponse(url=url)


@router.get(
    "/download",
    summary="Download a shared document",
    operation_id="download_public_library_document",
    response_class=Response,
)
async def download_document(
    library: Annotated[PublicLibraryService, Depends(get_public_library_service)],
    document_id: UUID = Query(..., alias="id"),
) -> Response:
    try:
        content, file_name = await library.download(document_id)
    except AppError as e:
        raise to_http_exception(e) from e

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(file_name)}"},
    )
