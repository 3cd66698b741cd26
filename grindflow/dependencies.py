"""FastAPI dependency factories for services and pipelines."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from grindflow.core.cache import TTLCache
from grindflow.core.config import settings
from grindflow.core.database import get_async_session
from grindflow.core.llm_client import GeminiHTTPTransport, GeminiSDKTransport
from grindflow.repositories.document_metadata_repository import DocumentMetadataRepository
from grindflow.services.document_service import DocumentService
from grindflow.services.model_invoker import InvocationConfig, ModelInvoker
from grindflow.services.pipeline.quiz_pipeline import QuizPipeline
from grindflow.services.pipeline.rating_pipeline import RatingPipeline
from grindflow.services.pipeline.studyflow_pipeline import StudyFlowPipeline
from grindflow.services.public_library_service import PublicLibraryService
from grindflow.services.storage_service import StorageService

# Process-wide "is the bucket public" hint shared by every request
bucket_cache: TTLCache = TTLCache(settings.supabase.bucket_cache_ttl)


def get_storage_service() -> StorageService:
    return StorageService(bucket_cache)


@lru_cache(maxsize=1)
def get_model_invoker() -> ModelInvoker:
    """Single invoker per process; the SDK client inside is reused."""
    llm = settings.llm
    return ModelInvoker(
        primary=GeminiSDKTransport(llm.gemini_api_key, timeout=llm.request_timeout, temperature=llm.temperature),
        fallback=GeminiHTTPTransport(llm.gemini_api_key, base_url=llm.gemini_api_base, timeout=llm.request_timeout),
        config=InvocationConfig(
            candidate_models=llm.candidate_models,
            backoff_schedule=llm.backoff_schedule,
        ),
    )


async def get_document_service(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    storage: Annotated[StorageService, Depends(get_storage_service)],
) -> DocumentService:
    return DocumentService(session, storage)


async def get_public_library_service(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    storage: Annotated[StorageService, Depends(get_storage_service)],
) -> PublicLibraryService:
    return PublicLibraryService(session, storage)


async def get_rating_pipeline(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    document_service: Annotated[DocumentService, Depends(get_document_service)],
    invoker: Annotated[ModelInvoker, Depends(get_model_invoker)],
) -> RatingPipeline:
    return RatingPipeline(document_service, invoker, DocumentMetadataRepository(session))


async def get_quiz_pipeline(
    document_service: Annotated[DocumentService, Depends(get_document_service)],
    invoker: Annotated[ModelInvoker, Depends(get_model_invoker)],
) -> QuizPipeline:
    return QuizPipeline(document_service, invoker)


async def get_studyflow_pipeline(
    document_service: Annotated[DocumentService, Depends(get_document_service)],
    invoker: Annotated[ModelInvoker, Depends(get_model_invoker)],
) -> StudyFlowPipeline:
    return StudyFlowPipeline(document_service, invoker)
