"""Shared flow of the model-backed document pipelines.

Every pipeline runs the same stages: ownership check, fetch-or-extract
text, prompt construction, model invocation, response repair and post
processing. Stages before the model call fail with typed errors; from the
model call on the result degrades instead of failing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict
from uuid import UUID

from grindflow.core.exceptions import AppError, ConfigurationError
from grindflow.database.models import Document
from grindflow.services.document_service import DocumentService, DocumentTextBundle
from grindflow.services.model_invoker import InvocationResult, ModelInvoker
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class PipelineResult:
    """Repaired payload plus the invocation that produced it."""

    document_id: UUID
    payload: Dict[str, Any]
    invocation: InvocationResult


class BasePipeline(ABC):
    """Template for the rating, quiz and study-flow pipelines."""

    name: str = "pipeline"

    def __init__(self, document_service: DocumentService, invoker: ModelInvoker):
        """Initialize the pipeline.

        Args:
            document_service: Ownership checks and the text cache
            invoker: Model invoker shared by all pipelines
        """
        self.document_service = document_service
        self.invoker = invoker
        self.logger = LOGGER

    async def execute(self, document_id: UUID, user_id: str, **params) -> PipelineResult:
        """Run the pipeline for one document.

        Args:
            document_id: Document to process
            user_id: Caller's Supabase user ID
            **params: Pipeline specific parameters

        Returns:
            PipelineResult for the document

        Raises:
            ValidationError: If parameters are invalid
            DocumentNotFoundError: If the document does not exist
            DocumentAccessDeniedError: If the caller does not own it
            ConfigurationError: If no model API key is configured
            StorageError: If the PDF cannot be downloaded
            AppError: For any other failure before the model call
        """
        try:
            self.validate(**params)

            document = await self.document_service.get_owned_document(document_id, user_id)
            if not self.invoker.is_configured:
                raise ConfigurationError("Gemini API key missing on server")

            text = await self.document_service.get_document_text(document)
            self.logger.info(
                f"Running {self.name} pipeline",
                extra={"document_id": str(document_id), "text_source": text.source, "text_length": len(text.normalized)},
            )

            result = await self.run(document, text, **params)

            self.logger.info(
                f"{self.name} pipeline finished",
                extra={"document_id": str(document_id), "model": result.invocation.provenance},
            )
            return result

        except AppError:
            raise

        except Exception as e:
            self.logger.error(
                f"Pipeline execution failed: {str(e)}",
                exc_info=True,
                extra={"pipeline": self.name}
            )
            raise AppError(f"{self.name} pipeline failed: {str(e)}", original_error=e)

    def validate(self, **params) -> None:
        """Validate pipeline parameters.

        Raises:
            ValidationError: If parameters are invalid
        """
        pass

    @abstractmethod
    async def run(self, document: Document, text: DocumentTextBundle, **params) -> PipelineResult:
        """Build the prompt, invoke the model and post-process the result."""
        pass
