"""Document rating pipeline."""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from grindflow.core.config import settings
from grindflow.database.models import Document
from grindflow.prompts.system_prompts import PromptTask, build_prompt
from grindflow.repositories.document_metadata_repository import DocumentMetadataRepository
from grindflow.schemas.llm_outputs import RATING_SCHEMA
from grindflow.services.document_service import DocumentService, DocumentTextBundle
from grindflow.services.model_invoker import ModelInvoker
from grindflow.services.pipeline.base_pipeline import BasePipeline, PipelineResult
from grindflow.utils.json_parser import repair_json_response
from grindflow.utils.text import build_short_text


class RatingPipeline(BasePipeline):
    """Scores a document 0-100 against the user's stated purpose."""

    name = "rating"

    def __init__(
        self,
        document_service: DocumentService,
        invoker: ModelInvoker,
        metadata_repository: DocumentMetadataRepository,
    ):
        super().__init__(document_service, invoker)
        self.metadata_repository = metadata_repository
        self.max_chars = settings.pipeline.rating_max_chars

    async def run(
        self,
        document: Document,
        text: DocumentTextBundle,
        context: Optional[str] = None,
    ) -> PipelineResult:
        window = build_short_text(text.normalized, self.max_chars)
        prompt = build_prompt(PromptTask.RATE, document.file_name, window, parameter=context)

        # Non-interactive: wait through retries; ModelOverloadedError propagates
        invocation = await self.invoker.invoke(prompt.system_instruction, prompt.user_prompt)
        result = repair_json_response(invocation.text, RATING_SCHEMA)

        await self._save_rating(document.id, result)
        return PipelineResult(document.id, result, invocation)

    async def _save_rating(self, document_id: UUID, result: Dict[str, Any]) -> None:
        """Persist score and critique; failures are logged only."""
        try:
            await self.metadata_repository.save_rating(
                document_id, result["score"], result.get("rationale", "")
            )
        except SQLAlchemyError as e:
            self.logger.warning(f"Failed to persist rating for {document_id}: {e}")
            await self.metadata_repository.rollback()
