"""Interactive quiz generation pipeline."""

from typing import List, Optional

from grindflow.core.config import PipelineSettings, settings
from grindflow.database.models import Document
from grindflow.prompts.system_prompts import PromptTask, build_prompt
from grindflow.schemas.llm_outputs import QUIZ_SCHEMA
from grindflow.services.document_service import DocumentService, DocumentTextBundle
from grindflow.services.model_invoker import InvocationResult, ModelInvoker
from grindflow.services.pipeline.base_pipeline import BasePipeline, PipelineResult
from grindflow.utils.json_parser import repair_json_response
from grindflow.utils.text import build_short_text, keyword_focused_slice


class QuizPipeline(BasePipeline):
    """Builds a multiple-choice quiz under a latency deadline.

    The model gets one primary call and one smaller fallback call, each
    bounded by the quiz deadline. A response that parses to no questions
    earns one retry with a broader slice of the document; an empty
    response does not, since that means the deadline already passed.
    """

    name = "quiz"

    def __init__(
        self,
        document_service: DocumentService,
        invoker: ModelInvoker,
        pipeline_settings: Optional[PipelineSettings] = None,
        model: Optional[str] = None,
    ):
        super().__init__(document_service, invoker)
        self.settings = pipeline_settings or settings.pipeline
        if model is None:
            model = settings.llm.fast_model if self.settings.fast_mode else invoker.default_model
        self.model = model

    async def _generate(
        self,
        document_name: str,
        window: str,
        fallback_window: str,
        keyword: Optional[str],
    ) -> tuple:
        count = self.settings.quiz_question_count
        prompt = build_prompt(PromptTask.QUIZ, document_name, window, keyword, count)
        fallback = build_prompt(PromptTask.QUIZ, document_name, fallback_window, keyword, count)

        invocation: InvocationResult = await self.invoker.invoke_with_deadline(
            prompt.system_instruction,
            prompt.user_prompt,
            fallback.user_prompt,
            self.settings.quiz_timeout_seconds,
            model=self.model,
        )
        questions: List[dict] = repair_json_response(invocation.text, QUIZ_SCHEMA)["questions"]
        return questions[:count], invocation

    async def run(
        self,
        document: Document,
        text: DocumentTextBundle,
        keyword: Optional[str] = None,
    ) -> PipelineResult:
        focused = keyword_focused_slice(text.normalized, keyword, self.settings.keyword_max_lines)
        window = build_short_text(focused or text.normalized, self.settings.quiz_max_chars)

        questions, invocation = await self._generate(
            document.file_name,
            window,
            window[:self.settings.quiz_fallback_max_chars],
            keyword,
        )

        if not questions and invocation.text.strip():
            self.logger.info(
                "Quiz response had no usable questions, retrying with a broader window",
                extra={"document_id": str(document.id)},
            )
            broader = text.normalized[:self.settings.quiz_retry_max_chars]
            questions, invocation = await self._generate(document.file_name, broader, broader, keyword)

        return PipelineResult(document.id, {"questions": questions}, invocation)
