"""Study-flow analysis and diagram pipeline."""

from typing import Dict, Tuple

from grindflow.core.config import settings
from grindflow.core.exceptions import ValidationError
from grindflow.database.models import Document
from grindflow.prompts.system_prompts import PromptTask, build_prompt
from grindflow.schemas.llm_outputs import (
    FLOW_ANALYSIS_SCHEMA,
    FLOW_BOTH_SCHEMA,
    FLOW_DIAGRAM_SCHEMA,
    ResponseSchema,
)
from grindflow.services.document_service import DocumentTextBundle
from grindflow.services.pipeline.base_pipeline import BasePipeline, PipelineResult
from grindflow.utils.json_parser import repair_json_response
from grindflow.utils.text import build_short_text, unescape_literal_controls

FLOW_TYPES: Dict[str, Tuple[PromptTask, ResponseSchema]] = {
    "diagram": (PromptTask.FLOW_DIAGRAM, FLOW_DIAGRAM_SCHEMA),
    "analysis": (PromptTask.FLOW_ANALYSIS, FLOW_ANALYSIS_SCHEMA),
    "both": (PromptTask.FLOW_BOTH, FLOW_BOTH_SCHEMA),
}


class StudyFlowPipeline(BasePipeline):
    """Produces a learning-path analysis, an ASCII dependency diagram, or both."""

    name = "studyflow"

    def validate(self, flow_type: str = "both", **params) -> None:
        if flow_type not in FLOW_TYPES:
            raise ValidationError('Invalid type. Must be "diagram", "analysis", or "both"')

    async def run(
        self,
        document: Document,
        text: DocumentTextBundle,
        flow_type: str = "both",
    ) -> PipelineResult:
        task, schema = FLOW_TYPES[flow_type]
        window = build_short_text(text.normalized, settings.pipeline.flow_max_chars)
        prompt = build_prompt(task, document.file_name, window)

        invocation = await self.invoker.invoke(prompt.system_instruction, prompt.user_prompt)
        repaired = repair_json_response(invocation.text, schema)

        payload = {field: unescape_literal_controls(value) for field, value in repaired.items()}
        return PipelineResult(document.id, payload, invocation)
