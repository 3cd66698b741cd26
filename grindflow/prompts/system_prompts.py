# System prompts and prompt assembly for the GrindFlow model tasks.
# - Every system prompt names the persona, the exact JSON output shape and
#   the escaping rules for string values.
# - User prompts carry the task parameter and the extracted document text
#   between explicit begin/end markers.
# Tasks:
#   1) RATING_SYSTEM_PROMPT       (rate)
#   2) quiz_system_prompt(n)      (quiz)
#   3) STUDY_FLOW_SYSTEM_PROMPT   (flow-diagram | flow-analysis | flow-both)

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PromptTask(str, Enum):
    """Model tasks served by the pipelines."""

    RATE = "rate"
    QUIZ = "quiz"
    FLOW_DIAGRAM = "flow-diagram"
    FLOW_ANALYSIS = "flow-analysis"
    FLOW_BOTH = "flow-both"


@dataclass(frozen=True)
class PromptSpec:
    """A system instruction and user prompt ready for one model call."""

    task: PromptTask
    system_instruction: str
    user_prompt: str


JSON_ESCAPING_RULES = (
    "Return ONLY valid JSON with no commentary and no code fences. "
    "Escape every special character inside JSON string values: "
    'write \\n for newlines, \\t for tabs and \\" for double quotes.'
)

BEGIN_TEXT_MARKER = "--- Begin Extracted Text ---"
END_TEXT_MARKER = "--- End Extracted Text ---"

DEFAULT_RATING_CONTEXT = "General study"
DEFAULT_QUIZ_KEYWORDS = "General"

# =============================================================================
# RATING PROMPT
# =============================================================================
RATING_SYSTEM_PROMPT = (
    "You are an academic document rater. Score a PDF from 0 to 100 based on how "
    "well it serves the user's stated purpose. Consider coverage, accuracy, "
    "organization, clarity, depth, recency (if relevant), and usefulness.\n"
    "Return STRICT JSON with these keys only:\n"
    "{\n"
    '  "score": number,               // integer 0-100\n'
    '  "verdict": string,             // short one-liner\n'
    '  "rationale": string,           // at most 120 words\n'
    '  "focus_topics": string[],      // 5-8 topics to focus more on\n'
    '  "repetitive_topics": string[], // 3-6 repetitive or low-value areas\n'
    '  "suggested_plan": string[]     // 4-7 steps to improve the notes for the purpose\n'
    "}\n"
    + JSON_ESCAPING_RULES
)


# =============================================================================
# QUIZ PROMPT
# =============================================================================
def quiz_system_prompt(question_count: int) -> str:
    """System instruction for a quiz of ``question_count`` questions."""
    return (
        "You are a quiz generator. Given academic text, create a high-quality "
        f"multiple-choice quiz with exactly {question_count} concise questions. "
        "Each question has exactly 4 options and the zero-based index of the "
        "correct option.\n"
        "Return STRICT JSON only:\n"
        "{\n"
        '  "questions": [\n'
        "    {\n"
        '      "question": string,\n'
        '      "options": [string, string, string, string],\n'
        '      "correctIndex": number  // 0..3\n'
        "    }\n"
        "  ]\n"
        "}\n"
        + JSON_ESCAPING_RULES
    )


# =============================================================================
# STUDY FLOW PROMPTS
# =============================================================================
STUDY_FLOW_SYSTEM_PROMPT = (
    "You are an expert academic study flow analyzer. You analyze educational "
    "documents and describe the learning progression, concept dependencies and "
    "optimal study path so that students know what to learn first.\n"
    + JSON_ESCAPING_RULES
)

FLOW_ANALYSIS_INSTRUCTIONS = """FLOW STATE ANALYSIS:
   - Identify the main topics and subtopics
   - Map out the learning progression (which concepts build on others)
   - Highlight prerequisites and dependencies
   - Organize concepts in a logical study sequence
   - Note key relationships between topics
   - Suggest an optimal learning path
   - Format as structured, readable text with clear sections (500-1000 words)"""

FLOW_DIAGRAM_INSTRUCTIONS = """FLOW STATE DIAGRAM:
   - Create a visual ASCII/text diagram showing:
     * Main topics as nodes
     * Arrows showing dependencies (use -> or →)
     * Hierarchical structure (indentation or tree format)
     * Learning flow direction
   - Example format:
       Topic A
       ├── Subtopic A1
       │   └── Subtopic A1.1
       └── Subtopic A2
           └── Topic B (depends on A2)"""

FLOW_ANALYSIS_KEY = '  "flowAnalysis": "detailed text analysis with escaped quotes and newlines"'
FLOW_DIAGRAM_KEY = '  "flowDiagram": "ASCII diagram with escaped quotes and newlines"'


def _flow_task_body(task: PromptTask) -> str:
    if task == PromptTask.FLOW_DIAGRAM:
        sections, keys = [FLOW_DIAGRAM_INSTRUCTIONS], [FLOW_DIAGRAM_KEY]
    elif task == PromptTask.FLOW_ANALYSIS:
        sections, keys = [FLOW_ANALYSIS_INSTRUCTIONS], [FLOW_ANALYSIS_KEY]
    else:
        sections = [f"1. {FLOW_ANALYSIS_INSTRUCTIONS}", f"2. {FLOW_DIAGRAM_INSTRUCTIONS}"]
        keys = [FLOW_ANALYSIS_KEY, FLOW_DIAGRAM_KEY]

    return (
        "Analyze this entire document and generate:\n\n"
        + "\n\n".join(sections)
        + "\n\nReturn JSON with exactly these keys:\n{\n"
        + ",\n".join(keys)
        + "\n}"
    )


def _text_block(text: str) -> str:
    return f"{BEGIN_TEXT_MARKER}\n{text}\n{END_TEXT_MARKER}"


def build_prompt(
    task: PromptTask,
    document_name: str,
    text: str,
    parameter: Optional[str] = None,
    question_count: int = 10,
) -> PromptSpec:
    """Assemble the system instruction and user prompt for a task.

    Args:
        task: Which model task to build for
        document_name: File name shown to the model
        text: Prepared (normalized, truncated) document text
        parameter: Rating context or quiz keywords; unused by study-flow tasks
        question_count: Number of quiz questions to ask for

    Returns:
        PromptSpec for the task

    Raises:
        ValueError: If the task is unknown
    """
    task = PromptTask(task)

    if task == PromptTask.RATE:
        context = (parameter or "").strip() or DEFAULT_RATING_CONTEXT
        user_prompt = (
            f'User purpose/context: "{context}"\n'
            f"Document: {document_name}\n"
            f"{_text_block(text)}\n"
            "Respond with JSON only."
        )
        return PromptSpec(task, RATING_SYSTEM_PROMPT, user_prompt)

    if task == PromptTask.QUIZ:
        keywords = (parameter or "").strip() or DEFAULT_QUIZ_KEYWORDS
        user_prompt = (
            f"Document: {document_name}\n"
            f'Focus topic/keywords: "{keywords}"\n'
            f"{_text_block(text)}\n"
            f"Return STRICT JSON only with {question_count} questions."
        )
        return PromptSpec(task, quiz_system_prompt(question_count), user_prompt)

    user_prompt = (
        f"Document: {document_name}\n"
        f"{_text_block(text)}\n\n"
        f"{_flow_task_body(task)}"
    )
    return PromptSpec(task, STUDY_FLOW_SYSTEM_PROMPT, user_prompt)
