"""Expected shapes of model responses.

Each schema knows which top-level fields the model was asked for, how to
coerce a parsed payload into a structurally valid result and which
placeholder to return when nothing could be recovered from the response.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

FLOW_ANALYSIS_FIELD = "flowAnalysis"
FLOW_DIAGRAM_FIELD = "flowDiagram"

UNPARSEABLE_VERDICT = "unable_to_parse"
RATIONALE_EXCERPT_CHARS = 200
QUIZ_OPTION_COUNT = 4

FLOW_UNAVAILABLE_MESSAGES = {
    FLOW_ANALYSIS_FIELD: "Flow analysis could not be generated",
    FLOW_DIAGRAM_FIELD: "Flow diagram could not be generated",
}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _as_string_list(value: Any, limit: Optional[int] = None) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []

    items = []
    for item in value:
        if isinstance(item, (dict, list)) or item is None:
            continue
        text = _as_text(item)
        if text:
            items.append(text)
    return items[:limit] if limit else items


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


class ResponseSchema:
    """Base description of a model response payload."""

    name: str = "response"
    string_fields: Tuple[str, ...] = ()
    free_text_fields: Tuple[str, ...] = ()
    string_list_fields: Tuple[str, ...] = ()
    number_fields: Tuple[str, ...] = ()
    object_list_fields: Tuple[str, ...] = ()

    @property
    def all_fields(self) -> Tuple[str, ...]:
        return (
            self.string_fields
            + self.string_list_fields
            + self.number_fields
            + self.object_list_fields
        )

    def wrap_list(self, items: List[Any]) -> Optional[Dict[str, Any]]:
        """Wrap a bare JSON array when the schema has exactly one list field."""
        list_fields = self.string_list_fields + self.object_list_fields
        if len(list_fields) == 1 and not (self.string_fields or self.number_fields):
            return {list_fields[0]: items}
        return None

    def coerce(self, data: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def placeholder(self, raw_text: str) -> Dict[str, Any]:
        raise NotImplementedError


class RatingResponseSchema(ResponseSchema):
    """Document rating: score, verdict, rationale and study lists."""

    name = "rating"
    string_fields = ("verdict", "rationale")
    free_text_fields = ("rationale", "verdict")
    string_list_fields = ("focus_topics", "repetitive_topics", "suggested_plan")
    number_fields = ("score",)

    LIST_LIMITS = {"focus_topics": 8, "repetitive_topics": 6, "suggested_plan": 7}

    @staticmethod
    def clamp_score(value: Any) -> int:
        number = _as_number(value)
        if number is None:
            return 0
        return int(max(0, min(100, round(number))))

    def coerce(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "score": self.clamp_score(data.get("score")),
            "verdict": _as_text(data.get("verdict")),
            "rationale": _as_text(data.get("rationale")),
        }
        for field in self.string_list_fields:
            result[field] = _as_string_list(data.get(field), self.LIST_LIMITS[field])
        return result

    def placeholder(self, raw_text: str) -> Dict[str, Any]:
        return {
            "score": 0,
            "verdict": UNPARSEABLE_VERDICT,
            "rationale": (raw_text or "")[:RATIONALE_EXCERPT_CHARS],
            "focus_topics": [],
            "repetitive_topics": [],
            "suggested_plan": [],
        }


class QuizResponseSchema(ResponseSchema):
    """Multiple-choice quiz: a list of four-option questions."""

    name = "quiz"
    free_text_fields = ("question",)
    object_list_fields = ("questions",)

    @staticmethod
    def coerce_question(item: Any) -> Optional[Dict[str, Any]]:
        """Validate one question, returning None when it is malformed."""
        if not isinstance(item, dict):
            return None

        # Newlines inside a question are display noise
        question = " ".join(_as_text(item.get("question")).split())
        if not question:
            return None

        options = item.get("options")
        if not isinstance(options, list) or len(options) != QUIZ_OPTION_COUNT:
            return None
        if any(isinstance(option, (dict, list)) or option is None for option in options):
            return None
        options = [_as_text(option) for option in options]
        if not all(options):
            return None

        raw_index = item.get("correctIndex", item.get("correct_index"))
        index = _as_number(raw_index)
        if index is None or not index.is_integer() or not 0 <= index < QUIZ_OPTION_COUNT:
            return None

        return {"question": question, "options": options, "correctIndex": int(index)}

    def coerce(self, data: Dict[str, Any]) -> Dict[str, Any]:
        raw_questions = data.get("questions")
        if not isinstance(raw_questions, list):
            raw_questions = []

        questions = []
        for item in raw_questions:
            question = self.coerce_question(item)
            if question is not None:
                questions.append(question)
        return {"questions": questions}

    def placeholder(self, raw_text: str) -> Dict[str, Any]:
        return {"questions": []}


class StudyFlowResponseSchema(ResponseSchema):
    """Free-text study flow: an analysis, an ASCII diagram, or both."""

    name = "studyflow"

    def __init__(self, fields: Tuple[str, ...]):
        self.string_fields = fields
        self.free_text_fields = fields

    def coerce(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {field: _as_text(data.get(field)) for field in self.string_fields}

    def placeholder(self, raw_text: str) -> Dict[str, Any]:
        """Spread the raw text across the expected fields.

        With a single field it receives the whole text; with two the text
        is split in half.
        """
        text = (raw_text or "").strip()
        fields = self.string_fields
        if len(fields) == 1:
            return {fields[0]: text or FLOW_UNAVAILABLE_MESSAGES.get(fields[0], "")}

        middle = len(text) // 2
        parts = [text[:middle].strip(), text[middle:].strip()]
        return {
            field: part or FLOW_UNAVAILABLE_MESSAGES.get(field, "")
            for field, part in zip(fields, parts)
        }


RATING_SCHEMA = RatingResponseSchema()
QUIZ_SCHEMA = QuizResponseSchema()
FLOW_DIAGRAM_SCHEMA = StudyFlowResponseSchema((FLOW_DIAGRAM_FIELD,))
FLOW_ANALYSIS_SCHEMA = StudyFlowResponseSchema((FLOW_ANALYSIS_FIELD,))
FLOW_BOTH_SCHEMA = StudyFlowResponseSchema((FLOW_ANALYSIS_FIELD, FLOW_DIAGRAM_FIELD))
