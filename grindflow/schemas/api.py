"""Request and response models for the HTTP API."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class DocumentRequest(BaseModel):
    """Body of the pipeline endpoints; accepts ``documentId`` or ``id``."""

    model_config = ConfigDict(populate_by_name=True)

    document_id: UUID = Field(
        ...,
        validation_alias=AliasChoices("documentId", "id", "document_id"),
        description="Document to process",
    )


class AnalyzeRequest(DocumentRequest):
    context: Optional[str] = Field(None, description="What the user wants to study the document for")


class QuizRequest(DocumentRequest):
    keyword: Optional[str] = Field(None, description="Comma or space separated focus keywords")


class StudyFlowRequest(DocumentRequest):
    flow_type: str = Field(
        default="both",
        validation_alias=AliasChoices("type", "flow_type"),
        description="diagram, analysis or both",
    )


class RatingResult(BaseModel):
    score: int = Field(..., ge=0, le=100)
    verdict: str
    rationale: str
    focus_topics: List[str] = Field(default_factory=list)
    repetitive_topics: List[str] = Field(default_factory=list)
    suggested_plan: List[str] = Field(default_factory=list)


class RatingResponse(BaseModel):
    id: str = Field(..., description="Document ID")
    result: RatingResult


class QuizQuestion(BaseModel):
    question: str
    options: List[str] = Field(..., min_length=4, max_length=4)
    correctIndex: int = Field(..., ge=0, le=3)


class QuizResponse(BaseModel):
    id: str = Field(..., description="Document ID")
    questions: List[QuizQuestion] = Field(default_factory=list)


class StudyFlowResponse(BaseModel):
    id: str = Field(..., description="Document ID")
    flowDiagram: Optional[str] = None
    flowAnalysis: Optional[str] = None


class TextStatusResponse(BaseModel):
    status: str = Field(..., description="ready, partial or missing")
    length: int = 0
    short_text: str = ""


class RowsResponse(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class DeleteDocumentResponse(BaseModel):
    success: bool
    removedFromStorage: bool


class UploadResponse(BaseModel):
    fileName: str
    path: str
    size: int
    bucket: str
    publicUrl: str
    db: Dict[str, Any]
    durationMs: int


class PublicLibrarySubmitRequest(BaseModel):
    """Entry to share. ``document_id`` and ``subject`` are checked by the endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    document_id: Optional[UUID] = Field(None, validation_alias=AliasChoices("document_id", "documentId"))
    subject: Optional[str] = None
    unit: Optional[str] = None
    year: Optional[str] = None
    degree: Optional[str] = None
    score: Optional[int] = None
    analysis_keyword: Optional[str] = None
    verdict: Optional[str] = None
    rationale: Optional[str] = None
    focus_topics: Optional[List[str]] = None
    repetitive_topics: Optional[List[str]] = None
    suggested_plan: Optional[List[str]] = None

    @field_validator("unit", "year", "degree", mode="before")
    @classmethod
    def number_to_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class PublicLibrarySubmitResponse(BaseModel):
    success: bool
    id: str


class ViewUrlResponse(BaseModel):
    url: str


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Health check status")
    version: str = Field(..., description="Running application version")
    service: str = Field(..., description="Service name")
    message: str = Field(..., description="Human readable status")
