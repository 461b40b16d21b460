"""Pydantic models for the extraction -> schema-mapping -> form-fill pipeline."""

from enum import Enum
from pathlib import PurePath
from typing import Literal

from pydantic import BaseModel, ConfigDict

ExtractedValue = str | bool | int | float


class UploadedFile(BaseModel):
    filename: str
    content: bytes

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower()

    @property
    def size(self) -> int:
        return len(self.content)


class ExtractionResult(BaseModel):
    filename: str
    text: str = ""
    method: Literal["native", "ocr", "none"] = "none"
    error: str | None = None

    @property
    def length(self) -> int:
        return len(self.text)


class DocumentSection(BaseModel):
    label: str
    source: str | None = None
    text: str


class AggregatedDocument(BaseModel):
    sections: list[DocumentSection]

    def is_blank(self) -> bool:
        return not any(section.text.strip() for section in self.sections)

    def render(self) -> str:
        return "\n\n".join(
            f"===== {section.label} =====\n{section.text.strip()}"
            for section in self.sections
        )


class SchemaField(BaseModel):
    model_config = ConfigDict(frozen=True)

    field_name: str
    mapping_key: str
    instructions: str = ""


class FieldKind(str, Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    UNKNOWN = "unknown"


class FieldRef(BaseModel):
    """One template widget discovered by probing."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: FieldKind
    page_number: int
    xref: int


class FillOutcome(BaseModel):
    mapping_key: str
    filled: bool
    strategy: Literal["text", "checkbox", "radio", "none"]
    error: str | None = None


class FillReport(BaseModel):
    outcomes: list[FillOutcome]

    @property
    def filled(self) -> list[str]:
        return [o.mapping_key for o in self.outcomes if o.filled]

    @property
    def unfilled(self) -> list[str]:
        return [o.mapping_key for o in self.outcomes if not o.filled]


class PipelineResult(BaseModel):
    document: bytes
    report: FillReport
    extraction_results: list[ExtractionResult]
