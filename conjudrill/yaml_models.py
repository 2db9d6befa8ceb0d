"""
Defines the Pydantic models used to validate raw content and progress YAML
files before they are turned into Forms, Verbs and progress records.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field, field_validator

from .models import DueItem, MasteryRecord, VerbType

# person slot -> surface value, or a mapping with value/form, alt, accepts
RawFormValue = Union[str, Dict[str, Any]]


# --- Internal Pydantic Models for Raw YAML Validation ---


class _RawYAMLParadigm(PydanticBaseModel):
    mood: str = Field(..., min_length=1)
    tense: str = Field(..., min_length=1)
    forms: Dict[str, RawFormValue] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class _RawYAMLVerbEntry(PydanticBaseModel):
    lemma: str = Field(..., min_length=1)
    type: VerbType = Field(default="regular")
    irregular_tenses: List[str] = Field(default_factory=lambda: [])
    irregularity_matrix: Dict[str, bool] = Field(default_factory=dict)
    families: List[str] = Field(default_factory=lambda: [])
    paradigms: List[_RawYAMLParadigm] = Field(default_factory=lambda: [])

    model_config = ConfigDict(extra="forbid")

    @field_validator("lemma")
    @classmethod
    def normalize_lemma(cls, v: str) -> str:
        """Lemmas are stored lower-case without surrounding whitespace."""
        normalized = v.strip().lower()
        if not normalized:
            raise ValueError("Lemma must not be blank.")
        return normalized


class _RawYAMLContentFile(PydanticBaseModel):
    verbs: List[Any] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class _RawYAMLProgressFile(PydanticBaseModel):
    mastery: List[MasteryRecord] = Field(default_factory=lambda: [])
    due: List[DueItem] = Field(default_factory=lambda: [])

    model_config = ConfigDict(extra="forbid")


class _RawYAMLFormEntry(PydanticBaseModel):
    """Fully expanded form entry, before legacy keys are normalised."""

    lemma: str
    mood: str
    tense: str
    person: str
    value: Optional[str] = None
    form: Optional[str] = None
    alt: Optional[List[str]] = None
    alternates: Optional[List[str]] = None
    accepts: Optional[Dict[str, str]] = None
    accepted_variants: Optional[Dict[str, str]] = None

    model_config = ConfigDict(extra="forbid")
