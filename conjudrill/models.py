"""
Pydantic records shared across the scheduler: forms, verb metadata, the
practice settings union, collaborator inputs and the outward practice item.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from .constants import NONFINITE_PERSON, REGION_EXCLUDED_PERSONS
from .exceptions import InvalidConfigurationError

Level = Literal["A1", "A2", "B1", "B2", "C1", "C2", "ALL"]
Region = Literal["rioplatense", "la_general", "peninsular", "none"]
PersonKey = Literal[
    "1s", "2s_tu", "2s_vos", "3s", "1p", "2p_vosotros", "3p", "nonfinite"
]
VerbTypeFilter = Literal["all", "regular", "irregular"]
PracticePronoun = Literal["all", "both", "tu_only", "vos_only"]
VerbType = Literal["regular", "irregular"]

Combo = Tuple[str, str]


class Form(BaseModel):
    """
    A single conjugated practice unit.

    Forms are owned by the content source and are never modified by the
    scheduler. `value` is the only name for the surface string; legacy
    `form` keys are normalised before a Form is built.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    lemma: str = Field(..., min_length=1, description="Infinitive identifying the verb.")
    mood: str = Field(..., min_length=1)
    tense: str = Field(..., min_length=1)
    person: PersonKey = Field(
        ..., description="Person slot, or 'nonfinite' for gerunds/participles."
    )
    value: str = Field(..., min_length=1, description="Canonical surface form.")
    alternates: Tuple[str, ...] = Field(default_factory=tuple)
    accepted_variants: Dict[str, str] = Field(
        default_factory=dict,
        description="Dialect-specific accepted answers keyed by person slot.",
    )

    @field_validator("value")
    @classmethod
    def validate_value_not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Form value must not be blank.")
        return stripped

    @property
    def key(self) -> Tuple[str, str, str, str]:
        return (self.lemma, self.mood, self.tense, self.person)

    @property
    def combo(self) -> Combo:
        return (self.mood, self.tense)


def pool_signature(pool: Sequence[Form]) -> int:
    """Content fingerprint of a pool; equal pools give equal signatures."""
    return hash(tuple((form.key, form.value) for form in pool))


class Verb(BaseModel):
    """Verb-level metadata used for type filtering and irregularity display."""

    model_config = ConfigDict(extra="forbid")

    lemma: str = Field(..., min_length=1)
    type: VerbType = "regular"
    irregular_tenses: List[str] = Field(default_factory=list)
    irregularity_matrix: Dict[str, bool] = Field(
        default_factory=dict,
        description="Per-tense irregularity; takes precedence over `type`.",
    )
    families: List[str] = Field(
        default_factory=list,
        description="Irregularity families, e.g. 'e_ie' or 'yo_g'.",
    )

    def is_irregular_in(self, tense: str) -> bool:
        if tense in self.irregularity_matrix:
            return self.irregularity_matrix[tense]
        if self.irregular_tenses:
            return tense in self.irregular_tenses
        return self.type == "irregular"


class _SettingsBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: Level = "B1"
    region: Region = "la_general"
    use_voseo: Optional[bool] = Field(
        default=None, description="Overrides the region default when set."
    )
    use_tuteo: Optional[bool] = None
    use_vosotros: Optional[bool] = None
    practice_pronoun: PracticePronoun = "all"
    verb_type: VerbTypeFilter = "all"
    double_active: bool = False
    selected_family: Optional[str] = Field(
        default=None, description="Restrict practice to verbs of one irregularity family."
    )
    allowed_lemmas: Optional[FrozenSet[str]] = None
    enable_futuro_subj: bool = False

    def dialect_flags(self) -> Tuple[bool, bool, bool]:
        """Return the effective (voseo, tuteo, vosotros) flags."""
        excluded = REGION_EXCLUDED_PERSONS[self.region]
        voseo = "2s_vos" not in excluded
        tuteo = "2s_tu" not in excluded
        vosotros = "2p_vosotros" not in excluded
        if self.use_voseo is not None:
            voseo = self.use_voseo
        if self.use_tuteo is not None:
            tuteo = self.use_tuteo
        if self.use_vosotros is not None:
            vosotros = self.use_vosotros
        return voseo, tuteo, vosotros

    def allowed_persons(self) -> FrozenSet[str]:
        voseo, tuteo, vosotros = self.dialect_flags()
        if self.practice_pronoun == "both":
            voseo = tuteo = True
        elif self.practice_pronoun == "tu_only":
            tuteo, voseo = True, False
        elif self.practice_pronoun == "vos_only":
            voseo, tuteo = True, False

        persons = {"1s", "3s", "1p", "3p", NONFINITE_PERSON}
        if voseo:
            persons.add("2s_vos")
        if tuteo:
            persons.add("2s_tu")
        if vosotros:
            persons.add("2p_vosotros")
        return frozenset(persons)

    def target(self) -> Optional[Combo]:
        """The (mood, tense) the mode is pinned to, if any."""
        return None

    @property
    def is_specific(self) -> bool:
        return False


class MixedSettings(_SettingsBase):
    practice_mode: Literal["mixed"] = "mixed"


class SpecificSettings(_SettingsBase):
    """Practice pinned to one mood/tense (or a mixed meta-tense)."""

    practice_mode: Literal["specific"] = "specific"
    specific_mood: str = Field(..., min_length=1)
    specific_tense: str = Field(..., min_length=1)

    def target(self) -> Optional[Combo]:
        return (self.specific_mood, self.specific_tense)

    @property
    def is_specific(self) -> bool:
        return True


class ReviewSettings(_SettingsBase):
    """Review practice, optionally narrowed to a mood and/or tense."""

    practice_mode: Literal["review"] = "review"
    review_mood: Optional[str] = None
    review_tense: Optional[str] = None


Settings = Annotated[
    Union[MixedSettings, SpecificSettings, ReviewSettings],
    Field(discriminator="practice_mode"),
]
SettingsModel = Union[MixedSettings, SpecificSettings, ReviewSettings]

_SETTINGS_ADAPTER: TypeAdapter = TypeAdapter(Settings)


def parse_settings(data: Any) -> SettingsModel:
    """
    Validate raw settings at the boundary and return the closed settings record.

    Parameters:
        data: A settings model (returned unchanged) or a mapping. A mapping
            without `practice_mode` is treated as mixed practice.

    Returns:
        SettingsModel: One of MixedSettings, SpecificSettings or ReviewSettings.

    Raises:
        InvalidConfigurationError: If the mapping is not a valid settings record,
            e.g. specific practice without a target mood and tense.
    """
    if isinstance(data, _SettingsBase):
        return data
    if not isinstance(data, Mapping):
        raise InvalidConfigurationError(
            f"Settings must be a mapping, got {type(data).__name__}."
        )
    payload = dict(data)
    payload.setdefault("practice_mode", "mixed")
    try:
        return _SETTINGS_ADAPTER.validate_python(payload)
    except ValidationError as e:
        error_details = e.errors()[0]
        field = ".".join(map(str, error_details["loc"]))
        msg = error_details["msg"]
        raise InvalidConfigurationError(
            f"Invalid settings field '{field}': {msg}", original_exception=e
        ) from e


class MasteryRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mood: str
    tense: str
    verb_id: Optional[str] = None
    score: float = Field(..., ge=0, le=100)


class DueItem(BaseModel):
    """An item the external spaced-repetition service reports as due."""

    model_config = ConfigDict(extra="forbid")

    mood: str
    tense: str
    person: PersonKey
    next_due: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    item_id: Optional[str] = None
    lemma: Optional[str] = None

    @field_validator("next_due")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Recommendation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mood: str
    tense: str
    verb_id: Optional[str] = None
    reason: str = "curriculum"


class AccuracyRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    seen: int = Field(default=0, ge=0)
    correct: int = Field(default=0, ge=0)

    @property
    def smoothed_accuracy(self) -> float:
        return (self.correct + 1) / (self.seen + 2)


def history_key(form: Form) -> str:
    """Key under which attempt accuracy is tracked for a form."""
    return f"{form.mood}:{form.tense}:{form.person}:{form.value}"


class ItemForm(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: str
    lemma: str
    mood: str
    tense: str
    person: PersonKey
    alternates: List[str] = Field(default_factory=list)
    accepted_variants: Dict[str, str] = Field(default_factory=dict)


class PracticeItem(BaseModel):
    """
    The fully structured item handed to the presentation layer.

    `settings` carries the effective settings, including dialect flags
    implied by the chosen person.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    lemma: str
    mood: str
    tense: str
    person: PersonKey
    type: VerbType
    irregular_tenses: List[str] = Field(default_factory=list)
    irregularity_matrix: Dict[str, bool] = Field(default_factory=dict)
    form: ItemForm
    settings: Settings
    is_fallback: bool = False

    @property
    def key(self) -> Tuple[str, str, str, str]:
        return (self.lemma, self.mood, self.tense, self.person)
