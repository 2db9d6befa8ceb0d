"""
Turns a selected form into the outward PracticeItem.

This is the only place where loosely shaped form payloads (legacy `form`,
`alt` and `accepts` keys) are accepted; they are normalised to the
canonical Form fields before anything else happens.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .constants import NONFINITE_PERSON, PERSONS, SENTINEL_FORM
from .models import Form, ItemForm, PracticeItem, SettingsModel, Verb, pool_signature

logger = logging.getLogger(__name__)

FormKey = Tuple[str, str, str, str]

# person -> settings flag it implies
_DIALECT_FLAGS: Dict[str, str] = {
    "2s_vos": "use_voseo",
    "2s_tu": "use_tuteo",
    "2p_vosotros": "use_vosotros",
}

_LEGACY_KEYS: Dict[str, str] = {
    "form": "value",
    "alt": "alternates",
    "accepts": "accepted_variants",
}


def is_irregular_in_tense(verb: Optional[Verb], tense: str) -> bool:
    if verb is None:
        return False
    return verb.is_irregular_in(tense)


def has_any_irregular_tense(verb: Optional[Verb]) -> bool:
    if verb is None:
        return False
    if any(verb.irregularity_matrix.values()) or verb.irregular_tenses:
        return True
    return verb.type == "irregular" and not verb.irregularity_matrix


def effective_verb_type(verb: Optional[Verb], tense: str) -> str:
    return "irregular" if is_irregular_in_tense(verb, tense) else "regular"


def normalize_form_payload(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map legacy keys onto canonical Form fields.

    `form` becomes `value` (unless `value` is already present), `alt`
    becomes `alternates` and `accepts` becomes `accepted_variants`. Keys
    that are not Form fields are dropped.
    """
    data: Dict[str, Any] = {}
    for key, value in raw.items():
        canonical = _LEGACY_KEYS.get(key, key)
        if canonical in data and key in _LEGACY_KEYS:
            continue
        data[canonical] = value
    if isinstance(data.get("value"), Mapping):
        # `form` as a nested object, e.g. {"value": ..., "alt": [...]}
        nested = normalize_form_payload(data.pop("value"))
        data = {**nested, **{k: v for k, v in data.items() if k not in nested}}
    if isinstance(data.get("alternates"), list):
        data["alternates"] = tuple(data["alternates"])
    return {k: v for k, v in data.items() if k in Form.model_fields}


def sentinel_form() -> Form:
    return Form(**SENTINEL_FORM)


def validate_item_structure(item: PracticeItem) -> List[str]:
    """Return a list of structural problems; empty when the item is sound."""
    problems: List[str] = []
    if not item.form.value.strip():
        problems.append("form value is empty")
    for field_name in ("lemma", "mood", "tense", "person"):
        if getattr(item, field_name) != getattr(item.form, field_name):
            problems.append(f"{field_name} differs between item and form")
    if item.person != NONFINITE_PERSON and item.person not in PERSONS:
        problems.append(f"unknown person '{item.person}'")
    if item.id != "|".join(item.key):
        problems.append("id does not match item key")
    voseo, tuteo, vosotros = item.settings.dialect_flags()
    implied = {"2s_vos": voseo, "2s_tu": tuteo, "2p_vosotros": vosotros}
    if item.person in implied and not implied[item.person]:
        problems.append(f"dialect flag for '{item.person}' is not active")
    return problems


class ItemMaterializer:
    """
    Builds PracticeItems from selected forms.

    Parameters:
        verbs (Mapping[str, Verb]): Verb metadata keyed by lemma.
        pool (Optional[Sequence[Form]]): Authoritative pool used to resolve
            canonical records; can be replaced with `index_pool`.
    """

    def __init__(
        self,
        verbs: Optional[Mapping[str, Verb]] = None,
        pool: Optional[Sequence[Form]] = None,
    ):
        self.verbs: Mapping[str, Verb] = verbs or {}
        self._index: Dict[FormKey, Form] = {}
        self._indexed_signature: Optional[int] = None
        if pool is not None:
            self.index_pool(pool)

    def index_pool(self, pool: Sequence[Form]) -> None:
        signature = pool_signature(pool)
        if signature == self._indexed_signature:
            return
        index: Dict[FormKey, Form] = {}
        for form in pool:
            # First occurrence wins for duplicated records.
            index.setdefault(form.key, form)
        self._index = index
        self._indexed_signature = signature

    def canonical(self, form: Form) -> Form:
        return self._index.get(form.key, form)

    def coerce(self, raw: Union[Form, Mapping[str, Any]]) -> Form:
        if isinstance(raw, Form):
            return raw
        return Form(**normalize_form_payload(raw))

    @staticmethod
    def effective_settings(settings: SettingsModel, person: str) -> SettingsModel:
        """Settings with the dialect flag implied by `person` switched on."""
        flag = _DIALECT_FLAGS.get(person)
        if flag is None or getattr(settings, flag) is True:
            return settings
        logger.debug(f"Auto-activating {flag} for person {person}")
        return settings.model_copy(update={flag: True})

    def materialize(
        self,
        raw: Union[Form, Mapping[str, Any]],
        settings: SettingsModel,
        is_fallback: bool = False,
    ) -> PracticeItem:
        """
        Build the PracticeItem for a selected form.

        Parameters:
            raw: The selected form, or a mapping using canonical or legacy keys.
            settings: Settings in effect for the selection.
            is_fallback: Marks items produced by the fallback cascade.

        Returns:
            PracticeItem: Item with canonical value, irregularity metadata and
            effective settings. The input is never modified.
        """
        form = self.canonical(self.coerce(raw))
        verb = self.verbs.get(form.lemma)
        return PracticeItem(
            id="|".join(form.key),
            lemma=form.lemma,
            mood=form.mood,
            tense=form.tense,
            person=form.person,
            type=effective_verb_type(verb, form.tense),
            irregular_tenses=list(verb.irregular_tenses) if verb else [],
            irregularity_matrix=dict(verb.irregularity_matrix) if verb else {},
            form=ItemForm(
                value=form.value,
                lemma=form.lemma,
                mood=form.mood,
                tense=form.tense,
                person=form.person,
                alternates=list(form.alternates),
                accepted_variants=dict(form.accepted_variants),
            ),
            settings=self.effective_settings(settings, form.person),
            is_fallback=is_fallback,
        )

    def sentinel_item(self, settings: SettingsModel) -> PracticeItem:
        """The clearly marked synthetic item used when nothing else is possible."""
        form = sentinel_form()
        return PracticeItem(
            id="|".join(form.key),
            lemma=form.lemma,
            mood=form.mood,
            tense=form.tense,
            person=form.person,
            type="irregular",
            form=ItemForm(
                value=form.value,
                lemma=form.lemma,
                mood=form.mood,
                tense=form.tense,
                person=form.person,
            ),
            settings=settings,
            is_fallback=True,
        )
