"""
Eligibility filtering of the raw form pool.

The EligibilityFilter reduces a pool to the forms legal for a settings
record: level inventory, dialect/person gate, per-tense verb type and the
specific-topic or review target. Results are cached per settings signature;
exclusion of the previous item is call-specific and applied afterwards.
"""

import logging
from collections import OrderedDict
from typing import Dict, FrozenSet, Hashable, List, Mapping, Optional, Sequence, Tuple

from .constants import (
    EXCLUDED_TENSES,
    FUTURE_SUBJUNCTIVE_TENSES,
    LEVELS,
    MIXED_COMBINATIONS,
    NONFINITE_PERSON,
    UNIPERSONAL_MIN_LEVEL,
    UNIPERSONAL_PERSONS,
    UNIPERSONAL_VERBS,
)
from .curriculum import CurriculumGraph, level_index
from .models import Combo, Form, ReviewSettings, SettingsModel, Verb, pool_signature

logger = logging.getLogger(__name__)

DEFAULT_MAX_CACHE_ENTRIES = 64


def target_combos(settings: SettingsModel) -> Optional[FrozenSet[Combo]]:
    """(mood, tense) pairs accepted by a specific-topic target, if any."""
    target = settings.target()
    if target is None:
        return None
    return frozenset(MIXED_COMBINATIONS.get(target, (target,)))


def allows_person(person: str, settings: SettingsModel) -> bool:
    if person == NONFINITE_PERSON:
        return True
    return person in settings.allowed_persons()


def allows_level(form: Form, settings: SettingsModel, curriculum: CurriculumGraph) -> bool:
    # An explicit specific-topic target overrides the level inventory.
    if settings.is_specific:
        return True
    return form.combo in curriculum.allowed_combos(
        settings.level, settings.enable_futuro_subj
    )


def matches_specific(form: Form, settings: SettingsModel) -> bool:
    combos = target_combos(settings)
    if combos is not None:
        return form.combo in combos
    if isinstance(settings, ReviewSettings):
        if settings.review_mood and form.mood != settings.review_mood:
            return False
        if settings.review_tense and form.tense != settings.review_tense:
            return False
    return True


def passes_verb_type(
    form: Form, settings: SettingsModel, verbs: Mapping[str, Verb]
) -> bool:
    if settings.verb_type == "all":
        return True
    verb = verbs.get(form.lemma)
    if verb is None:
        # Unknown verbs are treated as regular.
        return settings.verb_type == "regular"
    irregular = verb.is_irregular_in(form.tense)
    return irregular if settings.verb_type == "irregular" else not irregular


def is_practicable(form: Form, settings: SettingsModel) -> bool:
    """Structural gates that hold in every mode and every fallback."""
    if form.tense in EXCLUDED_TENSES:
        return False
    if form.tense in FUTURE_SUBJUNCTIVE_TENSES and not settings.enable_futuro_subj:
        return False
    if (
        form.lemma in UNIPERSONAL_VERBS
        and level_index(settings.level) >= LEVELS.index(UNIPERSONAL_MIN_LEVEL)
        and form.person not in UNIPERSONAL_PERSONS
        and form.person != NONFINITE_PERSON
    ):
        return False
    return True


def passes_lemma_restrictions(
    form: Form, settings: SettingsModel, verbs: Mapping[str, Verb]
) -> bool:
    if settings.allowed_lemmas is not None and form.lemma not in settings.allowed_lemmas:
        return False
    if settings.selected_family:
        verb = verbs.get(form.lemma)
        if verb is None or settings.selected_family not in verb.families:
            return False
    return True


def passes_integrity_checks(
    form: Form, settings: SettingsModel, curriculum: CurriculumGraph
) -> bool:
    """Final guard applied to every tier's pick before it is returned."""
    checks = {
        "matches_specific": matches_specific(form, settings),
        "allows_person": allows_person(form.person, settings),
        "allows_level": allows_level(form, settings, curriculum),
    }
    if all(checks.values()):
        return True
    logger.error(
        f"Integrity guard rejected {form.lemma} {form.mood}/{form.tense}/{form.person} "
        f"for level {settings.level} ({settings.practice_mode}): {checks}"
    )
    return False


def exclude_previous(
    forms: Sequence[Form], settings: SettingsModel, previous: Optional[Form]
) -> List[Form]:
    """
    Drop the previously presented item from a candidate list.

    In specific-topic practice every form of the previous verb is dropped;
    otherwise only forms repeating the previous (lemma, person) pair. The
    exclusion is skipped when it would leave nothing.
    """
    if previous is None:
        return list(forms)
    if settings.is_specific:
        remaining = [f for f in forms if f.lemma != previous.lemma]
    else:
        remaining = [
            f
            for f in forms
            if (f.lemma, f.person) != (previous.lemma, previous.person)
        ]
    return remaining if remaining else list(forms)


class EligibilityFilter:
    """
    Applies the eligibility gates to a pool, caching results per settings.

    Parameters:
        curriculum (CurriculumGraph): Source of the level inventory.
        verbs (Mapping[str, Verb]): Verb metadata keyed by lemma.
        max_cache_entries (int): Bound on cached settings signatures.
    """

    def __init__(
        self,
        curriculum: CurriculumGraph,
        verbs: Optional[Mapping[str, Verb]] = None,
        max_cache_entries: int = DEFAULT_MAX_CACHE_ENTRIES,
    ):
        self.curriculum = curriculum
        self.verbs: Mapping[str, Verb] = verbs or {}
        self.max_cache_entries = max_cache_entries
        self._cache: "OrderedDict[Hashable, Tuple[Form, ...]]" = OrderedDict()
        self.cache_hits = 0
        self.cache_misses = 0

    @staticmethod
    def cache_key(pool: Sequence[Form], settings: SettingsModel) -> Tuple:
        lemmas_signature = (
            None
            if settings.allowed_lemmas is None
            else tuple(sorted(settings.allowed_lemmas))
        )
        return (
            pool_signature(pool),
            settings.level,
            settings.region,
            settings.dialect_flags(),
            settings.practice_mode,
            settings.target(),
            getattr(settings, "review_mood", None),
            getattr(settings, "review_tense", None),
            settings.practice_pronoun,
            settings.verb_type,
            settings.selected_family,
            settings.enable_futuro_subj,
            lemmas_signature,
        )

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    def _lookup(self, key: Hashable) -> Optional[Tuple[Form, ...]]:
        cached = self._cache.get(key)
        if cached is None:
            return None
        if not isinstance(cached, tuple) or not all(isinstance(f, Form) for f in cached):
            logger.warning("Corrupted eligibility cache entry detected; clearing cache.")
            self._cache.clear()
            return None
        self._cache.move_to_end(key)
        return cached

    def _store(self, key: Hashable, forms: Tuple[Form, ...]) -> None:
        self._cache[key] = forms
        while len(self._cache) > self.max_cache_entries:
            self._cache.popitem(last=False)

    def filter(
        self,
        pool: Sequence[Form],
        settings: SettingsModel,
        *,
        check_level: bool = True,
        check_person: bool = True,
        check_verb_type: bool = True,
        check_target: bool = True,
    ) -> List[Form]:
        """
        Apply the gates without caching. Individual gates can be switched off
        to support progressive constraint relaxation.
        """
        allowed_combos = None
        if check_level and not settings.is_specific:
            allowed_combos = self.curriculum.allowed_combos(
                settings.level, settings.enable_futuro_subj
            )

        result: List[Form] = []
        for form in pool:
            if not is_practicable(form, settings):
                continue
            if not passes_lemma_restrictions(form, settings, self.verbs):
                continue
            if allowed_combos is not None and form.combo not in allowed_combos:
                continue
            if check_person and not allows_person(form.person, settings):
                continue
            if check_verb_type and not passes_verb_type(form, settings, self.verbs):
                continue
            if check_target and not matches_specific(form, settings):
                continue
            result.append(form)
        return result

    def eligible(self, pool: Sequence[Form], settings: SettingsModel) -> Tuple[Form, ...]:
        """Return the cached eligible subset of `pool` for `settings`."""
        key = self.cache_key(pool, settings)
        cached = self._lookup(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        self.cache_misses += 1
        forms = tuple(self.filter(pool, settings))
        self._store(key, forms)
        logger.debug(
            f"Eligibility: {len(forms)} of {len(pool)} forms for "
            f"{settings.level}/{settings.practice_mode}"
        )
        return forms

    def stats(self) -> Dict[str, int]:
        return {
            "cache_entries": len(self._cache),
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
        }
