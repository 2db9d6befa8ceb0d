"""
Double-mode pairing: two different (mood, tense) combinations of the same
verb presented as one combined item.
"""

import logging
import random
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .curriculum import CurriculumGraph
from .eligibility import (
    allows_person,
    is_practicable,
    passes_lemma_restrictions,
    passes_verb_type,
)
from .models import Combo, Form, SettingsModel, Verb

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5

VerbGroups = Dict[str, "OrderedDict[Combo, List[Form]]"]


def is_valid_pair(first: Form, second: Form) -> bool:
    return first.lemma == second.lemma and first.combo != second.combo


class DoubleModePairing:
    """
    Selects two forms of one verb that differ in mood or tense.

    All retries happen inside `pair` as a bounded loop; a failed pairing
    returns None and the caller continues in single mode.
    """

    def __init__(
        self,
        curriculum: CurriculumGraph,
        verbs: Optional[Mapping[str, Verb]] = None,
        rng: Optional[random.Random] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.curriculum = curriculum
        self.verbs: Mapping[str, Verb] = verbs or {}
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts

    def eligible_forms(self, pool: Sequence[Form], settings: SettingsModel) -> List[Form]:
        allowed = self.curriculum.allowed_combos(settings.level, settings.enable_futuro_subj)
        return [
            form
            for form in pool
            if form.combo in allowed
            and is_practicable(form, settings)
            and passes_lemma_restrictions(form, settings, self.verbs)
            and allows_person(form.person, settings)
            and passes_verb_type(form, settings, self.verbs)
        ]

    @staticmethod
    def group_by_verb(forms: Sequence[Form]) -> VerbGroups:
        groups: VerbGroups = {}
        for form in forms:
            groups.setdefault(form.lemma, OrderedDict()).setdefault(form.combo, []).append(form)
        return groups

    @staticmethod
    def viable_verbs(groups: VerbGroups) -> List[str]:
        """Verbs with at least two combos, richest first."""
        viable = [lemma for lemma, combos in groups.items() if len(combos) >= 2]
        viable.sort(key=lambda lemma: (-len(groups[lemma]), lemma))
        return viable

    def _choose_verb(
        self,
        lemmas: Sequence[str],
        groups: VerbGroups,
        tense_weights: Optional[Mapping[Combo, float]],
    ) -> str:
        if tense_weights is None:
            weights = [float(len(groups[lemma])) for lemma in lemmas]
        else:
            weights = [
                0.1 + sum(CurriculumGraph.weight_for(tense_weights, combo) for combo in groups[lemma])
                for lemma in lemmas
            ]
        return self.rng.choices(list(lemmas), weights=weights, k=1)[0]

    def _select_non_identical(
        self, first_forms: Sequence[Form], second_forms: Sequence[Form]
    ) -> Tuple[Form, Form, bool]:
        first = second = None
        for _ in range(self.max_attempts):
            first = self.rng.choice(list(first_forms))
            second = self.rng.choice(list(second_forms))
            if first.value != second.value:
                return first, second, True
        return first, second, False

    def pair(
        self,
        pool: Sequence[Form],
        settings: SettingsModel,
        previous: Optional[Form] = None,
        previous_second: Optional[Form] = None,
        tense_weights: Optional[Mapping[Combo, float]] = None,
    ) -> Optional[Tuple[Form, Form]]:
        """
        Pick two forms of one verb with different (mood, tense).

        Parameters:
            pool: Raw form pool.
            settings: Settings in effect.
            previous / previous_second: Forms of the previously presented item;
                their verb is avoided, and when the same verb is chosen again
                their combinations are avoided too.
            tense_weights: Curriculum weights used to favour verbs whose
                combinations matter most at this level.

        Returns:
            Optional[Tuple[Form, Form]]: The pair, or None if no verb offers two
            combinations.
        """
        groups = self.group_by_verb(self.eligible_forms(pool, settings))
        verbs = self.viable_verbs(groups)
        if not verbs:
            logger.debug("Double mode: no verb has two eligible combinations")
            return None

        candidates = verbs
        if previous is not None:
            candidates = [lemma for lemma in verbs if lemma != previous.lemma] or verbs

        fallback_pair: Optional[Tuple[Form, Form]] = None
        for attempt in range(1, self.max_attempts + 1):
            lemma = self._choose_verb(candidates, groups, tense_weights)
            combos = list(groups[lemma])

            if previous is not None and lemma == previous.lemma:
                used = {previous.combo}
                if previous_second is not None:
                    used.add(previous_second.combo)
                remaining = [combo for combo in combos if combo not in used]
                if len(remaining) >= 2:
                    combos = remaining

            self.rng.shuffle(combos)
            first, second, distinct = self._select_non_identical(
                groups[lemma][combos[0]], groups[lemma][combos[1]]
            )
            if not is_valid_pair(first, second):
                logger.warning(f"Double mode: rejected invalid pair on attempt {attempt}")
                continue
            if distinct:
                return first, second
            fallback_pair = fallback_pair or (first, second)
            logger.debug(f"Double mode: identical surface values for {lemma}, retrying")

        return fallback_pair

    def is_viable(self, pool: Sequence[Form], settings: SettingsModel) -> bool:
        return bool(self.viable_verbs(self.group_by_verb(self.eligible_forms(pool, settings))))

    def stats(self, pool: Sequence[Form], settings: SettingsModel) -> Dict[str, Any]:
        forms = self.eligible_forms(pool, settings)
        groups = self.group_by_verb(forms)
        viable = self.viable_verbs(groups)
        return {
            "eligible_forms": len(forms),
            "verbs": len(groups),
            "viable_verbs": len(viable),
            "max_combinations": max((len(groups[v]) for v in viable), default=0),
            "top_verbs": viable[:5],
        }
