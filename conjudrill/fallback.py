"""
Fallback cascade used when the eligible pool is empty or every selection
tier failed.

Each step widens the candidate set a little further; the first non-empty
step wins and is reported by name so the caller can tag its result.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .constants import DEFAULT_TENSE_BY_MOOD, MIXED_COMBINATIONS
from .curriculum import CurriculumGraph
from .eligibility import (
    EligibilityFilter,
    allows_level,
    allows_person,
    exclude_previous,
    is_practicable,
)
from .exceptions import ExhaustedFallbacksError, SchedulerError
from .models import Form, ReviewSettings, SettingsModel
from .sources import ContentSource

logger = logging.getLogger(__name__)

FallbackStep = Tuple[str, Callable[[], List[Form]]]


def requested_target(settings: SettingsModel) -> Tuple[Optional[str], Optional[str]]:
    """The (mood, tense) the learner asked for, if the mode has one."""
    target = settings.target()
    if target is not None:
        return target
    if isinstance(settings, ReviewSettings):
        return settings.review_mood, settings.review_tense
    return None, None


def _requested_tenses(mood: Optional[str], tense: Optional[str]) -> List[str]:
    if mood is None or tense is None:
        return []
    if (mood, tense) in MIXED_COMBINATIONS:
        return [t for _, t in MIXED_COMBINATIONS[(mood, tense)]]
    return [tense]


class FallbackCascade:
    """
    Progressive constraint relaxation followed by direct-scan, default-tense
    and emergency steps.

    Parameters:
        curriculum (CurriculumGraph): Used for similar tenses and level checks.
        eligibility (EligibilityFilter): Filter whose gates are relaxed.
        content_source (Optional[ContentSource]): Source for direct scans.
    """

    def __init__(
        self,
        curriculum: CurriculumGraph,
        eligibility: EligibilityFilter,
        content_source: Optional[ContentSource] = None,
    ):
        self.curriculum = curriculum
        self.eligibility = eligibility
        self.content_source = content_source

    def _scan(self, mood: str, tense: Optional[str], settings: SettingsModel) -> List[Form]:
        if self.content_source is None:
            return []
        try:
            found = [f for f in self.content_source.scan(mood, tense) if is_practicable(f, settings)]
        except Exception as e:
            logger.error(f"Direct content scan failed for {mood}/{tense}: {e}")
            return []
        preferred = [f for f in found if allows_person(f.person, settings)]
        return preferred or found

    def steps(self, pool: Sequence[Form], settings: SettingsModel) -> List[FallbackStep]:
        """Ordered fallback steps for these settings; each is evaluated lazily."""
        relax = self.eligibility.filter
        mood, tense = requested_target(settings)
        tenses = _requested_tenses(mood, tense)

        def similar() -> List[Form]:
            similar_tenses = {s for t in tenses for s in self.curriculum.similar_tenses(t)}
            untargeted = relax(pool, settings, check_verb_type=False, check_target=False)
            return [f for f in untargeted if f.mood == mood and f.tense in similar_tenses]

        def same_mood() -> List[Form]:
            untargeted = relax(pool, settings, check_verb_type=False, check_target=False)
            return [f for f in untargeted if f.mood == mood]

        def direct_scan() -> List[Form]:
            found: List[Form] = []
            for t in tenses or [None]:
                found.extend(self._scan(mood, t, settings))
            return found

        def default_tense() -> List[Form]:
            default = DEFAULT_TENSE_BY_MOOD.get(mood)
            if default is None:
                return []
            in_pool = [
                f for f in pool
                if f.combo == (mood, default)
                and is_practicable(f, settings)
                and allows_person(f.person, settings)
            ]
            return in_pool or self._scan(mood, default, settings)

        def level_valid() -> List[Form]:
            return [
                f for f in pool
                if is_practicable(f, settings)
                and allows_level(f, settings, self.curriculum)
                and allows_person(f.person, settings)
            ]

        def any_practicable() -> List[Form]:
            return [f for f in pool if is_practicable(f, settings)]

        steps: List[FallbackStep] = [
            ("relaxed_verb_type", lambda: relax(pool, settings, check_verb_type=False)),
            (
                "relaxed_person",
                lambda: relax(pool, settings, check_verb_type=False, check_person=False),
            ),
        ]
        if mood is not None:
            if tenses:
                steps.append(("similar_tense", similar))
            steps.append(("same_mood", same_mood))
            steps.append(("direct_scan", direct_scan))
            steps.append(("default_tense", default_tense))
        else:
            steps.append(
                (
                    "relaxed_level",
                    lambda: relax(pool, settings, check_level=False, check_verb_type=False),
                )
            )
        steps.append(("emergency_level_valid", level_valid))
        steps.append(("emergency_any", any_practicable))
        steps.append(("emergency_raw", lambda: list(pool)))
        return steps

    def run(
        self,
        pool: Sequence[Form],
        settings: SettingsModel,
        previous: Optional[Form] = None,
    ) -> Tuple[List[Form], str]:
        """
        Return the candidates of the first fallback step that yields any.

        Returns:
            Tuple[List[Form], str]: Candidates (previous item excluded where
            possible) and the name of the step that produced them.

        Raises:
            ExhaustedFallbacksError: If every step comes back empty.
        """
        for name, step in self.steps(pool, settings):
            try:
                candidates = step()
            except SchedulerError as e:
                logger.warning(f"Fallback step '{name}' failed: {e}")
                continue
            if candidates:
                logger.info(f"Fallback step '{name}' produced {len(candidates)} candidates")
                return exclude_previous(candidates, settings, previous), name
            logger.debug(f"Fallback step '{name}' produced nothing")
        raise ExhaustedFallbacksError(
            f"No fallback produced a form for {settings.level}/{settings.practice_mode} "
            f"(pool size {len(pool)})."
        )
