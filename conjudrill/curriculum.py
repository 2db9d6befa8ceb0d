# conjudrill/curriculum.py

"""
Defines the CurriculumGraph: the pedagogical ordering of tenses by level,
their complexity, families and prerequisite relation, and the per-level
weighted plans (core, review, exploration, prerequisite gaps, family groups,
progression path) derived from it and from optional mastery data.

The graph is built once and injected wherever curriculum knowledge is
needed. Every planning method is a pure function of its arguments.
"""

import logging
from dataclasses import dataclass, field
from statistics import mean
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    ALL_LEVELS,
    COMPLEXITY_SCORES,
    DEFAULT_COMPLEXITY,
    FAMILY_PRIORITY_BONUS,
    FAMILY_PROGRESSION_ORDER,
    FAMILY_REVIEW_BONUS,
    FUTURE_SUBJUNCTIVE_TENSES,
    INDEPENDENT_FAMILY,
    INTRODUCTION_LEVELS,
    LEARNING_STAGE_THRESHOLDS,
    LEVEL_COMPLEXITY_MAX,
    LEVEL_CRITICAL_TENSES,
    LEVEL_PRIORITY_WEIGHTS,
    LEVELS,
    MASTERED_STAGE,
    MASTERED_THRESHOLD,
    PREREQUISITE_GAP_THRESHOLD,
    PREREQUISITES,
    REVIEW_MASTERY_CEILING,
    SIMILAR_TENSES,
    TENSE_FAMILIES,
    UNLISTED_TENSE_WEIGHT,
    WEIGHTED_SELECTION_MULTIPLIERS,
)
from .exceptions import InvalidConfigurationError
from .models import Combo, MasteryRecord

logger = logging.getLogger(__name__)

MasteryMap = Mapping[str, float]


def level_index(level: str) -> int:
    """Position of a level in the CEFR ordering; "ALL" ranks as the top level."""
    if level == ALL_LEVELS:
        return len(LEVELS) - 1
    try:
        return LEVELS.index(level)
    except ValueError:
        raise InvalidConfigurationError(f"Unknown level: {level!r}") from None


def mastery_map(records: Optional[Iterable[MasteryRecord]]) -> Dict[str, float]:
    """Average mastery scores per tense, across verbs."""
    scores: Dict[str, List[float]] = {}
    for record in records or ():
        scores.setdefault(record.tense, []).append(record.score)
    return {tense: mean(values) for tense, values in scores.items()}


class CurriculumEntry(BaseModel):
    """One (mood, tense) slot of the curriculum."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mood: str = Field(..., min_length=1)
    tense: str = Field(..., min_length=1)
    introduced_at: str = Field(..., description="Level at which the tense is introduced.")
    complexity: int = Field(default=DEFAULT_COMPLEXITY, gt=0)
    family: str = INDEPENDENT_FAMILY
    prerequisites: Tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("introduced_at")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v not in LEVELS:
            raise ValueError(f"introduced_at must be one of {', '.join(LEVELS)}")
        return v

    @property
    def combo(self) -> Combo:
        return (self.mood, self.tense)


def default_entries() -> List[CurriculumEntry]:
    """Build curriculum entries from the static tables."""
    family_of = {
        tense: family
        for family, tenses in TENSE_FAMILIES.items()
        for tense in tenses
    }
    return [
        CurriculumEntry(
            mood=mood,
            tense=tense,
            introduced_at=level,
            complexity=COMPLEXITY_SCORES.get(tense, DEFAULT_COMPLEXITY),
            family=family_of.get(tense, INDEPENDENT_FAMILY),
            prerequisites=PREREQUISITES.get(tense, ()),
        )
        for (mood, tense), level in INTRODUCTION_LEVELS.items()
    ]


@dataclass
class PrioritizedTense:
    mood: str
    tense: str
    category: str
    complexity: int
    family: str
    mastery: float
    readiness: float
    priority: float
    urgency: float = 0.0
    is_prerequisite: bool = False
    label: Optional[str] = None  # review urgency or exploration risk
    adjusted_priority: float = 0.0
    reason: str = "standard_priority"

    @property
    def combo(self) -> Combo:
        return (self.mood, self.tense)


@dataclass
class FamilyGroup:
    family: str
    tenses: List[str]
    mastered_count: int
    average_mastery: float
    status: str
    priority: float
    readiness: float


@dataclass
class LevelPlan:
    """All curriculum buckets for one level and mastery snapshot."""

    level: str
    core: List[PrioritizedTense] = field(default_factory=list)
    review: List[PrioritizedTense] = field(default_factory=list)
    exploration: List[PrioritizedTense] = field(default_factory=list)
    prerequisite_gaps: List[PrioritizedTense] = field(default_factory=list)
    family_groups: List[FamilyGroup] = field(default_factory=list)
    progression_path: List[PrioritizedTense] = field(default_factory=list)
    weights: Dict[str, float] = field(default_factory=dict)


class CurriculumGraph:
    """
    Read-only curriculum of tenses keyed by tense name.

    The prerequisite relation must form a directed acyclic graph over known
    tenses; violations are rejected at construction time.
    """

    def __init__(self, entries: Optional[Sequence[CurriculumEntry]] = None):
        if entries is None:
            entries = default_entries()
        self._entries: Dict[str, CurriculumEntry] = {}
        for entry in entries:
            if entry.tense in self._entries:
                raise InvalidConfigurationError(
                    f"Duplicate curriculum entry for tense '{entry.tense}'."
                )
            self._entries[entry.tense] = entry

        self._validate_prerequisites()
        self._chains: Dict[str, FrozenSet[str]] = {
            tense: self._collect_chain(tense) for tense in self._entries
        }
        logger.debug(f"Curriculum graph built with {len(self._entries)} tenses")

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _validate_prerequisites(self) -> None:
        for entry in self._entries.values():
            for prereq in entry.prerequisites:
                if prereq not in self._entries:
                    raise InvalidConfigurationError(
                        f"Tense '{entry.tense}' lists unknown prerequisite '{prereq}'."
                    )

        visiting: Set[str] = set()
        done: Set[str] = set()

        def visit(tense: str, path: List[str]) -> None:
            if tense in done:
                return
            if tense in visiting:
                cycle = " -> ".join(path + [tense])
                raise InvalidConfigurationError(
                    f"Prerequisite cycle detected: {cycle}"
                )
            visiting.add(tense)
            for prereq in self._entries[tense].prerequisites:
                visit(prereq, path + [tense])
            visiting.discard(tense)
            done.add(tense)

        for tense in self._entries:
            visit(tense, [])

    def _collect_chain(self, tense: str) -> FrozenSet[str]:
        chain: Set[str] = set()
        stack = list(self._entries[tense].prerequisites)
        while stack:
            prereq = stack.pop()
            if prereq in chain:
                continue
            chain.add(prereq)
            stack.extend(self._entries[prereq].prerequisites)
        return frozenset(chain)

    # ------------------------------------------------------------------
    # Static lookups
    # ------------------------------------------------------------------

    @property
    def entries(self) -> List[CurriculumEntry]:
        return list(self._entries.values())

    def entry(self, tense: str) -> Optional[CurriculumEntry]:
        return self._entries.get(tense)

    def introduction_level(self, mood: str, tense: str) -> Optional[str]:
        entry = self._entries.get(tense)
        if entry is None or entry.mood != mood:
            return None
        return entry.introduced_at

    def complexity(self, tense: str) -> int:
        entry = self._entries.get(tense)
        return entry.complexity if entry else DEFAULT_COMPLEXITY

    def family(self, tense: str) -> str:
        entry = self._entries.get(tense)
        return entry.family if entry else INDEPENDENT_FAMILY

    def family_tenses(self, family: str) -> List[str]:
        return [e.tense for e in self._entries.values() if e.family == family]

    def prerequisites(self, tense: str) -> Tuple[str, ...]:
        entry = self._entries.get(tense)
        return entry.prerequisites if entry else ()

    def prerequisite_chain(self, tense: str) -> FrozenSet[str]:
        """All tenses that must be learned before `tense`, transitively."""
        return self._chains.get(tense, frozenset())

    def similar_tenses(self, tense: str) -> Tuple[str, ...]:
        return SIMILAR_TENSES.get(tense, ())

    def allowed_combos(
        self, level: str, enable_futuro_subj: bool = False
    ) -> FrozenSet[Combo]:
        """
        Cumulative (mood, tense) inventory available at a level.

        Parameters:
            level (str): CEFR level, or "ALL" for the complete inventory.
            enable_futuro_subj (bool): Whether the archaic future subjunctive
                tenses may be offered.

        Returns:
            FrozenSet[Combo]: Every combo introduced at or below `level`.
        """
        limit = level_index(level)
        return frozenset(
            entry.combo
            for entry in self._entries.values()
            if LEVELS.index(entry.introduced_at) <= limit
            and (enable_futuro_subj or entry.tense not in FUTURE_SUBJUNCTIVE_TENSES)
        )

    def tenses_introduced_at(
        self, level: str, enable_futuro_subj: bool = False
    ) -> List[CurriculumEntry]:
        return [
            entry
            for entry in self._entries.values()
            if entry.introduced_at == level
            and (enable_futuro_subj or entry.tense not in FUTURE_SUBJUNCTIVE_TENSES)
        ]

    # ------------------------------------------------------------------
    # Per-tense scoring
    # ------------------------------------------------------------------

    @staticmethod
    def _mastery(tense: str, mastery: Optional[MasteryMap]) -> float:
        if not mastery:
            return 0.0
        return float(mastery.get(tense, 0.0))

    def readiness(self, tense: str, mastery: Optional[MasteryMap] = None) -> float:
        """
        How prepared the learner is for a tense, in [0, 1].

        Tenses without prerequisites are always ready. When none of the
        prerequisites has mastery data the readiness is 0.5; otherwise it is
        the mean known prerequisite mastery relative to 75, capped at 1.
        """
        prereqs = self.prerequisites(tense)
        if not prereqs:
            return 1.0
        known = [mastery[p] for p in prereqs if mastery and p in mastery]
        if not known:
            return 0.5
        return min(1.0, mean(known) / MASTERED_THRESHOLD)

    def _family_average(self, family: str, mastery: Optional[MasteryMap]) -> float:
        tenses = self.family_tenses(family)
        if not tenses:
            return 0.0
        return mean(self._mastery(t, mastery) for t in tenses)

    def urgency(
        self, tense: str, level: str, mastery: Optional[MasteryMap] = None
    ) -> float:
        score = 50.0
        if tense in LEVEL_CRITICAL_TENSES.get(level, ()):
            score += 30
        family_avg = self._family_average(self.family(tense), mastery)
        if 40 < family_avg < 80:
            score += 15
        own = self._mastery(tense, mastery)
        if 30 < own < 70:
            score += 10
        return min(100.0, score)

    def learning_priority(
        self, tense: str, level: str, mastery: Optional[MasteryMap] = None
    ) -> float:
        entry = self._entries.get(tense)
        new_at_level = entry is not None and entry.introduced_at == level
        priority = self.complexity(tense) * 5
        priority += 30 if new_at_level else 10
        priority += FAMILY_PRIORITY_BONUS.get(self.family(tense), 0)
        priority += len(self.prerequisite_chain(tense)) * 3
        priority += max(0.0, 100 - self._mastery(tense, mastery)) * 0.2
        return float(priority)

    @staticmethod
    def learning_stage(score: float) -> str:
        for threshold, stage in LEARNING_STAGE_THRESHOLDS:
            if score < threshold:
                return stage
        return MASTERED_STAGE

    def _prioritized(
        self,
        entry: CurriculumEntry,
        category: str,
        level: str,
        mastery: Optional[MasteryMap],
    ) -> PrioritizedTense:
        return PrioritizedTense(
            mood=entry.mood,
            tense=entry.tense,
            category=category,
            complexity=entry.complexity,
            family=entry.family,
            mastery=self._mastery(entry.tense, mastery),
            readiness=self.readiness(entry.tense, mastery),
            priority=self.learning_priority(entry.tense, level, mastery),
            urgency=self.urgency(entry.tense, level, mastery),
        )

    def _level_prerequisites(
        self, level: str, enable_futuro_subj: bool = False
    ) -> List[str]:
        seen: List[str] = []
        for entry in self.tenses_introduced_at(level, enable_futuro_subj):
            for prereq in entry.prerequisites:
                if prereq not in seen:
                    seen.append(prereq)
        return seen

    # ------------------------------------------------------------------
    # Level buckets
    # ------------------------------------------------------------------

    def core(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        enable_futuro_subj: bool = False,
    ) -> List[PrioritizedTense]:
        """Tenses introduced at `level`, by readiness, urgency then priority."""
        level = LEVELS[level_index(level)]
        items = [
            self._prioritized(entry, "core", level, mastery)
            for entry in self.tenses_introduced_at(level, enable_futuro_subj)
        ]
        items.sort(key=lambda t: (-t.readiness, -t.urgency, -t.priority))
        return items

    def review(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        enable_futuro_subj: bool = False,
    ) -> List[PrioritizedTense]:
        """
        Earlier-level tenses that still need work (mastery below 80).

        Prerequisites of the current level's tenses come first, then the
        largest mastery gaps.
        """
        limit = level_index(level)
        level = LEVELS[limit]
        level_prereqs = set(self._level_prerequisites(level, enable_futuro_subj))
        items: List[PrioritizedTense] = []
        for entry in self._entries.values():
            if LEVELS.index(entry.introduced_at) >= limit:
                continue
            score = self._mastery(entry.tense, mastery)
            if score >= REVIEW_MASTERY_CEILING:
                continue
            is_prereq = entry.tense in level_prereqs
            item = self._prioritized(entry, "review", level, mastery)
            item.is_prerequisite = is_prereq
            item.priority = (
                30
                + (40 if is_prereq else 0)
                + max(0.0, 75 - score) * 0.3
                + FAMILY_REVIEW_BONUS.get(entry.family, 0)
            )
            if is_prereq:
                item.label = "high"
            elif score < 60:
                item.label = "medium"
            else:
                item.label = "low"
            items.append(item)

        items.sort(
            key=lambda t: (
                not t.is_prerequisite,
                -(REVIEW_MASTERY_CEILING - t.mastery),
            )
        )
        return items

    def exploration(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        enable_futuro_subj: bool = False,
    ) -> List[PrioritizedTense]:
        """Up to three next-level tenses the learner is ready to preview."""
        current = level_index(level)
        if current + 1 >= len(LEVELS):
            return []
        level = LEVELS[current]
        next_level = LEVELS[current + 1]
        complexity_ceiling = LEVEL_COMPLEXITY_MAX[level] + 1

        items: List[PrioritizedTense] = []
        for entry in self.tenses_introduced_at(next_level, enable_futuro_subj):
            item = self._prioritized(entry, "exploration", level, mastery)
            readiness = item.readiness
            if LEVELS.index(entry.introduced_at) - current > 1:
                readiness *= 0.5
            if entry.complexity > complexity_ceiling:
                readiness *= 0.7
            if readiness < 0.4:
                continue
            item.readiness = readiness
            item.priority = 20 + readiness * 30 + (10 if 5 <= entry.complexity <= 7 else 0)
            if readiness < 0.6:
                item.label = "high"
            elif readiness < 0.8:
                item.label = "medium"
            else:
                item.label = "low"
            items.append(item)

        items.sort(key=lambda t: -t.readiness)
        return items[:3]

    def prerequisite_gaps(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        enable_futuro_subj: bool = False,
    ) -> List[PrioritizedTense]:
        """Prerequisites of current-level tenses with mastery below 70."""
        level = LEVELS[level_index(level)]
        items: List[PrioritizedTense] = []
        for tense in self._level_prerequisites(level, enable_futuro_subj):
            score = self._mastery(tense, mastery)
            if score >= PREREQUISITE_GAP_THRESHOLD:
                continue
            item = self._prioritized(self._entries[tense], "prerequisite_gap", level, mastery)
            item.is_prerequisite = True
            item.urgency = 100 - score
            item.priority = 90 + (PREREQUISITE_GAP_THRESHOLD - score)
            items.append(item)
        items.sort(key=lambda t: -t.priority)
        return items

    def family_groups(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        enable_futuro_subj: bool = False,
    ) -> List[FamilyGroup]:
        """Progress through each tense family available at `level`."""
        allowed = {tense for _, tense in self.allowed_combos(level, enable_futuro_subj)}
        groups: List[FamilyGroup] = []
        for family in dict.fromkeys(e.family for e in self._entries.values()):
            tenses = [t for t in self.family_tenses(family) if t in allowed]
            if not tenses:
                continue
            scores = [self._mastery(t, mastery) for t in tenses]
            mastered = sum(1 for s in scores if s >= MASTERED_THRESHOLD)
            average = mean(scores)
            if mastered == len(tenses):
                status = "completed"
                priority = 0.0
            elif mastered > 0:
                status = "in_progress"
                priority = 80 + average * 0.2
            elif average > 30:
                status = "started"
                priority = 70 + average * 0.3
            else:
                status = "not_started"
                priority = 60.0
            groups.append(
                FamilyGroup(
                    family=family,
                    tenses=tenses,
                    mastered_count=mastered,
                    average_mastery=average,
                    status=status,
                    priority=priority,
                    readiness=mean(self.readiness(t, mastery) for t in tenses),
                )
            )
        groups.sort(key=lambda g: -g.priority)
        return groups

    def progression_path(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        enable_futuro_subj: bool = False,
    ) -> List[PrioritizedTense]:
        """Next tenses to work on, ordered for a smooth progression (max 8)."""
        level = LEVELS[level_index(level)]
        allowed = self.allowed_combos(level, enable_futuro_subj)
        candidates: List[PrioritizedTense] = []
        for entry in self._entries.values():
            if entry.combo not in allowed:
                continue
            item = self._prioritized(entry, "progression", level, mastery)
            if item.readiness >= 0.7 and item.mastery < REVIEW_MASTERY_CEILING:
                candidates.append(item)

        def family_rank(family: str) -> int:
            if family in FAMILY_PROGRESSION_ORDER:
                return FAMILY_PROGRESSION_ORDER.index(family)
            return len(FAMILY_PROGRESSION_ORDER)

        candidates.sort(
            key=lambda t: (-t.readiness, family_rank(t.family), t.complexity, -t.priority)
        )
        return candidates[:8]

    def dynamic_weights(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        family_groups: Optional[List[FamilyGroup]] = None,
    ) -> Dict[str, float]:
        """
        Category weights for a level, adjusted by overall mastery.

        Low average mastery shifts weight toward core practice; high average
        mastery shifts it toward review and consolidation. When more than two
        families are in progress a family-focus weight is introduced at the
        expense of exploration.
        """
        base = LEVEL_PRIORITY_WEIGHTS[LEVELS[level_index(level)]]
        weights = dict(base)
        weights["family_focus"] = 0.0
        if not mastery:
            return weights

        average = mean(mastery.values())
        if average < 40:
            weights["core"] = min(0.95, base["core"] + 0.1)
            weights["consolidation"] = max(0.0, base["consolidation"] - 0.1)
        elif average > 80:
            weights["review"] = min(0.6, base["review"] + 0.1)
            weights["consolidation"] = min(0.9, base["consolidation"] + 0.2)
            weights["core"] = max(0.1, base["core"] - 0.1)

        if family_groups is None:
            family_groups = self.family_groups(level, mastery)
        in_progress = [g for g in family_groups if g.status == "in_progress"]
        if len(in_progress) > 2:
            weights["family_focus"] = 0.15
            weights["exploration"] = max(0.0, weights["exploration"] - 0.1)
        return weights

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def _apply_adjusted_priorities(self, plan: LevelPlan) -> None:
        in_progress = {g.family for g in plan.family_groups if g.status == "in_progress"}

        for item in plan.core:
            if item.mastery < 50:
                factor, item.reason = 1.8, "struggling_area"
            elif item.mastery < 75:
                factor, item.reason = 1.4, "developing_skill"
            else:
                factor, item.reason = 0.7, "well_mastered"
            item.adjusted_priority = item.priority * factor

        for item in plan.review:
            if item.is_prerequisite and item.mastery < 70:
                factor, item.reason = 2.0, "prerequisite_gap"
            elif item.mastery < 60:
                factor, item.reason = 1.3, "developing_skill"
            elif item.mastery > 85:
                factor, item.reason = 0.5, "well_mastered"
            else:
                factor = 1.0
            item.adjusted_priority = item.priority * factor

        for item in plan.exploration:
            if item.readiness < 0.6:
                factor = 0.3
            elif item.readiness > 0.8:
                factor, item.reason = 1.2, "ready_for_challenge"
            else:
                factor = 1.0
            item.adjusted_priority = item.priority * factor

        for item in plan.prerequisite_gaps + plan.progression_path:
            item.adjusted_priority = item.priority

        for item in plan.core + plan.review + plan.exploration:
            if item.family in in_progress:
                item.adjusted_priority *= 1.3

    def plan(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        enable_futuro_subj: bool = False,
    ) -> LevelPlan:
        """
        Build every curriculum bucket for a level.

        Parameters:
            level (str): CEFR level or "ALL" (planned as the top level).
            mastery (Optional[MasteryMap]): Average mastery per tense, 0-100.
            enable_futuro_subj (bool): Include the future subjunctive tenses.

        Returns:
            LevelPlan: Core, review, exploration, prerequisite gaps, family
            groups, progression path and dynamic category weights.
        """
        plan_level = LEVELS[level_index(level)]
        groups = self.family_groups(plan_level, mastery, enable_futuro_subj)
        plan = LevelPlan(
            level=plan_level,
            core=self.core(plan_level, mastery, enable_futuro_subj),
            review=self.review(plan_level, mastery, enable_futuro_subj),
            exploration=self.exploration(plan_level, mastery, enable_futuro_subj),
            prerequisite_gaps=self.prerequisite_gaps(plan_level, mastery, enable_futuro_subj),
            family_groups=groups,
            progression_path=self.progression_path(plan_level, mastery, enable_futuro_subj),
            weights=self.dynamic_weights(plan_level, mastery, groups),
        )
        self._apply_adjusted_priorities(plan)
        return plan

    def tense_weights(self, plan: LevelPlan) -> Dict[Combo, float]:
        """
        Expand a plan into relative weights per (mood, tense), in [0, 1].

        Each bucket contributes a fixed multiplicity; the most represented
        combo gets weight 1. Combos absent from the plan are not listed and
        should be weighted with `weight_for`.
        """
        counts: Dict[Combo, int] = {}

        def add(combo: Combo, times: int) -> None:
            counts[combo] = counts.get(combo, 0) + times

        for item in plan.prerequisite_gaps:
            add(item.combo, WEIGHTED_SELECTION_MULTIPLIERS["prerequisite_gap"])
        for group in plan.family_groups:
            if group.status != "in_progress":
                continue
            for tense in group.tenses:
                add(self._entries[tense].combo, WEIGHTED_SELECTION_MULTIPLIERS["family_completion"])
        for item in plan.core:
            key = "core_ready" if item.readiness >= 0.7 else "core_not_ready"
            add(item.combo, WEIGHTED_SELECTION_MULTIPLIERS[key])
        for item in plan.progression_path:
            add(item.combo, WEIGHTED_SELECTION_MULTIPLIERS["progression"])
        review_times = WEIGHTED_SELECTION_MULTIPLIERS["review"]
        if plan.weights.get("consolidation", 0.0) > 0.7:
            review_times += 1
        for item in plan.review:
            add(item.combo, review_times)
        for item in plan.exploration:
            add(item.combo, WEIGHTED_SELECTION_MULTIPLIERS["exploration"])

        if not counts:
            return {}
        top = max(counts.values())
        return {combo: count / top for combo, count in counts.items()}

    @staticmethod
    def weight_for(weights: Mapping[Combo, float], combo: Combo) -> float:
        return weights.get(combo, UNLISTED_TENSE_WEIGHT)

    def next_recommended(
        self,
        level: str,
        mastery: Optional[MasteryMap] = None,
        enable_futuro_subj: bool = False,
    ) -> Optional[PrioritizedTense]:
        """First core tense, else first review tense, else first exploration tense."""
        plan = self.plan(level, mastery, enable_futuro_subj)
        for bucket in (plan.core, plan.review, plan.exploration):
            if bucket:
                return bucket[0]
        return None
