# conjudrill/variety.py

"""
Defines the VarietyEngine, which scores eligible candidates against the
session memory (recency penalties, regular/irregular rebalancing, accuracy
history and curriculum priority) and picks one with controlled randomness.
"""

import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    BASE_FACTOR_WEIGHTS,
    CATEGORY_PENALTY_CAP,
    CATEGORY_PENALTY_PER_USE,
    COMBO_PENALTY,
    COMBO_WINDOW_SECONDS,
    IRREGULAR_BOOST,
    IRREGULAR_RATIO_TOLERANCE,
    IRREGULAR_TARGET_RATIO,
    LEVEL_DIFFICULTY_BASE,
    LEVEL_FACTOR_OVERRIDES,
    LEVEL_VERB_PRIORITIES,
    LEVELS,
    MAX_SESSION_DIFFICULTY,
    OTHER_CATEGORY,
    PERSON_PENALTY_CAP,
    PERSON_PENALTY_PER_USE,
    REGULAR_BOOST,
    SELECTIONS_PER_DIFFICULTY_STEP,
    TENSE_PENALTY_CAP,
    TENSE_PENALTY_PER_USE,
    TOP_CANDIDATE_FRACTION,
    UNLISTED_VERB_PRIORITY,
    VERB_PRIORITY_SCORES,
    VERB_RECENCY_MAX_PENALTY,
    VERB_RECENCY_WINDOW_SECONDS,
    VERB_SEMANTIC_CATEGORIES,
)
from .curriculum import CurriculumGraph, level_index
from .models import AccuracyRecord, Combo, Form, SettingsModel, Verb, history_key
from .session_memory import SessionMemory

logger = logging.getLogger(__name__)


class VarietyConfig(BaseModel):
    """Tunable weights of the variety model."""

    model_config = ConfigDict(extra="forbid")

    verb_recency_window_seconds: float = Field(default=VERB_RECENCY_WINDOW_SECONDS, gt=0)
    verb_recency_max_penalty: float = Field(default=VERB_RECENCY_MAX_PENALTY, ge=0, le=1)
    tense_penalty_per_use: float = TENSE_PENALTY_PER_USE
    tense_penalty_cap: float = TENSE_PENALTY_CAP
    person_penalty_per_use: float = PERSON_PENALTY_PER_USE
    person_penalty_cap: float = PERSON_PENALTY_CAP
    combo_window_seconds: float = Field(default=COMBO_WINDOW_SECONDS, gt=0)
    combo_penalty: float = Field(default=COMBO_PENALTY, ge=0, le=1)
    category_penalty_per_use: float = CATEGORY_PENALTY_PER_USE
    category_penalty_cap: float = CATEGORY_PENALTY_CAP
    irregular_target_ratio: float = Field(default=IRREGULAR_TARGET_RATIO, ge=0, le=1)
    irregular_ratio_tolerance: float = Field(default=IRREGULAR_RATIO_TOLERANCE, ge=0)
    irregular_boost: float = IRREGULAR_BOOST
    regular_boost: float = REGULAR_BOOST
    top_fraction: float = Field(default=TOP_CANDIDATE_FRACTION, gt=0, le=1)
    curriculum_bonus_weight: float = 0.2


@dataclass
class ScoredCandidate:
    form: Form
    score: float
    penalty: float
    is_irregular: bool
    family: str
    category: str


def semantic_category(lemma: str) -> str:
    """Primary semantic category of a verb (first listed match)."""
    for category, lemmas in VERB_SEMANTIC_CATEGORIES.items():
        if lemma in lemmas:
            return category
    return OTHER_CATEGORY


def verb_priority(lemma: str, level: str) -> float:
    tiers = LEVEL_VERB_PRIORITIES.get(LEVELS[level_index(level)], {})
    for tier, lemmas in tiers.items():
        if lemma in lemmas:
            return VERB_PRIORITY_SCORES[tier]
    return UNLISTED_VERB_PRIORITY


class VarietyEngine:
    """
    Scores and selects candidate forms for variety.

    Ranking is deterministic for a frozen SessionMemory; randomness only
    enters when picking among the top-ranked candidates, through the
    injected `rng`.
    """

    def __init__(
        self,
        curriculum: CurriculumGraph,
        verbs: Optional[Mapping[str, Verb]] = None,
        config: Optional[VarietyConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        if config is None:
            config = VarietyConfig()
        self.config = config
        self.curriculum = curriculum
        self.verbs: Mapping[str, Verb] = verbs or {}
        self.rng = rng or random.Random()

    def is_irregular(self, form: Form) -> bool:
        verb = self.verbs.get(form.lemma)
        return verb.is_irregular_in(form.tense) if verb else False

    # ------------------------------------------------------------------
    # Penalties and adjustments
    # ------------------------------------------------------------------

    def penalty(self, form: Form, memory: SessionMemory, now: datetime) -> float:
        """
        Repetition penalty of a candidate, clamped to [0, 1].

        Sums a linearly decaying verb-recency penalty, tense-family and person
        repetition penalties, the exact (verb, person) combo penalty and a
        semantic-category penalty.
        """
        cfg = self.config
        total = 0.0

        since_verb = memory.seconds_since_verb(form.lemma, now)
        if since_verb is not None and since_verb < cfg.verb_recency_window_seconds:
            decay = 1 - since_verb / cfg.verb_recency_window_seconds
            total += cfg.verb_recency_max_penalty * decay

        family = self.curriculum.family(form.tense)
        total += min(cfg.tense_penalty_cap, memory.family_count(family) * cfg.tense_penalty_per_use)
        total += min(cfg.person_penalty_cap, memory.person_count(form.person) * cfg.person_penalty_per_use)

        since_combo = memory.seconds_since_combo(form.lemma, form.person, now)
        if since_combo is not None and since_combo < cfg.combo_window_seconds:
            total += cfg.combo_penalty

        category = semantic_category(form.lemma)
        total += min(
            cfg.category_penalty_cap,
            memory.category_count(category) * cfg.category_penalty_per_use,
        )
        return max(0.0, min(1.0, total))

    def rebalance_adjustment(self, is_irregular: bool, fraction: Optional[float]) -> float:
        """Nudge toward the target irregular share of the emitted stream."""
        cfg = self.config
        current = 0.0 if fraction is None else fraction
        if current < cfg.irregular_target_ratio - cfg.irregular_ratio_tolerance:
            return cfg.irregular_boost if is_irregular else 0.0
        if current > cfg.irregular_target_ratio + cfg.irregular_ratio_tolerance:
            return -cfg.irregular_boost if is_irregular else cfg.regular_boost
        return 0.0

    def preferred_type(self, fraction: Optional[float]) -> Optional[bool]:
        """True when the stream is short of irregular forms, False when short of regular ones."""
        current = 0.0 if fraction is None else fraction
        if current < self.config.irregular_target_ratio:
            return True
        if current > self.config.irregular_target_ratio:
            return False
        return None

    def steer(self, ranked: Sequence[ScoredCandidate], memory: SessionMemory) -> List[ScoredCandidate]:
        """
        Keep only the candidates of the type the recent stream is short of.

        The ranking is returned unchanged when it holds a single type or the
        type ring sits exactly on target. Every pick then moves the ring
        toward the target share, so the emitted stream settles there
        whatever the composition of the pool.
        """
        preferred = self.preferred_type(memory.irregular_fraction())
        if preferred is None:
            return list(ranked)
        steered = [c for c in ranked if c.is_irregular == preferred]
        return steered or list(ranked)

    @staticmethod
    def person_variety_bonus(person: str, memory: SessionMemory) -> float:
        count = memory.person_count(person)
        if count == 0:
            return 0.3
        if count == 1:
            return 0.1
        return -0.2

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def rank(
        self,
        candidates: Sequence[Form],
        memory: SessionMemory,
        now: datetime,
        history: Optional[Mapping[str, AccuracyRecord]] = None,
        tense_weights: Optional[Mapping[Combo, float]] = None,
    ) -> List[ScoredCandidate]:
        """Score every candidate and return them best first."""
        labels = [self.is_irregular(form) for form in candidates]
        mixed_types = len(set(labels)) > 1
        fraction = memory.irregular_fraction()

        scored: List[ScoredCandidate] = []
        for form, is_irregular in zip(candidates, labels):
            record = (history or {}).get(history_key(form)) or AccuracyRecord()
            penalty = self.penalty(form, memory, now)
            verb_bonus = 0.5 if memory.seconds_since_verb(form.lemma, now) is None else 0.0

            score = 0.4 * (1 - record.smoothed_accuracy)
            score += 0.6 * ((1 - penalty) + verb_bonus)
            score += self.person_variety_bonus(form.person, memory)
            if mixed_types:
                score += self.rebalance_adjustment(is_irregular, fraction)
            if tense_weights is not None:
                score += self.config.curriculum_bonus_weight * CurriculumGraph.weight_for(
                    tense_weights, form.combo
                )

            scored.append(
                ScoredCandidate(
                    form=form,
                    score=score,
                    penalty=penalty,
                    is_irregular=is_irregular,
                    family=self.curriculum.family(form.tense),
                    category=semantic_category(form.lemma),
                )
            )

        scored.sort(key=lambda c: (-c.score, c.form.key))
        return scored

    def top_candidates(self, ranked: Sequence[ScoredCandidate]) -> List[ScoredCandidate]:
        if not ranked:
            return []
        size = max(1, math.ceil(len(ranked) * self.config.top_fraction))
        return list(ranked[:size])

    # ------------------------------------------------------------------
    # Multi-factor pass for mixed practice
    # ------------------------------------------------------------------

    @staticmethod
    def factor_weights(level: str) -> Dict[str, float]:
        weights = dict(BASE_FACTOR_WEIGHTS)
        weights.update(LEVEL_FACTOR_OVERRIDES.get(LEVELS[level_index(level)], {}))
        return weights

    def level_fit(self, form: Form, level: str) -> float:
        current = level_index(level)
        introduced = self.curriculum.introduction_level(form.mood, form.tense)
        intro = LEVELS.index(introduced) if introduced else current
        if intro <= current:
            return max(0.3, 1 - (current - intro) * 0.1)
        return max(0.1, 0.5 - (intro - current) * 0.2)

    def difficulty_match(self, form: Form, level: str, memory: SessionMemory) -> float:
        difficulty = min(
            MAX_SESSION_DIFFICULTY,
            1 + memory.selection_count // SELECTIONS_PER_DIFFICULTY_STEP,
        )
        target = LEVEL_DIFFICULTY_BASE[LEVELS[level_index(level)]] + (difficulty - 1) * 0.5
        return max(0.1, 1 - abs(self.curriculum.complexity(form.tense) - target) / 5)

    @staticmethod
    def tense_family_balance(candidate: ScoredCandidate, memory: SessionMemory) -> float:
        score = max(0.1, 1 - 0.2 * memory.family_count(candidate.family))
        if candidate.family == "perfect_system":
            recent_compounds = memory.family_count("perfect_system")
            score = max(0.05, score * (1 - min(0.8, 0.25 * recent_compounds)))
        if memory.last_family is not None and candidate.family != memory.last_family:
            score *= 1.3
        return score

    @staticmethod
    def semantic_diversity(candidate: ScoredCandidate, memory: SessionMemory) -> float:
        count = memory.category_count(candidate.category)
        score = max(0.1, 1 - 0.15 * count)
        if count == 0:
            score *= 1.4
        return score

    def multi_factor_scores(
        self,
        candidates: Sequence[ScoredCandidate],
        settings: SettingsModel,
        memory: SessionMemory,
        history: Optional[Mapping[str, AccuracyRecord]] = None,
    ) -> List[float]:
        weights = self.factor_weights(settings.level)
        scores: List[float] = []
        for candidate in candidates:
            form = candidate.form
            record = (history or {}).get(history_key(form)) or AccuracyRecord()
            factors = {
                "accuracy": 1 - record.smoothed_accuracy,
                "level_fit": self.level_fit(form, settings.level),
                "difficulty_match": self.difficulty_match(form, settings.level, memory),
                "variety": 1 - candidate.penalty,
                "verb_priority": verb_priority(form.lemma, settings.level),
                "tense_family_balance": self.tense_family_balance(candidate, memory),
                "semantic_diversity": self.semantic_diversity(candidate, memory),
            }
            scores.append(sum(weights[name] * value for name, value in factors.items()))
        return scores

    def weighted_choice(self, items: Sequence[ScoredCandidate], scores: Sequence[float]) -> ScoredCandidate:
        low, high = min(scores), max(scores)
        spread = high - low
        normalized = [(s - low) / spread if spread > 0 else 1.0 for s in scores]
        weights = [(n + 0.1) ** 2 for n in normalized]
        return self.rng.choices(list(items), weights=weights, k=1)[0]

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(
        self,
        candidates: Sequence[Form],
        settings: SettingsModel,
        memory: SessionMemory,
        now: datetime,
        history: Optional[Mapping[str, AccuracyRecord]] = None,
        tense_weights: Optional[Mapping[Combo, float]] = None,
    ) -> Optional[ScoredCandidate]:
        """
        Pick one candidate.

        The ranking is steered toward the under-represented verb type, its
        top fraction is kept, and mixed practice then applies the
        multi-factor weighted-random pass; other modes choose uniformly.

        Returns:
            Optional[ScoredCandidate]: None only when `candidates` is empty.
        """
        if not candidates:
            return None
        ranked = self.rank(candidates, memory, now, history, tense_weights)
        top = self.top_candidates(self.steer(ranked, memory))
        if len(top) == 1:
            return top[0]
        if settings.practice_mode == "mixed":
            scores = self.multi_factor_scores(top, settings, memory, history)
            return self.weighted_choice(top, scores)
        return self.rng.choice(top)
