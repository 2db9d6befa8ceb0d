# conjudrill/selector.py

"""
Defines the MultiTierSelector, the orchestrator that picks the next practice
item: due items first, then an adaptive recommendation, then the variety
engine, and finally the fallback cascade. A call always produces a
SelectionResult, at worst the clearly flagged sentinel item.
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .curriculum import CurriculumGraph, mastery_map
from .double_mode import DEFAULT_MAX_ATTEMPTS, DoubleModePairing
from .eligibility import (
    DEFAULT_MAX_CACHE_ENTRIES,
    EligibilityFilter,
    exclude_previous,
    passes_integrity_checks,
    target_combos,
)
from .exceptions import (
    DataUnavailableError,
    ExhaustedFallbacksError,
    InvalidConfigurationError,
    NoEligibleFormsError,
    SelectorBusyError,
)
from .fallback import FallbackCascade
from .materializer import ItemMaterializer
from .models import (
    AccuracyRecord,
    Combo,
    Form,
    MixedSettings,
    PracticeItem,
    SettingsModel,
    parse_settings,
)
from .session_memory import SessionMemory
from .sources import AdaptiveSource, ContentSource, DueSource, MasterySource
from .variety import VarietyConfig, VarietyEngine, semantic_category

logger = logging.getLogger(__name__)

History = Mapping[str, AccuracyRecord]


@dataclass
class SelectionResult:
    chosen: PracticeItem
    selection_method: str
    is_fallback: bool = False
    is_error: bool = False
    second: Optional[PracticeItem] = None
    error: Optional[str] = None


class SelectorConfig(BaseModel):
    """Configuration for the MultiTierSelector."""

    model_config = ConfigDict(extra="forbid")

    adaptive_probability: float = Field(
        default=0.35,
        ge=0,
        le=1,
        description="Chance of consulting the adaptive source on a given call.",
    )
    double_max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    max_cache_entries: int = Field(default=DEFAULT_MAX_CACHE_ENTRIES, ge=1)


def _item_form(item: PracticeItem) -> Form:
    return Form(
        lemma=item.lemma,
        mood=item.mood,
        tense=item.tense,
        person=item.person,
        value=item.form.value,
        alternates=tuple(item.form.alternates),
        accepted_variants=dict(item.form.accepted_variants),
    )


PreviousItem = Union[SelectionResult, PracticeItem, Form, None]


def _previous_forms(previous: PreviousItem) -> Tuple[Optional[Form], Optional[Form]]:
    if previous is None:
        return None, None
    if isinstance(previous, SelectionResult):
        if previous.is_error:
            return None, None
        second = _item_form(previous.second) if previous.second else None
        return _item_form(previous.chosen), second
    if isinstance(previous, PracticeItem):
        return _item_form(previous), None
    return previous, None


class MultiTierSelector:
    """
    Orchestrates the selection tiers for one practice session.

    Collaborators and read-only structures are injected; the selector owns
    its SessionMemory and eligibility cache exclusively. Session memory is
    only updated by `record`, which the host calls for results that were
    actually presented.
    """

    def __init__(
        self,
        content_source: ContentSource,
        curriculum: Optional[CurriculumGraph] = None,
        due_source: Optional[DueSource] = None,
        adaptive_source: Optional[AdaptiveSource] = None,
        mastery_source: Optional[MasterySource] = None,
        config: Optional[SelectorConfig] = None,
        variety_config: Optional[VarietyConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Build a selector and its components.

        Parameters:
            content_source (ContentSource): Provides the form pool and verb metadata.
            curriculum (Optional[CurriculumGraph]): Curriculum; the built-in one when omitted.
            due_source (Optional[DueSource]): Spaced-repetition due items.
            adaptive_source (Optional[AdaptiveSource]): Next-tense recommendations.
            mastery_source (Optional[MasterySource]): Mastery scores for curriculum planning.
            config (Optional[SelectorConfig]): Selector tuning.
            variety_config (Optional[VarietyConfig]): Variety model tuning.
            rng (Optional[random.Random]): Random source shared by every component.
            clock (Optional[Callable[[], datetime]]): Returns the current UTC time.
        """
        if config is None:
            config = SelectorConfig()
        if variety_config is None:
            variety_config = VarietyConfig()
        self.config = config
        self.content_source = content_source
        self.curriculum = curriculum or CurriculumGraph()
        self.due_source = due_source
        self.adaptive_source = adaptive_source
        self.mastery_source = mastery_source
        self.rng = rng or random.Random()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        try:
            verbs = dict(content_source.get_verbs())
        except Exception as e:
            logger.error(f"Could not load verb metadata, continuing without it: {e}")
            verbs = {}
        self.verbs = verbs

        self.memory = SessionMemory(
            verb_window_seconds=variety_config.verb_recency_window_seconds,
            combo_window_seconds=variety_config.combo_window_seconds,
        )
        self.eligibility = EligibilityFilter(
            self.curriculum, verbs, max_cache_entries=config.max_cache_entries
        )
        self.variety = VarietyEngine(self.curriculum, verbs, variety_config, self.rng)
        self.materializer = ItemMaterializer(verbs)
        self.double_mode = DoubleModePairing(
            self.curriculum, verbs, self.rng, config.double_max_attempts
        )
        self.fallback = FallbackCascade(self.curriculum, self.eligibility, content_source)

        self._busy = False
        self.method_counts: Counter = Counter()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._busy

    def reset_session(self) -> None:
        """Start a new session: forget recency state and counters."""
        self.memory.reset()
        self.method_counts.clear()
        logger.info("Selector session reset")

    def record(self, result: SelectionResult, now: Optional[datetime] = None) -> None:
        """
        Record a presented result into session memory.

        Error results (sentinel, invalid configuration, busy guard) are not
        recorded.
        """
        if result.is_error or result.selection_method == "busy_guard":
            logger.debug(f"Not recording {result.selection_method} result")
            return
        stamp = now or self.clock()
        for item in (result.chosen, result.second):
            if item is None:
                continue
            self.memory.record(
                _item_form(item),
                family=self.curriculum.family(item.tense),
                category=semantic_category(item.lemma),
                is_irregular=item.type == "irregular",
                now=stamp,
            )

    def stats(self) -> Dict[str, Any]:
        return {
            "methods": dict(self.method_counts),
            "memory": self.memory.snapshot(),
            "eligibility": self.eligibility.stats(),
        }

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_next(
        self,
        settings: Union[SettingsModel, Mapping[str, Any]],
        previous: PreviousItem = None,
        history: Optional[History] = None,
    ) -> SelectionResult:
        """
        Select the next practice item.

        Parameters:
            settings: A settings record, or a raw mapping validated here.
            previous: The previously presented result, item or form.
            history: Attempt accuracy keyed by `history_key`.

        Returns:
            SelectionResult: Never None. Invalid settings, re-entrant calls and
            exhausted fallbacks produce flagged results instead of raising.
        """
        try:
            self._acquire()
        except SelectorBusyError as e:
            logger.warning(str(e))
            result = self._flagged(settings, "busy_guard", str(e), is_error=False)
            self.method_counts[result.selection_method] += 1
            return result

        try:
            result = self._select(settings, previous, history)
        except Exception as e:
            logger.exception(f"Unexpected error during selection: {e}")
            result = self._flagged(settings, "sentinel", f"Unexpected error: {e}", is_error=True)
        finally:
            self._busy = False

        self.method_counts[result.selection_method] += 1
        return result

    def _acquire(self) -> None:
        if self._busy:
            raise SelectorBusyError("A selection is already in progress.")
        self._busy = True

    def _flagged(
        self,
        settings: Any,
        method: str,
        message: str,
        is_error: bool,
    ) -> SelectionResult:
        try:
            settings = parse_settings(settings)
        except InvalidConfigurationError:
            settings = MixedSettings()
        return SelectionResult(
            chosen=self.materializer.sentinel_item(settings),
            selection_method=method,
            is_fallback=True,
            is_error=is_error,
            error=message,
        )

    def _select(
        self,
        raw_settings: Union[SettingsModel, Mapping[str, Any]],
        previous: PreviousItem,
        history: Optional[History],
    ) -> SelectionResult:
        try:
            settings = parse_settings(raw_settings)
        except InvalidConfigurationError as e:
            logger.error(f"Rejected settings: {e}")
            return SelectionResult(
                chosen=self.materializer.sentinel_item(MixedSettings()),
                selection_method="invalid_configuration",
                is_fallback=True,
                is_error=True,
                error=str(e),
            )

        now = self.clock()
        previous_form, previous_second = _previous_forms(previous)
        pool = self._load_pool()
        self.materializer.index_pool(pool)
        mastery = self._load_mastery()
        plan = self.curriculum.plan(settings.level, mastery, settings.enable_futuro_subj)
        weights = self.curriculum.tense_weights(plan)

        if settings.double_active:
            result = self._double_tier(pool, settings, previous_form, previous_second, weights)
            if result is not None:
                return result
            logger.info("Double mode unavailable, continuing in single mode")

        eligible = self.eligibility.eligible(pool, settings)
        if not eligible:
            error = NoEligibleFormsError(
                f"No eligible forms for {settings.level}/{settings.practice_mode} "
                f"(pool size {len(pool)})"
            )
            logger.warning(str(error))
        else:
            candidates = exclude_previous(eligible, settings, previous_form)
            tiers = (
                ("due", self._due_tier),
                ("adaptive", self._adaptive_tier),
                ("variety", self._variety_tier),
            )
            for method, tier in tiers:
                form = tier(candidates, settings, now, history, weights, mastery)
                if form is None:
                    logger.debug(f"Tier '{method}' produced nothing")
                    continue
                if not passes_integrity_checks(form, settings, self.curriculum):
                    continue
                return SelectionResult(
                    chosen=self.materializer.materialize(form, settings),
                    selection_method=method,
                )

        return self._fallback_tier(pool, settings, previous_form, now, history, weights)

    # ------------------------------------------------------------------
    # Collaborator access
    # ------------------------------------------------------------------

    def _load_pool(self) -> Sequence[Form]:
        try:
            pool = self.content_source.get_forms()
        except Exception as e:
            error = DataUnavailableError(f"Content source failed: {e}", original_exception=e)
            logger.error(str(error))
            return ()

        if pool is None:
            logger.warning("Content source returned no pool")
            return ()
        if all(isinstance(form, Form) for form in pool):
            return pool

        coerced: List[Form] = []
        for entry in pool:
            if isinstance(entry, Form):
                coerced.append(entry)
                continue
            try:
                coerced.append(self.materializer.coerce(entry))
            except (TypeError, ValueError, ValidationError) as e:
                logger.warning(f"Skipping malformed pool entry {entry!r}: {e}")
        return tuple(coerced)

    def _load_mastery(self) -> Dict[str, float]:
        if self.mastery_source is None:
            return {}
        try:
            return mastery_map(self.mastery_source.get_mastery())
        except Exception as e:
            logger.error(f"Mastery source failed, planning without mastery: {e}")
            return {}

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def _pick(
        self,
        candidates: Sequence[Form],
        settings: SettingsModel,
        now: datetime,
        history: Optional[History],
        weights: Mapping[Combo, float],
    ) -> Optional[Form]:
        picked = self.variety.select(candidates, settings, self.memory, now, history, weights)
        return picked.form if picked else None

    def _due_tier(
        self,
        candidates: Sequence[Form],
        settings: SettingsModel,
        now: datetime,
        history: Optional[History],
        weights: Mapping[Combo, float],
        mastery: Mapping[str, float],
    ) -> Optional[Form]:
        if self.due_source is None:
            return None
        try:
            due_items = self.due_source.get_due_items(now)
        except Exception as e:
            logger.error(f"Due-item source failed: {e}")
            return None

        allowed = target_combos(settings)
        for item in sorted(due_items, key=lambda d: d.next_due):
            if allowed is not None and (item.mood, item.tense) not in allowed:
                continue
            # Specific practice keeps the tense fixed but lets the person vary.
            matches = [
                f
                for f in candidates
                if f.mood == item.mood
                and f.tense == item.tense
                and (settings.is_specific or f.person == item.person)
            ]
            if item.lemma:
                matches = [f for f in matches if f.lemma == item.lemma] or matches
            if matches:
                logger.debug(f"Due tier matched {item.mood}/{item.tense}/{item.person}")
                return self._pick(matches, settings, now, history, weights)
        return None

    def _adaptive_tier(
        self,
        candidates: Sequence[Form],
        settings: SettingsModel,
        now: datetime,
        history: Optional[History],
        weights: Mapping[Combo, float],
        mastery: Mapping[str, float],
    ) -> Optional[Form]:
        if self.adaptive_source is None:
            return None
        if self.rng.random() >= self.config.adaptive_probability:
            return None
        try:
            recommendation = self.adaptive_source.recommend(settings, mastery)
        except Exception as e:
            logger.error(f"Adaptive source failed: {e}")
            return None
        if recommendation is None:
            return None

        allowed = target_combos(settings)
        combo = (recommendation.mood, recommendation.tense)
        if allowed is not None and combo not in allowed:
            logger.debug(f"Discarding recommendation {combo} outside the practice target")
            return None

        matches = [f for f in candidates if f.combo == combo]
        if recommendation.verb_id:
            matches = [f for f in matches if f.lemma == recommendation.verb_id] or matches
        if not matches:
            return None
        logger.debug(f"Adaptive tier using {combo} ({recommendation.reason})")
        return self._pick(matches, settings, now, history, weights)

    def _variety_tier(
        self,
        candidates: Sequence[Form],
        settings: SettingsModel,
        now: datetime,
        history: Optional[History],
        weights: Mapping[Combo, float],
        mastery: Mapping[str, float],
    ) -> Optional[Form]:
        return self._pick(candidates, settings, now, history, weights)

    def _double_tier(
        self,
        pool: Sequence[Form],
        settings: SettingsModel,
        previous: Optional[Form],
        previous_second: Optional[Form],
        weights: Mapping[Combo, float],
    ) -> Optional[SelectionResult]:
        pair = self.double_mode.pair(pool, settings, previous, previous_second, weights)
        if pair is None:
            return None
        first, second = pair
        return SelectionResult(
            chosen=self.materializer.materialize(first, settings),
            second=self.materializer.materialize(second, settings),
            selection_method="double_mode",
        )

    def _fallback_tier(
        self,
        pool: Sequence[Form],
        settings: SettingsModel,
        previous: Optional[Form],
        now: datetime,
        history: Optional[History],
        weights: Mapping[Combo, float],
    ) -> SelectionResult:
        try:
            candidates, step = self.fallback.run(pool, settings, previous)
        except ExhaustedFallbacksError as e:
            logger.error(f"{e} Returning sentinel item.")
            return SelectionResult(
                chosen=self.materializer.sentinel_item(settings),
                selection_method="sentinel",
                is_fallback=True,
                is_error=True,
                error=str(e),
            )

        form = self._pick(candidates, settings, now, history, weights) or candidates[0]
        return SelectionResult(
            chosen=self.materializer.materialize(form, settings, is_fallback=True),
            selection_method=f"fallback:{step}",
            is_fallback=True,
        )
