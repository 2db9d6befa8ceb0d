"""
Interfaces of the external collaborators the selector reads from, plus
in-memory implementations used by the CLI and the tests.

The selector never writes to any of these.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .curriculum import CurriculumGraph
from .models import DueItem, Form, MasteryRecord, Recommendation, SettingsModel, Verb

logger = logging.getLogger(__name__)


class ContentSource(ABC):
    """Provides the form pool and verb metadata."""

    @abstractmethod
    def get_forms(self) -> Sequence[Form]:
        """Return the full form pool."""
        pass

    @abstractmethod
    def get_verbs(self) -> Mapping[str, Verb]:
        """Return verb metadata keyed by lemma."""
        pass

    def scan(self, mood: str, tense: Optional[str] = None) -> List[Form]:
        """
        Direct scan for forms of a mood (and tense), bypassing every filter.
        Used by the fallback cascade.
        """
        return [
            form
            for form in self.get_forms()
            if form.mood == mood and (tense is None or form.tense == tense)
        ]


class DueSource(ABC):
    """Spaced-repetition service reporting items due for review."""

    @abstractmethod
    def get_due_items(self, now: datetime) -> List[DueItem]:
        pass


class AdaptiveSource(ABC):
    """Recommendation service proposing the next (mood, tense) to practise."""

    @abstractmethod
    def recommend(
        self, settings: SettingsModel, mastery: Mapping[str, float]
    ) -> Optional[Recommendation]:
        pass


class MasterySource(ABC):
    """Progress store returning mastery scores."""

    @abstractmethod
    def get_mastery(self) -> List[MasteryRecord]:
        pass


class InMemoryContentSource(ContentSource):
    def __init__(self, forms: Iterable[Form], verbs: Optional[Iterable[Verb]] = None):
        self._forms: Tuple[Form, ...] = tuple(forms)
        self._verbs: Dict[str, Verb] = {verb.lemma: verb for verb in verbs or ()}

    def get_forms(self) -> Sequence[Form]:
        return self._forms

    def get_verbs(self) -> Mapping[str, Verb]:
        return self._verbs


class StaticDueSource(DueSource):
    """Reports the given items once their `next_due` has passed."""

    def __init__(self, items: Iterable[DueItem]):
        self.items: List[DueItem] = list(items)

    def get_due_items(self, now: datetime) -> List[DueItem]:
        return [item for item in self.items if item.next_due <= now]


class StaticMasterySource(MasterySource):
    def __init__(self, records: Iterable[MasteryRecord]):
        self.records: List[MasteryRecord] = list(records)

    def get_mastery(self) -> List[MasteryRecord]:
        return list(self.records)


class CurriculumRecommender(AdaptiveSource):
    """Adaptive source backed by the curriculum's next recommended tense."""

    def __init__(self, curriculum: CurriculumGraph):
        self.curriculum = curriculum

    def recommend(
        self, settings: SettingsModel, mastery: Mapping[str, float]
    ) -> Optional[Recommendation]:
        recommended = self.curriculum.next_recommended(
            settings.level, mastery, settings.enable_futuro_subj
        )
        if recommended is None:
            return None
        return Recommendation(
            mood=recommended.mood,
            tense=recommended.tense,
            reason=f"{recommended.category}:{recommended.reason}",
        )
