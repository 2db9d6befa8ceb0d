"""
Session-scoped recency and frequency state used to drive variety.

SessionMemory is owned by a single selector and lives for one practice
session. It is only written through `record`, which the selector calls for
items actually presented to the learner.
"""

import logging
from collections import OrderedDict, deque
from datetime import datetime
from typing import Deque, Dict, Optional, Tuple

from .constants import (
    CATEGORY_MEMORY_SIZE,
    COMBO_WINDOW_SECONDS,
    PERSON_MEMORY_SIZE,
    TENSE_MEMORY_SIZE,
    TYPE_RING_SIZE,
    VERB_MEMORY_SIZE,
    VERB_RECENCY_WINDOW_SECONDS,
)
from .models import Form

logger = logging.getLogger(__name__)


class SessionMemory:
    """
    Bounded sliding state of the current practice session.

    - recent_verbs: lemma -> last time it was presented
    - recent_combos: (lemma, person) -> last time the pair was presented
    - recent_families / recent_persons / recent_categories: count windows
    - type_ring: last N regular(False)/irregular(True) labels
    """

    def __init__(
        self,
        tense_window: int = TENSE_MEMORY_SIZE,
        person_window: int = PERSON_MEMORY_SIZE,
        category_window: int = CATEGORY_MEMORY_SIZE,
        type_ring_size: int = TYPE_RING_SIZE,
        max_tracked_verbs: int = VERB_MEMORY_SIZE,
        verb_window_seconds: float = VERB_RECENCY_WINDOW_SECONDS,
        combo_window_seconds: float = COMBO_WINDOW_SECONDS,
    ):
        self.tense_window = tense_window
        self.person_window = person_window
        self.category_window = category_window
        self.type_ring_size = type_ring_size
        self.max_tracked_verbs = max_tracked_verbs
        self.verb_window_seconds = verb_window_seconds
        self.combo_window_seconds = combo_window_seconds
        self.reset()

    def reset(self) -> None:
        self.recent_verbs: "OrderedDict[str, datetime]" = OrderedDict()
        self.recent_combos: "OrderedDict[Tuple[str, str], datetime]" = OrderedDict()
        self.recent_families: Deque[str] = deque(maxlen=self.tense_window)
        self.recent_persons: Deque[str] = deque(maxlen=self.person_window)
        self.recent_categories: Deque[str] = deque(maxlen=self.category_window)
        self.type_ring: Deque[bool] = deque(maxlen=self.type_ring_size)
        self.selection_count = 0
        self.last_family: Optional[str] = None

    def record(
        self,
        form: Form,
        family: str,
        category: str,
        is_irregular: bool,
        now: datetime,
    ) -> None:
        """Stamp a presented form into every recency structure."""
        self.prune(now)

        self.recent_verbs.pop(form.lemma, None)
        self.recent_verbs[form.lemma] = now
        combo = (form.lemma, form.person)
        self.recent_combos.pop(combo, None)
        self.recent_combos[combo] = now
        while len(self.recent_verbs) > self.max_tracked_verbs:
            self.recent_verbs.popitem(last=False)
        while len(self.recent_combos) > self.max_tracked_verbs:
            self.recent_combos.popitem(last=False)

        self.recent_families.append(family)
        self.recent_persons.append(form.person)
        self.recent_categories.append(category)
        self.type_ring.append(is_irregular)
        self.selection_count += 1
        self.last_family = family

    def prune(self, now: datetime) -> None:
        """Forget verb and combo stamps older than their decay windows."""
        for lemma in [
            lemma
            for lemma, stamp in self.recent_verbs.items()
            if (now - stamp).total_seconds() > self.verb_window_seconds
        ]:
            del self.recent_verbs[lemma]
        for combo in [
            combo
            for combo, stamp in self.recent_combos.items()
            if (now - stamp).total_seconds() > self.combo_window_seconds
        ]:
            del self.recent_combos[combo]

    def seconds_since_verb(self, lemma: str, now: datetime) -> Optional[float]:
        stamp = self.recent_verbs.get(lemma)
        if stamp is None:
            return None
        return max(0.0, (now - stamp).total_seconds())

    def seconds_since_combo(self, lemma: str, person: str, now: datetime) -> Optional[float]:
        stamp = self.recent_combos.get((lemma, person))
        if stamp is None:
            return None
        return max(0.0, (now - stamp).total_seconds())

    def family_count(self, family: str) -> int:
        return self.recent_families.count(family)

    def person_count(self, person: str) -> int:
        return self.recent_persons.count(person)

    def category_count(self, category: str) -> int:
        return self.recent_categories.count(category)

    def irregular_fraction(self) -> Optional[float]:
        if not self.type_ring:
            return None
        return sum(self.type_ring) / len(self.type_ring)

    def snapshot(self) -> Dict[str, object]:
        fraction = self.irregular_fraction()
        return {
            "selections": self.selection_count,
            "tracked_verbs": len(self.recent_verbs),
            "tracked_combos": len(self.recent_combos),
            "recent_families": list(self.recent_families),
            "recent_persons": list(self.recent_persons),
            "irregular_fraction": None if fraction is None else round(fraction, 3),
        }
