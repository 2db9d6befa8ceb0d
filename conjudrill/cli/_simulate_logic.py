import random
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from conjudrill.parser import LoadedProgress, load_content, load_progress
from conjudrill.selector import MultiTierSelector, SelectionResult
from conjudrill.sources import (
    CurriculumRecommender,
    InMemoryContentSource,
    StaticDueSource,
    StaticMasterySource,
)

SIMULATION_START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
SECONDS_PER_ITEM = 20


@dataclass
class SimulationReport:
    results: List[SelectionResult] = field(default_factory=list)
    method_counts: Counter = field(default_factory=Counter)
    irregular_fraction: Optional[float] = None


class _SteppingClock:
    """Clock that advances a fixed step every time it is read."""

    def __init__(self, start: datetime, step_seconds: int):
        self.now = start
        self.step = timedelta(seconds=step_seconds)

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


def build_selector(
    content_path: Path,
    progress_path: Optional[Path] = None,
    seed: Optional[int] = None,
    clock: Optional[Any] = None,
) -> MultiTierSelector:
    """
    Build a selector over a content file, optionally wired to a progress file.

    Parameters:
        content_path (Path): Content YAML file.
        progress_path (Optional[Path]): Progress YAML file providing mastery
            scores and due items.
        seed (Optional[int]): Seed for the selector's random source.
        clock: Time source passed to the selector.
    """
    content = load_content(content_path, fail_fast=True)
    progress = load_progress(progress_path) if progress_path else LoadedProgress()
    source = InMemoryContentSource(content.forms, content.verbs)
    selector = MultiTierSelector(
        content_source=source,
        due_source=StaticDueSource(progress.due) if progress.due else None,
        mastery_source=StaticMasterySource(progress.mastery),
        rng=random.Random(seed),
        clock=clock,
    )
    selector.adaptive_source = CurriculumRecommender(selector.curriculum)
    return selector


def simulate_logic(
    content_path: Path,
    settings: Dict[str, Any],
    count: int,
    seed: Optional[int] = None,
    progress_path: Optional[Path] = None,
) -> SimulationReport:
    """
    Run a seeded practice session and record every presented result.

    The simulated clock advances SECONDS_PER_ITEM on every read, so recency
    windows expire as they would in a real session.
    """
    clock = _SteppingClock(SIMULATION_START, SECONDS_PER_ITEM)
    selector = build_selector(content_path, progress_path, seed=seed, clock=clock)

    report = SimulationReport()
    previous: Optional[SelectionResult] = None
    for _ in range(count):
        result = selector.select_next(settings, previous=previous)
        selector.record(result)
        report.results.append(result)
        report.method_counts[result.selection_method] += 1
        previous = result

    report.irregular_fraction = selector.memory.irregular_fraction()
    return report
