"""Conjudrill - practice-item scheduler for Spanish conjugation drills."""

from .models import (
    Form,
    Verb,
    MixedSettings,
    SpecificSettings,
    ReviewSettings,
    PracticeItem,
    parse_settings,
)
from .curriculum import CurriculumGraph
from .selector import MultiTierSelector, SelectionResult, SelectorConfig
from .variety import VarietyConfig
from .parser import load_content, load_progress

__all__ = [
    "Form",
    "Verb",
    "MixedSettings",
    "SpecificSettings",
    "ReviewSettings",
    "PracticeItem",
    "parse_settings",
    "CurriculumGraph",
    "MultiTierSelector",
    "SelectionResult",
    "SelectorConfig",
    "VarietyConfig",
    "load_content",
    "load_progress",
]
