from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class SchedulerError(Exception):
    """Base exception for practice-item selection errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DataUnavailableError(SchedulerError):
    """Raised when the form pool is empty, malformed or cannot be fetched."""

    pass


class NoEligibleFormsError(SchedulerError):
    """Raised when filtering removes every candidate form."""

    pass


class InvalidConfigurationError(SchedulerError):
    """Raised for settings or curriculum data that cannot be used as given."""

    pass


class ExhaustedFallbacksError(SchedulerError):
    """Raised when every relaxation and fallback step has failed."""

    pass


class SelectorBusyError(SchedulerError):
    """Indicates a selection was requested while another one is in flight."""

    pass


@dataclass
class ContentLoadingError(Exception):
    """Raised when a content or progress YAML file cannot be loaded."""

    file_path: Path
    message: str
    entry_index: Optional[int] = None
    lemma: Optional[str] = None
    field_name: Optional[str] = None

    def __str__(self) -> str:
        context_parts = [f"File: {self.file_path.name}"]
        if self.entry_index is not None:
            context_parts.append(f"Entry Index: {self.entry_index}")
        if self.lemma:
            context_parts.append(f"Lemma: '{self.lemma}'")
        if self.field_name:
            context_parts.append(f"Field: '{self.field_name}'")
        return f"{' | '.join(context_parts)} | Error: {self.message}"
