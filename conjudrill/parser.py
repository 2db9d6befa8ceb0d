import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from .exceptions import ContentLoadingError
from .materializer import normalize_form_payload
from .models import DueItem, Form, MasteryRecord, Verb
from .yaml_models import (
    _RawYAMLContentFile,
    _RawYAMLFormEntry,
    _RawYAMLProgressFile,
    _RawYAMLVerbEntry,
)

logger = logging.getLogger(__name__)


@dataclass
class LoadedContent:
    forms: List[Form] = field(default_factory=list)
    verbs: List[Verb] = field(default_factory=list)
    errors: List[ContentLoadingError] = field(default_factory=list)


@dataclass
class LoadedProgress:
    mastery: List[MasteryRecord] = field(default_factory=list)
    due: List[DueItem] = field(default_factory=list)


def _validation_message(e: ValidationError) -> str:
    error_details = e.errors()[0]
    field_path = ".".join(map(str, error_details["loc"]))
    return f"Validation error in field '{field_path}': {error_details['msg']}"


def _read_yaml_mapping(file_path: Path) -> Dict[str, Any]:
    """
    Read a YAML file whose top level must be a mapping.

    Raises:
        ContentLoadingError: If the file is missing, unreadable, not valid YAML,
            or its top level is not a dictionary.
    """
    try:
        content = file_path.read_text(encoding="utf-8")
        raw_yaml_content = yaml.safe_load(content)
    except FileNotFoundError:
        raise ContentLoadingError(file_path, "File not found.") from None
    except IOError as e:
        raise ContentLoadingError(file_path, f"Could not read file: {e}") from e
    except yaml.YAMLError as e:
        raise ContentLoadingError(file_path, f"Invalid YAML syntax: {e}") from e

    if not isinstance(raw_yaml_content, dict):
        raise ContentLoadingError(file_path, "Top level of YAML must be a dictionary.")
    return raw_yaml_content


def _build_forms(entry: _RawYAMLVerbEntry) -> List[Form]:
    forms: List[Form] = []
    for paradigm in entry.paradigms:
        for person, raw_value in paradigm.forms.items():
            payload: Dict[str, Any] = {
                "lemma": entry.lemma,
                "mood": paradigm.mood,
                "tense": paradigm.tense,
                "person": str(person),
            }
            if isinstance(raw_value, dict):
                payload.update(raw_value)
            else:
                payload["value"] = raw_value
            raw_form = _RawYAMLFormEntry.model_validate(payload)
            forms.append(Form(**normalize_form_payload(raw_form.model_dump(exclude_none=True))))
    return forms


def _process_verb_entry(
    raw_entry: Any, idx: int, file_path: Path
) -> Union[LoadedContent, ContentLoadingError]:
    if not isinstance(raw_entry, dict):
        return ContentLoadingError(
            file_path, f"Verb entry at index {idx} is not a dictionary.", entry_index=idx
        )
    lemma = raw_entry.get("lemma")
    try:
        entry = _RawYAMLVerbEntry.model_validate(raw_entry)
        verb = Verb(**entry.model_dump(exclude={"paradigms"}))
        forms = _build_forms(entry)
    except ValidationError as e:
        error_details = e.errors()[0]
        return ContentLoadingError(
            file_path,
            _validation_message(e),
            entry_index=idx,
            lemma=lemma if isinstance(lemma, str) else None,
            field_name=".".join(map(str, error_details["loc"])),
        )
    seen_paradigms = set()
    for p_idx, paradigm in enumerate(entry.paradigms):
        combo = (paradigm.mood, paradigm.tense)
        if combo in seen_paradigms:
            return ContentLoadingError(
                file_path,
                f"Duplicate paradigm {paradigm.mood}/{paradigm.tense}.",
                entry_index=idx,
                lemma=entry.lemma,
                field_name=f"paradigms.{p_idx}",
            )
        seen_paradigms.add(combo)
    return LoadedContent(forms=forms, verbs=[verb])


def load_content(file_path: Path, fail_fast: bool = False) -> LoadedContent:
    """
    Load verbs and their conjugated forms from a content YAML file.

    Parameters:
        file_path (Path): Content file with a top-level `verbs` list. Each verb
            carries its metadata and a list of `paradigms` (mood, tense, forms).
        fail_fast (bool): Raise on the first invalid verb entry instead of
            collecting the error.

    Returns:
        LoadedContent: Forms and verbs from every valid entry, plus one
        ContentLoadingError per invalid entry.

    Raises:
        ContentLoadingError: For file-level problems, or the first entry error
            when `fail_fast` is set.
    """
    raw_yaml_content = _read_yaml_mapping(file_path)
    try:
        content_file = _RawYAMLContentFile.model_validate(raw_yaml_content)
    except ValidationError as e:
        raise ContentLoadingError(file_path, _validation_message(e)) from e

    loaded = LoadedContent()
    seen_lemmas = set()
    for idx, raw_entry in enumerate(content_file.verbs):
        result = _process_verb_entry(raw_entry, idx, file_path)
        if isinstance(result, ContentLoadingError):
            if fail_fast:
                raise result
            loaded.errors.append(result)
            continue
        lemma = result.verbs[0].lemma
        if lemma in seen_lemmas:
            error = ContentLoadingError(
                file_path, "Duplicate verb entry.", entry_index=idx, lemma=lemma
            )
            if fail_fast:
                raise error
            loaded.errors.append(error)
            continue
        seen_lemmas.add(lemma)
        loaded.verbs.extend(result.verbs)
        loaded.forms.extend(result.forms)

    logger.info(
        f"Loaded {len(loaded.verbs)} verbs and {len(loaded.forms)} forms from "
        f"{file_path.name} ({len(loaded.errors)} errors)"
    )
    return loaded


def load_progress(file_path: Path) -> LoadedProgress:
    """
    Load mastery scores and due items from a progress YAML file.

    Raises:
        ContentLoadingError: If the file cannot be read or fails validation.
    """
    raw_yaml_content = _read_yaml_mapping(file_path)
    try:
        progress = _RawYAMLProgressFile.model_validate(raw_yaml_content)
    except ValidationError as e:
        raise ContentLoadingError(file_path, _validation_message(e)) from e
    logger.info(
        f"Loaded {len(progress.mastery)} mastery records and {len(progress.due)} "
        f"due items from {file_path.name}"
    )
    return LoadedProgress(mastery=list(progress.mastery), due=list(progress.due))
