"""
Glossary file loading for llm-translate.

A glossary file is YAML (or JSON, which YAML also parses) in one of three
shapes:

    terms:                      # mapping with a ``terms`` list
      - source: API
        target: API
        note: keep as-is

    - term: cache               # bare list of entries
      translation: кэш

    machine learning: apprentissage automatique   # flat source -> target map
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Tuple, Union

import yaml

from llmtrans.core.exceptions import GlossaryError
from llmtrans.core.models import GlossaryEntry
from llmtrans.utils.config_loader import glossary_entry_from_dict

logger = logging.getLogger(__name__)


def parse_glossary(data: Any, source: str = "<memory>") -> List[GlossaryEntry]:
    """Turn parsed YAML/JSON data into glossary entries, dropping unusable ones."""
    if data is None:
        return []

    if isinstance(data, dict) and "terms" in data:
        data = data["terms"] or []

    if isinstance(data, dict):
        raw = [{"source": key, "target": value} for key, value in data.items()]
    elif isinstance(data, list):
        raw = data
    else:
        raise GlossaryError(source, f"expected a list or mapping, got {type(data).__name__}")

    entries = []
    for item in raw:
        if not isinstance(item, dict):
            raise GlossaryError(source, f"glossary entry must be a mapping: {item!r}")
        entry = glossary_entry_from_dict(item)
        if entry.is_usable():
            entries.append(entry)
        else:
            logger.debug(f"Skipping incomplete glossary entry: {item!r}")
    return entries


def load_glossary(path: Union[str, Path]) -> List[GlossaryEntry]:
    """
    Load glossary entries from a YAML or JSON file.

    Raises:
        GlossaryError: file missing, unreadable or malformed
    """
    path = Path(path)
    if not path.exists():
        raise GlossaryError(str(path), "file not found")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise GlossaryError(str(path), str(e)) from e

    entries = parse_glossary(data, str(path))
    logger.info(f"Loaded {len(entries)} glossary terms from {path}")
    return entries


def merge_glossaries(*glossaries: Iterable[GlossaryEntry]) -> Tuple[GlossaryEntry, ...]:
    """
    Combine glossaries; a later entry replaces the earlier entries it covers.

    A case-insensitive entry covers every earlier entry whose source matches
    it ignoring case, whatever that entry's own flag. A case-sensitive entry
    covers only earlier entries with exactly the same source, so ``Go``
    (case-sensitive) after ``go`` keeps both. The replacement takes the
    position of the first entry it covers.
    """
    merged: List[GlossaryEntry] = []
    for glossary in glossaries:
        for entry in glossary:
            kept = []
            placed = False
            for existing in merged:
                if not _covers(entry, existing):
                    kept.append(existing)
                elif not placed:
                    kept.append(entry)
                    placed = True
            if not placed:
                kept.append(entry)
            merged = kept
    return tuple(merged)


def _covers(entry: GlossaryEntry, existing: GlossaryEntry) -> bool:
    if entry.case_sensitive:
        return entry.source == existing.source
    return entry.source.lower() == existing.source.lower()
