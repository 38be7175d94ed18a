from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

from .models import Language, ResourceLimits

DEFAULT_LIMITS = ResourceLimits(
    memory_mb=256,
    cpu_time_seconds=2,
    wall_time_seconds=3,
    max_output_bytes=64 * 1024,
    max_processes=1,  # no fork
    max_files=32,
)

LANGUAGE_LIMITS: Dict[Language, ResourceLimits] = {
    Language.PYTHON: DEFAULT_LIMITS,
    Language.CPP: DEFAULT_LIMITS,
    # JVM needs more time to start
    Language.JAVA: replace(DEFAULT_LIMITS, wall_time_seconds=4),
}


def resolve_limits(
    language: "Language | str | None",
    override: Optional[ResourceLimits] = None,
    table: Optional[Mapping[Language, ResourceLimits]] = None,
) -> ResourceLimits:
    """
    Caller profile wins verbatim; otherwise the per-language default,
    falling back to DEFAULT_LIMITS for anything unrecognized.
    """
    if override is not None:
        return override
    table = LANGUAGE_LIMITS if table is None else table
    try:
        lang = Language.parse(language) if language is not None else None
    except ValueError:
        lang = None
    if lang is None:
        return DEFAULT_LIMITS
    return table.get(lang, DEFAULT_LIMITS)


def merge_limit_table(overrides: Mapping[str, Mapping[str, Any]]) -> Dict[Language, ResourceLimits]:
    """Apply partial per-language overrides (from config) over LANGUAGE_LIMITS."""
    table = dict(LANGUAGE_LIMITS)
    for name, values in (overrides or {}).items():
        lang = Language.parse(name)
        base = table.get(lang, DEFAULT_LIMITS)
        table[lang] = ResourceLimits.from_mapping({**base.to_dict(), **values})
    return table
