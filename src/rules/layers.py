"""Area classification for source files."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from utils import matches_any

if TYPE_CHECKING:
    from rules.config import LayoutConfig

Area = Literal["test", "migration", "schema", "config", "constants", "errors"]


def _area_globs(layout: LayoutConfig) -> list[tuple[Area, list[str]]]:
    # Order matters: first match wins.
    return [
        ("test", layout.test_globs),
        ("migration", layout.migration_globs),
        ("schema", layout.schema_globs),
        ("config", layout.config_globs),
        ("constants", layout.constants_globs),
        ("errors", layout.errors_globs),
    ]


def classify_area(path: str, layout: LayoutConfig) -> Area | None:
    """Classify a source-root-relative path into a designated area.

    Uses first-match-wins semantics over the configured globs; files in no
    designated area (module code, api, bootstrap) return None.
    """
    for area, globs in _area_globs(layout):
        if matches_any(path, globs):
            return area
    return None


__all__ = ["Area", "classify_area"]
