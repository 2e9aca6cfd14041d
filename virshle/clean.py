"""Document sanitation: empty field removal and path shorthand resolution."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from virshle.constants import RELATIVE_MARKERS
from virshle.exceptions import PathResolutionError
from virshle.utils import home_directory


def is_empty(value: Any) -> bool:
    """Absent-equivalent values. ``False`` and zero are real values and stay."""
    if value is None:
        return True
    if isinstance(value, (str, dict, list)):
        return len(value) == 0
    return False


def remove_empty(doc: Any) -> Any:
    """Return a copy of ``doc`` without empty values, at any depth.

    Children are cleaned before their parent is inspected, so a table that
    only held empty fields disappears with them.
    """
    if isinstance(doc, dict):
        cleaned = {}
        for key, value in doc.items():
            value = remove_empty(value)
            if not is_empty(value):
                cleaned[key] = value
        return cleaned
    if isinstance(doc, list):
        return [item for item in (remove_empty(item) for item in doc) if not is_empty(item)]
    return doc


def resolve_path(value: str, home: Optional[str] = None) -> str:
    resolved = value
    if "~" in resolved:
        resolved = resolved.replace("~", home or home_directory(), 1)
    if any(marker in resolved for marker in RELATIVE_MARKERS):
        try:
            resolved = str(Path(resolved).resolve(strict=True))
        except OSError as exc:
            raise PathResolutionError(value) from exc
    return resolved


def resolve_paths(doc: Any, home: Optional[str] = None) -> Any:
    """Expand ``~`` and resolve ``./`` / ``../`` in every string leaf."""
    if isinstance(doc, dict):
        return {key: resolve_paths(value, home) for key, value in doc.items()}
    if isinstance(doc, list):
        return [resolve_paths(item, home) for item in doc]
    if isinstance(doc, str):
        return resolve_path(doc, home)
    return doc


def sanitize(doc: Any, home: Optional[str] = None) -> Any:
    return resolve_paths(remove_empty(doc), home)
