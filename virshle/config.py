"""Environment variable parsing for virshle."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from virshle.constants import (
    DEFAULT_EDITOR,
    DEFAULT_VALIDATOR,
    DEFAULT_VIRSH,
    MAX_VERBOSITY,
    WORK_DIR,
)
from virshle.models import Settings
from virshle.utils import get_env, parse_int_env


def _non_empty(name: str, default: Optional[str] = None) -> Optional[str]:
    value = get_env(name)
    if value is not None:
        value = value.strip()
    return value or default


def parse_env(verbosity: Optional[int] = None) -> Settings:
    """Build the process settings.

    ``verbosity`` comes from the command line and wins over
    ``VIRSHLE_VERBOSITY``; both are clamped to ``MAX_VERBOSITY``.
    """
    level = parse_int_env("VIRSHLE_VERBOSITY", "0", min_val=0)
    if verbosity:
        level = verbosity
    level = min(level, MAX_VERBOSITY)

    work_dir_raw = _non_empty("VIRSHLE_WORK_DIR")
    work_dir = Path(work_dir_raw) if work_dir_raw else WORK_DIR

    return Settings(
        verbosity=level,
        work_dir=work_dir,
        editor=_non_empty("EDITOR", DEFAULT_EDITOR),
        virsh=_non_empty("VIRSH", DEFAULT_VIRSH),
        validator=_non_empty("VIRT_XML_VALIDATE", DEFAULT_VALIDATOR),
        libvirt_uri=_non_empty("LIBVIRT_URI"),
    )
