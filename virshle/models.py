"""Data models for virshle."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple, Optional

from virshle.constants import DEFAULT_EDITOR, DEFAULT_VALIDATOR, DEFAULT_VIRSH, WORK_DIR


class SerializationFormat(Enum):
    JSON = "json"
    YAML = "yaml"
    XML = "xml"
    TOML = "toml"
    UNKNOWN = "txt"

    @property
    def extension(self) -> str:
        return self.value


class DecodeAttempt(NamedTuple):
    """Outcome of decoding a text under one format."""

    format: SerializationFormat
    document: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CommandResult(NamedTuple):
    success: bool
    stdout: str = ""
    stderr: str = ""


@dataclass
class Settings:
    verbosity: int = 0
    work_dir: Path = WORK_DIR
    editor: str = DEFAULT_EDITOR
    virsh: str = DEFAULT_VIRSH
    validator: str = DEFAULT_VALIDATOR
    libvirt_uri: Optional[str] = None
