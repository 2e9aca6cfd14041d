"""Ephemeral structured files and their on-disk lifecycle."""

from __future__ import annotations

import copy
import uuid
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from virshle.clean import sanitize
from virshle.codec import decode, encode
from virshle.constants import EXTENSIONS, WORK_DIR
from virshle.detect import detect, sniff
from virshle.exceptions import DecodeError, VirshleError
from virshle.models import SerializationFormat
from virshle.utils import Logger, ensure_directory

PathLike = Union[str, Path]


def temp_path(fmt: SerializationFormat, work_dir: Optional[Path] = None) -> Path:
    """Allocate a fresh, unique file name inside the work directory."""
    return (work_dir or WORK_DIR) / f"{uuid.uuid4().hex}.{fmt.extension}"


def load_document(
    raw: str,
    path: Optional[PathLike] = None,
    hint: SerializationFormat = SerializationFormat.UNKNOWN,
    home: Optional[str] = None,
) -> Tuple[SerializationFormat, Any]:
    """Run the read pipeline: detect, decode, then sanitize."""
    if hint is SerializationFormat.UNKNOWN and path is None:
        attempt = sniff(raw)
        fmt, data = attempt.format, attempt.document
    else:
        fmt = detect(raw, path=path, hint=hint)
        data = decode(raw, fmt)
    return fmt, sanitize(data, home=home)


class EphemeralFile:
    """A structured document, optionally backed by a file on disk.

    Instances returned by ``convert`` own their temp file and work as context
    managers; leaving the ``with`` block removes that file. Files supplied by
    the caller are never deleted::

        with EphemeralFile(path="vm.toml").read().convert(SerializationFormat.XML) as xml:
            run(["virsh", "define", str(xml.path)])
    """

    def __init__(
        self,
        path: Optional[PathLike] = None,
        raw: Optional[str] = None,
        format: SerializationFormat = SerializationFormat.UNKNOWN,
    ) -> None:
        if path is None and raw is None:
            raise VirshleError("An ephemeral file needs a path or raw content")
        self.path: Optional[Path] = Path(path) if path is not None else None
        self.raw = raw
        self.format = format
        self.data: Any = None
        self._read = False
        self._owned = False

    def __repr__(self) -> str:
        return f"EphemeralFile(path={self.path!s}, format={self.format.value})"

    def __enter__(self) -> "EphemeralFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.remove()

    @property
    def is_read(self) -> bool:
        return self._read

    def read(self, home: Optional[str] = None) -> "EphemeralFile":
        raw = self.raw
        if raw is None:
            assert self.path is not None
            raw = self._read_text()
        fmt, data = load_document(raw, path=self.path, hint=self.format, home=home)
        self.raw, self.format, self.data = raw, fmt, data
        self._read = True
        return self

    def _read_text(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            if self.format is not SerializationFormat.UNKNOWN:
                name = self.format.value
            else:
                name = EXTENSIONS.get(self.path.suffix.lower())
            raise DecodeError(f"{self.path} is not valid UTF-8: {exc}", name) from exc

    def convert(
        self,
        fmt: SerializationFormat,
        work_dir: Optional[Path] = None,
        logger: Optional[Logger] = None,
    ) -> "EphemeralFile":
        """Write ``data`` as ``fmt`` to a new temp file and return it.

        The source instance is left untouched and every call allocates its
        own path.
        """
        if not self._read:
            raise VirshleError("EphemeralFile.read() must run before convert()")
        text = encode(self.data, fmt)

        result = EphemeralFile(path=temp_path(fmt, work_dir), raw=text, format=fmt)
        result.data = copy.deepcopy(self.data)
        result._read = True
        result._owned = True
        result.write()

        if logger is not None:
            logger.block("INFO", f"input:{self.format.value}", self.raw or "")
            logger.block("DEBUG", f"output:{fmt.value}", text)
        return result

    def write(self) -> None:
        if self.path is None or self.raw is None:
            raise VirshleError("Nothing to write: path and raw content are both required")
        ensure_directory(self.path.parent)
        self.path.write_text(self.raw, encoding="utf-8")

    def remove(self) -> None:
        """Delete the backing file if this instance allocated it."""
        if self._owned and self.path is not None:
            self.path.unlink(missing_ok=True)


def any_to_toml(
    raw: str,
    work_dir: Optional[Path] = None,
    logger: Optional[Logger] = None,
) -> EphemeralFile:
    """Sniff ``raw`` (typically XML from virsh) and convert it to TOML."""
    return EphemeralFile(raw=raw).read().convert(SerializationFormat.TOML, work_dir, logger)


def any_to_xml(
    path: PathLike,
    work_dir: Optional[Path] = None,
    logger: Optional[Logger] = None,
) -> EphemeralFile:
    """Load a user-authored file and convert it to XML for virsh."""
    return EphemeralFile(path=path).read().convert(SerializationFormat.XML, work_dir, logger)
