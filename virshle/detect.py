"""Serialization format detection for virshle."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from virshle.codec import decode
from virshle.constants import EXTENSIONS, SNIFF_ORDER
from virshle.exceptions import DecodeError, FormatDetectionError
from virshle.models import DecodeAttempt, SerializationFormat


def format_from_path(path: Union[str, Path]) -> SerializationFormat:
    """Map a filename extension to its format."""
    suffix = Path(path).suffix.lower()
    if suffix not in EXTENSIONS:
        raise FormatDetectionError(f"Could not determine the input format of {path}")
    return SerializationFormat(EXTENSIONS[suffix])


def try_decode(raw: str, fmt: SerializationFormat) -> DecodeAttempt:
    """Decode ``raw`` as ``fmt``, carrying the failure instead of raising it."""
    try:
        return DecodeAttempt(fmt, document=decode(raw, fmt))
    except DecodeError as exc:
        return DecodeAttempt(fmt, error=exc)


def sniff(raw: str) -> DecodeAttempt:
    """Find the first format, in ``SNIFF_ORDER``, able to decode ``raw``."""
    attempts: List[DecodeAttempt] = []
    for name in SNIFF_ORDER:
        attempt = try_decode(raw, SerializationFormat(name))
        if attempt.ok:
            return attempt
        attempts.append(attempt)
    reasons = "; ".join(f"{a.format.value}: {a.error}" for a in attempts)
    raise FormatDetectionError(f"Unrecognized input format ({reasons})")


def detect(
    raw: str,
    path: Optional[Union[str, Path]] = None,
    hint: SerializationFormat = SerializationFormat.UNKNOWN,
) -> SerializationFormat:
    """Pick the format of a document.

    An explicit ``hint`` wins, then the extension of ``path``, and only when
    neither is available is the content itself sniffed.
    """
    if hint is not SerializationFormat.UNKNOWN:
        return hint
    if path is not None:
        return format_from_path(path)
    return sniff(raw).format
