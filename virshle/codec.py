"""Decoding and encoding of structured documents for virshle.

Every supported format decodes into the same plain Python tree (dicts,
lists and scalars) and any such tree encodes back into every format.

XML is mapped onto that tree with the following conventions:

* attributes are keys prefixed with ``@``;
* element text sitting next to attributes or children lives under ``#text``;
* repeated sibling elements become a list;
* text and attribute values that look like booleans or numbers are coerced;
* namespace prefixes are kept verbatim (``qemu:commandline``) and their
  declarations show up as ``@xmlns:<prefix>`` attributes;
* an element with nothing in it (`<acpi/>`) decodes to `{"#empty": True}` so
  that sanitizing keeps it, and encodes back to a self-closed element;
* a mapping that is not a single root element is wrapped in ``<virshle>``,
  which decoding removes again.
"""

from __future__ import annotations

import json
import tomllib
from typing import Any, Dict, List, Tuple, Union
from xml.dom.minidom import parseString
from xml.etree import ElementTree
from xml.etree.ElementTree import Element, SubElement, tostring
from xml.parsers.expat import ExpatError

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

try:
    import tomli_w  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("tomli-w is required but not installed") from exc

from virshle.constants import (
    XML_ATTR_PREFIX,
    XML_EMPTY_KEY,
    XML_FLOAT_RE,
    XML_INT_RE,
    XML_NAME_RE,
    XML_TEXT_KEY,
    XML_WRAPPER_TAG,
)
from virshle.exceptions import DecodeError, EncodeError
from virshle.models import SerializationFormat

FormatLike = Union[SerializationFormat, str]

_XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


def _as_format(fmt: FormatLike, error: type) -> SerializationFormat:
    try:
        return SerializationFormat(fmt)
    except ValueError:
        raise error(f"Unsupported format '{fmt}'")


def is_document(value: Any) -> bool:
    return isinstance(value, (dict, list))


# -- decoding ---------------------------------------------------------------


def _decode_json(text: str) -> Any:
    return json.loads(text)


def _decode_toml(text: str) -> Any:
    return tomllib.loads(text)


def _decode_yaml(text: str) -> Any:
    return yaml.safe_load(text)


def _coerce(text: str) -> Any:
    if text == "true":
        return True
    if text == "false":
        return False
    if XML_INT_RE.fullmatch(text):
        return int(text)
    if XML_FLOAT_RE.fullmatch(text):
        return float(text)
    return text


def _qualify(name: str, prefixes: Dict[str, str]) -> str:
    """Turn ElementTree's ``{uri}local`` names back into ``prefix:local``."""
    if not name.startswith("{"):
        return name
    uri, local = name[1:].split("}", 1)
    prefix = prefixes.get(uri, "")
    return f"{prefix}:{local}" if prefix else local


def _element_to_value(
    element: Element,
    prefixes: Dict[str, str],
    declared: Dict[Element, List[Tuple[str, str]]],
) -> Any:
    node: Dict[str, Any] = {}
    for prefix, uri in declared.get(element, ()):
        name = f"xmlns:{prefix}" if prefix else "xmlns"
        node[XML_ATTR_PREFIX + name] = uri
    for name, value in element.attrib.items():
        node[XML_ATTR_PREFIX + _qualify(name, prefixes)] = _coerce(value)
    for child in element:
        if not isinstance(child.tag, str):
            continue
        tag = _qualify(child.tag, prefixes)
        value = _element_to_value(child, prefixes, declared)
        if tag not in node:
            node[tag] = value
        elif isinstance(node[tag], list):
            node[tag].append(value)
        else:
            node[tag] = [node[tag], value]

    text = (element.text or "").strip()
    if not node:
        return _coerce(text) if text else {XML_EMPTY_KEY: True}
    if text:
        node[XML_TEXT_KEY] = _coerce(text)
    return node


def _decode_xml(text: str) -> Any:
    parser = ElementTree.XMLPullParser(events=("start-ns", "start"))
    parser.feed(text)
    parser.close()

    prefixes = {_XML_NAMESPACE: "xml"}
    declared: Dict[Element, List[Tuple[str, str]]] = {}
    pending: List[Tuple[str, str]] = []
    root = None
    for event, item in parser.read_events():
        if event == "start-ns":
            prefix, uri = item
            prefixes.setdefault(uri, prefix)
            pending.append(item)
            continue
        if pending:
            declared[item] = pending
            pending = []
        if root is None:
            root = item

    tag = _qualify(root.tag, prefixes)
    value = _element_to_value(root, prefixes, declared)
    if tag == XML_WRAPPER_TAG and isinstance(value, dict):
        value.pop(XML_EMPTY_KEY, None)
        return value
    return {tag: value}


_DECODERS = {
    SerializationFormat.JSON: (_decode_json, (ValueError,)),
    SerializationFormat.TOML: (_decode_toml, (ValueError,)),
    SerializationFormat.YAML: (_decode_yaml, (yaml.YAMLError,)),
    SerializationFormat.XML: (_decode_xml, (ElementTree.ParseError,)),
}


def decode(text: str, fmt: FormatLike) -> Any:
    """Parse ``text`` as ``fmt`` into a document (a mapping or a sequence)."""
    fmt = _as_format(fmt, DecodeError)
    if fmt not in _DECODERS:
        raise DecodeError(f"Cannot decode format '{fmt.value}'", fmt.value)
    decoder, errors = _DECODERS[fmt]
    try:
        data = decoder(text)
    except errors as exc:
        raise DecodeError(f"Invalid {fmt.value} input: {exc}", fmt.value) from exc
    if not is_document(data):
        raise DecodeError(
            f"Invalid {fmt.value} input: expected a mapping or a sequence, got {type(data).__name__}",
            fmt.value,
        )
    return data


# -- encoding ---------------------------------------------------------------


def _encode_json(doc: Any) -> str:
    return json.dumps(doc, indent=2, ensure_ascii=False, default=str) + "\n"


def _encode_toml(doc: Any) -> str:
    if not isinstance(doc, dict):
        raise EncodeError("TOML documents must be a mapping at top level", "toml")
    return tomli_w.dumps(doc)


def _encode_yaml(doc: Any) -> str:
    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False, allow_unicode=True)


def _check_name(name: str) -> None:
    if not XML_NAME_RE.fullmatch(name):
        raise EncodeError(f"'{name}' is not a valid XML name", "xml")


def _to_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise EncodeError(f"Expected a scalar, got {type(value).__name__}", "xml")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _fill(element: Element, value: Any) -> None:
    if not isinstance(value, dict):
        if value is not None:
            element.text = _to_text(value)
        return
    for key, child in value.items():
        key = str(key)
        if key == XML_EMPTY_KEY:
            continue
        if key == XML_TEXT_KEY:
            if child is not None:
                element.text = _to_text(child)
        elif key.startswith(XML_ATTR_PREFIX):
            name = key[len(XML_ATTR_PREFIX):]
            _check_name(name)
            if child is not None:
                element.set(name, _to_text(child))
        elif isinstance(child, list):
            _check_name(key)
            for item in child:
                if isinstance(item, list):
                    raise EncodeError(f"Nested sequences under '{key}' cannot be expressed in XML", "xml")
                _fill(SubElement(element, key), item)
        else:
            _check_name(key)
            _fill(SubElement(element, key), child)


def _element_to_str(root: Element) -> str:
    """Serialize an ElementTree element to a pretty-printed XML string without declaration."""
    raw = tostring(root, encoding="unicode")
    try:
        pretty = parseString(raw).documentElement.toprettyxml(indent="  ")
    except ExpatError as exc:
        raise EncodeError(f"Cannot render XML: {exc}", "xml") from exc
    return pretty.strip() + "\n"


def _encode_xml(doc: Any) -> str:
    if not isinstance(doc, dict):
        raise EncodeError("XML documents must be a mapping at top level", "xml")
    if len(doc) == 1:
        tag, value = next(iter(doc.items()))
        tag = str(tag)
        reserved = tag.startswith(XML_ATTR_PREFIX) or tag in (XML_TEXT_KEY, XML_EMPTY_KEY)
        if not isinstance(value, list) and not reserved:
            _check_name(tag)
            root = Element(tag)
            _fill(root, value)
            return _element_to_str(root)
    root = Element(XML_WRAPPER_TAG)
    _fill(root, doc)
    return _element_to_str(root)


_ENCODERS = {
    SerializationFormat.JSON: _encode_json,
    SerializationFormat.TOML: _encode_toml,
    SerializationFormat.YAML: _encode_yaml,
    SerializationFormat.XML: _encode_xml,
}


def encode(doc: Any, fmt: FormatLike) -> str:
    """Render ``doc`` as ``fmt`` text."""
    fmt = _as_format(fmt, EncodeError)
    if fmt not in _ENCODERS:
        raise EncodeError(f"Cannot encode format '{fmt.value}'", fmt.value)
    try:
        return _ENCODERS[fmt](doc)
    except (TypeError, ValueError, yaml.YAMLError) as exc:
        raise EncodeError(f"Cannot encode document as {fmt.value}: {exc}", fmt.value) from exc
