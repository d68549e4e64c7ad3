"""
Metadata encoding for the ``metadata`` JSONB column.

A metadata value is one of four variants:

- a string, stored as a JSON string
- a string-convertible scalar (anything else that is not a container),
  stored as the JSON string of ``str(value)``
- a nested mapping with string keys, stored as a JSON object
- an ordered sequence (list or tuple), stored as a JSON array

The stored document is the orjson encoding of the top-level mapping,
prefixed with the JSONB binary format version byte so it can be sent to
PostgreSQL as a binary ``jsonb`` parameter without another copy.

Decoding sniffs the JSON structure in a fixed priority order (string, then
object, then array) and rejects anything else, so numbers, booleans and
``null`` never come back as metadata.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Union

import orjson

from .errors import MetadataDecodeError, MetadataEncodeError

JSONB_VERSION: int = 0x01
_JSONB_VERSION_PREFIX = bytes((JSONB_VERSION,))

# The trailing ``object`` stands for the string-convertible scalar variant.
MetadataValue = Union[
    str, Mapping[str, "MetadataValue"], Sequence["MetadataValue"], object
]
Metadata = Mapping[str, MetadataValue]


def encode_metadata_value(value: Any) -> Any:
    """Convert a metadata value into plain JSON-ready Python objects."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        encoded: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise MetadataEncodeError(
                    f"Metadata keys must be strings, got {type(key).__name__}"
                )
            encoded[key] = encode_metadata_value(item)
        return encoded
    if isinstance(value, (list, tuple)):
        return [encode_metadata_value(item) for item in value]
    try:
        return str(value)
    except Exception as exc:
        raise MetadataEncodeError(
            f"Metadata value of type {type(value).__name__} is not string-convertible",
            cause=exc,
        ) from exc


def encode_metadata(metadata: Metadata) -> bytes:
    """Encode a metadata mapping into version-tagged JSONB bytes.

    Raises:
        MetadataEncodeError: If any value cannot be converted or the result
            is not valid JSON (e.g. strings with lone surrogates),
            or the mapping is cyclic or nested deeper than the recursion limit.
    """
    try:
        document = encode_metadata_value(metadata)
        return _JSONB_VERSION_PREFIX + orjson.dumps(document)
    except RecursionError as exc:
        raise MetadataEncodeError(
            "Metadata is cyclic or nested too deeply", cause=exc
        ) from exc
    except (TypeError, ValueError) as exc:
        # orjson.JSONEncodeError is a TypeError subclass.
        raise MetadataEncodeError("Metadata is not JSON serializable", cause=exc) from exc


def copy_metadata_value(value: Any, _memo: dict[int, Any] | None = None) -> Any:
    """Copy the mapping and sequence containers of a metadata value.

    Leaves are shared. Cycles are reproduced in the copy rather than followed.
    """
    if isinstance(value, str):
        return value
    if _memo is None:
        _memo = {}
    if isinstance(value, Mapping):
        if id(value) in _memo:
            return _memo[id(value)]
        copied: dict[Any, Any] = {}
        _memo[id(value)] = copied
        for key, item in value.items():
            copied[key] = copy_metadata_value(item, _memo)
        return copied
    if isinstance(value, list):
        if id(value) in _memo:
            return _memo[id(value)]
        items: list[Any] = []
        _memo[id(value)] = items
        items.extend(copy_metadata_value(item, _memo) for item in value)
        return items
    if isinstance(value, tuple):
        return tuple(copy_metadata_value(item, _memo) for item in value)
    return value


def decode_metadata_value(obj: Any) -> MetadataValue:
    """Rebuild a metadata value from parsed JSON using structural sniffing."""
    if isinstance(obj, str):
        return obj
    if isinstance(obj, dict):
        return {key: decode_metadata_value(item) for key, item in obj.items()}
    if isinstance(obj, list):
        return [decode_metadata_value(item) for item in obj]
    raise MetadataDecodeError(
        f"Unable to decode metadata value of JSON type {type(obj).__name__}"
    )


def decode_metadata(data: bytes | bytearray | memoryview) -> dict[str, MetadataValue]:
    """Decode version-tagged JSONB bytes into a metadata mapping.

    Raises:
        MetadataDecodeError: On a missing or unknown version byte, invalid
            JSON, a non-object document, or values matching no variant.
    """
    raw = bytes(data)
    if not raw or raw[0] != JSONB_VERSION:
        raise MetadataDecodeError("Unsupported JSONB format version")
    try:
        document = orjson.loads(raw[1:])
    except orjson.JSONDecodeError as exc:
        raise MetadataDecodeError("Metadata is not valid JSON", cause=exc) from exc
    if not isinstance(document, dict):
        raise MetadataDecodeError("Metadata document must be a JSON object")
    return {key: decode_metadata_value(item) for key, item in document.items()}


def merge_metadata(
    base: Metadata | None, override: Metadata | None
) -> dict[str, MetadataValue] | None:
    """Merge call-site metadata over handler metadata; empty results are None."""
    merged: dict[str, MetadataValue] = dict(base or {})
    if override:
        merged.update(override)
    return merged or None


__all__ = [
    "JSONB_VERSION",
    "Metadata",
    "MetadataValue",
    "copy_metadata_value",
    "decode_metadata",
    "decode_metadata_value",
    "encode_metadata",
    "encode_metadata_value",
    "merge_metadata",
]
