"""JSON serializer for payloads and transit messages."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import IO, Any

from .payload import Payload, error, parse, wrap


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Payload):
        return value.value()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"value of type {type(value).__name__} is not JSON serializable")


def _dumps(value: Any, sort_keys: bool = False) -> str:
    return json.dumps(
        value,
        separators=(",", ":"),
        ensure_ascii=False,
        sort_keys=sort_keys,
        default=_json_default,
    )


def clean_up_for_serialization(values: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of the map without values that cannot be serialized, such as functions."""
    result: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Payload):
            value = value.value()
        if isinstance(value, dict):
            result[key] = clean_up_for_serialization(value)
        elif isinstance(value, (bytes, bytearray)):
            result[key] = bytes(value).decode("utf-8", errors="replace")
        elif isinstance(value, (list, tuple)):
            items = []
            for item in value:
                if isinstance(item, Payload):
                    item = item.value()
                if isinstance(item, dict):
                    items.append(clean_up_for_serialization(item))
                elif not callable(item):
                    items.append(item)
            result[key] = items
        elif not callable(value):
            result[key] = value
    return result


@dataclass
class JSONSerializer:
    """Converts between payloads, maps and JSON text."""

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def bytes_to_payload(self, data: bytes | bytearray | str) -> Payload:
        return parse(data)

    def reader_to_payload(self, reader: IO) -> Payload:
        """Read JSON from a stream; invalid content gives an error payload."""
        content = reader.read()
        try:
            return parse(content)
        except ValueError:
            return error("invalid json")

    def map_to_string(self, value: Any) -> str:
        try:
            return _dumps(value, sort_keys=True)
        except (TypeError, ValueError) as exc:
            self.logger.error("Error trying to serialize a map. error: %s", exc)
            raise

    def string_to_map(self, text: str) -> dict[str, Any]:
        try:
            result = json.loads(text)
        except ValueError as exc:
            self.logger.error("Error trying to deserialize a map from json: %s", text)
            self.logger.error("error: %s", exc)
            raise
        if not isinstance(result, dict):
            self.logger.error("Error trying to deserialize a map from json: %s", text)
            raise ValueError("json value is not an object")
        return result

    def payload_to_bytes(self, payload: Any) -> bytes:
        return self.payload_to_string(payload).encode("utf-8")

    def payload_to_string(self, payload: Any) -> str:
        """Serialize a payload: containers as JSON, scalars as their plain text."""
        if not isinstance(payload, Payload):
            payload = wrap(payload)
        if payload.is_array():
            return _dumps(payload.value())
        if payload.is_map():
            return _dumps(clean_up_for_serialization(payload.value()))
        return str(payload)

    def map_to_payload(self, mapping: dict[str, Any]) -> Payload:
        cleaned = clean_up_for_serialization(mapping)
        try:
            text = _dumps(cleaned)
        except (TypeError, ValueError) as exc:
            self.logger.error("map_to_payload() error when parsing the map: %s error: %s", cleaned, exc)
            raise
        return parse(text)

    def payload_to_context_map(self, payload: Payload) -> dict[str, Any]:
        """Return the message as a map with context fields given their proper types."""
        values = payload.raw_map()
        if values is None:
            raise ValueError("payload is not a map")
        for key in ("level", "timeout"):
            if values.get(key) is not None:
                values[key] = int(values[key])
        return values