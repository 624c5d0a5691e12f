"""JSON-like payloads exchanged between services."""

from __future__ import annotations

import copy
import json
import math
from datetime import datetime
from typing import Any, Callable, Iterator

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})


def _plain(value: Any) -> Any:
    """Turn a value into plain JSON-like data, unwrapping nested payloads."""
    if isinstance(value, Payload):
        return copy.deepcopy(value._value) if value._exists else None
    if isinstance(value, BaseException):
        return {"error": str(value)}
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _split_path(path: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    escaped = False
    for char in path:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ".":
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _lookup(value: Any, parts: list[str]) -> tuple[bool, Any]:
    for part in parts:
        if isinstance(value, dict):
            if part not in value:
                return False, None
            value = value[part]
        elif isinstance(value, list):
            if part == "#":
                value = len(value)
                continue
            if not part.isdigit() or int(part) >= len(value):
                return False, None
            value = value[int(part)]
        else:
            return False, None
    return True, value


def _list_index(target: list, part: str) -> int:
    if not part.isdigit() or int(part) >= len(target):
        raise KeyError(f"invalid array index: {part}")
    return int(part)


def _set_path(root: Any, parts: list[str], value: Any) -> None:
    target = root
    for part in parts[:-1]:
        if isinstance(target, list):
            index = _list_index(target, part)
            if not isinstance(target[index], (dict, list)):
                target[index] = {}
            target = target[index]
        else:
            child = target.get(part)
            if not isinstance(child, (dict, list)):
                child = {}
                target[part] = child
            target = child
    last = parts[-1]
    if isinstance(target, list):
        if last == "-1" or (last.isdigit() and int(last) == len(target)):
            target.append(value)
        else:
            target[_list_index(target, last)] = value
    else:
        target[last] = value


def _delete_path(root: Any, parts: list[str]) -> None:
    found, parent = _lookup(root, parts[:-1])
    if not found:
        return
    last = parts[-1]
    if isinstance(parent, dict):
        parent.pop(last, None)
    elif isinstance(parent, list) and last.isdigit() and int(last) < len(parent):
        del parent[int(last)]


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            try:
                return _to_int(float(value))
            except ValueError:
                return 0
    return 0


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value in _TRUE_STRINGS
    return False


def _to_time(value: Any) -> datetime | None:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _text(value: Any) -> str:
    """Render a value the way a payload prints a scalar."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return repr(value)
    return _dumps(value)


def _sort_key(value: Any) -> tuple:
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, json.dumps(value, sort_keys=True))


class Payload:
    """An immutable view over a JSON-like value."""

    __slots__ = ("_value", "_exists")

    def __init__(self, value: Any = None, exists: bool = True) -> None:
        self._value = value
        self._exists = exists

    def __repr__(self) -> str:
        if not self._exists:
            return "Payload(<missing>)"
        return f"Payload({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Payload):
            return NotImplemented
        return self._exists == other._exists and self._value == other._value

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.is_map():
            entries = self.map()
            out = "(len=" + str(len(entries)) + ") {\n"
            for key in sorted(entries):
                out += '  "' + key + '": ' + str(entries[key]) + ",\n"
            if not entries:
                out += "\n"
            return out + "}"
        return _text(self._value) if self._exists else ""

    def get(self, path: str, *args: Any) -> Payload:
        """Return the value at a dotted path, or the given default when missing."""
        found, value = (False, None) if not path else _lookup(self._value, _split_path(path))
        if not found or not self._exists:
            if len(args) > 1:
                return wrap(list(args))
            if args:
                return wrap(args[0])
            return Payload(None, exists=False)
        return Payload(value)

    def exists(self) -> bool:
        return self._exists

    def value(self) -> Any:
        return copy.deepcopy(self._value)

    def int(self) -> int:
        return _to_int(self._value)

    def float(self) -> float:
        return _to_float(self._value)

    def bool(self) -> bool:
        return _to_bool(self._value)

    def time(self) -> datetime | None:
        return _to_time(self._value)

    def is_array(self) -> bool:
        return self._exists and isinstance(self._value, list)

    def is_map(self) -> bool:
        return self._exists and isinstance(self._value, dict)

    def is_error(self) -> bool:
        return self.is_map() and "error" in self._value

    def error(self) -> Exception | None:
        if self.is_error():
            return RuntimeError(_text(self._value["error"]))
        return None

    def error_payload(self) -> Payload | None:
        return self if self.is_error() else None

    def length(self) -> int:
        return len(self._value) if self.is_array() else -1

    def first(self) -> Payload:
        if not self.is_array():
            return Payload(None, exists=False)
        if not self._value:
            raise IndexError("first() of an empty array")
        return Payload(self._value[0])

    def at(self, index: int) -> Payload | None:
        if self.is_array() and 0 <= index < len(self._value):
            return Payload(self._value[index])
        return None

    def array(self) -> list[Payload] | None:
        if not self.is_array():
            return None
        return [Payload(item) for item in self._value]

    def map(self) -> dict[str, Payload]:
        if not self.is_map():
            return {}
        return {key: Payload(item) for key, item in self._value.items()}

    def raw_map(self) -> dict[str, Any] | None:
        if not self.is_map():
            return None
        return copy.deepcopy(self._value)

    def map_array(self) -> list[dict[str, Any]] | None:
        if not self.is_array():
            return None
        return [copy.deepcopy(item) if isinstance(item, dict) else {} for item in self._value]

    def value_array(self) -> list[Any] | None:
        return copy.deepcopy(self._value) if self.is_array() else None

    def _converted(self, convert: Callable[[Any], Any]) -> list | None:
        if not self.is_array():
            return None
        return [convert(item) for item in self._value]

    def string_array(self) -> list[str] | None:
        return self._converted(_text)

    def int_array(self) -> list[int] | None:
        return self._converted(_to_int)

    def float_array(self) -> list[float] | None:
        return self._converted(_to_float)

    def bool_array(self) -> list[bool] | None:
        return self._converted(_to_bool)

    def time_array(self) -> list[datetime | None] | None:
        return self._converted(_to_time)

    def items(self) -> Iterator[tuple[Any, Payload]]:
        """Yield (key, payload) pairs: map keys, array indexes, or the scalar itself."""
        if self.is_map():
            for key, item in self._value.items():
                yield key, Payload(item)
        elif self.is_array():
            for index, item in enumerate(self._value):
                yield index, Payload(item)
        elif self._exists:
            yield None, self

    def remove(self, *args: str) -> Payload:
        value = copy.deepcopy(self._value)
        for path in args:
            if path:
                _delete_path(value, _split_path(path))
        return Payload(value, exists=self._exists)

    def add(self, field: str, value: Any) -> Payload:
        return self.add_many({field: value})

    def add_many(self, to_add: dict[str, Any]) -> Payload:
        if not self.is_map():
            return error("payload.Add can only deal with map payloads.")
        result = copy.deepcopy(self._value)
        for field, value in to_add.items():
            try:
                _set_path(result, _split_path(field), _plain(value))
            except KeyError as exc:
                return error("Error serializng value into JSON. error: ", exc.args[0])
        return Payload(result)

    def add_item(self, value: Any) -> Payload:
        if not self.is_array():
            return error("payload.AddItem can only deal with lists/arrays.")
        return Payload(copy.deepcopy(self._value) + [_plain(value)])

    def only(self, path: str) -> Payload:
        found = self.get(path)
        if found.exists():
            return Payload({}).add(path, found)
        return Payload(None, exists=False)

    def map_over(self, transform: Callable[[Payload], Any]) -> Payload:
        if not self.is_array():
            return error("payload.MapOver can only deal with array payloads.")
        return wrap([transform(item) for item in self.array()])

    def sort(self, field: str) -> Payload:
        if not self.is_array():
            return self
        ordered = sorted(self.array(), key=lambda item: _sort_key(item.get(field).value()))
        return wrap(ordered)

    def to_json(self) -> str:
        return _dumps(self._value)


def parse(text: str | bytes | bytearray) -> Payload:
    """Parse JSON text into a payload; raises ValueError on invalid JSON."""
    return Payload(json.loads(text))


def wrap(value: Any) -> Payload:
    """Make a payload from a Python value; None gives a missing payload."""
    if isinstance(value, Payload):
        return value
    return Payload(_plain(value), exists=value is not None)


def error(*args: Any) -> Payload:
    """Make an error payload from the concatenated message parts."""
    return Payload({"error": "".join(str(part) for part in args)})