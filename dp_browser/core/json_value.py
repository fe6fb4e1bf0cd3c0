from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, List, Tuple, Union


# -------------------------------------------------------------------------
# Tagged JSON value
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class JsonNull:
    kind = "null"


@dataclass(frozen=True)
class JsonBool:
    value: bool
    kind = "boolean"


@dataclass(frozen=True)
class JsonNumber:
    value: Union[int, float]
    kind = "number"


@dataclass(frozen=True)
class JsonString:
    value: str
    kind = "string"


@dataclass(frozen=True)
class JsonArray:
    items: Tuple["JsonValue", ...]
    kind = "array"


@dataclass(frozen=True)
class JsonObject:
    """Key order is kept as parsed, node positions depend on it"""
    entries: Tuple[Tuple[str, "JsonValue"], ...]
    kind = "object"


JsonValue = Union[JsonNull, JsonBool, JsonNumber, JsonString, JsonArray, JsonObject]

NULL = JsonNull()


def from_python(raw: Any) -> JsonValue:
    """
    Tag a value produced by json.loads (or an equivalent in-memory structure).

    Raises:
        TypeError: if raw (or anything nested in it) is not JSON-shaped
    """
    if raw is None:
        return NULL
    # bool before int: bool is an int subclass
    if isinstance(raw, bool):
        return JsonBool(raw)
    if isinstance(raw, (int, float)):
        return JsonNumber(raw)
    if isinstance(raw, str):
        return JsonString(raw)
    if isinstance(raw, (list, tuple)):
        return JsonArray(tuple(from_python(item) for item in raw))
    if isinstance(raw, dict):
        return JsonObject(tuple((str(k), from_python(v)) for k, v in raw.items()))
    raise TypeError(f"Value of type '{type(raw).__name__}' is not JSON-shaped")


def to_python(value: JsonValue) -> Any:
    if isinstance(value, JsonNull):
        return None
    if isinstance(value, (JsonBool, JsonNumber, JsonString)):
        return value.value
    if isinstance(value, JsonArray):
        return [to_python(item) for item in value.items]
    if isinstance(value, JsonObject):
        return {k: to_python(v) for k, v in value.entries}
    raise TypeError(f"Unknown JSON value {value!r}")


def is_container(value: JsonValue) -> bool:
    return isinstance(value, (JsonArray, JsonObject))


def child_entries(value: JsonValue) -> List[Tuple[str, JsonValue]]:
    """(key, child) pairs of a container, arrays keyed by their index"""
    if isinstance(value, JsonObject):
        return list(value.entries)
    if isinstance(value, JsonArray):
        return [(str(i), item) for i, item in enumerate(value.items)]
    return []


def _format_number(number: Union[int, float]) -> str:
    if isinstance(number, float):
        if math.isnan(number):
            return "NaN"
        if math.isinf(number):
            return "Infinity" if number > 0 else "-Infinity"
        if number.is_integer():
            return str(int(number))
    return str(number)


def display_text(value: JsonValue) -> str:
    """
    Text shown for a leaf, the way the browser would render String(value).
    """
    if isinstance(value, JsonNull):
        return "null"
    if isinstance(value, JsonBool):
        return "true" if value.value else "false"
    if isinstance(value, JsonNumber):
        return _format_number(value.value)
    if isinstance(value, JsonString):
        return value.value
    return js_stringify(to_python(value))


def _normalise_numbers(raw: Any) -> Any:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, float):
        # NaN and the infinities have no JSON form and stringify as null
        if not math.isfinite(raw):
            return None
        if raw.is_integer():
            return int(raw)
    if isinstance(raw, dict):
        return {k: _normalise_numbers(v) for k, v in raw.items()}
    if isinstance(raw, (list, tuple)):
        return [_normalise_numbers(v) for v in raw]
    return raw


def js_stringify(raw: Any) -> str:
    """Compact JSON text matching JSON.stringify output for plain data"""
    return json.dumps(_normalise_numbers(raw), separators=(",", ":"), ensure_ascii=False)
