"""Custom column types for the persistence boundary.

Stored option strings and 0/1/"true" style flags are canonicalized here
and nowhere else, so the rest of the code only ever sees typed values.
"""

import json
import re
from dataclasses import dataclass, asdict
from typing import Any, List, Optional, Sequence

from sqlalchemy import Boolean, Text, TypeDecorator


@dataclass(frozen=True)
class Option:
    """One answer choice, e.g. Option(key="A", text="Strongly Disagree")"""

    key: str
    text: str


_OPTION_PATTERN = re.compile(r"^([A-E])[\)\.]\s*(.+)$", re.IGNORECASE)
_OPTION_SPLIT = re.compile(r",\s*(?=[A-E][\)\.])")
_TRUE_STRINGS = {"1", "true", "t", "yes", "y", "on"}
_FALSE_STRINGS = {"0", "false", "f", "no", "n", "off", ""}


def serialize_options(options: Optional[Sequence[Option]]) -> Optional[str]:
    """Options -> JSON text"""
    if options is None:
        return None
    return json.dumps([asdict(_coerce_option(o)) for o in options])


def deserialize_options(raw: Any) -> List[Option]:
    """
    Stored value -> options.

    Accepts the JSON form written by serialize_options as well as legacy
    rows holding "A) Strongly Disagree, B) Disagree, ..." text.
    """
    if raw is None or raw == "":
        return []

    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return _parse_legacy(raw)
    else:
        parsed = raw

    if not isinstance(parsed, list):
        return []

    result = []
    for item in parsed:
        if isinstance(item, dict):
            key = str(item.get("key") or item.get("value") or "").strip().upper()
            text = str(item.get("text") or item.get("label") or "").strip()
            if key and text:
                result.append(Option(key=key, text=text))
        elif isinstance(item, str):
            match = _OPTION_PATTERN.match(item.strip())
            if match:
                result.append(Option(key=match.group(1).upper(), text=match.group(2).strip()))
    return result


def _parse_legacy(raw: str) -> List[Option]:
    result = []
    for part in _OPTION_SPLIT.split(raw):
        match = _OPTION_PATTERN.match(part.strip())
        if match:
            result.append(Option(key=match.group(1).upper(), text=match.group(2).strip()))
    return result


def _coerce_option(value: Any) -> Option:
    if isinstance(value, Option):
        return value
    if isinstance(value, dict):
        return Option(key=str(value["key"]).upper(), text=str(value["text"]))
    raise TypeError(f"Cannot store {value!r} as an Option")


def to_bool(value: Any) -> bool:
    """Single canonicalization point for boolean flags"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Not a boolean flag: {value!r}")


class OptionList(TypeDecorator):
    """
    A list of Option values stored as JSON text.

    Usage:
        options = Column(OptionList(), nullable=True)
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[Sequence[Option]], dialect) -> Any:
        return serialize_options(value)

    def process_result_value(self, value: Any, dialect) -> List[Option]:
        return deserialize_options(value)


class StrictBoolean(TypeDecorator):
    """Boolean column that rejects anything to_bool cannot canonicalize"""

    impl = Boolean
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[bool]:
        if value is None:
            return None
        return to_bool(value)

    def process_result_value(self, value: Any, dialect) -> Optional[bool]:
        if value is None:
            return None
        return to_bool(value)
