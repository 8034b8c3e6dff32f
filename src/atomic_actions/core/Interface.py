"""Input interface grammar.

This module provides:
- InputInterface: an immutable record describing a parsed ``name[?]: type[[]]`` string
- parse_interface: the parser turning interface strings into InputInterface records
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from .Exceptions import InvalidInterface

__all__ = ["InputInterface", "parse_interface", "VALID_TYPE_NAME"]

# Input names: identifier-like, dashes allowed after the first character
_VALID_INPUT_NAME = re.compile(r"^[A-Za-z_][\w\-]*$")
# Registered type / action names (dots allowed for namespacing)
VALID_TYPE_NAME = re.compile(r"^[\w.\-]+$")


class InputInterface(dict):
    """Parsed input interface.

    Behaves like a read-only mapping so it can be logged or serialized as is, while
    exposing attribute access for internal code:

      - name: str (input name, without the optional marker)
      - type: str (registered input type name, lowercase, without the vector marker)
      - required: bool (False when the name carries ``?``)
      - vector: bool (True when the type carries ``[]``)
    """

    __slots__ = ("_name", "_type", "_required", "_vector")

    def __init__(self, name: str, type: str, required: bool = True, vector: bool = False) -> None:
        dict.__init__(self, name=name, type=type, required=required, vector=vector)
        self._name = name
        self._type = type
        self._required = required
        self._vector = vector

    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> str:
        return self._type

    @property
    def required(self) -> bool:
        return self._required

    @property
    def vector(self) -> bool:
        return self._vector

    def __setitem__(self, key, value):  # pragma: no cover - trivial immutability
        raise TypeError("InputInterface is immutable")

    def __delitem__(self, key):  # pragma: no cover - trivial immutability
        raise TypeError("InputInterface is immutable")

    def properties(self) -> dict:
        """Properties implied by the interface markers."""
        return {"required": self._required, "vector": self._vector}

    def to_dict(self) -> dict:
        return {"name": self._name, "type": self._type, "required": self._required, "vector": self._vector}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "InputInterface":
        if not isinstance(d, Mapping):
            raise TypeError("InputInterface.from_dict expects a mapping")
        name, type_name = d.get("name"), d.get("type")
        if not isinstance(name, str) or not isinstance(type_name, str):
            raise TypeError("InputInterface.from_dict expects 'name' (str) and 'type' (str)")
        return cls(name=name, type=type_name.lower(), required=bool(d.get("required", True)), vector=bool(d.get("vector", False)))

    def __str__(self) -> str:
        return f"{self._name}{'' if self._required else '?'}: {self._type}{'[]' if self._vector else ''}"


def parse_interface(text: str) -> InputInterface:
    """Parse an interface string such as ``"files?: filePath[]"``.

    Raises
    ------
    InvalidInterface
        If the string does not follow ``name[?]: type[[]]``.
    """
    if not isinstance(text, str):
        raise InvalidInterface(f"input interface must be a string, got {type(text)!r}")

    parts = text.split(":")
    if len(parts) != 2:
        raise InvalidInterface(f"Invalid input interface {text!r}, it should follow the pattern: 'name: type'")

    name, type_name = (p.strip() for p in parts)

    required = True
    if name.endswith("?"):
        name = name[:-1].rstrip()
        required = False

    vector = False
    if type_name.endswith("[]"):
        type_name = type_name[:-2].rstrip()
        vector = True

    if not _VALID_INPUT_NAME.match(name):
        raise InvalidInterface(f"Invalid input name {name!r} in interface {text!r}")
    if not VALID_TYPE_NAME.match(type_name):
        raise InvalidInterface(f"Invalid input type {type_name!r} in interface {text!r}")

    return InputInterface(name=name, type=type_name.lower(), required=required, vector=vector)
