"""Bundled scalar input types.

- `Text` validates strings (``regex``, ``min``/``max`` length).
- `Numeric` validates ints and floats (``min``/``max``).
- `Bool` validates booleans and encodes them as ``"1"``/``"0"``.
- `AnyValue` holds arbitrary in-process objects and cannot be serialized.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from ..core.Exceptions import NotParsable, NotSerializable, ValidationError
from .base import Input

__all__ = ["Text", "Numeric", "Bool", "AnyValue"]


class Text(Input):
    """String input. An empty string counts as an empty value."""

    ERROR_CODES = {
        **Input.ERROR_CODES,
        "type": "71b205ae-95ed-42a2-b5e9-ccf8e42ba454",
        "regex": "c902610c-ef17-4a10-bc75-887d1550793a",
        "min": "64358b78-ec83-4494-b734-0b1bdac43720",
        "max": "c7ff4423-2c27-4538-acd7-923dada7f4d3",
    }

    @property
    def is_empty(self) -> bool:
        return super().is_empty or self.value == ""

    async def _validation(self, at: Optional[int] = None) -> Any:
        value = await super()._validation(at)

        if not isinstance(value, str):
            raise ValidationError("Value needs to be a string", self.ERROR_CODES["type"])
        regex = self.get_property("regex")
        if regex and re.search(regex, value) is None:
            raise ValidationError("Value does not meet the requirements", self.ERROR_CODES["regex"])
        if self.has_property("min") and len(value) < self.get_property("min"):
            raise ValidationError(
                f"Value is too short, it needs to have at least {self.get_property('min')} characters",
                self.ERROR_CODES["min"],
            )
        if self.has_property("max") and len(value) > self.get_property("max"):
            raise ValidationError(
                f"Value is too long, maximum is {self.get_property('max')} characters",
                self.ERROR_CODES["max"],
            )
        return value


class Numeric(Input):
    ERROR_CODES = {
        **Input.ERROR_CODES,
        "type": "b9f7f1bf-18a3-45f8-83d0-aa8f34f819f6",
        "min": "12e85420-04ae-4ef0-b64c-400b68bced3c",
        "max": "d1d3ffc2-67e9-4404-873c-199603ca7632",
    }

    async def _validation(self, at: Optional[int] = None) -> Any:
        value = await super()._validation(at)

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError("Value needs to be a number", self.ERROR_CODES["type"])
        if self.has_property("min") and value < self.get_property("min"):
            raise ValidationError(
                f"Value needs to be greater or equal to the minimum: {self.get_property('min')}",
                self.ERROR_CODES["min"],
            )
        if self.has_property("max") and value > self.get_property("max"):
            raise ValidationError(
                f"Value needs to be less or equal to the maximum: {self.get_property('max')}",
                self.ERROR_CODES["max"],
            )
        return value

    @classmethod
    def _encode(cls, value: Any) -> str:
        # 3 and 3.0 share one wire form so they share one signature
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    @classmethod
    def _decode(cls, text: str) -> Any:
        try:
            return int(text)
        except ValueError:
            return float(text)


class Bool(Input):
    ERROR_CODES = {
        **Input.ERROR_CODES,
        "type": "4304c51a-a48f-41d2-a2b8-9ba43c6617f3",
    }

    async def _validation(self, at: Optional[int] = None) -> Any:
        value = await super()._validation(at)

        if not isinstance(value, bool):
            raise ValidationError("Value needs to be a boolean", self.ERROR_CODES["type"])
        return value

    @classmethod
    def _encode(cls, value: Any) -> str:
        return "1" if value else "0"

    @classmethod
    def _decode(cls, text: str) -> Any:
        return text.lower() == "true" or text == "1"


class AnyValue(Input):
    """Opaque in-process value (streams, clients, live objects).

    Marked ``private`` by default so request-style collaborators never fill it.
    The optional ``type`` property restricts the accepted class.
    Values are kept as given, never replaced by read-only views.
    """

    TYPE_NAME = "any"
    SERIALIZABLE = False
    # Views would fail the `type` property check (dict is not a mappingproxy)
    READ_ONLY_VIEWS = False
    ERROR_CODES = {
        **Input.ERROR_CODES,
        "type": "d59814e4-0432-435a-b116-4491819c58d4",
    }

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        if not self.has_property("private"):
            self.assign_property("private", True)

    async def _validation(self, at: Optional[int] = None) -> Any:
        value = await super()._validation(at)

        expected = self.get_property("type")
        if expected is not None and not isinstance(value, expected):
            raise ValidationError(
                f"Invalid object type: {type(value).__name__}, expecting {expected.__name__}",
                self.ERROR_CODES["type"],
            )
        return value

    def parse_value(self, text: str) -> None:
        raise NotParsable(f"Input {self.name!r} holds opaque values, it cannot be parsed")

    async def serialize_value(self) -> str:
        raise NotSerializable(f"Input {self.name!r} holds opaque values, it cannot be serialized")
