from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Sequence
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..core.Exceptions import (
    ActionError,
    InputReadOnly,
    InputRequired,
    InputShapeError,
    NotAVector,
    NotParsable,
    ValidationError,
)
from ..core.Interface import InputInterface

logger = logging.getLogger(__name__)

__all__ = ["Input", "ExtendedValidation", "is_non_text_sequence"]

# Callback receiving the input and the element index being validated (None for scalars).
# It may return an awaitable; raising ValidationError rejects the value.
ExtendedValidation = Callable[["Input", Optional[int]], Union[Awaitable[Any], Any]]

CacheKey = Tuple[str, Optional[int]]


def is_non_text_sequence(x: Any) -> bool:
    return isinstance(x, Sequence) and not isinstance(x, (str, bytes, bytearray))


def _read_only_view(value: Any) -> Any:
    """Shallow read-only view of a container value (top level only)."""
    if isinstance(value, list):
        return tuple(value)
    if isinstance(value, dict):
        return MappingProxyType(dict(value))
    if isinstance(value, set):
        return frozenset(value)
    if isinstance(value, bytearray):
        return bytes(value)
    return value


# ───────────────────────────────────────────────────────────────────────────────
# Input primitive
# ───────────────────────────────────────────────────────────────────────────────
class Input:
    """
    Named, typed value holder with asynchronous, property-driven validation.

    Overview
    --------
    An input holds a value used by an :class:`~atomic_actions.actions.Action`. The
    value is checked by :meth:`validate`, which runs the type's own checks
    (:meth:`_validation`) followed by an optional ``extended_validation`` callback.
    Both receive the element index being validated so vector inputs are checked
    element by element, in ascending order, stopping at the first failure.

    Properties
    ----------
    Every input carries an open property bag. The defaults are:

    - ``required`` (True): an empty value fails validation with InputRequired.
    - ``immutable`` (True): non-empty values are stored as read-only views
      (lists become tuples, dicts become mapping proxies, sets become frozensets).
      Types setting ``READ_ONLY_VIEWS = False`` keep values as given.
    - ``vector`` (False): the value is a sequence validated per element. Fixed at
      construction time.
    - ``default_value`` (None): the initial value.

    Concrete types interpret their own properties (``min``, ``max``, ``regex``,
    ``exists`` ...). Unknown properties are stored anyway. ``autofill`` names a
    session autofill key used to seed the value when a session is attached to the
    owning action.

    Memo cache
    ----------
    Expensive facts derived during validation (for instance a file stat) can be
    memoized per ``(name, index)`` through :meth:`_set_to_cache`. The cache is
    cleared whenever the value or any property changes, and can be transferred to
    another input of the same type through :meth:`setup_from`.
    """

    ERROR_CODES: Dict[str, str] = {
        "required": "28a03a60-a405-4737-b94d-2b695b6ce156",
        "vector": "e03709a0-6c31-4a33-9f63-fa751948a6cb",
    }
    # Registered type name; falls back to the lowercase class name
    TYPE_NAME: Optional[str] = None
    SERIALIZABLE: bool = True
    # Immutable values are stored as read-only views (list to tuple, dict to mappingproxy)
    READ_ONLY_VIEWS: bool = True

    def __init__(
        self,
        name: str,
        properties: Optional[Mapping[str, Any]] = None,
        extended_validation: Optional[ExtendedValidation] = None,
    ) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("Input name must be a non-empty string")
        if properties is not None and not isinstance(properties, Mapping):
            raise TypeError("properties must be a mapping {'key': value}")
        if extended_validation is not None and not callable(extended_validation):
            raise TypeError("extended_validation must be callable(input, at) or None")

        self._name = name
        self._properties: Dict[str, Any] = {}
        self._cache: Dict[CacheKey, Any] = {}
        self._read_only = False
        self._value: Any = None
        self._extended_validation = extended_validation
        self._constructed = False

        self.assign_property("required", True)
        self.assign_property("immutable", True)
        self.assign_property("vector", False)
        self.assign_property("default_value", None)
        for key, val in (properties or {}).items():
            self.assign_property(key, val)

        self._constructed = True
        self.value = self.get_property("default_value")

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #
    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> str:
        return type(self).TYPE_NAME or type(self).__name__.lower()

    @property
    def interface(self) -> InputInterface:
        return InputInterface(name=self._name, type=self.type, required=self.is_required, vector=self.is_vector)

    @property
    def extended_validation(self) -> Optional[ExtendedValidation]:
        return self._extended_validation

    # ------------------------------------------------------------------ #
    # Flags
    # ------------------------------------------------------------------ #
    @property
    def is_vector(self) -> bool:
        return self.get_property("vector") is True

    @property
    def is_required(self) -> bool:
        return self.get_property("required") is True

    @property
    def is_empty(self) -> bool:
        if self._value is None:
            return True
        return self.is_vector and is_non_text_sequence(self._value) and len(self._value) == 0

    @property
    def read_only(self) -> bool:
        return self._read_only

    @read_only.setter
    def read_only(self, flag: bool) -> None:
        self._read_only = bool(flag)

    def _check_writable(self) -> None:
        if self._read_only:
            raise InputReadOnly(f"Input {self._name!r} is read-only, it cannot be modified")

    # ------------------------------------------------------------------ #
    # Value
    # ------------------------------------------------------------------ #
    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        self._check_writable()
        if type(self).READ_ONLY_VIEWS and self.get_property("immutable") and not self._is_empty_value(value):
            value = _read_only_view(value)
        self._value = value
        self.clear_cache()

    def set_value(self, value: Any) -> None:
        self.value = value

    def _is_empty_value(self, value: Any) -> bool:
        return value is None or (is_non_text_sequence(value) and len(value) == 0)

    def value_at(self, at: Optional[int] = None) -> Any:
        """Return the element at ``at`` for vectors, or the value for scalars."""
        if self.is_vector:
            if at is None:
                raise ValueError(f"Input {self._name!r} is a vector, an index is required")
            return self._value[at]
        return self._value

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    def get_property(self, name: str, default: Any = None) -> Any:
        if not isinstance(name, str):
            raise TypeError("property name must be a string")
        return self._properties.get(name, default)

    def has_property(self, name: str) -> bool:
        if not isinstance(name, str):
            raise TypeError("property name must be a string")
        return name in self._properties

    def assign_property(self, name: str, value: Any) -> None:
        """Set (or override) a property. Validations may depend on properties, so the
        memo cache is cleared."""
        if not isinstance(name, str) or not name:
            raise TypeError("property name must be a non-empty string")
        if self._constructed:
            self._check_writable()
            if name == "vector" and bool(value) != self.is_vector:
                raise ActionError(f"Input {self._name!r}: the vector property is fixed at construction")
        self._properties[name] = value
        self.clear_cache()

    @property
    def property_names(self) -> List[str]:
        return list(self._properties.keys())

    @property
    def properties(self) -> Dict[str, Any]:
        return dict(self._properties)

    # ------------------------------------------------------------------ #
    # Memo cache
    # ------------------------------------------------------------------ #
    @property
    def cache(self) -> Mapping[CacheKey, Any]:
        return MappingProxyType(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    def _cache_key(self, name: str, at: Optional[int] = None) -> CacheKey:
        if self.is_vector:
            if at is None:
                raise ValueError(f"Input {self._name!r} is a vector, an index is required for cache access")
            return (name, at)
        return (name, None)

    def _is_cached(self, name: str, at: Optional[int] = None) -> bool:
        return self._cache_key(name, at) in self._cache

    def _get_from_cache(self, name: str, at: Optional[int] = None) -> Any:
        return self._cache.get(self._cache_key(name, at))

    def _set_to_cache(self, name: str, value: Any, at: Optional[int] = None) -> None:
        self._cache[self._cache_key(name, at)] = value

    # ------------------------------------------------------------------ #
    # Setup from a sibling input
    # ------------------------------------------------------------------ #
    def setup_from(self, source: "Input", at: Optional[int] = None, with_cache: bool = True) -> None:
        """Copy the value (or one element of it) and its memoized facts from ``source``.

        Used when the same logical value flows between actions, avoiding a repeated
        computation of validation-derived facts.

        Raises
        ------
        TypeError
            If ``source`` is not of the same input type.
        InputShapeError
            If the vector/scalar shapes of source and target are incompatible.
        """
        if type(source) is not type(self):
            raise TypeError(f"Inputs are not the same type: {type(source).__name__} vs {type(self).__name__}")

        if at is not None and not source.is_vector:
            raise InputShapeError("Can't use 'at' since the source input is not a vector")
        if at is not None and self.is_vector:
            raise InputShapeError("Can't use 'at' from a source vector input to a target vector input")
        if self.is_vector and not source.is_vector:
            raise InputShapeError("Source input is not a vector, can't setup a vector target input")
        if at is None and source.is_vector and not self.is_vector:
            raise InputShapeError(
                "Target input is not a vector, can't setup from a vector source input without supplying 'at'"
            )

        self.value = source.value if at is None else source.value[at]

        if with_cache:
            if at is None:
                self._cache.update(source._cache)
            else:
                for (key, index), cached in source._cache.items():
                    if index == at:
                        self._cache[(key, None)] = cached

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #
    async def validate(self) -> bool:
        """Run the validations, raising :class:`ValidationError` on the first failure.

        Vector elements are validated strictly in ascending index order; the remaining
        indices are skipped once one fails. The raised error is tagged with this
        input's name.
        """
        try:
            if self.is_empty:
                if self.is_required:
                    raise InputRequired("Input is required, it cannot be empty!", self.ERROR_CODES["required"])
            elif self.is_vector and not is_non_text_sequence(self._value):
                raise NotAVector("Input needs to be a vector!", self.ERROR_CODES["vector"])
            else:
                indices = range(len(self._value)) if self.is_vector else (None,)
                for at in indices:
                    await self._validation(at)
                    if self._extended_validation is not None:
                        outcome = self._extended_validation(self, at)
                        if inspect.isawaitable(outcome):
                            await outcome
        except ValidationError as err:
            if err.input_name is None:
                err.input_name = self._name
            logger.debug(f"Input.{self._name} validation failed: {err}")
            raise
        return True

    async def _validation(self, at: Optional[int] = None) -> Any:
        """Type specific checks for the element at ``at``. Subclasses call super first."""
        return self.value_at(at)

    # ------------------------------------------------------------------ #
    # Serialization
    # ------------------------------------------------------------------ #
    @classmethod
    def _encode(cls, value: Any) -> str:
        return str(value)

    @classmethod
    def _decode(cls, text: str) -> Any:
        return text

    def parse_value(self, text: str) -> None:
        """Load the value from its string representation (see :meth:`serialize_value`)."""
        if not isinstance(text, str):
            raise NotParsable(f"Input {self._name!r}: value must be given as a string, got {type(text).__name__}")

        if text == "":
            self.value = None
            return

        try:
            if self.is_vector:
                try:
                    decoded = json.loads(text)
                except json.JSONDecodeError as exc:
                    raise NotParsable(f"Input {self._name!r}: vector value is not valid JSON") from exc
                if not isinstance(decoded, list):
                    raise NotParsable(f"Input {self._name!r}: vector value must be a JSON array")
                parsed = [self._decode(item) if isinstance(item, str) else item for item in decoded]
            else:
                parsed = self._decode(text)
        except (ValueError, TypeError) as exc:
            raise NotParsable(f"Input {self._name!r}: could not decode {text!r}: {exc}") from exc

        self.value = parsed

    async def serialize_value(self) -> str:
        """Return the string representation of the value.

        The value is validated first: an invalid value cannot be serialized.
        Vectors are encoded as a JSON array of per-element encoded strings and an
        empty value is the empty string.
        """
        await self.validate()

        if self.is_empty:
            return ""
        if self.is_vector:
            return json.dumps([self._encode(item) for item in self._value])
        return str(self._encode(self._value))

    # ------------------------------------------------------------------ #
    # Diagnostics
    # ------------------------------------------------------------------ #
    def to_dict(self) -> Dict[str, Any]:
        return {
            "interface": str(self.interface),
            "properties": {k: v for k, v in self._properties.items() if not callable(v)},
            "read_only": self._read_only,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.interface}>"
