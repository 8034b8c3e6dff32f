# ───────────────────────────────────────────────────────────────────────────────
# Exceptions
# ───────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

__all__ = [
    "ActionError",
    "ValidationError",
    "InputRequired",
    "NotAVector",
    "NotSerializable",
    "NotParsable",
    "InvalidInterface",
    "DuplicateInputName",
    "UnregisteredType",
    "InputReadOnly",
    "InputShapeError",
    "SignatureUnavailable",
    "SessionAlreadyFinalized",
    "WrapupError",
    "ORIGIN_TOP_LEVEL",
    "ORIGIN_NESTED",
    "error_origin",
    "error_trace",
    "format_trace",
    "describe_error",
]

ORIGIN_TOP_LEVEL = "top_level"
ORIGIN_NESTED = "nested"


class ActionError(Exception):
    """Base class for errors raised by the action engine.

    ``origin`` is stamped once by the first action frame that observes the error and
    ``trace`` collects the action labels the error bubbled through (outermost first).
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.origin: Optional[str] = None
        self.trace: List[str] = []


class ValidationError(ActionError, ValueError):
    """Raised by input validations.

    Carries a stable ``code`` identifying the failed check and the ``input_name`` the
    failure belongs to. Once the input name is known the message reads
    ``"<input_name>: <message>"``.
    """

    def __init__(self, message: str, code: Optional[str] = None, input_name: Optional[str] = None) -> None:
        if not isinstance(message, str) or not message:
            raise ValueError("message must be a non-empty string")
        self._raw_message = message
        self.code = code
        self._input_name: Optional[str] = None
        super().__init__(message)
        self.input_name = input_name

    @property
    def message(self) -> str:
        return self._raw_message

    @property
    def input_name(self) -> Optional[str]:
        return self._input_name

    @input_name.setter
    def input_name(self, value: Optional[str]) -> None:
        if value is not None and (not isinstance(value, str) or not value):
            raise ValueError("input_name must be a non-empty string or None")
        self._input_name = value
        self.args = (f"{value}: {self._raw_message}" if value else self._raw_message,)

    def __str__(self) -> str:
        return self.args[0]

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self._raw_message, "code": self.code, "input_name": self.input_name}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "ValidationError":
        if not isinstance(text, str) or not text:
            raise ValueError("ValidationError.from_json expects a non-empty string")
        data = json.loads(text)
        return cls(data["message"], data.get("code"), data.get("input_name"))


class InputRequired(ValidationError):
    """Raised when a required input has no value."""


class NotAVector(ValidationError):
    """Raised when a vector input holds something other than a sequence."""


class NotSerializable(ActionError):
    """Raised by input types whose values cannot be represented as text."""


class NotParsable(ActionError):
    """Raised when a serialized value cannot be loaded into an input."""


class InvalidInterface(ActionError, ValueError):
    """Raised when an input interface string does not follow ``name[?]: type[[]]``."""


class DuplicateInputName(ActionError):
    """Raised when an action already holds an input with the same name."""


class UnregisteredType(ActionError, KeyError):
    """Raised when an input or action type name is not registered."""

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class InputReadOnly(ActionError):
    """Raised when modifying an input that is locked for execution."""


class InputShapeError(ActionError):
    """Raised by ``Input.setup_from`` when source and target shapes are incompatible."""


class SignatureUnavailable(ActionError):
    """Raised when an operation requires an action created through the registry."""


class SessionAlreadyFinalized(ActionError):
    """Raised when finalizing a session twice."""


class WrapupError(ActionError):
    """Raised for invalid use of a session wrapup queue."""


# ───────────────────────────────────────────────────────────────────────────────
# Provenance helpers
# ───────────────────────────────────────────────────────────────────────────────
def error_origin(err: BaseException) -> Optional[str]:
    """Return the origin stamp of ``err`` (``top_level``/``nested``) or None."""
    return getattr(err, "origin", None)


def error_trace(err: BaseException) -> List[str]:
    """Return the list of action labels ``err`` bubbled through, outermost first."""
    if isinstance(err, ActionError):
        return list(err.trace)
    return list(getattr(err, "action_trace", []) or [])


def format_trace(err: BaseException) -> str:
    """Render the action trace as ``/Outer (outer)/Inner (inner)!``."""
    labels = error_trace(err)
    if not labels:
        return ""
    return "".join(f"/{label}" for label in labels) + "!"


def describe_error(err: BaseException, *, expose_nested: bool = False) -> Dict[str, Any]:
    """Build a collaborator-facing payload for ``err``.

    Validation detail (message, code, input name) is included for top-level errors.
    For errors raised from nested actions it is masked unless ``expose_nested``.
    """
    origin = error_origin(err)
    payload: Dict[str, Any] = {"error": type(err).__name__, "origin": origin}
    if isinstance(err, ValidationError):
        if origin == ORIGIN_NESTED and not expose_nested:
            payload["message"] = "validation failed"
        else:
            payload.update(err.to_dict())
    elif origin != ORIGIN_NESTED or expose_nested:
        payload["message"] = str(err)
    return payload
