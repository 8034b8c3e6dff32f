from .Exceptions import (
    ActionError,
    ValidationError,
    InputRequired,
    NotAVector,
    NotSerializable,
    NotParsable,
    InvalidInterface,
    DuplicateInputName,
    UnregisteredType,
    InputReadOnly,
    InputShapeError,
    SignatureUnavailable,
    SessionAlreadyFinalized,
    WrapupError,
    ORIGIN_TOP_LEVEL,
    ORIGIN_NESTED,
    describe_error,
    format_trace,
)
from .Interface import InputInterface, parse_interface
from .Registry import Registry
from .Settings import Settings
from .sentinels import NO_VAL

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
    "describe_error",
    "format_trace",
    "InputInterface",
    "parse_interface",
    "Registry",
    "Settings",
    "NO_VAL",
]
