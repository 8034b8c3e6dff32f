from .base import Input, ExtendedValidation, is_non_text_sequence
from .basic import Text, Numeric, Bool, AnyValue
from .filepath import FilePath

__all__ = [
    "Input",
    "ExtendedValidation",
    "is_non_text_sequence",
    "Text",
    "Numeric",
    "Bool",
    "AnyValue",
    "FilePath",
]
