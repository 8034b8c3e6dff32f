from .base import Session
from .cache import ResultCache, estimate_size
from .wrapup import WrapupQueue, WrapupKind

__all__ = ["Session", "ResultCache", "estimate_size", "WrapupQueue", "WrapupKind"]
