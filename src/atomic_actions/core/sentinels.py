from __future__ import annotations

from typing import Any


class _NoValSentinel:
    """Shared sentinel to represent an absent value (NO_VAL).

    Used where ``None`` is a legitimate value, e.g. a cached result of ``None``
    or an input default. Use `is NO_VAL` to test for absence.
    """
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "NO_VAL"

    def __bool__(self) -> bool:
        return False


NO_VAL: Any = _NoValSentinel()

__all__ = ["NO_VAL"]
