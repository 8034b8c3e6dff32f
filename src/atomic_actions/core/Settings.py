"""Engine configuration.

Values are read from the environment (a ``.env`` file is honoured through
``python-dotenv``) and captured in an immutable :class:`Settings` record that
sessions receive explicitly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

__all__ = ["Settings"]

load_dotenv()

_ENV_PREFIX = "ATOMIC_ACTIONS_"
DEFAULT_CACHE_SIZE = 20 * 1024 * 1024
DEFAULT_CACHE_LIFESPAN = 10.0
_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env(name: str) -> Optional[str]:
    value = os.getenv(_ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Settings: ignoring non-integer {_ENV_PREFIX}{name}={raw!r}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Settings: ignoring non-numeric {_ENV_PREFIX}{name}={raw!r}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    """Configuration shared by the sessions of an application.

    - ``result_cache_size``: byte budget of a session result cache.
    - ``result_cache_lifespan``: seconds a cached result stays valid.
    - ``result_cache_max_entries``: optional bound on the number of cached results.
    - ``expose_nested_validation``: whether validation detail raised by nested
      actions may be shown by boundary collaborators.
    """

    result_cache_size: int = DEFAULT_CACHE_SIZE
    result_cache_lifespan: float = DEFAULT_CACHE_LIFESPAN
    result_cache_max_entries: Optional[int] = None
    expose_nested_validation: bool = False

    def __post_init__(self) -> None:
        if self.result_cache_size <= 0:
            raise ValueError("result_cache_size must be positive")
        if self.result_cache_lifespan <= 0:
            raise ValueError("result_cache_lifespan must be positive")
        if self.result_cache_max_entries is not None and self.result_cache_max_entries <= 0:
            raise ValueError("result_cache_max_entries must be positive or None")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``ATOMIC_ACTIONS_*`` environment variables."""
        return cls(
            result_cache_size=_env_int("CACHE_SIZE", DEFAULT_CACHE_SIZE),
            result_cache_lifespan=_env_float("CACHE_LIFESPAN", DEFAULT_CACHE_LIFESPAN),
            result_cache_max_entries=_env_int("CACHE_MAX_ENTRIES", None),
            expose_nested_validation=_env_bool("EXPOSE_NESTED_VALIDATION", False),
        )

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)
