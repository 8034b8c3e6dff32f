from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..core.Exceptions import SessionAlreadyFinalized, describe_error
from ..core.Settings import Settings
from .cache import ResultCache
from .wrapup import WrapupQueue

logger = logging.getLogger(__name__)

__all__ = ["Session"]


class Session:
    """
    Context shared by an action and every action it creates.

    - ``autofill``: values seeding inputs that declare an ``autofill`` property.
    - ``wrapup``: deferred operations run once by :meth:`finalize`.
    - ``result_cache``: memoized action results keyed by action signature.

    Arbitrary collaborator data can be kept through :meth:`set`/:meth:`get`.
    """

    def __init__(
        self,
        autofill: Optional[Mapping[str, Any]] = None,
        wrapup: Optional[WrapupQueue] = None,
        result_cache: Optional[ResultCache] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        if autofill is not None and not isinstance(autofill, Mapping):
            raise TypeError("autofill must be a mapping")
        if wrapup is not None and not isinstance(wrapup, WrapupQueue):
            raise TypeError("wrapup must be a WrapupQueue or None")
        if result_cache is not None and not isinstance(result_cache, ResultCache):
            raise TypeError("result_cache must be a ResultCache or None")

        self._settings = settings if settings is not None else Settings.from_env()
        self._autofill: Dict[str, Any] = dict(autofill or {})
        self._wrapup = wrapup if wrapup is not None else WrapupQueue()
        self._result_cache = (
            result_cache
            if result_cache is not None
            else ResultCache(
                self._settings.result_cache_size,
                self._settings.result_cache_lifespan,
                self._settings.result_cache_max_entries,
            )
        )
        self._data: Dict[str, Any] = {}
        self._finalized = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def autofill(self) -> Dict[str, Any]:
        return self._autofill

    @property
    def wrapup(self) -> WrapupQueue:
        return self._wrapup

    @property
    def result_cache(self) -> ResultCache:
        return self._result_cache

    @property
    def finalized(self) -> bool:
        return self._finalized

    # ---- arbitrary data ---- #
    def set(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            raise TypeError("key must be a string")
        self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._data

    @property
    def keys(self) -> List[str]:
        return list(self._data)

    def describe_error(self, err: BaseException) -> Dict[str, Any]:
        """Collaborator-facing error payload honouring ``expose_nested_validation``."""
        return describe_error(err, expose_nested=self._settings.expose_nested_validation)

    async def finalize(self) -> bool:
        """Run the wrapup queue and flush the result cache. Allowed once."""
        if self._finalized:
            raise SessionAlreadyFinalized("Session has been already finalized!")
        self._finalized = True

        if not self._wrapup.is_empty:
            logger.debug(f"Session: running {len(self._wrapup)} wrapup item(s)")
            try:
                await self._wrapup.execute()
            finally:
                self._wrapup.clear()

        self._result_cache.flush()
        return True

    def __repr__(self) -> str:
        return f"<Session autofill={sorted(self._autofill)} finalized={self._finalized}>"
