from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Optional

from ..core.Exceptions import ValidationError
from .basic import Text

logger = logging.getLogger(__name__)

__all__ = ["FilePath"]


class FilePath(Text):
    """
    File path input.

    Properties
    ----------
    - ``restrict_request_access`` (True): request-style collaborators may only set the
      value from an upload, never from a plain string.
    - ``max_file_size``: maximum size in bytes.
    - ``exists``: the path must exist.
    - ``allowed_extensions``: case insensitive list of accepted extensions, e.g.
      ``["jpg", "png"]``.

    The ``os.stat`` outcome is memoized per element under the ``stat`` cache key, so
    the same file flowing into nested actions through :meth:`setup_from` is not
    stat'ed again.
    """

    ERROR_CODES = {
        **Text.ERROR_CODES,
        "extension": "05139388-f4ec-4496-be20-f794eb14d1ff",
        "exists": "dedf89bc-c57a-4ce7-ab84-f84f49144230",
        "max_file_size": "99c3aeff-241b-4120-a708-d2e1ca1a1dce",
    }

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        if not self.has_property("restrict_request_access"):
            self.assign_property("restrict_request_access", True)

    # ---- path helpers ---- #
    def extension(self, at: Optional[int] = None) -> str:
        """Extension without the leading dot, or ``""``."""
        if self.is_empty:
            return ""
        ext = os.path.splitext(self.value_at(at))[1]
        return ext[1:] if len(ext) > 1 else ""

    def basename(self, at: Optional[int] = None) -> str:
        return os.path.basename(self.value_at(at))

    def dirname(self, at: Optional[int] = None) -> str:
        return os.path.dirname(self.value_at(at))

    async def stat(self, at: Optional[int] = None) -> os.stat_result:
        """Stat the path off the event loop. Raises the ``OSError`` on failure."""
        if not self._is_cached("stat", at):
            path = self.value_at(at)
            loop = asyncio.get_running_loop()
            try:
                outcome = (None, await loop.run_in_executor(None, lambda: os.stat(path)))
            except OSError as exc:
                outcome = (exc, None)
            self._set_to_cache("stat", outcome, at)

        err, stats = self._get_from_cache("stat", at)
        if err is not None:
            raise err
        return stats

    async def _validation(self, at: Optional[int] = None) -> Any:
        value = await super()._validation(at)

        allowed = self.get_property("allowed_extensions")
        if allowed:
            ext = self.extension(at)
            if ext.lower() not in [x.lower() for x in allowed]:
                raise ValidationError(
                    f"Extension {ext!r} is not supported! (supported extensions: {', '.join(allowed)})",
                    self.ERROR_CODES["extension"],
                )

        must_exist = self.get_property("exists")
        max_size = self.get_property("max_file_size")
        if must_exist or max_size:
            try:
                stats = await self.stat(at)
            except FileNotFoundError:
                if must_exist:
                    raise ValidationError("File does not exist", self.ERROR_CODES["exists"])
                logger.debug(f"FilePath.{self.name}: {value!r} not found, skipping size check")
                return value

            if max_size and stats.st_size > max_size:
                raise ValidationError(
                    f"File size ({stats.st_size / 1024 / 1024:.1f} mb) exceeds the limit allowed "
                    f"({max_size / 1024 / 1024:.1f} mb)",
                    self.ERROR_CODES["max_file_size"],
                )
        return value
