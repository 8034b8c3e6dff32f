from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, List, Tuple, Union

from ..core.Exceptions import WrapupError

logger = logging.getLogger(__name__)

__all__ = ["WrapupQueue", "WrapupKind"]


class WrapupKind(str, Enum):
    ACTION = "action"
    CALLABLE = "callable"


def _is_action(item: Any) -> bool:
    return callable(getattr(item, "execute", None)) and callable(getattr(item, "id", None))


class WrapupQueue:
    """
    Deferred operations executed once when a session finalizes.

    Items are either actions (anything exposing async ``execute()`` and ``id()``) or
    zero-argument callables returning an awaitable or a plain value. Actions are
    deduplicated by their content signature unless appended with
    ``allow_duplicate=True``. The signature is computed when the queue is drained, so
    input values may still change after appending.
    """

    def __init__(self) -> None:
        # (kind, item, allow_duplicate)
        self._items: List[Tuple[WrapupKind, Any, bool]] = []
        self._draining = False

    def append(self, item: Union[Any, Callable[[], Any]], allow_duplicate: bool = False) -> None:
        if self._draining:
            raise WrapupError("Cannot append to the wrapup queue while it is being executed")
        if _is_action(item):
            self._items.append((WrapupKind.ACTION, item, allow_duplicate))
        elif callable(item):
            self._items.append((WrapupKind.CALLABLE, item, True))
        else:
            raise TypeError(f"Wrapup items must be actions or zero-argument callables, got {type(item)!r}")

    @property
    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        if self._draining:
            raise WrapupError("Cannot clear the wrapup queue while it is being executed")
        self._items.clear()

    async def contents(self, actions: bool = True, callables: bool = True) -> List[Any]:
        """Return the run list in append order, with duplicate actions removed."""
        result: List[Any] = []
        seen_ids: set = set()
        for kind, item, allow_duplicate in self._items:
            if kind is WrapupKind.ACTION:
                if not actions:
                    continue
                action_id = await item.id()
                if allow_duplicate or action_id not in seen_ids:
                    seen_ids.add(action_id)
                    result.append(item)
                else:
                    logger.debug(f"WrapupQueue: skipping duplicated action {action_id[:12]}")
            elif callables:
                result.append(item)
        return result

    async def execute(self) -> List[Any]:
        """Run every queued item concurrently; results follow the run list order."""
        self._draining = True
        try:
            run_list = await self.contents()
            logger.debug(f"WrapupQueue: executing {len(run_list)} item(s)")
            return list(await asyncio.gather(*(self._run(item) for item in run_list)))
        finally:
            self._draining = False

    @staticmethod
    async def _run(item: Any) -> Any:
        if _is_action(item):
            return await item.execute()
        outcome = item()
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome
