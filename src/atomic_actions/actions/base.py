from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..core.Exceptions import (
    ORIGIN_NESTED,
    ORIGIN_TOP_LEVEL,
    ActionError,
    DuplicateInputName,
    error_origin,
)
from ..core.Interface import InputInterface, parse_interface
from ..core.Registry import Registry
from ..core.sentinels import NO_VAL
from ..inputs.base import ExtendedValidation, Input
from ..sessions.base import Session

logger = logging.getLogger(__name__)

__all__ = ["Action", "ActionState", "SIGNATURE_SEPARATOR"]

SIGNATURE_SEPARATOR = ";\n"


class ActionState(str, Enum):
    """Per-execution lifecycle state."""
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    PERFORMING = "PERFORMING"
    FINALIZING = "FINALIZING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


# ───────────────────────────────────────────────────────────────────────────────
# Action primitive
# ───────────────────────────────────────────────────────────────────────────────
class Action(ABC):
    """
    Base template-method primitive for units of work.

    An action owns an ordered set of :class:`~atomic_actions.inputs.Input` objects and
    runs them through a fixed lifecycle:

    - Validation: every input is locked read-only and validated concurrently.
    - Perform: subclasses implement ``_perform(data)`` where ``data`` maps input
      names to values.
    - Finalize: ``_finalize(err, value)`` always runs after perform and decides the
      outcome. The default re-raises ``err`` or returns ``value``.

    Inputs are declared in :meth:`declare_inputs`::

        class Multiply(Action):
            def declare_inputs(self):
                self.create_input("a: numeric")
                self.create_input("b: numeric")

            async def _perform(self, data):
                return data["a"] * data["b"]

    Signature
    ---------
    :meth:`id` hashes the registration name with the serialized input values
    (SHA-256). Actions created through :meth:`Registry.create_action` carry their
    registration name. Directly instantiated actions fall back to the class name,
    which is not a reliable identity, so their results are never cached.

    Sessions
    --------
    Actions created through :meth:`create_action` share the parent's session, and so
    its autofill values, result cache and wrapup queue.
    """

    def __init__(self, registry: Optional[Registry] = None, session: Optional[Session] = None) -> None:
        if registry is not None and not isinstance(registry, Registry):
            raise TypeError("registry must be a Registry or None")

        self._registry = registry if registry is not None else Registry.with_bundled_inputs()
        self._inputs: "OrderedDict[str, Input]" = OrderedDict()
        self._metadata: Dict[str, Dict[str, Any]] = {"action": {}, "result": {}}
        self._session: Optional[Session] = None
        self._state = ActionState.IDLE
        # Overlapping executions share one lock; the outermost one restores the flags
        self._lock_depth = 0
        self._read_only_flags: Dict[str, bool] = {}

        self.declare_inputs()

        if session is not None:
            self.session = session

    def declare_inputs(self) -> None:
        """Hook for subclasses to create their inputs."""

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @session.setter
    def session(self, value: Optional[Session]) -> None:
        """Attach a session and seed inputs declaring an ``autofill`` key from it."""
        if value is not None and not isinstance(value, Session):
            raise TypeError("session must be a Session or None")
        self._session = value
        if value is not None:
            for input_obj in self._inputs.values():
                self._apply_autofill(input_obj)

    @property
    def metadata(self) -> Dict[str, Dict[str, Any]]:
        return self._metadata

    @property
    def registered_name(self) -> Optional[str]:
        return self._metadata["action"].get("registered_name")

    @property
    def origin(self) -> Optional[str]:
        return self._metadata["action"].get("origin")

    @property
    def is_cacheable(self) -> bool:
        """Whether results may be memoized in the session result cache."""
        return False

    @property
    def state(self) -> ActionState:
        return self._state

    # ------------------------------------------------------------------ #
    # Inputs
    # ------------------------------------------------------------------ #
    def create_input(
        self,
        interface: str | InputInterface,
        properties: Optional[Mapping[str, Any]] = None,
        extended_validation: Optional[ExtendedValidation] = None,
    ) -> Input:
        """Create an input from its ``name[?]: type[[]]`` interface and add it."""
        if not isinstance(interface, InputInterface):
            interface = parse_interface(interface)
        if interface.name in self._inputs:
            raise DuplicateInputName(f"Input {interface.name!r} already exists in {type(self).__name__}")
        return self.add_input(self._registry.create_input(interface, properties, extended_validation))

    def add_input(self, input_obj: Input) -> Input:
        if not isinstance(input_obj, Input):
            raise TypeError(f"add_input expects an Input, got {type(input_obj)!r}")
        if input_obj.name in self._inputs:
            raise DuplicateInputName(f"Input {input_obj.name!r} already exists in {type(self).__name__}")
        self._inputs[input_obj.name] = input_obj
        if self._session is not None:
            self._apply_autofill(input_obj)
        return input_obj

    def input(self, name: str, default: Any = None) -> Any:
        if not isinstance(name, str):
            raise TypeError("input name must be a string")
        return self._inputs.get(name, default)

    @property
    def input_names(self) -> List[str]:
        return list(self._inputs)

    def _apply_autofill(self, input_obj: Input) -> None:
        key = input_obj.get_property("autofill")
        if key is not None and key in self._session.autofill:
            input_obj.value = self._session.autofill[key]

    # ------------------------------------------------------------------ #
    # Public API (Template Method)
    # ------------------------------------------------------------------ #
    async def execute(self, use_cache: bool = True) -> Any:
        """
        Validate the inputs, perform the action and finalize it.

        When ``use_cache`` is true and the action is cacheable, a result stored in the
        session under the same signature is returned without validating or
        performing anything.
        """
        cacheable = self._can_cache()
        signature: Optional[str] = None

        # 1) cached result
        if use_cache and cacheable:
            try:
                signature = await self.id()
            except Exception as err:
                self._state = ActionState.FAILED
                self._process_error(err)
                raise
            cached = self._session.result_cache.get(signature, NO_VAL)
            if cached is not NO_VAL:
                logger.debug(f"Action.{self._label()} cache hit {signature[:12]}")
                return cached

        logger.info(f"[{self._label()}.execute started]")

        # 2) lock inputs
        if self._lock_depth == 0:
            self._read_only_flags = {name: input_obj.read_only for name, input_obj in self._inputs.items()}
            for input_obj in self._inputs.values():
                input_obj.read_only = True
        self._lock_depth += 1
        data = {name: input_obj.value for name, input_obj in self._inputs.items()}

        try:
            # 3) validate concurrently, the first failure is surfaced
            self._state = ActionState.VALIDATING
            logger.debug(f"Action.{self._label()} validating {len(self._inputs)} input(s)")
            try:
                await asyncio.gather(*(input_obj.validate() for input_obj in self._inputs.values()))
            except Exception as err:
                self._state = ActionState.FAILED
                self._process_error(err)
                raise

            # 4) perform, holding the error for finalize
            self._state = ActionState.PERFORMING
            result: Any = None
            error: Optional[BaseException] = None
            try:
                result = await self._perform(data)
            except Exception as err:
                logger.debug(f"Action.{self._label()}._perform raised {type(err).__name__}")
                error = err

            # 5) finalize decides the outcome
            self._state = ActionState.FINALIZING
            try:
                result = await self._finalize(error, result)
            except Exception as err:
                self._state = ActionState.FAILED
                self._process_error(err)
                raise
        finally:
            self._lock_depth -= 1
            if self._lock_depth == 0:
                for name, flag in self._read_only_flags.items():
                    self._inputs[name].read_only = flag
                self._read_only_flags = {}

        # 6) store the result
        if cacheable:
            if signature is None:
                signature = await self.id()
            self._session.result_cache.set(signature, result)

        self._state = ActionState.SUCCEEDED
        logger.info(f"[{self._label()}.execute finished]")
        return result

    @abstractmethod
    async def _perform(self, data: Mapping[str, Any]) -> Any:
        """Subclass-defined work step; ``data`` maps input names to values."""
        raise NotImplementedError

    async def _finalize(self, err: Optional[BaseException], value: Any) -> Any:
        """Decide the outcome of the execution. Runs even when ``_perform`` failed."""
        if err is not None:
            raise err
        return value

    def _can_cache(self) -> bool:
        if not self.is_cacheable:
            return False
        if self._session is None:
            logger.debug(f"Action.{self._label()} has no session, result cache skipped")
            return False
        if self.registered_name is None:
            logger.debug(f"Action.{self._label()} was not created through a registry, result cache skipped")
            return False
        return True

    # ------------------------------------------------------------------ #
    # Nesting
    # ------------------------------------------------------------------ #
    def create_action(self, name: str) -> "Action":
        """Create a registered action that shares this action's session."""
        return self._registry.create_action(name, self._session, nested=True)

    # ------------------------------------------------------------------ #
    # Signature & serialization
    # ------------------------------------------------------------------ #
    async def _serialize_inputs(self) -> Dict[str, str]:
        names = list(self._inputs)
        values = await asyncio.gather(*(self._inputs[name].serialize_value() for name in names))
        return dict(zip(names, values))

    def _signature(self, serialized: Mapping[str, str]) -> str:
        parts = [self.registered_name or type(self).__name__, SIGNATURE_SEPARATOR]
        parts.append(f"{len(serialized)}{SIGNATURE_SEPARATOR}")
        for name, value in serialized.items():
            parts.append(f"{name}: {value}{SIGNATURE_SEPARATOR}")
        return hashlib.sha256("".join(parts).encode("utf-8")).hexdigest()

    async def id(self) -> str:
        """SHA-256 hex signature of the registration name and serialized inputs."""
        return self._signature(await self._serialize_inputs())

    async def to_dict(self, autofill: bool = True) -> Dict[str, Any]:
        """Snapshot of the action: signature, serialized inputs, metadata and autofill.

        ``metadata.action.registered_name`` names the registered action type. Loaders
        also accept it under ``name`` or ``registeredName``.
        """
        serialized = await self._serialize_inputs()
        return {
            "id": self._signature(serialized),
            "inputs": serialized,
            "metadata": {"action": dict(self._metadata["action"])},
            "session": {
                "autofill": dict(self._session.autofill) if autofill and self._session is not None else {},
            },
        }

    async def to_json(self, autofill: bool = True) -> str:
        """Serialize the action so it can be executed later (see :meth:`from_json`)."""
        if self.registered_name is None:
            logger.debug(f"Action.{self._label()} serialized without a registered name")
        return json.dumps(await self.to_dict(autofill))

    def from_dict(self, data: Mapping[str, Any], autofill: bool = True) -> "Action":
        """Load serialized input values (and optionally session autofill) into this action."""
        if not isinstance(data, Mapping):
            raise TypeError("Action.from_dict expects a mapping")

        if autofill and self._session is not None:
            self._session.autofill.update(data.get("session", {}).get("autofill", {}) or {})

        for name, text in (data.get("inputs") or {}).items():
            input_obj = self.input(name)
            if input_obj is None:
                raise ActionError(f"Invalid input {name!r} for {type(self).__name__}")
            input_obj.parse_value("" if text is None else text)
        return self

    def from_json(self, text: str, autofill: bool = True) -> "Action":
        if not isinstance(text, str):
            raise TypeError("Action.from_json expects a string")
        return self.from_dict(json.loads(text), autofill)

    # ------------------------------------------------------------------ #
    # Errors
    # ------------------------------------------------------------------ #
    def _label(self) -> str:
        if self.registered_name:
            return f"{type(self).__name__} ({self.registered_name})"
        return type(self).__name__

    def _process_error(self, err: BaseException) -> BaseException:
        """Stamp the origin (first frame only) and prepend this action to the trace."""
        if error_origin(err) is None:
            err.origin = ORIGIN_NESTED if self.origin == ORIGIN_NESTED else ORIGIN_TOP_LEVEL
        if isinstance(err, ActionError):
            err.trace.insert(0, self._label())
        else:
            err.action_trace = [self._label(), *getattr(err, "action_trace", [])]
        return err

    def __repr__(self) -> str:
        return f"<{self._label()} inputs={self.input_names}>"
