from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Type

from .Exceptions import ORIGIN_NESTED, ORIGIN_TOP_LEVEL, UnregisteredType
from .Interface import VALID_TYPE_NAME, InputInterface, parse_interface

if TYPE_CHECKING:  # pragma: no cover
    from ..actions.base import Action
    from ..inputs.base import ExtendedValidation, Input
    from ..sessions.base import Session

logger = logging.getLogger(__name__)

__all__ = ["Registry"]


def _normalize(name: str, kind: str) -> str:
    if not isinstance(name, str) or not VALID_TYPE_NAME.match(name):
        raise ValueError(f"Invalid {kind} registration name: {name!r}")
    return name.lower()


class Registry:
    """
    Name -> class tables for input types and actions.

    Registration names are case-insensitive. A dotted prefix can be used to group
    related actions (e.g. ``"file.delete"``). Registering an existing name replaces
    the previous class.

    Actions built through :meth:`create_action` are stamped with their registration
    name, which is what makes their content signature reliable.
    """

    def __init__(self) -> None:
        self._inputs: Dict[str, Type["Input"]] = {}
        self._actions: Dict[str, Type["Action"]] = {}

    @classmethod
    def with_bundled_inputs(cls) -> "Registry":
        """A registry holding only the bundled input types."""
        from ..inputs import AnyValue, Bool, FilePath, Numeric, Text

        registry = cls()
        for input_cls in (Text, Numeric, Bool, AnyValue, FilePath):
            registry.register_input(input_cls)
        return registry

    # ------------------------------------------------------------------ #
    # Inputs
    # ------------------------------------------------------------------ #
    def register_input(self, input_cls: Type["Input"], name: Optional[str] = None) -> str:
        from ..inputs.base import Input

        if not isinstance(input_cls, type) or not issubclass(input_cls, Input):
            raise TypeError(f"register_input expects an Input subclass, got {input_cls!r}")
        key = _normalize(name or input_cls.TYPE_NAME or input_cls.__name__, "input")
        if key in self._inputs:
            logger.debug(f"Registry: input type {key!r} replaced by {input_cls.__name__}")
        self._inputs[key] = input_cls
        return key

    def has_input(self, name: str) -> bool:
        return isinstance(name, str) and name.lower() in self._inputs

    def input_class(self, name: str) -> Type["Input"]:
        try:
            return self._inputs[name.lower()]
        except (KeyError, AttributeError):
            raise UnregisteredType(f"Input type {name!r} is not registered") from None

    @property
    def input_names(self) -> List[str]:
        return sorted(self._inputs)

    def create_input(
        self,
        interface: str | InputInterface,
        properties: Optional[Mapping[str, Any]] = None,
        extended_validation: Optional["ExtendedValidation"] = None,
    ) -> "Input":
        """Instantiate an input from its ``name[?]: type[[]]`` interface.

        Properties implied by the interface markers override the same keys in
        ``properties``.
        """
        if not isinstance(interface, InputInterface):
            interface = parse_interface(interface)
        input_cls = self.input_class(interface.type)
        merged = dict(properties or {})
        merged.update(interface.properties())
        return input_cls(interface.name, merged, extended_validation)

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #
    def register_action(self, action_cls: Type["Action"], name: Optional[str] = None) -> str:
        from ..actions.base import Action

        if not isinstance(action_cls, type) or not issubclass(action_cls, Action):
            raise TypeError(f"register_action expects an Action subclass, got {action_cls!r}")
        key = _normalize(name or action_cls.__name__, "action")
        if key in self._actions:
            logger.debug(f"Registry: action {key!r} replaced by {action_cls.__name__}")
        self._actions[key] = action_cls
        return key

    def has_action(self, name: str) -> bool:
        return isinstance(name, str) and name.lower() in self._actions

    def action_class(self, name: str) -> Type["Action"]:
        try:
            return self._actions[name.lower()]
        except (KeyError, AttributeError):
            raise UnregisteredType(f"Action {name!r} is not registered") from None

    @property
    def action_names(self) -> List[str]:
        return sorted(self._actions)

    def create_action(
        self,
        name: str,
        session: Optional["Session"] = None,
        *,
        nested: bool = False,
    ) -> "Action":
        """Instantiate a registered action bound to ``session`` (a new one if None)."""
        from ..sessions.base import Session

        action_cls = self.action_class(name)
        action = action_cls(registry=self)
        action.metadata["action"]["registered_name"] = name.lower()
        action.metadata["action"]["origin"] = ORIGIN_NESTED if nested else ORIGIN_TOP_LEVEL
        action.session = session if session is not None else Session()
        logger.debug(f"Registry: created {action_cls.__name__} ({name.lower()}), nested={nested}")
        return action

    def __repr__(self) -> str:
        return f"<Registry inputs={self.input_names} actions={self.action_names}>"
