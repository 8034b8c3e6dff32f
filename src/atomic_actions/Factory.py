import json
import logging
from typing import Any, Mapping, Optional

from .actions import Action, ChecksumFile, CopyFile, DeleteFile, MoveFile
from .core.Exceptions import SignatureUnavailable
from .core.Registry import Registry
from .sessions import Session

logger = logging.getLogger(__name__)

# Metadata keys naming the registered action type, in lookup order
REGISTERED_NAME_KEYS = ("registered_name", "name", "registeredName")

__all__ = [
    "build_registry",
    "load_action",
    "create_action_from_json",
]

BUNDLED_ACTIONS = {
    "file.checksum": ChecksumFile,
    "file.copy": CopyFile,
    "file.delete": DeleteFile,
    "file.move": MoveFile,
}


def build_registry() -> Registry:
    """A registry holding the bundled input types and actions."""
    registry = Registry.with_bundled_inputs()
    for name, action_cls in BUNDLED_ACTIONS.items():
        registry.register_action(action_cls, name)
    return registry


def load_action(
    data: Mapping[str, Any],
    registry: Registry,
    session: Optional[Session] = None,
    autofill: bool = True,
) -> Action:
    """Reconstruct an Action from a dict snapshot produced by ``Action.to_dict``."""
    if not isinstance(data, Mapping):
        raise TypeError("load_action expects a mapping")
    action_meta = (data.get("metadata") or {}).get("action") or {}
    registered_name = next(
        (action_meta[key] for key in REGISTERED_NAME_KEYS if action_meta.get(key)),
        None,
    )
    if not isinstance(registered_name, str) or not registered_name:
        raise SignatureUnavailable(
            "Cannot reconstruct Action: the snapshot carries no registered name "
            "(only actions created through a registry can be serialized and loaded)"
        )

    action = registry.create_action(registered_name, session)
    action.from_dict(data, autofill)
    logger.debug(f"load_action: rebuilt {registered_name!r} with inputs {action.input_names}")
    return action


def create_action_from_json(
    serialized: str,
    registry: Registry,
    session: Optional[Session] = None,
    autofill: bool = True,
) -> Action:
    """Reconstruct an Action from the JSON text produced by ``Action.to_json``."""
    if not isinstance(serialized, str):
        raise TypeError("create_action_from_json expects a string")
    return load_action(json.loads(serialized), registry, session, autofill)
