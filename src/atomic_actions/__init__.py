from importlib.metadata import PackageNotFoundError, version

try:  # populated when installed or when a wheel is built
    __version__ = version("atomic-actions")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .core import Registry, Settings, NO_VAL
from .inputs import Input
from .sessions import Session
from .actions import Action, ActionState
from .Factory import build_registry, load_action, create_action_from_json

__all__ = [
    "NO_VAL",
    "Registry",
    "Settings",
    "Input",
    "Session",
    "Action",
    "ActionState",
    "build_registry",
    "load_action",
    "create_action_from_json",
    ]
