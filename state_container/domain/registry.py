"""Action Registry — the immutable map from action name to handler spec.

The registry is built once, when a container's actions are declared, and
never changes afterwards.  Every envelope that reaches a reducer is built
here, so an action that is not registered can never be dispatched.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Iterator

from state_container.domain.action import OVERRIDE_DEFAULT_STATE, ActionEnvelope, ActionSpec
from state_container.errors import ContainerConfigError, UnknownActionError

logger = logging.getLogger(__name__)


class ActionRegistry(Mapping[str, ActionSpec]):
    """Read-only registry of action specs.

    Usage:
        registry = ActionRegistry({
            "RESET_NUMS": lambda: {"nums": []},
            "ADD_NUM": add_num,
        })

        envelope = registry.envelope("ADD_NUM", (5,))
    """

    __slots__ = ("_specs",)

    def __init__(self, handlers: Mapping[str, Callable[..., Any]]) -> None:
        if not isinstance(handlers, Mapping):
            raise ContainerConfigError(
                f"Action handlers must be a mapping of name to callable, "
                f"got {type(handlers).__name__}"
            )
        if not handlers:
            raise ContainerConfigError("At least one action handler is required")

        specs: dict[str, ActionSpec] = {}
        for name, handler in handlers.items():
            if not isinstance(name, str) or not name:
                raise ContainerConfigError(f"Action names must be non-empty strings, got {name!r}")
            if name == OVERRIDE_DEFAULT_STATE:
                raise ContainerConfigError(f"Action name {name!r} is reserved")
            specs[name] = ActionSpec.from_handler(name, handler)
            logger.debug(
                "Registered action %s (arity=%d, payload_required=%s)",
                name,
                specs[name].arity,
                specs[name].payload_required,
            )
        self._specs = MappingProxyType(specs)

    def __getitem__(self, name: str) -> ActionSpec:
        return self._specs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"ActionRegistry({list(self._specs)})"

    @property
    def names(self) -> list[str]:
        """Registered action names in declaration order."""
        return list(self._specs)

    def spec(self, name: str) -> ActionSpec:
        """Look up *name*, failing loudly if it was never registered."""
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownActionError(name, self.names)
        return spec

    def envelope(self, name: str, payload: tuple[Any, ...]) -> ActionEnvelope:
        """Build a checked envelope for dispatch(name, *payload).

        Raises:
            UnknownActionError: If *name* is not registered.
            PayloadError: If the payload does not fit the handler.
        """
        return self.spec(name).envelope(payload)
