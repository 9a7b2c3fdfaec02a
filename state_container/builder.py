"""Staged builder — declares a container one step at a time.

Stage order:

    create_container(name)              -> NamedStage
        .state(initial)                 -> StatefulStage
        .actions(handlers)              -> ActionsStage
        [.helpers(factory)]             -> ActionsStage   (optional, once)
        [.on_default_state_changed(r)]  -> ActionsStage   (optional, once)
        .build()                        -> StateContainer

Every stage is immutable and only exposes the calls that are legal next.
Calling a known stage method out of order raises ContainerConfigError at
configuration time instead of failing later at dispatch time.  Nothing
runs until build(); build() may be called repeatedly, and every call
yields an independent StateContainer sharing the configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, ClassVar

from pydantic import ValidationError

from state_container.config import settings
from state_container.container import ContainerConfig, StateContainer
from state_container.domain.enums import DraftStrategy
from state_container.domain.registry import ActionRegistry
from state_container.errors import ContainerConfigError

logger = logging.getLogger(__name__)


def _evolve(config: ContainerConfig | None, **changes: Any) -> ContainerConfig:
    """Validate a new config with *changes* applied on top of *config*."""
    values: dict[str, Any] = {}
    if config is not None:
        values = {name: getattr(config, name) for name in ContainerConfig.model_fields}
    values.update(changes)
    try:
        return ContainerConfig(**values)
    except ValidationError as exc:
        name = values.get("name")
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ContainerConfigError(
            f"Invalid configuration for container {name!r}: {field}: {first['msg']}"
        ) from exc


class _Stage:
    """Shared behaviour: turn out-of-order stage calls into config errors."""

    __slots__ = ("_config",)

    # stage method name -> why it is not available at this stage
    _unavailable: ClassVar[Mapping[str, str]] = MappingProxyType({})

    def __init__(self, config: ContainerConfig) -> None:
        self._config = config

    def __getattr__(self, attr: str) -> Any:
        if attr.startswith("_"):
            raise AttributeError(attr)
        reason = type(self)._unavailable.get(attr)
        if reason is None:
            raise AttributeError(f"{type(self).__name__} has no attribute {attr!r}")
        raise ContainerConfigError(f"Container {self._config.name!r}: {attr}() {reason}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._config.name!r})"


class ContainerBuilder:
    """Entry stage: only ``name()`` is available."""

    __slots__ = ()

    def name(self, name: str) -> NamedStage:
        return NamedStage(_evolve(None, name=name))

    def __getattr__(self, attr: str) -> Any:
        if attr in ("state", "actions", "helpers", "on_default_state_changed", "build"):
            raise ContainerConfigError(f"{attr}() must follow name()")
        raise AttributeError(attr)


class NamedStage(_Stage):
    __slots__ = ()

    _unavailable = MappingProxyType({
        "name": "was already supplied",
        "actions": "must follow state()",
        "helpers": "must follow actions()",
        "on_default_state_changed": "must follow actions()",
        "build": "requires state() and actions() first",
    })

    def state(self, initial: Any) -> StatefulStage:
        """Declare the initial state (a dict or a pydantic model)."""
        if initial is None:
            raise ContainerConfigError(f"Container {self._config.name!r}: state() needs a value")
        return StatefulStage(_evolve(self._config, initial_state=initial))


class StatefulStage(_Stage):
    __slots__ = ()

    _unavailable = MappingProxyType({
        "name": "was already supplied",
        "state": "was already supplied",
        "helpers": "must follow actions()",
        "on_default_state_changed": "must follow actions()",
        "build": "requires actions() first",
    })

    def actions(self, handlers: Mapping[str, Callable[..., Any]]) -> ActionsStage:
        """Declare the action handlers, keyed by action name."""
        return ActionsStage(_evolve(self._config, actions=ActionRegistry(handlers)))


class ActionsStage(_Stage):
    __slots__ = ()

    _unavailable = MappingProxyType({
        "name": "was already supplied",
        "state": "was already supplied",
        "actions": "was already supplied",
    })

    def helpers(self, factory: Callable[..., Mapping[str, Callable[..., Any]]]) -> ActionsStage:
        """Declare helper operations: ``factory(dispatch[, get_state]) -> {name: fn}``."""
        if self._config.helper_factory is not None:
            raise ContainerConfigError(
                f"Container {self._config.name!r}: helpers() was already supplied"
            )
        return ActionsStage(_evolve(self._config, helper_factory=factory))

    def on_default_state_changed(self, rule: Callable[[Any, Any], Any]) -> ActionsStage:
        """Declare how an external default state is reconciled with live state."""
        if self._config.override_rule is not None:
            raise ContainerConfigError(
                f"Container {self._config.name!r}: on_default_state_changed() "
                f"was already supplied"
            )
        return ActionsStage(_evolve(self._config, override_rule=rule))

    def build(self, *, strategy: DraftStrategy | str | None = None) -> StateContainer:
        """Produce a new, independent StateContainer from this configuration."""
        try:
            chosen = DraftStrategy(strategy) if strategy is not None else settings.default_strategy
        except ValueError as exc:
            raise ContainerConfigError(
                f"Container {self._config.name!r}: unknown strategy {strategy!r}"
            ) from exc
        container: StateContainer = StateContainer(self._config, chosen)
        logger.info(
            "Built container %s (actions=%s, strategy=%s, helpers=%s, override_rule=%s)",
            container.name,
            container.action_names,
            chosen.value,
            self._config.helper_factory is not None,
            self._config.override_rule is not None,
        )
        return container


def create_container(name: str) -> NamedStage:
    """Start declaring a container called *name*."""
    return ContainerBuilder().name(name)


def create_state_container(
    *,
    name: str,
    initial_state: Any,
    action_handlers: Mapping[str, Callable[..., Any]],
    helpers: Callable[..., Mapping[str, Callable[..., Any]]] | None = None,
    on_default_state_changed: Callable[[Any, Any], Any] | None = None,
    strategy: DraftStrategy | str | None = None,
) -> StateContainer:
    """Declare and build a container in one call."""
    stage = create_container(name).state(initial_state).actions(action_handlers)
    if helpers is not None:
        stage = stage.helpers(helpers)
    if on_default_state_changed is not None:
        stage = stage.on_default_state_changed(on_default_state_changed)
    return stage.build(strategy=strategy)
