"""StateContainer — the product of ``build()``.

A StateContainer is a frozen configuration plus a compiled reducer.  It
holds no live state itself; live state lives in stores, created either:

    - inside a provider block:

        with my_state.provide(default_state=...) as scope:
            state, dispatch, helpers = my_state.use()

    - or standalone, for explicit context passing:

        store = my_state.create_store()

Each ``build()`` produces a separate StateContainer with its own scope
stack, so scopes of two builds never see each other.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, TypeVar

from pydantic import BaseModel, Field, field_validator

from state_container.domain.enums import DraftStrategy
from state_container.domain.registry import ActionRegistry
from state_container.engine.reducer import Reducer
from state_container.errors import ContainerConfigError
from state_container.store.container_store import ContainerStore
from state_container.store.scope import ContainerContext, ContainerScope, ScopeStack

logger = logging.getLogger(__name__)

S = TypeVar("S")


class ContainerConfig(BaseModel):
    """Accumulated builder configuration.  Immutable; each stage makes a new one."""

    name: str = Field(..., min_length=1, max_length=128)
    initial_state: Any = None
    actions: Any = None
    helper_factory: Callable[..., Any] | None = None
    override_rule: Callable[..., Any] | None = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @field_validator("initial_state")
    @classmethod
    def state_must_be_structured(cls, v: Any) -> Any:
        if v is not None and not (type(v) is dict or isinstance(v, BaseModel)):
            raise ValueError(
                f"state must be a dict or a pydantic model, got {type(v).__name__}"
            )
        return v

    @field_validator("actions")
    @classmethod
    def actions_must_be_registry(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, ActionRegistry):
            raise ValueError(f"actions must be an ActionRegistry, got {type(v).__name__}")
        return v


class StateContainer(Generic[S]):
    """A built container: configuration, reducer, and scope guard.

    Args:
        config: Complete builder configuration (state and actions set).
        strategy: Working-copy strategy used by this container's reducer.
    """

    def __init__(self, config: ContainerConfig, strategy: DraftStrategy) -> None:
        if config.initial_state is None or config.actions is None:
            raise ContainerConfigError(
                f"Container {config.name!r} needs both state and actions before build"
            )
        self._config = config
        self._reducer: Reducer[S] = Reducer(
            config.actions,
            strategy=strategy,
            override_rule=config.override_rule,
        )
        self._scopes = ScopeStack(config.name)

    def __repr__(self) -> str:
        return f"StateContainer({self.name!r}, actions={self.action_names})"

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def initial_state(self) -> S:
        return self._config.initial_state

    @property
    def action_names(self) -> list[str]:
        return self._reducer.registry.names

    @property
    def strategy(self) -> DraftStrategy:
        return self._reducer.strategy

    @property
    def reducer(self) -> Reducer[S]:
        return self._reducer

    # ── Stores ───────────────────────────────────────────────────────────

    def create_store(self, default_state: S | None = None) -> ContainerStore[S]:
        """Create a standalone store, optionally seeded with a default state."""
        store: ContainerStore[S] = ContainerStore(
            self._config.name,
            self._config.initial_state,
            self._reducer,
            helper_factory=self._config.helper_factory,
        )
        if default_state is not None:
            store.apply_default_state(default_state)
        logger.debug(
            "Created store for %s (default_state=%s)",
            self.name,
            "supplied" if default_state is not None else "none",
        )
        return store

    @contextmanager
    def provide(self, default_state: S | None = None) -> Iterator[ContainerScope[S]]:
        """Open a scope with a fresh store for the duration of the block."""
        scope: ContainerScope[S] = ContainerScope(self.create_store(default_state))
        with self._scopes.enter(scope):
            yield scope

    # ── Scope guard ──────────────────────────────────────────────────────

    def use(self) -> ContainerContext:
        """Return ``(state, dispatch, helpers)`` of the innermost scope.

        Raises:
            ContainerScopeError: If called outside every ``provide()`` block.
        """
        return self._scopes.current().context()

    def current_store(self) -> ContainerStore[S]:
        """The store of the innermost scope (same guard as ``use()``)."""
        return self._scopes.current().store

    def current_scope(self) -> ContainerScope[S]:
        return self._scopes.current()

    @property
    def in_scope(self) -> bool:
        return self._scopes.depth > 0
