"""Container scopes and the context-local stack that finds them.

Every StateContainer owns one ScopeStack.  Entering a scope pushes it onto
a ``contextvars.ContextVar``; leaving pops it.  Lookups see the innermost
scope of the *current* context only, so:

    - nested scopes of the same container shadow outer ones,
    - asyncio tasks see the scopes that were active when they were
      created, and never scopes entered by sibling tasks,
    - unrelated containers never see each other.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generic, Iterator, NamedTuple, TypeVar
from uuid import UUID

from state_container.errors import ContainerScopeError
from state_container.foundation.identifiers import new_id
from state_container.store.container_store import ContainerStore, Dispatch, HelperMap

logger = logging.getLogger(__name__)

S = TypeVar("S")


class ContainerContext(NamedTuple):
    """What a consumer gets from ``StateContainer.use()``."""

    state: Any
    dispatch: Dispatch
    helpers: HelperMap


class ContainerScope(Generic[S]):
    """One live store bound to a provider block."""

    __slots__ = ("scope_id", "store")

    def __init__(self, store: ContainerStore[S]) -> None:
        self.scope_id: UUID = new_id()
        self.store = store

    @property
    def container_name(self) -> str:
        return self.store.name

    @property
    def state(self) -> S:
        return self.store.get_state()

    def context(self) -> ContainerContext:
        return ContainerContext(
            state=self.store.get_state(),
            dispatch=self.store.dispatch,
            helpers=self.store.helpers,
        )

    def sync_default_state(self, default: S) -> bool:
        """Re-supply the external default; a no-op unless it is a new object."""
        return self.store.apply_default_state(default)

    def close(self) -> None:
        self.store.close()


class ScopeStack:
    """Context-local stack of active scopes for one container."""

    __slots__ = ("_container_name", "_active")

    def __init__(self, container_name: str) -> None:
        self._container_name = container_name
        self._active: ContextVar[tuple[ContainerScope, ...]] = ContextVar(
            f"state_container:{container_name}", default=()
        )

    @contextmanager
    def enter(self, scope: ContainerScope) -> Iterator[ContainerScope]:
        """Make *scope* the innermost active scope for the block."""
        token = self._active.set(self._active.get() + (scope,))
        logger.info("Entered scope %s of %s", scope.scope_id, self._container_name)
        try:
            yield scope
        finally:
            self._active.reset(token)
            scope.close()
            logger.info("Left scope %s of %s", scope.scope_id, self._container_name)

    @property
    def depth(self) -> int:
        return len(self._active.get())

    def current(self) -> ContainerScope:
        """Innermost active scope.

        Raises:
            ContainerScopeError: If no scope is active in this context.
        """
        active = self._active.get()
        if not active:
            raise ContainerScopeError(self._container_name)
        return active[-1]
