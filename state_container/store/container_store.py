"""Container Store — one live state value, its dispatch, and its subscribers.

Design notes:
    - dispatch() is synchronous and atomic.  The reducer runs to
      completion, the snapshot is swapped, and every subscriber is
      notified before dispatch() returns.  There is no batching across
      separate dispatch calls.
    - Subscribers are only notified when the reducer returns a different
      object than the current state.
    - A handler that dispatches into the store it is running on gets a
      ReentrantDispatchError.  Subscribers may dispatch freely; their
      dispatch starts a new, complete transition.
    - Helpers are built once per store from the configured factory, so
      their identity is stable for the store's lifetime.
    - Closing a store drops its subscribers.  Late dispatches (e.g. from
      a helper still awaiting something) still apply, and go unobserved.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from typing import Any, Callable, Generic, Iterator, TypeVar

from state_container.domain.action import OVERRIDE_DEFAULT_STATE, ActionEnvelope
from state_container.engine.reducer import Reducer
from state_container.errors import ContainerConfigError, ReentrantDispatchError

logger = logging.getLogger(__name__)

S = TypeVar("S")

Listener = Callable[[Any], None]
Dispatch = Callable[..., None]
HelperFactory = Callable[..., Mapping[str, Callable[..., Any]]]

_NO_DEFAULT: Any = object()


class ActionStats:
    """Per-action dispatch statistics for observability."""

    __slots__ = ("action_name", "dispatched_count", "changed_count", "failed_count")

    def __init__(self, action_name: str) -> None:
        self.action_name = action_name
        self.dispatched_count: int = 0
        self.changed_count: int = 0
        self.failed_count: int = 0

    def to_dict(self) -> dict:
        return {
            "action_name": self.action_name,
            "dispatched_count": self.dispatched_count,
            "changed_count": self.changed_count,
            "failed_count": self.failed_count,
        }


class HelperMap(Mapping[str, Callable[..., Any]]):
    """Read-only helper mapping that also allows ``helpers.name`` access."""

    __slots__ = ("_helpers",)

    def __init__(self, helpers: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._helpers: dict[str, Callable[..., Any]] = dict(helpers or {})

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self._helpers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._helpers)

    def __len__(self) -> int:
        return len(self._helpers)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._helpers[name]
        except KeyError:
            raise AttributeError(f"No helper named {name!r}") from None

    def __repr__(self) -> str:
        return f"HelperMap({list(self._helpers)})"


class ContainerStore(Generic[S]):
    """Owns the current state of one container instance.

    Args:
        name: Container name, used in log lines and error messages.
        initial_state: Starting state value.
        reducer: Compiled reducer for this container's configuration.
        helper_factory: Optional ``factory(dispatch)`` or
                        ``factory(dispatch, get_state)`` returning helpers.
    """

    def __init__(
        self,
        name: str,
        initial_state: S,
        reducer: Reducer[S],
        helper_factory: HelperFactory | None = None,
    ) -> None:
        self._name = name
        self._state = initial_state
        self._reducer = reducer
        self._listeners: list[Listener] = []
        self._reducing = False
        self._closed = False
        self._last_default: Any = _NO_DEFAULT
        self._stats: dict[str, ActionStats] = {
            action: ActionStats(action) for action in reducer.registry.names
        }
        self._helpers = self._build_helpers(helper_factory)

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> S:
        return self._state

    def get_state(self) -> S:
        """Current snapshot; never a half-applied transition."""
        return self._state

    @property
    def helpers(self) -> HelperMap:
        return self._helpers

    @property
    def closed(self) -> bool:
        return self._closed

    def dispatch(self, action: str, *payload: Any) -> None:
        """Apply *action* with an optional single payload.

        Raises:
            UnknownActionError: If *action* is not registered.
            PayloadError: If the payload does not fit the handler.
            ReentrantDispatchError: If called from inside a handler.
        """
        envelope = self._reducer.registry.envelope(action, payload)
        self._apply(envelope)

    def apply_default_state(self, default: S) -> bool:
        """Push an externally supplied default state into the store.

        The override transition runs the first time and afterwards only
        when *default* is a different object than the last one supplied.

        Returns:
            True if an override transition ran.
        """
        if default is self._last_default:
            return False
        if not isinstance(default, type(self._state)):
            raise ContainerConfigError(
                f"Default state for {self._name!r} must be a "
                f"{type(self._state).__name__}, got {type(default).__name__}"
            )
        logger.debug("Applying new default state to %s", self._name)
        self._apply(
            ActionEnvelope(name=OVERRIDE_DEFAULT_STATE, payload=default, has_payload=True)
        )
        self._last_default = default
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for new snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    @property
    def stats(self) -> list[dict]:
        """Per-action stats for diagnostics."""
        return [s.to_dict() for s in self._stats.values()]

    def close(self) -> None:
        """Drop all subscribers.  Later dispatches still apply, unobserved."""
        self._listeners.clear()
        self._closed = True

    # ── Internals ────────────────────────────────────────────────────────

    def _build_helpers(self, factory: HelperFactory | None) -> HelperMap:
        if factory is None:
            return HelperMap()
        try:
            wants_state = len(inspect.signature(factory).parameters) >= 2
        except (TypeError, ValueError):
            wants_state = False
        helpers = factory(self.dispatch, self.get_state) if wants_state else factory(self.dispatch)
        if not isinstance(helpers, Mapping):
            raise ContainerConfigError(
                f"Helper factory for {self._name!r} must return a mapping, "
                f"got {type(helpers).__name__}"
            )
        for helper_name, helper in helpers.items():
            if not callable(helper):
                raise ContainerConfigError(
                    f"Helper {helper_name!r} of {self._name!r} is not callable"
                )
        return HelperMap(helpers)

    def _apply(self, envelope: ActionEnvelope) -> None:
        if self._reducing:
            raise ReentrantDispatchError(
                f"{self._name}: cannot dispatch {envelope.name!r} while a transition is running"
            )
        stats = self._stats.get(envelope.name)
        if stats is None:
            stats = self._stats[envelope.name] = ActionStats(envelope.name)
        stats.dispatched_count += 1

        previous = self._state
        self._reducing = True
        try:
            next_state = self._reducer.reduce(previous, envelope)
        except Exception as exc:
            stats.failed_count += 1
            logger.warning("%s: action %s failed: %s", self._name, envelope.name, exc)
            raise
        finally:
            self._reducing = False

        if next_state is previous:
            logger.debug("%s: action %s left state unchanged", self._name, envelope.name)
            return

        self._state = next_state
        stats.changed_count += 1
        if self._closed:
            logger.debug("%s: action %s applied after close", self._name, envelope.name)
            return
        logger.debug(
            "%s: action %s → notifying %d subscriber(s)",
            self._name,
            envelope.name,
            len(self._listeners),
        )
        for listener in list(self._listeners):
            listener(next_state)
