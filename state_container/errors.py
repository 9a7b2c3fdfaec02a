"""Exception taxonomy for state containers.

Three families matter to callers:
    - Configuration errors: the container was declared or accessed wrongly
      (bad builder stage order, access outside a scope).  Fix the call site.
    - Programming errors: a dispatch names an unknown action or carries a
      payload that does not match the handler.  Fix the caller.
    - Transition errors: a handler produced something that cannot become
      the next state.  The transition is abandoned and state is unchanged.

Exceptions raised *by* action handlers are never wrapped; they propagate
to the ``dispatch`` caller unchanged.
"""

from __future__ import annotations


class ContainerError(Exception):
    """Base class for every error raised by this package."""


class ContainerConfigError(ContainerError):
    """Raised when a container is declared with an invalid configuration."""


class ContainerScopeError(ContainerConfigError):
    """Raised when a container is accessed with no active scope."""

    def __init__(self, container_name: str) -> None:
        self.container_name = container_name
        super().__init__(
            f"container {container_name!r} was accessed outside its owning scope"
        )


class UnknownActionError(ContainerError, LookupError):
    """Raised when dispatch names an action that was never registered."""

    def __init__(self, action: str, known: list[str]) -> None:
        self.action = action
        self.known = known
        super().__init__(
            f"Unknown action {action!r} (registered: {', '.join(known) or 'none'})"
        )


class PayloadError(ContainerError, TypeError):
    """Raised when a dispatch payload is missing, unexpected or mistyped."""

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"Action {action!r}: {reason}")


class HandlerReturnError(ContainerError, TypeError):
    """Raised when a handler returns something other than None or a partial state."""


class StateShapeError(ContainerError):
    """Raised when a transition would add or remove top-level state keys."""


class ReentrantDispatchError(ContainerError, RuntimeError):
    """Raised when a handler dispatches into the store it is running on."""


class DraftRevokedError(ContainerError, RuntimeError):
    """Raised when a draft is used after its ``produce`` call has finished."""
