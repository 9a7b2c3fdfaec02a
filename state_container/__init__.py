"""state-container — typed, isolated state containers with checked dispatch.

    from state_container import create_container

    counter = (
        create_container("Counter")
        .state({"count": 0})
        .actions({"INCREMENT": lambda state, by: {"count": state["count"] + by}})
        .build()
    )

    with counter.provide():
        state, dispatch, helpers = counter.use()
        dispatch("INCREMENT", 2)
"""

from state_container.builder import (
    ActionsStage,
    ContainerBuilder,
    NamedStage,
    StatefulStage,
    create_container,
    create_state_container,
)
from state_container.container import ContainerConfig, StateContainer
from state_container.domain.action import OVERRIDE_DEFAULT_STATE, ActionEnvelope, ActionSpec
from state_container.domain.enums import DraftStrategy
from state_container.domain.registry import ActionRegistry
from state_container.engine.draft import is_draft, original, produce
from state_container.engine.reducer import Reducer
from state_container.errors import (
    ContainerConfigError,
    ContainerError,
    ContainerScopeError,
    DraftRevokedError,
    HandlerReturnError,
    PayloadError,
    ReentrantDispatchError,
    StateShapeError,
    UnknownActionError,
)
from state_container.store.container_store import ContainerStore, HelperMap
from state_container.store.scope import ContainerContext, ContainerScope

__all__ = [
    "ActionEnvelope",
    "ActionRegistry",
    "ActionSpec",
    "ActionsStage",
    "ContainerBuilder",
    "ContainerConfig",
    "ContainerConfigError",
    "ContainerContext",
    "ContainerError",
    "ContainerScope",
    "ContainerScopeError",
    "ContainerStore",
    "DraftRevokedError",
    "DraftStrategy",
    "HandlerReturnError",
    "HelperMap",
    "NamedStage",
    "OVERRIDE_DEFAULT_STATE",
    "PayloadError",
    "Reducer",
    "ReentrantDispatchError",
    "StateContainer",
    "StateShapeError",
    "StatefulStage",
    "UnknownActionError",
    "create_container",
    "create_state_container",
    "is_draft",
    "original",
    "produce",
]
