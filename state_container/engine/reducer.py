"""Reducer — turns (state, envelope) into the next state.

Transition rules:
    1. The reserved OVERRIDE_DEFAULT_STATE kind pushes an external default
       state in.  With an override rule, the rule runs like a handler
       (draft edits and/or returned fields).  Without one, the default
       becomes the next state verbatim, provided it has the same top-level
       keys as the current state.
    2. Any other name must be registered; an unknown name is a defect in
       the caller and raises UnknownActionError.
    3. The handler works on a copy-on-write draft (DRAFT) or a deep clone
       (CLONE).  Its return value is shallow-merged over top-level fields.
    4. No effective change returns the previous state object itself.

The reducer holds no state of its own.  A handler exception abandons the
transition: the draft or clone is discarded and the exception propagates.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, TypeVar

from state_container.domain.action import OVERRIDE_DEFAULT_STATE, ActionEnvelope
from state_container.domain.enums import DraftStrategy
from state_container.domain.registry import ActionRegistry
from state_container.engine.clone import clone_and_merge
from state_container.engine.draft import ModelDraft, produce
from state_container.engine.merge import check_shape, check_update_keys, update_fields

logger = logging.getLogger(__name__)

S = TypeVar("S")

OverrideRule = Callable[[Any, Any], Any]


class Reducer(Generic[S]):
    """Pure transition function compiled from an action registry.

    Args:
        registry: The container's action registry.
        strategy: Working-copy strategy for handlers and the override rule.
        override_rule: Optional ``rule(current_state, new_default)``.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        strategy: DraftStrategy = DraftStrategy.DRAFT,
        override_rule: OverrideRule | None = None,
    ) -> None:
        self._registry = registry
        self._strategy = DraftStrategy(strategy)
        self._override_rule = override_rule

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    @property
    def strategy(self) -> DraftStrategy:
        return self._strategy

    def reduce(self, state: S, envelope: ActionEnvelope) -> S:
        if envelope.name == OVERRIDE_DEFAULT_STATE:
            return self._override(state, envelope.payload)

        spec = self._registry.spec(envelope.name)
        return self._transition(
            envelope.name, state, lambda working: spec.invoke(working, envelope)
        )

    # ── Internals ────────────────────────────────────────────────────────

    def _override(self, state: S, default: S) -> S:
        if self._override_rule is None:
            check_shape(OVERRIDE_DEFAULT_STATE, state, default)
            logger.debug("Default state replaces current state verbatim")
            return default
        rule = self._override_rule
        return self._transition(
            OVERRIDE_DEFAULT_STATE, state, lambda working: rule(working, default)
        )

    def _transition(self, action: str, state: S, step: Callable[[Any], Any]) -> S:
        if self._strategy is DraftStrategy.CLONE:
            next_state = clone_and_merge(action, state, step)
        else:
            next_state = produce(state, lambda draft: _merge_into_draft(action, state, draft, step(draft)))
        check_shape(action, state, next_state)
        return next_state


def _merge_into_draft(action: str, state: Any, draft: Any, update: Any) -> None:
    """Assign a handler's returned fields onto its own draft."""
    if update is None or update is draft:
        return
    fields = update_fields(action, update)
    check_update_keys(action, state, fields)
    for key, value in fields.items():
        if isinstance(draft, ModelDraft):
            setattr(draft, key, value)
        else:
            draft[key] = value
