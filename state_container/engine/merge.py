"""Shallow merge rules shared by both transition strategies.

A handler may return None, a mapping of top-level fields, or a pydantic
model whose fields are taken as the update.  Merges are one level deep:
a replacement value for a field replaces it wholesale.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from state_container.errors import HandlerReturnError, StateShapeError


def update_fields(action: str, update: Any) -> dict[str, Any]:
    """Normalise a handler's return value into a dict of top-level fields."""
    if isinstance(update, BaseModel):
        return {name: getattr(update, name) for name in type(update).model_fields}
    if isinstance(update, Mapping):
        return dict(update.items())
    raise HandlerReturnError(
        f"Action {action!r} returned {type(update).__name__}; "
        f"expected None, a mapping of fields, or a model"
    )


def state_keys(state: Any) -> set[str]:
    """Top-level keys of a dict state, or declared fields of a model state."""
    if isinstance(state, BaseModel):
        return set(type(state).model_fields)
    return set(state.keys())


def check_update_keys(action: str, state: Any, fields: Mapping[str, Any]) -> None:
    unknown = sorted(set(fields) - state_keys(state))
    if unknown:
        raise StateShapeError(f"Action {action!r} tried to add unknown state keys: {unknown}")


def check_shape(action: str, before: Any, after: Any) -> None:
    """Reject transitions that change the top-level shape of the state."""
    if after is before:
        return
    if type(after) is not type(before):
        raise StateShapeError(
            f"Action {action!r} changed the state type from "
            f"{type(before).__name__} to {type(after).__name__}"
        )
    if isinstance(before, dict) and after.keys() != before.keys():
        added = sorted(after.keys() - before.keys())
        removed = sorted(before.keys() - after.keys())
        raise StateShapeError(
            f"Action {action!r} changed the state keys (added={added}, removed={removed})"
        )
