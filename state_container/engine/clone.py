"""Deep-clone transitions — the simple fallback to copy-on-write drafts.

The handler receives a full ``copy.deepcopy`` of the state and may mutate
it freely.  Its return value is shallow-merged onto the clone.  To give
the same observable results as the draft strategy, the clone is then
walked against the original:

    - a value the handler put in place (returned or assigned) is always
      a change, even when it compares equal to what it replaced,
    - a cloned container whose contents all map back to the original
      objects is swapped for the original,
    - an unchanged result collapses to the previous state itself.

Clones are recognised by identity through the deepcopy memo, never by
equality, so ``1`` replaced by ``1.0`` or a list replaced by an equal
new list is kept as written.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, TypeVar

from pydantic import BaseModel

from state_container.engine.merge import check_update_keys, update_fields

S = TypeVar("S")


def _children(value: Any) -> list[Any]:
    if type(value) is dict:
        return list(value.values())
    if type(value) in (list, tuple):
        return list(value)
    if isinstance(value, BaseModel):
        return [getattr(value, name) for name in type(value).model_fields]
    return []


def _origins(state: Any, memo: dict[int, Any]) -> dict[int, Any]:
    """Map ``id(clone)`` to the original object for every cloned value."""
    origins: dict[int, Any] = {}
    pending = [state]
    while pending:
        value = pending.pop()
        clone = memo.get(id(value))
        if clone is None or clone is value or id(clone) in origins:
            continue
        origins[id(clone)] = value
        pending.extend(_children(value))
    return origins


def _restore(value: Any, origins: dict[int, Any]) -> Any:
    """Return the original of *value* if it is an untouched clone.

    Cloned containers are restored bottom-up in place, so a changed
    container still shares every untouched child with the original.
    """
    orig = origins.get(id(value))
    if orig is None:
        return _restore_inside(value, origins)

    if type(value) is dict:
        for key in list(value):
            value[key] = _restore(value[key], origins)
        same = value.keys() == orig.keys() and all(value[k] is orig[k] for k in value)
    elif type(value) is list:
        value[:] = [_restore(item, origins) for item in value]
        same = len(value) == len(orig) and all(a is b for a, b in zip(value, orig))
    elif type(value) is tuple:
        items = tuple(_restore(item, origins) for item in value)
        if len(items) == len(orig) and all(a is b for a, b in zip(items, orig)):
            return orig
        return items
    elif isinstance(value, BaseModel):
        fields = {
            name: _restore(getattr(value, name), origins)
            for name in type(value).model_fields
        }
        if type(value) is type(orig) and all(
            fields[name] is getattr(orig, name) for name in fields
        ):
            return orig
        return value.model_copy(update=fields)
    else:
        # opaque leaf: only in-place mutation can have changed it
        same = type(value) is type(orig) and value == orig
    return orig if same else value


def _restore_inside(value: Any, origins: dict[int, Any]) -> Any:
    """Restore clones nested in a value the handler built itself."""
    if type(value) is dict:
        restored = {k: _restore(v, origins) for k, v in value.items()}
        if all(restored[k] is v for k, v in value.items()):
            return value
        return restored
    if type(value) in (list, tuple):
        items = [_restore(v, origins) for v in value]
        if all(a is b for a, b in zip(items, value)):
            return value
        return type(value)(items)
    return value


def clone_and_merge(action: str, state: S, step: Callable[[Any], Any]) -> S:
    """Run *step* on a deep clone of *state* and merge what it returns."""
    # memo keeps every clone alive, so no new object can reuse a clone's id
    memo: dict[int, Any] = {}
    working = copy.deepcopy(state, memo)
    origins = _origins(state, memo)

    update = step(working)
    if update is not None and update is not working:
        fields = update_fields(action, update)
        check_update_keys(action, working, fields)
        if isinstance(working, BaseModel):
            working = working.model_copy(update=fields)
            origins[id(working)] = state
        else:
            working.update(fields)

    return _restore(working, origins)
