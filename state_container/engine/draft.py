"""Copy-on-write drafts over immutable state values.

``produce(base, mutator)`` hands the mutator a *draft* of ``base``: an
object that reads like the original and accepts in-place edits, but never
touches ``base`` itself.  When the mutator returns, the draft is committed
into a new value.

Design notes:
    - Drafts are created lazily.  Reading a nested ``dict``, ``list`` or
      pydantic model through a draft returns a child draft; nothing is
      copied until something is written.
    - The first write to a draft makes a shallow copy of its own level
      only.  Untouched siblings keep pointing at the original objects, so
      the committed value shares every unchanged subtree with ``base``.
    - A commit that ends up with exactly the original children (by
      identity) returns the original object.  ``produce`` therefore
      returns ``base`` itself when nothing effectively changed.
    - All drafts of one ``produce`` call are revoked when it finishes,
      whether it returned or raised.
    - Any other value (str, int, tuple, set, dict subclasses, custom
      objects) is a leaf.
      Leaves are handed out as-is and must be replaced, not mutated.
"""

from __future__ import annotations

import copy
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Callable, Iterator, TypeVar

from pydantic import BaseModel

from state_container.errors import DraftRevokedError

S = TypeVar("S")

_UNSET: Any = object()


class _DraftScope:
    """Lifetime of all drafts created by one ``produce`` call."""

    __slots__ = ("revoked",)

    def __init__(self) -> None:
        self.revoked = False


def is_draftable(value: Any) -> bool:
    return type(value) in (dict, list) or isinstance(value, BaseModel)


def is_draft(value: Any) -> bool:
    return isinstance(value, Draft)


def original(draft: Draft) -> Any:
    """Return the value *draft* was created from."""
    return draft._base


def _create(value: Any, scope: _DraftScope) -> Draft:
    if isinstance(value, BaseModel):
        return ModelDraft(value, scope)
    if isinstance(value, list):
        return ListDraft(value, scope)
    return DictDraft(value, scope)


def _resolve(value: Any) -> Any:
    """Replace drafts inside a freshly assigned value with their results."""
    if isinstance(value, Draft):
        return value._finalize()
    if type(value) is dict:
        resolved = {k: _resolve(v) for k, v in value.items()}
        if all(resolved[k] is v for k, v in value.items()):
            return value
        return resolved
    if type(value) in (list, tuple):
        items = [_resolve(v) for v in value]
        if all(a is b for a, b in zip(items, value)):
            return value
        return type(value)(items)
    return value


# ── Draft base ───────────────────────────────────────────────────────────────


class Draft:
    """Shared copy-on-write machinery.

    Subclasses provide ``_base_value``, ``_copy_base``, ``_has`` and
    ``_commit``; everything else works the same for every container kind.
    Until the first write, child drafts live in ``_children``.  After it,
    they are stored directly in ``_copy`` at their position.
    """

    __slots__ = ("_base", "_copy", "_children", "_scope", "_final")

    def __init__(self, base: Any, scope: _DraftScope) -> None:
        self._base = base
        self._copy: Any = None
        self._children: dict[Any, Draft] = {}
        self._scope = scope
        self._final: Any = _UNSET

    # ── Subclass hooks ───────────────────────────────────────────────────

    def _base_value(self, key: Any) -> Any:
        return self._base[key]

    def _copy_base(self) -> Any:
        raise NotImplementedError

    def _has(self, key: Any) -> bool:
        raise NotImplementedError

    def _commit(self) -> Any:
        raise NotImplementedError

    # ── Read / write ─────────────────────────────────────────────────────

    def _check_live(self) -> None:
        if self._scope.revoked:
            raise DraftRevokedError(
                f"{type(self).__name__} was used after its produce() call finished"
            )

    def _get(self, key: Any) -> Any:
        self._check_live()
        if self._copy is not None:
            value = self._copy[key]
            if isinstance(value, Draft) or not is_draftable(value):
                return value
            child = _create(value, self._scope)
            self._copy[key] = child
            return child

        child = self._children.get(key)
        if child is not None:
            return child
        value = self._base_value(key)
        if not is_draftable(value):
            return value
        child = _create(value, self._scope)
        self._children[key] = child
        return child

    def _current(self, key: Any) -> Any:
        """Current value at *key* without creating a child draft."""
        if self._copy is not None:
            return self._copy[key]
        child = self._children.get(key)
        return child if child is not None else self._base_value(key)

    def _set(self, key: Any, value: Any) -> None:
        self._check_live()
        if self._has(key) and self._current(key) is value:
            return
        self._prepare_copy()
        self._copy[key] = value

    def _prepare_copy(self) -> None:
        if self._copy is not None:
            return
        working = self._copy_base()
        for key, child in self._children.items():
            working[key] = child
        self._children.clear()
        self._copy = working

    def _finalize(self) -> Any:
        if self._final is _UNSET:
            if self._copy is None and not self._children:
                self._final = self._base
            else:
                self._prepare_copy()
                self._final = self._commit()
        return self._final


# ── dict ─────────────────────────────────────────────────────────────────────


class DictDraft(Draft, MutableMapping):
    """Draft of a plain ``dict``."""

    __slots__ = ()

    def _copy_base(self) -> Any:
        return copy.copy(self._base)

    def _source(self) -> Any:
        return self._copy if self._copy is not None else self._base

    def _has(self, key: Any) -> bool:
        return key in self._source()

    def _commit(self) -> Any:
        base = self._base
        resolved = {
            k: v if k in base and base[k] is v else _resolve(v)
            for k, v in self._copy.items()
        }
        if len(resolved) == len(base) and all(
            k in base and base[k] is v for k, v in resolved.items()
        ):
            return base
        result = copy.copy(base)
        result.clear()
        result.update(resolved)
        return result

    def __getitem__(self, key: Any) -> Any:
        return self._get(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self._set(key, value)

    def __delitem__(self, key: Any) -> None:
        self._check_live()
        self._prepare_copy()
        del self._copy[key]

    def __contains__(self, key: object) -> bool:
        self._check_live()
        return key in self._source()

    def __iter__(self) -> Iterator[Any]:
        self._check_live()
        return iter(list(self._source()))

    def __len__(self) -> int:
        self._check_live()
        return len(self._source())

    def copy(self) -> dict:
        return dict(self.items())

    def __repr__(self) -> str:
        return f"DictDraft({self._source()!r})"


# ── list ─────────────────────────────────────────────────────────────────────


class ListDraft(Draft, MutableSequence):
    """Draft of a ``list``.  Children are keyed by position."""

    __slots__ = ()

    def _copy_base(self) -> Any:
        return copy.copy(self._base)

    def _source(self) -> Any:
        return self._copy if self._copy is not None else self._base

    def _index(self, index: int) -> int:
        size = len(self._source())
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError("list index out of range")
        return index

    def _has(self, key: Any) -> bool:
        return 0 <= key < len(self._source())

    def _commit(self) -> Any:
        base = self._base
        size = len(base)
        resolved = [
            v if i < size and base[i] is v else _resolve(v)
            for i, v in enumerate(self._copy)
        ]
        if len(resolved) == size and all(a is b for a, b in zip(resolved, base)):
            return base
        result = copy.copy(base)
        result[:] = resolved
        return result

    def __getitem__(self, index: Any) -> Any:
        self._check_live()
        if isinstance(index, slice):
            return [self._get(i) for i in range(*index.indices(len(self._source())))]
        return self._get(self._index(index))

    def __setitem__(self, index: Any, value: Any) -> None:
        self._check_live()
        if isinstance(index, slice):
            self._prepare_copy()
            self._copy[index] = list(value)
            return
        self._set(self._index(index), value)

    def __delitem__(self, index: Any) -> None:
        self._check_live()
        if not isinstance(index, slice):
            index = self._index(index)
        self._prepare_copy()
        del self._copy[index]

    def __len__(self) -> int:
        self._check_live()
        return len(self._source())

    def insert(self, index: int, value: Any) -> None:
        self._check_live()
        self._prepare_copy()
        self._copy.insert(index, value)

    def sort(self, *, key: Callable[[Any], Any] | None = None, reverse: bool = False) -> None:
        self._check_live()
        self._prepare_copy()
        self._copy.sort(key=key, reverse=reverse)

    def __add__(self, other: Any) -> list:
        return list(self) + list(other)

    def __radd__(self, other: Any) -> list:
        return list(other) + list(self)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (list, ListDraft)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ListDraft({self._source()!r})"


# ── pydantic models ──────────────────────────────────────────────────────────


class ModelDraft(Draft):
    """Draft of a pydantic model, edited through attribute access.

    Only declared fields are drafted and writable.  Other attributes
    (methods, properties) are read from the original model.
    """

    __slots__ = ()

    def _fields(self) -> Any:
        return type(self._base).model_fields

    def _base_value(self, key: Any) -> Any:
        return getattr(self._base, key)

    def _copy_base(self) -> Any:
        return {name: getattr(self._base, name) for name in self._fields()}

    def _has(self, key: Any) -> bool:
        return key in self._fields()

    def _commit(self) -> Any:
        base = self._base
        updates: dict[str, Any] = {}
        for name, value in self._copy.items():
            if value is getattr(base, name):
                continue
            resolved = _resolve(value)
            if resolved is not getattr(base, name):
                updates[name] = resolved
        if not updates:
            return base
        return base.model_copy(update=updates)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name in Draft.__slots__:
            raise AttributeError(name)
        if name in self._fields():
            return self._get(name)
        self._check_live()
        return getattr(self._base, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in Draft.__slots__:
            object.__setattr__(self, name, value)
            return
        if name not in self._fields():
            raise AttributeError(
                f"{type(self._base).__name__} has no field {name!r}"
            )
        self._set(name, value)

    def __repr__(self) -> str:
        return f"ModelDraft({type(self._base).__name__})"


# ── Entry point ──────────────────────────────────────────────────────────────


def produce(base: S, mutator: Callable[[Any], Any]) -> S:
    """Run *mutator* against a draft of *base* and commit the result.

    If the mutator returns None (or the draft itself), the draft's edits
    are committed.  Any other return value replaces the state outright.

    Returns:
        ``base`` itself when nothing effectively changed, otherwise a new
        value sharing every unchanged subtree with ``base``.
    """
    if not is_draftable(base):
        result = mutator(base)
        return base if result is None else result

    scope = _DraftScope()
    draft = _create(base, scope)
    try:
        result = mutator(draft)
        if result is None or result is draft:
            return draft._finalize()
        return _resolve(result)
    finally:
        scope.revoked = True
