"""Actions — envelopes passed to dispatch and the specs of their handlers.

A handler declares its payload contract through its signature:

    def reset(): ...                     no state, no payload
    def clear(state): ...                state only, no payload
    def add(state, num: int): ...        payload required (and checked as int)
    def page(state, size: int = 10): ... payload optional

The contract is introspected once when the handler is registered and
enforced every time an envelope is built for it.
"""

from __future__ import annotations

import inspect
import logging
import typing
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from state_container.config import settings
from state_container.errors import ContainerConfigError, PayloadError

logger = logging.getLogger(__name__)

# Reserved action kind used only to push an external default state into a store.
OVERRIDE_DEFAULT_STATE = "@@state_container/OVERRIDE_DEFAULT_STATE"

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class ActionEnvelope(BaseModel):
    """A single dispatched action: name plus optional payload.

    ``has_payload`` distinguishes an omitted payload from an explicit None.
    """

    name: str
    payload: Any = None
    has_payload: bool = False

    model_config = {"frozen": True}


@dataclass(frozen=True)
class ActionSpec:
    """One registered handler and its introspected payload contract.

    Attributes:
        name: Action name the handler is registered under.
        handler: The handler callable.
        arity: Positional arguments the handler is called with (0, 1 or 2).
        payload_required: True when dispatch must supply a payload.
        payload_type: Annotation of the payload parameter, if any.
    """

    name: str
    handler: Callable[..., Any]
    arity: int
    payload_required: bool
    payload_type: Any = None
    _adapter: TypeAdapter | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_handler(cls, name: str, handler: Callable[..., Any]) -> ActionSpec:
        if not callable(handler):
            raise ContainerConfigError(f"Action {name!r}: handler is not callable")
        try:
            signature = inspect.signature(handler)
        except (TypeError, ValueError) as exc:
            raise ContainerConfigError(
                f"Action {name!r}: cannot inspect handler signature: {exc}"
            ) from exc

        params = list(signature.parameters.values())
        positional = [p for p in params if p.kind in _POSITIONAL]
        variadic = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)

        if any(p.default is p.empty for p in positional[2:]):
            raise ContainerConfigError(
                f"Action {name!r}: handlers accept at most (state, payload)"
            )
        if any(
            p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is p.empty
            for p in params
        ):
            raise ContainerConfigError(
                f"Action {name!r}: handlers may not require keyword-only arguments"
            )

        if len(positional) >= 2:
            payload_param = positional[1]
            payload_type = _payload_annotation(handler, payload_param)
            return cls(
                name=name,
                handler=handler,
                arity=2,
                payload_required=payload_param.default is payload_param.empty,
                payload_type=payload_type,
                _adapter=_build_adapter(name, payload_type),
            )
        if variadic:
            return cls(name=name, handler=handler, arity=2, payload_required=False)
        return cls(name=name, handler=handler, arity=len(positional), payload_required=False)

    @property
    def takes_payload(self) -> bool:
        return self.arity == 2

    def envelope(self, payload: tuple[Any, ...]) -> ActionEnvelope:
        """Build an envelope from dispatch's positional payload arguments.

        Raises:
            PayloadError: If the payload is missing, unexpected, or does not
                          match the handler's payload annotation.
        """
        if len(payload) > 1:
            raise PayloadError(self.name, f"expected at most one payload, got {len(payload)}")
        if not payload:
            if self.payload_required:
                raise PayloadError(self.name, "a payload is required")
            return ActionEnvelope(name=self.name)
        if not self.takes_payload:
            raise PayloadError(self.name, "this action does not take a payload")

        value = payload[0]
        if self._adapter is not None and settings.validate_payloads:
            try:
                self._adapter.validate_python(value, strict=True)
            except ValidationError as exc:
                raise PayloadError(
                    self.name,
                    f"payload does not match {self.payload_type!r}: "
                    f"{exc.errors()[0]['msg']}",
                ) from exc
        return ActionEnvelope(name=self.name, payload=value, has_payload=True)

    def invoke(self, state: Any, envelope: ActionEnvelope) -> Any:
        """Call the handler with as many arguments as it declares."""
        if self.arity == 0:
            return self.handler()
        if self.arity == 1:
            return self.handler(state)
        if envelope.has_payload:
            return self.handler(state, envelope.payload)
        return self.handler(state)


# ── Introspection helpers ────────────────────────────────────────────────────


def _payload_annotation(handler: Callable[..., Any], param: inspect.Parameter) -> Any:
    annotation = param.annotation
    if annotation is param.empty:
        return None
    if isinstance(annotation, str):
        # Postponed annotations: resolve against the handler's module globals
        try:
            annotation = typing.get_type_hints(handler).get(param.name)
        except (NameError, TypeError, AttributeError) as exc:
            logger.debug("Cannot resolve payload annotation %r: %s", param.annotation, exc)
            return None
    if annotation is Any:
        return None
    return annotation


def _build_adapter(name: str, payload_type: Any) -> TypeAdapter | None:
    if payload_type is None:
        return None
    try:
        return TypeAdapter(payload_type)
    except PydanticSchemaGenerationError:
        logger.debug("Action %r: payload type %r is not checkable", name, payload_type)
        return None
