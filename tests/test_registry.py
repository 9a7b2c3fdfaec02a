"""Tests for action specs, envelopes, and the Action Registry.

Covers handler signature introspection, payload presence and type checks
at the dispatch boundary, and registry construction errors.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from state_container.config import settings
from state_container.domain.action import OVERRIDE_DEFAULT_STATE, ActionEnvelope, ActionSpec
from state_container.domain.registry import ActionRegistry
from state_container.errors import ContainerConfigError, PayloadError, UnknownActionError


# ── Handlers ─────────────────────────────────────────────────────────────────


def _add_num(state: dict, num: int) -> None:
    state["nums"].append(num)


def _set_nums(state: dict, nums: list[int]) -> dict:
    return {"nums": nums}


def _page(state: dict, size: int = 10) -> dict:
    return {"size": size}


def _untyped(state, payload):
    return None


def _build_registry() -> ActionRegistry:
    return ActionRegistry({
        "RESET_NUMS": lambda: {"nums": []},
        "CLEAR": lambda state: None,
        "ADD_NUM": _add_num,
        "SET_NUMS": _set_nums,
        "PAGE": _page,
        "ANY": _untyped,
    })


# ── ActionSpec ───────────────────────────────────────────────────────────────


class TestActionSpec:
    def test_zero_argument_handler(self) -> None:
        spec = ActionSpec.from_handler("RESET", lambda: {})
        assert spec.arity == 0
        assert not spec.takes_payload
        assert not spec.payload_required

    def test_state_only_handler(self) -> None:
        spec = ActionSpec.from_handler("CLEAR", lambda state: None)
        assert spec.arity == 1
        assert not spec.takes_payload

    def test_payload_handler_records_annotation(self) -> None:
        spec = ActionSpec.from_handler("ADD_NUM", _add_num)
        assert spec.arity == 2
        assert spec.payload_required
        assert spec.payload_type is int

    def test_payload_with_default_is_optional(self) -> None:
        spec = ActionSpec.from_handler("PAGE", _page)
        assert spec.takes_payload
        assert not spec.payload_required

    def test_variadic_handler_takes_optional_payload(self) -> None:
        spec = ActionSpec.from_handler("VAR", lambda *args: None)
        assert spec.takes_payload
        assert not spec.payload_required

    def test_too_many_parameters_rejected(self) -> None:
        with pytest.raises(ContainerConfigError, match="at most"):
            ActionSpec.from_handler("BAD", lambda state, a, b: None)

    def test_required_keyword_only_rejected(self) -> None:
        def handler(state, *, flag):
            return None

        with pytest.raises(ContainerConfigError, match="keyword-only"):
            ActionSpec.from_handler("BAD", handler)

    def test_non_callable_rejected(self) -> None:
        with pytest.raises(ContainerConfigError, match="not callable"):
            ActionSpec.from_handler("BAD", 42)

    def test_invoke_passes_declared_arguments(self) -> None:
        calls = []
        spec = ActionSpec.from_handler("PAGE", lambda state, size=3: calls.append((state, size)))
        spec.invoke("s", ActionEnvelope(name="PAGE"))
        spec.invoke("s", ActionEnvelope(name="PAGE", payload=7, has_payload=True))
        assert calls == [("s", 3), ("s", 7)]


# ── Envelopes ────────────────────────────────────────────────────────────────


class TestEnvelopes:
    def test_payload_omitted_for_no_payload_action(self) -> None:
        envelope = _build_registry().envelope("RESET_NUMS", ())
        assert envelope == ActionEnvelope(name="RESET_NUMS")
        assert not envelope.has_payload

    def test_payload_present(self) -> None:
        envelope = _build_registry().envelope("ADD_NUM", (5,))
        assert envelope.payload == 5
        assert envelope.has_payload

    def test_payload_identity_is_preserved(self) -> None:
        nums = [1, 2, 3]
        envelope = _build_registry().envelope("SET_NUMS", (nums,))
        assert envelope.payload is nums

    def test_missing_required_payload(self) -> None:
        with pytest.raises(PayloadError, match="required"):
            _build_registry().envelope("ADD_NUM", ())

    def test_unexpected_payload(self) -> None:
        with pytest.raises(PayloadError, match="does not take a payload"):
            _build_registry().envelope("CLEAR", (1,))

    def test_more_than_one_payload(self) -> None:
        with pytest.raises(PayloadError, match="at most one"):
            _build_registry().envelope("ADD_NUM", (1, 2))

    def test_payload_type_mismatch(self) -> None:
        with pytest.raises(PayloadError) as exc_info:
            _build_registry().envelope("SET_NUMS", (["a", "b"],))
        assert exc_info.value.action == "SET_NUMS"
        assert isinstance(exc_info.value, TypeError)

    def test_untyped_payload_is_not_checked(self) -> None:
        envelope = _build_registry().envelope("ANY", (object(),))
        assert envelope.has_payload

    def test_explicit_none_differs_from_omitted(self) -> None:
        registry = _build_registry()
        explicit = registry.envelope("ANY", (None,))
        assert explicit.has_payload
        assert explicit.payload is None
        assert explicit != ActionEnvelope(name="ANY")

    def test_type_check_can_be_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "validate_payloads", False)
        envelope = _build_registry().envelope("ADD_NUM", ("not-a-number",))
        assert envelope.payload == "not-a-number"

    def test_envelope_is_frozen(self) -> None:
        envelope = ActionEnvelope(name="X")
        with pytest.raises(ValidationError):
            envelope.name = "Y"


# ── Registry ─────────────────────────────────────────────────────────────────


class TestActionRegistry:
    def test_names_in_declaration_order(self) -> None:
        assert _build_registry().names == [
            "RESET_NUMS", "CLEAR", "ADD_NUM", "SET_NUMS", "PAGE", "ANY",
        ]

    def test_unknown_action(self) -> None:
        with pytest.raises(UnknownActionError) as exc_info:
            _build_registry().envelope("NOPE", ())
        assert exc_info.value.action == "NOPE"
        assert isinstance(exc_info.value, LookupError)

    def test_registry_is_read_only(self) -> None:
        registry = _build_registry()
        with pytest.raises(TypeError):
            registry["NEW"] = lambda: None  # type: ignore[index]

    def test_registry_is_detached_from_input(self) -> None:
        handlers = {"A": lambda: None}
        registry = ActionRegistry(handlers)
        handlers["B"] = lambda: None
        assert "B" not in registry

    def test_reserved_name_rejected(self) -> None:
        with pytest.raises(ContainerConfigError, match="reserved"):
            ActionRegistry({OVERRIDE_DEFAULT_STATE: lambda: None})

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ContainerConfigError):
            ActionRegistry({"": lambda: None})

    def test_empty_registry_rejected(self) -> None:
        with pytest.raises(ContainerConfigError):
            ActionRegistry({})

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(ContainerConfigError, match="mapping"):
            ActionRegistry([("A", lambda: None)])  # type: ignore[arg-type]
