"""End-to-end tests against the bundled MyState container."""

from __future__ import annotations

import logging

import pytest

from state_container.errors import ContainerScopeError, PayloadError
from state_container.example import main, my_state


class TestMyState:
    def test_add_then_reset(self) -> None:
        with my_state.provide():
            _, dispatch, _ = my_state.use()
            dispatch("ADD_NUM", 5)
            dispatch("ADD_NUM", 7)
            assert my_state.use().state["nums"] == [5, 7]
            dispatch("RESET_NUMS")
            assert my_state.use().state["nums"] == []

    def test_set_nums_checks_payload(self) -> None:
        with my_state.provide():
            _, dispatch, _ = my_state.use()
            dispatch("SET_NUMS", [1, 2, 3])
            assert my_state.use().state == {"nums": [1, 2, 3]}
            with pytest.raises(PayloadError):
                dispatch("SET_NUMS", "123")
            with pytest.raises(PayloadError):
                dispatch("ADD_NUM")

    def test_outside_provider(self) -> None:
        with pytest.raises(ContainerScopeError, match="MyState"):
            my_state.use()

    @pytest.mark.asyncio
    async def test_async_helper(self) -> None:
        with my_state.provide():
            await my_state.use().helpers.add_num_async(555)
            assert my_state.use().state["nums"] == [555]

    @pytest.mark.asyncio
    async def test_main_runs(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="state_container.example"):
            await main()
        assert "nums = [5]" in caplog.text
        assert "nums = []" in caplog.text
