"""MyState — a list of numbers, with a synchronous and an async way to grow it.

Run it directly to watch the transitions in the log:

    python -m state_container.example
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from state_container.builder import create_container
from state_container.config import settings

logger = logging.getLogger(__name__)


# ── Action handlers ──────────────────────────────────────────────────────────


def add_num(state: dict, num: int) -> None:
    state["nums"].append(num)


def set_nums(state: dict, nums: list[int]) -> dict:
    return {"nums": nums}


def _helpers(dispatch: Callable[..., None]) -> dict[str, Callable[..., Any]]:
    async def add_num_async(num: int) -> None:
        await asyncio.sleep(0)
        dispatch("ADD_NUM", num)

    return {"add_num_async": add_num_async}


# ── Container ────────────────────────────────────────────────────────────────

my_state = (
    create_container("MyState")
    .state({"nums": []})
    .actions({
        "RESET_NUMS": lambda: {"nums": []},
        "ADD_NUM": add_num,
        "SET_NUMS": set_nums,
    })
    .helpers(_helpers)
    .build()
)


async def main() -> None:
    with my_state.provide() as scope:
        scope.store.subscribe(lambda state: logger.info("nums = %s", state["nums"]))

        _, dispatch, helpers = my_state.use()
        dispatch("ADD_NUM", 5)
        dispatch("ADD_NUM", 7)
        await helpers.add_num_async(555)
        dispatch("SET_NUMS", [6, 6, 6])
        dispatch("RESET_NUMS")

        logger.info("stats: %s", scope.store.stats)


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    asyncio.run(main())
