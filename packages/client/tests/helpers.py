"""Shared test helpers."""

import asyncio


async def eventually(predicate, timeout: float = 2.0) -> None:
    """Yield to the event loop until predicate() holds."""

    async def _wait():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_wait(), timeout)
