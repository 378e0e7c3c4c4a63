from __future__ import annotations

import asyncio

import pytest

from src.app.services.request_table import InFlightTable


@pytest.mark.unit
@pytest.mark.anyio
async def test_entry_exists_only_while_running() -> None:
    table: InFlightTable[str, int] = InFlightTable()
    gate = asyncio.Event()

    async def work() -> int:
        await gate.wait()
        return 7

    task = table.start("k", work)
    assert "k" in table
    with pytest.raises(RuntimeError):
        table.start("k", work)

    gate.set()
    assert await task == 7
    assert "k" not in table
    assert len(table) == 0


@pytest.mark.unit
@pytest.mark.anyio
async def test_entry_is_released_on_failure() -> None:
    table: InFlightTable[str, None] = InFlightTable()

    async def boom() -> None:
        raise ValueError("boom")

    task = table.start("k", boom)
    with pytest.raises(ValueError):
        await task

    assert table.get("k") is None


@pytest.mark.unit
@pytest.mark.anyio
async def test_entry_is_released_on_cancel() -> None:
    table: InFlightTable[str, None] = InFlightTable()

    async def forever() -> None:
        await asyncio.Event().wait()

    task = table.start("k", forever)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert table.keys() == ()
