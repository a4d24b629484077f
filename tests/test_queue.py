"""Tests for the work queue."""

import asyncio

from flux_sync.queue import WorkQueue


async def test_add_deduplicates() -> None:
    """Test a key added several times is handed out once."""
    queue: WorkQueue[str] = WorkQueue()
    queue.add("a")
    queue.add("b")
    queue.add("a")
    assert len(queue) == 2

    assert await queue.get() == "a"
    assert await queue.get() == "b"
    assert len(queue) == 0
    assert queue.processing == {"a", "b"}


async def test_add_while_processing() -> None:
    """Test a key is not handed out again until processing is done."""
    queue: WorkQueue[str] = WorkQueue()
    queue.add("a")
    assert await queue.get() == "a"

    queue.add("a")
    queue.add("a")
    assert len(queue) == 1
    getter = asyncio.create_task(queue.get())
    await asyncio.sleep(0.05)
    assert not getter.done()

    queue.done("a")
    assert await asyncio.wait_for(getter, 1) == "a"
    queue.done("a")
    assert not queue.processing
    assert len(queue) == 0


async def test_add_after() -> None:
    """Test a delayed add and that the earliest pending delay wins."""
    queue: WorkQueue[str] = WorkQueue()
    queue.add_after("a", 10)
    queue.add_after("a", 0.05)
    queue.add_after("a", 5)

    assert await asyncio.wait_for(queue.get(), 1) == "a"
    queue.done("a")
    getter = asyncio.create_task(queue.get())
    await asyncio.sleep(0.1)
    assert not getter.done()
    getter.cancel()


async def test_forget() -> None:
    """Test forgetting a key drops pending and delayed adds."""
    queue: WorkQueue[str] = WorkQueue()
    queue.add("a")
    queue.add_after("b", 0.05)
    queue.forget("a")
    queue.forget("b")
    queue.add("c")

    assert await queue.get() == "c"
    getter = asyncio.create_task(queue.get())
    await asyncio.sleep(0.1)
    assert not getter.done()
    getter.cancel()


async def test_shutdown() -> None:
    """Test all waiting consumers are released on shutdown."""
    queue: WorkQueue[str] = WorkQueue()
    getters = [asyncio.create_task(queue.get()) for _ in range(3)]
    await asyncio.sleep(0)
    queue.add_after("a", 0.05)

    queue.shutdown()
    assert await asyncio.wait_for(asyncio.gather(*getters), 1) == [None, None, None]

    queue.add("b")
    assert len(queue) == 0
    assert await queue.get() is None
