import asyncio
import concurrent.futures
import inspect

import pytest

from classql.core.arguments import Argument
from classql.core.fetchers import (
    DEFAULT_SCHEDULER,
    FieldStream,
    TaskScheduler,
    current_scheduler,
    function_fetcher,
    map_result,
    normalize,
    property_fetcher,
    static_fetcher,
    use_scheduler,
)


async def _value(v):
    await asyncio.sleep(0)
    return v


async def _items(n, closed=None):
    try:
        for i in range(n):
            await asyncio.sleep(0)
            yield i
    finally:
        if closed is not None:
            closed.append(True)


def test_plain_values_pass_through():
    value = {'a': 1}
    assert normalize(value) is value
    assert normalize(None) is None


def test_completed_future_without_loop():
    future = concurrent.futures.Future()
    future.set_result(7)
    assert normalize(future) == 7


@pytest.mark.asyncio
async def test_awaitables_are_settled():
    assert await normalize(_value(3)) == 3
    future = concurrent.futures.Future()
    future.set_result(4)
    assert await normalize(future) == 4
    # an awaitable settling to a stream is collected as well
    assert await normalize(_value(_items(2))) == [0, 1]


@pytest.mark.asyncio
async def test_streams_are_collected_or_kept():
    collected = normalize(_items(3))
    assert inspect.isawaitable(collected)
    assert await collected == [0, 1, 2]
    stream = normalize(_items(3), streaming=True)
    assert isinstance(stream, FieldStream)
    assert [i async for i in stream] == [0, 1, 2]
    assert stream.closed


@pytest.mark.asyncio
async def test_stream_subscribe_pushes_items_then_completes():
    events = []
    await FieldStream(_items(3)).subscribe(events.append, on_complete=lambda: events.append('done'))
    assert events == [0, 1, 2, 'done']


@pytest.mark.asyncio
async def test_stream_subscribe_reports_errors():
    async def failing():
        yield 1
        raise RuntimeError('broken stream')

    events, errors = [], []
    await FieldStream(failing()).subscribe(events.append, on_error=errors.append, on_complete=lambda: events.append('done'))
    assert events == [1]
    assert [str(e) for e in errors] == ['broken stream']
    with pytest.raises(RuntimeError):
        await FieldStream(failing()).subscribe(lambda item: None)


@pytest.mark.asyncio
async def test_aclose_stops_upstream():
    closed = []
    stream = FieldStream(_items(10, closed))
    assert await stream.__anext__() == 0
    await stream.aclose()
    await stream.aclose()
    assert closed == [True]
    assert [i async for i in stream] == []


@pytest.mark.asyncio
async def test_scheduler_retrieves_task_exceptions(caplog):
    caplog.set_level('DEBUG', logger='classql.core.fetchers')

    async def boom():
        raise ValueError('abandoned')

    scheduler = TaskScheduler()
    task = scheduler.schedule(boom())
    assert scheduler.pending == 1
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert task.done()
    assert scheduler.pending == 0
    assert 'abandoned' in caplog.text


@pytest.mark.asyncio
async def test_scheduler_close_cancels_pending_tasks_and_streams():
    scheduler = TaskScheduler()
    task = scheduler.schedule(asyncio.sleep(10))
    closed = []
    with use_scheduler(scheduler):
        stream = normalize(_items(5, closed), streaming=True)
    assert await stream.__anext__() == 0
    await scheduler.close()
    assert task.cancelled()
    assert closed == [True]
    assert stream.closed


def test_schedule_without_loop_returns_awaitable():
    coroutine = _value(1)
    try:
        assert TaskScheduler().schedule(coroutine) is coroutine
    finally:
        coroutine.close()


def test_current_scheduler_follows_context():
    assert current_scheduler() is DEFAULT_SCHEDULER
    scheduler = TaskScheduler()
    with use_scheduler(scheduler):
        assert current_scheduler() is scheduler
    assert current_scheduler() is DEFAULT_SCHEDULER


class Box:
    def __init__(self, value):
        self.value = value

    def add(self, a, *, scale=1):
        return (self.value + a) * scale

    async def later(self, a):
        await asyncio.sleep(0)
        return self.value + a


def test_static_and_property_fetchers():
    assert static_fetcher(5)(None, None) == 5
    assert property_fetcher('value')(Box(2), None) == 2
    assert property_fetcher('value', Box(3))(Box(2), None) == 3


def test_function_fetcher_passes_arguments_in_order():
    arguments = [Argument('a', 'a', None), Argument('scale', 'scale', None, keyword_only=True)]
    fetch = function_fetcher(Box.add, arguments)
    assert fetch(Box(1), None, a=2, scale=3) == 9
    bound = function_fetcher(Box(10).add, arguments)
    assert bound('ignored source', None, a=1, scale=1) == 11
    root = function_fetcher(Box.add, arguments, receiver=Box(5))
    assert root(Box(0), None, a=0, scale=2) == 10


class DoubleBox(Box):
    def add(self, a, *, scale=1):
        return super().add(a, scale=scale) * 2


def helper(box, a, *, scale=1):
    return -a


def test_function_fetcher_dispatches_to_overrides():
    arguments = [Argument('a', 'a', None), Argument('scale', 'scale', None, keyword_only=True)]
    fetch = function_fetcher(Box.add, arguments, dispatch=True)
    assert fetch(Box(1), None, a=1, scale=1) == 2
    assert fetch(DoubleBox(1), None, a=1, scale=1) == 4
    # without dispatch the declared function runs
    assert function_fetcher(Box.add, arguments)(DoubleBox(1), None, a=1, scale=1) == 2
    # a bound receiver is never redirected
    root = function_fetcher(Box.add, arguments, receiver=DoubleBox(1), dispatch=True)
    assert root(Box(0), None, a=1, scale=1) == 2


def test_dispatch_ignores_functions_outside_the_hierarchy():
    class Named(Box):
        def helper(self, a, *, scale=1):
            return a

    fetch = function_fetcher(helper, [Argument('a', 'a', None)], dispatch=True)
    assert fetch(Named(0), None, a=3) == -3


@pytest.mark.asyncio
async def test_map_result_applies_after_settling():
    assert map_result(2, str) == '2'
    mapped = map_result(_value(3), str)
    assert inspect.isawaitable(mapped)
    assert await mapped == '3'


@pytest.mark.asyncio
async def test_async_function_bodies_are_scheduled():
    scheduler = TaskScheduler()
    fetch = function_fetcher(Box.later, [Argument('a', 'a', None)], is_async=True)
    with use_scheduler(scheduler):
        result = fetch(Box(1), None, a=1)
        assert scheduler.pending == 1
    assert await result == 2
