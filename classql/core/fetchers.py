"""Fetch functions and the bridge to graphql-core's accepted result shapes.

graphql-core resolves plain values, awaitables and (for subscription roots)
async iterables. Whatever a field body returns is mapped onto one of those:

- ``concurrent.futures.Future`` and other awaitables become an awaitable whose
  settled value is normalized again,
- async iterables become a :class:`FieldStream`, collected into a list unless the
  field sits on a subscription root,
- anything else passes through unchanged.

Coroutine function bodies are not awaited inline: they are scheduled as tasks on
the :class:`TaskScheduler` in effect for the request.
"""
from __future__ import annotations
import asyncio
import concurrent.futures
import contextlib
import inspect
import logging
import weakref
from contextvars import ContextVar
from typing import Any, AsyncIterable, Awaitable, Callable, Iterator, List, Optional, Sequence, Set

from .arguments import Argument

logger = logging.getLogger(__name__)

#: ``(source, info, **raw_args) -> value | awaitable | FieldStream``
Fetcher = Callable[..., Any]


class FieldStream:
    """Async stream returned by a field body.

    It is an async iterator, so graphql-core's ``subscribe`` consumes it
    directly. Closing the stream closes the upstream async generator, which stops
    production.
    """

    def __init__(self, source: AsyncIterable[Any]):
        self._iterator = source.__aiter__()
        self._closed = False
        self._released = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> 'FieldStream':
        return self

    async def __anext__(self) -> Any:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._iterator.__anext__()
        except StopAsyncIteration:
            self._closed = True
            raise

    async def aclose(self) -> None:
        self._closed = True
        if self._released:
            return
        self._released = True
        aclose = getattr(self._iterator, 'aclose', None)
        if aclose is not None:
            await aclose()

    async def collect(self) -> List[Any]:
        """Drain the stream into a list."""
        try:
            return [item async for item in self]
        finally:
            await self.aclose()

    async def subscribe(
        self,
        on_next: Callable[[Any], Any],
        on_error: Optional[Callable[[BaseException], Any]] = None,
        on_complete: Optional[Callable[[], Any]] = None,
    ) -> None:
        """Push every item to synchronous callbacks, in emission order.

        ``on_complete`` is called once after the last item. Without ``on_error``
        a failure of the upstream propagates to the caller.
        """
        try:
            async for item in self:
                on_next(item)
        except Exception as e:
            if on_error is None:
                raise
            on_error(e)
            return
        finally:
            await self.aclose()
        if on_complete is not None:
            on_complete()


class TaskScheduler:
    """Schedules asynchronous field bodies on the running event loop.

    Every task gets a done callback retrieving its exception, so a task abandoned
    by the engine (e.g. a sibling failed a non-null parent) never ends up as an
    "exception was never retrieved" fault. ``close()`` cancels what is still
    pending and closes the streams produced while the scheduler was in effect.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Future] = set()
        self._streams: 'weakref.WeakSet[FieldStream]' = weakref.WeakSet()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, awaitable: Awaitable[Any]) -> Awaitable[Any]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop (synchronous execution): the engine reports the awaitable itself.
            return awaitable
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug('field task failed: %r', error)

    def track(self, stream: FieldStream) -> None:
        self._streams.add(stream)

    async def close(self) -> None:
        tasks = [t for t in self._tasks if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for stream in list(self._streams):
            await stream.aclose()


DEFAULT_SCHEDULER = TaskScheduler()

_current_scheduler: ContextVar[Optional[TaskScheduler]] = ContextVar('classql_scheduler', default=None)


def current_scheduler() -> TaskScheduler:
    """The scheduler of the current request, or the process-wide default."""
    return _current_scheduler.get() or DEFAULT_SCHEDULER


@contextlib.contextmanager
def use_scheduler(scheduler: TaskScheduler) -> Iterator[TaskScheduler]:
    token = _current_scheduler.set(scheduler)
    try:
        yield scheduler
    finally:
        _current_scheduler.reset(token)


def normalize(value: Any, *, streaming: bool = False) -> Any:
    """Map a field body result onto a value, an awaitable or a :class:`FieldStream`.

    Args:
        value: What the field body returned.
        streaming: Keep async streams as streams (subscription roots). Otherwise
            they are collected into an awaitable list.
    """
    if isinstance(value, concurrent.futures.Future):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return normalize(value.result(), streaming=streaming)
        value = asyncio.wrap_future(value)
    if inspect.isawaitable(value):
        return _settle(value, streaming)
    if hasattr(value, '__aiter__'):
        stream = value if isinstance(value, FieldStream) else FieldStream(value)
        current_scheduler().track(stream)
        return stream if streaming else stream.collect()
    return value


async def _settle(awaitable: Awaitable[Any], streaming: bool) -> Any:
    result = normalize(await awaitable, streaming=streaming)
    if inspect.isawaitable(result):
        return await result
    return result


def map_result(value: Any, fn: Callable[[Any], Any]) -> Any:
    """Apply ``fn`` to a normalized result, after it settles when it is awaitable."""
    if inspect.isawaitable(value):
        return _map_settled(value, fn)
    return fn(value)


async def _map_settled(awaitable: Awaitable[Any], fn: Callable[[Any], Any]) -> Any:
    return fn(await awaitable)


def static_fetcher(value: Any) -> Fetcher:
    def fetch(source: Any, info: Any, **raw_args: Any) -> Any:
        return value
    return fetch


def property_fetcher(attr: str, receiver: Any = None, *, streaming: bool = False) -> Fetcher:
    """Read ``attr`` off the bound ``receiver`` or, when unbound, off the source value."""
    if receiver is not None:
        def fetch(source: Any, info: Any, **raw_args: Any) -> Any:
            return normalize(getattr(receiver, attr), streaming=streaming)
    else:
        def fetch(source: Any, info: Any, **raw_args: Any) -> Any:
            return normalize(getattr(source, attr), streaming=streaming)
    return fetch


def function_fetcher(
    func: Callable[..., Any],
    arguments: Sequence[Argument],
    *,
    is_async: bool = False,
    receiver: Any = None,
    streaming: bool = False,
    dispatch: bool = False,
) -> Fetcher:
    """Create the fetcher for a function-backed field.

    Arguments are resolved from the raw argument map in declaration order. The
    function is called on ``receiver`` when given, otherwise on the source value;
    bound methods carry their own receiver. With ``dispatch`` an unbound method
    is looked up on the source's class first, so subclass overrides run.
    """
    bound = inspect.ismethod(func)
    arguments = list(arguments)
    name = getattr(func, '__name__', None)
    overrides: dict = {}

    def method_for(source: Any) -> Callable[..., Any]:
        cls = type(source)
        method = overrides.get(cls)
        if method is None:
            method = func
            # only methods of the source's own hierarchy are redirected
            if name and any(vars(klass).get(name) is func for klass in cls.__mro__):
                found = inspect.getattr_static(cls, name, None)
                if inspect.isfunction(found):
                    method = found
            overrides[cls] = method
        return method

    def invoke(source: Any, info: Any, raw_args: dict) -> Any:
        positional = []
        keywords = {}
        for arg in arguments:
            value = arg.resolve(raw_args, info)
            if arg.keyword_only:
                keywords[arg.python_name] = value
            else:
                positional.append(value)
        if bound:
            return func(*positional, **keywords)
        if receiver is not None:
            return func(receiver, *positional, **keywords)
        method = method_for(source) if dispatch else func
        return method(source, *positional, **keywords)

    def fetch(source: Any, info: Any, **raw_args: Any) -> Any:
        result = invoke(source, info, raw_args)
        if is_async:
            result = current_scheduler().schedule(result)
        return normalize(result, streaming=streaming)

    return fetch
