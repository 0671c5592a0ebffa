import asyncio
import concurrent.futures
from dataclasses import dataclass
from functools import cached_property
from typing import Any, AsyncGenerator, AsyncIterator, Awaitable, ClassVar, Iterable, List, Optional, Tuple, Union

import pytest

from classql.core.reflection import class_description, output_ref, reflect, reflect_function, reflect_property
from classql.core.typeref import EnumRef, IdRef, ListRef, NonNullRef, ObjectRef, ScalarRef
from classql.errors import ReflectionError
from tests.schema import MyEnum


class Holder:
    plain: int
    maybe: Optional[str]
    counter: ClassVar[int] = 0

    @property
    def computed(self) -> List[int]:
        return [1]

    @cached_property
    def cached(self) -> float:
        return 1.0

    def method(self, a: int, b: Optional[str] = None, *, flag: bool = False) -> str:
        return ''

    async def coroutine(self) -> int:
        return 1

    def awaitable(self) -> Awaitable[int]:
        return asyncio.sleep(0, 1)

    def future(self) -> concurrent.futures.Future:
        return concurrent.futures.Future()

    async def generator(self) -> AsyncGenerator[int, None]:
        yield 1

    def iterator(self) -> AsyncIterator[str]:
        raise NotImplementedError

    def untyped(self, a) -> int:
        return a

    def variadic(self, *args: int) -> int:
        return 0

    def no_return(self):
        return None

    def unresolved(self) -> 'DoesNotExist':  # noqa: F821
        return None


@dataclass
class Documented:
    """A documented class."""

    x: int


@dataclass
class Undocumented:
    x: int


def test_reflect_properties():
    assert reflect_property(Holder, 'plain').value_type is int
    assert reflect_property(Holder, 'maybe').value_type == Optional[str]
    assert reflect_property(Holder, 'computed').value_type == List[int]
    assert reflect_property(Holder, 'cached').value_type is float
    assert reflect_property(Holder, 'counter').value_type is int
    reflected = reflect_property(Holder, 'plain')
    assert reflected.parameters == [] and not reflected.is_async and not reflected.is_stream
    with pytest.raises(ReflectionError):
        reflect_property(Holder, 'missing')


def test_reflect_function_parameters():
    reflected = reflect_function(Holder.method)
    assert [p.name for p in reflected.parameters] == ['a', 'b', 'flag']
    a, b, flag = reflected.parameters
    assert not a.has_default
    assert b.has_default and b.default is None
    assert flag.keyword_only and flag.default is False
    assert reflected.value_type is str


def test_bound_method_has_no_receiver():
    reflected = reflect_function(Holder().method)
    assert [p.name for p in reflected.parameters] == ['a', 'b', 'flag']


def test_reflect_async_shapes():
    coroutine = reflect_function(Holder.coroutine)
    assert coroutine.is_async and coroutine.value_type is int and not coroutine.is_stream
    awaitable = reflect_function(Holder.awaitable)
    assert not awaitable.is_async and awaitable.value_type is int
    future = reflect_function(Holder.future)
    assert future.value_type is Any
    generator = reflect_function(Holder.generator)
    assert generator.is_stream and not generator.is_async and generator.value_type is int
    iterator = reflect_function(Holder.iterator)
    assert iterator.is_stream and iterator.value_type is str


@pytest.mark.parametrize('member', ['untyped', 'variadic', 'no_return', 'unresolved'])
def test_reflect_function_errors(member):
    with pytest.raises(ReflectionError):
        reflect_function(getattr(Holder, member))


def test_explicit_return_type():
    assert reflect_function(lambda source: 1, returns=int).value_type is int
    assert reflect_function(Holder.no_return, returns=str).value_type is str


def test_output_refs(context):
    context.id_coercers[Documented] = Documented
    assert output_ref(int, context) == NonNullRef(ScalarRef(int, 'Int'))
    assert output_ref(Optional[int], context) == ScalarRef(int, 'Int')
    assert output_ref(Union[None, str], context) == ScalarRef(str, 'String')
    assert output_ref(List[Optional[str]], context) == NonNullRef(ListRef(ScalarRef(str, 'String')))
    assert output_ref(Tuple[int, ...], context) == NonNullRef(ListRef(NonNullRef(ScalarRef(int, 'Int'))))
    assert output_ref(Iterable[MyEnum], context) == NonNullRef(ListRef(NonNullRef(EnumRef(MyEnum))))
    assert output_ref(Documented, context) == NonNullRef(IdRef(Documented))
    assert output_ref(Optional[Holder], context) == ObjectRef(Holder)
    assert str(output_ref(List[Holder], context)) == '[Holder!]!'


@pytest.mark.parametrize('hint', [Any, None, Union[int, str], Tuple[int, str], list])
def test_unsupported_output_refs(context, hint):
    with pytest.raises(ReflectionError):
        output_ref(hint, context)


def test_input_class_is_not_an_output(context):
    context.inputs[Documented] = 'Documented'
    with pytest.raises(ReflectionError):
        output_ref(Documented, context)


def test_class_description():
    assert class_description(Documented) == 'A documented class.'
    assert class_description(Undocumented) is None


def test_reflect_dispatches_on_member_kind():
    assert reflect('plain', Holder).value_type is int
    assert reflect(Holder.computed, Holder).value_type == List[int]
    assert reflect(Holder.cached, Holder).value_type is float
    assert [p.name for p in reflect(Holder.method).parameters] == ['a', 'b', 'flag']
    assert reflect(lambda: 1, returns=int, receiver=False).parameters == []
    with pytest.raises(ReflectionError):
        reflect('plain')
    with pytest.raises(ReflectionError):
        reflect(42)
