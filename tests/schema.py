"""Shared classql schema used by the execution tests.

Covers every declaration route: custom scalar, ID alias, enum, input, interface
with a custom field, objects built by include/derive/exclude and custom fetchers,
and query/mutation/subscription roots with synchronous, coroutine, awaitable,
future and stream fields.
"""
from __future__ import annotations
import asyncio
import concurrent.futures
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, Awaitable, List, Optional

from graphql import GraphQLResolveInfo, StringValueNode
from strawberry.scalars import JSON

from classql import BuilderConfig, SchemaBuilder, SchemaDsl


class MyId:
    """Identifier rendered as its inner string."""

    def __init__(self, inner: str):
        self.inner = inner

    def __eq__(self, other: object) -> bool:
        return isinstance(other, MyId) and other.inner == self.inner

    def __hash__(self) -> int:
        return hash(self.inner)

    def __str__(self) -> str:
        return self.inner


class Url:
    def __init__(self, value: str):
        self.value = value


class UrlCoercing:
    """serialize / parse_value / parse_literal triple for ``Url``."""

    @staticmethod
    def serialize(value: Url) -> str:
        return value.value

    @staticmethod
    def parse_value(value: str) -> Url:
        return Url(value)

    @staticmethod
    def parse_literal(node, variables=None) -> Url:
        if not isinstance(node, StringValueNode):
            raise ValueError('Url literal must be a string')
        return Url(node.value)


class MyEnum(Enum):
    A = 'a'
    B = 'b'


@dataclass
class Input:
    name: str
    count: int = 1
    kind: Optional[MyEnum] = None


@dataclass
class Node:
    id: MyId


@dataclass
class MyData(Node):
    field: int
    homepage: Optional[Url] = None

    def dec(self) -> int:
        return self.field - 1


@dataclass
class OtherData(Node):
    field: str
    tags: List[str]


DATA = MyData(MyId('data'), 42, Url('https://example.com'))
OTHER = OtherData(MyId('other'), 'hidden', ['x', 'y'])
CREATED_AT = datetime(2024, 1, 2, 3, 4, 5)


async def _later(value: int) -> int:
    await asyncio.sleep(0)
    return value


class Query:
    def data(self) -> MyData:
        return DATA

    def otherdata(self) -> OtherData:
        return OTHER

    def node(self) -> Node:
        return DATA

    def nodes(self) -> List[Node]:
        return [DATA, OTHER]

    def find(self, id: MyId) -> Optional[Node]:
        return {DATA.id: DATA, OTHER.id: OTHER}.get(id)

    async def test_suspend(self) -> int:
        await asyncio.sleep(0)
        return 1

    def test_deferred(self) -> Awaitable[int]:
        return _later(2)

    def test_future(self) -> concurrent.futures.Future[int]:
        future: concurrent.futures.Future[int] = concurrent.futures.Future()
        future.set_result(3)
        return future

    async def numbers(self, count: int = 3) -> AsyncIterator[int]:
        for i in range(1, count + 1):
            await asyncio.sleep(0)
            yield i

    def echo(self, input: Input) -> str:
        return f'{input.name}x{input.count}:{input.kind.name if input.kind else "-"}'

    def choose(self, value: MyEnum = MyEnum.A) -> MyEnum:
        return value

    def created_at(self) -> datetime:
        return CREATED_AT

    def meta(self) -> JSON:
        return {'version': 1, 'tags': ['a', 'b']}

    def resolve_name(self, info: GraphQLResolveInfo) -> str:
        return info.field_name

    def broken(self) -> Optional[str]:
        raise RuntimeError('boom')

    async def broken_later(self) -> Optional[int]:
        await asyncio.sleep(0)
        raise RuntimeError('later boom')


class Mutation:
    def __init__(self):
        self.renamed: List[str] = []

    def rename(self, id: MyId, name: str) -> str:
        self.renamed.append(name)
        return f'{id.inner}={name}'


class Subscription:
    async def counter(self, to: int) -> AsyncIterator[int]:
        for i in range(to):
            await asyncio.sleep(0)
            yield i


builder = SchemaBuilder(config=BuilderConfig(auto_camel_case=True))


@builder.block
def declarations(s: SchemaDsl):
    s.scalar(Url, UrlCoercing, name='Url')
    s.scalar(JSON)
    s.id(MyId)
    s.enum(MyEnum)
    s.input(Input)

    s.desc('This describes my Node interface')
    with s.inter(Node) as t:
        t.derive()

        t.desc('Description on a field too !')

        @t.field('parent')
        def parent(node: Node) -> MyId:
            return MyId('Node:' + node.id.inner)

    s.desc("""
        This is a cool looking multiline description
        No need to dedent it
    """)
    with s.type(MyData) as t:
        t.implements(Node)
        t.include('id')
        t.include(MyData.dec)
        t += 'field'
        t.include('homepage')

        @t.field('inc')
        def inc(data: MyData, info: GraphQLResolveInfo) -> int:
            return data.field + 1

    with s.type(OtherData) as t:
        t.implements(Node)
        t.derive()
        t -= 'field'

        @t.field('custom')
        def custom(data: OtherData, param: str) -> str:
            return param

        @t.field('custom2')
        def custom2(data: OtherData, a: List[int], b: int) -> List[int]:
            return [x * b for x in a]

        @t.field('custom3')
        def custom3(data: OtherData, a: int, b: float, c: MyId) -> str:
            return f'{c}: {a * b}'

    s.query(Query())
    s.mutation(Mutation())
    s.subscription(Subscription())


schema = builder.build()
