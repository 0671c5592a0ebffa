import inspect
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

import pytest
from graphql import GraphQLResolveInfo

from classql import BuilderConfig
from classql.context import SchemaBuilderContext
from classql.core.arguments import create_argument, input_fields
from classql.core.reflection import Parameter
from classql.core.typeref import IdRef, InputRef, ListRef, NonNullRef, ScalarRef
from classql.errors import CoercionError, UnsupportedArgumentTypeError
from tests.schema import MyEnum


class Key:
    def __init__(self, raw: str):
        self.raw = raw


@dataclass
class Point:
    x: int
    y: int = 0
    labels: List[str] = field(default_factory=list)


@dataclass
class Shape:
    name: str
    points: List[Point]
    kind: Optional[MyEnum] = None


class Plain:
    pass


@pytest.fixture
def ctx(context):
    context.id_coercers[Key] = lambda v: None if v in (None, 'none') else Key(v)
    context.inputs[Point] = 'Point'
    context.inputs[Shape] = 'Shape'
    return context


def arg(ctx, name, hint, default=inspect.Parameter.empty):
    return create_argument(Parameter(name, hint, default), ctx)


def test_scalar_arguments(ctx):
    a = arg(ctx, 'count', int)
    assert a.type == NonNullRef(ScalarRef(int, 'Int'))
    assert a.resolve({'count': 5}) == 5
    optional = arg(ctx, 'count', Optional[int])
    assert optional.type == ScalarRef(int, 'Int')
    assert optional.resolve({}) is None


def test_default_makes_argument_nullable(ctx):
    a = arg(ctx, 'limit', int, 10)
    assert a.type == ScalarRef(int, 'Int')
    assert a.resolve({}) == 10
    assert a.resolve({'limit': 3}) == 3


def test_id_arguments_use_coercer(ctx):
    a = arg(ctx, 'key', Key)
    assert a.type == NonNullRef(IdRef(Key))
    assert a.resolve({'key': 'abc'}).raw == 'abc'
    with pytest.raises(CoercionError, match='key'):
        a.resolve({'key': 'none'})
    assert arg(ctx, 'key', Optional[Key]).resolve({'key': 'none'}) is None


def test_enum_arguments(ctx):
    a = arg(ctx, 'kind', MyEnum)
    assert a.resolve({'kind': MyEnum.B}) is MyEnum.B
    assert a.resolve({'kind': 'A'}) is MyEnum.A
    with pytest.raises(CoercionError):
        a.resolve({'kind': 'Z'})


def test_input_arguments_are_built(ctx):
    a = arg(ctx, 'shape', Shape)
    assert a.type == NonNullRef(InputRef(Shape))
    shape = a.resolve({'shape': {'name': 's', 'points': [{'x': 1, 'y': 2}, {'x': 3}], 'kind': MyEnum.A}})
    assert shape == Shape('s', [Point(1, 2), Point(3)], MyEnum.A)
    with pytest.raises(CoercionError):
        a.resolve({'shape': {'points': []}})


def test_list_containers(ctx):
    assert arg(ctx, 'ids', List[Key]).type == NonNullRef(ListRef(NonNullRef(IdRef(Key))))
    assert arg(ctx, 'tags', Set[str]).resolve({'tags': ['a', 'b', 'a']}) == {'a', 'b'}
    assert arg(ctx, 'tags', FrozenSet[str]).resolve({'tags': ['a']}) == frozenset({'a'})
    assert arg(ctx, 'nums', Tuple[int, ...]).resolve({'nums': [1, 2]}) == (1, 2)
    assert arg(ctx, 'nums', Sequence[int]).resolve({'nums': [1, 2]}) == [1, 2]
    nested = arg(ctx, 'grid', List[List[int]])
    assert str(nested.type) == '[[Int!]!]!'
    assert nested.resolve({'grid': [[1], [2, 3]]}) == [[1], [2, 3]]
    keys = arg(ctx, 'keys', List[Key]).resolve({'keys': ['a', 'b']})
    assert [k.raw for k in keys] == ['a', 'b']


@pytest.mark.parametrize('hint', [Plain, Dict[str, int], Optional[Plain], List[Plain]])
def test_unsupported_arguments(ctx, hint):
    with pytest.raises(UnsupportedArgumentTypeError):
        arg(ctx, 'value', hint)


def test_injected_resolve_info(ctx):
    a = arg(ctx, 'info', GraphQLResolveInfo)
    assert a.injected
    sentinel = object()
    assert a.resolve({}, sentinel) is sentinel


def test_names_follow_name_converter():
    ctx = SchemaBuilderContext(BuilderConfig(auto_camel_case=True))
    a = arg(ctx, 'page_size', int)
    assert a.name == 'pageSize'
    assert a.python_name == 'page_size'
    assert a.resolve({'page_size': 20}) == 20


def test_input_fields(ctx):
    fields = input_fields(Point, ctx)
    assert [f.name for f in fields] == ['x', 'y', 'labels']
    x, y, labels = fields
    assert x.type == NonNullRef(ScalarRef(int, 'Int'))
    assert y.type == ScalarRef(int, 'Int') and y.default == 0
    # default factories keep the field optional without publishing a default
    assert labels.type == ListRef(NonNullRef(ScalarRef(str, 'String')))
    assert not labels.has_default
    assert input_fields(Point, ctx) is fields
