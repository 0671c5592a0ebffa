"""Type references and helpers to take Python type hints apart.

A ``TypeRef`` is what a field or argument points to before the GraphQL type graph
exists. ``ObjectRef`` is keyed by class identity and only resolved by the
assembler, so types may reference each other in any declaration order.
"""
from __future__ import annotations
import asyncio
import collections.abc as cabc
import concurrent.futures
import types
import typing
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union, get_args, get_origin

from ..errors import ReflectionError


class TypeRef:
    """Base of the type reference union."""

    def named(self) -> 'TypeRef':
        return self

    @property
    def nullable(self) -> bool:
        return True


@dataclass(frozen=True)
class ScalarRef(TypeRef):
    native: Any
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IdRef(TypeRef):
    native: type

    def __str__(self) -> str:
        return 'ID'


@dataclass(frozen=True)
class EnumRef(TypeRef):
    native: type

    def __str__(self) -> str:
        return self.native.__name__


@dataclass(frozen=True)
class InputRef(TypeRef):
    native: type

    def __str__(self) -> str:
        return self.native.__name__


@dataclass(frozen=True)
class ObjectRef(TypeRef):
    """Deferred reference to an Object or Interface declared for ``native``."""

    native: type

    def __str__(self) -> str:
        return self.native.__name__


@dataclass(frozen=True)
class ListRef(TypeRef):
    of: TypeRef

    def named(self) -> TypeRef:
        return self.of.named()

    def __str__(self) -> str:
        return f'[{self.of}]'


@dataclass(frozen=True)
class NonNullRef(TypeRef):
    of: TypeRef

    def named(self) -> TypeRef:
        return self.of.named()

    @property
    def nullable(self) -> bool:
        return False

    def __str__(self) -> str:
        return f'{self.of}!'


def non_null(ref: TypeRef, nullable: bool) -> TypeRef:
    return ref if nullable or isinstance(ref, NonNullRef) else NonNullRef(ref)


def strip_annotated(hint: Any) -> Any:
    if get_origin(hint) is typing.Annotated:
        return get_args(hint)[0]
    return hint


def split_optional(hint: Any) -> Tuple[Any, bool]:
    """Return ``(inner, nullable)`` for ``Optional[X]`` / ``X | None`` hints."""
    hint = strip_annotated(hint)
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(hint) if a is not type(None)]
        nullable = len(args) != len(get_args(hint))
        if len(args) != 1:
            raise ReflectionError(f'Union types are not supported: {hint!r}')
        return strip_annotated(args[0]), nullable
    return hint, False


_LIST_ORIGINS = (
    list, set, frozenset,
    cabc.Sequence, cabc.MutableSequence, cabc.Iterable, cabc.Collection,
    cabc.Set, cabc.MutableSet,
)


def is_list_hint(hint: Any) -> bool:
    if hint in _LIST_ORIGINS or hint is tuple:
        return True
    origin = get_origin(hint)
    return origin in _LIST_ORIGINS or origin is tuple


def list_element(hint: Any) -> Any:
    """Element hint of a list-shaped hint; bare containers are rejected."""
    args = get_args(hint)
    if get_origin(hint) is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0]
        raise ReflectionError(f'Only homogeneous tuples (tuple[X, ...]) are supported: {hint!r}')
    if not args:
        raise ReflectionError(f'List element type is required: {hint!r}')
    return args[0]


_DEFERRED_ORIGINS = (cabc.Awaitable, asyncio.Future, asyncio.Task, concurrent.futures.Future)
_STREAM_ORIGINS = (cabc.AsyncIterator, cabc.AsyncIterable, cabc.AsyncGenerator)


def unwrap_async(hint: Any) -> Tuple[Any, Optional[str]]:
    """Strip an asynchronous wrapper from a return hint.

    Returns the payload hint and ``'deferred'``, ``'stream'`` or ``None``.
    """
    inner = strip_annotated(hint)
    origin = get_origin(inner)
    args = get_args(inner)
    if origin is cabc.Coroutine:
        return (args[2] if len(args) == 3 else Any), 'deferred'
    if origin in _DEFERRED_ORIGINS or inner in _DEFERRED_ORIGINS:
        return (args[0] if args else Any), 'deferred'
    if origin in _STREAM_ORIGINS or inner in _STREAM_ORIGINS:
        return (args[0] if args else Any), 'stream'
    return hint, None


def type_hints(obj: Any) -> Dict[str, Any]:
    """``typing.get_type_hints`` with build-time error reporting."""
    try:
        return typing.get_type_hints(obj, include_extras=True)
    except (NameError, TypeError) as e:
        name = getattr(obj, '__qualname__', repr(obj))
        raise ReflectionError(f'Cannot resolve type hints of {name}: {e}') from e
