"""Member reflection: value type, parameters and call style of class members."""
from __future__ import annotations
import functools
import inspect
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, get_origin

from ..errors import ReflectionError
from .typeref import (
    EnumRef,
    IdRef,
    ListRef,
    ObjectRef,
    ScalarRef,
    TypeRef,
    is_list_hint,
    list_element,
    non_null,
    split_optional,
    strip_annotated,
    type_hints,
    unwrap_async,
)

if typing.TYPE_CHECKING:  # pragma: no cover
    from ..context import SchemaBuilderContext

_MISSING = object()


@dataclass
class Parameter:
    name: str
    hint: Any
    default: Any = inspect.Parameter.empty
    keyword_only: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


@dataclass
class Reflected:
    """Result of reflecting a member.

    Attributes:
        value_type: Declared value/return hint, with any awaitable or async stream
            wrapper removed.
        parameters: Explicit parameters, receiver excluded.
        is_async: The member is a coroutine function; invocation must be scheduled.
        is_stream: The member produces an async stream of ``value_type`` items.
    """

    value_type: Any
    parameters: List[Parameter] = field(default_factory=list)
    is_async: bool = False
    is_stream: bool = False


def _unwrap(hint: Any, is_asyncgen: bool = False) -> tuple:
    payload, kind = unwrap_async(hint)
    return payload, kind == 'stream' or is_asyncgen


def _class_var(hint: Any) -> bool:
    return get_origin(strip_annotated(hint)) is typing.ClassVar


def reflect_property(owner: type, name: str) -> Reflected:
    """Reflect an annotated attribute, dataclass field or ``property`` of ``owner``."""
    attr = inspect.getattr_static(owner, name, _MISSING)
    if isinstance(attr, property):
        if attr.fget is None:
            raise ReflectionError(f'Property {owner.__qualname__}.{name} has no getter')
        hint = type_hints(attr.fget).get('return', _MISSING)
    elif isinstance(attr, functools.cached_property):
        hint = type_hints(attr.func).get('return', _MISSING)
    else:
        hint = type_hints(owner).get(name, _MISSING)
    if hint is _MISSING:
        raise ReflectionError(f'Cannot infer the type of {owner.__qualname__}.{name}: add a type annotation')
    if _class_var(hint):
        hint = typing.get_args(strip_annotated(hint))[0]
    value_type, is_stream = _unwrap(hint)
    return Reflected(value_type, [], False, is_stream)


def reflect_function(func: Callable[..., Any], *, returns: Any = None, receiver: bool = True) -> Reflected:
    """Reflect a function, method or custom fetcher.

    Args:
        func: Plain function (first parameter is the receiver), bound method or
            fetcher callable.
        returns: Explicit value type, used when ``func`` carries no return hint
            (lambdas cannot be annotated).
        receiver: Whether the first positional parameter receives the source
            object. Ignored for bound methods, which already have one.
    """
    target = func.__func__ if inspect.ismethod(func) else func
    if inspect.ismethod(func):
        receiver = False
    name = getattr(target, '__qualname__', repr(target))
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError) as e:
        raise ReflectionError(f'Cannot read the signature of {name}: {e}') from e
    hints = type_hints(target)
    params = list(signature.parameters.values())
    if inspect.ismethod(func) or receiver:
        if not params or params[0].kind not in (
            inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD
        ):
            raise ReflectionError(f'{name} must take the receiver as its first parameter')
        params = params[1:]
    parameters: List[Parameter] = []
    for p in params:
        if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise ReflectionError(f'{name}: variadic parameter `{p.name}` cannot be exposed as an argument')
        if p.name not in hints:
            raise ReflectionError(f'{name}: parameter `{p.name}` has no type annotation')
        parameters.append(Parameter(
            p.name, hints[p.name], p.default, p.kind is inspect.Parameter.KEYWORD_ONLY
        ))
    ret = returns if returns is not None else hints.get('return', _MISSING)
    if ret is _MISSING:
        raise ReflectionError(f'{name} has no return annotation; pass returns=')
    value_type, is_stream = _unwrap(ret, inspect.isasyncgenfunction(target))
    return Reflected(value_type, parameters, inspect.iscoroutinefunction(target), is_stream)


def reflect(member: Any, owner: Optional[type] = None, *, returns: Any = None, receiver: bool = True) -> Reflected:
    """Reflect any member: an attribute name of ``owner``, a property or a function."""
    if isinstance(member, str):
        if owner is None:
            raise ReflectionError(f'Reflecting attribute `{member}` requires its owner class')
        return reflect_property(owner, member)
    if isinstance(member, (property, functools.cached_property)):
        getter = member.fget if isinstance(member, property) else member.func
        if owner is None or getter is None:
            raise ReflectionError(f'Reflecting {member!r} requires its owner class and a getter')
        return reflect_property(owner, getter.__name__)
    if callable(member):
        return reflect_function(member, returns=returns, receiver=receiver)
    raise ReflectionError(f'Cannot reflect {member!r}')


def output_ref(hint: Any, context: 'SchemaBuilderContext') -> TypeRef:
    """Classify an output hint; Optional hints are nullable, everything else is non-null."""
    inner, nullable = split_optional(hint)
    return non_null(_named_output(inner, context), nullable)


def _named_output(hint: Any, context: 'SchemaBuilderContext') -> TypeRef:
    if hint is Any or hint is None or hint is type(None):
        raise ReflectionError(f'Cannot expose a value of type {hint!r}')
    scalar = context.scalar_for(hint)
    if scalar is not None:
        return ScalarRef(hint, scalar.name)
    if context.is_id_type(hint):
        return IdRef(hint)
    if isinstance(hint, type) and issubclass(hint, Enum):
        return EnumRef(hint)
    if is_list_hint(hint):
        return ListRef(output_ref(list_element(hint), context))
    if context.is_input_type(hint):
        raise ReflectionError(f'Input type {hint.__qualname__} cannot be used as an output type')
    if isinstance(hint, type):
        return ObjectRef(hint)
    raise ReflectionError(f'Unsupported output type {hint!r}')


def class_description(cls: Any) -> Optional[str]:
    """Docstring of ``cls`` itself; generated dataclass/enum docstrings are ignored."""
    doc = vars(cls).get('__doc__') if isinstance(cls, type) else None
    if not doc or not isinstance(doc, str):
        return None
    if doc.startswith(cls.__name__ + '(') or doc == 'An enumeration.':
        return None
    return inspect.cleandoc(doc)
