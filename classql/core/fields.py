from __future__ import annotations
import typing
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from ..errors import ReflectionError
from .arguments import Argument, create_argument
from .fetchers import Fetcher, function_fetcher, property_fetcher, static_fetcher
from .reflection import Reflected, output_ref, reflect_function, reflect_property
from .typeref import ListRef, NonNullRef, TypeRef, is_list_hint

if typing.TYPE_CHECKING:  # pragma: no cover
    from ..context import SchemaBuilderContext

#: Maximum number of explicit parameters of a custom field fetcher.
MAX_FIELD_ARITY = 6


@dataclass
class Field:
    """One exposed field of a type.

    Attributes:
        name: GraphQL field name, unique within the owning builder.
        description: Optional GraphQL description.
        type: Output type reference.
        arguments: Arguments in parameter declaration order (injected ones included).
        fetcher: ``(source, info, **raw_args)`` callable producing the value.
        member: The property name, function or property object the field was
            created from; ``exclude()`` matches on it.
        is_stream: The underlying member produces an async stream.
    """

    name: str
    description: Optional[str]
    type: TypeRef
    arguments: List[Argument]
    fetcher: Fetcher
    member: Any = None
    is_stream: bool = False

    @property
    def exposed_arguments(self) -> List[Argument]:
        return [a for a in self.arguments if not a.injected]


def _field_type(reflected: Reflected, context: 'SchemaBuilderContext', streaming: bool) -> TypeRef:
    ref = output_ref(reflected.value_type, context)
    if reflected.is_stream and not streaming:
        # outside subscription roots a stream is collected into a list
        return NonNullRef(ListRef(ref))
    return ref


def static_field(
    name: str,
    value: Any,
    description: Optional[str],
    context: 'SchemaBuilderContext',
    type_: Any = None,
) -> Field:
    """Field always returning ``value``; its type is inferred from the value unless given."""
    if type_ is None:
        if value is None or is_list_hint(type(value)):
            raise ReflectionError(f'Cannot infer the type of static field `{name}` from {value!r}; pass type_=')
        type_ = type(value)
    return Field(name, description, output_ref(type_, context), [], static_fetcher(value), member=name)


def property_field(
    owner: type,
    attr: str,
    name: Optional[str],
    description: Optional[str],
    context: 'SchemaBuilderContext',
    receiver: Any = None,
    streaming: bool = False,
    member: Any = None,
) -> Field:
    reflected = reflect_property(owner, attr)
    return Field(
        name or context.convert_name(attr),
        description,
        _field_type(reflected, context, streaming),
        [],
        property_fetcher(attr, receiver, streaming=streaming),
        member=member if member is not None else attr,
        is_stream=reflected.is_stream,
    )


def function_field(
    func: Callable[..., Any],
    name: Optional[str],
    description: Optional[str],
    context: 'SchemaBuilderContext',
    receiver: Any = None,
    streaming: bool = False,
    returns: Any = None,
    max_arity: Optional[int] = None,
    member: Any = None,
    dispatch: bool = True,
) -> Field:
    """Field backed by a function, a bound method or a custom fetcher.

    The first parameter of an unbound function receives the source value (or the
    bound ``receiver``); every following parameter becomes an argument. With
    ``dispatch`` an override of the method on the source's class is called instead.
    """
    reflected = reflect_function(func, returns=returns)
    field_name = name or context.convert_name(func.__name__)
    if max_arity is not None and len(reflected.parameters) > max_arity:
        raise ReflectionError(
            f'Field `{field_name}` declares {len(reflected.parameters)} parameters, at most {max_arity} are supported'
        )
    arguments = [create_argument(p, context) for p in reflected.parameters]
    return Field(
        field_name,
        description,
        _field_type(reflected, context, streaming),
        arguments,
        function_fetcher(func, arguments, is_async=reflected.is_async, receiver=receiver, streaming=streaming, dispatch=dispatch),
        member=member if member is not None else func,
        is_stream=reflected.is_stream,
    )


def custom_field(
    name: str,
    fetcher: Callable[..., Any],
    description: Optional[str],
    context: 'SchemaBuilderContext',
    receiver: Any = None,
    streaming: bool = False,
    returns: Any = None,
) -> Field:
    """Hand-written field: ``fetcher(receiver, *args)`` with up to ``MAX_FIELD_ARITY`` args."""
    return function_field(
        fetcher, name, description, context,
        receiver=receiver, streaming=streaming, returns=returns,
        max_arity=MAX_FIELD_ARITY, member=name, dispatch=False,
    )
