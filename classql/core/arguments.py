"""Field arguments: classification of parameter types and request-time conversion.

Classification precedence for a parameter type: scalar, ID alias, enum, registered
input class, list of those. Anything else is rejected at build time. Each
classified type comes with a converter turning the value graphql-core coerced
from the request into the value the native parameter expects.
"""
from __future__ import annotations
import collections.abc as cabc
import dataclasses
import inspect
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Tuple, get_origin

from graphql import GraphQLResolveInfo

from ..errors import CoercionError, UnsupportedArgumentTypeError
from .reflection import Parameter
from .typeref import (
    EnumRef,
    IdRef,
    InputRef,
    ListRef,
    NonNullRef,
    ScalarRef,
    TypeRef,
    is_list_hint,
    list_element,
    split_optional,
    strip_annotated,
    type_hints,
)

if typing.TYPE_CHECKING:  # pragma: no cover
    from ..context import SchemaBuilderContext

Converter = Callable[[Any], Any]

_EMPTY = inspect.Parameter.empty


def _identity(value: Any) -> Any:
    return value


@dataclass
class Argument:
    """One parameter of a field.

    ``name`` is the exposed GraphQL name, ``python_name`` the native parameter
    name (also the graphql-core ``out_name`` the raw value is keyed by).
    Injected arguments (parameters annotated with ``GraphQLResolveInfo``) are not
    exposed; they resolve to the current resolve info.
    """

    name: str
    python_name: str
    type: Optional[TypeRef]
    convert: Converter = _identity
    default: Any = _EMPTY
    keyword_only: bool = False
    injected: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not _EMPTY

    def resolve(self, raw_args: Mapping[str, Any], info: Any = None) -> Any:
        if self.injected:
            return info
        if self.python_name in raw_args:
            value = raw_args[self.python_name]
        elif self.has_default:
            return self.default
        else:
            value = None
        try:
            return self.convert(value)
        except CoercionError as e:
            raise CoercionError(f'Argument `{self.name}`: {e}') from e


@dataclass
class InputField:
    name: str
    python_name: str
    type: TypeRef
    convert: Converter
    default: Any = _EMPTY

    @property
    def has_default(self) -> bool:
        return self.default is not _EMPTY


def create_argument(parameter: Parameter, context: 'SchemaBuilderContext') -> Argument:
    """Build the :class:`Argument` for a reflected parameter."""
    hint = strip_annotated(parameter.hint)
    if hint is GraphQLResolveInfo:
        return Argument(parameter.name, parameter.name, None, injected=True, keyword_only=parameter.keyword_only)
    try:
        ref, convert = input_ref(parameter.hint, context, has_default=parameter.has_default)
    except UnsupportedArgumentTypeError as e:
        raise UnsupportedArgumentTypeError(f'Parameter `{parameter.name}`: {e}') from e
    return Argument(
        name=context.convert_name(parameter.name),
        python_name=parameter.name,
        type=ref,
        convert=convert,
        default=parameter.default,
        keyword_only=parameter.keyword_only,
    )


def input_ref(hint: Any, context: 'SchemaBuilderContext', *, has_default: bool = False) -> Tuple[TypeRef, Converter]:
    """Classify an input hint and build its converter.

    A parameter with a default value is exposed as nullable so callers may omit it.
    """
    inner, nullable = split_optional(hint)
    ref, convert = _named_input(inner, context)
    if nullable or has_default:
        return ref, convert
    return NonNullRef(ref), _required(convert, ref)


def _required(convert: Converter, ref: TypeRef) -> Converter:
    def required(value: Any) -> Any:
        result = convert(value)
        if result is None:
            raise CoercionError(f'a non-null {ref} value is required, got {value!r}')
        return result
    return required


def _named_input(hint: Any, context: 'SchemaBuilderContext') -> Tuple[TypeRef, Converter]:
    scalar = context.scalar_for(hint)
    if scalar is not None:
        return ScalarRef(hint, scalar.name), _identity
    if context.is_id_type(hint):
        return IdRef(hint), context.id_coercers[hint]
    if isinstance(hint, type) and issubclass(hint, Enum):
        return EnumRef(hint), _enum_converter(hint)
    if context.is_input_type(hint):
        return InputRef(hint), _input_converter(hint, context)
    if is_list_hint(hint):
        element_ref, element_convert = input_ref(list_element(hint), context)
        return ListRef(element_ref), _list_converter(element_convert, _container(hint))
    if isinstance(hint, type):
        raise UnsupportedArgumentTypeError(
            f'unsupported argument type {hint.__qualname__}; declare it with input() to accept it as an argument'
        )
    raise UnsupportedArgumentTypeError(f'unsupported argument type {hint!r}')


def _container(hint: Any) -> Callable[[list], Any]:
    origin = get_origin(hint) or hint
    if origin in (set, frozenset, tuple):
        return origin
    return list


def _enum_converter(enum_cls: type) -> Converter:
    def convert(value: Any) -> Any:
        if value is None or isinstance(value, enum_cls):
            return value
        try:
            return enum_cls[value]
        except KeyError:
            raise CoercionError(f'{value!r} is not a member of {enum_cls.__name__}') from None
    return convert


def _list_converter(convert: Converter, container: Callable[[list], Any]) -> Converter:
    def convert_list(value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (str, bytes)) or not isinstance(value, cabc.Iterable):
            value = [value]
        return container([convert(item) for item in value])
    return convert_list


def _input_converter(input_cls: type, context: 'SchemaBuilderContext') -> Converter:
    def convert(value: Any) -> Any:
        if value is None or isinstance(value, input_cls):
            return value
        if not isinstance(value, Mapping):
            raise CoercionError(f'expected an object for {input_cls.__name__}, got {value!r}')
        kwargs = {
            f.python_name: f.convert(value[f.python_name])
            for f in input_fields(input_cls, context)
            if f.python_name in value
        }
        try:
            return input_cls(**kwargs)
        except TypeError as e:
            raise CoercionError(f'cannot build {input_cls.__name__}: {e}') from e
    return convert


def _field_defaults(input_cls: type) -> dict:
    if dataclasses.is_dataclass(input_cls):
        defaults = {}
        for f in dataclasses.fields(input_cls):
            if f.default is not dataclasses.MISSING:
                defaults[f.name] = f.default
            elif f.default_factory is not dataclasses.MISSING:
                defaults[f.name] = _EMPTY
        return defaults
    return {k: v for k, v in vars(input_cls).items() if not k.startswith('_') and not callable(v)}


def input_fields(input_cls: type, context: 'SchemaBuilderContext') -> List[InputField]:
    """Reflected fields of a registered input class, cached on the context."""
    cached = context.input_fields.get(input_cls)
    if cached is not None:
        return cached
    defaults = _field_defaults(input_cls)
    fields: List[InputField] = []
    for name, hint in type_hints(input_cls).items():
        if name.startswith('_') or get_origin(strip_annotated(hint)) is typing.ClassVar:
            continue
        try:
            ref, convert = input_ref(hint, context, has_default=name in defaults)
        except UnsupportedArgumentTypeError as e:
            raise UnsupportedArgumentTypeError(f'Input field {input_cls.__qualname__}.{name}: {e}') from e
        fields.append(InputField(context.convert_name(name), name, ref, convert, defaults.get(name, _EMPTY)))
    context.input_fields[input_cls] = fields
    return fields
