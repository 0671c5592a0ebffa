"""Type builders: collect the fields of one object, interface or root operation type."""
from __future__ import annotations
import functools
import inspect
import typing
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .context import SchemaBuilderContext
from .core.fields import Field, custom_field, function_field, property_field, static_field
from .core.reflection import class_description
from .core.typeref import strip_annotated, type_hints
from .errors import (
    DuplicateFieldError,
    InterfaceContractError,
    MemberConflictError,
    ReflectionError,
    SchemaBuildError,
    UnknownFieldError,
)

_MISSING = object()
_PROPERTY_TYPES = (property, functools.cached_property)


def _qualified(cls: type) -> str:
    return f'{cls.__module__}.{cls.__qualname__}'


def _property_names(cls: type) -> List[str]:
    """Annotated attributes and properties of ``cls``, base classes first, in declaration order."""
    hints = type_hints(cls)
    names: Dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name in inspect.get_annotations(klass):
            hint = hints.get(name)
            if typing.get_origin(strip_annotated(hint)) is typing.ClassVar:
                continue
            names.setdefault(name)
        for name, value in vars(klass).items():
            if isinstance(value, _PROPERTY_TYPES):
                names.setdefault(name)
    return list(names)


def _function_names(cls: type) -> List[str]:
    """Instance methods of ``cls``, base classes first, in declaration order."""
    names: Dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, value in vars(klass).items():
            if inspect.isfunction(value):
                names.setdefault(name)
    return [n for n in names if inspect.isfunction(inspect.getattr_static(cls, n, None))]


def _split_exclusions(exclusions: Iterable[Any]) -> Tuple[set, list]:
    names = {e for e in exclusions if isinstance(e, str)}
    members = [e for e in exclusions if not isinstance(e, str)]
    return names, members


def _excluded(member: Any, members: list) -> bool:
    return any(member is m for m in members)


class BaseTypeBuilder:
    """Common DSL of object, interface and root operation builders.

    A builder is open while its declaration block runs and frozen afterwards; the
    assembler consumes its ``fields`` in declaration order.
    """

    kind = 'object'

    def __init__(
        self,
        cls: type,
        name: str,
        description: Optional[str],
        context: SchemaBuilderContext,
        instance: Any = None,
        streaming: bool = False,
    ):
        self.cls = cls
        self.name = name
        self.description = description if description is not None else class_description(cls)
        self.fields: List[Field] = []
        self.instance = instance
        self.streaming = streaming
        self._context = context
        self._next_desc: Optional[str] = None
        self._frozen = False
        self._entered = False

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.name}[{_qualified(self.cls)}]>'

    # --- lifecycle ---------------------------------------------------------

    def __enter__(self) -> 'BaseTypeBuilder':
        self._check_open()
        self._entered = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.freeze()

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def entered(self) -> bool:
        return self._entered

    def freeze(self) -> None:
        self._frozen = True

    def _check_open(self) -> None:
        if self._frozen:
            raise SchemaBuildError(f'{self.name} is frozen; declare fields inside its block')

    # --- lookup ------------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return any(f.name == name for f in self.fields)

    def get_field(self, name: str) -> Optional[Field]:
        return next((f for f in self.fields if f.name == name), None)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    # --- descriptions ------------------------------------------------------

    def desc(self, text: str) -> None:
        """Set the description of the next declared field (a later call overwrites it)."""
        self._check_open()
        self._next_desc = inspect.cleandoc(text)

    def _take_desc(self) -> Optional[str]:
        text, self._next_desc = self._next_desc, None
        return text

    def describe(self, name: str, text: str) -> None:
        """Set the description of an already declared (e.g. derived) field."""
        self._check_open()
        field = self.get_field(name)
        if field is None:
            raise UnknownFieldError(f'{self.name} has no field `{name}` to describe')
        field.description = inspect.cleandoc(text)

    # --- fields ------------------------------------------------------------

    def _check_name(self, name: str) -> None:
        if name in self:
            raise DuplicateFieldError(f'A field named `{name}` is already declared on {self.name}')

    def _add(self, field: Field) -> None:
        self._check_name(field.name)
        self.fields.append(field)

    def static(self, name: str, value: Any, type_: Any = None) -> None:
        """Include a field returning a constant value.

        Args:
            name: Field name.
            value: The value returned for every request.
            type_: Type shown in the schema; inferred from ``value`` by default.
        """
        self._check_open()
        self._check_name(name)
        self._add(static_field(name, value, self._take_desc(), self._context, type_))

    def include(self, member: Any, name: Optional[str] = None) -> None:
        """Include a field backed by a class member.

        Args:
            member: Attribute name, function, ``property`` or bound method.
            name: Field name; defaults to the member name.
        """
        self._check_open()
        if name is not None:
            self._check_name(name)
        self._add(self._member_field(member, name, self._take_desc()))

    def __iadd__(self, member: Any) -> 'BaseTypeBuilder':
        self.include(member)
        return self

    def _member_field(self, member: Any, name: Optional[str], description: Optional[str]) -> Field:
        ctx = self._context
        if isinstance(member, str):
            attr = inspect.getattr_static(self.cls, member, _MISSING)
            if inspect.isfunction(attr):
                return function_field(
                    attr, name or ctx.convert_name(member), description, ctx,
                    receiver=self.instance, streaming=self.streaming,
                )
            if isinstance(attr, (staticmethod, classmethod)):
                raise ReflectionError(f'{self.cls.__qualname__}.{member}: static and class methods cannot be fields')
            return property_field(
                self.cls, member, name, description, ctx,
                receiver=self.instance, streaming=self.streaming,
                member=attr if isinstance(attr, _PROPERTY_TYPES) else member,
            )
        if isinstance(member, property):
            attr = member.fget.__name__ if member.fget is not None else None
            if attr is None:
                raise ReflectionError(f'Property {member!r} has no getter')
            return property_field(
                self.cls, attr, name, description, ctx,
                receiver=self.instance, streaming=self.streaming, member=member,
            )
        if isinstance(member, functools.cached_property):
            return property_field(
                self.cls, member.attrname, name, description, ctx,
                receiver=self.instance, streaming=self.streaming, member=member,
            )
        if inspect.isfunction(member) or inspect.ismethod(member):
            return function_field(
                member, name, description, ctx,
                receiver=self.instance, streaming=self.streaming,
            )
        raise ReflectionError(f'Cannot include {member!r} as a field of {self.name}')

    def exclude(self, member: Any) -> None:
        """Remove a previously included or derived field, by member identity or by name."""
        self._check_open()
        if isinstance(member, str):
            matches = [f for f in self.fields if f.name == member or f.member == member]
        else:
            matches = [f for f in self.fields if f.member is member or (inspect.ismethod(member) and f.member == member)]
        if not matches:
            raise UnknownFieldError(f'{member!r} is not a field of {self.name}')
        self.fields = [f for f in self.fields if all(f is not m for m in matches)]

    def __isub__(self, member: Any) -> 'BaseTypeBuilder':
        self.exclude(member)
        return self

    def field(self, name: str, fetcher: Optional[Callable[..., Any]] = None, *, returns: Any = None):
        """Declare a custom field.

        ``fetcher`` receives the source object (or the bound root instance) first,
        then one value per declared parameter. Used without ``fetcher`` this returns
        a decorator::

            @t.field('custom2')
            def custom2(self, a: List[int], b: int) -> List[int]:
                return [x * b for x in a]
        """
        if fetcher is None:
            def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
                self.field(name, fn, returns=returns)
                return fn
            return decorator
        self._check_open()
        self._check_name(name)
        self._add(custom_field(
            name, fetcher, self._take_desc(), self._context,
            receiver=self.instance, streaming=self.streaming, returns=returns,
        ))
        return fetcher

    # --- derivation --------------------------------------------------------

    def derive(self, *exclusions: Any, reserved: Optional[Callable[[str], bool]] = None) -> None:
        """Include fields for the properties and functions of the backing class.

        Args:
            *exclusions: Member names, functions or properties to leave out.
            reserved: Predicate on member names to skip; defaults to the configured one
                (private names and universal helpers).
        """
        self.derive_properties(*exclusions, reserved=reserved)
        self.derive_functions(*exclusions, reserved=reserved)

    def derive_properties(self, *exclusions: Any, reserved: Optional[Callable[[str], bool]] = None) -> None:
        self._check_open()
        names, members = _split_exclusions(exclusions)
        reserved = reserved or self._context.config.reserved
        for attr in _property_names(self.cls):
            if attr in names or reserved(attr):
                continue
            static_attr = inspect.getattr_static(self.cls, attr, None)
            if static_attr is not None and _excluded(static_attr, members):
                continue
            if inspect.isfunction(static_attr):
                raise MemberConflictError(
                    f'{self.cls.__qualname__}.{attr} is both an annotated property and a function; '
                    f'exclude one of them and include the other explicitly'
                )
            field = property_field(
                self.cls, attr, None, None, self._context,
                receiver=self.instance, streaming=self.streaming,
                member=static_attr if isinstance(static_attr, _PROPERTY_TYPES) else attr,
            )
            self._context.log.debug('[derive] %s[%s] property `%s`: %s', self.name, _qualified(self.cls), attr, field.type)
            self._add(field)

    def derive_functions(self, *exclusions: Any, reserved: Optional[Callable[[str], bool]] = None) -> None:
        self._check_open()
        names, members = _split_exclusions(exclusions)
        reserved = reserved or self._context.config.reserved
        for attr in _function_names(self.cls):
            if attr in names or reserved(attr):
                continue
            func = inspect.getattr_static(self.cls, attr)
            if _excluded(func, members):
                continue
            field = function_field(
                func, None, None, self._context,
                receiver=self.instance, streaming=self.streaming,
            )
            self._context.log.debug('[derive] %s[%s] function `%s`: %s', self.name, _qualified(self.cls), attr, field.type)
            self._add(field)


def _check_type_class(cls: Any, context: SchemaBuilderContext) -> None:
    if not isinstance(cls, type) or issubclass(cls, Enum) or context.scalar_for(cls) is not None:
        raise ReflectionError(f'{cls!r} cannot be declared as an object or interface type')


class InterfaceBuilder(BaseTypeBuilder):
    """Builds a GraphQL interface backed by a base class."""

    kind = 'interface'

    def __init__(self, cls: type, name: str, description: Optional[str], context: SchemaBuilderContext):
        _check_type_class(cls, context)
        super().__init__(cls, name, description, context)


class TypeBuilder(BaseTypeBuilder):
    """Builds a GraphQL object type."""

    def __init__(self, cls: type, name: str, description: Optional[str], context: SchemaBuilderContext):
        _check_type_class(cls, context)
        super().__init__(cls, name, description, context)
        self.interfaces: List[type] = []

    def implements(self, *interfaces: type) -> None:
        """Declare this type as implementing the interfaces declared for ``interfaces``."""
        self._check_open()
        for iface in interfaces:
            if not isinstance(iface, type) or not issubclass(self.cls, iface):
                raise InterfaceContractError(f'{self.cls.__qualname__} does not subclass {iface!r}')
            if iface not in self.interfaces:
                self.interfaces.append(iface)


class OperationBuilder(BaseTypeBuilder):
    """Builds a root operation type bound to a single live instance.

    Fields of a root never read the request's source value: properties and
    functions are always evaluated on ``instance``.
    """

    def __init__(self, name: str, instance: Any, context: SchemaBuilderContext, streaming: bool = False):
        cls = type(instance)
        _check_type_class(cls, context)
        super().__init__(cls, name, None, context, instance=instance, streaming=streaming)
