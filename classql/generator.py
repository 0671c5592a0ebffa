"""Assembly of frozen builders into a graphql-core ``GraphQLSchema``.

Assembly runs in two phases. Phase one creates every named type with its field
map left as a thunk. Phase two resolves the type references of every field and
argument against the types of phase one and fills the thunks' dictionaries.
Errors of phase two are raised directly, so they keep their class instead of
surfacing through graphql-core's lazy thunk evaluation.
"""
from __future__ import annotations
import typing
from enum import Enum
from typing import Any, Dict, List, Optional

from graphql import (
    GraphQLArgument,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLError,
    GraphQLField,
    GraphQLID,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLSchema,
    Undefined,
    validate_schema,
)

from .builders import BaseTypeBuilder, InterfaceBuilder, TypeBuilder
from .core.arguments import Argument, input_fields
from .core.fields import Field
from .core.fetchers import map_result
from .core.scalars import id_output
from .core.typeref import EnumRef, IdRef, InputRef, ListRef, NonNullRef, ObjectRef, ScalarRef, TypeRef
from .errors import InterfaceContractError, ReflectionError, SchemaBuildError

if typing.TYPE_CHECKING:  # pragma: no cover
    from .context import SchemaBuilderContext
    from .registry import SchemaDsl

_PUBLISHED_DEFAULTS = (type(None), bool, int, float, str, Enum)


def _identity_resolver(event: Any, info: Any, **raw_args: Any) -> Any:
    return event


def _with_ids(field: Field, resolve: Any) -> Any:
    """Render ID alias results as strings; other fields keep their resolver."""
    if not isinstance(field.type.named(), IdRef):
        return resolve

    def resolve_ids(source: Any, info: Any, **raw_args: Any) -> Any:
        return map_result(resolve(source, info, **raw_args), id_output)
    return resolve_ids


def _covariant(sub: TypeRef, sup: TypeRef) -> bool:
    """Whether a field of type ``sub`` may implement an interface field of type ``sup``."""
    if isinstance(sup, NonNullRef):
        return isinstance(sub, NonNullRef) and _covariant(sub.of, sup.of)
    if isinstance(sub, NonNullRef):
        return _covariant(sub.of, sup)
    if isinstance(sup, ListRef) or isinstance(sub, ListRef):
        return isinstance(sup, ListRef) and isinstance(sub, ListRef) and _covariant(sub.of, sup.of)
    if isinstance(sub, ObjectRef) and isinstance(sup, ObjectRef):
        return issubclass(sub.native, sup.native)
    return _named_key(sub) == _named_key(sup)


def _named_key(ref: TypeRef) -> Any:
    if isinstance(ref, ScalarRef):
        return ref.name
    if isinstance(ref, IdRef):
        return 'ID'
    return getattr(ref, 'native', ref)


def _published_default(arg: Any) -> Any:
    default = arg.default
    if arg.has_default and isinstance(default, _PUBLISHED_DEFAULTS):
        return default
    return Undefined


class SchemaAssembler:
    """Turns the builders declared on a :class:`SchemaDsl` into a ``GraphQLSchema``."""

    def __init__(self, dsl: 'SchemaDsl', context: 'SchemaBuilderContext'):
        self.dsl = dsl
        self.context = context
        self.log = context.log
        self._builders: Dict[type, BaseTypeBuilder] = {b.cls: b for b in dsl.types}
        self._types: Dict[type, GraphQLNamedType] = {}
        self._enums: Dict[type, GraphQLEnumType] = {}
        self._inputs: Dict[type, GraphQLInputObjectType] = {}
        self._roots: Dict[str, GraphQLObjectType] = {}
        # type name -> field map, filled in phase two
        self._field_maps: Dict[str, Dict[str, GraphQLField]] = {}
        self._input_maps: Dict[str, Dict[str, GraphQLInputField]] = {}
        # interface name -> {implementing class: object type name}
        self._implementations: Dict[str, Dict[type, str]] = {}

    # --- entry point -------------------------------------------------------

    def assemble(self) -> GraphQLSchema:
        self._check_interfaces()
        self._create_types()
        self._fill_types()
        return self._schema()

    # --- interface contracts -----------------------------------------------

    def _interface_builder(self, owner: TypeBuilder, iface: type) -> InterfaceBuilder:
        builder = self._builders.get(iface)
        if not isinstance(builder, InterfaceBuilder):
            raise InterfaceContractError(
                f'{owner.name} implements {iface.__qualname__}, which is not declared with inter()'
            )
        return builder

    def _check_interfaces(self) -> None:
        for builder in self.dsl.types:
            if not isinstance(builder, TypeBuilder):
                continue
            for iface in builder.interfaces:
                iface_builder = self._interface_builder(builder, iface)
                for expected in iface_builder.fields:
                    actual = builder.get_field(expected.name)
                    if actual is None:
                        if not self.context.config.auto_interface_fields:
                            raise InterfaceContractError(
                                f'{builder.name} lacks field `{expected.name}` of interface {iface_builder.name}'
                            )
                        self.log.debug('[interface] %s inherits `%s` from %s', builder.name, expected.name, iface_builder.name)
                        builder.fields.append(expected)
                        continue
                    self._check_field(builder, iface_builder, actual, expected)

    @staticmethod
    def _check_field(owner: BaseTypeBuilder, iface: BaseTypeBuilder, actual: Field, expected: Field) -> None:
        where = f'{owner.name}.{actual.name} (interface {iface.name})'
        if not _covariant(actual.type, expected.type):
            raise InterfaceContractError(f'{where}: type {actual.type} is not compatible with {expected.type}')
        own_args = {a.name: a for a in actual.exposed_arguments}
        for arg in expected.exposed_arguments:
            mine = own_args.pop(arg.name, None)
            if mine is None or mine.type != arg.type:
                raise InterfaceContractError(f'{where}: argument `{arg.name}: {arg.type}` must be declared identically')
        for extra in own_args.values():
            if not extra.type.nullable:
                raise InterfaceContractError(f'{where}: additional argument `{extra.name}` must be optional')

    # --- phase one: named types ----------------------------------------------

    def _create_types(self) -> None:
        ctx = self.context
        for cls, name in ctx.enums.items():
            self._enums[cls] = GraphQLEnumType(
                name,
                {member.name: GraphQLEnumValue(member) for member in cls},
                description=ctx.type_descriptions.get(cls),
            )
        for cls, name in ctx.inputs.items():
            self._inputs[cls] = GraphQLInputObjectType(
                name,
                fields=self._input_thunk(name),
                description=ctx.type_descriptions.get(cls),
            )
        for builder in self.dsl.types:
            if isinstance(builder, InterfaceBuilder):
                self._implementations[builder.name] = {}
                self._types[builder.cls] = GraphQLInterfaceType(
                    builder.name,
                    fields=self._field_thunk(builder.name),
                    description=builder.description,
                    resolve_type=self._resolve_type,
                )
        for builder in self.dsl.types:
            if isinstance(builder, TypeBuilder):
                interfaces = [self._types[i] for i in builder.interfaces]
                for iface in interfaces:
                    self._implementations[iface.name][builder.cls] = builder.name
                self._types[builder.cls] = GraphQLObjectType(
                    builder.name,
                    fields=self._field_thunk(builder.name),
                    interfaces=interfaces,
                    description=builder.description,
                )
        for kind, builder in self.dsl.roots.items():
            self._roots[kind] = GraphQLObjectType(
                builder.name,
                fields=self._field_thunk(builder.name),
                description=builder.description,
            )

    def _field_thunk(self, name: str):
        return lambda: self._field_maps[name]

    def _input_thunk(self, name: str):
        return lambda: self._input_maps[name]

    def _resolve_type(self, value: Any, info: Any, abstract_type: GraphQLInterfaceType) -> Optional[str]:
        implementations = self._implementations.get(abstract_type.name, {})
        for klass in type(value).__mro__:
            name = implementations.get(klass)
            if name is not None:
                return name
        return None

    # --- phase two: fields -------------------------------------------------

    def _fill_types(self) -> None:
        for cls, name in self.context.inputs.items():
            self._input_maps[name] = {
                f.name: GraphQLInputField(
                    self._input_type(f.type, f'{name}.{f.name}'),
                    default_value=_published_default(f),
                    out_name=f.python_name,
                )
                for f in input_fields(cls, self.context)
            }
        for builder in self.dsl.types:
            self._field_maps[builder.name] = self._fields(builder)
        for builder in self.dsl.roots.values():
            self._field_maps[builder.name] = self._fields(builder)

    def _fields(self, builder: BaseTypeBuilder) -> Dict[str, GraphQLField]:
        fields: Dict[str, GraphQLField] = {}
        for field in builder.fields:
            where = f'{builder.name}.{field.name}'
            args = {a.name: self._argument(a, where) for a in field.exposed_arguments}
            out = self._output_type(field.type, where)
            if builder.streaming:
                if not field.is_stream:
                    raise SchemaBuildError(f'{where}: subscription fields must produce an async stream')
                fields[field.name] = GraphQLField(
                    out, args, resolve=_with_ids(field, _identity_resolver),
                    subscribe=field.fetcher, description=field.description,
                )
            else:
                fields[field.name] = GraphQLField(
                    out, args, resolve=_with_ids(field, field.fetcher), description=field.description,
                )
        return fields

    def _argument(self, arg: Argument, where: str) -> GraphQLArgument:
        return GraphQLArgument(
            self._input_type(arg.type, f'{where}({arg.name})'),
            default_value=_published_default(arg),
            out_name=arg.python_name,
        )

    def _output_type(self, ref: TypeRef, where: str):
        if isinstance(ref, NonNullRef):
            return GraphQLNonNull(self._output_type(ref.of, where))
        if isinstance(ref, ListRef):
            return GraphQLList(self._output_type(ref.of, where))
        if isinstance(ref, ObjectRef):
            gql_type = self._types.get(ref.native)
            if gql_type is None:
                raise ReflectionError(
                    f'{where}: {ref.native.__qualname__} is not declared; declare it with type() or inter()'
                )
            return gql_type
        return self._leaf_type(ref, where)

    def _input_type(self, ref: TypeRef, where: str):
        if isinstance(ref, NonNullRef):
            return GraphQLNonNull(self._input_type(ref.of, where))
        if isinstance(ref, ListRef):
            return GraphQLList(self._input_type(ref.of, where))
        if isinstance(ref, InputRef):
            return self._inputs[ref.native]
        return self._leaf_type(ref, where)

    def _leaf_type(self, ref: TypeRef, where: str):
        if isinstance(ref, ScalarRef):
            return self.context.scalars[ref.native]
        if isinstance(ref, IdRef):
            return GraphQLID
        if isinstance(ref, EnumRef):
            gql_enum = self._enums.get(ref.native)
            if gql_enum is None:
                raise ReflectionError(f'{where}: enum {ref.native.__qualname__} is not declared; declare it with enum()')
            return gql_enum
        raise ReflectionError(f'{where}: cannot map {ref}')

    # --- schema ------------------------------------------------------------

    def _schema(self) -> GraphQLSchema:
        types: List[GraphQLNamedType] = [self.context.scalars[native] for native in self.dsl.scalars]
        types += list(self._enums.values())
        types += list(self._inputs.values())
        types += list(self._types.values())
        try:
            schema = GraphQLSchema(
                query=self._roots['query'],
                mutation=self._roots.get('mutation'),
                subscription=self._roots.get('subscription'),
                types=types,
            )
        except (TypeError, GraphQLError) as e:
            raise SchemaBuildError(f'Invalid schema: {e}') from e
        errors = validate_schema(schema)
        if errors:
            raise SchemaBuildError('Invalid schema:\n' + '\n'.join(e.message for e in errors))
        return schema
