"""Scalar types: GraphQL builtins, Strawberry's default scalars and user registrations."""
from __future__ import annotations
import datetime
import decimal
import uuid
from typing import Any, Dict, Optional

import strawberry
from graphql import (
    GraphQLBoolean,
    GraphQLFloat,
    GraphQLID,
    GraphQLInt,
    GraphQLScalarType,
    GraphQLString,
)
from strawberry.schema.types.scalar import DEFAULT_SCALAR_REGISTRY

from ..errors import SchemaBuildError


def id_output(value: Any) -> Any:
    """Render ID alias values (and lists of them) in the wire form ``GraphQLID`` accepts."""
    if value is None or isinstance(value, str) or (isinstance(value, int) and not isinstance(value, bool)):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [id_output(item) for item in value]
    return str(value)


BUILTIN_SCALARS: Dict[Any, GraphQLScalarType] = {
    int: GraphQLInt,
    float: GraphQLFloat,
    str: GraphQLString,
    bool: GraphQLBoolean,
    strawberry.ID: GraphQLID,
}

# Python types Strawberry ships scalars for; reused so values serialize identically.
_STRAWBERRY_DEFAULTS = (datetime.datetime, datetime.date, datetime.time, decimal.Decimal, uuid.UUID)


def strawberry_definition(native: Any) -> Any:
    """The Strawberry scalar definition for ``native``, or None.

    Newer Strawberry releases keep their bundled scalars (``JSON``, ``Base64``...)
    in ``DEFAULT_SCALAR_REGISTRY``; ``strawberry.scalar`` wrappers carry theirs
    as ``_scalar_definition``.
    """
    try:
        definition = DEFAULT_SCALAR_REGISTRY.get(native)
    except TypeError:  # unhashable
        definition = None
    if definition is None:
        definition = getattr(native, '_scalar_definition', None)
    return definition


def to_scalar_type(coercion: Any, name: Optional[str] = None, description: Optional[str] = None) -> GraphQLScalarType:
    """Build a ``GraphQLScalarType`` from an externally supplied coercion.

    ``coercion`` may be a ``GraphQLScalarType``, a Strawberry scalar (the object
    returned by ``strawberry.scalar`` or its ``ScalarDefinition``) or any object
    with ``serialize`` / ``parse_value`` / ``parse_literal`` callables.
    """
    if isinstance(coercion, GraphQLScalarType) and name in (None, coercion.name) and description is None:
        return coercion
    definition = strawberry_definition(coercion) or coercion
    implementation = getattr(definition, 'implementation', None)
    if isinstance(implementation, GraphQLScalarType) and name in (None, implementation.name):
        return implementation
    serialize = getattr(definition, 'serialize', None)
    parse_value = getattr(definition, 'parse_value', None)
    parse_literal = getattr(definition, 'parse_literal', None)
    if not any(callable(f) for f in (serialize, parse_value, parse_literal)):
        raise SchemaBuildError(f'Scalar coercion {coercion!r} defines no serialize/parse_value/parse_literal')
    scalar_name = name or getattr(definition, 'name', None)
    if not scalar_name:
        raise SchemaBuildError(f'Scalar coercion {coercion!r} needs an explicit name')
    try:
        return GraphQLScalarType(
            name=scalar_name,
            description=description or getattr(definition, 'description', None),
            serialize=serialize if callable(serialize) else None,
            parse_value=parse_value if callable(parse_value) else None,
            parse_literal=parse_literal if callable(parse_literal) else None,
            specified_by_url=getattr(definition, 'specified_by_url', None),
        )
    except TypeError as e:  # e.g. redefinition of a reserved type such as String
        raise SchemaBuildError(f'Invalid scalar {scalar_name}: {e}') from e


def default_scalars() -> Dict[Any, GraphQLScalarType]:
    """Builtin scalars plus the date/time/decimal/uuid scalars from Strawberry."""
    scalars: Dict[Any, GraphQLScalarType] = dict(BUILTIN_SCALARS)
    for native in _STRAWBERRY_DEFAULTS:
        definition = DEFAULT_SCALAR_REGISTRY.get(native)
        if definition is not None:
            scalars[native] = to_scalar_type(definition)
    return scalars
