"""Exceptions raised by classql.

Build-time errors derive from :class:`SchemaBuildError` and abort ``build()``.
Request-time errors (argument coercion) derive from :class:`CoercionError` and
are reported by the execution engine as errors located on a single field.
"""
from __future__ import annotations


class ClassQLError(Exception):
    """Base class for every classql error."""


class SchemaBuildError(ClassQLError, ValueError):
    """Raised when declarations cannot be assembled into a schema."""


class DuplicateFieldError(SchemaBuildError):
    """A field with the same name is already declared on the type."""


class UnknownFieldError(SchemaBuildError):
    """Excluding a field that is not (or no longer) declared on the type."""


class DuplicateTypeError(SchemaBuildError):
    """The same class or GraphQL type name is declared twice."""


class InterfaceContractError(SchemaBuildError):
    """An object does not satisfy an interface it claims to implement."""


class ReflectionError(SchemaBuildError):
    """A member's type or signature cannot be mapped to the schema."""


class MemberConflictError(ReflectionError):
    """A property and a function share the same name on a derived class."""


class UnsupportedArgumentTypeError(ReflectionError):
    """A parameter type is not a scalar, ID, enum, input or list of those."""


class CoercionError(ClassQLError, ValueError):
    """A raw request value could not be converted to the native parameter type."""


__all__ = [
    'ClassQLError',
    'SchemaBuildError',
    'DuplicateFieldError',
    'UnknownFieldError',
    'DuplicateTypeError',
    'InterfaceContractError',
    'ReflectionError',
    'MemberConflictError',
    'UnsupportedArgumentTypeError',
    'CoercionError',
]
