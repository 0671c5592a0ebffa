"""classql public API.

Build a GraphQL schema from plain Python classes::

    builder = SchemaBuilder()

    @builder.block
    def declarations(s: SchemaDsl):
        s.type(MyData, lambda t: t.derive())
        s.query(Query())

    schema = builder.build()

Exposes:
- SchemaBuilder, SchemaDsl, Schema and the type builders (resolved lazily)
- BuilderConfig
- FieldStream, TaskScheduler
- the error classes of ``classql.errors``
"""
from __future__ import annotations

from .config import BuilderConfig
from .errors import (
    ClassQLError,
    CoercionError,
    DuplicateFieldError,
    DuplicateTypeError,
    InterfaceContractError,
    MemberConflictError,
    ReflectionError,
    SchemaBuildError,
    UnknownFieldError,
    UnsupportedArgumentTypeError,
)

_LAZY = {
    'SchemaBuilder': 'registry',
    'SchemaDsl': 'registry',
    'Schema': 'schema',
    'TypeBuilder': 'builders',
    'InterfaceBuilder': 'builders',
    'OperationBuilder': 'builders',
    'FieldStream': 'core.fetchers',
    'TaskScheduler': 'core.fetchers',
    'MAX_FIELD_ARITY': 'core.fields',
}


def __getattr__(name: str):  # PEP 562 lazy exports
    import importlib as _importlib
    module = _LAZY.get(name)
    if module is None:
        raise AttributeError(name)
    return getattr(_importlib.import_module(f'{__name__}.{module}'), name)


__all__ = [
    'SchemaBuilder', 'SchemaDsl', 'Schema', 'BuilderConfig',
    'TypeBuilder', 'InterfaceBuilder', 'OperationBuilder',
    'FieldStream', 'TaskScheduler', 'MAX_FIELD_ARITY',
    'ClassQLError', 'SchemaBuildError', 'DuplicateFieldError', 'UnknownFieldError',
    'DuplicateTypeError', 'InterfaceContractError', 'ReflectionError',
    'MemberConflictError', 'UnsupportedArgumentTypeError', 'CoercionError',
]
