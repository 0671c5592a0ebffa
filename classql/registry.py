from __future__ import annotations
import inspect
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .builders import BaseTypeBuilder, InterfaceBuilder, OperationBuilder, TypeBuilder
from .config import BuilderConfig
from .context import IdCoercer, SchemaBuilderContext
from .core.reflection import class_description
from .core.scalars import strawberry_definition, to_scalar_type
from .errors import DuplicateTypeError, ReflectionError, SchemaBuildError

#: A declaration block; receives the :class:`SchemaDsl` of the build pass.
Block = Callable[['SchemaDsl'], Any]
#: A type declaration block; receives the builder of the declared type.
TypeBlock = Callable[[Any], Any]


def _default_coercer(cls: type) -> IdCoercer:
    def coerce(value: Optional[str]) -> Any:
        return None if value is None else cls(value)
    return coerce


class SchemaDsl:
    """Receiver of declaration blocks.

    Declares scalars, ID aliases, enums, inputs, interfaces, object types and the
    root operations of one schema. ``desc(text)`` sets the description of the
    next declared type.
    """

    ROOT_NAMES = {'query': 'Query', 'mutation': 'Mutation', 'subscription': 'Subscription'}

    def __init__(self, context: SchemaBuilderContext):
        self.context = context
        # objects and interfaces, in declaration order
        self.types: List[BaseTypeBuilder] = []
        self.roots: Dict[str, OperationBuilder] = {}
        # registered scalars, in declaration order
        self.scalars: List[Any] = []
        self._classes: Dict[Any, str] = {}
        self._names: Dict[str, Any] = {s.name: native for native, s in context.scalars.items()}
        self._next_desc: Optional[str] = None
        self._open: List[BaseTypeBuilder] = []
        self._blockless: List[OperationBuilder] = []

    # --- descriptions ------------------------------------------------------

    def desc(self, text: str) -> None:
        """Description of the next declared type (a later call overwrites it)."""
        self._next_desc = inspect.cleandoc(text)

    def _take_desc(self) -> Optional[str]:
        text, self._next_desc = self._next_desc, None
        return text

    # --- registration helpers ----------------------------------------------

    def _claim(self, native: Any, name: str) -> None:
        if native is not None and native in self._classes:
            raise DuplicateTypeError(f'{native!r} is already declared as {self._classes[native]}')
        owner = self._names.get(name)
        if owner is not None and owner is not native:
            raise DuplicateTypeError(f'A type named {name} is already declared for {owner!r}')
        if native is not None:
            self._classes[native] = name
        self._names[name] = native if native is not None else name

    # --- leaf types --------------------------------------------------------

    def scalar(self, native: Any, coercion: Any = None, name: Optional[str] = None) -> None:
        """Register a custom scalar for ``native``.

        Args:
            native: The Python type exposed as the scalar.
            coercion: ``GraphQLScalarType``, Strawberry scalar, or any object with
                ``serialize`` / ``parse_value`` / ``parse_literal``. May be omitted
                when ``native`` itself is a Strawberry scalar.
            name: GraphQL name; taken from the coercion by default.
        """
        if coercion is None:
            coercion = strawberry_definition(native)
            if coercion is None:
                raise SchemaBuildError(f'No coercion given for scalar {native!r}')
        scalar = to_scalar_type(coercion, name, self._take_desc())
        previous = self.context.scalars.get(native)
        if previous is not None and native not in self._classes and self._names.get(previous.name) is native:
            # overriding one of the default scalars
            del self._names[previous.name]
        self._claim(native, scalar.name)
        self.context.scalars[native] = scalar
        self.scalars.append(native)

    def id(self, cls: type, coercer: Optional[IdCoercer] = None) -> None:
        """Expose ``cls`` as the GraphQL ``ID`` type.

        Output values are rendered with ``str()``; input strings are turned into
        ``cls`` instances by ``coercer`` (``cls(value)`` by default).
        """
        if self._classes.get(cls) is not None:
            raise DuplicateTypeError(f'{cls!r} is already declared as {self._classes[cls]}')
        self._classes[cls] = 'ID'
        self.context.id_coercers[cls] = coercer or _default_coercer(cls)

    def enum(self, cls: type, name: Optional[str] = None) -> None:
        if not isinstance(cls, type) or not issubclass(cls, Enum):
            raise ReflectionError(f'{cls!r} is not an Enum class')
        name = name or cls.__name__
        self._claim(cls, name)
        self.context.enums[cls] = name
        self.context.type_descriptions[cls] = self._take_desc() or class_description(cls)

    def input(self, cls: type, name: Optional[str] = None) -> None:
        """Accept ``cls`` as an argument type; it is built from the request object."""
        if not isinstance(cls, type) or issubclass(cls, Enum):
            raise ReflectionError(f'{cls!r} cannot be declared as an input type')
        name = name or cls.__name__
        self._claim(cls, name)
        self.context.inputs[cls] = name
        self.context.type_descriptions[cls] = self._take_desc() or class_description(cls)

    # --- composite types ---------------------------------------------------

    def _declare(self, builder: BaseTypeBuilder, block: Optional[TypeBlock]) -> BaseTypeBuilder:
        self._open.append(builder)
        if block is not None:
            with builder:
                block(builder)
        return builder

    def inter(self, cls: type, block: Optional[TypeBlock] = None, name: Optional[str] = None) -> InterfaceBuilder:
        """Declare an interface backed by ``cls``; implementing types must subclass it."""
        name = name or cls.__name__
        builder = InterfaceBuilder(cls, name, self._take_desc(), self.context)
        self._claim(cls, name)
        self.types.append(builder)
        return self._declare(builder, block)  # type: ignore[return-value]

    def type(self, cls: type, block: Optional[TypeBlock] = None, name: Optional[str] = None) -> TypeBuilder:
        name = name or cls.__name__
        builder = TypeBuilder(cls, name, self._take_desc(), self.context)
        self._claim(cls, name)
        self.types.append(builder)
        return self._declare(builder, block)  # type: ignore[return-value]

    def _root(self, kind: str, instance: Any, block: Optional[TypeBlock], name: Optional[str]) -> OperationBuilder:
        if kind in self.roots:
            raise DuplicateTypeError(f'The {kind} root is already declared')
        name = name or self.ROOT_NAMES[kind]
        builder = OperationBuilder(name, instance, self.context, streaming=kind == 'subscription')
        description = self._take_desc()
        if description is not None:
            builder.description = description
        self._claim(None, name)
        self.roots[kind] = builder
        if block is None:
            self._blockless.append(builder)
        return self._declare(builder, block)  # type: ignore[return-value]

    def query(self, instance: Any, block: Optional[TypeBlock] = None, name: Optional[str] = None) -> OperationBuilder:
        """Declare the query root, bound to ``instance``.

        Without a block (and without a ``with`` statement) every member of the
        instance's class is derived.
        """
        return self._root('query', instance, block, name)

    def mutation(self, instance: Any, block: Optional[TypeBlock] = None, name: Optional[str] = None) -> OperationBuilder:
        return self._root('mutation', instance, block, name)

    def subscription(self, instance: Any, block: Optional[TypeBlock] = None, name: Optional[str] = None) -> OperationBuilder:
        """Declare the subscription root; its fields must produce async streams."""
        return self._root('subscription', instance, block, name)

    def close(self) -> None:
        """Finish the current declaration block: derive untouched roots and freeze every builder."""
        for builder in self._blockless:
            if not builder.entered and not builder.frozen and not builder.fields:
                builder.derive()
        for builder in self._open:
            builder.freeze()
        self._blockless.clear()
        self._open.clear()
        self._next_desc = None


class SchemaBuilder:
    """Collects declaration blocks and builds an executable schema from them.

    Example::

        builder = SchemaBuilder(config=BuilderConfig(auto_camel_case=True))

        @builder.block
        def declarations(s: SchemaDsl):
            s.id(MyId)
            with s.type(MyData) as t:
                t.derive()
            s.query(Query())

        schema = builder.build()
    """

    def __init__(self, *blocks: Block, config: Optional[BuilderConfig] = None):
        self.config = config or BuilderConfig()
        self._blocks: List[Block] = list(blocks)

    def block(self, fn: Block) -> Block:
        """Register a declaration block (usable as a decorator)."""
        self._blocks.append(fn)
        return fn

    def build(self) -> 'Schema':
        """Run every block in registration order and assemble the schema.

        Raises:
            SchemaBuildError: on the first declaration or assembly problem.
        """
        from .generator import SchemaAssembler
        from .schema import Schema

        started = time.perf_counter()
        context = SchemaBuilderContext(self.config)
        dsl = SchemaDsl(context)
        for block in self._blocks:
            block(dsl)
            dsl.close()
        if 'query' not in dsl.roots:
            raise SchemaBuildError('A query root is required; declare it with query()')
        graphql_schema = SchemaAssembler(dsl, context).assemble()
        context.log.debug(
            'built schema with %d types in %.1f ms',
            len(graphql_schema.type_map), (time.perf_counter() - started) * 1000,
        )
        return Schema(graphql_schema)
