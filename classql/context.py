from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional

from graphql import GraphQLScalarType

from .config import BuilderConfig
from .core.scalars import default_scalars

#: Called when converting a string input to an ID class.
IdCoercer = Callable[[Optional[str]], Any]


class SchemaBuilderContext:
    """Shared registry for all builders of a single build pass.

    Holds the ID coercers, the registered input/enum classes and the scalar table.
    It is created by ``SchemaBuilder.build()`` and dropped when that call returns.
    ``inputs`` grows while ``input()`` declarations run; argument classification
    reads it, so inputs must be declared before the fields that take them.
    """

    def __init__(self, config: Optional[BuilderConfig] = None):
        self.config = config or BuilderConfig()
        self.log = self.config.logger
        self.id_coercers: Dict[type, IdCoercer] = {}
        self.inputs: Dict[type, str] = {}
        self.enums: Dict[type, str] = {}
        self.scalars: Dict[Any, GraphQLScalarType] = default_scalars()
        self.type_descriptions: Dict[type, Optional[str]] = {}
        # input class -> reflected input fields, filled lazily by core.arguments
        self.input_fields: Dict[type, List[Any]] = {}

    def is_input_type(self, cls: Any) -> bool:
        return isinstance(cls, type) and cls in self.inputs

    def is_id_type(self, cls: Any) -> bool:
        return isinstance(cls, type) and cls in self.id_coercers

    def scalar_for(self, hint: Any) -> Optional[GraphQLScalarType]:
        try:
            return self.scalars.get(hint)
        except TypeError:  # unhashable hint
            return None

    def convert_name(self, name: str) -> str:
        return self.config.convert_name(name)
