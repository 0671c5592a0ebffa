from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from strawberry.schema.name_converter import NameConverter

# Helpers most model classes carry; they never make sense as GraphQL fields.
UNIVERSAL_METHODS = frozenset({
    'copy', 'dict', 'json',
    'model_copy', 'model_dump', 'model_dump_json', 'model_post_init',
})


def is_reserved_name(name: str) -> bool:
    """Default predicate deciding which member names ``derive()`` skips."""
    return name.startswith('_') or name in UNIVERSAL_METHODS


@dataclass
class BuilderConfig:
    """Options shared by every builder of one ``SchemaBuilder``.

    Attributes:
        name_converter: Strawberry ``NameConverter`` applied to field, argument and
            input field names. Defaults to the identity (snake_case kept as-is).
        auto_camel_case: Shortcut creating ``NameConverter(auto_camel_case=True)``
            when no converter is given.
        reserved: Predicate used by ``derive()`` to skip internal members.
        auto_interface_fields: Copy interface fields an implementing object does not
            declare itself. When False a missing field fails the build.
        logger: Logger used for build diagnostics.
    """

    name_converter: Optional[NameConverter] = None
    auto_camel_case: bool = False
    reserved: Callable[[str], bool] = is_reserved_name
    auto_interface_fields: bool = True
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger('classql'))

    def __post_init__(self):
        if self.name_converter is None:
            self.name_converter = NameConverter(auto_camel_case=self.auto_camel_case)

    def convert_name(self, name: str) -> str:
        return self.name_converter.apply_naming_config(name)  # type: ignore[union-attr]
