"""Test configuration and fixtures for classql."""

import asyncio
import logging
import sys

import pytest

from classql import BuilderConfig, SchemaBuilder
from classql.context import SchemaBuilderContext


@pytest.fixture(scope="session", autouse=True)
def event_loop_policy():
    """Set event loop policy for Windows compatibility."""
    if sys.platform.startswith("win"):
        # Use SelectorEventLoop instead of ProactorEventLoop on Windows
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    yield asyncio.get_event_loop_policy()


@pytest.fixture
def context():
    """A fresh build context with the default configuration."""
    return SchemaBuilderContext(BuilderConfig())


@pytest.fixture
def build():
    """Build a schema from declaration blocks: ``build(block, ..., auto_camel_case=True)``."""
    def _build(*blocks, **config):
        return SchemaBuilder(*blocks, config=BuilderConfig(**config)).build()
    return _build


@pytest.fixture
def classql_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="classql")
    return caplog
