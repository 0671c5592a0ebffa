"""Executable schema returned by ``SchemaBuilder.build()``."""
from __future__ import annotations
import inspect
from typing import Any, AsyncIterator, Dict, Optional, Union

from graphql import (
    ExecutionResult,
    GraphQLError,
    GraphQLNamedType,
    GraphQLSchema,
    graphql,
    graphql_sync,
    introspection_from_schema,
    parse,
    print_schema,
    subscribe,
    validate,
)

from .core.fetchers import TaskScheduler, use_scheduler


class Schema:
    """Thin wrapper around the assembled ``GraphQLSchema``.

    It offers the familiar ``execute`` / ``execute_sync`` / ``subscribe`` /
    ``as_str`` surface. Each ``execute`` call runs its asynchronous field bodies
    on a per-request :class:`TaskScheduler` that is closed when the request
    completes.
    """

    def __init__(self, graphql_schema: GraphQLSchema):
        self._schema = graphql_schema

    @property
    def graphql_schema(self) -> GraphQLSchema:
        return self._schema

    def as_str(self) -> str:
        return print_schema(self._schema)

    __str__ = as_str

    def get_type_by_name(self, name: str) -> Optional[GraphQLNamedType]:
        return self._schema.get_type(name)

    def introspect(self) -> Dict[str, Any]:
        return dict(introspection_from_schema(self._schema))

    async def execute(
        self,
        query: str,
        variable_values: Optional[Dict[str, Any]] = None,
        context_value: Any = None,
        root_value: Any = None,
        operation_name: Optional[str] = None,
        scheduler: Optional[TaskScheduler] = None,
    ) -> ExecutionResult:
        """Execute a query or mutation.

        Args:
            scheduler: Scheduler for the asynchronous field bodies of this request;
                a fresh one is used by default. It is closed when the request
                completes, which cancels abandoned tasks.
        """
        scheduler = scheduler or TaskScheduler()
        with use_scheduler(scheduler):
            try:
                return await graphql(
                    self._schema,
                    query,
                    root_value=root_value,
                    context_value=context_value,
                    variable_values=variable_values,
                    operation_name=operation_name,
                )
            finally:
                await scheduler.close()

    def execute_sync(
        self,
        query: str,
        variable_values: Optional[Dict[str, Any]] = None,
        context_value: Any = None,
        root_value: Any = None,
        operation_name: Optional[str] = None,
    ) -> ExecutionResult:
        """Execute a query whose fields are all synchronous."""
        return graphql_sync(
            self._schema,
            query,
            root_value=root_value,
            context_value=context_value,
            variable_values=variable_values,
            operation_name=operation_name,
        )

    async def subscribe(
        self,
        query: str,
        variable_values: Optional[Dict[str, Any]] = None,
        context_value: Any = None,
        root_value: Any = None,
        operation_name: Optional[str] = None,
    ) -> Union[AsyncIterator[ExecutionResult], ExecutionResult]:
        """Start a subscription.

        Returns an async iterator of results, or a single ``ExecutionResult``
        carrying the errors when the subscription could not be started.
        """
        try:
            document = parse(query)
        except GraphQLError as e:
            return ExecutionResult(data=None, errors=[e])
        errors = validate(self._schema, document)
        if errors:
            return ExecutionResult(data=None, errors=errors)
        result = subscribe(
            self._schema,
            document,
            root_value=root_value,
            context_value=context_value,
            variable_values=variable_values,
            operation_name=operation_name,
        )
        if inspect.isawaitable(result):
            result = await result
        return result
