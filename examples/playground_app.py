"""FastAPI app serving the classql test schema over HTTP.

Run this file to start a local server, then POST queries to http://127.0.0.1:8000/graphql
or fetch the SDL from http://127.0.0.1:8000/schema.graphql
"""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

# Reuse the schema built by the test suite
from tests.schema import schema  # type: ignore

app = FastAPI(title="classql GraphQL Playground")
log = logging.getLogger("classql.playground")


class GraphQLRequest(BaseModel):
    query: str
    variables: Optional[Dict[str, Any]] = None
    operationName: Optional[str] = None


@app.on_event("startup")
async def on_startup() -> None:
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    logging.getLogger("classql").setLevel(logging.DEBUG)


@app.get("/schema.graphql", response_class=PlainTextResponse)
async def sdl() -> str:
    return schema.as_str()


@app.post("/graphql")
async def graphql_endpoint(body: GraphQLRequest, request: Request) -> Dict[str, Any]:
    result = await schema.execute(
        body.query,
        variable_values=body.variables,
        context_value={"request": request},
        operation_name=body.operationName,
    )
    payload: Dict[str, Any] = {"data": result.data}
    if result.errors:
        log.info("request failed with %d error(s)", len(result.errors))
        payload["errors"] = [e.formatted for e in result.errors]
    return payload


if __name__ == "__main__":
    # Local dev runner
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
