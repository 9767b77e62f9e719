"""
Cayley graph engine over HTTP.

Traversal requests compile to Gizmo queries posted to
``/api/v1/query/gizmo``; writes and deletes go to ``/api/v1/write`` and
``/api/v1/delete`` as JSON quad lists.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from graphld.codec import Triple
from graphld.config import EndpointConfig
from graphld.engines.base import GraphEngine, StepKind, TraversalRequest, TraversalStep
from graphld.errors import StoreError, TraversalError, ValidationError

logger = logging.getLogger(__name__)

QUERY_PATH = "/api/v1/query/gizmo"
WRITE_PATH = "/api/v1/write"
DELETE_PATH = "/api/v1/delete"


def _js(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _predicate_arg(step: TraversalStep) -> str:
    if step.predicates is None:
        return "null"
    if len(step.predicates) == 1:
        return _js(step.predicates[0])
    return _js(list(step.predicates))


def compile_gizmo(request: TraversalRequest) -> str:
    """
    Compile a traversal request into a Gizmo query string.

    Example:
        g.V("http://x/john").Tag("subject").Out(null, "predicate").Tag("object").All()
    """
    start = ", ".join(_js(ref) for ref in request.start) if request.start is not None else ""
    parts = [f"g.V({start})"]

    for step in request.steps:
        if step.kind in (StepKind.OUT, StepKind.IN):
            method = "Out" if step.kind is StepKind.OUT else "In"
            args = _predicate_arg(step)
            if step.tag:
                args += f", {_js(step.tag)}"
            parts.append(f".{method}({args})")
        elif step.kind is StepKind.HAS:
            parts.append(f".Has({_js(step.predicates[0])}, {_js(step.values[0])})")
        elif step.kind is StepKind.IS:
            parts.append(f".Is({', '.join(_js(v) for v in step.values)})")
        elif step.kind is StepKind.TAG:
            parts.append(f".Tag({_js(step.tag)})")
        else:
            raise TraversalError(f"Unsupported traversal step: {step.kind}")

    parts.append(".All()")
    return "".join(parts)


class CayleyGraphEngine(GraphEngine):
    """
    Graph engine talking to a Cayley server.

    Example:
        async with CayleyGraphEngine(EndpointConfig(url="http://localhost:64210")) as engine:
            rows = await engine.select("http://x/john").out().execute()
    """

    def __init__(
        self,
        config: Optional[EndpointConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or EndpointConfig()
        if not self.config.url:
            raise ValidationError("Missing connection url string.")

        self._client = httpx.AsyncClient(
            base_url=self.config.url.rstrip("/"),
            timeout=self.config.timeout_seconds,
            headers=self.config.headers,
            transport=transport,
        )

    @property
    def url(self) -> str:
        return self.config.url

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, **kwargs) -> Any:
        """POST to the server, returning the decoded payload."""
        start_time = time.time()
        try:
            response = await self._client.post(path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Request to {self.config.url}{path} failed: {e}")
            raise StoreError(f"Request to {path} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error and not (isinstance(payload, dict) and payload.get("error")):
            payload = {"error": f"HTTP {response.status_code}: {response.text[:200]}"}

        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug(f"POST {path} -> {response.status_code} in {elapsed_ms:.1f}ms")
        return payload

    async def execute(self, request: TraversalRequest) -> List[Dict[str, Any]]:
        query = compile_gizmo(request)
        logger.debug(f"Gizmo query: {query}")

        payload = await self._post(QUERY_PATH, content=query.encode("utf-8"))
        if not isinstance(payload, dict):
            raise StoreError("Malformed query response", payload=payload)
        if payload.get("error"):
            raise StoreError(str(payload["error"]), operation="query", payload=payload)
        return payload.get("result") or []

    async def write(self, triples: List[Triple]) -> Dict[str, Any]:
        return await self._post(WRITE_PATH, json=[t.to_dict() for t in triples])

    async def delete(self, triples: List[Triple]) -> Dict[str, Any]:
        return await self._post(DELETE_PATH, json=[t.to_dict() for t in triples])
