"""FastAPI application exposing the Neo N3 tool catalog over MCP JSON-RPC."""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from neo_mcp import mcp
from neo_mcp.config import default_config
from neo_mcp.errors import RateLimitError
from neo_mcp.gateway import Gateway, build_gateway
from neo_mcp.logging_config import configure_logging

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"
MCP_SERVER_NAME = "neo-n3-mcp-server"
MCP_SERVER_VERSION = APP_VERSION
CLIENT_ID_HEADER = "X-Client-ID"


def _jsonrpc_success_payload(rpc_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def _jsonrpc_error_payload(rpc_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}}


def _wrap_tool_result(envelope: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shape a dispatcher envelope into MCP content.
    """
    # Tool-level errors are returned in-band with isError flag.
    if "error" in envelope:
        message = envelope["error"].get("message") or "Error"
        return {
            "content": [{"type": "text", "text": str(message)}],
            "structuredContent": envelope,
            "isError": True,
        }
    return {
        "content": [{"type": "text", "text": json.dumps(envelope["result"], ensure_ascii=True, default=str)}],
        "structuredContent": envelope,
        "isError": False,
    }


def _client_id(request: Request) -> str:
    header = request.headers.get(CLIENT_ID_HEADER)
    if header:
        return header.strip()
    if request.client is not None and request.client.host:
        return request.client.host
    return "anonymous"


def create_app(gateway: Optional[Gateway] = None) -> FastAPI:
    """Build the app around ``gateway`` (a default one is built from the environment)."""
    if gateway is None:
        configure_logging(default_config)
        gateway = build_gateway(default_config)
    dispatcher = mcp.Dispatcher(gateway)
    metrics = gateway.metrics

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        await gateway.start()
        yield
        await gateway.aclose()

    app = FastAPI(
        title="Neo N3 MCP Server",
        description="Neo N3 blockchain tool surface for LLM agents.",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.gateway = gateway
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.time()
        metrics.incr_request()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000
        metrics.record_duration(request_id, duration_ms)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness plus the networks this process is bound to."""
        pending = {
            network.value: services.monitor.get_pending_count() for network, services in gateway.networks.items()
        }
        return JSONResponse(
            content={
                "status": "ok",
                "networkMode": gateway.config.network_mode.value,
                "networks": [network.value for network in gateway.networks],
                "pendingTransactions": pending,
            }
        )

    @app.get("/metrics")
    async def metrics_route() -> JSONResponse:
        """Return in-process metrics snapshot."""
        return JSONResponse(content=metrics.snapshot())

    @app.post("/mcp")
    async def mcp_gateway(request: Request) -> Response:
        """
        JSON-RPC gateway for MCP clients.

        Supported methods:
          - initialize
          - list_tools / tools/list
          - call_tool / tools/call
          - notifications/initialized
        """
        request_id = getattr(request.state, "request_id", None)
        client_id = _client_id(request)
        start_time = time.time()

        def _respond(
            payload: Dict[str, Any],
            status_code: int = 200,
            *,
            outcome: str,
            method_label: Optional[str] = None,
            tool_label: Optional[str] = None,
            error_code: Optional[int] = None,
        ) -> JSONResponse:
            duration_ms = (time.time() - start_time) * 1000
            logger.debug(
                "mcp outcome=%s method=%s tool=%s id=%s status=%s duration_ms=%.2f error_code=%s",
                outcome,
                method_label,
                tool_label,
                payload.get("id"),
                status_code,
                duration_ms,
                error_code,
                extra={"request_id": request_id, "tool": tool_label, "error": error_code},
            )
            return JSONResponse(status_code=status_code, content=payload)

        try:
            body = await request.json()
        except ValueError:
            payload = _jsonrpc_error_payload(None, -32700, "Parse error")
            return _respond(payload, status_code=400, outcome="error", error_code=-32700)

        if not isinstance(body, dict):
            payload = _jsonrpc_error_payload(None, -32600, "Invalid request")
            return _respond(payload, status_code=400, outcome="error", error_code=-32600)

        method = body.get("method")
        rpc_id = body.get("id")
        raw_params = body.get("params")
        if raw_params is None:
            params: Dict[str, Any] = {}
        elif isinstance(raw_params, dict):
            params = raw_params
        else:
            payload = _jsonrpc_error_payload(rpc_id, -32602, "Invalid params")
            return _respond(payload, outcome="error", method_label=method, error_code=-32602)

        if not method or not isinstance(method, str):
            payload = _jsonrpc_error_payload(rpc_id, -32600, "Invalid request")
            return _respond(payload, outcome="error", error_code=-32600)

        if method == "initialize":
            protocol_version = params.get("protocolVersion")
            if not isinstance(protocol_version, str) or not protocol_version:
                payload = _jsonrpc_error_payload(rpc_id, -32602, "Invalid params")
                return _respond(payload, outcome="error", method_label=method, error_code=-32602)
            result = {
                "protocolVersion": protocol_version,
                "serverInfo": {"name": MCP_SERVER_NAME, "version": MCP_SERVER_VERSION},
                "capabilities": {"tools": {"listChanged": False}},
            }
            return _respond(_jsonrpc_success_payload(rpc_id, result), outcome="success", method_label=method)

        if method in ("list_tools", "tools/list"):
            try:
                gateway.rate_limiter.check(client_id)
            except RateLimitError as exc:
                metrics.incr_rate_limited()
                logger.warning("method=%s outcome=rate_limited client=%s", method, client_id)
                payload = _jsonrpc_error_payload(rpc_id, 429, exc.message)
                return _respond(payload, status_code=429, outcome="rate_limited", method_label=method, error_code=429)
            result = {"tools": mcp.list_tools()}
            return _respond(_jsonrpc_success_payload(rpc_id, result), outcome="success", method_label=method)

        if method in ("call_tool", "tools/call"):
            tool_name = params.get("name") or params.get("tool")
            tool_params = params.get("arguments")
            if tool_params is None:
                tool_params = params.get("params") or {}
            if not isinstance(tool_name, str) or not tool_name.strip():
                payload = _jsonrpc_error_payload(rpc_id, -32602, "Invalid params")
                return _respond(payload, outcome="error", method_label=method, error_code=-32602)
            if not isinstance(tool_params, dict):
                payload = _jsonrpc_error_payload(rpc_id, -32602, "Invalid params")
                return _respond(payload, outcome="error", method_label=method, tool_label=tool_name, error_code=-32602)
            envelope = await dispatcher.call_tool(tool_name, tool_params, client_id=client_id)
            return _respond(
                _jsonrpc_success_payload(rpc_id, _wrap_tool_result(envelope)),
                outcome="error" if "error" in envelope else "success",
                method_label=method,
                tool_label=tool_name,
            )

        if method in ("notifications/initialized", "initialized"):
            # Notifications get no JSON-RPC response body.
            return Response(status_code=204)

        payload = _jsonrpc_error_payload(rpc_id, -32601, "Method not found")
        return _respond(payload, outcome="error", method_label=method, error_code=-32601)

    return app


app = create_app()

# Run with: uvicorn neo_mcp.server:app --reload
