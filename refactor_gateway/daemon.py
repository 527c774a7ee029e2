#!/usr/bin/env python3
"""
Refactor Gateway Daemon

A long-running HTTP server that keeps a rope model of one Python project in
memory and exposes symbol-level refactoring tools to automation agents.

Usage:
    python -m refactor_gateway.daemon [--port 3001] [--root /path/to/project]

    # Or run in background:
    python -m refactor_gateway.daemon --port 3001 &

Endpoints:
    # JSON-RPC 2.0
    POST /rpc               - tools/list, tools/call {name, arguments}

    # REST (same tools, same arguments)
    POST /check-types       - Type check a file with pyright
    POST /write-file        - Write (and format) a file
    POST /mkdir             - Create a directory
    POST /find-references   - Find all references to a symbol
    POST /rename-symbol     - Rename a symbol across the project
    POST /update-import     - Retarget imports in one file

    # Management
    GET  /                  - Index of all endpoints
    GET  /health            - Health check
    GET  /stats             - Cache and request statistics

Example:
    curl -X POST http://localhost:3001/rpc \\
      -H "Content-Type: application/json" \\
      -d '{"jsonrpc": "2.0", "id": 1, "method": "tools/call",
           "params": {"name": "find_references",
                      "arguments": {"filePath": "pkg/mod.py", "symbolName": "foo"}}}'
"""

import argparse
import asyncio
import json
import logging
import sys
import uuid

from aiohttp import web

from .cache import ProjectCache
from .config import GatewayConfig
from .errors import (
    GatewayError,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ParseError,
    http_status,
)
from .model import SourceModel
from .tools import TOOLS, Dispatcher, list_tools

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 10 * 1024 * 1024

REST_ROUTES = {
    "/check-types": "check_types",
    "/write-file": "write_file",
    "/mkdir": "mkdir",
    "/find-references": "find_references",
    "/rename-symbol": "rename_symbol",
    "/update-import": "update_import",
}


@web.middleware
async def log_requests(request: web.Request, handler):
    logger.info("Received %s request for %s", request.method, request.path)
    return await handler(request)


class RefactorGatewayDaemon:
    def __init__(self, config: GatewayConfig, cache: ProjectCache | None = None):
        self.config = config
        self.cache = cache or ProjectCache(lambda: SourceModel(config), ttl=config.cache_ttl)
        self.dispatcher = Dispatcher(self.cache, config.project_root)
        self.app = web.Application(middlewares=[log_requests], client_max_size=MAX_BODY_SIZE)
        self._setup_routes()
        self._request_count = 0

    def _setup_routes(self):
        # Discovery & management
        self.app.router.add_get("/", self.handle_endpoints_index)
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/stats", self.handle_stats)

        # JSON-RPC
        self.app.router.add_post("/rpc", self.handle_rpc)

        # REST
        for path, tool_name in REST_ROUTES.items():
            self.app.router.add_post(path, self._rest_handler(tool_name))

    async def start(self):
        logger.info("Starting Refactor Gateway daemon...")
        logger.info("  Project root: %s", self.config.project_root)
        logger.info("  Manifest: %s", self.config.manifest)
        logger.info("  Cache TTL: %ss", self.config.cache_ttl)

    def _json_response(self, data: dict, status: int = 200) -> web.Response:
        return web.json_response(data, status=status)

    def _error_response(self, message: str, status: int = 400, code: int | None = None) -> web.Response:
        data = {"error": message}
        if code is not None:
            data["code"] = code
        return self._json_response(data, status=status)

    async def _get_json_body(self, request: web.Request) -> dict:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        return body if isinstance(body, dict) else {}

    # --- Endpoints ---

    async def handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return self._json_response({
            "status": "ok",
            "model_loaded": self.cache.model is not None,
        })

    async def handle_stats(self, request: web.Request) -> web.Response:
        """Return daemon statistics."""
        model = self.cache.model
        tracked = sorted(model.tracked_files) if model is not None else []
        return self._json_response({
            "project_root": str(self.config.project_root),
            "cache_generation": self.cache.generation,
            "cache_fresh": self.cache.is_fresh(),
            "tracked_files_count": len(tracked),
            "tracked_files": tracked[-20:],  # Last 20
            "request_count": self._request_count,
        })

    async def handle_endpoints_index(self, request: web.Request) -> web.Response:
        """Return index of all available endpoints for agent discovery."""
        return self._json_response({
            "service": "refactor-gateway",
            "project_root": str(self.config.project_root),
            "jsonrpc": {
                "endpoint": "POST /rpc",
                "methods": ["tools/list", "tools/call"],
                "example": {
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "tools/call",
                    "params": {"name": "find_references",
                               "arguments": {"filePath": "pkg/mod.py", "symbolName": "foo"}},
                },
            },
            "rest": {
                f"POST {path}": tool.description
                for path, tool_name in REST_ROUTES.items()
                for tool in TOOLS if tool.name == tool_name
            },
            "management": {
                "GET /health": "Health check",
                "GET /stats": "Cache and request statistics",
            },
        })

    # --- JSON-RPC ---

    @staticmethod
    def _correlation_id(request_id) -> str:
        """Id used in log lines; never sent back in place of the request id."""
        if request_id is None:
            return uuid.uuid4().hex[:12]
        return str(request_id)

    def _rpc_error(self, request_id, error: GatewayError) -> web.Response:
        return self._json_response({"jsonrpc": "2.0", "error": error.to_dict(), "id": request_id})

    async def handle_rpc(self, request: web.Request) -> web.Response:
        """Handle one JSON-RPC 2.0 request: tools/list or tools/call."""
        self._request_count += 1
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.info("[%s] rejected: body is not JSON", self._correlation_id(None))
            return self._rpc_error(None, ParseError("Parse error: request body is not valid JSON"))

        request_id = payload.get("id") if isinstance(payload, dict) else None
        correlation_id = self._correlation_id(request_id)
        try:
            result = await self._handle_rpc_payload(payload, correlation_id)
        except GatewayError as e:
            logger.info("[%s] failed (%s): %s", correlation_id, e.kind.value, e.message)
            return self._rpc_error(request_id, e)
        except Exception as e:
            logger.exception("[%s] unexpected error", correlation_id)
            return self._rpc_error(request_id, InternalError(f"Internal error: {e}"))

        return self._json_response({"jsonrpc": "2.0", "result": result, "id": request_id})

    async def _handle_rpc_payload(self, payload, correlation_id: str) -> dict:
        if (
            not isinstance(payload, dict)
            or payload.get("jsonrpc") != "2.0"
            or not isinstance(payload.get("method"), str)
        ):
            raise InvalidRequestError("Invalid Request: expected {jsonrpc: \"2.0\", method, params, id}")

        method = payload["method"]
        params = payload.get("params")
        if params is None:
            params = {}

        if method == "tools/list":
            return list_tools()

        if method == "tools/call":
            if not isinstance(params, dict):
                raise InvalidParamsError("params must be an object")
            name = params.get("name")
            if not isinstance(name, str) or not name:
                raise InvalidParamsError("params.name must be a non-empty string")
            logger.info("[%s] tools/call %s", correlation_id, name)
            result = await self.dispatcher.dispatch(name, params.get("arguments"))
            logger.info("[%s] %s succeeded", correlation_id, name)
            return result

        raise MethodNotFoundError(f"Method not found: {method}")

    # --- REST ---

    def _rest_handler(self, tool_name: str):
        async def handler(request: web.Request) -> web.Response:
            self._request_count += 1
            body = await self._get_json_body(request)
            try:
                result = await self.dispatcher.run(tool_name, body)
            except GatewayError as e:
                logger.info("%s failed (%s): %s", tool_name, e.kind.value, e.message)
                return self._error_response(e.message, status=http_status(e.kind), code=e.code)
            except Exception as e:
                logger.exception("%s: unexpected error", tool_name)
                error = InternalError(f"Internal error: {e}")
                return self._error_response(error.message, status=500, code=error.code)
            return self._json_response({"result": result})

        handler.__name__ = f"handle_{tool_name}"
        return handler

    async def run(self):
        """Run the HTTP server."""
        await self.start()
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, self.config.host, self.config.port)
        await site.start()
        logger.info("Ready! Listening on http://%s:%d", self.config.host, self.config.port)

        # Keep running
        try:
            while True:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            pass
        finally:
            await runner.cleanup()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Refactor Gateway - symbol-level refactoring over HTTP")
    parser.add_argument("--port", type=int, default=None, help="HTTP port (default: $REFACTOR_GATEWAY_PORT or 3001)")
    parser.add_argument("--host", type=str, default=None, help="Bind address (default: localhost)")
    parser.add_argument("--root", type=str, default=None, help="Project root (default: $REFACTOR_GATEWAY_ROOT or cwd)")
    parser.add_argument("--manifest", type=str, default=None, help="Project manifest (default: <root>/pyproject.toml)")
    parser.add_argument("--ttl", type=float, default=None, help="Source model cache TTL in seconds (default: 300)")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level (default: INFO)")
    return parser


async def main(argv: list[str] | None = None):
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    )

    config = GatewayConfig.from_env().with_overrides(
        project_root=args.root,
        manifest=args.manifest,
        host=args.host,
        port=args.port,
        cache_ttl=args.ttl,
    )
    daemon = RefactorGatewayDaemon(config)

    try:
        await daemon.run()
    except KeyboardInterrupt:
        logger.info("Shutting down...")


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
