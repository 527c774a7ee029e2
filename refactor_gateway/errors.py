#!/usr/bin/env python3
"""
Refactor Gateway - Error taxonomy

Every failure inside the gateway is a GatewayError carrying an ErrorKind.
Transports never inspect exception classes directly: they map the kind to
their own wire code with jsonrpc_code() / http_status().
"""

from enum import Enum


class ErrorKind(Enum):
    PARSE_ERROR = "parse_error"
    INVALID_REQUEST = "invalid_request"
    METHOD_NOT_FOUND = "method_not_found"
    TOOL_NOT_FOUND = "tool_not_found"
    INVALID_PARAMS = "invalid_params"
    RESOLUTION = "resolution"
    PROVIDER_INIT = "provider_init"
    STORAGE = "storage"
    PROVIDER = "provider"
    INTERNAL = "internal"


_JSONRPC_CODES = {
    ErrorKind.PARSE_ERROR: -32700,
    ErrorKind.INVALID_REQUEST: -32600,
    ErrorKind.METHOD_NOT_FOUND: -32601,
    ErrorKind.TOOL_NOT_FOUND: -32601,
    ErrorKind.INVALID_PARAMS: -32602,
    ErrorKind.RESOLUTION: -32001,
}

_HTTP_STATUS = {
    ErrorKind.PARSE_ERROR: 400,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.INVALID_PARAMS: 400,
    ErrorKind.METHOD_NOT_FOUND: 404,
    ErrorKind.TOOL_NOT_FOUND: 404,
    ErrorKind.RESOLUTION: 404,
}

INTERNAL_ERROR_CODE = -32603


class GatewayError(Exception):
    """Base class for all failures the gateway reports to a client."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> int:
        return jsonrpc_code(self.kind)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ParseError(GatewayError):
    kind = ErrorKind.PARSE_ERROR


class InvalidRequestError(GatewayError):
    kind = ErrorKind.INVALID_REQUEST


class MethodNotFoundError(GatewayError):
    kind = ErrorKind.METHOD_NOT_FOUND


class ToolNotFoundError(GatewayError):
    kind = ErrorKind.TOOL_NOT_FOUND


class InvalidParamsError(GatewayError):
    kind = ErrorKind.INVALID_PARAMS


class NotFoundError(GatewayError):
    """No identifier could be resolved from a position or a name."""

    kind = ErrorKind.RESOLUTION


class ProviderInitError(GatewayError):
    """The source model could not be built from the project manifest."""

    kind = ErrorKind.PROVIDER_INIT


class StorageError(GatewayError):
    kind = ErrorKind.STORAGE


class ProviderError(GatewayError):
    """rope, pyright or a formatter failed underneath an operation."""

    kind = ErrorKind.PROVIDER


class InternalError(GatewayError):
    kind = ErrorKind.INTERNAL


def jsonrpc_code(kind: ErrorKind) -> int:
    """Map an error kind to its JSON-RPC 2.0 error code."""
    return _JSONRPC_CODES.get(kind, INTERNAL_ERROR_CODE)


def http_status(kind: ErrorKind) -> int:
    """Map an error kind to the HTTP status used by the REST routes."""
    return _HTTP_STATUS.get(kind, 500)
