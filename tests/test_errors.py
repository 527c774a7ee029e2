import pytest

from refactor_gateway.errors import (
    ErrorKind,
    InternalError,
    InvalidParamsError,
    NotFoundError,
    ProviderInitError,
    ToolNotFoundError,
    http_status,
    jsonrpc_code,
)


@pytest.mark.parametrize("kind, code, status", [
    (ErrorKind.PARSE_ERROR, -32700, 400),
    (ErrorKind.INVALID_REQUEST, -32600, 400),
    (ErrorKind.METHOD_NOT_FOUND, -32601, 404),
    (ErrorKind.TOOL_NOT_FOUND, -32601, 404),
    (ErrorKind.INVALID_PARAMS, -32602, 400),
    (ErrorKind.RESOLUTION, -32001, 404),
    (ErrorKind.PROVIDER_INIT, -32603, 500),
    (ErrorKind.STORAGE, -32603, 500),
    (ErrorKind.PROVIDER, -32603, 500),
    (ErrorKind.INTERNAL, -32603, 500),
])
def test_error_mapping(kind, code, status):
    assert jsonrpc_code(kind) == code
    assert http_status(kind) == status


def test_to_dict():
    assert NotFoundError("no identifier at offset 3").to_dict() == {
        "code": -32001,
        "message": "no identifier at offset 3",
    }
    assert ToolNotFoundError("Unknown tool: x").code == -32601
    assert InvalidParamsError("Required: filePath").code == -32602
    assert ProviderInitError("bad").code == InternalError("bad").code == -32603
