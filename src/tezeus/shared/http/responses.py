# src/tezeus/shared/http/responses.py
"""
HTTP success envelopes.

Handlers answer with the `{success: true, ...}` shape the web client reads;
failures are rendered by the exception handlers in `tezeus.shared.exceptions`.

- ok(**fields)
- ok_data(data)
- failure(error, status=200, **fields)   # non-exceptional negative outcomes
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse


def ok(status: int = 200, **fields: Any) -> JSONResponse:
    body: Dict[str, Any] = {"success": True}
    body.update(fields)
    return JSONResponse(jsonable_encoder(body), status_code=status)


def ok_data(data: Any, status: int = 200) -> JSONResponse:
    return JSONResponse(jsonable_encoder({"data": data}), status_code=status)


def failure(error: str, status: int = 200, **fields: Any) -> JSONResponse:
    """A negative outcome that is part of the contract (e.g. an Accept race loss)."""
    body: Dict[str, Any] = {"success": False, "error": error}
    body.update(fields)
    return JSONResponse(jsonable_encoder(body), status_code=status)
