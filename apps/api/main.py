"""FastAPI wrapper around template-driven record parsing."""

from __future__ import annotations

import importlib.metadata
import json
import logging
import os
import time
import uuid
from functools import lru_cache
from typing import Any, Literal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from apps.cli.io import record_to_payload
from reformation.errors import CompileError, NoRegexMatch, ReconstructionError
from reformation.record import compiled_schema
from reformation.schema_file import DefaultValue, RecordSpec, build_record

app = FastAPI(title="reformation API", version="0.1.0")
logger = logging.getLogger("reformation.api")

_DEFAULT_MAX_INPUTS = 1000
_REQUEST_ID_HEADER = "X-Reformation-Request-Id"


class ParseRequest(BaseModel):
    """One template/field schema and the strings to parse with it."""

    model_config = ConfigDict(extra="forbid")

    template: str
    fields: dict[str, str]
    defaults: dict[str, DefaultValue] = Field(default_factory=dict)
    inputs: list[str]
    mode: Literal["full", "search"] | None = None
    strict: bool | None = None


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(logging.ERROR, "error", request_id, error_code="INTERNAL_ERROR")
        return _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal error",
            request_id=request_id,
        )
    response.headers[_REQUEST_ID_HEADER] = request_id
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.post("/v1/parse", response_model=None)
async def parse_v1(body: ParseRequest, request: Request) -> JSONResponse:
    """Compile the posted schema once and parse every input with it."""

    request_id = _request_id_from_request(request)
    start = time.perf_counter()
    _log_event(logging.INFO, "start", request_id, inputs=len(body.inputs))

    max_inputs = _max_inputs()
    if len(body.inputs) > max_inputs:
        _log_event(logging.ERROR, "error", request_id, error_code="TOO_MANY_INPUTS")
        return _error_response(
            status_code=413,
            error_code="TOO_MANY_INPUTS",
            message=f"at most {max_inputs} inputs per request",
            request_id=request_id,
            detail={"max_inputs": max_inputs, "received": len(body.inputs)},
        )

    try:
        record_type = _build_record_cached(
            body.template,
            tuple(body.fields.items()),
            json.dumps(body.defaults, sort_keys=True),
            body.mode,
            body.strict,
        )
    except CompileError as exc:
        _log_event(logging.ERROR, "error", request_id, error_code="COMPILE_ERROR")
        return _error_response(
            status_code=400,
            error_code="COMPILE_ERROR",
            message=str(exc),
            request_id=request_id,
        )

    results = [_parse_one(record_type, text) for text in body.inputs]
    parsed = sum(1 for item in results if item["ok"])
    compiled = compiled_schema(record_type)
    _log_event(
        logging.INFO,
        "done",
        request_id,
        parsed=parsed,
        failed=len(results) - parsed,
        total_ms=_elapsed_ms(start),
    )
    return JSONResponse(
        content={
            "request_id": request_id,
            "pattern": compiled.pattern,
            "captures_count": compiled.width,
            "offsets": compiled.offsets,
            "parsed": parsed,
            "failed": len(results) - parsed,
            "results": results,
            "build": {"version": _package_version()},
        }
    )


@lru_cache(maxsize=128)
def _build_record_cached(
    template: str,
    fields: tuple[tuple[str, str], ...],
    defaults_json: str,
    mode: Literal["full", "search"] | None,
    strict: bool | None,
) -> type:
    spec = RecordSpec(
        template=template,
        fields=dict(fields),
        defaults=json.loads(defaults_json),
        mode=mode,
        strict=strict,
    )
    return build_record("Record", spec, {})


def _parse_one(record_type: type, text: str) -> dict[str, Any]:
    try:
        value = record_type.parse(text)  # type: ignore[attr-defined]
    except NoRegexMatch as exc:
        return {"input": text, "ok": False, "error": "no_match", "message": str(exc)}
    except ReconstructionError as exc:
        return {
            "input": text,
            "ok": False,
            "error": "reconstruction",
            "field": exc.field,
            "message": str(exc),
        }
    return {"input": text, "ok": True, "record": record_to_payload(value)}


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return uuid.uuid4().hex


def _max_inputs() -> int:
    raw = os.getenv("REFORMATION_MAX_INPUTS")
    if raw is None:
        return _DEFAULT_MAX_INPUTS
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_INPUTS
    return parsed if parsed > 0 else _DEFAULT_MAX_INPUTS


def _package_version() -> str:
    try:
        return importlib.metadata.version("reformation")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={_REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
