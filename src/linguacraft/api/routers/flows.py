"""
Flow endpoints.

POST /api/<flow-name> takes the flow's JSON input and returns its JSON
output. Errors come back as {"error": ..., "details": ...} with 400 for bad
input, 404 for an unknown flow, 413 for an oversized body and 500 for model
failures.
"""

import json
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..dependencies.registry import get_flow_registry
from ..models.common import ErrorResponse
from linguacraft.pipeline.flows import FlowError, FlowRegistry, FlowValidationError, UnknownFlowError

logger = logging.getLogger(__name__)

router = APIRouter()


def error_response(status_code: int, error: str, details) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, details=details).model_dump())


@router.get("/")
async def list_flows(registry: FlowRegistry = Depends(get_flow_registry)):
    """Names of all registered flows."""
    return {"flows": registry.names()}


@router.post(
    "/{flow_name}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def run_flow(flow_name: str, request: Request, registry: FlowRegistry = Depends(get_flow_registry)):
    """
    Run one flow.

    The body is passed to the flow untouched so that the flow's own validation
    decides what is acceptable. The model call itself is blocking and runs in
    the threadpool.
    """
    try:
        flow = registry.get(flow_name)
    except UnknownFlowError as e:
        return error_response(404, str(e), {"flows": registry.names()})

    limit = request.app.state.max_body_bytes
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            return error_response(413, "Request body too large", f"limit is {limit} bytes")

    try:
        payload = json.loads(body)
    except ValueError:
        return error_response(400, f"Invalid input for {flow_name}", "Request body is not valid JSON")

    try:
        result = await run_in_threadpool(flow.execute, payload)
    except FlowValidationError as e:
        return error_response(400, f"Invalid input for {flow_name}", e.details)
    except FlowError as e:
        cause = getattr(e, "cause", None) or e.__cause__
        logger.exception(f"/api/{flow_name} error: {e}")
        return error_response(500, str(e), repr(cause) if cause else type(e).__name__)
    except Exception as e:
        logger.exception(f"/api/{flow_name} unexpected error")
        return error_response(500, f"Failed to run {flow_name}", str(e))

    return result.model_dump(by_alias=True)
