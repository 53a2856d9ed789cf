"""
Health check endpoints for monitoring and diagnostics.
"""

import time
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from starlette.concurrency import run_in_threadpool

from ..models.common import HealthStatus
from ..dependencies.registry import get_flow_registry, get_model_manager
from linguacraft import __version__
from linguacraft.models.manager import ModelManager
from linguacraft.pipeline.flows import FlowRegistry

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()

@router.get("/", response_model=HealthStatus)
async def health_check(
    registry: FlowRegistry = Depends(get_flow_registry),
    model_manager: ModelManager = Depends(get_model_manager)
):
    """
    Basic health check endpoint.

    Reports configuration only; it does not call any model provider.
    """
    return HealthStatus(
        status="healthy",
        version=__version__,
        uptime=time.time() - _server_start_time,
        flows=registry.names(),
        providers=model_manager.provider_types(),
    )

@router.get("/ready")
async def readiness_check(model_manager: ModelManager = Depends(get_model_manager)):
    """
    Readiness probe for container deployments.

    Pings every provider a task routes to. Returns 503 while any of them is
    unreachable or cannot be initialized (e.g. a missing API key).
    """
    providers = await run_in_threadpool(model_manager.check_providers)
    ready = all(providers.values())
    return JSONResponse(status_code=200 if ready else 503, content={"ready": ready, "providers": providers})

@router.get("/stats")
async def call_stats(model_manager: ModelManager = Depends(get_model_manager)):
    """Per-task model call counts and latency since startup."""
    stats = model_manager.get_stats()
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "tasks": {
            task: {
                **values,
                "avg_latency_ms": (values["total_latency_ms"] / values["successful_calls"]) if values["successful_calls"] else None,
            }
            for task, values in stats.items()
        },
    }
